"""Database models for change requests."""
from __future__ import annotations

import uuid

from django.db import models

from tickets.models import Ticket


class Change(models.Model):
    """A planned modification to one or more configuration items."""

    DRAFT = "draft"
    REQUESTED = "requested"
    APPROVED = "approved"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (DRAFT, "Draft"),
        (REQUESTED, "Requested"),
        (APPROVED, "Approved"),
        (IN_PROGRESS, "In Progress"),
        (COMPLETED, "Completed"),
        (FAILED, "Failed"),
        (CANCELLED, "Cancelled"),
    ]

    TERMINAL_STATUSES = frozenset({COMPLETED, FAILED, CANCELLED})

    STANDARD = "standard"
    NORMAL = "normal"
    EMERGENCY = "emergency"

    TYPE_CHOICES = [
        (STANDARD, "Standard"),
        (NORMAL, "Normal"),
        (EMERGENCY, "Emergency"),
    ]

    RISK_LOW = "low"
    RISK_MEDIUM = "medium"
    RISK_HIGH = "high"

    RISK_CHOICES = [
        (RISK_LOW, "Low"),
        (RISK_MEDIUM, "Medium"),
        (RISK_HIGH, "High"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    description = models.TextField()
    type = models.CharField(max_length=16, choices=TYPE_CHOICES, default=NORMAL)
    status = models.CharField(max_length=32, choices=STATUS_CHOICES, default=REQUESTED)
    priority = models.CharField(max_length=16, choices=Ticket.PRIORITY_CHOICES, default=Ticket.MEDIUM)
    risk = models.CharField(max_length=16, choices=RISK_CHOICES, default=RISK_MEDIUM)
    impact = models.TextField(blank=True, default="")
    backout_plan = models.TextField(blank=True, default="")
    scheduled_start = models.DateTimeField(null=True, blank=True)
    scheduled_end = models.DateTimeField(null=True, blank=True)
    requested_by = models.ForeignKey(
        "accounts.User",
        related_name="requested_changes",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    approved_by = models.ForeignKey(
        "accounts.User",
        related_name="approved_changes",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    assigned_approver = models.ForeignKey(
        "accounts.User",
        related_name="changes_to_approve",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    configuration_items = models.ManyToManyField(
        "cmdb.ConfigurationItem",
        through="ChangeConfigurationItem",
        related_name="changes",
        blank=True,
    )
    problems = models.ManyToManyField(
        "problems.Problem",
        through="ChangeProblem",
        related_name="changes",
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "id"]
        indexes = [models.Index(fields=["status"], name="change_status_idx")]

    def __str__(self) -> str:
        return f"{self.title} ({self.status})"


class ChangeConfigurationItem(models.Model):
    change = models.ForeignKey(Change, related_name="ci_links", on_delete=models.CASCADE)
    configuration_item = models.ForeignKey(
        "cmdb.ConfigurationItem", related_name="change_links", on_delete=models.CASCADE
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("change", "configuration_item")


class ChangeProblem(models.Model):
    change = models.ForeignKey(Change, related_name="problem_links", on_delete=models.CASCADE)
    problem = models.ForeignKey("problems.Problem", related_name="change_links", on_delete=models.CASCADE)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("change", "problem")
