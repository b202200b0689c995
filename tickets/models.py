"""Database models for incident and service-request tickets."""
from __future__ import annotations

import uuid

from django.db import models


class Ticket(models.Model):
    """A request for help raised by a user or through the public form."""

    NEW = "new"
    IN_PROGRESS = "in-progress"
    PENDING = "pending"
    RESOLVED = "resolved"
    CLOSED = "closed"

    STATUS_CHOICES = [
        (NEW, "New"),
        (IN_PROGRESS, "In Progress"),
        (PENDING, "Pending"),
        (RESOLVED, "Resolved"),
        (CLOSED, "Closed"),
    ]

    DONE_STATUSES = frozenset({RESOLVED, CLOSED})

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    PRIORITY_CHOICES = [
        (LOW, "Low"),
        (MEDIUM, "Medium"),
        (HIGH, "High"),
        (CRITICAL, "Critical"),
    ]

    HARDWARE = "hardware"
    SOFTWARE = "software"
    NETWORK = "network"
    ACCESS = "access"
    SERVICE_REQUEST = "service-request"
    INCIDENT = "incident"
    SERVER = "server"

    CATEGORY_CHOICES = [
        (HARDWARE, "Hardware"),
        (SOFTWARE, "Software"),
        (NETWORK, "Network"),
        (ACCESS, "Access"),
        (SERVICE_REQUEST, "Service Request"),
        (INCIDENT, "Incident"),
        (SERVER, "Server"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    description = models.TextField()
    status = models.CharField(max_length=32, choices=STATUS_CHOICES, default=NEW)
    priority = models.CharField(max_length=16, choices=PRIORITY_CHOICES, default=MEDIUM)
    category = models.CharField(max_length=32, choices=CATEGORY_CHOICES, default=INCIDENT)
    submitted_by = models.ForeignKey(
        "accounts.User",
        related_name="submitted_tickets",
        on_delete=models.CASCADE,
    )
    assigned_to = models.ForeignKey(
        "accounts.User",
        related_name="assigned_tickets",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    team = models.ForeignKey(
        "accounts.Team",
        related_name="tickets",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    additional_fields = models.JSONField(default=dict, blank=True)
    due_date = models.DateField(null=True, blank=True)
    sla_due_at = models.DateTimeField(null=True, blank=True, editable=False)
    resolved_at = models.DateTimeField(null=True, blank=True)
    configuration_items = models.ManyToManyField(
        "cmdb.ConfigurationItem",
        through="TicketConfigurationItem",
        related_name="tickets",
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "id"]
        indexes = [
            models.Index(fields=["status"], name="ticket_status_idx"),
            models.Index(fields=["priority"], name="ticket_priority_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.status})"

    @property
    def is_done(self) -> bool:
        return self.status in self.DONE_STATUSES


class Comment(models.Model):
    """A note on a ticket; removed together with its ticket."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    ticket = models.ForeignKey(Ticket, related_name="comments", on_delete=models.CASCADE)
    user = models.ForeignKey("accounts.User", related_name="comments", on_delete=models.CASCADE)
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        return f"Comment by {self.user_id} on {self.ticket_id}"


class TicketConfigurationItem(models.Model):
    ticket = models.ForeignKey(Ticket, related_name="ci_links", on_delete=models.CASCADE)
    configuration_item = models.ForeignKey(
        "cmdb.ConfigurationItem", related_name="ticket_links", on_delete=models.CASCADE
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("ticket", "configuration_item")
