"""Database models for problem records."""
from __future__ import annotations

import uuid

from django.db import models


class Problem(models.Model):
    """The underlying cause behind one or more tickets."""

    OPEN = "open"
    IDENTIFIED = "identified"
    RESOLVED = "resolved"
    CLOSED = "closed"

    STATUS_CHOICES = [
        (OPEN, "Open"),
        (IDENTIFIED, "Identified"),
        (RESOLVED, "Resolved"),
        (CLOSED, "Closed"),
    ]

    DONE_STATUSES = frozenset({RESOLVED, CLOSED})

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    description = models.TextField()
    root_cause = models.TextField(blank=True, default="")
    resolution = models.TextField(blank=True, default="")
    status = models.CharField(max_length=32, choices=STATUS_CHOICES, default=OPEN)
    tickets = models.ManyToManyField(
        "tickets.Ticket",
        through="ProblemTicket",
        related_name="problems",
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "id"]

    def __str__(self) -> str:
        return f"{self.title} ({self.status})"


class ProblemTicket(models.Model):
    problem = models.ForeignKey(Problem, related_name="ticket_links", on_delete=models.CASCADE)
    ticket = models.ForeignKey("tickets.Ticket", related_name="problem_links", on_delete=models.CASCADE)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        unique_together = ("problem", "ticket")
