"""Database models for the configuration-item inventory."""
from __future__ import annotations

import uuid

from django.db import models


class ConfigurationItem(models.Model):
    """A tracked infrastructure asset (server, application, network device)."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"
    RETIRED = "retired"

    STATUS_CHOICES = [
        (ACTIVE, "Active"),
        (INACTIVE, "Inactive"),
        (MAINTENANCE, "Maintenance"),
        (RETIRED, "Retired"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    type = models.CharField(max_length=50)
    status = models.CharField(max_length=32, choices=STATUS_CHOICES, default=ACTIVE)
    description = models.TextField(blank=True)
    location = models.CharField(max_length=100, blank=True)
    owner = models.ForeignKey(
        "accounts.User",
        related_name="owned_configuration_items",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name", "id"]

    def __str__(self) -> str:
        return f"{self.name} ({self.type})"
