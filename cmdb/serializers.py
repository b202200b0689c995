"""Serializers for configuration items."""
from __future__ import annotations

from rest_framework import serializers

from .models import ConfigurationItem


class ConfigurationItemSerializer(serializers.ModelSerializer):
    owner_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = ConfigurationItem
        fields = [
            "id",
            "name",
            "type",
            "status",
            "description",
            "location",
            "owner_id",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "owner_id", "created_at", "updated_at"]
