"""Serializers for change requests."""
from __future__ import annotations

from rest_framework import serializers

from accounts.models import User
from cmdb.serializers import ConfigurationItemSerializer
from tickets.models import Ticket

from .models import Change


class LinkedProblemSerializer(serializers.Serializer):
    id = serializers.UUIDField(read_only=True)
    title = serializers.CharField(read_only=True)
    status = serializers.CharField(read_only=True)


class ChangeSerializer(serializers.ModelSerializer):
    requested_by = serializers.UUIDField(source="requested_by_id", read_only=True)
    approved_by = serializers.UUIDField(source="approved_by_id", read_only=True)
    assigned_approver_id = serializers.UUIDField(read_only=True)
    cis = ConfigurationItemSerializer(source="configuration_items", many=True, read_only=True)
    problems = LinkedProblemSerializer(many=True, read_only=True)

    class Meta:
        model = Change
        fields = [
            "id",
            "title",
            "description",
            "type",
            "status",
            "priority",
            "risk",
            "impact",
            "backout_plan",
            "scheduled_start",
            "scheduled_end",
            "requested_by",
            "approved_by",
            "assigned_approver_id",
            "cis",
            "problems",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ChangeUpdateSerializer(serializers.Serializer):
    """Whitelisted change fields; anything else in the body is ignored."""

    title = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False)
    type = serializers.ChoiceField(choices=Change.TYPE_CHOICES, required=False)
    status = serializers.ChoiceField(choices=Change.STATUS_CHOICES, required=False)
    priority = serializers.ChoiceField(choices=Ticket.PRIORITY_CHOICES, required=False)
    risk = serializers.ChoiceField(choices=Change.RISK_CHOICES, required=False)
    impact = serializers.CharField(required=False, allow_blank=True)
    backout_plan = serializers.CharField(required=False, allow_blank=True)
    scheduled_start = serializers.DateTimeField(required=False, allow_null=True)
    scheduled_end = serializers.DateTimeField(required=False, allow_null=True)
    approved_by = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.all(), required=False, allow_null=True
    )
    assigned_approver_id = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.all(), source="assigned_approver", required=False, allow_null=True
    )

    def validate(self, attrs):
        start = attrs.get("scheduled_start")
        end = attrs.get("scheduled_end")
        if start and end and end < start:
            raise serializers.ValidationError({"scheduled_end": "Must not be before scheduled_start."})
        return attrs


class ChangeCreateSerializer(ChangeUpdateSerializer):
    title = serializers.CharField(max_length=255)
    description = serializers.CharField()
    type = serializers.ChoiceField(choices=Change.TYPE_CHOICES)
    status = None
    approved_by = None


class ConfigurationItemLinkSerializer(serializers.Serializer):
    ci_id = serializers.UUIDField()


class ProblemLinkSerializer(serializers.Serializer):
    problem_id = serializers.UUIDField()
