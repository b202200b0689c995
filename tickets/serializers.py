"""Serializers for ticket entities."""
from __future__ import annotations

from typing import Any, Dict, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from rest_framework import serializers

from accounts.models import Team, User
from cmdb.serializers import ConfigurationItemSerializer

from .models import Comment, Ticket
from .sla import compute_remaining


class TicketSerializer(serializers.ModelSerializer):
    submitted_by = serializers.UUIDField(source="submitted_by_id", read_only=True)
    submitted_by_email = serializers.EmailField(source="submitted_by.email", read_only=True)
    assigned_to = serializers.UUIDField(source="assigned_to_id", read_only=True)
    assigned_to_email = serializers.SerializerMethodField()
    team_id = serializers.UUIDField(read_only=True)
    cis = ConfigurationItemSerializer(source="configuration_items", many=True, read_only=True)
    linked_problem = serializers.SerializerMethodField()
    sla = serializers.SerializerMethodField()

    class Meta:
        model = Ticket
        fields = [
            "id",
            "title",
            "description",
            "status",
            "priority",
            "category",
            "submitted_by",
            "submitted_by_email",
            "assigned_to",
            "assigned_to_email",
            "team_id",
            "due_date",
            "additional_fields",
            "sla_due_at",
            "sla",
            "resolved_at",
            "cis",
            "linked_problem",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_assigned_to_email(self, obj: Ticket) -> Optional[str]:
        return obj.assigned_to.email if obj.assigned_to_id else None

    def get_linked_problem(self, obj: Ticket) -> Optional[Dict[str, Any]]:
        for link in obj.problem_links.all():
            problem = link.problem
            return {"id": str(problem.id), "title": problem.title, "status": problem.status}
        return None

    def get_sla(self, obj: Ticket) -> Optional[Dict[str, object]]:
        if obj.sla_due_at is None:
            return None
        return compute_remaining(obj.sla_due_at).as_dict()


class TicketUpdateSerializer(serializers.Serializer):
    """Partial-update schema; keys outside it are ignored."""

    title = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False)
    status = serializers.ChoiceField(choices=Ticket.STATUS_CHOICES, required=False)
    priority = serializers.CharField(max_length=16, required=False)
    category = serializers.ChoiceField(choices=Ticket.CATEGORY_CHOICES, required=False)
    assigned_to = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.all(), required=False, allow_null=True
    )
    team_id = serializers.PrimaryKeyRelatedField(
        queryset=Team.objects.all(), source="team", required=False, allow_null=True
    )
    due_date = serializers.DateField(required=False, allow_null=True)
    additional_fields = serializers.JSONField(required=False)

    def validate_priority(self, value: str) -> str:
        value = value.strip().lower()
        if value not in dict(Ticket.PRIORITY_CHOICES):
            raise serializers.ValidationError(f'"{value}" is not a valid priority.')
        return value

    def validate_additional_fields(self, value: Any) -> Dict[str, Any]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise serializers.ValidationError("Must be a JSON object.")
        contact_email = value.get("contact_email")
        if contact_email not in (None, ""):
            try:
                validate_email(str(contact_email).strip())
            except DjangoValidationError:
                raise serializers.ValidationError({"contact_email": "Enter a valid email address."})
        return value


class TicketCreateSerializer(TicketUpdateSerializer):
    title = serializers.CharField(max_length=255)
    description = serializers.CharField()
    status = serializers.ChoiceField(choices=Ticket.STATUS_CHOICES, default=Ticket.NEW)
    priority = serializers.CharField(max_length=16, default=Ticket.MEDIUM)
    category = serializers.ChoiceField(choices=Ticket.CATEGORY_CHOICES, default=Ticket.INCIDENT)
    additional_fields = serializers.JSONField(required=False, default=dict)
    assigned_to = None


class CommentSerializer(serializers.ModelSerializer):
    ticket_id = serializers.UUIDField(read_only=True)
    user_id = serializers.UUIDField(read_only=True)
    user_email = serializers.EmailField(source="user.email", read_only=True)

    class Meta:
        model = Comment
        fields = ["id", "ticket_id", "user_id", "user_email", "content", "created_at", "updated_at"]
        read_only_fields = fields


class CommentCreateSerializer(serializers.Serializer):
    content = serializers.CharField()


class ConfigurationItemLinkSerializer(serializers.Serializer):
    ci_id = serializers.UUIDField()
