"""Serializers for problem records."""
from __future__ import annotations

from rest_framework import serializers

from .models import Problem


class LinkedTicketSerializer(serializers.Serializer):
    id = serializers.UUIDField(read_only=True)
    title = serializers.CharField(read_only=True)
    status = serializers.CharField(read_only=True)
    priority = serializers.CharField(read_only=True)


class ProblemSerializer(serializers.ModelSerializer):
    ticket_count = serializers.SerializerMethodField()

    class Meta:
        model = Problem
        fields = [
            "id",
            "title",
            "description",
            "root_cause",
            "resolution",
            "status",
            "ticket_count",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_ticket_count(self, obj: Problem) -> int:
        annotated = getattr(obj, "ticket_total", None)
        if annotated is not None:
            return annotated
        return obj.ticket_links.count()


class ProblemDetailSerializer(ProblemSerializer):
    tickets = LinkedTicketSerializer(many=True, read_only=True)

    class Meta(ProblemSerializer.Meta):
        fields = ProblemSerializer.Meta.fields + ["tickets"]
        read_only_fields = fields


class ProblemWriteSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False)
    root_cause = serializers.CharField(required=False, allow_blank=True)
    resolution = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=Problem.STATUS_CHOICES, required=False)


class ProblemResolveSerializer(serializers.Serializer):
    resolution = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class TicketLinkSerializer(serializers.Serializer):
    ticket_id = serializers.UUIDField()
