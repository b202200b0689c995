"""API views for managing tickets."""
from __future__ import annotations

from django.db.models import Q
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from core.exceptions import Unauthorized, ValidationError
from core.lookups import parse_uuid
from core.permissions import IsAgentOrAdmin, is_authenticated

from . import services
from .models import Ticket
from .serializers import (
    CommentCreateSerializer,
    CommentSerializer,
    ConfigurationItemLinkSerializer,
    TicketCreateSerializer,
    TicketSerializer,
    TicketUpdateSerializer,
)

TRUTHY = {"1", "true", "yes"}

FILTER_PARAMS = (
    ("status", "status"),
    ("priority", "priority"),
    ("category", "category"),
)

USER_FILTER_PARAMS = (
    ("assigned_to", "assigned_to_id"),
    ("submitted_by", "submitted_by_id"),
    ("team", "team_id"),
)


class TicketViewSet(viewsets.ModelViewSet):
    queryset = Ticket.objects.select_related("submitted_by", "assigned_to", "team").prefetch_related(
        "configuration_items", "problem_links__problem"
    )
    serializer_class = TicketSerializer
    filter_backends = [SearchFilter, OrderingFilter]
    search_fields = ["title", "description"]
    ordering_fields = ["created_at", "updated_at", "priority", "status", "sla_due_at"]
    ordering = ["-created_at"]
    lookup_value_regex = r"[0-9a-fA-F-]+"

    def get_permissions(self):  # type: ignore[override]
        if self.action in {"list", "retrieve", "create", "comments"}:
            return [AllowAny()]
        if self.action == "destroy":
            return [IsAgentOrAdmin()]
        return [IsAuthenticated()]

    def get_queryset(self):  # type: ignore[override]
        queryset = super().get_queryset()
        params = self.request.query_params

        for param, field in FILTER_PARAMS:
            value = params.get(param)
            if value:
                queryset = queryset.filter(**{field: value})

        for param, field in USER_FILTER_PARAMS:
            value = params.get(param)
            if not value:
                continue
            parsed = parse_uuid(value)
            if parsed is None:
                raise ValidationError({param: ["Must be a valid UUID."]})
            queryset = queryset.filter(**{field: parsed})

        if params.get("mine", "").lower() in TRUTHY:
            user = self.request.user
            if not is_authenticated(user):
                raise Unauthorized()
            queryset = queryset.filter(Q(submitted_by=user) | Q(assigned_to=user))
        return queryset

    def _present(self, ticket: Ticket) -> dict:
        instance = self.queryset.all().get(pk=ticket.pk)
        return self.get_serializer(instance).data

    def create(self, request: Request, *args, **kwargs):  # type: ignore[override]
        payload = TicketCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        ticket = services.create_ticket(payload.validated_data, request.user)
        return Response(self._present(ticket), status=status.HTTP_201_CREATED)

    def update(self, request: Request, *args, **kwargs):  # type: ignore[override]
        payload = TicketUpdateSerializer(data=request.data, partial=True)
        payload.is_valid(raise_exception=True)
        ticket = services.update_ticket(kwargs["pk"], payload.validated_data)
        return Response(self._present(ticket))

    def destroy(self, request: Request, *args, **kwargs):  # type: ignore[override]
        services.delete_ticket(kwargs["pk"])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["get", "post"], url_path="comments")
    def comments(self, request: Request, pk: str | None = None):
        """List a ticket's comments or add one as the caller."""

        if request.method == "POST":
            payload = CommentCreateSerializer(data=request.data)
            payload.is_valid(raise_exception=True)
            comment = services.add_comment(pk, request.user, payload.validated_data["content"])
            return Response(CommentSerializer(comment).data, status=status.HTTP_201_CREATED)

        comments = services.list_comments(pk)
        return Response(CommentSerializer(comments, many=True).data)

    @action(detail=True, methods=["post"], url_path="cis")
    def link_ci(self, request: Request, pk: str | None = None):
        """Attach a configuration item; repeating the call is a no-op."""

        payload = ConfigurationItemLinkSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        created = services.link_configuration_item(pk, payload.validated_data["ci_id"])
        return Response(
            {"success": True, "created": created},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    @action(detail=True, methods=["delete"], url_path=r"cis/(?P<ci_id>[0-9a-fA-F-]+)")
    def unlink_ci(self, request: Request, pk: str | None = None, ci_id: str | None = None):
        removed = services.unlink_configuration_item(pk, ci_id)
        return Response({"success": True, "removed": removed})
