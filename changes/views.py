"""API views for the change-management workflow."""
from __future__ import annotations

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from core.permissions import IsAgentOrAdmin

from . import services
from .models import Change
from .serializers import (
    ChangeCreateSerializer,
    ChangeSerializer,
    ChangeUpdateSerializer,
    ConfigurationItemLinkSerializer,
    ProblemLinkSerializer,
)


class ChangeViewSet(viewsets.ModelViewSet):
    queryset = Change.objects.prefetch_related("configuration_items", "problems")
    serializer_class = ChangeSerializer
    filter_backends = [SearchFilter, OrderingFilter]
    search_fields = ["title", "description"]
    ordering_fields = ["created_at", "updated_at", "scheduled_start", "status", "priority"]
    ordering = ["-created_at"]
    lookup_value_regex = r"[0-9a-fA-F-]+"

    def get_permissions(self):  # type: ignore[override]
        if self.action in {"list", "retrieve"}:
            return [AllowAny()]
        if self.action in {"create", "update", "partial_update", "approve"}:
            return [IsAuthenticated()]
        return [IsAgentOrAdmin()]

    def get_queryset(self):  # type: ignore[override]
        queryset = super().get_queryset()
        for param in ("status", "type", "risk"):
            value = self.request.query_params.get(param)
            if value:
                queryset = queryset.filter(**{param: value})
        return queryset

    def _present(self, change: Change) -> dict:
        instance = self.queryset.all().get(pk=change.pk)
        return self.get_serializer(instance).data

    def create(self, request: Request, *args, **kwargs):  # type: ignore[override]
        payload = ChangeCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        change = services.create_change(payload.validated_data, request.user)
        return Response(self._present(change), status=status.HTTP_201_CREATED)

    def update(self, request: Request, *args, **kwargs):  # type: ignore[override]
        payload = ChangeUpdateSerializer(data=request.data, partial=True)
        payload.is_valid(raise_exception=True)
        change = services.update_change(kwargs["pk"], payload.validated_data, request.user)
        return Response(self._present(change))

    def destroy(self, request: Request, *args, **kwargs):  # type: ignore[override]
        services.delete_change(kwargs["pk"])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"])
    def approve(self, request: Request, pk: str | None = None):
        change = services.approve_change(pk, request.user)
        return Response(self._present(change))

    @action(detail=True, methods=["post"], url_path="cis")
    def link_ci(self, request: Request, pk: str | None = None):
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

    @action(detail=True, methods=["post"], url_path="problems")
    def link_problem(self, request: Request, pk: str | None = None):
        payload = ProblemLinkSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        created = services.link_problem(pk, payload.validated_data["problem_id"])
        return Response(
            {"success": True, "created": created},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    @action(detail=True, methods=["delete"], url_path=r"problems/(?P<problem_id>[0-9a-fA-F-]+)")
    def unlink_problem(self, request: Request, pk: str | None = None, problem_id: str | None = None):
        removed = services.unlink_problem(pk, problem_id)
        return Response({"success": True, "removed": removed})
