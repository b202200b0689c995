"""API views for problem management."""
from __future__ import annotations

from django.db.models import Count
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response

from core.permissions import IsAgentOrAdmin

from . import services
from .models import Problem
from .serializers import (
    ProblemDetailSerializer,
    ProblemResolveSerializer,
    ProblemSerializer,
    ProblemWriteSerializer,
    TicketLinkSerializer,
)


class ProblemViewSet(viewsets.ModelViewSet):
    queryset = Problem.objects.annotate(ticket_total=Count("ticket_links")).prefetch_related("tickets")
    serializer_class = ProblemSerializer
    filter_backends = [SearchFilter, OrderingFilter]
    search_fields = ["title", "description", "root_cause"]
    ordering_fields = ["created_at", "updated_at", "status"]
    ordering = ["-created_at"]
    lookup_value_regex = r"[0-9a-fA-F-]+"

    def get_permissions(self):  # type: ignore[override]
        if self.action in {"list", "retrieve"}:
            return [AllowAny()]
        return [IsAgentOrAdmin()]

    def get_serializer_class(self):  # type: ignore[override]
        if self.action == "retrieve":
            return ProblemDetailSerializer
        return super().get_serializer_class()

    def get_queryset(self):  # type: ignore[override]
        queryset = super().get_queryset()
        status_filter = self.request.query_params.get("status")
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset

    def _present(self, problem: Problem) -> dict:
        instance = self.queryset.all().get(pk=problem.pk)
        return ProblemDetailSerializer(instance).data

    def create(self, request: Request, *args, **kwargs):  # type: ignore[override]
        payload = ProblemWriteSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        problem = services.create_problem(payload.validated_data)
        return Response(self._present(problem), status=status.HTTP_201_CREATED)

    def update(self, request: Request, *args, **kwargs):  # type: ignore[override]
        payload = ProblemWriteSerializer(data=request.data, partial=True)
        payload.is_valid(raise_exception=True)
        problem = services.update_problem(kwargs["pk"], payload.validated_data)
        return Response(self._present(problem))

    def destroy(self, request: Request, *args, **kwargs):  # type: ignore[override]
        services.delete_problem(kwargs["pk"])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"], url_path="tickets")
    def link_ticket(self, request: Request, pk: str | None = None):
        payload = TicketLinkSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        created = services.link_ticket(pk, payload.validated_data["ticket_id"])
        return Response(
            {"success": True, "created": created},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    @action(detail=True, methods=["delete"], url_path=r"tickets/(?P<ticket_id>[0-9a-fA-F-]+)")
    def unlink_ticket(self, request: Request, pk: str | None = None, ticket_id: str | None = None):
        removed = services.unlink_ticket(pk, ticket_id)
        return Response({"success": True, "removed": removed})

    @action(detail=True, methods=["post"])
    def resolve(self, request: Request, pk: str | None = None):
        """Resolve the problem and every linked ticket that is still open."""

        payload = ProblemResolveSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        problem = services.resolve_problem(pk, payload.validated_data.get("resolution"))
        return Response(self._present(problem))
