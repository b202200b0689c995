"""HTTP endpoints for dashboard metrics."""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response

from .metrics import collect_metrics


@api_view(["GET"])
@permission_classes([AllowAny])
def metrics(_: Request) -> Response:
    """Summarise tickets, problems, changes and CIs for the dashboard."""

    return Response(collect_metrics())
