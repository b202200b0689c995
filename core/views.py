"""Project-level endpoints."""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response


@api_view(["GET"])
@permission_classes([AllowAny])
def health(_: Request) -> Response:
    """Readiness endpoint for orchestration tooling."""

    return Response({"status": "ok"})
