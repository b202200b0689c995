"""API views for sign-in, users and teams."""
from __future__ import annotations

import logging

from rest_framework import status, viewsets
from rest_framework.decorators import api_view, permission_classes
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from core.authentication import issue_token
from core.exceptions import Unauthorized, ValidationError
from core.lookups import parse_uuid
from core.permissions import IsAdmin, is_authenticated

from . import services
from .models import Team, TeamMember, User
from .serializers import (
    LoginSerializer,
    TeamMemberSerializer,
    TeamSerializer,
    UserCreateSerializer,
    UserSerializer,
    UserWriteSerializer,
)

logger = logging.getLogger(__name__)


@api_view(["POST"])
@permission_classes([AllowAny])
def login(request: Request) -> Response:
    """Exchange email and password for a bearer token."""

    payload = LoginSerializer(data=request.data)
    payload.is_valid(raise_exception=True)
    user, created = services.login(payload.validated_data["email"], payload.validated_data["password"])
    return Response(
        {"user": UserSerializer(user).data, "token": issue_token(user)},
        status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
    )


@api_view(["GET"])
@permission_classes([AllowAny])
def me(request: Request) -> Response:
    if not is_authenticated(request.user):
        raise Unauthorized()
    return Response(UserSerializer(request.user).data)


class UserViewSet(viewsets.ModelViewSet):
    queryset = User.objects.select_related("role_record")
    serializer_class = UserSerializer
    filter_backends = [SearchFilter, OrderingFilter]
    search_fields = ["email", "display_name"]
    ordering_fields = ["display_name", "email", "created_at"]
    ordering = ["display_name"]
    lookup_value_regex = r"[0-9a-fA-F-]+"

    def get_permissions(self):  # type: ignore[override]
        if self.action in {"list", "retrieve"}:
            return [IsAuthenticated()]
        return [IsAdmin()]

    def get_queryset(self):  # type: ignore[override]
        queryset = super().get_queryset()
        role = self.request.query_params.get("role")
        if role:
            queryset = queryset.filter(role_record__role=role)
        return queryset

    def create(self, request: Request, *args, **kwargs):  # type: ignore[override]
        payload = UserCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        user = services.create_user(payload.validated_data)
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)

    def update(self, request: Request, *args, **kwargs):  # type: ignore[override]
        payload = UserWriteSerializer(data=request.data, partial=True)
        payload.is_valid(raise_exception=True)
        user = services.update_user(kwargs["pk"], payload.validated_data)
        return Response(UserSerializer(user).data)

    def destroy(self, request: Request, *args, **kwargs):  # type: ignore[override]
        summary = services.delete_user(kwargs["pk"])
        return Response({"success": True, "removed": summary})


class TeamViewSet(viewsets.ModelViewSet):
    queryset = Team.objects.all()
    serializer_class = TeamSerializer
    filter_backends = [SearchFilter, OrderingFilter]
    search_fields = ["name", "category"]
    ordering = ["name"]
    lookup_value_regex = r"[0-9a-fA-F-]+"

    def get_permissions(self):  # type: ignore[override]
        if self.action in {"list", "retrieve"}:
            return [AllowAny()]
        return [IsAdmin()]

    def perform_create(self, serializer: TeamSerializer) -> None:
        team = serializer.save()
        logger.info("Team %s created", team.id)


class TeamMemberViewSet(viewsets.ModelViewSet):
    queryset = TeamMember.objects.select_related("team", "user")
    serializer_class = TeamMemberSerializer

    def get_permissions(self):  # type: ignore[override]
        if self.action in {"list", "retrieve"}:
            return [AllowAny()]
        return [IsAdmin()]

    def get_queryset(self):  # type: ignore[override]
        queryset = super().get_queryset()
        for param, field in (("team", "team_id"), ("user", "user_id")):
            value = self.request.query_params.get(param)
            if not value:
                continue
            parsed = parse_uuid(value)
            if parsed is None:
                raise ValidationError({param: ["Must be a valid UUID."]})
            queryset = queryset.filter(**{field: parsed})
        return queryset
