"""Role gates for mutating endpoints."""
from __future__ import annotations

from typing import Any

from rest_framework.permissions import BasePermission

from accounts.models import UserRole


def is_authenticated(user: Any) -> bool:
    return bool(user is not None and getattr(user, "is_authenticated", False))


def has_role(user: Any, *roles: str) -> bool:
    return is_authenticated(user) and getattr(user, "role", None) in roles


class IsAgentOrAdmin(BasePermission):
    message = "Agent or administrator role required."

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return has_role(request.user, UserRole.AGENT, UserRole.ADMIN)


class IsAdmin(BasePermission):
    message = "Administrator role required."

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return has_role(request.user, UserRole.ADMIN)
