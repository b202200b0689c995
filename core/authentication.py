"""Bearer-token identity resolution."""
from __future__ import annotations

from typing import Optional, Tuple

from django.conf import settings
from django.core import signing
from rest_framework import authentication, exceptions
from rest_framework.request import Request

from accounts.models import User


def issue_token(user: User) -> str:
    """Return a signed bearer token for ``user``."""

    return signing.dumps({"uid": str(user.pk)}, salt=settings.AUTH_TOKEN_SALT)


def resolve_principal(token: str) -> Optional[User]:
    """Map a bearer credential to an active user, or ``None``."""

    try:
        payload = signing.loads(
            token,
            salt=settings.AUTH_TOKEN_SALT,
            max_age=settings.AUTH_TOKEN_MAX_AGE,
        )
    except signing.BadSignature:
        return None

    user_id = payload.get("uid") if isinstance(payload, dict) else None
    if not user_id:
        return None
    return (
        User.objects.select_related("role_record")
        .filter(pk=user_id, is_active=True)
        .first()
    )


class BearerTokenAuthentication(authentication.BaseAuthentication):
    keyword = "Bearer"

    def authenticate(self, request: Request) -> Optional[Tuple[User, str]]:
        parts = authentication.get_authorization_header(request).split()
        if not parts or parts[0].lower() != self.keyword.lower().encode():
            return None
        if len(parts) != 2:
            raise exceptions.AuthenticationFailed("Invalid bearer header.")

        try:
            token = parts[1].decode()
        except UnicodeError:
            raise exceptions.AuthenticationFailed("Invalid bearer header.")

        user = resolve_principal(token)
        if user is None:
            raise exceptions.AuthenticationFailed("Invalid or expired token.")
        return user, token

    def authenticate_header(self, request: Request) -> str:
        return self.keyword
