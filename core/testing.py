"""Fixtures shared by the app test suites."""
from __future__ import annotations

from rest_framework.test import APIClient

from accounts.models import User, UserRole

from .authentication import issue_token


def make_user(email: str, role: str = UserRole.USER, password: str | None = "secret-pass") -> User:
    user = User(email=email, display_name=email.split("@")[0])
    if password is not None:
        user.set_password(password)
    user.save()
    UserRole.objects.create(user=user, role=role)
    return user


def authenticate(client: APIClient, user: User) -> APIClient:
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_token(user)}")
    return client
