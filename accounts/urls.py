"""Route registration for identity endpoints."""
from __future__ import annotations

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import TeamMemberViewSet, TeamViewSet, UserViewSet, login, me

router = DefaultRouter()
router.register("users", UserViewSet, basename="user")
router.register("teams", TeamViewSet, basename="team")
router.register("team-members", TeamMemberViewSet, basename="team-member")

urlpatterns = [
    path("auth/login/", login, name="auth-login"),
    path("auth/me/", me, name="auth-me"),
    path("", include(router.urls)),
]
