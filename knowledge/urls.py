"""Route registration for knowledge-base endpoints."""
from __future__ import annotations

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import ArticleViewSet

router = DefaultRouter()
router.register("kb", ArticleViewSet, basename="article")

urlpatterns = [
    path("", include(router.urls)),
]
