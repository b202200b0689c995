"""Route registration for configuration-item endpoints."""
from __future__ import annotations

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import ConfigurationItemViewSet

router = DefaultRouter()
router.register("cis", ConfigurationItemViewSet, basename="ci")

urlpatterns = [
    path("", include(router.urls)),
]
