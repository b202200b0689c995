"""Route registration for problem endpoints."""
from __future__ import annotations

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import ProblemViewSet

router = DefaultRouter()
router.register("problems", ProblemViewSet, basename="problem")

urlpatterns = [
    path("", include(router.urls)),
]
