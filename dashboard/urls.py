"""Route registration for dashboard endpoints."""
from __future__ import annotations

from django.urls import path

from .views import metrics

urlpatterns = [
    path("dashboard/metrics/", metrics, name="dashboard-metrics"),
]
