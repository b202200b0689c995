"""URL configuration for the service-management API."""
from django.urls import include, path

from core.views import health

urlpatterns = [
    path("api/healthz/", health, name="health"),
    path("api/", include("accounts.urls")),
    path("api/", include("cmdb.urls")),
    path("api/", include("tickets.urls")),
    path("api/", include("problems.urls")),
    path("api/", include("changes.urls")),
    path("api/", include("knowledge.urls")),
    path("api/", include("dashboard.urls")),
]
