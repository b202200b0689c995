"""API views for the configuration-item inventory."""
from __future__ import annotations

import logging

from rest_framework import viewsets
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.permissions import AllowAny

from core.permissions import IsAgentOrAdmin, is_authenticated

from .models import ConfigurationItem
from .serializers import ConfigurationItemSerializer

logger = logging.getLogger(__name__)


class ConfigurationItemViewSet(viewsets.ModelViewSet):
    queryset = ConfigurationItem.objects.all()
    serializer_class = ConfigurationItemSerializer
    filter_backends = [SearchFilter, OrderingFilter]
    search_fields = ["name", "type", "location", "description"]
    ordering_fields = ["name", "type", "status", "updated_at"]
    ordering = ["name"]
    lookup_value_regex = r"[0-9a-fA-F-]+"

    def get_permissions(self):  # type: ignore[override]
        if self.action in {"list", "retrieve"}:
            return [AllowAny()]
        return [IsAgentOrAdmin()]

    def get_queryset(self):  # type: ignore[override]
        queryset = super().get_queryset()
        for param in ("status", "type"):
            value = self.request.query_params.get(param)
            if value:
                queryset = queryset.filter(**{param: value})
        return queryset

    def perform_create(self, serializer: ConfigurationItemSerializer) -> None:
        owner = self.request.user if is_authenticated(self.request.user) else None
        item = serializer.save(owner=owner)
        logger.info("Configuration item %s (%s) registered", item.id, item.type)

    def perform_destroy(self, instance: ConfigurationItem) -> None:
        logger.info("Configuration item %s removed", instance.id)
        instance.delete()
