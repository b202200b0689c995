"""API views for the knowledge base."""
from __future__ import annotations

import logging

from rest_framework import viewsets
from rest_framework.filters import OrderingFilter, SearchFilter

from .models import Article
from .serializers import ArticleSerializer

logger = logging.getLogger(__name__)


class ArticleViewSet(viewsets.ModelViewSet):
    """Articles are readable by anyone and editable by any signed-in user."""

    queryset = Article.objects.select_related("author")
    serializer_class = ArticleSerializer
    filter_backends = [SearchFilter, OrderingFilter]
    search_fields = ["title", "content"]
    ordering_fields = ["created_at", "updated_at", "title"]
    ordering = ["-created_at"]
    lookup_value_regex = r"[0-9a-fA-F-]+"

    def get_queryset(self):  # type: ignore[override]
        queryset = super().get_queryset()
        category = self.request.query_params.get("category")
        if category:
            queryset = queryset.filter(category=category)
        return queryset

    def perform_create(self, serializer: ArticleSerializer) -> None:
        article = serializer.save(author=self.request.user)
        logger.info("Article %s published by %s", article.id, self.request.user.pk)

    def perform_destroy(self, instance: Article) -> None:
        logger.info("Article %s removed", instance.id)
        instance.delete()
