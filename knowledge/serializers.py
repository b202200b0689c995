"""Serializers for knowledge-base articles."""
from __future__ import annotations

from rest_framework import serializers

from .models import Article


class ArticleSerializer(serializers.ModelSerializer):
    author_id = serializers.UUIDField(read_only=True)
    author_name = serializers.CharField(source="author.display_name", read_only=True, default=None)
    author_email = serializers.EmailField(source="author.email", read_only=True, default=None)

    class Meta:
        model = Article
        fields = [
            "id",
            "title",
            "content",
            "category",
            "author_id",
            "author_name",
            "author_email",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "author_id", "author_name", "author_email", "created_at", "updated_at"]
