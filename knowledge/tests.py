"""Tests for the knowledge-base API."""
from __future__ import annotations

from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from core.testing import authenticate, make_user

from .models import Article


class ArticleApiTests(TestCase):
    def setUp(self) -> None:
        self.client = APIClient()
        self.author = make_user("writer@example.com")

    def test_create_records_author(self) -> None:
        authenticate(self.client, self.author)
        response = self.client.post(
            reverse("article-list"),
            {"title": "Reset your VPN token", "content": "Open the portal...", "category": "access"},
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["author_id"], str(self.author.id))
        self.assertEqual(response.data["author_email"], "writer@example.com")

    def test_anonymous_cannot_write(self) -> None:
        response = self.client.post(
            reverse("article-list"), {"title": "x", "content": "y"}, format="json"
        )
        self.assertEqual(response.status_code, 401)

    def test_search_is_case_insensitive(self) -> None:
        Article.objects.create(title="Printer drivers", content="Install from the share", author=self.author)
        Article.objects.create(title="Email rules", content="Outlook FILTERS explained", author=self.author)

        response = self.client.get(reverse("article-list"), {"search": "filters"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual([article["title"] for article in response.data], ["Email rules"])

    def test_update_and_delete(self) -> None:
        article = Article.objects.create(title="Old", content="Body", author=self.author)
        authenticate(self.client, make_user("editor@example.com"))
        url = reverse("article-detail", args=[article.id])

        response = self.client.patch(url, {"title": "New"}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["title"], "New")
        self.assertEqual(response.data["author_id"], str(self.author.id))

        self.assertEqual(self.client.delete(url).status_code, 204)
        self.assertFalse(Article.objects.exists())
