"""Tests for the configuration-item API."""
from __future__ import annotations

from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from accounts.models import UserRole
from core.testing import authenticate, make_user

from .models import ConfigurationItem


class ConfigurationItemApiTests(TestCase):
    def setUp(self) -> None:
        self.client = APIClient()
        self.agent = make_user("agent@example.com", role=UserRole.AGENT)

    def test_create_defaults_owner_and_status(self) -> None:
        authenticate(self.client, self.agent)
        response = self.client.post(
            reverse("ci-list"),
            {"name": "mail-01", "type": "server", "location": "DC1"},
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["status"], ConfigurationItem.ACTIVE)
        self.assertEqual(response.data["owner_id"], str(self.agent.id))

    def test_list_is_ordered_by_name_and_filterable(self) -> None:
        ConfigurationItem.objects.create(name="web-02", type="server")
        ConfigurationItem.objects.create(name="core-switch", type="network", status=ConfigurationItem.MAINTENANCE)
        ConfigurationItem.objects.create(name="app-01", type="application")

        response = self.client.get(reverse("ci-list"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([item["name"] for item in response.data], ["app-01", "core-switch", "web-02"])

        response = self.client.get(reverse("ci-list"), {"status": "maintenance"})
        self.assertEqual([item["name"] for item in response.data], ["core-switch"])

    def test_plain_user_cannot_modify(self) -> None:
        authenticate(self.client, make_user("user@example.com"))
        response = self.client.post(reverse("ci-list"), {"name": "x", "type": "server"}, format="json")
        self.assertEqual(response.status_code, 403)

    def test_anonymous_write_is_unauthorized(self) -> None:
        response = self.client.post(reverse("ci-list"), {"name": "x", "type": "server"}, format="json")
        self.assertEqual(response.status_code, 401)

    def test_update_and_delete(self) -> None:
        item = ConfigurationItem.objects.create(name="db-01", type="server")
        authenticate(self.client, self.agent)

        response = self.client.patch(
            reverse("ci-detail", args=[item.id]), {"status": "retired"}, format="json"
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], ConfigurationItem.RETIRED)

        response = self.client.delete(reverse("ci-detail", args=[item.id]))
        self.assertEqual(response.status_code, 204)
        self.assertFalse(ConfigurationItem.objects.exists())
