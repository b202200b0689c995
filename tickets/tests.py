"""Tests for the ticket lifecycle and API."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone as dt_timezone
from unittest import mock

from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from rest_framework.test import APIClient

from accounts.models import User, UserRole
from cmdb.models import ConfigurationItem
from core.exceptions import NotFound, TransactionFailed, Unauthorized, ValidationError
from core.testing import authenticate, make_user
from problems.models import Problem, ProblemTicket

from . import services
from .models import Comment, Ticket
from .sla import compute_due_at, compute_remaining


class SlaTests(SimpleTestCase):
    def setUp(self) -> None:
        self.created = datetime(2024, 3, 1, 9, 0, tzinfo=dt_timezone.utc)

    def test_due_at_per_priority(self) -> None:
        expected = {"critical": 1, "high": 4, "medium": 24, "low": 48}
        for priority, hours in expected.items():
            self.assertEqual(compute_due_at(priority, self.created), self.created + timedelta(hours=hours))

    def test_priority_is_case_insensitive_and_defaults(self) -> None:
        self.assertEqual(compute_due_at("HIGH", self.created), self.created + timedelta(hours=4))
        self.assertEqual(compute_due_at("urgent", self.created), self.created + timedelta(hours=24))

    def test_remaining_before_due(self) -> None:
        remaining = compute_remaining(self.created + timedelta(hours=2, minutes=30, seconds=59), self.created)
        self.assertEqual(remaining.as_dict(), {"breached": False, "hours": 2, "minutes": 30})

    def test_remaining_after_due(self) -> None:
        remaining = compute_remaining(self.created, self.created + timedelta(hours=1, minutes=5))
        self.assertEqual(remaining.as_dict(), {"breached": True, "hours": 1, "minutes": 5})


class TicketServiceTests(TestCase):
    def setUp(self) -> None:
        self.user = make_user("casey@example.com")

    def test_create_sets_sla_from_priority(self) -> None:
        ticket = services.create_ticket(
            {"title": "Laptop", "description": "No boot", "priority": "LOW"}, self.user
        )
        self.assertEqual(ticket.priority, Ticket.LOW)
        self.assertEqual(ticket.status, Ticket.NEW)
        self.assertEqual(ticket.submitted_by, self.user)
        self.assertEqual(ticket.sla_due_at, ticket.created_at + timedelta(hours=48))

    def test_blank_title_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            services.create_ticket({"title": "  ", "description": "x"}, self.user)
        self.assertFalse(Ticket.objects.exists())

    def test_anonymous_contact_email_creates_requester(self) -> None:
        ticket = services.create_ticket(
            {
                "title": "Access",
                "description": "Need VPN",
                "category": Ticket.SERVICE_REQUEST,
                "additional_fields": {"contact_email": "Visitor@Example.com"},
            }
        )
        requester = ticket.submitted_by
        self.assertEqual(requester.email, "visitor@example.com")
        self.assertEqual(requester.role, UserRole.USER)
        self.assertIsNone(requester.password)

    def test_anonymous_without_email_uses_fallback(self) -> None:
        with override_settings(ITSM_FALLBACK_SUBMITTER_EMAIL="desk@example.com"):
            first = services.create_ticket({"title": "A", "description": "a"})
            second = services.create_ticket({"title": "B", "description": "b"})
        self.assertEqual(first.submitted_by.email, "desk@example.com")
        self.assertEqual(first.submitted_by_id, second.submitted_by_id)
        self.assertFalse(first.submitted_by.needs_password)
        self.assertEqual(User.objects.filter(email="desk@example.com").count(), 1)

    def test_update_keeps_sla_and_stamps_resolution(self) -> None:
        ticket = services.create_ticket({"title": "A", "description": "a"}, self.user)
        due = ticket.sla_due_at

        updated = services.update_ticket(ticket.id, {"priority": "critical", "status": Ticket.RESOLVED})
        self.assertEqual(updated.sla_due_at, due)
        self.assertIsNotNone(updated.resolved_at)

        reopened = services.update_ticket(ticket.id, {"status": Ticket.IN_PROGRESS})
        self.assertIsNone(reopened.resolved_at)

    def test_update_missing_ticket(self) -> None:
        with self.assertRaises(NotFound):
            services.update_ticket("00000000-0000-0000-0000-000000000000", {"title": "x"})

    def test_delete_removes_comments(self) -> None:
        ticket = services.create_ticket({"title": "A", "description": "a"}, self.user)
        services.add_comment(ticket.id, self.user, "first")
        services.add_comment(ticket.id, self.user, "second")

        self.assertEqual(services.delete_ticket(ticket.id), 2)
        self.assertFalse(Ticket.objects.exists())
        self.assertFalse(Comment.objects.exists())

    def test_delete_failure_rolls_back(self) -> None:
        ticket = services.create_ticket({"title": "A", "description": "a"}, self.user)
        services.add_comment(ticket.id, self.user, "kept")

        with mock.patch.object(Ticket, "delete", side_effect=DatabaseError("locked")):
            with self.assertRaises(TransactionFailed):
                services.delete_ticket(ticket.id)

        self.assertTrue(Ticket.objects.filter(pk=ticket.pk).exists())
        self.assertEqual(Comment.objects.filter(ticket=ticket).count(), 1)

    def test_comment_requires_principal_and_content(self) -> None:
        ticket = services.create_ticket({"title": "A", "description": "a"}, self.user)
        with self.assertRaises(Unauthorized):
            services.add_comment(ticket.id, None, "hello")
        with self.assertRaises(ValidationError):
            services.add_comment(ticket.id, self.user, "   ")

    def test_ci_links_are_idempotent(self) -> None:
        ticket = services.create_ticket({"title": "A", "description": "a"}, self.user)
        ci = ConfigurationItem.objects.create(name="web-01", type="server")

        self.assertTrue(services.link_configuration_item(ticket.id, ci.id))
        self.assertFalse(services.link_configuration_item(ticket.id, ci.id))
        self.assertEqual(ticket.configuration_items.count(), 1)

        self.assertTrue(services.unlink_configuration_item(ticket.id, ci.id))
        self.assertFalse(services.unlink_configuration_item(ticket.id, ci.id))

    @override_settings(NOTIFICATION_WEBHOOK_URL="http://hooks.example.com/itsm")
    def test_assignment_notifies_after_commit(self) -> None:
        agent = make_user("agent@example.com", role=UserRole.AGENT)
        ticket = Ticket.objects.create(title="A", description="a", submitted_by=self.user)

        with mock.patch("notifications.dispatch.deliver_notification.delay") as delay:
            with self.captureOnCommitCallbacks(execute=True):
                services.update_ticket(ticket.id, {"assigned_to": agent})

        events = [call.args[0]["event"] for call in delay.call_args_list]
        self.assertEqual(events, ["ticket.assigned"])


class TicketApiTests(TestCase):
    def setUp(self) -> None:
        self.client = APIClient()
        self.user = make_user("casey@example.com")
        self.agent = make_user("agent@example.com", role=UserRole.AGENT)

    def _create(self, **extra) -> dict:
        payload = {"title": "Printer", "description": "Paper jam", **extra}
        response = self.client.post(reverse("ticket-list"), payload, format="json")
        self.assertEqual(response.status_code, 201, response.data)
        return response.data

    def test_public_create_and_read(self) -> None:
        created = self._create(priority="High", additional_fields={"contact_email": "guest@example.com"})
        self.assertEqual(created["priority"], "high")
        self.assertEqual(created["submitted_by_email"], "guest@example.com")
        self.assertFalse(created["sla"]["breached"])
        self.assertEqual(created["sla"]["hours"], 3)
        self.assertIsNone(created["linked_problem"])

        response = self.client.get(reverse("ticket-detail", args=[created["id"]]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["title"], "Printer")

    def test_unknown_priority_rejected(self) -> None:
        response = self.client.post(
            reverse("ticket-list"),
            {"title": "a", "description": "b", "priority": "urgent"},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("priority", response.data)

    def test_invalid_contact_email_rejected(self) -> None:
        response = self.client.post(
            reverse("ticket-list"),
            {"title": "a", "description": "b", "additional_fields": {"contact_email": "nope"}},
            format="json",
        )
        self.assertEqual(response.status_code, 400)

    def test_patch_ignores_unknown_keys(self) -> None:
        authenticate(self.client, self.user)
        created = self._create()
        response = self.client.patch(
            reverse("ticket-detail", args=[created["id"]]),
            {"status": "in-progress", "sla_due_at": "2000-01-01T00:00:00Z", "bogus": 1},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], "in-progress")
        self.assertEqual(response.data["sla_due_at"], created["sla_due_at"])

    def test_patch_invalid_status(self) -> None:
        authenticate(self.client, self.user)
        created = self._create()
        response = self.client.patch(
            reverse("ticket-detail", args=[created["id"]]), {"status": "archived"}, format="json"
        )
        self.assertEqual(response.status_code, 400)

    def test_update_requires_authentication(self) -> None:
        created = self._create()
        response = self.client.patch(
            reverse("ticket-detail", args=[created["id"]]), {"status": "pending"}, format="json"
        )
        self.assertEqual(response.status_code, 401)

    def test_missing_ticket_is_404(self) -> None:
        response = self.client.get(reverse("ticket-detail", args=["00000000-0000-0000-0000-000000000000"]))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["code"], "not_found")

    def test_delete_requires_agent(self) -> None:
        created = self._create()
        authenticate(self.client, self.user)
        url = reverse("ticket-detail", args=[created["id"]])
        self.assertEqual(self.client.delete(url).status_code, 403)

        authenticate(self.client, self.agent)
        self.assertEqual(self.client.delete(url).status_code, 204)
        self.assertEqual(self.client.get(url).status_code, 404)

    def test_comments_endpoint(self) -> None:
        created = self._create()
        url = reverse("ticket-comments", args=[created["id"]])

        self.assertEqual(self.client.post(url, {"content": "hi"}, format="json").status_code, 401)

        authenticate(self.client, self.agent)
        self.client.post(url, {"content": "first"}, format="json")
        response = self.client.post(url, {"content": "second"}, format="json")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["user_email"], "agent@example.com")

        response = self.client.get(url)
        self.assertEqual([comment["content"] for comment in response.data], ["first", "second"])

    def test_ci_link_endpoints(self) -> None:
        created = self._create()
        ci = ConfigurationItem.objects.create(name="printer-3", type="printer")
        authenticate(self.client, self.agent)

        url = reverse("ticket-link-ci", args=[created["id"]])
        self.assertEqual(self.client.post(url, {"ci_id": str(ci.id)}, format="json").status_code, 201)
        self.assertEqual(self.client.post(url, {"ci_id": str(ci.id)}, format="json").status_code, 200)

        detail = self.client.get(reverse("ticket-detail", args=[created["id"]])).data
        self.assertEqual([item["name"] for item in detail["cis"]], ["printer-3"])

        response = self.client.delete(reverse("ticket-unlink-ci", args=[created["id"], ci.id]))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["removed"])

    def test_linked_problem_is_embedded(self) -> None:
        created = self._create()
        problem = Problem.objects.create(title="Print server", description="Spooler crashes")
        ProblemTicket.objects.create(problem=problem, ticket_id=created["id"])

        detail = self.client.get(reverse("ticket-detail", args=[created["id"]])).data
        self.assertEqual(detail["linked_problem"]["id"], str(problem.id))
        self.assertEqual(detail["linked_problem"]["status"], Problem.OPEN)

    def test_list_filters(self) -> None:
        mine = Ticket.objects.create(title="Mine", description="x", submitted_by=self.user, priority="high")
        Ticket.objects.create(title="Assigned", description="x", submitted_by=self.agent, assigned_to=self.user)
        Ticket.objects.create(title="Other", description="x", submitted_by=self.agent)

        response = self.client.get(reverse("ticket-list"), {"priority": "high"})
        self.assertEqual([ticket["id"] for ticket in response.data], [str(mine.id)])

        self.assertEqual(self.client.get(reverse("ticket-list"), {"mine": "true"}).status_code, 401)

        authenticate(self.client, self.user)
        response = self.client.get(reverse("ticket-list"), {"mine": "true"})
        self.assertEqual({ticket["title"] for ticket in response.data}, {"Mine", "Assigned"})

        response = self.client.get(reverse("ticket-list"), {"assigned_to": "not-a-uuid"})
        self.assertEqual(response.status_code, 400)
