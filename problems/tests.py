"""Tests for problem records and the resolution cascade."""
from __future__ import annotations

from datetime import timedelta
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import UserRole
from core.exceptions import NotFound, TransactionFailed
from core.testing import authenticate, make_user
from tickets.models import Ticket

from . import services
from .models import Problem


class ResolveProblemTests(TestCase):
    def setUp(self) -> None:
        submitter = make_user("casey@example.com")
        self.problem = Problem.objects.create(title="Mail outage", description="Relay down")
        self.open_ticket = Ticket.objects.create(title="No mail", description="x", submitted_by=submitter)
        self.pending_ticket = Ticket.objects.create(
            title="Bounces", description="x", submitted_by=submitter, status=Ticket.PENDING
        )
        self.closed_ticket = Ticket.objects.create(
            title="Old", description="x", submitted_by=submitter, status=Ticket.CLOSED
        )
        self.unrelated = Ticket.objects.create(title="Printer", description="x", submitted_by=submitter)
        for ticket in (self.open_ticket, self.pending_ticket, self.closed_ticket):
            services.link_ticket(self.problem.id, ticket.id)

    def test_cascade_resolves_linked_tickets(self) -> None:
        problem = services.resolve_problem(self.problem.id)

        self.assertEqual(problem.status, Problem.RESOLVED)
        self.assertEqual(problem.resolution, services.CASCADE_RESOLUTION_NOTE)
        for ticket in (self.open_ticket, self.pending_ticket):
            ticket.refresh_from_db()
            self.assertEqual(ticket.status, Ticket.RESOLVED)
            self.assertIsNotNone(ticket.resolved_at)
        self.closed_ticket.refresh_from_db()
        self.assertEqual(self.closed_ticket.status, Ticket.CLOSED)
        self.unrelated.refresh_from_db()
        self.assertEqual(self.unrelated.status, Ticket.NEW)

    def test_already_resolved_ticket_keeps_resolved_at(self) -> None:
        earlier = timezone.now() - timedelta(days=3)
        resolved = Ticket.objects.create(
            title="Queue stuck",
            description="x",
            submitted_by=self.open_ticket.submitted_by,
            status=Ticket.RESOLVED,
            resolved_at=earlier,
        )
        services.link_ticket(self.problem.id, resolved.id)

        services.resolve_problem(self.problem.id)

        resolved.refresh_from_db()
        self.assertEqual(resolved.status, Ticket.RESOLVED)
        self.assertEqual(resolved.resolved_at, earlier)
        self.open_ticket.refresh_from_db()
        self.assertGreater(self.open_ticket.resolved_at, earlier)

    def test_custom_resolution_text(self) -> None:
        problem = services.resolve_problem(self.problem.id, "Replaced relay host")
        self.assertEqual(problem.resolution, "Replaced relay host")

    def test_missing_problem(self) -> None:
        with self.assertRaises(NotFound):
            services.resolve_problem("00000000-0000-0000-0000-000000000000")

    def test_ticket_failure_rolls_back_problem(self) -> None:
        with mock.patch.object(services, "resolve_linked_tickets", side_effect=DatabaseError("deadlock")):
            with self.assertRaises(TransactionFailed):
                services.resolve_problem(self.problem.id)

        self.problem.refresh_from_db()
        self.assertEqual(self.problem.status, Problem.OPEN)
        self.assertEqual(self.problem.resolution, "")
        self.open_ticket.refresh_from_db()
        self.assertEqual(self.open_ticket.status, Ticket.NEW)

    def test_links_are_idempotent(self) -> None:
        self.assertFalse(services.link_ticket(self.problem.id, self.open_ticket.id))
        self.assertTrue(services.unlink_ticket(self.problem.id, self.open_ticket.id))
        self.assertFalse(services.unlink_ticket(self.problem.id, self.open_ticket.id))


class ProblemApiTests(TestCase):
    def setUp(self) -> None:
        self.client = APIClient()
        self.agent = make_user("agent@example.com", role=UserRole.AGENT)
        self.ticket = Ticket.objects.create(
            title="Slow wiki", description="x", submitted_by=make_user("casey@example.com")
        )

    def test_create_link_and_resolve(self) -> None:
        authenticate(self.client, self.agent)
        response = self.client.post(
            reverse("problem-list"),
            {"title": "Wiki latency", "description": "DB saturation"},
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["status"], Problem.OPEN)
        problem_id = response.data["id"]

        response = self.client.post(
            reverse("problem-link-ticket", args=[problem_id]),
            {"ticket_id": str(self.ticket.id)},
            format="json",
        )
        self.assertEqual(response.status_code, 201)

        listing = self.client.get(reverse("problem-list")).data
        self.assertEqual(listing[0]["ticket_count"], 1)

        response = self.client.post(reverse("problem-resolve", args=[problem_id]), {}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], Problem.RESOLVED)
        self.assertEqual(response.data["tickets"][0]["status"], Ticket.RESOLVED)

    def test_missing_title_rejected(self) -> None:
        authenticate(self.client, self.agent)
        response = self.client.post(reverse("problem-list"), {"description": "x"}, format="json")
        self.assertEqual(response.status_code, 400)

    def test_plain_user_cannot_resolve(self) -> None:
        problem = Problem.objects.create(title="p", description="d")
        authenticate(self.client, make_user("user@example.com"))
        response = self.client.post(reverse("problem-resolve", args=[problem.id]), {}, format="json")
        self.assertEqual(response.status_code, 403)

    def test_delete_keeps_tickets(self) -> None:
        problem = Problem.objects.create(title="p", description="d")
        services.link_ticket(problem.id, self.ticket.id)
        authenticate(self.client, self.agent)

        response = self.client.delete(reverse("problem-detail", args=[problem.id]))
        self.assertEqual(response.status_code, 204)
        self.assertTrue(Ticket.objects.filter(pk=self.ticket.pk).exists())
        self.assertFalse(self.ticket.problem_links.exists())
