"""Tests for dashboard metrics."""
from __future__ import annotations

from datetime import timedelta

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from changes.models import Change
from cmdb.models import ConfigurationItem
from core.testing import make_user
from problems.models import Problem
from tickets.models import Ticket

from .metrics import collect_metrics


class DashboardMetricsTests(TestCase):
    def setUp(self) -> None:
        self.user = make_user("casey@example.com")

    def _ticket(self, status: str, due_in: timedelta, resolved_at=None) -> Ticket:
        ticket = Ticket.objects.create(
            title=status, description="x", submitted_by=self.user, status=status, resolved_at=resolved_at
        )
        Ticket.objects.filter(pk=ticket.pk).update(sla_due_at=ticket.created_at + due_in)
        return ticket

    def test_empty_system(self) -> None:
        metrics = collect_metrics()
        self.assertEqual(metrics["tickets"]["total"], 0)
        self.assertEqual(metrics["tickets"]["slaCompliance"], 100.0)
        self.assertIsNone(metrics["tickets"]["avgResolutionHours"])

    def test_ticket_and_workflow_figures(self) -> None:
        now = timezone.now()
        self._ticket(Ticket.NEW, timedelta(hours=4))
        self._ticket(Ticket.IN_PROGRESS, timedelta(hours=-1))
        self._ticket(Ticket.RESOLVED, timedelta(hours=24), resolved_at=now)
        Problem.objects.create(title="p", description="d")
        Change.objects.create(title="c", description="d", status=Change.REQUESTED)
        Change.objects.create(title="c2", description="d", status=Change.DRAFT)
        ConfigurationItem.objects.create(name="web-01", type="server")

        metrics = collect_metrics(now)

        self.assertEqual(metrics["tickets"]["total"], 3)
        self.assertEqual(metrics["tickets"]["open"], 2)
        self.assertEqual(metrics["tickets"]["breached"], 1)
        self.assertEqual(metrics["tickets"]["resolvedToday"], 1)
        self.assertEqual(metrics["tickets"]["byStatus"][Ticket.NEW], 1)
        self.assertEqual(metrics["tickets"]["slaCompliance"], 66.7)
        self.assertEqual(metrics["problems"]["byStatus"], {Problem.OPEN: 1})
        self.assertEqual(metrics["changes"]["pendingApprovals"], 1)
        self.assertEqual(metrics["cis"]["total"], 1)

    def test_endpoint_is_public(self) -> None:
        response = APIClient().get(reverse("dashboard-metrics"))
        self.assertEqual(response.status_code, 200)
        self.assertIn("tickets", response.data)
