"""Tests for the change-management workflow."""
from __future__ import annotations

from datetime import timedelta
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied
from rest_framework.test import APIClient

from accounts.models import UserRole
from cmdb.models import ConfigurationItem
from core.exceptions import TransactionFailed, Unauthorized, ValidationError
from core.testing import authenticate, make_user
from problems.models import Problem
from problems.services import link_ticket
from tickets.models import Ticket

from . import services
from .models import Change


class ChangeWorkflowTests(TestCase):
    def setUp(self) -> None:
        self.requester = make_user("casey@example.com")
        self.agent = make_user("agent@example.com", role=UserRole.AGENT)

    def _change(self, **extra) -> Change:
        data = {"title": "Patch mail relay", "description": "Apply CVE fix", "type": Change.NORMAL}
        data.update(extra)
        return services.create_change(data, self.requester)

    def test_create_starts_requested(self) -> None:
        change = self._change(status=Change.COMPLETED)
        self.assertEqual(change.status, Change.REQUESTED)
        self.assertEqual(change.requested_by, self.requester)

    def test_create_requires_principal(self) -> None:
        with self.assertRaises(Unauthorized):
            services.create_change({"title": "a", "description": "b", "type": "normal"}, None)

    def test_create_requires_type(self) -> None:
        with self.assertRaises(ValidationError):
            services.create_change({"title": "a", "description": "b"}, self.requester)

    def test_happy_path(self) -> None:
        change = self._change()
        change = services.approve_change(change.id, self.agent)
        self.assertEqual(change.status, Change.APPROVED)
        self.assertEqual(change.approved_by, self.agent)

        change = services.update_change(change.id, {"status": Change.IN_PROGRESS}, self.agent)
        change = services.update_change(change.id, {"status": Change.COMPLETED}, self.agent)
        self.assertEqual(change.status, Change.COMPLETED)

    def test_illegal_transition_rejected(self) -> None:
        change = self._change()
        with self.assertRaises(ValidationError) as ctx:
            services.update_change(change.id, {"status": Change.COMPLETED}, self.agent)
        self.assertEqual(ctx.exception.get_codes(), {"status": ["invalid_transition"]})

        change.refresh_from_db()
        self.assertEqual(change.status, Change.REQUESTED)

    def test_terminal_states_are_final(self) -> None:
        change = self._change()
        services.update_change(change.id, {"status": Change.CANCELLED}, self.agent)
        with self.assertRaises(ValidationError):
            services.update_change(change.id, {"status": Change.REQUESTED}, self.agent)

    def test_approval_requires_role_or_assignment(self) -> None:
        change = self._change()
        with self.assertRaises(PermissionDenied):
            services.approve_change(change.id, self.requester)

        approver = make_user("approver@example.com")
        services.update_change(change.id, {"assigned_approver": approver}, self.agent)
        change = services.approve_change(change.id, approver)
        self.assertEqual(change.approved_by, approver)

    def test_status_update_to_approved_stamps_caller(self) -> None:
        change = self._change()
        change = services.update_change(change.id, {"status": Change.APPROVED}, self.agent)
        self.assertEqual(change.approved_by, self.agent)

    def test_approved_by_without_approval_rejected(self) -> None:
        change = self._change()
        with self.assertRaises(ValidationError):
            services.update_change(change.id, {"approved_by": self.agent}, self.agent)

    def test_approved_by_cannot_be_cleared_after_approval(self) -> None:
        change = services.approve_change(self._change().id, self.agent)
        with self.assertRaises(ValidationError) as ctx:
            services.update_change(change.id, {"approved_by": None}, self.requester)
        self.assertEqual(ctx.exception.get_codes(), {"approved_by": ["invalid_transition"]})

        change.refresh_from_db()
        self.assertEqual(change.status, Change.APPROVED)
        self.assertEqual(change.approved_by, self.agent)

    def test_plain_user_cannot_claim_approval(self) -> None:
        change = services.approve_change(self._change().id, self.agent)
        with self.assertRaises(ValidationError):
            services.update_change(change.id, {"approved_by": self.requester}, self.requester)
        with self.assertRaises(ValidationError):
            services.update_change(change.id, {"approved_by": self.requester}, self.agent)

        change.refresh_from_db()
        self.assertEqual(change.approved_by, self.agent)

    def test_reapproval_rejected_and_first_approver_kept(self) -> None:
        change = services.approve_change(self._change().id, self.agent)
        other = make_user("lead@example.com", role=UserRole.ADMIN)
        with self.assertRaises(ValidationError) as ctx:
            services.approve_change(change.id, other)
        self.assertEqual(ctx.exception.get_codes(), {"status": ["invalid_transition"]})

        change.refresh_from_db()
        self.assertEqual(change.approved_by, self.agent)

    def test_progress_requires_approval_authority(self) -> None:
        change = services.approve_change(self._change().id, self.agent)
        for target in (Change.IN_PROGRESS, Change.FAILED):
            with self.assertRaises(PermissionDenied):
                services.update_change(change.id, {"status": target}, self.requester)

        approver = make_user("approver@example.com")
        services.update_change(change.id, {"assigned_approver": approver}, self.agent)
        change = services.update_change(change.id, {"status": Change.IN_PROGRESS}, approver)
        self.assertEqual(change.status, Change.IN_PROGRESS)

    def test_requester_may_cancel(self) -> None:
        change = self._change()
        change = services.update_change(change.id, {"status": Change.CANCELLED}, self.requester)
        self.assertEqual(change.status, Change.CANCELLED)

    def test_schedule_order_enforced(self) -> None:
        start = timezone.now()
        with self.assertRaises(ValidationError):
            self._change(scheduled_start=start, scheduled_end=start - timedelta(hours=1))

    def test_completion_resolves_linked_problems(self) -> None:
        ticket = Ticket.objects.create(title="Mail down", description="x", submitted_by=self.requester)
        problem = Problem.objects.create(title="Relay bug", description="x")
        link_ticket(problem.id, ticket.id)

        change = self._change()
        services.link_problem(change.id, problem.id)
        services.approve_change(change.id, self.agent)
        services.update_change(change.id, {"status": Change.IN_PROGRESS}, self.agent)
        services.update_change(change.id, {"status": Change.COMPLETED}, self.agent)

        problem.refresh_from_db()
        ticket.refresh_from_db()
        self.assertEqual(problem.status, Problem.RESOLVED)
        self.assertEqual(ticket.status, Ticket.RESOLVED)

    def test_completion_cascade_failure_rolls_back(self) -> None:
        problem = Problem.objects.create(title="Relay bug", description="x")
        change = self._change()
        services.link_problem(change.id, problem.id)
        services.approve_change(change.id, self.agent)
        services.update_change(change.id, {"status": Change.IN_PROGRESS}, self.agent)

        with mock.patch.object(services, "apply_resolution", side_effect=DatabaseError("deadlock")):
            with self.assertRaises(TransactionFailed):
                services.update_change(change.id, {"status": Change.COMPLETED}, self.agent)

        change.refresh_from_db()
        problem.refresh_from_db()
        self.assertEqual(change.status, Change.IN_PROGRESS)
        self.assertEqual(problem.status, Problem.OPEN)


class ChangeApiTests(TestCase):
    def setUp(self) -> None:
        self.client = APIClient()
        self.agent = make_user("agent@example.com", role=UserRole.AGENT)

    def _create(self) -> dict:
        response = self.client.post(
            reverse("change-list"),
            {"title": "Upgrade switch", "description": "Firmware 9.2", "type": "standard", "risk": "low"},
            format="json",
        )
        self.assertEqual(response.status_code, 201, response.data)
        return response.data

    def test_anonymous_create_is_unauthorized(self) -> None:
        response = self.client.post(
            reverse("change-list"), {"title": "a", "description": "b", "type": "normal"}, format="json"
        )
        self.assertEqual(response.status_code, 401)

    def test_create_approve_and_link(self) -> None:
        authenticate(self.client, self.agent)
        created = self._create()
        self.assertEqual(created["status"], Change.REQUESTED)
        self.assertEqual(created["requested_by"], str(self.agent.id))

        response = self.client.post(reverse("change-approve", args=[created["id"]]), format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["approved_by"], str(self.agent.id))

        ci = ConfigurationItem.objects.create(name="core-switch", type="network")
        response = self.client.post(
            reverse("change-link-ci", args=[created["id"]]), {"ci_id": str(ci.id)}, format="json"
        )
        self.assertEqual(response.status_code, 201)
        detail = self.client.get(reverse("change-detail", args=[created["id"]])).data
        self.assertEqual([item["id"] for item in detail["cis"]], [str(ci.id)])

        response = self.client.delete(reverse("change-unlink-ci", args=[created["id"], ci.id]))
        self.assertTrue(response.data["removed"])

    def test_put_is_partial_and_enforces_workflow(self) -> None:
        authenticate(self.client, self.agent)
        created = self._create()
        url = reverse("change-detail", args=[created["id"]])

        response = self.client.put(url, {"impact": "Ten minute outage"}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["impact"], "Ten minute outage")
        self.assertEqual(response.data["title"], "Upgrade switch")

        response = self.client.patch(url, {"status": "completed"}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "invalid_transition")
        self.assertIn("status", response.data)

    def test_plain_user_cannot_progress_or_complete(self) -> None:
        requester = make_user("casey@example.com")
        authenticate(self.client, requester)
        created = self._create()
        problem = Problem.objects.create(title="Switch drops packets", description="x")
        services.link_problem(created["id"], problem.id)
        services.approve_change(created["id"], self.agent)
        url = reverse("change-detail", args=[created["id"]])

        response = self.client.patch(url, {"status": "in-progress"}, format="json")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["code"], "permission_denied")

        services.update_change(created["id"], {"status": Change.IN_PROGRESS}, self.agent)
        response = self.client.patch(url, {"status": "completed"}, format="json")
        self.assertEqual(response.status_code, 403)

        problem.refresh_from_db()
        self.assertEqual(problem.status, Problem.OPEN)
        self.assertEqual(Change.objects.get(pk=created["id"]).status, Change.IN_PROGRESS)

    def test_plain_user_cannot_approve(self) -> None:
        authenticate(self.client, make_user("casey@example.com"))
        created = self._create()
        response = self.client.post(reverse("change-approve", args=[created["id"]]), format="json")
        self.assertEqual(response.status_code, 403)
