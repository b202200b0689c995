"""Tests for sign-in, user administration and teams."""
from __future__ import annotations

from unittest import mock

from django.db import DatabaseError
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from core.exceptions import NotFound, TransactionFailed
from core.testing import authenticate, make_user
from tickets.models import Comment, Ticket

from . import services
from .models import Team, TeamMember, User, UserRole


class LoginApiTests(TestCase):
    def setUp(self) -> None:
        self.client = APIClient()

    def test_unknown_email_signs_up_as_user(self) -> None:
        response = self.client.post(
            reverse("auth-login"), {"email": "New@Example.com", "password": "pw"}, format="json"
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["user"]["email"], "new@example.com")
        self.assertEqual(response.data["user"]["role"], UserRole.USER)
        self.assertTrue(response.data["token"])

    def test_first_login_sets_password_on_claimable_account(self) -> None:
        requester = services.get_or_create_requester("guest@example.com")
        self.assertTrue(requester.needs_password)

        response = self.client.post(
            reverse("auth-login"), {"email": "guest@example.com", "password": "chosen"}, format="json"
        )
        self.assertEqual(response.status_code, 200)
        requester.refresh_from_db()
        self.assertTrue(requester.check_password("chosen"))

    def test_wrong_password_is_unauthorized(self) -> None:
        make_user("casey@example.com", password="right")
        response = self.client.post(
            reverse("auth-login"), {"email": "casey@example.com", "password": "wrong"}, format="json"
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data["code"], "unauthorized")

    def test_me_requires_token(self) -> None:
        self.assertEqual(self.client.get(reverse("auth-me")).status_code, 401)

        user = make_user("casey@example.com", role=UserRole.AGENT)
        authenticate(self.client, user)
        response = self.client.get(reverse("auth-me"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["role"], UserRole.AGENT)

    def test_tampered_token_is_rejected(self) -> None:
        self.client.credentials(HTTP_AUTHORIZATION="Bearer not-a-token")
        self.assertEqual(self.client.get(reverse("auth-me")).status_code, 401)


class UserApiTests(TestCase):
    def setUp(self) -> None:
        self.client = APIClient()
        self.admin = make_user("admin@example.com", role=UserRole.ADMIN)

    def test_admin_creates_user_with_alias_role(self) -> None:
        authenticate(self.client, self.admin)
        payload = {
            "email": "casey@example.com",
            "display_name": "Casey Agent",
            "role": "technician",
        }
        response = self.client.post(reverse("user-list"), payload, format="json")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["role"], UserRole.AGENT)

        response = self.client.get(reverse("user-list"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 2)

    def test_non_admin_cannot_create(self) -> None:
        authenticate(self.client, make_user("agent@example.com", role=UserRole.AGENT))
        response = self.client.post(
            reverse("user-list"), {"email": "x@example.com"}, format="json"
        )
        self.assertEqual(response.status_code, 403)

    def test_update_role_and_display_name(self) -> None:
        user = make_user("casey@example.com")
        authenticate(self.client, self.admin)
        response = self.client.patch(
            reverse("user-detail", args=[user.id]),
            {"display_name": "Casey", "role": "admin"},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["display_name"], "Casey")
        self.assertEqual(response.data["role"], UserRole.ADMIN)

    def test_invalid_role_rejected(self) -> None:
        user = make_user("casey@example.com")
        authenticate(self.client, self.admin)
        response = self.client.patch(
            reverse("user-detail", args=[user.id]), {"role": "overlord"}, format="json"
        )
        self.assertEqual(response.status_code, 400)


class DeleteUserTests(TestCase):
    def setUp(self) -> None:
        self.user = make_user("leaving@example.com")
        self.other = make_user("staying@example.com")
        self.team = Team.objects.create(name="Service Desk")
        TeamMember.objects.create(team=self.team, user=self.user)

        self.own_ticket = Ticket.objects.create(
            title="Printer", description="Jammed", submitted_by=self.user
        )
        Comment.objects.create(ticket=self.own_ticket, user=self.other, content="On it")
        self.assigned_ticket = Ticket.objects.create(
            title="VPN", description="Down", submitted_by=self.other, assigned_to=self.user
        )
        Comment.objects.create(ticket=self.assigned_ticket, user=self.user, content="Looking")

    def test_delete_user_cascades(self) -> None:
        summary = services.delete_user(self.user.id)

        self.assertEqual(summary["submitted_tickets"], 1)
        self.assertEqual(summary["unassigned_tickets"], 1)
        self.assertFalse(User.objects.filter(pk=self.user.pk).exists())
        self.assertFalse(Ticket.objects.filter(pk=self.own_ticket.pk).exists())
        self.assertFalse(TeamMember.objects.filter(user_id=self.user.pk).exists())
        self.assertEqual(Comment.objects.count(), 0)
        self.assigned_ticket.refresh_from_db()
        self.assertIsNone(self.assigned_ticket.assigned_to_id)

    def test_delete_missing_user(self) -> None:
        with self.assertRaises(NotFound):
            services.delete_user("00000000-0000-0000-0000-000000000000")

    def test_failure_rolls_back_everything(self) -> None:
        with mock.patch.object(
            services.Ticket.objects, "filter", side_effect=DatabaseError("disk full")
        ):
            with self.assertRaises(TransactionFailed):
                services.delete_user(self.user.id)

        self.assertTrue(User.objects.filter(pk=self.user.pk).exists())
        self.assertTrue(Comment.objects.filter(user=self.user).exists())
        self.assertTrue(TeamMember.objects.filter(user=self.user).exists())

    def test_admin_delete_endpoint(self) -> None:
        client = authenticate(APIClient(), make_user("admin@example.com", role=UserRole.ADMIN))
        response = client.delete(reverse("user-detail", args=[self.user.id]))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["success"])


class TeamApiTests(TestCase):
    def setUp(self) -> None:
        self.client = authenticate(APIClient(), make_user("admin@example.com", role=UserRole.ADMIN))

    def test_team_membership_lifecycle(self) -> None:
        response = self.client.post(
            reverse("team-list"), {"name": "Network", "category": "network"}, format="json"
        )
        self.assertEqual(response.status_code, 201)
        team_id = response.data["id"]

        member = make_user("casey@example.com", role=UserRole.AGENT)
        response = self.client.post(
            reverse("team-member-list"),
            {"team_id": team_id, "user_id": str(member.id)},
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["role"], TeamMember.MEMBER)

        response = self.client.patch(
            reverse("team-member-detail", args=[response.data["id"]]),
            {"role": "lead"},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["role"], TeamMember.LEAD)

        response = self.client.get(reverse("team-detail", args=[team_id]))
        self.assertEqual(response.data["member_count"], 1)
