"""Database models for identities, roles and teams."""
from __future__ import annotations

import uuid

from django.contrib.auth.hashers import check_password, make_password
from django.db import models


class User(models.Model):
    """A person who submits, works on or approves records.

    ``password`` holds a Django password hash. ``None`` means the account was
    created on someone's behalf (e.g. from a public ticket) and the first
    successful login sets it.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True)
    display_name = models.CharField(max_length=255)
    password = models.CharField(max_length=128, null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Principal protocol expected by DRF and django.contrib.auth.
    is_authenticated = True
    is_anonymous = False

    class Meta:
        ordering = ["display_name", "email"]

    def __str__(self) -> str:
        return f"{self.display_name} <{self.email}>"

    @property
    def role(self) -> str:
        try:
            return self.role_record.role
        except UserRole.DoesNotExist:
            return UserRole.USER

    @property
    def needs_password(self) -> bool:
        return self.password is None

    def set_password(self, raw_password: str | None) -> None:
        self.password = make_password(raw_password)

    def check_password(self, raw_password: str) -> bool:
        if self.password is None:
            return False
        return check_password(raw_password, self.password)


class UserRole(models.Model):
    """One-to-one role record; users without one are plain requesters."""

    USER = "user"
    AGENT = "agent"
    ADMIN = "admin"

    ROLE_CHOICES = [
        (USER, "User"),
        (AGENT, "Agent"),
        (ADMIN, "Administrator"),
    ]

    # Accepted on input and stored under the canonical name.
    ALIASES = {"technician": AGENT}

    user = models.OneToOneField(User, related_name="role_record", on_delete=models.CASCADE)
    role = models.CharField(max_length=32, choices=ROLE_CHOICES, default=USER)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.user.email}: {self.role}"

    @classmethod
    def normalize(cls, value: str) -> str:
        value = (value or "").strip().lower()
        return cls.ALIASES.get(value, value)


class Team(models.Model):
    """A support group that tickets of a category are routed to."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255, unique=True)
    category = models.CharField(max_length=32, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class TeamMember(models.Model):
    MEMBER = "member"
    LEAD = "lead"

    ROLE_CHOICES = [
        (MEMBER, "Member"),
        (LEAD, "Lead"),
    ]

    team = models.ForeignKey(Team, related_name="memberships", on_delete=models.CASCADE)
    user = models.ForeignKey(User, related_name="team_memberships", on_delete=models.CASCADE)
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default=MEMBER)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["team__name", "created_at"]
        unique_together = ("team", "user")

    def __str__(self) -> str:
        return f"{self.user.email} in {self.team.name} ({self.role})"
