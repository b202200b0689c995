"""Identity operations used by the lifecycle services."""
from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

from django.contrib.auth.hashers import make_password
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from core.exceptions import TransactionFailed, Unauthorized, ValidationError
from core.lookups import get_or_not_found
from tickets.models import Comment, Ticket

from .models import TeamMember, User, UserRole

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def find_user_by_email(email: str) -> Optional[User]:
    return (
        User.objects.select_related("role_record")
        .filter(email__iexact=normalize_email(email))
        .first()
    )


def get_or_create_requester(email: str, *, claimable: bool = True) -> User:
    """Find a user by email or create one with the plain ``user`` role.

    Claimable accounts have no password until their first login; others get
    an unusable password and can never log in.
    """

    email = normalize_email(email)
    if not email:
        raise ValidationError({"email": ["An email address is required."]})

    existing = find_user_by_email(email)
    if existing is not None:
        return existing

    try:
        with transaction.atomic():
            user = User.objects.create(
                email=email,
                display_name=email.split("@")[0] or email,
                password=None if claimable else make_password(None),
            )
            UserRole.objects.create(user=user, role=UserRole.USER)
    except IntegrityError:
        # Created concurrently by another request.
        user = find_user_by_email(email)
        if user is None:
            raise
        return user

    logger.info("Created requester account %s", user.id)
    return user


def set_role(user: User, role: str) -> UserRole:
    value = UserRole.normalize(role)
    if value not in dict(UserRole.ROLE_CHOICES):
        raise ValidationError({"role": [f'"{role}" is not a valid role.']})
    record, _ = UserRole.objects.update_or_create(user=user, defaults={"role": value})
    return record


def login(email: str, password: str) -> Tuple[User, bool]:
    """Authenticate by email and password, signing up unknown emails.

    Returns ``(user, created)``. Accounts without a password adopt the one
    supplied on their first login.
    """

    email = normalize_email(email)
    if not email or not password:
        raise ValidationError({"detail": "Email and password required."})

    with transaction.atomic():
        user = User.objects.select_for_update().filter(email__iexact=email).first()
        if user is None:
            user = User(email=email, display_name=email.split("@")[0] or email)
            user.set_password(password)
            user.save()
            UserRole.objects.create(user=user, role=UserRole.USER)
            logger.info("Signed up %s", user.id)
            return user, True

        if not user.is_active:
            raise Unauthorized("Invalid credentials.")

        if user.needs_password:
            user.set_password(password)
            user.save(update_fields=["password", "updated_at"])
            logger.info("Set initial password for %s", user.id)
            return user, False

    if not user.check_password(password):
        raise Unauthorized("Invalid credentials.")
    return user, False


def _purge_user(user: User) -> Dict[str, int]:
    authored_comments, _ = Comment.objects.filter(user=user).delete()
    memberships, _ = TeamMember.objects.filter(user=user).delete()
    UserRole.objects.filter(user=user).delete()

    submitted = Ticket.objects.filter(submitted_by=user)
    Comment.objects.filter(ticket__in=submitted).delete()
    submitted_count = submitted.count()
    submitted.delete()

    unassigned = Ticket.objects.filter(assigned_to=user).update(
        assigned_to=None, updated_at=timezone.now()
    )
    user.delete()
    return {
        "comments": authored_comments,
        "team_memberships": memberships,
        "submitted_tickets": submitted_count,
        "unassigned_tickets": unassigned,
    }


def delete_user(user_id) -> Dict[str, int]:
    """Remove a user and everything that cannot outlive them, atomically.

    Their comments, memberships and submitted tickets are deleted; tickets
    they were only assigned to are unassigned.
    """

    try:
        with transaction.atomic():
            user = get_or_not_found(User.objects.select_for_update(), "User", pk=user_id)
            summary = _purge_user(user)
    except DatabaseError as exc:
        logger.exception("Deleting user %s failed; rolled back", user_id)
        raise TransactionFailed() from exc

    logger.info("Deleted user %s: %s", user_id, summary)
    return summary


def create_user(data: Dict[str, object]) -> User:
    """Administrative account creation; a missing password leaves it claimable."""

    email = normalize_email(str(data.get("email") or ""))
    if not email:
        raise ValidationError({"email": ["This field is required."]})
    if find_user_by_email(email) is not None:
        raise ValidationError({"email": ["A user with this email already exists."]})

    with transaction.atomic():
        user = User(
            email=email,
            display_name=str(data.get("display_name") or "").strip() or email.split("@")[0],
        )
        password = data.get("password")
        if password:
            user.set_password(str(password))
        user.save()
        set_role(user, str(data.get("role") or UserRole.USER))

    logger.info("Created user %s with role %s", user.id, user.role)
    return user


def update_user(user_id, data: Dict[str, object]) -> User:
    with transaction.atomic():
        user = get_or_not_found(User.objects.select_for_update(), "User", pk=user_id)

        if "email" in data:
            email = normalize_email(str(data["email"] or ""))
            clash = User.objects.filter(email__iexact=email).exclude(pk=user.pk).exists()
            if not email or clash:
                raise ValidationError({"email": ["A user with this email already exists."]})
            user.email = email
        if "display_name" in data:
            user.display_name = str(data["display_name"] or "").strip() or user.display_name
        if "is_active" in data:
            user.is_active = bool(data["is_active"])
        user.save()

        if "role" in data:
            set_role(user, str(data["role"] or ""))

    return User.objects.select_related("role_record").get(pk=user.pk)
