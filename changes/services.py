"""Change-request workflow: creation, approval, transitions and links."""
from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, Mapping

from django.db import DatabaseError, transaction
from rest_framework.exceptions import PermissionDenied

from accounts.models import UserRole
from cmdb.models import ConfigurationItem
from core.exceptions import TransactionFailed, Unauthorized, ValidationError
from core.lookups import get_or_not_found, parse_uuid
from core.permissions import has_role, is_authenticated
from notifications.dispatch import notify
from problems.models import Problem
from problems.services import apply_resolution

from .models import Change, ChangeConfigurationItem, ChangeProblem

logger = logging.getLogger(__name__)

_ABANDON = frozenset({Change.CANCELLED, Change.FAILED})

TRANSITIONS: Dict[str, FrozenSet[str]] = {
    Change.DRAFT: frozenset({Change.REQUESTED}) | _ABANDON,
    Change.REQUESTED: frozenset({Change.APPROVED}) | _ABANDON,
    Change.APPROVED: frozenset({Change.IN_PROGRESS}) | _ABANDON,
    Change.IN_PROGRESS: frozenset({Change.COMPLETED}) | _ABANDON,
    **{status: frozenset() for status in Change.TERMINAL_STATUSES},
}

# Moves into these states need the same authority as approving.
APPROVER_TARGETS = frozenset({Change.APPROVED, Change.IN_PROGRESS, Change.COMPLETED, Change.FAILED})

CREATE_FIELDS = (
    "title",
    "description",
    "type",
    "priority",
    "risk",
    "impact",
    "backout_plan",
    "scheduled_start",
    "scheduled_end",
    "assigned_approver",
)

UPDATE_FIELDS = CREATE_FIELDS + ("approved_by",)


def check_transition(current: str, target: str) -> None:
    if current == target:
        return
    if target not in TRANSITIONS.get(current, frozenset()):
        raise ValidationError(
            {"status": [f"Cannot move a change from {current} to {target}."]},
            code="invalid_transition",
        )


def _check_schedule(change: Change) -> None:
    if change.scheduled_start and change.scheduled_end and change.scheduled_end < change.scheduled_start:
        raise ValidationError({"scheduled_end": ["Must not be before scheduled_start."]})


def can_approve(change: Change, principal: Any) -> bool:
    if has_role(principal, UserRole.AGENT, UserRole.ADMIN):
        return True
    return is_authenticated(principal) and change.assigned_approver_id == principal.pk


def _resolve_linked_problems(change: Change) -> int:
    problems = (
        Problem.objects.select_for_update()
        .filter(change_links__change=change)
        .exclude(status__in=Problem.DONE_STATUSES)
    )
    count = 0
    for problem in problems:
        apply_resolution(problem, f"Resolved by completed change: {change.title}")
        count += 1
    return count


def _apply_status(change: Change, target: str) -> None:
    """Move a locked change to ``target``; runs inside the caller's transaction."""

    previous = change.status
    check_transition(previous, target)
    if previous == target:
        return
    change.status = target
    change.save()

    if target == Change.COMPLETED:
        resolved = _resolve_linked_problems(change)
        logger.info("Change %s completed, %s linked problems resolved", change.id, resolved)
    notify("change.status_changed", change_id=change.id, previous=previous, current=target)


def create_change(data: Mapping[str, Any], principal: Any) -> Change:
    """Open a change request on behalf of ``principal``; it starts ``requested``."""

    if not is_authenticated(principal):
        raise Unauthorized()

    fields: Dict[str, Any] = {key: data[key] for key in CREATE_FIELDS if key in data}
    for required in ("title", "description", "type"):
        if not str(fields.get(required) or "").strip():
            raise ValidationError({required: ["This field is required."]})

    change = Change(status=Change.REQUESTED, requested_by=principal, **fields)
    _check_schedule(change)
    with transaction.atomic():
        change.save()
        notify("change.requested", change_id=change.id, requested_by=principal.pk)

    logger.info("Change %s requested by %s", change.id, principal.pk)
    return change


def update_change(change_id: Any, data: Mapping[str, Any], principal: Any = None) -> Change:
    """Apply a validated partial update, enforcing the status workflow.

    ``approved_by`` may only be sent by the update that moves the change into
    ``approved``; without it the caller is stamped. Moving to approved,
    in-progress, completed or failed needs an agent, an administrator or the
    assigned approver.
    """

    try:
        with transaction.atomic():
            change = get_or_not_found(Change.objects.select_for_update(), "Change", pk=change_id)
            target = data.get("status", change.status)
            check_transition(change.status, target)
            approving = target == Change.APPROVED and change.status != Change.APPROVED

            if "approved_by" in data and not approving:
                raise ValidationError(
                    {"approved_by": ["Only allowed when this update approves the change."]},
                    code="invalid_transition",
                )
            if target != change.status and target in APPROVER_TARGETS and not can_approve(change, principal):
                raise PermissionDenied("Agent, administrator or the assigned approver required.")

            for field in UPDATE_FIELDS:
                if field in data:
                    setattr(change, field, data[field])
            _check_schedule(change)

            if approving and change.approved_by_id is None:
                change.approved_by = principal

            change.save()
            _apply_status(change, target)
    except DatabaseError as exc:
        logger.exception("Updating change %s failed; rolled back", change_id)
        raise TransactionFailed() from exc

    return change


def approve_change(change_id: Any, approver: Any) -> Change:
    """Approve a requested change and record who approved it."""

    if not is_authenticated(approver):
        raise Unauthorized()

    try:
        with transaction.atomic():
            change = get_or_not_found(Change.objects.select_for_update(), "Change", pk=change_id)
            if not can_approve(change, approver):
                raise PermissionDenied("Agent, administrator or the assigned approver required.")
            if change.status == Change.APPROVED:
                raise ValidationError(
                    {"status": ["Change is already approved."]}, code="invalid_transition"
                )
            check_transition(change.status, Change.APPROVED)
            change.approved_by = approver
            change.save()
            _apply_status(change, Change.APPROVED)
    except DatabaseError as exc:
        logger.exception("Approving change %s failed; rolled back", change_id)
        raise TransactionFailed() from exc

    logger.info("Change %s approved by %s", change.id, approver.pk)
    return change


def delete_change(change_id: Any) -> None:
    change = get_or_not_found(Change.objects.all(), "Change", pk=change_id)
    change.delete()
    logger.info("Change %s deleted", change_id)


def link_configuration_item(change_id: Any, ci_id: Any) -> bool:
    change = get_or_not_found(Change.objects.all(), "Change", pk=change_id)
    ci = get_or_not_found(ConfigurationItem.objects.all(), "Configuration item", pk=ci_id)
    _, created = ChangeConfigurationItem.objects.get_or_create(change=change, configuration_item=ci)
    return created


def unlink_configuration_item(change_id: Any, ci_id: Any) -> bool:
    change = get_or_not_found(Change.objects.all(), "Change", pk=change_id)
    ci_uuid = parse_uuid(ci_id)
    if ci_uuid is None:
        return False
    removed, _ = ChangeConfigurationItem.objects.filter(change=change, configuration_item_id=ci_uuid).delete()
    return bool(removed)


def link_problem(change_id: Any, problem_id: Any) -> bool:
    change = get_or_not_found(Change.objects.all(), "Change", pk=change_id)
    problem = get_or_not_found(Problem.objects.all(), "Problem", pk=problem_id)
    _, created = ChangeProblem.objects.get_or_create(change=change, problem=problem)
    return created


def unlink_problem(change_id: Any, problem_id: Any) -> bool:
    change = get_or_not_found(Change.objects.all(), "Change", pk=change_id)
    problem_uuid = parse_uuid(problem_id)
    if problem_uuid is None:
        return False
    removed, _ = ChangeProblem.objects.filter(change=change, problem_id=problem_uuid).delete()
    return bool(removed)
