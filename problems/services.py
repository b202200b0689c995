"""Problem records, ticket links and the resolution cascade."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from django.db import DatabaseError, transaction
from django.utils import timezone

from core.exceptions import TransactionFailed, ValidationError
from core.lookups import get_or_not_found, parse_uuid
from notifications.dispatch import notify
from tickets.models import Ticket

from .models import Problem, ProblemTicket

logger = logging.getLogger(__name__)

CASCADE_RESOLUTION_NOTE = "Resolved via cascade"

UPDATE_FIELDS = ("title", "description", "root_cause", "resolution", "status")


def create_problem(data: Mapping[str, Any]) -> Problem:
    fields: Dict[str, Any] = {key: data[key] for key in UPDATE_FIELDS if key in data}
    for required in ("title", "description"):
        if not str(fields.get(required) or "").strip():
            raise ValidationError({required: ["This field is required."]})

    problem = Problem.objects.create(**fields)
    logger.info("Problem %s opened", problem.id)
    return problem


def update_problem(problem_id: Any, data: Mapping[str, Any]) -> Problem:
    with transaction.atomic():
        problem = get_or_not_found(Problem.objects.select_for_update(), "Problem", pk=problem_id)
        for field in UPDATE_FIELDS:
            if field in data:
                setattr(problem, field, data[field])
        problem.save()
    return problem


def delete_problem(problem_id: Any) -> None:
    problem = get_or_not_found(Problem.objects.all(), "Problem", pk=problem_id)
    problem.delete()
    logger.info("Problem %s deleted", problem_id)


def link_ticket(problem_id: Any, ticket_id: Any) -> bool:
    """Link a ticket to a problem; returns ``False`` when already linked."""

    problem = get_or_not_found(Problem.objects.all(), "Problem", pk=problem_id)
    ticket = get_or_not_found(Ticket.objects.all(), "Ticket", pk=ticket_id)
    _, created = ProblemTicket.objects.get_or_create(problem=problem, ticket=ticket)
    if created:
        logger.info("Linked ticket %s to problem %s", ticket.id, problem.id)
    return created


def unlink_ticket(problem_id: Any, ticket_id: Any) -> bool:
    problem = get_or_not_found(Problem.objects.all(), "Problem", pk=problem_id)
    ticket_uuid = parse_uuid(ticket_id)
    if ticket_uuid is None:
        return False
    removed, _ = ProblemTicket.objects.filter(problem=problem, ticket_id=ticket_uuid).delete()
    return bool(removed)


def resolve_linked_tickets(problem: Problem, now: datetime) -> int:
    """Move every linked ticket that is still open to ``resolved``.

    Tickets that are already resolved or closed keep their ``resolved_at``.
    """

    return (
        Ticket.objects.filter(problem_links__problem=problem)
        .exclude(status__in=Ticket.DONE_STATUSES)
        .update(status=Ticket.RESOLVED, resolved_at=now, updated_at=now)
    )


def apply_resolution(problem: Problem, resolution: Optional[str] = None) -> int:
    """Resolve a locked problem and its tickets; caller owns the transaction."""

    now = timezone.now()
    problem.status = Problem.RESOLVED
    problem.resolution = resolution if resolution else CASCADE_RESOLUTION_NOTE
    problem.save(update_fields=["status", "resolution", "updated_at"])
    resolved = resolve_linked_tickets(problem, now)
    notify("problem.resolved", problem_id=problem.id, tickets_resolved=resolved)
    return resolved


def resolve_problem(problem_id: Any, resolution: Optional[str] = None) -> Problem:
    """Resolve a problem and cascade to its tickets, all or nothing."""

    try:
        with transaction.atomic():
            problem = get_or_not_found(Problem.objects.select_for_update(), "Problem", pk=problem_id)
            resolved = apply_resolution(problem, resolution)
    except DatabaseError as exc:
        logger.exception("Resolving problem %s failed; rolled back", problem_id)
        raise TransactionFailed() from exc

    logger.info("Problem %s resolved, %s linked tickets resolved", problem.id, resolved)
    return problem
