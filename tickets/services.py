"""Ticket lifecycle: intake, updates, deletion, CI links and comments."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from django.conf import settings
from django.db import DatabaseError, transaction
from django.db.models import QuerySet
from django.utils import timezone

from accounts.models import User
from accounts.services import get_or_create_requester
from cmdb.models import ConfigurationItem
from core.exceptions import TransactionFailed, Unauthorized, ValidationError
from core.lookups import get_or_not_found, parse_uuid
from core.permissions import is_authenticated
from notifications.dispatch import notify

from .models import Comment, Ticket, TicketConfigurationItem
from .sla import compute_due_at

logger = logging.getLogger(__name__)

CREATE_FIELDS = (
    "title",
    "description",
    "status",
    "priority",
    "category",
    "team",
    "due_date",
    "additional_fields",
)

UPDATE_FIELDS = (
    "title",
    "description",
    "status",
    "priority",
    "category",
    "assigned_to",
    "due_date",
    "additional_fields",
    "team",
)


def stamp_resolution(ticket: Ticket, now: Optional[datetime] = None) -> None:
    """Keep ``resolved_at`` in step with the ticket's status."""

    if ticket.is_done:
        if ticket.resolved_at is None:
            ticket.resolved_at = now or timezone.now()
    else:
        ticket.resolved_at = None


def resolve_submitter(principal: Any, additional_fields: Optional[Mapping[str, Any]]) -> User:
    """Pick the account a new ticket is filed under.

    The caller when authenticated, otherwise the public form's contact email,
    otherwise the fallback account.
    """

    if is_authenticated(principal):
        return principal

    contact_email = (additional_fields or {}).get("contact_email")
    if isinstance(contact_email, str) and contact_email.strip():
        return get_or_create_requester(contact_email)

    return get_or_create_requester(settings.ITSM_FALLBACK_SUBMITTER_EMAIL, claimable=False)


def create_ticket(data: Mapping[str, Any], principal: Any = None) -> Ticket:
    fields: Dict[str, Any] = {key: data[key] for key in CREATE_FIELDS if key in data}
    for required in ("title", "description"):
        if not str(fields.get(required) or "").strip():
            raise ValidationError({required: ["This field is required."]})

    fields["priority"] = (fields.get("priority") or Ticket.MEDIUM).lower()
    fields.setdefault("additional_fields", {})

    with transaction.atomic():
        submitter = resolve_submitter(principal, fields["additional_fields"])
        ticket = Ticket(submitted_by=submitter, **fields)
        ticket.save()
        ticket.sla_due_at = compute_due_at(ticket.priority, ticket.created_at)
        stamp_resolution(ticket, ticket.created_at)
        ticket.save(update_fields=["sla_due_at", "resolved_at"])

        notify(
            "ticket.created",
            ticket_id=ticket.id,
            title=ticket.title,
            priority=ticket.priority,
            submitted_by=submitter.id,
        )

    logger.info(
        "Ticket %s created by %s, SLA due %s",
        ticket.id,
        submitter.id,
        ticket.sla_due_at.isoformat(),
    )
    return ticket


def update_ticket(ticket_id: Any, data: Mapping[str, Any]) -> Ticket:
    """Apply a validated partial update; ``sla_due_at`` never changes."""

    with transaction.atomic():
        ticket = get_or_not_found(Ticket.objects.select_for_update(), "Ticket", pk=ticket_id)
        previous_assignee = ticket.assigned_to_id
        previous_status = ticket.status

        for field in UPDATE_FIELDS:
            if field in data:
                setattr(ticket, field, data[field])
        if "priority" in data and ticket.priority:
            ticket.priority = ticket.priority.lower()

        stamp_resolution(ticket)
        ticket.save()

        if ticket.assigned_to_id != previous_assignee and ticket.assigned_to_id is not None:
            notify("ticket.assigned", ticket_id=ticket.id, assigned_to=ticket.assigned_to_id)
        if ticket.status != previous_status:
            notify(
                "ticket.status_changed",
                ticket_id=ticket.id,
                previous=previous_status,
                current=ticket.status,
            )

    logger.info("Ticket %s updated (%s)", ticket.id, ", ".join(sorted(data)) or "no fields")
    return ticket


def delete_ticket(ticket_id: Any) -> int:
    """Delete a ticket and its comments together; returns the comment count."""

    try:
        with transaction.atomic():
            ticket = get_or_not_found(Ticket.objects.select_for_update(), "Ticket", pk=ticket_id)
            removed, _ = Comment.objects.filter(ticket=ticket).delete()
            ticket.delete()
    except DatabaseError as exc:
        logger.exception("Deleting ticket %s failed; rolled back", ticket_id)
        raise TransactionFailed() from exc

    logger.info("Ticket %s deleted with %s comments", ticket_id, removed)
    return removed


def link_configuration_item(ticket_id: Any, ci_id: Any) -> bool:
    """Link a CI to a ticket; returns ``False`` when the link already existed."""

    ticket = get_or_not_found(Ticket.objects.all(), "Ticket", pk=ticket_id)
    ci = get_or_not_found(ConfigurationItem.objects.all(), "Configuration item", pk=ci_id)
    _, created = TicketConfigurationItem.objects.get_or_create(ticket=ticket, configuration_item=ci)
    if created:
        logger.info("Linked CI %s to ticket %s", ci.id, ticket.id)
    return created


def unlink_configuration_item(ticket_id: Any, ci_id: Any) -> bool:
    ticket = get_or_not_found(Ticket.objects.all(), "Ticket", pk=ticket_id)
    ci_uuid = parse_uuid(ci_id)
    if ci_uuid is None:
        return False
    removed, _ = TicketConfigurationItem.objects.filter(
        ticket=ticket, configuration_item_id=ci_uuid
    ).delete()
    if not removed:
        logger.debug("CI %s was not linked to ticket %s", ci_id, ticket.id)
    return bool(removed)


def list_comments(ticket_id: Any) -> "QuerySet[Comment]":
    ticket = get_or_not_found(Ticket.objects.all(), "Ticket", pk=ticket_id)
    return ticket.comments.select_related("user").all()


def add_comment(ticket_id: Any, principal: Any, content: str) -> Comment:
    if not is_authenticated(principal):
        raise Unauthorized()
    content = (content or "").strip()
    if not content:
        raise ValidationError({"content": ["This field may not be blank."]})

    ticket = get_or_not_found(Ticket.objects.all(), "Ticket", pk=ticket_id)
    comment = Comment.objects.create(ticket=ticket, user=principal, content=content)
    logger.info("Comment %s added to ticket %s", comment.id, ticket.id)
    return comment
