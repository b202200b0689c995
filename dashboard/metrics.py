"""Aggregate figures shown on the operations dashboard."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from django.db.models import Count, F, Q
from django.utils import timezone

from changes.models import Change
from cmdb.models import ConfigurationItem
from problems.models import Problem
from tickets.models import Ticket

logger = logging.getLogger(__name__)


def _counts_by_status(queryset) -> Dict[str, int]:
    rows = queryset.order_by().values("status").annotate(total=Count("id"))
    return {row["status"]: row["total"] for row in rows}


def _start_of_day(now: datetime) -> datetime:
    local = timezone.localtime(now)
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def sla_compliance(now: datetime) -> float:
    """Percentage of SLA-bearing tickets resolved in time or still within time."""

    tracked = Ticket.objects.exclude(sla_due_at__isnull=True)
    total = tracked.count()
    if not total:
        return 100.0

    done = list(Ticket.DONE_STATUSES)
    met = tracked.filter(
        Q(status__in=done, resolved_at__isnull=False, resolved_at__lte=F("sla_due_at"))
        | Q(status__in=done, resolved_at__isnull=True)
        | (~Q(status__in=done) & Q(sla_due_at__gte=now))
    ).count()
    return round(met * 100.0 / total, 1)


def average_resolution_hours() -> Optional[float]:
    durations = [
        (resolved_at - created_at).total_seconds()
        for created_at, resolved_at in Ticket.objects.filter(resolved_at__isnull=False).values_list(
            "created_at", "resolved_at"
        )
    ]
    if not durations:
        return None
    return round(sum(durations) / len(durations) / 3600, 1)


def collect_metrics(now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or timezone.now()
    logger.debug("Collecting dashboard metrics at %s", now.isoformat())
    tickets = Ticket.objects.all()
    open_tickets = tickets.exclude(status__in=Ticket.DONE_STATUSES)

    return {
        "tickets": {
            "total": tickets.count(),
            "byStatus": _counts_by_status(tickets),
            "open": open_tickets.count(),
            "resolvedToday": tickets.filter(
                status__in=Ticket.DONE_STATUSES, resolved_at__gte=_start_of_day(now)
            ).count(),
            "breached": open_tickets.filter(sla_due_at__lt=now).count(),
            "slaCompliance": sla_compliance(now),
            "avgResolutionHours": average_resolution_hours(),
        },
        "problems": {
            "total": Problem.objects.count(),
            "byStatus": _counts_by_status(Problem.objects.all()),
        },
        "changes": {
            "total": Change.objects.count(),
            "byStatus": _counts_by_status(Change.objects.all()),
            "pendingApprovals": Change.objects.filter(status=Change.REQUESTED).count(),
        },
        "cis": {"total": ConfigurationItem.objects.count()},
    }
