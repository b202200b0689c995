"""SLA due-time calculation.

Pure functions: the due timestamp is fixed when a ticket is created and the
remaining/breached state is derived on every read, never stored.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

from django.utils import timezone

SLA_HOURS: Dict[str, int] = {
    "critical": 1,
    "high": 4,
    "medium": 24,
    "low": 48,
}
DEFAULT_SLA_HOURS = 24


@dataclass(frozen=True)
class SlaRemaining:
    breached: bool
    hours: int
    minutes: int

    def as_dict(self) -> Dict[str, object]:
        return asdict(self)


def sla_hours(priority: Optional[str]) -> int:
    return SLA_HOURS.get((priority or "").strip().lower(), DEFAULT_SLA_HOURS)


def compute_due_at(priority: Optional[str], created_at: datetime) -> datetime:
    """Return when a ticket of ``priority`` opened at ``created_at`` is due."""

    return created_at + timedelta(hours=sla_hours(priority))


def compute_remaining(due_at: datetime, now: Optional[datetime] = None) -> SlaRemaining:
    """Time left until ``due_at`` (or overdue by, once breached)."""

    now = now or timezone.now()
    diff = due_at - now
    total_minutes = int(abs(diff.total_seconds()) // 60)
    return SlaRemaining(
        breached=diff.total_seconds() < 0,
        hours=total_minutes // 60,
        minutes=total_minutes % 60,
    )
