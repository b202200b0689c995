"""Hand lifecycle events to the external notification service."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction
from django.utils import timezone

from .tasks import deliver_notification

logger = logging.getLogger(__name__)


def build_message(event: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    body = {"event": event, "payload": payload, "occurred_at": timezone.now()}
    return json.loads(json.dumps(body, cls=DjangoJSONEncoder))


def notify(event: str, **payload: Any) -> None:
    """Queue ``event`` once the surrounding transaction commits.

    Rolled-back work never produces a notification.
    """

    if not settings.NOTIFICATION_WEBHOOK_URL:
        logger.debug("Notifications disabled; skipping %s", event)
        return

    message = build_message(event, payload)
    transaction.on_commit(lambda: deliver_notification.delay(message))
