"""Background delivery of lifecycle notifications."""
from __future__ import annotations

import logging
from typing import Any, Dict

import requests
from celery import shared_task
from django.conf import settings

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=5)
def deliver_notification(self, message: Dict[str, Any]) -> bool:
    """POST a lifecycle event to the configured webhook."""

    event = message.get("event", "unknown")
    url = settings.NOTIFICATION_WEBHOOK_URL
    if not url:
        logger.info("No notification endpoint configured; dropping %s", event)
        return False

    try:
        response = requests.post(url, json=message, timeout=settings.NOTIFICATION_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as exc:  # pragma: no cover - network errors
        logger.warning("Delivering %s notification failed: %s", event, exc)
        if self.request.retries >= self.max_retries:
            logger.error("Giving up on %s notification after %s retries", event, self.request.retries)
            return False
        raise self.retry(exc=exc, countdown=min(60, 2 ** self.request.retries))

    logger.info("Delivered %s notification", event)
    return True
