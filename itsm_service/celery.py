"""Celery application for outbound notification delivery."""
from __future__ import annotations

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "itsm_service.settings")

app = Celery("itsm_service")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
