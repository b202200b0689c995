"""Row lookups that fail with the API's NotFound kind."""
from __future__ import annotations

import uuid
from typing import Any, Optional, TypeVar

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import models

from .exceptions import NotFound

ModelT = TypeVar("ModelT", bound=models.Model)


def get_or_not_found(queryset: "models.QuerySet[ModelT]", label: str, **lookup: Any) -> ModelT:
    try:
        instance = queryset.filter(**lookup).first()
    except (TypeError, ValueError, DjangoValidationError):
        instance = None
    if instance is None:
        raise NotFound(f"{label} not found.")
    return instance


def parse_uuid(value: Any) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None
