"""Error kinds raised by the lifecycle services and their HTTP mapping."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, Optional

from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

ValidationError = exceptions.ValidationError
NotFound = exceptions.NotFound


class Unauthorized(exceptions.NotAuthenticated):
    """A gated action was attempted without a valid principal."""

    default_detail = "Authentication credentials were not provided."
    default_code = "unauthorized"


class TransactionFailed(exceptions.APIException):
    """A compound operation failed and every partial change was rolled back."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "The operation failed and no changes were applied."
    default_code = "transaction_failed"


def _flatten_codes(codes: Any) -> Iterator[str]:
    if isinstance(codes, dict):
        for value in codes.values():
            yield from _flatten_codes(value)
    elif isinstance(codes, (list, tuple)):
        for value in codes:
            yield from _flatten_codes(value)
    else:
        yield str(codes)


def _error_code(exc: Exception) -> str:
    if isinstance(exc, Http404):
        return NotFound.default_code
    detail = getattr(exc, "detail", None)
    return getattr(detail, "code", None) or getattr(exc, "default_code", "error")


def api_exception_handler(exc: Exception, context: Dict[str, Any]) -> Optional[Response]:
    """Delegate to DRF and tag errors with a stable ``code``.

    Field-keyed validation bodies get one too when all their messages share
    a code, e.g. ``invalid_transition``.
    """

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, TransactionFailed):
        view = context.get("view")
        logger.error(
            "Transaction failed in %s: %s",
            view.__class__.__name__ if view is not None else "unknown view",
            exc.__cause__ or exc,
        )

    if isinstance(response.data, dict) and "detail" in response.data:
        response.data["code"] = _error_code(exc)
    elif isinstance(exc, ValidationError) and isinstance(response.data, dict) and "code" not in response.data:
        codes = set(_flatten_codes(exc.get_codes()))
        if len(codes) == 1:
            response.data["code"] = codes.pop()
    return response
