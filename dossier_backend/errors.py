"""
Shared error types.

Every failure that reaches a caller is one of these, so the API layer can turn
it into a structured `{"error": {"code", "message", "details"}}` payload.
"""

import functools
import logging
from typing import Any, Callable, Optional

from sqlalchemy.exc import OperationalError

logger = logging.getLogger(__name__)


class DossierError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class UnauthorizedError(DossierError):
    """No authenticated actor."""

    status_code = 401
    code = "unauthorized"


class ForbiddenError(DossierError):
    """Actor lacks the required role or permission."""

    status_code = 403
    code = "forbidden"


class NotFoundError(DossierError):
    """Referenced entity is absent or soft-deleted."""

    status_code = 404
    code = "not_found"


class UnavailableError(DossierError):
    """Record store or object store unreachable or rejected the operation."""

    status_code = 503
    code = "unavailable"


class StorageError(UnavailableError):
    """Object store write failed."""

    code = "storage_error"


def degrade_on_unavailable(default_factory: Callable[[], Any]):
    """
    Return `default_factory()` instead of raising when the record store is unreachable.

    Used on read helpers only; writes must propagate.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except OperationalError as e:
                logger.warning("Database unavailable in %s: %s", func.__name__, e.__class__.__name__)
                return default_factory()
        return wrapper
    return decorator
