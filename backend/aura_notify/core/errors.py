"""
Centralized error handling for dispatcher runs and the on-demand trigger.
Exception types plus a reusable helper so routes stay thin and new error types are easy to add.
"""
from __future__ import annotations

from typing import Callable

from fastapi import HTTPException

# ---------------------------------------------------------------------------
# Constants: status codes and user-facing messages
# ---------------------------------------------------------------------------

STATUS_FORBIDDEN = 403
STATUS_INTERNAL_ERROR = 500
STATUS_SERVICE_UNAVAILABLE = 503  # user/quote directory unreachable

MSG_SECRET_NOT_CONFIGURED = "MOTIVATION_TEST_SECRET not configured"
MSG_INVALID_SECRET = "Invalid or missing secret"
MSG_DIRECTORY_UNAVAILABLE = "User directory unavailable; no notifications were sent"
MSG_COMMIT_FAILED = "Notifications were sent but delivery bookkeeping failed"


class DispatchError(Exception):
    """Base for failures that abort a whole dispatcher run."""


class DirectoryLoadError(DispatchError):
    """Loading opted-in users (or the static quote) failed; nothing was sent."""


class CommitError(DispatchError):
    """The final batched write failed; none of the run's updates were applied."""


class ConfigurationError(Exception):
    """A trigger was invoked without the configuration it requires."""


# ---------------------------------------------------------------------------
# Error rules: (predicate, status_code, detail_message)
# Add new rules here instead of scattering checks in routes.
# ---------------------------------------------------------------------------

def _is_directory_error(exc: Exception) -> bool:
    return isinstance(exc, DirectoryLoadError)


def _is_commit_error(exc: Exception) -> bool:
    return isinstance(exc, CommitError)


def _is_configuration_error(exc: Exception) -> bool:
    return isinstance(exc, ConfigurationError)


# List of (predicate, status_code, detail). First match wins.
DISPATCH_ERROR_RULES: list[tuple[Callable[[Exception], bool], int, str | None]] = [
    (_is_directory_error, STATUS_SERVICE_UNAVAILABLE, MSG_DIRECTORY_UNAVAILABLE),
    (_is_commit_error, STATUS_INTERNAL_ERROR, MSG_COMMIT_FAILED),
    (_is_configuration_error, STATUS_INTERNAL_ERROR, None),
]


def dispatch_error_to_http(exc: Exception) -> HTTPException:
    """
    Map an exception from a dispatcher run into an HTTPException.
    Uses DISPATCH_ERROR_RULES for known error types; otherwise returns 500 with the exception message.
    A rule with detail None passes the exception message through.
    """
    for predicate, status_code, detail in DISPATCH_ERROR_RULES:
        if predicate(exc):
            return HTTPException(status_code=status_code, detail=detail or str(exc))
    return HTTPException(status_code=STATUS_INTERNAL_ERROR, detail=str(exc))
