"""Typed failures raised by the progression services.

Every service raises one of these instead of returning sentinel values.
The HTTP layer maps ``code``/``status_code`` onto JSON error responses.
"""

from __future__ import annotations

from typing import Any


class ProgressionError(Exception):
    """Base class for all domain failures."""

    code = "error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(ProgressionError):
    """Referenced user, task or assignment does not exist."""

    code = "not_found"
    status_code = 404


class Conflict(ProgressionError):
    """Uniqueness violation on an external identity or referral code."""

    code = "conflict"
    status_code = 409


class AlreadyAssigned(ProgressionError):
    """The (user, task) assignment already exists.

    Benign: the caller's desired end state holds. The existing assignment
    is attached so callers can answer with it.
    """

    code = "already_assigned"
    status_code = 409

    def __init__(self, message: str, assignment: Any = None) -> None:  # noqa: ANN401
        super().__init__(message)
        self.assignment = assignment


class InvalidArgument(ProgressionError, ValueError):
    """Malformed input or an attempt to write a system-managed field."""

    code = "invalid_argument"
    status_code = 400


class Unavailable(ProgressionError):
    """Store timed out or failed transiently. Retryable with backoff."""

    code = "unavailable"
    status_code = 503


class ResourceExhausted(ProgressionError):
    """Bounded generation retries ran out. Needs operator attention."""

    code = "resource_exhausted"
    status_code = 500
