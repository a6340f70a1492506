"""Domain error kinds raised by services before any mutation."""

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Base class for errors callers can act on.

    ``code`` is the machine readable kind, ``status_code`` the HTTP status the
    API layer renders it with.
    """

    code = "DOMAIN_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details


class NotFound(DomainError):
    """A referenced table, order or item does not exist."""

    code = "NOT_FOUND"
    status_code = 404


class ValidationFailed(DomainError):
    """Malformed or out-of-range input."""

    code = "VALIDATION_ERROR"
    status_code = 400


class Conflict(DomainError):
    """The operation would violate a table or order state invariant."""

    code = "CONFLICT"
    status_code = 409


class StaleWrite(Conflict):
    """Another writer changed the record between read and write."""

    def __init__(self, message: str = "record changed concurrently", **kwargs) -> None:
        kwargs.setdefault("hint", "refresh and retry")
        super().__init__(message, **kwargs)
