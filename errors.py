"""
Client error hierarchy.

AppError is the base for all typed errors. Each subclass carries the HTTP
status it corresponds to on the remote API and a stable error code, so
handlers can render a consistent message without inspecting the transport.

Stale responses are not errors: the analytics controller drops them
without raising.
"""

from __future__ import annotations

from typing import Any, Optional


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.error_code}
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


class AuthError(AppError):
    """Credentials were rejected, or a held token is no longer accepted."""

    status_code = 401
    error_code = "authentication_error"


class FetchError(AppError):
    """The remote API was unreachable, timed out, or answered non-2xx."""

    status_code = 502
    error_code = "fetch_error"

    def __init__(
        self,
        message: str,
        *,
        upstream_status: Optional[int] = None,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message, field=field, details=details)
        self.upstream_status = upstream_status

    def to_dict(self) -> dict:
        payload = super().to_dict()
        if self.upstream_status is not None:
            payload["upstream_status"] = self.upstream_status
        return payload


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class ConflictError(ValidationError):
    status_code = 409
    error_code = "conflict"


class InvalidTransitionError(AppError):
    status_code = 409
    error_code = "invalid_transition"


class BucketLabelError(AppError):
    """A bucket label could not be parsed back into a point in time.

    Labels and their parse patterns are defined together, so this only
    fires when the two have drifted apart.
    """

    status_code = 500
    error_code = "bucket_label_error"
