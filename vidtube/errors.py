"""Typed API errors raised by services and rendered as error envelopes."""

from typing import Any, Optional


class ApiError(Exception):
    """Base error carrying an HTTP status, a user-safe message and details.

    Attributes:
        status_code: HTTP status the error maps to
        message: Message returned to the client
        errors: Optional structured details (e.g. failing fields)
    """

    status_code: int = 500
    default_message: str = "Something went wrong"

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[list[Any]] = None,
    ):
        self.message = message or self.default_message
        self.errors = list(errors or [])
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return type(self).__name__


class ValidationError(ApiError):
    """Malformed or missing input."""

    status_code = 400
    default_message = "Invalid request"


class AuthError(ApiError):
    """Bad credentials or a bad, expired or reused token."""

    status_code = 401
    default_message = "Unauthorized request"


class NotFoundError(ApiError):
    """No matching identity, channel or video."""

    status_code = 404
    default_message = "Resource not found"


class ConflictError(ApiError):
    """Uniqueness violation."""

    status_code = 409
    default_message = "Resource already exists"
