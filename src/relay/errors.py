"""Relay error taxonomy.

Every failure the relay can report is a RelayError subclass that knows its
HTTP status code and the JSON body sent back to the caller.
"""

from collections.abc import Iterable
from typing import Any

from src.models.schemas import ErrorBody, InternalErrorBody, UpstreamErrorBody

REDACTED = "[REDACTED]"


def redact(message: str, secrets: Iterable[str | None]) -> str:
    """Remove credential values from a message."""
    for secret in secrets:
        if secret:
            message = message.replace(secret, REDACTED)
    return message


class RelayError(Exception):
    """Base class for failures reported to the relay caller."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_body(self) -> dict[str, Any]:
        """Return the JSON body describing this error."""
        return ErrorBody(error=self.message).model_dump()


class MethodNotAllowed(RelayError):
    """Request used a method other than POST or OPTIONS."""

    status_code = 405


class BadRequest(RelayError):
    """Request body is malformed or missing required fields."""

    status_code = 400


class ConfigurationError(RelayError):
    """Server-held credential mode without a configured key."""

    status_code = 500

    def to_body(self) -> dict[str, Any]:
        return ErrorBody(error=f"Server configuration error: {self.message}").model_dump()


class UpstreamError(RelayError):
    """Upstream provider rejected the call; its status is passed through."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code

    def to_body(self) -> dict[str, Any]:
        return UpstreamErrorBody(error=self.message, status=self.status_code).model_dump()


class InternalError(RelayError):
    """Local, transport or parsing failure."""

    status_code = 500

    def to_body(self) -> dict[str, Any]:
        return InternalErrorBody(message=self.message).model_dump()
