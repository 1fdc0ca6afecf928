from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AttachmentKind(str, Enum):
    """How an uploaded file is sent to the model."""

    IMAGE = "image"
    DOCUMENT = "document"


class RelayOutcome(BaseModel):
    """Transport-independent result of one relay invocation.

    Attributes:
        status_code: HTTP status to return.
        body: JSON body to send back; may itself be JSON null.
        empty: Send no body at all (preflight).
    """

    model_config = ConfigDict(frozen=True)

    status_code: int
    body: Any = None
    empty: bool = False


class ErrorBody(BaseModel):
    """Error payload for rejected requests."""

    error: str


class UpstreamErrorBody(BaseModel):
    """Error payload when the upstream provider returned a non-success status."""

    error: str
    status: int


class InternalErrorBody(BaseModel):
    """Error payload for local failures."""

    error: str = "Internal server error"
    message: str = Field(..., min_length=1)
