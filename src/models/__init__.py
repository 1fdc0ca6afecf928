"""Pydantic models for relay requests and chat content.

Provides type safety, validation, and automatic OpenAPI documentation.

Models:
    - TextPart, ImagePart, FilePart: Content parts of a multimodal message
    - ChatMessage: Individual message in conversation
    - RelayRequest: Incoming relay request payload
"""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class TextPart(BaseModel):
    """Plain text segment of a message."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ImageURL(BaseModel):
    """Image reference, usually a base64 data URL."""

    model_config = ConfigDict(frozen=True, extra="allow")

    url: str = Field(..., min_length=1)
    detail: Literal["auto", "low", "high"] | None = None


class ImagePart(BaseModel):
    """Inline image attachment."""

    model_config = ConfigDict(frozen=True)

    type: Literal["image_url"] = "image_url"
    image_url: ImageURL


class FileData(BaseModel):
    """Inline document payload the provider parses natively.

    Attributes:
        filename: Original file name shown to the model.
        file_data: Base64 data URL of the document.
        file_id: Provider-side file reference (alternative to file_data).
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    filename: str | None = None
    file_data: str | None = None
    file_id: str | None = None

    @model_validator(mode="after")
    def require_payload(self) -> "FileData":
        """A file part must carry inline data or a file reference."""
        if not self.file_data and not self.file_id:
            raise ValueError("file part requires file_data or file_id")
        return self


class FilePart(BaseModel):
    """Inline document attachment."""

    model_config = ConfigDict(frozen=True)

    type: Literal["file"] = "file"
    file: FileData


ContentPart = Annotated[TextPart | ImagePart | FilePart, Field(discriminator="type")]


class ChatMessage(BaseModel):
    """A single chat message in the conversation.

    Messages are immutable once created; a transcript only ever grows.

    Attributes:
        role: The speaker identifier (user, assistant, or system).
        content: The message text, or an ordered list of content parts.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    role: Literal["system", "user", "assistant"] = Field(
        ..., description="Message role: 'user', 'assistant', or 'system'"
    )
    content: str | list[ContentPart] = Field(..., description="The message content")

    def text(self) -> str:
        """Return the text segments of the message joined together."""
        if isinstance(self.content, str):
            return self.content
        return "\n".join(part.text for part in self.content if isinstance(part, TextPart))


class RelayRequest(BaseModel):
    """Request payload for the relay endpoint.

    Attributes:
        messages: Conversation so far, oldest first.
        model: Model identifier (relay default when omitted).
        api_key: Client-supplied API key (client credential mode only).
    """

    model_config = ConfigDict(populate_by_name=True)

    messages: list[ChatMessage] = Field(..., min_length=1)
    model: str | None = None
    api_key: str | None = Field(None, alias="apiKey", repr=False)

    @field_validator("model", mode="before")
    @classmethod
    def blank_model_is_default(cls, v: object) -> object:
        """Treat an empty model string as omitted."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def require_user_message(self) -> "RelayRequest":
        """A request must contain at least one user turn."""
        if not any(message.role == "user" for message in self.messages):
            raise ValueError("messages must include at least one user message")
        return self

    def upstream_messages(self) -> list[dict]:
        """Serialize messages in the provider's wire format."""
        return [message.model_dump(exclude_none=True) for message in self.messages]
