"""Client-side conversation management for the relay.

Holds the transcript and pending attachments for one chat, assembles relay
requests, and tracks the single in-flight send explicitly::

    Idle -> Sending -> Idle    (reply appended)
                    -> Error   (error text kept for display)
    Error -> Sending           (user resubmits; no automatic retry)
"""

import logging
import os
from collections.abc import Iterable
from enum import Enum
from typing import Any

import httpx
from pydantic import BaseModel

from src.knowledge import build_system_prompt
from src.models import ChatMessage, ContentPart, TextPart
from src.parsing.attachments import Attachment, encode_attachments

logger = logging.getLogger(__name__)

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")
DEFAULT_RELAY_URL = f"{API_BASE_URL}/api/openai"
ATTACHMENT_ONLY_PROMPT = "Please review the attached files."


class SendState(str, Enum):
    """Send-button state of a conversation."""

    IDLE = "idle"
    SENDING = "sending"
    ERROR = "error"


class ConversationBusyError(Exception):
    """Raised when a send is attempted while another is in flight."""

    pass


class TurnResult(BaseModel):
    """Outcome of one send.

    Attributes:
        reply: Assistant reply text on success.
        error: User-facing error text on failure.
        status_code: HTTP status returned by the relay, if any.
    """

    reply: str | None = None
    error: str | None = None
    status_code: int | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def classify_relay_error(status_code: int, message: str | None) -> str:
    """Turn a relay error into guidance for the user.

    Args:
        status_code: HTTP status from the relay.
        message: The relay's ``error`` field, if present.

    Returns:
        Text to render in place of the assistant reply.
    """
    if status_code == 401:
        return "Invalid API key. Please check your OpenAI API key and try again."
    if status_code == 429:
        return "Rate limit exceeded. Please wait a moment and try again."
    if status_code == 402:
        return "Billing issue with your OpenAI account. Please check your plan and credits."
    return f"Error: {message or f'Request failed with status {status_code}'}"


def _extract_reply(body: Any) -> str | None:
    """Read ``choices[0].message.content`` from a chat-completion body."""
    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    return content if isinstance(content, str) else None


class ConversationManager:
    """Manages chat state for one user conversation."""

    def __init__(
        self,
        relay_url: str = DEFAULT_RELAY_URL,
        model: str | None = None,
        api_key: str | None = None,
        system_prompt: str | None = None,
        rasterize_pages: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 120.0,
    ) -> None:
        """Initialize the conversation.

        Args:
            relay_url: URL of the relay endpoint.
            model: Model identifier (relay default when None).
            api_key: Client-held API key, sent only when set.
            system_prompt: System message (instructions + knowledge by default).
            rasterize_pages: Send scanned PDFs as one image per page.
            transport: Optional httpx transport for tests.
            timeout: Request deadline in seconds.
        """
        self.relay_url = relay_url
        self.model = model
        self.api_key = api_key
        self.rasterize_pages = rasterize_pages
        self._system_prompt = system_prompt if system_prompt is not None else build_system_prompt()
        self._transport = transport
        self._timeout = timeout

        self._transcript: list[ChatMessage] = []
        self._pending: list[Attachment] = []
        self.state = SendState.IDLE
        self.last_error: str | None = None

    @property
    def transcript(self) -> tuple[ChatMessage, ...]:
        return tuple(self._transcript)

    @property
    def pending(self) -> tuple[Attachment, ...]:
        return tuple(self._pending)

    @property
    def is_sending(self) -> bool:
        return self.state is SendState.SENDING

    async def add_files(self, files: Iterable[tuple[str, bytes, str | None]]) -> list[Attachment]:
        """Encode uploads and queue them for the next message.

        Args:
            files: (name, content, media_type) tuples.

        Returns:
            The newly queued attachments.

        Raises:
            AttachmentError: If any file cannot be converted; nothing is queued then.
        """
        attachments = await encode_attachments(files, rasterize_pages=self.rasterize_pages)
        self._pending.extend(attachments)
        return attachments

    def remove_attachment(self, name: str) -> bool:
        """Drop a pending attachment by name. Returns True if one was removed."""
        for index, attachment in enumerate(self._pending):
            if attachment.name == name:
                del self._pending[index]
                return True
        return False

    def clear(self) -> None:
        """Start a new conversation."""
        if self.is_sending:
            raise ConversationBusyError("Cannot reset while a message is being sent")
        self._transcript.clear()
        self._pending.clear()
        self.state = SendState.IDLE
        self.last_error = None

    def build_user_message(self, text: str) -> ChatMessage:
        """Combine text and pending attachments into one user message."""
        text = text.strip()
        if not self._pending:
            return ChatMessage(role="user", content=text)

        parts: list[ContentPart] = [TextPart(text=text or ATTACHMENT_ONLY_PROMPT)]
        parts.extend(attachment.to_content_part() for attachment in self._pending)
        return ChatMessage(role="user", content=parts)

    def build_payload(self, user_message: ChatMessage) -> dict[str, Any]:
        """Assemble the relay request body for a new user turn.

        Order: system prompt, transcript so far, the new user message.
        """
        messages = [ChatMessage(role="system", content=self._system_prompt)]
        messages.extend(self._transcript)
        messages.append(user_message)

        payload: dict[str, Any] = {
            "messages": [message.model_dump(exclude_none=True) for message in messages],
        }
        if self.model:
            payload["model"] = self.model
        if self.api_key:
            payload["apiKey"] = self.api_key
        return payload

    async def send(self, text: str) -> TurnResult:
        """Send one user turn through the relay.

        Args:
            text: The user's message.

        Returns:
            TurnResult with the reply or a user-facing error.

        Raises:
            ConversationBusyError: If a send is already in flight.
            ValueError: If there is neither text nor an attachment to send.
        """
        if self.is_sending:
            raise ConversationBusyError("A message is already being sent")
        if not text.strip() and not self._pending:
            raise ValueError("Nothing to send")

        user_message = self.build_user_message(text)
        payload = self.build_payload(user_message)

        self.state = SendState.SENDING
        self.last_error = None
        self._transcript.append(user_message)
        self._pending.clear()

        try:
            result = await self._post(payload)
        except Exception:
            self.state = SendState.ERROR
            raise

        if result.ok:
            self._transcript.append(ChatMessage(role="assistant", content=result.reply or ""))
            self.state = SendState.IDLE
        else:
            self.last_error = result.error
            self.state = SendState.ERROR
        return result

    async def _post(self, payload: dict[str, Any]) -> TurnResult:
        """POST the payload to the relay and interpret the answer."""
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
                response = await client.post(self.relay_url, json=payload)
        except httpx.RequestError as e:
            logger.warning(f"Relay request failed: {e}")
            return TurnResult(error=f"Connection failed: {e}")

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.is_success:
            message = body.get("error") if isinstance(body, dict) else None
            logger.warning(f"Relay returned {response.status_code}: {message}")
            return TurnResult(
                error=classify_relay_error(response.status_code, message),
                status_code=response.status_code,
            )

        reply = _extract_reply(body)
        if reply is None:
            return TurnResult(
                error="Error: Unexpected response format from the model",
                status_code=response.status_code,
            )
        return TurnResult(reply=reply, status_code=response.status_code)
