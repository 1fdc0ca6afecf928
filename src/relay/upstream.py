"""HTTP client for the upstream chat-completion provider.

Outcomes of an upstream call are modelled as a discriminated union:
UpstreamSuccess carries the provider's JSON body, UpstreamFailure its status
and error message. Failures to reach the provider, or to parse a successful
response, raise UpstreamTransportError instead.
"""

import logging
from typing import Annotated, Any, Literal

import httpx
from pydantic import BaseModel, ConfigDict, Field

from src.relay.config import RelayConfig
from src.relay.errors import redact

logger = logging.getLogger(__name__)

GENERIC_UPSTREAM_ERROR = "OpenAI API error"


class UpstreamSuccess(BaseModel):
    """Provider accepted the call."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["success"] = "success"
    body: Any


class UpstreamFailure(BaseModel):
    """Provider answered with a non-success status."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["failure"] = "failure"
    status: int = Field(ge=100, le=599)
    message: str


UpstreamResult = Annotated[UpstreamSuccess | UpstreamFailure, Field(discriminator="kind")]


class UpstreamTransportError(Exception):
    """Raised when the provider cannot be reached or returns unparseable JSON."""

    pass


def extract_error_message(response: httpx.Response) -> str:
    """Pull the provider's own error message out of an error response.

    Args:
        response: Non-success upstream response.

    Returns:
        The ``error.message`` field when present, otherwise a generic message.
    """
    try:
        data = response.json()
    except ValueError:
        return GENERIC_UPSTREAM_ERROR

    if not isinstance(data, dict):
        return GENERIC_UPSTREAM_ERROR

    error = data.get("error")
    if isinstance(error, dict) and isinstance(error.get("message"), str) and error["message"]:
        return error["message"]
    if isinstance(error, str) and error:
        return error
    return GENERIC_UPSTREAM_ERROR


class UpstreamClient:
    """Sends chat-completion requests with fixed generation parameters."""

    def __init__(
        self,
        config: RelayConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the upstream client.

        Args:
            config: Relay configuration (URL, generation parameters, timeout).
            transport: Optional httpx transport, used by tests to stub the provider.
        """
        self._config = config
        self._transport = transport

    def build_payload(self, model: str, messages: list[dict]) -> dict[str, Any]:
        """Build the chat-completion request body."""
        return {
            "model": model,
            "messages": messages,
            "max_tokens": self._config.max_tokens,
            "temperature": self._config.temperature,
        }

    async def complete(
        self,
        model: str,
        messages: list[dict],
        api_key: str,
    ) -> UpstreamResult:
        """Call the provider's chat-completion endpoint.

        Args:
            model: Model identifier.
            messages: Messages in the provider's wire format.
            api_key: Credential forwarded as a bearer token.

        Returns:
            UpstreamSuccess or UpstreamFailure.

        Raises:
            UpstreamTransportError: If the provider is unreachable or its
                success body is not JSON.
        """
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }

        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self._config.timeout_seconds,
            ) as client:
                response = await client.post(
                    self._config.completions_url,
                    json=self.build_payload(model, messages),
                    headers=headers,
                )
        except httpx.TimeoutException as e:
            raise UpstreamTransportError(
                f"Upstream request timed out after {self._config.timeout_seconds:g}s"
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamTransportError(f"Failed to reach upstream provider: {e}") from e

        if not response.is_success:
            message = redact(extract_error_message(response), [api_key])
            logger.error(f"Upstream API error ({response.status_code}): {message}")
            return UpstreamFailure(status=response.status_code, message=message)

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamTransportError(f"Upstream returned invalid JSON: {e}") from e

        return UpstreamSuccess(body=body)
