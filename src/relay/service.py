"""Relay service between browser clients and the chat-completion provider.

Core module for request validation, credential sourcing and error mapping.

Architecture Decisions:

1. **Transport-agnostic handler** - ``handle(method, body)`` returns a
   RelayOutcome (status + JSON body) instead of a framework response. The
   FastAPI route only adds headers, so every branch of the request lifecycle
   can be tested without an HTTP server.

2. **One credential mode per deployment** - The key either arrives in the
   request body (client mode, checked against the provider prefix) or is read
   from configuration (server mode). A client-supplied key is ignored in
   server mode.

3. **Discriminated upstream results** - The upstream client returns
   UpstreamSuccess or UpstreamFailure and raises only for transport problems,
   so the mapping below is exhaustive.

4. **Stateless** - Nothing from a request outlives it. The singleton only
   holds static configuration.

Request lifecycle::

    Received -> Preflight                          -> 200, empty body
    Received -> WrongMethod                        -> 405
    Received -> Validating -> Invalid              -> 400 (500 if misconfigured)
    Received -> Validating -> Forwarding -> Upstream error   -> upstream status
    Received -> Validating -> Forwarding -> Transport error  -> 500
    Received -> Validating -> Forwarding -> Success          -> 200
"""

import json
import logging
from typing import Any

from pydantic import ValidationError

from src.models import RelayRequest
from src.models.schemas import RelayOutcome
from src.relay.config import CredentialMode, RelayConfig, get_relay_config
from src.relay.errors import (
    BadRequest,
    ConfigurationError,
    InternalError,
    MethodNotAllowed,
    RelayError,
    UpstreamError,
    redact,
)
from src.relay.upstream import (
    UpstreamClient,
    UpstreamFailure,
    UpstreamSuccess,
    UpstreamTransportError,
)

logger = logging.getLogger(__name__)


def _summarize_validation_error(error: ValidationError) -> str:
    """Turn a pydantic error into a one-line message without echoing input."""
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    if location:
        return f"Invalid request: {location}: {first['msg']}"
    return f"Invalid request: {first['msg']}"


class RelayService:
    """Validates relay requests and forwards them upstream.

    Wraps the upstream client with:
    - Preflight and method handling
    - Request validation before any upstream call
    - Credential sourcing for the configured mode
    - Mapping of every failure to a stable JSON error body
    """

    def __init__(
        self,
        config: RelayConfig | None = None,
        upstream: UpstreamClient | None = None,
    ) -> None:
        """Initialize the relay service.

        Args:
            config: Optional relay configuration.
                    Loads from environment if not provided.
            upstream: Optional upstream client (built from config if omitted).
        """
        self._config = config or get_relay_config()
        self._upstream = upstream or UpstreamClient(self._config)

    @property
    def config(self) -> RelayConfig:
        return self._config

    def _missing_fields_message(self) -> str:
        if self._config.credential_mode is CredentialMode.CLIENT:
            return "Missing required fields: messages and apiKey"
        return "Missing required field: messages"

    def parse_request(self, body: bytes) -> RelayRequest:
        """Parse and validate a raw request body.

        Args:
            body: Raw JSON bytes.

        Returns:
            The validated RelayRequest.

        Raises:
            BadRequest: If the body is not JSON, lacks required fields or
                does not match the message schema.
        """
        try:
            payload = json.loads(body or b"")
        except ValueError as e:
            raise BadRequest("Invalid JSON body") from e

        if not isinstance(payload, dict):
            raise BadRequest("Request body must be a JSON object")

        missing_key = (
            self._config.credential_mode is CredentialMode.CLIENT and not payload.get("apiKey")
        )
        if not payload.get("messages") or missing_key:
            raise BadRequest(self._missing_fields_message())

        try:
            return RelayRequest.model_validate(payload)
        except ValidationError as e:
            raise BadRequest(_summarize_validation_error(e)) from e

    def resolve_credential(self, request: RelayRequest) -> str:
        """Pick the API key for the configured credential mode.

        Raises:
            BadRequest: Client key missing or with the wrong prefix.
            ConfigurationError: Server mode without a configured key.
        """
        if self._config.credential_mode is CredentialMode.SERVER:
            if request.api_key:
                logger.debug("Ignoring client-supplied apiKey in server credential mode")
            if not self._config.api_key:
                raise ConfigurationError("OPENAI_API_KEY is not set")
            return self._config.api_key

        if not request.api_key:
            raise BadRequest(self._missing_fields_message())
        prefix = self._config.api_key_prefix
        if not request.api_key.startswith(prefix):
            raise BadRequest(f"Invalid API key format. Must start with {prefix}")
        return request.api_key

    async def relay(self, request: RelayRequest, api_key: str) -> Any:
        """Forward a validated request and return the upstream body.

        Args:
            request: Validated relay request.
            api_key: Credential to forward.

        Returns:
            The upstream JSON body, unchanged.

        Raises:
            UpstreamError: Provider answered with a non-success status.
            InternalError: Provider unreachable or response not JSON.
        """
        model = request.model or self._config.default_model
        logger.info(f"Calling upstream chat completion (model={model}, messages={len(request.messages)})")

        try:
            result = await self._upstream.complete(model, request.upstream_messages(), api_key)
        except UpstreamTransportError as e:
            raise InternalError(str(e)) from e

        if isinstance(result, UpstreamFailure):
            raise UpstreamError(result.status, result.message)
        if isinstance(result, UpstreamSuccess):
            return result.body
        raise InternalError(f"Unexpected upstream result: {type(result).__name__}")

    async def handle(self, method: str, body: bytes) -> RelayOutcome:
        """Run one request through the relay lifecycle.

        Args:
            method: HTTP method of the inbound request.
            body: Raw request body.

        Returns:
            RelayOutcome with the status code and JSON body to send back.
        """
        method = method.upper()
        if method == "OPTIONS":
            return RelayOutcome(status_code=200, empty=True)

        api_key: str | None = None
        try:
            if method != "POST":
                raise MethodNotAllowed("Method not allowed")
            request = self.parse_request(body)
            api_key = self.resolve_credential(request)
            upstream_body = await self.relay(request, api_key)
            return RelayOutcome(status_code=200, body=upstream_body)

        except RelayError as e:
            e.message = redact(e.message, [api_key, self._config.api_key])
            if isinstance(e, InternalError):
                logger.error(f"Relay failed: {e.message}")
            elif not isinstance(e, UpstreamError):
                logger.warning(f"Rejected relay request ({e.status_code}): {e.message}")
            return RelayOutcome(status_code=e.status_code, body=e.to_body())

        except Exception as e:
            message = redact(str(e), [api_key, self._config.api_key]) or type(e).__name__
            logger.exception(f"Unhandled relay failure: {message}")
            error = InternalError(message)
            return RelayOutcome(status_code=error.status_code, body=error.to_body())


# Module-level singleton instance
_relay_service: RelayService | None = None


def get_relay_service() -> RelayService:
    """Get or create the global relay service.

    Returns:
        The RelayService instance.
    """
    global _relay_service
    if _relay_service is None:
        _relay_service = RelayService()
    return _relay_service
