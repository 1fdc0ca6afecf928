"""Unit tests for RelayService, the upstream client and the error taxonomy.

Exercises the request lifecycle without an HTTP server.
"""

import json
from collections.abc import Callable
from unittest.mock import patch

import httpx
import pytest
import pytest_check as check

from src.models import RelayRequest
from src.relay.config import RelayConfig
from src.relay.errors import (
    BadRequest,
    ConfigurationError,
    InternalError,
    MethodNotAllowed,
    UpstreamError,
)
from src.relay.service import RelayService
from src.relay.upstream import (
    UpstreamClient,
    UpstreamFailure,
    UpstreamSuccess,
    UpstreamTransportError,
    extract_error_message,
)
from tests.conftest import COMPLETION_BODY, SERVER_KEY, USER_MESSAGES, VALID_KEY, RecordingUpstream

ServiceFactory = Callable[[RelayConfig, RecordingUpstream], RelayService]


def encode(body: object) -> bytes:
    return json.dumps(body).encode()


class TestHandleLifecycle:
    """Each terminal state of the request lifecycle."""

    async def test_preflight(self, relay_service: RelayService) -> None:
        outcome = await relay_service.handle("OPTIONS", b"")

        assert outcome.status_code == 200
        assert outcome.empty

    async def test_method_is_case_insensitive(self, relay_service: RelayService) -> None:
        outcome = await relay_service.handle("options", b"")
        assert outcome.status_code == 200

    async def test_wrong_method(self, relay_service: RelayService, upstream: RecordingUpstream) -> None:
        outcome = await relay_service.handle("GET", b"")

        assert outcome.status_code == 405
        assert outcome.body == {"error": "Method not allowed"}
        assert upstream.calls == 0

    async def test_invalid_request(self, relay_service: RelayService, upstream: RecordingUpstream) -> None:
        outcome = await relay_service.handle("POST", encode({"apiKey": VALID_KEY}))

        assert outcome.status_code == 400
        assert upstream.calls == 0

    async def test_success(self, relay_service: RelayService) -> None:
        outcome = await relay_service.handle(
            "POST", encode({"messages": USER_MESSAGES, "apiKey": VALID_KEY})
        )

        assert outcome.status_code == 200
        assert outcome.body == COMPLETION_BODY

    async def test_upstream_error(self, client_config: RelayConfig, make_service: ServiceFactory) -> None:
        stub = RecordingUpstream(429, {"error": {"message": "rate limited"}})
        service = make_service(client_config, stub)

        outcome = await service.handle("POST", encode({"messages": USER_MESSAGES, "apiKey": VALID_KEY}))

        assert outcome.status_code == 429
        assert outcome.body == {"error": "rate limited", "status": 429}

    async def test_transport_error(self, client_config: RelayConfig, make_service: ServiceFactory) -> None:
        stub = RecordingUpstream(error=lambda request: httpx.ConnectError("refused", request=request))
        service = make_service(client_config, stub)

        outcome = await service.handle("POST", encode({"messages": USER_MESSAGES, "apiKey": VALID_KEY}))

        assert outcome.status_code == 500
        assert outcome.body["error"] == "Internal server error"
        assert "refused" in outcome.body["message"]

    async def test_server_key_redacted_from_unhandled_errors(
        self, server_config: RelayConfig, make_service: ServiceFactory
    ) -> None:
        stub = RecordingUpstream(error=lambda request: RuntimeError(f"leaked {SERVER_KEY}"))
        service = make_service(server_config, stub)

        outcome = await service.handle("POST", encode({"messages": USER_MESSAGES}))

        assert outcome.status_code == 500
        assert SERVER_KEY not in json.dumps(outcome.body)
        assert "[REDACTED]" in outcome.body["message"]

    async def test_server_key_redacted_from_upstream_errors(
        self, server_config: RelayConfig, make_service: ServiceFactory
    ) -> None:
        stub = RecordingUpstream(401, {"error": {"message": f"Invalid key {SERVER_KEY}"}})
        service = make_service(server_config, stub)

        outcome = await service.handle("POST", encode({"messages": USER_MESSAGES}))

        assert outcome.status_code == 401
        assert outcome.body == {"error": "Invalid key [REDACTED]", "status": 401}

    async def test_client_key_redacted_from_upstream_errors(
        self, client_config: RelayConfig, make_service: ServiceFactory
    ) -> None:
        stub = RecordingUpstream(401, {"error": {"message": f"Incorrect API key provided: {VALID_KEY}"}})
        service = make_service(client_config, stub)

        outcome = await service.handle("POST", encode({"messages": USER_MESSAGES, "apiKey": VALID_KEY}))

        assert VALID_KEY not in json.dumps(outcome.body)

    async def test_null_upstream_body_is_not_empty(
        self, client_config: RelayConfig, make_service: ServiceFactory
    ) -> None:
        service = make_service(client_config, RecordingUpstream(content=b"null"))

        outcome = await service.handle("POST", encode({"messages": USER_MESSAGES, "apiKey": VALID_KEY}))

        assert outcome.status_code == 200
        assert outcome.body is None
        assert not outcome.empty

    async def test_empty_exception_message_still_reported(
        self, relay_service: RelayService
    ) -> None:
        with patch.object(relay_service, "relay", side_effect=KeyError()):
            outcome = await relay_service.handle(
                "POST", encode({"messages": USER_MESSAGES, "apiKey": VALID_KEY})
            )

        assert outcome.status_code == 500
        assert outcome.body["message"]


class TestParseRequest:
    """Validation of raw request bodies."""

    def test_parses_valid_body(self, relay_service: RelayService) -> None:
        request = relay_service.parse_request(
            encode({"messages": USER_MESSAGES, "apiKey": VALID_KEY, "model": "gpt-4o"})
        )

        check.equal(request.model, "gpt-4o")
        check.equal(request.api_key, VALID_KEY)
        check.equal(len(request.messages), 1)

    @pytest.mark.parametrize(
        "body",
        [b"", b"{", b"null", b"42", b'"text"'],
    )
    def test_rejects_non_object_bodies(self, relay_service: RelayService, body: bytes) -> None:
        with pytest.raises(BadRequest):
            relay_service.parse_request(body)

    def test_missing_fields_message_in_client_mode(self, relay_service: RelayService) -> None:
        with pytest.raises(BadRequest, match="messages and apiKey"):
            relay_service.parse_request(encode({"messages": USER_MESSAGES}))

    def test_validation_error_does_not_echo_input(self, relay_service: RelayService) -> None:
        body = {"messages": [{"role": "user", "content": 12345}], "apiKey": VALID_KEY}

        with pytest.raises(BadRequest) as exc_info:
            relay_service.parse_request(encode(body))

        assert exc_info.value.message.startswith("Invalid request")
        assert VALID_KEY not in exc_info.value.message


class TestResolveCredential:
    """Credential sourcing per mode."""

    def _request(self, api_key: str | None = None) -> RelayRequest:
        return RelayRequest(messages=USER_MESSAGES, apiKey=api_key)

    def test_client_mode_returns_client_key(self, relay_service: RelayService) -> None:
        assert relay_service.resolve_credential(self._request(VALID_KEY)) == VALID_KEY

    def test_client_mode_rejects_wrong_prefix(self, relay_service: RelayService) -> None:
        with pytest.raises(BadRequest, match="Must start with sk-"):
            relay_service.resolve_credential(self._request("key-123"))

    def test_client_mode_requires_key(self, relay_service: RelayService) -> None:
        with pytest.raises(BadRequest):
            relay_service.resolve_credential(self._request())

    def test_server_mode_uses_configured_key(
        self, server_config: RelayConfig, upstream: RecordingUpstream, make_service: ServiceFactory
    ) -> None:
        service = make_service(server_config, upstream)
        assert service.resolve_credential(self._request("sk-client")) == SERVER_KEY

    def test_server_mode_without_key(
        self, server_config: RelayConfig, upstream: RecordingUpstream, make_service: ServiceFactory
    ) -> None:
        config = server_config.model_copy(update={"api_key": None})
        service = make_service(config, upstream)

        with pytest.raises(ConfigurationError):
            service.resolve_credential(self._request())


class TestErrorBodies:
    """Each error kind renders its stable JSON shape."""

    def test_bodies_and_status_codes(self) -> None:
        check.equal(MethodNotAllowed("Method not allowed").status_code, 405)
        check.equal(BadRequest("bad").to_body(), {"error": "bad"})
        check.equal(
            ConfigurationError("OPENAI_API_KEY is not set").to_body(),
            {"error": "Server configuration error: OPENAI_API_KEY is not set"},
        )
        check.equal(UpstreamError(503, "overloaded").status_code, 503)
        check.equal(UpstreamError(503, "overloaded").to_body(), {"error": "overloaded", "status": 503})
        check.equal(
            InternalError("boom").to_body(),
            {"error": "Internal server error", "message": "boom"},
        )


class TestUpstreamClient:
    """Tests for the discriminated upstream results."""

    async def test_success_result(self, client_config: RelayConfig) -> None:
        stub = RecordingUpstream()
        client = UpstreamClient(client_config, transport=httpx.MockTransport(stub))

        result = await client.complete("gpt-4o-mini", USER_MESSAGES, VALID_KEY)

        assert isinstance(result, UpstreamSuccess)
        assert result.body == COMPLETION_BODY

    async def test_failure_result(self, client_config: RelayConfig) -> None:
        stub = RecordingUpstream(402, {"error": {"message": "quota exceeded"}})
        client = UpstreamClient(client_config, transport=httpx.MockTransport(stub))

        result = await client.complete("gpt-4o-mini", USER_MESSAGES, VALID_KEY)

        assert isinstance(result, UpstreamFailure)
        assert result.status == 402
        assert result.message == "quota exceeded"

    async def test_transport_error_raises(self, client_config: RelayConfig) -> None:
        stub = RecordingUpstream(error=lambda request: httpx.ConnectError("no route", request=request))
        client = UpstreamClient(client_config, transport=httpx.MockTransport(stub))

        with pytest.raises(UpstreamTransportError, match="no route"):
            await client.complete("gpt-4o-mini", USER_MESSAGES, VALID_KEY)

    def test_payload_has_fixed_generation_parameters(self, client_config: RelayConfig) -> None:
        payload = UpstreamClient(client_config).build_payload("gpt-4o", USER_MESSAGES)

        assert payload == {
            "model": "gpt-4o",
            "messages": USER_MESSAGES,
            "max_tokens": 1500,
            "temperature": 0.3,
        }

    @pytest.mark.parametrize(
        ("response", "expected"),
        [
            (httpx.Response(400, json={"error": {"message": "bad model"}}), "bad model"),
            (httpx.Response(400, json={"error": "plain text error"}), "plain text error"),
            (httpx.Response(400, json={"error": {"code": 1}}), "OpenAI API error"),
            (httpx.Response(400, json=["unexpected"]), "OpenAI API error"),
            (httpx.Response(400, content=b"oops"), "OpenAI API error"),
        ],
    )
    def test_extract_error_message(self, response: httpx.Response, expected: str) -> None:
        assert extract_error_message(response) == expected
