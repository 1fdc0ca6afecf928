"""Pytest fixtures and shared test configuration.

Fixtures:
    - upstream: Recording stub for the chat-completion provider
    - client_config / server_config: Relay configs for both credential modes
    - make_service: Factory wiring a RelayService to a stub upstream
    - relay_service: Client-mode service backed by ``upstream``
    - async_client: HTTPX client for the FastAPI app using ``relay_service``

Helpers:
    - make_pdf: In-memory PDF with blank pages
    - make_scanned_pdf: In-memory PDF with one JPEG image per page
"""

import io
import json
from collections.abc import AsyncGenerator, Callable
from typing import Any

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image
from pypdf import PdfWriter

from src.api import app
from src.relay.config import RelayConfig
from src.relay.service import RelayService, get_relay_service
from src.relay.upstream import UpstreamClient

VALID_KEY = "sk-test-key-12345"
SERVER_KEY = "sk-server-secret-67890"
UPSTREAM_BASE_URL = "https://upstream.test/v1"

COMPLETION_BODY: dict[str, Any] = {
    "id": "chatcmpl-123",
    "object": "chat.completion",
    "model": "gpt-4o-mini",
    "choices": [
        {
            "index": 0,
            "message": {"role": "assistant", "content": "ok"},
            "finish_reason": "stop",
        }
    ],
    "usage": {"prompt_tokens": 12, "completion_tokens": 1, "total_tokens": 13},
}

USER_MESSAGES: list[dict[str, Any]] = [
    {"role": "user", "content": "My cat has a distended abdomen and fever."}
]


class RecordingUpstream:
    """Stub provider that records every request it receives."""

    def __init__(
        self,
        status_code: int = 200,
        json_body: Any = None,
        content: bytes | None = None,
        error: Callable[[httpx.Request], Exception] | None = None,
    ) -> None:
        self.status_code = status_code
        self.json_body = COMPLETION_BODY if json_body is None else json_body
        self.content = content
        self.error = error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error(request)
        if self.content is not None:
            return httpx.Response(self.status_code, content=self.content)
        return httpx.Response(self.status_code, json=self.json_body)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def upstream() -> RecordingUpstream:
    """Stub provider answering 200 with a minimal completion."""
    return RecordingUpstream()


@pytest.fixture
def client_config() -> RelayConfig:
    """Relay config expecting the API key in the request body."""
    return RelayConfig(
        credential_mode="client",
        api_key=None,
        base_url=UPSTREAM_BASE_URL,
        default_model="gpt-4o-mini",
        timeout_seconds=5,
    )


@pytest.fixture
def server_config() -> RelayConfig:
    """Relay config holding the API key server-side."""
    return RelayConfig(
        credential_mode="server",
        api_key=SERVER_KEY,
        base_url=UPSTREAM_BASE_URL,
        default_model="gpt-4o-mini",
        timeout_seconds=5,
    )


@pytest.fixture
def make_service() -> Callable[[RelayConfig, RecordingUpstream], RelayService]:
    """Build a RelayService whose upstream calls go to a stub."""

    def factory(config: RelayConfig, stub: RecordingUpstream) -> RelayService:
        transport = httpx.MockTransport(stub)
        return RelayService(config=config, upstream=UpstreamClient(config, transport=transport))

    return factory


@pytest.fixture
def relay_service(
    client_config: RelayConfig,
    upstream: RecordingUpstream,
    make_service: Callable[[RelayConfig, RecordingUpstream], RelayService],
) -> RelayService:
    return make_service(client_config, upstream)


@pytest.fixture
async def async_client(relay_service: RelayService) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for the app with the stubbed relay service.

    Yields:
        Configured AsyncClient for making test requests.
    """
    app.dependency_overrides[get_relay_service] = lambda: relay_service
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


def make_pdf(pages: int = 1) -> bytes:
    """Build a PDF with blank pages."""
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=612, height=792)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def make_scanned_pdf(pages: int = 2) -> bytes:
    """Build a PDF whose pages are each a single JPEG image, like a scan."""
    images = [
        Image.new("RGB", (64, 48), color=(40 * number, 120, 160))
        for number in range(pages)
    ]
    buffer = io.BytesIO()
    images[0].save(buffer, format="PDF", save_all=True, append_images=images[1:])
    return buffer.getvalue()
