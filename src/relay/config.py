"""Relay configuration with environment variable loading.

Pydantic-based configuration for the chat-completion relay.
Supports OpenAI and OpenAI-compatible APIs via custom base URL.
"""

import os
from enum import Enum

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file
load_dotenv()

DEFAULT_BASE_URL = "https://api.openai.com/v1"


class CredentialMode(str, Enum):
    """Where the upstream API key comes from.

    Exactly one mode is active per deployment.
    """

    CLIENT = "client"
    SERVER = "server"


class RelayConfig(BaseModel):
    """Configuration for the relay service.

    Attributes:
        credential_mode: Whether the key is supplied per request or held server-side.
        api_key: Server-held API key (only read in server mode).
        api_key_prefix: Prefix a client-supplied key must start with.
        base_url: Upstream API base URL.
        default_model: Model used when the request does not name one.
        temperature: Sampling temperature sent upstream.
        max_tokens: Token ceiling for the generated reply.
        timeout_seconds: Deadline for the whole upstream call.
    """

    credential_mode: CredentialMode = Field(
        default_factory=lambda: os.getenv("RELAY_CREDENTIAL_MODE", "client"),
        validate_default=True,
        description="'client' (key in request body) or 'server' (key from environment)",
    )
    api_key: str | None = Field(
        default_factory=lambda: os.getenv("OPENAI_API_KEY") or os.getenv("LLM_API_KEY"),
        repr=False,
        description="Server-held API key for the LLM provider",
    )
    api_key_prefix: str = Field(default="sk-", min_length=1)
    base_url: str = Field(
        default_factory=lambda: os.getenv("LLM_BASE_URL") or DEFAULT_BASE_URL,
        description="API base URL",
    )
    default_model: str = Field(
        default_factory=lambda: os.getenv("LLM_MODEL", "gpt-4o-mini"),
        min_length=1,
        description="Model to use when the request omits one",
    )
    temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for response generation",
    )
    max_tokens: int = Field(
        default=1500,
        ge=1,
        le=128000,
        description="Maximum tokens in generated response",
    )
    timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("RELAY_TIMEOUT_SECONDS", "60")),
        gt=0,
        description="Upstream request deadline in seconds",
    )

    @field_validator("credential_mode", mode="before")
    @classmethod
    def normalize_credential_mode(cls, v: object) -> object:
        """Accept mode names in any case."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("api_key")
    @classmethod
    def strip_api_key(cls, v: str | None) -> str | None:
        """Treat blank keys as missing."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def completions_url(self) -> str:
        """Full URL of the upstream chat-completion endpoint."""
        return f"{self.base_url}/chat/completions"


def get_relay_config() -> RelayConfig:
    """Create relay configuration from environment.

    Returns:
        Configured RelayConfig instance.

    Raises:
        ValidationError: If an environment value is out of range.
    """
    return RelayConfig()
