"""Relay between chat clients and the upstream chat-completion provider.

Stateless request handling with explicit error mapping.

Responsibilities:
    - Preflight and HTTP method handling
    - Request validation before any upstream call
    - Credential sourcing (client-supplied or server-held)
    - Upstream call with fixed generation parameters and a deadline
    - Mapping upstream and local failures to stable JSON errors

Maintains clean separation from the HTTP framework: the service returns
plain outcomes, the API layer turns them into responses.
"""

from src.relay.config import CredentialMode, RelayConfig, get_relay_config
from src.relay.service import RelayService, get_relay_service

__all__ = [
    "CredentialMode",
    "RelayConfig",
    "RelayService",
    "get_relay_config",
    "get_relay_service",
]
