"""FastAPI endpoints for the FIP Assist relay.

Endpoints:
    - GET /health: Service health status
    - OPTIONS /api/openai: Cross-origin preflight
    - POST /api/openai: Relay a conversation turn to the LLM provider
"""

from src.api.app import app, create_app

__all__ = ["app", "create_app"]
