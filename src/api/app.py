"""FastAPI application factory and configuration.

Main application entry point with lifespan management and router
registration.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.api.routes import router as relay_router
from src.relay.config import CredentialMode, get_relay_config

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application startup and shutdown lifecycle.

    Reports the credential mode on startup so a misconfigured server-held
    deployment is visible before the first request.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the application while it runs.
    """
    config = get_relay_config()
    logger.info(f"Starting FIP Assist relay (credential mode: {config.credential_mode.value})")
    if config.credential_mode is CredentialMode.SERVER and not config.api_key:
        logger.error("Server credential mode is active but OPENAI_API_KEY is not set")
    yield
    logger.info("Shutting down FIP Assist relay...")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Cross-origin headers are set by the relay route itself, so no CORS
    middleware is installed.

    Returns:
        Configured FastAPI application instance.
    """
    application = FastAPI(
        title="FIP Assist Relay",
        description=(
            "Minimal relay between the FIP diagnostic chat assistant and an "
            "OpenAI-compatible chat-completion API. Validates requests, sources "
            "the credential, forwards the conversation and normalizes errors."
        ),
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    application.include_router(relay_router)

    @application.get("/health")
    async def health_check() -> dict[str, str]:
        """Check service health status."""
        return {"status": "healthy", "service": "fip-assist-relay"}

    return application


app = create_app()
