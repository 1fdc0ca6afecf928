"""Main application entry point.

Runs the FastAPI relay (port 8000) with the NiceGUI chat page mounted.
Environment variables are loaded from .env file.
"""

import logging
import os
import sys

from dotenv import load_dotenv

# Load environment variables before any other imports that might need them
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


def run_integrated() -> None:
    """Run the relay with NiceGUI mounted on the same server.

    FastAPI handles the relay route, NiceGUI handles the UI.
    Both accessible on port 8000.
    """
    import uvicorn
    from nicegui import ui

    from src.api.app import create_app
    from src.ui.chat_page import chat_page  # noqa: F401 - Registers the page

    app = create_app()

    ui.run_with(
        app,
        title="FIP Diagnostic Assistant",
        favicon="🐈",
        storage_secret=os.getenv("NICEGUI_STORAGE_SECRET", "fip-assist-secret"),
    )

    port = int(os.getenv("PORT", "8000"))
    logger.info(f"Starting integrated server on http://localhost:{port}")
    logger.info(f"Relay endpoint at http://localhost:{port}/api/openai")
    logger.info(f"Chat UI available at http://localhost:{port}/")

    uvicorn.run(
        app,
        host=os.getenv("HOST", "0.0.0.0"),
        port=port,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


def run_relay() -> None:
    """Run only the relay API, for deployments with a separate frontend."""
    import uvicorn

    uvicorn.run(
        "src.api.app:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


def run_ui() -> None:
    """Run only the chat page, relaying through API_BASE_URL.

    Pairs with RUN_MODE=relay on another host or port.
    """
    from src.client.conversation import DEFAULT_RELAY_URL
    from src.ui.chat_page import main as run_chat_page

    logger.info(f"Chat UI relaying through {DEFAULT_RELAY_URL}")
    run_chat_page()


def main() -> None:
    """Application entry point.

    RUN_MODE selects the layout:
        - integrated (default): relay + UI on port 8000
        - relay: relay API only
        - ui: chat page only on port 8080, using the relay at API_BASE_URL
    """
    mode = os.getenv("RUN_MODE", "integrated").lower()

    logger.info(f"Starting FIP Assist in {mode} mode")

    if mode == "relay":
        run_relay()
    elif mode == "ui":
        run_ui()
    else:
        run_integrated()


if __name__ == "__main__":
    main()
