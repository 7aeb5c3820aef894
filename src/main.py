"""Main application entry point.

Runs FastAPI with the NiceGUI chat interface mounted on the same server.
Environment variables are loaded from .env file.
"""

import logging
import os
import sys
from typing import TYPE_CHECKING

from dotenv import load_dotenv

if TYPE_CHECKING:
    from src.chat.service import ChatService

# Load environment variables before any other imports that might need them
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


def build_service() -> "ChatService":
    """Construct the conversation service from environment configuration.

    Returns:
        ChatService wired to the SQLite thread store and the Agno generator.
    """
    from src.agent.chat_agent import AgentGenerator
    from src.chat.config import get_chat_config
    from src.chat.service import ChatService
    from src.storage.thread_store import SqliteThreadStore

    config = get_chat_config()
    store = SqliteThreadStore(config.database_path)
    logger.info(f"Thread store: {config.database_path}")
    return ChatService(store=store, generator=AgentGenerator(), config=config)


def main() -> None:
    """Run FastAPI with NiceGUI mounted on the same server.

    FastAPI handles API routes, NiceGUI handles the UI.
    Both share one ChatService and are accessible on one port.
    """
    import uvicorn
    from nicegui import ui

    from src.api.app import create_app
    from src.ui.chat_page import register_chat_page

    service = build_service()
    app = create_app(service)
    register_chat_page(service)

    # Mount NiceGUI onto FastAPI
    ui.run_with(
        app,
        title="Chat",
        favicon="💬",
        storage_secret=os.getenv("NICEGUI_STORAGE_SECRET", "streaming-chat-secret"),
    )

    port = int(os.getenv("PORT", "8000"))
    logger.info(f"Starting server on http://localhost:{port}")
    logger.info(f"API docs available at http://localhost:{port}/docs")

    uvicorn.run(
        app,
        host=os.getenv("HOST", "0.0.0.0"),
        port=port,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
