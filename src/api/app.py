"""FastAPI application factory and configuration.

Application entry point with lifespan management, middleware, error
mapping and router registration.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.routes import chat_router, threads_router
from src.chat.service import ChatService
from src.errors import (
    ConcurrentSendRejected,
    StorageUnavailable,
    ThreadBusy,
    ThreadNotFound,
)

logger = logging.getLogger(__name__)

_ERROR_STATUS = {
    ThreadNotFound: status.HTTP_404_NOT_FOUND,
    ThreadBusy: status.HTTP_409_CONFLICT,
    ConcurrentSendRejected: status.HTTP_409_CONFLICT,
    StorageUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the application while it runs.
    """
    logger.info("Starting chat API...")
    yield
    logger.info("Shutting down chat API...")
    await app.state.chat_service.close()


async def _chat_error_handler(request: Request, exc: Exception) -> JSONResponse:
    status_code = _ERROR_STATUS[type(exc)]
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app(service: ChatService) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        service: Conversation service shared with the UI.

    Returns:
        Configured FastAPI application instance.
    """
    application = FastAPI(
        title="Streaming Chat API",
        description=(
            "Conversational client API. Streams assistant replies as they are "
            "generated, supports mid-flight cancellation, and persists "
            "conversation threads locally."
        ),
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    application.state.chat_service = service

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    for error_type in _ERROR_STATUS:
        application.add_exception_handler(error_type, _chat_error_handler)

    application.include_router(threads_router)
    application.include_router(chat_router)

    @application.get("/health")
    async def health_check() -> dict[str, str]:
        """Check service health status."""
        return {"status": "healthy", "service": "streaming-chat"}

    return application
