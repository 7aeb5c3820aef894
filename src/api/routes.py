"""Chat and thread endpoints.

Thin HTTP layer over ChatService: thread listing and management, session
snapshots, and Server-Sent Events streaming of assistant replies.
"""

import asyncio
import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from src.chat.service import ChatService
from src.errors import ChatError
from src.models.schemas import (
    ChatRequest,
    SendOutcome,
    SessionResponse,
    StreamChunk,
    StreamStatus,
    Thread,
    ThreadCreate,
    ThreadGroup,
    ThreadRename,
    ThreadSummary,
)

logger = logging.getLogger(__name__)

threads_router = APIRouter(prefix="/threads", tags=["threads"])
chat_router = APIRouter(tags=["chat"])

_OUTCOME_STATUS = {
    SendOutcome.COMPLETED: StreamStatus.COMPLETE,
    SendOutcome.CANCELLED: StreamStatus.CANCELLED,
    SendOutcome.FAILED: StreamStatus.ERROR,
}


def get_chat_service(request: Request) -> ChatService:
    """Return the ChatService the application was created with."""
    return request.app.state.chat_service


@threads_router.get("", response_model=list[ThreadGroup])
async def list_threads(
    q: str = "",
    service: ChatService = Depends(get_chat_service),
) -> list[ThreadGroup]:
    """List thread summaries grouped by recency, optionally filtered by title."""
    return service.thread_groups(q)


@threads_router.post("", response_model=ThreadSummary, status_code=status.HTTP_201_CREATED)
async def create_thread(
    payload: ThreadCreate,
    service: ChatService = Depends(get_chat_service),
) -> ThreadSummary:
    """Create an empty thread and make it active."""
    return service.create_thread(payload.title)


@threads_router.post("/new", response_model=SessionResponse)
async def new_chat(service: ChatService = Depends(get_chat_service)) -> SessionResponse:
    """Clear the active thread so the next message starts a new one."""
    service.new_chat()
    return SessionResponse.from_snapshot(service.snapshot())


@threads_router.get("/{thread_id}", response_model=Thread)
async def get_thread(
    thread_id: str,
    service: ChatService = Depends(get_chat_service),
) -> Thread:
    return service.get_thread(thread_id)


@threads_router.post("/{thread_id}/select", response_model=SessionResponse)
async def select_thread(
    thread_id: str,
    service: ChatService = Depends(get_chat_service),
) -> SessionResponse:
    """Load a thread into the session."""
    return SessionResponse.from_snapshot(service.select_thread(thread_id))


@threads_router.patch("/{thread_id}", response_model=ThreadSummary)
async def rename_thread(
    thread_id: str,
    payload: ThreadRename,
    service: ChatService = Depends(get_chat_service),
) -> ThreadSummary:
    try:
        return service.rename_thread(thread_id, payload.title)
    except NotImplementedError as e:
        raise HTTPException(status_code=status.HTTP_501_NOT_IMPLEMENTED, detail=str(e)) from e


@threads_router.delete("/{thread_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_thread(
    thread_id: str,
    service: ChatService = Depends(get_chat_service),
) -> None:
    service.delete_thread(thread_id)


@chat_router.get("/session", response_model=SessionResponse)
async def get_session(service: ChatService = Depends(get_chat_service)) -> SessionResponse:
    """Return the current message list and streaming flags."""
    return SessionResponse.from_snapshot(service.snapshot())


@chat_router.post("/chat/stop", response_model=SessionResponse)
async def stop_chat(service: ChatService = Depends(get_chat_service)) -> SessionResponse:
    """Cancel the in-flight reply. Safe to call when nothing is streaming."""
    service.stop()
    return SessionResponse.from_snapshot(service.snapshot())


def _sse(chunk: StreamChunk) -> str:
    return f"data: {chunk.model_dump_json()}\n\n"


async def _reply_events(service: ChatService, message: str) -> AsyncIterator[str]:
    """Relay reply fragments from a send running in its own task.

    The send keeps running (and commits) even if the client disconnects;
    a disconnect stops generation at the next fragment.
    """
    fragments: asyncio.Queue[str] = asyncio.Queue()
    send_task = asyncio.create_task(service.send(message, on_fragment=fragments.put_nowait))
    yield _sse(StreamChunk(content="", done=False, status=StreamStatus.RECEIVED))

    try:
        while True:
            next_fragment = asyncio.ensure_future(fragments.get())
            done, _ = await asyncio.wait(
                {next_fragment, send_task}, return_when=asyncio.FIRST_COMPLETED
            )
            if next_fragment not in done:
                next_fragment.cancel()
                break
            yield _sse(
                StreamChunk(
                    content=next_fragment.result(),
                    done=False,
                    status=StreamStatus.GENERATING,
                    thread_id=service.session.current_thread_id,
                )
            )

        while not fragments.empty():
            yield _sse(
                StreamChunk(
                    content=fragments.get_nowait(),
                    done=False,
                    status=StreamStatus.GENERATING,
                    thread_id=service.session.current_thread_id,
                )
            )

        try:
            result = send_task.result()
        except ChatError as e:
            logger.warning(f"Chat stream ended with error: {e}")
            yield _sse(StreamChunk(content="", done=True, status=StreamStatus.ERROR, error=str(e)))
            return

        yield _sse(
            StreamChunk(
                content="",
                done=True,
                status=_OUTCOME_STATUS[result.outcome],
                thread_id=result.thread_id,
                error=result.content if result.outcome is SendOutcome.FAILED else None,
            )
        )
    finally:
        if not send_task.done():
            service.stop()


@chat_router.post("/chat/stream")
async def stream_chat(
    payload: ChatRequest,
    service: ChatService = Depends(get_chat_service),
) -> StreamingResponse:
    """Stream the assistant reply as Server-Sent Events.

    Events carry StreamChunk JSON: a ``received`` event, one ``generating``
    event per fragment, and a final ``done`` event with the outcome.

    Raises:
        409: A reply is already streaming.
    """
    if service.controller.busy:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A reply is already being generated",
        )
    return StreamingResponse(
        _reply_events(service, payload.message),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
