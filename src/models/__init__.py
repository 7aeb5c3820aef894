"""Pydantic models for conversations and API payloads.

Provides type safety, validation, forward-compatible loading of stored
records, and automatic OpenAPI documentation.

Models:
    - Message: One turn in a conversation
    - Thread / ThreadSummary: Persisted conversation and its sidebar metadata
    - ThreadGroup: Recency bucket of thread summaries
    - SessionSnapshot: Observable view of the active session
    - ChatRequest / StreamChunk: Streaming endpoint payloads
"""

from src.models.schemas import (
    DEFAULT_TITLE,
    TITLE_MAX_LENGTH,
    ChatRequest,
    Message,
    Role,
    SendOutcome,
    SendResult,
    SessionResponse,
    SessionSnapshot,
    StreamChunk,
    StreamPhase,
    StreamStatus,
    Thread,
    ThreadCreate,
    ThreadGroup,
    ThreadRename,
    ThreadSummary,
)

__all__ = [
    "DEFAULT_TITLE",
    "TITLE_MAX_LENGTH",
    "ChatRequest",
    "Message",
    "Role",
    "SendOutcome",
    "SendResult",
    "SessionResponse",
    "SessionSnapshot",
    "StreamChunk",
    "StreamPhase",
    "StreamStatus",
    "Thread",
    "ThreadCreate",
    "ThreadGroup",
    "ThreadRename",
    "ThreadSummary",
]
