"""Pydantic models for conversations, session snapshots and API payloads.

Domain records serialize with camelCase keys so stored threads keep the
``{id, title, createdAt, updatedAt, messages}`` record shape.
"""

import uuid
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

TITLE_MAX_LENGTH = 50
DEFAULT_TITLE = "New Chat"


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(UTC)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class Role(str, Enum):
    """Author of a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"


class StreamPhase(str, Enum):
    """Transient streaming status of a session."""

    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"


class SendOutcome(str, Enum):
    """Terminal state of one send operation."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class StreamStatus(str, Enum):
    """Status values for streaming updates."""

    RECEIVED = "received"
    GENERATING = "generating"
    COMPLETE = "complete"
    CANCELLED = "cancelled"
    ERROR = "error"


class _Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Message(_Record):
    """A single turn in a conversation.

    Attributes:
        id: Unique identifier, never reused.
        role: Speaker of this turn.
        content: Message text. Assistant content grows while streaming.
        timestamp: Creation time.
        is_error: Marks a failed assistant turn.
    """

    id: str = Field(default_factory=new_id)
    role: Role
    content: str = ""
    timestamp: datetime = Field(default_factory=utcnow)
    is_error: bool = False

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)


class ThreadSummary(_Record):
    """Thread metadata shown in the sidebar.

    Attributes:
        id: Unique thread identifier.
        title: Summary derived from the first user message.
        created_at: Creation time.
        updated_at: Last activity time, used for sorting and grouping.
    """

    id: str = Field(default_factory=new_id)
    title: str = DEFAULT_TITLE
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime | None = None

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        """Treat naive timestamps from older records as UTC."""
        return _as_utc(v)

    @model_validator(mode="after")
    def default_updated_at(self) -> "ThreadSummary":
        """Older records carry no updatedAt; fall back to createdAt."""
        if self.updated_at is None:
            self.updated_at = self.created_at
        return self

    @classmethod
    def titled(cls, text: str, now: datetime | None = None) -> "ThreadSummary":
        """Create metadata for a new thread titled after its first message."""
        now = now or utcnow()
        title = text.strip()[:TITLE_MAX_LENGTH] or DEFAULT_TITLE
        return cls(title=title, created_at=now, updated_at=now)


class Thread(ThreadSummary):
    """A persisted conversation: metadata plus its ordered messages."""

    messages: list[Message] = Field(default_factory=list)

    def summary(self) -> ThreadSummary:
        return ThreadSummary.model_validate(self.model_dump(exclude={"messages"}))


class ThreadGroup(BaseModel):
    """Threads sharing a recency bucket, most recent first."""

    label: str
    threads: list[ThreadSummary]


class SessionSnapshot(BaseModel):
    """Observable view of the session consumed by the presentation layer.

    Attributes:
        current_thread_id: Active thread, or None in the new-chat state.
        messages: Copy of the active thread's messages.
        phase: Streaming phase the flags are derived from.
    """

    current_thread_id: str | None = None
    messages: list[Message] = Field(default_factory=list)
    phase: StreamPhase = StreamPhase.IDLE

    @property
    def is_loading(self) -> bool:
        return self.phase is StreamPhase.REQUESTING

    @property
    def is_streaming(self) -> bool:
        return self.phase is not StreamPhase.IDLE


class SendResult(BaseModel):
    """Result of a finished send operation.

    Attributes:
        thread_id: Thread the exchange was committed to.
        outcome: Terminal state reached.
        content: Final assistant content (partial, complete or error text).
    """

    thread_id: str
    outcome: SendOutcome
    content: str = ""


class ChatRequest(BaseModel):
    """Request payload for the chat streaming endpoint.

    Attributes:
        message: User's prompt.
    """

    message: str = Field(..., min_length=1)

    @field_validator("message", mode="before")
    @classmethod
    def strip_message(cls, v: str) -> str:
        """Strip whitespace from message before validation."""
        if isinstance(v, str):
            return v.strip()
        return v


class ThreadCreate(BaseModel):
    """Request payload for creating an empty thread."""

    title: str = DEFAULT_TITLE


class ThreadRename(BaseModel):
    """Request payload for renaming a thread."""

    title: str = Field(..., min_length=1)


class StreamChunk(BaseModel):
    """A chunk of streamed response data.

    Attributes:
        content: Text delta carried by this chunk.
        done: Whether this is the final chunk.
        status: Current processing status.
        thread_id: Thread receiving the reply.
        error: Error message if something went wrong.
    """

    content: str
    done: bool
    status: StreamStatus | None = None
    thread_id: str | None = None
    error: str | None = None


class SessionResponse(BaseModel):
    """Serialized session snapshot for the HTTP API."""

    current_thread_id: str | None
    messages: list[Message]
    is_loading: bool
    is_streaming: bool

    @classmethod
    def from_snapshot(cls, snapshot: SessionSnapshot) -> "SessionResponse":
        return cls(
            current_thread_id=snapshot.current_thread_id,
            messages=snapshot.messages,
            is_loading=snapshot.is_loading,
            is_streaming=snapshot.is_streaming,
        )
