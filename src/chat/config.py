"""Conversation core configuration with environment variable loading."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()

DEFAULT_ERROR_MESSAGE = "Sorry, I encountered an error."


def _optional_env(name: str) -> str | None:
    return os.getenv(name, "").strip() or None


def _flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


class ChatConfig(BaseModel):
    """Configuration for session persistence and streaming behaviour.

    Attributes:
        database_path: SQLite file holding the conversation threads.
        fragment_timeout: Seconds to wait for each fragment (None waits forever).
        typewriter: Re-emit each fragment one character at a time.
        typewriter_delay_ms: Pause between characters in typewriter mode.
        error_message: Assistant text shown when generation fails.
    """

    database_path: str = Field(
        default_factory=lambda: os.getenv("CHAT_DB_PATH", "data/chat.db"),
        validate_default=True,
        description="SQLite file for thread storage",
    )
    fragment_timeout: float | None = Field(
        default_factory=lambda: _optional_env("CHAT_FRAGMENT_TIMEOUT"),
        gt=0,
        validate_default=True,
        description="Per-fragment timeout in seconds",
    )
    typewriter: bool = Field(
        default_factory=lambda: _flag("CHAT_TYPEWRITER"),
        description="Split fragments into single characters",
    )
    typewriter_delay_ms: int = Field(default=0, ge=0, le=1000)
    error_message: str = Field(default=DEFAULT_ERROR_MESSAGE, min_length=1)

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, v: str) -> str:
        """Reject an empty database path."""
        if not v or not v.strip():
            raise ValueError("Database path required. Set CHAT_DB_PATH in .env")
        return v.strip()


def get_chat_config() -> ChatConfig:
    """Create chat configuration from environment."""
    return ChatConfig()
