"""Streaming conversation session manager.

Turns a submitted message into a live sequence of text fragments, supports
mid-flight cancellation, and persists conversations consistently with the
thread sidebar.

Components:
    - state: Active thread messages and streaming flags
    - controller: Lifecycle of one generation request, from send to commit
    - directory: Date-grouped, searchable thread summaries
    - service: Entry points used by the API and UI
"""

from src.chat.config import ChatConfig, get_chat_config
from src.chat.controller import StreamController
from src.chat.directory import ThreadDirectory, group_threads
from src.chat.service import ChatService
from src.chat.state import SessionState

__all__ = [
    "ChatConfig",
    "ChatService",
    "SessionState",
    "StreamController",
    "ThreadDirectory",
    "get_chat_config",
    "group_threads",
]
