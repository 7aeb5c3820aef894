"""Persistent storage for conversation threads.

Responsibilities:
    - Durable upsert of a thread with its full message list
    - Loading every stored thread at startup
    - Atomic thread deletion

Raises StorageUnavailable for any backing-medium failure so callers can keep
their in-memory transcript as the only valid copy.
"""

from src.storage.thread_store import SqliteThreadStore, ThreadStore

__all__ = ["SqliteThreadStore", "ThreadStore"]
