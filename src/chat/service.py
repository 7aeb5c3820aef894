"""Conversation service exposed to the presentation layer.

Wires the persistent store, session state, thread directory and stream
controller together with explicit references. One instance is built at
process start and closed at shutdown.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from src.agent.chat_agent import TextGenerator
from src.chat.config import ChatConfig
from src.chat.controller import StreamController
from src.chat.directory import GroupsListener, ThreadDirectory
from src.chat.state import SessionState, SnapshotListener
from src.errors import StorageUnavailable, ThreadBusy, ThreadNotFound
from src.models.schemas import (
    SendResult,
    SessionSnapshot,
    Thread,
    ThreadGroup,
    ThreadSummary,
    utcnow,
)
from src.storage.thread_store import ThreadStore

logger = logging.getLogger(__name__)


class ChatService:
    """Entry points for sending, stopping and managing conversation threads."""

    def __init__(
        self,
        store: ThreadStore,
        generator: TextGenerator,
        config: ChatConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the service and load the thread directory.

        A store that cannot be read leaves the directory empty; stored
        records are not touched.

        Args:
            store: Durable thread storage.
            generator: Remote text generator.
            config: Optional chat configuration.
            clock: Time source for thread timestamps and grouping.
        """
        self._store = store
        self._created_listeners: list[Callable[[str], None]] = []
        self.session = SessionState(store)
        self.directory = ThreadDirectory(clock=clock)
        self.controller = StreamController(
            session=self.session,
            directory=self.directory,
            store=store,
            generator=generator,
            config=config,
            on_thread_created=self._thread_created,
        )
        try:
            self.directory.load(store)
        except StorageUnavailable as e:
            logger.error(f"Starting with an empty thread list: {e}")

    # Session

    def snapshot(self) -> SessionSnapshot:
        return self.session.snapshot()

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        return self.session.subscribe(listener)

    async def send(
        self,
        text: str,
        on_fragment: Callable[[str], None] | None = None,
    ) -> SendResult:
        """Send a message on the active thread, creating one if needed."""
        return await self.controller.send(text, on_fragment=on_fragment)

    def stop(self) -> None:
        self.controller.stop()

    # Threads

    def thread_groups(self, query: str = "") -> list[ThreadGroup]:
        return self.directory.groups(query)

    def subscribe_threads(self, listener: GroupsListener) -> Callable[[], None]:
        return self.directory.subscribe(listener)

    def subscribe_created(self, listener: Callable[[str], None]) -> Callable[[], None]:
        """Register a listener called with the id of each newly minted thread."""
        self._created_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._created_listeners:
                self._created_listeners.remove(listener)

        return unsubscribe

    def create_thread(self, title: str) -> ThreadSummary:
        """Create, persist and select an empty thread."""
        self._ensure_idle("create a thread")
        summary = self.directory.create(title)
        try:
            self._store.save(Thread(**summary.model_dump()))
        except StorageUnavailable:
            self.directory.remove(summary.id)
            raise
        self.session.select_thread(summary.id, messages=[])
        self._thread_created(summary.id)
        return summary

    def new_chat(self) -> None:
        """Clear the active thread so the next send starts a new one."""
        self._ensure_idle("start a new chat")
        self.session.select_thread(None)

    def select_thread(self, thread_id: str) -> SessionSnapshot:
        """Load a stored thread into the session."""
        if thread_id == self.session.current_thread_id:
            return self.session.snapshot()
        self._ensure_idle("switch threads")
        if thread_id not in self.directory:
            raise ThreadNotFound(thread_id)
        self.session.select_thread(thread_id)
        return self.session.snapshot()

    def get_thread(self, thread_id: str) -> Thread:
        """Return a thread with its messages, preferring the in-memory copy."""
        if thread_id == self.session.current_thread_id:
            summary = self.directory.get(thread_id)
            return Thread(**summary.model_dump(), messages=self.session.messages)
        thread = self._store.get(thread_id)
        if thread is None:
            raise ThreadNotFound(thread_id)
        return thread

    def delete_thread(self, thread_id: str) -> None:
        """Delete a thread and its messages; clears the session if it was active."""
        is_active = thread_id == self.session.current_thread_id
        if is_active and self.controller.busy:
            raise ThreadBusy("Cannot delete a thread while its reply is streaming")
        if thread_id not in self.directory:
            raise ThreadNotFound(thread_id)
        self._store.delete(thread_id)
        self.directory.remove(thread_id)
        if is_active:
            self.session.select_thread(None)
        logger.info(f"Deleted thread {thread_id}")

    def rename_thread(self, thread_id: str, title: str) -> ThreadSummary:
        raise NotImplementedError("Thread titles are fixed at creation")

    async def close(self) -> None:
        """Stop any in-flight reply, wait for its commit, then release the store."""
        await self.controller.drain()
        self._store.close()

    def _ensure_idle(self, action: str) -> None:
        if self.controller.busy:
            raise ThreadBusy(f"Cannot {action} while a reply is streaming")

    def _thread_created(self, thread_id: str) -> None:
        for listener in list(self._created_listeners):
            listener(thread_id)
