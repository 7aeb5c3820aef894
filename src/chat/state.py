"""In-memory session state for the active conversation thread.

Holds the authoritative message list of exactly one thread (or none) and
the streaming phase the ``is_loading``/``is_streaming`` flags derive from.
It never writes to the persistent store; commits belong to the stream
controller so an aborted stream can still be saved with partial content.
"""

import logging
from collections.abc import Callable

from src.errors import InvalidSessionUpdate, NoActiveThread, ThreadNotFound
from src.models.schemas import Message, Role, SessionSnapshot, StreamPhase
from src.storage.thread_store import ThreadStore

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[SessionSnapshot], None]


class SessionState:
    """Messages of the active thread plus transient streaming flags."""

    def __init__(self, store: ThreadStore) -> None:
        self._store = store
        self._thread_id: str | None = None
        self._messages: list[Message] = []
        self._phase = StreamPhase.IDLE
        self._listeners: list[SnapshotListener] = []

    @property
    def current_thread_id(self) -> str | None:
        return self._thread_id

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    @property
    def phase(self) -> StreamPhase:
        return self._phase

    @property
    def is_loading(self) -> bool:
        return self._phase is StreamPhase.REQUESTING

    @property
    def is_streaming(self) -> bool:
        return self._phase is not StreamPhase.IDLE

    def select_thread(self, thread_id: str | None, messages: list[Message] | None = None) -> None:
        """Make a thread active, or clear to the new-chat state.

        Args:
            thread_id: Thread to activate, or None to clear.
            messages: Message list for a thread that is not stored yet.
                When omitted the list is loaded from the store.

        Raises:
            ThreadNotFound: If the thread is not stored and no messages were given.
            StorageUnavailable: If the store cannot be read.
        """
        if thread_id is None:
            self._thread_id = None
            self._messages = []
        else:
            if messages is None:
                thread = self._store.get(thread_id)
                if thread is None:
                    raise ThreadNotFound(thread_id)
                messages = thread.messages
            self._thread_id = thread_id
            self._messages = list(messages)
        logger.debug(f"Selected thread {thread_id}")
        self._notify()

    def append_message(self, message: Message) -> None:
        """Append a message to the active thread."""
        if self._thread_id is None:
            raise NoActiveThread()
        self._messages.append(message)
        self._notify()

    def replace_last_message_content(self, content: str) -> None:
        """Overwrite the content of the trailing assistant message."""
        last = self._last_assistant_message()
        self._messages[-1] = last.model_copy(update={"content": content})
        self._notify()

    def mark_last_message_error(self, content: str) -> None:
        """Replace the trailing assistant message with error text."""
        last = self._last_assistant_message()
        self._messages[-1] = last.model_copy(update={"content": content, "is_error": True})
        self._notify()

    def set_loading(self, loading: bool) -> None:
        if loading:
            if self._phase is StreamPhase.IDLE:
                raise InvalidSessionUpdate("Cannot be loading while not streaming")
            self._set_phase(StreamPhase.REQUESTING)
        elif self._phase is StreamPhase.REQUESTING:
            self._set_phase(StreamPhase.STREAMING)

    def set_streaming(self, streaming: bool) -> None:
        """Start or stop streaming. Stopping also clears loading."""
        if streaming:
            if self._phase is StreamPhase.IDLE:
                self._set_phase(StreamPhase.STREAMING)
        else:
            self._set_phase(StreamPhase.IDLE)

    def history(self) -> list[tuple[Role, str]]:
        """Conversation turns handed to the remote generator.

        Failed turns and turns without content are left out.
        """
        return [
            (message.role, message.content)
            for message in self._messages
            if message.content and not message.is_error
        ]

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            current_thread_id=self._thread_id,
            messages=[message.model_copy() for message in self._messages],
            phase=self._phase,
        )

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a listener called with a snapshot after each change.

        Returns:
            Callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _last_assistant_message(self) -> Message:
        if self._thread_id is None:
            raise NoActiveThread()
        if not self._messages:
            raise InvalidSessionUpdate("Active thread has no messages")
        last = self._messages[-1]
        if last.role is not Role.ASSISTANT:
            raise InvalidSessionUpdate("Last message is not an assistant message")
        return last

    def _set_phase(self, phase: StreamPhase) -> None:
        if phase is self._phase:
            return
        self._phase = phase
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
