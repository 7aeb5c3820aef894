"""Stream controller driving one generation request from submission to commit.

Each send moves through ``IDLE -> REQUESTING -> STREAMING`` and ends in
``COMPLETED``, ``CANCELLED`` or ``FAILED``. Every terminal state commits the
thread to the store exactly once, then clears the session flags.

At most one send is outstanding at a time; a second send while one is in
flight raises ConcurrentSendRejected so fragments from two requests can
never interleave on one thread.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable

from src.agent.cancellation import CancellationToken
from src.agent.chat_agent import TextGenerator, typewriter
from src.chat.config import ChatConfig
from src.chat.directory import ThreadDirectory
from src.chat.state import SessionState
from src.errors import ConcurrentSendRejected, GenerationFailure
from src.models.schemas import Message, Role, SendOutcome, SendResult, Thread
from src.storage.thread_store import ThreadStore

logger = logging.getLogger(__name__)

_END = object()


async def _next_fragment(fragments: AsyncIterator[str]) -> object:
    try:
        return await anext(fragments)
    except StopAsyncIteration:
        return _END


class StreamController:
    """Runs sends against the remote generator and commits their results."""

    def __init__(
        self,
        session: SessionState,
        directory: ThreadDirectory,
        store: ThreadStore,
        generator: TextGenerator,
        config: ChatConfig | None = None,
        on_thread_created: Callable[[str], None] | None = None,
    ) -> None:
        self._session = session
        self._directory = directory
        self._store = store
        self._generator = generator
        self._config = config or ChatConfig()
        self._on_thread_created = on_thread_created
        self._token: CancellationToken | None = None
        self._finished: asyncio.Event | None = None

    @property
    def busy(self) -> bool:
        """Whether a send is between request and commit."""
        return self._token is not None

    def stop(self) -> None:
        """Cancel the in-flight send. No-op when idle; idempotent."""
        if self._token is None:
            return
        if not self._token.cancelled:
            logger.info("Stopping in-flight generation")
        self._token.cancel()

    async def drain(self) -> None:
        """Stop the in-flight send and wait until it has committed."""
        self.stop()
        if self._finished is not None:
            await self._finished.wait()

    async def send(
        self,
        text: str,
        on_fragment: Callable[[str], None] | None = None,
    ) -> SendResult:
        """Send a user message and stream the assistant reply into the session.

        Args:
            text: The user's message.
            on_fragment: Optional callback receiving each applied fragment.

        Returns:
            SendResult with the thread id, terminal outcome and final content.

        Raises:
            ValueError: If the message is blank.
            ConcurrentSendRejected: If another send is in flight.
            StorageUnavailable: If the commit could not be persisted. The
                in-memory transcript is left intact.
        """
        text = text.strip()
        if not text:
            raise ValueError("Message must not be empty")
        if self._token is not None:
            raise ConcurrentSendRejected()

        token = CancellationToken()
        finished = asyncio.Event()
        self._token = token
        self._finished = finished
        try:
            thread_id = self._open_thread(text)
            self._session.append_message(Message(role=Role.USER, content=text))
            self._session.set_streaming(True)
            self._session.set_loading(True)
            logger.info(f"Sending message on thread {thread_id}")

            try:
                outcome, content = await self._relay(token, on_fragment)
            finally:
                self._commit(thread_id)
            logger.info(f"Send on thread {thread_id} finished: {outcome.value}")
            return SendResult(thread_id=thread_id, outcome=outcome, content=content)
        finally:
            self._session.set_streaming(False)
            self._token = None
            finished.set()

    def _open_thread(self, text: str) -> str:
        thread_id = self._session.current_thread_id
        if thread_id is not None:
            self._directory.touch(thread_id)
            return thread_id

        thread = self._directory.create(text)
        self._session.select_thread(thread.id, messages=[])
        logger.info(f"Created thread {thread.id}: {thread.title!r}")
        if self._on_thread_created is not None:
            self._on_thread_created(thread.id)
        return thread.id

    def _fragments(self, token: CancellationToken) -> AsyncIterator[str]:
        fragments = self._generator.stream(self._session.history(), token)
        if self._config.typewriter:
            fragments = typewriter(fragments, self._config.typewriter_delay_ms / 1000)
        return fragments

    async def _relay(
        self,
        token: CancellationToken,
        on_fragment: Callable[[str], None] | None,
    ) -> tuple[SendOutcome, str]:
        accumulated = ""
        started = False
        fragments: AsyncIterator[str] | None = None
        cancelled = asyncio.ensure_future(token.wait())
        pending: asyncio.Task | None = None
        try:
            fragments = self._fragments(token)
            while not token.cancelled:
                pending = asyncio.create_task(_next_fragment(fragments))
                done, _ = await asyncio.wait(
                    {pending, cancelled},
                    timeout=self._config.fragment_timeout,
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if pending not in done:
                    if cancelled in done:
                        break
                    raise GenerationFailure(
                        f"No fragment within {self._config.fragment_timeout}s"
                    )
                fragment = pending.result()
                pending = None
                if fragment is _END or token.cancelled:
                    break
                if not fragment:
                    continue

                accumulated += fragment
                if not started:
                    self._session.append_message(Message(role=Role.ASSISTANT, content=accumulated))
                    self._session.set_loading(False)
                    started = True
                else:
                    self._session.replace_last_message_content(accumulated)
                if on_fragment is not None:
                    on_fragment(fragment)
        except Exception as e:
            logger.exception(f"Generation failed: {e}")
            error_text = self._config.error_message
            if started:
                self._session.mark_last_message_error(error_text)
            else:
                self._session.append_message(
                    Message(role=Role.ASSISTANT, content=error_text, is_error=True)
                )
            return SendOutcome.FAILED, error_text
        finally:
            cancelled.cancel()
            if pending is not None:
                # Abandon the outstanding fragment instead of awaiting the transport.
                pending.cancel()
            elif fragments is not None:
                await self._close(fragments)

        if token.cancelled:
            return SendOutcome.CANCELLED, accumulated
        return SendOutcome.COMPLETED, accumulated

    async def _close(self, fragments: AsyncIterator[str]) -> None:
        aclose = getattr(fragments, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception as e:
            logger.warning(f"Error closing fragment stream: {e}")

    def _commit(self, thread_id: str) -> None:
        summary = self._directory.get(thread_id)
        thread = Thread(**summary.model_dump(), messages=self._session.messages)
        self._store.save(thread)
