"""Unit tests for SessionState invariants and store interaction."""

from unittest.mock import MagicMock

import pytest
import pytest_check as check

from src.chat.state import SessionState
from src.errors import InvalidSessionUpdate, NoActiveThread, ThreadNotFound
from src.models.schemas import Message, Role, SessionSnapshot, StreamPhase, Thread
from src.storage.thread_store import SqliteThreadStore


@pytest.fixture
def session(store: SqliteThreadStore) -> SessionState:
    return SessionState(store)


@pytest.fixture
def active(session: SessionState) -> SessionState:
    """Session with an unsaved thread selected."""
    session.select_thread("t1", messages=[])
    return session


class TestMessageUpdates:
    """Tests for message mutations on the active thread."""

    def test_append_without_active_thread_raises(self, session: SessionState) -> None:
        with pytest.raises(NoActiveThread):
            session.append_message(Message(role=Role.USER, content="hi"))

        assert session.messages == []

    def test_replace_without_active_thread_raises(self, session: SessionState) -> None:
        with pytest.raises(NoActiveThread):
            session.replace_last_message_content("text")

    def test_replace_on_empty_thread_raises(self, active: SessionState) -> None:
        with pytest.raises(InvalidSessionUpdate):
            active.replace_last_message_content("text")

    def test_replace_on_user_message_raises(self, active: SessionState) -> None:
        """Only a trailing assistant message may have its content replaced."""
        active.append_message(Message(role=Role.USER, content="question"))

        with pytest.raises(InvalidSessionUpdate):
            active.replace_last_message_content("hijacked")

        assert active.messages[-1].content == "question"

    def test_replace_keeps_id_and_role(self, active: SessionState) -> None:
        reply = Message(role=Role.ASSISTANT, content="Hel")
        active.append_message(reply)

        active.replace_last_message_content("Hello")

        last = active.messages[-1]
        check.equal(last.id, reply.id)
        check.equal(last.role, Role.ASSISTANT)
        check.equal(last.content, "Hello")

    def test_mark_error_sets_flag_and_text(self, active: SessionState) -> None:
        active.append_message(Message(role=Role.ASSISTANT, content="partial"))

        active.mark_last_message_error("Sorry, I encountered an error.")

        last = active.messages[-1]
        check.is_true(last.is_error)
        check.equal(last.content, "Sorry, I encountered an error.")

    def test_messages_returns_copy(self, active: SessionState) -> None:
        """Mutating the returned list leaves the session untouched."""
        active.messages.append(Message(role=Role.USER, content="sneaky"))

        assert active.messages == []

    def test_history_preserves_order(self, active: SessionState) -> None:
        active.append_message(Message(role=Role.USER, content="one"))
        active.append_message(Message(role=Role.ASSISTANT, content="two"))

        assert active.history() == [(Role.USER, "one"), (Role.ASSISTANT, "two")]

    def test_history_skips_error_and_empty_turns(self, active: SessionState) -> None:
        """Failed replies and empty placeholders are not sent to the generator."""
        active.append_message(Message(role=Role.USER, content="one"))
        active.append_message(
            Message(role=Role.ASSISTANT, content="Sorry, I encountered an error.", is_error=True)
        )
        active.append_message(Message(role=Role.USER, content="two"))
        active.append_message(Message(role=Role.ASSISTANT, content=""))

        assert active.history() == [(Role.USER, "one"), (Role.USER, "two")]


class TestStreamingFlags:
    """Tests for the loading/streaming phase invariant."""

    def test_initial_state_is_idle(self, session: SessionState) -> None:
        check.is_false(session.is_loading)
        check.is_false(session.is_streaming)
        check.is_none(session.current_thread_id)

    def test_loading_requires_streaming(self, session: SessionState) -> None:
        with pytest.raises(InvalidSessionUpdate):
            session.set_loading(True)

        assert session.phase is StreamPhase.IDLE

    def test_request_phase_sets_both_flags(self, session: SessionState) -> None:
        session.set_streaming(True)
        session.set_loading(True)

        check.is_true(session.is_loading)
        check.is_true(session.is_streaming)

    def test_first_fragment_clears_loading_only(self, session: SessionState) -> None:
        session.set_streaming(True)
        session.set_loading(True)

        session.set_loading(False)

        check.is_false(session.is_loading)
        check.is_true(session.is_streaming)

    def test_stop_streaming_clears_loading(self, session: SessionState) -> None:
        """Leaving the streaming phase never leaves loading set."""
        session.set_streaming(True)
        session.set_loading(True)

        session.set_streaming(False)

        check.is_false(session.is_loading)
        check.is_false(session.is_streaming)

    def test_clearing_loading_when_idle_is_noop(self, session: SessionState) -> None:
        session.set_loading(False)

        assert session.phase is StreamPhase.IDLE


class TestSelectThread:
    """Tests for switching the active thread."""

    def test_select_loads_messages_from_store(self, store: SqliteThreadStore) -> None:
        """Selecting reads the stored thread and never writes to the store."""
        thread = Thread(
            title="Stored",
            messages=[
                Message(role=Role.USER, content="hi"),
                Message(role=Role.ASSISTANT, content="hello"),
            ],
        )
        store.save(thread)
        spy = MagicMock(wraps=store)
        session = SessionState(spy)

        session.select_thread(thread.id)

        check.equal(session.current_thread_id, thread.id)
        check.equal([m.content for m in session.messages], ["hi", "hello"])
        spy.get.assert_called_once_with(thread.id)
        spy.save.assert_not_called()
        spy.delete.assert_not_called()

    def test_select_unknown_thread_raises(self, session: SessionState) -> None:
        with pytest.raises(ThreadNotFound):
            session.select_thread("missing")

        assert session.current_thread_id is None

    def test_select_none_clears_session(self, active: SessionState) -> None:
        active.append_message(Message(role=Role.USER, content="hi"))

        active.select_thread(None)

        check.is_none(active.current_thread_id)
        check.equal(active.messages, [])

    def test_select_with_messages_skips_store(self) -> None:
        store = MagicMock()
        session = SessionState(store)

        session.select_thread("fresh", messages=[])

        store.get.assert_not_called()
        assert session.current_thread_id == "fresh"


class TestSubscribe:
    """Tests for snapshot listeners."""

    def test_listener_receives_snapshots(self, active: SessionState) -> None:
        received: list[SessionSnapshot] = []
        active.subscribe(received.append)

        active.append_message(Message(role=Role.USER, content="hi"))
        active.set_streaming(True)

        check.equal(len(received), 2)
        check.equal(received[0].messages[0].content, "hi")
        check.is_true(received[1].is_streaming)

    def test_unsubscribe_stops_notifications(self, active: SessionState) -> None:
        received: list[SessionSnapshot] = []
        unsubscribe = active.subscribe(received.append)

        unsubscribe()
        unsubscribe()
        active.append_message(Message(role=Role.USER, content="hi"))

        assert received == []

    def test_snapshot_is_detached(self, active: SessionState) -> None:
        active.append_message(Message(role=Role.ASSISTANT, content="v1"))
        snapshot = active.snapshot()

        active.replace_last_message_content("v2")

        assert snapshot.messages[0].content == "v1"
