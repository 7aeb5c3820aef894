"""Pytest fixtures and shared test configuration.

Fixtures:
    - clock: Manually advanced clock for timestamps and grouping
    - store: SQLite thread store in a temporary directory
    - generator: Scripted generator replying "Hi there"
    - service: ChatService wired to the above
    - async_client: HTTPX client for API testing
"""

from collections.abc import AsyncIterator, Iterator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from src.api import create_app
from src.chat.service import ChatService
from src.storage.thread_store import SqliteThreadStore
from tests.fakes import FakeClock, ScriptedGenerator


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Return path of a fresh thread database."""
    return tmp_path / "chat.db"


@pytest.fixture
def store(db_path: Path) -> Iterator[SqliteThreadStore]:
    """Create a thread store and close it after the test.

    Yields:
        SqliteThreadStore backed by a temporary file.
    """
    thread_store = SqliteThreadStore(db_path)
    yield thread_store
    thread_store.close()


@pytest.fixture
def generator() -> ScriptedGenerator:
    return ScriptedGenerator(["Hi", " there"])


@pytest.fixture
def service(
    store: SqliteThreadStore, generator: ScriptedGenerator, clock: FakeClock
) -> ChatService:
    return ChatService(store=store, generator=generator, clock=clock)


@pytest.fixture
async def async_client(service: ChatService) -> AsyncIterator[AsyncClient]:
    """Create async HTTP client for API testing.

    Yields:
        Configured AsyncClient for making test requests.
    """
    transport = ASGITransport(app=create_app(service))
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
