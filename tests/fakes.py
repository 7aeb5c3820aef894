"""Test doubles for the remote generator and the clock."""

import asyncio
from collections.abc import AsyncIterator, Sequence
from datetime import UTC, datetime, timedelta

from src.agent.cancellation import CancellationToken
from src.errors import GenerationFailure
from src.models.schemas import Role


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2026, 10, 18, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class ScriptedGenerator:
    """Generator yielding a fixed list of fragments, optionally failing.

    Attributes:
        calls: History passed to each stream call.
    """

    def __init__(
        self,
        fragments: Sequence[str] = (),
        fail_after: int | None = None,
    ) -> None:
        self.fragments = list(fragments)
        self.fail_after = fail_after
        self.calls: list[list[tuple[Role, str]]] = []

    async def stream(
        self,
        history: Sequence[tuple[Role, str]],
        token: CancellationToken | None = None,
    ) -> AsyncIterator[str]:
        self.calls.append(list(history))
        for index, fragment in enumerate(self.fragments):
            if self.fail_after == index:
                raise GenerationFailure("quota exceeded")
            if token is not None and token.cancelled:
                return
            await asyncio.sleep(0)
            yield fragment
        if self.fail_after is not None and self.fail_after >= len(self.fragments):
            raise GenerationFailure("connection reset")

    async def complete(self, history: Sequence[tuple[Role, str]]) -> str:
        return "".join(self.fragments)


class HangingGenerator:
    """Generator that yields its fragments, then waits until released.

    Attributes:
        release: Event that lets the stream finish.
        closed: Set once the stream is torn down.
    """

    def __init__(self, fragments: Sequence[str] = ("partial",)) -> None:
        self.fragments = list(fragments)
        self.release = asyncio.Event()
        self.closed = False

    async def stream(
        self,
        history: Sequence[tuple[Role, str]],
        token: CancellationToken | None = None,
    ) -> AsyncIterator[str]:
        try:
            for fragment in self.fragments:
                yield fragment
            await self.release.wait()
        finally:
            self.closed = True

    async def complete(self, history: Sequence[tuple[Role, str]]) -> str:
        return "".join(self.fragments)


class FailingGenerator:
    """Generator raising before producing any fragment."""

    def stream(
        self,
        history: Sequence[tuple[Role, str]],
        token: CancellationToken | None = None,
    ) -> AsyncIterator[str]:
        return self._fail()

    async def _fail(self) -> AsyncIterator[str]:
        raise GenerationFailure("invalid API key")
        yield  # pragma: no cover

    async def complete(self, history: Sequence[tuple[Role, str]]) -> str:
        raise GenerationFailure("invalid API key")


async def until(predicate, attempts: int = 200) -> None:
    """Yield to the event loop until the predicate holds."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")
