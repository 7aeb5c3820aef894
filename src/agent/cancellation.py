"""Cooperative cancellation handle passed to the remote generator."""

import asyncio


class CancellationToken:
    """One-shot cancellation signal shared by the controller and the generator.

    The generator checks ``cancelled`` between fragments; the controller can
    also await ``wait()`` to stop waiting on a fragment that has not arrived.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation. Repeated calls have no further effect."""
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()
