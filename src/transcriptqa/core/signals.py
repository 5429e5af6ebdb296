"""One-shot completion signal shared by startup ingestion and the scheduler."""

from __future__ import annotations

import asyncio


class CompletionSignal:
    """A signal that resolves exactly once.

    The first ``set()`` releases every waiter; later calls are no-ops and
    return False instead of raising. Waiting on an already-resolved signal
    returns immediately.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def set(self) -> bool:
        if self._event.is_set():
            return False
        self._event.set()
        return True

    def is_set(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()
