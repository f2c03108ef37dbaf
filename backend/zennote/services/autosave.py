"""Per-key debounced tasks: each schedule() cancels and restarts the key's timer."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class Debouncer:
    """Runs `action(key)` once a key has been quiet for `delay` seconds.

    A timer can be cancelled until it fires. Once `action` is running it is
    never cancelled; runs for the same key are serialised, so a newer edit
    waits for the in-flight write and then writes the merged latest state.
    """

    def __init__(self, delay: float, action: Callable[[str], Awaitable[None]]) -> None:
        self.delay = delay
        self._action = action
        self._timers: dict[str, asyncio.Task] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._running: set[asyncio.Task] = set()

    def _lock(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def pending(self, key: str) -> bool:
        return key in self._timers

    def schedule(self, key: str) -> None:
        self.cancel(key)
        task = asyncio.create_task(self._fire_later(key), name=f"autosave:{key}")
        self._timers[key] = task
        logger.debug("Autosave scheduled", extra={"key": key, "delay": self.delay})

    def cancel(self, key: str) -> bool:
        task = self._timers.pop(key, None)
        if task is None:
            return False
        task.cancel()
        return True

    def forget(self, key: str) -> None:
        """Cancel `key` and drop its write lock once nothing holds it."""
        self.cancel(key)
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]

    async def _run(self, key: str) -> None:
        async with self._lock(key):
            await self._action(key)

    async def _fire_later(self, key: str) -> None:
        await asyncio.sleep(self.delay)
        if self._timers.get(key) is not asyncio.current_task():
            return
        # From here on the write is in flight and cancel() no longer reaches it
        del self._timers[key]
        task = asyncio.current_task()
        self._running.add(task)
        try:
            await self._run(key)
        except Exception:
            logger.error("Autosave failed", exc_info=True, extra={"key": key})
        finally:
            self._running.discard(task)

    async def flush(self, key: str) -> None:
        """Write `key` now instead of waiting for its timer; waits for an in-flight write."""
        self.cancel(key)
        await self._run(key)

    async def flush_all(self) -> None:
        """Flush every pending key. A failing key does not stop the rest; the first error is re-raised."""
        errors: list[Exception] = []
        for key in list(self._timers):
            try:
                await self.flush(key)
            except Exception as e:
                logger.error("Autosave flush failed", exc_info=True, extra={"key": key})
                errors.append(e)
        if self._running:
            await asyncio.gather(*self._running, return_exceptions=True)
        if errors:
            raise errors[0]

    async def aclose(self) -> None:
        try:
            await self.flush_all()
        finally:
            for key in list(self._timers):
                self.cancel(key)
