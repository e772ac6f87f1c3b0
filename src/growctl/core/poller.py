from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 5.0


class Poller:
    """Run ``callback`` every ``interval`` seconds until stopped.

    A tick does not wait for the previous call to finish; calls still in
    flight are cancelled by :meth:`stop`.
    """

    def __init__(
        self,
        callback: Callable[[], Awaitable[None]],
        interval: float = DEFAULT_INTERVAL,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._callback = callback
        self._interval = interval
        self._task: asyncio.Task[None] | None = None
        self._inflight: set[asyncio.Task[None]] = set()

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking. Must be called from a running event loop."""
        if self.running:
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(), name="growctl-poller")
        logger.debug("Polling started (every %.1fs)", self._interval)

    def stop(self) -> None:
        if self._task is None:
            return
        current = asyncio.current_task()
        if self._task is not current:
            self._task.cancel()
        for task in list(self._inflight):
            if task is not current:
                task.cancel()
        self._task = None
        logger.debug("Polling stopped")

    async def aclose(self) -> None:
        task = self._task
        pending = [task, *self._inflight] if task else list(self._inflight)
        self.stop()
        for item in pending:
            item.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            task = asyncio.create_task(self._invoke())
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

    async def _invoke(self) -> None:
        try:
            await self._callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Poll callback failed")
