"""Debounced trigger backed by a cancellable delayed task."""
import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """Coalesce a burst of triggers into one callback invocation.

    Every ``trigger()`` restarts the quiet period. The callback runs once,
    ``delay`` seconds after the last trigger. Must be used from inside a
    running event loop.
    """

    def __init__(self, delay: float, callback: Callable[[], object]) -> None:
        self._delay = delay
        self._callback = callback
        self._task: Optional[asyncio.Task] = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        """True while a firing is scheduled."""
        return self._task is not None and not self._task.done()

    def trigger(self) -> None:
        """Restart the quiet period."""
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._fire_after_delay())

    def cancel(self) -> None:
        """Drop the pending firing, if any."""
        if self.pending:
            self._task.cancel()
        self._task = None

    async def _fire_after_delay(self) -> None:
        await asyncio.sleep(self._delay)
        try:
            self._callback()
        except Exception:
            logger.exception("Debounced callback failed")
