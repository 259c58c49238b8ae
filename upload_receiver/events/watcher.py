"""Filesystem watcher for the uploads directory.

Runs ``watchfiles.awatch`` in a background task and reports every batch of
raw changes to a callback (normally ``Debouncer.trigger``). The watcher is
optional: if it cannot start or dies, a warning is logged and uploads made
through the HTTP API still produce refresh notifications.
"""
import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional, Union

from watchfiles import awatch

logger = logging.getLogger(__name__)

# Grouping window handed to watchfiles itself; the Debouncer does the rest
RAW_DEBOUNCE_MS = 50
STOP_TIMEOUT_SECONDS = 5.0


class DirectoryWatcher:
    """Background task forwarding directory changes to *on_change*."""

    def __init__(self, directory: Union[str, Path], on_change: Callable[[], None]) -> None:
        self._directory = Path(directory)
        self._on_change = on_change
        self._stop_event: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start watching. Calling start on a running watcher is a no-op."""
        if self.running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"Watching {self._directory} for changes")

    async def stop(self) -> None:
        """Signal the watch loop to exit and wait for it."""
        if self._task is None:
            return
        self._stop_event.set()
        try:
            await asyncio.wait_for(self._task, timeout=STOP_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            logger.warning("Watcher did not stop in time; cancelled")
        finally:
            self._task = None

    async def _run(self) -> None:
        try:
            async for changes in awatch(
                self._directory,
                stop_event=self._stop_event,
                debounce=RAW_DEBOUNCE_MS,
            ):
                logger.debug(f"{len(changes)} change(s) in {self._directory}")
                self._on_change()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Filesystem watcher unavailable for {self._directory}: {e}")
