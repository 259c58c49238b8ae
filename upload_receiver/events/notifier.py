"""In-process publish/subscribe registry for live refresh notifications.

Each open ``/events`` stream owns one Subscriber. A broadcast pushes the
same message to every registered subscriber; there is no replay, so a
subscriber connecting after a change simply misses it. Browsers reload
their whole listing on each message, which makes that acceptable.

Thread Safety:
    This implementation is designed for async/await usage with a single
    event loop. It is NOT thread-safe for concurrent access from multiple
    threads.

Subscriber lifecycle:
    registered (added, "connected" pushed) -> active -> unregistered
    (client disconnect, stream end, or failed push).
"""
import asyncio
import itertools
import logging
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)

CONNECTED = "connected"
REFRESH = "refresh"

# Messages a subscriber may hold before it is considered stalled
DEFAULT_QUEUE_SIZE = 16


class Subscriber:
    """One event-stream connection's mailbox."""

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self._queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue(maxsize=queue_size)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of messages waiting to be read."""
        return self._queue.qsize()

    def push(self, message: str) -> None:
        """Queue *message* without blocking.

        Raises:
            RuntimeError: If the subscriber is closed.
            asyncio.QueueFull: If the reader has stalled. The subscriber is
                closed before the error propagates.
        """
        if self._closed:
            raise RuntimeError("subscriber is closed")
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            self.close()
            raise

    async def get(self) -> Optional[str]:
        """Wait for the next message. Returns None once closed."""
        if self._closed and self._queue.empty():
            return None
        return await self._queue.get()

    def close(self) -> None:
        """Close the mailbox and wake any waiting reader."""
        if self._closed:
            return
        self._closed = True
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(None)


class ChangeNotifier:
    """Registry of active subscribers, owned by one application instance.

    Subscribers are keyed by a registration token; ``add``/``remove`` are
    the only mutators and are only ever called from the event loop.
    """

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self._queue_size = queue_size
        self._subscribers: Dict[int, Subscriber] = {}
        self._tokens = itertools.count(1)

    def __len__(self) -> int:
        return len(self._subscribers)

    def add(self, subscriber: Subscriber) -> int:
        """Register *subscriber* and return its token."""
        token = next(self._tokens)
        self._subscribers[token] = subscriber
        logger.debug(f"Subscriber {token} registered ({len(self._subscribers)} active)")
        return token

    def remove(self, token: int) -> None:
        """Unregister a subscriber. Unknown tokens are ignored."""
        if self._subscribers.pop(token, None) is not None:
            logger.debug(f"Subscriber {token} removed ({len(self._subscribers)} active)")

    @contextmanager
    def subscribe(self) -> Iterator[Subscriber]:
        """Register a new subscriber for the duration of the ``with`` block.

        The subscriber receives ``connected`` immediately. It is removed on
        every exit path: normal close, cancellation on client disconnect, or
        an error while writing the stream.
        """
        subscriber = Subscriber(self._queue_size)
        token = self.add(subscriber)
        try:
            subscriber.push(CONNECTED)
            yield subscriber
        finally:
            self.remove(token)
            subscriber.close()

    def broadcast(self, message: str) -> int:
        """Push *message* to every active subscriber.

        Delivery is best-effort and unordered. A subscriber whose push
        fails is logged, removed and closed so its stream ends.

        Returns:
            Number of subscribers the message was delivered to.
        """
        failed: List[int] = []
        delivered = 0
        for token, subscriber in list(self._subscribers.items()):
            try:
                subscriber.push(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Failed to push '{message}' to subscriber {token}: {e!r}")
                failed.append(token)

        for token in failed:
            subscriber = self._subscribers.pop(token, None)
            if subscriber is not None:
                subscriber.close()

        logger.debug(f"Broadcast '{message}' to {delivered} subscriber(s)")
        return delivered

    def close_all(self) -> None:
        """Close every subscriber so open streams finish (used on shutdown)."""
        subscribers = list(self._subscribers.values())
        self._subscribers.clear()
        for subscriber in subscribers:
            subscriber.close()
