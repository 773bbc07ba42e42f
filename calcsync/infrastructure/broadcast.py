"""Broadcast Hub: best-effort fan-out of record events to connected clients.

Invariants:
    - publish() reaches exactly the subscribers registered at the moment of the call
    - publish() never blocks and never raises for a slow or dead subscriber
    - A full subscriber queue drops that event for that subscriber only (logged)
    - A closed Subscription is removed from the fan-out set and yields nothing further
    - No persistence, no replay, no acknowledgements: late subscribers miss earlier events

Design Decisions:
    - One bounded asyncio.Queue per subscriber: transports (SSE, WebSocket) drain
      their own queue at their own pace, publishers only enqueue
    - Transport-agnostic: the hub knows nothing about HTTP; routes adapt Subscription
      to the wire (api/routes/realtime.py)
    - Singleton broadcast_hub created at import: it holds no IO resources
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

_connection_ids = itertools.count(1)


@dataclass(frozen=True)
class BroadcastMessage:
    """One published event as delivered to a subscriber."""
    event: str
    data: dict = field(default_factory=dict)


class Subscription:
    """A single connected client's view of the hub."""

    def __init__(self, hub: "BroadcastHub", maxsize: int):
        self.id = next(_connection_ids)
        self._hub = hub
        self._queue: asyncio.Queue[BroadcastMessage | None] = asyncio.Queue(maxsize)
        self.closed = False

    def offer(self, message: BroadcastMessage) -> bool:
        """Enqueue without blocking. False when the queue is full or closed."""
        if self.closed:
            return False
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            return False
        return True

    async def get(self) -> BroadcastMessage | None:
        """Next message, or None once the subscription is closed."""
        if self.closed and self._queue.empty():
            return None
        return await self._queue.get()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._hub._remove(self)
        # wake a pending get() so the transport loop can exit
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            pass

    def __aiter__(self):
        return self

    async def __anext__(self) -> BroadcastMessage:
        message = await self.get()
        if message is None:
            raise StopAsyncIteration
        return message


class BroadcastHub:
    """In-process pub/sub with fire-and-forget delivery."""

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._subscribers: dict[int, Subscription] = {}

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        sub = Subscription(self, self.queue_size)
        self._subscribers[sub.id] = sub
        logger.info(
            "Client connected to broadcast hub",
            extra={"connection_id": sub.id, "subscribers": self.subscriber_count},
        )
        return sub

    def _remove(self, sub: Subscription) -> None:
        if self._subscribers.pop(sub.id, None) is not None:
            logger.info(
                "Client disconnected from broadcast hub",
                extra={"connection_id": sub.id, "subscribers": self.subscriber_count},
            )

    def publish(self, event: str, payload: dict) -> int:
        """Fan event out to current subscribers. Returns how many accepted it."""
        message = BroadcastMessage(event, payload)
        delivered = 0
        # snapshot: a subscriber closing mid-loop must not break iteration
        for sub in list(self._subscribers.values()):
            if sub.offer(message):
                delivered += 1
            else:
                logger.warning(
                    f"Dropped {event} for slow subscriber",
                    extra={"connection_id": sub.id, "event": event},
                )
        logger.info(
            f"Published {event}",
            extra={"event": event, "subscribers": delivered},
        )
        return delivered

    def close_all(self) -> None:
        for sub in list(self._subscribers.values()):
            sub.close()


broadcast_hub = BroadcastHub()
