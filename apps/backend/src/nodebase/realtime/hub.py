"""In-process pub/sub for node status events."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import AsyncGenerator

from .channels import STATUS_TOPIC, StatusEvent

logger = logging.getLogger(__name__)


class Subscription:
    """A single subscriber's filtered view of the hub."""

    def __init__(self, channel: str, topics: set[str], maxsize: int):
        self.channel = channel
        self.topics = topics
        self.queue: asyncio.Queue[StatusEvent] = asyncio.Queue(maxsize=maxsize)

    def matches(self, event: StatusEvent) -> bool:
        return event.channel == self.channel and event.topic in self.topics


class RealtimeHub:
    """Fans status events out to subscribers of a channel and topic.

    Publishing never waits on a slow subscriber: when a subscriber's queue is
    full the event is dropped for that subscriber only.
    """

    def __init__(self, queue_size: int = 256, history_size: int = 1000):
        self.queue_size = queue_size
        self._subscriptions: list[Subscription] = []
        # Most recent events, newest last
        self.history: deque[StatusEvent] = deque(maxlen=history_size)

    async def publish(self, event: StatusEvent) -> None:
        self.history.append(event)
        for sub in list(self._subscriptions):
            if not sub.matches(event):
                continue
            try:
                sub.queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(
                    "Dropping %s event for node %s on %s: subscriber queue full",
                    event.status,
                    event.node_id,
                    event.channel,
                )

    def subscribe(self, channel: str, topics: list[str] | None = None) -> Subscription:
        sub = Subscription(channel, set(topics or [STATUS_TOPIC]), self.queue_size)
        self._subscriptions.append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)

    async def stream(
        self, channel: str, topics: list[str] | None = None
    ) -> AsyncGenerator[StatusEvent, None]:
        """Yield events for ``channel`` until the consumer stops iterating."""
        sub = self.subscribe(channel, topics)
        try:
            while True:
                yield await sub.queue.get()
        finally:
            self.unsubscribe(sub)
