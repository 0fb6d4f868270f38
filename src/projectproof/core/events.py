from __future__ import annotations

import asyncio
import logging
import threading
from collections import defaultdict
from collections.abc import AsyncIterator
from typing import Any

logger = logging.getLogger(__name__)


class Subscription:
    """One listener's queue, bound to the event loop that opened it.

    Events are handed over with ``call_soon_threadsafe`` so publishers may run
    on worker threads or on a different loop.
    """

    def __init__(self, bus: EventBus, run_id: str, loop: asyncio.AbstractEventLoop):
        self.bus = bus
        self.run_id = run_id
        self.loop = loop
        self.queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    def deliver(self, event: dict[str, Any]) -> None:
        if self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self.queue.put_nowait, event)

    async def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        while True:
            event = await self.queue.get()
            yield event
            if event.get("terminal"):
                return

    def close(self) -> None:
        self.bus._remove(self)


class EventBus:
    """Fans studio run events out to websocket subscribers, keyed by run id.

    A subscription ends after the first event marked ``terminal``.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Subscription]] = defaultdict(list)
        self._lock = threading.Lock()

    def open(self, run_id: str) -> Subscription:
        subscription = Subscription(self, run_id, asyncio.get_running_loop())
        with self._lock:
            self._subscribers[run_id].append(subscription)
        logger.debug("Subscribed run_id=%s subscribers=%s", run_id, self.subscriber_count(run_id))
        return subscription

    def publish(self, run_id: str, event: dict[str, Any]) -> int:
        with self._lock:
            subscribers = list(self._subscribers.get(run_id, []))
        for subscription in subscribers:
            subscription.deliver(event)
        return len(subscribers)

    def subscriber_count(self, run_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(run_id, []))

    async def subscribe(self, run_id: str) -> AsyncIterator[dict[str, Any]]:
        subscription = self.open(run_id)
        try:
            async for event in subscription:
                yield event
        finally:
            subscription.close()

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            subscribers = self._subscribers.get(subscription.run_id, [])
            if subscription in subscribers:
                subscribers.remove(subscription)
            if not subscribers:
                self._subscribers.pop(subscription.run_id, None)
