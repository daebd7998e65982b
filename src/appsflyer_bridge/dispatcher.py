"""Thread-safe, single-listener event dispatcher.

Producers on any thread (the host call path, SDK worker threads) hand
events to :meth:`EventDispatcher.dispatch`.  Each event is normalised and
relayed onto the host's asyncio loop with ``call_soon_threadsafe``; one
consumer task on that loop drains a FIFO queue and calls the listener, so
the listener only ever runs on the host loop and sees events in the order
``dispatch()`` was called.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from typing import Any, Mapping, Optional, Union

from appsflyer_bridge.events import PHASE_KEY, BridgeEvent, normalize_payload
from appsflyer_bridge.session import BridgeSession

logger = logging.getLogger(__name__)


class EventDispatcher:
    """Fire-and-forget delivery of bridge events to the session listener."""

    def __init__(
        self,
        session: BridgeSession,
        loop: asyncio.AbstractEventLoop,
        *,
        max_queue_size: int = 10_000,
    ):
        self.session = session
        self.max_queue_size = max_queue_size

        self._loop = loop
        self._queue: Optional[asyncio.Queue] = None
        self._consumer: Optional[asyncio.Task] = None

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    # -- producer side (any thread) --

    def dispatch(self, event: Union[BridgeEvent, Mapping[str, Any]]) -> bool:
        """Queue ``event`` for delivery.  Never blocks and never raises.

        The event is tied to the session generation current at this call;
        if the session is reset before delivery, the event is dropped.

        Returns False when the event was dropped up front (no listener,
        malformed event, or the delivery loop is gone).
        """
        listener, generation = self.session.snapshot()
        if listener is None:
            logger.debug("No listener registered; dropping event")
            return False

        try:
            payload = normalize_payload(event)
        except TypeError:
            logger.exception("Dropping malformed event")
            return False

        try:
            self._loop.call_soon_threadsafe(self._enqueue, generation, payload)
        except RuntimeError:
            logger.warning(
                "Delivery loop unavailable; dropping %s event",
                payload.get(PHASE_KEY, "?"),
            )
            return False
        return True

    def clear(self) -> None:
        """Drop everything not yet delivered."""
        try:
            self._loop.call_soon_threadsafe(self._drop_pending)
        except RuntimeError:
            logger.debug("Delivery loop already closed; nothing to clear")

    # -- consumer side (host loop) --

    def _ensure_consumer(self) -> asyncio.Queue:
        if self._queue is None:
            self._queue = asyncio.Queue()
        if self._consumer is None or self._consumer.done():
            self._consumer = self._loop.create_task(self._consume())
        return self._queue

    def _enqueue(self, generation: int, payload: Mapping[str, Any]) -> None:
        if generation != self.session.generation:
            logger.debug(
                "Stale %s event from a torn-down session; dropping",
                payload.get(PHASE_KEY, "?"),
            )
            return
        queue = self._ensure_consumer()
        if queue.qsize() >= self.max_queue_size:
            _, dropped = queue.get_nowait()
            queue.task_done()
            logger.warning(
                "Dispatch queue full (%d); dropping oldest %s event",
                self.max_queue_size,
                dropped.get(PHASE_KEY, "?"),
            )
        queue.put_nowait((generation, payload))

    def _drop_pending(self) -> None:
        if self._queue is None:
            return
        dropped = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            dropped += 1
        if dropped:
            logger.debug("Dropped %d undelivered events", dropped)

    async def _consume(self) -> None:
        queue = self._queue
        while True:
            generation, payload = await queue.get()
            try:
                await self._deliver(generation, payload)
            finally:
                queue.task_done()

    async def _deliver(self, generation: int, payload: Mapping[str, Any]) -> None:
        listener, current = self.session.snapshot()
        if listener is None or generation != current:
            logger.debug(
                "Listener released; dropping %s event", payload.get(PHASE_KEY, "?")
            )
            return
        try:
            result = listener(payload)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(
                "Listener failed handling %s event", payload.get(PHASE_KEY, "?")
            )

    # -- host loop helpers --

    async def drain(self) -> None:
        """Wait until every event dispatched so far is delivered or dropped.

        Must be awaited on the delivery loop.
        """
        barrier = self._loop.create_future()
        self._loop.call_soon_threadsafe(barrier.set_result, None)
        await barrier
        if self._queue is not None:
            await self._queue.join()

    async def aclose(self) -> None:
        """Drop pending events and stop the consumer task."""
        self._drop_pending()
        if self._consumer is not None:
            self._consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer
            self._consumer = None
