from __future__ import annotations

"""
Fanout hub for pushing events to connected observers.

Design intent:
- Serialize each event once and deliver it to a point-in-time snapshot of channels.
- Treat any failed send as a disconnect: prune that channel only, keep delivering.
- No backpressure. A slow sink overflows its small pending queue and is pruned.
"""

import asyncio
import json
import logging
import threading
import time
from contextlib import suppress
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Literal, Optional, Protocol
from uuid import uuid4

from .contracts import ConnectedEvent, WireModel
from .errors import BroadcastDeliveryFailure

logger = logging.getLogger(__name__)

KEEPALIVE_FRAME = ": ping\n\n"

SubscriptionState = Literal["open", "closed", "error"]


def encode_sse(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def encode_event(event: WireModel) -> str:
    return encode_sse(event.to_payload())


class Channel(Protocol):
    def send(self, frame: str) -> None: ...


class Subscription:
    """A push channel with an explicit lifecycle and a cancellation token.

    ``send`` must be called from the event loop thread that drains the
    subscription.
    """

    def __init__(self, *, max_pending: int = 100) -> None:
        self.handle: Optional[str] = None
        self.state: SubscriptionState = "open"
        self.created_at = time.monotonic()
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue(maxsize=max(1, int(max_pending)))

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def send(self, frame: str) -> None:
        if self.state != "open":
            raise BroadcastDeliveryFailure(f"subscription is {self.state}")
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull as exc:
            self.state = "error"
            raise BroadcastDeliveryFailure("subscription pending queue is full") from exc

    def cancel(self) -> None:
        if self.state != "open":
            return
        self.state = "closed"
        # Wake a reader blocked on the queue; a full queue is drained first anyway.
        with suppress(asyncio.QueueFull):
            self._queue.put_nowait(None)

    async def next_frame(self) -> Optional[str]:
        """Next queued frame, or None once the subscription was cancelled."""
        frame = await self._queue.get()
        if frame is None or self.state == "closed":
            return None
        return frame


class FanoutHub:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._channels: Dict[str, Channel] = {}

    def register(self, channel: Channel) -> str:
        handle = f"sub_{uuid4().hex[:12]}"
        with self._lock:
            self._channels[handle] = channel
            total = len(self._channels)
        logger.info("fanout register handle=%s connections=%s", handle, total)
        return handle

    def unregister(self, handle: Optional[str]) -> bool:
        if not handle:
            return False
        with self._lock:
            removed = self._channels.pop(handle, None)
            total = len(self._channels)
        if removed is None:
            return False
        logger.info("fanout unregister handle=%s connections=%s", handle, total)
        return True

    def is_registered(self, handle: str) -> bool:
        with self._lock:
            return handle in self._channels

    def connection_count(self) -> int:
        with self._lock:
            return len(self._channels)

    def broadcast(self, event: WireModel) -> int:
        """Deliver ``event`` to every registered channel; returns the delivered count."""
        frame = encode_event(event)
        with self._lock:
            snapshot = list(self._channels.items())
        event_type = getattr(event, "type", type(event).__name__)
        if not snapshot:
            logger.debug("fanout broadcast type=%s skipped: no connections", event_type)
            return 0

        delivered = 0
        for handle, channel in snapshot:
            try:
                channel.send(frame)
            except Exception as exc:
                logger.warning("fanout send failed handle=%s type=%s error=%s", handle, event_type, exc)
                self.unregister(handle)
                continue
            delivered += 1
        logger.debug("fanout broadcast type=%s delivered=%s/%s", event_type, delivered, len(snapshot))
        return delivered

    def open_subscription(self, *, max_pending: int = 100) -> Subscription:
        subscription = Subscription(max_pending=max_pending)
        subscription.handle = self.register(subscription)
        return subscription

    def close_subscription(self, subscription: Subscription) -> None:
        subscription.cancel()
        self.unregister(subscription.handle)


async def stream_subscription(
    hub: FanoutHub,
    subscription: Subscription,
    *,
    keepalive_sec: float = 30.0,
    max_lifetime_sec: float = 30 * 60.0,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[str]:
    """Yield SSE frames for one subscription until it ends.

    Ends on cancellation, client disconnect or max lifetime; the subscription is
    always unregistered on exit.
    """
    deadline = subscription.created_at + max_lifetime_sec
    try:
        yield encode_event(ConnectedEvent())
        while subscription.state == "open":
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.info("fanout handle=%s reached max lifetime", subscription.handle)
                break
            if is_disconnected is not None and await is_disconnected():
                logger.info("fanout handle=%s client disconnected", subscription.handle)
                break
            try:
                frame = await asyncio.wait_for(
                    subscription.next_frame(),
                    timeout=min(keepalive_sec, remaining),
                )
            except asyncio.TimeoutError:
                if time.monotonic() >= deadline:
                    continue
                yield KEEPALIVE_FRAME
                continue
            if frame is None:
                break
            yield frame
    finally:
        hub.close_subscription(subscription)
