"""Push notifications — phase flips and holdings deltas for observers.

The broker is an explicit subscriber registry owned by the transport layer
and injected into the orchestrator / reconciler as an ``EventSink``.
Delivery is best-effort: a slow subscriber's full queue drops the event.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Protocol

from loguru import logger

PHASE_EVENT = "phase"
HOLDINGS_EVENT = "holdings"


@dataclass
class StreamEvent:
    """One fire-and-forget notification."""

    event: str  # "phase" | "holdings"
    mint: str | None
    data: dict[str, Any] = field(default_factory=dict)
    ts: float = field(default_factory=time.time)

    def payload(self) -> dict[str, Any]:
        body = {"mint": self.mint, **self.data}
        body.setdefault("t", int(self.ts))
        return body


class EventSink(Protocol):
    def publish(self, event: StreamEvent) -> None: ...


class NullSink:
    """Sink that discards everything (CLIs, tests)."""

    def publish(self, event: StreamEvent) -> None:
        return None


class RecordingSink:
    """Sink that keeps published events in memory."""

    def __init__(self) -> None:
        self.events: list[StreamEvent] = []

    def publish(self, event: StreamEvent) -> None:
        self.events.append(event)


class Subscription:
    def __init__(self, mint: str | None, maxsize: int) -> None:
        self.mint = mint
        self.queue: asyncio.Queue[StreamEvent] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def offer(self, event: StreamEvent) -> None:
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1


class EventBroker:
    """Subscriber registry: global subscribers plus per-mint subscribers.

    Events with a mint go only to that mint's subscribers and to global
    (mint=None) subscribers; events without a mint go to everyone.
    """

    def __init__(self, queue_size: int = 256) -> None:
        self._queue_size = queue_size
        self._subs: set[Subscription] = set()
        self._published = 0

    @property
    def subscriber_count(self) -> int:
        return len(self._subs)

    @property
    def published_count(self) -> int:
        return self._published

    def subscribe(self, mint: str | None = None) -> Subscription:
        sub = Subscription((mint or "").strip() or None, self._queue_size)
        self._subs.add(sub)
        logger.debug(f"[SSE] +subscriber mint={sub.mint} total={len(self._subs)}")
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        self._subs.discard(sub)
        if sub.dropped:
            logger.debug(f"[SSE] subscriber for {sub.mint} dropped {sub.dropped} events")

    def publish(self, event: StreamEvent) -> None:
        self._published += 1
        for sub in list(self._subs):
            if event.mint is None or sub.mint is None or sub.mint == event.mint:
                sub.offer(event)


def phase_event(mint: str, phase: str, **extra: Any) -> StreamEvent:
    return StreamEvent(event=PHASE_EVENT, mint=mint, data={"source": "phase", "phase": phase, **extra})


def holdings_event(mint: str, source: str, **extra: Any) -> StreamEvent:
    return StreamEvent(event=HOLDINGS_EVENT, mint=mint, data={"source": source, **extra})
