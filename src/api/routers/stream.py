"""Server-sent event stream of phase flips and holdings changes."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from src.api.dependencies import get_services
from src.api.registry import ServiceRegistry
from src.ledger.events import EventBroker, Subscription

router = APIRouter(tags=["stream"])

RETRY_MS = 10_000
SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse(event: str, data: dict[str, Any]) -> str:
    return f"event: {event}\ndata: {json.dumps(data, separators=(',', ':'))}\n\n"


async def event_stream(
    request: Request,
    broker: EventBroker,
    sub: Subscription,
    keepalive: float,
) -> AsyncIterator[str]:
    try:
        yield f"retry: {RETRY_MS}\n"
        yield format_sse("hello", {"ok": True, "mint": sub.mint})
        while True:
            if await request.is_disconnected():
                break
            try:
                event = await asyncio.wait_for(sub.queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield format_sse("ping", {})
                continue
            yield format_sse(event.event, event.payload())
    finally:
        broker.unsubscribe(sub)


@router.get("/stream/holdings")
async def stream_holdings(
    request: Request,
    mint: str = Query(""),
    services: ServiceRegistry = Depends(get_services),
) -> StreamingResponse:
    sub = services.broker.subscribe(mint)
    return StreamingResponse(
        event_stream(request, services.broker, sub, services.sse_keepalive_sec),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
