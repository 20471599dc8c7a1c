from __future__ import annotations

import asyncio
import time
from typing import AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from shotreview.services.events import QueueConnection, format_sse
from shotreview.services.review_app import ReviewApp, ReviewAppDep

router = APIRouter(tags=["events"])

POLL_INTERVAL = 0.2
KEEPALIVE_SECONDS = 15


async def _event_stream(request: Request, app: ReviewApp, connection: QueueConnection) -> AsyncIterator[str]:
    last_sent = time.monotonic()
    try:
        yield ": connected\n\n"
        while not connection.closed:
            if await request.is_disconnected():
                break
            items = connection.drain()
            for event, data in items:
                yield format_sse(event, data)
            if items:
                last_sent = time.monotonic()
            elif time.monotonic() - last_sent >= KEEPALIVE_SECONDS:
                yield ": keep-alive\n\n"
                last_sent = time.monotonic()
            await asyncio.sleep(POLL_INTERVAL)
    finally:
        connection.close()
        app.remove_client(connection)


@router.get("/events")
async def events(request: Request, app: ReviewApp = ReviewAppDep) -> StreamingResponse:
    connection = QueueConnection()
    app.add_client(connection)
    return StreamingResponse(
        _event_stream(request, app, connection),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
