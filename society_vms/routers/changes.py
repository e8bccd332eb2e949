"""
Live change feed for visitor_requests.
GET /changes/stream — newline-delimited JSON, one ChangeEvent per line.
A blank keep-alive line is sent when nothing happened for KEEPALIVE_SECONDS.
"""

import asyncio
from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse
from society_vms.services.change_feed import change_feed
from society_vms.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)

KEEPALIVE_SECONDS = 15


async def _event_lines(request: Request):
    queue = change_feed.subscribe()
    try:
        while True:
            if await request.is_disconnected():
                break
            try:
                event = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
            except asyncio.TimeoutError:
                yield "\n"
                continue
            yield event.model_dump_json() + "\n"
    finally:
        change_feed.unsubscribe(queue)


@router.get("/changes/stream", summary="Live visitor request change feed (NDJSON)")
async def stream_changes(request: Request):
    client = request.client.host if request.client else "unknown"
    logger.info(f"Change stream opened by {client}")
    return StreamingResponse(_event_lines(request), media_type="application/x-ndjson")
