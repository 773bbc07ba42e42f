"""Real-time Routes: SSE stream and WebSocket hub over the broadcast channel.

Invariants:
    - A client receives only events published while its subscription is open
    - Subscription is opened inside the stream (not in the route body), so a
      client that disconnects before streaming starts never leaks a subscriber
    - Every exit path (disconnect, error, shutdown) closes the subscription
    - The WebSocket forwarder task is always awaited; its failures are logged
    - Events are hints to re-synchronize: no ids, no replay, no acknowledgements

Design Decisions:
    - SSE (GET /api/v1/calculations/events) is the primary transport: plain HTTP,
      works through proxies, consumed by the Python client over httpx streaming
    - WebSocket (/hubs/calculations) kept for browser clients that already speak it;
      frames are {"event": name, "data": payload}, and {"type": "ping"} gets a pong
    - SSE comment keep-alives stop idle proxies from closing the stream
    - No auth on either transport: payloads carry nothing beyond what list
      endpoints show, and clients must re-fetch (authenticated) to act on them
"""

import asyncio
import json
import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.responses import StreamingResponse

from calcsync.config import Settings, get_settings
from calcsync.core.sse import KEEPALIVE, format_event
from calcsync.infrastructure.broadcast import BroadcastHub, Subscription, broadcast_hub

logger = logging.getLogger(__name__)
router = APIRouter(tags=["realtime"])

# SSE headers prevent proxy/browser buffering of streamed events.
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}


async def event_stream(
    hub: BroadcastHub, keepalive_seconds: float,
) -> AsyncIterator[str]:
    """Yield SSE frames for one subscriber until it disconnects."""
    subscription = hub.subscribe()
    try:
        yield ": connected\n\n"
        while True:
            try:
                message = await asyncio.wait_for(
                    subscription.get(), timeout=keepalive_seconds,
                )
            except asyncio.TimeoutError:
                yield KEEPALIVE
                continue
            if message is None:
                return
            yield format_event(message.event, message.data)
    except asyncio.CancelledError:
        logger.info(
            "SSE client disconnected",
            extra={"connection_id": subscription.id},
        )
        raise
    finally:
        subscription.close()


@router.get("/api/v1/calculations/events")
async def stream_calculation_events(settings: Settings = Depends(get_settings)):
    """SSE stream of RecordCreated / RecordDeactivated events."""
    return StreamingResponse(
        event_stream(broadcast_hub, settings.sse_keepalive_seconds),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


async def _forward(websocket: WebSocket, subscription: Subscription) -> None:
    """Pump hub messages to one WebSocket until either side closes."""
    try:
        async for message in subscription:
            await websocket.send_json({"event": message.event, "data": message.data})
    except (WebSocketDisconnect, RuntimeError) as e:
        # RuntimeError: send after the socket was closed by the receive loop
        logger.info(
            f"WebSocket forwarder stopped: {e}",
            extra={"connection_id": subscription.id},
        )


@router.websocket("/hubs/calculations")
async def calculations_hub(websocket: WebSocket):
    await websocket.accept()
    subscription = broadcast_hub.subscribe()
    forwarder = asyncio.create_task(_forward(websocket, subscription))
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except (json.JSONDecodeError, KeyError):
                logger.warning(
                    "Ignoring malformed WebSocket frame",
                    extra={"connection_id": subscription.id},
                )
                continue
            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        logger.info(
            "WebSocket client disconnected",
            extra={"connection_id": subscription.id},
        )
    finally:
        subscription.close()
        forwarder.cancel()
        (outcome,) = await asyncio.gather(forwarder, return_exceptions=True)
        if isinstance(outcome, Exception):
            logger.error(
                f"WebSocket forwarder failed: {outcome}",
                extra={"connection_id": subscription.id},
            )
