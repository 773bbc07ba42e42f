"""Realtime Connection: shared SSE subscription with handlers and auto-reconnect.

Invariants:
    - At most one underlying stream per RealtimeConnection, however many views use it
    - The stream starts on the first acquire() and stops on the last release()
    - Handlers registered with on() receive only their event name's payloads
    - A failing handler is logged and never tears down the stream or other handlers
    - Reconnect handlers fire on every successful re-open (not on the first open),
      because events published while disconnected are lost

Design Decisions:
    - SSE over httpx streaming (aiter_lines + SSEDecoder): same client library as
      the REST calls, no separate WebSocket dependency
    - Exponential backoff between attempts, reset after a successful open
    - on()/on_reconnect() return an unsubscribe callable so views can detach cleanly
    - sleep injectable so tests skip real backoff delays
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable

import httpx

from calcsync.core.errors import TransientNetworkError
from calcsync.core.sse import SSEDecoder, SSEEvent

logger = logging.getLogger(__name__)

EVENTS_PATH = "/api/v1/calculations/events"

Handler = Callable[[Any], Awaitable[None] | None]
ReconnectHandler = Callable[[], Awaitable[None] | None]


class RealtimeConnection:
    """Reference-counted SSE listener dispatching named events."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        path: str = EVENTS_PATH,
        initial_backoff: float = 0.5,
        max_backoff: float = 30.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.http = http
        self.path = path
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff
        self._sleep = sleep
        self._handlers: dict[str, list[Handler]] = {}
        self._reconnect_handlers: list[ReconnectHandler] = []
        self._refs = 0
        self._task: asyncio.Task | None = None
        self.opened_count = 0

    @property
    def ref_count(self) -> int:
        return self._refs

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ─── Subscription ───────────────────────────────────────────

    def on(self, event: str, handler: Handler) -> Callable[[], None]:
        self._handlers.setdefault(event, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(event, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def on_reconnect(self, handler: ReconnectHandler) -> Callable[[], None]:
        self._reconnect_handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._reconnect_handlers:
                self._reconnect_handlers.remove(handler)

        return unsubscribe

    # ─── Lifecycle ──────────────────────────────────────────────

    def acquire(self) -> None:
        """Register one user; starts the stream for the first."""
        self._refs += 1
        if self._refs == 1 and not self.running:
            self._task = asyncio.create_task(self._run())

    async def release(self) -> None:
        """Drop one user; stops the stream after the last."""
        if self._refs == 0:
            return
        self._refs -= 1
        if self._refs == 0:
            await self.stop()

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        await asyncio.wait({task})
        logger.info("Realtime connection stopped")

    # ─── Stream ─────────────────────────────────────────────────

    async def listen_once(self) -> None:
        """Open the stream and dispatch events until the server closes it."""
        decoder = SSEDecoder()
        async with self.http.stream("GET", self.path, timeout=None) as response:
            if response.status_code != 200:
                raise TransientNetworkError(
                    f"Event stream returned {response.status_code}",
                    status_code=response.status_code,
                )
            self.opened_count += 1
            logger.info(f"Realtime connection opened (#{self.opened_count})")
            if self.opened_count > 1:
                await self._notify_reconnect()
            async for line in response.aiter_lines():
                event = decoder.feed(line)
                if event is not None:
                    await self.dispatch(event)

    async def dispatch(self, event: SSEEvent) -> None:
        for handler in list(self._handlers.get(event.event, [])):
            try:
                result = handler(event.data)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    f"Handler for {event.event} failed: {e}",
                    extra={"event": event.event},
                    exc_info=True,
                )

    async def _notify_reconnect(self) -> None:
        for handler in list(self._reconnect_handlers):
            try:
                result = handler()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Reconnect handler failed: {e}", exc_info=True)

    async def _run(self) -> None:
        backoff = self.initial_backoff
        while True:
            opened_before = self.opened_count
            try:
                await self.listen_once()
            except (httpx.TransportError, TransientNetworkError) as e:
                logger.warning(f"Realtime connection lost: {e}")
            if self.opened_count > opened_before:
                backoff = self.initial_backoff
            await self._sleep(backoff)
            backoff = min(backoff * 2, self.max_backoff)
