"""Calculations View: keeps one client-side list in step with the server.

Invariants:
    - Only the most recent fetch may write state; superseded fetches are cancelled
      and their results discarded (ViewState generation check)
    - A cancelled fetch is never reported as an error
    - Pessimistic adds never show unconfirmed data; a failed optimistic add restores
      the pre-insert snapshot, or drops only its temp row once a newer fetch began
    - RecordCreated always triggers a re-fetch (payloads are never merged);
      RecordDeactivated removes the id locally without a round trip
    - After unmount() no handler, fetch or mutation writes to state

Design Decisions:
    - ViewState is injected (or created per view), never module-global: several
      views can share one RealtimeConnection without sharing state
    - Event handlers schedule a fetch and return immediately, so a slow fetch never
      stalls the shared event stream
    - remove_calculation() leaves local removal to the RecordDeactivated broadcast
      and reports failures through state.error, like the list did before
"""

import asyncio
import logging
from typing import Any
from uuid import uuid4

from calcsync.client.api_client import CalculationsApiClient
from calcsync.client.realtime import RealtimeConnection
from calcsync.core.domain_types import (
    ConsistencyStrategy, Operation, RecordEvent, SortKey,
)
from calcsync.core.errors import CalcSyncError
from calcsync.core.evaluate import evaluate, parse_operation
from calcsync.core.sync_state import ViewState

logger = logging.getLogger(__name__)


class CalculationsView:
    """List of calculations bound to the server via REST + realtime events."""

    def __init__(
        self,
        api: CalculationsApiClient,
        realtime: RealtimeConnection,
        strategy: ConsistencyStrategy = ConsistencyStrategy.PESSIMISTIC,
        state: ViewState | None = None,
        sort_by: SortKey | None = None,
        operation: Operation | None = None,
        min_result: float | None = None,
        max_result: float | None = None,
    ):
        self.api = api
        self.realtime = realtime
        self.strategy = strategy
        self.state = state or ViewState()
        self.filters: dict[str, Any] = {
            "sort_by": sort_by,
            "operation": operation,
            "min_result": min_result,
            "max_result": max_result,
        }
        self.mounted = False
        self._fetch_task: asyncio.Task | None = None
        self._unsubscribers: list = []

    @property
    def total_sum(self) -> float:
        return self.state.total_sum

    # ─── Lifecycle ──────────────────────────────────────────────

    async def mount(self) -> None:
        """Subscribe to realtime events, then load the first page."""
        self._unsubscribers = [
            self.realtime.on(RecordEvent.CREATED.value, self._on_record_created),
            self.realtime.on(RecordEvent.DEACTIVATED.value, self._on_record_deactivated),
            self.realtime.on_reconnect(self._on_reconnect),
        ]
        self.realtime.acquire()
        self.mounted = True
        await self.refresh()

    async def unmount(self) -> None:
        self.mounted = False
        task, self._fetch_task = self._fetch_task, None
        if task is not None and not task.done():
            task.cancel()
        self.state.invalidate()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        await self.realtime.release()

    # ─── Fetching ───────────────────────────────────────────────

    def start_fetch(self) -> asyncio.Task:
        """Cancel the in-flight fetch (if any) and start a new one."""
        if self._fetch_task is not None and not self._fetch_task.done():
            self._fetch_task.cancel()
        token = self.state.begin_fetch()
        self._fetch_task = asyncio.create_task(self._fetch(token))
        return self._fetch_task

    async def refresh(self) -> None:
        """Fetch and wait for the outcome. A superseding fetch ends the wait quietly."""
        await asyncio.wait({self.start_fetch()})

    async def retry(self) -> None:
        await self.refresh()

    async def wait_for_fetch(self) -> None:
        """Wait for whatever fetch is currently in flight."""
        while self._fetch_task is not None and not self._fetch_task.done():
            await asyncio.wait({self._fetch_task})

    async def _fetch(self, token: int) -> None:
        try:
            page = await self.api.list_page(
                page=self.state.page,
                page_size=self.state.page_size,
                **self.filters,
            )
        except CalcSyncError as e:
            if self.state.fail(token, e.message):
                logger.warning(f"Fetch failed: {e.message}")
            return
        except Exception as e:
            logger.error(f"Unexpected fetch failure: {e}", exc_info=True)
            self.state.fail(token, str(e) or "Failed to fetch data")
            return
        self.state.apply_page(token, page)

    # ─── Mutations ──────────────────────────────────────────────

    async def add_calculation(
        self, left: float, right: float, operation: Operation | str | int,
    ) -> dict:
        """Create a calculation. Errors propagate so forms can show field messages."""
        op = parse_operation(operation)
        if self.strategy is ConsistencyStrategy.OPTIMISTIC:
            return await self._add_optimistic(left, right, op)
        self.state.error = None
        response = await self.api.create(left, right, op)
        if self.mounted:
            await self.refresh()
        return response

    async def _add_optimistic(
        self, left: float, right: float, op: Operation,
    ) -> dict:
        predicted = evaluate(left, right, op)
        snapshot = self.state.snapshot()
        generation = self.state.generation
        temp_id = f"temp-{uuid4()}"
        self.state.error = None
        self.state.insert({
            "id": temp_id,
            "left": left,
            "right": right,
            "operation": op.value,
            "result": predicted,
            "username": None,
        })
        try:
            response = await self.api.create(left, right, op)
        except (Exception, asyncio.CancelledError) as e:
            logger.warning(f"Optimistic add rolled back: {e}")
            if self.state.generation == generation:
                self.state.restore(snapshot)
            else:
                # a newer fetch owns the list now; drop only the provisional row
                self.state.discard(temp_id)
            raise
        if self.mounted:
            await self.refresh()
        return response

    async def replace_calculation(
        self, record_id: str, left: float, right: float,
        operation: Operation | str | int,
    ) -> dict:
        # replacements are not broadcast, so this view re-fetches itself
        response = await self.api.replace(record_id, left, right, operation)
        if self.mounted:
            await self.refresh()
        return response

    async def remove_calculation(self, record_id: str) -> bool:
        try:
            await self.api.deactivate(record_id)
        except CalcSyncError as e:
            self.state.error = e.message or "Failed to deactivate calculation"
            return False
        return True

    # ─── Realtime handlers ──────────────────────────────────────

    def _on_record_created(self, data: Any) -> None:
        if self.mounted:
            self.start_fetch()

    def _on_record_deactivated(self, data: Any) -> None:
        if not self.mounted or not isinstance(data, dict):
            return
        self.state.remove(data.get("id"))

    def _on_reconnect(self) -> None:
        if self.mounted:
            self.start_fetch()
