"""Mutation Service: the single writer path for calculation records.

Invariants:
    - Nothing is persisted unless evaluate() succeeded
    - Check order for replace/deactivate: exists+active (404) -> owner (403) -> evaluate (400)
    - A failed replace leaves every field unchanged (evaluation precedes any assignment)
    - Exactly one event per successful create/deactivate, published only after commit
    - Replace publishes nothing (no RecordUpdated event exists)
    - A broadcast failure is logged and swallowed; the mutation still succeeds

Design Decisions:
    - Store and broadcaster injected as Protocols: tests pass fakes, routes pass
      CalculationStore + broadcast_hub
    - Deactivate is deliberately not idempotent: the second call is a 404
    - clock injectable for deterministic deleted_at in tests
"""

import logging
from datetime import datetime, timezone
from typing import Callable
from uuid import UUID

from calcsync.core.domain_types import Operation
from calcsync.core.errors import (
    ErrorContext, ForbiddenError, RecordNotFoundError,
)
from calcsync.core.evaluate import evaluate
from calcsync.core.record_events import record_created, record_deactivated
from calcsync.core.repository_protocols import (
    Broadcaster, CalculationLike, RecordStore,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MutationService:
    """Validates, computes, persists, then broadcasts."""

    def __init__(
        self,
        store: RecordStore,
        broadcaster: Broadcaster,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.broadcaster = broadcaster
        self.clock = clock

    async def create(
        self, left: float, right: float, op: Operation, owner_id: UUID,
    ) -> CalculationLike:
        result = evaluate(left, right, op)
        record = await self.store.add(
            left=left, right=right, operation=op.value,
            result=result, owner_id=owner_id,
        )
        logger.info(
            f"Created calculation {record.id}",
            extra={"record_id": str(record.id), "principal_id": str(owner_id)},
        )
        self._broadcast(*record_created(record))
        return record

    async def replace(
        self, record_id: UUID, left: float, right: float, op: Operation,
        requester_id: UUID,
    ) -> CalculationLike:
        record = await self._get_owned(record_id, requester_id)
        try:
            result = evaluate(left, right, op)
        except Exception:
            # release the row lock taken by _get_owned
            await self.store.rollback()
            raise
        record = await self.store.overwrite(
            record, left=left, right=right, operation=op.value, result=result,
        )
        logger.info(
            f"Replaced calculation {record_id}",
            extra={"record_id": str(record_id), "principal_id": str(requester_id)},
        )
        return record

    async def deactivate(
        self, record_id: UUID, requester_id: UUID,
    ) -> CalculationLike:
        record = await self._get_owned(record_id, requester_id)
        record = await self.store.mark_inactive(record, self.clock())
        logger.info(
            f"Deactivated calculation {record_id}",
            extra={"record_id": str(record_id), "principal_id": str(requester_id)},
        )
        self._broadcast(*record_deactivated(record))
        return record

    async def _get_owned(
        self, record_id: UUID, requester_id: UUID,
    ) -> CalculationLike:
        record = await self.store.get_active(record_id, for_update=True)
        if record is None:
            raise RecordNotFoundError(str(record_id))
        if record.owner_id != requester_id:
            await self.store.rollback()
            raise ForbiddenError(context=ErrorContext(
                record_id=str(record_id), principal_id=str(requester_id),
            ))
        return record

    def _broadcast(self, event: str, payload: dict) -> None:
        """Fire-and-forget: never lets a fan-out failure reach the caller."""
        try:
            self.broadcaster.publish(event, payload)
        except Exception as e:
            logger.error(
                f"Broadcast of {event} failed: {e}",
                extra={"event": event, "record_id": payload.get("id")},
                exc_info=True,
            )
