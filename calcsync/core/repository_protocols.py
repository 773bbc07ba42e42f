"""Boundary Protocols: contracts between the services and their IO collaborators.

Invariants:
    - Services depend on these Protocols, never on SQLAlchemy or the broadcast hub directly
    - RecordStore methods that write also commit; a returned record is durable
    - Broadcaster.publish never blocks and reports how many subscribers it reached

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Async in RecordStore because implementations do IO; Broadcaster.publish is
      sync because fan-out is an in-process enqueue
"""

from datetime import datetime
from typing import Protocol
from uuid import UUID


class CalculationLike(Protocol):
    """Structural contract for a stored calculation record."""
    id: UUID
    left: float
    right: float
    operation: str
    result: float
    owner_id: UUID
    is_active: bool
    created_at: datetime
    deleted_at: datetime | None


class RecordStore(Protocol):
    """Contract for calculation persistence: implemented by CalculationStore."""
    async def add(
        self, *, left: float, right: float, operation: str,
        result: float, owner_id: UUID,
    ) -> CalculationLike: ...
    async def get_active(
        self, record_id: UUID, *, for_update: bool = False,
    ) -> CalculationLike | None: ...
    async def overwrite(
        self, record: CalculationLike, *, left: float, right: float,
        operation: str, result: float,
    ) -> CalculationLike: ...
    async def mark_inactive(
        self, record: CalculationLike, deleted_at: datetime,
    ) -> CalculationLike: ...
    async def rollback(self) -> None: ...


class Broadcaster(Protocol):
    """Contract for fire-and-forget fan-out: implemented by BroadcastHub."""
    def publish(self, event: str, payload: dict) -> int: ...
