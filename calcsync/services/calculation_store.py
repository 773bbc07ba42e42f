"""Calculation Store: SQLAlchemy implementation of the RecordStore protocol.

Invariants:
    - get_active() never returns an inactive row
    - Every write method commits before returning (returned rows are durable)
    - overwrite() touches only left/right/operation/result; owner_id and created_at are untouched
    - mark_inactive() is the only path that flips is_active

Design Decisions:
    - for_update=True issues SELECT ... FOR UPDATE so replace/deactivate are serialized
      per row on PostgreSQL; SQLite ignores the hint and serializes writers anyway
    - Store never evaluates arithmetic; results are handed in by MutationService
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from calcsync.models.calculation import Calculation


class CalculationStore:
    """Persistence for Calculation rows, bound to one AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(
        self, *, left: float, right: float, operation: str,
        result: float, owner_id: UUID,
    ) -> Calculation:
        record = Calculation(
            left=left, right=right, operation=operation,
            result=result, owner_id=owner_id, is_active=True,
        )
        self.db.add(record)
        await self.db.commit()
        await self.db.refresh(record)
        return record

    async def get_active(
        self, record_id: UUID, *, for_update: bool = False,
    ) -> Calculation | None:
        query = select(Calculation).where(
            Calculation.id == record_id, Calculation.is_active.is_(True),
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def overwrite(
        self, record: Calculation, *, left: float, right: float,
        operation: str, result: float,
    ) -> Calculation:
        record.left = left
        record.right = right
        record.operation = operation
        record.result = result
        await self.db.commit()
        await self.db.refresh(record)
        return record

    async def mark_inactive(
        self, record: Calculation, deleted_at: datetime,
    ) -> Calculation:
        record.is_active = False
        record.deleted_at = deleted_at
        await self.db.commit()
        await self.db.refresh(record)
        return record

    async def rollback(self) -> None:
        await self.db.rollback()
