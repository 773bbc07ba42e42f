"""Query Service: filter, paginate and sort active calculation records.

Invariants:
    - Every query except history() filters is_active = True
    - page is 1-based; offset = (page - 1) * page_size
    - totalCount counts the filtered set, not the returned page
    - Read-only: never writes, never commits

Design Decisions:
    - Returns plain projection dicts (id, left, right, operation, result, username):
      routes wrap them in response schemas, the broadcast payload is built elsewhere
    - Sorting: createdAt newest first (default), result ascending; ties broken by id
      so pagination is stable
    - owner eager-loaded via selectin on the model, so projections cost one extra query
"""

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from calcsync.core.domain_types import Operation, SortKey
from calcsync.core.errors import ValidationError
from calcsync.models.calculation import Calculation


def project(record: Calculation) -> dict:
    """Read projection of one record."""
    return {
        "id": record.id,
        "left": record.left,
        "right": record.right,
        "operation": record.operation,
        "result": record.result,
        "username": record.owner.username if record.owner else None,
    }


def check_result_range(
    min_result: float | None, max_result: float | None,
    min_field: str = "minResult",
) -> None:
    if min_result is not None and max_result is not None and min_result > max_result:
        raise ValidationError({min_field: ["Minimum must not exceed maximum."]})


class QueryService:
    """Read-side queries over calculations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _active(
        operation: Operation | None = None,
        min_result: float | None = None,
        max_result: float | None = None,
    ) -> Select:
        query = select(Calculation).where(Calculation.is_active.is_(True))
        if operation is not None:
            query = query.where(Calculation.operation == operation.value)
        if min_result is not None:
            query = query.where(Calculation.result >= min_result)
        if max_result is not None:
            query = query.where(Calculation.result <= max_result)
        return query

    @staticmethod
    def _ordered(query: Select, sort_by: SortKey) -> Select:
        if sort_by is SortKey.RESULT:
            return query.order_by(Calculation.result.asc(), Calculation.id.asc())
        return query.order_by(Calculation.created_at.desc(), Calculation.id.asc())

    async def _count(self, query: Select) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(query.subquery()),
        )
        return int(result.scalar_one())

    async def _fetch(self, query: Select) -> list[dict]:
        result = await self.db.execute(query)
        return [project(r) for r in result.scalars().all()]

    async def list_page(
        self,
        page: int = 1,
        page_size: int = 10,
        sort_by: SortKey = SortKey.CREATED_AT,
        operation: Operation | None = None,
        min_result: float | None = None,
        max_result: float | None = None,
    ) -> dict:
        """Filtered, sorted, paginated list: {total_count, page, page_size, data}."""
        check_result_range(min_result, max_result)
        filtered = self._active(operation, min_result, max_result)
        total = await self._count(filtered)
        data = await self._fetch(
            self._ordered(filtered, sort_by)
            .offset((page - 1) * page_size)
            .limit(page_size),
        )
        return {
            "total_count": total,
            "page": page,
            "page_size": page_size,
            "data": data,
        }

    async def get(self, record_id) -> dict | None:
        """Single active record projection, or None if absent/inactive."""
        rows = await self._fetch(
            self._active().where(Calculation.id == record_id),
        )
        return rows[0] if rows else None

    async def search(
        self, operation: Operation | None = None, page: int = 1, page_size: int = 10,
    ) -> dict:
        filtered = self._active(operation)
        total = await self._count(filtered)
        data = await self._fetch(
            self._ordered(filtered, SortKey.CREATED_AT)
            .offset((page - 1) * page_size)
            .limit(page_size),
        )
        return {"total": total, "data": data}

    async def by_operation(self, operation: Operation) -> list[dict]:
        return await self._fetch(
            self._ordered(self._active(operation), SortKey.CREATED_AT),
        )

    async def by_result_range(self, min_result: float, max_result: float) -> list[dict]:
        check_result_range(min_result, max_result, min_field="min")
        return await self._fetch(self._ordered(
            self._active(min_result=min_result, max_result=max_result),
            SortKey.RESULT,
        ))

    async def summary(self) -> list[dict]:
        return await self._fetch(self._ordered(self._active(), SortKey.CREATED_AT))

    async def history(self) -> list[dict]:
        """Audit view: every record, active or not, oldest first."""
        result = await self.db.execute(
            select(Calculation).order_by(
                Calculation.created_at.asc(), Calculation.id.asc(),
            ),
        )
        return [
            {**project(r), "is_active": r.is_active, "deleted_at": r.deleted_at}
            for r in result.scalars().all()
        ]
