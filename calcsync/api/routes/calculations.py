"""Calculation Routes: create, list/search, replace and deactivate calculations.

Invariants:
    - Every endpoint requires an authenticated principal
    - Inactive records never appear in any response of this router
    - POST/PUT respond with {result, operation}; PATCH .../deactivate with {message, id}
    - Static GET paths are declared before /{record_id} so they are never shadowed

Design Decisions:
    - operation query filters go through parse_operation (names or legacy codes);
      a bad value is a field-keyed 400 like any other validation failure
    - pageSize upper bound comes from settings, checked here rather than in Query()
      so it can change without a redeploy of the schema
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from calcsync.api.deps import (
    get_current_principal, get_mutation_service, get_query_service,
)
from calcsync.config import Settings, get_settings
from calcsync.core.domain_types import Operation, Principal, SortKey
from calcsync.core.errors import (
    RecordNotFoundError, UnsupportedOperationError, ValidationError,
)
from calcsync.core.evaluate import parse_operation
from calcsync.schemas.calculation import (
    CalculationCreate, CalculationPage, CalculationReplace, CalculationResult,
    CalculationSearchResult, CalculationSummary, DeactivateResponse,
)
from calcsync.services.mutation_service import MutationService
from calcsync.services.query_service import QueryService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/calculations", tags=["calculations"])


def _operation_filter(value: str | None, field: str = "operation") -> Operation | None:
    if value is None or value == "":
        return None
    try:
        return parse_operation(value)
    except UnsupportedOperationError as e:
        raise ValidationError({field: [e.message]})


def _page_size(value: int | None, settings: Settings) -> int:
    if value is None:
        return settings.default_page_size
    if value > settings.max_page_size:
        raise ValidationError(
            {"pageSize": [f"Must be at most {settings.max_page_size}."]},
        )
    return value


# ─── Reads ──────────────────────────────────────────────────────

@router.get("", response_model=CalculationPage)
async def list_calculations(
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1, alias="pageSize"),
    sort_by: SortKey = Query(SortKey.CREATED_AT, alias="sortBy"),
    operation: str | None = Query(None),
    min_result: float | None = Query(None, alias="minResult"),
    max_result: float | None = Query(None, alias="maxResult"),
    principal: Principal = Depends(get_current_principal),
    queries: QueryService = Depends(get_query_service),
    settings: Settings = Depends(get_settings),
):
    """Filtered, sorted, paginated list of active calculations."""
    return await queries.list_page(
        page=page,
        page_size=_page_size(page_size, settings),
        sort_by=sort_by,
        operation=_operation_filter(operation),
        min_result=min_result,
        max_result=max_result,
    )


@router.get("/search", response_model=CalculationSearchResult)
async def search_calculations(
    operation: str | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1, alias="pageSize"),
    principal: Principal = Depends(get_current_principal),
    queries: QueryService = Depends(get_query_service),
    settings: Settings = Depends(get_settings),
):
    return await queries.search(
        operation=_operation_filter(operation),
        page=page,
        page_size=_page_size(page_size, settings),
    )


@router.get("/by-operation", response_model=list[CalculationSummary])
async def calculations_by_operation(
    operation: str = Query(...),
    principal: Principal = Depends(get_current_principal),
    queries: QueryService = Depends(get_query_service),
):
    return await queries.by_operation(_operation_filter(operation))


@router.get("/by-result-range", response_model=list[CalculationSummary])
async def calculations_by_result_range(
    min: float = Query(...),
    max: float = Query(...),
    principal: Principal = Depends(get_current_principal),
    queries: QueryService = Depends(get_query_service),
):
    return await queries.by_result_range(min, max)


@router.get("/summary", response_model=list[CalculationSummary])
async def calculations_summary(
    principal: Principal = Depends(get_current_principal),
    queries: QueryService = Depends(get_query_service),
):
    return await queries.summary()


@router.get("/{record_id}", response_model=CalculationSummary)
async def get_calculation(
    record_id: UUID,
    principal: Principal = Depends(get_current_principal),
    queries: QueryService = Depends(get_query_service),
):
    record = await queries.get(record_id)
    if record is None:
        raise RecordNotFoundError(str(record_id))
    return record


# ─── Mutations ──────────────────────────────────────────────────

@router.post("", response_model=CalculationResult)
async def create_calculation(
    body: CalculationCreate,
    principal: Principal = Depends(get_current_principal),
    mutations: MutationService = Depends(get_mutation_service),
):
    """Evaluate, persist, broadcast RecordCreated."""
    record = await mutations.create(
        body.left, body.right, body.operation, principal.id,
    )
    return CalculationResult(result=record.result, operation=record.operation)


@router.put("/{record_id}", response_model=CalculationResult)
async def replace_calculation(
    record_id: UUID,
    body: CalculationReplace,
    principal: Principal = Depends(get_current_principal),
    mutations: MutationService = Depends(get_mutation_service),
):
    """Full replacement; owner only; not broadcast."""
    record = await mutations.replace(
        record_id, body.left, body.right, body.operation, principal.id,
    )
    return CalculationResult(result=record.result, operation=record.operation)


@router.patch("/{record_id}/deactivate", response_model=DeactivateResponse)
async def deactivate_calculation(
    record_id: UUID,
    principal: Principal = Depends(get_current_principal),
    mutations: MutationService = Depends(get_mutation_service),
):
    """Soft delete; owner only; broadcast RecordDeactivated."""
    record = await mutations.deactivate(record_id, principal.id)
    return DeactivateResponse(message="Calculation deactivated", id=record.id)
