"""History Route: admin-only audit of every calculation, including deactivated ones.

Invariants:
    - Non-admin principals get 403, anonymous callers 401
    - The one read path that includes inactive records; each row says which it is
"""

from fastapi import APIRouter, Depends

from calcsync.api.deps import get_query_service, require_admin
from calcsync.core.domain_types import Principal
from calcsync.schemas.calculation import HistoryItem
from calcsync.services.query_service import QueryService

router = APIRouter(prefix="/api/v1/history", tags=["history"])


@router.get("", response_model=list[HistoryItem])
async def get_history(
    admin: Principal = Depends(require_admin),
    queries: QueryService = Depends(get_query_service),
):
    return await queries.history()
