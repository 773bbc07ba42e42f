"""Route Dependencies: principal resolution and service construction.

Invariants:
    - get_current_principal runs once per request and yields an opaque Principal
    - A missing/malformed Authorization header and a bad token both raise UnauthenticatedError
    - require_admin raises ForbiddenError for non-admin principals
    - Services are built per request on the request's AsyncSession

Design Decisions:
    - Header parsing by hand (extract_bearer_token) over HTTPBearer: FastAPI's scheme
      raises its own HTTPException, which would bypass the calcsync error envelope
    - MutationService gets the process-wide broadcast_hub; tests swap it via
      dependency_overrides[get_broadcaster]
"""

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from calcsync.config import Settings, get_settings
from calcsync.core.domain_types import Principal
from calcsync.core.errors import ForbiddenError, UnauthenticatedError
from calcsync.core.repository_protocols import Broadcaster
from calcsync.infrastructure.broadcast import broadcast_hub
from calcsync.infrastructure.database import get_db
from calcsync.infrastructure.security import extract_bearer_token
from calcsync.services.calculation_store import CalculationStore
from calcsync.services.identity_service import IdentityService
from calcsync.services.mutation_service import MutationService
from calcsync.services.query_service import QueryService


def get_broadcaster() -> Broadcaster:
    return broadcast_hub


def get_identity_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> IdentityService:
    return IdentityService(db, settings)


async def get_current_principal(
    authorization: str | None = Header(None),
    identity: IdentityService = Depends(get_identity_service),
) -> Principal:
    token = extract_bearer_token(authorization)
    if not token:
        raise UnauthenticatedError("Not authenticated")
    return await identity.resolve_principal(token)


async def require_admin(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    if not principal.is_admin:
        raise ForbiddenError("Admin role required")
    return principal


def get_mutation_service(
    db: AsyncSession = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> MutationService:
    return MutationService(CalculationStore(db), broadcaster)


def get_query_service(db: AsyncSession = Depends(get_db)) -> QueryService:
    return QueryService(db)
