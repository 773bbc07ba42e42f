"""Auth Routes: register, login, and current-user lookup.

Invariants:
    - register returns 201 with the public user view (no hash)
    - login returns a bearer token or 401 (same error for unknown user and bad password)
    - /me requires a valid token
"""

import logging

from fastapi import APIRouter, Depends, status

from calcsync.api.deps import get_current_principal, get_identity_service
from calcsync.core.domain_types import Principal
from calcsync.core.errors import UnauthenticatedError
from calcsync.models.user import User
from calcsync.schemas.auth import Token, UserLogin, UserRegister, UserResponse
from calcsync.services.identity_service import IdentityService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id, username=user.username, email=user.email,
        role=user.role, created_at=user.created_at,
    )


@router.post(
    "/register", response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(
    body: UserRegister,
    identity: IdentityService = Depends(get_identity_service),
):
    user = await identity.register(body.username, body.password, body.email)
    return _user_response(user)


@router.post("/login", response_model=Token)
async def login(
    body: UserLogin,
    identity: IdentityService = Depends(get_identity_service),
):
    token = await identity.login(body.username, body.password)
    return Token(access_token=token)


@router.get("/me", response_model=UserResponse)
async def me(
    principal: Principal = Depends(get_current_principal),
    identity: IdentityService = Depends(get_identity_service),
):
    """Current user, re-read so role changes show up immediately."""
    user = await identity.get_by_username(principal.username)
    if user is None:
        raise UnauthenticatedError("User not found")
    return _user_response(user)
