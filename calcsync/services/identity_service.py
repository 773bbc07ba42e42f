"""Identity Service: registration, login and principal resolution.

Invariants:
    - Usernames are unique (case-sensitive); duplicates raise ConflictError
    - login() returns a token only for a matching username + password
    - Wrong username and wrong password fail identically (no user enumeration)
    - resolve_principal() maps a token to a Principal or raises UnauthenticatedError

Design Decisions:
    - Principal (core/domain_types.py) is the only identity object services see;
      ORM User never leaves this module and the auth routes
    - ensure_admin() is idempotent: used by the lifespan seed and the seed CLI
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from calcsync.config import Settings
from calcsync.core.domain_types import Principal, PrincipalId, Role
from calcsync.core.errors import ConflictError, UnauthenticatedError
from calcsync.infrastructure.security import (
    create_access_token, decode_access_token, hash_password, verify_password,
)
from calcsync.models.user import User

logger = logging.getLogger(__name__)


def to_principal(user: User) -> Principal:
    return Principal(
        id=PrincipalId(user.id), username=user.username, role=Role(user.role),
    )


class IdentityService:
    """User accounts and bearer tokens."""

    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings

    async def get_by_username(self, username: str) -> User | None:
        result = await self.db.execute(
            select(User).where(User.username == username),
        )
        return result.scalar_one_or_none()

    async def register(
        self, username: str, password: str, email: str | None = None,
        role: Role = Role.USER,
    ) -> User:
        if await self.get_by_username(username):
            raise ConflictError(f"Username '{username}' is already taken")
        if email:
            existing = await self.db.execute(select(User).where(User.email == email))
            if existing.scalar_one_or_none():
                raise ConflictError(f"Email '{email}' is already registered")
        user = User(
            username=username, email=email,
            password_hash=hash_password(password), role=role.value,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        logger.info(f"Registered user {username}", extra={"principal_id": str(user.id)})
        return user

    async def login(self, username: str, password: str) -> str:
        user = await self.get_by_username(username)
        if not user or not verify_password(password, user.password_hash):
            logger.warning(f"Failed login for {username}")
            raise UnauthenticatedError("Incorrect username or password")
        return self.issue_token(user)

    def issue_token(self, user: User) -> str:
        return create_access_token(self.settings, str(user.id), user.role)

    async def resolve_principal(self, token: str) -> Principal:
        claims = decode_access_token(self.settings, token)
        try:
            user_id = UUID(claims["sub"])
        except ValueError:
            raise UnauthenticatedError("Token subject is not a user id")
        user = await self.db.get(User, user_id)
        if not user:
            raise UnauthenticatedError("User not found")
        return to_principal(user)

    async def ensure_admin(self, username: str, password: str) -> User:
        """Create the admin account if missing; promote it if it exists as a User."""
        user = await self.get_by_username(username)
        if user is None:
            return await self.register(username, password, role=Role.ADMIN)
        if user.role != Role.ADMIN.value:
            user.role = Role.ADMIN.value
            await self.db.commit()
            logger.info(f"Promoted {username} to Admin")
        return user
