"""User ORM: authenticated principals that own calculations.

Invariants:
    - username is unique and doubles as the owner display name
    - password_hash is never serialized to clients
    - role is one of Role ("User" | "Admin")

Design Decisions:
    - role as a plain string column over a roles table: two fixed roles
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from calcsync.db.base import Base


class User(Base):
    """Registered principal."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    username: Mapped[str] = mapped_column(
        String(100), unique=True, index=True, nullable=False,
    )
    email: Mapped[str | None] = mapped_column(
        String(255), unique=True, nullable=True,
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="User",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    calculations: Mapped[list["Calculation"]] = relationship(
        "Calculation", back_populates="owner",
    )
