"""Calculation ORM: one evaluated (left, operation, right) = result record.

Invariants:
    - id is a UUID primary key assigned on insert, never changed
    - result is written only with the evaluator's output (services/mutation_service.py)
    - owner_id is set on insert and never changed
    - is_active goes True -> False once; deleted_at is set at that moment
    - Rows are never deleted (soft delete only)

Design Decisions:
    - operation stored as its enum name ("Add"...): readable in SQL, no int mapping
    - owner eager-loaded (selectin): every read projection needs the username
    - Composite index (is_active, created_at): default list query filters and sorts on both
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Float, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from calcsync.db.base import Base


class Calculation(Base):
    """Calculation record, soft-deletable."""
    __tablename__ = "calculations"
    __table_args__ = (
        Index("ix_calculations_active_created", "is_active", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    left: Mapped[float] = mapped_column(Float, nullable=False)
    right: Mapped[float] = mapped_column(Float, nullable=False)
    operation: Mapped[str] = mapped_column(String(20), nullable=False)
    result: Mapped[float] = mapped_column(Float, nullable=False)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    owner: Mapped["User"] = relationship(
        "User", back_populates="calculations", lazy="selectin",
    )
