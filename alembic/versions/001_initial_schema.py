"""Initial schema: users and calculations.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="User"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "calculations",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("left", sa.Float, nullable=False),
        sa.Column("right", sa.Float, nullable=False),
        sa.Column("operation", sa.String(20), nullable=False),
        sa.Column("result", sa.Float, nullable=False),
        sa.Column("owner_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_calculations_owner_id", "calculations", ["owner_id"])
    op.create_index(
        "ix_calculations_active_created", "calculations", ["is_active", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_calculations_active_created", table_name="calculations")
    op.drop_index("ix_calculations_owner_id", table_name="calculations")
    op.drop_table("calculations")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
