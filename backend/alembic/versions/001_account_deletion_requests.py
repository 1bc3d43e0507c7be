"""Create account_deletion_requests table

Adds:
- account_deletion_requests: one row per account deletion attempt
- partial unique index: at most one pending request per user

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "account_deletion_requests",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column(
            "status",
            sa.Enum("pending", "cancelled", "completed", name="deletionstatus"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("scheduled_deletion_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
    )
    op.create_index(
        "ix_account_deletion_requests_user_id",
        "account_deletion_requests",
        ["user_id"],
        unique=False,
    )
    op.create_index(
        "ix_account_deletion_requests_scheduled_deletion_at",
        "account_deletion_requests",
        ["scheduled_deletion_at"],
        unique=False,
    )
    op.create_index(
        "uq_account_deletion_requests_user_pending",
        "account_deletion_requests",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
        sqlite_where=sa.text("status = 'pending'"),
    )


def downgrade() -> None:
    op.drop_index("uq_account_deletion_requests_user_pending", table_name="account_deletion_requests")
    op.drop_index(
        "ix_account_deletion_requests_scheduled_deletion_at", table_name="account_deletion_requests"
    )
    op.drop_index("ix_account_deletion_requests_user_id", table_name="account_deletion_requests")
    op.drop_table("account_deletion_requests")
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP TYPE IF EXISTS deletionstatus")
