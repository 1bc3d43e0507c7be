"""Account deletion request model (GDPR Article 17 - Right to Erasure)."""

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, Index, String, func, text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, UUIDMixin


class DeletionStatus(str, enum.Enum):
    PENDING = "pending"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class AccountDeletionRequest(Base, UUIDMixin):
    """One row per deletion attempt.

    A row starts ``pending`` and moves to ``cancelled`` (user changed their
    mind) or ``completed`` (retention task finalized it after
    ``scheduled_deletion_at``). Rows are never physically deleted.
    """

    __tablename__ = "account_deletion_requests"

    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    status: Mapped[DeletionStatus] = mapped_column(
        Enum(
            DeletionStatus,
            name="deletionstatus",
            values_callable=lambda x: [e.value for e in x],
        ),
        default=DeletionStatus.PENDING,
        nullable=False,
    )
    scheduled_deletion_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        # At most one pending request per user, enforced by the database
        Index(
            "uq_account_deletion_requests_user_pending",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    def __repr__(self) -> str:
        return f"<AccountDeletionRequest {self.id} user={self.user_id} status={self.status}>"
