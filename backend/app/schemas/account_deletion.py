"""Wire schemas for the account deletion endpoint."""

from datetime import UTC, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from app.models.account_deletion import DeletionStatus


class DeletionActionIn(BaseModel):
    """Body of ``POST /api/v1/account-deletion``.

    Both fields are optional at the schema level so that a missing
    ``user_id`` or an unknown ``action`` is reported by the service with
    its own error message instead of a generic validation error.
    """

    action: str | None = None
    user_id: str | None = None


class DeletionRequestRead(BaseModel):
    """A deletion request row as returned to the client."""

    id: UUID
    user_id: str
    status: DeletionStatus
    scheduled_deletion_at: datetime
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator(
        "scheduled_deletion_at", "cancelled_at", "completed_at", "created_at"
    )
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        # SQLite drops tzinfo; everything is stored in UTC
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class DeletionActionOut(BaseModel):
    """Response for ``request_deletion`` and ``cancel_deletion``."""

    success: bool = True
    message: str
    deletion_request: DeletionRequestRead


class DeletionStatusOut(BaseModel):
    """Response for ``get_status``."""

    has_pending_request: bool
    deletion_request: DeletionRequestRead | None = None
