"""Account deletion request lifecycle (GDPR Article 17 - Right to Erasure).

A user asks for their account to be deleted, gets a fixed grace period to
change their mind, and the retention task finalizes the request once the
grace period has elapsed:

    (none) -> pending -> cancelled   (cancel_deletion)
                      -> completed   (process_due_deletions)

The at-most-one-pending-request-per-user rule is enforced by the partial
unique index on ``account_deletion_requests``; the checks here only decide
which error to report. All functions take the caller's session and commit
their own writes.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from sqlalchemy import Select, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.account_deletion import AccountDeletionRequest, DeletionStatus
from app.schemas.account_deletion import (
    DeletionActionOut,
    DeletionRequestRead,
    DeletionStatusOut,
)

logger = logging.getLogger(__name__)


class DeletionAction(str, Enum):
    REQUEST_DELETION = "request_deletion"
    CANCEL_DELETION = "cancel_deletion"
    GET_STATUS = "get_status"


# =============================================================================
# Errors
# =============================================================================


class AccountDeletionError(Exception):
    """Base class for errors reported to the client."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_body(self) -> dict[str, Any]:
        return {"error": self.message}


class InvalidArgumentError(AccountDeletionError):
    """Missing or malformed input, or an unknown action."""

    status_code = 400


class DeletionConflictError(AccountDeletionError):
    """The user already has a pending deletion request."""

    status_code = 400

    def __init__(self, existing: AccountDeletionRequest):
        super().__init__("A deletion request is already pending")
        self.existing = existing
        # Serialized now; the session may be closed before the error is rendered
        self.existing_body = serialize_request(existing)

    def to_body(self) -> dict[str, Any]:
        return {"error": self.message, "existing_request": self.existing_body}


class DeletionNotFoundError(AccountDeletionError):
    """Cancel was requested but nothing is pending."""

    status_code = 404

    def __init__(self) -> None:
        super().__init__("No pending deletion request found")


class DeletionStorageError(AccountDeletionError):
    """Unexpected database failure; the driver's message is passed through."""

    status_code = 500

    @classmethod
    def from_exception(cls, exc: SQLAlchemyError) -> "DeletionStorageError":
        orig = getattr(exc, "orig", None)
        return cls(str(orig) if orig is not None else str(exc))


# =============================================================================
# Helper Functions
# =============================================================================


def grace_period() -> timedelta:
    """Time between a request and its eligibility for deletion."""
    return timedelta(days=settings.DELETION_GRACE_PERIOD_DAYS)


def serialize_request(row: AccountDeletionRequest) -> dict[str, Any]:
    """Serialize a deletion request row for a JSON response."""
    return DeletionRequestRead.model_validate(row).model_dump(mode="json")


def _require_user_id(user_id: str | None) -> str:
    # Opaque identifier: blank ids are rejected, anything else is kept as given
    if not user_id or not user_id.strip():
        raise InvalidArgumentError("user_id is required")
    return user_id


def _pending_stmt(user_id: str) -> Select[tuple[AccountDeletionRequest]]:
    return select(AccountDeletionRequest).where(
        AccountDeletionRequest.user_id == user_id,
        AccountDeletionRequest.status == DeletionStatus.PENDING,
    )


def _get_pending(db: Session, user_id: str) -> AccountDeletionRequest | None:
    return db.execute(_pending_stmt(user_id)).scalars().first()


# =============================================================================
# Operations
# =============================================================================


def request_deletion(
    db: Session, user_id: str | None, now: datetime | None = None
) -> AccountDeletionRequest:
    """Schedule the user's account for deletion after the grace period.

    Raises:
        InvalidArgumentError: ``user_id`` is missing.
        DeletionConflictError: A pending request already exists; it is attached.
        DeletionStorageError: The database failed.
    """
    user_id = _require_user_id(user_id)
    now = now or datetime.now(UTC)

    try:
        existing = _get_pending(db, user_id)
        if existing is not None:
            logger.info(f"Deletion already pending for user {user_id}: {existing.id}")
            raise DeletionConflictError(existing)

        deletion_request = AccountDeletionRequest(
            user_id=user_id,
            status=DeletionStatus.PENDING,
            scheduled_deletion_at=now + grace_period(),
        )
        db.add(deletion_request)
        try:
            db.commit()
        except IntegrityError:
            # A concurrent request won the partial unique index
            db.rollback()
            winner = _get_pending(db, user_id)
            if winner is None:
                raise
            logger.info(f"Lost insert race for user {user_id}, pending request {winner.id}")
            raise DeletionConflictError(winner) from None
        db.refresh(deletion_request)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating deletion request for user {user_id}: {e}")
        raise DeletionStorageError.from_exception(e) from e

    logger.info(
        f"Deletion request created: {deletion_request.id} for user {user_id}, "
        f"scheduled at {deletion_request.scheduled_deletion_at}"
    )
    return deletion_request


def cancel_deletion(
    db: Session, user_id: str | None, now: datetime | None = None
) -> AccountDeletionRequest:
    """Cancel the user's pending deletion request.

    The status check and the write are one conditional UPDATE, so of two
    concurrent cancellations only one sees the row.

    Raises:
        InvalidArgumentError: ``user_id`` is missing.
        DeletionNotFoundError: Nothing is pending for the user.
        DeletionStorageError: The database failed.
    """
    user_id = _require_user_id(user_id)
    now = now or datetime.now(UTC)

    stmt = (
        update(AccountDeletionRequest)
        .where(
            AccountDeletionRequest.user_id == user_id,
            AccountDeletionRequest.status == DeletionStatus.PENDING,
        )
        .values(status=DeletionStatus.CANCELLED, cancelled_at=now)
        .returning(AccountDeletionRequest)
    )

    try:
        cancelled = db.execute(stmt).scalars().first()
        if cancelled is None:
            db.rollback()
            logger.info(f"No pending deletion request to cancel for user {user_id}")
            raise DeletionNotFoundError()
        db.commit()
        # Commit expired the RETURNING values; reload while errors are still mapped
        db.refresh(cancelled)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error cancelling deletion request for user {user_id}: {e}")
        raise DeletionStorageError.from_exception(e) from e

    logger.info(f"Deletion request cancelled: {cancelled.id} for user {user_id}")
    return cancelled


def get_deletion_status(db: Session, user_id: str | None) -> AccountDeletionRequest | None:
    """Return the user's pending deletion request, if any."""
    user_id = _require_user_id(user_id)
    try:
        return _get_pending(db, user_id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error getting deletion status for user {user_id}: {e}")
        raise DeletionStorageError.from_exception(e) from e


def manage_account_deletion(
    db: Session, action: str | None, user_id: str | None
) -> dict[str, Any]:
    """Run one deletion action and return the JSON response body.

    Every call is logged with its action and user id, including rejected
    ones. ``user_id`` is validated before the action so that a request
    without one never reaches the database.
    """
    logger.info(f"Account deletion action: {action} for user: {user_id}")
    user_id = _require_user_id(user_id)

    if action == DeletionAction.REQUEST_DELETION.value:
        created = request_deletion(db, user_id)
        return DeletionActionOut(
            message="Account deletion scheduled",
            deletion_request=DeletionRequestRead.model_validate(created),
        ).model_dump(mode="json")

    if action == DeletionAction.CANCEL_DELETION.value:
        cancelled = cancel_deletion(db, user_id)
        return DeletionActionOut(
            message="Account deletion cancelled",
            deletion_request=DeletionRequestRead.model_validate(cancelled),
        ).model_dump(mode="json")

    if action == DeletionAction.GET_STATUS.value:
        pending = get_deletion_status(db, user_id)
        return DeletionStatusOut(
            has_pending_request=pending is not None,
            deletion_request=(
                DeletionRequestRead.model_validate(pending) if pending is not None else None
            ),
        ).model_dump(mode="json")

    logger.warning(f"Invalid account deletion action {action!r} for user: {user_id}")
    valid = ", ".join(a.value for a in DeletionAction)
    raise InvalidArgumentError(f"Invalid action. Use one of: {valid}")


# =============================================================================
# Retention
# =============================================================================


def process_due_deletions(
    db: Session,
    purge: Callable[[str], None],
    now: datetime | None = None,
    batch_size: int | None = None,
) -> dict[str, Any]:
    """Finalize pending requests whose grace period has elapsed.

    ``purge`` removes the account itself and must be idempotent. Each row is
    locked, purged and marked ``completed`` in its own transaction; a row
    whose purge fails stays pending and is retried on the next run. Rows
    locked by another worker, or cancelled meanwhile, are skipped.

    Returns:
        Dict with counts of processed and failed requests.
    """
    now = now or datetime.now(UTC)
    batch_size = batch_size or settings.RETENTION_CLEANUP_BATCH_SIZE

    due_ids = (
        db.execute(
            select(AccountDeletionRequest.id)
            .where(
                AccountDeletionRequest.status == DeletionStatus.PENDING,
                AccountDeletionRequest.scheduled_deletion_at <= now,
            )
            .order_by(
                AccountDeletionRequest.scheduled_deletion_at.asc(),
                AccountDeletionRequest.id.asc(),
            )
            .limit(batch_size)
        )
        .scalars()
        .all()
    )
    db.rollback()

    processed_count = 0
    errors: list[dict[str, str]] = []

    for request_id in due_ids:
        row = (
            db.execute(
                select(AccountDeletionRequest)
                .where(
                    AccountDeletionRequest.id == request_id,
                    AccountDeletionRequest.status == DeletionStatus.PENDING,
                )
                .with_for_update(skip_locked=True)
            )
            .scalars()
            .first()
        )
        if row is None:
            db.rollback()
            continue

        user_id = row.user_id
        try:
            purge(user_id)
            row.status = DeletionStatus.COMPLETED
            row.completed_at = now
            db.commit()
            processed_count += 1
            logger.info(f"Processed deletion {request_id} for user {user_id}")
        except Exception as e:
            db.rollback()
            logger.error(f"Error processing deletion {request_id} for user {user_id}: {e}")
            errors.append({"request_id": str(request_id), "user_id": user_id, "error": str(e)})

    return {
        "processed_count": processed_count,
        "error_count": len(errors),
        "errors": errors[:10],  # Limit error list size
    }
