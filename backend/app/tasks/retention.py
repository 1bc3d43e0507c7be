"""Data retention tasks for account deletion.

Finalizes account deletion requests whose grace period has elapsed:
the Supabase auth user is removed and the request is marked completed.

Per GDPR Article 17 (Right to Erasure).
"""

import logging
from typing import Any

from sqlalchemy.orm import Session

from app.core.celery_app import celery_app
from app.core.config import settings
from app.core.database import SessionLocal
from app.services.account_deletion import process_due_deletions
from app.services.supabase_admin import get_auth_admin

logger = logging.getLogger(__name__)


def _skip_purge(user_id: str) -> None:
    logger.warning(f"Supabase admin API not configured, auth user {user_id} left in place")


@celery_app.task(bind=True, max_retries=3, default_retry_delay=300)  # type: ignore[misc]
def process_scheduled_deletions(self: Any) -> dict[str, Any]:
    """Process deletion requests whose grace period has expired.

    Users have DELETION_GRACE_PERIOD_DAYS to cancel a deletion request.

    Process:
    1. Find pending requests where scheduled_deletion_at <= now
    2. Delete the Supabase auth user
    3. Mark the request completed

    Returns:
        Dict with deletion results including count of processed requests.
    """
    if not settings.RETENTION_ENABLED:
        logger.info("Data retention is disabled, skipping scheduled deletions")
        return {"status": "skipped", "reason": "retention_disabled"}

    db: Session = SessionLocal()
    auth_admin = get_auth_admin()

    try:
        logger.info("Processing scheduled account deletions")

        result = process_due_deletions(
            db,
            purge=auth_admin.delete_user if auth_admin else _skip_purge,
            batch_size=settings.RETENTION_CLEANUP_BATCH_SIZE,
        )
        result = {"status": "success", **result}
        logger.info(f"Scheduled deletions completed: {result}")
        return result

    except Exception as e:
        logger.error(f"Scheduled deletion processing failed: {e}")
        db.rollback()
        raise self.retry(exc=e)

    finally:
        if auth_admin:
            auth_admin.close()
        db.close()
