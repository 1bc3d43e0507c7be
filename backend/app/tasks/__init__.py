# Celery tasks
from app.tasks.retention import process_scheduled_deletions

__all__ = [
    "process_scheduled_deletions",
]
