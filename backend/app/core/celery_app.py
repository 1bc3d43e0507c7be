import ssl

from celery import Celery
from celery.schedules import crontab

from app.core.config import settings

TASK_MODULES = [
    "app.tasks.retention",
]

# Dev/eager mode: run tasks synchronously without Redis/Celery worker
# Set CELERY_TASK_ALWAYS_EAGER=true to enable
if settings.CELERY_TASK_ALWAYS_EAGER:
    celery_app = Celery(
        "huddle",
        broker="memory://",
        backend="cache+memory://",
        include=TASK_MODULES,
    )
    celery_app.conf.update(
        task_always_eager=True,
        task_eager_propagates=True,
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,
    )
else:
    celery_app = Celery(
        "huddle",
        broker=settings.REDIS_URL,
        backend=settings.REDIS_URL,
        include=TASK_MODULES,
    )

    celery_app.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,
        task_track_started=True,
        task_time_limit=600,  # 10 minutes max per task
        task_soft_time_limit=540,
        worker_prefetch_multiplier=1,
        task_acks_late=True,  # Acknowledge after task completes
        task_reject_on_worker_lost=True,
    )

    # SSL configuration for rediss:// URLs (e.g., Upstash)
    if settings.REDIS_URL.startswith("rediss://"):
        celery_app.conf.update(
            broker_use_ssl={"ssl_cert_reqs": ssl.CERT_REQUIRED},
            redis_backend_use_ssl={"ssl_cert_reqs": ssl.CERT_REQUIRED},
        )

# Deletion requests past their grace period are finalized by celery beat
celery_app.conf.beat_schedule = {
    "process-scheduled-deletions-daily": {
        "task": "app.tasks.retention.process_scheduled_deletions",
        "schedule": crontab(hour=4, minute=0),
        "options": {"queue": "retention"},
    },
}
