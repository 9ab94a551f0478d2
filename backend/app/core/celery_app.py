from celery import Celery
from celery.schedules import crontab

from .config import get_settings
from .logging import configure_logging

settings = get_settings()
configure_logging()

celery_app = Celery(
    "sourcing_engagements",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

celery_app.conf.update(
    task_routes={"app.services.outbox.*": {"queue": "outbox"}},
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    imports=("app.services.outbox",),
    beat_schedule={
        # Replay cascade effects that failed during proposal status changes
        "sweep-pending-effects": {
            "task": "app.services.outbox.sweep_pending_effects",
            "schedule": float(settings.OUTBOX_SWEEP_SECONDS),
        },
        # Daily purge of delivered effects based on OUTBOX_RETENTION_DAYS
        "cleanup-delivered-effects": {
            "task": "app.services.outbox.cleanup_delivered",
            "schedule": crontab(hour=3, minute=0),
        },
    },
)
