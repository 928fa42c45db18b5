"""Celery application configuration."""

from celery import Celery
from celery.schedules import crontab

from app.core.config import settings

# Create Celery instance
celery_app = Celery(
    "taskhub",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.tasks.notification_tasks"],
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=10 * 60,
    task_soft_time_limit=8 * 60,
    worker_prefetch_multiplier=4,
    worker_max_tasks_per_child=1000,
)

# Periodic maintenance
celery_app.conf.beat_schedule = {
    "reconcile-orphan-attachments": {
        "task": "app.tasks.notification_tasks.reconcile_orphan_attachments_task",
        "schedule": crontab(hour=3, minute=0),
        "options": {"expires": 3600},
    },
    "expire-stale-invitations": {
        "task": "app.tasks.notification_tasks.expire_stale_invitations_task",
        "schedule": crontab(minute=0),
        "options": {"expires": 1800},
    },
}

celery_app.conf.task_routes = {
    "app.tasks.notification_tasks.send_*": {"queue": "notifications"},
    "app.tasks.notification_tasks.*": {"queue": "maintenance"},
}
