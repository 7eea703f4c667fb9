"""Celery application configuration."""

from typing import Any

from celery import Celery
from celery.schedules import crontab
from celery.signals import worker_process_init

from lingualetter.core.config import settings
from lingualetter.core.logging_config import setup_logging

# Create Celery app
celery_app = Celery(
    "lingualetter",
    broker=str(settings.redis_url),
    backend=str(settings.redis_url),
    include=[
        "lingualetter.workers.tasks.newsletter",
        "lingualetter.workers.tasks.maintenance",
    ],
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Beat evaluates crontab entries in the newsletter's local timezone
    timezone=settings.scheduler_timezone,
    enable_utc=True,
    # Task execution settings (newsletter tasks opt out of late acks)
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # Result backend settings
    result_expires=86400,  # Keep batch results for a day
    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=2,
    # Default queue name (must match worker -Q flag)
    task_default_queue="default",
    # Beat schedule: generation strictly before dispatch
    beat_schedule={
        "generate-daily-content": {
            "task": "tasks.newsletter.generate_content",
            "schedule": crontab(
                hour=settings.generate_content_hour,
                minute=settings.generate_content_minute,
            ),
        },
        "dispatch-daily-newsletter": {
            "task": "tasks.newsletter.dispatch_newsletter",
            "schedule": crontab(
                hour=settings.dispatch_newsletter_hour,
                minute=settings.dispatch_newsletter_minute,
            ),
        },
        "purge-invalidated-tokens": {
            "task": "tasks.maintenance.purge_invalidated_tokens",
            "schedule": crontab(
                hour=settings.purge_tokens_hour,
                minute=settings.purge_tokens_minute,
            ),
        },
    },
)


@worker_process_init.connect
def _init_worker_logging(**_kwargs: Any) -> None:
    setup_logging(debug=settings.debug)


# Task base class with common error handling
class BaseTask(celery_app.Task):  # type: ignore[misc, name-defined]
    """Base task class with error handling."""

    abstract = True
    autoretry_for = (Exception,)
    retry_backoff = True
    retry_backoff_max = 600  # Max 10 minutes between retries
    retry_jitter = True
    max_retries = 3
    # Limits apply per task; the newsletter tasks do not inherit them
    time_limit = 1800
    soft_time_limit = 1500
