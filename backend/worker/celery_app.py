"""Celery application configuration.

This module sets up the Celery app with:
- Redis as broker and result backend
- Cascade jobs routed to the dedicated "playbooks" queue
- Serialization and timezone settings
"""

from celery import Celery

from app.config import get_settings

settings = get_settings()

celery_app = Celery(
    "playbook_engine",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # Timezone
    timezone="UTC",
    enable_utc=True,

    task_routes={
        "worker.tasks.playbook.*": {"queue": "playbooks"},
        "worker.tasks.*": {"queue": "default"},
    },
    task_default_queue="default",

    # Result expiration (24 hours)
    result_expires=86400,

    # Automation actions are awaited inside the task; no engine-level timeout
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,
    task_acks_on_failure_or_timeout=True,

    include=[
        "worker.tasks.playbook",
    ],
)
