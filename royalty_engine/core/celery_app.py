"""Celery application instance for post-commit audit processing."""

from celery import Celery
from royalty_engine.core.config import get_settings

# Load settings
settings = get_settings()

# Audit events are published only after the ledger transaction commits
celery_app = Celery(
    "royalty_audit",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["royalty_engine.worker"],
)

celery_app.conf.update(
    # Serialization settings
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],

    # Timezone settings
    timezone="UTC",
    enable_utc=True,

    task_default_queue="audit",
    task_track_started=True,
    task_time_limit=60,
    task_acks_late=True,  # Redeliver audit events if a worker dies mid-task
    result_expires=3600,
)
