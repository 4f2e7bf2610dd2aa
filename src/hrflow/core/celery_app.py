"""Celery application configuration.

Provides task queue infrastructure with Redis broker for:
- Approval SLA sweep (high priority, beat scheduled)
- Notification delivery (high priority)
- Background operations
"""

from celery import Celery
from celery.signals import after_setup_logger
from kombu import Exchange, Queue

from hrflow.core.config import get_settings
from hrflow.core.logging import setup_logging

settings = get_settings()

celery_app = Celery(
    settings.app_name,
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "hrflow.tasks.approval_tasks",
    ],
)

default_exchange = Exchange("default", type="direct")
priority_exchange = Exchange("priority", type="direct")

# Priority: high (5) > normal (0)
celery_app.conf.task_queues = (
    # High: Approval workflow, notifications
    Queue(
        "high",
        exchange=priority_exchange,
        routing_key="high",
        queue_arguments={"x-max-priority": 5},
    ),
    Queue(
        "normal",
        exchange=default_exchange,
        routing_key="normal",
        queue_arguments={"x-max-priority": 0},
    ),
)

celery_app.conf.task_default_queue = "normal"
celery_app.conf.task_default_exchange = "default"
celery_app.conf.task_default_routing_key = "normal"

celery_app.conf.task_routes = {
    "hrflow.tasks.approval_tasks.*": {"queue": "high"},
}

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # Timezone
    timezone="UTC",
    enable_utc=True,

    # Task execution
    task_acks_late=True,  # Acknowledge after task completes
    task_reject_on_worker_lost=True,  # Requeue if worker dies
    task_track_started=True,

    # Result backend
    result_expires=86400,

    # Worker configuration
    worker_prefetch_multiplier=4,
    worker_max_tasks_per_child=1000,

    # Retry configuration
    task_default_retry_delay=60,
    task_max_retries=3,

    # Logging
    worker_hijack_root_logger=False,

    # Broker settings
    broker_connection_retry_on_startup=True,
    broker_connection_max_retries=10,
    broker_pool_limit=10,

    # Beat scheduler (for periodic tasks)
    beat_scheduler="celery.beat:PersistentScheduler",
    beat_schedule_filename=".celery-beat-schedule",
)

celery_app.conf.beat_schedule = {
    "approval-escalation-sweep": {
        "task": "hrflow.tasks.approval_tasks.run_escalation_sweep",
        "schedule": settings.sla_sweep_interval_seconds,
        "options": {"queue": "high"},
    },
}


@after_setup_logger.connect
def configure_worker_logging(**kwargs) -> None:
    """Install the hrflow handlers once Celery has set up its own logging."""
    setup_logging(settings)
