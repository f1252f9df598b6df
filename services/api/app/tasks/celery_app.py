"""Celery application configuration."""

import logging
import time

from celery import Celery
from celery.signals import task_failure, task_postrun, task_prerun, task_retry

from app.config import get_settings
from app.metrics import celery_task_total

logger = logging.getLogger(__name__)

settings = get_settings()

celery_app = Celery(
    "eventhub",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    task_default_queue="default",
    task_routes={
        "app.tasks.notification_tasks.*": {"queue": "notifications"},
    },
)

# task_id -> monotonic start time, filled by task_prerun
_task_start_times: dict[str, float] = {}


def _setup_task_signals() -> None:
    """Connect Celery signals to the task counters."""

    @task_prerun.connect(weak=False)
    def on_prerun(task_id=None, task=None, **kwargs):
        _task_start_times[task_id] = time.monotonic()

    @task_postrun.connect(weak=False)
    def on_postrun(task_id=None, task=None, state=None, **kwargs):
        started = _task_start_times.pop(task_id, None)
        if state == "SUCCESS":
            celery_task_total.labels(task_name=task.name, status="success").inc()
        if started is not None:
            logger.debug("Task %s finished in %.3fs (state=%s)", task.name, time.monotonic() - started, state)

    @task_failure.connect(weak=False)
    def on_failure(sender=None, task_id=None, exception=None, **kwargs):
        celery_task_total.labels(task_name=sender.name, status="failure").inc()
        logger.error("Task %s failed: %s", sender.name, exception)

    @task_retry.connect(weak=False)
    def on_retry(sender=None, reason=None, **kwargs):
        celery_task_total.labels(task_name=sender.name, status="retry").inc()
        logger.warning("Task %s retrying: %s", sender.name, reason)


_setup_task_signals()

celery_app.autodiscover_tasks(["app.tasks"])
