"""Celery application for background email delivery.

Run a worker with ``celery -A signbox.celery_app worker -Q email``.
"""

from celery import Celery

from signbox.config import settings

celery = Celery(
    "signbox",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["signbox.notifications.celery_tasks"],
)

celery.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_routes={"send_signing_invitation": {"queue": "email"}},
    # callers never read invitation results
    task_ignore_result=True,
    broker_connection_retry_on_startup=True,
)
