from celery import Celery

from quota_ledger.core.config import get_settings
from quota_ledger.core.logging import configure_logging

settings = get_settings()
configure_logging(settings.log_level, app_env=settings.app_env)

celery_app = Celery(
    "quota_ledger",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "quota_ledger.workers.tasks.redemption_maintenance",
    ],
)

celery_app.conf.update(
    task_default_queue="q_normal",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
)
