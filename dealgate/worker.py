"""
Celery worker for dealgate side effects (notifications, e-mail).

Start worker:    celery -A dealgate.worker worker --loglevel=info
"""
from celery import Celery

from dealgate.core.config import settings
from dealgate.core.sentry import init_sentry

celery_app = Celery(
    "dealgate_worker",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.REDIS_URL,
    include=[
        "dealgate.modules.notifications.tasks",
    ],
)

init_sentry(
    settings.SENTRY_DSN,
    environment=settings.SENTRY_ENVIRONMENT,
    release=settings.APP_VERSION,
    worker=True,
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    result_expires=86400,  # 24h
)
