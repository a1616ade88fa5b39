# backend/secdash/workers/celery_app.py
from celery import Celery

from secdash.core.config import settings

celery_app = Celery(
    "secdash",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["secdash.workers.rss_worker"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    beat_schedule={
        "refresh-rss-feeds": {
            "task": "refresh_rss_feeds",
            "schedule": settings.RSS_REFRESH_INTERVAL_HOURS * 60 * 60,
        },
    },
)
