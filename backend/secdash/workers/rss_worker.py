# backend/secdash/workers/rss_worker.py
import asyncio
from typing import Any, Dict

import httpx
from celery import Task

from secdash.core.config import settings
from secdash.core.logging import logger
from secdash.workers.celery_app import celery_app


class RssTask(Task):
    """Custom task class for feed refresh tasks"""

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        """Handle task failure"""
        logger.error(f"RSS task {task_id} failed: {exc}", exc_info=True)


@celery_app.task(bind=True, base=RssTask, name="refresh_rss_feeds")
def refresh_rss_feeds(self) -> Dict[str, Any]:
    """Refresh every active feed in a background worker"""
    return asyncio.run(_refresh_rss_feeds_async())


async def _refresh_rss_feeds_async(session_factory=None) -> Dict[str, Any]:
    from secdash.db.database import get_session_factory
    from secdash.rss.service import RssService

    session_factory = session_factory or get_session_factory()
    async with session_factory() as session:
        async with httpx.AsyncClient(timeout=settings.RSS_FETCH_TIMEOUT_SECONDS) as client:
            service = RssService(session, client, session_factory=session_factory)
            result = await service.fetch_all_active_feeds()

    logger.info(
        f"Scheduled RSS refresh: {result.successful} succeeded, {result.failed} failed of {result.total}"
    )
    return {
        "total": result.total,
        "successful": result.successful,
        "failed": result.failed,
    }
