# backend/secdash/rss/service.py
"""
Feed fetching, classification and storage.

Each fetch attempt stamps ``last_fetched`` on the feed. A failed attempt
records its message on ``fetch_error``; a successful one clears it. Items are
deduplicated on ``link`` so refetching a feed only stores new entries.
"""
import asyncio
import csv
import io
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from secdash.core.config import settings
from secdash.core.exceptions import FeedFetchError
from secdash.core.logging import logger
from secdash.db.base import utcnow
from secdash.db.models.rss import RssItem
from secdash.db.repositories.rss_repository import RssFeedRepository, RssItemRepository
from secdash.rss.classifier import VulnerabilityClassifier
from secdash.rss.parser import FeedEntry, parse_feed

FEED_ACCEPT = "application/rss+xml, application/xml, text/xml, application/atom+xml"
FEED_NOT_FOUND = "RSS feed not found or inactive"


@dataclass
class FeedFetchResult:
    success: bool
    count: int = 0
    error: Optional[str] = None


@dataclass
class FetchAllResult:
    total: int = 0
    successful: int = 0
    failed: int = 0
    details: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class FeedImportResult:
    successful: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return f"Import completed. {self.successful} feeds added, {len(self.errors)} errors."


def default_feed_name(url: str) -> str:
    """Host part of ``url``, used when a feed list gives no name."""
    return urlparse(url).netloc or url.split("/")[0]


class RssService:
    """
    Fetches subscribed feeds into ``RssItem`` rows.

    ``session_factory`` supplies one session per feed so a batch of feeds can
    be fetched concurrently. Without it, batches are fetched sequentially on
    ``session``; a single session is never shared between concurrent fetches.
    """

    def __init__(
        self,
        session: AsyncSession,
        client: Optional[httpx.AsyncClient] = None,
        classifier: Optional[VulnerabilityClassifier] = None,
        session_factory: Optional[async_sessionmaker] = None
    ):
        self.session = session
        self.client = client
        self.classifier = classifier or VulnerabilityClassifier()
        self.session_factory = session_factory
        self.feeds = RssFeedRepository(session)
        self.items = RssItemRepository(session)

    async def fetch_and_parse_feed(self, feed_id: str) -> FeedFetchResult:
        """Fetch one feed and store its new items."""
        feed = await self.feeds.get(feed_id)
        if feed is None or not feed.active:
            return FeedFetchResult(success=False, error=FEED_NOT_FOUND)

        url = feed.url
        log_extra = {"feed_id": feed_id}
        try:
            document = await self._download(url)
            entries = parse_feed(document)
            count = await self._store_entries(feed_id, entries)
        except (httpx.HTTPError, FeedFetchError) as e:
            message = str(e) or e.__class__.__name__
            logger.error(f"RSS fetch failed for {url}: {message}", extra=log_extra)
            await self.feeds.update(feed_id, {"last_fetched": utcnow(), "fetch_error": message})
            return FeedFetchResult(success=False, error=message)
        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.error(f"RSS fetch failed for {url}: {message}", exc_info=True, extra=log_extra)
            if isinstance(e, SQLAlchemyError):
                await self.session.rollback()
            await self.feeds.update(feed_id, {"last_fetched": utcnow(), "fetch_error": message})
            return FeedFetchResult(success=False, error=message)

        await self.feeds.update(feed_id, {"last_fetched": utcnow(), "fetch_error": None})
        logger.info(f"Fetched {count} new items from {url}", extra=log_extra)
        return FeedFetchResult(success=True, count=count)

    async def fetch_all_active_feeds(self) -> FetchAllResult:
        """
        Refresh every active feed in fixed-size batches, concurrently when a
        session factory is available.

        One feed's failure is recorded in the result and never aborts the
        others.
        """
        feeds = await self.feeds.get_active()
        feed_ids = [(feed.id, feed.name) for feed in feeds]
        result = FetchAllResult(total=len(feed_ids))

        batch_size = max(1, settings.RSS_BATCH_SIZE)
        for start in range(0, len(feed_ids), batch_size):
            batch = feed_ids[start:start + batch_size]
            outcomes = await self._run_batch([feed_id for feed_id, _ in batch])
            for (feed_id, name), outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    logger.error(
                        f"RSS fetch crashed for {name}: {outcome}",
                        exc_info=outcome,
                        extra={"feed_id": feed_id}
                    )
                    outcome = FeedFetchResult(success=False, error=str(outcome))
                if outcome.success:
                    result.successful += 1
                else:
                    result.failed += 1
                result.details.append({
                    "feed_id": feed_id,
                    "name": name,
                    "success": outcome.success,
                    "count": outcome.count,
                    "error": outcome.error,
                })

            if start + batch_size < len(feed_ids):
                await asyncio.sleep(settings.RSS_BATCH_DELAY_SECONDS)

        logger.info(
            f"RSS refresh finished: {result.successful}/{result.total} feeds succeeded"
        )
        return result

    async def import_feed_list(self, content: bytes) -> FeedImportResult:
        """
        Subscribe to the feeds of a CSV list.

        Columns: ``Category``, ``RSS URL`` (or ``url``) and an optional
        ``Name``. Feeds whose URL is already subscribed are reported as errors.
        """
        result = FeedImportResult()
        reader = csv.DictReader(io.StringIO(content.decode("utf-8-sig", errors="replace")))

        for number, row in enumerate(reader, start=1):
            category = (row.get("Category") or row.get("category") or "").strip()
            url = (row.get("RSS URL") or row.get("url") or row.get("URL") or "").strip()
            if not category or not url:
                result.errors.append(f"Row {number}: Missing category or URL")
                continue

            name = (row.get("Name") or row.get("name") or "").strip() or default_feed_name(url)
            try:
                if await self.feeds.get_by_url(url) is not None:
                    result.errors.append(f"Row {number}: RSS feed already exists: {url}")
                    continue
                await self.feeds.create({"name": name, "url": url, "category": category, "active": True})
                result.successful += 1
            except SQLAlchemyError as e:
                await self.session.rollback()
                result.errors.append(f"Row {number}: Failed to process - {e}")

        return result

    async def _run_batch(self, feed_ids: List[str]) -> List[Any]:
        """Fetch outcomes in ``feed_ids`` order; a crashed fetch yields its exception."""
        if self.session_factory is None:
            # Only one session: fetch one feed at a time
            outcomes: List[Any] = []
            for feed_id in feed_ids:
                try:
                    outcomes.append(await self.fetch_and_parse_feed(feed_id))
                except Exception as e:
                    await self.session.rollback()
                    outcomes.append(e)
            return outcomes

        return await asyncio.gather(
            *(self._fetch_isolated(feed_id) for feed_id in feed_ids),
            return_exceptions=True,
        )

    async def _fetch_isolated(self, feed_id: str) -> FeedFetchResult:
        async with self.session_factory() as session:
            service = RssService(session, self.client, self.classifier)
            return await service.fetch_and_parse_feed(feed_id)

    async def _download(self, url: str) -> bytes:
        response = await self.client.get(
            url,
            headers={"User-Agent": settings.RSS_USER_AGENT, "Accept": FEED_ACCEPT},
            timeout=settings.RSS_FETCH_TIMEOUT_SECONDS,
            follow_redirects=True,
        )
        if not response.is_success:
            raise FeedFetchError(f"HTTP {response.status_code}: {response.reason_phrase}")
        return response.content

    async def _store_entries(self, feed_id: str, entries: List[FeedEntry]) -> int:
        stored = 0
        for entry in entries:
            try:
                if await self.items.exists_by_link(entry.link):
                    continue
                data = self.classifier.classify(entry.title, entry.description)
                self.session.add(RssItem(
                    feed_id=feed_id,
                    title=entry.title,
                    description=entry.description,
                    link=entry.link,
                    pub_date=entry.pub_date,
                    author=entry.author,
                    category=entry.category,
                    severity=data.severity,
                    tags=data.tags,
                    cves=data.cves,
                    cvss_score=data.cvss,
                    affected_products=data.affected_products,
                    fetched_at=utcnow(),
                ))
                await self.session.commit()
                stored += 1
            except SQLAlchemyError as e:
                await self.session.rollback()
                logger.warning(
                    f"Skipping RSS item {entry.link}: {e}",
                    extra={"feed_id": feed_id}
                )
        return stored
