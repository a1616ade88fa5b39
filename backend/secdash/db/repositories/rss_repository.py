# backend/secdash/db/repositories/rss_repository.py
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from secdash.db.models.rss import RssFeed, RssItem
from secdash.db.repositories.base import BaseRepository


class RssFeedRepository(BaseRepository[RssFeed]):
    """Repository for RssFeed operations"""

    def __init__(self, session: AsyncSession):
        super().__init__(RssFeed, session)

    async def get_active(self) -> List[RssFeed]:
        result = await self.session.execute(
            select(RssFeed).where(RssFeed.active.is_(True)).order_by(RssFeed.name)
        )
        return list(result.scalars().all())

    async def get_by_url(self, url: str) -> Optional[RssFeed]:
        return await self.get_by("url", url)

    async def list_all(self) -> List[RssFeed]:
        result = await self.session.execute(select(RssFeed).order_by(RssFeed.name))
        return list(result.scalars().all())


class RssItemRepository(BaseRepository[RssItem]):
    """Repository for RssItem operations"""

    def __init__(self, session: AsyncSession):
        super().__init__(RssItem, session)

    async def exists_by_link(self, link: str) -> bool:
        result = await self.session.execute(
            select(RssItem.id).where(RssItem.link == link).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def list_items(
        self,
        feed_id: Optional[str] = None,
        severity: Optional[str] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[RssItem]:
        """Newest first by publication date, then fetch time"""
        query = select(RssItem)

        if feed_id:
            query = query.where(RssItem.feed_id == feed_id)
        if severity:
            query = query.where(RssItem.severity == severity.upper())

        query = query.order_by(
            RssItem.pub_date.desc().nulls_last(),
            RssItem.fetched_at.desc()
        ).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())
