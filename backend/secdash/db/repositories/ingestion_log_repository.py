# backend/secdash/db/repositories/ingestion_log_repository.py
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from secdash.db.models.ingestion_log import IngestionLog
from secdash.db.repositories.base import BaseRepository


class IngestionLogRepository(BaseRepository[IngestionLog]):
    """Repository for IngestionLog operations"""

    def __init__(self, session: AsyncSession):
        super().__init__(IngestionLog, session)

    async def list_recent(
        self,
        source: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 50
    ) -> List[IngestionLog]:
        """Latest logs first, optionally filtered by source and status"""
        query = select(IngestionLog)

        if source:
            query = query.where(IngestionLog.source == source)
        if status:
            query = query.where(IngestionLog.status == status)

        query = query.order_by(IngestionLog.created_at.desc()).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())
