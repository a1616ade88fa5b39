# backend/secdash/api/v1/rss.py
from typing import List, Optional, Union

import httpx
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from secdash.api.dependencies import CurrentUser, get_current_user, get_http_client, require_role
from secdash.core.constants import UserRole
from secdash.core.logging import logger
from secdash.db.repositories.rss_repository import RssFeedRepository, RssItemRepository
from secdash.db.session import get_db, get_session_factory
from secdash.rss.service import RssService
from secdash.schemas.rss import (
    FeedImportResponse,
    FetchAllResponse,
    FetchRequest,
    FetchResponse,
    RssFeedCreate,
    RssFeedResponse,
    RssItemResponse,
)

router = APIRouter()

ERROR_DETAIL_LIMIT = 10


@router.get("/feeds", response_model=List[RssFeedResponse])
async def list_feeds(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    return await RssFeedRepository(db).list_all()


@router.post("/feeds", response_model=RssFeedResponse, status_code=status.HTTP_201_CREATED)
async def create_feed(
    feed_in: RssFeedCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(UserRole.ADMIN)),
):
    """Subscribe to a feed; a URL can only be subscribed once"""
    repo = RssFeedRepository(db)
    if await repo.get_by_url(feed_in.url) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="RSS feed with this URL already exists")
    feed = await repo.create(feed_in.model_dump())
    logger.info(f"RSS feed added: {feed.url}", extra={"feed_id": feed.id})
    return feed


@router.post("/feeds/import", response_model=FeedImportResponse)
async def import_feeds(
    file: UploadFile = File(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Bulk subscribe from a CSV with ``Category``, ``RSS URL`` and optional ``Name`` columns"""
    if file is None or not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided")
    if not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File must be a CSV")

    service = RssService(db)
    result = await service.import_feed_list(await file.read())
    return FeedImportResponse(
        message=result.message,
        successful=result.successful,
        errors=len(result.errors),
        error_details=result.errors[:ERROR_DETAIL_LIMIT],
    )


@router.post("/fetch", response_model=Union[FetchAllResponse, FetchResponse])
async def fetch_feeds(
    request: FetchRequest,
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    client: httpx.AsyncClient = Depends(get_http_client),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Fetch one feed (``feed_id``) or every active feed (``all: true``)"""
    service = RssService(db, client, session_factory=session_factory)
    if request.all:
        result = await service.fetch_all_active_feeds()
        return FetchAllResponse(**result.__dict__)

    result = await service.fetch_and_parse_feed(request.feed_id)
    return FetchResponse(**result.__dict__)


@router.post("/schedule", response_model=FetchAllResponse)
async def run_scheduled_refresh(
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    client: httpx.AsyncClient = Depends(get_http_client),
    current_user: CurrentUser = Depends(require_role(UserRole.ADMIN)),
):
    """Refresh all active feeds now; for external cron triggers"""
    logger.info(f"Scheduled RSS refresh triggered by {current_user.id}")
    service = RssService(db, client, session_factory=session_factory)
    result = await service.fetch_all_active_feeds()
    return FetchAllResponse(**result.__dict__)


@router.get("/items", response_model=List[RssItemResponse])
async def list_items(
    feed_id: Optional[str] = Query(None),
    severity: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Newest items first"""
    return await RssItemRepository(db).list_items(
        feed_id=feed_id, severity=severity, skip=skip, limit=limit
    )
