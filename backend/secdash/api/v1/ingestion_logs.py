# backend/secdash/api/v1/ingestion_logs.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from secdash.api.dependencies import CurrentUser, get_current_user
from secdash.db.repositories.ingestion_log_repository import IngestionLogRepository
from secdash.db.session import get_db
from secdash.schemas.ingestion import IngestionLogResponse

router = APIRouter()


@router.get("/", response_model=List[IngestionLogResponse])
async def list_ingestion_logs(
    source: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Most recent uploads first"""
    repo = IngestionLogRepository(db)
    return await repo.list_recent(
        source=source,
        status=status_filter.upper() if status_filter else None,
        limit=limit,
    )


@router.get("/{log_id}", response_model=IngestionLogResponse)
async def get_ingestion_log(
    log_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    log = await IngestionLogRepository(db).get(log_id)
    if log is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ingestion log not found")
    return log
