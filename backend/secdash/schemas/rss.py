# backend/secdash/schemas/rss.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, model_validator


class RssFeedCreate(BaseModel):
    name: str
    url: str
    category: str
    active: bool = True


class RssFeedResponse(BaseModel):
    id: str
    name: str
    url: str
    category: str
    active: bool
    last_fetched: Optional[datetime] = None
    fetch_error: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class RssItemResponse(BaseModel):
    id: str
    feed_id: str
    title: str
    description: Optional[str] = None
    link: str
    pub_date: Optional[datetime] = None
    author: Optional[str] = None
    category: Optional[str] = None
    severity: str
    tags: List[str] = []
    cves: List[str] = []
    cvss_score: Optional[float] = None
    affected_products: List[str] = []
    read: bool = False
    bookmarked: bool = False
    fetched_at: datetime

    class Config:
        from_attributes = True


class FetchRequest(BaseModel):
    feed_id: Optional[str] = None
    all: bool = False

    @model_validator(mode="after")
    def check_target(self):
        if not self.all and not self.feed_id:
            raise ValueError("Either feed_id or all=true is required")
        return self


class FetchResponse(BaseModel):
    success: bool
    count: int = 0
    error: Optional[str] = None


class FetchAllResponse(BaseModel):
    total: int
    successful: int
    failed: int
    details: List[Dict[str, Any]] = []


class FeedImportResponse(BaseModel):
    message: str
    successful: int
    errors: int
    error_details: List[str] = []
