from sqlalchemy import Column, String, Text, Boolean, Float, DateTime, JSON, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from secdash.db.base import BaseModel, new_id, utcnow


class RssFeed(BaseModel):
    """
    Subscribed RSS/Atom feed.

    ``last_fetched`` is stamped after every fetch attempt; ``fetch_error``
    holds the last failure and is cleared by a successful fetch.
    """
    __tablename__ = "rss_feeds"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    url = Column(String(1000), nullable=False, unique=True)
    category = Column(String(128), nullable=False)
    active = Column(Boolean, nullable=False, default=True, index=True)
    last_fetched = Column(DateTime(timezone=True), nullable=True)
    fetch_error = Column(Text, nullable=True)

    items = relationship("RssItem", back_populates="feed", cascade="all, delete-orphan")


class RssItem(BaseModel):
    """Feed entry; ``link`` is the natural dedup key."""
    __tablename__ = "rss_items"
    __table_args__ = (
        CheckConstraint(
            "severity IN ('CRITICAL', 'HIGH', 'MEDIUM', 'LOW', 'INFO')",
            name="rss_items_severity_check"
        ),
    )

    id = Column(String(32), primary_key=True, default=new_id)
    feed_id = Column(String(32), ForeignKey("rss_feeds.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(1000), nullable=False)
    description = Column(Text, nullable=True)
    link = Column(String(1000), nullable=False, unique=True)
    pub_date = Column(DateTime(timezone=True), nullable=True)
    author = Column(String(255), nullable=True)
    category = Column(String(255), nullable=True)

    # Derived metadata
    severity = Column(String(16), nullable=False, default="INFO", index=True)
    tags = Column(JSON, nullable=False, default=list)
    cves = Column(JSON, nullable=False, default=list)
    cvss_score = Column(Float, nullable=True)
    affected_products = Column(JSON, nullable=False, default=list)

    # Owned by the UI
    read = Column(Boolean, nullable=False, default=False)
    bookmarked = Column(Boolean, nullable=False, default=False)

    fetched_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    feed = relationship("RssFeed", back_populates="items")
