# backend/secdash/db/session.py
"""Expose the session dependencies where routers and tests expect them."""
from secdash.db.database import get_db, get_session_factory

__all__ = ["get_db", "get_session_factory"]
