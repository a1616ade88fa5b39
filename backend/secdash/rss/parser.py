# backend/secdash/rss/parser.py
"""
RSS 2.0 / Atom entry extraction on top of feedparser.

Field precedence:

    description   RSS <description>, then summary; Atom <summary>, then <content>
    pub_date      Atom <updated>, then <published>; RSS <pubDate>
    category      first <category> / category term

Entries without both a title and a link are dropped.
"""
import calendar
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Union

import feedparser


@dataclass
class FeedEntry:
    title: str
    link: str
    description: Optional[str] = None
    pub_date: Optional[datetime] = None
    author: Optional[str] = None
    category: Optional[str] = None


def _to_datetime(parsed) -> Optional[datetime]:
    if not parsed:
        return None
    # feedparser hands back UTC struct_time values
    return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _description(entry, is_atom: bool) -> Optional[str]:
    if is_atom:
        text = entry.get("summary")
        if not text and entry.get("content"):
            text = entry["content"][0].get("value")
        return _clean(text)
    return _clean(entry.get("description") or entry.get("summary"))


def _pub_date(entry, is_atom: bool) -> Optional[datetime]:
    if is_atom:
        return _to_datetime(entry.get("updated_parsed") or entry.get("published_parsed"))
    return _to_datetime(entry.get("published_parsed") or entry.get("updated_parsed"))


def _category(entry) -> Optional[str]:
    tags = entry.get("tags") or []
    if tags:
        return _clean(tags[0].get("term") or tags[0].get("label"))
    return _clean(entry.get("category"))


def parse_feed(document: Union[str, bytes]) -> List[FeedEntry]:
    """Extract the usable entries of an RSS or Atom document."""
    if isinstance(document, str):
        document = document.encode("utf-8")

    parsed = feedparser.parse(document)
    is_atom = (parsed.get("version") or "").startswith("atom")

    entries = []
    for entry in parsed.entries:
        title = _clean(entry.get("title"))
        link = _clean(entry.get("link"))
        if not title or not link:
            continue
        entries.append(FeedEntry(
            title=title,
            link=link,
            description=_description(entry, is_atom),
            pub_date=_pub_date(entry, is_atom),
            author=_clean(entry.get("author")),
            category=_category(entry),
        ))
    return entries
