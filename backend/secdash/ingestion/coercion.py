# backend/secdash/ingestion/coercion.py
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

from secdash.core.constants import IssueStatus, SeverityLevel
from secdash.core.hashing import sanitize_identifier

_EXACT_SEVERITY = {
    "critical": SeverityLevel.CRITICAL,
    "high": SeverityLevel.HIGH,
    "medium": SeverityLevel.MEDIUM,
    "low": SeverityLevel.LOW,
    "info": SeverityLevel.INFO,
    "informational": SeverityLevel.INFO,
}

# Checked in order; the first bucket with a matching keyword wins
_SEVERITY_KEYWORDS = (
    (SeverityLevel.CRITICAL, ("critical", "urgent")),
    (SeverityLevel.HIGH, ("high", "important")),
    (SeverityLevel.MEDIUM, ("medium", "moderate")),
    (SeverityLevel.LOW, ("low", "minor")),
    (SeverityLevel.INFO, ("info", "informational")),
)

_STATUS_KEYWORDS = (
    (IssueStatus.OPEN, ("open", "new", "active")),
    (IssueStatus.IN_PROGRESS, ("progress", "assigned", "working")),
    (IssueStatus.RESOLVED, ("resolved", "fixed", "completed")),
    (IssueStatus.CLOSED, ("closed", "done")),
    (IssueStatus.WONT_FIX, ("wont", "rejected", "invalid")),
)

_EXACT_STATUS = {
    "OPEN": IssueStatus.OPEN,
    "IN_PROGRESS": IssueStatus.IN_PROGRESS,
    "IN PROGRESS": IssueStatus.IN_PROGRESS,
    "RESOLVED": IssueStatus.RESOLVED,
    "CLOSED": IssueStatus.CLOSED,
    "SUPPRESSED": IssueStatus.WONT_FIX,
    "WONT_FIX": IssueStatus.WONT_FIX,
}

TRUTHY_FLAGS = frozenset({"true", "1", "yes", "y", "false positive", "fp"})

_LEADING_INT = re.compile(r"^\s*[+-]?\d+")
_LEADING_FLOAT = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")

_MONTHS = ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec")
_JIRA_DATE = re.compile(r"(\d{1,2})/([A-Za-z]{3})/(\d{2,4})\s+(\d{1,2}):(\d{2})\s*(AM|PM)", re.IGNORECASE)
_SLASH_UTC = re.compile(r"(\d{4})/(\d{2})/(\d{2})\s+(\d{2}):(\d{2}):(\d{2})\s+UTC")
_US_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_DAY_MON_YEAR = re.compile(r"^(\d{1,2})-([A-Za-z]{3})-(\d{4})$")


def normalize_severity_exact(value: Optional[str], default: SeverityLevel = SeverityLevel.MEDIUM) -> str:
    """Exact (case and whitespace insensitive) severity match, else ``default``."""
    if not value:
        return SeverityLevel(default).value
    return _EXACT_SEVERITY.get(value.strip().lower(), SeverityLevel(default)).value


def normalize_severity_keywords(value: Optional[str], default: SeverityLevel = SeverityLevel.LOW) -> str:
    """Substring keyword severity match used for loosely formatted exports."""
    if not value:
        return SeverityLevel(default).value
    text = str(value).lower()
    for level, keywords in _SEVERITY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return level.value
    return SeverityLevel(default).value


def normalize_status(value: Optional[str]) -> str:
    """Free-text status to IssueStatus by keyword; unmatched text is OPEN."""
    if not value:
        return IssueStatus.OPEN.value
    text = str(value).lower()
    for status, keywords in _STATUS_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return status.value
    return IssueStatus.OPEN.value


def normalize_status_exact(value: Optional[str]) -> str:
    if not value:
        return IssueStatus.OPEN.value
    return _EXACT_STATUS.get(value.strip().upper(), IssueStatus.OPEN).value


def safe_int(value: Optional[str], default: Optional[int] = 0) -> Optional[int]:
    """Leading integer of ``value`` ("12 hosts" -> 12), else ``default``."""
    if value is None:
        return default
    match = _LEADING_INT.match(str(value))
    return int(match.group()) if match else default


def safe_float(value: Optional[str], default: Optional[float] = None) -> Optional[float]:
    if value is None:
        return default
    match = _LEADING_FLOAT.match(str(value))
    return float(match.group()) if match else default


def parse_flag(value: Optional[str]) -> bool:
    """Boolean-like cell through an explicit allow-list; anything else is False."""
    if not value:
        return False
    return str(value).strip().lower() in TRUTHY_FLAGS


def _month_index(abbrev: str) -> Optional[int]:
    try:
        return _MONTHS.index(abbrev.lower()) + 1
    except ValueError:
        return None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parse the date spellings seen in vendor exports.

    Handles ISO-8601, ``MM/DD/YYYY``, Jira's ``DD/Mon/YY h:mm AM``,
    ``DD-Mon-YYYY``, ``YYYY/MM/DD HH:MM:SS UTC`` and RFC 2822. Naive values
    are taken as UTC. Returns None for anything else.
    """
    if not value or not str(value).strip():
        return None
    text = str(value).strip()

    try:
        match = _JIRA_DATE.search(text)
        if match:
            day, month_abbr, year, hour, minute, meridiem = match.groups()
            month = _month_index(month_abbr)
            if month is not None:
                year_num = int(year)
                if year_num < 100:
                    year_num += 2000 if year_num < 50 else 1900
                hour_num = int(hour) % 12
                if meridiem.upper() == "PM":
                    hour_num += 12
                return datetime(year_num, month, int(day), hour_num, int(minute), tzinfo=timezone.utc)

        match = _SLASH_UTC.search(text)
        if match:
            return datetime(*(int(part) for part in match.groups()), tzinfo=timezone.utc)

        match = _US_DATE.match(text)
        if match:
            month, day, year = (int(part) for part in match.groups())
            return datetime(year, month, day, tzinfo=timezone.utc)

        match = _DAY_MON_YEAR.match(text)
        if match:
            month = _month_index(match.group(2))
            if month is not None:
                return datetime(int(match.group(3)), month, int(match.group(1)), tzinfo=timezone.utc)

        try:
            return _as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            pass

        return _as_utc(parsedate_to_datetime(text))
    except (TypeError, ValueError, IndexError):
        return None


__all__ = [
    "normalize_severity_exact",
    "normalize_severity_keywords",
    "normalize_status",
    "normalize_status_exact",
    "safe_int",
    "safe_float",
    "parse_flag",
    "parse_date",
    "sanitize_identifier",
    "TRUTHY_FLAGS",
]
