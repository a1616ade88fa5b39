# backend/secdash/ingestion/normalizers/secureworks.py
from typing import Any, Dict

from secdash.core.constants import SeverityLevel, SourceTag
from secdash.core.hashing import rolling_hash
from secdash.db.base import utcnow
from secdash.db.models.detection import SecureworksAlert
from secdash.ingestion.aliases import SECUREWORKS_ALIASES
from secdash.ingestion.coercion import (
    normalize_severity_exact,
    normalize_status_exact,
    parse_date,
    safe_float,
    safe_int,
)
from secdash.ingestion.normalizers.base import BaseNormalizer, NormalizedRecord, RowContext

# Secureworks Taegis alert export column order
ALERT_LAYOUT = {
    "created_at": 0,
    "title": 1,
    "severity": 2,
    "threat_score": 3,
    "detector": 4,
    "sensor_type": 5,
    "domain": 6,
    "combined_username": 7,
    "source_ip": 8,
    "destination_ip": 9,
    "hostname": 10,
    "investigations": 11,
    "confidence": 12,
    "mitre_attack": 13,
    "status": 14,
    "status_reason": 15,
    "tenant": 16,
    "occurrence_count": 17,
    "description": 18,
}

TEXT_FIELDS = (
    "detector",
    "sensor_type",
    "domain",
    "combined_username",
    "source_ip",
    "destination_ip",
    "hostname",
    "investigations",
    "mitre_attack",
    "status_reason",
    "tenant",
)

MIN_ALERT_COLUMNS = 5


def duplicate_key(title, detected_at, hostname, source_ip, detector, tenant) -> str:
    """
    Alerts are deduplicated per calendar day on title, host, source IP,
    detector and tenant, so the same alert re-exported later the same day
    lands on the same record.
    """
    day = detected_at.date().isoformat()
    parts = [
        title.lower().strip(),
        day,
        (hostname or "").lower().strip(),
        (source_ip or "").strip(),
        (detector or "").lower().strip(),
        tenant or "",
    ]
    return f"secureworks-{rolling_hash('|'.join(p for p in parts if p))}-{day.replace('-', '')}"


class SecureworksNormalizer(BaseNormalizer):
    source = SourceTag.SECUREWORKS_ALERTS.value
    model = SecureworksAlert
    key_field = "alert_id"
    default_aliases = SECUREWORKS_ALIASES

    def resolve_columns(self, headers):
        return self.aliases.resolve(headers, fallbacks=ALERT_LAYOUT)

    def min_columns(self, headers) -> int:
        return MIN_ALERT_COLUMNS

    def normalize(self, row: RowContext) -> NormalizedRecord:
        detected_at = parse_date(row.get("created_at")) or utcnow()
        title = row.get("title", "Unknown Alert").replace('"', "")

        values: Dict[str, Any] = {field: row.get(field) for field in TEXT_FIELDS}
        values.update({
            "title": title,
            "severity": normalize_severity_exact(row.get("severity"), SeverityLevel.MEDIUM),
            "threat_score": safe_float(row.get("threat_score")),
            "confidence": safe_float(row.get("confidence")),
            "status": normalize_status_exact(row.get("status")),
            "occurrence_count": safe_int(row.get("occurrence_count"), 1) or 1,
            "description": row.get("description", title),
            "detected_at": detected_at,
            "false_positive": False,
            "ingested_on": utcnow(),
        })

        key = duplicate_key(
            title,
            detected_at,
            values["hostname"],
            values["source_ip"],
            values["detector"],
            values["tenant"],
        )
        return NormalizedRecord(key=key, values=values)

    def merge(self, existing: Any, values: Dict[str, Any]) -> Dict[str, Any]:
        # A reimport of a known alert counts as one more occurrence
        merged = dict(values)
        merged["occurrence_count"] = (existing.occurrence_count or 1) + 1
        merged["false_positive"] = existing.false_positive
        return merged
