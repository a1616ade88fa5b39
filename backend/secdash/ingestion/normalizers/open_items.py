# backend/secdash/ingestion/normalizers/open_items.py
from secdash.core.constants import SHORT_ERROR_PREVIEW, SourceTag
from secdash.core.hashing import synthesize_id
from secdash.db.base import utcnow
from secdash.db.models.finding import OpenItem
from secdash.ingestion.aliases import OPEN_ITEM_ALIASES
from secdash.ingestion.coercion import normalize_status, parse_date, safe_int
from secdash.ingestion.normalizers.base import BaseNormalizer, NormalizedRecord, RowContext

TEXT_FIELDS = (
    "description",
    "assignee",
    "reporter",
    "priority",
    "issue_type",
    "labels",
    "epic",
    "sprint",
    "resolution",
)


class OpenItemNormalizer(BaseNormalizer):
    """Jira "open items" export. Raw status is kept next to the normalized one."""

    source = SourceTag.OPEN_ITEMS.value
    model = OpenItem
    key_field = "id"
    error_preview_limit = SHORT_ERROR_PREVIEW
    default_aliases = OPEN_ITEM_ALIASES

    def normalize(self, row: RowContext) -> NormalizedRecord:
        status = row.get("status", "Open")

        values = {field: row.get(field) for field in TEXT_FIELDS}
        values.update({
            "title": row.get("title", f"Untitled Issue {row.ordinal}"),
            "status": status,
            "normalized_status": normalize_status(status),
            "story_points": safe_int(row.get("story_points"), None),
            "opened_at": parse_date(row.get("created")) or utcnow(),
            "last_updated_at": parse_date(row.get("updated")),
            "due_date": parse_date(row.get("due_date")),
            "closed_at": parse_date(row.get("closed")),
            "report_date": row.report_date,
        })

        key = synthesize_id("item", [row.get("issue_key")], [], row.ordinal)
        return NormalizedRecord(key=key, values=values)
