# backend/secdash/ingestion/normalizers/threat_advisory.py
from secdash.core.constants import SHORT_ERROR_PREVIEW, SourceTag
from secdash.core.hashing import synthesize_id
from secdash.db.models.finding import ThreatAdvisory
from secdash.ingestion.aliases import THREAT_ADVISORY_ALIASES
from secdash.ingestion.coercion import parse_flag
from secdash.ingestion.normalizers.base import BaseNormalizer, NormalizedRecord, RowContext

# Column order of the advisory tracker export, used when a header is missing
ADVISORY_LAYOUT = {
    "threat_advisory_name": 0,
    "severity": 1,
    "internal_severity": 2,
    "impacted": 3,
    "source": 4,
    "advisory_released_date": 5,
    "notified_date": 6,
    "remarks": 7,
    "eta_for_fix": 8,
}


class ThreatAdvisoryNormalizer(BaseNormalizer):
    source = SourceTag.THREAT_ADVISORIES.value
    model = ThreatAdvisory
    key_field = "id"
    error_preview_limit = SHORT_ERROR_PREVIEW
    default_aliases = THREAT_ADVISORY_ALIASES

    def resolve_columns(self, headers):
        return self.aliases.resolve(headers, fallbacks=ADVISORY_LAYOUT)

    def normalize(self, row: RowContext) -> NormalizedRecord:
        name = row.get("threat_advisory_name", "")
        source = row.get("source", "")
        released = row.get("advisory_released_date", "")

        values = {
            "threat_advisory_name": name,
            "severity": row.get("severity", ""),
            "internal_severity": row.get("internal_severity", ""),
            "impacted": parse_flag(row.get("impacted")),
            "source": source,
            "advisory_released_date": released,
            "notified_date": row.get("notified_date", ""),
            "remarks": row.get("remarks"),
            "eta_for_fix": row.get("eta_for_fix"),
            "report_date": row.report_date,
        }
        key = synthesize_id(
            "threat-advisory",
            [],
            [name.lower().strip(), source.lower().strip(), released.strip()],
            row.ordinal,
        )
        return NormalizedRecord(key=key, values=values)
