# backend/secdash/ingestion/normalizers/falcon.py
from secdash.core.constants import SourceTag
from secdash.core.hashing import synthesize_id
from secdash.db.base import utcnow
from secdash.db.models.detection import FalconDetection
from secdash.ingestion.aliases import FALCON_ALIASES, FALCON_ID_COLUMNS, exact_lookup
from secdash.ingestion.coercion import parse_flag
from secdash.ingestion.normalizers.base import BaseNormalizer, NormalizedRecord, RowContext

TEXT_FIELDS = (
    "detect_date",
    "severity",
    "tactic",
    "technique",
    "product_type",
    "hostname",
    "computer_name",
    "user_name",
    "filename",
    "process_name",
    "command_line",
    "pattern_disposition_description",
    "detect_description",
    "ioc_type",
    "ioc_value",
    "confidence",
    "policy_name",
    "policy_type",
)


class FalconNormalizer(BaseNormalizer):
    """CrowdStrike Falcon detection export. Severity text is stored as exported."""

    source = SourceTag.FALCON_DETECTIONS.value
    model = FalconDetection
    key_field = "id"
    default_aliases = FALCON_ALIASES

    def normalize(self, row: RowContext) -> NormalizedRecord:
        raw = row.raw
        values = {field: row.get(field) for field in TEXT_FIELDS}
        values["false_positive"] = parse_flag(row.get("false_positive"))
        values["raw_json"] = raw
        values["ingested_on"] = utcnow()

        key = synthesize_id(
            "falcon",
            exact_lookup(raw, FALCON_ID_COLUMNS),
            [
                raw.get("Hostname") or raw.get("ComputerName"),
                raw.get("DetectDate_UTC_readable") or raw.get("Timestamp"),
                raw.get("Severity"),
                raw.get("Tactic"),
            ],
            row.ordinal,
        )
        return NormalizedRecord(key=key, values=values)
