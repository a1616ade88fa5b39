# backend/secdash/ingestion/normalizers/aws_security_hub.py
from typing import Any, Dict

from secdash.core.constants import IssueStatus, SeverityLevel, SourceTag
from secdash.db.base import utcnow
from secdash.db.models.finding import AwsSecurityHubFinding
from secdash.ingestion.aliases import AWS_SECURITY_HUB_ALIASES
from secdash.ingestion.coercion import normalize_severity_exact, safe_int
from secdash.ingestion.normalizers.base import BaseNormalizer, NormalizedRecord, RowContext

CHECK_FIELDS = ("failed_checks", "unknown_checks", "not_available_checks", "passed_checks")


class AwsSecurityHubNormalizer(BaseNormalizer):
    """
    AWS Security Hub control export, one row per control.

    Cells may hold JSON-ish lists and objects, so rows are tokenized with
    bracket tracking. Unknown severities fall back to MEDIUM.
    """

    source = SourceTag.AWS_SECURITY_HUB.value
    model = AwsSecurityHubFinding
    key_field = "control_id"
    track_nesting = True
    default_aliases = AWS_SECURITY_HUB_ALIASES

    def normalize(self, row: RowContext) -> NormalizedRecord:
        control_id = row.get("control_id") or f"unknown-{row.ordinal}"
        values: Dict[str, Any] = {
            "title": row.get("title", ""),
            "control_status": row.get("control_status", "Unknown"),
            "severity": normalize_severity_exact(row.get("severity"), SeverityLevel.MEDIUM),
            "related_requirements": row.get("related_requirements", ""),
            "custom_parameters": row.get("custom_parameters", "UNKNOWN"),
            "description": row.get("description"),
            "status": IssueStatus.OPEN.value,
            "report_date": row.report_date,
            "found_at": utcnow(),
        }
        for field in CHECK_FIELDS:
            values[field] = safe_int(row.get(field, "0"), 0)
        return NormalizedRecord(key=control_id, values=values)

    def merge(self, existing: Any, values: Dict[str, Any]) -> Dict[str, Any]:
        # found_at records the first sighting of the control
        return {name: value for name, value in values.items() if name != "found_at"}
