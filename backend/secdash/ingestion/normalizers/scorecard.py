# backend/secdash/ingestion/normalizers/scorecard.py
from typing import List

from secdash.core.constants import SeverityLevel, SourceTag
from secdash.db.models.scorecard import ScorecardIssue
from secdash.ingestion.aliases import SCORECARD_ISSUE_ALIASES
from secdash.ingestion.coercion import normalize_severity_exact, parse_date, safe_float
from secdash.ingestion.csv_tokenizer import split_records
from secdash.ingestion.normalizers.base import BaseNormalizer, NormalizedRecord, RowContext

# Positions in the SecurityScorecard "full issues" export
FULL_ISSUES_LAYOUT = {
    "issue_id": 0,
    "factor_name": 1,
    "issue_type_title": 2,
    "issue_type_code": 3,
    "issue_type_severity": 4,
    "issue_recommendation": 5,
    "first_seen": 6,
    "last_seen": 7,
    "ip_addresses": 8,
    "hostname": 9,
    "subdomain": 10,
    "target": 11,
    "ports": 12,
    "status": 13,
    "cve_id": 14,
    "description": 15,
    "using_rc4": 22,
    "detected_service": 25,
    "product": 26,
    "version": 27,
    "malware_family": 31,
    "initial_url": 35,
    "final_url": 36,
    "issue_type_score_impact": 42,
}

TEXT_FIELDS = (
    "ip_addresses",
    "hostname",
    "subdomain",
    "target",
    "ports",
    "initial_url",
    "final_url",
    "cve_id",
    "description",
    "product",
    "version",
    "detected_service",
    "malware_family",
    "issue_recommendation",
)


class ScorecardIssueNormalizer(BaseNormalizer):
    """
    SecurityScorecard detailed issues.

    The export is wide and sparse: quoted cells may contain newlines, rows
    are frequently shorter than the header and headers are matched exactly
    (short aliases such as "ip" would otherwise hit "description").
    """

    source = SourceTag.SCORECARD_ISSUES.value
    model = ScorecardIssue
    key_field = "issue_id"
    track_nesting = True
    pad_short_rows = True
    default_aliases = SCORECARD_ISSUE_ALIASES

    def resolve_columns(self, headers):
        return self.aliases.resolve(headers, exact=True, fallbacks=FULL_ISSUES_LAYOUT)

    def split_rows(self, text: str) -> List[str]:
        return split_records(text)

    def normalize(self, row: RowContext) -> NormalizedRecord:
        issue_id = row.get("issue_id") or f"unknown_{row.ordinal}"
        status = row.get("status", "")
        rc4 = row.get("using_rc4")

        values = {field: row.get(field) for field in TEXT_FIELDS}
        values.update({
            "factor_name": row.get("factor_name", ""),
            "issue_type_title": row.get("issue_type_title", ""),
            "issue_type_code": row.get("issue_type_code", ""),
            "issue_type_severity": normalize_severity_exact(
                row.get("issue_type_severity"), SeverityLevel.INFO
            ),
            "issue_type_score_impact": safe_float(row.get("issue_type_score_impact"), 0.0) or 0.0,
            "status": status.strip().lower() or "active",
            "first_seen": parse_date(row.get("first_seen")),
            "last_seen": parse_date(row.get("last_seen")),
            "using_rc4": rc4.strip().lower() == "true" if rc4 else None,
            "report_date": row.report_date,
        })
        return NormalizedRecord(key=issue_id, values=values)
