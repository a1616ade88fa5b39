# backend/secdash/ingestion/scorecard_rating.py
"""
Company-level scorecard summary report.

The report is not tabular: every line is a ``Field,Value`` pair. One rating
is kept per report date; a re-upload for the same date overwrites it.
"""
from datetime import date
from typing import Any, Dict, Optional

from secdash.core.constants import SourceTag
from secdash.core.logging import logger
from secdash.db.models.scorecard import ScorecardRating
from secdash.db.repositories.base import BaseRepository
from secdash.ingestion.coercion import safe_float, safe_int
from secdash.ingestion.csv_tokenizer import split_lines
from secdash.ingestion.file_naming import extract_report_date
from secdash.ingestion.orchestrator import ImportSummary, IngestionRun, decode_upload

TEXT_FIELDS = {
    "Company": "company",
    "Generated By": "generated_by",
    "Industry": "industry",
    "Company Website": "company_website",
}

SCORE_FIELDS = {
    "Threat Indicators Score": "threat_indicators_score",
    "Network Security Score": "network_security_score",
    "DNS Health Score": "dns_health_score",
    "Patching Cadence Score": "patching_cadence_score",
    "Endpoint Security Score": "endpoint_security_score",
    "IP Reputation Score": "ip_reputation_score",
    "Application Security Score": "application_security_score",
    "Cubit Score": "cubit_score",
    "Hacker Chatter Score": "hacker_chatter_score",
    "Information Leak Score": "information_leak_score",
    "Social Engineering Score": "social_engineering_score",
}

COUNT_FIELDS = {
    "Findings on Open Ports": "findings_on_open_ports",
    "Site Vulnerabilities": "site_vulnerabilities",
    "Malware Discovered": "malware_discovered",
    "Leaked Information": "leaked_information",
    "Number of IP address Scanned": "ip_addresses_scanned",
    "Number of Domain names Scanned": "domain_names_scanned",
}

GRADE_THRESHOLDS = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))


def letter_grade(score: float) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "F"


def parse_rating_report(text: str) -> Dict[str, Any]:
    """
    Parse ``Field,Value`` lines into ScorecardRating columns.

    Unknown fields are ignored. Zero or unparsable scores count as absent,
    and the overall score is the mean of the scores that are present.
    """
    data: Dict[str, Any] = {}
    for line in split_lines(text):
        field, sep, value = line.partition(",")
        if not sep:
            continue
        field = field.strip()
        value = value.split(",")[0].strip()

        if field in TEXT_FIELDS:
            data[TEXT_FIELDS[field]] = value
        elif field in SCORE_FIELDS:
            data[SCORE_FIELDS[field]] = safe_float(value) or None
        elif field in COUNT_FIELDS:
            data[COUNT_FIELDS[field]] = safe_int(value, None) or None

    scores = [data[column] for column in SCORE_FIELDS.values() if data.get(column) is not None]
    overall = sum(scores) / len(scores) if scores else 0.0
    data["overall_score"] = overall
    data["letter_grade"] = letter_grade(overall)
    return data


class ScorecardRatingImporter(IngestionRun):
    source = SourceTag.SCORECARD_RATING.value

    def __init__(self, session):
        super().__init__(session)
        self.ratings = BaseRepository(ScorecardRating, session)

    async def import_csv(
        self,
        content: bytes,
        filename: str,
        source_tag: Optional[str] = None,
        report_date: Optional[date] = None
    ) -> ImportSummary:
        text = decode_upload(content, filename)
        source = source_tag or self.source
        report_date = report_date or extract_report_date(filename) or date.today()

        log_id = await self._open_log(content, filename, source, report_date)
        errors = []
        processed = 0
        try:
            data = parse_rating_report(text)
            if not any(data.get(column) is not None for column in SCORE_FIELDS.values()):
                errors.append("Row 1: No scorecard scores found in report")
            else:
                await self.ratings.upsert("report_date", report_date, data)
                processed = 1
                logger.info(
                    f"Scorecard rating {data['overall_score']:.1f} ({data['letter_grade']}) for {report_date}",
                    extra={"ingestion_log_id": log_id, "source": source}
                )
            status = await self._close_log(log_id, processed, errors)
        except Exception as e:
            logger.error(
                f"Scorecard report import aborted: {e}",
                exc_info=True,
                extra={"ingestion_log_id": log_id, "source": source}
            )
            await self._fail_log(log_id, str(e))
            raise

        return self._summary(log_id, status, processed, errors)
