# backend/secdash/ingestion/file_naming.py
"""
Upload filename conventions.

Reports are expected to embed a source prefix and an ``_YYYYMMDD`` report
date, e.g. ``Falcon_DETECTIONS_20241224.csv``. ``/uploads`` routes a file to
its importer from the name alone.
"""
import re
from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

from secdash.core.constants import SourceTag

_REPORT_DATE = re.compile(r"_(\d{8})\.")

# Tool metrics reports carry a month and year instead of a full date.
# Groups: quarter (empty when the name has none), month, year
PERIMETER_METRICS_FILE = re.compile(
    r"^Perimeter_Protection_Quarter(0[1-4])_(0[1-9]|1[0-2])(\d{4})\.csv$", re.IGNORECASE
)
XDR_METRICS_FILES = (
    re.compile(r"^XDR_Secureworks_()(0[1-9]|1[0-2])(\d{4})\.csv$", re.IGNORECASE),
    re.compile(r"^ToolMetrics_Secureworks_Quarter(0[1-4])_(0[1-9]|1[0-2])(\d{4})\.csv$", re.IGNORECASE),
)


@dataclass(frozen=True)
class FileNamingRule:
    source: str
    pattern: re.Pattern
    description: str
    examples: Tuple[str, ...]
    file_type: str
    # None when the file is recognised but there is no importer for it
    source_tag: Optional[str] = None


@dataclass
class FileValidation:
    is_valid: bool
    source: Optional[str] = None
    file_type: Optional[str] = None
    extracted_date: Optional[str] = None
    error: Optional[str] = None
    rule: Optional[FileNamingRule] = None

    @property
    def importable(self) -> bool:
        return self.is_valid and self.rule is not None and self.rule.source_tag is not None


def _rule(source, pattern, description, examples, file_type, source_tag=None) -> FileNamingRule:
    return FileNamingRule(
        source=source,
        pattern=re.compile(pattern, re.IGNORECASE),
        description=description,
        examples=tuple(examples),
        file_type=file_type,
        source_tag=source_tag,
    )


FILE_NAMING_RULES: Tuple[FileNamingRule, ...] = (
    _rule(
        "tenable", r"^Tenable_.*_\d{8}\.csv$", "Tenable vulnerability reports",
        ["Tenable_SCAN123_20241224.csv"], "csv",
    ),
    _rule(
        "falcon", r"^Falcon_.*_\d{8}\.csv$", "Falcon detection reports",
        ["Falcon_DETECTIONS_20241224.csv"], "csv", SourceTag.FALCON_DETECTIONS.value,
    ),
    _rule(
        "secureworks", r"^Secureworks_.*_\d{8}\.csv$", "Secureworks security alerts",
        ["Secureworks_ALERTS_20241224.csv"], "csv", SourceTag.SECUREWORKS_ALERTS.value,
    ),
    _rule(
        "phishing", r"^Phishing_.*_\d{8}\.csv$", "Phishing reports from Jira",
        ["Phishing_MONTHLY_20241224.csv"], "csv",
    ),
    _rule(
        "aws_security_hub", r"^AWS_Security_Hub_.*_\d{8}\.csv$", "AWS Security Hub compliance findings",
        ["AWS_Security_Hub_FINDINGS_20241224.csv"], "csv", SourceTag.AWS_SECURITY_HUB.value,
    ),
    _rule(
        "scorecard-pdf", r"^[A-Za-z0-9]+-Scorecard-.*_\d{8}\.pdf$", "Security Scorecard PDF reports",
        ["ACME-Scorecard-Q4_20241224.pdf"], "pdf",
    ),
    _rule(
        "scorecard-csv", r"^[A-Za-z0-9]+_FullIssues_.*_\d{8}\.csv$", "Security Scorecard detailed issues CSV",
        ["ACME_FullIssues_Report_20250824.csv"], "csv", SourceTag.SCORECARD_ISSUES.value,
    ),
    _rule(
        "scorecard-report", r"^[A-Za-z0-9]+_Scorecard_Report_\d{8}\.csv$", "Scorecard summary report CSV",
        ["ACME_Scorecard_Report_20250824.csv"], "csv", SourceTag.SCORECARD_RATING.value,
    ),
    _rule(
        "threat-advisory", r"^.*threat.*advisory.*\.csv$", "Threat advisory reports",
        ["Threat_Advisory_20241224.csv"], "csv", SourceTag.THREAT_ADVISORIES.value,
    ),
    _rule(
        "open-items", r"^.*openitems.*\.csv$", "Open items reports from Jira",
        ["CorpSec_BiWeekly_OpenItems (Jira).csv"], "csv", SourceTag.OPEN_ITEMS.value,
    ),
    _rule(
        "perimeter-protection", PERIMETER_METRICS_FILE.pattern, "Perimeter protection tool metrics",
        ["Perimeter_Protection_Quarter01_022025.csv"], "csv", SourceTag.PERIMETER_PROTECTION.value,
    ),
    _rule(
        "xdr-secureworks", "|".join(f"(?:{p.pattern})" for p in XDR_METRICS_FILES), "Secureworks XDR tool metrics",
        ["XDR_Secureworks_082025.csv", "ToolMetrics_Secureworks_Quarter03_092025.csv"], "csv",
        SourceTag.XDR_SECUREWORKS.value,
    ),
)


def _parse_yyyymmdd(value: str) -> Optional[date]:
    try:
        return date(int(value[:4]), int(value[4:6]), int(value[6:8]))
    except ValueError:
        return None


def validate_filename(filename: str) -> FileValidation:
    """Match ``filename`` against the naming rules, first rule wins."""
    if not filename or not filename.strip():
        return FileValidation(is_valid=False, error="Filename cannot be empty")

    for rule in FILE_NAMING_RULES:
        if not rule.pattern.match(filename):
            continue

        match = _REPORT_DATE.search(filename)
        extracted = match.group(1) if match else None
        if extracted and _parse_yyyymmdd(extracted) is None:
            return FileValidation(
                is_valid=False,
                error=f"Invalid date format in filename: {extracted}. Expected YYYYMMDD format.",
            )

        return FileValidation(
            is_valid=True,
            source=rule.source,
            file_type=rule.file_type,
            extracted_date=extracted,
            rule=rule,
        )

    expected = "\n".join(f"{rule.description}: {rule.examples[0]}" for rule in FILE_NAMING_RULES)
    return FileValidation(
        is_valid=False,
        error=(
            "Filename does not match any expected pattern. Expected formats:\n\n"
            f"{expected}\n\nNote: Date must be in YYYYMMDD format"
        ),
    )


def extract_report_date(filename: str) -> Optional[date]:
    """``_YYYYMMDD.`` date embedded in any filename, if it is a real date."""
    if not filename:
        return None
    match = _REPORT_DATE.search(filename)
    return _parse_yyyymmdd(match.group(1)) if match else None
