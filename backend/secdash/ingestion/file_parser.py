# backend/secdash/ingestion/file_parser.py
"""
Best-effort parser for arbitrary uploads, used to preview a file before it is
imported. Nothing here touches the database.
"""
import csv
import io
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from secdash.ingestion.coercion import (
    normalize_severity_keywords,
    normalize_status,
    parse_date,
    safe_float,
)

# Filename substrings checked in order, then header names
FILENAME_TYPES = (
    (any, ("vulnerabilit",), "vulnerabilities"),
    (any, ("falcon",), "falcon_detections"),
    (any, ("secureworks",), "secureworks_detections"),
    (any, ("jira", "phishing"), "phishing_jira"),
    (any, ("aws", "security_hub"), "aws_security_hub"),
    (all, ("issue", "report"), "issue_reports"),
    (any, ("scorecard",), "scorecard"),
    (any, ("advisory",), "threat_advisories"),
)

HEADER_TYPES = (
    (("cve", "vulnerability"), "vulnerabilities"),
    (("detection", "falcon"), "falcon_detections"),
    (("phishing", "jira"), "phishing_jira"),
)

# "Netgear Severity:" must be tried before "Severity:"
ADVISORY_TXT_FIELDS = (
    ("Advisory:", "advisory_name"),
    ("Netgear Severity:", "internal_severity"),
    ("Internal Severity:", "internal_severity"),
    ("Severity:", "severity"),
    ("Impacted:", "impacted"),
    ("ETA:", "eta"),
    ("Remarks:", "remarks"),
)


@dataclass
class ParsedData:
    type: str
    data: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def _first(row: Dict[str, Any], *names: str, default=None):
    for name in names:
        value = row.get(name)
        if value:
            return value
    return default


def _iso(value: Optional[str]) -> Optional[str]:
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else None


class FileParser:
    """Detects what kind of export a file is and normalizes its rows."""

    def parse(self, filename: str, content: bytes) -> ParsedData:
        name = (filename or "").lower()
        try:
            text = content.decode("utf-8-sig", errors="replace")
            if name.endswith(".csv"):
                return self.parse_csv(filename, text)
            if name.endswith(".txt"):
                return self.parse_txt(filename, text)
            raise ValueError("Unsupported file format")
        except (ValueError, csv.Error) as e:
            return ParsedData(type="error", errors=[str(e)])

    def parse_csv(self, filename: str, text: str) -> ParsedData:
        errors: List[str] = []
        rows: List[Dict[str, Any]] = []
        reader = csv.DictReader(io.StringIO(text))
        try:
            for row in reader:
                rows.append({key: value for key, value in row.items() if key is not None})
        except csv.Error as e:
            errors.append(f"Line {reader.line_num}: {e}")

        data_type = self.detect_type(filename, reader.fieldnames or [])
        return ParsedData(type=data_type, data=self.normalize(data_type, rows), errors=errors)

    def parse_txt(self, filename: str, text: str) -> ParsedData:
        if "advisory" in filename.lower():
            return ParsedData(type="threat_advisories", data=self.parse_advisory_blocks(text))
        return ParsedData(type="text", data=[{"content": text}])

    @staticmethod
    def detect_type(filename: str, headers: List[str]) -> str:
        name = filename.lower()
        for match, needles, data_type in FILENAME_TYPES:
            if match(needle in name for needle in needles):
                return data_type

        lowered = {h.lower() for h in headers if h}
        for needles, data_type in HEADER_TYPES:
            if any(needle in lowered for needle in needles):
                return data_type
        return "generic"

    def normalize(self, data_type: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        normalizer: Optional[Callable] = ROW_NORMALIZERS.get(data_type)
        if normalizer is None:
            return rows
        return [normalizer(row) for row in rows]

    @staticmethod
    def parse_advisory_blocks(text: str) -> List[Dict[str, Any]]:
        """Blank-line separated ``Label: value`` blocks, one advisory each."""
        advisories = []
        for block in re.split(r"\n\s*\n", text):
            advisory: Dict[str, Any] = {}
            for line in block.splitlines():
                for label, key in ADVISORY_TXT_FIELDS:
                    if label in line:
                        value = line.split(label, 1)[1].strip()
                        if key in ("severity", "internal_severity"):
                            value = normalize_severity_keywords(value)
                        elif key == "impacted":
                            value = value.lower() == "yes"
                        elif key == "eta":
                            value = _iso(value)
                        advisory[key] = value
                        break
            if advisory.get("advisory_name"):
                advisories.append(advisory)
        return advisories


def _vulnerability(row):
    return {
        "asset_name": _first(row, "Asset", "asset_name", "Asset Name", default="Unknown"),
        "business_unit": _first(row, "BU", "Business Unit", "business_unit", default="Unknown"),
        "cve_id": _first(row, "CVE", "CVE ID", "cve_id"),
        "severity": normalize_severity_keywords(_first(row, "Severity", "severity")),
        "sla_date": _iso(_first(row, "SLA Date", "sla_date")),
        "status": normalize_status(_first(row, "Status", "status")),
        "description": _first(row, "Description", "description"),
        "discovered_at": _iso(_first(row, "Discovered", "discovered_at")),
    }


def _falcon(row):
    return {
        "event_id": _first(row, "Event ID", "event_id"),
        "hostname": _first(row, "Host", "hostname", "Hostname", default="Unknown"),
        "username": _first(row, "User", "username", "Username"),
        "severity": normalize_severity_keywords(_first(row, "Severity", "severity")),
        "tactic": _first(row, "Tactic", "tactic"),
        "technique": _first(row, "Technique", "technique"),
        "status": normalize_status(_first(row, "Status", "status")),
        "description": _first(row, "Description", "description"),
        "detected_at": _iso(_first(row, "Detected", "detected_at")),
    }


def _secureworks(row):
    return {
        "event_id": _first(row, "Event ID", "event_id"),
        "category": _first(row, "Category", "category", default="Unknown"),
        "severity": normalize_severity_keywords(_first(row, "Severity", "severity")),
        "response_action": _first(row, "Response Action", "response_action"),
        "status": normalize_status(_first(row, "Status", "status")),
        "description": _first(row, "Description", "description"),
        "detected_at": _iso(_first(row, "Detected", "detected_at")),
    }


def _phishing(row):
    return {
        "issue_id": _first(row, "Issue ID", "issue_id", "Key"),
        "status": normalize_status(_first(row, "Status", "status")),
        "priority": normalize_severity_keywords(_first(row, "Priority", "priority")),
        "business_unit": _first(row, "BU", "Business Unit", "business_unit", default="Unknown"),
        "time_to_resolution": safe_float(_first(row, "Time to Resolution", "time_to_resolution")),
        "description": _first(row, "Description", "Summary", "description"),
        "reported_at": _iso(_first(row, "Reported", "Created", "reported_at")),
    }


def _aws(row):
    return {
        "finding_id": _first(row, "Finding ID", "finding_id"),
        "account": _first(row, "Account", "account", default="Unknown"),
        "region": _first(row, "Region", "region", default="us-east-1"),
        "control_id": _first(row, "Control ID", "control_id", default="Unknown"),
        "compliance_status": _first(row, "Compliance Status", "compliance_status", default="FAILED"),
        "severity": normalize_severity_keywords(_first(row, "Severity", "severity")),
        "status": normalize_status(_first(row, "Status", "status")),
        "description": _first(row, "Description", "description"),
        "found_at": _iso(_first(row, "Found", "found_at")),
    }


def _issue_report(row):
    return {
        "issue_id": _first(row, "Issue ID", "issue_id", "ID"),
        "severity": normalize_severity_keywords(_first(row, "Severity", "severity")),
        "category": _first(row, "Category", "category", default="Unknown"),
        "status": normalize_status(_first(row, "Status", "status")),
        "business_unit": _first(row, "BU", "Business Unit", "business_unit", default="Unknown"),
        "description": _first(row, "Description", "description", default="No description"),
        "opened_date": _iso(_first(row, "Opened Date", "opened_date")),
    }


ROW_NORMALIZERS: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    "vulnerabilities": _vulnerability,
    "falcon_detections": _falcon,
    "secureworks_detections": _secureworks,
    "phishing_jira": _phishing,
    "aws_security_hub": _aws,
    "issue_reports": _issue_report,
}
