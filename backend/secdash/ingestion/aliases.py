# backend/secdash/ingestion/aliases.py
"""
Column alias tables and the resolver that maps vendor header spellings onto
canonical field names.

Matching is case-insensitive. For each alias, in priority order, an exact
header match wins, otherwise the first header that *contains* the alias.
Substring matching tolerates header drift but can hit a longer header that
merely contains a short alias, so aliases are listed most specific first.
"""
import re
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple


def resolve_index(headers: Sequence[str], aliases: Iterable[str]) -> Optional[int]:
    """Return the position of the best matching header, or None."""
    lowered = [h.lower() for h in headers]
    for alias in aliases:
        needle = alias.lower()
        for index, header in enumerate(lowered):
            if header.strip() == needle:
                return index
        for index, header in enumerate(lowered):
            if needle in header:
                return index
    return None


def _normalize_header(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", " ", value.lower()).strip()


def resolve_exact_index(headers: Sequence[str], aliases: Iterable[str]) -> Optional[int]:
    """
    Exact match after folding case and collapsing punctuation to spaces.

    Used for wide exports where short aliases would substring-match the
    wrong column.
    """
    normalized = {}
    for index, header in enumerate(headers):
        normalized.setdefault(_normalize_header(header), index)
    for alias in aliases:
        index = normalized.get(_normalize_header(alias))
        if index is not None:
            return index
    return None


class ColumnMap:
    """Canonical field -> resolved column position for one header row."""

    def __init__(self, indices: Mapping[str, Optional[int]]):
        self._indices = dict(indices)

    def index(self, field: str) -> Optional[int]:
        return self._indices.get(field)

    def get(self, values: Sequence[str], field: str, default=None):
        """Cell value for ``field``, or ``default`` when unresolved or empty."""
        idx = self._indices.get(field)
        if idx is None or idx >= len(values):
            return default
        value = values[idx]
        return value if value else default

    def __contains__(self, field: str) -> bool:
        return self._indices.get(field) is not None

    def __repr__(self) -> str:
        return f"ColumnMap({self._indices!r})"


class AliasTable:
    """
    Immutable mapping of canonical field -> ordered alias tuple.

    Tables are plain data so a deployment can override a vendor's spelling
    with ``with_overrides`` instead of touching normalizer code.
    """

    def __init__(self, aliases: Mapping[str, Sequence[str]]):
        self._aliases = MappingProxyType({field: tuple(names) for field, names in aliases.items()})

    @property
    def fields(self) -> Tuple[str, ...]:
        return tuple(self._aliases)

    def __getitem__(self, field: str) -> Tuple[str, ...]:
        return self._aliases[field]

    def __iter__(self):
        return iter(self._aliases)

    def __len__(self) -> int:
        return len(self._aliases)

    def resolve(
        self,
        headers: Sequence[str],
        exact: bool = False,
        fallbacks: Optional[Mapping[str, int]] = None
    ) -> ColumnMap:
        """
        Resolve every field against ``headers``.

        ``fallbacks`` gives the column position of a field in the vendor's
        documented layout, used when no header matches.
        """
        resolver = resolve_exact_index if exact else resolve_index
        fallbacks = fallbacks or {}
        indices = {}
        for field, names in self._aliases.items():
            index = resolver(headers, names)
            if index is None:
                index = fallbacks.get(field)
            indices[field] = index
        return ColumnMap(indices)

    def with_overrides(self, overrides: Mapping[str, Sequence[str]]) -> "AliasTable":
        merged: Dict[str, Sequence[str]] = dict(self._aliases)
        merged.update(overrides)
        return AliasTable(merged)


def exact_lookup(raw: Mapping[str, Optional[str]], names: Iterable[str]) -> List[str]:
    """Non-empty values of the exactly named columns, in the given order."""
    return [raw[name] for name in names if raw.get(name)]


FALCON_ALIASES = AliasTable({
    "detect_date": ["DetectDate_UTC_readable", "Detect Date", "Detection Date", "Timestamp", "Date"],
    "severity": ["Severity", "Alert Severity", "Risk Level"],
    "tactic": ["Tactic", "MITRE Tactic", "Attack Tactic"],
    "product_type": ["ProductType", "Product Type", "Product", "Service"],
    "hostname": ["Hostname", "Host Name", "Computer Name", "ComputerName", "Device Name"],
    "filename": ["Filename", "File Name", "FileName", "File Path"],
    "pattern_disposition_description": [
        "PatternDispositionDescription", "Description", "Alert Description", "Detection Description",
    ],
    "detect_description": ["DetectDescription", "Detection Description"],
    "computer_name": ["ComputerName", "Computer Name"],
    "user_name": ["UserName", "User Name", "Username"],
    "process_name": ["ProcessName", "Process Name"],
    "command_line": ["CommandLine", "Command Line"],
    "ioc_type": ["IOCType", "IOC Type", "Indicator Type"],
    "ioc_value": ["IOCValue", "IOC Value", "Indicator Value"],
    "confidence": ["Confidence", "Confidence Level"],
    "technique": ["Technique", "MITRE Technique", "Attack Technique"],
    "policy_name": ["PolicyName", "Policy Name"],
    "policy_type": ["PolicyType", "Policy Type"],
    "false_positive": ["false_positive", "False Positive", "FP", "Disposition"],
})

# Explicit id columns are looked up by exact header name
FALCON_ID_COLUMNS = ("Detection ID", "Event ID", "Alert ID", "ID", "Unique ID")

AWS_SECURITY_HUB_ALIASES = AliasTable({
    "control_id": ["ID", "Control ID", "Control Id", "ControlId"],
    "title": ["Title", "Control Title", "Description", "Rule Title"],
    "control_status": ["Control Status", "Status", "Compliance Status"],
    "severity": ["Severity", "Risk Level", "Priority"],
    "failed_checks": ["Failed checks", "Failed Checks", "Failed", "Failures"],
    "unknown_checks": ["Unknown checks", "Unknown Checks", "Unknown"],
    "not_available_checks": ["Not available checks", "Not Available Checks", "Not Available", "N/A Checks"],
    "passed_checks": ["Passed checks", "Passed Checks", "Passed", "Success"],
    "related_requirements": [
        "Related requirements", "Related Requirements", "Compliance Requirements", "Requirements",
    ],
    "custom_parameters": ["Custom parameters", "Custom Parameters", "Parameters", "Support Status"],
    "description": ["Description", "Details", "Summary"],
})

THREAT_ADVISORY_ALIASES = AliasTable({
    "threat_advisory_name": ["Threat Advisory Name", "Advisory Name", "Threat Advisory", "Advisory", "Name"],
    "severity": ["Severity"],
    "internal_severity": ["Internal Severity", "Netgear Severity", "Company Severity"],
    "impacted": ["Impacted"],
    "source": ["Source"],
    "advisory_released_date": ["Advisory Released Date", "Released Date", "Release Date", "Released"],
    "notified_date": ["Notified Date", "Notified"],
    "remarks": ["Remarks", "Notes", "Comments"],
    "eta_for_fix": ["ETA for Fix", "ETA", "Fix ETA"],
})

SCORECARD_ISSUE_ALIASES = AliasTable({
    "issue_id": ["issue id", "id"],
    "factor_name": ["factor name", "factor", "category"],
    "issue_type_title": ["issue type title", "title", "issue title"],
    "issue_type_code": ["issue type code", "code"],
    "issue_type_severity": ["severity", "issue type severity"],
    "issue_recommendation": ["issue recommendation", "recommendation"],
    "status": ["status", "issue status"],
    "issue_type_score_impact": ["issue type score impact", "score impact", "impact score"],
    "first_seen": ["first seen"],
    "last_seen": ["last seen"],
    "ip_addresses": ["ip addresses", "ip address", "ip"],
    "hostname": ["hostname"],
    "subdomain": ["subdomain"],
    "target": ["target", "url"],
    "ports": ["ports", "port"],
    "cve_id": ["cve id", "cve"],
    "description": ["description", "issue description"],
    "initial_url": ["initial url"],
    "final_url": ["final url"],
    "product": ["product"],
    "version": ["version"],
    "detected_service": ["detected service"],
    "malware_family": ["malware family"],
    "using_rc4": ["using rc4"],
})

OPEN_ITEM_ALIASES = AliasTable({
    "issue_key": ["Issue Key", "Key", "ID"],
    "title": ["Summary", "Title", "Subject"],
    "description": ["Description", "Details"],
    "assignee": ["Assignee", "Assigned To"],
    "reporter": ["Reporter", "Created By"],
    "priority": ["Priority"],
    "status": ["Status", "State"],
    "issue_type": ["Issue Type", "Type"],
    "labels": ["Labels"],
    "epic": ["Epic Link", "Epic"],
    "sprint": ["Sprint"],
    "resolution": ["Resolution"],
    "story_points": ["Story Points", "Points"],
    "created": ["Created", "Created Date", "Creation Date"],
    "updated": ["Updated", "Updated Date", "Last Updated"],
    "due_date": ["Due Date", "Due"],
    "closed": ["Resolved", "Closed", "Resolved Date"],
})

SECUREWORKS_ALIASES = AliasTable({
    "created_at": ["Created At", "Created", "Detected At"],
    "title": ["Title", "Alert Title"],
    "severity": ["Severity"],
    "threat_score": ["Threat Score"],
    "detector": ["Detector"],
    "sensor_type": ["Sensor Type"],
    "domain": ["Domain"],
    "combined_username": ["Combined Username", "Username"],
    "source_ip": ["Source IP"],
    "destination_ip": ["Destination IP"],
    "hostname": ["Hostname", "Host Name"],
    "investigations": ["Investigations"],
    "confidence": ["Confidence"],
    "mitre_attack": ["MITRE ATT&CK", "MITRE"],
    "status": ["Status"],
    "status_reason": ["Status Reason"],
    "tenant": ["Tenant"],
    "occurrence_count": ["Occurrence Count"],
    "description": ["Description"],
})
