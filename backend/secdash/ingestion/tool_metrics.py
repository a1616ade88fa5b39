# backend/secdash/ingestion/tool_metrics.py
"""
Monthly tool metrics reports.

Both reports are short ``label,count`` tables. The reporting month comes from
the filename, not the content, and one row is kept per month: a re-upload for
the same month overwrites it.

    Perimeter_Protection_Quarter01_022025.csv   -> Q1 2025, February 2025
    XDR_Secureworks_082025.csv                  -> Q3 2025 (derived), August 2025
"""
import math
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from secdash.core.constants import SourceTag
from secdash.core.exceptions import InputRejectedError
from secdash.core.logging import logger
from secdash.db.models.tool_metrics import ToolMetricsEmail, ToolMetricsPerimeter, ToolMetricsXdr
from secdash.db.repositories.base import BaseRepository
from secdash.ingestion.aliases import resolve_exact_index
from secdash.ingestion.csv_tokenizer import parse_header, split_lines, tokenize_line
from secdash.ingestion.file_naming import PERIMETER_METRICS_FILE, XDR_METRICS_FILES
from secdash.ingestion.orchestrator import ImportSummary, IngestionRun, decode_upload

_LEADING_COUNT = re.compile(r"[0-9][0-9,. ]*")


@dataclass(frozen=True)
class ReportPeriod:
    month: date
    quarter: str
    label: str

    @classmethod
    def from_match(cls, match: re.Match) -> "ReportPeriod":
        """Build from a (quarter, month, year) filename match; the quarter may be empty."""
        quarter, month, year = match.groups()
        month, year = int(month), int(year)
        quarter = int(quarter) if quarter else (month - 1) // 3 + 1
        return cls(month=date(year, month, 1), quarter=f"Q{quarter} {year}", label=f"{month:02d}{year}")


def plain_count(value: str) -> float:
    """Whole cell as a number once commas and spaces are removed, else 0."""
    try:
        number = float(value.replace(",", "").replace(" ", ""))
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def leading_count(value: str) -> float:
    """First number in the cell, so "1,204 events" reads as 1204."""
    match = _LEADING_COUNT.search(value.strip())
    if not match:
        return 0.0
    return plain_count(match.group())


def round_count(value: float) -> int:
    # half up, matching the report tooling
    return int(math.floor(value + 0.5))


def _cell(row: Sequence[str], index: int) -> str:
    return row[index].strip() if index < len(row) else ""


class ToolMetricsImporter(IngestionRun):
    """
    Shared flow for the tool metrics reports.

    The filename and header row are checked before an ingestion log is
    opened, so a wrongly named or shaped file is rejected outright. Cells
    that are not numbers count as zero rather than failing the row.
    """

    expected_filename: str = ""
    required_headers: str = ""

    def parse_period(self, filename: str) -> Optional[ReportPeriod]:
        raise NotImplementedError

    def resolve_columns(self, headers: List[str]) -> Optional[Tuple[int, ...]]:
        raise NotImplementedError

    async def store(
        self,
        period: ReportPeriod,
        columns: Tuple[int, ...],
        rows: List[List[str]],
        raw: Dict[str, Any]
    ) -> Dict[str, int]:
        raise NotImplementedError

    async def import_csv(
        self,
        content: bytes,
        filename: str,
        source_tag: Optional[str] = None,
        report_date: Optional[date] = None
    ) -> ImportSummary:
        text = decode_upload(content, filename)
        period = self.parse_period(filename)
        if period is None:
            raise InputRejectedError(f"Invalid filename. Expected {self.expected_filename}")

        lines = split_lines(text)
        if len(lines) < 2:
            raise InputRejectedError("CSV must have header and at least one row")
        columns = self.resolve_columns(parse_header(lines[0]))
        if columns is None:
            raise InputRejectedError(f"CSV must contain headers: {self.required_headers}")

        source = source_tag or self.source
        log_id = await self._open_log(content, filename, source, report_date or period.month)
        try:
            rows = [tokenize_line(line) for line in lines[1:]]
            totals = await self.store(period, columns, rows, {"filename": filename})
            processed = len(rows)
            status = await self._close_log(log_id, processed, [])
        except Exception as e:
            logger.error(
                f"Tool metrics import aborted: {e}",
                exc_info=True,
                extra={"ingestion_log_id": log_id, "source": source}
            )
            await self._fail_log(log_id, str(e))
            raise

        logger.info(
            f"Tool metrics for {period.label} ({period.quarter}): {totals}",
            extra={"ingestion_log_id": log_id, "source": source}
        )
        return self._summary(log_id, status, processed, [])


class PerimeterProtectionImporter(ToolMetricsImporter):
    """
    ``Category,Item,Count`` report covering the email gateway and the
    network perimeter. Email rows feed ``ToolMetricsEmail``; ``Network*``
    rows feed ``ToolMetricsPerimeter``.
    """

    source = SourceTag.PERIMETER_PROTECTION.value
    expected_filename = "Perimeter_Protection_QuarterXX_MMYYYY.csv"
    required_headers = "Category, Item, Count"

    def __init__(self, session):
        super().__init__(session)
        self.email = BaseRepository(ToolMetricsEmail, session)
        self.perimeter = BaseRepository(ToolMetricsPerimeter, session)

    def parse_period(self, filename: str) -> Optional[ReportPeriod]:
        match = PERIMETER_METRICS_FILE.match(filename or "")
        return ReportPeriod.from_match(match) if match else None

    def resolve_columns(self, headers: List[str]) -> Optional[Tuple[int, ...]]:
        category = resolve_exact_index(headers, ["category"])
        item = resolve_exact_index(headers, ["item"])
        count = resolve_exact_index(headers, ["count"])
        # Unnamed first two columns are accepted when Count is third
        if (category is None or item is None) and count == 2:
            category, item = 0, 1
        if category is None or item is None or count is None:
            return None
        return category, item, count

    @staticmethod
    def tally(columns: Tuple[int, ...], rows: List[List[str]]) -> Dict[str, float]:
        category_at, item_at, count_at = columns
        totals = dict.fromkeys(
            ("inbound", "blocked_proofpoint", "blocked_ms365", "delivered", "network_allowed", "network_blocked"),
            0.0,
        )
        for row in rows:
            category = _cell(row, category_at).lower()
            item = _cell(row, item_at).lower()
            count = plain_count(_cell(row, count_at))

            if category == "email":
                if "total inbound" in item:
                    totals["inbound"] += count
                elif "blocked" in item and "proofpoint" in item:
                    totals["blocked_proofpoint"] += count
                elif "blocked" in item and ("o365" in item or "ms365" in item):
                    totals["blocked_ms365"] += count
                elif "total delivered" in item:
                    totals["delivered"] += count
            elif category.startswith("network"):
                if "total inbound allowed" in item:
                    totals["network_allowed"] += count
                elif "total blocked" in item:
                    totals["network_blocked"] += count
        return totals

    async def store(self, period, columns, rows, raw):
        totals = self.tally(columns, rows)
        period_values = {"period_quarter": period.quarter, "report_label": period.label, "raw_json": raw}

        email = {
            "inbound_emails": round_count(totals["inbound"]),
            "blocked_proofpoint": round_count(totals["blocked_proofpoint"]),
            "blocked_ms365": round_count(totals["blocked_ms365"]),
            "delivered_emails": round_count(totals["delivered"]),
        }
        await self.email.upsert("period_month", period.month, {**period_values, **email})

        allowed = round_count(totals["network_allowed"])
        blocked = round_count(totals["network_blocked"])
        await self.perimeter.upsert("period_month", period.month, {
            **period_values,
            "total_inbound": (allowed + blocked) or None,
            "total_blocked": blocked or None,
            "delivered": allowed or None,
        })
        return email


# Report label -> ToolMetricsXdr column
XDR_COUNTS = {
    "events": "events",
    "detections": "detections",
    "triaged events": "triaged_events",
    "investigations": "investigations",
    "incidents": "incidents",
}


class XdrSecureworksImporter(ToolMetricsImporter):
    """``Name,Count`` funnel report from Secureworks XDR; unknown names are ignored."""

    source = SourceTag.XDR_SECUREWORKS.value
    expected_filename = "XDR_Secureworks_MMYYYY.csv or ToolMetrics_Secureworks_QuarterXX_MMYYYY.csv"
    required_headers = "Name,Count"

    def __init__(self, session):
        super().__init__(session)
        self.metrics = BaseRepository(ToolMetricsXdr, session)

    def parse_period(self, filename: str) -> Optional[ReportPeriod]:
        for pattern in XDR_METRICS_FILES:
            match = pattern.match(filename or "")
            if match:
                return ReportPeriod.from_match(match)
        return None

    def resolve_columns(self, headers: List[str]) -> Optional[Tuple[int, ...]]:
        name = resolve_exact_index(headers, ["name"])
        count = resolve_exact_index(headers, ["count"])
        if name is None or count is None:
            return None
        return name, count

    async def store(self, period, columns, rows, raw):
        name_at, count_at = columns
        # last row wins for a repeated name
        counts = {_cell(row, name_at).lower(): leading_count(_cell(row, count_at)) for row in rows}

        values = {column: round_count(counts.get(label, 0.0)) for label, column in XDR_COUNTS.items()}
        await self.metrics.upsert("period_month", period.month, {
            "period_quarter": period.quarter,
            "report_label": period.label,
            "raw_json": raw,
            **values,
        })
        return values
