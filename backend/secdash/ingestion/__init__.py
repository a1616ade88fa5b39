# backend/secdash/ingestion/__init__.py
from typing import Union

from sqlalchemy.ext.asyncio import AsyncSession

from secdash.core.constants import SourceTag
from secdash.ingestion.normalizers import NORMALIZERS, get_normalizer
from secdash.ingestion.orchestrator import CsvImporter, ImportSummary, IngestionRun, build_error_csv
from secdash.ingestion.scorecard_rating import ScorecardRatingImporter
from secdash.ingestion.tool_metrics import PerimeterProtectionImporter, XdrSecureworksImporter

# Sources whose files are not row-per-record tables
REPORT_IMPORTERS = {
    SourceTag.SCORECARD_RATING.value: ScorecardRatingImporter,
    SourceTag.PERIMETER_PROTECTION.value: PerimeterProtectionImporter,
    SourceTag.XDR_SECUREWORKS.value: XdrSecureworksImporter,
}

IMPORTABLE_SOURCES = tuple(NORMALIZERS) + tuple(REPORT_IMPORTERS)


def create_importer(session: AsyncSession, source: str) -> Union[CsvImporter, IngestionRun]:
    """Importer for a source tag. Raises KeyError for unknown sources."""
    if source in REPORT_IMPORTERS:
        return REPORT_IMPORTERS[source](session)
    return CsvImporter(session, get_normalizer(source))


__all__ = [
    "CsvImporter",
    "ImportSummary",
    "PerimeterProtectionImporter",
    "ScorecardRatingImporter",
    "XdrSecureworksImporter",
    "IMPORTABLE_SOURCES",
    "build_error_csv",
    "create_importer",
]
