# backend/secdash/ingestion/normalizers/__init__.py
from typing import Dict, Optional, Type

from secdash.ingestion.aliases import AliasTable
from secdash.ingestion.normalizers.base import BaseNormalizer, NormalizedRecord, RowContext
from secdash.ingestion.normalizers.falcon import FalconNormalizer
from secdash.ingestion.normalizers.aws_security_hub import AwsSecurityHubNormalizer
from secdash.ingestion.normalizers.threat_advisory import ThreatAdvisoryNormalizer
from secdash.ingestion.normalizers.scorecard import ScorecardIssueNormalizer
from secdash.ingestion.normalizers.open_items import OpenItemNormalizer
from secdash.ingestion.normalizers.secureworks import SecureworksNormalizer

NORMALIZERS: Dict[str, Type[BaseNormalizer]] = {
    cls.source: cls
    for cls in (
        FalconNormalizer,
        AwsSecurityHubNormalizer,
        ThreatAdvisoryNormalizer,
        ScorecardIssueNormalizer,
        OpenItemNormalizer,
        SecureworksNormalizer,
    )
}


def get_normalizer(source: str, aliases: Optional[AliasTable] = None) -> BaseNormalizer:
    """Normalizer for a source tag. Raises KeyError for unknown sources."""
    return NORMALIZERS[source](aliases)


__all__ = [
    "BaseNormalizer",
    "NormalizedRecord",
    "RowContext",
    "FalconNormalizer",
    "AwsSecurityHubNormalizer",
    "ThreatAdvisoryNormalizer",
    "ScorecardIssueNormalizer",
    "OpenItemNormalizer",
    "SecureworksNormalizer",
    "NORMALIZERS",
    "get_normalizer",
]
