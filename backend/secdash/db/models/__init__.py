from secdash.db.models.ingestion_log import IngestionLog
from secdash.db.models.detection import FalconDetection, SecureworksAlert
from secdash.db.models.finding import AwsSecurityHubFinding, ThreatAdvisory, OpenItem
from secdash.db.models.scorecard import ScorecardIssue, ScorecardRating
from secdash.db.models.tool_metrics import ToolMetricsEmail, ToolMetricsPerimeter, ToolMetricsXdr
from secdash.db.models.rss import RssFeed, RssItem

__all__ = [
    "IngestionLog",
    "FalconDetection",
    "SecureworksAlert",
    "AwsSecurityHubFinding",
    "ThreatAdvisory",
    "OpenItem",
    "ScorecardIssue",
    "ScorecardRating",
    "ToolMetricsEmail",
    "ToolMetricsPerimeter",
    "ToolMetricsXdr",
    "RssFeed",
    "RssItem",
]
