from secdash.rss.classifier import ClassifierConfig, VulnerabilityClassifier, VulnerabilityData
from secdash.rss.parser import FeedEntry, parse_feed
from secdash.rss.service import FeedFetchResult, FetchAllResult, FeedImportResult, RssService

__all__ = [
    "ClassifierConfig",
    "VulnerabilityClassifier",
    "VulnerabilityData",
    "FeedEntry",
    "parse_feed",
    "FeedFetchResult",
    "FetchAllResult",
    "FeedImportResult",
    "RssService",
]
