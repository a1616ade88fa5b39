# backend/secdash/rss/classifier.py
"""
Keyword and pattern classification of feed items.

Severity is decided by the first rule that applies:

    1. CVSS score          >= 9.0 CRITICAL, >= 7.0 HIGH, >= 4.0 MEDIUM, >= 0.1 LOW
    2. Zero-Day, APT or Ransomware tag       CRITICAL
    3. CVE count           >= 3 HIGH, >= 1 MEDIUM
    4. severity keywords   critical, high, medium, low lists in that order
    5. otherwise           INFO
"""
import re
from dataclasses import dataclass, field
from typing import List, Optional, Pattern, Tuple

from secdash.core.constants import SeverityLevel

CVE_PATTERN = re.compile(r"CVE-\d{4}-\d{4,}", re.IGNORECASE)
CVSS_PATTERN = re.compile(r"CVSS[:\s]*(?:score[:\s]*)?(\d{1,2}\.?\d?)", re.IGNORECASE)

PRODUCT_PATTERNS = (
    re.compile(r"(?:affects?|vulnerable|impacted?)[:\s]+([^.,\n]+)", re.IGNORECASE),
    re.compile(r"(?:in|for)\s+([\w\s]+?)(?:\s+(?:version|v\d|before|prior|up to))", re.IGNORECASE),
    re.compile(
        r"(Windows|Linux|macOS|Android|iOS|Chrome|Firefox|Safari|Apache|Nginx|MySQL|PostgreSQL"
        r"|Oracle|Microsoft|Adobe|Java|PHP|Python|Node\.js)",
        re.IGNORECASE,
    ),
)

KEYWORD_TAGS = (
    ("Zero-Day", ("zero-day", "0-day")),
    ("Ransomware", ("ransomware",)),
    ("APT", ("apt", "advanced persistent threat")),
    ("Malware", ("malware",)),
    ("Phishing", ("phishing",)),
    ("Patch", ("patch", "update")),
    ("Disclosure", ("disclosure", "advisory")),
    ("Exploit", ("exploit",)),
    ("Data Breach", ("breach",)),
    ("IoT", ("iot", "internet of things")),
    ("Cloud", ("cloud", "aws", "azure")),
    ("Mobile", ("mobile", "android", "ios")),
)

SEVERITY_KEYWORDS = (
    (SeverityLevel.CRITICAL, (
        "critical", "severe", "emergency", "exploit", "rce", "remote code execution", "unauthenticated",
    )),
    (SeverityLevel.HIGH, ("high", "urgent", "vulnerability", "security", "breach", "attack", "bypass")),
    (SeverityLevel.MEDIUM, ("medium", "warning", "advisory", "patch", "update", "disclosure")),
    (SeverityLevel.LOW, ("low", "info", "notice", "maintenance", "information")),
)

CVSS_THRESHOLDS = (
    (9.0, SeverityLevel.CRITICAL),
    (7.0, SeverityLevel.HIGH),
    (4.0, SeverityLevel.MEDIUM),
    (0.1, SeverityLevel.LOW),
)

CRITICAL_TAGS = ("Zero-Day", "APT", "Ransomware")


@dataclass(frozen=True)
class ClassifierConfig:
    """Rule tables; swap in a different config rather than editing code."""
    cve_pattern: Pattern = CVE_PATTERN
    cvss_pattern: Pattern = CVSS_PATTERN
    product_patterns: Tuple[Pattern, ...] = PRODUCT_PATTERNS
    keyword_tags: Tuple[Tuple[str, Tuple[str, ...]], ...] = KEYWORD_TAGS
    severity_keywords: Tuple[Tuple[SeverityLevel, Tuple[str, ...]], ...] = SEVERITY_KEYWORDS
    cvss_thresholds: Tuple[Tuple[float, SeverityLevel], ...] = CVSS_THRESHOLDS
    critical_tags: Tuple[str, ...] = CRITICAL_TAGS
    high_cve_count: int = 3


@dataclass
class VulnerabilityData:
    cves: List[str] = field(default_factory=list)
    cvss: Optional[float] = None
    affected_products: List[str] = field(default_factory=list)
    severity: str = SeverityLevel.INFO.value
    tags: List[str] = field(default_factory=list)


def _unique(values) -> List[str]:
    return list(dict.fromkeys(values))


class VulnerabilityClassifier:
    """Derives CVEs, CVSS, products, tags and a severity from item text."""

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self.config = config or ClassifierConfig()

    def classify(self, title: str, description: Optional[str] = None) -> VulnerabilityData:
        content = f"{title} {description or ''}"
        lowered = content.lower()

        cves = self.extract_cves(content)
        cvss = self.extract_cvss(content)
        products = self.extract_products(content)

        tags = []
        if cves:
            tags.append("CVE")
        if cvss is not None:
            tags.append("CVSS")
        for tag, keywords in self.config.keyword_tags:
            if any(keyword in lowered for keyword in keywords):
                tags.append(tag)

        return VulnerabilityData(
            cves=cves,
            cvss=cvss,
            affected_products=products,
            severity=self.severity(lowered, cvss, cves, tags).value,
            tags=tags,
        )

    def extract_cves(self, content: str) -> List[str]:
        return _unique(match.upper() for match in self.config.cve_pattern.findall(content))

    def extract_cvss(self, content: str) -> Optional[float]:
        match = self.config.cvss_pattern.search(content)
        if not match:
            return None
        try:
            return float(match.group(1))
        except ValueError:
            return None

    def extract_products(self, content: str) -> List[str]:
        products = []
        for pattern in self.config.product_patterns:
            for match in pattern.finditer(content):
                product = match.group(1).strip()
                if 2 < len(product) < 50:
                    products.append(product)
        return _unique(products)

    def severity(
        self,
        lowered: str,
        cvss: Optional[float],
        cves: List[str],
        tags: List[str]
    ) -> SeverityLevel:
        if cvss is not None:
            for threshold, level in self.config.cvss_thresholds:
                if cvss >= threshold:
                    return level

        if any(tag in tags for tag in self.config.critical_tags):
            return SeverityLevel.CRITICAL

        if len(cves) >= self.config.high_cve_count:
            return SeverityLevel.HIGH
        if cves:
            return SeverityLevel.MEDIUM

        for level, keywords in self.config.severity_keywords:
            if any(keyword in lowered for keyword in keywords):
                return level

        return SeverityLevel.INFO
