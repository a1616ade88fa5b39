# backend/secdash/core/constants.py
from enum import Enum
from typing import Dict, Tuple


class SeverityLevel(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"


class IssueStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"
    WONT_FIX = "WONT_FIX"


class IngestionStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    ANALYST = "ANALYST"
    VIEWER = "VIEWER"


class SourceTag(str, Enum):
    FALCON_DETECTIONS = "falcon_detections"
    AWS_SECURITY_HUB = "aws_security_hub"
    THREAT_ADVISORIES = "threat_advisories"
    SCORECARD_ISSUES = "scorecard_issues"
    SCORECARD_RATING = "scorecard_rating"
    OPEN_ITEMS = "open_items"
    SECUREWORKS_ALERTS = "secureworks_alerts"
    PERIMETER_PROTECTION = "perimeter_protection"
    XDR_SECUREWORKS = "xdr_secureworks"


# Roles allowed to import each source through the dedicated endpoint
IMPORT_ROLES: Dict[str, Tuple[UserRole, ...]] = {
    SourceTag.FALCON_DETECTIONS.value: (UserRole.ADMIN,),
    SourceTag.AWS_SECURITY_HUB.value: (UserRole.ADMIN,),
    SourceTag.THREAT_ADVISORIES.value: (UserRole.ADMIN, UserRole.ANALYST),
    SourceTag.SCORECARD_ISSUES.value: (UserRole.ADMIN,),
    SourceTag.SCORECARD_RATING.value: (UserRole.ADMIN,),
    SourceTag.OPEN_ITEMS.value: (UserRole.ADMIN,),
    SourceTag.SECUREWORKS_ALERTS.value: (UserRole.ADMIN,),
    SourceTag.PERIMETER_PROTECTION.value: (UserRole.ADMIN,),
    SourceTag.XDR_SECUREWORKS.value: (UserRole.ADMIN,),
}

# Inline error preview size returned with an import summary
DEFAULT_ERROR_PREVIEW = 10
SHORT_ERROR_PREVIEW = 5

# Upload progress is logged every N processed rows
PROGRESS_LOG_EVERY = 100
