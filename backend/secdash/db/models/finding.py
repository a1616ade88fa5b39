from sqlalchemy import Column, String, Text, Integer, Boolean, Date, DateTime, CheckConstraint
from secdash.db.base import BaseModel, new_id, utcnow


class AwsSecurityHubFinding(BaseModel):
    """
    AWS Security Hub control result.

    One row per control id; re-importing a report updates the existing row.
    """
    __tablename__ = "aws_security_hub_findings"
    __table_args__ = (
        CheckConstraint(
            "severity IN ('CRITICAL', 'HIGH', 'MEDIUM', 'LOW', 'INFO')",
            name="aws_findings_severity_check"
        ),
    )

    id = Column(String(32), primary_key=True, default=new_id)
    control_id = Column(String(128), nullable=False, unique=True, index=True)
    title = Column(String(1000), nullable=False, default="")
    control_status = Column(String(64), nullable=False, default="Unknown")
    severity = Column(String(16), nullable=False, default="MEDIUM", index=True)

    # Check counters
    failed_checks = Column(Integer, nullable=False, default=0)
    unknown_checks = Column(Integer, nullable=False, default=0)
    not_available_checks = Column(Integer, nullable=False, default=0)
    passed_checks = Column(Integer, nullable=False, default=0)

    related_requirements = Column(Text, nullable=True)
    custom_parameters = Column(Text, nullable=True)
    description = Column(Text, nullable=True)

    status = Column(String(16), nullable=False, default="OPEN", index=True)
    report_date = Column(Date, nullable=True)
    found_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    resolved_at = Column(DateTime(timezone=True), nullable=True)


class ThreatAdvisory(BaseModel):
    """Threat advisory tracked by the security team."""
    __tablename__ = "threat_advisories"

    id = Column(String(128), primary_key=True)
    threat_advisory_name = Column(String(1000), nullable=False, default="")
    severity = Column(String(32), nullable=False, default="")
    internal_severity = Column(String(32), nullable=False, default="")
    impacted = Column(Boolean, nullable=False, default=False)
    source = Column(String(255), nullable=False, default="")
    advisory_released_date = Column(String(64), nullable=False, default="")
    notified_date = Column(String(64), nullable=False, default="")
    remarks = Column(Text, nullable=True)
    eta_for_fix = Column(String(255), nullable=True)
    report_date = Column(Date, nullable=True)


class OpenItem(BaseModel):
    """Ticket exported from Jira (open security work items)."""
    __tablename__ = "open_items"

    id = Column(String(128), primary_key=True)  # sanitized issue key
    title = Column(String(1000), nullable=False)
    description = Column(Text, nullable=True)
    assignee = Column(String(255), nullable=True)
    reporter = Column(String(255), nullable=True)
    priority = Column(String(64), nullable=True)
    status = Column(String(64), nullable=False, default="Open")
    normalized_status = Column(String(16), nullable=False, default="OPEN", index=True)
    issue_type = Column(String(128), nullable=True)
    labels = Column(Text, nullable=True)
    epic = Column(String(255), nullable=True)
    sprint = Column(String(255), nullable=True)
    resolution = Column(String(255), nullable=True)
    story_points = Column(Integer, nullable=True)
    opened_at = Column(DateTime(timezone=True), nullable=True)
    last_updated_at = Column(DateTime(timezone=True), nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    report_date = Column(Date, nullable=True)
