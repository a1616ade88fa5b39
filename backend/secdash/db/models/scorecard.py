from sqlalchemy import Column, String, Text, Integer, Float, Boolean, Date, DateTime, CheckConstraint
from secdash.db.base import BaseModel, new_id


class ScorecardIssue(BaseModel):
    """Detailed issue row from a SecurityScorecard "full issues" export."""
    __tablename__ = "scorecard_issues"
    __table_args__ = (
        CheckConstraint(
            "issue_type_severity IN ('CRITICAL', 'HIGH', 'MEDIUM', 'LOW', 'INFO')",
            name="scorecard_issues_severity_check"
        ),
    )

    issue_id = Column(String(128), primary_key=True)
    factor_name = Column(String(255), nullable=False, default="")
    issue_type_title = Column(String(1000), nullable=False, default="")
    issue_type_code = Column(String(255), nullable=False, default="")
    issue_type_severity = Column(String(16), nullable=False, default="INFO", index=True)
    issue_recommendation = Column(Text, nullable=True)
    issue_type_score_impact = Column(Float, nullable=False, default=0.0)
    status = Column(String(32), nullable=False, default="active", index=True)

    first_seen = Column(DateTime(timezone=True), nullable=True)
    last_seen = Column(DateTime(timezone=True), nullable=True)

    # Location
    ip_addresses = Column(Text, nullable=True)
    hostname = Column(String(255), nullable=True)
    subdomain = Column(String(255), nullable=True)
    target = Column(Text, nullable=True)
    ports = Column(String(255), nullable=True)
    initial_url = Column(Text, nullable=True)
    final_url = Column(Text, nullable=True)

    # Technical details
    cve_id = Column(String(64), nullable=True)
    description = Column(Text, nullable=True)
    product = Column(String(255), nullable=True)
    version = Column(String(128), nullable=True)
    detected_service = Column(String(255), nullable=True)
    malware_family = Column(String(255), nullable=True)
    using_rc4 = Column(Boolean, nullable=True)

    report_date = Column(Date, nullable=True)


class ScorecardRating(BaseModel):
    """Company-level SecurityScorecard rating, one per report date."""
    __tablename__ = "scorecard_ratings"

    id = Column(String(32), primary_key=True, default=new_id)
    report_date = Column(Date, nullable=False, unique=True, index=True)
    company = Column(String(255), nullable=True)
    generated_by = Column(String(255), nullable=True)
    industry = Column(String(255), nullable=True)
    company_website = Column(String(500), nullable=True)

    overall_score = Column(Float, nullable=False, default=0.0)
    letter_grade = Column(String(1), nullable=False, default="F")

    # Factor scores
    threat_indicators_score = Column(Float, nullable=True)
    network_security_score = Column(Float, nullable=True)
    dns_health_score = Column(Float, nullable=True)
    patching_cadence_score = Column(Float, nullable=True)
    endpoint_security_score = Column(Float, nullable=True)
    ip_reputation_score = Column(Float, nullable=True)
    application_security_score = Column(Float, nullable=True)
    cubit_score = Column(Float, nullable=True)
    hacker_chatter_score = Column(Float, nullable=True)
    information_leak_score = Column(Float, nullable=True)
    social_engineering_score = Column(Float, nullable=True)

    # Exposure counters
    findings_on_open_ports = Column(Integer, nullable=True)
    site_vulnerabilities = Column(Integer, nullable=True)
    malware_discovered = Column(Integer, nullable=True)
    leaked_information = Column(Integer, nullable=True)
    ip_addresses_scanned = Column(Integer, nullable=True)
    domain_names_scanned = Column(Integer, nullable=True)
