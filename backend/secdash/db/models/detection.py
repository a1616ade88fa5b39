from sqlalchemy import Column, String, Text, Boolean, Float, Integer, DateTime, JSON, CheckConstraint
from secdash.db.base import BaseModel, utcnow


class FalconDetection(BaseModel):
    """Endpoint detection exported from CrowdStrike Falcon."""
    __tablename__ = "falcon_detections"

    id = Column(String(255), primary_key=True)  # explicit detection id or synthesized key

    detect_date = Column(String(64), nullable=True)
    severity = Column(String(32), nullable=True, index=True)
    tactic = Column(String(255), nullable=True)
    technique = Column(String(255), nullable=True)
    product_type = Column(String(255), nullable=True)
    hostname = Column(String(255), nullable=True, index=True)
    computer_name = Column(String(255), nullable=True)
    user_name = Column(String(255), nullable=True)
    filename = Column(String(1000), nullable=True)
    process_name = Column(String(1000), nullable=True)
    command_line = Column(Text, nullable=True)
    pattern_disposition_description = Column(Text, nullable=True)
    detect_description = Column(Text, nullable=True)
    ioc_type = Column(String(64), nullable=True)
    ioc_value = Column(Text, nullable=True)
    confidence = Column(String(32), nullable=True)
    policy_name = Column(String(255), nullable=True)
    policy_type = Column(String(255), nullable=True)

    false_positive = Column(Boolean, nullable=False, default=False)
    raw_json = Column(JSON, nullable=False, default=dict)
    ingested_on = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class SecureworksAlert(BaseModel):
    """XDR alert exported from Secureworks Taegis."""
    __tablename__ = "secureworks_alerts"
    __table_args__ = (
        CheckConstraint(
            "severity IN ('CRITICAL', 'HIGH', 'MEDIUM', 'LOW', 'INFO')",
            name="secureworks_alerts_severity_check"
        ),
    )

    alert_id = Column(String(128), primary_key=True)  # synthesized duplicate key
    title = Column(String(1000), nullable=True)
    severity = Column(String(16), nullable=False, default="MEDIUM", index=True)
    threat_score = Column(Float, nullable=True)
    detector = Column(String(255), nullable=True)
    sensor_type = Column(String(255), nullable=True)
    domain = Column(String(255), nullable=True)
    combined_username = Column(String(255), nullable=True)
    source_ip = Column(String(64), nullable=True)
    destination_ip = Column(String(64), nullable=True)
    hostname = Column(String(255), nullable=True)
    investigations = Column(Text, nullable=True)
    confidence = Column(Float, nullable=True)
    mitre_attack = Column(Text, nullable=True)
    status = Column(String(16), nullable=False, default="OPEN", index=True)
    status_reason = Column(String(255), nullable=True)
    tenant = Column(String(64), nullable=True)
    occurrence_count = Column(Integer, nullable=False, default=1)
    description = Column(Text, nullable=True)
    detected_at = Column(DateTime(timezone=True), nullable=True)
    false_positive = Column(Boolean, nullable=False, default=False)
    ingested_on = Column(DateTime(timezone=True), nullable=False, default=utcnow)
