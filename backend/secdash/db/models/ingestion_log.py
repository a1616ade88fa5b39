from sqlalchemy import Column, String, Integer, Text, Date, CheckConstraint
from secdash.db.base import BaseModel, new_id


class IngestionLog(BaseModel):
    """
    Audit record of one file upload.

    Created in PENDING state before any row is read, finalized exactly once
    as SUCCESS (at least one row stored) or FAILED.
    """
    __tablename__ = "ingestion_logs"
    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'SUCCESS', 'FAILED')",
            name="ingestion_logs_status_check"
        ),
    )

    id = Column(String(32), primary_key=True, default=new_id)
    filename = Column(String(500), nullable=False)
    file_type = Column(String(16), nullable=False, default="csv")
    checksum = Column(String(64), nullable=False, index=True)  # SHA256 of raw upload
    source = Column(String(64), nullable=False, index=True)  # falcon_detections, aws_security_hub, ...
    rows_processed = Column(Integer, nullable=False, default=0)
    report_date = Column(Date, nullable=True)
    status = Column(String(16), nullable=False, default="PENDING", index=True)
    error_log = Column(Text, nullable=True)
