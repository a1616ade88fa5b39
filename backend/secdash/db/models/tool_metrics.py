from sqlalchemy import Column, String, Integer, Date, JSON
from secdash.db.base import BaseModel, new_id


class ToolMetricsEmail(BaseModel):
    """Monthly email gateway counters from the perimeter protection report."""
    __tablename__ = "tool_metrics_email"

    id = Column(String(32), primary_key=True, default=new_id)
    period_month = Column(Date, nullable=False, unique=True, index=True)
    period_quarter = Column(String(16), nullable=False)
    report_label = Column(String(16), nullable=False)

    inbound_emails = Column(Integer, nullable=False, default=0)
    blocked_proofpoint = Column(Integer, nullable=False, default=0)
    blocked_ms365 = Column(Integer, nullable=False, default=0)
    delivered_emails = Column(Integer, nullable=False, default=0)

    raw_json = Column(JSON, nullable=True)


class ToolMetricsPerimeter(BaseModel):
    """Monthly network perimeter counters; absent totals stay NULL."""
    __tablename__ = "tool_metrics_perimeter"

    id = Column(String(32), primary_key=True, default=new_id)
    period_month = Column(Date, nullable=False, unique=True, index=True)
    period_quarter = Column(String(16), nullable=False)
    report_label = Column(String(16), nullable=False)

    total_inbound = Column(Integer, nullable=True)
    total_blocked = Column(Integer, nullable=True)
    delivered = Column(Integer, nullable=True)

    raw_json = Column(JSON, nullable=True)


class ToolMetricsXdr(BaseModel):
    """Monthly Secureworks XDR funnel: events down to incidents."""
    __tablename__ = "tool_metrics_xdr"

    id = Column(String(32), primary_key=True, default=new_id)
    period_month = Column(Date, nullable=False, unique=True, index=True)
    period_quarter = Column(String(16), nullable=False)
    report_label = Column(String(16), nullable=False)

    events = Column(Integer, nullable=False, default=0)
    detections = Column(Integer, nullable=False, default=0)
    triaged_events = Column(Integer, nullable=False, default=0)
    investigations = Column(Integer, nullable=False, default=0)
    incidents = Column(Integer, nullable=False, default=0)

    raw_json = Column(JSON, nullable=True)
