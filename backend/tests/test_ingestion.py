# tests/test_ingestion.py
"""
CSV ingestion pipeline tests
Tests: row isolation, idempotent reimport, ingestion log lifecycle, per-source mapping
"""

import re
import pytest
from datetime import date
from sqlalchemy import func, select

from secdash.core.exceptions import InputRejectedError
from secdash.db.models import (
    AwsSecurityHubFinding,
    FalconDetection,
    IngestionLog,
    OpenItem,
    ScorecardIssue,
    ScorecardRating,
    SecureworksAlert,
    ThreatAdvisory,
    ToolMetricsEmail,
    ToolMetricsPerimeter,
    ToolMetricsXdr,
)
from secdash.ingestion import create_importer
from secdash.ingestion.orchestrator import build_error_csv
from secdash.ingestion.tool_metrics import ReportPeriod, leading_count, plain_count

FALCON_CSV = (
    b"Detection ID,Hostname,Severity,Tactic,DetectDate_UTC_readable\n"
    b"ldt:1,host-a,High,Execution,2024-12-24 10:00:00\n"
    b"ldt:3,host-c\n"
    b"ldt:2,host-b,Critical,Persistence,2024-12-24 11:00:00\n"
)

AWS_CSV = (
    b"ID,Title,Control Status,Severity,Failed checks,Unknown checks,Not available checks,"
    b"Passed checks,Related requirements,Custom parameters\n"
    b'IAM.1,"Root user, no access keys",FAILED,Critical,1,0,0,3,NIST.800-53.r5 AC-2,{"x": 1, "y": 2}\n'
)

SECUREWORKS_CSV = (
    b"Created At,Title,Severity,Threat Score,Detector,Hostname,Source IP,Tenant,Status\n"
    b"2024-12-24T10:00:00Z,Suspicious login,High,55,Auth,host-a,10.0.0.1,t1,Open\n"
)

PERIMETER_CSV = (
    b"Category,Item,Count\n"
    b'Email,Total Inbound Emails,"12,500"\n'
    b'Email,Blocked by Proofpoint,"1,200"\n'
    b"Email,Blocked by O365,300\n"
    b'Email,Total Delivered,"11,000"\n'
    b"Network Perimeter,Total Inbound Allowed,900\n"
    b"Network Perimeter,Total Blocked,100\n"
)

XDR_CSV = (
    b"Name,Count\n"
    b'Events,"1,234,567 events"\n'
    b"Detections,42\n"
    b"Triaged Events,17.6\n"
    b"Investigations,5\n"
    b"Incidents,1\n"
    b"Other,99\n"
)


async def count(session, model) -> int:
    return await session.scalar(select(func.count()).select_from(model))


class TestCsvImport:
    """Test the shared import loop"""

    @pytest.mark.asyncio
    async def test_bad_row_does_not_stop_the_import(self, db_session):
        """A short row is reported and the rows around it are stored"""
        importer = create_importer(db_session, "falcon_detections")
        summary = await importer.import_csv(FALCON_CSV, "Falcon_DETECTIONS_20241224.csv")

        assert summary.success
        assert summary.processed_count == 2
        assert summary.error_count == 1
        assert summary.errors == ["Row 2: Insufficient columns (expected 5, got 2)"]
        assert await count(db_session, FalconDetection) == 2

        detection = await db_session.get(FalconDetection, "ldt-2")
        assert detection.hostname == "host-b"
        assert detection.severity == "Critical"
        assert detection.raw_json["Tactic"] == "Persistence"

    @pytest.mark.asyncio
    async def test_error_csv(self, db_session):
        importer = create_importer(db_session, "falcon_detections")
        summary = await importer.import_csv(FALCON_CSV, "Falcon_DETECTIONS_20241224.csv")

        assert summary.error_csv == 'Row,Error\n"Row 2","Insufficient columns (expected 5, got 2)"'

    @pytest.mark.asyncio
    async def test_reimport_is_idempotent(self, db_session):
        """Importing the same file twice keeps one record per row"""
        for _ in range(2):
            importer = create_importer(db_session, "falcon_detections")
            await importer.import_csv(FALCON_CSV, "Falcon_DETECTIONS_20241224.csv")

        assert await count(db_session, FalconDetection) == 2
        assert await count(db_session, IngestionLog) == 2

    @pytest.mark.asyncio
    async def test_ingestion_log_is_finalized(self, db_session):
        importer = create_importer(db_session, "falcon_detections")
        summary = await importer.import_csv(FALCON_CSV, "Falcon_DETECTIONS_20241224.csv")

        log = await db_session.get(IngestionLog, summary.ingestion_log_id)
        assert log.status == "SUCCESS"
        assert log.rows_processed == 2
        assert log.source == "falcon_detections"
        assert log.report_date == date(2024, 12, 24)
        assert log.error_log == "Row 2: Insufficient columns (expected 5, got 2)"
        assert len(log.checksum) == 64

    @pytest.mark.asyncio
    async def test_header_only_file_fails_without_errors(self, db_session):
        importer = create_importer(db_session, "falcon_detections")
        summary = await importer.import_csv(b"Detection ID,Hostname\n", "falcon.csv")

        assert not summary.success
        assert summary.processed_count == 0
        assert summary.error_count == 0
        assert summary.error_csv is None

        log = await db_session.get(IngestionLog, summary.ingestion_log_id)
        assert log.status == "FAILED"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content,filename", [
        (b"", "falcon.csv"),
        (b"   \n  ", "falcon.csv"),
        (b"a,b\n1,2", "falcon.txt"),
        (b"a,b\n1,2", None),
    ])
    async def test_unusable_upload_is_rejected_before_logging(self, db_session, content, filename):
        importer = create_importer(db_session, "falcon_detections")

        with pytest.raises(InputRejectedError):
            await importer.import_csv(content, filename)

        assert await count(db_session, IngestionLog) == 0

    @pytest.mark.asyncio
    async def test_report_date_defaults_to_today(self, db_session):
        importer = create_importer(db_session, "falcon_detections")
        summary = await importer.import_csv(FALCON_CSV, "detections.csv")

        log = await db_session.get(IngestionLog, summary.ingestion_log_id)
        assert log.report_date == date.today()

    def test_error_csv_escapes_quotes(self):
        assert build_error_csv(['Row 1: bad "value"']) == 'Row,Error\n"Row 1","bad ""value"""'


class TestSourceMapping:
    """Test per-source normalization"""

    @pytest.mark.asyncio
    async def test_aws_security_hub(self, db_session):
        importer = create_importer(db_session, "aws_security_hub")
        summary = await importer.import_csv(AWS_CSV, "AWS_Security_Hub_FINDINGS_20241224.csv")
        assert summary.processed_count == 1

        finding = await db_session.scalar(select(AwsSecurityHubFinding))
        assert finding.control_id == "IAM.1"
        assert finding.title == "Root user, no access keys"
        assert finding.severity == "CRITICAL"
        assert finding.failed_checks == 1
        assert finding.passed_checks == 3
        assert finding.custom_parameters == '{"x": 1, "y": 2}'
        assert finding.status == "OPEN"

    @pytest.mark.asyncio
    async def test_aws_reimport_keeps_first_seen(self, db_session):
        importer = create_importer(db_session, "aws_security_hub")
        await importer.import_csv(AWS_CSV, "aws.csv")
        finding = await db_session.scalar(select(AwsSecurityHubFinding))
        first_seen = finding.found_at

        await create_importer(db_session, "aws_security_hub").import_csv(AWS_CSV, "aws.csv")

        assert await count(db_session, AwsSecurityHubFinding) == 1
        finding = await db_session.scalar(select(AwsSecurityHubFinding))
        assert finding.found_at == first_seen

    @pytest.mark.asyncio
    async def test_secureworks_reimport_counts_occurrences(self, db_session):
        for _ in range(2):
            importer = create_importer(db_session, "secureworks_alerts")
            summary = await importer.import_csv(SECUREWORKS_CSV, "Secureworks_ALERTS_20241224.csv")
            assert summary.processed_count == 1

        assert await count(db_session, SecureworksAlert) == 1
        alert = await db_session.scalar(select(SecureworksAlert))
        assert alert.occurrence_count == 2
        assert alert.severity == "HIGH"
        assert alert.status == "OPEN"
        assert alert.alert_id.startswith("secureworks-")
        assert alert.alert_id.endswith("-20241224")

    @pytest.mark.asyncio
    async def test_threat_advisories(self, db_session):
        content = (
            b"Threat Advisory Name,Severity,Netgear Severity,Impacted,Source,"
            b"Advisory Released Date,Notified Date,Remarks,ETA for Fix\n"
            b"OpenSSL 3.x,High,Medium,Yes,Vendor,2024-12-01,2024-12-02,Patched,2024-12-31\n"
        )
        importer = create_importer(db_session, "threat_advisories")
        await importer.import_csv(content, "Threat_Advisory_20241224.csv")
        await create_importer(db_session, "threat_advisories").import_csv(content, "Threat_Advisory_20241224.csv")

        assert await count(db_session, ThreatAdvisory) == 1
        advisory = await db_session.scalar(select(ThreatAdvisory))
        assert advisory.threat_advisory_name == "OpenSSL 3.x"
        assert advisory.severity == "High"
        assert advisory.internal_severity == "Medium"
        assert advisory.impacted is True
        assert advisory.id.startswith("threat-advisory-")

    @pytest.mark.asyncio
    async def test_threat_advisory_error_preview_is_short(self, db_session):
        header = b"Threat Advisory Name,Severity,Netgear Severity,Impacted,Source\n"
        content = header + b"only,two\n" * 7

        importer = create_importer(db_session, "threat_advisories")
        summary = await importer.import_csv(content, "advisories.csv")

        assert summary.error_count == 7
        assert len(summary.errors) == 5
        assert not summary.success

    @pytest.mark.asyncio
    async def test_open_items(self, db_session):
        content = (
            b"Issue Key,Summary,Status,Created,Story Points\n"
            b"SEC-1,Rotate keys,In Progress,12/Mar/24 3:45 PM,3\n"
            b",No key item,Done,,\n"
        )
        importer = create_importer(db_session, "open_items")
        summary = await importer.import_csv(content, "CorpSec_BiWeekly_OpenItems (Jira).csv")
        assert summary.processed_count == 2

        item = await db_session.get(OpenItem, "SEC-1")
        assert item.status == "In Progress"
        assert item.normalized_status == "IN_PROGRESS"
        assert item.story_points == 3

        keyless = await db_session.get(OpenItem, "item-row-2")
        assert keyless.title == "No key item"
        assert keyless.normalized_status == "CLOSED"
        assert keyless.story_points is None

    @pytest.mark.asyncio
    async def test_scorecard_issues(self, db_session):
        content = (
            b"Issue Id,Factor Name,Issue Type Title,Issue Type Code,Issue Type Severity,Description,Status\n"
            b'abc-1,network_security,Open port,open_port,HIGH,"Port 22 open\non host",Active\n'
            b"abc-2,dns_health,SPF missing,spf,banana\n"
        )
        importer = create_importer(db_session, "scorecard_issues")
        summary = await importer.import_csv(content, "ACME_FullIssues_Report_20250824.csv")
        assert summary.processed_count == 2
        assert summary.error_count == 0

        issue = await db_session.get(ScorecardIssue, "abc-1")
        assert issue.issue_type_severity == "HIGH"
        assert issue.description == "Port 22 open\non host"
        assert issue.status == "active"

        short = await db_session.get(ScorecardIssue, "abc-2")
        assert short.issue_type_severity == "INFO"
        assert short.status == "active"

    @pytest.mark.asyncio
    async def test_scorecard_rating(self, db_session):
        content = (
            b"Field,Value\n"
            b"Company,ACME\n"
            b"Network Security Score,80\n"
            b"DNS Health Score,90\n"
            b"Malware Discovered,2\n"
        )
        for _ in range(2):
            importer = create_importer(db_session, "scorecard_rating")
            summary = await importer.import_csv(content, "ACME_Scorecard_Report_20250824.csv")
            assert summary.success

        assert await count(db_session, ScorecardRating) == 1
        rating = await db_session.scalar(select(ScorecardRating))
        assert rating.report_date == date(2025, 8, 24)
        assert rating.company == "ACME"
        assert rating.overall_score == 85.0
        assert rating.letter_grade == "B"
        assert rating.malware_discovered == 2

    @pytest.mark.asyncio
    async def test_scorecard_rating_without_scores(self, db_session):
        importer = create_importer(db_session, "scorecard_rating")
        summary = await importer.import_csv(b"Field,Value\nCompany,ACME\n", "ACME_Scorecard_Report_20250824.csv")

        assert not summary.success
        assert summary.errors == ["Row 1: No scorecard scores found in report"]


class TestToolMetrics:
    """Test the monthly tool metrics reports"""

    @pytest.mark.asyncio
    async def test_perimeter_protection(self, db_session):
        importer = create_importer(db_session, "perimeter_protection")
        summary = await importer.import_csv(PERIMETER_CSV, "Perimeter_Protection_Quarter01_022025.csv")

        assert summary.success
        assert summary.processed_count == 6

        email = await db_session.scalar(select(ToolMetricsEmail))
        assert email.period_month == date(2025, 2, 1)
        assert email.period_quarter == "Q1 2025"
        assert email.report_label == "022025"
        assert email.inbound_emails == 12500
        assert email.blocked_proofpoint == 1200
        assert email.blocked_ms365 == 300
        assert email.delivered_emails == 11000
        assert email.raw_json == {"filename": "Perimeter_Protection_Quarter01_022025.csv"}

        perimeter = await db_session.scalar(select(ToolMetricsPerimeter))
        assert perimeter.total_inbound == 1000
        assert perimeter.total_blocked == 100
        assert perimeter.delivered == 900

        log = await db_session.get(IngestionLog, summary.ingestion_log_id)
        assert log.source == "perimeter_protection"
        assert log.report_date == date(2025, 2, 1)

    @pytest.mark.asyncio
    async def test_perimeter_reimport_replaces_the_month(self, db_session):
        filename = "Perimeter_Protection_Quarter01_022025.csv"
        await create_importer(db_session, "perimeter_protection").import_csv(PERIMETER_CSV, filename)
        await create_importer(db_session, "perimeter_protection").import_csv(
            b"Category,Item,Count\nEmail,Total Inbound Emails,50\n", filename
        )

        assert await count(db_session, ToolMetricsEmail) == 1
        assert await count(db_session, ToolMetricsPerimeter) == 1
        email = await db_session.scalar(select(ToolMetricsEmail))
        await db_session.refresh(email)
        assert email.inbound_emails == 50
        assert email.delivered_emails == 0
        perimeter = await db_session.scalar(select(ToolMetricsPerimeter))
        await db_session.refresh(perimeter)
        assert perimeter.total_inbound is None

    @pytest.mark.asyncio
    async def test_perimeter_unnamed_leading_columns(self, db_session):
        importer = create_importer(db_session, "perimeter_protection")
        summary = await importer.import_csv(
            b",,Count\nEmail,Total Delivered,7\n", "Perimeter_Protection_Quarter02_052025.csv"
        )

        assert summary.success
        email = await db_session.scalar(select(ToolMetricsEmail))
        assert email.delivered_emails == 7
        assert email.period_quarter == "Q2 2025"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("source,content,filename,message", [
        ("perimeter_protection", PERIMETER_CSV, "Perimeter_Protection_Q1_022025.csv", "Invalid filename"),
        ("perimeter_protection", PERIMETER_CSV, "Perimeter_Protection_Quarter05_022025.csv", "Invalid filename"),
        ("perimeter_protection", b"Category,Item,Count\n", "Perimeter_Protection_Quarter01_022025.csv",
         "at least one row"),
        ("perimeter_protection", b"Kind,Label,Total\nEmail,x,1\n", "Perimeter_Protection_Quarter01_022025.csv",
         "Category, Item, Count"),
        ("xdr_secureworks", XDR_CSV, "XDR_Secureworks_132025.csv", "Invalid filename"),
        ("xdr_secureworks", b"Metric,Value\nEvents,1\n", "XDR_Secureworks_082025.csv", "Name,Count"),
    ])
    async def test_rejected_before_logging(self, db_session, source, content, filename, message):
        importer = create_importer(db_session, source)

        with pytest.raises(InputRejectedError, match=message):
            await importer.import_csv(content, filename)

        assert await count(db_session, IngestionLog) == 0

    @pytest.mark.asyncio
    async def test_xdr_secureworks(self, db_session):
        importer = create_importer(db_session, "xdr_secureworks")
        summary = await importer.import_csv(XDR_CSV, "XDR_Secureworks_082025.csv")

        assert summary.success
        metrics = await db_session.scalar(select(ToolMetricsXdr))
        assert metrics.period_month == date(2025, 8, 1)
        assert metrics.period_quarter == "Q3 2025"
        assert metrics.report_label == "082025"
        assert metrics.events == 1234567
        assert metrics.detections == 42
        assert metrics.triaged_events == 18
        assert metrics.investigations == 5
        assert metrics.incidents == 1

    @pytest.mark.asyncio
    async def test_xdr_quarter_from_filename(self, db_session):
        importer = create_importer(db_session, "xdr_secureworks")
        await importer.import_csv(XDR_CSV, "ToolMetrics_Secureworks_Quarter04_092025.csv")

        metrics = await db_session.scalar(select(ToolMetricsXdr))
        assert metrics.period_month == date(2025, 9, 1)
        assert metrics.period_quarter == "Q4 2025"

    def test_counts(self):
        assert plain_count("1,204") == 1204
        assert plain_count("12 abc") == 0
        assert plain_count("") == 0
        assert leading_count("about 1,204 events") == 1204
        assert leading_count("n/a") == 0

    def test_period_derives_quarter_from_month(self):
        period = ReportPeriod.from_match(re.match(r"()(\d{2})(\d{4})", "112024"))

        assert period == ReportPeriod(month=date(2024, 11, 1), quarter="Q4 2024", label="112024")
