# tests/test_parsing.py
"""
Parsing building blocks
Tests: CSV tokenizing, column aliases, value coercion, identifiers, filenames
"""

import pytest
from datetime import date, datetime, timezone

from secdash.core.hashing import rolling_hash, synthesize_id
from secdash.ingestion.aliases import AliasTable, ColumnMap, resolve_exact_index, resolve_index
from secdash.ingestion.coercion import (
    normalize_severity_exact,
    normalize_severity_keywords,
    normalize_status,
    normalize_status_exact,
    parse_date,
    parse_flag,
    safe_float,
    safe_int,
)
from secdash.ingestion.csv_tokenizer import parse_header, split_lines, split_records, tokenize_line
from secdash.ingestion.file_naming import extract_report_date, validate_filename


class TestCsvTokenizer:
    """Test line tokenizing"""

    def test_quoted_comma_is_not_a_separator(self):
        assert tokenize_line('a,"b,c",d') == ["a", "b,c", "d"]

    def test_trailing_comma_yields_empty_field(self):
        assert tokenize_line("a,b,") == ["a", "b", ""]

    def test_unterminated_quote_runs_to_end_of_line(self):
        assert tokenize_line('a,"b,c') == ["a", "b,c"]

    def test_fields_are_stripped(self):
        assert tokenize_line(" a , b ") == ["a", "b"]

    def test_nesting_keeps_json_cells_whole(self):
        line = 'CTRL.1,{"x": 1, "y": [1, 2]},done'
        assert tokenize_line(line, track_nesting=True) == ["CTRL.1", '{"x": 1, "y": [1, 2]}', "done"]

    def test_nesting_strips_surrounding_quotes(self):
        assert tokenize_line('"x, y",z', track_nesting=True) == ["x, y", "z"]

    def test_split_lines_drops_blank_lines(self):
        assert split_lines("a,b\n\n1,2\r\n   \n3,4") == ["a,b", "1,2", "3,4"]

    def test_split_records_keeps_quoted_newlines(self):
        text = 'a,b\n1,"line one\nline two"\n2,c\n'
        assert split_records(text) == ["a,b", '1,"line one\nline two"', "2,c"]

    def test_parse_header_strips_bom_and_quotes(self):
        assert parse_header('\ufeff"Name", Severity ,"ID"') == ["Name", "Severity", "ID"]


class TestColumnAliases:
    """Test header resolution"""

    def test_exact_match_beats_earlier_substring(self):
        assert resolve_index(["Control ID", "ID", "Title"], ["ID", "Control ID"]) == 1

    def test_substring_match(self):
        assert resolve_index(["Detection Severity Level"], ["Severity"]) == 0

    def test_alias_priority_order(self):
        assert resolve_index(["Computer Name", "Hostname"], ["Hostname", "Computer Name"]) == 1

    def test_no_match(self):
        assert resolve_index(["A", "B"], ["Severity"]) is None

    def test_exact_resolution_ignores_punctuation(self):
        assert resolve_exact_index(["Issue-Id", "Description"], ["issue id"]) == 0
        assert resolve_exact_index(["Description"], ["ip"]) is None

    def test_overrides(self):
        table = AliasTable({"severity": ["Severity"], "title": ["Title"]})
        overridden = table.with_overrides({"severity": ["Risk"]})

        columns = overridden.resolve(["Title", "Risk"])
        assert columns.index("severity") == 1
        assert columns.index("title") == 0
        # the original table is untouched
        assert table["severity"] == ("Severity",)

    def test_fallback_position(self):
        table = AliasTable({"name": ["Name"], "remarks": ["Remarks"]})
        columns = table.resolve(["Name", "Something"], fallbacks={"remarks": 1})
        assert columns.index("remarks") == 1

    def test_column_map_defaults(self):
        columns = ColumnMap({"a": 0, "b": 1, "c": None})
        assert columns.get(["x", ""], "a") == "x"
        assert columns.get(["x", ""], "b", "default") == "default"
        assert columns.get(["x"], "b", "short") == "short"
        assert columns.get(["x"], "c", "missing") == "missing"
        assert "a" in columns
        assert "c" not in columns


class TestCoercion:
    """Test severity, status, number, flag and date coercion"""

    @pytest.mark.parametrize("value", ["Critical", "CRITICAL", " critical "])
    def test_severity_exact_match(self, value):
        assert normalize_severity_exact(value) == "CRITICAL"

    def test_severity_unknown_uses_default(self):
        assert normalize_severity_exact("banana") == "MEDIUM"
        assert normalize_severity_exact("banana", "INFO") == "INFO"
        assert normalize_severity_exact("") == "MEDIUM"

    def test_severity_informational(self):
        assert normalize_severity_exact("Informational") == "INFO"

    def test_severity_keywords(self):
        assert normalize_severity_keywords("Very High") == "HIGH"
        assert normalize_severity_keywords("banana") == "LOW"
        assert normalize_severity_keywords(None) == "LOW"

    def test_status_keywords(self):
        assert normalize_status("Work in progress") == "IN_PROGRESS"
        assert normalize_status("Assigned to SOC") == "IN_PROGRESS"
        assert normalize_status("Done") == "CLOSED"
        assert normalize_status("Fixed") == "RESOLVED"
        assert normalize_status("whatever") == "OPEN"
        assert normalize_status(None) == "OPEN"

    def test_status_exact(self):
        assert normalize_status_exact("Suppressed") == "WONT_FIX"
        assert normalize_status_exact("in progress") == "IN_PROGRESS"
        assert normalize_status_exact("pending") == "OPEN"

    def test_numbers_take_leading_digits(self):
        assert safe_int("12 hosts") == 12
        assert safe_int("abc") == 0
        assert safe_int("abc", None) is None
        assert safe_float("7.5/10") == 7.5
        assert safe_float("n/a") is None

    def test_flags(self):
        assert parse_flag("Yes") is True
        assert parse_flag("TRUE") is True
        assert parse_flag("no") is False
        assert parse_flag("") is False

    @pytest.mark.parametrize("value,expected", [
        ("12/Mar/24 3:45 PM", datetime(2024, 3, 12, 15, 45, tzinfo=timezone.utc)),
        ("2024/12/24 10:11:12 UTC", datetime(2024, 12, 24, 10, 11, 12, tzinfo=timezone.utc)),
        ("03/15/2024", datetime(2024, 3, 15, tzinfo=timezone.utc)),
        ("15-Mar-2024", datetime(2024, 3, 15, tzinfo=timezone.utc)),
        ("2024-12-24T10:00:00Z", datetime(2024, 12, 24, 10, 0, tzinfo=timezone.utc)),
    ])
    def test_dates(self, value, expected):
        assert parse_date(value) == expected

    def test_unparsable_date(self):
        assert parse_date("not a date") is None
        assert parse_date("") is None


class TestIdentifiers:
    """Test synthesized record identifiers"""

    def test_rolling_hash_is_stable(self):
        assert rolling_hash("abc") == "22ci"
        assert rolling_hash("abc") == rolling_hash("abc")

    def test_explicit_id_wins_and_is_sanitized(self):
        assert synthesize_id("falcon", [None, "ldt:abc 123"], ["host"], 1) == "ldt-abc-123"

    def test_identity_fields_hash_with_ordinal(self):
        first = synthesize_id("falcon", [], ["host-a", "2024-12-24"], 1)
        again = synthesize_id("falcon", [], ["host-a", "2024-12-24"], 1)
        other_row = synthesize_id("falcon", [], ["host-a", "2024-12-24"], 2)

        assert first == again
        assert first != other_row
        assert first.startswith("falcon-")

    def test_no_identity_fields(self):
        assert synthesize_id("item", [""], [None, ""], 3) == "item-row-3"


class TestFileNaming:
    """Test filename routing"""

    def test_valid_falcon_name(self):
        result = validate_filename("Falcon_DETECTIONS_20241224.csv")

        assert result.is_valid
        assert result.source == "falcon"
        assert result.extracted_date == "20241224"
        assert result.importable
        assert result.rule.source_tag == "falcon_detections"

    def test_case_insensitive(self):
        assert validate_filename("falcon_detections_20241224.CSV").is_valid

    def test_invalid_calendar_date(self):
        result = validate_filename("Falcon_DETECTIONS_20241332.csv")

        assert not result.is_valid
        assert "Invalid date" in result.error

    def test_unknown_name(self):
        result = validate_filename("random.csv")

        assert not result.is_valid
        assert "Expected formats" in result.error

    def test_recognised_but_not_importable(self):
        result = validate_filename("Tenable_SCAN123_20241224.csv")

        assert result.is_valid
        assert not result.importable

    def test_scorecard_routing(self):
        assert validate_filename("ACME_FullIssues_Report_20250824.csv").rule.source_tag == "scorecard_issues"
        assert validate_filename("ACME_Scorecard_Report_20250824.csv").rule.source_tag == "scorecard_rating"

    def test_tool_metrics_routing(self):
        perimeter = validate_filename("Perimeter_Protection_Quarter01_022025.csv")

        assert perimeter.importable
        assert perimeter.rule.source_tag == "perimeter_protection"
        assert perimeter.extracted_date is None
        for name in ("XDR_Secureworks_082025.csv", "ToolMetrics_Secureworks_Quarter03_092025.csv"):
            assert validate_filename(name).rule.source_tag == "xdr_secureworks"
        assert not validate_filename("XDR_Secureworks_2025.csv").is_valid

    def test_extract_report_date(self):
        assert extract_report_date("anything_20250824.csv") == date(2025, 8, 24)
        assert extract_report_date("anything_20251399.csv") is None
        assert extract_report_date("no-date.csv") is None
