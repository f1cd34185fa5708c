"""Tests for utils/dates.py."""

import sys
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from notetasks.utils.dates import date_line_kind, extract_task_dates, parse_date


class TestParseDate:
    @pytest.mark.parametrize(
        "literal,expected",
        [
            ("<2024-01-15 Mon 09:30>", datetime(2024, 1, 15, 9, 30)),
            ("<2024-01-15 Mon>", datetime(2024, 1, 15)),
            ("<2024-01-15 09:30>", datetime(2024, 1, 15, 9, 30)),
            ("<2024-01-15>", datetime(2024, 1, 15)),
            ("  <2024-01-15>  trailing words", datetime(2024, 1, 15)),
        ],
    )
    def test_supported_forms(self, literal, expected):
        assert parse_date(literal) == expected

    @pytest.mark.parametrize(
        "literal",
        ["2024-01-15", "<15-01-2024>", "<2024-02-30>", "<2024-01-15 25:00>", "<2024-01-15 Someday>", ""],
    )
    def test_rejected(self, literal):
        assert parse_date(literal) is None


class TestDateLineKind:
    def test_plain_kinds(self):
        assert date_line_kind("SCHEDULED: <2024-01-15>", "", False) == "scheduled"
        assert date_line_kind("DEADLINE: <2024-01-15>", "", False) == "deadline"

    def test_deeper_indent(self):
        assert date_line_kind("      DEADLINE: x", "  ", False) == "deadline"

    def test_shallower_indent(self):
        assert date_line_kind("DEADLINE: x", "  ", False) is None

    def test_quote_needed_for_callout(self):
        assert date_line_kind("> SCHEDULED: x", "", True) == "scheduled"
        assert date_line_kind("SCHEDULED: x", "", True) is None

    def test_quote_rejected_for_plain_task(self):
        assert date_line_kind("> SCHEDULED: x", "", False) is None

    def test_not_a_date_line(self):
        assert date_line_kind("Scheduled: soon", "", False) is None


class TestExtractTaskDates:
    def test_stops_when_both_found(self):
        lines = ["SCHEDULED: <2024-01-15>", "DEADLINE: <2024-01-20>", "SCHEDULED: <2024-01-16>"]
        dates = extract_task_dates(lines, 0, "")
        assert dates.scheduled == datetime(2024, 1, 15)
        assert dates.deadline == datetime(2024, 1, 20)

    def test_duplicate_kind_skipped(self):
        lines = ["SCHEDULED: <2024-01-15>", "SCHEDULED: <2024-01-16>", "DEADLINE: <2024-01-20>"]
        dates = extract_task_dates(lines, 0, "")
        assert dates.scheduled == datetime(2024, 1, 15)
        assert dates.deadline == datetime(2024, 1, 20)

    def test_malformed_then_valid(self, caplog):
        lines = ["SCHEDULED: <bad>", "SCHEDULED: <2024-01-16>"]
        dates = extract_task_dates(lines, 0, "")
        assert dates.scheduled == datetime(2024, 1, 16)
        assert "line 1" in caplog.text

    def test_start_past_end(self):
        assert extract_task_dates(["x"], 5, "") == (None, None)
