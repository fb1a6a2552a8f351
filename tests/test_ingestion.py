"""
Tests for CSV status-log ingestion.

Run: python -m pytest tests/test_ingestion.py -v
"""

from datetime import date, time

import pytest

from oee_copilot.services.ingestion import (
    IngestionError,
    map_columns,
    normalize_header,
    parse_status_log_csv,
)
from oee_copilot.services.status_log import InvalidStatusLogEntry, StatusLogEntry, parse_duration


IMPORT_DAY = date(2024, 1, 1)


def test_normalize_header():
    assert normalize_header(" Equipment Name ") == "equipment_name"
    assert normalize_header("Duration-Minutes") == "duration_minutes"


def test_map_columns_uses_aliases():
    mapping = map_columns(["Machine", "State", "Downtime Reason", "Notes"])
    assert mapping == {
        "equipment_name": "Machine",
        "status": "State",
        "reason": "Downtime Reason",
        "comment": "Notes",
    }


class TestParseCsv:

    def test_basic_file(self):
        content = (
            "Equipment Name,Status,Date,Start Time,End Time,Duration,Reason\n"
            "Filler 1,Running,2024-03-04,06:00,07:40,100,\n"
            "Filler 1,Down,2024-03-04,07:40,08:00,20,Belt\n"
        )
        result = parse_status_log_csv(content, import_date=IMPORT_DAY)
        assert result.skipped == 0
        assert len(result.entries) == 2
        down = result.entries[1]
        assert down.state == "down"
        assert down.duration_minutes == 20
        assert down.reason == "Belt"
        assert down.date == date(2024, 3, 4)
        assert down.start_time == time(7, 40)
        assert result.equipment == ["Filler 1"]

    def test_rows_without_name_or_status_are_skipped(self):
        content = (
            "machine,status,duration\n"
            "Press,running,10\n"
            ",running,10\n"
            "Press,,10\n"
        )
        result = parse_status_log_csv(content, import_date=IMPORT_DAY)
        assert len(result.entries) == 1
        assert result.skipped == 2

    def test_bad_values_fall_back(self):
        content = "machine,status,date,duration\nPress,down,not-a-date,abc\n"
        entry = parse_status_log_csv(content, import_date=IMPORT_DAY).entries[0]
        assert entry.date == IMPORT_DAY
        assert entry.duration_minutes == 0

    def test_bytes_with_bom(self):
        content = "\ufeffmachine,status\nPress,running\n".encode("utf-8")
        result = parse_status_log_csv(content, import_date=IMPORT_DAY)
        assert result.entries[0].equipment_name == "Press"

    def test_empty_file(self):
        with pytest.raises(IngestionError):
            parse_status_log_csv(b"   ")

    def test_missing_required_column(self):
        with pytest.raises(IngestionError, match="status"):
            parse_status_log_csv("machine,duration\nPress,10\n")


# =====================================================================
# StatusLogEntry validation
# =====================================================================

def test_from_mapping_accepts_camel_case():
    entry = StatusLogEntry.from_mapping(
        {"equipmentName": "Lathe", "status": "active", "durationMinutes": "45", "date": "2024-02-01"}
    )
    assert entry.equipment_name == "Lathe"
    assert entry.duration_minutes == 45
    assert entry.state == "running"


def test_from_mapping_requires_name():
    with pytest.raises(InvalidStatusLogEntry):
        StatusLogEntry.from_mapping({"status": "running"})


@pytest.mark.parametrize("value,expected", [
    ("30", 30), ("12.9", 12), (-5, 0), ("", 0), (None, 0), ("abc", 0),
])
def test_parse_duration(value, expected):
    assert parse_duration(value) == expected
