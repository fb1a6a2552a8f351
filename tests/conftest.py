from datetime import date

import pytest

from oee_copilot.services.data_store import DataStore
from oee_copilot.services.status_log import StatusLogEntry


DAY = date(2024, 3, 4)


def make_entry(name="Machine A", status="running", minutes=0, reason=None, day=DAY, **kwargs):
    return StatusLogEntry(
        equipment_name=name,
        status=status,
        date=day,
        duration_minutes=minutes,
        reason=reason,
        **kwargs,
    )


@pytest.fixture
def store(tmp_path):
    return DataStore(f"sqlite:///{tmp_path}/test.db")


@pytest.fixture
def scenario_a_rows():
    """Machine A: 100 min running, 20 min down for a belt fault."""
    return [
        make_entry("Machine A", "running", 100),
        make_entry("Machine A", "down", 20, reason="Belt"),
    ]


@pytest.fixture
def two_machine_rows():
    """Machine A at 90% availability, Machine B at 60%."""
    return [
        make_entry("Machine A", "running", 90),
        make_entry("Machine A", "down", 10, reason="Jam"),
        make_entry("Machine B", "running", 60),
        make_entry("Machine B", "down", 40, reason="Motor"),
    ]
