"""
Tests for the SQLAlchemy data store.

Run: python -m pytest tests/test_data_store.py -v
"""

import pytest

from oee_copilot.models import Base
from oee_copilot.services.data_store import (
    DEFAULT_PAGE_SIZE,
    StoreError,
    session_title_from_message,
)

from conftest import make_entry


# =====================================================================
# Status logs
# =====================================================================

class TestStatusLogs:

    def test_insert_and_count(self, store, scenario_a_rows):
        assert store.insert_logs(scenario_a_rows) == 2
        assert store.count_logs() == 2

    def test_round_trip_preserves_fields(self, store):
        store.insert_logs([make_entry("Press 1", "Down", 15, reason="Hydraulics", comment="leak")])
        entry = store.query_recent_logs()[0]
        assert entry.equipment_name == "Press 1"
        assert entry.state == "down"
        assert entry.duration_minutes == 15
        assert entry.reason == "Hydraulics"
        assert entry.comment == "leak"

    def test_unbounded_query_is_capped(self, store):
        store.insert_logs([make_entry(f"M{i % 7}", "running", 1) for i in range(DEFAULT_PAGE_SIZE + 5)])
        assert len(store.query_recent_logs()) == DEFAULT_PAGE_SIZE
        assert len(store.query_recent_logs(limit=5000)) == DEFAULT_PAGE_SIZE + 5

    def test_range_is_inclusive(self, store):
        store.insert_logs([make_entry(f"M{i}", "running", 1) for i in range(20)])
        assert len(store.query_logs_range(0, 9)) == 10
        assert len(store.query_logs_range(15, 100)) == 5
        assert store.query_logs_range(5, 4) == []

    def test_replace_all_rebuilds_equipment(self, store, two_machine_rows):
        store.insert_logs([make_entry("Old Machine", "running", 5)])
        store.replace_all_logs(two_machine_rows, batch_size=3)
        assert store.count_logs() == 4
        assert store.list_equipment() == ["Machine A", "Machine B"]

    def test_replace_all_with_nothing_empties_table(self, store, two_machine_rows):
        store.replace_all_logs(two_machine_rows)
        store.replace_all_logs([])
        assert store.count_logs() == 0
        assert store.list_equipment() == []

    def test_failures_raise_store_error(self, store):
        Base.metadata.drop_all(store.engine)
        with pytest.raises(StoreError):
            store.count_logs()
        with pytest.raises(StoreError):
            store.insert_logs([make_entry()])


# =====================================================================
# Sessions and messages
# =====================================================================

@pytest.mark.parametrize("message,expected", [
    (None, "New Chat"),
    ("   ", "New Chat"),
    ("Short question", "Short question"),
    ("x" * 60, "x" * 50 + "..."),
])
def test_session_title_from_message(message, expected):
    assert session_title_from_message(message) == expected


class TestSessions:

    def test_ensure_session_creates_once(self, store):
        created = store.ensure_session("s1", "What is our availability this month?")
        again = store.ensure_session("s1", "another message")
        assert created["id"] == again["id"] == "s1"
        assert again["title"] == "What is our availability this month?"

    def test_list_sessions_most_recent_first(self, store):
        store.create_session("first", session_id="a")
        store.create_session("second", session_id="b")
        store.touch_session("a")
        assert [s["id"] for s in store.list_sessions()] == ["a", "b"]

    def test_rename(self, store):
        store.create_session("old", session_id="s1")
        assert store.rename_session("s1", "new")["title"] == "new"
        assert store.rename_session("missing", "x") is None

    def test_delete_removes_messages(self, store):
        store.create_session(session_id="s1")
        store.append_message("s1", "user", "hello")
        assert store.delete_session("s1") is True
        assert store.get_session("s1") is None
        assert store.query_messages("s1") == []
        assert store.delete_session("s1") is False


class TestMessages:

    def test_roles_validated(self, store):
        store.create_session(session_id="s1")
        with pytest.raises(ValueError):
            store.append_message("s1", "system", "nope")

    def test_chronological_order(self, store):
        store.create_session(session_id="s1")
        for i in range(4):
            store.append_message("s1", "user" if i % 2 == 0 else "assistant", f"m{i}")
        assert [m["content"] for m in store.query_messages("s1")] == ["m0", "m1", "m2", "m3"]
        assert [m["content"] for m in store.query_messages("s1", ascending=False)][0] == "m3"

    def test_recent_messages_oldest_first(self, store):
        store.create_session(session_id="s1")
        for i in range(6):
            store.append_message("s1", "user", f"m{i}")
        assert [m["content"] for m in store.query_recent_messages("s1", limit=3)] == ["m3", "m4", "m5"]
