"""
Tests for deterministic template responses.

Run: python -m pytest tests/test_response_templates.py -v
"""

import pytest

from oee_copilot.services.aggregation import summarize
from oee_copilot.services.response_templates import (
    TEMPLATES,
    render_no_data,
    render_response,
)
from oee_copilot.services.topic_classifier import Topic, match_topic

from conftest import make_entry


@pytest.mark.parametrize("topic", list(Topic))
def test_no_data_for_every_topic(topic):
    text = render_response(topic, summarize([]))
    assert text == render_no_data()
    assert "No equipment logs loaded" in text
    assert "not available" in text
    assert "0.0%" not in text


def test_every_topic_has_a_template():
    assert set(TEMPLATES) == set(Topic)


def test_availability_scenario_a(scenario_a_rows):
    text = render_response(Topic.AVAILABILITY, summarize(scenario_a_rows))
    assert "83.3%" in text
    assert "Machine A" in text
    assert "1.7 points below" in text


def test_general_names_priority_equipment(two_machine_rows):
    text = render_response(Topic.GENERAL, summarize(two_machine_rows))
    assert "**Priority equipment**: Machine B" in text


def test_general_without_state_time_reports_na():
    text = render_response(Topic.GENERAL, summarize([make_entry(status="idle", minutes=30)]))
    assert "N/A" in text
    assert "cannot be benchmarked" in text


def test_world_class_line():
    text = render_response(Topic.AVAILABILITY, summarize([make_entry(status="running", minutes=60)]))
    assert "meets the 85% world-class benchmark" in text


def test_downtime_lists_worst_first(two_machine_rows):
    text = render_response(Topic.DOWNTIME, summarize(two_machine_rows))
    assert text.index("Machine B") < text.index("Machine A")
    assert "Largest contributor: **Motor**" in text


class TestPareto:

    def test_lists_causes_with_cumulative_share(self, two_machine_rows):
        text = render_response(Topic.PARETO, summarize(two_machine_rows))
        assert "1. **Motor**: 40 min" in text
        assert "cumulative 100.0%" in text
        assert "**Vital few**: Motor" in text

    def test_no_recorded_causes(self):
        rows = [make_entry(status="down", minutes=15), make_entry(status="running", minutes=15)]
        text = render_response(Topic.PARETO, summarize(rows))
        assert "none has a recorded cause" in text

    def test_zero_minute_causes_name_no_vital_few(self):
        rows = [
            make_entry(status="down", minutes=0, reason="Belt"),
            make_entry(status="down", minutes=0, reason="Jam"),
            make_entry(status="down", minutes=0, reason="Motor"),
            make_entry(status="running", minutes=30),
        ]
        text = render_response(Topic.PARETO, summarize(rows))
        assert "**Belt**: 0 min" in text
        assert "Vital few" not in text
        assert "80% or more" not in text
        assert "no vital few can be named" in text


def test_summary_and_no_data_texts_carry_no_topic_keywords(two_machine_rows):
    assert match_topic(render_response(Topic.GENERAL, summarize(two_machine_rows)).lower()) == Topic.GENERAL
    assert match_topic(render_no_data().lower()) == Topic.GENERAL


def test_data_query_counts(two_machine_rows):
    text = render_response(Topic.DATA_QUERY, summarize(two_machine_rows))
    assert "**Records**: 4" in text
    assert "**Equipment**: 2" in text
    assert "- running: 2" in text
    assert "2024-03-04 to 2024-03-04" in text


def test_rendering_is_deterministic(two_machine_rows):
    for topic in Topic:
        assert render_response(topic, summarize(two_machine_rows)) == \
            render_response(topic, summarize(two_machine_rows))
