"""
Template Responses

Deterministic Markdown answers rendered straight from an ``OEESnapshot``.
Used whenever no generative model is configured, and as the fallback
when a generative call fails. Identical snapshots always render
byte-identical text.
"""

from typing import Callable, Dict, List

from .aggregation import (
    ACCEPTABLE,
    WORLD_CLASS_OEE,
    OEESnapshot,
    classify_availability,
)
from .topic_classifier import Topic

TOP_N = 5
VITAL_FEW_SHARE = 80.0

_STATUS_LABELS = {
    "good": "World-class",
    "warning": "Below world-class",
    "critical": "Critical",
}


def _pct(value: float) -> str:
    return f"{value:.1f}%"


def _overall_pct(snapshot: OEESnapshot) -> str:
    if not snapshot.overall.has_state_time:
        return "N/A"
    return _pct(snapshot.overall.availability_pct)


def _benchmark_line(snapshot: OEESnapshot) -> str:
    if not snapshot.overall.has_state_time:
        return "No running or stopped time has been logged yet, so it cannot be benchmarked."
    pct = snapshot.overall.availability_pct
    status = _STATUS_LABELS[classify_availability(pct)]
    gap = WORLD_CLASS_OEE - pct
    if gap <= 0:
        return f"**{status}**: {_pct(pct)} meets the {WORLD_CLASS_OEE:.0f}% world-class benchmark."
    return (
        f"**{status}**: {_pct(pct)} is {gap:.1f} points below the "
        f"{WORLD_CLASS_OEE:.0f}% world-class benchmark."
    )


def _incident_total(snapshot: OEESnapshot) -> int:
    return sum(e.incident_count for e in snapshot.ranking)


# The no-data and summary texts are fed back to the classifier when the
# next message is a follow-up, so they must not contain topic keywords.

def render_no_data() -> str:
    return (
        "**No equipment logs loaded**\n\n"
        "I couldn't find any equipment status logs to analyze, so OEE figures "
        "are not available yet.\n\n"
        "Please import your equipment status log (CSV) first. Once it is loaded, try:\n"
        "- \"Which equipment runs the least?\"\n"
        "- \"What stops our lines most often?\"\n"
        "- \"Which equipment needs attention?\""
    )


def render_general(snapshot: OEESnapshot) -> str:
    priority = snapshot.priority_equipment
    lines = [
        "**OEE Copilot Summary**\n",
        f"- **Time running**: {_overall_pct(snapshot)}",
        f"- **Equipment monitored**: {snapshot.equipment_count}",
        f"- **Log entries analyzed**: {snapshot.total_records}",
        f"- **Stops logged**: {_incident_total(snapshot)} "
        f"({snapshot.overall.downtime_minutes} min stopped)",
        "",
        _benchmark_line(snapshot),
    ]
    if priority is not None:
        lines += [
            "",
            f"**Priority equipment**: {priority.name} "
            f"({_pct(priority.availability_pct)} running, "
            f"{priority.downtime_minutes} min stopped).",
        ]
    lines += [
        "",
        "Try asking:",
        "- \"Which equipment runs the least?\"",
        "- \"What stops our lines most often?\"",
        "- \"How big is the equipment log?\"",
    ]
    return "\n".join(lines)


def render_availability(snapshot: OEESnapshot) -> str:
    lines = [
        "**Equipment Availability Analysis**\n",
        f"- **Overall availability**: {_overall_pct(snapshot)}",
        f"- **Total runtime**: {snapshot.overall.runtime_minutes} min",
        f"- **Total down time**: {snapshot.overall.downtime_minutes} min",
        "",
        f"**Lowest availability first** (top {min(TOP_N, len(snapshot.ranking))} "
        f"of {len(snapshot.ranking)}):",
    ]
    for i, eq in enumerate(snapshot.ranking[:TOP_N], 1):
        status = _STATUS_LABELS[classify_availability(eq.availability_pct)]
        lines.append(f"{i}. **{eq.name}**: {_pct(eq.availability_pct)} ({status})")
    lines += [
        "",
        _benchmark_line(snapshot),
        f"Benchmarks: world-class ≥ {WORLD_CLASS_OEE:.0f}%, acceptable ≥ {ACCEPTABLE:.0f}%.",
    ]
    return "\n".join(lines)


def render_downtime(snapshot: OEESnapshot) -> str:
    by_downtime = sorted(
        snapshot.ranking, key=lambda e: (-e.downtime_minutes, e.name)
    )
    lines = [
        "**Downtime Analysis**\n",
        f"- **Total downtime**: {snapshot.overall.downtime_minutes} min",
        f"- **Incidents**: {_incident_total(snapshot)}",
        "",
        "**Equipment with the most downtime:**",
    ]
    for i, eq in enumerate(by_downtime[:TOP_N], 1):
        lines.append(
            f"{i}. **{eq.name}**: {eq.downtime_minutes} min across "
            f"{eq.incident_count} incident(s)"
        )
    top = snapshot.top_failure
    if top is not None:
        lines += ["", f"Largest contributor: **{top.reason}** ({top.minutes} min)."]
    return "\n".join(lines)


def render_pareto(snapshot: OEESnapshot) -> str:
    failures = list(snapshot.failures.values())
    if not failures:
        return (
            "**Failure Pareto Analysis**\n\n"
            f"{_incident_total(snapshot)} downtime incident(s) were logged, but none "
            "has a recorded cause. Add a reason to downtime entries to build a Pareto breakdown."
        )

    total = sum(f.minutes for f in failures)
    lines = [
        "**Failure Pareto Analysis**\n",
        f"{len(failures)} distinct cause(s), {total} min of attributed downtime.\n",
    ]
    cumulative = 0.0
    vital_few: List[str] = []
    for i, f in enumerate(failures, 1):
        share = f.minutes / total * 100 if total else 0.0
        cumulative += share
        if len(vital_few) == 0 or cumulative - share < VITAL_FEW_SHARE:
            vital_few.append(f.reason)
        if i <= TOP_N:
            lines.append(
                f"{i}. **{f.reason}**: {f.minutes} min, {f.count} occurrence(s) "
                f"({_pct(share)}, cumulative {_pct(cumulative)})"
            )
    if total == 0:
        lines += ["", "None of these causes has logged downtime minutes yet, so no vital few can be named."]
        return "\n".join(lines)
    lines += [
        "",
        f"**Vital few**: {', '.join(vital_few)} account for "
        f"{VITAL_FEW_SHARE:.0f}% or more of attributed downtime. Focus corrective action there first.",
    ]
    return "\n".join(lines)


def render_data_query(snapshot: OEESnapshot) -> str:
    lines = [
        "**Equipment Data Overview**\n",
        f"- **Records**: {snapshot.total_records}",
        f"- **Equipment**: {snapshot.equipment_count}",
        f"- **Date range**: {snapshot.first_date.isoformat()} to {snapshot.last_date.isoformat()}",
        "",
        "**Records by status:**",
    ]
    for status, count in snapshot.status_counts.items():
        lines.append(f"- {status}: {count}")
    return "\n".join(lines)


TEMPLATES: Dict[Topic, Callable[[OEESnapshot], str]] = {
    Topic.GENERAL: render_general,
    Topic.AVAILABILITY: render_availability,
    Topic.DOWNTIME: render_downtime,
    Topic.PARETO: render_pareto,
    Topic.DATA_QUERY: render_data_query,
}


def render_response(topic: Topic, snapshot: OEESnapshot) -> str:
    """Render the template for a topic, or the no-data message."""
    if not snapshot.has_data:
        return render_no_data()
    return TEMPLATES.get(topic, render_general)(snapshot)
