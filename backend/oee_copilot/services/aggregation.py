"""
Equipment Metrics Aggregation

Turns validated status-log entries into the statistics every response
path uses: overall availability, per-equipment ranking, failure-reason
(Pareto) breakdown and a per-day availability series.

All functions are pure. Percentages keep full precision; rounding is a
presentation concern handled by the template renderer and chart builder.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .status_log import StatusLogEntry

# Benchmark thresholds shared by templates, charts and the dashboard
WORLD_CLASS_OEE = 85.0
ACCEPTABLE = 70.0

_COLUMNS = ["equipment", "state", "minutes", "reason", "has_reason", "date"]


@dataclass
class AvailabilitySummary:
    """Plant-wide availability over a set of rows."""
    availability_pct: float
    runtime_minutes: int
    downtime_minutes: int
    total_records: int

    @property
    def has_state_time(self) -> bool:
        return self.runtime_minutes + self.downtime_minutes > 0


@dataclass
class EquipmentAggregate:
    """Availability and downtime totals for one piece of equipment."""
    name: str
    availability_pct: float
    downtime_minutes: int
    runtime_minutes: int
    incident_count: int


@dataclass
class FailureReasonTotal:
    """Aggregated impact of one failure reason."""
    reason: str
    minutes: int
    count: int


@dataclass
class DailyAvailability:
    day: date
    availability_pct: float
    runtime_minutes: int
    downtime_minutes: int


@dataclass
class OEESnapshot:
    """Everything derived from one fetch of status-log rows."""
    total_records: int
    equipment_count: int
    overall: AvailabilitySummary
    ranking: List[EquipmentAggregate] = field(default_factory=list)
    failures: Dict[str, FailureReasonTotal] = field(default_factory=dict)
    daily: List[DailyAvailability] = field(default_factory=list)
    status_counts: Dict[str, int] = field(default_factory=dict)
    first_date: Optional[date] = None
    last_date: Optional[date] = None

    @property
    def has_data(self) -> bool:
        """False when there were no rows at all (distinct from 0% availability)."""
        return self.total_records > 0

    @property
    def priority_equipment(self) -> Optional[EquipmentAggregate]:
        return self.ranking[0] if self.ranking else None

    @property
    def top_failure(self) -> Optional[FailureReasonTotal]:
        return next(iter(self.failures.values()), None)


def availability_pct(runtime_minutes: float, downtime_minutes: float) -> float:
    """runtime / (runtime + downtime) * 100, or 0.0 when both are zero."""
    total = runtime_minutes + downtime_minutes
    if total <= 0:
        return 0.0
    return runtime_minutes / total * 100


def classify_availability(pct: float) -> str:
    """Tri-colour status used by charts and text: good, warning or critical."""
    if pct >= WORLD_CLASS_OEE:
        return "good"
    if pct >= ACCEPTABLE:
        return "warning"
    return "critical"


def _to_frame(rows: Sequence[StatusLogEntry]) -> pd.DataFrame:
    records = [
        {
            "equipment": r.equipment_name,
            "state": r.state,
            "minutes": r.duration_minutes,
            "reason": r.reason,
            "has_reason": r.has_reason,
            "date": r.date,
        }
        for r in rows
    ]
    df = pd.DataFrame(records, columns=_COLUMNS)
    df["minutes"] = df["minutes"].fillna(0).astype("int64")
    return df


def _state_minutes(df: pd.DataFrame, state: str) -> int:
    return int(df.loc[df["state"] == state, "minutes"].sum())


def compute_overall_availability(rows: Sequence[StatusLogEntry]) -> AvailabilitySummary:
    """Partition rows into running-like and down-like time and compute availability."""
    if not rows:
        return AvailabilitySummary(0.0, 0, 0, 0)

    df = _to_frame(rows)
    runtime = _state_minutes(df, "running")
    downtime = _state_minutes(df, "down")
    return AvailabilitySummary(
        availability_pct=availability_pct(runtime, downtime),
        runtime_minutes=runtime,
        downtime_minutes=downtime,
        total_records=len(df),
    )


def compute_equipment_ranking(rows: Sequence[StatusLogEntry]) -> List[EquipmentAggregate]:
    """
    Per-equipment aggregates sorted ascending by availability.

    The worst performer comes first; every "priority equipment" statement
    relies on this ordering. Ties are broken by name.
    """
    if not rows:
        return []

    df = _to_frame(rows)
    df["runtime"] = df["minutes"].where(df["state"] == "running", 0)
    df["downtime"] = df["minutes"].where(df["state"] == "down", 0)
    df["incident"] = (df["state"] == "down").astype("int64")

    grouped = df.groupby("equipment", sort=False)[["runtime", "downtime", "incident"]].sum()

    ranking = []
    for name, row in grouped.iterrows():
        runtime = int(row["runtime"])
        downtime = int(row["downtime"])
        ranking.append(EquipmentAggregate(
            name=str(name),
            availability_pct=availability_pct(runtime, downtime),
            downtime_minutes=downtime,
            runtime_minutes=runtime,
            incident_count=int(row["incident"]),
        ))

    ranking.sort(key=lambda e: (e.availability_pct, e.name))
    return ranking


def compute_failure_breakdown(rows: Sequence[StatusLogEntry]) -> Dict[str, FailureReasonTotal]:
    """
    Downtime minutes and occurrences per failure reason, largest first.

    Only down-like rows with a usable reason are counted. Reasons are
    keyed by their exact text, so differently-cased reasons stay separate.
    """
    if not rows:
        return {}

    df = _to_frame(rows)
    down = df[(df["state"] == "down") & df["has_reason"]]
    if down.empty:
        return {}

    grouped = down.groupby("reason", sort=False)["minutes"].agg(["sum", "count"])
    totals = [
        FailureReasonTotal(reason=str(reason), minutes=int(row["sum"]), count=int(row["count"]))
        for reason, row in grouped.iterrows()
    ]
    totals.sort(key=lambda t: (-t.minutes, -t.count, t.reason))
    return {t.reason: t for t in totals}


def compute_daily_availability(rows: Sequence[StatusLogEntry]) -> List[DailyAvailability]:
    """Plant-wide availability per calendar day, oldest first."""
    if not rows:
        return []

    df = _to_frame(rows)
    df["runtime"] = df["minutes"].where(df["state"] == "running", 0)
    df["downtime"] = df["minutes"].where(df["state"] == "down", 0)
    grouped = df.groupby("date", sort=True)[["runtime", "downtime"]].sum()

    return [
        DailyAvailability(
            day=day,
            availability_pct=availability_pct(int(row["runtime"]), int(row["downtime"])),
            runtime_minutes=int(row["runtime"]),
            downtime_minutes=int(row["downtime"]),
        )
        for day, row in grouped.iterrows()
    ]


def summarize(rows: Sequence[StatusLogEntry]) -> OEESnapshot:
    """Compute every aggregate for one request's snapshot of rows."""
    rows = list(rows)
    overall = compute_overall_availability(rows)
    if not rows:
        return OEESnapshot(total_records=0, equipment_count=0, overall=overall)

    ranking = compute_equipment_ranking(rows)
    status_counts = (
        pd.Series([r.status.strip().lower() for r in rows])
        .value_counts()
        .sort_index()
    )
    dates = [r.date for r in rows]

    return OEESnapshot(
        total_records=len(rows),
        equipment_count=len(ranking),
        overall=overall,
        ranking=ranking,
        failures=compute_failure_breakdown(rows),
        daily=compute_daily_availability(rows),
        status_counts={str(k): int(v) for k, v in status_counts.items()},
        first_date=min(dates),
        last_date=max(dates),
    )
