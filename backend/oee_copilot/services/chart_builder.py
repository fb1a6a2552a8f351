"""
Chart Data Builder

Builds chart-ready view-models (labels + numeric series) from an
``OEESnapshot``. The rendering layer owns drawing, including the
cumulative-percentage overlay on Pareto charts; this module only
guarantees the ordering and values.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .aggregation import OEESnapshot, classify_availability
from .topic_classifier import Topic

CHART_KEYWORDS = (
    "chart", "graph", "plot", "visual", "visualize", "visualise", "diagram",
    "pareto", "pie", "doughnut", "trend",
)

_CHART_RE = re.compile(r"\b(?:%s)s?\b" % "|".join(CHART_KEYWORDS))

NO_REASONS_LABEL = "No failure reasons recorded"

CLASSIFICATION_COLORS = {
    "good": "rgba(34, 197, 94, 0.8)",
    "warning": "rgba(234, 179, 8, 0.8)",
    "critical": "rgba(239, 68, 68, 0.8)",
}
PRIMARY_COLOR = "rgba(59, 130, 246, 0.8)"
PRIMARY_BORDER = "rgba(59, 130, 246, 1)"
DOWNTIME_COLOR = "rgba(239, 68, 68, 0.8)"
PALETTE = [
    "rgba(59, 130, 246, 0.8)",
    "rgba(239, 68, 68, 0.8)",
    "rgba(234, 179, 8, 0.8)",
    "rgba(34, 197, 94, 0.8)",
    "rgba(168, 85, 247, 0.8)",
    "rgba(249, 115, 22, 0.8)",
    "rgba(20, 184, 166, 0.8)",
    "rgba(107, 114, 128, 0.8)",
]


@dataclass
class ChartDataset:
    label: str
    data: List[float]
    background_color: Any = None
    border_color: Any = None
    border_width: Optional[int] = None
    fill: Optional[bool] = None
    classification: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"label": self.label, "data": list(self.data)}
        optional = {
            "backgroundColor": self.background_color,
            "borderColor": self.border_color,
            "borderWidth": self.border_width,
            "fill": self.fill,
            "classification": self.classification,
        }
        out.update({k: v for k, v in optional.items() if v is not None})
        return out


@dataclass
class ChartSpec:
    type: str  # bar, line, pie, doughnut, pareto
    title: str
    labels: List[str] = field(default_factory=list)
    datasets: List[ChartDataset] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "title": self.title,
            "labels": list(self.labels),
            "datasets": [d.to_dict() for d in self.datasets],
        }


def _chart_words(message: str) -> set:
    """Chart keywords present in a message, plurals folded to the singular."""
    words = set()
    for match in _CHART_RE.findall((message or "").lower()):
        if match not in CHART_KEYWORDS and match[:-1] in CHART_KEYWORDS:
            match = match[:-1]
        words.add(match)
    return words


def wants_chart(message: str) -> bool:
    return bool(_CHART_RE.search((message or "").lower()))


def pareto_chart(snapshot: OEESnapshot) -> ChartSpec:
    """Failure reasons, largest first, so the 80/20 split is visible."""
    failures = list(snapshot.failures.values())
    if not failures:
        # Data exists but no downtime carries a cause: explicit placeholder bar
        return ChartSpec(
            type="pareto",
            title="Failure Pareto (no causes recorded)",
            labels=[NO_REASONS_LABEL],
            datasets=[ChartDataset(label="Downtime (minutes)", data=[0])],
        )
    return ChartSpec(
        type="pareto",
        title="Downtime Pareto by Failure Reason",
        labels=[f.reason for f in failures],
        datasets=[ChartDataset(
            label="Downtime (minutes)",
            data=[f.minutes for f in failures],
            background_color=PRIMARY_COLOR,
            border_color=PRIMARY_BORDER,
            border_width=1,
        )],
    )


def availability_chart(snapshot: OEESnapshot) -> ChartSpec:
    classes = [classify_availability(e.availability_pct) for e in snapshot.ranking]
    return ChartSpec(
        type="bar",
        title="Availability by Equipment (%)",
        labels=[e.name for e in snapshot.ranking],
        datasets=[ChartDataset(
            label="Availability %",
            data=[round(e.availability_pct, 1) for e in snapshot.ranking],
            background_color=[CLASSIFICATION_COLORS[c] for c in classes],
            border_width=1,
            classification=classes,
        )],
    )


def downtime_chart(snapshot: OEESnapshot) -> ChartSpec:
    ordered = sorted(snapshot.ranking, key=lambda e: (-e.downtime_minutes, e.name))
    return ChartSpec(
        type="bar",
        title="Downtime by Equipment (minutes)",
        labels=[e.name for e in ordered],
        datasets=[ChartDataset(
            label="Downtime (minutes)",
            data=[e.downtime_minutes for e in ordered],
            background_color=DOWNTIME_COLOR,
            border_width=1,
        )],
    )


def downtime_share_chart(snapshot: OEESnapshot, chart_type: str = "pie") -> Optional[ChartSpec]:
    ordered = [e for e in sorted(snapshot.ranking, key=lambda e: (-e.downtime_minutes, e.name))
               if e.downtime_minutes > 0]
    if not ordered:
        return None
    return ChartSpec(
        type=chart_type,
        title="Share of Downtime by Equipment",
        labels=[e.name for e in ordered],
        datasets=[ChartDataset(
            label="Downtime (minutes)",
            data=[e.downtime_minutes for e in ordered],
            background_color=[PALETTE[i % len(PALETTE)] for i in range(len(ordered))],
        )],
    )


def trend_chart(snapshot: OEESnapshot) -> Optional[ChartSpec]:
    if not snapshot.daily:
        return None
    return ChartSpec(
        type="line",
        title="Daily Availability Trend (%)",
        labels=[d.day.isoformat() for d in snapshot.daily],
        datasets=[ChartDataset(
            label="Availability %",
            data=[round(d.availability_pct, 1) for d in snapshot.daily],
            border_color=PRIMARY_BORDER,
            background_color="rgba(59, 130, 246, 0.1)",
            border_width=2,
            fill=False,
        )],
    )


def build_chart(message: str, topic: Topic, snapshot: OEESnapshot) -> Optional[ChartSpec]:
    """
    Pick and build a chart for a message, or return None.

    None is returned when the message asks for no chart or when there is no
    underlying data. The one exception is a Pareto request over data with no
    recorded causes, which yields a single placeholder bar.
    """
    words = _chart_words(message)
    if not words or not snapshot.has_data:
        return None

    if topic == Topic.PARETO or "pareto" in words:
        return pareto_chart(snapshot)
    if "trend" in words:
        return trend_chart(snapshot)
    if "doughnut" in words:
        return downtime_share_chart(snapshot, "doughnut")
    if "pie" in words:
        return downtime_share_chart(snapshot, "pie")
    if topic == Topic.DOWNTIME:
        return downtime_chart(snapshot)
    return availability_chart(snapshot)
