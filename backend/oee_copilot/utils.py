"""
Shared utility functions for the OEE Copilot backend.

  - sanitize_for_json: numpy/pandas/date values -> native JSON types
  - snapshot_to_dict: OEESnapshot -> API dict
  - recency_label: "Today" / "Yesterday" / "N days ago" / date grouping
"""

import dataclasses
import math
from datetime import date, datetime
from typing import Any, Dict

import numpy as np

from .services.aggregation import OEESnapshot, classify_availability


# ─── JSON serialization ────────────────────────────────────────────

def sanitize_for_json(obj: Any) -> Any:
    """Recursively convert numpy/date types to native Python for JSON."""
    if isinstance(obj, dict):
        return {k: sanitize_for_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [sanitize_for_json(item) for item in obj]
    if isinstance(obj, (np.integer,)):
        return int(obj)
    if isinstance(obj, (np.floating,)):
        val = float(obj)
        return None if (math.isnan(val) or math.isinf(val)) else val
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, float) and (math.isnan(obj) or math.isinf(obj)):
        return None
    return obj


# ─── Snapshot helpers ───────────────────────────────────────────────

def snapshot_to_dict(snapshot: OEESnapshot) -> Dict[str, Any]:
    """Dashboard view of a snapshot; percentages rounded to one decimal."""
    overall = snapshot.overall
    return sanitize_for_json({
        "has_data": snapshot.has_data,
        "total_records": snapshot.total_records,
        "equipment_count": snapshot.equipment_count,
        "first_date": snapshot.first_date,
        "last_date": snapshot.last_date,
        "overall": {
            "availability_pct": round(overall.availability_pct, 1) if overall.has_state_time else None,
            "runtime_minutes": overall.runtime_minutes,
            "downtime_minutes": overall.downtime_minutes,
            "status": classify_availability(overall.availability_pct) if overall.has_state_time else None,
        },
        "ranking": [
            {
                **dataclasses.asdict(e),
                "availability_pct": round(e.availability_pct, 1),
                "status": classify_availability(e.availability_pct),
            }
            for e in snapshot.ranking
        ],
        "failures": [dataclasses.asdict(f) for f in snapshot.failures.values()],
        "status_counts": snapshot.status_counts,
    })


# ─── Session grouping ───────────────────────────────────────────────

def recency_label(moment: datetime, now: datetime) -> str:
    """Sidebar grouping label for a session's last update."""
    hours = (now - moment).total_seconds() / 3600
    if hours < 24:
        return "Today"
    if hours < 48:
        return "Yesterday"
    if hours < 168:
        return f"{int(hours // 24)} days ago"
    return moment.date().isoformat()
