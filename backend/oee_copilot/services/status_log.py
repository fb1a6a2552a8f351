"""
Equipment Status Log Records

Validated, immutable representation of one equipment state interval.
Every row that reaches aggregation passes through ``StatusLogEntry``;
raw CSV rows, API payloads and ORM rows are converted at the boundary.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Mapping, Optional

import pandas as pd

RUNNING_STATES = frozenset({"running", "active"})
DOWN_STATES = frozenset({"down", "inactive"})

# Operators write "-" when no cause was recorded
UNSPECIFIED_REASON = "-"


class InvalidStatusLogEntry(ValueError):
    """Raised when a raw row lacks the fields required for a log entry."""


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def parse_duration(value: Any) -> int:
    """Parse a duration in minutes; anything unusable becomes 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        minutes = int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(minutes, 0)


def parse_date(value: Any, default: Optional[date] = None) -> date:
    """Parse a calendar date from a date, datetime or string value."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = _clean_text(value)
    if text:
        parsed = pd.to_datetime(text, errors="coerce")
        if not pd.isna(parsed):
            return parsed.date()
    return default or datetime.utcnow().date()


def parse_time(value: Any) -> Optional[time]:
    """Parse a clock time; returns None when absent or unparseable."""
    if isinstance(value, time):
        return value
    if isinstance(value, datetime):
        return value.time()
    text = _clean_text(value)
    if not text:
        return None
    parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.time()


@dataclass(frozen=True)
class StatusLogEntry:
    """One observed state interval for one piece of equipment."""
    equipment_name: str
    status: str
    date: date
    duration_minutes: int = 0
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    reason: Optional[str] = None
    issue: Optional[str] = None
    alert: Optional[str] = None
    comment: Optional[str] = None

    @property
    def state(self) -> Optional[str]:
        """Semantic state: "running", "down", or None for anything else."""
        normalized = self.status.strip().lower()
        if normalized in RUNNING_STATES:
            return "running"
        if normalized in DOWN_STATES:
            return "down"
        return None

    @property
    def has_reason(self) -> bool:
        return bool(self.reason and self.reason.strip() not in ("", UNSPECIFIED_REASON))

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], default_date: Optional[date] = None) -> "StatusLogEntry":
        """
        Build a validated entry from a loosely-typed mapping.

        Accepts snake_case keys (storage/CSV) or camelCase keys (API).
        """
        def pick(*keys: str) -> Any:
            for key in keys:
                if key in raw and raw[key] is not None:
                    return raw[key]
            return None

        name = _clean_text(pick("equipment_name", "equipmentName"))
        status = _clean_text(pick("status"))
        if not name:
            raise InvalidStatusLogEntry("equipment_name is required")
        if not status:
            raise InvalidStatusLogEntry("status is required")

        return cls(
            equipment_name=name,
            status=status,
            date=parse_date(pick("date"), default_date),
            duration_minutes=parse_duration(pick("duration_minutes", "durationMinutes")),
            start_time=parse_time(pick("start_time", "startTime")),
            end_time=parse_time(pick("end_time", "endTime")),
            reason=_clean_text(pick("reason")),
            issue=_clean_text(pick("issue")),
            alert=_clean_text(pick("alert")),
            comment=_clean_text(pick("comment")),
        )

    def to_dict(self) -> dict:
        return {
            "equipment_name": self.equipment_name,
            "status": self.status,
            "date": self.date.isoformat(),
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_minutes": self.duration_minutes,
            "reason": self.reason,
            "issue": self.issue,
            "alert": self.alert,
            "comment": self.comment,
        }
