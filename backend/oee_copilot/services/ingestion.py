"""
Equipment Log Ingestion

Parses CSV exports of equipment status logs into validated
``StatusLogEntry`` records. Column names are normalised and matched
against a table of common aliases so exports from different MES tools
import without manual mapping.
"""

import io
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Union

import pandas as pd

from .status_log import InvalidStatusLogEntry, StatusLogEntry

logger = logging.getLogger("oee_copilot.ingestion")

# Canonical field -> accepted (normalised) column names, in preference order
COLUMN_ALIASES: Dict[str, List[str]] = {
    "equipment_name": ["equipment_name", "equipment", "machine", "machine_name", "equipment_id"],
    "status": ["status", "state", "status_code"],
    "date": ["date", "timestamp", "time", "datetime"],
    "start_time": ["start_time", "start"],
    "end_time": ["end_time", "end"],
    "duration_minutes": ["duration_minutes", "duration", "downtime_duration"],
    "reason": ["reason", "cause", "downtime_reason"],
    "issue": ["issue", "problem", "description", "fault_description"],
    "alert": ["alert", "alarm", "notification", "alert_type"],
    "comment": ["comment", "comments", "note", "notes"],
}


class IngestionError(ValueError):
    """The uploaded file could not be parsed as an equipment log."""


@dataclass
class IngestionResult:
    entries: List[StatusLogEntry] = field(default_factory=list)
    skipped: int = 0
    columns: Dict[str, str] = field(default_factory=dict)  # canonical -> source column

    @property
    def equipment(self) -> List[str]:
        return sorted({e.equipment_name for e in self.entries})


def normalize_header(header: str) -> str:
    """``"Equipment Name"`` -> ``"equipment_name"``."""
    return re.sub(r"[^a-z0-9]", "_", str(header).strip().strip("'\"").lower())


def map_columns(headers: List[str]) -> Dict[str, str]:
    """Resolve each canonical field to the first matching source column."""
    normalized = {normalize_header(h): h for h in headers}
    mapping: Dict[str, str] = {}
    for canonical, aliases in COLUMN_ALIASES.items():
        for alias in aliases:
            if alias in normalized and normalized[alias] not in mapping.values():
                mapping[canonical] = normalized[alias]
                break
    return mapping


def parse_status_log_csv(
    content: Union[bytes, str],
    import_date: Optional[date] = None,
) -> IngestionResult:
    """
    Parse CSV content into log entries.

    Rows without an equipment name or status are skipped and counted.
    Dates that cannot be parsed fall back to ``import_date`` (today).
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8-sig", errors="replace")
    if not content.strip():
        raise IngestionError("The file is empty")

    try:
        df = pd.read_csv(
            io.StringIO(content),
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
            skip_blank_lines=True,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise IngestionError(f"Could not parse CSV: {e}") from e

    mapping = map_columns(list(df.columns))
    missing = [f for f in ("equipment_name", "status") if f not in mapping]
    if missing:
        raise IngestionError(f"Missing required column(s): {', '.join(missing)}")

    import_date = import_date or datetime.utcnow().date()
    result = IngestionResult(columns=mapping)
    for raw in df.to_dict("records"):
        record = {canonical: raw.get(column) for canonical, column in mapping.items()}
        try:
            result.entries.append(StatusLogEntry.from_mapping(record, default_date=import_date))
        except InvalidStatusLogEntry:
            result.skipped += 1

    logger.info("[Ingestion] Parsed %d rows (%d skipped) using columns %s",
                len(result.entries), result.skipped, mapping)
    return result
