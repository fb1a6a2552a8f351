"""
Equipment Data API

Status-log ingestion (CSV replace-all import and JSON append) and the
dashboard summary computed from the stored logs.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from .schemas import ImportResponse, LogBatch
from ..core.config import settings
from ..services.aggregation import summarize
from ..services.data_store import DataStore, StoreError, get_data_store
from ..services.ingestion import IngestionError, parse_status_log_csv
from ..services.status_log import InvalidStatusLogEntry, StatusLogEntry
from ..utils import snapshot_to_dict

logger = logging.getLogger("oee_copilot.api.equipment")

router = APIRouter(prefix="/equipment", tags=["equipment"])


@router.post("/import", response_model=ImportResponse)
async def import_status_logs(
    file: UploadFile = File(...),
    store: DataStore = Depends(get_data_store),
):
    """
    Replace all stored status logs with the contents of a CSV file.

    Headers are matched against common aliases; rows without an equipment
    name or status are skipped and reported.
    """
    content = await file.read()
    if len(content) > settings.MAX_UPLOAD_MB * 1024 * 1024:
        raise HTTPException(status_code=413, detail=f"File exceeds {settings.MAX_UPLOAD_MB} MB")

    try:
        result = parse_status_log_csv(content)
    except IngestionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not result.entries:
        raise HTTPException(status_code=400, detail="No valid rows found in file")

    try:
        imported = store.replace_all_logs(result.entries)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Import failed: {e}")

    logger.info("[Equipment] Imported %d rows from %s", imported, file.filename)
    return {
        "imported": imported,
        "skipped": result.skipped,
        "equipment": result.equipment,
        "columns": result.columns,
    }


@router.post("/logs")
async def append_status_logs(body: LogBatch, store: DataStore = Depends(get_data_store)):
    """Append status-log entries posted as JSON objects."""
    entries = []
    skipped = 0
    for raw in body.entries:
        try:
            entries.append(StatusLogEntry.from_mapping(raw))
        except InvalidStatusLogEntry:
            skipped += 1

    if not entries:
        raise HTTPException(status_code=400, detail="No valid entries provided")

    try:
        inserted = store.insert_logs(entries)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Insert failed: {e}")
    return {"inserted": inserted, "skipped": skipped}


@router.get("/summary")
async def equipment_summary(store: DataStore = Depends(get_data_store)) -> Dict[str, Any]:
    """Availability, ranking and failure breakdown over the stored logs."""
    try:
        rows = store.query_recent_logs(limit=settings.LOG_FETCH_LIMIT)
        equipment = store.list_equipment()
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Storage error: {e}")

    summary = snapshot_to_dict(summarize(rows))
    summary["equipment"] = equipment
    return summary
