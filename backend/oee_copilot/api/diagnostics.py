"""
Diagnostics API

Operator checks for the two things that most often make answers look
wrong: truncated log queries and a missing or malformed model API key.
"""

from fastapi import APIRouter, Depends, HTTPException

from ..services.chat_service import ChatService, get_chat_service
from ..services.data_store import DEFAULT_PAGE_SIZE, DataStore, StoreError, get_data_store
from ..services.llm_responder import is_usable_api_key, mask_api_key

router = APIRouter(prefix="/diagnostics", tags=["diagnostics"])


@router.get("/records")
async def record_counts(store: DataStore = Depends(get_data_store)):
    """Compare the true row count with what a default and an explicit query return."""
    try:
        total = store.count_logs()
        default_rows = len(store.query_recent_logs())
        explicit_rows = len(store.query_logs_range(0, total - 1)) if total else 0
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Storage error: {e}")

    return {
        "totalCount": total,
        "defaultQueryRows": default_rows,
        "explicitRangeRows": explicit_rows,
        "defaultPageSize": DEFAULT_PAGE_SIZE,
        "hasLimitIssue": default_rows < total,
    }


@router.get("/ai")
async def ai_status(service: ChatService = Depends(get_chat_service)):
    """Whether generative answers are available. The key is only ever shown masked."""
    responder = service.responder
    return {
        "configured": bool(responder.api_key),
        "maskedKey": mask_api_key(responder.api_key),
        "valid": is_usable_api_key(responder.api_key),
        "provider": responder.provider,
        "model": responder.model,
        "mode": "generative" if responder.enabled else "template",
    }
