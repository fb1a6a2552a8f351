"""
Chat Sessions API

Session CRUD for the sidebar. Listing groups sessions under recency
labels so the client can render them without date arithmetic.
"""

from datetime import datetime
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException

from .schemas import MessageResponse, SessionCreate, SessionRename, SessionResponse
from ..services.data_store import DataStore, StoreError, get_data_store
from ..utils import recency_label

router = APIRouter(prefix="/chat/sessions", tags=["sessions"])


def _store_failure(e: StoreError) -> HTTPException:
    return HTTPException(status_code=500, detail=f"Storage error: {e}")


@router.get("")
async def list_sessions(store: DataStore = Depends(get_data_store)):
    """All sessions, newest first, grouped by how recently they were updated."""
    try:
        sessions = store.list_sessions()
    except StoreError as e:
        raise _store_failure(e)

    now = datetime.utcnow()
    groups: List[Dict[str, Any]] = []
    for s in sessions:
        updated = datetime.fromisoformat(s["updated_at"]) if s.get("updated_at") else now
        label = recency_label(updated, now)
        if not groups or groups[-1]["label"] != label:
            groups.append({"label": label, "sessions": []})
        groups[-1]["sessions"].append(s)

    return {"groups": groups, "total": len(sessions)}


@router.post("", response_model=SessionResponse)
async def create_session(body: SessionCreate, store: DataStore = Depends(get_data_store)):
    try:
        return store.create_session(body.title or "New Chat")
    except StoreError as e:
        raise _store_failure(e)


@router.patch("/{session_id}", response_model=SessionResponse)
async def rename_session(
    session_id: str,
    body: SessionRename,
    store: DataStore = Depends(get_data_store),
):
    title = body.title.strip()
    if not title:
        raise HTTPException(status_code=400, detail="Title must not be blank")
    try:
        session = store.rename_session(session_id, title)
    except StoreError as e:
        raise _store_failure(e)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


@router.delete("/{session_id}")
async def delete_session(session_id: str, store: DataStore = Depends(get_data_store)):
    """Delete a session and its messages."""
    try:
        deleted = store.delete_session(session_id)
    except StoreError as e:
        raise _store_failure(e)
    if not deleted:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"status": "deleted", "id": session_id}


@router.get("/{session_id}/messages", response_model=List[MessageResponse])
async def get_messages(session_id: str, store: DataStore = Depends(get_data_store)):
    """Conversation history, oldest first."""
    try:
        if not store.get_session(session_id):
            raise HTTPException(status_code=404, detail="Session not found")
        return store.query_messages(session_id)
    except StoreError as e:
        raise _store_failure(e)
