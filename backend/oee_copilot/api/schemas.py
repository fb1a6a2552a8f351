"""
API Request/Response Schemas

Pydantic models used across API endpoints for request validation
and response serialization.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


# ─── Chat Schemas ────────────────────────────────────────────────────

class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Optional here so a missing value is reported as 400, not a schema error
    message: Optional[str] = None
    session_id: Optional[str] = Field(None, alias="sessionId")
    api_key_override: Optional[str] = Field(None, alias="apiKeyOverride")


# ─── Session Schemas ─────────────────────────────────────────────────

class SessionCreate(BaseModel):
    title: Optional[str] = None


class SessionRename(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)


class SessionResponse(BaseModel):
    id: str
    title: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class MessageResponse(BaseModel):
    id: str
    session_id: str
    role: str
    content: str
    timestamp: Optional[str] = None


# ─── Equipment Schemas ───────────────────────────────────────────────

class LogBatch(BaseModel):
    entries: List[Dict[str, Any]]


class ImportResponse(BaseModel):
    imported: int
    skipped: int
    equipment: List[str]
    columns: Dict[str, str] = {}
