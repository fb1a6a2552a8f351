"""
Copilot Chat API

Single conversational endpoint. Each POST answers one user message in a
session and records both turns; the response carries the text, the topic
it was classified under and, when requested, a chart view-model.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import JSONResponse

from .schemas import ChatRequest
from ..services.chat_service import (
    ChatPipelineError,
    ChatRequestError,
    ChatService,
    get_chat_service,
)

logger = logging.getLogger("oee_copilot.api.chat")

router = APIRouter(prefix="/chat", tags=["chat"])


@router.options("")
async def chat_preflight():
    """CORS preflight; the middleware adds the headers."""
    return Response(status_code=200)


@router.post("")
async def send_message(
    body: ChatRequest,
    service: ChatService = Depends(get_chat_service),
):
    """Answer one message and return the response, topic and optional chart."""
    try:
        result = await service.chat(
            session_id=body.session_id or "",
            message=body.message or "",
            api_key_override=body.api_key_override,
        )
    except ChatRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ChatPipelineError as e:
        logger.error("[Chat] Request failed for session %s: %s", body.session_id, e)
        return JSONResponse(status_code=500, content={"error": "Failed to process chat request"})

    return result.to_dict()
