"""
OEE Chat Service

One linear pipeline per user message:

    persist user turn -> fetch rows -> aggregate -> classify topic
    -> respond (LLM, else templates) -> optional chart -> persist reply

Answers come from a hosted model when a usable API key is configured and
from deterministic templates otherwise. A failed generative call always
degrades to the template answer; the user gets text unless their own
message could not be stored.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Optional

from ..core.config import settings
from .aggregation import OEESnapshot, summarize
from .chart_builder import ChartSpec, build_chart
from .data_store import DataStore, StoreError, get_data_store
from .llm_responder import LLMResponder
from .response_templates import render_response
from .status_log import StatusLogEntry
from .topic_classifier import BaseTopicClassifier, Topic, default_classifier

logger = logging.getLogger("oee_copilot.chat_service")

# Assistant turns consulted when resolving follow-up questions
FOLLOW_UP_CONTEXT_TURNS = 2


class ChatRequestError(ValueError):
    """The request is missing its message or session id."""


class ChatPipelineError(RuntimeError):
    """The pipeline failed before any answer could be produced."""


@dataclass
class ChatResult:
    response: str
    topic: Topic
    ai_powered: bool
    mode: str  # "generative", "template" or "template_fallback"
    chart: Optional[ChartSpec] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "response": self.response,
            "topic": self.topic.value,
            "aiPowered": self.ai_powered,
            "mode": self.mode,
        }
        if self.chart is not None:
            out["chart"] = self.chart.to_dict()
        return out


class ChatService:
    """
    Conversational OEE analysis over equipment status logs.

    The generative credential is part of ``responder``; nothing here reads
    the environment.
    """

    def __init__(
        self,
        store: DataStore,
        responder: Optional[LLMResponder] = None,
        classifier: Optional[BaseTopicClassifier] = None,
        fetch_limit: int = 10000,
        history_limit: int = 10,
    ):
        self.store = store
        self.responder = responder or LLMResponder(None)
        self.classifier = classifier or default_classifier
        self.fetch_limit = fetch_limit
        self.history_limit = history_limit

    # ── Pipeline steps ──────────────────────────────────────────────

    def _fetch_rows(self) -> List[StatusLogEntry]:
        try:
            return self.store.query_recent_logs(limit=self.fetch_limit)
        except StoreError as e:
            logger.warning("[ChatService] Could not fetch equipment logs, answering without data: %s", e)
            return []

    def _fetch_history(self, session_id: str) -> List[Dict]:
        try:
            return self.store.query_recent_messages(session_id, limit=self.history_limit)
        except StoreError as e:
            logger.warning("[ChatService] Could not fetch conversation context: %s", e)
            return []

    @staticmethod
    def _recent_assistant_text(history: List[Dict]) -> str:
        replies = [m["content"] for m in history if m.get("role") == "assistant"]
        return " ".join(replies[-FOLLOW_UP_CONTEXT_TURNS:])

    def _responder_for(self, api_key_override: Optional[str]) -> LLMResponder:
        if api_key_override:
            return self.responder.with_api_key(api_key_override)
        return self.responder

    async def _respond(
        self,
        responder: LLMResponder,
        message: str,
        topic: Topic,
        snapshot: OEESnapshot,
        rows: List[StatusLogEntry],
        history: List[Dict],
    ) -> ChatResult:
        if not responder.enabled:
            return ChatResult(render_response(topic, snapshot), topic, False, "template")

        try:
            text = await responder.generate(message, snapshot, rows, history)
            return ChatResult(text, topic, True, "generative")
        except Exception as e:
            logger.warning("[ChatService] Generative response failed, using templates: %s", e)
            return ChatResult(render_response(topic, snapshot), topic, False, "template_fallback")

    # ── Main chat method ────────────────────────────────────────────

    async def chat(
        self,
        session_id: str,
        message: str,
        api_key_override: Optional[str] = None,
    ) -> ChatResult:
        """Answer one user message and record both turns."""
        if not message or not message.strip() or not session_id or not session_id.strip():
            raise ChatRequestError("message and sessionId are required")

        # Persist user message
        try:
            self.store.ensure_session(session_id, message)
            self.store.append_message(session_id, "user", message)
        except StoreError as e:
            raise ChatPipelineError("Failed to save user message") from e

        rows = self._fetch_rows()
        history = self._fetch_history(session_id)
        snapshot = summarize(rows)
        topic = self.classifier.classify(message, self._recent_assistant_text(history))
        logger.info("[ChatService] session=%s topic=%s rows=%d", session_id, topic.value, len(rows))

        result = await self._respond(
            self._responder_for(api_key_override), message, topic, snapshot, rows, history
        )
        result.chart = build_chart(message, topic, snapshot)

        # Persist assistant response
        try:
            self.store.append_message(session_id, "assistant", result.response)
            self.store.touch_session(session_id)
        except StoreError as e:
            logger.error("[ChatService] Could not save assistant reply for %s: %s", session_id, e)

        return result


@lru_cache()
def get_chat_service() -> ChatService:
    responder = LLMResponder(
        settings.generative_api_key,
        openai_model=settings.OPENAI_MODEL,
        anthropic_model=settings.ANTHROPIC_MODEL,
        timeout=settings.LLM_TIMEOUT_SECONDS,
        max_tokens=settings.LLM_MAX_TOKENS,
        temperature=settings.LLM_TEMPERATURE,
        context_rows=settings.LLM_CONTEXT_ROWS,
    )
    return ChatService(
        get_data_store(),
        responder=responder,
        fetch_limit=settings.LOG_FETCH_LIMIT,
        history_limit=settings.HISTORY_LIMIT,
    )
