"""
Generative Responses

Sends the user's question, a compact view of the aggregates and a bounded
slice of recent status-log rows to a hosted chat-completion model.

The credential is injected at construction. Keys prefixed ``sk-ant-`` go to
Anthropic's Messages API, other ``sk-`` keys to OpenAI Chat Completions.
Every failure surfaces as ``GenerativeResponseError`` so the caller can fall
back to template responses.
"""

import logging
import re
from typing import Dict, List, Optional, Sequence

import anthropic
from openai import AsyncOpenAI

from .aggregation import WORLD_CLASS_OEE, OEESnapshot
from .status_log import StatusLogEntry

logger = logging.getLogger("oee_copilot.llm_responder")

API_KEY_PREFIX = "sk-"
ANTHROPIC_KEY_PREFIX = "sk-ant-"
MIN_API_KEY_LENGTH = 21

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-20250514"

# Models sometimes append a chart suggestion block; the chart builder owns charts
_CHART_MARKUP_RE = re.compile(r"\[CHART\].*?\[/CHART\]", re.DOTALL | re.IGNORECASE)


class GenerativeResponseError(RuntimeError):
    """The generative call failed or returned nothing usable."""


def is_usable_api_key(api_key: Optional[str]) -> bool:
    """Non-empty, carries the ``sk-`` prefix and is long enough to be real."""
    return bool(
        api_key
        and api_key.startswith(API_KEY_PREFIX)
        and len(api_key) >= MIN_API_KEY_LENGTH
    )


def mask_api_key(api_key: Optional[str]) -> str:
    if not api_key:
        return "NOT_SET"
    return api_key[:7] + "..." + api_key[-4:] if len(api_key) > 12 else "***configured***"


def strip_chart_markup(text: str) -> str:
    return _CHART_MARKUP_RE.sub("", text or "").strip()


class LLMResponder:
    """Chat-completion client with OEE context building."""

    def __init__(
        self,
        api_key: Optional[str],
        openai_model: str = DEFAULT_OPENAI_MODEL,
        anthropic_model: str = DEFAULT_ANTHROPIC_MODEL,
        timeout: float = 30.0,
        max_tokens: int = 800,
        temperature: float = 0.2,
        context_rows: int = 50,
    ):
        self.api_key = api_key or ""
        self.openai_model = openai_model
        self.anthropic_model = anthropic_model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.context_rows = context_rows

    @property
    def enabled(self) -> bool:
        return is_usable_api_key(self.api_key)

    @property
    def provider(self) -> Optional[str]:
        if not self.enabled:
            return None
        return "anthropic" if self.api_key.startswith(ANTHROPIC_KEY_PREFIX) else "openai"

    @property
    def model(self) -> Optional[str]:
        if self.provider == "anthropic":
            return self.anthropic_model
        if self.provider == "openai":
            return self.openai_model
        return None

    def with_api_key(self, api_key: str) -> "LLMResponder":
        """Same configuration, different credential."""
        return LLMResponder(
            api_key,
            openai_model=self.openai_model,
            anthropic_model=self.anthropic_model,
            timeout=self.timeout,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            context_rows=self.context_rows,
        )

    # ── Prompt construction ─────────────────────────────────────────

    def _system_prompt(self) -> str:
        return (
            "You are an expert OEE (Overall Equipment Effectiveness) Manufacturing "
            "Copilot. You help plant engineers understand equipment availability, "
            "downtime and its causes.\n\n"
            "Guidelines:\n"
            "- Use the equipment data provided; do not invent figures.\n"
            f"- Compare against the world-class benchmark of {WORLD_CLASS_OEE:.0f}%.\n"
            "- Give specific, actionable recommendations and next steps.\n"
            "- Be concise. Use **bold** for key values and bullet points for lists.\n"
            "- If the data cannot answer the question, say so clearly.\n"
        )

    def build_context(self, snapshot: OEESnapshot, rows: Sequence[StatusLogEntry]) -> str:
        """Aggregates plus at most ``context_rows`` recent rows, one line each."""
        if not snapshot.has_data:
            return "No equipment data available."

        overall = snapshot.overall
        lines = [
            f"Records: {snapshot.total_records}, equipment: {snapshot.equipment_count}",
            f"Overall availability: {overall.availability_pct:.1f}% "
            f"(runtime {overall.runtime_minutes} min, downtime {overall.downtime_minutes} min)",
            "",
            "Availability by equipment (lowest first):",
        ]
        for eq in snapshot.ranking[:10]:
            lines.append(
                f"- {eq.name}: {eq.availability_pct:.1f}%, "
                f"{eq.downtime_minutes} min down, {eq.incident_count} incidents"
            )
        if snapshot.failures:
            lines += ["", "Failure reasons (downtime minutes):"]
            for f in list(snapshot.failures.values())[:10]:
                lines.append(f"- {f.reason}: {f.minutes} min ({f.count}x)")

        recent = list(rows)[: self.context_rows]
        lines += ["", f"Recent Equipment Status ({len(recent)} records):"]
        for r in recent:
            reason = f", Reason: {r.reason}" if r.reason else ""
            lines.append(
                f"- {r.equipment_name}: {r.status} on {r.date.isoformat()} "
                f"({r.duration_minutes}min{reason})"
            )
        return "\n".join(lines)

    def _build_messages(self, question: str, history: Sequence[Dict]) -> List[Dict[str, str]]:
        messages = [
            {"role": m["role"], "content": m["content"]}
            for m in history
            if m.get("role") in ("user", "assistant")
        ]

        # Make sure the last message is the current user message
        if not messages or messages[-1]["content"] != question:
            messages.append({"role": "user", "content": question})

        # Messages must alternate and start with the user
        clean: List[Dict[str, str]] = []
        for msg in messages:
            if clean and clean[-1]["role"] == msg["role"]:
                clean[-1]["content"] += "\n" + msg["content"]
            else:
                clean.append(dict(msg))
        if clean and clean[0]["role"] != "user":
            clean = clean[1:]
        return clean or [{"role": "user", "content": question}]

    # ── Generation ──────────────────────────────────────────────────

    async def generate(
        self,
        question: str,
        snapshot: OEESnapshot,
        rows: Sequence[StatusLogEntry],
        history: Sequence[Dict] = (),
    ) -> str:
        """Return the model's answer, or raise ``GenerativeResponseError``."""
        if not self.enabled:
            raise GenerativeResponseError("no usable API key configured")

        system = (
            self._system_prompt()
            + "\n\n--- EQUIPMENT DATA ---\n"
            + self.build_context(snapshot, rows)
        )
        messages = self._build_messages(question, history)

        try:
            text = await self._complete(system, messages)
        except GenerativeResponseError:
            raise
        except Exception as e:
            raise GenerativeResponseError(f"{self.provider} request failed: {e}") from e

        text = strip_chart_markup(text)
        if not text:
            raise GenerativeResponseError("model returned an empty response")
        return text

    async def _complete(self, system: str, messages: List[Dict[str, str]]) -> str:
        if self.provider == "anthropic":
            return await self._complete_anthropic(system, messages)
        return await self._complete_openai(system, messages)

    async def _complete_openai(self, system: str, messages: List[Dict[str, str]]) -> str:
        async with AsyncOpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0) as client:
            resp = await client.chat.completions.create(
                model=self.openai_model,
                messages=[{"role": "system", "content": system}] + messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        if not resp.choices or resp.choices[0].message is None:
            raise GenerativeResponseError("completion payload has no choices")
        content = resp.choices[0].message.content
        if not content:
            raise GenerativeResponseError("completion payload has no content")
        return content

    async def _complete_anthropic(self, system: str, messages: List[Dict[str, str]]) -> str:
        async with anthropic.AsyncAnthropic(api_key=self.api_key, timeout=self.timeout, max_retries=0) as client:
            resp = await client.messages.create(
                model=self.anthropic_model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=system,
                messages=messages,
            )
        parts = [block.text for block in (resp.content or []) if getattr(block, "type", "") == "text"]
        if not parts:
            raise GenerativeResponseError("message payload has no text content")
        return "".join(parts)
