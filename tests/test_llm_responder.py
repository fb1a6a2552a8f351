"""
Tests for the generative responder. No network calls are made; the
provider clients are replaced with fakes.

Run: python -m pytest tests/test_llm_responder.py -v
"""

import asyncio
from types import SimpleNamespace

import pytest

from oee_copilot.services import llm_responder
from oee_copilot.services.aggregation import summarize
from oee_copilot.services.llm_responder import (
    GenerativeResponseError,
    LLMResponder,
    is_usable_api_key,
    mask_api_key,
    strip_chart_markup,
)

from conftest import make_entry


VALID_KEY = "sk-" + "a" * 30
ANTHROPIC_KEY = "sk-ant-" + "b" * 30


# =====================================================================
# Key handling
# =====================================================================

@pytest.mark.parametrize("key,expected", [
    (None, False),
    ("", False),
    ("sk-short", False),
    ("sk-" + "x" * 17, False),
    ("sk-" + "x" * 18, True),
    ("pk-" + "x" * 30, False),
    (VALID_KEY, True),
])
def test_is_usable_api_key(key, expected):
    assert is_usable_api_key(key) is expected


def test_mask_api_key():
    assert mask_api_key(None) == "NOT_SET"
    assert mask_api_key("sk-tiny") == "***configured***"
    masked = mask_api_key(VALID_KEY)
    assert masked.startswith("sk-aaaa...")
    assert VALID_KEY not in masked


def test_provider_selection():
    assert LLMResponder(None).provider is None
    assert LLMResponder("garbage").enabled is False
    assert LLMResponder(VALID_KEY).provider == "openai"
    assert LLMResponder(VALID_KEY).model == "gpt-4o-mini"
    assert LLMResponder(ANTHROPIC_KEY).provider == "anthropic"


def test_with_api_key_keeps_configuration():
    base = LLMResponder(None, openai_model="gpt-x", max_tokens=123, context_rows=7)
    other = base.with_api_key(VALID_KEY)
    assert other.enabled and not base.enabled
    assert (other.openai_model, other.max_tokens, other.context_rows) == ("gpt-x", 123, 7)


def test_strip_chart_markup():
    assert strip_chart_markup("Answer\n[CHART]{\"type\": \"bar\"}[/CHART]") == "Answer"


# =====================================================================
# Prompt construction
# =====================================================================

def test_context_caps_rows():
    rows = [make_entry(f"M{i}", "running", 10) for i in range(10)]
    responder = LLMResponder(VALID_KEY, context_rows=3)
    context = responder.build_context(summarize(rows), rows)
    assert "Recent Equipment Status (3 records)" in context
    assert "M2:" in context
    assert "M3:" not in context.split("Recent Equipment Status")[1]


def test_context_without_data():
    assert LLMResponder(VALID_KEY).build_context(summarize([]), []) == "No equipment data available."


def test_messages_alternate_and_end_with_question():
    history = [
        {"role": "assistant", "content": "Welcome"},
        {"role": "user", "content": "first"},
        {"role": "user", "content": "second"},
        {"role": "assistant", "content": "answer"},
    ]
    messages = LLMResponder(VALID_KEY)._build_messages("third", history)
    assert messages[0]["role"] == "user"
    assert messages[0]["content"] == "first\nsecond"
    assert [m["role"] for m in messages] == ["user", "assistant", "user"]
    assert messages[-1]["content"] == "third"


# =====================================================================
# Generation
# =====================================================================

class _FakeClient:
    """Stands in for a provider SDK client; records whether it was closed."""

    def __init__(self, **attrs):
        self.__dict__.update(attrs)
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        self.closed = True


class _FakeCompletions:
    def __init__(self, content, error=None):
        self.content = content
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _fake_openai(completions, clients):
    def factory(**kwargs):
        client = _FakeClient(chat=SimpleNamespace(completions=completions))
        clients.append(client)
        return client
    return factory


class TestGenerate:

    def test_disabled_responder_raises(self, scenario_a_rows):
        with pytest.raises(GenerativeResponseError):
            asyncio.run(LLMResponder("").generate("hi", summarize(scenario_a_rows), scenario_a_rows))

    def test_openai_request_parameters(self, monkeypatch, scenario_a_rows):
        completions = _FakeCompletions("Machine A is at **83.3%**.")
        clients = []
        monkeypatch.setattr(llm_responder, "AsyncOpenAI", _fake_openai(completions, clients))

        text = asyncio.run(
            LLMResponder(VALID_KEY).generate("availability?", summarize(scenario_a_rows), scenario_a_rows)
        )

        assert text == "Machine A is at **83.3%**."
        call = completions.calls[0]
        assert call["model"] == "gpt-4o-mini"
        assert call["temperature"] == 0.2
        assert call["max_tokens"] == 800
        assert call["messages"][0]["role"] == "system"
        assert "Machine A" in call["messages"][0]["content"]
        assert call["messages"][-1] == {"role": "user", "content": "availability?"}

    def test_openai_client_closed_after_each_call(self, monkeypatch, scenario_a_rows):
        clients = []
        monkeypatch.setattr(llm_responder, "AsyncOpenAI", _fake_openai(_FakeCompletions("ok"), clients))
        responder = LLMResponder(VALID_KEY)
        for _ in range(2):
            asyncio.run(responder.generate("q", summarize(scenario_a_rows), scenario_a_rows))
        assert len(clients) == 2
        assert all(c.closed for c in clients)

    def test_openai_client_closed_on_error(self, monkeypatch, scenario_a_rows):
        clients = []
        completions = _FakeCompletions(None, error=ConnectionError("reset"))
        monkeypatch.setattr(llm_responder, "AsyncOpenAI", _fake_openai(completions, clients))
        with pytest.raises(GenerativeResponseError):
            asyncio.run(LLMResponder(VALID_KEY).generate("q", summarize(scenario_a_rows), scenario_a_rows))
        assert clients[0].closed

    def test_empty_content_raises(self, monkeypatch, scenario_a_rows):
        monkeypatch.setattr(llm_responder, "AsyncOpenAI", _fake_openai(_FakeCompletions(""), []))
        with pytest.raises(GenerativeResponseError):
            asyncio.run(LLMResponder(VALID_KEY).generate("q", summarize(scenario_a_rows), scenario_a_rows))

    def test_network_error_is_wrapped(self, monkeypatch, scenario_a_rows):
        async def boom(self, system, messages):
            raise ConnectionError("network unreachable")

        monkeypatch.setattr(LLMResponder, "_complete", boom)
        with pytest.raises(GenerativeResponseError, match="network unreachable"):
            asyncio.run(LLMResponder(VALID_KEY).generate("q", summarize(scenario_a_rows), scenario_a_rows))

    def test_anthropic_joins_text_blocks(self, monkeypatch, scenario_a_rows):
        calls = []
        clients = []

        class FakeMessages:
            async def create(self, **kwargs):
                calls.append(kwargs)
                return SimpleNamespace(content=[
                    SimpleNamespace(type="text", text="Belt faults "),
                    SimpleNamespace(type="text", text="dominate."),
                ])

        def factory(**kwargs):
            client = _FakeClient(messages=FakeMessages())
            clients.append(client)
            return client

        monkeypatch.setattr(llm_responder.anthropic, "AsyncAnthropic", factory)
        text = asyncio.run(
            LLMResponder(ANTHROPIC_KEY).generate("why?", summarize(scenario_a_rows), scenario_a_rows)
        )
        assert text == "Belt faults dominate."
        assert calls[0]["model"] == "claude-sonnet-4-20250514"
        assert "EQUIPMENT DATA" in calls[0]["system"]
        assert clients[0].closed
