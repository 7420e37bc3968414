"""Tests for ConversationalSession."""

import asyncio

import pytest

from ledger_assistant.agents import ConversationalSession
from ledger_assistant.audit import AuditLogger
from ledger_assistant.errors import CallbackError, InvalidConfig, ProviderError
from ledger_assistant.models.gateway import Conversation, GatewayConfig
from ledger_assistant.providers import profile
from ledger_assistant.storage import InMemoryAuditStorage

from conftest import MockProvider, openai_chunk, openai_envelope


class UsageCounter:
    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1


def make_session(provider: MockProvider, config: GatewayConfig, usage=None, audit=None):
    return ConversationalSession(
        profile=profile(config.provider),
        config=config,
        transport=provider.transport(),
        usage_recorder=usage,
        system_prompt="Be brief.",
        audit_logger=audit,
    )


class TestConfigGate:
    """Unusable configuration never reaches the network."""

    def test_disabled(self, provider, deepseek_config):
        config = deepseek_config.model_copy(update={"enabled": False})
        session = make_session(provider, config)

        with pytest.raises(InvalidConfig):
            asyncio.run(session.ask(Conversation.from_user_text("hi")))
        assert provider.requests == []

    def test_missing_key(self, provider, deepseek_config):
        config = deepseek_config.model_copy(update={"api_key": ""})
        session = make_session(provider, config)

        with pytest.raises(InvalidConfig):
            asyncio.run(session.ask(Conversation.from_user_text("hi")))
        assert provider.requests == []


class TestAsk:
    """Tests for streamed and non-streamed calls."""

    def test_non_streaming_without_callback(self, provider, deepseek_config):
        provider.respond_json(openai_envelope("Hello there"))
        usage = UsageCounter()
        session = make_session(provider, deepseek_config, usage)

        answer = asyncio.run(session.ask(Conversation.from_user_text("hi")))

        assert answer == "Hello there"
        assert provider.body()["stream"] is False
        assert provider.body()["messages"][0] == {"role": "system", "content": "Be brief."}
        assert usage.calls == 1

    def test_streaming_concatenation_matches_final_text(self, provider, deepseek_config):
        provider.respond_stream(
            openai_chunk(role="assistant"),
            openai_chunk("Save "),
            openai_chunk("20% "),
            openai_chunk("of income."),
        )
        usage = UsageCounter()
        received = []
        session = make_session(provider, deepseek_config, usage)

        answer = asyncio.run(session.ask(
            Conversation.from_user_text("tips?"),
            lambda delta, text: received.append((delta, text)),
        ))

        assert provider.body()["stream"] is True
        assert "".join(delta for delta, _ in received) == answer
        assert received[-1][1] == answer == "Save 20% of income."
        assert [text for _, text in received] == ["Save ", "Save 20% ", "Save 20% of income."]
        assert usage.calls == 1

    def test_streaming_request_to_non_streaming_provider(self, provider):
        config = GatewayConfig(
            provider="google", api_key="g-key", model="gemini-1.5-flash", enabled=True
        )
        provider.respond_json({"candidates": [{"content": {"parts": [{"text": "Hi"}]}}]})
        received = []
        session = make_session(provider, config)

        answer = asyncio.run(session.ask(
            Conversation.from_user_text("hi"),
            lambda delta, text: received.append(delta),
        ))

        assert answer == "Hi"
        assert received == []

    def test_callback_error_aborts(self, provider, deepseek_config):
        provider.respond_stream(openai_chunk("one"), openai_chunk("two"))
        usage = UsageCounter()
        received = []

        def on_fragment(delta, text):
            received.append(delta)
            raise RuntimeError("UI is gone")

        session = make_session(provider, deepseek_config, usage)
        with pytest.raises(CallbackError) as exc_info:
            asyncio.run(session.ask(Conversation.from_user_text("hi"), on_fragment))

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert received == ["one"]
        assert usage.calls == 0

    def test_provider_error_records_no_usage(self, provider, deepseek_config):
        provider.respond_json({"error": {"message": "Insufficient balance"}}, status=402)
        usage = UsageCounter()
        session = make_session(provider, deepseek_config, usage)

        with pytest.raises(ProviderError) as exc_info:
            asyncio.run(session.ask(Conversation.from_user_text("hi")))

        assert exc_info.value.message == "Insufficient balance"
        assert usage.calls == 0

    def test_streamed_error_envelope_records_no_usage(self, provider, deepseek_config):
        provider.respond_json({"error": {"message": "quota exceeded"}})
        usage = UsageCounter()
        received = []
        session = make_session(provider, deepseek_config, usage)

        with pytest.raises(ProviderError) as exc_info:
            asyncio.run(session.ask(
                Conversation.from_user_text("hi"),
                lambda delta, text: received.append(delta),
            ))

        assert exc_info.value.message == "quota exceeded"
        assert received == []
        assert usage.calls == 0

    def test_audit_events(self, provider, deepseek_config):
        provider.respond_json(openai_envelope("ok"))
        sink = InMemoryAuditStorage()
        session = make_session(provider, deepseek_config, audit=AuditLogger(sink))

        asyncio.run(session.ask(Conversation.from_user_text("hi")))

        assert [e.event_type.value for e in sink.events] == ["call_started", "call_completed"]
        assert all("sk-test" not in str(e.to_log_dict()) for e in sink.events)
