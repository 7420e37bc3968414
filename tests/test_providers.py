"""Tests for the provider registry and the request formatter."""

import pytest

from ledger_assistant.errors import InvalidConfig, UnknownProvider
from ledger_assistant.models.gateway import (
    AuthScheme,
    Conversation,
    GatewayConfig,
    ImageAttachment,
    Role,
)
from ledger_assistant.providers import (
    format_request,
    format_vision_request,
    list_profiles,
    profile,
)

from conftest import PNG_BASE64


SYSTEM = "You are a financial advisor."


def config_for(provider_id: str, **overrides) -> GatewayConfig:
    values = dict(
        provider=provider_id,
        api_key="key-123",
        model=profile(provider_id).default_model,
        enabled=True,
    )
    values.update(overrides)
    return GatewayConfig(**values)


class TestRegistry:
    """Tests for provider lookup."""

    def test_all_providers_registered(self):
        ids = [p.provider_id for p in list_profiles()]
        assert ids == ["deepseek", "moonshot", "openai", "azure", "anthropic", "google", "zhipu"]

    def test_unknown_provider(self):
        with pytest.raises(UnknownProvider) as exc_info:
            profile("nope")
        assert exc_info.value.provider_id == "nope"

    @pytest.mark.parametrize("provider_id", ["deepseek", "moonshot", "openai", "zhipu"])
    def test_bearer_providers(self, provider_id):
        assert profile(provider_id).auth_scheme == AuthScheme.BEARER_HEADER

    def test_default_model_is_selectable(self):
        for p in list_profiles():
            assert p.default_model in p.selectable_models

    def test_capabilities(self):
        assert not profile("deepseek").supports_vision
        assert not profile("google").supports_streaming
        assert not profile("anthropic").supports_system_role
        assert profile("openai").supports_vision


class TestFormatRequest:
    """Tests for provider-specific request shapes."""

    def test_openai_family_body(self):
        request = format_request(
            profile("deepseek"),
            config_for("deepseek"),
            Conversation.from_user_text("How much did I spend?"),
            SYSTEM,
            want_streaming=True,
        )

        assert request.url == "https://api.deepseek.com/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer key-123"
        assert request.headers["Accept"] == "text/event-stream"
        assert request.stream is True
        assert request.body == {
            "model": "deepseek-chat",
            "messages": [
                {"role": "system", "content": SYSTEM},
                {"role": "user", "content": "How much did I spend?"},
            ],
            "max_tokens": 1024,
            "stream": True,
        }

    def test_same_inputs_same_bytes(self):
        args = (
            profile("openai"),
            config_for("openai"),
            Conversation.from_user_text("hi"),
            SYSTEM,
        )
        first = format_request(*args, want_streaming=False)
        second = format_request(*args, want_streaming=False)

        assert first.url == second.url
        assert first.headers == second.headers
        assert first.encoded_body() == second.encoded_body()

    def test_anthropic_merges_system_prompt_into_one_user_turn(self):
        conversation = Conversation.from_user_text("first")
        conversation.append(Role.ASSISTANT, "answer")
        conversation.append(Role.USER, "second")

        request = format_request(
            profile("anthropic"),
            config_for("anthropic"),
            conversation,
            SYSTEM,
            want_streaming=False,
        )

        assert request.headers["x-api-key"] == "key-123"
        assert request.headers["anthropic-version"] == "2023-06-01"
        assert "Authorization" not in request.headers
        assert request.body["messages"] == [
            {"role": "user", "content": f"{SYSTEM}\n\nsecond"},
        ]
        assert request.body["stream"] is False

    @pytest.mark.parametrize("provider_id", ["deepseek", "anthropic"])
    def test_conversation_without_user_turn(self, provider_id):
        conversation = Conversation()
        conversation.append(Role.ASSISTANT, "How can I help?")

        with pytest.raises(ValueError):
            format_request(
                profile(provider_id),
                config_for(provider_id),
                conversation,
                SYSTEM,
                want_streaming=False,
            )

    def test_google_uses_query_key_and_never_streams(self):
        request = format_request(
            profile("google"),
            config_for("google"),
            Conversation.from_user_text("hello"),
            SYSTEM,
            want_streaming=True,
        )

        assert request.url == (
            "https://generativelanguage.googleapis.com/v1beta/models/"
            "gemini-1.5-flash:generateContent?key=key-123"
        )
        assert "key-123" not in request.log_url
        assert "Authorization" not in request.headers
        assert request.stream is False
        assert "stream" not in request.body
        assert request.body["contents"] == [
            {"role": "user", "parts": [{"text": f"{SYSTEM}\n\nhello"}]},
        ]
        assert request.body["generationConfig"] == {"maxOutputTokens": 1024}

    def test_azure_endpoint_from_base_url(self):
        request = format_request(
            profile("azure"),
            config_for("azure", base_url="https://my-resource.openai.azure.com/"),
            Conversation.from_user_text("hello"),
            SYSTEM,
            want_streaming=False,
        )

        assert request.url == (
            "https://my-resource.openai.azure.com/openai/deployments/"
            "gpt-4o-mini/chat/completions?api-version=2023-05-15"
        )
        assert request.headers["api-key"] == "key-123"

    def test_azure_without_base_url(self):
        with pytest.raises(InvalidConfig):
            format_request(
                profile("azure"),
                config_for("azure"),
                Conversation.from_user_text("hello"),
                SYSTEM,
                want_streaming=False,
            )

    def test_empty_credential(self):
        with pytest.raises(InvalidConfig):
            format_request(
                profile("deepseek"),
                config_for("deepseek", api_key=""),
                Conversation.from_user_text("hi"),
                SYSTEM,
                want_streaming=False,
            )

    def test_unselectable_model(self):
        with pytest.raises(InvalidConfig):
            format_request(
                profile("deepseek"),
                config_for("deepseek", model="gpt-4o"),
                Conversation.from_user_text("hi"),
                SYSTEM,
                want_streaming=False,
            )

    def test_images_for_text_only_provider(self):
        conversation = Conversation.from_user_text(
            "read this", [ImageAttachment(data=PNG_BASE64, mime_type="image/png")]
        )
        with pytest.raises(InvalidConfig):
            format_request(
                profile("deepseek"),
                config_for("deepseek"),
                conversation,
                SYSTEM,
                want_streaming=False,
            )

    def test_openai_image_parts(self):
        conversation = Conversation.from_user_text(
            "read this", [ImageAttachment(data=PNG_BASE64, mime_type="image/png")]
        )
        request = format_request(
            profile("openai"), config_for("openai"), conversation, "", want_streaming=False
        )

        content = request.body["messages"][0]["content"]
        assert content[0] == {
            "type": "image_url",
            "image_url": {"url": f"data:image/png;base64,{PNG_BASE64}"},
        }
        assert content[1] == {"type": "text", "text": "read this"}


class TestFormatVisionRequest:
    """Tests for single-turn recognition requests."""

    def test_zhipu_sends_bare_base64(self):
        request = format_vision_request(
            profile("zhipu"),
            config_for("zhipu"),
            ImageAttachment(data=PNG_BASE64, mime_type="image/png"),
            "Transcribe",
        )

        assert request.url == "https://open.bigmodel.cn/api/paas/v4/chat/completions"
        assert request.stream is False
        content = request.body["messages"][0]["content"]
        assert content[0]["image_url"]["url"] == PNG_BASE64
        assert content[1]["text"] == "Transcribe"

    def test_anthropic_image_source(self):
        request = format_vision_request(
            profile("anthropic"),
            config_for("anthropic"),
            ImageAttachment(data=PNG_BASE64, mime_type="image/png"),
            "Transcribe",
        )

        image_part = request.body["messages"][0]["content"][0]
        assert image_part["source"] == {
            "type": "base64",
            "media_type": "image/png",
            "data": PNG_BASE64,
        }

    def test_text_only_provider_rejected(self):
        with pytest.raises(InvalidConfig):
            format_vision_request(
                profile("moonshot"),
                config_for("moonshot"),
                ImageAttachment(data=PNG_BASE64),
                "Transcribe",
            )
