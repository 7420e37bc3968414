"""Tests for vision routing."""

import asyncio

import pytest

from ledger_assistant.agents import RECOGNITION_PROMPT, VisionRouter
from ledger_assistant.errors import VisionNotConfigured
from ledger_assistant.models.gateway import GatewayConfig, VisionConfig

from conftest import PNG_BASE64, MockProvider, openai_envelope


def vision_config(**overrides) -> VisionConfig:
    values = dict(provider="zhipu", api_key="zp-key", model="glm-4v", enabled=True)
    values.update(overrides)
    return VisionConfig(**values)


class TestVisionRouting:
    """Primary first, vision provider second, never silently dropped."""

    def test_text_only_primary_without_vision(self, provider, deepseek_config):
        router = VisionRouter(provider.transport())

        with pytest.raises(VisionNotConfigured):
            asyncio.run(router.route_image(
                deepseek_config, vision_config(enabled=False), PNG_BASE64
            ))
        assert provider.requests == []

    def test_vision_enabled_without_key(self, provider, deepseek_config):
        router = VisionRouter(provider.transport())

        with pytest.raises(VisionNotConfigured):
            asyncio.run(router.route_image(
                deepseek_config, vision_config(api_key=""), PNG_BASE64
            ))

    def test_routes_to_vision_provider(self, provider, deepseek_config):
        provider.respond_json(openai_envelope("麦当劳 午餐 25.5元"))
        recorded = []
        router = VisionRouter(provider.transport(), usage_recorder=lambda: recorded.append(1))
        primary_before = deepseek_config.model_dump()

        text = asyncio.run(router.route_image(deepseek_config, vision_config(), PNG_BASE64))

        assert text == "麦当劳 午餐 25.5元"
        request = provider.requests[0]
        assert str(request.url) == "https://open.bigmodel.cn/api/paas/v4/chat/completions"
        assert request.headers["Authorization"] == "Bearer zp-key"
        body = provider.body()
        assert body["model"] == "glm-4v"
        assert body["stream"] is False
        assert body["messages"][0]["content"][0]["image_url"]["url"] == PNG_BASE64
        assert body["messages"][0]["content"][1]["text"] == RECOGNITION_PROMPT
        assert deepseek_config.model_dump() == primary_before
        assert recorded == [1]

    def test_vision_capable_primary_is_used(self, provider):
        primary = GatewayConfig(provider="openai", api_key="oa-key", model="gpt-4o", enabled=True)
        provider.respond_json(openai_envelope("receipt text"))
        router = VisionRouter(provider.transport())

        text = asyncio.run(router.route_image(
            primary, vision_config(), f"data:image/png;base64,{PNG_BASE64}", "Read it"
        ))

        assert text == "receipt text"
        assert str(provider.requests[0].url) == "https://api.openai.com/v1/chat/completions"
        content = provider.body()["messages"][-1]["content"]
        assert content[0]["image_url"]["url"] == f"data:image/png;base64,{PNG_BASE64}"
        assert content[1]["text"] == "Read it"
