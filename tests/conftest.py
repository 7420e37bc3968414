"""
Shared fixtures.

No real API calls in tests: every provider is an httpx.MockTransport.
"""

import json
from datetime import date
from typing import Any, Callable, Optional

import httpx
import pytest

from ledger_assistant.config import ConfigStore
from ledger_assistant.models.gateway import GatewayConfig
from ledger_assistant.models.transaction import CanonicalCategory
from ledger_assistant.storage import InMemoryConfigStorage
from ledger_assistant.transport import Transport


# 1x1 transparent PNG
PNG_BASE64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


def sse_body(*payloads: Any, done: bool = True) -> bytes:
    """Build a text/event-stream body from frame payloads."""
    lines = []
    for payload in payloads:
        data = payload if isinstance(payload, str) else json.dumps(payload)
        lines.append(f"data: {data}\n\n")
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode("utf-8")


def openai_chunk(content: Optional[str] = None, role: Optional[str] = None) -> dict:
    delta = {}
    if role is not None:
        delta["role"] = role
    if content is not None:
        delta["content"] = content
    return {"choices": [{"index": 0, "delta": delta}]}


def openai_envelope(content: str) -> dict:
    return {"choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]}


class MockProvider:
    """
    Records requests and replays queued responses.

    The last queued response is reused once the queue runs dry.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._responses: list[Callable[[], httpx.Response]] = []

    def respond_with(self, build: Callable[[], httpx.Response]) -> 'MockProvider':
        self._responses.append(build)
        return self

    def respond(self, status: int, text: str = "") -> 'MockProvider':
        return self.respond_with(lambda: httpx.Response(status, text=text))

    def respond_json(self, payload: Any, status: int = 200) -> 'MockProvider':
        return self.respond_with(lambda: httpx.Response(status, json=payload))

    def respond_stream(self, *payloads: Any, done: bool = True) -> 'MockProvider':
        body = sse_body(*payloads, done=done)
        return self.respond_with(lambda: httpx.Response(
            200,
            content=body,
            headers={"Content-Type": "text/event-stream"},
        ))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._responses:
            raise AssertionError("MockProvider has no response queued")
        if len(self._responses) > 1:
            return self._responses.pop(0)()
        return self._responses[0]()

    def client_factory(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def transport(self, max_attempts: int = 1) -> Transport:
        return Transport(
            timeout_seconds=5,
            max_attempts=max_attempts,
            client_factory=self.client_factory,
        )

    def body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


@pytest.fixture
def provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def deepseek_config() -> GatewayConfig:
    return GatewayConfig(
        provider="deepseek",
        api_key="sk-test",
        model="deepseek-chat",
        enabled=True,
    )


@pytest.fixture
def categories() -> list[CanonicalCategory]:
    return [
        CanonicalCategory(id="food", name="餐饮"),
        CanonicalCategory(id="transport", name="交通"),
        CanonicalCategory(id="shopping", name="购物"),
        CanonicalCategory(id="salary", name="工资"),
        CanonicalCategory(id="other", name="其他"),
    ]


@pytest.fixture
def config_storage() -> InMemoryConfigStorage:
    return InMemoryConfigStorage({
        "provider": "deepseek",
        "apiKey": "sk-test",
        "model": "deepseek-chat",
        "enabled": True,
        "visionProvider": "zhipu",
        "visionApiKey": "",
        "visionModel": "glm-4v",
        "visionEnabled": False,
        "monthly": 0,
        "total": 0,
        "lastMonth": "",
    })


@pytest.fixture
def store(config_storage) -> ConfigStore:
    return ConfigStore(config_storage, today=lambda: date(2024, 2, 10))
