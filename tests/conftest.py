"""pytest configuration and fixtures for textswap-service tests.

This module provides shared fixtures for unit and integration tests. The
upstream is never reached: tests use StubTransport, which answers per model
id from a script, or an httpx.MockTransport for the real OpenRouterTransport.
"""

from __future__ import annotations

import base64
import io
import json
from collections.abc import AsyncGenerator, Generator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from PIL import Image

from textswap.core.config import Settings, get_settings
from textswap.core.logging import reset_logging
from textswap.providers.base import (
    ChatCompletionTransport,
    UpstreamResponse,
    UpstreamTransportError,
)


# =============================================================================
# Constants (S1192: Avoid duplicated string literals)
# =============================================================================

TEST_API_KEY = "sk-or-test-key"
TEST_IMAGE_URL = "http://x/y.png"
MODEL_A = "A"
MODEL_B = "B"
MODEL_C = "C"


# =============================================================================
# Markers
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (stubbed upstream)")


# =============================================================================
# Upstream Body Builders
# =============================================================================


def chat_body(content: Any, **message_fields: Any) -> dict[str, Any]:
    """Wrap message content in a chat-completions response envelope."""
    message = {"role": "assistant", "content": content, **message_fields}
    return {"choices": [{"index": 0, "message": message, "finish_reason": "stop"}]}


def image_url_body(url: str) -> dict[str, Any]:
    """Response whose content list carries one tagged image_url part."""
    return chat_body([{"type": "image_url", "image_url": {"url": url}}])


def http_error(status_code: int, body: str = "upstream error") -> UpstreamTransportError:
    return UpstreamTransportError(f"HTTP {status_code}", status_code=status_code, body=body)


# =============================================================================
# Stub Transport
# =============================================================================


class StubTransport(ChatCompletionTransport):
    """Scripted upstream: each model id maps to a body, a response or an error.

    Unscripted models fail with HTTP 404. Every call's payload is recorded.
    """

    def __init__(
        self,
        script: dict[str, Any] | None = None,
        models: list[str] | None = None,
    ) -> None:
        self.script: dict[str, Any] = dict(script or {})
        self.models = list(models or [])
        self.calls: list[dict[str, Any]] = []
        self.api_keys: list[str] = []
        self.list_calls = 0
        self.closed = False

    @property
    def called_models(self) -> list[str]:
        return [payload["model"] for payload in self.calls]

    async def complete(self, payload: dict[str, Any], api_key: str) -> UpstreamResponse:
        self.calls.append(payload)
        self.api_keys.append(api_key)
        outcome = self.script.get(payload["model"])
        if outcome is None:
            raise http_error(404, "unknown model")
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, UpstreamResponse):
            return outcome
        return UpstreamResponse(status_code=200, body=outcome, text=json.dumps(outcome))

    async def list_models(self, api_key: str) -> list[str]:
        self.list_calls += 1
        return list(self.models)

    async def aclose(self) -> None:
        self.closed = True


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep real credentials and TEXTSWAP_* overrides out of every test."""
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    monkeypatch.delenv("TEXTSWAP_OPENROUTER_API_KEY", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    reset_logging()


@pytest.fixture
def settings() -> Settings:
    """Settings with a default credential and a short, known policy."""
    return Settings(
        openrouter_api_key=TEST_API_KEY,
        detect_text_models=[MODEL_A, MODEL_B],
        edit_image_models=[MODEL_A, MODEL_B],
        replace_text_models=[MODEL_A, MODEL_B],
        analyze_text_models=[MODEL_A, MODEL_B],
    )


# =============================================================================
# Image Fixtures
# =============================================================================


@pytest.fixture
def png_bytes() -> bytes:
    """A tiny real PNG file."""
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color=(255, 255, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_data_url(png_bytes: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")


# =============================================================================
# Transport and App Fixtures
# =============================================================================


@pytest.fixture
def stub_transport() -> StubTransport:
    return StubTransport()


@pytest.fixture
def app(settings: Settings, stub_transport: StubTransport) -> FastAPI:
    """Create the real application wired to the stub upstream."""
    from textswap.main import create_app

    return create_app(settings=settings, transport=stub_transport)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """TestClient with the lifespan running."""
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for the app (lifespan entered explicitly).

    Args:
        app: FastAPI application.

    Yields:
        AsyncClient for making test requests.
    """
    transport = ASGITransport(app=app)
    async with app.router.lifespan_context(app):
        async with AsyncClient(transport=transport, base_url="https://testserver") as ac:
            yield ac
