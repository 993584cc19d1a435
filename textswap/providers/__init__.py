"""Upstream chat-completions transports.

Providers:
- base: ChatCompletionTransport ABC, UpstreamResponse, UpstreamTransportError
- openrouter: OpenRouterTransport (httpx)
"""

from textswap.providers.base import (
    ChatCompletionTransport,
    UpstreamResponse,
    UpstreamTransportError,
)
from textswap.providers.openrouter import OpenRouterTransport


__all__: list[str] = [
    "ChatCompletionTransport",
    "OpenRouterTransport",
    "UpstreamResponse",
    "UpstreamTransportError",
]
