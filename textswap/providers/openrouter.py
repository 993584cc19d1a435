"""OpenRouter transport - httpx adapter for the upstream chat-completions API.

One httpx.AsyncClient is shared by all requests for the life of the app.
Every call carries a bounded timeout: a slow candidate is never interrupted
in favour of the next one, so the timeout is what keeps a run from stalling.

Reference: https://openrouter.ai/docs/api-reference/chat-completion
"""

from __future__ import annotations

from typing import Any

import httpx

from textswap.core.constants import (
    CHAT_COMPLETIONS_PATH,
    DEFAULT_MODELS_TIMEOUT_SECONDS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_UPSTREAM_BASE_URL,
    MODELS_PATH,
)
from textswap.core.logging import get_logger
from textswap.observability.tracing import inject_trace_context
from textswap.providers.base import (
    ChatCompletionTransport,
    UpstreamResponse,
    UpstreamTransportError,
)

logger = get_logger(__name__)

# Longest response body excerpt kept on errors and in logs
BODY_EXCERPT_CHARS = 500


def _excerpt(text: str) -> str:
    return text if len(text) <= BODY_EXCERPT_CHARS else text[:BODY_EXCERPT_CHARS] + "..."


class OpenRouterTransport(ChatCompletionTransport):
    """ChatCompletionTransport backed by httpx.

    Args:
        base_url: API base URL (default: https://openrouter.ai/api/v1).
        request_timeout: Seconds allowed for one completion call.
        models_timeout: Seconds allowed for the model listing call.
        client: Optional pre-built AsyncClient (tests pass one with a
            MockTransport). The transport closes only clients it created.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_UPSTREAM_BASE_URL,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        models_timeout: float = DEFAULT_MODELS_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._request_timeout = request_timeout
        self._models_timeout = models_timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()

    @property
    def completions_url(self) -> str:
        return f"{self._base_url}{CHAT_COMPLETIONS_PATH}"

    @property
    def models_url(self) -> str:
        return f"{self._base_url}{MODELS_PATH}"

    def _headers(self, api_key: str) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        return inject_trace_context(headers)

    async def complete(self, payload: dict[str, Any], api_key: str) -> UpstreamResponse:
        """POST the payload to the chat-completions endpoint.

        Raises:
            UpstreamTransportError: On httpx errors (including timeouts),
                requests that cannot be built, and non-2xx statuses.
        """
        try:
            response = await self._client.post(
                self.completions_url,
                json=payload,
                headers=self._headers(api_key),
                timeout=self._request_timeout,
            )
        except httpx.TimeoutException as e:
            raise UpstreamTransportError(
                f"timed out after {self._request_timeout}s"
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamTransportError(f"{type(e).__name__}: {e}") from e
        except (httpx.InvalidURL, UnicodeEncodeError) as e:
            # Request could not be built (bad base URL, non-ASCII credential)
            raise UpstreamTransportError(f"invalid request: {type(e).__name__}") from e

        if not response.is_success:
            raise UpstreamTransportError(
                f"HTTP {response.status_code}",
                status_code=response.status_code,
                body=_excerpt(response.text),
            )

        try:
            body = response.json() if response.content else None
        except ValueError:
            logger.debug(
                "Upstream returned a non-JSON success body",
                status_code=response.status_code,
                body=_excerpt(response.text),
            )
            body = None

        return UpstreamResponse(
            status_code=response.status_code,
            body=body,
            text=response.text,
        )

    async def list_models(self, api_key: str) -> list[str]:
        """GET the model catalogue; any failure yields an empty list."""
        try:
            response = await self._client.get(
                self.models_url,
                headers=self._headers(api_key),
                timeout=self._models_timeout,
            )
            response.raise_for_status()
            data = response.json().get("data")
        except (httpx.HTTPError, httpx.InvalidURL, ValueError, AttributeError) as e:
            logger.warning("Model listing failed", error=str(e))
            return []

        if not isinstance(data, list):
            return []
        return [
            entry["id"]
            for entry in data
            if isinstance(entry, dict) and isinstance(entry.get("id"), str)
        ]

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()
