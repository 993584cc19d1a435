"""Base classes for upstream transports.

Defines the ChatCompletionTransport ABC that the orchestrator calls. The
orchestrator only knows this port; OpenRouterTransport is the adapter for
the real upstream, and tests plug in their own.

Patterns applied:
- ABC with @abstractmethod decorator
- Dataclass for the raw response value
- PEP 604 union syntax (X | None)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class UpstreamResponse:
    """Raw 2xx reply from the upstream endpoint.

    Attributes:
        status_code: HTTP status code.
        body: Parsed JSON body, or None when empty or not JSON.
        text: Raw response text (kept for logging).
    """

    status_code: int
    body: Any
    text: str = ""


class UpstreamTransportError(Exception):
    """The upstream call failed before producing a usable 2xx reply.

    Covers network errors, timeouts and non-2xx statuses alike.

    Attributes:
        reason: Short description of the failure.
        status_code: HTTP status when a response was received.
        body: Response text when a response was received.
    """

    def __init__(
        self,
        reason: str,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        self.reason = reason
        self.status_code = status_code
        self.body = body
        super().__init__(f"Upstream call failed: {reason}")


class ChatCompletionTransport(ABC):
    """Port for the single fixed upstream chat-completions endpoint.

    Example:
        class StubTransport(ChatCompletionTransport):
            async def complete(self, payload, api_key):
                return UpstreamResponse(status_code=200, body={...})

            async def list_models(self, api_key):
                return []
    """

    @abstractmethod
    async def complete(self, payload: dict[str, Any], api_key: str) -> UpstreamResponse:
        """Send one chat completion request.

        Args:
            payload: Request body built from a RequestTemplate.
            api_key: Bearer credential.

        Returns:
            UpstreamResponse for any 2xx reply.

        Raises:
            UpstreamTransportError: On network failure, timeout or non-2xx.
        """
        ...

    @abstractmethod
    async def list_models(self, api_key: str) -> list[str]:
        """List model ids the upstream currently serves.

        Returns:
            Model ids, or an empty list if the listing is unavailable.
        """
        ...

    async def aclose(self) -> None:  # noqa: B027
        """Release network resources.

        Default implementation does nothing.
        """
