"""Response extraction strategies.

Upstream replies come in several dialects depending on the model family:

    {"choices": [{"message": {"images": [{"image_url": {"url": ...}}]}}]}
    {"choices": [{"message": {"content": [{"type": "image_url", ...}]}}]}
    {"choices": [{"message": {"content": "... data:image/png;base64,... "}}]}
    {"choices": [{"message": {"content": [{"type": "text", "text": "[...]"}]}}]}

Each dialect is handled by one named ExtractionStrategy. A ResponseExtractor
tries its strategies in order and returns the first non-None payload.
Supporting a new dialect means adding a strategy, not editing the others.

Extractors are total: any input, including None or non-dict bodies, yields a
payload or None. A strategy that raises is logged and skipped.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any, Final

from textswap.core.logging import get_logger
from textswap.core.text_processing import find_json_array, strip_reasoning_tags

logger = get_logger(__name__)


DATA_URI_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"data:image/(?:png|jpeg);base64,[A-Za-z0-9+/=]+"
)


# =============================================================================
# Envelope Helpers
# =============================================================================


def first_message(body: Any) -> dict[str, Any] | None:
    """Return ``body["choices"][0]["message"]`` if every step is well-formed."""
    if not isinstance(body, dict):
        return None
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    choice = choices[0]
    if not isinstance(choice, dict):
        return None
    message = choice.get("message")
    return message if isinstance(message, dict) else None


def text_fragments(content: Any) -> list[str]:
    """Collect the text pieces of a message content, in order.

    A string content is one fragment; a list content contributes its bare
    strings and the ``text`` field of its entries.
    """
    if isinstance(content, str):
        return [content]
    if not isinstance(content, list):
        return []
    fragments: list[str] = []
    for part in content:
        if isinstance(part, str):
            fragments.append(part)
        elif isinstance(part, dict) and isinstance(part.get("text"), str):
            fragments.append(part["text"])
    return fragments


def _url_of(reference: Any) -> str | None:
    """Accept either a bare URL string or a ``{"url": ...}`` object."""
    if isinstance(reference, str) and reference:
        return reference
    if isinstance(reference, dict):
        url = reference.get("url")
        if isinstance(url, str) and url:
            return url
    return None


# =============================================================================
# Strategies
# =============================================================================


class ExtractionStrategy(ABC):
    """One response dialect.

    Subclasses receive the first choice's message (already checked to be a
    dict) and return a payload or None.
    """

    name: str = "strategy"

    @abstractmethod
    def extract(self, message: dict[str, Any]) -> Any | None:
        """Return the payload found in message, or None."""
        ...


class GeneratedImagesStrategy(ExtractionStrategy):
    """Dedicated ``message.images`` list; the first entry wins."""

    name = "generated_images"

    def extract(self, message: dict[str, Any]) -> str | None:
        images = message.get("images")
        if not isinstance(images, list) or not images:
            return None
        image = images[0]
        if not isinstance(image, dict):
            return None
        return _url_of(image.get("image_url")) or _url_of(image.get("url"))


class TaggedContentStrategy(ExtractionStrategy):
    """Content list with parts tagged ``image``, ``image_url`` or ``output_image``."""

    name = "tagged_content"

    def extract(self, message: dict[str, Any]) -> str | None:
        content = message.get("content")
        if not isinstance(content, list):
            return None
        for part in content:
            if not isinstance(part, dict):
                continue
            kind = part.get("type")
            if kind == "image":
                data = part.get("data")
                if isinstance(data, str) and data:
                    return data
            elif kind in ("image_url", "output_image"):
                url = _url_of(part.get("image_url"))
                if url:
                    return url
        return None


class DataUriTextStrategy(ExtractionStrategy):
    """Base64 image data URI embedded in text content."""

    name = "data_uri_text"

    def extract(self, message: dict[str, Any]) -> str | None:
        for fragment in text_fragments(message.get("content")):
            match = DATA_URI_PATTERN.search(fragment)
            if match:
                return match.group(0)
        return None


class JsonArrayStrategy(ExtractionStrategy):
    """JSON array literal inside the concatenated text content."""

    name = "json_array"

    def extract(self, message: dict[str, Any]) -> list[Any] | None:
        fragments = text_fragments(message.get("content"))
        if not fragments:
            return None
        text = strip_reasoning_tags("\n".join(fragments))
        return find_json_array(text)


class PlainTextStrategy(ExtractionStrategy):
    """Whole text content, for free-form reports."""

    name = "plain_text"

    def extract(self, message: dict[str, Any]) -> str | None:
        text = strip_reasoning_tags("\n".join(text_fragments(message.get("content"))))
        return text or None


# =============================================================================
# Composite Extractor
# =============================================================================


class ResponseExtractor:
    """Ordered strategies, first non-None payload wins.

    Instances are callable so they can be passed wherever an
    ``Extractor`` function is expected.

    Example:
        extractor = ResponseExtractor([GeneratedImagesStrategy(), DataUriTextStrategy()])
        payload = extractor(response_body)
    """

    def __init__(self, strategies: Sequence[ExtractionStrategy], name: str = "extractor") -> None:
        self._strategies = tuple(strategies)
        self.name = name

    @property
    def strategies(self) -> tuple[ExtractionStrategy, ...]:
        """Strategies in the order they are tried."""
        return self._strategies

    def __call__(self, body: Any) -> Any | None:
        message = first_message(body)
        if message is None:
            return None
        for strategy in self._strategies:
            try:
                payload = strategy.extract(message)
            except Exception as e:  # noqa: BLE001 - extraction must stay total
                logger.warning(
                    "Extraction strategy failed",
                    extractor=self.name,
                    strategy=strategy.name,
                    error=str(e),
                )
                continue
            if payload is not None:
                logger.debug(
                    "Extraction matched", extractor=self.name, strategy=strategy.name
                )
                return payload
        return None


IMAGE_EXTRACTOR = ResponseExtractor(
    [GeneratedImagesStrategy(), TaggedContentStrategy(), DataUriTextStrategy()],
    name="image",
)
TEXT_REGIONS_EXTRACTOR = ResponseExtractor([JsonArrayStrategy()], name="text_regions")
ANALYSIS_EXTRACTOR = ResponseExtractor([PlainTextStrategy()], name="analysis")
