"""Text processing utilities for model response content.

Handles the text-side clean-up of upstream replies:
- stripping reasoning/thinking tags some models prepend to their answer
- locating a JSON array literal inside free-form text
- parsing the labelled typography report produced by text analysis
- recognising currency amounts, which get a dedicated analysis section

None of these functions raise on malformed input; they return None or an
empty result instead.
"""

from __future__ import annotations

import json
import re
from typing import Any, Final

from textswap.core.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Reasoning Tag Patterns
# =============================================================================

_REASONING_TAGS: Final[str] = "think|thinking|reasoning|internal_thought"

_COMBINED_PATTERN: Final[re.Pattern[str]] = re.compile(
    rf"<(?:{_REASONING_TAGS})>.*?</(?:{_REASONING_TAGS})>",
    re.DOTALL | re.IGNORECASE,
)

# Unclosed tag at the start: the model was cut off while still thinking
_UNCLOSED_TAG_PATTERN: Final[re.Pattern[str]] = re.compile(
    rf"^\s*<(?:{_REASONING_TAGS})>\s*",
    re.IGNORECASE,
)


# =============================================================================
# JSON Patterns
# =============================================================================

_FENCED_JSON_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"```json\s*([\s\S]*?)```", re.IGNORECASE
)


# =============================================================================
# Typography Analysis Patterns
# =============================================================================

ANALYSIS_FIELDS: Final[dict[str, str]] = {
    "THICKNESS": "thickness",
    "COLOR": "color",
    "FONT": "font",
    "SIZE": "size",
    "MIXED_SIZING": "mixedSizing",
    "SPACING": "spacing",
    "EFFECTS": "effects",
    "POSITION": "position",
    "RECOMMENDATIONS": "recommendations",
}

_RGB_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"RGB\((\d+),\s*(\d+),\s*(\d+)\)", re.IGNORECASE
)
_FONT_WEIGHT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(\d{3})\s*(?:weight|font-weight)", re.IGNORECASE
)
_PIXEL_PATTERN: Final[re.Pattern[str]] = re.compile(r"(\d+)\s*px", re.IGNORECASE)

_FINANCIAL_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"[£$€¥][\d,]+\.?\d{0,2}|^\d+[.,]\d{2}$"
)


# =============================================================================
# Public API
# =============================================================================


def strip_reasoning_tags(content: str | None) -> str | None:
    """Strip reasoning/thinking tags from model response content.

    Args:
        content: Raw response text (may contain reasoning tags).

    Returns:
        Content with reasoning blocks removed and whitespace normalized.
        Returns None if input is None.

    Examples:
        >>> strip_reasoning_tags("<think>Let me look...</think>[1, 2]")
        '[1, 2]'
        >>> strip_reasoning_tags("No tags here.")
        'No tags here.'
    """
    if content is None:
        return None

    if "<" not in content:
        return content.strip()

    cleaned = _COMBINED_PATTERN.sub("", content)

    # A truncated reply keeps its thinking text; only the opening tag goes
    unclosed = _UNCLOSED_TAG_PATTERN.match(cleaned)
    if unclosed:
        cleaned = cleaned[unclosed.end():]

    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned).strip()

    if cleaned != content.strip():
        logger.debug(
            "Stripped reasoning tags",
            original_length=len(content),
            cleaned_length=len(cleaned),
        )
    return cleaned


def _matching_bracket_span(text: str, start: int) -> str | None:
    """Return text[start:end] where end closes the '[' at start.

    Brackets inside JSON string literals are ignored.
    """
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None


def find_json_array(text: str | None) -> list[Any] | None:
    """Locate and parse a JSON array literal embedded in text.

    Lookup order:
    1. A fenced ```json block.
    2. The whole text, if it parses as a JSON array.
    3. The first '[' and its matching ']'.

    Args:
        text: Free-form model output.

    Returns:
        The parsed list, or None when no array can be found or parsed.

    Example:
        >>> find_json_array('Here you go: [{"text": "SALE"}] hope it helps')
        [{'text': 'SALE'}]
    """
    if not text:
        return None

    candidates: list[str] = []
    fenced = _FENCED_JSON_PATTERN.search(text)
    if fenced:
        candidates.append(fenced.group(1).strip())
    candidates.append(text.strip())
    first_bracket = text.find("[")
    if first_bracket != -1:
        span = _matching_bracket_span(text, first_bracket)
        if span is not None:
            candidates.append(span)

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(parsed, list):
            return parsed
    return None


def parse_typography_analysis(analysis: str | None) -> dict[str, Any]:
    """Parse a labelled typography report into structured fields.

    Recognises lines such as ``FONT: Inter, 600, normal`` for each label in
    ANALYSIS_FIELDS, plus RGB triples, a three-digit font weight and every
    pixel measurement.

    Args:
        analysis: Report text returned by the analysis model.

    Returns:
        Dict with the fields that were found; empty when nothing matched.
    """
    parsed: dict[str, Any] = {}
    if not analysis:
        return parsed

    for label, key in ANALYSIS_FIELDS.items():
        match = re.search(rf"{label}:\s*([^\n]+)", analysis, re.IGNORECASE)
        if match:
            parsed[key] = match.group(1).strip()

    rgb = _RGB_PATTERN.search(analysis)
    if rgb:
        parsed["rgbValues"] = {
            "r": int(rgb.group(1)),
            "g": int(rgb.group(2)),
            "b": int(rgb.group(3)),
        }

    weight = _FONT_WEIGHT_PATTERN.search(analysis)
    if weight:
        parsed["fontWeight"] = int(weight.group(1))

    pixels = _PIXEL_PATTERN.findall(analysis)
    if pixels:
        parsed["pixelMeasurements"] = [int(value) for value in pixels]

    return parsed


def is_financial_text(text: str) -> bool:
    """Check whether text looks like a currency amount (e.g. "$1,250.00", "12.50")."""
    return bool(_FINANCIAL_PATTERN.search(text.strip()))
