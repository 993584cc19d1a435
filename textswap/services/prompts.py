"""Instruction builders for the upstream vision models.

Each operation sends one user-turn instruction alongside the image. The
builders only assemble text from request fields; they never call out.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from textswap.core.text_processing import ANALYSIS_FIELDS

DETECT_TEXT_INSTRUCTION = (
    "Analyze this image and detect all text elements with high precision. "
    "Return a JSON array with each text element containing: text content, "
    "x/y coordinates (as percentages 0-100 from top-left), width/height "
    "(as percentages), and confidence (0-1). Be very accurate with "
    "positioning for text replacement. Format: "
    '[{"text":"example","x":10,"y":20,"width":15,"height":5,"confidence":0.95}]'
)


def detect_text_instruction() -> str:
    return DETECT_TEXT_INSTRUCTION


def edit_image_instruction(prompt: str) -> str:
    return (
        "Looking at this image, recreate it but with this modification: "
        f"{prompt}. Keep all other aspects as similar as possible."
    )


def _percent(value: Any) -> str:
    try:
        return f"{float(value):.2f}"
    except (TypeError, ValueError):
        return str(value)


def _location_hint(original_text: str, coordinates: Mapping[str, Any] | None) -> str:
    if not coordinates:
        return f'The text to replace is "{original_text}".'
    return (
        f'The text to replace, "{original_text}", is located inside the '
        "approximate bounding box "
        f"(x: {_percent(coordinates.get('x'))}%, "
        f"y: {_percent(coordinates.get('y'))}%, "
        f"width: {_percent(coordinates.get('width'))}%, "
        f"height: {_percent(coordinates.get('height'))}%)."
    )


def _style_hint(
    font_style: Mapping[str, Any] | None,
    color_analysis: Mapping[str, Any] | None,
) -> str:
    if font_style and color_analysis:
        return (
            "- Color hint: the original text color is detected as "
            f"'{color_analysis.get('textColor')}' on a background of "
            f"'{color_analysis.get('averageColor')}'. Verify against the image.\n"
            "- Font hint: the font weight is estimated as "
            f"'{font_style.get('fontWeight')}'. Prioritize the visual thickness "
            "you see in the image.\n"
            "- Replicate the font, thickness, color, lighting, perspective and "
            "texture of the original text exactly."
        )
    return (
        "Pay close attention to the font, thickness, color, lighting, "
        "perspective and any effects on the original text, and replicate "
        "that style for the new text."
    )


def replace_text_instruction(
    original_text: str,
    new_text: str,
    coordinates: Mapping[str, Any] | None = None,
    font_style: Mapping[str, Any] | None = None,
    color_analysis: Mapping[str, Any] | None = None,
) -> str:
    """Build the text replacement instruction.

    Args:
        original_text: Text currently in the image.
        new_text: Replacement text.
        coordinates: Optional bounding box in percentages (x, y, width, height).
        font_style: Optional client-side font analysis (``fontWeight``).
        color_analysis: Optional client-side color analysis
            (``textColor``, ``averageColor``).
    """
    return (
        "Replace a piece of text in the provided image. The replacement must "
        "be undetectable.\n\n"
        f'1. Locate: find the text "{original_text}". '
        f"{_location_hint(original_text, coordinates)}\n"
        f'2. Replace: replace it with "{new_text}".\n\n'
        "Style rules:\n"
        f"{_style_hint(font_style, color_analysis)}\n\n"
        "Keep everything else in the image identical. Return the edited image."
    )


def analyze_text_instruction(text_to_analyze: str, is_financial: bool) -> str:
    """Build the typography analysis instruction.

    The reply format lists one ``LABEL: value`` line per analysis field so
    that parse_typography_analysis() can read it back.
    """
    financial = ""
    if is_financial:
        financial = (
            "This is financial text. Measure the currency symbol, the main "
            "amount and the cents separately, and note decimal alignment.\n\n"
        )
    format_lines = "\n".join(f"{label}: [...]" for label in ANALYSIS_FIELDS)
    return (
        f'You are a typography expert. Analyze the text "{text_to_analyze}" in '
        "this image and give exact, measurable characteristics for manual "
        "editing: stroke thickness in pixels, RGB color (e.g. RGB(51, 51, 51)), "
        "font family and weight (100-900), font size in pixels, spacing, "
        "effects and positioning.\n\n"
        f"{financial}"
        "Answer in exactly this format:\n"
        f"{format_lines}"
    )
