"""Model policies - named, ordered candidate lists.

Preferred models per operation live in configuration (Settings) and are
turned into immutable ModelPolicy values here, so control flow never holds
hardcoded model arrays.

Optional model discovery narrows a policy to the ids the upstream currently
lists. Narrowing always happens before a run starts.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from textswap.core.config import Settings
from textswap.core.constants import FUZZY_MODEL_LIMIT, FUZZY_MODEL_PATTERN
from textswap.core.logging import get_logger

logger = get_logger(__name__)

DETECT_TEXT = "detect_text"
EDIT_IMAGE = "edit_image"
REPLACE_TEXT = "replace_text"
ANALYZE_TEXT = "analyze_text"


@dataclass(frozen=True)
class ModelPolicy:
    """Named, ordered candidate list (most preferred first)."""

    name: str
    candidates: tuple[str, ...]

    def __post_init__(self) -> None:
        if not isinstance(self.candidates, tuple):
            object.__setattr__(self, "candidates", tuple(self.candidates))

    def __len__(self) -> int:
        return len(self.candidates)

    def narrowed(self, available: Iterable[str]) -> ModelPolicy:
        """Return a copy restricted to the given available model ids."""
        return ModelPolicy(self.name, narrow_to_available(self.candidates, available))


def policies_from_settings(settings: Settings) -> dict[str, ModelPolicy]:
    """Build the per-operation policies from configuration.

    Returns:
        Mapping of operation name to ModelPolicy.
    """
    return {
        DETECT_TEXT: ModelPolicy(DETECT_TEXT, tuple(settings.detect_text_models)),
        EDIT_IMAGE: ModelPolicy(EDIT_IMAGE, tuple(settings.edit_image_models)),
        REPLACE_TEXT: ModelPolicy(REPLACE_TEXT, tuple(settings.replace_text_models)),
        ANALYZE_TEXT: ModelPolicy(ANALYZE_TEXT, tuple(settings.analyze_text_models)),
    }


def narrow_to_available(
    candidates: Sequence[str],
    available: Iterable[str],
    pattern: str = FUZZY_MODEL_PATTERN,
    limit: int = FUZZY_MODEL_LIMIT,
) -> tuple[str, ...]:
    """Restrict preferred candidates to those the upstream lists.

    Args:
        candidates: Preferred model ids, in order.
        available: Model ids reported by the upstream.
        pattern: Regex used to pick substitutes when no preferred id is listed.
        limit: Maximum number of substitutes.

    Returns:
        Preferred ids that are available (order kept); else up to ``limit``
        available ids matching ``pattern``; else the candidates unchanged
        when the listing was empty or nothing matched.
    """
    available_ids = list(dict.fromkeys(available))
    if not available_ids:
        return tuple(candidates)

    available_set = set(available_ids)
    kept = tuple(model for model in candidates if model in available_set)
    if kept:
        return kept

    fuzzy = re.compile(pattern, re.IGNORECASE)
    substitutes = tuple(model for model in available_ids if fuzzy.search(model))[:limit]
    if substitutes:
        logger.info(
            "No preferred model available; using substitutes",
            preferred=list(candidates),
            substitutes=list(substitutes),
        )
        return substitutes

    logger.warning(
        "No preferred or substitute model available; keeping configured list",
        preferred=list(candidates),
    )
    return tuple(candidates)
