"""Upstream credential resolution.

Precedence, highest first:
    1. per-request header  (x-openrouter-key)
    2. request-body field  (apiKey)
    3. process default     (OPENROUTER_API_KEY)

Blank values count as absent.
"""

from __future__ import annotations


def _usable(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def resolve_api_key(
    header_value: str | None,
    body_value: str | None,
    default: str | None,
) -> str | None:
    """Pick the credential for one request.

    Args:
        header_value: Value of the per-request credential header.
        body_value: Value of the request body's apiKey field.
        default: Process-wide default from settings.

    Returns:
        The highest-priority non-blank credential, or None when none resolve.
    """
    for value in (header_value, body_value, default):
        resolved = _usable(value)
        if resolved is not None:
            return resolved
    return None
