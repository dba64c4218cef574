"""Structured payload extraction from free-form backend replies.

Backends wrap JSON in prose, markdown fences or leave trailing commas. The
extractor tries, in order:

1. fenced code blocks (```json ... ``` or bare ```),
2. balanced ``{...}`` objects found by a string-aware scan,

and for each candidate falls back to removing trailing commas before giving
up on it. The first candidate that parses to a JSON object wins.
"""

import json
import logging
import re
from collections.abc import Iterator
from typing import Any

from adaptly.state import LayoutHints

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json|JSON)?[ \t]*\n?([\s\S]*?)```")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


def _parse_object(text: str) -> dict[str, Any] | None:
    for attempt in (text, _TRAILING_COMMA.sub(r"\1", text)):
        try:
            value = json.loads(attempt)
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value
    return None


def _balanced_objects(text: str) -> Iterator[str]:
    """Yield each top-level balanced ``{...}`` substring, left to right.

    One pass over `text` with a stack of open-brace positions. Braces inside
    string literals are ignored. An unclosed ``{`` is skipped, so objects
    nested inside it are still found.
    """
    spans: list[tuple[int, int]] = []
    opened: list[int] = []
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == "{":
            opened.append(i)
        elif not opened:
            continue
        elif ch == '"':
            in_string = True
        elif ch == "}":
            spans.append((opened.pop(), i))

    # Closed spans nest or are disjoint; keep the outermost ones.
    last_end = -1
    for start, end in sorted(spans):
        if start > last_end:
            yield text[start : end + 1]
            last_end = end


def extract_payload(text: str | None) -> dict[str, Any] | None:
    """Find the first well-formed JSON object embedded in `text`.

    Args:
        text: Raw backend reply.

    Returns:
        The parsed object, or None if the reply holds no structured payload.

    Example:
        >>> extract_payload('Sure! ```json\\n{"elements": []}\\n```')
        {'elements': []}
    """
    if not text:
        return None

    for block in _FENCE_PATTERN.findall(text):
        payload = _parse_object(block.strip())
        if payload is not None:
            return payload

    for candidate in _balanced_objects(text):
        payload = _parse_object(candidate)
        if payload is not None:
            return payload

    logger.debug("No structured payload found in backend reply")
    return None


# =============================================================================
# Payload interpretation
# =============================================================================


def read_candidates(payload: dict[str, Any]) -> list[Any]:
    """Candidate elements from ``elements`` (or legacy ``components``)."""
    for key in ("elements", "components"):
        if key in payload:
            value = payload[key]
            if isinstance(value, list):
                return value
            logger.warning(f"Ignoring non-list '{key}' in backend payload")
            return []
    return []


def read_layout_hints(payload: dict[str, Any]) -> LayoutHints | None:
    """Arrangement hints from ``layout`` and top-level keys.

    ``layout`` may be a mode name or an object with ``type``, ``spacing``
    and ``columns``/``trackCount``. Top-level ``arrangementMode``,
    ``spacing``, ``trackCount`` and ``columns`` override it.
    """
    mode = spacing = track_count = None

    layout = payload.get("layout")
    if isinstance(layout, str):
        mode = layout
    elif isinstance(layout, dict):
        mode = layout.get("type", layout.get("arrangementMode"))
        spacing = layout.get("spacing")
        track_count = layout.get("trackCount", layout.get("columns"))

    if "arrangementMode" in payload:
        mode = payload["arrangementMode"]
    if "spacing" in payload:
        spacing = payload["spacing"]
    if "trackCount" in payload:
        track_count = payload["trackCount"]
    elif "columns" in payload:
        track_count = payload["columns"]

    hints = LayoutHints(arrangement_mode=mode, spacing=spacing, track_count=track_count)
    return None if hints.is_empty else hints


def read_rationale(payload: dict[str, Any]) -> str | None:
    """Rationale from ``rationale`` (or ``reasoning``), always as text."""
    value = payload.get("rationale", payload.get("reasoning"))
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value)


__all__ = [
    "extract_payload",
    "read_candidates",
    "read_layout_hints",
    "read_rationale",
]
