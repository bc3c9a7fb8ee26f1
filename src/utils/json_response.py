"""Parsing of JSON payloads returned by the completion oracle."""

from __future__ import annotations

import json
import re
from typing import Any

from src.utils.errors import ResponseParseError

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def parse_json_response(text: str) -> Any:
    """Parse a reply that is JSON, optionally wrapped in a fenced code block.

    Raises:
        ResponseParseError: If neither the raw text nor the first fenced block parses.
    """
    try:
        return json.loads(text)
    except (TypeError, json.JSONDecodeError):
        pass

    match = _FENCE_RE.search(text or "")
    if match:
        try:
            return json.loads(match.group(1).strip())
        except json.JSONDecodeError:
            pass

    raise ResponseParseError(text)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def is_number(value: Any) -> bool:
    """True for int/float payload values (JSON booleans excluded)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)
