"""
Response Parser — Tolerant JSON extraction from model output.

Models wrap JSON in markdown fences or surround it with prose; both are accepted.
"""

from __future__ import annotations

import json
import logging
import re
from contextlib import contextmanager
from typing import Any, Iterator

from pydantic import ValidationError

from pagelens.llm.errors import ProviderResponseError

logger = logging.getLogger("pagelens.llm.parser")

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)


def extract_json(text: str) -> Any | None:
    """Return the first JSON object or array found in ``text``, or None."""
    if not text:
        return None
    stripped = text.strip()
    try:
        return json.loads(stripped)
    except json.JSONDecodeError:
        pass

    match = _FENCE_RE.search(stripped)
    if match:
        try:
            return json.loads(match.group(1).strip())
        except json.JSONDecodeError:
            pass

    # First balanced { ... } or [ ... ] block
    starts = [i for i in (stripped.find("{"), stripped.find("[")) if i != -1]
    if not starts:
        return None
    start = min(starts)
    opener = stripped[start]
    closer = "}" if opener == "{" else "]"
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(stripped)):
        ch = stripped[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                try:
                    return json.loads(stripped[start : i + 1])
                except json.JSONDecodeError:
                    return None
    return None


def parse_json_response(content: str, context: str = "model response") -> Any:
    """Like :func:`extract_json` but raises ProviderResponseError when nothing parses."""
    parsed = extract_json(content)
    if parsed is None:
        logger.warning(f"Failed to parse JSON from {context}: {content[:200]!r}")
        raise ProviderResponseError(f"Failed to parse JSON from {context}")
    return parsed


def optional_text(value: Any) -> str | None:
    """Scalar model field as stripped text; objects, arrays and blanks become None."""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    text = str(value).strip()
    return text or None


@contextmanager
def payload_shape(context: str) -> Iterator[None]:
    """Re-raise type errors from a parsed model payload as ProviderResponseError."""
    try:
        yield
    except (ValidationError, TypeError) as e:
        logger.warning(f"Malformed {context} payload: {e}")
        raise ProviderResponseError(f"Malformed {context} payload: {type(e).__name__}") from e
