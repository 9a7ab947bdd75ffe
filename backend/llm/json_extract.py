"""Best-effort recovery of JSON payloads from raw generator output.

Models are told to answer with JSON only, but the text that comes back is often
wrapped in code fences or surrounded by prose. Recovery runs three attempts in
strict order and the first one that parses wins:

1. the raw text as-is
2. the text with a leading ```/```json fence and a trailing ``` fence removed
3. the slice between the first opening and the last closing bracket

Nothing here logs; callers decide what to print.
"""

import json
import re
from typing import Any, Dict, List

from .errors import MalformedGenerationError, ValidationError

LEADING_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*", re.IGNORECASE)
TRAILING_FENCE_RE = re.compile(r"\s*```\s*$")

BRACKETS = {
    "object": ("{", "}"),
    "array": ("[", "]"),
}


def strip_code_fences(raw: str) -> str:
    """Remove a leading fence marker (optionally tagged json) and a trailing fence."""
    cleaned = LEADING_FENCE_RE.sub("", raw, count=1)
    cleaned = TRAILING_FENCE_RE.sub("", cleaned, count=1)
    return cleaned.strip()


def _try_parse(text: str):
    try:
        return True, json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError, RecursionError):
        # RecursionError: nesting too deep for the decoder.
        return False, None


def parse_json_loosely(raw: str, container: str = "object") -> Any:
    """Parse ``raw`` as JSON using the three-step fallback.

    ``container`` selects the brackets used by the substring attempt:
    ``"object"`` for ``{...}`` and ``"array"`` for ``[...]``.

    Raises:
        MalformedGenerationError: when none of the attempts yields valid JSON.
    """
    if container not in BRACKETS:
        raise ValueError(f"Unknown container kind: {container}")

    text = raw if isinstance(raw, str) else ""
    if not text.strip():
        raise MalformedGenerationError("The model returned an empty response.", raw=text)

    ok, value = _try_parse(text)
    if ok:
        return value

    cleaned = strip_code_fences(text)
    ok, value = _try_parse(cleaned)
    if ok:
        return value

    opening, closing = BRACKETS[container]
    start = cleaned.find(opening)
    end = cleaned.rfind(closing)
    if start != -1 and end != -1 and start < end:
        ok, value = _try_parse(cleaned[start:end + 1])
        if ok:
            return value

    raise MalformedGenerationError("The model did not return valid JSON.", raw=text)


def extract_object(raw: str) -> Dict[str, Any]:
    """Recover a JSON object; any other JSON value is a shape error."""
    value = parse_json_loosely(raw, container="object")
    if not isinstance(value, dict):
        raise ValidationError(
            f"Expected a JSON object but got {type(value).__name__}.", raw=raw
        )
    return value


def extract_array(raw: str, key: str = None) -> List[Any]:
    """Recover a JSON array.

    When the model wraps the array in an object, ``key`` names the field holding it
    (``{"flashcards": [...]}``).
    """
    try:
        value = parse_json_loosely(raw, container="array")
    except MalformedGenerationError:
        if key is None:
            raise
        value = parse_json_loosely(raw, container="object")

    if isinstance(value, dict) and key is not None and isinstance(value.get(key), list):
        value = value[key]
    if not isinstance(value, list):
        raise ValidationError(
            f"Expected a JSON array but got {type(value).__name__}.", raw=raw
        )
    return value
