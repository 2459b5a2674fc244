import json
import re
from dataclasses import dataclass
from typing import Any, Literal


_FENCE_RE = re.compile(r"```(?:json)?\s*|\s*```", re.IGNORECASE)
_LIST_STRIP_RE = re.compile(r'["\[\]]')
_LIST_SPLIT_RE = re.compile(r"[,\n]")
_BULLET_PREFIX_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")

Shape = Literal["object", "array", "text"]


@dataclass(frozen=True)
class ParseResult:
    """Outcome of a best-effort parse: `fallback` is True when the structured parse failed."""

    value: Any
    fallback: bool


def find_balanced_span(text: str, open_char: str, close_char: str) -> str | None:
    """
    Return the first balanced `open_char ... close_char` span in text, or None.

    Brackets inside JSON string literals are ignored, so `{"a": "}"}` is one span.
    """
    start = text.find(open_char)
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
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
            elif ch == open_char:
                depth += 1
            elif ch == close_char:
                depth -= 1
                if depth == 0:
                    return text[start : i + 1]
        # Unbalanced from this opener; try the next one.
        start = text.find(open_char, start + 1)
    return None


def _load_span(text: str, open_char: str, close_char: str, expected: type) -> Any:
    raw = (text or "").strip()
    if not raw:
        raise ValueError("Empty AI response")

    # Fast path: pure JSON (optionally fenced)
    unfenced = _FENCE_RE.sub("", raw).strip()
    try:
        obj = json.loads(unfenced)
        if isinstance(obj, expected):
            return obj
    except ValueError:
        pass

    chunk = find_balanced_span(raw, open_char, close_char)
    if chunk is None:
        raise ValueError(f"No JSON {expected.__name__} found in AI response")
    obj = json.loads(chunk)
    if not isinstance(obj, expected):
        raise ValueError(f"AI response JSON is not a {expected.__name__}")
    return obj


def extract_first_json_object(text: str) -> dict:
    """
    Best-effort extraction of the first JSON object from a model response.
    Handles cases where the model wraps JSON in prose or markdown fences.
    """
    return _load_span(text, "{", "}", dict)


def extract_first_json_array(text: str) -> list:
    return _load_span(text, "[", "]", list)


def split_list_fallback(text: str) -> list[str]:
    """Naive comma/newline split used when the model did not return a JSON array."""
    cleaned = _LIST_STRIP_RE.sub("", text or "")
    items = []
    for part in _LIST_SPLIT_RE.split(cleaned):
        part = _BULLET_PREFIX_RE.sub("", part).strip()
        if part:
            items.append(part)
    return items


def parse_best_effort(text: str, shape: Shape) -> ParseResult:
    """
    Parse model output into the requested shape, degrading instead of raising.

    - object: first balanced {...}; fallback value is None
    - array:  first balanced [...]; fallback splits on commas/newlines
    - text:   trimmed text passes through (never a fallback)
    """
    if shape == "text":
        return ParseResult(value=(text or "").strip(), fallback=False)

    if shape == "object":
        try:
            return ParseResult(value=extract_first_json_object(text), fallback=False)
        except ValueError:
            return ParseResult(value=None, fallback=True)

    try:
        return ParseResult(value=extract_first_json_array(text), fallback=False)
    except ValueError:
        return ParseResult(value=split_list_fallback(text), fallback=True)
