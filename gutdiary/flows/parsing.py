# -*- coding: utf-8 -*-
"""Best-effort recovery of a JSON object from LLM reply text."""

from __future__ import annotations

import ast
import json
import re
from typing import Any, Dict, Iterable, List, Optional

_FENCE_OPEN_RE = re.compile(r"^```(?:json|JSON)?\s*")
_FENCE_CLOSE_RE = re.compile(r"\s*```$")
_NUM_RE = re.compile(r"-?\d+(?:\.\d+)?")

_PUNCT_FIXES = {
    "“": '"',
    "”": '"',
    "‘": "'",
    "’": "'",
    "：": ":",
    "，": ",",
}


def strip_code_fences(text: str) -> str:
    cleaned = _FENCE_OPEN_RE.sub("", text.strip())
    return _FENCE_CLOSE_RE.sub("", cleaned)


def _scan_outside_strings(text: str) -> Iterable[tuple[int, str]]:
    """Yield (index, char) for every character outside double-quoted strings.

    The opening quote of each string is yielded so callers can see that a value started.
    """
    in_str = False
    escaped = False
    for i, ch in enumerate(text):
        if in_str:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_str = False
            continue
        if ch == '"':
            in_str = True
        yield i, ch


def remove_trailing_commas(text: str) -> str:
    drop: set[int] = set()
    pending: Optional[int] = None
    for i, ch in _scan_outside_strings(text):
        if ch == ",":
            pending = i
        elif ch in "}]":
            if pending is not None:
                drop.add(pending)
            pending = None
        elif not ch.isspace():
            pending = None
    if not drop:
        return text
    return "".join(ch for i, ch in enumerate(text) if i not in drop)


def object_candidates(text: str) -> List[str]:
    """Balanced top-level ``{...}`` spans, in order of appearance."""
    cleaned = strip_code_fences(text)
    spans: List[str] = []
    depth = 0
    start: Optional[int] = None
    for i, ch in _scan_outside_strings(cleaned):
        if ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start is not None:
                spans.append(cleaned[start : i + 1])
                start = None
    return spans


def sanitize_json_like(text: str) -> str:
    cleaned = text
    for bad, good in _PUNCT_FIXES.items():
        cleaned = cleaned.replace(bad, good)
    cleaned = remove_trailing_commas(cleaned)
    cleaned = re.sub(r"\bNaN\b", "null", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"-?\bInfinity\b", "null", cleaned, flags=re.IGNORECASE)
    return cleaned


def _python_literal(text: str) -> Any:
    py = re.sub(r"\bnull\b", "None", text)
    py = re.sub(r"\btrue\b", "True", py)
    py = re.sub(r"\bfalse\b", "False", py)
    return ast.literal_eval(py)


def parse_json_object(text: str) -> Dict[str, Any]:
    """Return the first dict found in ``text``.

    Tries strict JSON, then a sanitized variant, then Python-literal syntax
    (single quotes, None/True/False) for each balanced candidate.
    Raises ValueError when nothing parses.
    """
    last_error: Exception | None = None
    for candidate in object_candidates(text or ""):
        sanitized = sanitize_json_like(candidate)
        for attempt in (candidate, sanitized):
            try:
                parsed = json.loads(attempt)
            except (ValueError, RecursionError) as exc:
                last_error = exc
                continue
            if isinstance(parsed, dict):
                return parsed
        for attempt in (candidate, sanitized):
            try:
                parsed = _python_literal(attempt)
            except (ValueError, SyntaxError, RecursionError, MemoryError) as exc:
                last_error = exc
                continue
            if isinstance(parsed, dict):
                return parsed
    if last_error is None:
        raise ValueError("Model output does not contain a JSON object")
    raise ValueError(f"Failed to parse model JSON: {last_error}") from last_error


def coerce_float(value: Any) -> Optional[float]:
    """``12``, ``"12.5"``, ``"~150 kcal"``, ``"1,200"`` -> float; anything else -> None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = _NUM_RE.search(value.replace(",", ""))
        if match:
            return float(match.group(0))
    return None


def as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        parts = [p.strip() for p in value.split(",")]
        return [p for p in parts if p]
    if isinstance(value, list):
        out: List[str] = []
        for item in value:
            if item is None:
                continue
            s = str(item).strip()
            if s:
                out.append(s)
        return out
    s = str(value).strip()
    return [s] if s else []


def first_present(obj: Dict[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        if key in obj:
            return obj[key]
    return None


def coerce_numbers(obj: Dict[str, Any], keys: Iterable[str], *, minimum: Optional[float] = 0.0) -> Dict[str, Any]:
    """Replace numeric-ish values in ``obj`` (in place) with floats; drop the ones that don't parse."""
    for key in keys:
        if key not in obj:
            continue
        number = coerce_float(obj[key])
        if number is None:
            obj.pop(key)
            continue
        obj[key] = max(minimum, number) if minimum is not None else number
    return obj
