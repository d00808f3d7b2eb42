"""Tolerant extraction of the quiz JSON object from free-text model replies."""

import json
import re
from typing import Any, Dict, List, Optional, Tuple

_FENCE_JSON = re.compile(r"```json\s*", re.IGNORECASE)
_FENCE = re.compile(r"```\s*")
_TRAILING_COMMA = re.compile(r",\s*([\]}])")


class ResponseParseError(ValueError):
    pass


def clean_json_text(raw: str) -> str:
    """Strip fences, slice to the outermost braces and drop trailing commas."""
    cleaned = _FENCE.sub("", _FENCE_JSON.sub("", raw or "")).strip()

    first = cleaned.find("{")
    last = cleaned.rfind("}")
    if first != -1 and last > first:
        cleaned = cleaned[first:last + 1]

    return _TRAILING_COMMA.sub(r"\1", cleaned)


def parse_quiz_json(raw: str) -> Dict[str, Any]:
    cleaned = clean_json_text(raw)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"could not parse model reply: {e.msg} at char {e.pos}") from e
    if not isinstance(data, dict):
        raise ResponseParseError("model reply is not a JSON object")
    return data


def extract_questions(raw: str) -> Tuple[List[Any], Optional[float]]:
    """Return (questions, passingScore) or raise ResponseParseError."""
    data = parse_quiz_json(raw)
    questions = data.get("questions")
    if not isinstance(questions, list):
        raise ResponseParseError("missing questions array")

    passing = data.get("passingScore")
    if isinstance(passing, bool) or not isinstance(passing, (int, float)):
        passing = None
    return questions, passing


__all__ = ["ResponseParseError", "clean_json_text", "parse_quiz_json", "extract_questions"]
