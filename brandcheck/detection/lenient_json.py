"""
Best-effort JSON parsing for state blobs embedded in marketplace pages.
"""

from __future__ import annotations

import json
import re
from typing import Any

_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_LINE_COMMENT = re.compile(r"^\s*//[^\n]*$", re.MULTILINE)
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_UNDEFINED = re.compile(r"(?<=[:\[,])\s*undefined\b")
_DANGLING_SEPARATOR = re.compile(r"[,:]\s*$")
_DANGLING_KEY = re.compile(r'([{,])\s*"(?:[^"\\]|\\.)*"\s*$')


class LenientJSONError(ValueError):
    """
    Raised when a blob cannot be parsed even after repair.
    """


def loads_lenient(raw: str) -> Any:
    """
    Parse JSON that may carry trailing commas, comments, trailing script code,
    or be truncated mid-document.
    """

    text = (raw or "").strip()
    if not text:
        raise LenientJSONError("empty document")

    attempts = (text, repair_json(text), close_truncated(repair_json(text)))
    last_error: Exception | None = None
    for candidate in attempts:
        try:
            return _decode_prefix(candidate)
        except ValueError as exc:
            last_error = exc
    raise LenientJSONError(f"unparseable JSON blob: {last_error}")


def repair_json(text: str) -> str:
    """
    Apply common repairs: comments, trailing commas, `undefined`, stray `;`.
    """

    repaired = _BLOCK_COMMENT.sub("", text)
    repaired = _LINE_COMMENT.sub("", repaired)
    repaired = _UNDEFINED.sub(" null", repaired)
    repaired = _TRAILING_COMMA.sub(r"\1", repaired)
    return repaired.strip().rstrip(";").strip()


def close_truncated(text: str) -> str:
    """
    Close an unterminated string and any open brackets at the end of `text`.
    """

    stack: list[str] = []
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            stack.append("}")
        elif char == "[":
            stack.append("]")
        elif char in "}]" and stack and stack[-1] == char:
            stack.pop()

    result = text
    if in_string:
        if escaped:
            result = result[:-1]
        result += '"'
    if not stack:
        return result

    result = _DANGLING_SEPARATOR.sub("", result.rstrip())
    if stack[-1] == "}":
        result = _DANGLING_KEY.sub(r"\1", result)
        result = _DANGLING_SEPARATOR.sub("", result.rstrip())
    return result + "".join(reversed(stack))


def _decode_prefix(text: str) -> Any:
    value, _ = json.JSONDecoder().raw_decode(text)
    return value
