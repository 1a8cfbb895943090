"""Miscellaneous helper functions."""

from __future__ import annotations

import datetime as dt
import json
import re
from typing import Any, Dict, Optional

from splitter.core.exceptions import PayloadParseError

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_CONTROL_CHARS = re.compile(r"[\x00-\x1F\x7F]")
_WHITESPACE_RUN = re.compile(r"\s{2,}")


def sanitize_string(value: Any) -> Any:
    """Clean a user supplied display string.

    Strips control characters, collapses runs of whitespace and escapes
    angle brackets. Non-string values are returned unchanged so pydantic
    can report its own type error.
    """
    if not isinstance(value, str):
        return value
    value = _CONTROL_CHARS.sub("", value.strip())
    value = _WHITESPACE_RUN.sub(" ", value)
    return value.replace("<", "&lt;").replace(">", "&gt;")


def parse_iso_datetime(value: str | None) -> Optional[dt.datetime]:
    """Parse an ISO8601 datetime string into a :class:`datetime` object.

    The standard ``datetime.fromisoformat`` helper does not accept a lowercase
    ``z`` as the UTC designator. Some clients send timestamps that end with
    ``z`` instead of the canonical ``Z``. This function normalises that case
    and returns ``None`` if the value cannot be parsed.
    """
    if not value:
        return None
    try:
        if value.endswith("z"):
            value = value[:-1] + "Z"
        return dt.datetime.fromisoformat(value)
    except ValueError:
        return None


def title_case_field(name: str) -> str:
    """Turn a payload key into a display label.

    ``healthcareSurcharge`` -> ``Healthcare Surcharge``,
    ``service_charge`` -> ``Service Charge``.
    """
    spaced = _CAMEL_BOUNDARY.sub(" ", name.replace("_", " ").replace("-", " "))
    return " ".join(word[:1].upper() + word[1:] for word in spaced.split())


def strip_code_fences(text: str) -> str:
    """Return the body of a Markdown code block, or ``text`` unchanged."""
    stripped = text.strip()
    if not stripped.startswith("```"):
        return stripped
    lines = stripped.split("\n")
    body = []
    in_code = False
    for line in lines:
        if line.startswith("```"):
            in_code = not in_code
            continue
        if in_code:
            body.append(line)
    return "\n".join(body)


def find_json_object(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` substring of ``text``.

    Braces inside JSON string literals are ignored.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for pos in range(start, len(text)):
            ch = text[pos]
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
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:pos + 1]
        # Unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


def parse_payload(text: str) -> Dict[str, Any]:
    """Parse provider output into a JSON object.

    Tries the whole text first (after removing code fences), then the
    first balanced object-like substring, so that answers wrapped in
    prose still parse. Raises :class:`PayloadParseError` otherwise.
    """
    if not text or not text.strip():
        raise PayloadParseError("empty provider response")
    body = strip_code_fences(text)
    try:
        data = json.loads(body)
    except ValueError:
        candidate = find_json_object(text)
        if candidate is None:
            raise PayloadParseError("no JSON object found in provider response")
        try:
            data = json.loads(candidate)
        except ValueError as exc:
            raise PayloadParseError(f"invalid JSON object in provider response: {exc}") from exc
    if not isinstance(data, dict):
        raise PayloadParseError(f"expected a JSON object, got {type(data).__name__}")
    return data
