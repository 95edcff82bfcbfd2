"""Extraction of the structured report from scanner output."""
from __future__ import annotations

import json

from ..core.errors import ScanParseError
from ..core.models import ScanReport


def extract_json(output: str) -> str:
    """Return the first balanced top-level ``{...}`` object in ``output``.

    Braces inside JSON strings are ignored. Diagnostic text before and after
    the object is dropped; a second object is never merged into the first.
    """

    start = output.find("{")
    if start == -1:
        raise ScanParseError("No JSON object found in scanner output")

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(output)):
        char = output[index]
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
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return output[start : index + 1]
    raise ScanParseError("Unbalanced JSON object in scanner output")


def decode_report(output: str) -> ScanReport:
    """Decode the report embedded in mixed scanner output."""

    span = extract_json(output)
    try:
        data = json.loads(span)
    except json.JSONDecodeError as exc:
        raise ScanParseError(f"Scanner report is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):  # pragma: no cover - extract_json only yields objects
        raise ScanParseError("Scanner report is not a JSON object")
    return ScanReport.from_dict(data)


__all__ = ["extract_json", "decode_report"]
