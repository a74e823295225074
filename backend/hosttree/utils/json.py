"""JSON column helpers for the projected nodes table.

config and tags are stored as JSON text; rows written by older builds or
by hand may hold NULL, "" or garbage, which read back as empty values.
"""

import json
from typing import Any


def parse_json_object(raw: str | dict | None) -> dict[str, Any]:
    """Parse a JSON object column. Empty dict for None, "", invalid or non-dict JSON."""
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str) and raw:
        try:
            parsed = json.loads(raw)
        except (ValueError, TypeError):
            return {}
        if isinstance(parsed, dict):
            return parsed
    return {}


def parse_json_list(raw: str | list | None) -> list[Any]:
    """Parse a JSON array column. Empty list for None, "", invalid or non-list JSON."""
    if raw is None:
        return []
    if isinstance(raw, list):
        return raw
    if isinstance(raw, str) and raw:
        try:
            parsed = json.loads(raw)
        except (ValueError, TypeError):
            return []
        if isinstance(parsed, list):
            return parsed
    return []
