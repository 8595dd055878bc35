"""Small, Django-light helpers shared by visualisation plugins."""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any

from django.utils.html import format_html

from .conf import dvf_setting

_NUMERIC_RE = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?\s*$")
_LINE_BREAK_RE = re.compile(r"\r\n|[\r\n]")


def is_numeric(value: Any) -> bool:
    """Return True when a value is a number or a numeric string.

    Numeric strings follow the usual spreadsheet/CSV notion: optional sign,
    digits with an optional decimal part, an optional exponent, and surrounding
    whitespace. Booleans are not numeric.
    """

    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        return _NUMERIC_RE.match(value) is not None
    return False


def validate_json(value: str | None) -> bool:
    """Return True when `value` is a non-empty, decodable JSON document."""

    if not value:
        return False
    try:
        json.loads(value)
    except (TypeError, ValueError):
        return False
    return True


def split_lines(text: str | None) -> list[str]:
    """Split free text on any line-break convention (CRLF, CR or LF)."""

    if not text:
        return []
    return _LINE_BREAK_RE.split(text)


def parse_pipe_pairs(text: str | None) -> dict[str, str]:
    """Parse `key|value` lines into a dict.

    Lines are trimmed first. Lines that do not split into exactly two parts
    are ignored; later lines win for repeated keys.
    """

    pairs: dict[str, str] = {}
    for line in split_lines(text):
        parts = line.strip().split("|")
        if len(parts) != 2:
            continue
        pairs[parts[0]] = parts[1]
    return pairs


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge `override` into a copy of `base`.

    Nested mappings are merged key by key; any other value in `override`
    replaces the value in `base`.
    """

    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def help_page_link(section: str) -> str:
    """Return an HTML link to a section of the configured help page.

    Args:
        section: Anchor on the help page (e.g. "label-overrides").

    Returns:
        Safe HTML for the link, or an empty string when no help page is set.
    """

    base_url = dvf_setting("HELP_URL")
    if not base_url:
        return ""
    return format_html('<a href="{}#{}" target="_blank" rel="noopener">Help</a>', base_url, section)
