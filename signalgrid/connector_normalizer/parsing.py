# -*- coding: utf-8 -*-
"""
Value Parsing Helpers - SG-DATA-001: Connector Normalizer

Small, pure helpers shared by the transform library, the field mapping
evaluator, the timestamp resolver and schema inference:

    - Dotted path resolution into nested records (``resolve_path``)
    - JSON-path style expression tokenising (``$.a.b[0]``)
    - Strict numeric coercion (``to_number``)
    - ISO-8601 parsing to epoch milliseconds (``iso_to_epoch_ms``)
    - Stable stringification for tags and labels (``stringify``)

Example:
    >>> from signalgrid.connector_normalizer.parsing import resolve_path
    >>> resolve_path({"meta": {"ts": 1}}, "meta.ts")
    1

Author: SignalGrid Platform Team
Date: October 2026
PRD: SG-DATA-001 Connector Normalizer
Status: Production Ready
"""

from __future__ import annotations

import json
import math
import re
from datetime import date, datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

from signalgrid.connector_normalizer.provenance import canonicalize

__all__ = [
    "MISSING",
    "split_path",
    "split_json_path",
    "resolve_path",
    "resolve_segments",
    "is_missing",
    "to_number",
    "is_number",
    "iso_to_epoch_ms",
    "datetime_to_epoch_ms",
    "looks_like_iso_datetime",
    "stringify",
]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)

# Loose ISO-8601 shape check used before attempting a real parse
_ISO_DATE_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}"
    r"([T ]\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|z|[+-]\d{2}:?\d{2})?)?$"
)

# Fraction and compact-offset shapes normalised before datetime.fromisoformat
_ISO_FRACTION_RE = re.compile(r"(:\d{2})\.(\d+)")
_ISO_COMPACT_OFFSET_RE = re.compile(r"([T ].*[+-]\d{2})(\d{2})$")

_JSON_PATH_TOKEN_RE = re.compile(
    r"\[(\d+)\]|\['([^']*)'\]|\[\"([^\"]*)\"\]|([^.\[\]]+)"
)


class _Missing:
    """Sentinel for a path that does not resolve."""

    _instance: Optional["_Missing"] = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def is_missing(value: Any) -> bool:
    """Return True for the MISSING sentinel."""
    return value is MISSING


# ---------------------------------------------------------------------------
# Path resolution
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1024)
def split_path(path: str) -> Tuple[str, ...]:
    """Split a dotted record path into segments."""
    return tuple(path.split("."))


@lru_cache(maxsize=256)
def split_json_path(expr: str) -> Tuple[str, ...]:
    """Tokenise ``$.a.b[0]`` / ``a.b.0`` / ``$['a']`` into path segments."""
    text = expr.strip()
    if text.startswith("$"):
        text = text[1:]
    segments = []
    for index, quoted, dquoted, plain in _JSON_PATH_TOKEN_RE.findall(text):
        segments.append(index or quoted or dquoted or plain)
    return tuple(segments)


def resolve_segments(value: Any, segments: Sequence[str]) -> Any:
    """Walk ``segments`` into nested mappings and sequences.

    Numeric segments index into lists and tuples. Any other step through a
    non-container, or any absent key, yields MISSING.
    """
    current = value
    for segment in segments:
        if isinstance(current, Mapping):
            if segment not in current:
                return MISSING
            current = current[segment]
        elif isinstance(current, (list, tuple)) and segment.isdigit():
            idx = int(segment)
            if idx >= len(current):
                return MISSING
            current = current[idx]
        else:
            return MISSING
    return current


def resolve_path(record: Any, path: str) -> Any:
    """Resolve a dotted path against a record, returning MISSING if absent.

    Args:
        record: Raw record (normally a mapping).
        path: Dotted path such as ``data.metrics.value``.

    Returns:
        The value at the path (may be None) or MISSING.
    """
    return resolve_segments(record, split_path(path))


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------


def is_number(value: Any) -> bool:
    """True for finite ints and floats; bools are not numbers."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def to_number(value: Any) -> Union[int, float]:
    """Coerce ``value`` to a finite int or float.

    Integral numeric strings become ints. Booleans, empty strings,
    non-numeric strings and non-finite values are rejected.

    Raises:
        ValueError: If the value cannot be coerced.
    """
    if isinstance(value, bool):
        raise ValueError(f"Boolean {value!r} is not a number")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Non-finite number {value!r}")
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Empty string is not a number")
        try:
            return int(text)
        except ValueError:
            pass
        number = float(text)
        if not math.isfinite(number):
            raise ValueError(f"Non-finite number {value!r}")
        return number
    raise ValueError(f"Cannot convert {type(value).__name__} to a number")


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def datetime_to_epoch_ms(value: datetime, tz: Optional[tzinfo] = None) -> int:
    """Convert a datetime to epoch ms, attaching ``tz`` (default UTC) if naive."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz or timezone.utc)
    return (value - _EPOCH) // _ONE_MS


def looks_like_iso_datetime(text: str) -> bool:
    """Cheap shape check for ISO-8601 date or date-time strings."""
    return bool(_ISO_DATE_RE.match(text.strip()))


def iso_to_epoch_ms(value: Any, tz: Optional[tzinfo] = None) -> int:
    """Parse an ISO-8601 string (or date/datetime) to epoch milliseconds.

    Accepts a trailing ``Z``, explicit offsets and date-only values.
    Naive values are interpreted in ``tz`` (default UTC).

    Raises:
        ValueError: If the value is not a parseable ISO-8601 timestamp.
    """
    if isinstance(value, datetime):
        return datetime_to_epoch_ms(value, tz)
    if isinstance(value, date):
        return datetime_to_epoch_ms(datetime(value.year, value.month, value.day), tz)
    if not isinstance(value, str):
        raise ValueError(f"Expected ISO-8601 string, got {type(value).__name__}")
    text = value.strip()
    if not text:
        raise ValueError("Empty timestamp string")
    if text[-1] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    text = _ISO_FRACTION_RE.sub(
        lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", text, count=1,
    )
    text = _ISO_COMPACT_OFFSET_RE.sub(r"\1:\2", text)
    parsed = datetime.fromisoformat(text)
    return datetime_to_epoch_ms(parsed, tz)


# ---------------------------------------------------------------------------
# Strings
# ---------------------------------------------------------------------------


def stringify(value: Any) -> str:
    """Render a raw value as a stable string.

    ``None`` becomes the empty string, booleans are lowercase, integral
    floats drop their fractional part and containers become compact JSON.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(canonicalize(value), sort_keys=True, separators=(",", ":"))
    return str(value)
