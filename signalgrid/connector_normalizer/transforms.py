# -*- coding: utf-8 -*-
"""
Transform Library - SG-DATA-001: Connector Normalizer

Pure, per-field value transforms applied by the field mapping evaluator.

Supports:
    - String casing and trimming (lowercase, uppercase, trim)
    - Strict parsing (parse_number, parse_boolean, parse_date)
    - Arithmetic (multiply, divide, add, subtract)
    - Extraction (regex_extract, json_path)
    - Rendering (template with {{value}} and {{record.path}} slots)
    - Lookup tables, coalescing across record paths, and defaults

Every ``TransformKind`` maps to exactly one function in a dispatch table.
Coverage of the table is checked when the module is imported, so a new
kind without an implementation fails loudly at import time instead of
reaching a runtime fallback.

Zero-Hallucination Guarantees:
    - All transforms are deterministic functions of (value, params, record)
    - No transform mutates its inputs
    - Failures raise TransformError and never return a guessed value

Example:
    >>> from signalgrid.connector_normalizer.transforms import apply_transform
    >>> from signalgrid.connector_normalizer.models import TransformKind, TransformParams
    >>> apply_transform(TransformKind.MULTIPLY, "5.5", TransformParams(multiplier=1000))
    5500.0

Author: SignalGrid Platform Team
Date: October 2026
PRD: SG-DATA-001 Connector Normalizer
Status: Production Ready
"""

from __future__ import annotations

import json
import logging
import math
import re
from datetime import date, datetime
from functools import lru_cache
from typing import Any, Callable, Dict, Mapping, Optional, Pattern

from signalgrid.connector_normalizer.config import get_config
from signalgrid.connector_normalizer.errors import TransformError
from signalgrid.connector_normalizer.models import (
    TransformKind,
    TransformParams,
    resolve_timezone,
)
from signalgrid.connector_normalizer.parsing import (
    datetime_to_epoch_ms,
    is_missing,
    iso_to_epoch_ms,
    resolve_path,
    resolve_segments,
    split_json_path,
    stringify,
    to_number,
)

logger = logging.getLogger(__name__)

__all__ = [
    "TransformFn",
    "apply_transform",
    "supported_transforms",
]

TransformFn = Callable[[Any, TransformParams, Mapping[str, Any]], Any]

_TRUE_STRINGS = frozenset(("true", "1", "yes", "on"))
_FALSE_STRINGS = frozenset(("false", "0", "no", "off"))

_TEMPLATE_SLOT_RE = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")


@lru_cache(maxsize=256)
def _compile(pattern: str) -> Pattern[str]:
    return re.compile(pattern)


def _number(value: Any, kind: TransformKind) -> Any:
    try:
        return to_number(value)
    except ValueError as exc:
        raise TransformError(
            f"{kind.value} requires a numeric input: {exc}",
            context={"value": value},
        ) from exc


def _finite(result: Any, kind: TransformKind) -> Any:
    if isinstance(result, float) and not math.isfinite(result):
        raise TransformError(f"{kind.value} produced a non-finite result")
    return result


# ---------------------------------------------------------------------------
# Transform implementations
# ---------------------------------------------------------------------------


def _none(value: Any, params: TransformParams, record: Mapping[str, Any]) -> Any:
    return value


def _lowercase(value: Any, params: TransformParams, record: Mapping[str, Any]) -> Any:
    return stringify(value).lower()


def _uppercase(value: Any, params: TransformParams, record: Mapping[str, Any]) -> Any:
    return stringify(value).upper()


def _trim(value: Any, params: TransformParams, record: Mapping[str, Any]) -> Any:
    return stringify(value).strip()


def _parse_number(value: Any, params: TransformParams, record: Mapping[str, Any]) -> Any:
    return _number(value, TransformKind.PARSE_NUMBER)


def _parse_boolean(value: Any, params: TransformParams, record: Mapping[str, Any]) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    text = stringify(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise TransformError(
        f"Cannot parse {value!r} as a boolean", context={"value": value},
    )


def _parse_date(value: Any, params: TransformParams, record: Mapping[str, Any]) -> Any:
    tz = resolve_timezone(params.timezone or get_config().default_timezone)
    try:
        if isinstance(value, (datetime, date)):
            return iso_to_epoch_ms(value, tz)
        if not isinstance(value, str):
            raise ValueError(f"expected a date string, got {type(value).__name__}")
        if params.date_format:
            parsed = datetime.strptime(value.strip(), params.date_format)
            return datetime_to_epoch_ms(parsed, tz)
        return iso_to_epoch_ms(value, tz)
    except ValueError as exc:
        raise TransformError(
            f"Cannot parse {value!r} as a date: {exc}", context={"value": value},
        ) from exc


def _multiply(value: Any, params: TransformParams, record: Mapping[str, Any]) -> Any:
    factor = 1 if params.multiplier is None else params.multiplier
    return _finite(_number(value, TransformKind.MULTIPLY) * factor, TransformKind.MULTIPLY)


def _divide(value: Any, params: TransformParams, record: Mapping[str, Any]) -> Any:
    divisor = 1 if params.divisor is None else params.divisor
    if divisor == 0:
        raise TransformError("divide by zero", context={"value": value})
    return _finite(_number(value, TransformKind.DIVIDE) / divisor, TransformKind.DIVIDE)


def _add(value: Any, params: TransformParams, record: Mapping[str, Any]) -> Any:
    addend = 0 if params.addend is None else params.addend
    return _finite(_number(value, TransformKind.ADD) + addend, TransformKind.ADD)


def _subtract(value: Any, params: TransformParams, record: Mapping[str, Any]) -> Any:
    addend = 0 if params.addend is None else params.addend
    return _finite(_number(value, TransformKind.SUBTRACT) - addend, TransformKind.SUBTRACT)


def _regex_extract(value: Any, params: TransformParams, record: Mapping[str, Any]) -> Any:
    if not params.pattern:
        raise TransformError("regex_extract requires a pattern")
    match = _compile(params.pattern).search(stringify(value))
    if match is None:
        return None
    if params.replacement is not None:
        return match.expand(params.replacement)
    if match.re.groups:
        return match.group(1)
    return match.group(0)


def _json_path(value: Any, params: TransformParams, record: Mapping[str, Any]) -> Any:
    if not params.path:
        raise TransformError("json_path requires a path")
    document = value
    if isinstance(value, str):
        try:
            document = json.loads(value)
        except ValueError as exc:
            raise TransformError(
                f"json_path input is not valid JSON: {exc}", context={"value": value},
            ) from exc
    found = resolve_segments(document, split_json_path(params.path))
    return None if is_missing(found) else found


def _template(value: Any, params: TransformParams, record: Mapping[str, Any]) -> Any:
    if params.template is None:
        raise TransformError("template requires a template string")

    def _slot(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name == "value":
            return stringify(value)
        found = resolve_path(record, name)
        return "" if is_missing(found) else stringify(found)

    return _TEMPLATE_SLOT_RE.sub(_slot, params.template)


def _lookup(value: Any, params: TransformParams, record: Mapping[str, Any]) -> Any:
    if params.lookup_table is None:
        raise TransformError("lookup requires a lookup_table")
    key = stringify(value)
    if key in params.lookup_table:
        return params.lookup_table[key]
    return value


def _coalesce(value: Any, params: TransformParams, record: Mapping[str, Any]) -> Any:
    if value is not None:
        return value
    for path in params.coalesce_fields:
        candidate = resolve_path(record, path)
        if not is_missing(candidate) and candidate is not None:
            return candidate
    return params.default_value


def _default(value: Any, params: TransformParams, record: Mapping[str, Any]) -> Any:
    return params.default_value if value is None else value


# ---------------------------------------------------------------------------
# Dispatch table
# ---------------------------------------------------------------------------

_TRANSFORMS: Dict[TransformKind, TransformFn] = {
    TransformKind.NONE: _none,
    TransformKind.LOWERCASE: _lowercase,
    TransformKind.UPPERCASE: _uppercase,
    TransformKind.TRIM: _trim,
    TransformKind.PARSE_NUMBER: _parse_number,
    TransformKind.PARSE_BOOLEAN: _parse_boolean,
    TransformKind.PARSE_DATE: _parse_date,
    TransformKind.MULTIPLY: _multiply,
    TransformKind.DIVIDE: _divide,
    TransformKind.ADD: _add,
    TransformKind.SUBTRACT: _subtract,
    TransformKind.REGEX_EXTRACT: _regex_extract,
    TransformKind.JSON_PATH: _json_path,
    TransformKind.TEMPLATE: _template,
    TransformKind.LOOKUP: _lookup,
    TransformKind.COALESCE: _coalesce,
    TransformKind.DEFAULT: _default,
}

_unimplemented = set(TransformKind) - set(_TRANSFORMS)
if _unimplemented:
    raise RuntimeError(
        "Transforms without an implementation: "
        + ", ".join(sorted(kind.value for kind in _unimplemented))
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def supported_transforms() -> list:
    """Return the transform kinds the library implements, in enum order."""
    return [kind for kind in TransformKind if kind in _TRANSFORMS]


def apply_transform(
    kind: TransformKind,
    value: Any,
    params: Optional[TransformParams] = None,
    record: Optional[Mapping[str, Any]] = None,
) -> Any:
    """Apply one transform to a value.

    Args:
        kind: Transform to apply.
        value: Raw value resolved from the record.
        params: Transform parameters (defaults when omitted).
        record: Whole raw record, used by template and coalesce.

    Returns:
        Transformed value.

    Raises:
        TransformError: If the transform cannot be applied to the value.
    """
    fn = _TRANSFORMS[TransformKind(kind)]
    try:
        return fn(value, params or TransformParams(), record or {})
    except TransformError:
        raise
    except (ArithmeticError, ValueError, TypeError, re.error) as exc:
        raise TransformError(
            f"{TransformKind(kind).value} failed: {exc}", context={"value": value},
        ) from exc
