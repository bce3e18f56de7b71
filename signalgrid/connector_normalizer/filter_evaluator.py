# -*- coding: utf-8 -*-
"""
Filter Evaluator - SG-DATA-001: Connector Normalizer

Decides whether a raw record passes all of a rule's filter conditions.

Operators:
    - eq / ne: numeric-aware equality (1 == 1.0, booleans only equal booleans)
    - gt / lt / gte / lte: numeric comparison; non-numeric operands exclude
    - in: membership in a list operand
    - contains: substring test on the stringified field and operand
    - regex: ``re.search`` against the stringified field

Absent fields compare as None. Compiled regular expressions are cached
process-wide.

Author: SignalGrid Platform Team
Date: October 2026
PRD: SG-DATA-001 Connector Normalizer
Status: Production Ready
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Pattern

from signalgrid.connector_normalizer.field_mapper import values_equal
from signalgrid.connector_normalizer.models import FilterCondition, FilterOperator
from signalgrid.connector_normalizer.parsing import (
    is_missing,
    resolve_path,
    stringify,
    to_number,
)

logger = logging.getLogger(__name__)

__all__ = [
    "evaluate_condition",
    "passes_filters",
]


@lru_cache(maxsize=512)
def _compile(pattern: str) -> Pattern[str]:
    return re.compile(pattern)


def _as_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(to_number(value))
    except (ValueError, OverflowError):
        return None


def _ordered(test: Callable[[float, float], bool]) -> Callable[[Any, Any], bool]:
    def _compare(actual: Any, expected: Any) -> bool:
        left = _as_float(actual)
        right = _as_float(expected)
        if left is None or right is None:
            return False
        return test(left, right)

    return _compare


def _contains(actual: Any, expected: Any) -> bool:
    if actual is None:
        return False
    return stringify(expected) in stringify(actual)


def _in(actual: Any, expected: Any) -> bool:
    if not isinstance(expected, (list, tuple, set, frozenset)):
        return False
    return any(values_equal(actual, candidate) for candidate in expected)


def _regex(actual: Any, expected: Any) -> bool:
    if actual is None or not isinstance(expected, str):
        return False
    return _compile(expected).search(stringify(actual)) is not None


_OPERATORS: Dict[FilterOperator, Callable[[Any, Any], bool]] = {
    FilterOperator.EQ: values_equal,
    FilterOperator.NE: lambda a, e: not values_equal(a, e),
    FilterOperator.GT: _ordered(lambda a, e: a > e),
    FilterOperator.LT: _ordered(lambda a, e: a < e),
    FilterOperator.GTE: _ordered(lambda a, e: a >= e),
    FilterOperator.LTE: _ordered(lambda a, e: a <= e),
    FilterOperator.IN: _in,
    FilterOperator.CONTAINS: _contains,
    FilterOperator.REGEX: _regex,
}

_uncovered = set(FilterOperator) - set(_OPERATORS)
if _uncovered:
    raise RuntimeError(
        "Filter operators without an implementation: "
        + ", ".join(sorted(op.value for op in _uncovered))
    )


def evaluate_condition(record: Mapping[str, Any], condition: FilterCondition) -> bool:
    """Return True if the record satisfies one filter condition."""
    actual = resolve_path(record, condition.field)
    if is_missing(actual):
        actual = None
    return _OPERATORS[condition.operator](actual, condition.value)


def passes_filters(
    record: Mapping[str, Any],
    conditions: Iterable[FilterCondition],
) -> bool:
    """Return True if the record satisfies every condition (empty passes)."""
    return all(evaluate_condition(record, condition) for condition in conditions)
