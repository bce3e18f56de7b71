# -*- coding: utf-8 -*-
"""
Connector Normalizer Error Taxonomy - SG-DATA-001: Connector Normalizer

Stable, machine-readable error codes shared by every connector in the
platform plus the exception hierarchy raised at the configuration layer.

Data failures inside a normalization run are never raised; they are
reported as field diagnostics carrying one of the ``ErrorCode`` values
below. Exceptions are reserved for invalid configuration (e.g. a mapping
rule that fails validation) and for failures inside a single transform,
which the field mapping evaluator converts into diagnostics.

Code groups:
    - CONN_1xxx: authentication
    - CONN_2xxx: connection
    - CONN_3xxx: rate limiting
    - CONN_4xxx: data
    - CONN_5xxx: normalization
    - CONN_6xxx: pagination

Author: SignalGrid Platform Team
Date: October 2026
PRD: SG-DATA-001 Connector Normalizer
Status: Production Ready
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

__all__ = [
    "ErrorCode",
    "Severity",
    "ERROR_HINTS",
    "NormalizerError",
    "InvalidMappingRuleError",
    "MappingRuleNotFoundError",
    "TransformError",
]


# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------


class ErrorCode(str, Enum):
    """Connector error codes. Values are part of the external contract."""

    # Authentication
    AUTH_FAILED = "CONN_1001"
    AUTH_EXPIRED = "CONN_1002"
    AUTH_INVALID_CREDENTIALS = "CONN_1003"
    AUTH_INSUFFICIENT_PERMISSIONS = "CONN_1004"

    # Connection
    CONNECTION_FAILED = "CONN_2001"
    CONNECTION_TIMEOUT = "CONN_2002"
    CONNECTION_REFUSED = "CONN_2003"
    SSL_ERROR = "CONN_2004"

    # Rate limiting
    RATE_LIMITED = "CONN_3001"
    QUOTA_EXCEEDED = "CONN_3002"
    THROTTLED = "CONN_3003"

    # Data
    INVALID_RESPONSE = "CONN_4001"
    SCHEMA_MISMATCH = "CONN_4002"
    MISSING_REQUIRED_FIELD = "CONN_4003"
    TYPE_COERCION_FAILED = "CONN_4004"
    VALUE_OUT_OF_RANGE = "CONN_4005"
    DUPLICATE_RECORD = "CONN_4006"

    # Normalization
    NORMALIZATION_FAILED = "CONN_5001"
    MAPPING_NOT_FOUND = "CONN_5002"
    TIMESTAMP_PARSE_FAILED = "CONN_5003"
    VALUE_PARSE_FAILED = "CONN_5004"
    INVALID_MAPPING_RULE = "CONN_5005"

    # Pagination
    PAGINATION_ERROR = "CONN_6001"
    CURSOR_INVALID = "CONN_6002"
    PAGE_SIZE_EXCEEDED = "CONN_6003"

    @property
    def category(self) -> str:
        """Return the code group name (``auth``, ``data``, ...)."""
        return _CATEGORIES[self.value[5]]


_CATEGORIES: Dict[str, str] = {
    "1": "auth",
    "2": "connection",
    "3": "rate_limit",
    "4": "data",
    "5": "normalization",
    "6": "pagination",
}


class Severity(str, Enum):
    """Diagnostic severity. Any ``error`` forces an unsuccessful result."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


# Default remediation hints attached to diagnostics when the caller gives none
ERROR_HINTS: Dict[ErrorCode, str] = {
    ErrorCode.INVALID_RESPONSE: "Each raw record must be a JSON object",
    ErrorCode.SCHEMA_MISMATCH: (
        "Check the validation pattern or allowed values against the source data"
    ),
    ErrorCode.MISSING_REQUIRED_FIELD: (
        "Check the source path in the mapping rule against the raw payload"
    ),
    ErrorCode.TYPE_COERCION_FAILED: (
        "Adjust the transform or validation type for this field"
    ),
    ErrorCode.VALUE_OUT_OF_RANGE: (
        "Widen the validation bounds or scale the value with a transform"
    ),
    ErrorCode.NORMALIZATION_FAILED: (
        "Inspect the record for values the mapping rule does not expect"
    ),
    ErrorCode.MAPPING_NOT_FOUND: (
        "Register the rule using register_rule() before normalizing"
    ),
    ErrorCode.TIMESTAMP_PARSE_FAILED: (
        "Verify the timestamp format (ISO8601, unix_seconds, unix_ms)"
    ),
    ErrorCode.VALUE_PARSE_FAILED: (
        "Map a scalar source field or add a transform that yields one"
    ),
    ErrorCode.DUPLICATE_RECORD: (
        "The record repeats the dedupe key of an earlier record in the batch"
    ),
}


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class NormalizerError(Exception):
    """
    Base exception for connector normalizer errors

    Carries structured error information:
    - message: Human-readable error description
    - code: ErrorCode classifying the failure
    - context: Additional error context
    - hints: Remediation hints for the operator
    """

    default_code: ErrorCode = ErrorCode.NORMALIZATION_FAILED

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        hints: Optional[List[str]] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.context = context or {}
        self.hints = list(hints or [])
        super().__init__(f"[{self.code.value}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization"""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code.value,
            "message": self.message,
            "context": self.context,
            "hints": self.hints,
        }


class InvalidMappingRuleError(NormalizerError):
    """
    Mapping rule failed validation

    Raised by the registry and the rule factories. ``errors`` holds one
    ``"path: message"`` entry per problem found.
    """

    default_code = ErrorCode.INVALID_MAPPING_RULE

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.errors = list(errors or [])
        super().__init__(message, context=context, hints=self.errors)


class MappingRuleNotFoundError(NormalizerError):
    """Raised by registry lookups that require an existing rule."""

    default_code = ErrorCode.MAPPING_NOT_FOUND


class TransformError(NormalizerError):
    """
    A single field transform failed

    Internal to the field mapping evaluator, which turns it into a
    TYPE_COERCION_FAILED diagnostic for the affected field only.
    """

    default_code = ErrorCode.TYPE_COERCION_FAILED
