# -*- coding: utf-8 -*-
"""
Timestamp Resolver - SG-DATA-001: Connector Normalizer

Extracts a record's timestamp and converts it to integer epoch
milliseconds.

Supports:
    - ISO8601 strings (trailing Z, explicit offsets, date-only values);
      naive values are read in the mapping's timezone
    - unix_seconds (scaled by 1000) and unix_ms (passed through)
    - Numeric strings for the unix formats
    - Numbers under ISO8601, read as epoch milliseconds

A missing timestamp is a hard failure for the record
(MISSING_REQUIRED_FIELD); an unparseable or non-finite one yields
TIMESTAMP_PARSE_FAILED.

Author: SignalGrid Platform Team
Date: October 2026
PRD: SG-DATA-001 Connector Normalizer
Status: Production Ready
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Any, Mapping, Optional

from signalgrid.connector_normalizer.errors import ERROR_HINTS, ErrorCode
from signalgrid.connector_normalizer.models import (
    FieldDiagnostic,
    TimestampFormat,
    TimestampMapping,
    resolve_timezone,
)
from signalgrid.connector_normalizer.parsing import (
    is_missing,
    iso_to_epoch_ms,
    resolve_path,
    to_number,
)

logger = logging.getLogger(__name__)

__all__ = [
    "TimestampOutcome",
    "TimestampResolver",
    "parse_timestamp",
]


def parse_timestamp(
    raw: Any,
    fmt: TimestampFormat,
    tz: Optional[tzinfo] = None,
) -> int:
    """Convert a raw timestamp to epoch milliseconds.

    Args:
        raw: Raw timestamp value.
        fmt: Encoding of the raw value.
        tz: Zone for naive ISO-8601 values (default UTC).

    Returns:
        Integer epoch milliseconds.

    Raises:
        ValueError: If the value cannot be parsed or is not finite.
    """
    if isinstance(raw, bool):
        raise ValueError("boolean is not a timestamp")
    fmt = TimestampFormat(fmt)
    if fmt == TimestampFormat.UNIX_SECONDS:
        millis: Any = to_number(raw) * 1000
    elif fmt == TimestampFormat.UNIX_MS:
        millis = to_number(raw)
    elif isinstance(raw, (int, float)):
        millis = raw
    elif isinstance(raw, (str, datetime, date)):
        millis = iso_to_epoch_ms(raw, tz)
    else:
        raise ValueError(f"unsupported timestamp type {type(raw).__name__}")
    if isinstance(millis, float):
        if not math.isfinite(millis):
            raise ValueError(f"non-finite timestamp {raw!r}")
        return int(round(millis))
    return int(millis)


@dataclass(frozen=True)
class TimestampOutcome:
    """Result of resolving one record's timestamp."""

    success: bool
    timestamp: Optional[int] = None
    diagnostic: Optional[FieldDiagnostic] = None


class TimestampResolver:
    """Resolve record timestamps according to a TimestampMapping."""

    def resolve(
        self,
        record: Mapping[str, Any],
        mapping: TimestampMapping,
        index: int,
    ) -> TimestampOutcome:
        """Resolve and parse the timestamp of one record.

        Args:
            record: Raw record.
            mapping: Timestamp location and encoding.
            index: Position of the record in its batch.

        Returns:
            TimestampOutcome with epoch ms or a diagnostic.
        """
        field_path = f"[{index}].{mapping.source_path}"
        raw = resolve_path(record, mapping.source_path)
        if is_missing(raw) or raw is None:
            return TimestampOutcome(
                success=False,
                diagnostic=FieldDiagnostic(
                    field_path=field_path,
                    code=ErrorCode.MISSING_REQUIRED_FIELD,
                    message=f"Missing timestamp field: {mapping.source_path}",
                    expected=mapping.format.value,
                    hint=ERROR_HINTS[ErrorCode.MISSING_REQUIRED_FIELD],
                ),
            )
        try:
            timestamp = parse_timestamp(
                raw, mapping.format, resolve_timezone(mapping.timezone),
            )
        except (ValueError, OverflowError) as exc:
            logger.debug("Timestamp parse failed at %s: %s", field_path, exc)
            return TimestampOutcome(
                success=False,
                diagnostic=FieldDiagnostic(
                    field_path=field_path,
                    code=ErrorCode.TIMESTAMP_PARSE_FAILED,
                    message=f"Failed to parse timestamp: {raw}",
                    original_value=raw,
                    expected=mapping.format.value,
                    hint=ERROR_HINTS[ErrorCode.TIMESTAMP_PARSE_FAILED],
                ),
            )
        return TimestampOutcome(success=True, timestamp=timestamp)
