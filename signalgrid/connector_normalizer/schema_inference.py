# -*- coding: utf-8 -*-
"""
Schema Inference Engine - SG-DATA-001: Connector Normalizer

Proposes a schema for raw connector records before any mapping rule
exists, to bootstrap connector onboarding.

Supports:
    - Flattening of nested objects into dotted paths
    - Per-path type, null and non-null counts and sample values
    - ISO-8601 string detection (typed as ``date``)
    - Timestamp field suggestion from field names (time, date, ts, *_at)
      with a fallback to date-typed fields
    - Value field suggestion among numeric, non-identifier fields
    - Series resolution from the median gap between sample timestamps

Zero-Hallucination Guarantees:
    - Suggestions are deterministic functions of the sampled records
    - Empty or non-object input yields an empty schema, never an error

Example:
    >>> from signalgrid.connector_normalizer.schema_inference import infer_schema_from_sample
    >>> schema = infer_schema_from_sample([{"timestamp": "2024-01-01T00:00:00Z", "cpu": 0.4}])
    >>> schema.suggested_timestamp_field, schema.suggested_value_field
    ('timestamp', 'cpu')

Author: SignalGrid Platform Team
Date: October 2026
PRD: SG-DATA-001 Connector Normalizer
Status: Production Ready
"""

from __future__ import annotations

import logging
import re
import statistics
import threading
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from signalgrid.connector_normalizer.config import get_config
from signalgrid.connector_normalizer.metrics import record_schema_inference
from signalgrid.connector_normalizer.models import (
    TIME_RESOLUTION_MS,
    FieldType,
    InferredField,
    InferredSchema,
    TimeResolution,
)
from signalgrid.connector_normalizer.parsing import (
    is_missing,
    iso_to_epoch_ms,
    looks_like_iso_datetime,
    resolve_path,
)

logger = logging.getLogger(__name__)

__all__ = [
    "SchemaInferenceEngine",
    "infer_schema_from_sample",
    "resolution_for_interval",
]

_IDENTIFIER_TOKENS = frozenset(("id", "uuid", "guid", "key"))
_TIME_TOKENS = frozenset(("ts", "time", "timestamp", "date", "datetime", "epoch"))
_TOKEN_SPLIT_RE = re.compile(r"[._\-\s]+")
_CAMEL_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

# Unix values below this are read as seconds, above as milliseconds
_SECONDS_CUTOFF = 100_000_000_000


def _tokens(path: str) -> List[str]:
    spaced = _CAMEL_RE.sub("_", path)
    return [t.lower() for t in _TOKEN_SPLIT_RE.split(spaced) if t]


def _classify(value: Any) -> FieldType:
    if isinstance(value, bool):
        return FieldType.BOOLEAN
    if isinstance(value, (int, float)):
        return FieldType.NUMBER
    if isinstance(value, (datetime, date)):
        return FieldType.DATE
    if isinstance(value, str):
        if looks_like_iso_datetime(value):
            try:
                iso_to_epoch_ms(value)
            except ValueError:
                return FieldType.STRING
            return FieldType.DATE
        return FieldType.STRING
    if isinstance(value, (list, tuple)):
        return FieldType.ARRAY
    if isinstance(value, Mapping):
        return FieldType.OBJECT
    return FieldType.UNKNOWN


def resolution_for_interval(interval_ms: float) -> TimeResolution:
    """Return the coarsest resolution whose width does not exceed the interval."""
    chosen = TimeResolution.MILLISECOND
    for resolution in TimeResolution:
        if TIME_RESOLUTION_MS[resolution] <= interval_ms:
            chosen = resolution
    return chosen


@dataclass
class _FieldStats:
    types: List[FieldType] = field(default_factory=list)
    present: int = 0
    nulls: int = 0
    non_null: int = 0
    samples: List[Any] = field(default_factory=list)


class SchemaInferenceEngine:
    """Infer field types and series suggestions from sample records.

    Attributes:
        _sample_size: Default number of records examined.
        _max_samples: Sample values retained per field.
        _lock: Threading lock for statistics.
        _stats: Inference statistics.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        """Initialise SchemaInferenceEngine.

        Args:
            config: Optional configuration dict. Recognised keys:
                - ``sample_size``: int (default from service config, 100)
                - ``max_sample_values``: int (default from service config, 10)
        """
        cfg = get_config()
        self._config = config or {}
        self._sample_size: int = self._config.get("sample_size", cfg.schema_sample_size)
        self._max_samples: int = self._config.get(
            "max_sample_values", cfg.max_sample_values,
        )
        self._lock = threading.Lock()
        self._stats: Dict[str, int] = {"inferences": 0, "records_sampled": 0}
        logger.info(
            "SchemaInferenceEngine initialised: sample_size=%d, max_samples=%d",
            self._sample_size, self._max_samples,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def infer(
        self,
        records: Iterable[Any],
        sample_size: Optional[int] = None,
    ) -> InferredSchema:
        """Infer a schema from the first ``sample_size`` records.

        Args:
            records: Raw records.
            sample_size: Records to examine (defaults to the engine's).

        Returns:
            InferredSchema; empty when no object records were sampled.
        """
        start = time.monotonic()
        limit = sample_size if sample_size is not None else self._sample_size
        sample: List[Any] = []
        for record in records:
            if len(sample) >= limit:
                break
            sample.append(record)
        objects = [r for r in sample if isinstance(r, Mapping)]

        collected: Dict[str, _FieldStats] = {}
        for record in objects:
            self._walk(record, "", collected)

        fields = [
            self._finalise(path, stats, len(objects))
            for path, stats in collected.items()
        ]
        timestamp_field = self._suggest_timestamp(fields)
        value_field = self._suggest_value(fields, timestamp_field)
        resolution = (
            self._infer_resolution(objects, timestamp_field)
            if timestamp_field else None
        )

        with self._lock:
            self._stats["inferences"] += 1
            self._stats["records_sampled"] += len(sample)
        record_schema_inference()
        logger.info(
            "Inferred schema from %d records: fields=%d, timestamp=%s, "
            "value=%s, resolution=%s (%.1f ms)",
            len(sample), len(fields), timestamp_field, value_field,
            resolution.value if resolution else None,
            (time.monotonic() - start) * 1000.0,
        )
        return InferredSchema(
            fields=fields,
            suggested_timestamp_field=timestamp_field,
            suggested_value_field=value_field,
            inferred_resolution=resolution,
            records_sampled=len(sample),
        )

    def get_statistics(self) -> Dict[str, int]:
        """Return a snapshot of inference statistics."""
        with self._lock:
            return dict(self._stats)

    # ------------------------------------------------------------------
    # Internal methods
    # ------------------------------------------------------------------

    def _walk(
        self,
        record: Mapping[str, Any],
        prefix: str,
        collected: Dict[str, _FieldStats],
    ) -> None:
        for key, value in record.items():
            path = f"{prefix}.{key}" if prefix else str(key)
            stats = collected.setdefault(path, _FieldStats())
            stats.present += 1
            if value is None:
                stats.nulls += 1
                continue
            stats.non_null += 1
            kind = _classify(value)
            if kind not in stats.types:
                stats.types.append(kind)
            if kind == FieldType.OBJECT:
                self._walk(value, path, collected)
            elif len(stats.samples) < self._max_samples and value not in stats.samples:
                stats.samples.append(value)

    @staticmethod
    def _finalise(path: str, stats: _FieldStats, total: int) -> InferredField:
        field_type = stats.types[0] if len(stats.types) == 1 else FieldType.UNKNOWN
        return InferredField(
            name=path,
            type=field_type,
            nullable=stats.nulls > 0 or stats.present < total,
            non_null_count=stats.non_null,
            null_count=stats.nulls,
            sample_values=list(stats.samples),
        )

    @staticmethod
    def _best(candidates: List[InferredField]) -> Optional[str]:
        best: Optional[InferredField] = None
        for candidate in candidates:
            if best is None or candidate.non_null_count > best.non_null_count:
                best = candidate
        return best.name if best else None

    def _suggest_timestamp(self, fields: List[InferredField]) -> Optional[str]:
        usable = [
            f for f in fields
            if f.non_null_count > 0
            and f.type in (FieldType.DATE, FieldType.NUMBER, FieldType.STRING)
        ]
        by_name = []
        for f in usable:
            leaf = f.name.rsplit(".", 1)[-1].lower()
            if (
                "time" in leaf or "date" in leaf or leaf == "ts"
                or leaf.endswith("_ts") or leaf.endswith("_at")
            ):
                by_name.append(f)
        if by_name:
            return self._best(by_name)
        return self._best([f for f in usable if f.type == FieldType.DATE])

    def _suggest_value(
        self,
        fields: List[InferredField],
        timestamp_field: Optional[str],
    ) -> Optional[str]:
        candidates = []
        for f in fields:
            if f.type != FieldType.NUMBER or f.name == timestamp_field:
                continue
            tokens = _tokens(f.name)
            if any(t in _IDENTIFIER_TOKENS or t in _TIME_TOKENS for t in tokens):
                continue
            if any("time" in t or "date" in t for t in tokens):
                continue
            candidates.append(f)
        return self._best(candidates)

    @staticmethod
    def _infer_resolution(
        records: List[Mapping[str, Any]],
        timestamp_field: str,
    ) -> Optional[TimeResolution]:
        stamps = set()
        for record in records:
            raw = resolve_path(record, timestamp_field)
            if is_missing(raw) or raw is None or isinstance(raw, bool):
                continue
            try:
                if isinstance(raw, (int, float)):
                    stamps.add(int(raw * 1000 if abs(raw) < _SECONDS_CUTOFF else raw))
                else:
                    stamps.add(iso_to_epoch_ms(raw))
            except (ValueError, OverflowError):
                continue
        ordered = sorted(stamps)
        gaps = [b - a for a, b in zip(ordered, ordered[1:])]
        if not gaps:
            return None
        return resolution_for_interval(statistics.median_low(gaps))


def infer_schema_from_sample(
    records: Iterable[Any],
    sample_size: Optional[int] = None,
) -> InferredSchema:
    """Infer a schema from sample records with a default engine.

    Args:
        records: Raw records.
        sample_size: Records to examine (default from configuration).

    Returns:
        InferredSchema.
    """
    return SchemaInferenceEngine().infer(records, sample_size=sample_size)
