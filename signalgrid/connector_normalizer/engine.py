# -*- coding: utf-8 -*-
"""
Normalization Engine - SG-DATA-001: Connector Normalizer

Orchestrates the per-record pipeline that turns raw connector records
into canonical, timestamp-ordered points.

Pipeline (per record, in input order):
    1. Reject non-object records (INVALID_RESPONSE)
    2. Drop records failing the rule's filters (no diagnostic)
    3. Skip later duplicates of the rule's dedupe keys (info diagnostic)
    4. Resolve the timestamp; failure rejects the record
    5. Map the primary value; failure rejects the record only if required
    6. Map additional values, labels, tags and metadata; failures only
       omit the affected field
    7. Build the canonical point with processing metadata

After the loop points are stable-sorted by timestamp and the input and
output content hashes are computed.

Zero-Hallucination Guarantees:
    - Same records, rule and context always yield the same points,
      diagnostics and hashes
    - Inputs are never mutated
    - No exception escapes ``normalize``; every failure is a diagnostic

Example:
    >>> from signalgrid.connector_normalizer.engine import NormalizationEngine
    >>> engine = NormalizationEngine()
    >>> engine.register_rule(rule)
    >>> result = engine.normalize(records, rule.id, context)
    >>> print(result.success, result.stats.output_points)

Author: SignalGrid Platform Team
Date: October 2026
PRD: SG-DATA-001 Connector Normalizer
Status: Production Ready
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from signalgrid.connector_normalizer.config import ConnectorNormalizerConfig, get_config
from signalgrid.connector_normalizer.errors import ERROR_HINTS, ErrorCode, Severity
from signalgrid.connector_normalizer.field_mapper import FieldMappingEvaluator
from signalgrid.connector_normalizer.filter_evaluator import passes_filters
from signalgrid.connector_normalizer.metrics import (
    record_diagnostic,
    record_normalize_run,
    record_records,
)
from signalgrid.connector_normalizer.models import (
    CanonicalPoint,
    FieldDiagnostic,
    FieldMapping,
    MappingRule,
    NormalizationContext,
    NormalizationResult,
    NormalizationStats,
    ProcessingMetadata,
)
from signalgrid.connector_normalizer.parsing import (
    is_missing,
    is_number,
    resolve_path,
    stringify,
)
from signalgrid.connector_normalizer.provenance import canonical_json, compute_content_hash
from signalgrid.connector_normalizer.registry import MappingRuleRegistry, RuleInput
from signalgrid.connector_normalizer.timestamp_resolver import TimestampResolver

logger = logging.getLogger(__name__)

__all__ = ["NormalizationEngine"]

# Metric label for runs naming an unregistered rule; caller ids are unbounded
_UNKNOWN_RULE_LABEL = "unknown"


@dataclass
class _RunState:
    """Mutable accumulators for a single normalize call."""

    points: List[CanonicalPoint] = field(default_factory=list)
    diagnostics: List[FieldDiagnostic] = field(default_factory=list)
    skipped: int = 0
    filtered: int = 0
    duplicates: int = 0
    seen_keys: Set[Tuple[str, ...]] = field(default_factory=set)

    def add(self, diagnostic: FieldDiagnostic) -> None:
        self.diagnostics.append(diagnostic)


def _downgrade(diagnostic: FieldDiagnostic) -> FieldDiagnostic:
    return diagnostic.model_copy(update={"severity": Severity.WARNING})


def _is_scalar(value: Any) -> bool:
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, (bool, int, str))


class NormalizationEngine:
    """Normalize raw connector records with registered mapping rules.

    Attributes:
        _registry: Rule registry consulted once per call.
        _evaluator: Field mapping evaluator.
        _timestamps: Timestamp resolver.
        _lock: Threading lock for statistics.
        _stats: Engine statistics.

    Example:
        >>> engine = NormalizationEngine()
        >>> engine.register_rule(rule)
        >>> result = engine.normalize(records, "rule-1", context)
    """

    def __init__(
        self,
        registry: Optional[MappingRuleRegistry] = None,
        config: Optional[ConnectorNormalizerConfig] = None,
    ) -> None:
        """Initialise NormalizationEngine.

        Args:
            registry: Rule registry; a private one is created when omitted.
            config: Configuration for hashing and date defaults; the global
                configuration is read on every call when omitted.
        """
        self._config = config
        self._registry = registry if registry is not None else MappingRuleRegistry()
        self._evaluator = FieldMappingEvaluator(config)
        self._timestamps = TimestampResolver()
        self._lock = threading.Lock()
        self._stats: Dict[str, int] = {
            "runs": 0,
            "records_in": 0,
            "points_out": 0,
            "records_skipped": 0,
            "rule_not_found": 0,
        }
        logger.info("NormalizationEngine initialised: rules=%d", len(self._registry))

    @property
    def registry(self) -> MappingRuleRegistry:
        """The rule registry this engine reads from."""
        return self._registry

    @property
    def config(self) -> ConnectorNormalizerConfig:
        """The configuration in effect for this engine."""
        return self._config or get_config()

    # ------------------------------------------------------------------
    # Rule management
    # ------------------------------------------------------------------

    def register_rule(self, rule: RuleInput) -> MappingRule:
        """Register or replace a rule in the engine's registry."""
        return self._registry.register_rule(rule)

    def get_rule(self, rule_id: str) -> Optional[MappingRule]:
        """Return the registered rule or None."""
        return self._registry.get_rule(rule_id)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def normalize(
        self,
        records: Iterable[Any],
        rule_id: str,
        context: NormalizationContext,
    ) -> NormalizationResult:
        """Normalize a batch of raw records.

        Args:
            records: Raw records as fetched from the source.
            rule_id: Identifier of a registered mapping rule.
            context: Batch identity stamped onto every point.

        Returns:
            NormalizationResult with sorted points, diagnostics, statistics
            and content hashes.
        """
        start = time.monotonic()
        batch = list(records)
        algorithm = self.config.hash_algorithm
        input_hash = compute_content_hash(batch, algorithm)
        rule = self._registry.get_rule(rule_id)

        if rule is None:
            return self._rule_not_found(batch, rule_id, input_hash, algorithm, start)

        run = _RunState()
        for index, record in enumerate(batch):
            try:
                point = self._process_record(record, index, rule, context, run)
            except Exception as exc:  # noqa: BLE001
                logger.exception(
                    "Unexpected failure normalizing record %d with rule %s",
                    index, rule.id,
                )
                run.add(FieldDiagnostic(
                    field_path=f"[{index}]",
                    code=ErrorCode.NORMALIZATION_FAILED,
                    message=f"Unexpected error: {exc}",
                    hint=ERROR_HINTS[ErrorCode.NORMALIZATION_FAILED],
                ))
                point = None
            if point is None:
                run.skipped += 1
            else:
                run.points.append(point)

        run.points.sort(key=lambda p: p.timestamp)
        output_hash = compute_content_hash(run.points, algorithm)
        result = self._build_result(
            batch, rule, run, input_hash, output_hash, start,
        )

        self._record_run(result, rule.id, run, start)
        return result

    def get_statistics(self) -> Dict[str, int]:
        """Return a snapshot of engine statistics."""
        with self._lock:
            return dict(self._stats)

    # ------------------------------------------------------------------
    # Internal methods
    # ------------------------------------------------------------------

    def _process_record(
        self,
        record: Any,
        index: int,
        rule: MappingRule,
        context: NormalizationContext,
        run: _RunState,
    ) -> Optional[CanonicalPoint]:
        """Run one record through the pipeline; None means skipped."""
        if not isinstance(record, Mapping):
            run.add(FieldDiagnostic(
                field_path=f"[{index}]",
                code=ErrorCode.INVALID_RESPONSE,
                message="Record is not an object",
                original_value=record if _is_scalar(record) or record is None else stringify(record),
                expected="object",
                hint=ERROR_HINTS[ErrorCode.INVALID_RESPONSE],
            ))
            return None

        if rule.filters and not passes_filters(record, rule.filters):
            run.filtered += 1
            logger.debug("Record %d excluded by filters of rule %s", index, rule.id)
            return None

        dedupe_key: Optional[Tuple[str, ...]] = None
        if rule.dedupe_keys:
            dedupe_key = self._dedupe_key(record, rule.dedupe_keys)
            if dedupe_key in run.seen_keys:
                run.duplicates += 1
                run.add(FieldDiagnostic(
                    field_path=f"[{index}]",
                    code=ErrorCode.DUPLICATE_RECORD,
                    message=(
                        "Duplicate record for keys "
                        + ", ".join(rule.dedupe_keys)
                    ),
                    hint=ERROR_HINTS[ErrorCode.DUPLICATE_RECORD],
                    severity=Severity.INFO,
                ))
                return None

        ts = self._timestamps.resolve(record, rule.timestamp_mapping, index)
        if not ts.success:
            run.add(ts.diagnostic)  # type: ignore[arg-type]
            return None

        value = self._map_primary_value(record, rule.value_mapping, index, run)
        if value is _REJECT:
            return None

        additional_values = self._map_additional_values(
            record, rule.additional_value_mappings, index, run,
        )
        tags = self._map_strings(record, rule.label_mappings, index, run)
        tags.update(self._map_strings(record, rule.tag_mappings, index, run))
        metadata = self._map_metadata(record, rule.metadata_mappings, index, run)

        if dedupe_key is not None:
            run.seen_keys.add(dedupe_key)

        return CanonicalPoint(
            timestamp=ts.timestamp,
            value=value,
            additional_values=additional_values or None,
            tags=tags or None,
            metadata=metadata or None,
            processing_metadata=ProcessingMetadata(
                source_connector_id=context.connector_id,
                ingested_at=context.ingested_at,
                batch_id=context.batch_id,
            ),
        )

    @staticmethod
    def _dedupe_key(record: Mapping[str, Any], paths: Sequence[str]) -> Tuple[str, ...]:
        parts = []
        for path in paths:
            found = resolve_path(record, path)
            parts.append(canonical_json(None if is_missing(found) else found))
        return tuple(parts)

    def _map_primary_value(
        self,
        record: Mapping[str, Any],
        mapping: FieldMapping,
        index: int,
        run: _RunState,
    ) -> Any:
        """Return the mapped primary value, or _REJECT to skip the record."""
        outcome = self._evaluator.evaluate(record, mapping, index)
        if not outcome.success:
            if mapping.required:
                run.add(outcome.diagnostic)  # type: ignore[arg-type]
                return _REJECT
            run.add(_downgrade(outcome.diagnostic))  # type: ignore[arg-type]
            return None

        value = outcome.value
        if value is None or _is_scalar(value):
            return value

        diagnostic = FieldDiagnostic(
            field_path=f"[{index}].{mapping.source_path}",
            code=ErrorCode.VALUE_PARSE_FAILED,
            message=f"Expected a scalar value, got {type(value).__name__}",
            original_value=stringify(value),
            expected="number, boolean or string",
            hint=ERROR_HINTS[ErrorCode.VALUE_PARSE_FAILED],
        )
        if mapping.required:
            run.add(diagnostic)
            return _REJECT
        run.add(_downgrade(diagnostic))
        return None

    def _map_additional_values(
        self,
        record: Mapping[str, Any],
        mappings: Sequence[FieldMapping],
        index: int,
        run: _RunState,
    ) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for mapping in mappings:
            outcome = self._evaluator.evaluate(record, mapping, index)
            if not outcome.success:
                run.add(outcome.diagnostic)  # type: ignore[arg-type]
            elif outcome.value is None:
                continue
            elif is_number(outcome.value):
                values[mapping.target_field] = outcome.value
            else:
                run.add(FieldDiagnostic(
                    field_path=f"[{index}].{mapping.source_path}",
                    code=ErrorCode.VALUE_PARSE_FAILED,
                    message=(
                        f"Additional value '{mapping.target_field}' is not numeric"
                    ),
                    original_value=stringify(outcome.value),
                    expected="number",
                    hint=ERROR_HINTS[ErrorCode.VALUE_PARSE_FAILED],
                    severity=Severity.WARNING,
                ))
        return values

    def _map_strings(
        self,
        record: Mapping[str, Any],
        mappings: Sequence[FieldMapping],
        index: int,
        run: _RunState,
    ) -> Dict[str, str]:
        values: Dict[str, str] = {}
        for mapping in mappings:
            outcome = self._evaluator.evaluate(record, mapping, index)
            if not outcome.success:
                run.add(outcome.diagnostic)  # type: ignore[arg-type]
            elif outcome.value is not None:
                values[mapping.target_field] = stringify(outcome.value)
        return values

    def _map_metadata(
        self,
        record: Mapping[str, Any],
        mappings: Sequence[FieldMapping],
        index: int,
        run: _RunState,
    ) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for mapping in mappings:
            outcome = self._evaluator.evaluate(record, mapping, index)
            if not outcome.success:
                run.add(outcome.diagnostic)  # type: ignore[arg-type]
            elif outcome.value is not None:
                values[mapping.target_field] = outcome.value
        return values

    def _rule_not_found(
        self,
        batch: List[Any],
        rule_id: str,
        input_hash: str,
        algorithm: str,
        start: float,
    ) -> NormalizationResult:
        elapsed_ms = (time.monotonic() - start) * 1000.0
        diagnostic = FieldDiagnostic(
            field_path="",
            code=ErrorCode.MAPPING_NOT_FOUND,
            message=f"Mapping rule '{rule_id}' not found",
            original_value=rule_id,
            hint=ERROR_HINTS[ErrorCode.MAPPING_NOT_FOUND],
        )
        with self._lock:
            self._stats["runs"] += 1
            self._stats["rule_not_found"] += 1
            self._stats["records_in"] += len(batch)
            self._stats["records_skipped"] += len(batch)
        record_diagnostic(diagnostic.code.value, diagnostic.severity.value)
        record_records("skipped", len(batch))
        record_normalize_run(
            _UNKNOWN_RULE_LABEL, "rule_not_found", elapsed_ms / 1000.0,
        )
        logger.warning(
            "Normalization skipped: mapping rule %s not found (%d records)",
            rule_id, len(batch),
        )
        return NormalizationResult(
            success=False,
            points=[],
            diagnostics=[diagnostic],
            stats=NormalizationStats(
                input_records=len(batch),
                output_points=0,
                skipped_records=len(batch),
                error_count=1,
                processing_time_ms=elapsed_ms,
            ),
            input_hash=input_hash,
            output_hash=compute_content_hash([], algorithm),
            rule_id=rule_id,
        )

    def _build_result(
        self,
        batch: List[Any],
        rule: MappingRule,
        run: _RunState,
        input_hash: str,
        output_hash: str,
        start: float,
    ) -> NormalizationResult:
        errors = sum(1 for d in run.diagnostics if d.severity == Severity.ERROR)
        warnings = sum(1 for d in run.diagnostics if d.severity == Severity.WARNING)
        stats = NormalizationStats(
            input_records=len(batch),
            output_points=len(run.points),
            skipped_records=run.skipped,
            filtered_records=run.filtered,
            duplicate_records=run.duplicates,
            error_count=errors,
            warning_count=warnings,
            processing_time_ms=(time.monotonic() - start) * 1000.0,
        )
        return NormalizationResult(
            success=errors == 0 and len(run.points) > 0,
            points=run.points,
            diagnostics=run.diagnostics,
            stats=stats,
            input_hash=input_hash,
            output_hash=output_hash,
            rule_id=rule.id,
            rule_version=rule.version,
            series_metadata=rule.series_defaults.model_dump(mode="json", exclude_none=True),
        )

    def _record_run(
        self,
        result: NormalizationResult,
        rule_id: str,
        run: _RunState,
        start: float,
    ) -> None:
        stats = result.stats
        with self._lock:
            self._stats["runs"] += 1
            self._stats["records_in"] += stats.input_records
            self._stats["points_out"] += stats.output_points
            self._stats["records_skipped"] += stats.skipped_records

        for diagnostic in result.diagnostics:
            record_diagnostic(diagnostic.code.value, diagnostic.severity.value)
        record_records("normalized", stats.output_points)
        record_records("filtered", run.filtered)
        record_records("duplicate", run.duplicates)
        record_records(
            "skipped", stats.skipped_records - run.filtered - run.duplicates,
        )
        record_normalize_run(
            rule_id,
            "success" if result.success else "failure",
            time.monotonic() - start,
        )

        logger.info(
            "Normalized %d records with rule %s v%s: points=%d, skipped=%d, "
            "filtered=%d, errors=%d, warnings=%d (%.1f ms)",
            stats.input_records, rule_id, result.rule_version,
            stats.output_points, stats.skipped_records, stats.filtered_records,
            stats.error_count, stats.warning_count, stats.processing_time_ms,
        )


# Sentinel returned by _map_primary_value when the record must be skipped
_REJECT = object()
