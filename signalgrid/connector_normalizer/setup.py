# -*- coding: utf-8 -*-
"""
Connector Normalizer Service Setup - SG-DATA-001: Connector Normalizer

Provides the ``ConnectorNormalizerService`` facade, which wires up the
mapping rule registry, the normalization engine, the schema inference
engine and the provenance tracker behind one object, plus a thread-safe
process-wide singleton (``get_service`` / ``configure_service``).

Usage:
    >>> from signalgrid.connector_normalizer.setup import get_service
    >>> service = get_service()
    >>> service.register_rule(rule)
    >>> result = service.normalize(records, rule.id, context)

Author: SignalGrid Platform Team
Date: October 2026
PRD: SG-DATA-001 Connector Normalizer
Status: Production Ready
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from signalgrid.connector_normalizer.config import (
    ConnectorNormalizerConfig,
    get_config,
    set_config,
)
from signalgrid.connector_normalizer.engine import NormalizationEngine
from signalgrid.connector_normalizer.models import (
    InferredSchema,
    MappingRule,
    NormalizationContext,
    NormalizationResult,
)
from signalgrid.connector_normalizer.provenance import (
    ProvenanceTracker,
    compute_content_hash,
)
from signalgrid.connector_normalizer.registry import MappingRuleRegistry, RuleInput
from signalgrid.connector_normalizer.schema_inference import SchemaInferenceEngine

logger = logging.getLogger(__name__)


# ===================================================================
# Facade statistics
# ===================================================================


class NormalizerStatistics(BaseModel):
    """Aggregate statistics for the connector normalizer service.

    Attributes:
        total_runs: Normalization runs performed.
        successful_runs: Runs whose result was successful.
        failed_runs: Runs whose result was unsuccessful.
        total_records: Raw records received.
        total_points: Canonical points produced.
        total_skipped: Records skipped (filtered, duplicate or rejected).
        total_errors: Error diagnostics emitted.
        total_warnings: Warning diagnostics emitted.
        total_inferences: Schema inference runs.
        registered_rules: Rules currently registered.
        avg_processing_time_ms: Mean normalization time per run.
        diagnostics_by_code: Diagnostic counts keyed by error code.
    """
    total_runs: int = Field(default=0)
    successful_runs: int = Field(default=0)
    failed_runs: int = Field(default=0)
    total_records: int = Field(default=0)
    total_points: int = Field(default=0)
    total_skipped: int = Field(default=0)
    total_errors: int = Field(default=0)
    total_warnings: int = Field(default=0)
    total_inferences: int = Field(default=0)
    registered_rules: int = Field(default=0)
    avg_processing_time_ms: float = Field(default=0.0)
    diagnostics_by_code: Dict[str, int] = Field(default_factory=dict)


# ===================================================================
# ConnectorNormalizerService facade
# ===================================================================

# Thread-safe singleton lock
_singleton_lock = threading.Lock()
_singleton_instance: Optional["ConnectorNormalizerService"] = None


class ConnectorNormalizerService:
    """Facade over the connector normalizer components.

    Attributes:
        config: Active ConnectorNormalizerConfig.
        registry: Mapping rule registry shared with the engine.
        engine: NormalizationEngine.
        schema_engine: SchemaInferenceEngine.
        provenance: ProvenanceTracker for service operations.

    Example:
        >>> service = ConnectorNormalizerService()
        >>> service.register_rule(rule)
        >>> result = service.normalize(records, "rule-1", context)
        >>> print(service.get_statistics().total_points)
    """

    def __init__(self, config: Optional[ConnectorNormalizerConfig] = None) -> None:
        """Initialize the service and its engines.

        Args:
            config: Optional configuration; defaults to the global config.
                It governs hashing, provenance and date defaults for this
                service. Metrics are process-wide and follow the global
                config; use configure_service() to install both.
        """
        self.config = config or get_config()
        self.registry = MappingRuleRegistry()
        self.engine = NormalizationEngine(registry=self.registry, config=self.config)
        self.schema_engine = SchemaInferenceEngine({
            "sample_size": self.config.schema_sample_size,
            "max_sample_values": self.config.max_sample_values,
        })
        self.provenance = ProvenanceTracker(
            max_entries=self.config.max_provenance_entries,
        )
        self._lock = threading.Lock()
        self._stats = NormalizerStatistics()
        self._total_time_ms = 0.0
        logger.info(
            "ConnectorNormalizerService initialised: provenance=%s, metrics=%s",
            self.config.enable_provenance, self.config.enable_metrics,
        )

    # ------------------------------------------------------------------
    # Rule management
    # ------------------------------------------------------------------

    def register_rule(self, rule: RuleInput) -> MappingRule:
        """Register or replace a mapping rule.

        Args:
            rule: MappingRule or raw rule mapping.

        Returns:
            Stored rule snapshot.

        Raises:
            InvalidMappingRuleError: If the rule fails validation.
        """
        stored = self.registry.register_rule(rule)
        self._record_provenance(
            "mapping_rule", stored.id, "register",
            compute_content_hash(stored, self.config.hash_algorithm),
        )
        self._sync_rule_count()
        return stored

    def register_rules(self, rules: Iterable[RuleInput]) -> List[MappingRule]:
        """Register several rules atomically."""
        stored = self.registry.register_rules(rules)
        for rule in stored:
            self._record_provenance(
                "mapping_rule", rule.id, "register",
                compute_content_hash(rule, self.config.hash_algorithm),
            )
        self._sync_rule_count()
        return stored

    def get_rule(self, rule_id: str) -> Optional[MappingRule]:
        """Return a registered rule or None."""
        return self.registry.get_rule(rule_id)

    def list_rules(self) -> List[MappingRule]:
        """Return registered rules sorted by id."""
        return self.registry.list_rules()

    def remove_rule(self, rule_id: str) -> MappingRule:
        """Remove a registered rule.

        Raises:
            MappingRuleNotFoundError: If the rule is not registered.
        """
        removed = self.registry.remove_rule(rule_id)
        self._record_provenance(
            "mapping_rule", rule_id, "remove",
            compute_content_hash(removed, self.config.hash_algorithm),
        )
        self._sync_rule_count()
        return removed

    # ------------------------------------------------------------------
    # Normalization and inference
    # ------------------------------------------------------------------

    def normalize(
        self,
        records: Iterable[Any],
        rule_id: str,
        context: NormalizationContext,
    ) -> NormalizationResult:
        """Normalize raw records and record the run.

        Args:
            records: Raw records.
            rule_id: Registered rule identifier.
            context: Batch identity.

        Returns:
            NormalizationResult from the engine.
        """
        result = self.engine.normalize(records, rule_id, context)
        self._record_provenance(
            "normalization", context.batch_id, "normalize", result.output_hash,
        )

        with self._lock:
            stats = self._stats
            stats.total_runs += 1
            if result.success:
                stats.successful_runs += 1
            else:
                stats.failed_runs += 1
            stats.total_records += result.stats.input_records
            stats.total_points += result.stats.output_points
            stats.total_skipped += result.stats.skipped_records
            stats.total_errors += result.stats.error_count
            stats.total_warnings += result.stats.warning_count
            for diagnostic in result.diagnostics:
                code = diagnostic.code.value
                stats.diagnostics_by_code[code] = stats.diagnostics_by_code.get(code, 0) + 1
            self._total_time_ms += result.stats.processing_time_ms
            stats.avg_processing_time_ms = self._total_time_ms / stats.total_runs
        return result

    def infer_schema(
        self,
        records: Iterable[Any],
        sample_size: Optional[int] = None,
    ) -> InferredSchema:
        """Infer a schema from sample records.

        Args:
            records: Raw records.
            sample_size: Records to examine (default from configuration).

        Returns:
            InferredSchema.
        """
        schema = self.schema_engine.infer(records, sample_size=sample_size)
        self._record_provenance(
            "schema", "sample", "infer",
            compute_content_hash(schema, self.config.hash_algorithm),
        )
        with self._lock:
            self._stats.total_inferences += 1
        return schema

    # ------------------------------------------------------------------
    # Convenience getters
    # ------------------------------------------------------------------

    def get_statistics(self) -> NormalizerStatistics:
        """Get a snapshot of aggregated service statistics."""
        with self._lock:
            return self._stats.model_copy(deep=True)

    def get_provenance(self) -> ProvenanceTracker:
        """Get the ProvenanceTracker instance."""
        return self.provenance

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _record_provenance(
        self,
        entity_type: str,
        entity_id: str,
        action: str,
        data_hash: str,
    ) -> None:
        if self.config.enable_provenance:
            self.provenance.record(entity_type, entity_id, action, data_hash)

    def _sync_rule_count(self) -> None:
        with self._lock:
            self._stats.registered_rules = len(self.registry)


# ===================================================================
# Thread-safe singleton access
# ===================================================================


def get_service() -> ConnectorNormalizerService:
    """Get or create the singleton ConnectorNormalizerService instance.

    Returns:
        The singleton ConnectorNormalizerService.
    """
    global _singleton_instance
    if _singleton_instance is None:
        with _singleton_lock:
            if _singleton_instance is None:
                _singleton_instance = ConnectorNormalizerService()
    return _singleton_instance


def configure_service(
    config: Optional[ConnectorNormalizerConfig] = None,
) -> ConnectorNormalizerService:
    """Create a new service, install it as the singleton and return it.

    A given ``config`` is also installed as the global configuration so
    the metrics gate and other module-level readers agree with it.

    Args:
        config: Optional configuration for the new service.

    Returns:
        The new ConnectorNormalizerService.
    """
    global _singleton_instance
    if config is not None:
        set_config(config)
    service = ConnectorNormalizerService(config=config)
    with _singleton_lock:
        _singleton_instance = service
    logger.info("Connector normalizer service configured")
    return service


def reset_service() -> None:
    """Drop the singleton (primarily for test teardown)."""
    global _singleton_instance
    with _singleton_lock:
        _singleton_instance = None


__all__ = [
    "ConnectorNormalizerService",
    "NormalizerStatistics",
    "get_service",
    "configure_service",
    "reset_service",
]
