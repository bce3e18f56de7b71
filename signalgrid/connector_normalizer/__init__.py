# -*- coding: utf-8 -*-
"""
SG-DATA-001: SignalGrid Connector Normalizer SDK
================================================

This package turns heterogeneous raw records fetched by external data
connectors into a canonical, timestamp-ordered point series. It supports:

- Declarative mapping rules (timestamp, value, additional values, labels,
  tags, metadata, filters, dedupe keys)
- A closed library of 17 field transforms with exhaustive dispatch
- Field validation (type, range, pattern, enum) with structured diagnostics
- ISO-8601, unix seconds and unix milliseconds timestamps
- Record filtering with 9 comparison operators
- Copy-on-write mapping rule registry safe for concurrent reads
- Canonical-JSON SHA-256 input/output hashes for replay verification
- Schema inference for connector onboarding
- Chain-hashed provenance of service operations
- 7 Prometheus metrics for observability
- Thread-safe configuration with SG_CONNECTOR_NORMALIZER_ env prefix
- ``sg-normalize`` command line tool

Key Components:
    - config: ConnectorNormalizerConfig with SG_CONNECTOR_NORMALIZER_ env prefix
    - errors: ErrorCode taxonomy and exception hierarchy
    - models: Pydantic v2 models for rules, points, diagnostics and schemas
    - transforms: Field transform library
    - field_mapper: Field mapping evaluator
    - timestamp_resolver: Timestamp resolution
    - filter_evaluator: Record filters
    - registry: Mapping rule registry
    - engine: Normalization engine
    - schema_inference: Schema inference engine
    - provenance: Canonical hashing and chain-hashed audit trail
    - metrics: Prometheus metrics
    - setup: ConnectorNormalizerService facade
    - cli: sg-normalize command line tool

Example:
    >>> from signalgrid.connector_normalizer import (
    ...     NormalizationEngine, create_mapping_rule, create_normalization_context)
    >>> engine = NormalizationEngine()
    >>> engine.register_rule(create_mapping_rule(
    ...     id="cpu", name="CPU", source_type="prometheus",
    ...     timestamp_mapping={"source_path": "ts", "format": "unix_seconds"},
    ...     value_mapping={"source_path": "v", "target_field": "value"}))
    >>> ctx = create_normalization_context("prom-01", "tenant-a")
    >>> engine.normalize([{"ts": 1704067200, "v": 0.5}], "cpu", ctx).points[0].timestamp
    1704067200000
"""

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
from signalgrid.connector_normalizer.config import (
    ConnectorNormalizerConfig,
    get_config,
    set_config,
    reset_config,
)

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
from signalgrid.connector_normalizer.errors import (
    ErrorCode,
    Severity,
    NormalizerError,
    InvalidMappingRuleError,
    MappingRuleNotFoundError,
    TransformError,
)

# ---------------------------------------------------------------------------
# Models (enums, rules, results, factories)
# ---------------------------------------------------------------------------
from signalgrid.connector_normalizer.models import (
    CONNECTOR_CONTRACT_VERSION,
    # Enumerations
    TransformKind,
    TimestampFormat,
    FilterOperator,
    ValidationType,
    FieldType,
    TimeResolution,
    TIME_RESOLUTION_MS,
    # Rule models
    TransformParams,
    FieldValidation,
    FieldMapping,
    TimestampMapping,
    FilterCondition,
    SeriesDefaults,
    MappingRule,
    # Run models
    NormalizationContext,
    ProcessingMetadata,
    CanonicalPoint,
    FieldDiagnostic,
    NormalizationStats,
    NormalizationResult,
    # Inference models
    InferredField,
    InferredSchema,
    RuleValidationResult,
    # Factories
    create_mapping_rule,
    create_normalization_context,
    validate_mapping_rule,
)

# ---------------------------------------------------------------------------
# Core engines
# ---------------------------------------------------------------------------
from signalgrid.connector_normalizer.transforms import apply_transform
from signalgrid.connector_normalizer.field_mapper import (
    FieldMappingEvaluator,
    MappingOutcome,
    resolve_path,
)
from signalgrid.connector_normalizer.timestamp_resolver import (
    TimestampResolver,
    parse_timestamp,
)
from signalgrid.connector_normalizer.filter_evaluator import (
    evaluate_condition,
    passes_filters,
)
from signalgrid.connector_normalizer.registry import MappingRuleRegistry
from signalgrid.connector_normalizer.engine import NormalizationEngine
from signalgrid.connector_normalizer.schema_inference import (
    SchemaInferenceEngine,
    infer_schema_from_sample,
)

# ---------------------------------------------------------------------------
# Provenance
# ---------------------------------------------------------------------------
from signalgrid.connector_normalizer.provenance import (
    ProvenanceTracker,
    canonical_json,
    compute_content_hash,
)

# ---------------------------------------------------------------------------
# Service setup facade
# ---------------------------------------------------------------------------
from signalgrid.connector_normalizer.setup import (
    ConnectorNormalizerService,
    NormalizerStatistics,
    get_service,
    configure_service,
    reset_service,
)

__all__ = [
    "__version__",
    # Configuration
    "ConnectorNormalizerConfig",
    "get_config",
    "set_config",
    "reset_config",
    # Errors
    "ErrorCode",
    "Severity",
    "NormalizerError",
    "InvalidMappingRuleError",
    "MappingRuleNotFoundError",
    "TransformError",
    # Models
    "CONNECTOR_CONTRACT_VERSION",
    "TransformKind",
    "TimestampFormat",
    "FilterOperator",
    "ValidationType",
    "FieldType",
    "TimeResolution",
    "TIME_RESOLUTION_MS",
    "TransformParams",
    "FieldValidation",
    "FieldMapping",
    "TimestampMapping",
    "FilterCondition",
    "SeriesDefaults",
    "MappingRule",
    "NormalizationContext",
    "ProcessingMetadata",
    "CanonicalPoint",
    "FieldDiagnostic",
    "NormalizationStats",
    "NormalizationResult",
    "InferredField",
    "InferredSchema",
    "RuleValidationResult",
    "create_mapping_rule",
    "create_normalization_context",
    "validate_mapping_rule",
    # Core engines
    "apply_transform",
    "FieldMappingEvaluator",
    "MappingOutcome",
    "resolve_path",
    "TimestampResolver",
    "parse_timestamp",
    "evaluate_condition",
    "passes_filters",
    "MappingRuleRegistry",
    "NormalizationEngine",
    "SchemaInferenceEngine",
    "infer_schema_from_sample",
    # Provenance
    "ProvenanceTracker",
    "canonical_json",
    "compute_content_hash",
    # Service
    "ConnectorNormalizerService",
    "NormalizerStatistics",
    "get_service",
    "configure_service",
    "reset_service",
]
