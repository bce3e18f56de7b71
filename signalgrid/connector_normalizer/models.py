# -*- coding: utf-8 -*-
"""
Connector Normalizer Data Models - SG-DATA-001: Connector Normalizer

Pydantic v2 data models for the connector normalization pipeline.

Enumerations:
    - TransformKind: Closed set of field transforms
    - TimestampFormat: Raw timestamp encodings
    - FilterOperator: Record filter comparison operators
    - ValidationType: Post-transform type checks
    - FieldType: Types reported by schema inference
    - TimeResolution: Series resolutions with millisecond widths

Rule Models:
    - TransformParams, FieldValidation, FieldMapping
    - TimestampMapping, FilterCondition, SeriesDefaults, MappingRule

Run Models:
    - NormalizationContext, ProcessingMetadata, CanonicalPoint
    - FieldDiagnostic, NormalizationStats, NormalizationResult

Inference Models:
    - InferredField, InferredSchema

Factories:
    - create_mapping_rule, create_normalization_context
    - validate_mapping_rule

Author: SignalGrid Platform Team
Date: October 2026
PRD: SG-DATA-001 Connector Normalizer
Status: Production Ready
"""

from __future__ import annotations

import re
import time
import uuid
from datetime import timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from signalgrid.connector_normalizer.errors import (
    ErrorCode,
    InvalidMappingRuleError,
    Severity,
)

#: Version of the connector contract these models implement.
CONNECTOR_CONTRACT_VERSION = "1.0.0"

ScalarValue = Union[bool, int, float, str]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_ms() -> int:
    """Return the current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def resolve_timezone(name: str) -> Any:
    """Resolve an IANA zone name to a tzinfo; ``UTC`` needs no tz database.

    Raises:
        ValueError: If the zone is unknown.
    """
    if name.upper() in ("UTC", "Z", "ETC/UTC"):
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone '{name}'") from exc


def _check_pattern(pattern: Optional[str]) -> Optional[str]:
    if pattern is None:
        return pattern
    try:
        re.compile(pattern)
    except re.error as exc:
        raise ValueError(f"Invalid regular expression '{pattern}': {exc}") from exc
    return pattern


def _non_blank(v: str, name: str) -> str:
    if not v or not v.strip():
        raise ValueError(f"{name} must be non-empty")
    return v


# =============================================================================
# Enumerations
# =============================================================================


class TransformKind(str, Enum):
    """Closed set of transforms a field mapping may apply."""

    NONE = "none"
    LOWERCASE = "lowercase"
    UPPERCASE = "uppercase"
    TRIM = "trim"
    PARSE_NUMBER = "parse_number"
    PARSE_BOOLEAN = "parse_boolean"
    PARSE_DATE = "parse_date"
    MULTIPLY = "multiply"
    DIVIDE = "divide"
    ADD = "add"
    SUBTRACT = "subtract"
    REGEX_EXTRACT = "regex_extract"
    JSON_PATH = "json_path"
    TEMPLATE = "template"
    LOOKUP = "lookup"
    COALESCE = "coalesce"
    DEFAULT = "default"


class TimestampFormat(str, Enum):
    """Encodings a raw timestamp field may use."""

    ISO8601 = "ISO8601"
    UNIX_SECONDS = "unix_seconds"
    UNIX_MS = "unix_ms"


class FilterOperator(str, Enum):
    """Comparison operators for record filters."""

    EQ = "eq"
    NE = "ne"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    IN = "in"
    CONTAINS = "contains"
    REGEX = "regex"


class ValidationType(str, Enum):
    """Expected type of a field after its transform."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    ARRAY = "array"


class FieldType(str, Enum):
    """Types reported by schema inference."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    ARRAY = "array"
    OBJECT = "object"
    UNKNOWN = "unknown"


class TimeResolution(str, Enum):
    """Resolution of a time series, finest first."""

    MILLISECOND = "millisecond"
    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


TIME_RESOLUTION_MS: Dict[TimeResolution, int] = {
    TimeResolution.MILLISECOND: 1,
    TimeResolution.SECOND: 1_000,
    TimeResolution.MINUTE: 60_000,
    TimeResolution.HOUR: 3_600_000,
    TimeResolution.DAY: 86_400_000,
    TimeResolution.WEEK: 604_800_000,
    TimeResolution.MONTH: 2_592_000_000,
    TimeResolution.QUARTER: 7_862_400_000,
    TimeResolution.YEAR: 31_536_000_000,
}


# =============================================================================
# Mapping rule models
# =============================================================================


class TransformParams(BaseModel):
    """Parameters consumed by the transform library.

    Each transform reads only the parameters it needs; the rest are ignored.
    """

    multiplier: Optional[float] = Field(default=None, description="Factor for multiply")
    divisor: Optional[float] = Field(default=None, description="Divisor for divide")
    addend: Optional[float] = Field(
        default=None, description="Operand for add and subtract",
    )
    pattern: Optional[str] = Field(default=None, description="Regex for regex_extract")
    replacement: Optional[str] = Field(
        default=None,
        description="Optional match expansion template for regex_extract (e.g. '\\1.\\2')",
    )
    date_format: Optional[str] = Field(
        default=None, description="strptime format for parse_date",
    )
    timezone: Optional[str] = Field(
        default=None, description="IANA zone applied to naive dates in parse_date",
    )
    default_value: Any = Field(
        default=None, description="Fallback for default and coalesce",
    )
    lookup_table: Optional[Dict[str, Any]] = Field(
        default=None, description="Value table for lookup",
    )
    template: Optional[str] = Field(
        default=None, description="Template with {{value}} and {{record.path}} slots",
    )
    coalesce_fields: Tuple[str, ...] = Field(
        default=(), description="Record paths tried in order by coalesce",
    )
    path: Optional[str] = Field(
        default=None, description="Path expression for json_path, e.g. $.a.b[0]",
    )

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: Optional[str]) -> Optional[str]:
        """Validate pattern compiles."""
        return _check_pattern(v)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        """Validate timezone resolves."""
        if v is not None:
            resolve_timezone(v)
        return v


class FieldValidation(BaseModel):
    """Checks applied to a field after its transform, in declaration order."""

    type: Optional[ValidationType] = Field(default=None, description="Expected type")
    min: Optional[float] = Field(default=None, description="Inclusive lower bound")
    max: Optional[float] = Field(default=None, description="Inclusive upper bound")
    pattern: Optional[str] = Field(
        default=None, description="Regex the stringified value must match",
    )
    enum: Optional[Tuple[Any, ...]] = Field(default=None, description="Allowed values")

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: Optional[str]) -> Optional[str]:
        """Validate pattern compiles."""
        return _check_pattern(v)

    @model_validator(mode="after")
    def validate_bounds(self) -> "FieldValidation":
        """Validate min does not exceed max."""
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"min ({self.min}) must not exceed max ({self.max})")
        return self


class FieldMapping(BaseModel):
    """Extraction of one target field from a raw record."""

    source_path: str = Field(..., description="Dotted path into the raw record")
    target_field: str = Field(..., description="Name of the canonical field")
    transform: TransformKind = Field(
        default=TransformKind.NONE, description="Transform applied to the raw value",
    )
    transform_params: Optional[TransformParams] = Field(
        default=None, description="Transform parameters",
    )
    required: bool = Field(
        default=False, description="Whether a missing value rejects the record",
    )
    validation: Optional[FieldValidation] = Field(
        default=None, description="Post-transform checks",
    )

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("source_path")
    @classmethod
    def validate_source_path(cls, v: str) -> str:
        """Validate source_path is non-empty."""
        return _non_blank(v, "source_path")

    @field_validator("target_field")
    @classmethod
    def validate_target_field(cls, v: str) -> str:
        """Validate target_field is non-empty."""
        return _non_blank(v, "target_field")


class TimestampMapping(BaseModel):
    """Location and encoding of a record's timestamp."""

    source_path: str = Field(..., description="Dotted path into the raw record")
    format: TimestampFormat = Field(
        default=TimestampFormat.ISO8601, description="Raw timestamp encoding",
    )
    timezone: str = Field(
        default="UTC", description="IANA zone for ISO strings without an offset",
    )

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("source_path")
    @classmethod
    def validate_source_path(cls, v: str) -> str:
        """Validate source_path is non-empty."""
        return _non_blank(v, "source_path")

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate timezone resolves."""
        resolve_timezone(v)
        return v


class FilterCondition(BaseModel):
    """One record filter; a rule's filters are combined with AND."""

    field: str = Field(..., description="Dotted path into the raw record")
    operator: FilterOperator = Field(..., description="Comparison operator")
    value: Any = Field(default=None, description="Comparison operand")

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("field")
    @classmethod
    def validate_field(cls, v: str) -> str:
        """Validate field is non-empty."""
        return _non_blank(v, "field")

    @model_validator(mode="after")
    def validate_operand(self) -> "FilterCondition":
        """Validate the operand suits the operator."""
        if self.operator == FilterOperator.REGEX:
            if not isinstance(self.value, str):
                raise ValueError("regex filter requires a string pattern")
            _check_pattern(self.value)
        elif self.operator == FilterOperator.IN:
            if not isinstance(self.value, (list, tuple, set)):
                raise ValueError("in filter requires a list value")
        return self


class SeriesDefaults(BaseModel):
    """Series-level metadata copied onto every normalization result."""

    display_name: Optional[str] = Field(default=None, description="Series display name")
    description: Optional[str] = Field(default=None, description="Series description")
    unit: Optional[str] = Field(default=None, description="Unit of the primary value")
    value_type: Optional[str] = Field(
        default=None, description="Value type hint (gauge, counter, ...)",
    )
    native_resolution: Optional[TimeResolution] = Field(
        default=None, description="Resolution the source publishes at",
    )

    model_config = {"extra": "allow", "frozen": True}


class MappingRule(BaseModel):
    """Declarative recipe for turning raw records into canonical points.

    Immutable once constructed; the registry stores snapshots of it.
    """

    id: str = Field(..., description="Unique rule identifier")
    name: str = Field(..., description="Human-readable rule name")
    version: str = Field(default="1.0.0", description="Rule version")
    source_type: str = Field(..., description="Kind of source (prometheus, csv, ...)")
    series_defaults: SeriesDefaults = Field(
        default_factory=SeriesDefaults, description="Series metadata",
    )
    timestamp_mapping: TimestampMapping = Field(..., description="Timestamp location")
    value_mapping: FieldMapping = Field(..., description="Primary value mapping")
    additional_value_mappings: Tuple[FieldMapping, ...] = Field(
        default=(), description="Extra numeric values",
    )
    label_mappings: Tuple[FieldMapping, ...] = Field(
        default=(), description="String labels, stored among the tags",
    )
    tag_mappings: Tuple[FieldMapping, ...] = Field(
        default=(), description="String tags",
    )
    metadata_mappings: Tuple[FieldMapping, ...] = Field(
        default=(), description="Free-form point metadata",
    )
    filters: Tuple[FilterCondition, ...] = Field(
        default=(), description="Record filters (AND)",
    )
    dedupe_keys: Tuple[str, ...] = Field(
        default=(), description="Record paths identifying duplicates",
    )

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Validate id is non-empty."""
        return _non_blank(v, "id")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate name is non-empty."""
        return _non_blank(v, "name")

    @field_validator("source_type")
    @classmethod
    def validate_source_type(cls, v: str) -> str:
        """Validate source_type is non-empty."""
        return _non_blank(v, "source_type")


# =============================================================================
# Normalization run models
# =============================================================================


class NormalizationContext(BaseModel):
    """Identity of one normalization batch."""

    connector_id: str = Field(..., description="Connector that fetched the batch")
    tenant_id: str = Field(..., description="Owning tenant")
    workspace_id: Optional[str] = Field(default=None, description="Owning workspace")
    batch_id: str = Field(..., description="Batch identifier")
    correlation_id: str = Field(..., description="Correlation identifier for tracing")
    ingested_at: int = Field(..., description="Ingestion time in epoch ms")

    model_config = {"extra": "forbid", "frozen": True}


class ProcessingMetadata(BaseModel):
    """Lineage stamped onto every canonical point."""

    source_connector_id: str = Field(..., description="Connector identifier")
    ingested_at: int = Field(..., description="Ingestion time in epoch ms")
    batch_id: str = Field(..., description="Batch identifier")

    model_config = {"extra": "forbid"}


class CanonicalPoint(BaseModel):
    """One normalized observation."""

    timestamp: int = Field(..., description="Epoch milliseconds")
    value: Optional[ScalarValue] = Field(default=None, description="Primary value")
    additional_values: Optional[Dict[str, Union[int, float]]] = Field(
        default=None, description="Extra numeric values",
    )
    tags: Optional[Dict[str, str]] = Field(default=None, description="String tags")
    metadata: Optional[Dict[str, Any]] = Field(default=None, description="Point metadata")
    processing_metadata: ProcessingMetadata = Field(..., description="Lineage")

    model_config = {"extra": "forbid"}


class FieldDiagnostic(BaseModel):
    """Record- and field-level finding produced during a run."""

    field_path: str = Field(..., description="Location, e.g. '[3].metric_value'")
    code: ErrorCode = Field(..., description="Error code")
    message: str = Field(..., description="Human-readable description")
    original_value: Any = Field(default=None, description="Offending raw value")
    expected: Optional[str] = Field(default=None, description="What was expected")
    hint: Optional[str] = Field(default=None, description="Remediation hint")
    severity: Severity = Field(default=Severity.ERROR, description="Severity")

    model_config = {"extra": "forbid"}


class NormalizationStats(BaseModel):
    """Counters for one normalization run."""

    input_records: int = Field(default=0, ge=0)
    output_points: int = Field(default=0, ge=0)
    skipped_records: int = Field(default=0, ge=0)
    filtered_records: int = Field(default=0, ge=0)
    duplicate_records: int = Field(default=0, ge=0)
    error_count: int = Field(default=0, ge=0)
    warning_count: int = Field(default=0, ge=0)
    processing_time_ms: float = Field(default=0.0, ge=0.0)

    model_config = {"extra": "forbid"}


class NormalizationResult(BaseModel):
    """Outcome of ``NormalizationEngine.normalize``."""

    success: bool = Field(..., description="No errors and at least one point")
    points: List[CanonicalPoint] = Field(
        default_factory=list, description="Points sorted by timestamp",
    )
    diagnostics: List[FieldDiagnostic] = Field(default_factory=list)
    stats: NormalizationStats = Field(default_factory=NormalizationStats)
    input_hash: str = Field(..., description="Content hash of the raw records")
    output_hash: str = Field(..., description="Content hash of the points")
    rule_id: str = Field(..., description="Requested rule identifier")
    rule_version: Optional[str] = Field(default=None, description="Applied rule version")
    series_metadata: Dict[str, Any] = Field(
        default_factory=dict, description="Copy of the rule's series defaults",
    )

    model_config = {"extra": "forbid"}


# =============================================================================
# Schema inference models
# =============================================================================


class InferredField(BaseModel):
    """Observed shape of one (possibly nested) record path."""

    name: str = Field(..., description="Dotted path")
    type: FieldType = Field(default=FieldType.UNKNOWN, description="Observed type")
    nullable: bool = Field(default=False, description="Null or absent somewhere")
    non_null_count: int = Field(default=0, ge=0)
    null_count: int = Field(default=0, ge=0)
    sample_values: List[Any] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


class InferredSchema(BaseModel):
    """Schema proposal built from a sample of raw records."""

    fields: List[InferredField] = Field(default_factory=list)
    suggested_timestamp_field: Optional[str] = Field(default=None)
    suggested_value_field: Optional[str] = Field(default=None)
    inferred_resolution: Optional[TimeResolution] = Field(default=None)
    records_sampled: int = Field(default=0, ge=0)

    model_config = {"extra": "forbid"}


class RuleValidationResult(BaseModel):
    """Outcome of ``validate_mapping_rule``."""

    success: bool
    rule: Optional[MappingRule] = None
    errors: List[str] = Field(default_factory=list)


# =============================================================================
# Factories
# =============================================================================


def _format_validation_errors(exc: ValidationError) -> List[str]:
    messages = []
    for err in exc.errors():
        path = ".".join(str(part) for part in err.get("loc", ())) or "<root>"
        messages.append(f"{path}: {err.get('msg', 'invalid value')}")
    return messages


def validate_mapping_rule(data: Any) -> RuleValidationResult:
    """Validate raw rule data without raising.

    Args:
        data: Mapping (or MappingRule) describing a rule.

    Returns:
        RuleValidationResult with the parsed rule or ``"path: message"`` errors.
    """
    if isinstance(data, MappingRule):
        return RuleValidationResult(success=True, rule=data)
    if not isinstance(data, dict):
        return RuleValidationResult(
            success=False,
            errors=[f"<root>: expected a mapping, got {type(data).__name__}"],
        )
    try:
        rule = MappingRule.model_validate(data)
    except ValidationError as exc:
        return RuleValidationResult(
            success=False, errors=_format_validation_errors(exc),
        )
    return RuleValidationResult(success=True, rule=rule)


def create_mapping_rule(**params: Any) -> MappingRule:
    """Build a MappingRule, filling version, series defaults and labels.

    Raises:
        InvalidMappingRuleError: If the parameters do not form a valid rule.
    """
    data = dict(params)
    data.setdefault("version", "1.0.0")
    data.setdefault("series_defaults", {})
    data.setdefault("label_mappings", [])
    result = validate_mapping_rule(data)
    if not result.success:
        raise InvalidMappingRuleError(
            f"Invalid mapping rule '{data.get('id', '<unknown>')}'",
            errors=result.errors,
            context={"rule_id": data.get("id")},
        )
    return result.rule  # type: ignore[return-value]


def create_normalization_context(
    connector_id: str,
    tenant_id: str,
    **overrides: Any,
) -> NormalizationContext:
    """Build a NormalizationContext with generated batch and correlation ids.

    Args:
        connector_id: Connector that fetched the batch.
        tenant_id: Owning tenant.
        **overrides: Explicit values for any context field.

    Returns:
        NormalizationContext.
    """
    now = _now_ms()
    data: Dict[str, Any] = {
        "connector_id": connector_id,
        "tenant_id": tenant_id,
        "batch_id": f"batch_{now}_{uuid.uuid4().hex[:9]}",
        "correlation_id": f"corr_{now}_{uuid.uuid4().hex[:9]}",
        "ingested_at": now,
    }
    data.update(overrides)
    return NormalizationContext(**data)


__all__ = [
    "CONNECTOR_CONTRACT_VERSION",
    "ScalarValue",
    "resolve_timezone",
    # Enumerations
    "TransformKind",
    "TimestampFormat",
    "FilterOperator",
    "ValidationType",
    "FieldType",
    "TimeResolution",
    "TIME_RESOLUTION_MS",
    # Rule models
    "TransformParams",
    "FieldValidation",
    "FieldMapping",
    "TimestampMapping",
    "FilterCondition",
    "SeriesDefaults",
    "MappingRule",
    # Run models
    "NormalizationContext",
    "ProcessingMetadata",
    "CanonicalPoint",
    "FieldDiagnostic",
    "NormalizationStats",
    "NormalizationResult",
    # Inference models
    "InferredField",
    "InferredSchema",
    "RuleValidationResult",
    # Factories
    "validate_mapping_rule",
    "create_mapping_rule",
    "create_normalization_context",
]
