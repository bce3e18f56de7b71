# -*- coding: utf-8 -*-
"""
Tests for rule models, factories and error types.
"""

import pytest
from pydantic import ValidationError

from signalgrid.connector_normalizer.errors import (
    ErrorCode,
    InvalidMappingRuleError,
    NormalizerError,
    TransformError,
)
from signalgrid.connector_normalizer.models import (
    FieldMapping,
    FieldValidation,
    MappingRule,
    TransformKind,
    TransformParams,
    create_mapping_rule,
    create_normalization_context,
    validate_mapping_rule,
)


class TestCreateMappingRule:

    def test_fills_defaults(self):
        rule = create_mapping_rule(
            id="r1",
            name="Rule",
            source_type="csv",
            timestamp_mapping={"source_path": "ts"},
            value_mapping={"source_path": "v", "target_field": "value"},
        )
        assert rule.version == "1.0.0"
        assert rule.label_mappings == ()
        assert rule.series_defaults.model_dump(exclude_none=True) == {}
        assert rule.value_mapping.transform == TransformKind.NONE
        assert rule.value_mapping.required is False
        assert rule.timestamp_mapping.timezone == "UTC"

    def test_invalid_raises(self):
        with pytest.raises(InvalidMappingRuleError) as exc_info:
            create_mapping_rule(id="r1", name="Rule", source_type="csv")
        assert exc_info.value.errors
        assert exc_info.value.context == {"rule_id": "r1"}

    def test_rule_is_frozen(self, golden_rule):
        with pytest.raises(ValidationError):
            golden_rule.version = "2.0.0"

    def test_blank_id_rejected(self, golden_rule_data):
        with pytest.raises(InvalidMappingRuleError):
            create_mapping_rule(**dict(golden_rule_data, id="  "))

    def test_unknown_keys_rejected(self, golden_rule_data):
        with pytest.raises(InvalidMappingRuleError):
            create_mapping_rule(**dict(golden_rule_data, sourceType="prometheus"))

    def test_series_defaults_allow_extras(self, golden_rule_data):
        rule = create_mapping_rule(
            **dict(golden_rule_data, series_defaults={"unit": "ms", "owner": "ops"}),
        )
        assert rule.series_defaults.model_dump(exclude_none=True) == {
            "unit": "ms", "owner": "ops",
        }


class TestValidateMappingRule:

    def test_valid(self, golden_rule_data):
        result = validate_mapping_rule(golden_rule_data)
        assert result.success
        assert isinstance(result.rule, MappingRule)
        assert result.errors == []

    def test_errors_carry_paths(self, golden_rule_data):
        data = dict(golden_rule_data)
        data["value_mapping"] = {"source_path": "v", "target_field": "value", "transform": "explode"}
        result = validate_mapping_rule(data)
        assert not result.success
        assert result.rule is None
        assert any(e.startswith("value_mapping.transform:") for e in result.errors)

    def test_non_mapping(self):
        result = validate_mapping_rule(["not", "a", "rule"])
        assert not result.success
        assert result.errors[0].startswith("<root>:")

    def test_model_passes_through(self, golden_rule):
        assert validate_mapping_rule(golden_rule).rule is golden_rule


class TestFieldModels:

    def test_invalid_transform_pattern(self):
        with pytest.raises(ValidationError):
            TransformParams(pattern="(unclosed")

    def test_invalid_validation_pattern(self):
        with pytest.raises(ValidationError):
            FieldValidation(pattern="[")

    def test_min_above_max(self):
        with pytest.raises(ValidationError):
            FieldValidation(min=10, max=1)

    def test_blank_source_path(self):
        with pytest.raises(ValidationError):
            FieldMapping(source_path="", target_field="value")

    def test_unknown_timezone_param(self):
        with pytest.raises(ValidationError):
            TransformParams(timezone="Mars/Olympus")


class TestNormalizationContext:

    def test_generated_ids(self):
        context = create_normalization_context("prom-01", "tenant-a")
        assert context.batch_id.startswith("batch_")
        assert context.correlation_id.startswith("corr_")
        assert context.ingested_at > 0
        assert context.workspace_id is None

    def test_ids_are_unique(self):
        first = create_normalization_context("prom-01", "tenant-a")
        second = create_normalization_context("prom-01", "tenant-a")
        assert first.batch_id != second.batch_id

    def test_overrides(self):
        context = create_normalization_context(
            "prom-01", "tenant-a", batch_id="fixed", workspace_id="ws-1",
        )
        assert context.batch_id == "fixed"
        assert context.workspace_id == "ws-1"


class TestErrors:

    def test_codes_and_categories(self):
        assert ErrorCode.MAPPING_NOT_FOUND.value == "CONN_5002"
        assert ErrorCode.MAPPING_NOT_FOUND.category == "normalization"
        assert ErrorCode.AUTH_FAILED.category == "auth"
        assert ErrorCode.DUPLICATE_RECORD.category == "data"

    def test_to_dict(self):
        error = TransformError("bad value", context={"field": "v"})
        data = error.to_dict()
        assert data["error_type"] == "TransformError"
        assert data["code"] == "CONN_4004"
        assert data["context"] == {"field": "v"}
        assert str(error) == "[CONN_4004] bad value"

    def test_hierarchy(self):
        assert issubclass(InvalidMappingRuleError, NormalizerError)
        error = InvalidMappingRuleError("bad rule", errors=["id: required"])
        assert error.hints == ["id: required"]
        assert error.code == ErrorCode.INVALID_MAPPING_RULE
