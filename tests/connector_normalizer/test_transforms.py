# -*- coding: utf-8 -*-
"""
Tests for the field transform library.
"""

import pytest

from signalgrid.connector_normalizer.errors import TransformError
from signalgrid.connector_normalizer.models import TransformKind, TransformParams
from signalgrid.connector_normalizer.transforms import (
    apply_transform,
    supported_transforms,
)


def _apply(kind, value, record=None, **params):
    return apply_transform(kind, value, TransformParams(**params), record)


class TestDispatchCoverage:

    def test_every_kind_is_implemented(self):
        assert supported_transforms() == list(TransformKind)

    def test_accepts_plain_string_kind(self):
        assert apply_transform("uppercase", "abc") == "ABC"


class TestStringTransforms:

    def test_none_is_identity(self):
        value = {"a": 1}
        assert _apply(TransformKind.NONE, value) is value

    def test_lowercase(self):
        assert _apply(TransformKind.LOWERCASE, "HeLLo") == "hello"

    def test_uppercase(self):
        assert _apply(TransformKind.UPPERCASE, "abc") == "ABC"

    def test_trim(self):
        assert _apply(TransformKind.TRIM, "  padded \t") == "padded"

    def test_lowercase_stringifies_non_strings(self):
        assert _apply(TransformKind.LOWERCASE, True) == "true"


class TestParseNumber:

    def test_decimal_string(self):
        assert _apply(TransformKind.PARSE_NUMBER, "42.5") == 42.5

    def test_integral_string_yields_int(self):
        result = _apply(TransformKind.PARSE_NUMBER, " 17 ")
        assert result == 17
        assert isinstance(result, int)

    def test_number_passes_through(self):
        assert _apply(TransformKind.PARSE_NUMBER, 3.25) == 3.25

    @pytest.mark.parametrize("value", ["", "abc", "nan", "inf", True, None, [1]])
    def test_rejects_non_numeric(self, value):
        with pytest.raises(TransformError):
            _apply(TransformKind.PARSE_NUMBER, value)


class TestParseBoolean:

    @pytest.mark.parametrize("value", ["true", "YES", " on ", "1", 1, True])
    def test_truthy(self, value):
        assert _apply(TransformKind.PARSE_BOOLEAN, value) is True

    @pytest.mark.parametrize("value", ["false", "No", "off", "0", 0, False])
    def test_falsy(self, value):
        assert _apply(TransformKind.PARSE_BOOLEAN, value) is False

    def test_rejects_other_strings(self):
        with pytest.raises(TransformError):
            _apply(TransformKind.PARSE_BOOLEAN, "maybe")


class TestParseDate:

    def test_iso_to_epoch_ms(self):
        assert _apply(TransformKind.PARSE_DATE, "2024-01-01T00:00:00Z") == 1704067200000

    def test_naive_iso_defaults_to_utc(self):
        assert _apply(TransformKind.PARSE_DATE, "2024-01-01T00:00:00") == 1704067200000

    def test_explicit_offset(self):
        assert _apply(TransformKind.PARSE_DATE, "2024-01-01T01:00:00+01:00") == 1704067200000

    def test_custom_format(self):
        result = _apply(TransformKind.PARSE_DATE, "01/01/2024", date_format="%m/%d/%Y")
        assert result == 1704067200000

    def test_invalid_date(self):
        with pytest.raises(TransformError):
            _apply(TransformKind.PARSE_DATE, "not-a-date")

    def test_non_string_rejected(self):
        with pytest.raises(TransformError):
            _apply(TransformKind.PARSE_DATE, 12.5)


class TestArithmetic:

    def test_multiply(self):
        assert _apply(TransformKind.MULTIPLY, 5.5, multiplier=1000) == 5500

    def test_multiply_parses_strings(self):
        assert _apply(TransformKind.MULTIPLY, "2", multiplier=3) == 6

    def test_divide(self):
        assert _apply(TransformKind.DIVIDE, 500, divisor=100) == 5

    def test_divide_by_zero(self):
        with pytest.raises(TransformError):
            _apply(TransformKind.DIVIDE, 500, divisor=0)

    def test_add(self):
        assert _apply(TransformKind.ADD, 10, addend=2.5) == 12.5

    def test_subtract_uses_addend(self):
        assert _apply(TransformKind.SUBTRACT, 10, addend=4) == 6

    def test_defaults_are_neutral(self):
        assert _apply(TransformKind.MULTIPLY, 7) == 7
        assert _apply(TransformKind.DIVIDE, 7) == 7
        assert _apply(TransformKind.ADD, 7) == 7

    def test_non_numeric_input(self):
        with pytest.raises(TransformError):
            _apply(TransformKind.MULTIPLY, "ten", multiplier=2)

    def test_overflow_is_rejected(self):
        with pytest.raises(TransformError):
            _apply(TransformKind.MULTIPLY, 1e308, multiplier=10)


class TestRegexExtract:

    def test_first_group(self):
        assert _apply(TransformKind.REGEX_EXTRACT, "cpu=93%", pattern=r"cpu=(\d+)") == "93"

    def test_whole_match_without_groups(self):
        assert _apply(TransformKind.REGEX_EXTRACT, "abc123def", pattern=r"\d+") == "123"

    def test_no_match_is_none(self):
        assert _apply(TransformKind.REGEX_EXTRACT, "abc", pattern=r"\d+") is None

    def test_replacement_expands_groups(self):
        result = _apply(
            TransformKind.REGEX_EXTRACT, "v1-2",
            pattern=r"v(\d+)-(\d+)", replacement=r"\1.\2",
        )
        assert result == "1.2"

    def test_missing_pattern(self):
        with pytest.raises(TransformError):
            _apply(TransformKind.REGEX_EXTRACT, "abc")


class TestJsonPath:

    def test_dict_input(self):
        value = {"a": {"b": [10, 20]}}
        assert _apply(TransformKind.JSON_PATH, value, path="$.a.b[1]") == 20

    def test_json_string_input(self):
        assert _apply(TransformKind.JSON_PATH, '{"x": {"y": 3}}', path="$.x.y") == 3

    def test_missing_path_is_none(self):
        assert _apply(TransformKind.JSON_PATH, {"a": 1}, path="$.b") is None

    def test_invalid_json_string(self):
        with pytest.raises(TransformError):
            _apply(TransformKind.JSON_PATH, "{not json", path="$.a")

    def test_requires_path(self):
        with pytest.raises(TransformError):
            _apply(TransformKind.JSON_PATH, {"a": 1})


class TestTemplate:

    def test_value_slot(self):
        assert _apply(TransformKind.TEMPLATE, 42, template="cpu-{{value}}") == "cpu-42"

    def test_record_slot(self):
        record = {"meta": {"host": "web-1"}}
        result = _apply(
            TransformKind.TEMPLATE, "x", record, template="{{meta.host}}/{{ value }}",
        )
        assert result == "web-1/x"

    def test_missing_record_slot_is_empty(self):
        assert _apply(TransformKind.TEMPLATE, 1, {}, template="[{{nope}}]") == "[]"


class TestLookupCoalesceDefault:

    def test_lookup_hit(self):
        table = {"1": "critical", "2": "warning"}
        assert _apply(TransformKind.LOOKUP, 1, lookup_table=table) == "critical"

    def test_lookup_miss_passes_through(self):
        assert _apply(TransformKind.LOOKUP, "x", lookup_table={"a": 1}) == "x"

    def test_lookup_requires_table(self):
        with pytest.raises(TransformError):
            _apply(TransformKind.LOOKUP, "x")

    def test_coalesce_prefers_value(self):
        assert _apply(TransformKind.COALESCE, 5, {"b": 6}, coalesce_fields=["b"]) == 5

    def test_coalesce_falls_back_to_fields(self):
        record = {"a": None, "b": {"c": 9}}
        result = _apply(
            TransformKind.COALESCE, None, record, coalesce_fields=["a", "b.c"],
        )
        assert result == 9

    def test_coalesce_default(self):
        assert _apply(
            TransformKind.COALESCE, None, {}, coalesce_fields=["a"], default_value=-1,
        ) == -1

    def test_default_fills_none(self):
        assert _apply(TransformKind.DEFAULT, None, default_value=0) == 0

    def test_default_keeps_value(self):
        assert _apply(TransformKind.DEFAULT, 3, default_value=0) == 3
