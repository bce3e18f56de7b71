# -*- coding: utf-8 -*-
"""
Tests for timestamp extraction and parsing.
"""

from datetime import datetime, timedelta, timezone

import pytest

from signalgrid.connector_normalizer.errors import ErrorCode
from signalgrid.connector_normalizer.models import TimestampFormat, TimestampMapping
from signalgrid.connector_normalizer.timestamp_resolver import (
    TimestampResolver,
    parse_timestamp,
)

JAN_1_2024_MS = 1704067200000


class TestParseTimestamp:

    @pytest.mark.parametrize("raw", [
        "2024-01-01T00:00:00Z",
        "2024-01-01T00:00:00.000Z",
        "2024-01-01T00:00:00+00:00",
        "2024-01-01T02:00:00+02:00",
        "2024-01-01T00:00:00+0000",
        "2024-01-01T05:30:00+0530",
        "2024-01-01 00:00:00",
        "2024-01-01",
    ])
    def test_iso_variants(self, raw):
        assert parse_timestamp(raw, TimestampFormat.ISO8601) == JAN_1_2024_MS

    def test_iso_millisecond_precision(self):
        result = parse_timestamp("2024-01-01T00:00:00.250Z", TimestampFormat.ISO8601)
        assert result == JAN_1_2024_MS + 250

    @pytest.mark.parametrize("raw,offset_ms", [
        ("2024-01-01T00:00:00.5Z", 500),
        ("2024-01-01T00:00:00.25+00:00", 250),
        ("2024-01-01T00:00:00.123456789Z", 123),
        ("2024-01-01T00:00:00.5+0000", 500),
    ])
    def test_iso_any_fraction_length(self, raw, offset_ms):
        assert parse_timestamp(raw, TimestampFormat.ISO8601) == JAN_1_2024_MS + offset_ms

    def test_naive_iso_uses_zone(self):
        plus_one = timezone(timedelta(hours=1))
        result = parse_timestamp("2024-01-01T01:00:00", TimestampFormat.ISO8601, plus_one)
        assert result == JAN_1_2024_MS

    def test_datetime_object(self):
        value = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert parse_timestamp(value, TimestampFormat.ISO8601) == JAN_1_2024_MS

    def test_iso_number_read_as_millis(self):
        assert parse_timestamp(JAN_1_2024_MS, TimestampFormat.ISO8601) == JAN_1_2024_MS

    def test_unix_seconds(self):
        assert parse_timestamp(1704067200, TimestampFormat.UNIX_SECONDS) == JAN_1_2024_MS

    def test_unix_seconds_fractional(self):
        assert parse_timestamp(1704067200.5, "unix_seconds") == JAN_1_2024_MS + 500

    def test_unix_seconds_numeric_string(self):
        assert parse_timestamp("1704067200", TimestampFormat.UNIX_SECONDS) == JAN_1_2024_MS

    def test_unix_ms(self):
        assert parse_timestamp(JAN_1_2024_MS, TimestampFormat.UNIX_MS) == JAN_1_2024_MS

    def test_format_parity(self):
        assert (
            parse_timestamp(1704067200, "unix_seconds")
            == parse_timestamp(1704067200000, "unix_ms")
            == parse_timestamp("2024-01-01T00:00:00Z", "ISO8601")
            == JAN_1_2024_MS
        )

    def test_result_is_int(self):
        assert isinstance(parse_timestamp(1704067200.0, "unix_seconds"), int)

    @pytest.mark.parametrize("raw,fmt", [
        ("not-a-date", TimestampFormat.ISO8601),
        ("", TimestampFormat.ISO8601),
        ("abc", TimestampFormat.UNIX_SECONDS),
        (float("nan"), TimestampFormat.UNIX_MS),
        (float("inf"), TimestampFormat.ISO8601),
        (True, TimestampFormat.UNIX_MS),
        ([1, 2], TimestampFormat.ISO8601),
    ])
    def test_rejects_bad_values(self, raw, fmt):
        with pytest.raises(ValueError):
            parse_timestamp(raw, fmt)


class TestTimestampResolver:

    def test_resolves_nested_path(self):
        mapping = TimestampMapping(source_path="meta.timestamp", format="unix_ms")
        outcome = TimestampResolver().resolve(
            {"meta": {"timestamp": JAN_1_2024_MS}}, mapping, 0,
        )
        assert outcome.success
        assert outcome.timestamp == JAN_1_2024_MS

    def test_missing_field(self):
        mapping = TimestampMapping(source_path="ts")
        outcome = TimestampResolver().resolve({}, mapping, 4)
        assert not outcome.success
        assert outcome.diagnostic.code == ErrorCode.MISSING_REQUIRED_FIELD
        assert outcome.diagnostic.field_path == "[4].ts"
        assert outcome.diagnostic.message == "Missing timestamp field: ts"

    def test_null_field_is_missing(self):
        mapping = TimestampMapping(source_path="ts")
        outcome = TimestampResolver().resolve({"ts": None}, mapping, 0)
        assert outcome.diagnostic.code == ErrorCode.MISSING_REQUIRED_FIELD

    def test_unparseable(self):
        mapping = TimestampMapping(source_path="ts")
        outcome = TimestampResolver().resolve({"ts": "not-a-date"}, mapping, 1)
        diag = outcome.diagnostic
        assert diag.code == ErrorCode.TIMESTAMP_PARSE_FAILED
        assert diag.message == "Failed to parse timestamp: not-a-date"
        assert diag.original_value == "not-a-date"
        assert diag.field_path == "[1].ts"

    def test_mapping_rejects_unknown_zone(self):
        with pytest.raises(ValueError):
            TimestampMapping(source_path="ts", timezone="Not/AZone")
