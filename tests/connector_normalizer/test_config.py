# -*- coding: utf-8 -*-
"""
Tests for the environment-driven configuration.
"""

import pytest

from signalgrid.connector_normalizer.config import (
    ConnectorNormalizerConfig,
    get_config,
    reset_config,
    set_config,
)


class TestDefaults:

    def test_defaults(self):
        config = get_config()
        assert config.default_timezone == "UTC"
        assert config.schema_sample_size == 100
        assert config.max_sample_values == 10
        assert config.hash_algorithm == "sha256"
        assert config.enable_metrics is True
        assert config.enable_provenance is True
        assert config.max_provenance_entries == 10_000
        assert config.log_level == "INFO"

    def test_singleton(self):
        assert get_config() is get_config()


class TestFromEnv:

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("SG_CONNECTOR_NORMALIZER_SCHEMA_SAMPLE_SIZE", "25")
        monkeypatch.setenv("SG_CONNECTOR_NORMALIZER_ENABLE_METRICS", "false")
        monkeypatch.setenv("SG_CONNECTOR_NORMALIZER_ENABLE_PROVENANCE", "YES")
        monkeypatch.setenv("SG_CONNECTOR_NORMALIZER_HASH_ALGORITHM", "sha512")
        monkeypatch.setenv("SG_CONNECTOR_NORMALIZER_LOG_LEVEL", "DEBUG")
        config = ConnectorNormalizerConfig.from_env()
        assert config.schema_sample_size == 25
        assert config.enable_metrics is False
        assert config.enable_provenance is True
        assert config.hash_algorithm == "sha512"
        assert config.log_level == "DEBUG"

    def test_invalid_int_falls_back(self, monkeypatch):
        monkeypatch.setenv("SG_CONNECTOR_NORMALIZER_MAX_SAMPLE_VALUES", "many")
        assert ConnectorNormalizerConfig.from_env().max_sample_values == 10

    def test_get_config_reads_env_after_reset(self, monkeypatch):
        get_config()
        monkeypatch.setenv("SG_CONNECTOR_NORMALIZER_SCHEMA_SAMPLE_SIZE", "7")
        reset_config()
        assert get_config().schema_sample_size == 7


class TestValidation:

    def test_unknown_hash_algorithm(self):
        with pytest.raises(ValueError):
            ConnectorNormalizerConfig(hash_algorithm="not-a-hash")

    @pytest.mark.parametrize("name", ["shake_128", "shake_256"])
    def test_variable_length_digests_rejected(self, name):
        with pytest.raises(ValueError):
            ConnectorNormalizerConfig(hash_algorithm=name)

    def test_fixed_length_digest_accepted(self):
        assert ConnectorNormalizerConfig(hash_algorithm="sha3_256").hash_algorithm == "sha3_256"

    def test_sample_size_must_be_positive(self):
        with pytest.raises(ValueError):
            ConnectorNormalizerConfig(schema_sample_size=0)

    def test_max_sample_values_non_negative(self):
        with pytest.raises(ValueError):
            ConnectorNormalizerConfig(max_sample_values=-1)


def test_set_config_replaces_singleton():
    custom = ConnectorNormalizerConfig(schema_sample_size=5)
    set_config(custom)
    assert get_config() is custom
    reset_config()
    assert get_config() is not custom
