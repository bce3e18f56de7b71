# -*- coding: utf-8 -*-
"""Pytest configuration and shared fixtures."""

from typing import Any, Dict, List

import pytest

from signalgrid.connector_normalizer.config import reset_config
from signalgrid.connector_normalizer.engine import NormalizationEngine
from signalgrid.connector_normalizer.models import (
    MappingRule,
    NormalizationContext,
    create_mapping_rule,
)
from signalgrid.connector_normalizer.setup import reset_service


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Give every test a fresh configuration read from a clean environment."""
    import os

    for key in list(os.environ):
        if key.startswith("SG_CONNECTOR_NORMALIZER_"):
            monkeypatch.delenv(key, raising=False)
    reset_config()
    reset_service()
    yield
    reset_config()
    reset_service()


@pytest.fixture
def golden_records() -> List[Dict[str, Any]]:
    """Three one-minute-apart records from a Prometheus-style source."""
    return [
        {
            "timestamp": "2024-01-01T00:00:00Z",
            "metric_value": 100,
            "host": "server-01",
            "region": "us-east-1",
            "status": "healthy",
        },
        {
            "timestamp": "2024-01-01T00:01:00Z",
            "metric_value": 105,
            "host": "server-01",
            "region": "us-east-1",
            "status": "healthy",
        },
        {
            "timestamp": "2024-01-01T00:02:00Z",
            "metric_value": 98,
            "host": "server-01",
            "region": "us-east-1",
            "status": "degraded",
        },
    ]


@pytest.fixture
def golden_rule_data() -> Dict[str, Any]:
    """Raw mapping rule for the golden records."""
    return {
        "id": "test-rule-001",
        "name": "Test Rule",
        "version": "1.0.0",
        "source_type": "prometheus",
        "series_defaults": {"display_name": "CPU usage", "unit": "percent"},
        "timestamp_mapping": {"source_path": "timestamp", "format": "ISO8601"},
        "value_mapping": {
            "source_path": "metric_value",
            "target_field": "value",
            "transform": "none",
            "required": True,
        },
        "label_mappings": [
            {"source_path": "host", "target_field": "host"},
            {"source_path": "region", "target_field": "region"},
        ],
        "tag_mappings": [
            {"source_path": "status", "target_field": "status"},
        ],
    }


@pytest.fixture
def golden_rule(golden_rule_data) -> MappingRule:
    """Golden mapping rule as a model."""
    return create_mapping_rule(**golden_rule_data)


@pytest.fixture
def context() -> NormalizationContext:
    """Fixed normalization context so results are reproducible."""
    return NormalizationContext(
        connector_id="prom-01",
        tenant_id="tenant-a",
        batch_id="batch_1704067200000_abc123def",
        correlation_id="corr_1704067200000_abc123def",
        ingested_at=1704067200000,
    )


@pytest.fixture
def engine(golden_rule) -> NormalizationEngine:
    """Engine with the golden rule registered."""
    engine = NormalizationEngine()
    engine.register_rule(golden_rule)
    return engine


@pytest.fixture
def make_rule(golden_rule_data):
    """Build a rule from the golden rule data with overrides."""

    def _make(**overrides: Any) -> MappingRule:
        data = dict(golden_rule_data)
        data.update(overrides)
        return create_mapping_rule(**data)

    return _make
