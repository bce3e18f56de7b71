# -*- coding: utf-8 -*-
"""
Tests for the Prometheus metrics recorded by the normalizer.
"""

from prometheus_client import REGISTRY

from signalgrid.connector_normalizer.config import ConnectorNormalizerConfig, set_config


def _sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_run_and_records_counted(engine, golden_records, context):
    before_runs = _sample(
        "sg_connector_normalize_runs_total", rule_id="test-rule-001", status="success",
    )
    before_points = _sample("sg_connector_records_processed_total", outcome="normalized")
    engine.normalize(golden_records, "test-rule-001", context)
    assert _sample(
        "sg_connector_normalize_runs_total", rule_id="test-rule-001", status="success",
    ) == before_runs + 1
    assert _sample(
        "sg_connector_records_processed_total", outcome="normalized",
    ) == before_points + 3


def test_diagnostics_counted(engine, golden_records, context):
    before = _sample("sg_connector_diagnostics_total", code="CONN_5003", severity="error")
    golden_records[0]["timestamp"] = "garbage"
    engine.normalize(golden_records, "test-rule-001", context)
    assert _sample(
        "sg_connector_diagnostics_total", code="CONN_5003", severity="error",
    ) == before + 1


def test_registered_rules_gauge(engine, make_rule):
    engine.register_rule(make_rule(id="another"))
    assert _sample("sg_connector_registered_rules") == 2


def test_disabled_metrics_not_recorded(engine, golden_records, context):
    set_config(ConnectorNormalizerConfig(enable_metrics=False))
    before = _sample(
        "sg_connector_normalize_runs_total", rule_id="test-rule-001", status="success",
    )
    engine.normalize(golden_records, "test-rule-001", context)
    assert _sample(
        "sg_connector_normalize_runs_total", rule_id="test-rule-001", status="success",
    ) == before


def test_unknown_rule_uses_fixed_label(engine, golden_records, context):
    before = _sample(
        "sg_connector_normalize_runs_total", rule_id="unknown", status="rule_not_found",
    )
    engine.normalize(golden_records, "caller-supplied-id-42", context)
    assert _sample(
        "sg_connector_normalize_runs_total", rule_id="unknown", status="rule_not_found",
    ) == before + 1
    assert REGISTRY.get_sample_value(
        "sg_connector_normalize_runs_total",
        {"rule_id": "caller-supplied-id-42", "status": "rule_not_found"},
    ) is None
