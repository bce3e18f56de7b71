# -*- coding: utf-8 -*-
"""
Tests for the sg-normalize command line interface.
"""

import json

import pytest
import yaml
from typer.testing import CliRunner

from signalgrid.connector_normalizer import __version__
from signalgrid.connector_normalizer.cli import app

runner = CliRunner()


@pytest.fixture
def records_file(tmp_path, golden_records):
    path = tmp_path / "records.json"
    path.write_text(json.dumps(golden_records), encoding="utf-8")
    return path


@pytest.fixture
def rule_file(tmp_path, golden_rule_data):
    path = tmp_path / "rule.yaml"
    path.write_text(yaml.safe_dump(golden_rule_data), encoding="utf-8")
    return path


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.output


class TestInfer:

    def test_json_output(self, records_file):
        result = runner.invoke(
            app, ["--log-level", "WARNING", "infer", str(records_file), "--json"],
        )
        assert result.exit_code == 0
        schema = json.loads(result.output)
        assert schema["suggested_timestamp_field"] == "timestamp"
        assert schema["suggested_value_field"] == "metric_value"
        assert schema["inferred_resolution"] == "minute"

    def test_table_output(self, records_file):
        result = runner.invoke(app, ["infer", str(records_file)])
        assert result.exit_code == 0
        assert "metric_value" in result.output

    def test_records_wrapper_object(self, tmp_path, golden_records):
        path = tmp_path / "wrapped.yaml"
        path.write_text(yaml.safe_dump({"records": golden_records}), encoding="utf-8")
        result = runner.invoke(
            app, ["--log-level", "WARNING", "infer", str(path), "--json", "-n", "2"],
        )
        assert result.exit_code == 0
        assert json.loads(result.output)["records_sampled"] == 2

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["infer", str(tmp_path / "nope.json")])
        assert result.exit_code == 1

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "records.txt"
        path.write_text("[]", encoding="utf-8")
        result = runner.invoke(app, ["infer", str(path)])
        assert result.exit_code == 1


class TestValidateRule:

    def test_valid(self, rule_file):
        result = runner.invoke(app, ["validate-rule", str(rule_file)])
        assert result.exit_code == 0
        assert "test-rule-001" in result.output

    def test_invalid(self, tmp_path):
        path = tmp_path / "rule.json"
        path.write_text(json.dumps({"id": "broken"}), encoding="utf-8")
        result = runner.invoke(app, ["validate-rule", str(path)])
        assert result.exit_code == 1
        assert "value_mapping" in result.output

    def test_unparseable(self, tmp_path):
        path = tmp_path / "rule.json"
        path.write_text("{not json", encoding="utf-8")
        result = runner.invoke(app, ["validate-rule", str(path)])
        assert result.exit_code == 1


class TestNormalize:

    def test_success_writes_output(self, tmp_path, records_file, rule_file):
        output = tmp_path / "result.json"
        result = runner.invoke(app, [
            "normalize", str(records_file), str(rule_file),
            "--connector-id", "prom-01", "-o", str(output),
        ])
        assert result.exit_code == 0
        written = json.loads(output.read_text(encoding="utf-8"))
        assert written["success"] is True
        assert len(written["points"]) == 3
        assert written["points"][0]["processing_metadata"]["source_connector_id"] == "prom-01"

    def test_failures_exit_non_zero(self, tmp_path, golden_records, rule_file):
        del golden_records[0]["metric_value"]
        path = tmp_path / "records.json"
        path.write_text(json.dumps(golden_records), encoding="utf-8")
        result = runner.invoke(app, [
            "normalize", str(path), str(rule_file), "-c", "prom-01",
        ])
        assert result.exit_code == 1
        assert "CONN_4003" in result.output

    def test_invalid_rule(self, tmp_path, records_file):
        path = tmp_path / "rule.json"
        path.write_text(json.dumps({"id": "broken"}), encoding="utf-8")
        result = runner.invoke(app, [
            "normalize", str(records_file), str(path), "-c", "prom-01",
        ])
        assert result.exit_code == 1

    def test_connector_id_required(self, records_file, rule_file):
        result = runner.invoke(app, ["normalize", str(records_file), str(rule_file)])
        assert result.exit_code != 0
