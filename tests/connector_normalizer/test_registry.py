# -*- coding: utf-8 -*-
"""
Tests for the copy-on-write mapping rule registry.
"""

import threading

import pytest

from signalgrid.connector_normalizer.errors import (
    ErrorCode,
    InvalidMappingRuleError,
    MappingRuleNotFoundError,
)
from signalgrid.connector_normalizer.registry import MappingRuleRegistry


class TestRegistration:

    def test_register_model(self, golden_rule):
        registry = MappingRuleRegistry()
        stored = registry.register_rule(golden_rule)
        assert stored == golden_rule
        assert "test-rule-001" in registry
        assert len(registry) == 1

    def test_register_dict(self, golden_rule_data):
        registry = MappingRuleRegistry()
        stored = registry.register_rule(golden_rule_data)
        assert stored.id == "test-rule-001"
        assert stored.value_mapping.required is True

    def test_invalid_dict_raises(self, golden_rule_data):
        data = dict(golden_rule_data)
        del data["value_mapping"]
        registry = MappingRuleRegistry()
        with pytest.raises(InvalidMappingRuleError) as exc_info:
            registry.register_rule(data)
        assert exc_info.value.code == ErrorCode.INVALID_MAPPING_RULE
        assert any("value_mapping" in e for e in exc_info.value.errors)
        assert len(registry) == 0

    def test_replace_keeps_single_entry(self, make_rule):
        registry = MappingRuleRegistry()
        registry.register_rule(make_rule(version="1.0.0"))
        registry.register_rule(make_rule(version="2.0.0"))
        assert len(registry) == 1
        assert registry.get_rule("test-rule-001").version == "2.0.0"

    def test_register_rules_is_atomic(self, make_rule, golden_rule_data):
        registry = MappingRuleRegistry()
        bad = dict(golden_rule_data, id="bad", timestamp_mapping={"format": "ISO8601"})
        with pytest.raises(InvalidMappingRuleError):
            registry.register_rules([make_rule(id="a"), bad])
        assert len(registry) == 0

    def test_constructor_rules(self, make_rule):
        registry = MappingRuleRegistry([make_rule(id="a"), make_rule(id="b")])
        assert len(registry) == 2


class TestReadsAndRemoval:

    def test_unknown_rule_is_none(self):
        assert MappingRuleRegistry().get_rule("missing") is None

    def test_list_sorted_by_id(self, make_rule):
        registry = MappingRuleRegistry()
        for rule_id in ("zeta", "alpha", "mid"):
            registry.register_rule(make_rule(id=rule_id))
        assert [r.id for r in registry.list_rules()] == ["alpha", "mid", "zeta"]

    def test_remove(self, golden_rule):
        registry = MappingRuleRegistry([golden_rule])
        removed = registry.remove_rule(golden_rule.id)
        assert removed.id == golden_rule.id
        assert golden_rule.id not in registry

    def test_remove_missing_raises(self):
        with pytest.raises(MappingRuleNotFoundError) as exc_info:
            MappingRuleRegistry().remove_rule("missing")
        assert exc_info.value.code == ErrorCode.MAPPING_NOT_FOUND

    def test_clear(self, golden_rule):
        registry = MappingRuleRegistry([golden_rule])
        registry.clear()
        assert len(registry) == 0


class TestSnapshots:

    def test_caller_mutation_does_not_leak(self, make_rule):
        rule = make_rule(value_mapping={
            "source_path": "status",
            "target_field": "value",
            "transform": "lookup",
            "transform_params": {"lookup_table": {"healthy": 100}},
        })
        registry = MappingRuleRegistry()
        registry.register_rule(rule)
        rule.value_mapping.transform_params.lookup_table["healthy"] = -1
        stored = registry.get_rule(rule.id)
        assert stored.value_mapping.transform_params.lookup_table == {"healthy": 100}

    def test_nested_mappings_are_frozen(self, golden_rule):
        registry = MappingRuleRegistry([golden_rule])
        stored = registry.get_rule(golden_rule.id)
        with pytest.raises(Exception):
            stored.value_mapping.source_path = "something_else"
        with pytest.raises(Exception):
            stored.timestamp_mapping.format = "unix_ms"
        assert isinstance(stored.tag_mappings, tuple)

    def test_reads_return_private_copies(self, golden_rule):
        registry = MappingRuleRegistry([golden_rule])
        first = registry.get_rule(golden_rule.id)
        assert first == registry.get_rule(golden_rule.id)
        assert first is not registry.get_rule(golden_rule.id)
        assert registry.list_rules()[0] is not first

    def test_earlier_listing_unaffected_by_writes(self, make_rule):
        registry = MappingRuleRegistry([make_rule(id="a")])
        before = registry.list_rules()
        registry.register_rule(make_rule(id="b"))
        registry.remove_rule("a")
        assert [r.id for r in before] == ["a"]

    def test_stored_rule_is_frozen(self, golden_rule):
        registry = MappingRuleRegistry([golden_rule])
        with pytest.raises(Exception):
            registry.get_rule(golden_rule.id).name = "changed"

    def test_concurrent_readers_see_whole_rules(self, make_rule):
        registry = MappingRuleRegistry([make_rule(version="0")])
        versions = {str(i) for i in range(50)}
        errors = []
        stop = threading.Event()

        def reader():
            while not stop.is_set():
                rule = registry.get_rule("test-rule-001")
                if rule is None or rule.version not in versions:
                    errors.append(rule)

        threads = [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for i in range(1, 50):
            registry.register_rule(make_rule(version=str(i)))
        stop.set()
        for t in threads:
            t.join()

        assert errors == []
        assert registry.get_rule("test-rule-001").version == "49"
