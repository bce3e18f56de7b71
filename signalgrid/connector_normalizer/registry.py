# -*- coding: utf-8 -*-
"""
Mapping Rule Registry - SG-DATA-001: Connector Normalizer

Holds the mapping rules available to the normalization engine, keyed by
rule id.

Concurrency model:
    - Rules are stored as immutable, deep-copied snapshots
    - Every write builds a new dict and swaps it in under a lock
    - Readers take the current dict reference without locking, so a
      normalization run sees either the old or the new rule, never a
      partially updated one

Example:
    >>> from signalgrid.connector_normalizer.registry import MappingRuleRegistry
    >>> registry = MappingRuleRegistry()
    >>> registry.register_rule(rule)
    >>> registry.get_rule(rule.id) is not None
    True

Author: SignalGrid Platform Team
Date: October 2026
PRD: SG-DATA-001 Connector Normalizer
Status: Production Ready
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from signalgrid.connector_normalizer.errors import (
    InvalidMappingRuleError,
    MappingRuleNotFoundError,
)
from signalgrid.connector_normalizer.metrics import set_registered_rules
from signalgrid.connector_normalizer.models import MappingRule, validate_mapping_rule

logger = logging.getLogger(__name__)

__all__ = ["MappingRuleRegistry"]

RuleInput = Union[MappingRule, Mapping[str, Any]]


def _snapshot(rule: RuleInput) -> MappingRule:
    """Validate ``rule`` and return a private immutable copy of it."""
    if isinstance(rule, MappingRule):
        return rule.model_copy(deep=True)
    data = dict(rule) if isinstance(rule, Mapping) else rule
    result = validate_mapping_rule(data)
    if not result.success:
        rule_id = data.get("id", "<unknown>") if isinstance(data, dict) else "<unknown>"
        logger.warning(
            "Rejected mapping rule %s: %s", rule_id, "; ".join(result.errors),
        )
        raise InvalidMappingRuleError(
            f"Invalid mapping rule '{rule_id}'",
            errors=result.errors,
            context={"rule_id": rule_id},
        )
    return result.rule  # type: ignore[return-value]


class MappingRuleRegistry:
    """Copy-on-write store of mapping rule snapshots.

    Attributes:
        _rules: Current id -> rule mapping; replaced wholesale on write.
        _lock: Serialises writers.
    """

    def __init__(self, rules: Optional[Iterable[RuleInput]] = None) -> None:
        self._rules: Dict[str, MappingRule] = {}
        self._lock = threading.Lock()
        if rules:
            self.register_rules(rules)
        logger.info("MappingRuleRegistry initialised: rules=%d", len(self._rules))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def register_rule(self, rule: RuleInput) -> MappingRule:
        """Register or replace a rule.

        Args:
            rule: MappingRule or raw rule mapping.

        Returns:
            The stored snapshot.

        Raises:
            InvalidMappingRuleError: If the rule fails validation.
        """
        snapshot = _snapshot(rule)
        with self._lock:
            replaced = snapshot.id in self._rules
            rules = dict(self._rules)
            rules[snapshot.id] = snapshot
            self._rules = rules
            count = len(rules)
        set_registered_rules(count)
        logger.info(
            "Mapping rule %s %s: version=%s, source_type=%s",
            snapshot.id, "replaced" if replaced else "registered",
            snapshot.version, snapshot.source_type,
        )
        return snapshot.model_copy(deep=True)

    def register_rules(self, rules: Iterable[RuleInput]) -> List[MappingRule]:
        """Register several rules atomically; none are stored if any is invalid."""
        snapshots = [_snapshot(rule) for rule in rules]
        with self._lock:
            updated = dict(self._rules)
            for snapshot in snapshots:
                updated[snapshot.id] = snapshot
            self._rules = updated
            count = len(updated)
        set_registered_rules(count)
        logger.info("Registered %d mapping rules (total=%d)", len(snapshots), count)
        return [snapshot.model_copy(deep=True) for snapshot in snapshots]

    def remove_rule(self, rule_id: str) -> MappingRule:
        """Remove a rule.

        Raises:
            MappingRuleNotFoundError: If no rule has this id.
        """
        with self._lock:
            if rule_id not in self._rules:
                raise MappingRuleNotFoundError(
                    f"Mapping rule '{rule_id}' not found",
                    context={"rule_id": rule_id},
                )
            rules = dict(self._rules)
            removed = rules.pop(rule_id)
            self._rules = rules
            count = len(rules)
        set_registered_rules(count)
        logger.info("Mapping rule %s removed", rule_id)
        return removed

    def clear(self) -> None:
        """Remove every rule."""
        with self._lock:
            self._rules = {}
        set_registered_rules(0)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_rule(self, rule_id: str) -> Optional[MappingRule]:
        """Return a private copy of the current snapshot for ``rule_id`` or None.

        Callers never receive the stored object, so nested containers such
        as lookup tables cannot be edited under a running normalization.
        """
        rule = self._rules.get(rule_id)
        return None if rule is None else rule.model_copy(deep=True)

    def list_rules(self) -> List[MappingRule]:
        """Return copies of all current snapshots sorted by id."""
        rules = self._rules
        return [rules[rule_id].model_copy(deep=True) for rule_id in sorted(rules)]

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def __len__(self) -> int:
        return len(self._rules)
