# -*- coding: utf-8 -*-
"""
Prometheus Metrics - SG-DATA-001: Connector Normalizer

7 Prometheus metrics for connector normalizer monitoring. Recording is
skipped when ``enable_metrics`` is false in the active configuration.

Metrics:
    1. sg_connector_normalize_runs_total (Counter, labels: rule_id, status)
    2. sg_connector_normalize_duration_seconds (Histogram, 10 buckets)
    3. sg_connector_records_processed_total (Counter, labels: outcome)
    4. sg_connector_diagnostics_total (Counter, labels: code, severity)
    5. sg_connector_transforms_total (Counter, labels: transform, status)
    6. sg_connector_schema_inferences_total (Counter)
    7. sg_connector_registered_rules (Gauge)

Author: SignalGrid Platform Team
Date: October 2026
PRD: SG-DATA-001 Connector Normalizer
Status: Production Ready
"""

from __future__ import annotations

import logging

from prometheus_client import Counter, Gauge, Histogram

from signalgrid.connector_normalizer.config import get_config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

# 1. Normalization runs by rule and outcome
connector_normalize_runs_total = Counter(
    "sg_connector_normalize_runs_total",
    "Total normalization runs",
    labelnames=["rule_id", "status"],
)

# 2. Normalization duration (sub-millisecond batches up to multi-second ones)
connector_normalize_duration_seconds = Histogram(
    "sg_connector_normalize_duration_seconds",
    "Normalization run duration in seconds",
    buckets=(
        0.001, 0.005, 0.01, 0.025, 0.05,
        0.1, 0.25, 0.5, 1.0, 5.0,
    ),
)

# 3. Raw records by outcome (normalized, skipped, filtered, duplicate)
connector_records_processed_total = Counter(
    "sg_connector_records_processed_total",
    "Total raw records processed by outcome",
    labelnames=["outcome"],
)

# 4. Diagnostics by error code and severity
connector_diagnostics_total = Counter(
    "sg_connector_diagnostics_total",
    "Total field diagnostics emitted",
    labelnames=["code", "severity"],
)

# 5. Transform applications by kind and status
connector_transforms_total = Counter(
    "sg_connector_transforms_total",
    "Total field transforms applied",
    labelnames=["transform", "status"],
)

# 6. Schema inference runs
connector_schema_inferences_total = Counter(
    "sg_connector_schema_inferences_total",
    "Total schema inference runs",
)

# 7. Rules currently registered
connector_registered_rules = Gauge(
    "sg_connector_registered_rules",
    "Number of mapping rules currently registered",
)


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------


def _enabled() -> bool:
    return get_config().enable_metrics


def record_normalize_run(rule_id: str, status: str, duration_seconds: float) -> None:
    """Record a completed normalization run.

    Args:
        rule_id: Mapping rule requested by the run.
        status: Run outcome (success, failure, rule_not_found).
        duration_seconds: Wall-clock duration of the run.
    """
    if not _enabled():
        return
    connector_normalize_runs_total.labels(rule_id=rule_id, status=status).inc()
    connector_normalize_duration_seconds.observe(duration_seconds)


def record_records(outcome: str, count: int = 1) -> None:
    """Record raw records by outcome.

    Args:
        outcome: normalized, skipped, filtered or duplicate.
        count: Number of records.
    """
    if not _enabled() or count <= 0:
        return
    connector_records_processed_total.labels(outcome=outcome).inc(count)


def record_diagnostic(code: str, severity: str) -> None:
    """Record one emitted diagnostic.

    Args:
        code: Error code value (e.g. CONN_4003).
        severity: error, warning or info.
    """
    if not _enabled():
        return
    connector_diagnostics_total.labels(code=code, severity=severity).inc()


def record_transform(transform: str, status: str) -> None:
    """Record one transform application.

    Args:
        transform: Transform kind value.
        status: ok or failed.
    """
    if not _enabled():
        return
    connector_transforms_total.labels(transform=transform, status=status).inc()


def record_schema_inference() -> None:
    """Record one schema inference run."""
    if not _enabled():
        return
    connector_schema_inferences_total.inc()


def set_registered_rules(count: int) -> None:
    """Set the registered rules gauge.

    Args:
        count: Rules currently registered.
    """
    if not _enabled():
        return
    connector_registered_rules.set(count)


__all__ = [
    # Metric objects
    "connector_normalize_runs_total",
    "connector_normalize_duration_seconds",
    "connector_records_processed_total",
    "connector_diagnostics_total",
    "connector_transforms_total",
    "connector_schema_inferences_total",
    "connector_registered_rules",
    # Helper functions
    "record_normalize_run",
    "record_records",
    "record_diagnostic",
    "record_transform",
    "record_schema_inference",
    "set_registered_rules",
]
