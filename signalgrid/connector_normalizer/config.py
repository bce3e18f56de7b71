# -*- coding: utf-8 -*-
"""
Connector Normalizer Service Configuration - SG-DATA-001: Connector Normalizer

Centralized configuration for the connector normalizer covering:
- Timestamp defaults (timezone applied to naive ISO strings)
- Schema inference sampling (sample size, retained sample values)
- Content hashing algorithm
- Feature toggles (metrics, provenance)
- Provenance retention
- Logging

All settings can be overridden via environment variables with the
``SG_CONNECTOR_NORMALIZER_`` prefix
(e.g. ``SG_CONNECTOR_NORMALIZER_SCHEMA_SAMPLE_SIZE``).

Example:
    >>> from signalgrid.connector_normalizer.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.schema_sample_size, cfg.hash_algorithm)

Author: SignalGrid Platform Team
Date: October 2026
PRD: SG-DATA-001 Connector Normalizer
Status: Production Ready
"""

from __future__ import annotations

import hashlib
import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment variable prefix
# ---------------------------------------------------------------------------

_ENV_PREFIX = "SG_CONNECTOR_NORMALIZER_"


# ---------------------------------------------------------------------------
# ConnectorNormalizerConfig
# ---------------------------------------------------------------------------


@dataclass
class ConnectorNormalizerConfig:
    """Complete configuration for the SignalGrid connector normalizer.

    All attributes can be overridden via environment variables using the
    ``SG_CONNECTOR_NORMALIZER_`` prefix.

    Attributes:
        default_timezone: Zone applied by parse_date to naive values when
            the transform names none.
        schema_sample_size: Records examined by schema inference by default.
        max_sample_values: Sample values retained per inferred field.
        hash_algorithm: hashlib algorithm used for content hashes.
        enable_metrics: Whether Prometheus metrics are recorded.
        enable_provenance: Whether the service records provenance entries.
        max_provenance_entries: Provenance entries kept before the oldest
            are dropped.
        log_level: Logging level for the normalizer.
    """

    # -- Timestamps ------------------------------------------------------------
    default_timezone: str = "UTC"

    # -- Schema inference ------------------------------------------------------
    schema_sample_size: int = 100
    max_sample_values: int = 10

    # -- Hashing ---------------------------------------------------------------
    hash_algorithm: str = "sha256"

    # -- Feature toggles -------------------------------------------------------
    enable_metrics: bool = True
    enable_provenance: bool = True

    # -- Provenance ------------------------------------------------------------
    max_provenance_entries: int = 10_000

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        # Variable-length digests (shake_*) cannot produce a bare hexdigest
        try:
            hashlib.new(self.hash_algorithm).hexdigest()
        except (TypeError, ValueError) as exc:
            raise ValueError(
                f"Unsupported hash_algorithm '{self.hash_algorithm}'"
            ) from exc
        if self.schema_sample_size < 1:
            raise ValueError("schema_sample_size must be >= 1")
        if self.max_sample_values < 0:
            raise ValueError("max_sample_values must be >= 0")

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> ConnectorNormalizerConfig:
        """Build a ConnectorNormalizerConfig from environment variables.

        Every field can be overridden via
        ``SG_CONNECTOR_NORMALIZER_<FIELD_UPPER>``. Boolean values accept
        ``true/1/yes`` (case-insensitive). Integer values are parsed via
        ``int()``; invalid integers fall back to the default.

        Returns:
            Populated ConnectorNormalizerConfig instance.
        """
        prefix = _ENV_PREFIX

        def _env(name: str, default: Any = None) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}", default)

        def _bool(name: str, default: bool) -> bool:
            val = _env(name)
            if val is None:
                return default
            return val.lower() in ("true", "1", "yes")

        def _int(name: str, default: int) -> int:
            val = _env(name)
            if val is None:
                return default
            try:
                return int(val)
            except ValueError:
                logger.warning(
                    "Invalid integer for %s%s=%s, using default %d",
                    prefix, name, val, default,
                )
                return default

        def _str(name: str, default: str) -> str:
            val = _env(name)
            if val is None:
                return default
            return val

        config = cls(
            default_timezone=_str("DEFAULT_TIMEZONE", cls.default_timezone),
            schema_sample_size=_int(
                "SCHEMA_SAMPLE_SIZE", cls.schema_sample_size,
            ),
            max_sample_values=_int(
                "MAX_SAMPLE_VALUES", cls.max_sample_values,
            ),
            hash_algorithm=_str("HASH_ALGORITHM", cls.hash_algorithm),
            enable_metrics=_bool("ENABLE_METRICS", cls.enable_metrics),
            enable_provenance=_bool(
                "ENABLE_PROVENANCE", cls.enable_provenance,
            ),
            max_provenance_entries=_int(
                "MAX_PROVENANCE_ENTRIES", cls.max_provenance_entries,
            ),
            log_level=_str("LOG_LEVEL", cls.log_level),
        )

        logger.info(
            "ConnectorNormalizerConfig loaded: default_timezone=%s, "
            "schema_sample_size=%d, max_sample_values=%d, hash=%s, "
            "metrics=%s, provenance=%s",
            config.default_timezone,
            config.schema_sample_size,
            config.max_sample_values,
            config.hash_algorithm,
            config.enable_metrics,
            config.enable_provenance,
        )
        return config


# ---------------------------------------------------------------------------
# Thread-safe singleton accessor
# ---------------------------------------------------------------------------

_config_instance: Optional[ConnectorNormalizerConfig] = None
_config_lock = threading.Lock()


def get_config() -> ConnectorNormalizerConfig:
    """Return the singleton ConnectorNormalizerConfig, creating from env if needed.

    Returns:
        ConnectorNormalizerConfig singleton instance.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = ConnectorNormalizerConfig.from_env()
    return _config_instance


def set_config(config: ConnectorNormalizerConfig) -> None:
    """Replace the singleton ConnectorNormalizerConfig (useful for testing).

    Args:
        config: New configuration to install.
    """
    global _config_instance
    with _config_lock:
        _config_instance = config
    logger.info("ConnectorNormalizerConfig replaced programmatically")


def reset_config() -> None:
    """Reset the singleton (primarily for test teardown)."""
    global _config_instance
    with _config_lock:
        _config_instance = None


__all__ = [
    "ConnectorNormalizerConfig",
    "get_config",
    "set_config",
    "reset_config",
]
