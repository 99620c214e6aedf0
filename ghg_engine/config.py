# -*- coding: utf-8 -*-
"""
GHG Engine Configuration

Centralized configuration for the emission calculation and reconciliation
engine covering:
- Logging level
- GWP table selection (AR5 or the ISO 14064 variant)
- Reconciliation tolerance (absolute, default 0.01)
- Factor-selection oracle settings (model, token budget, timeout,
  candidate cap)
- Per-standard number formats for the Numeric Normalizer
- ISCC LCA defaults (fossil baseline 83.8 g CO2e/MJ, LUC precedence mode)
- Plausibility threshold for very large emissions (1e9 kg)
- Worker pool size for parallel activity calculation
- Provenance tracking (genesis hash, SHA-256 chain anchoring)
- Prometheus metrics export toggle

All settings can be overridden via environment variables with the
``GHG_ENGINE_`` prefix (e.g. ``GHG_ENGINE_ORACLE_TIMEOUT_SECONDS``).

Environment Variable Reference (GHG_ENGINE_ prefix):
    GHG_ENGINE_LOG_LEVEL                 - Logging level
    GHG_ENGINE_GWP_SOURCE                - AR5, ISO_14064 or GHG_PROTOCOL
    GHG_ENGINE_DISCREPANCY_TOLERANCE     - Absolute reconciliation tolerance
    GHG_ENGINE_ORACLE_MODEL              - Model name for the oracle client
    GHG_ENGINE_ORACLE_MAX_TOKENS         - Max tokens per oracle reply
    GHG_ENGINE_ORACLE_TIMEOUT_SECONDS    - Default oracle timeout
    GHG_ENGINE_ORACLE_MAX_CANDIDATES     - Candidate factors sent per prompt
    GHG_ENGINE_IPCC_NUMBER_FORMAT        - european / us / spreadsheet
    GHG_ENGINE_DEFRA_NUMBER_FORMAT       - european / us / spreadsheet
    GHG_ENGINE_ISO14064_NUMBER_FORMAT    - european / us / spreadsheet
    GHG_ENGINE_GHG_PROTOCOL_NUMBER_FORMAT - european / us / spreadsheet
    GHG_ENGINE_ISCC_NUMBER_FORMAT        - european / us / spreadsheet
    GHG_ENGINE_DEFAULT_FOSSIL_BASELINE   - g CO2e/MJ fossil comparator
    GHG_ENGINE_LUC_LITERAL_PRECEDENCE    - Use the literal spreadsheet LUC form
    GHG_ENGINE_LARGE_EMISSION_WARNING_KG - Warn above this emission (kg)
    GHG_ENGINE_MAX_WORKERS               - Parallel activity workers
    GHG_ENGINE_DECIMAL_PRECISION         - Decimal places for display rounding
    GHG_ENGINE_ENABLE_METRICS            - Enable Prometheus metrics
    GHG_ENGINE_ENABLE_PROVENANCE         - Enable SHA-256 provenance chain
    GHG_ENGINE_GENESIS_HASH              - Genesis anchor for provenance

Example:
    >>> from ghg_engine.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.gwp_source, cfg.discrepancy_tolerance)
    AR5 0.01

    >>> from ghg_engine.config import GHGEngineConfig, set_config, reset_config
    >>> set_config(GHGEngineConfig(oracle_timeout_seconds=5.0))
    >>> reset_config()  # teardown

Author: GreenLang Platform Team
Date: March 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment variable prefix
# ---------------------------------------------------------------------------

_ENV_PREFIX = "GHG_ENGINE_"

# ---------------------------------------------------------------------------
# Valid enumeration values for configuration validation
# ---------------------------------------------------------------------------

_VALID_LOG_LEVELS = frozenset(
    {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
)

_VALID_GWP_SOURCES = frozenset({"AR5", "ISO_14064", "GHG_PROTOCOL"})

_VALID_NUMBER_FORMATS = frozenset({"european", "us", "spreadsheet"})

#: Fossil fuel comparator used by ISCC PLUS / RED II (g CO2e/MJ).
DEFAULT_FOSSIL_BASELINE: float = 83.8

#: Default absolute tolerance between oracle and recomputed values.
DEFAULT_DISCREPANCY_TOLERANCE: float = 0.01


# ---------------------------------------------------------------------------
# GHGEngineConfig
# ---------------------------------------------------------------------------


@dataclass
class GHGEngineConfig:
    """Complete configuration for the GHG calculation engine.

    Attributes:
        log_level: Logging verbosity level.
        gwp_source: Which GWP table calculators get by default.
        discrepancy_tolerance: Absolute tolerance for reconciliation.
        oracle_model: Model identifier passed to the oracle client.
        oracle_max_tokens: Maximum tokens requested per oracle reply.
        oracle_timeout_seconds: Default timeout for one oracle call.
        oracle_max_candidates: Cap on candidate factors in one prompt.
        ipcc_number_format: Normalizer mode for IPCC inputs.
        defra_number_format: Normalizer mode for DEFRA inputs.
        iso14064_number_format: Normalizer mode for ISO 14064 inputs.
        ghg_protocol_number_format: Normalizer mode for GHG Protocol inputs.
        iscc_number_format: Normalizer mode for ISCC LCA inputs.
        default_fossil_baseline: Fossil comparator (g CO2e/MJ).
        luc_literal_precedence: Evaluate the land-use-change per-dry-ton
            node exactly as the spreadsheet wrote it.
        large_emission_warning_kg: Emissions above this value log a warning.
        max_workers: Thread pool size for parallel activity calculation.
        decimal_precision: Decimal places used by presentation rounding.
        enable_metrics: Export Prometheus metrics.
        enable_provenance: Record SHA-256 provenance chain entries.
        genesis_hash: Anchor string for the provenance chain.
    """

    log_level: str = "INFO"
    gwp_source: str = "AR5"
    discrepancy_tolerance: float = DEFAULT_DISCREPANCY_TOLERANCE
    oracle_model: str = "claude-3-5-sonnet-latest"
    oracle_max_tokens: int = 2000
    oracle_timeout_seconds: float = 60.0
    oracle_max_candidates: int = 50
    ipcc_number_format: str = "european"
    defra_number_format: str = "european"
    iso14064_number_format: str = "us"
    ghg_protocol_number_format: str = "us"
    iscc_number_format: str = "spreadsheet"
    default_fossil_baseline: float = DEFAULT_FOSSIL_BASELINE
    luc_literal_precedence: bool = False
    large_emission_warning_kg: float = 1e9
    max_workers: int = 4
    decimal_precision: int = 6
    enable_metrics: bool = True
    enable_provenance: bool = True
    genesis_hash: str = "GL-GHG-ENGINE-GENESIS"

    def __post_init__(self) -> None:
        """Validate configuration constraints after initialisation.

        Collects all validation errors before raising a single ValueError.

        Raises:
            ValueError: If any configuration value is outside its valid
                range or violates a constraint.
        """
        errors: list[str] = []

        # -- Logging ---------------------------------------------------------
        normalised_log = self.log_level.upper()
        if normalised_log not in _VALID_LOG_LEVELS:
            errors.append(
                f"log_level must be one of {sorted(_VALID_LOG_LEVELS)}, "
                f"got '{self.log_level}'"
            )
        else:
            self.log_level = normalised_log

        # -- GWP source ------------------------------------------------------
        normalised_gwp = self.gwp_source.upper()
        if normalised_gwp not in _VALID_GWP_SOURCES:
            errors.append(
                f"gwp_source must be one of {sorted(_VALID_GWP_SOURCES)}, "
                f"got '{self.gwp_source}'"
            )
        else:
            self.gwp_source = normalised_gwp

        # -- Reconciliation --------------------------------------------------
        if self.discrepancy_tolerance < 0:
            errors.append(
                f"discrepancy_tolerance must be >= 0, "
                f"got {self.discrepancy_tolerance}"
            )

        # -- Oracle ----------------------------------------------------------
        if not self.oracle_model:
            errors.append("oracle_model must not be empty")
        if self.oracle_max_tokens <= 0:
            errors.append(
                f"oracle_max_tokens must be > 0, got {self.oracle_max_tokens}"
            )
        if self.oracle_timeout_seconds <= 0:
            errors.append(
                f"oracle_timeout_seconds must be > 0, "
                f"got {self.oracle_timeout_seconds}"
            )
        if self.oracle_max_candidates <= 0:
            errors.append(
                f"oracle_max_candidates must be > 0, "
                f"got {self.oracle_max_candidates}"
            )

        # -- Number formats --------------------------------------------------
        for name in (
            "ipcc_number_format",
            "defra_number_format",
            "iso14064_number_format",
            "ghg_protocol_number_format",
            "iscc_number_format",
        ):
            value = getattr(self, name).lower()
            if value not in _VALID_NUMBER_FORMATS:
                errors.append(
                    f"{name} must be one of {sorted(_VALID_NUMBER_FORMATS)}, "
                    f"got '{getattr(self, name)}'"
                )
            else:
                setattr(self, name, value)

        # -- LCA defaults ----------------------------------------------------
        if self.default_fossil_baseline <= 0:
            errors.append(
                f"default_fossil_baseline must be > 0, "
                f"got {self.default_fossil_baseline}"
            )
        if self.large_emission_warning_kg <= 0:
            errors.append(
                f"large_emission_warning_kg must be > 0, "
                f"got {self.large_emission_warning_kg}"
            )

        # -- Performance -----------------------------------------------------
        if self.max_workers <= 0:
            errors.append(f"max_workers must be > 0, got {self.max_workers}")
        if not 0 <= self.decimal_precision <= 28:
            errors.append(
                f"decimal_precision must be in [0, 28], "
                f"got {self.decimal_precision}"
            )

        # -- Provenance ------------------------------------------------------
        if not self.genesis_hash:
            errors.append("genesis_hash must not be empty")

        if errors:
            raise ValueError(
                "GHGEngineConfig validation failed:\n"
                + "\n".join(f"  - {e}" for e in errors)
            )

        logger.debug(
            "GHGEngineConfig validated successfully: gwp_source=%s, "
            "tolerance=%s, oracle_model=%s, oracle_timeout=%.1fs, "
            "formats=(ipcc=%s, defra=%s, iso=%s, ghgp=%s, iscc=%s), "
            "luc_literal=%s, workers=%d, provenance=%s, metrics=%s",
            self.gwp_source,
            self.discrepancy_tolerance,
            self.oracle_model,
            self.oracle_timeout_seconds,
            self.ipcc_number_format,
            self.defra_number_format,
            self.iso14064_number_format,
            self.ghg_protocol_number_format,
            self.iscc_number_format,
            self.luc_literal_precedence,
            self.max_workers,
            self.enable_provenance,
            self.enable_metrics,
        )

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> GHGEngineConfig:
        """Build a GHGEngineConfig from environment variables.

        Every field can be overridden via ``GHG_ENGINE_<FIELD_UPPER>``.
        Boolean values accept ``true/1/yes`` (case-insensitive). Malformed
        numeric values fall back to the class-level default and emit a
        WARNING log.

        Returns:
            Populated GHGEngineConfig instance, validated via
            ``__post_init__``.
        """
        prefix = _ENV_PREFIX

        def _env(name: str, default: Any = None) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}", default)

        def _bool(name: str, default: bool) -> bool:
            val = _env(name)
            if val is None:
                return default
            return val.strip().lower() in ("true", "1", "yes")

        def _int(name: str, default: int) -> int:
            val = _env(name)
            if val is None:
                return default
            try:
                return int(val.strip())
            except ValueError:
                logger.warning(
                    "Invalid integer for %s%s=%r, using default %d",
                    prefix, name, val, default,
                )
                return default

        def _float(name: str, default: float) -> float:
            val = _env(name)
            if val is None:
                return default
            try:
                return float(val.strip())
            except ValueError:
                logger.warning(
                    "Invalid float for %s%s=%r, using default %f",
                    prefix, name, val, default,
                )
                return default

        def _str(name: str, default: str) -> str:
            val = _env(name)
            if val is None:
                return default
            return val.strip()

        config = cls(
            log_level=_str("LOG_LEVEL", cls.log_level),
            gwp_source=_str("GWP_SOURCE", cls.gwp_source),
            discrepancy_tolerance=_float(
                "DISCREPANCY_TOLERANCE", cls.discrepancy_tolerance,
            ),
            # Oracle
            oracle_model=_str("ORACLE_MODEL", cls.oracle_model),
            oracle_max_tokens=_int("ORACLE_MAX_TOKENS", cls.oracle_max_tokens),
            oracle_timeout_seconds=_float(
                "ORACLE_TIMEOUT_SECONDS", cls.oracle_timeout_seconds,
            ),
            oracle_max_candidates=_int(
                "ORACLE_MAX_CANDIDATES", cls.oracle_max_candidates,
            ),
            # Number formats
            ipcc_number_format=_str(
                "IPCC_NUMBER_FORMAT", cls.ipcc_number_format,
            ),
            defra_number_format=_str(
                "DEFRA_NUMBER_FORMAT", cls.defra_number_format,
            ),
            iso14064_number_format=_str(
                "ISO14064_NUMBER_FORMAT", cls.iso14064_number_format,
            ),
            ghg_protocol_number_format=_str(
                "GHG_PROTOCOL_NUMBER_FORMAT", cls.ghg_protocol_number_format,
            ),
            iscc_number_format=_str(
                "ISCC_NUMBER_FORMAT", cls.iscc_number_format,
            ),
            # LCA
            default_fossil_baseline=_float(
                "DEFAULT_FOSSIL_BASELINE", cls.default_fossil_baseline,
            ),
            luc_literal_precedence=_bool(
                "LUC_LITERAL_PRECEDENCE", cls.luc_literal_precedence,
            ),
            large_emission_warning_kg=_float(
                "LARGE_EMISSION_WARNING_KG", cls.large_emission_warning_kg,
            ),
            # Performance
            max_workers=_int("MAX_WORKERS", cls.max_workers),
            decimal_precision=_int("DECIMAL_PRECISION", cls.decimal_precision),
            # Observability
            enable_metrics=_bool("ENABLE_METRICS", cls.enable_metrics),
            enable_provenance=_bool("ENABLE_PROVENANCE", cls.enable_provenance),
            genesis_hash=_str("GENESIS_HASH", cls.genesis_hash),
        )

        logger.info(
            "GHGEngineConfig loaded from environment: gwp_source=%s, "
            "oracle_model=%s, oracle_timeout=%.1fs, workers=%d",
            config.gwp_source,
            config.oracle_model,
            config.oracle_timeout_seconds,
            config.max_workers,
        )
        return config

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the configuration to a plain Python dictionary."""
        return {
            "log_level": self.log_level,
            "gwp_source": self.gwp_source,
            "discrepancy_tolerance": self.discrepancy_tolerance,
            # -- Oracle ------------------------------------------------------
            "oracle_model": self.oracle_model,
            "oracle_max_tokens": self.oracle_max_tokens,
            "oracle_timeout_seconds": self.oracle_timeout_seconds,
            "oracle_max_candidates": self.oracle_max_candidates,
            # -- Number formats ----------------------------------------------
            "ipcc_number_format": self.ipcc_number_format,
            "defra_number_format": self.defra_number_format,
            "iso14064_number_format": self.iso14064_number_format,
            "ghg_protocol_number_format": self.ghg_protocol_number_format,
            "iscc_number_format": self.iscc_number_format,
            # -- LCA ---------------------------------------------------------
            "default_fossil_baseline": self.default_fossil_baseline,
            "luc_literal_precedence": self.luc_literal_precedence,
            "large_emission_warning_kg": self.large_emission_warning_kg,
            # -- Performance -------------------------------------------------
            "max_workers": self.max_workers,
            "decimal_precision": self.decimal_precision,
            # -- Observability -----------------------------------------------
            "enable_metrics": self.enable_metrics,
            "enable_provenance": self.enable_provenance,
            "genesis_hash": self.genesis_hash,
        }

    def __repr__(self) -> str:
        pairs = ", ".join(f"{k}={v!r}" for k, v in self.to_dict().items())
        return f"GHGEngineConfig({pairs})"


# ---------------------------------------------------------------------------
# Thread-safe singleton accessor
# ---------------------------------------------------------------------------

_config_instance: Optional[GHGEngineConfig] = None
_config_lock = threading.Lock()


def get_config() -> GHGEngineConfig:
    """Return the singleton GHGEngineConfig, creating from env if needed.

    Uses double-checked locking for thread safety with minimal
    contention on the hot path.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = GHGEngineConfig.from_env()
    return _config_instance


def set_config(config: GHGEngineConfig) -> None:
    """Replace the singleton GHGEngineConfig.

    Primarily intended for testing and dependency injection.

    Args:
        config: New GHGEngineConfig to install as the singleton.
    """
    global _config_instance
    with _config_lock:
        _config_instance = config
    logger.info(
        "GHGEngineConfig replaced programmatically: gwp_source=%s, "
        "tolerance=%s, oracle_timeout=%.1fs",
        config.gwp_source,
        config.discrepancy_tolerance,
        config.oracle_timeout_seconds,
    )


def reset_config() -> None:
    """Reset the singleton so the next get_config() re-reads the env."""
    global _config_instance
    with _config_lock:
        _config_instance = None
    logger.debug("GHGEngineConfig singleton reset")


def configure_logging(config: Optional[GHGEngineConfig] = None) -> None:
    """Apply the configured level to the ``ghg_engine`` logger tree.

    Handlers are left to the host application.
    """
    cfg = config or get_config()
    logging.getLogger("ghg_engine").setLevel(cfg.log_level)


# ---------------------------------------------------------------------------
# Public surface
# ---------------------------------------------------------------------------

__all__ = [
    "GHGEngineConfig",
    "get_config",
    "set_config",
    "reset_config",
    "configure_logging",
    "DEFAULT_FOSSIL_BASELINE",
    "DEFAULT_DISCREPANCY_TOLERANCE",
]
