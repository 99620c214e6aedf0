# -*- coding: utf-8 -*-
"""
Prometheus Metrics - GHG Emission Calculation Engine

8 Prometheus metrics for engine monitoring. Recording is a no-op while
``enable_metrics`` is False in the active GHGEngineConfig.

All metric names use the ``gl_ghg_`` prefix for consistent
identification in Prometheus queries and Grafana dashboards.

Metrics:
    1. gl_ghg_calculations_total            (Counter,   labels: standard, method, status)
    2. gl_ghg_emissions_kg_co2e_total       (Counter,   labels: standard, gas)
    3. gl_ghg_oracle_calls_total            (Counter,   labels: standard, status)
    4. gl_ghg_discrepancies_total           (Counter,   labels: standard)
    5. gl_ghg_factor_lookups_total          (Counter,   labels: standard)
    6. gl_ghg_lca_evaluations_total         (Counter,   labels: pathway)
    7. gl_ghg_calculation_duration_seconds  (Histogram, labels: operation)
    8. gl_ghg_active_calculations           (Gauge)

Label Values Reference:
    standard:  IPCC, DEFRA, ISO_14064, GHG_PROTOCOL, ISCC
    status:    completed, failed, timeout, parse_error, empty, not_found
    pathway:   corn_ethanol, ghg_audit, screening
    operation: reconcile, tiered_calculation, oracle_select,
               project_calculation, lca_evaluation

Example:
    >>> from ghg_engine.metrics import record_calculation, record_emissions
    >>> record_calculation("DEFRA", "RECONCILED", "completed")
    >>> record_emissions("DEFRA", "CH4", 28.0)

Author: GreenLang Platform Team
Date: March 2026
Status: Production Ready
"""

from __future__ import annotations

import logging

from prometheus_client import Counter, Gauge, Histogram

from ghg_engine.config import get_config

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

# 1. Calculations by standard, method and completion status
ghg_calculations_total = Counter(
    "gl_ghg_calculations_total",
    "Total emission calculations performed",
    labelnames=["standard", "method", "status"],
)

# 2. Cumulative emissions by standard and gas
ghg_emissions_kg_co2e_total = Counter(
    "gl_ghg_emissions_kg_co2e_total",
    "Cumulative emissions in kg CO2e by standard and gas",
    labelnames=["standard", "gas"],
)

# 3. Oracle calls by outcome
ghg_oracle_calls_total = Counter(
    "gl_ghg_oracle_calls_total",
    "Total factor-selection oracle calls by standard and status",
    labelnames=["standard", "status"],
)

# 4. Reconciliation discrepancies
ghg_discrepancies_total = Counter(
    "gl_ghg_discrepancies_total",
    "Oracle results that disagreed with the recomputed values",
    labelnames=["standard"],
)

# 5. Factor store lookups
ghg_factor_lookups_total = Counter(
    "gl_ghg_factor_lookups_total",
    "Total emission factor lookups by standard",
    labelnames=["standard"],
)

# 6. LCA graph evaluations
ghg_lca_evaluations_total = Counter(
    "gl_ghg_lca_evaluations_total",
    "Total LCA formula graph evaluations by pathway",
    labelnames=["pathway"],
)

# 7. Duration by operation
ghg_calculation_duration_seconds = Histogram(
    "gl_ghg_calculation_duration_seconds",
    "Duration of engine operations in seconds",
    labelnames=["operation"],
    buckets=(
        0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25,
        0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0,
    ),
)

# 8. In-flight calculations
ghg_active_calculations = Gauge(
    "gl_ghg_active_calculations",
    "Number of currently active emission calculations",
)


def _enabled() -> bool:
    return get_config().enable_metrics


# ---------------------------------------------------------------------------
# MetricsCollector class
# ---------------------------------------------------------------------------


class MetricsCollector:
    """Facade for recording engine Prometheus metrics.

    Every method checks the ``enable_metrics`` toggle first, so callers
    never need to.

    Example:
        >>> MetricsCollector.record_calculation("IPCC", "TIER_1_BASIC", "completed")
        >>> MetricsCollector.observe_duration("tiered_calculation", 0.004)
    """

    @staticmethod
    def record_calculation(standard: str, method: str, status: str) -> None:
        """Record a completed or failed calculation.

        Args:
            standard: Accounting standard (IPCC, DEFRA, ISO_14064,
                GHG_PROTOCOL, ISCC).
            method: Calculation method label.
            status: completed or failed.
        """
        if not _enabled():
            return
        ghg_calculations_total.labels(
            standard=standard, method=method, status=status,
        ).inc()

    @staticmethod
    def record_emissions(standard: str, gas: str, kg_co2e: float) -> None:
        """Add emitted kg CO2e for one gas. Negative amounts are ignored."""
        if not _enabled() or kg_co2e < 0:
            return
        ghg_emissions_kg_co2e_total.labels(standard=standard, gas=gas).inc(kg_co2e)

    @staticmethod
    def record_oracle_call(standard: str, status: str) -> None:
        if not _enabled():
            return
        ghg_oracle_calls_total.labels(standard=standard, status=status).inc()

    @staticmethod
    def record_discrepancy(standard: str) -> None:
        if not _enabled():
            return
        ghg_discrepancies_total.labels(standard=standard).inc()

    @staticmethod
    def record_factor_lookup(standard: str) -> None:
        if not _enabled():
            return
        ghg_factor_lookups_total.labels(standard=standard).inc()

    @staticmethod
    def record_lca_evaluation(pathway: str) -> None:
        if not _enabled():
            return
        ghg_lca_evaluations_total.labels(pathway=pathway).inc()

    @staticmethod
    def observe_duration(operation: str, seconds: float) -> None:
        """Observe the duration of one operation.

        Args:
            operation: Operation label (reconcile, oracle_select, ...).
            seconds: Wall-clock duration.
        """
        if not _enabled():
            return
        ghg_calculation_duration_seconds.labels(operation=operation).observe(seconds)

    @staticmethod
    def set_active(count: int) -> None:
        if not _enabled():
            return
        ghg_active_calculations.set(count)

    @staticmethod
    def inc_active() -> None:
        if not _enabled():
            return
        ghg_active_calculations.inc()

    @staticmethod
    def dec_active() -> None:
        if not _enabled():
            return
        ghg_active_calculations.dec()


# ---------------------------------------------------------------------------
# Module-level convenience functions
# ---------------------------------------------------------------------------


def record_calculation(standard: str, method: str, status: str) -> None:
    MetricsCollector.record_calculation(standard, method, status)


def record_emissions(standard: str, gas: str, kg_co2e: float) -> None:
    MetricsCollector.record_emissions(standard, gas, kg_co2e)


def record_oracle_call(standard: str, status: str) -> None:
    MetricsCollector.record_oracle_call(standard, status)


def record_discrepancy(standard: str) -> None:
    MetricsCollector.record_discrepancy(standard)


def record_factor_lookup(standard: str) -> None:
    MetricsCollector.record_factor_lookup(standard)


def record_lca_evaluation(pathway: str) -> None:
    MetricsCollector.record_lca_evaluation(pathway)


def observe_duration(operation: str, seconds: float) -> None:
    MetricsCollector.observe_duration(operation, seconds)


def set_active_calculations(count: int) -> None:
    MetricsCollector.set_active(count)


__all__ = [
    "MetricsCollector",
    "ghg_calculations_total",
    "ghg_emissions_kg_co2e_total",
    "ghg_oracle_calls_total",
    "ghg_discrepancies_total",
    "ghg_factor_lookups_total",
    "ghg_lca_evaluations_total",
    "ghg_calculation_duration_seconds",
    "ghg_active_calculations",
    "record_calculation",
    "record_emissions",
    "record_oracle_call",
    "record_discrepancy",
    "record_factor_lookup",
    "record_lca_evaluation",
    "observe_duration",
    "set_active_calculations",
]
