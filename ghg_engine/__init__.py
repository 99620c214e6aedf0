# -*- coding: utf-8 -*-
"""
GHG Emission Calculation & Reconciliation Engine

Computes GHG emissions and CO2e under IPCC 2006, DEFRA, ISO 14064-1, the GHG
Protocol Corporate Standard and ISCC PLUS GHG 205. Factor-driven standards select an emission factor
(pinned by the caller or chosen by an LLM oracle), recompute the result
deterministically and reconcile it with the oracle's numbers. ISCC
pathways are evaluated as explicit formula graphs.

Example:
    >>> from ghg_engine import DefraCalculator
    >>> calc = DefraCalculator()
    >>> result = calc.calculate_raw("1.000", "kWh", pinned_factor="DEFRA-2024-FUEL-NG-KWH")
    >>> result.method
    'PINNED_FACTOR'
"""

from ghg_engine.batch import ProjectCalculator
from ghg_engine.config import (
    GHGEngineConfig,
    configure_logging,
    get_config,
    reset_config,
    set_config,
)
from ghg_engine.exceptions import (
    CalculationError,
    FactorNotFound,
    GHGEngineError,
    GraphDefinitionError,
    OracleEmptyResponse,
    OracleError,
    OracleFactorNotFound,
    OracleParseError,
    OracleTimeout,
    UnknownGasType,
    ValidationError,
    is_retryable,
)
from ghg_engine.factor_store import EmissionFactorStore
from ghg_engine.gwp import GWPTable
from ghg_engine.models import (
    VERSION,
    ActivityMeasurement,
    CalculationRequest,
    EmissionFactor,
    InventoryEntry,
    InventorySummary,
    LCAResult,
    OracleSelection,
    ProjectResult,
    ReconciledResult,
    Scope,
    Standard,
    Tier,
    TieredResult,
)
from ghg_engine.normalizer import NormalizationMode, NumericNormalizer
from ghg_engine.oracle import AnthropicOracleClient, OracleAdapter, OracleClient
from ghg_engine.reconciliation import ReconciliationCalculator
from ghg_engine.standards import (
    DefraCalculator,
    GhgProtocolCalculator,
    IpccCalculator,
    Iso14064Calculator,
    StandardCalculator,
    calculator_for,
)
from ghg_engine.tiered_calculator import TieredCategoryCalculator

__version__ = VERSION

__all__ = [
    "__version__",
    # Config
    "GHGEngineConfig",
    "get_config",
    "set_config",
    "reset_config",
    "configure_logging",
    # Errors
    "GHGEngineError",
    "CalculationError",
    "ValidationError",
    "FactorNotFound",
    "UnknownGasType",
    "OracleError",
    "OracleEmptyResponse",
    "OracleParseError",
    "OracleFactorNotFound",
    "OracleTimeout",
    "GraphDefinitionError",
    "is_retryable",
    # Models
    "ActivityMeasurement",
    "CalculationRequest",
    "EmissionFactor",
    "OracleSelection",
    "ReconciledResult",
    "TieredResult",
    "ProjectResult",
    "LCAResult",
    "InventoryEntry",
    "InventorySummary",
    "Standard",
    "Tier",
    "Scope",
    # Components
    "NumericNormalizer",
    "NormalizationMode",
    "EmissionFactorStore",
    "GWPTable",
    "OracleClient",
    "AnthropicOracleClient",
    "OracleAdapter",
    "ReconciliationCalculator",
    "TieredCategoryCalculator",
    "StandardCalculator",
    "DefraCalculator",
    "Iso14064Calculator",
    "GhgProtocolCalculator",
    "IpccCalculator",
    "calculator_for",
    "ProjectCalculator",
]
