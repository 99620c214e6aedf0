# -*- coding: utf-8 -*-
"""
GHG Engine Data Models

Pydantic v2 data models for the emission calculation and reconciliation
engine. All models are frozen: an entity is created per calculation
request and never mutated afterwards.

Enumerations (5):
    Standard, Tier, Sector, GasType, Scope

Data Models:
    ActivityMeasurement, EmissionFactor, GWPValue, OracleSelection,
    Discrepancy, ReconciledResult, TieredResult, CalculationRequest,
    OracleFailure, ActivityOutcome, ProjectResult, InventoryEntry,
    InventorySummary, LCAResult,
    AuditBatchResult, GHGAuditResult, ScreeningComponent, ScreeningResult

Author: GreenLang Platform Team
Date: March 2026
Status: Production Ready
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Engine version string stamped on results.
VERSION: str = "1.0.0"


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Standard(str, Enum):
    """Accounting standards served by the engine."""

    IPCC = "IPCC"
    DEFRA = "DEFRA"
    ISO_14064 = "ISO_14064"
    GHG_PROTOCOL = "GHG_PROTOCOL"
    ISCC = "ISCC"


class Tier(str, Enum):
    """IPCC methodology tier. AUTO lets the calculator pick the best."""

    TIER_1 = "TIER_1"
    TIER_2 = "TIER_2"
    TIER_3 = "TIER_3"
    AUTO = "AUTO"


class Sector(str, Enum):
    """IPCC 2006 inventory sectors."""

    ENERGY = "ENERGY"
    IPPU = "IPPU"
    AFOLU = "AFOLU"
    WASTE = "WASTE"
    OTHER = "OTHER"


class GasType(str, Enum):
    """Greenhouse gases with a reference GWP."""

    CO2 = "CO2"
    CH4 = "CH4"
    N2O = "N2O"
    HFCS = "HFCs"
    PFCS = "PFCs"
    SF6 = "SF6"
    NF3 = "NF3"


class Scope(str, Enum):
    """ISO 14064-1 / GHG Protocol emission scopes."""

    SCOPE_1 = "Scope1"
    SCOPE_2 = "Scope2"
    SCOPE_3 = "Scope3"


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------


class EmissionFactor(BaseModel):
    """A standard-specific emission factor.

    ``per_gas_factors`` holds kg of each gas per unit of activity. The
    factor's ``gas_type`` names the gas that ``value`` refers to when a
    single-gas factor is used by the tiered calculator.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique factor identifier")
    name: str = Field(..., min_length=1, description="Factor display name")
    standard: Standard = Field(..., description="Owning accounting standard")
    year: Optional[int] = Field(default=None, description="Publication year")
    gas_type: str = Field(default="CO2", description="Primary gas")
    unit: str = Field(..., description="Activity unit the factor applies to")
    per_gas_factors: Dict[str, Decimal] = Field(
        default_factory=dict,
        description="kg gas per activity unit, keyed by gas type",
    )
    co2e_factor: Optional[Decimal] = Field(
        default=None,
        description="Published kg CO2e per unit (informational only)",
    )
    tier: Optional[Tier] = Field(default=None, description="IPCC tier")
    applicable_categories: Tuple[str, ...] = Field(
        default=(), description="Category codes or names the factor covers",
    )
    source: str = Field(default="", description="Publishing authority")
    level1: Optional[str] = Field(default=None, description="DEFRA level 1")
    level2: Optional[str] = Field(default=None, description="DEFRA level 2")
    level3: Optional[str] = Field(default=None, description="DEFRA level 3")
    fuel_type: Optional[str] = Field(default=None, description="Fuel key")
    activity_type: Optional[str] = Field(default=None)
    heating_value: Optional[Decimal] = Field(
        default=None, description="Heating value attached to the factor",
    )
    heating_value_unit: Optional[str] = Field(default=None)

    @field_validator("per_gas_factors")
    @classmethod
    def validate_unique_gases(cls, value: Dict[str, Decimal]) -> Dict[str, Decimal]:
        """Reject two keys naming the same gas ("co2" and "CO2")."""
        seen: Dict[str, str] = {}
        for gas in value:
            key = gas.strip().upper()
            if key in seen:
                raise ValueError(f"gas '{gas}' duplicates '{seen[key]}'")
            seen[key] = gas
        return value

    @property
    def value(self) -> Decimal:
        """Factor value for the primary gas (0 when undefined)."""
        return self.per_gas_factors.get(self.gas_type, Decimal("0"))

    @property
    def gases(self) -> List[str]:
        """Gases this factor defines, in a stable order."""
        return list(self.per_gas_factors.keys())


class GWPValue(BaseModel):
    """Global Warming Potential of one gas in one assessment report."""

    model_config = ConfigDict(frozen=True)

    gas_type: str
    value: Decimal
    assessment_report: str = "AR5"


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class ActivityMeasurement(BaseModel):
    """One measured activity.

    Quantity positivity is enforced by the factor-driven calculators, not
    here, because LCA terms may legitimately be zero or negative.
    """

    model_config = ConfigDict(frozen=True)

    quantity: Decimal = Field(..., description="Measured quantity")
    unit: str = Field(default="", description="Unit of the quantity")
    activity_name: Optional[str] = Field(default=None)
    category: Optional[str] = Field(default=None)
    standard_year: Optional[int] = Field(default=None)
    description: Optional[str] = Field(default=None)


class CalculationRequest(BaseModel):
    """Inbound request from the API layer for one activity."""

    model_config = ConfigDict(frozen=True)

    activity: ActivityMeasurement
    pinned_factor: Optional[Union[EmissionFactor, str]] = Field(
        default=None,
        description="Factor (or factor id) chosen by the caller",
    )
    tier: Optional[Tier] = Field(default=None)
    gas_type: Optional[str] = Field(default=None)
    heating_value: Optional[Decimal] = Field(default=None)
    scope: Optional[Scope] = Field(default=None)


# ---------------------------------------------------------------------------
# Oracle output
# ---------------------------------------------------------------------------


class OracleSelection(BaseModel):
    """Provisional selection returned by the factor-selection oracle.

    The oracle's arithmetic is never trusted; a selection only reaches a
    caller after passing through the Reconciliation Calculator.
    """

    model_config = ConfigDict(frozen=True)

    chosen_factor_id: Optional[str] = None
    chosen_factor_name: Optional[str] = None
    gas_type: Optional[str] = None
    emission_value: Decimal
    co2_equivalent: Decimal
    per_gas_emissions: Dict[str, Decimal] = Field(default_factory=dict)
    unit: Optional[str] = None
    formula: str = ""
    explanation: str = ""
    reasoning: str = ""
    provisional: bool = True


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class Discrepancy(BaseModel):
    """Difference between an oracle value and the recomputed value."""

    model_config = ConfigDict(frozen=True)

    field: str
    oracle_value: Decimal
    recomputed_value: Decimal
    difference: Decimal


class ReconciledResult(BaseModel):
    """Canonical, deterministic emission result for one activity."""

    model_config = ConfigDict(frozen=True)

    emission_value: Decimal = Field(..., description="kg of the primary gas")
    co2_equivalent: Decimal = Field(..., description="kg CO2e")
    per_gas_emissions: Dict[str, Decimal] = Field(default_factory=dict)
    gwp_used: Dict[str, Decimal] = Field(default_factory=dict)
    gas_type: str = "CO2"
    factor_used: EmissionFactor
    method: str
    formula: str = ""
    discrepancy_flag: bool = False
    discrepancies: List[Discrepancy] = Field(default_factory=list)
    oracle_explanation: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    calculation_steps: List[Dict[str, Any]] = Field(default_factory=list)
    provenance_hash: str = ""
    engine_version: str = VERSION

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe dictionary for the persistence layer."""
        return self.model_dump(mode="json")


class TieredResult(BaseModel):
    """Result of the IPCC tiered category calculator."""

    model_config = ConfigDict(frozen=True)

    emission_value: Decimal
    emission_unit: str = "kg"
    co2_equivalent: Decimal
    gas_type: str
    gwp_used: Decimal
    factor_used: EmissionFactor
    tier: Tier
    method: str
    formula: str
    uncertainty: str
    heating_value_used: Optional[Decimal] = None
    category_code: Optional[str] = None
    discrepancy_flag: bool = False
    discrepancies: List[Discrepancy] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    calculation_steps: List[Dict[str, Any]] = Field(default_factory=list)
    provenance_hash: str = ""
    engine_version: str = VERSION

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class OracleFailure(BaseModel):
    """An activity whose oracle step failed inside a project batch."""

    model_config = ConfigDict(frozen=True)

    index: int
    error_code: str
    message: str
    retryable: bool


class ActivityOutcome(BaseModel):
    """Per-activity slot of a project calculation."""

    model_config = ConfigDict(frozen=True)

    index: int
    result: Optional[Union[ReconciledResult, TieredResult]] = None
    failure: Optional[OracleFailure] = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None


class ProjectResult(BaseModel):
    """All activities of one project, in input order."""

    model_config = ConfigDict(frozen=True)

    outcomes: List[ActivityOutcome]
    total_co2_equivalent: Decimal
    failed_count: int
    duration_seconds: float

    @property
    def failures(self) -> List[OracleFailure]:
        return [o.failure for o in self.outcomes if o.failure is not None]


class InventoryEntry(BaseModel):
    """One calculated activity placed in a corporate inventory."""

    model_config = ConfigDict(frozen=True)

    scope: Scope
    category: str
    result: ReconciledResult


class InventorySummary(BaseModel):
    """Corporate inventory totals (kg CO2e) by scope, gas and category."""

    model_config = ConfigDict(frozen=True)

    scope1_total: Decimal = Decimal("0")
    scope2_total: Decimal = Decimal("0")
    scope3_total: Decimal = Decimal("0")
    total_co2e: Decimal = Decimal("0")
    breakdown_by_gas: Dict[str, Decimal] = Field(default_factory=dict)
    breakdown_by_category: Dict[str, Decimal] = Field(default_factory=dict)
    scope3_breakdown: Dict[str, Decimal] = Field(default_factory=dict)
    entry_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class LCAResult(BaseModel):
    """Aggregate outcome of an ISCC pathway (all stages in g CO2e/MJ)."""

    model_config = ConfigDict(frozen=True)

    eec: Decimal = Field(..., description="Allocated cultivation emissions")
    ep: Decimal = Field(..., description="Allocated processing emissions")
    etd: Decimal = Field(..., description="Allocated transport emissions")
    el: Decimal = Field(default=Decimal("0"), description="Land-use change")
    eccr: Decimal = Field(default=Decimal("0"), description="CCR credit")
    total: Decimal
    allocation_factor: Decimal
    fossil_baseline: Decimal
    ghg_savings_percent: Decimal
    nodes: Dict[str, Decimal] = Field(default_factory=dict)
    provenance_hash: str = ""
    engine_version: str = VERSION

    @field_validator("fossil_baseline")
    @classmethod
    def validate_baseline(cls, value: Decimal) -> Decimal:
        """Baseline must be positive for the savings percentage."""
        if value <= 0:
            raise ValueError("fossil_baseline must be > 0")
        return value

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class AuditBatchResult(BaseModel):
    """Emissions of one corn batch in the GHG audit pathway (g CO2e/MJ)."""

    model_config = ConfigDict(frozen=True)

    index: int
    eec: Decimal
    ep: Decimal
    etd: Decimal
    eccr: Decimal
    total: Decimal
    reduction_percent: Decimal


class GHGAuditResult(BaseModel):
    """Outcome of the multi-batch GHG audit pathway."""

    model_config = ConfigDict(frozen=True)

    batches: List[AuditBatchResult]
    feedstock_factor: Decimal
    allocation_factor: Decimal
    fuel_reference: Decimal
    nodes: Dict[str, Decimal] = Field(default_factory=dict)
    provenance_hash: str = ""
    engine_version: str = VERSION

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class ScreeningComponent(BaseModel):
    """One line of a screening breakdown."""

    model_config = ConfigDict(frozen=True)

    name: str
    quantity: Decimal
    unit: str
    factor: Decimal
    emission_kg: Decimal


class ScreeningResult(BaseModel):
    """ISCC screening outcome: kg CO2e totals and g CO2e/MJ intensities."""

    model_config = ConfigDict(frozen=True)

    eec_kg: Decimal
    ep_kg: Decimal
    etd_kg: Decimal
    el_kg: Decimal = Decimal("0")
    eccr_kg: Decimal = Decimal("0")
    total_kg: Decimal
    eec: Decimal
    ep: Decimal
    etd: Decimal
    el: Decimal = Decimal("0")
    eccr: Decimal = Decimal("0")
    total: Decimal
    fossil_baseline: Decimal
    ghg_savings_percent: Decimal
    breakdown: Dict[str, List[ScreeningComponent]] = Field(default_factory=dict)
    provenance_hash: str = ""
    engine_version: str = VERSION

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


__all__ = [
    "VERSION",
    # Enums
    "Standard",
    "Tier",
    "Sector",
    "GasType",
    "Scope",
    # Reference data
    "EmissionFactor",
    "GWPValue",
    # Requests
    "ActivityMeasurement",
    "CalculationRequest",
    # Oracle
    "OracleSelection",
    # Results
    "Discrepancy",
    "ReconciledResult",
    "TieredResult",
    "OracleFailure",
    "ActivityOutcome",
    "ProjectResult",
    "InventoryEntry",
    "InventorySummary",
    "LCAResult",
    "AuditBatchResult",
    "GHGAuditResult",
    "ScreeningComponent",
    "ScreeningResult",
]
