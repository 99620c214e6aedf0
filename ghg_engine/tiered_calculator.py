# -*- coding: utf-8 -*-
"""
IPCC Tiered Category Calculator

Implements the IPCC 2006 tier-specific calculation methods for a single
activity in an inventory category.

Methods:
    Energy sector with a heating value (fuel combustion):
        energy (GJ) = activity x heating value
        emission    = energy x factor             (factor per GJ)
        emission    = energy / 1000 x factor      (factor per TJ)
        TIER_1_ENERGY_WITH_HV / TIER_2_ENERGY_IMPROVED / TIER_3_ENERGY_DETAILED
    Every other case:
        emission    = activity x factor
        TIER_1_BASIC / TIER_2_INTERMEDIATE / TIER_3_DETAILED

    co2_equivalent = emission x GWP(gas)

Uncertainty by tier: TIER_3 +/-15 %, TIER_2 +/-50 %, TIER_1 +/-150 %.

Example:
    >>> from decimal import Decimal
    >>> calc = TieredCategoryCalculator()
    >>> result = calc.calculate(Decimal("1000"), "1.A.1", coal_factor,
    ...                         heating_value=Decimal("25.8"))
    >>> result.co2_equivalent
    Decimal('2440680.00')

Author: GreenLang Platform Team
Date: March 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import time
from decimal import Decimal
from types import MappingProxyType
from typing import List, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

from ghg_engine.audit_trail import StepRecorder
from ghg_engine.categories import (
    default_gas_for,
    factor_keywords_for,
    is_energy_sector,
    sector_for,
)
from ghg_engine.config import get_config
from ghg_engine.exceptions import CalculationError, ValidationError
from ghg_engine.gwp import GWPTable
from ghg_engine.metrics import observe_duration, record_calculation, record_emissions
from ghg_engine.models import EmissionFactor, Standard, Tier, TieredResult
from ghg_engine.provenance import ProvenanceTracker, compute_result_hash

logger = logging.getLogger(__name__)

_THOUSAND = Decimal("1000")


# ---------------------------------------------------------------------------
# IPCC default reference values
# ---------------------------------------------------------------------------


class HeatingValueRange(NamedTuple):
    minimum: Decimal
    maximum: Decimal
    default: Decimal
    unit: str = "GJ/ton"


#: IPCC 2006 default net calorific values.
IPCC_HEATING_VALUES: Mapping[str, HeatingValueRange] = MappingProxyType({
    "coal": HeatingValueRange(Decimal("15"), Decimal("35"), Decimal("25.8")),
    "oil": HeatingValueRange(Decimal("38"), Decimal("45"), Decimal("42.3")),
    "natural_gas": HeatingValueRange(Decimal("48"), Decimal("54"), Decimal("52.2")),
    "diesel": HeatingValueRange(Decimal("42"), Decimal("45"), Decimal("43.0")),
    "gasoline": HeatingValueRange(Decimal("42"), Decimal("46"), Decimal("44.3")),
})

#: IPCC 2006 default CO2 emission factors (kg CO2/GJ).
IPCC_DEFAULT_EMISSION_FACTORS: Mapping[str, Decimal] = MappingProxyType({
    "coal": Decimal("94.6"),
    "oil": Decimal("73.3"),
    "natural_gas": Decimal("56.1"),
    "diesel": Decimal("74.1"),
    "gasoline": Decimal("69.3"),
})

UNCERTAINTY_BY_TIER: Mapping[Tier, str] = MappingProxyType({
    Tier.TIER_3: "±15%",
    Tier.TIER_2: "±50%",
    Tier.TIER_1: "±150%",
})

_ENERGY_METHODS = {
    Tier.TIER_3: ("TIER_3_ENERGY_DETAILED", "Activity × Heating Value × Emission Factor (facility-specific)"),
    Tier.TIER_2: ("TIER_2_ENERGY_IMPROVED", "Activity × Heating Value × Emission Factor (country-specific)"),
    Tier.TIER_1: ("TIER_1_ENERGY_WITH_HV", "Activity × Heating Value × Emission Factor"),
}

_BASIC_METHODS = {
    Tier.TIER_3: ("TIER_3_DETAILED", "Activity × Emission Factor (facility-specific measurements)"),
    Tier.TIER_2: ("TIER_2_INTERMEDIATE", "Activity × Emission Factor (country/region-specific)"),
    Tier.TIER_1: ("TIER_1_BASIC", "Activity × Emission Factor (IPCC default)"),
}

_MASS_TONNES = frozenset({"t", "ton", "tons", "tonne", "tonnes"})
_MASS_KG = frozenset({"kg", "kgs"})
_ENERGY_UNITS = frozenset({"gj", "tj"})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def detect_fuel(text: Optional[str]) -> Optional[str]:
    """Map a fuel name, factor name or unit to a default-table key."""
    value = (text or "").lower()
    if not value:
        return None
    if "gasoline" in value or "petrol" in value:
        return "gasoline"
    if "diesel" in value:
        return "diesel"
    if "coal" in value:
        return "coal"
    if "gas" in value:
        return "natural_gas"
    if "oil" in value:
        return "oil"
    return None


def default_heating_value(fuel: str) -> Optional[Decimal]:
    """IPCC default heating value (GJ/ton) for a fuel, or None."""
    key = detect_fuel(fuel)
    return IPCC_HEATING_VALUES[key].default if key else None


def default_emission_factor(fuel: str) -> Optional[Decimal]:
    """IPCC default CO2 factor (kg CO2/GJ) for a fuel, or None."""
    key = detect_fuel(fuel)
    return IPCC_DEFAULT_EMISSION_FACTORS[key] if key else None


def uncertainty_for(tier: Union[Tier, str]) -> str:
    return UNCERTAINTY_BY_TIER.get(Tier(tier), UNCERTAINTY_BY_TIER[Tier.TIER_1])


def suggest_tier(
    has_country_specific_factors: bool,
    has_plant_specific_data: bool,
    is_key_category: bool,
    category_code: str,
) -> Tier:
    """Recommend a tier from data availability.

    Fuel combustion (1.A) needs plant data *and* key-category status for
    Tier 3; other sectors take Tier 3 whenever plant data exists.
    """
    if category_code.startswith("1.A"):
        if has_plant_specific_data and is_key_category:
            return Tier.TIER_3
        if has_country_specific_factors:
            return Tier.TIER_2
        return Tier.TIER_1
    if is_key_category and has_country_specific_factors:
        return Tier.TIER_2
    if has_plant_specific_data:
        return Tier.TIER_3
    return Tier.TIER_1


def select_best_factor(
    factors: Sequence[EmissionFactor],
    category_code: str,
    tier_preference: Union[Tier, str] = Tier.AUTO,
    gas_type: Optional[str] = None,
    activity_name: Optional[str] = None,
) -> Optional[EmissionFactor]:
    """Pick the most suitable factor for a category.

    Narrowing order: factors listing the category code, else factors whose
    name carries one of the category keywords, else all factors. Then the
    gas filter, then the tier preference (AUTO prefers TIER_3, TIER_2,
    TIER_1). Each filter is skipped when it would leave nothing.
    """
    if not factors:
        return None
    candidates = [f for f in factors if category_code in f.applicable_categories]
    if not candidates:
        keywords = [k.lower() for k in factor_keywords_for(category_code)]
        candidates = [f for f in factors if any(k in f.name.lower() for k in keywords)]
    if not candidates:
        candidates = list(factors)

    if gas_type:
        by_gas = [f for f in candidates if f.gas_type.upper() == gas_type.upper()]
        candidates = by_gas or candidates

    if activity_name and "coal" in activity_name.lower():
        coal = [f for f in candidates if "coal" in f.name.lower()]
        candidates = coal or candidates

    preference = Tier(tier_preference)
    if preference is not Tier.AUTO:
        matching = [f for f in candidates if f.tier is preference]
        if matching:
            return matching[0]
    for tier in (Tier.TIER_3, Tier.TIER_2, Tier.TIER_1):
        matching = [f for f in candidates if f.tier is tier]
        if matching:
            return matching[0]
    return candidates[0]


def _denominator(unit: str) -> str:
    return unit.rsplit("/", 1)[-1].strip().lower() if "/" in unit else ""


def unit_scale(activity_unit: Optional[str], factor_unit: str) -> Decimal:
    """Scale that converts the activity into the factor's denominator unit.

    Only tonne/kg conversions are applied; anything else is 1.
    """
    activity = (activity_unit or "").strip().lower()
    denominator = _denominator(factor_unit)
    if activity in _MASS_TONNES and denominator in _MASS_KG:
        return _THOUSAND
    if activity in _MASS_KG and denominator in _MASS_TONNES:
        return Decimal("1") / _THOUSAND
    return Decimal("1")


def validate_inputs(
    activity_value: Decimal,
    factor: EmissionFactor,
    gas_type: str,
    heating_value: Optional[Decimal] = None,
) -> List[str]:
    """Check calculation inputs.

    Returns:
        Quality warnings (heating value outside the IPCC range).

    Raises:
        ValidationError: Every hard error found, reported together.
    """
    errors = {}
    if not activity_value.is_finite():
        errors["activity_value"] = "must be finite"
    elif activity_value <= 0:
        errors["activity_value"] = "must be > 0"
    if not factor.unit.strip():
        errors["factor.unit"] = "required"
    if gas_type not in factor.per_gas_factors:
        errors["factor.per_gas_factors"] = f"no value for {gas_type}"
    if heating_value is not None and heating_value <= 0:
        errors["heating_value"] = "must be > 0"
    if errors:
        raise ValidationError(
            message="Invalid tiered calculation inputs",
            context={"factor_id": factor.id, "activity_value": str(activity_value)},
            invalid_fields=errors,
        )

    warnings: List[str] = []
    if heating_value is not None:
        fuel = detect_fuel(factor.fuel_type or factor.name)
        if fuel:
            bounds = IPCC_HEATING_VALUES[fuel]
            if not bounds.minimum <= heating_value <= bounds.maximum:
                warnings.append(
                    f"Heating value {heating_value} outside IPCC range "
                    f"{bounds.minimum}-{bounds.maximum} {bounds.unit} for {fuel}"
                )
    return warnings


# ---------------------------------------------------------------------------
# Calculator
# ---------------------------------------------------------------------------


class TieredCategoryCalculator:
    """IPCC tier-aware emission calculator for one category activity."""

    def __init__(
        self,
        gwp_table: Optional[GWPTable] = None,
        tracker: Optional[ProvenanceTracker] = None,
    ) -> None:
        cfg = get_config()
        self.gwp_table = gwp_table or GWPTable.for_source(cfg.gwp_source)
        self.tracker = tracker
        self._large_emission_kg = Decimal(str(cfg.large_emission_warning_kg))

    def resolve_gas(
        self,
        category_code: str,
        factor: EmissionFactor,
        gas_type: Optional[str] = None,
    ) -> Tuple[str, List[str]]:
        """Gas for the calculation plus any warning about the choice."""
        gas = self.gwp_table.canonical_gas(default_gas_for(category_code, gas_type))
        if gas_type or gas in factor.per_gas_factors:
            return gas, []
        if factor.gas_type in factor.per_gas_factors:
            fallback = self.gwp_table.canonical_gas(factor.gas_type)
            return fallback, [
                f"Category {category_code} defaults to {gas}; "
                f"using factor gas {fallback}"
            ]
        return gas, []

    def calculate(
        self,
        activity_value: Union[Decimal, int, str],
        category_code: str,
        factor: EmissionFactor,
        tier: Optional[Union[Tier, str]] = None,
        heating_value: Optional[Decimal] = None,
        gas_type: Optional[str] = None,
        activity_unit: Optional[str] = None,
    ) -> TieredResult:
        """Calculate emissions for one activity.

        Args:
            activity_value: Activity amount (already normalized).
            category_code: IPCC category code, e.g. "1.A.1".
            factor: Emission factor to apply.
            tier: Tier used for method naming; defaults to the factor's
                tier, then TIER_1.
            heating_value: Heating value (GJ per activity unit); falls back
                to the factor's heating value.
            gas_type: Explicit gas; otherwise the category default.
            activity_unit: Unit of the activity, used for tonne/kg scaling.

        Raises:
            ValidationError: Invalid inputs or ambiguous gas.
            UnknownGasType: Gas without GWP.
            CalculationError: Negative emission result.
        """
        start = time.monotonic()
        value = activity_value if isinstance(activity_value, Decimal) else Decimal(str(activity_value))
        gas, warnings = self.resolve_gas(category_code, factor, gas_type)
        effective_tier = self._effective_tier(tier, factor)
        hv = heating_value if heating_value is not None else factor.heating_value
        warnings.extend(validate_inputs(value, factor, gas, hv))

        factor_value = factor.per_gas_factors[gas]
        gwp = self.gwp_table.gwp_for(gas)
        steps = StepRecorder()
        energy_unit = (activity_unit or "").strip().lower() in _ENERGY_UNITS

        heating_value_used: Optional[Decimal] = None
        if is_energy_sector(category_code) and (hv is not None or energy_unit):
            if energy_unit:
                energy = steps.add(
                    "Activity already in energy units", "convert",
                    {"activity": value, "unit": activity_unit}, value,
                )
            else:
                heating_value_used = hv
                energy = steps.add(
                    "Energy content (GJ)", "multiply",
                    {"activity": value, "heating_value": hv}, value * hv,
                )
            if "/tj" in factor.unit.lower():
                energy = steps.add(
                    "GJ to TJ", "convert", {"energy_gj": energy}, energy / _THOUSAND,
                )
            emission = steps.add(
                "Energy x emission factor", "multiply",
                {"energy": energy, "factor": factor_value}, energy * factor_value,
            )
            method, formula = _ENERGY_METHODS[effective_tier]
        else:
            scale = unit_scale(activity_unit, factor.unit)
            scaled = value * scale
            if scale != 1:
                steps.add(
                    "Unit conversion", "convert",
                    {"activity": value, "scale": scale}, scaled,
                )
            emission = steps.add(
                "Activity x emission factor", "multiply",
                {"activity": scaled, "factor": factor_value}, scaled * factor_value,
            )
            method, formula = _BASIC_METHODS[effective_tier]

        if emission < 0:
            raise CalculationError(
                "Calculated emission value cannot be negative",
                context={"emission": str(emission), "factor_id": factor.id},
            )
        if emission > self._large_emission_kg:
            message = (
                f"High emission value detected: {emission} kg for activity "
                f"{value} {activity_unit or ''}".rstrip()
            )
            logger.warning("%s", message)
            warnings.append(message)

        co2e = steps.add(
            f"{gas} emission x GWP", "multiply",
            {"emission": emission, "gwp": gwp}, emission * gwp,
        )

        provenance_hash = compute_result_hash({
            "activity_value": str(value),
            "activity_unit": activity_unit,
            "category_code": category_code,
            "factor": factor.model_dump(mode="json"),
            "tier": effective_tier.value,
            "heating_value": str(heating_value_used) if heating_value_used is not None else None,
            "gas": gas,
            "emission": str(emission),
            "co2e": str(co2e),
        })

        result = TieredResult(
            emission_value=emission,
            co2_equivalent=co2e,
            gas_type=gas,
            gwp_used=gwp,
            factor_used=factor,
            tier=effective_tier,
            method=method,
            formula=formula,
            uncertainty=uncertainty_for(effective_tier),
            heating_value_used=heating_value_used,
            category_code=category_code,
            warnings=warnings,
            calculation_steps=steps.to_list(),
            provenance_hash=provenance_hash,
        )

        if self.tracker is not None:
            self.tracker.record(
                "calculation", "calculate_tiered", f"{category_code}:{factor.id}",
                data={"provenance_hash": provenance_hash},
                metadata={"method": method, "sector": sector_for(category_code).value},
            )
        record_calculation(Standard.IPCC.value, method, "completed")
        record_emissions(Standard.IPCC.value, gas, float(co2e))
        observe_duration("tiered_calculation", time.monotonic() - start)
        logger.info(
            "Tiered calculation %s (%s): %s kg %s = %s kg CO2e",
            category_code, method, emission, gas, co2e,
        )
        return result

    @staticmethod
    def _effective_tier(tier: Optional[Union[Tier, str]], factor: EmissionFactor) -> Tier:
        chosen = Tier(tier) if tier else None
        if chosen is None or chosen is Tier.AUTO:
            chosen = factor.tier if factor.tier not in (None, Tier.AUTO) else Tier.TIER_1
        return chosen

    def notes(self, result: TieredResult, activity_value: Decimal, activity_unit: str = "") -> str:
        """One-line human summary of a tiered result."""
        factor = result.factor_used
        activity = f"{activity_value} {activity_unit}".strip()
        return (
            f"Auto-calculated using {result.tier.value}: "
            f"Activity ({activity}) × Emission Factor "
            f"({factor.per_gas_factors.get(result.gas_type)} {factor.unit}) × "
            f"GWP ({result.gwp_used}) = {result.co2_equivalent} kg CO2-eq"
        )


__all__ = [
    "HeatingValueRange",
    "IPCC_HEATING_VALUES",
    "IPCC_DEFAULT_EMISSION_FACTORS",
    "UNCERTAINTY_BY_TIER",
    "TieredCategoryCalculator",
    "detect_fuel",
    "default_heating_value",
    "default_emission_factor",
    "uncertainty_for",
    "suggest_tier",
    "select_best_factor",
    "unit_scale",
    "validate_inputs",
]
