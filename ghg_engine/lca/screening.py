# -*- coding: utf-8 -*-
"""
ISCC Screening Calculator

Deterministic first-pass ISCC EU 205 estimate from project-level data
and RED II default factors. Each stage is summed in kg CO2e and converted
to an intensity:

    g CO2e/MJ = kg CO2e / (production kg x LHV MJ/kg) x 1000

Default factors (kg CO2e per unit):
    nitrogen fertilizer 6.38 /kg N, diesel 2.68 /l, electricity 0.5 /kWh,
    natural gas 2.0 /m3, methanol 1.38 /kg, steam 0.2 /kg
Transport (kg CO2e per t.km): truck 0.1, ship 0.01, rail 0.02

Author: GreenLang Platform Team
Date: March 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
from decimal import Decimal
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from ghg_engine.config import get_config
from ghg_engine.exceptions import ValidationError
from ghg_engine.lca.graph import safe_div
from ghg_engine.metrics import record_lca_evaluation
from ghg_engine.models import ScreeningComponent, ScreeningResult
from ghg_engine.provenance import compute_result_hash

logger = logging.getLogger(__name__)

PATHWAY_NAME = "iscc_screening"

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")
_THOUSAND = Decimal("1000")

DEFAULT_FACTORS: Mapping[str, Decimal] = MappingProxyType({
    "nitrogen_fertilizer": Decimal("6.38"),
    "diesel": Decimal("2.68"),
    "electricity": Decimal("0.5"),
    "natural_gas": Decimal("2.0"),
    "methanol": Decimal("1.38"),
    "steam": Decimal("0.2"),
})

TRANSPORT_FACTORS: Mapping[str, Decimal] = MappingProxyType({
    "truck": Decimal("0.1"),
    "ship": Decimal("0.01"),
    "rail": Decimal("0.02"),
})


# ---------------------------------------------------------------------------
# Input models
# ---------------------------------------------------------------------------


class ScreeningProject(BaseModel):
    """Project data; production in t/year, LHV in MJ/kg."""

    model_config = ConfigDict(frozen=True)

    production_volume_t: Optional[Decimal] = None
    lhv_mj_per_kg: Decimal
    fossil_baseline: Optional[Decimal] = None


class ScreeningCultivation(BaseModel):
    """Per-hectare field inputs."""

    model_config = ConfigDict(frozen=True)

    land_area_ha: Decimal = _ZERO
    yield_t_per_ha: Decimal = _ZERO
    nitrogen_fertilizer_kg_per_ha: Decimal = _ZERO
    diesel_l_per_ha: Decimal = _ZERO
    electricity_kwh_per_ha: Decimal = _ZERO


class ScreeningProcessing(BaseModel):
    """Plant consumption for the production period."""

    model_config = ConfigDict(frozen=True)

    electricity_kwh: Decimal = _ZERO
    steam_t: Decimal = _ZERO
    natural_gas_m3: Decimal = _ZERO
    diesel_l: Decimal = _ZERO
    methanol_kg: Decimal = _ZERO


class TransportLeg(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    distance_km: Decimal = _ZERO
    weight_t: Decimal = _ZERO
    mode: str = "truck"


class ScreeningInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    project: ScreeningProject
    cultivation: ScreeningCultivation = Field(default_factory=ScreeningCultivation)
    processing: ScreeningProcessing = Field(default_factory=ScreeningProcessing)
    transport: List[TransportLeg] = Field(default_factory=list)
    el_kg: Decimal = _ZERO
    eccr_kg: Decimal = _ZERO


# ---------------------------------------------------------------------------
# Calculator
# ---------------------------------------------------------------------------


class ISCCScreeningCalculator:
    """Screening estimate with overridable default factors."""

    def __init__(
        self,
        factors: Optional[Mapping[str, Decimal]] = None,
        transport_factors: Optional[Mapping[str, Decimal]] = None,
    ) -> None:
        self.factors = MappingProxyType({**DEFAULT_FACTORS, **(factors or {})})
        self.transport_factors = MappingProxyType(
            {**TRANSPORT_FACTORS, **(transport_factors or {})}
        )

    def production_kg(self, data: ScreeningInput) -> Decimal:
        """Production volume in kg; falls back to yield x land area."""
        volume = data.project.production_volume_t
        if volume is None or volume <= 0:
            volume = data.cultivation.yield_t_per_ha * data.cultivation.land_area_ha
        if volume <= 0:
            raise ValidationError(
                message="Production volume is required (or yield and land area)",
                invalid_fields={"production_volume_t": "missing or zero"},
            )
        return volume * _THOUSAND

    def cultivation(self, data: ScreeningInput) -> List[ScreeningComponent]:
        c = data.cultivation
        area = c.land_area_ha
        return [
            self._component("Nitrogen fertilizer", c.nitrogen_fertilizer_kg_per_ha * area,
                            "kg N", "nitrogen_fertilizer"),
            self._component("Diesel", c.diesel_l_per_ha * area, "l", "diesel"),
            self._component("Electricity", c.electricity_kwh_per_ha * area, "kWh", "electricity"),
        ]

    def processing(self, data: ScreeningInput) -> List[ScreeningComponent]:
        p = data.processing
        return [
            self._component("Electricity", p.electricity_kwh, "kWh", "electricity"),
            self._component("Steam", p.steam_t * _THOUSAND, "kg", "steam"),
            self._component("Natural gas", p.natural_gas_m3, "m3", "natural_gas"),
            self._component("Diesel", p.diesel_l, "l", "diesel"),
            self._component("Methanol", p.methanol_kg, "kg", "methanol"),
        ]

    def transport(self, data: ScreeningInput) -> List[ScreeningComponent]:
        components = []
        for leg in data.transport:
            mode = leg.mode.strip().lower()
            factor = self.transport_factors.get(mode)
            if factor is None:
                raise ValidationError(
                    message=f"Unknown transport mode '{leg.mode}'",
                    invalid_fields={"mode": f"one of {sorted(self.transport_factors)}"},
                )
            tkm = leg.distance_km * leg.weight_t
            components.append(ScreeningComponent(
                name=f"{leg.name} ({mode})",
                quantity=tkm,
                unit="t.km",
                factor=factor,
                emission_kg=tkm * factor,
            ))
        return components

    def _component(self, name: str, quantity: Decimal, unit: str, factor_key: str) -> ScreeningComponent:
        factor = self.factors[factor_key]
        return ScreeningComponent(
            name=name, quantity=quantity, unit=unit, factor=factor, emission_kg=quantity * factor,
        )

    def calculate(self, data: ScreeningInput) -> ScreeningResult:
        """Compute the screening result.

        Raises:
            ValidationError: Missing LHV or production volume, unknown
                transport mode.
        """
        if data.project.lhv_mj_per_kg <= 0:
            raise ValidationError(
                message="LHV (lower heating value) is required for ISCC calculation",
                invalid_fields={"lhv_mj_per_kg": "must be > 0"},
            )
        production = self.production_kg(data)
        lhv = data.project.lhv_mj_per_kg

        breakdown: Dict[str, List[ScreeningComponent]] = {
            "eec": self.cultivation(data),
            "ep": self.processing(data),
            "etd": self.transport(data),
        }
        kg: Dict[str, Decimal] = {
            stage: sum((c.emission_kg for c in items), _ZERO)
            for stage, items in breakdown.items()
        }
        kg["el"] = data.el_kg
        kg["eccr"] = data.eccr_kg
        total_kg = kg["eec"] + kg["ep"] + kg["etd"] + kg["el"] - kg["eccr"]

        intensity = {
            stage: grams_per_mj(value, production, lhv)
            for stage, value in kg.items()
        }
        total = intensity["eec"] + intensity["ep"] + intensity["etd"] + intensity["el"] - intensity["eccr"]

        baseline = data.project.fossil_baseline
        if baseline is None or baseline <= 0:
            baseline = Decimal(str(get_config().default_fossil_baseline))
        savings = safe_div(baseline - total, baseline, "savings") * _HUNDRED

        record_lca_evaluation(PATHWAY_NAME)
        logger.info(
            "ISCC screening: total=%s kg CO2e, %s g CO2e/MJ, savings=%s%%",
            total_kg, total, savings,
        )
        return ScreeningResult(
            eec_kg=kg["eec"],
            ep_kg=kg["ep"],
            etd_kg=kg["etd"],
            el_kg=kg["el"],
            eccr_kg=kg["eccr"],
            total_kg=total_kg,
            eec=intensity["eec"],
            ep=intensity["ep"],
            etd=intensity["etd"],
            el=intensity["el"],
            eccr=intensity["eccr"],
            total=total,
            fossil_baseline=baseline,
            ghg_savings_percent=savings,
            breakdown=breakdown,
            provenance_hash=compute_result_hash({
                "pathway": PATHWAY_NAME,
                "input": data.model_dump(mode="json"),
                "factors": {k: str(v) for k, v in self.factors.items()},
                "total": str(total),
            }),
        )


def grams_per_mj(kg_co2e: Decimal, production_kg: Decimal, lhv_mj_per_kg: Decimal) -> Decimal:
    """kg CO2e to g CO2e/MJ (0 when there is no energy output)."""
    return safe_div(kg_co2e, production_kg * lhv_mj_per_kg, "g/MJ conversion") * _THOUSAND


__all__ = [
    "PATHWAY_NAME",
    "DEFAULT_FACTORS",
    "TRANSPORT_FACTORS",
    "ScreeningProject",
    "ScreeningCultivation",
    "ScreeningProcessing",
    "TransportLeg",
    "ScreeningInput",
    "ISCCScreeningCalculator",
    "grams_per_mj",
]
