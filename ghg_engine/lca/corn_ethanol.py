# -*- coding: utf-8 -*-
"""
ISCC Corn-to-Ethanol Pathway

The ISCC PLUS GHG 205 corn-ethanol spreadsheet expressed as a
FormulaGraph. Stages:

    cultivation      EEC per t of wet corn (seeds, N fertilizer + field
                     N2O, herbicides, electricity, diesel)
    land_use_change  SOC actual vs reference, 20-year amortisation,
                     CO2/C ratio 3.664
    transport        Round-trip upstream transport per t of dry corn
    processing       Plant utilities and chemicals, each with its own
                     emission factor
    allocation       Energy content of bioethanol and co-products (corn
                     oil, DDGS, WDG, syrup); conversion factor from corn
                     energy to bioethanol energy
    aggregation      Allocated EEC, EP, ETD, EL; ECCR credit; total and
                     GHG savings against the fossil baseline

The bioethanol allocation factor is a single node read by every
allocated stage.

Spreadsheet corrections applied (see DESIGN.md):
    - urea uses its own emission factor in the fertilizer term
    - loaded transport distance is weighted by loaded fuel consumption
    - DDGS energy uses the DDGS heating value
    - the cultivation, fertilizer and herbicide totals are wired from
      the computed per-tonne nodes

Land-use change per t of dry corn defaults to
``haYr / cornWet / (1 - moisture/100)``. With ``luc_literal_precedence``
the node follows the spreadsheet text ``haYr / cornWet / 1 - moisture/100``.

Example:
    >>> pathway = CornEthanolPathway()
    >>> result = pathway.evaluate({"cornWet": "10", "moistureContent": "15"})
    >>> result.nodes["cornDry"]
    Decimal('8.5')

Author: GreenLang Platform Team
Date: March 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import time
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ghg_engine.config import get_config
from ghg_engine.exceptions import ValidationError
from ghg_engine.lca.graph import FormulaGraph, GraphEvaluation, LCANode, safe_div
from ghg_engine.metrics import observe_duration, record_lca_evaluation
from ghg_engine.models import LCAResult
from ghg_engine.normalizer import NumericNormalizer, RawNumber
from ghg_engine.provenance import ProvenanceTracker, compute_result_hash

logger = logging.getLogger(__name__)

PATHWAY_NAME = "corn_ethanol"

CULTIVATION = "cultivation"
LAND_USE_CHANGE = "land_use_change"
TRANSPORT = "transport"
PROCESSING = "processing"
ALLOCATION = "allocation"
AGGREGATION = "aggregation"

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")
_THOUSAND = Decimal("1000")
_N2O_MASS = Decimal("44")
_N2_MASS = Decimal("28")
_AMORTISATION_YEARS = Decimal("20")
_CO2_PER_C = Decimal("3.664")


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

CULTIVATION_INPUTS: Tuple[str, ...] = (
    "cornWet",
    "moistureContent",
    "cultivationArea",
    "cornSeedsAmount",
    "emissionFactorCornSeeds",
    "ammoniumNitrate",
    "urea",
    "appliedManure",
    "nContentCropResidue",
    "emissionFactorAmmoniumNitrate",
    "emissionFactorUrea",
    "emissionFactorDirectN2O",
    "fractionNVolatilizedSynthetic",
    "fractionNVolatilizedOrganic",
    "emissionFactorAtmosphericDeposition",
    "fractionNLostRunoff",
    "emissionFactorLeachingRunoff",
    "acetochlor",
    "emissionFactorPesticides",
    "electricityConsumptionSoilPrep",
    "emissionFactorElectricity",
    "dieselConsumed",
    "emissionFactorDiesel",
)

LAND_USE_INPUTS: Tuple[str, ...] = (
    "socstActual",
    "fluActual",
    "fmgActual",
    "fiActual",
    "cvegActual",
    "socstReference",
    "fluReference",
    "fmgReference",
    "fiReference",
)

TRANSPORT_INPUTS: Tuple[str, ...] = (
    "totalInputWet",
    "totalInputMoisture",
    "maxLoadTransport",
    "totalCornTransported",
    "distanceLoaded",
    "distanceEmpty",
    "fuelConsumptionLoaded",
    "fuelConsumptionEmpty",
    "emissionFactorFuel",
)

#: Plant consumption inputs and the emission factor each one uses.
PROCESSING_INPUTS: Tuple[Tuple[str, str], ...] = (
    ("electricityConsumption", "emissionFactorElectricityProcessing"),
    ("steamConsumptionNaturalGas", "emissionFactorSteamNaturalGas"),
    ("yeastFermentation", "emissionFactorYeast"),
    ("freshWater", "emissionFactorFreshWater"),
    ("alphaAmylase", "emissionFactorAlphaAmylase"),
    ("glucoAmylase", "emissionFactorGlucoAmylase"),
    ("sulfuricAcid", "emissionFactorSulfuricAcid"),
    ("sodiumHydroxide", "emissionFactorSodiumHydroxide"),
    ("ureaProcessing", "emissionFactorUreaProcessing"),
)

#: Product key -> (output mass input, moisture input, heating value input).
PRODUCTS: Tuple[Tuple[str, str, str, str], ...] = (
    ("Bioethanol", "bioethanolOutput", "bioethanolMoisture", "lowerBioethanol"),
    ("CornOil", "cornOilOutput", "cornOilMoisture", "lowerCornOil"),
    ("Ddgs", "ddgsOutput", "ddgsMoisture", "lowerDdgs"),
    ("Wdg", "wdgOutput", "wdgMoisture", "lowerWdg"),
    ("Syrup", "syrupOutput", "syrupMoisture", "lowerSyrup"),
)

OTHER_INPUTS: Tuple[str, ...] = ("lowerCorn", "co2Captured", "fossilBaseline")


def _all_inputs() -> Tuple[str, ...]:
    names: List[str] = [*CULTIVATION_INPUTS, *LAND_USE_INPUTS, *TRANSPORT_INPUTS]
    for consumption, factor in PROCESSING_INPUTS:
        names.extend((consumption, factor))
    for _, mass, moisture, lhv in PRODUCTS:
        names.extend((mass, moisture, lhv))
    names.extend(OTHER_INPUTS)
    return tuple(names)


INPUTS: Tuple[str, ...] = _all_inputs()


# ---------------------------------------------------------------------------
# Node definitions
# ---------------------------------------------------------------------------


def _dry(wet: Decimal, moisture: Decimal) -> Decimal:
    return wet - wet * moisture / _HUNDRED


def _per_wet_corn(numerator: str, label: str):
    return lambda v: safe_div(v[numerator], v["cornWet"], label)


def _cultivation_nodes() -> List[LCANode]:
    n2o = _N2O_MASS / _N2_MASS
    return [
        LCANode(
            "cornDry", ("cornWet", "moistureContent"),
            lambda v: _dry(v["cornWet"], v["moistureContent"]),
            "t/ha", CULTIVATION,
        ),
        LCANode(
            "co2eqEmissionsRawMaterialInputHaYr",
            ("cornSeedsAmount", "emissionFactorCornSeeds"),
            lambda v: v["cornSeedsAmount"] * v["emissionFactorCornSeeds"],
            "kg CO2e/ha/yr", CULTIVATION,
        ),
        LCANode(
            "co2eqEmissionsRawMaterialInputTFFB",
            ("co2eqEmissionsRawMaterialInputHaYr", "cornWet"),
            _per_wet_corn("co2eqEmissionsRawMaterialInputHaYr", "raw material per t"),
            "kg CO2e/t", CULTIVATION,
        ),
        # Sum of every nitrogen input, as the spreadsheet defines it.
        LCANode(
            "totalNSyntheticFertilizer",
            ("ammoniumNitrate", "urea", "appliedManure", "nContentCropResidue"),
            lambda v: (
                v["ammoniumNitrate"] + v["urea"] + v["appliedManure"] + v["nContentCropResidue"]
            ),
            "kg N/ha", CULTIVATION,
        ),
        LCANode(
            "directN2OEmissions",
            ("totalNSyntheticFertilizer", "appliedManure", "emissionFactorDirectN2O"),
            lambda v: (
                (v["totalNSyntheticFertilizer"] + v["appliedManure"])
                * v["emissionFactorDirectN2O"] * n2o
            ),
            "kg N2O/ha/yr", CULTIVATION,
        ),
        LCANode(
            "indirectN2OEmissionsNH3NOx",
            (
                "totalNSyntheticFertilizer", "fractionNVolatilizedSynthetic",
                "appliedManure", "nContentCropResidue", "fractionNVolatilizedOrganic",
                "emissionFactorAtmosphericDeposition",
            ),
            lambda v: (
                v["totalNSyntheticFertilizer"] * v["fractionNVolatilizedSynthetic"]
                + (v["appliedManure"] + v["nContentCropResidue"] * v["fractionNVolatilizedOrganic"])
                * v["emissionFactorAtmosphericDeposition"] * n2o
            ),
            "kg N2O/ha/yr", CULTIVATION,
        ),
        LCANode(
            "indirectN2OEmissionsNLeachingRunoff",
            (
                "totalNSyntheticFertilizer", "appliedManure", "nContentCropResidue",
                "fractionNLostRunoff", "emissionFactorLeachingRunoff",
            ),
            lambda v: (
                (v["totalNSyntheticFertilizer"] + v["appliedManure"] + v["nContentCropResidue"])
                * v["fractionNLostRunoff"] * v["emissionFactorLeachingRunoff"] * n2o
            ),
            "kg N2O/ha/yr", CULTIVATION,
        ),
        LCANode(
            "co2eqEmissionsNitrogenFertilizersHaYr",
            ("ammoniumNitrate", "emissionFactorAmmoniumNitrate", "urea", "emissionFactorUrea"),
            lambda v: (
                v["ammoniumNitrate"] * v["emissionFactorAmmoniumNitrate"]
                + v["urea"] * v["emissionFactorUrea"]
            ),
            "kg CO2e/ha/yr", CULTIVATION,
        ),
        LCANode(
            "co2eqEmissionsNitrogenFertilizersFieldN20HaYr",
            (
                "directN2OEmissions", "indirectN2OEmissionsNH3NOx",
                "indirectN2OEmissionsNLeachingRunoff",
            ),
            lambda v: (
                v["directN2OEmissions"] + v["indirectN2OEmissionsNH3NOx"]
                + v["indirectN2OEmissionsNLeachingRunoff"]
            ),
            "kg/ha/yr", CULTIVATION,
        ),
        LCANode(
            "co2eqEmissionsNitrogenFertilizersFieldN20TFFB",
            (
                "co2eqEmissionsNitrogenFertilizersHaYr",
                "co2eqEmissionsNitrogenFertilizersFieldN20HaYr", "cornWet",
            ),
            lambda v: safe_div(
                v["co2eqEmissionsNitrogenFertilizersHaYr"]
                + v["co2eqEmissionsNitrogenFertilizersFieldN20HaYr"],
                v["cornWet"],
                "fertilizer per t",
            ),
            "kg CO2e/t", CULTIVATION,
        ),
        LCANode(
            "co2eqEmissionsHerbicidesPesticidesHaYr",
            ("acetochlor", "emissionFactorPesticides"),
            lambda v: v["acetochlor"] * v["emissionFactorPesticides"],
            "kg CO2e/ha/yr", CULTIVATION,
        ),
        LCANode(
            "co2eqEmissionsHerbicidesPesticidesTFFB",
            ("co2eqEmissionsHerbicidesPesticidesHaYr", "cornWet"),
            _per_wet_corn("co2eqEmissionsHerbicidesPesticidesHaYr", "herbicides per t"),
            "kg CO2e/t", CULTIVATION,
        ),
        LCANode(
            "co2eEmissionsElectricityYr",
            ("electricityConsumptionSoilPrep", "emissionFactorElectricity"),
            lambda v: v["electricityConsumptionSoilPrep"] * v["emissionFactorElectricity"],
            "kg CO2e/ha/yr", CULTIVATION,
        ),
        LCANode(
            "co2eEmissionsElectricityTFFB",
            ("co2eEmissionsElectricityYr", "cornWet"),
            _per_wet_corn("co2eEmissionsElectricityYr", "electricity per t"),
            "kg CO2e/t", CULTIVATION,
        ),
        LCANode(
            "co2eEmissionsDieselYr",
            ("dieselConsumed", "emissionFactorDiesel"),
            lambda v: v["dieselConsumed"] * v["emissionFactorDiesel"],
            "kg CO2e/ha/yr", CULTIVATION,
        ),
        LCANode(
            "co2eEmissionsDieselTFFB",
            ("co2eEmissionsDieselYr", "cornWet"),
            _per_wet_corn("co2eEmissionsDieselYr", "diesel per t"),
            "kg CO2e/t", CULTIVATION,
        ),
        LCANode(
            "ghgEmissionsRawMaterialInput", ("co2eqEmissionsRawMaterialInputTFFB",),
            lambda v: v["co2eqEmissionsRawMaterialInputTFFB"],
            "kg CO2e/t", CULTIVATION,
        ),
        LCANode(
            "ghgEmissionsFertilizers", ("co2eqEmissionsNitrogenFertilizersFieldN20TFFB",),
            lambda v: v["co2eqEmissionsNitrogenFertilizersFieldN20TFFB"],
            "kg CO2e/t", CULTIVATION,
        ),
        LCANode(
            "ghgEmissionsHerbicidesPesticides", ("co2eqEmissionsHerbicidesPesticidesTFFB",),
            lambda v: v["co2eqEmissionsHerbicidesPesticidesTFFB"],
            "kg CO2e/t", CULTIVATION,
        ),
        LCANode(
            "ghgEmissionsEnergy", ("co2eEmissionsElectricityTFFB", "co2eEmissionsDieselTFFB"),
            lambda v: v["co2eEmissionsElectricityTFFB"] + v["co2eEmissionsDieselTFFB"],
            "kg CO2e/t", CULTIVATION,
        ),
        LCANode(
            "totalEmissionsCorn",
            (
                "ghgEmissionsRawMaterialInput", "ghgEmissionsFertilizers",
                "ghgEmissionsHerbicidesPesticides", "ghgEmissionsEnergy",
            ),
            lambda v: (
                v["ghgEmissionsRawMaterialInput"] + v["ghgEmissionsFertilizers"]
                + v["ghgEmissionsHerbicidesPesticides"] + v["ghgEmissionsEnergy"]
            ),
            "kg CO2e/t wet corn", CULTIVATION,
        ),
        LCANode(
            "cultivationEmissionsPerTon", ("totalEmissionsCorn", "moistureContent"),
            lambda v: safe_div(
                v["totalEmissionsCorn"],
                1 - v["moistureContent"] / _HUNDRED,
                "cultivation per t dry",
            ),
            "kg CO2e/t dry corn", CULTIVATION,
        ),
    ]


def _land_use_nodes(literal_precedence: bool) -> List[LCANode]:
    if literal_precedence:
        def luc_dry(v):
            return (
                safe_div(v["totalLUCCO2EmissionsHaYr"], v["cornWet"], "LUC per t")
                - v["moistureContent"] / _HUNDRED
            )
    else:
        def luc_dry(v):
            return safe_div(
                safe_div(v["totalLUCCO2EmissionsHaYr"], v["cornWet"], "LUC per t"),
                1 - v["moistureContent"] / _HUNDRED,
                "LUC per t dry",
            )

    return [
        LCANode(
            "soilOrganicCarbonActual",
            ("socstActual", "fluActual", "fmgActual", "fiActual", "cvegActual"),
            lambda v: (
                v["socstActual"] * v["fluActual"] * v["fmgActual"] * v["fiActual"]
                + v["cvegActual"]
            ),
            "t C/ha", LAND_USE_CHANGE,
        ),
        LCANode(
            "soilOrganicCarbonReference",
            ("socstReference", "fluReference", "fmgReference", "fiReference"),
            lambda v: (
                v["socstReference"] * v["fluReference"] * v["fmgReference"] * v["fiReference"]
            ),
            "t C/ha", LAND_USE_CHANGE,
        ),
        LCANode(
            "accumulatedSoilCarbon",
            ("soilOrganicCarbonActual", "soilOrganicCarbonReference", "cornWet"),
            lambda v: safe_div(
                v["soilOrganicCarbonActual"] - v["soilOrganicCarbonReference"],
                v["cornWet"] * _AMORTISATION_YEARS,
                "soil carbon amortisation",
            ) * _CO2_PER_C,
            "t CO2/t", LAND_USE_CHANGE,
        ),
        LCANode(
            "lucCarbonEmissionsPerKgCorn", ("accumulatedSoilCarbon", "cornWet"),
            lambda v: safe_div(
                v["accumulatedSoilCarbon"] * _THOUSAND,
                v["cornWet"] * _THOUSAND,
                "LUC per kg",
            ),
            "kg CO2/kg", LAND_USE_CHANGE,
        ),
        LCANode(
            "totalLUCCO2EmissionsHaYr", ("lucCarbonEmissionsPerKgCorn", "cornWet"),
            lambda v: v["lucCarbonEmissionsPerKgCorn"] * v["cornWet"] * _THOUSAND,
            "kg CO2/ha/yr", LAND_USE_CHANGE,
        ),
        LCANode(
            "totalLUCCO2EmissionsTDryCorn",
            ("totalLUCCO2EmissionsHaYr", "cornWet", "moistureContent"),
            luc_dry,
            "kg CO2/t dry corn", LAND_USE_CHANGE,
        ),
    ]


def _transport_nodes() -> List[LCANode]:
    return [
        LCANode(
            "totalInputDry", ("totalInputWet", "totalInputMoisture"),
            lambda v: _dry(v["totalInputWet"], v["totalInputMoisture"]),
            "t", TRANSPORT,
        ),
        LCANode(
            "cultivationEmissionsTotal", ("cultivationEmissionsPerTon", "totalInputDry"),
            lambda v: v["cultivationEmissionsPerTon"] * v["totalInputDry"],
            "kg CO2e", TRANSPORT,
        ),
        LCANode(
            "upstreamTransportTotal",
            (
                "totalCornTransported", "maxLoadTransport", "distanceLoaded",
                "fuelConsumptionLoaded", "distanceEmpty", "fuelConsumptionEmpty",
                "emissionFactorFuel",
            ),
            lambda v: (
                safe_div(v["totalCornTransported"], v["maxLoadTransport"], "truck loads")
                * (
                    v["distanceLoaded"] * v["fuelConsumptionLoaded"]
                    + v["distanceEmpty"] * v["fuelConsumptionEmpty"]
                )
                * v["emissionFactorFuel"]
            ),
            "kg CO2e", TRANSPORT,
        ),
        LCANode(
            "upstreamTransportMTCorn",
            ("upstreamTransportTotal", "totalCornTransported", "totalInputMoisture"),
            lambda v: safe_div(
                safe_div(v["upstreamTransportTotal"], v["totalCornTransported"], "transport per t"),
                1 - v["totalInputMoisture"] / _HUNDRED,
                "transport per t dry",
            ),
            "kg CO2e/t dry corn", TRANSPORT,
        ),
    ]


def _processing_nodes() -> List[LCANode]:
    nodes: List[LCANode] = []
    terms: List[str] = []
    for consumption, factor in PROCESSING_INPUTS:
        name = "allofactor" + consumption[0].upper() + consumption[1:]
        terms.append(name)
        nodes.append(LCANode(
            name, (consumption, factor),
            lambda v, c=consumption, f=factor: v[c] * v[f],
            "kg CO2e", PROCESSING,
        ))
    nodes.append(LCANode(
        "allofactorTotal", tuple(terms),
        lambda v, t=tuple(terms): sum((v[name] for name in t), _ZERO),
        "kg CO2e", PROCESSING,
    ))
    nodes.append(LCANode(
        "allofactorPerTonMainProduct", ("allofactorTotal", "calculationBioethanolDry"),
        lambda v: safe_div(v["allofactorTotal"], v["calculationBioethanolDry"], "processing per t"),
        "kg CO2e/t", PROCESSING,
    ))
    return nodes


def _allocation_nodes() -> List[LCANode]:
    nodes: List[LCANode] = []
    energies: List[str] = []
    for key, mass, moisture, lhv in PRODUCTS:
        dry = f"calculation{key}Dry"
        energy = f"calculation{key}"
        energies.append(energy)
        nodes.append(LCANode(
            dry, (mass, moisture),
            lambda v, m=mass, w=moisture: _dry(v[m], v[w]),
            "t", ALLOCATION,
        ))
        nodes.append(LCANode(
            energy, (dry, lhv),
            lambda v, d=dry, h=lhv: v[d] * v[h] * _THOUSAND,
            "MJ", ALLOCATION,
        ))
    nodes.append(LCANode(
        "calculationTotal", tuple(energies),
        lambda v, e=tuple(energies): sum((v[name] for name in e), _ZERO),
        "MJ", ALLOCATION,
    ))
    for key, _, _, _ in PRODUCTS:
        nodes.append(LCANode(
            f"allocation{key}", (f"calculation{key}", "calculationTotal"),
            lambda v, k=key: safe_div(v[f"calculation{k}"], v["calculationTotal"], f"{k} share"),
            "", ALLOCATION,
        ))
    nodes.extend([
        LCANode(
            "energyContent", ("lowerCorn", "totalInputWet"),
            lambda v: v["lowerCorn"] * v["totalInputWet"] * _THOUSAND,
            "MJ", ALLOCATION,
        ),
        LCANode(
            "conversionFactor", ("energyContent", "calculationBioethanol"),
            lambda v: safe_div(v["energyContent"], v["calculationBioethanol"], "conversion factor"),
            "", ALLOCATION,
        ),
        LCANode(
            "bCultivation", ("cultivationEmissionsTotal", "lowerCorn", "conversionFactor"),
            lambda v: safe_div(v["cultivationEmissionsTotal"], v["lowerCorn"], "cultivation per MJ")
            * v["conversionFactor"],
            "g CO2e/MJ", ALLOCATION,
        ),
        LCANode(
            "bTransport", ("upstreamTransportMTCorn", "lowerCorn", "conversionFactor"),
            lambda v: safe_div(v["upstreamTransportMTCorn"], v["lowerCorn"], "transport per MJ")
            * v["conversionFactor"],
            "g CO2e/MJ", ALLOCATION,
        ),
        LCANode(
            "bProcessing", ("allofactorTotal", "lowerCorn"),
            lambda v: safe_div(v["allofactorTotal"], v["lowerCorn"], "processing per MJ"),
            "g CO2e/MJ", ALLOCATION,
        ),
        LCANode(
            "bLandUse", ("totalLUCCO2EmissionsTDryCorn", "lowerCorn", "conversionFactor"),
            lambda v: safe_div(v["totalLUCCO2EmissionsTDryCorn"], v["lowerCorn"], "LUC per MJ")
            * v["conversionFactor"],
            "g CO2e/MJ", ALLOCATION,
        ),
    ])
    return nodes


def _aggregation_nodes() -> List[LCANode]:
    return [
        LCANode(
            "eec", ("bCultivation", "allocationBioethanol"),
            lambda v: v["bCultivation"] * v["allocationBioethanol"],
            "g CO2e/MJ", AGGREGATION,
        ),
        LCANode(
            "etd", ("bTransport", "allocationBioethanol"),
            lambda v: v["bTransport"] * v["allocationBioethanol"],
            "g CO2e/MJ", AGGREGATION,
        ),
        LCANode(
            "ep", ("bProcessing", "allocationBioethanol"),
            lambda v: v["bProcessing"] * v["allocationBioethanol"],
            "g CO2e/MJ", AGGREGATION,
        ),
        LCANode(
            "el", ("bLandUse", "allocationBioethanol"),
            lambda v: v["bLandUse"] * v["allocationBioethanol"],
            "g CO2e/MJ", AGGREGATION,
        ),
        LCANode(
            "eccr", ("co2Captured", "calculationBioethanolDry", "lowerBioethanol"),
            lambda v: safe_div(
                safe_div(v["co2Captured"], v["calculationBioethanolDry"], "CCR per t"),
                v["lowerBioethanol"],
                "CCR per MJ",
            ),
            "g CO2e/MJ", AGGREGATION,
        ),
        LCANode(
            "total", ("eec", "ep", "etd", "el", "eccr"),
            lambda v: v["eec"] + v["ep"] + v["etd"] + v["el"] - v["eccr"],
            "g CO2e/MJ", AGGREGATION,
        ),
        LCANode(
            "ghgSavingsPercent", ("fossilBaseline", "total"),
            lambda v: safe_div(v["fossilBaseline"] - v["total"], v["fossilBaseline"], "savings")
            * _HUNDRED,
            "%", AGGREGATION,
        ),
    ]


def build_corn_ethanol_graph(luc_literal_precedence: bool = False) -> FormulaGraph:
    """Build the validated corn-ethanol FormulaGraph."""
    nodes = [
        *_cultivation_nodes(),
        *_land_use_nodes(luc_literal_precedence),
        *_transport_nodes(),
        *_processing_nodes(),
        *_allocation_nodes(),
        *_aggregation_nodes(),
    ]
    return FormulaGraph(nodes, inputs=INPUTS)


_GRAPHS: Dict[bool, FormulaGraph] = {}


def corn_ethanol_graph(luc_literal_precedence: bool = False) -> FormulaGraph:
    """Shared graph instance per LUC precedence mode."""
    graph = _GRAPHS.get(luc_literal_precedence)
    if graph is None:
        graph = _GRAPHS.setdefault(
            luc_literal_precedence, build_corn_ethanol_graph(luc_literal_precedence),
        )
    return graph


# ---------------------------------------------------------------------------
# Allocation helpers
# ---------------------------------------------------------------------------


def energy_allocation_factor(
    main_product_energy: Decimal,
    co_product_energies: Sequence[Decimal] = (),
) -> Decimal:
    """Main product share of the total product energy (0 when no energy)."""
    pool = main_product_energy + sum(co_product_energies, _ZERO)
    return safe_div(main_product_energy, pool, "allocation factor")


def savings_percent(total: Decimal, fossil_baseline: Decimal) -> Decimal:
    return safe_div(fossil_baseline - total, fossil_baseline, "savings") * _HUNDRED


def allocate_and_total(
    eec: Decimal,
    ep: Decimal,
    etd: Decimal,
    allocation: Decimal,
    el: Decimal = _ZERO,
    eccr: Decimal = _ZERO,
    fossil_baseline: Optional[Decimal] = None,
) -> LCAResult:
    """Apply one allocation factor to EEC, EP, ETD and EL, then total.

    ``total = a*EEC + a*EP + a*ETD + a*EL - ECCR``.
    """
    baseline = (
        Decimal(str(get_config().default_fossil_baseline))
        if fossil_baseline is None else fossil_baseline
    )
    allocated = {
        "eec": eec * allocation,
        "ep": ep * allocation,
        "etd": etd * allocation,
        "el": el * allocation,
    }
    total = allocated["eec"] + allocated["ep"] + allocated["etd"] + allocated["el"] - eccr
    return LCAResult(
        eec=allocated["eec"],
        ep=allocated["ep"],
        etd=allocated["etd"],
        el=allocated["el"],
        eccr=eccr,
        total=total,
        allocation_factor=allocation,
        fossil_baseline=baseline,
        ghg_savings_percent=savings_percent(total, baseline),
        provenance_hash=compute_result_hash({
            "eec": str(eec), "ep": str(ep), "etd": str(etd), "el": str(el),
            "eccr": str(eccr), "allocation": str(allocation), "total": str(total),
        }),
    )


# ---------------------------------------------------------------------------
# Pathway
# ---------------------------------------------------------------------------


class CornEthanolPathway:
    """Evaluates the corn-ethanol graph from raw spreadsheet-style inputs.

    Attributes:
        graph: FormulaGraph for the configured LUC precedence mode.
        normalizer: Numeric Normalizer for raw input strings.
        fossil_baseline: Baseline used when no ``fossilBaseline`` input
            is supplied.
    """

    def __init__(
        self,
        normalizer: Optional[NumericNormalizer] = None,
        luc_literal_precedence: Optional[bool] = None,
        fossil_baseline: Optional[Union[Decimal, float, str]] = None,
        tracker: Optional[ProvenanceTracker] = None,
    ) -> None:
        cfg = get_config()
        literal = cfg.luc_literal_precedence if luc_literal_precedence is None else luc_literal_precedence
        self.graph = corn_ethanol_graph(literal)
        self.luc_literal_precedence = literal
        self.normalizer = normalizer or NumericNormalizer(cfg.iscc_number_format)
        baseline = cfg.default_fossil_baseline if fossil_baseline is None else fossil_baseline
        self.fossil_baseline = Decimal(str(baseline))
        self.tracker = tracker
        logger.info(
            "CornEthanolPathway initialized: %d nodes, luc_literal=%s, baseline=%s",
            len(self.graph), literal, self.fossil_baseline,
        )

    def normalize_inputs(self, raw_inputs: Mapping[str, RawNumber]) -> Dict[str, Decimal]:
        unknown = sorted(set(raw_inputs) - set(INPUTS))
        if unknown:
            raise ValidationError(
                message=f"Unknown corn-ethanol inputs: {unknown}",
                invalid_fields={name: "unknown input" for name in unknown},
            )
        values = {name: self.normalizer.parse(raw) for name, raw in raw_inputs.items()}
        if values.get("fossilBaseline", _ZERO) <= 0:
            values["fossilBaseline"] = self.fossil_baseline
        return values

    def run(self, raw_inputs: Mapping[str, RawNumber]) -> GraphEvaluation:
        """Evaluate the graph and return every node value."""
        return self.graph.evaluate(self.normalize_inputs(raw_inputs))

    def evaluate(self, raw_inputs: Mapping[str, RawNumber]) -> LCAResult:
        """Evaluate the pathway and summarise it as an LCAResult."""
        start = time.monotonic()
        inputs = self.normalize_inputs(raw_inputs)
        evaluation = self.graph.evaluate(inputs)
        values = evaluation.values

        provenance_hash = compute_result_hash({
            "pathway": PATHWAY_NAME,
            "luc_literal_precedence": self.luc_literal_precedence,
            "inputs": {k: str(v) for k, v in sorted(inputs.items())},
            "total": str(values["total"]),
        })
        result = LCAResult(
            eec=values["eec"],
            ep=values["ep"],
            etd=values["etd"],
            el=values["el"],
            eccr=values["eccr"],
            total=values["total"],
            allocation_factor=values["allocationBioethanol"],
            fossil_baseline=values["fossilBaseline"],
            ghg_savings_percent=values["ghgSavingsPercent"],
            nodes=evaluation.node_values(),
            provenance_hash=provenance_hash,
        )

        if self.tracker is not None:
            self.tracker.record(
                "lca", "evaluate", PATHWAY_NAME,
                data={"provenance_hash": provenance_hash},
                metadata={"nodes": len(self.graph)},
            )
        record_lca_evaluation(PATHWAY_NAME)
        observe_duration("lca_corn_ethanol", time.monotonic() - start)
        logger.info(
            "Corn-ethanol pathway evaluated: total=%s g CO2e/MJ, savings=%s%%, allocation=%s",
            result.total, result.ghg_savings_percent, result.allocation_factor,
        )
        return result

    def stage_values(self, evaluation: GraphEvaluation, stage: str) -> Dict[str, Decimal]:
        return {name: evaluation[name] for name in self.graph.stage(stage)}


__all__ = [
    "PATHWAY_NAME",
    "INPUTS",
    "CULTIVATION",
    "LAND_USE_CHANGE",
    "TRANSPORT",
    "PROCESSING",
    "ALLOCATION",
    "AGGREGATION",
    "build_corn_ethanol_graph",
    "corn_ethanol_graph",
    "energy_allocation_factor",
    "savings_percent",
    "allocate_and_total",
    "CornEthanolPathway",
]
