# -*- coding: utf-8 -*-
"""
IPCC 2006 Emission Category Catalogue

Category codes, names and sectors used by the tiered calculator, plus the
gas-type default heuristic applied when a request does not name its gas.

Gas defaults:
    1.A, 1.B           energy / combustion and fugitive   -> CO2
    3.A                livestock                           -> CH4
    3.C.4, 3.C.5       managed soils (fertilizer N)        -> N2O
    4.A, 4.B           landfill / biological treatment     -> CH4
    4.D                wastewater                          -> N2O
    2.x                industrial processes                -> caller decides
    anything else                                          -> CO2

Author: GreenLang Platform Team
Date: March 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from ghg_engine.exceptions import ValidationError
from ghg_engine.models import Sector

logger = logging.getLogger(__name__)


class EmissionCategory(BaseModel):
    """One IPCC inventory category."""

    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    sector: Sector


_CATEGORY_ROWS: Tuple[Tuple[str, str, Sector], ...] = (
    ("1.A", "Fuel Combustion Activities", Sector.ENERGY),
    ("1.A.1", "Energy Industries", Sector.ENERGY),
    ("1.A.1.a", "Public Electricity and Heat Production", Sector.ENERGY),
    ("1.A.2", "Manufacturing Industries and Construction", Sector.ENERGY),
    ("1.A.3", "Transport", Sector.ENERGY),
    ("1.A.3.a", "Civil Aviation", Sector.ENERGY),
    ("1.A.3.b", "Road Transportation", Sector.ENERGY),
    ("1.A.3.c", "Railways", Sector.ENERGY),
    ("1.A.3.d", "Water-borne Navigation", Sector.ENERGY),
    ("1.A.4", "Other Sectors", Sector.ENERGY),
    ("1.A.4.a", "Commercial/Institutional", Sector.ENERGY),
    ("1.A.4.b", "Residential", Sector.ENERGY),
    ("1.A.4.c", "Agriculture/Forestry/Fishing", Sector.ENERGY),
    ("1.A.5", "Non-Specified", Sector.ENERGY),
    ("1.B.1", "Solid Fuels - Fugitive Emissions", Sector.ENERGY),
    ("1.B.2", "Oil and Natural Gas - Fugitive Emissions", Sector.ENERGY),
    ("2.A", "Mineral Industry", Sector.IPPU),
    ("2.A.1", "Cement Production", Sector.IPPU),
    ("2.A.2", "Lime Production", Sector.IPPU),
    ("2.B", "Chemical Industry", Sector.IPPU),
    ("2.C", "Metal Industry", Sector.IPPU),
    ("2.C.1", "Iron and Steel Production", Sector.IPPU),
    ("2.D", "Non-Energy Products from Fuels and Solvent Use", Sector.IPPU),
    ("2.E", "Electronics Industry", Sector.IPPU),
    ("2.F", "Product Uses as Substitutes for ODS", Sector.IPPU),
    ("2.F.1", "Refrigeration and Air Conditioning", Sector.IPPU),
    ("2.G", "Other Product Manufacture and Use", Sector.IPPU),
    ("3.A", "Livestock", Sector.AFOLU),
    ("3.A.1", "Enteric Fermentation", Sector.AFOLU),
    ("3.A.2", "Manure Management", Sector.AFOLU),
    ("3.B", "Land", Sector.AFOLU),
    ("3.B.1", "Forest Land", Sector.AFOLU),
    ("3.B.2", "Cropland", Sector.AFOLU),
    ("3.B.3", "Grassland", Sector.AFOLU),
    ("3.C", "Aggregate sources and non-CO2 emissions sources on land", Sector.AFOLU),
    ("3.C.1", "Emissions from biomass burning", Sector.AFOLU),
    ("3.C.4", "Direct N2O Emissions from managed soils", Sector.AFOLU),
    ("3.C.5", "Indirect N2O Emissions from managed soils", Sector.AFOLU),
    ("3.D", "Other", Sector.AFOLU),
    ("4.A", "Solid Waste Disposal", Sector.WASTE),
    ("4.B", "Biological Treatment of Solid Waste", Sector.WASTE),
    ("4.C", "Incineration and Open Burning of Waste", Sector.WASTE),
    ("4.D", "Wastewater Treatment and Discharge", Sector.WASTE),
    ("4.D.1", "Domestic Wastewater", Sector.WASTE),
    ("4.D.2", "Industrial Wastewater", Sector.WASTE),
    ("5.A", "Indirect N2O emissions from atmospheric deposition", Sector.OTHER),
    ("5.B", "Other", Sector.OTHER),
)

#: Catalogue keyed by category code.
IPCC_CATEGORIES: Mapping[str, EmissionCategory] = MappingProxyType({
    code: EmissionCategory(code=code, name=name, sector=sector)
    for code, name, sector in _CATEGORY_ROWS
})

# Prefix -> default gas, most specific prefix first.
_GAS_DEFAULTS: Tuple[Tuple[str, Optional[str]], ...] = (
    ("3.C.4", "N2O"),
    ("3.C.5", "N2O"),
    ("1.A", "CO2"),
    ("1.B", "CO2"),
    ("3.A", "CH4"),
    ("4.A", "CH4"),
    ("4.B", "CH4"),
    ("4.D", "N2O"),
    ("2.", None),
)

#: Factor-name keywords that make a factor relevant to a category prefix.
CATEGORY_FACTOR_KEYWORDS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "1.A.1": ("Power Generation", "Natural Gas Combustion", "Oil Combustion", "Coal"),
    "1.A.2": ("Manufacturing", "Industrial"),
    "1.A.3.a": ("Aviation", "Jet Fuel"),
    "1.A.3.b": ("Road Transport", "Gasoline", "Diesel"),
    "2.A": ("Cement", "Lime", "Glass"),
    "3.A": ("Enteric", "Manure", "Livestock"),
    "3.C": ("Fertilizer", "N2O", "Managed Soils"),
    "4.A": ("Waste", "Landfill", "Municipal"),
})


def _code_matches(code: str, prefix: str) -> bool:
    return code == prefix or code.startswith(prefix if prefix.endswith(".") else prefix + ".")


def get_category(code: str) -> Optional[EmissionCategory]:
    """Look up a category by exact code."""
    return IPCC_CATEGORIES.get((code or "").strip())


def sector_for(code: str) -> Sector:
    """Sector of a category code.

    Unknown sub-codes inherit from their closest known parent; codes with
    no known parent fall back to the leading digit.
    """
    code = (code or "").strip()
    prefix = code
    while prefix:
        category = IPCC_CATEGORIES.get(prefix)
        if category is not None:
            return category.sector
        prefix = prefix.rpartition(".")[0]
    by_digit: Dict[str, Sector] = {
        "1": Sector.ENERGY,
        "2": Sector.IPPU,
        "3": Sector.AFOLU,
        "4": Sector.WASTE,
    }
    return by_digit.get(code[:1], Sector.OTHER)


def is_energy_sector(code: str) -> bool:
    return sector_for(code) is Sector.ENERGY


def default_gas_for(code: str, explicit_gas: Optional[str] = None) -> str:
    """Pick the gas for a category when the request did not name one.

    Args:
        code: IPCC category code (e.g. "3.A.1").
        explicit_gas: Gas named by the caller; wins when given.

    Returns:
        Gas type string.

    Raises:
        ValidationError: For industrial-process categories without an
            explicit gas, which are ambiguous by nature.
    """
    if explicit_gas:
        return explicit_gas
    code = (code or "").strip()
    for prefix, gas in _GAS_DEFAULTS:
        if _code_matches(code, prefix):
            if gas is None:
                raise ValidationError(
                    message=(
                        f"Category {code} is an industrial process; "
                        "gas type must be given explicitly"
                    ),
                    context={"category_code": code},
                    invalid_fields={"gas_type": "required for IPPU categories"},
                )
            return gas
    return "CO2"


def factor_keywords_for(code: str) -> Tuple[str, ...]:
    """Factor-name keywords for the most specific matching prefix."""
    code = (code or "").strip()
    best: Tuple[str, ...] = ()
    best_len = -1
    for prefix, keywords in CATEGORY_FACTOR_KEYWORDS.items():
        if _code_matches(code, prefix) and len(prefix) > best_len:
            best, best_len = keywords, len(prefix)
    return best


__all__ = [
    "EmissionCategory",
    "IPCC_CATEGORIES",
    "CATEGORY_FACTOR_KEYWORDS",
    "get_category",
    "sector_for",
    "is_energy_sector",
    "default_gas_for",
    "factor_keywords_for",
]
