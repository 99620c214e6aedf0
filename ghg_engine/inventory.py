# -*- coding: utf-8 -*-
"""
GHG Protocol Corporate Inventory

Scope category catalogue of the GHG Protocol Corporate Accounting and
Reporting Standard, and the roll-up of calculated activities into scope,
gas and category totals.

Scopes:
    Scope1  direct emissions (4 categories)
    Scope2  purchased energy (4 categories)
    Scope3  value chain (15 numbered categories)

Category names are matched loosely: "Business Travel", "business_travel",
"BusinessTravel" and "Category 6" all resolve to the same Scope 3 entry.
Unknown names are kept as free text; an inventory may carry site-specific
categories.

Example:
    >>> from ghg_engine.inventory import resolve_category
    >>> resolve_category("Scope3", "business travel").number
    6

Author: GreenLang Platform Team
Date: March 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

from ghg_engine.models import InventoryEntry, InventorySummary, Scope

logger = logging.getLogger(__name__)


class ScopeCategory(BaseModel):
    """One GHG Protocol reporting category."""

    model_config = ConfigDict(frozen=True)

    scope: Scope
    key: str
    name: str
    number: Optional[int] = None


_CATEGORY_ROWS: Tuple[Tuple[Scope, str, str], ...] = (
    (Scope.SCOPE_1, "StationaryCombustion", "Stationary Combustion"),
    (Scope.SCOPE_1, "MobileCombustion", "Mobile Combustion"),
    (Scope.SCOPE_1, "FugitiveEmissions", "Fugitive Emissions"),
    (Scope.SCOPE_1, "ProcessEmissions", "Process Emissions"),
    (Scope.SCOPE_2, "PurchasedElectricity", "Purchased Electricity"),
    (Scope.SCOPE_2, "PurchasedSteam", "Purchased Steam"),
    (Scope.SCOPE_2, "PurchasedHeating", "Purchased Heating"),
    (Scope.SCOPE_2, "PurchasedCooling", "Purchased Cooling"),
    # Scope 3, in category-number order (1-15)
    (Scope.SCOPE_3, "PurchasedGoods", "Purchased Goods and Services"),
    (Scope.SCOPE_3, "CapitalGoods", "Capital Goods"),
    (Scope.SCOPE_3, "FuelEnergy", "Fuel and Energy Related Activities"),
    (Scope.SCOPE_3, "UpstreamTransport", "Upstream Transportation and Distribution"),
    (Scope.SCOPE_3, "WasteOperations", "Waste Generated in Operations"),
    (Scope.SCOPE_3, "BusinessTravel", "Business Travel"),
    (Scope.SCOPE_3, "EmployeeCommuting", "Employee Commuting"),
    (Scope.SCOPE_3, "UpstreamLeased", "Upstream Leased Assets"),
    (Scope.SCOPE_3, "DownstreamTransport", "Downstream Transportation and Distribution"),
    (Scope.SCOPE_3, "ProcessingSold", "Processing of Sold Products"),
    (Scope.SCOPE_3, "UseSold", "Use of Sold Products"),
    (Scope.SCOPE_3, "EndOfLifeSold", "End-of-Life Treatment of Sold Products"),
    (Scope.SCOPE_3, "DownstreamLeased", "Downstream Leased Assets"),
    (Scope.SCOPE_3, "Franchises", "Franchises"),
    (Scope.SCOPE_3, "Investments", "Investments"),
)


def _build_catalogue() -> Dict[str, ScopeCategory]:
    catalogue: Dict[str, ScopeCategory] = {}
    scope3_number = 0
    for scope, key, name in _CATEGORY_ROWS:
        number = None
        if scope is Scope.SCOPE_3:
            scope3_number += 1
            number = scope3_number
        catalogue[key] = ScopeCategory(scope=scope, key=key, name=name, number=number)
    return catalogue


#: Category key -> ScopeCategory.
SCOPE_CATEGORIES: Mapping[str, ScopeCategory] = MappingProxyType(_build_catalogue())

_NON_ALNUM = re.compile(r"[^0-9a-z]+")
_CATEGORY_NUMBER = re.compile(r"^(?:category|cat)?([0-9]{1,2})$")


def _fold(text: str) -> str:
    return _NON_ALNUM.sub("", text.casefold())


_LOOKUP: Mapping[str, ScopeCategory] = MappingProxyType({
    **{_fold(c.name): c for c in SCOPE_CATEGORIES.values()},
    **{_fold(c.key): c for c in SCOPE_CATEGORIES.values()},
})


def categories_for(scope: Union[Scope, str]) -> Tuple[ScopeCategory, ...]:
    """Catalogue entries of one scope, in reporting order."""
    scope = Scope(scope)
    return tuple(c for c in SCOPE_CATEGORIES.values() if c.scope is scope)


def resolve_category(scope: Union[Scope, str], category: str) -> Optional[ScopeCategory]:
    """Find the catalogue entry a free-text category names.

    Returns None when the text matches nothing in ``scope``; a match in
    another scope is logged and also returns None.
    """
    scope = Scope(scope)
    folded = _fold(category or "")
    if not folded:
        return None

    number = _CATEGORY_NUMBER.match(folded)
    if number is not None and scope is Scope.SCOPE_3:
        wanted = int(number.group(1))
        for entry in categories_for(Scope.SCOPE_3):
            if entry.number == wanted:
                return entry
        return None

    entry = _LOOKUP.get(folded)
    if entry is None:
        return None
    if entry.scope is not scope:
        logger.warning(
            "Category '%s' belongs to %s, not %s", category, entry.scope.value, scope.value,
        )
        return None
    return entry


def category_label(scope: Union[Scope, str], category: str) -> str:
    """Display name of a catalogue category, or the stripped text itself."""
    entry = resolve_category(scope, category)
    return entry.name if entry is not None else (category or "Unknown").strip()


def summarize_inventory(entries: Iterable[InventoryEntry]) -> InventorySummary:
    """Roll calculated activities up into scope, gas and category totals.

    Every total is a sum of the entries' recomputed ``co2_equivalent``;
    the gas breakdown uses each result's primary gas.
    """
    scope_totals = {scope: Decimal("0") for scope in Scope}
    by_gas: Dict[str, Decimal] = {}
    by_category: Dict[str, Decimal] = {}
    scope3: Dict[str, Decimal] = {}
    count = 0

    for entry in entries:
        value = entry.result.co2_equivalent
        label = category_label(entry.scope, entry.category)
        scope_totals[entry.scope] += value
        by_gas[entry.result.gas_type] = by_gas.get(entry.result.gas_type, Decimal("0")) + value
        by_category[label] = by_category.get(label, Decimal("0")) + value
        if entry.scope is Scope.SCOPE_3:
            scope3[label] = scope3.get(label, Decimal("0")) + value
        count += 1

    summary = InventorySummary(
        scope1_total=scope_totals[Scope.SCOPE_1],
        scope2_total=scope_totals[Scope.SCOPE_2],
        scope3_total=scope_totals[Scope.SCOPE_3],
        total_co2e=sum(scope_totals.values(), Decimal("0")),
        breakdown_by_gas=by_gas,
        breakdown_by_category=by_category,
        scope3_breakdown=scope3,
        entry_count=count,
    )
    logger.info(
        "Inventory summarised: %d entries, %s kg CO2e (S1=%s, S2=%s, S3=%s)",
        count, summary.total_co2e, summary.scope1_total,
        summary.scope2_total, summary.scope3_total,
    )
    return summary


__all__ = [
    "ScopeCategory",
    "SCOPE_CATEGORIES",
    "categories_for",
    "resolve_category",
    "category_label",
    "summarize_inventory",
]
