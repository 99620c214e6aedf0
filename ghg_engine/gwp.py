# -*- coding: utf-8 -*-
"""
GWP Table

Immutable gas -> Global Warming Potential tables. Calculators receive a
table instance explicitly so a standard (or a test) can swap the table
without touching global state.

Tables:
    AR5       - IPCC Fifth Assessment Report, 100-year values
    ISO_14064 - AR5 with the compound averages used for ISO 14064-1
                inventories (HFCs 1240, PFCs 7390, SF6 22800)
    GHG_PROTOCOL - Corporate Standard inventories; same compound-class
                averages as ISO_14064

Example:
    >>> from ghg_engine.gwp import GWPTable
    >>> table = GWPTable.ar5()
    >>> table.gwp_for("CH4")
    Decimal('28')

Author: GreenLang Platform Team
Date: March 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
from decimal import Decimal
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional

from ghg_engine.exceptions import UnknownGasType
from ghg_engine.models import GWPValue

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Reference values
# ---------------------------------------------------------------------------

#: AR5 100-year GWP values.
AR5_GWP_VALUES: Mapping[str, Decimal] = MappingProxyType({
    "CO2": Decimal("1"),
    "CH4": Decimal("28"),
    "N2O": Decimal("265"),
    "HFCs": Decimal("1430"),
    "PFCs": Decimal("6630"),
    "SF6": Decimal("23500"),
    "NF3": Decimal("16100"),
})

#: ISO 14064-1 inventory averages (AR5 base, compound-class averages).
ISO_14064_GWP_VALUES: Mapping[str, Decimal] = MappingProxyType({
    **AR5_GWP_VALUES,
    "HFCs": Decimal("1240"),
    "PFCs": Decimal("7390"),
    "SF6": Decimal("22800"),
})

#: GHG Protocol Corporate Standard inventory values.
GHG_PROTOCOL_GWP_VALUES: Mapping[str, Decimal] = ISO_14064_GWP_VALUES


class GWPTable:
    """Read-only gas to GWP mapping for one assessment report.

    Gas names are matched case-insensitively ("ch4", "HFCS" and "HFCs"
    resolve to the same entry).

    Attributes:
        assessment_report: Label of the source report (e.g. "AR5").
    """

    def __init__(
        self,
        values: Mapping[str, Decimal],
        assessment_report: str = "AR5",
    ) -> None:
        if not values:
            raise ValueError("GWP table must define at least one gas")
        frozen: Dict[str, Decimal] = {}
        for gas, value in values.items():
            frozen[gas] = value if isinstance(value, Decimal) else Decimal(str(value))
        self._values = MappingProxyType(frozen)
        self._index = MappingProxyType({gas.upper(): gas for gas in frozen})
        self.assessment_report = assessment_report

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def ar5(cls) -> GWPTable:
        return cls(AR5_GWP_VALUES, "AR5")

    @classmethod
    def iso_14064(cls) -> GWPTable:
        return cls(ISO_14064_GWP_VALUES, "AR5-ISO14064")

    @classmethod
    def ghg_protocol(cls) -> GWPTable:
        return cls(GHG_PROTOCOL_GWP_VALUES, "AR5-GHGP")

    @classmethod
    def for_source(cls, source: str) -> GWPTable:
        """Build the table named by a config ``gwp_source`` value."""
        key = source.upper()
        if key == "AR5":
            return cls.ar5()
        if key == "ISO_14064":
            return cls.iso_14064()
        if key == "GHG_PROTOCOL":
            return cls.ghg_protocol()
        raise ValueError(f"Unknown GWP source: {source}")

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def canonical_gas(self, gas_type: str) -> str:
        """Return the table's spelling of a gas name.

        Raises:
            UnknownGasType: If the gas has no entry.
        """
        key = (gas_type or "").strip().upper()
        canonical = self._index.get(key)
        if canonical is None:
            raise UnknownGasType(
                gas_type,
                known_gases=list(self._values),
                assessment_report=self.assessment_report,
            )
        return canonical

    def gwp_for(self, gas_type: str) -> Decimal:
        """Return the GWP multiplier for a gas.

        Raises:
            UnknownGasType: If the gas has no entry.
        """
        return self._values[self.canonical_gas(gas_type)]

    def get(self, gas_type: str) -> Optional[Decimal]:
        key = self._index.get((gas_type or "").strip().upper())
        return self._values[key] if key else None

    def values(self) -> List[GWPValue]:
        """All entries as GWPValue models."""
        return [
            GWPValue(gas_type=gas, value=value, assessment_report=self.assessment_report)
            for gas, value in self._values.items()
        ]

    def as_dict(self) -> Dict[str, Decimal]:
        return dict(self._values)

    def __contains__(self, gas_type: object) -> bool:
        return isinstance(gas_type, str) and gas_type.strip().upper() in self._index

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"GWPTable(assessment_report={self.assessment_report!r}, gases={len(self)})"


__all__ = [
    "AR5_GWP_VALUES",
    "ISO_14064_GWP_VALUES",
    "GHG_PROTOCOL_GWP_VALUES",
    "GWPTable",
]
