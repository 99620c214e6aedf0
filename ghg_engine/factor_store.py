# -*- coding: utf-8 -*-
"""
Emission Factor Store

Read-only, in-memory store of standard-specific emission factors loaded
from YAML. The packaged data file lives at
``ghg_engine/data/emission_factors.yaml``; deployments can point the
store at their own file with the same layout.

Lookup semantics:
    - ``standard`` and ``year`` are equality filters (``year=None``
      accepts every year).
    - ``category`` is a case-insensitive substring match against the
      factor's name, DEFRA level1/level2/level3 and applicable categories.
    - ``unit`` is an exact match after trimming and case folding.
    - Results are ordered by specificity: exact category hits first, then
      the number of factor fields the category matched, then factor id.

Example:
    >>> from ghg_engine.factor_store import EmissionFactorStore
    >>> store = EmissionFactorStore.default()
    >>> [f.id for f in store.lookup("IPCC", 2006, category="1.A.1")][:1]
    ['IPCC-2006-1A1-COAL-T1']

Author: GreenLang Platform Team
Date: March 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

import yaml

from ghg_engine.exceptions import FactorNotFound
from ghg_engine.metrics import record_factor_lookup
from ghg_engine.models import EmissionFactor, Standard, Tier

logger = logging.getLogger(__name__)

#: Packaged factor file.
DEFAULT_FACTORS_PATH = Path(__file__).parent / "data" / "emission_factors.yaml"

_default_store: Optional["EmissionFactorStore"] = None
_default_lock = threading.Lock()


def _fold(value: Optional[str]) -> str:
    return (value or "").strip().casefold()


class EmissionFactorStore:
    """Immutable collection of EmissionFactor records.

    Attributes:
        source_path: File the factors were loaded from, if any.
    """

    def __init__(
        self,
        factors: Iterable[EmissionFactor],
        source_path: Optional[Path] = None,
    ) -> None:
        by_id: Dict[str, EmissionFactor] = {}
        for factor in factors:
            if factor.id in by_id:
                raise ValueError(f"Duplicate emission factor id: {factor.id}")
            by_id[factor.id] = factor
        self._factors: Tuple[EmissionFactor, ...] = tuple(by_id.values())
        self._by_id = by_id
        self.source_path = source_path
        logger.info(
            "EmissionFactorStore initialized: %d factors (%s)",
            len(self._factors),
            source_path or "in-memory",
        )

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, path: Union[str, Path, None] = None) -> EmissionFactorStore:
        """Load factors from a YAML file with a top-level ``factors`` list.

        Raises:
            ValueError: If the file has no ``factors`` list or a record is
                invalid.
        """
        path = Path(path) if path is not None else DEFAULT_FACTORS_PATH
        with path.open("r", encoding="utf-8") as handle:
            document = yaml.safe_load(handle) or {}

        records = document.get("factors") if isinstance(document, dict) else None
        if not isinstance(records, list):
            raise ValueError(f"{path}: expected a top-level 'factors' list")

        factors = [cls._parse_record(record, path) for record in records]
        return cls(factors, source_path=path)

    @classmethod
    def default(cls) -> EmissionFactorStore:
        """Shared store built from the packaged YAML (loaded once)."""
        global _default_store
        if _default_store is None:
            with _default_lock:
                if _default_store is None:
                    _default_store = cls.from_yaml(DEFAULT_FACTORS_PATH)
        return _default_store

    @staticmethod
    def _parse_record(record: Dict[str, Any], path: Path) -> EmissionFactor:
        data = dict(record)
        data["per_gas_factors"] = {
            gas: str(value) for gas, value in (data.get("per_gas_factors") or {}).items()
        }
        for key in ("co2e_factor", "heating_value"):
            if data.get(key) is not None:
                data[key] = str(data[key])
        data["applicable_categories"] = tuple(data.get("applicable_categories") or ())
        try:
            return EmissionFactor(**data)
        except ValueError as exc:
            raise ValueError(
                f"{path}: invalid emission factor {record.get('id')!r}: {exc}"
            ) from exc

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(
        self,
        standard: Union[Standard, str],
        year: Optional[int] = None,
        category: Optional[str] = None,
        unit: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[EmissionFactor]:
        """Return every factor matching the filters, most specific first.

        Args:
            standard: Accounting standard.
            year: Publication year; None matches all years.
            category: Substring matched against name, levels and
                applicable categories.
            unit: Exact unit (trimmed, case-insensitive).
            limit: Optional cap on the number of returned factors.

        Returns:
            Ordered list; empty when nothing matches.
        """
        standard = Standard(standard)
        wanted_category = _fold(category)
        wanted_unit = _fold(unit)

        scored: List[Tuple[Tuple[int, int, str], EmissionFactor]] = []
        for factor in self._factors:
            if factor.standard is not standard:
                continue
            if year is not None and factor.year != year:
                continue
            if wanted_unit and _fold(factor.unit) != wanted_unit:
                continue

            exact, matched = 0, 0
            if wanted_category:
                fields = [
                    factor.name,
                    factor.level1,
                    factor.level2,
                    factor.level3,
                    *factor.applicable_categories,
                ]
                folded = [_fold(f) for f in fields if f]
                matched = sum(1 for f in folded if wanted_category in f)
                if not matched:
                    continue
                exact = 1 if wanted_category in folded else 0
            scored.append(((-exact, -matched, factor.id), factor))

        scored.sort(key=lambda item: item[0])
        results = [factor for _, factor in scored]
        if limit is not None:
            results = results[:limit]

        record_factor_lookup(standard.value)
        logger.debug(
            "Factor lookup standard=%s year=%s category=%r unit=%r -> %d",
            standard.value, year, category, unit, len(results),
        )
        return results

    def get(self, factor_id: str) -> Optional[EmissionFactor]:
        return self._by_id.get(factor_id)

    def require(self, factor_id: str) -> EmissionFactor:
        """Return a factor by id.

        Raises:
            FactorNotFound: If no factor has this id.
        """
        factor = self._by_id.get(factor_id)
        if factor is None:
            raise FactorNotFound(
                f"Emission factor '{factor_id}' not found",
                factor_id=factor_id,
            )
        return factor

    def require_lookup(
        self,
        standard: Union[Standard, str],
        year: Optional[int] = None,
        category: Optional[str] = None,
        unit: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[EmissionFactor]:
        """Like lookup(), but an empty result raises FactorNotFound."""
        results = self.lookup(standard, year, category=category, unit=unit, limit=limit)
        if not results:
            raise FactorNotFound(
                "No emission factors match the requested filters",
                standard=Standard(standard).value,
                year=year,
                category=category,
                unit=unit,
            )
        return results

    def find_by_name(
        self,
        name: str,
        gas_type: Optional[str] = None,
        tier: Optional[Union[Tier, str]] = None,
        standard: Optional[Union[Standard, str]] = None,
    ) -> Optional[EmissionFactor]:
        """Find a factor by name with progressively looser matching.

        Order: exact name + gas + tier, then exact name + gas, then a
        partial (substring) name match. Returns None when nothing matches.
        """
        wanted = _fold(name)
        if not wanted:
            return None
        gas = _fold(gas_type)
        tier_value = Tier(tier) if tier else None
        pool = [
            f for f in self._factors
            if standard is None or f.standard is Standard(standard)
        ]

        def _gas_ok(factor: EmissionFactor) -> bool:
            return not gas or _fold(factor.gas_type) == gas

        exact = [f for f in pool if _fold(f.name) == wanted and _gas_ok(f)]
        if tier_value is not None:
            tiered = [f for f in exact if f.tier is tier_value]
            if tiered:
                return tiered[0]
        if exact:
            return exact[0]

        partial = [f for f in pool if wanted in _fold(f.name)]
        return partial[0] if partial else None

    def for_standard(self, standard: Union[Standard, str]) -> List[EmissionFactor]:
        standard = Standard(standard)
        return [f for f in self._factors if f.standard is standard]

    def years(self, standard: Union[Standard, str]) -> List[int]:
        """Publication years available for a standard, ascending."""
        return sorted({f.year for f in self.for_standard(standard) if f.year is not None})

    # ------------------------------------------------------------------
    # Container protocol
    # ------------------------------------------------------------------

    def __contains__(self, factor_id: object) -> bool:
        return factor_id in self._by_id

    def __iter__(self) -> Iterator[EmissionFactor]:
        return iter(self._factors)

    def __len__(self) -> int:
        return len(self._factors)

    def __repr__(self) -> str:
        return f"EmissionFactorStore(factors={len(self)}, source={self.source_path})"


__all__ = ["DEFAULT_FACTORS_PATH", "EmissionFactorStore"]
