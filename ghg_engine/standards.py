# -*- coding: utf-8 -*-
"""
Per-Standard Calculation Pipelines

One pipeline per accounting standard, each owning a fixed Numeric
Normalizer mode:

    DefraCalculator        DEFRA conversion factors     EUROPEAN
    Iso14064Calculator     ISO 14064-1 inventories      US
    GhgProtocolCalculator  GHG Protocol Corporate       US
    IpccCalculator         IPCC 2006 tiered categories  EUROPEAN

Pipeline (DEFRA / ISO 14064 / GHG Protocol):
    raw input -> normalizer -> ActivityMeasurement
        pinned factor? -> Reconciliation Calculator (no comparison)
        otherwise      -> factor store candidates -> oracle selection
                       -> resolve factor -> Reconciliation Calculator

Pipeline (IPCC):
    raw input -> normalizer -> candidates for the category
        pinned factor, oracle choice, or ``select_best_factor``
        -> Tiered Category Calculator

Author: GreenLang Platform Team
Date: March 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Union

from ghg_engine.config import get_config
from ghg_engine.exceptions import FactorNotFound
from ghg_engine.factor_store import EmissionFactorStore
from ghg_engine.gwp import GWPTable
from ghg_engine.inventory import category_label, summarize_inventory
from ghg_engine.metrics import record_discrepancy
from ghg_engine.models import (
    ActivityMeasurement,
    CalculationRequest,
    EmissionFactor,
    InventoryEntry,
    InventorySummary,
    OracleSelection,
    ReconciledResult,
    Scope,
    Standard,
    Tier,
    TieredResult,
)
from ghg_engine.normalizer import NumericNormalizer, RawNumber
from ghg_engine.oracle import OracleAdapter, OracleClient
from ghg_engine.provenance import ProvenanceTracker, compute_result_hash
from ghg_engine.reconciliation import (
    ReconciliationCalculator,
    find_discrepancies,
    validate_activity,
)
from ghg_engine.tiered_calculator import TieredCategoryCalculator, select_best_factor

logger = logging.getLogger(__name__)


class StandardCalculator:
    """Shared pipeline for one accounting standard.

    Subclasses set ``standard`` and ``number_format_field`` (the config
    attribute holding the normalizer mode).
    """

    standard: Standard = Standard.DEFRA
    number_format_field: str = "defra_number_format"

    def __init__(
        self,
        store: Optional[EmissionFactorStore] = None,
        oracle: Optional[OracleAdapter] = None,
        oracle_client: Optional[OracleClient] = None,
        gwp_table: Optional[GWPTable] = None,
        normalizer: Optional[NumericNormalizer] = None,
        tracker: Optional[ProvenanceTracker] = None,
    ) -> None:
        cfg = get_config()
        self.store = store or EmissionFactorStore.default()
        self.gwp_table = gwp_table or self._default_gwp_table(cfg.gwp_source)
        self.normalizer = normalizer or NumericNormalizer(getattr(cfg, self.number_format_field))
        self.tracker = tracker or ProvenanceTracker(
            genesis_hash=cfg.genesis_hash, enabled=cfg.enable_provenance,
        )
        self.max_candidates = cfg.oracle_max_candidates
        if oracle is None and oracle_client is not None:
            oracle = OracleAdapter(client=oracle_client, standard=self.standard)
        self._oracle = oracle
        self.reconciler = ReconciliationCalculator(
            gwp_table=self.gwp_table, standard=self.standard, tracker=self.tracker,
        )
        logger.info(
            "%s initialized: normalizer=%s, gwp=%s",
            type(self).__name__, self.normalizer.mode.value, self.gwp_table.assessment_report,
        )

    @staticmethod
    def _default_gwp_table(source: str) -> GWPTable:
        return GWPTable.for_source(source)

    @property
    def oracle(self) -> OracleAdapter:
        """Oracle adapter, created on first use with the Anthropic client."""
        if self._oracle is None:
            self._oracle = OracleAdapter(standard=self.standard)
        return self._oracle

    # ------------------------------------------------------------------
    # Input handling
    # ------------------------------------------------------------------

    def normalize(self, raw: RawNumber) -> Decimal:
        return self.normalizer.parse(raw)

    def build_activity(
        self,
        quantity: RawNumber,
        unit: str,
        category: Optional[str] = None,
        standard_year: Optional[int] = None,
        activity_name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ActivityMeasurement:
        """Normalize raw API input into an ActivityMeasurement."""
        return ActivityMeasurement(
            quantity=self.normalize(quantity),
            unit=(unit or "").strip(),
            category=category,
            standard_year=standard_year,
            activity_name=activity_name,
            description=description,
        )

    def candidates(self, activity: ActivityMeasurement) -> List[EmissionFactor]:
        """Factors offered to the oracle, most specific first.

        Falls back to a unit-free lookup when the unit filter removes
        every factor.
        """
        category = activity.category or activity.activity_name
        found = self.store.lookup(
            self.standard, activity.standard_year, category=category,
            unit=activity.unit, limit=self.max_candidates,
        )
        if not found and activity.unit:
            found = self.store.lookup(
                self.standard, activity.standard_year, category=category,
                limit=self.max_candidates,
            )
        if not found:
            raise FactorNotFound(
                f"No {self.standard.value} emission factors for this activity",
                standard=self.standard.value,
                year=activity.standard_year,
                category=category,
                unit=activity.unit,
            )
        return found

    def resolve_pinned(self, pinned: Union[EmissionFactor, str]) -> EmissionFactor:
        if isinstance(pinned, EmissionFactor):
            return pinned
        return self.store.require(pinned)

    # ------------------------------------------------------------------
    # Calculation
    # ------------------------------------------------------------------

    def calculate(
        self,
        request: CalculationRequest,
        timeout: Optional[float] = None,
    ) -> ReconciledResult:
        """Run the pipeline for one request.

        Raises:
            ValidationError, FactorNotFound, UnknownGasType: Propagated.
            OracleError: Any oracle failure when no factor is pinned.
        """
        activity = request.activity
        validate_activity(activity)

        if request.pinned_factor is not None:
            factor = self.resolve_pinned(request.pinned_factor)
            logger.debug("Using pinned factor %s", factor.id)
            return self.reconciler.reconcile(activity, factor, gas_type=request.gas_type)

        candidates = self.candidates(activity)
        selection = self.oracle.select(activity, candidates, self.gwp_table, timeout=timeout)
        factor = self.oracle.resolve_factor(selection, candidates)
        self.tracker.record(
            "oracle_selection", "select", factor.id,
            data=selection.model_dump(mode="json"),
            metadata={"standard": self.standard.value},
        )
        return self.reconciler.reconcile(activity, factor, selection, gas_type=request.gas_type)

    def calculate_raw(
        self,
        quantity: RawNumber,
        unit: str,
        category: Optional[str] = None,
        standard_year: Optional[int] = None,
        activity_name: Optional[str] = None,
        pinned_factor: Optional[Union[EmissionFactor, str]] = None,
        gas_type: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ReconciledResult:
        """Convenience entry point for unnormalized API input."""
        activity = self.build_activity(quantity, unit, category, standard_year, activity_name)
        request = CalculationRequest(
            activity=activity, pinned_factor=pinned_factor, gas_type=gas_type,
        )
        return self.calculate(request, timeout=timeout)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(normalizer={self.normalizer!r}, factors={len(self.store)})"


# ---------------------------------------------------------------------------
# DEFRA
# ---------------------------------------------------------------------------


class DefraCalculator(StandardCalculator):
    """DEFRA conversion-factor calculations (CO2, CH4, N2O per unit).

    Candidates are filtered by DEFRA year, then category against the
    factor name and level1/level2/level3 hierarchy, then unit.
    """

    standard = Standard.DEFRA
    number_format_field = "defra_number_format"

    @staticmethod
    def _default_gwp_table(source: str) -> GWPTable:
        return GWPTable.ar5()


# ---------------------------------------------------------------------------
# Scope-based inventories
# ---------------------------------------------------------------------------


class ScopedInventoryCalculator(StandardCalculator):
    """Shared pipeline of the scope-based organisational standards.

    A caller may supply its own factor value; the gas then follows the
    precedence request gas, factor gas, CO2.
    """

    def scope_category(self, scope: Scope, category: str) -> str:
        """Category text used for the factor lookup."""
        return category

    def custom_factor(
        self,
        value: RawNumber,
        unit: str,
        gas_type: Optional[str] = None,
        factor_gas_type: Optional[str] = None,
        source: Optional[str] = None,
    ) -> EmissionFactor:
        """Build an EmissionFactor from caller-supplied factor fields."""
        gas = self.gwp_table.canonical_gas(gas_type or factor_gas_type or "CO2")
        amount = self.normalize(value)
        factor_id = "custom-" + compute_result_hash(
            {"value": str(amount), "unit": unit, "gas": gas, "source": source}
        )[:12]
        return EmissionFactor(
            id=factor_id,
            name=f"Provided {gas} factor",
            standard=self.standard,
            gas_type=gas,
            unit=unit,
            per_gas_factors={gas: amount},
            source=source or "Provided",
        )

    def calculate_scope(
        self,
        quantity: RawNumber,
        unit: str,
        scope: Union[Scope, str],
        category: str,
        standard_year: Optional[int] = None,
        activity_name: Optional[str] = None,
        gas_type: Optional[str] = None,
        emission_factor: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> ReconciledResult:
        """Calculate one scope/category activity.

        Args:
            emission_factor: Optional ``{value, unit, source, gas_type}``;
                when given the oracle is skipped.
        """
        scope = Scope(scope)
        activity = self.build_activity(
            quantity, unit, category=self.scope_category(scope, category),
            standard_year=standard_year, activity_name=activity_name,
            description=scope.value,
        )
        pinned = None
        if emission_factor:
            pinned = self.custom_factor(
                emission_factor["value"],
                emission_factor.get("unit", unit),
                gas_type=gas_type,
                factor_gas_type=emission_factor.get("gas_type"),
                source=emission_factor.get("source"),
            )
        request = CalculationRequest(
            activity=activity, pinned_factor=pinned, gas_type=gas_type, scope=scope,
        )
        return self.calculate(request, timeout=timeout)


class Iso14064Calculator(ScopedInventoryCalculator):
    """ISO 14064-1 organisational inventory calculations (ISO GWP variant)."""

    standard = Standard.ISO_14064
    number_format_field = "iso14064_number_format"

    @staticmethod
    def _default_gwp_table(source: str) -> GWPTable:
        return GWPTable.iso_14064()


class GhgProtocolCalculator(ScopedInventoryCalculator):
    """GHG Protocol Corporate Standard calculations.

    Categories are resolved against the Scope 1/2/3 catalogue before
    the factor lookup, so "business_travel" and "Category 6" find the
    same factors as "Business Travel". Results roll up with
    ``summarize``.
    """

    standard = Standard.GHG_PROTOCOL
    number_format_field = "ghg_protocol_number_format"

    @staticmethod
    def _default_gwp_table(source: str) -> GWPTable:
        return GWPTable.ghg_protocol()

    def scope_category(self, scope: Scope, category: str) -> str:
        return category_label(scope, category)

    def calculate_entry(
        self,
        quantity: RawNumber,
        unit: str,
        scope: Union[Scope, str],
        category: str,
        **kwargs,
    ) -> InventoryEntry:
        """Calculate one activity and place it in the inventory."""
        scope = Scope(scope)
        result = self.calculate_scope(quantity, unit, scope, category, **kwargs)
        return InventoryEntry(
            scope=scope, category=category_label(scope, category), result=result,
        )

    @staticmethod
    def summarize(entries: Iterable[InventoryEntry]) -> InventorySummary:
        return summarize_inventory(entries)


# ---------------------------------------------------------------------------
# IPCC
# ---------------------------------------------------------------------------


class IpccCalculator(StandardCalculator):
    """IPCC 2006 tiered category calculations.

    Without a pinned factor, the factor comes from the oracle when one
    is configured, otherwise from ``select_best_factor``. The oracle's
    emissionValue and CO2e are compared with the tiered result; a
    difference beyond the tolerance sets ``discrepancy_flag``.
    """

    standard = Standard.IPCC
    number_format_field = "ipcc_number_format"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.tiered = TieredCategoryCalculator(gwp_table=self.gwp_table, tracker=self.tracker)
        self.tolerance = self.reconciler.tolerance

    def candidates(self, activity: ActivityMeasurement) -> List[EmissionFactor]:
        found = self.store.lookup(
            self.standard, activity.standard_year, category=activity.category,
            limit=self.max_candidates,
        )
        if not found:
            raise FactorNotFound(
                f"No IPCC emission factors for category {activity.category}",
                standard=self.standard.value,
                year=activity.standard_year,
                category=activity.category,
            )
        return found

    def calculate(
        self,
        request: CalculationRequest,
        timeout: Optional[float] = None,
    ) -> TieredResult:
        activity = request.activity
        validate_activity(activity)
        code = activity.category or ""
        tier = request.tier or Tier.AUTO
        selection = None

        if request.pinned_factor is not None:
            factor = self.resolve_pinned(request.pinned_factor)
        else:
            candidates = self.candidates(activity)
            if self._oracle is not None:
                selection = self._oracle.select(activity, candidates, self.gwp_table, timeout=timeout)
                factor = self._oracle.resolve_factor(selection, candidates)
            else:
                factor = select_best_factor(
                    candidates, code, tier, request.gas_type, activity.activity_name,
                )

        result = self.tiered.calculate(
            activity.quantity,
            code,
            factor,
            tier=tier,
            heating_value=request.heating_value,
            gas_type=request.gas_type,
            activity_unit=activity.unit,
        )

        if selection is not None:
            result = self._reconcile_oracle(selection, result)
        return result

    def _reconcile_oracle(self, selection: OracleSelection, result: TieredResult) -> TieredResult:
        """Flag oracle arithmetic that disagrees with the tiered result."""
        discrepancies = find_discrepancies(
            [
                ("emission_value", selection.emission_value, result.emission_value),
                ("co2_equivalent", selection.co2_equivalent, result.co2_equivalent),
            ],
            self.tolerance,
        )
        if not discrepancies:
            return result

        record_discrepancy(self.standard.value)
        logger.warning(
            "IPCC oracle discrepancy for factor %s: oracle emission=%s co2e=%s, "
            "recomputed emission=%s co2e=%s",
            result.factor_used.id,
            selection.emission_value,
            selection.co2_equivalent,
            result.emission_value,
            result.co2_equivalent,
        )
        messages = [
            f"{d.field}: oracle {d.oracle_value} vs recomputed "
            f"{d.recomputed_value} (difference {d.difference})"
            for d in discrepancies
        ]
        return result.model_copy(update={
            "discrepancy_flag": True,
            "discrepancies": discrepancies,
            "warnings": [*result.warnings, *messages],
        })

    def calculate_raw(
        self,
        quantity: RawNumber,
        unit: str,
        category: Optional[str] = None,
        standard_year: Optional[int] = None,
        activity_name: Optional[str] = None,
        pinned_factor: Optional[Union[EmissionFactor, str]] = None,
        gas_type: Optional[str] = None,
        timeout: Optional[float] = None,
        tier: Optional[Union[Tier, str]] = None,
        heating_value: Optional[RawNumber] = None,
    ) -> TieredResult:
        activity = self.build_activity(quantity, unit, category, standard_year, activity_name)
        request = CalculationRequest(
            activity=activity,
            pinned_factor=pinned_factor,
            gas_type=gas_type,
            tier=Tier(tier) if tier else None,
            heating_value=self.normalize(heating_value) if heating_value is not None else None,
        )
        return self.calculate(request, timeout=timeout)


def calculator_for(standard: Union[Standard, str], **kwargs) -> StandardCalculator:
    """Build the pipeline for a standard (ISCC uses the LCA pathways)."""
    standard = Standard(standard)
    if standard is Standard.DEFRA:
        return DefraCalculator(**kwargs)
    if standard is Standard.ISO_14064:
        return Iso14064Calculator(**kwargs)
    if standard is Standard.GHG_PROTOCOL:
        return GhgProtocolCalculator(**kwargs)
    if standard is Standard.IPCC:
        return IpccCalculator(**kwargs)
    raise ValueError(f"{standard.value} calculations use ghg_engine.lca pathways")


__all__ = [
    "StandardCalculator",
    "DefraCalculator",
    "ScopedInventoryCalculator",
    "Iso14064Calculator",
    "GhgProtocolCalculator",
    "IpccCalculator",
    "calculator_for",
]
