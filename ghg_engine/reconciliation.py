# -*- coding: utf-8 -*-
"""
Reconciliation Calculator

Recomputes an activity's emissions from the chosen emission factor and,
when the factor came from the oracle, compares the oracle's numbers with
the recomputed ones. The recomputed values are always the ones returned;
the oracle's numbers only decide the discrepancy flag.

Formula (per gas g defined by the factor):
    emission_g = quantity x factor_g
    co2e       = sum(emission_g x GWP(g))

The oracle's emissionValue, its per-gas values and its CO2e are each
compared; a field is discrepant when ``|oracle - recomputed| > tolerance``
(absolute, default 0.01). Discrepancies never raise; they set
``discrepancy_flag``, add a Discrepancy record per field and log a
WARNING with both value sets.

Example:
    >>> from decimal import Decimal
    >>> calc = ReconciliationCalculator()
    >>> result = calc.reconcile(activity, factor)   # pinned factor
    >>> result.co2_equivalent
    Decimal('228.00')

Author: GreenLang Platform Team
Date: March 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import time
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple, Union

from ghg_engine.audit_trail import StepRecorder
from ghg_engine.config import get_config
from ghg_engine.exceptions import ValidationError
from ghg_engine.gwp import GWPTable
from ghg_engine.metrics import (
    observe_duration,
    record_calculation,
    record_discrepancy,
    record_emissions,
)
from ghg_engine.models import (
    ActivityMeasurement,
    Discrepancy,
    EmissionFactor,
    OracleSelection,
    ReconciledResult,
    Standard,
)
from ghg_engine.provenance import ProvenanceTracker, compute_result_hash

logger = logging.getLogger(__name__)

METHOD_RECONCILED = "ORACLE_RECONCILED"
METHOD_PINNED = "PINNED_FACTOR"


def validate_activity(activity: ActivityMeasurement, unit: Optional[str] = None) -> str:
    """Check quantity and unit of a factor-driven activity.

    Returns:
        The effective unit.

    Raises:
        ValidationError: Non-finite or non-positive quantity, missing unit.
    """
    quantity = activity.quantity
    if not quantity.is_finite():
        raise ValidationError(
            message="Quantity must be a finite number",
            context={"quantity": str(quantity)},
            invalid_fields={"quantity": "must be finite"},
        )
    if quantity <= 0:
        raise ValidationError(
            message="Quantity must be greater than zero",
            context={"quantity": str(quantity)},
            invalid_fields={"quantity": "must be > 0"},
        )
    effective_unit = (unit or activity.unit or "").strip()
    if not effective_unit:
        raise ValidationError(
            message="Unit is required",
            invalid_fields={"unit": "missing"},
        )
    return effective_unit


def find_discrepancies(
    pairs: Iterable[Tuple[str, Decimal, Decimal]],
    tolerance: Decimal,
) -> List[Discrepancy]:
    """Compare ``(field, oracle_value, recomputed_value)`` triples.

    Returns a Discrepancy for every field whose absolute difference
    exceeds ``tolerance``, in input order.
    """
    found = []
    for field, oracle_value, recomputed in pairs:
        difference = abs(oracle_value - recomputed)
        if difference > tolerance:
            found.append(Discrepancy(
                field=field,
                oracle_value=oracle_value,
                recomputed_value=recomputed,
                difference=difference,
            ))
    return found


class ReconciliationCalculator:
    """Deterministic recomputation and oracle cross-check.

    Attributes:
        gwp_table: GWP table used for CO2e.
        tolerance: Absolute discrepancy tolerance.
        standard: Standard label for metrics and logs.
    """

    def __init__(
        self,
        gwp_table: Optional[GWPTable] = None,
        tolerance: Optional[Union[Decimal, float, str]] = None,
        standard: Union[Standard, str] = Standard.DEFRA,
        tracker: Optional[ProvenanceTracker] = None,
    ) -> None:
        cfg = get_config()
        self.gwp_table = gwp_table or GWPTable.for_source(cfg.gwp_source)
        raw_tolerance = cfg.discrepancy_tolerance if tolerance is None else tolerance
        self.tolerance = Decimal(str(raw_tolerance))
        self.standard = Standard(standard)
        self.tracker = tracker
        self._large_emission_kg = Decimal(str(cfg.large_emission_warning_kg))

    def reconcile(
        self,
        activity: ActivityMeasurement,
        factor: EmissionFactor,
        selection: Optional[OracleSelection] = None,
        requested_unit: Optional[str] = None,
        gas_type: Optional[str] = None,
    ) -> ReconciledResult:
        """Recompute emissions from ``factor`` and cross-check ``selection``.

        Args:
            activity: Measured activity (quantity must be > 0).
            factor: The factor to apply (pinned, or resolved from the oracle).
            selection: Oracle selection to compare against, if any.
            requested_unit: Unit override for the activity.
            gas_type: Primary gas requested by the caller; wins over the
                oracle and factor gas when the factor defines it.

        Returns:
            ReconciledResult carrying the recomputed values.

        Raises:
            ValidationError: Invalid quantity, missing unit, or a factor
                that defines no gas.
            UnknownGasType: A factor gas has no GWP.
        """
        start = time.monotonic()
        unit = validate_activity(activity, requested_unit)
        if not factor.per_gas_factors:
            raise ValidationError(
                message=f"Emission factor '{factor.id}' defines no gas factors",
                context={"factor_id": factor.id},
                invalid_fields={"per_gas_factors": "empty"},
            )

        quantity = activity.quantity
        steps = StepRecorder()
        warnings: List[str] = []

        if unit.casefold() != factor.unit.strip().casefold():
            message = (
                f"Unit mismatch: activity unit is '{unit}', "
                f"factor '{factor.id}' unit is '{factor.unit}'"
            )
            logger.warning("%s", message)
            warnings.append(message)

        per_gas: Dict[str, Decimal] = {}
        gwp_used: Dict[str, Decimal] = {}
        terms: List[str] = []
        co2e = Decimal("0")
        for gas, factor_value in factor.per_gas_factors.items():
            canonical = self.gwp_table.canonical_gas(gas)
            gwp = self.gwp_table.gwp_for(canonical)
            emission = steps.add(
                f"Activity x {canonical} factor",
                "multiply",
                {"quantity": quantity, "factor": factor_value},
                quantity * factor_value,
            )
            contribution = steps.add(
                f"{canonical} emission x GWP",
                "multiply",
                {"emission": emission, "gwp": gwp},
                emission * gwp,
            )
            per_gas[canonical] = emission
            gwp_used[canonical] = gwp
            terms.append(f"{canonical} {factor_value} x GWP {gwp}")
            co2e += contribution
        steps.add("Sum of CO2e contributions", "sum", {"gases": ", ".join(gwp_used)}, co2e)

        primary_gas = self._primary_gas(factor, selection, per_gas, gas_type)
        emission_value = per_gas[primary_gas]

        if co2e > self._large_emission_kg:
            message = f"Emission of {co2e} kg CO2e exceeds plausibility threshold"
            logger.warning("%s", message)
            warnings.append(message)

        discrepancies: List[Discrepancy] = []
        if selection is not None:
            discrepancies = self._compare(selection, primary_gas, per_gas, co2e)
            if discrepancies:
                record_discrepancy(self.standard.value)
                logger.warning(
                    "Oracle/recomputed discrepancy for factor %s: "
                    "oracle emission=%s gases=%s co2e=%s, "
                    "recomputed emission=%s gases=%s co2e=%s",
                    factor.id,
                    selection.emission_value,
                    {k: str(v) for k, v in selection.per_gas_emissions.items()},
                    selection.co2_equivalent,
                    emission_value,
                    {k: str(v) for k, v in per_gas.items()},
                    co2e,
                )
                warnings.extend(
                    f"{d.field}: oracle {d.oracle_value} vs recomputed "
                    f"{d.recomputed_value} (difference {d.difference})"
                    for d in discrepancies
                )

        method = METHOD_RECONCILED if selection is not None else METHOD_PINNED
        formula = f"{quantity} {unit} x ({' + '.join(terms)}) = {co2e} kg CO2e"
        provenance_hash = compute_result_hash({
            "activity": activity.model_dump(mode="json"),
            "unit": unit,
            "factor": factor.model_dump(mode="json"),
            "gwp": {k: str(v) for k, v in gwp_used.items()},
            "per_gas": {k: str(v) for k, v in per_gas.items()},
            "co2e": str(co2e),
            "method": method,
        })

        result = ReconciledResult(
            emission_value=emission_value,
            co2_equivalent=co2e,
            per_gas_emissions=per_gas,
            gwp_used=gwp_used,
            gas_type=primary_gas,
            factor_used=factor,
            method=method,
            formula=formula,
            discrepancy_flag=bool(discrepancies),
            discrepancies=discrepancies,
            oracle_explanation=selection.explanation if selection is not None else None,
            warnings=warnings,
            calculation_steps=steps.to_list(),
            provenance_hash=provenance_hash,
        )

        if self.tracker is not None:
            self.tracker.record(
                "calculation", "reconcile", factor.id,
                data={"provenance_hash": provenance_hash, "co2e": str(co2e)},
                metadata={"standard": self.standard.value, "method": method},
            )
        record_calculation(self.standard.value, method, "completed")
        for gas, emission in per_gas.items():
            record_emissions(self.standard.value, gas, float(emission * gwp_used[gas]))
        observe_duration("reconcile", time.monotonic() - start)

        logger.info(
            "Reconciled %s %s with factor %s: %s kg CO2e (discrepancy=%s)",
            quantity, unit, factor.id, co2e, result.discrepancy_flag,
        )
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _primary_gas(
        self,
        factor: EmissionFactor,
        selection: Optional[OracleSelection],
        per_gas: Dict[str, Decimal],
        requested_gas: Optional[str] = None,
    ) -> str:
        for candidate in (
            requested_gas,
            selection.gas_type if selection is not None else None,
            factor.gas_type,
        ):
            if candidate and candidate in self.gwp_table:
                canonical = self.gwp_table.canonical_gas(candidate)
                if canonical in per_gas:
                    return canonical
        return next(iter(per_gas))

    def _compare(
        self,
        selection: OracleSelection,
        primary_gas: str,
        per_gas: Dict[str, Decimal],
        co2e: Decimal,
    ) -> List[Discrepancy]:
        # emissionValue refers to the oracle's gasType when the factor defines it
        declared_gas = primary_gas
        if selection.gas_type and selection.gas_type in self.gwp_table:
            canonical = self.gwp_table.canonical_gas(selection.gas_type)
            if canonical in per_gas:
                declared_gas = canonical
        pairs = [("emission_value", selection.emission_value, per_gas[declared_gas])]
        for gas, oracle_value in selection.per_gas_emissions.items():
            canonical = self.gwp_table.canonical_gas(gas) if gas in self.gwp_table else gas
            pairs.append((canonical, oracle_value, per_gas.get(canonical, Decimal("0"))))
        pairs.append(("co2_equivalent", selection.co2_equivalent, co2e))
        return find_discrepancies(pairs, self.tolerance)


def reconcile(
    activity: ActivityMeasurement,
    factor: EmissionFactor,
    selection: Optional[OracleSelection] = None,
    requested_unit: Optional[str] = None,
    gwp_table: Optional[GWPTable] = None,
) -> ReconciledResult:
    """Module-level shortcut using the configured defaults."""
    calculator = ReconciliationCalculator(gwp_table=gwp_table)
    return calculator.reconcile(activity, factor, selection, requested_unit)


__all__ = [
    "METHOD_RECONCILED",
    "METHOD_PINNED",
    "ReconciliationCalculator",
    "find_discrepancies",
    "validate_activity",
    "reconcile",
]
