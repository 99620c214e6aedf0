"""Tests for the Reconciliation Calculator.

The recomputed value always wins over the oracle's arithmetic; the
oracle's numbers only decide the discrepancy flag.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError

from ghg_engine.config import GHGEngineConfig, set_config
from ghg_engine.exceptions import UnknownGasType, ValidationError
from ghg_engine.gwp import GWPTable
from ghg_engine.models import ActivityMeasurement, EmissionFactor, OracleSelection, Standard
from ghg_engine.provenance import compute_result_hash
from ghg_engine.reconciliation import (
    METHOD_PINNED,
    METHOD_RECONCILED,
    ReconciliationCalculator,
    reconcile,
    validate_activity,
)


def _selection(co2e, per_gas=None, gas_type="CO2", emission_value="200"):
    return OracleSelection(
        chosen_factor_id="TEST-FUEL-KG",
        gas_type=gas_type,
        emission_value=Decimal(emission_value),
        co2_equivalent=Decimal(co2e),
        per_gas_emissions=per_gas or {},
        explanation="oracle says so",
    )


@pytest.fixture
def calculator(ar5_table):
    return ReconciliationCalculator(gwp_table=ar5_table)


class TestRecomputation:

    def test_two_gas_co2e(self, calculator, activity_100kg, two_gas_factor):
        result = calculator.reconcile(activity_100kg, two_gas_factor)

        assert result.co2_equivalent == Decimal("228")
        assert result.per_gas_emissions == {"CO2": Decimal("200"), "CH4": Decimal("1")}
        assert result.gwp_used == {"CO2": Decimal("1"), "CH4": Decimal("28")}
        assert result.emission_value == Decimal("200")
        assert result.gas_type == "CO2"
        assert result.method == METHOD_PINNED
        assert result.discrepancy_flag is False
        assert result.oracle_explanation is None

    def test_co2_contribution_equals_mass(self, calculator, activity_100kg, two_gas_factor):
        result = calculator.reconcile(activity_100kg, two_gas_factor)
        steps = {s["description"]: s["output"] for s in result.calculation_steps}

        assert steps["CO2 emission x GWP"] == str(result.per_gas_emissions["CO2"])
        assert len(result.calculation_steps) == 5

    def test_requested_gas_sets_primary(self, calculator, activity_100kg, two_gas_factor):
        result = calculator.reconcile(activity_100kg, two_gas_factor, gas_type="ch4")

        assert result.gas_type == "CH4"
        assert result.emission_value == Decimal("1.00")

    def test_swapped_gwp_table(self, activity_100kg, two_gas_factor):
        table = GWPTable({"CO2": "1", "CH4": "25"}, "TEST")

        result = ReconciliationCalculator(gwp_table=table).reconcile(activity_100kg, two_gas_factor)

        assert result.co2_equivalent == Decimal("225")

    def test_deterministic(self, calculator, activity_100kg, two_gas_factor):
        first = calculator.reconcile(activity_100kg, two_gas_factor)
        second = calculator.reconcile(activity_100kg, two_gas_factor)

        assert first.provenance_hash == second.provenance_hash
        assert first.to_dict() == second.to_dict()

    def test_formula_lists_each_gas(self, calculator, activity_100kg, two_gas_factor):
        result = calculator.reconcile(activity_100kg, two_gas_factor)

        assert result.formula == "100 kg x (CO2 2.0 x GWP 1 + CH4 0.01 x GWP 28) = 228.00 kg CO2e"

    def test_module_shortcut(self, activity_100kg, two_gas_factor):
        assert reconcile(activity_100kg, two_gas_factor).co2_equivalent == Decimal("228")


class TestOracleComparison:

    def test_recomputed_value_dominates(self, calculator, activity_100kg, two_gas_factor):
        result = calculator.reconcile(activity_100kg, two_gas_factor, _selection("500"))

        assert result.co2_equivalent == Decimal("228")
        assert result.method == METHOD_RECONCILED
        assert result.discrepancy_flag is True
        assert [d.field for d in result.discrepancies] == ["co2_equivalent"]
        assert result.discrepancies[0].difference == Decimal("272")
        assert any("co2_equivalent" in w for w in result.warnings)
        assert result.oracle_explanation == "oracle says so"

    def test_within_tolerance(self, calculator, activity_100kg, two_gas_factor):
        result = calculator.reconcile(activity_100kg, two_gas_factor, _selection("228.005"))

        assert result.discrepancy_flag is False
        assert result.discrepancies == []

    def test_per_gas_discrepancy(self, calculator, activity_100kg, two_gas_factor):
        selection = _selection("228", per_gas={"CO2": Decimal("200"), "CH4": Decimal("5")})

        result = calculator.reconcile(activity_100kg, two_gas_factor, selection)

        assert [d.field for d in result.discrepancies] == ["CH4"]

    def test_emission_value_discrepancy(self, calculator, activity_100kg, two_gas_factor):
        selection = _selection("228", emission_value="999")

        result = calculator.reconcile(activity_100kg, two_gas_factor, selection)

        assert result.emission_value == Decimal("200.0")
        assert result.discrepancy_flag is True
        assert [d.field for d in result.discrepancies] == ["emission_value"]
        assert result.discrepancies[0].oracle_value == Decimal("999")
        assert result.discrepancies[0].recomputed_value == Decimal("200.0")

    def test_emission_value_refers_to_oracle_gas(self, calculator, activity_100kg, two_gas_factor):
        selection = _selection("228", gas_type="CH4", emission_value="1")

        result = calculator.reconcile(activity_100kg, two_gas_factor, selection)

        assert result.discrepancy_flag is False

    def test_custom_tolerance(self, ar5_table, activity_100kg, two_gas_factor):
        calculator = ReconciliationCalculator(gwp_table=ar5_table, tolerance="1")

        result = calculator.reconcile(activity_100kg, two_gas_factor, _selection("228.9"))

        assert result.discrepancy_flag is False


class TestValidation:

    @pytest.mark.parametrize("quantity", ["0", "-5"])
    def test_non_positive_quantity(self, calculator, two_gas_factor, quantity):
        activity = ActivityMeasurement(quantity=Decimal(quantity), unit="kg")

        with pytest.raises(ValidationError) as exc_info:
            calculator.reconcile(activity, two_gas_factor)

        assert "quantity" in exc_info.value.invalid_fields

    def test_missing_unit(self, calculator, two_gas_factor):
        activity = ActivityMeasurement(quantity=Decimal("1"), unit="  ")

        with pytest.raises(ValidationError, match="Unit is required"):
            calculator.reconcile(activity, two_gas_factor)

    def test_requested_unit_overrides(self):
        activity = ActivityMeasurement(quantity=Decimal("1"), unit="")

        assert validate_activity(activity, "kWh") == "kWh"

    def test_factor_without_gases(self, calculator, activity_100kg):
        factor = EmissionFactor(id="EMPTY", name="Empty", standard=Standard.DEFRA, unit="kg")

        with pytest.raises(ValidationError):
            calculator.reconcile(activity_100kg, factor)

    def test_duplicate_gas_keys_rejected(self):
        with pytest.raises(PydanticValidationError, match="duplicates"):
            EmissionFactor(
                id="DUP", name="Dup", standard=Standard.DEFRA, unit="kg",
                per_gas_factors={"co2": Decimal("1"), "CO2": Decimal("2")},
            )

    def test_unknown_gas(self, calculator, activity_100kg):
        factor = EmissionFactor(
            id="ODD", name="Odd", standard=Standard.DEFRA, unit="kg",
            per_gas_factors={"XYZ": Decimal("1")},
        )

        with pytest.raises(UnknownGasType):
            calculator.reconcile(activity_100kg, factor)


class TestWarnings:

    def test_unit_mismatch(self, calculator, two_gas_factor):
        activity = ActivityMeasurement(quantity=Decimal("10"), unit="litres")

        result = calculator.reconcile(activity, two_gas_factor)

        assert result.co2_equivalent == Decimal("22.8")
        assert any("Unit mismatch" in w for w in result.warnings)

    def test_large_emission(self, activity_100kg, two_gas_factor):
        set_config(GHGEngineConfig(large_emission_warning_kg=100, enable_metrics=False))

        result = ReconciliationCalculator().reconcile(activity_100kg, two_gas_factor)

        assert any("plausibility" in w for w in result.warnings)


class TestProvenance:

    def test_tracker_records_chain(self, ar5_table, tracker, activity_100kg, two_gas_factor):
        calculator = ReconciliationCalculator(gwp_table=ar5_table, tracker=tracker)

        result = calculator.reconcile(activity_100kg, two_gas_factor)

        entries = tracker.get_entries(entity_type="calculation")
        assert len(entries) == 1
        assert entries[0].entity_id == "TEST-FUEL-KG"
        assert entries[0].metadata["method"] == METHOD_PINNED
        assert entries[0].metadata["data_hash"] == compute_result_hash(
            {"provenance_hash": result.provenance_hash, "co2e": str(result.co2_equivalent)}
        )
        assert tracker.verify_chain()
