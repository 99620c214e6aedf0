"""Tests for the GHG Protocol scope catalogue and inventory roll-up."""

import logging
from decimal import Decimal

import pytest

from ghg_engine.inventory import (
    SCOPE_CATEGORIES,
    categories_for,
    category_label,
    resolve_category,
    summarize_inventory,
)
from ghg_engine.models import Scope
from ghg_engine.standards import GhgProtocolCalculator


class TestCatalogue:

    def test_scope_sizes(self):
        assert len(categories_for("Scope1")) == 4
        assert len(categories_for(Scope.SCOPE_2)) == 4
        assert len(categories_for("Scope3")) == 15
        assert len(SCOPE_CATEGORIES) == 23

    def test_scope3_numbering(self):
        numbers = [c.number for c in categories_for("Scope3")]

        assert numbers == list(range(1, 16))
        assert SCOPE_CATEGORIES["BusinessTravel"].number == 6
        assert SCOPE_CATEGORIES["StationaryCombustion"].number is None

    @pytest.mark.parametrize("text", [
        "Business Travel", "business_travel", "BusinessTravel", "Category 6", "cat6", "6",
    ])
    def test_resolve_aliases(self, text):
        entry = resolve_category("Scope3", text)

        assert entry is not None
        assert entry.key == "BusinessTravel"

    def test_category_number_outside_scope3(self):
        assert resolve_category("Scope1", "Category 6") is None
        assert resolve_category("Scope3", "Category 16") is None

    def test_wrong_scope(self, caplog):
        with caplog.at_level(logging.WARNING, logger="ghg_engine.inventory"):
            assert resolve_category("Scope1", "Purchased Electricity") is None

        assert "belongs to Scope2" in caplog.text

    def test_labels(self):
        assert category_label("Scope2", "purchased-electricity") == "Purchased Electricity"
        assert category_label("Scope1", "  Boiler house  ") == "Boiler house"
        assert category_label("Scope1", "") == "Unknown"


class TestSummary:

    @pytest.fixture
    def entries(self):
        calc = GhgProtocolCalculator()
        return [
            calc.calculate_entry(
                "100", "m3", "Scope1", "stationary_combustion",
                emission_factor={"value": "2", "unit": "m3"},
            ),
            calc.calculate_entry(
                "1000", "kWh", "Scope2", "PurchasedElectricity",
                emission_factor={"value": "0.4", "unit": "kWh"},
            ),
            calc.calculate_entry(
                "10", "kg", "Scope3", "Category 5",
                emission_factor={"value": "0.025", "unit": "kg", "gas_type": "CH4"},
            ),
            calc.calculate_entry(
                "1000", "passenger.km", "Scope3", "Business Travel",
                emission_factor={"value": "0.04", "unit": "passenger.km"},
            ),
        ]

    def test_scope_totals(self, entries):
        summary = summarize_inventory(entries)

        assert summary.scope1_total == Decimal("200")
        assert summary.scope2_total == Decimal("400")
        assert summary.scope3_total == Decimal("47")
        assert summary.total_co2e == Decimal("647")
        assert summary.entry_count == 4

    def test_breakdowns(self, entries):
        summary = GhgProtocolCalculator.summarize(entries)

        assert summary.breakdown_by_gas == {"CO2": Decimal("640"), "CH4": Decimal("7")}
        assert summary.breakdown_by_category["Purchased Electricity"] == Decimal("400")
        assert summary.scope3_breakdown == {
            "Waste Generated in Operations": Decimal("7"),
            "Business Travel": Decimal("40"),
        }
        assert "Stationary Combustion" not in summary.scope3_breakdown

    def test_empty_inventory(self):
        summary = summarize_inventory([])

        assert summary.total_co2e == Decimal("0")
        assert summary.entry_count == 0
        assert summary.breakdown_by_gas == {}

    def test_to_dict(self, entries):
        data = summarize_inventory(entries).to_dict()

        assert data["entry_count"] == 4
        assert "scope3_breakdown" in data
