"""Tests for the multi-batch GHG audit pathway."""

from decimal import Decimal

import pytest

from ghg_engine.exceptions import ValidationError
from ghg_engine.lca.ghg_audit import GHGAuditPathway, batch_input, build_ghg_audit_graph


PLANT = {
    "ethanolDry": "100",
    "ethanolLhv": "20",
    "cornLhv": "10",
    "electricityEthanolProduction": "1000",
    "electricityCo2Liquefaction": "500",
    "factorElectricity": "0.4",
    "heatNaturalGas": "200",
    "emissionFactorNaturalGas": "2",
    "co2Capture": "200",
    "fuelReference": "100",
}

BATCH = {"amount": "400", "moisture": "0", "ghgEmissionEEC": "250", "etd": "1.4"}


@pytest.fixture
def pathway():
    return GHGAuditPathway()


class TestGraph:

    def test_batch_nodes(self):
        graph = build_ghg_audit_graph(2)

        assert "totalEmission2" in graph
        assert batch_input("amount", 2) in graph.inputs
        assert graph.dependents("eccr") == ["totalEmission1", "totalEmission2"]

    def test_needs_a_batch(self):
        with pytest.raises(ValueError):
            build_ghg_audit_graph(0)


class TestGHGAuditPathway:

    def test_single_batch(self, pathway):
        result = pathway.evaluate(PLANT, [BATCH])
        batch = result.batches[0]

        assert result.feedstock_factor == Decimal("0.5")
        assert result.allocation_factor == Decimal("1")
        assert batch.index == 1
        assert batch.eec == Decimal("12.5")
        assert batch.ep == Decimal("0.5")
        assert batch.eccr == Decimal("0.1")
        assert batch.total == Decimal("14.3")
        assert batch.reduction_percent == Decimal("85.7")

    def test_dry_basis_node(self, pathway):
        result = pathway.evaluate(PLANT, [dict(BATCH, moisture="20")])

        assert result.nodes["ghgDry1"] == Decimal("312.5")
        assert result.nodes["cornDry"] == Decimal("320")

    def test_plant_values_shared_across_batches(self, pathway):
        second = dict(BATCH, ghgEmissionEEC="500", etd="0")

        result = pathway.evaluate(PLANT, [BATCH, second])

        assert result.feedstock_factor == Decimal("0.25")
        assert result.batches[0].ep == result.batches[1].ep
        assert result.batches[1].eec == 2 * result.batches[0].eec

    def test_default_fuel_reference(self):
        plant = dict(PLANT)
        del plant["fuelReference"]

        result = GHGAuditPathway(fuel_reference=Decimal("94")).evaluate(plant, [BATCH])

        assert result.fuel_reference == Decimal("94")

    def test_no_batches(self, pathway):
        with pytest.raises(ValidationError):
            pathway.evaluate(PLANT, [])

    def test_unknown_fields(self, pathway):
        with pytest.raises(ValidationError) as exc_info:
            pathway.evaluate(dict(PLANT, ethanolWet="1"), [dict(BATCH, colour="yellow")])

        assert set(exc_info.value.invalid_fields) == {"ethanolWet", "colour"}

    def test_deterministic_hash(self, pathway):
        first = pathway.evaluate(PLANT, [BATCH])
        second = pathway.evaluate(PLANT, [BATCH])

        assert first.provenance_hash == second.provenance_hash
