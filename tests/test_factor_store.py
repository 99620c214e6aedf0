"""Tests for the YAML-backed EmissionFactorStore."""

from decimal import Decimal

import pytest

from ghg_engine.exceptions import FactorNotFound
from ghg_engine.factor_store import EmissionFactorStore
from ghg_engine.models import EmissionFactor, Standard, Tier


FACTOR_YAML = """
factors:
  - id: T-1
    name: Test diesel
    standard: DEFRA
    year: 2024
    unit: litres
    per_gas_factors: {CO2: "2.5", CH4: "0.001"}
    level1: Fuels
  - id: T-2
    name: Test grid electricity
    standard: DEFRA
    year: 2024
    unit: kWh
    per_gas_factors: {CO2: "0.2"}
"""


class TestLoading:

    def test_packaged_store(self, factor_store):
        assert "DEFRA-2024-FUEL-NG-KWH" in factor_store
        assert len(factor_store) > 20
        assert EmissionFactorStore.default() is factor_store

    def test_values_load_as_exact_decimals(self, factor_store):
        factor = factor_store.require("DEFRA-2024-FUEL-NG-KWH")

        assert factor.per_gas_factors["CH4"] == Decimal("0.0000096")
        assert factor.value == Decimal("0.18253")
        assert factor.gases == ["CO2", "CH4", "N2O"]

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "factors.yaml"
        path.write_text(FACTOR_YAML, encoding="utf-8")

        store = EmissionFactorStore.from_yaml(path)

        assert len(store) == 2
        assert store.source_path == path
        assert store.require("T-1").per_gas_factors == {
            "CO2": Decimal("2.5"), "CH4": Decimal("0.001"),
        }

    def test_missing_factor_list(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("version: 1\n", encoding="utf-8")

        with pytest.raises(ValueError, match="factors"):
            EmissionFactorStore.from_yaml(path)

    def test_invalid_record(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("factors:\n  - id: X\n    name: Bad\n    standard: NOPE\n    unit: kg\n")

        with pytest.raises(ValueError, match="invalid emission factor"):
            EmissionFactorStore.from_yaml(path)

    def test_duplicate_ids_rejected(self):
        factor = EmissionFactor(id="D", name="Dup", standard=Standard.DEFRA, unit="kg")

        with pytest.raises(ValueError, match="Duplicate"):
            EmissionFactorStore([factor, factor])


class TestLookup:

    def test_ipcc_category_most_specific_first(self, factor_store):
        results = factor_store.lookup("IPCC", 2006, category="1.A.1")

        assert results[0].id == "IPCC-2006-1A1-COAL-T1"
        assert {f.id for f in results} >= {
            "IPCC-2006-1A1-COAL-T2", "IPCC-2006-1A1-NG-T1", "IPCC-2006-1A1-OIL-T1",
        }

    def test_year_filter(self, factor_store):
        results = factor_store.lookup(Standard.DEFRA, 2023, category="natural gas")

        assert [f.id for f in results] == ["DEFRA-2023-FUEL-NG-KWH"]

    def test_year_none_accepts_all(self, factor_store):
        ids = {f.id for f in factor_store.lookup("DEFRA", category="Natural gas")}

        assert ids == {"DEFRA-2024-FUEL-NG-KWH", "DEFRA-2023-FUEL-NG-KWH"}

    def test_unit_filter_is_trimmed_and_case_insensitive(self, factor_store):
        ids = {f.id for f in factor_store.lookup("DEFRA", 2024, unit=" KWH ")}

        assert ids == {"DEFRA-2024-FUEL-NG-KWH", "DEFRA-2024-ELEC-UK-KWH"}

    def test_category_matches_defra_levels(self, factor_store):
        ids = [f.id for f in factor_store.lookup("DEFRA", 2024, category="liquid fuels")]

        assert ids == ["DEFRA-2024-FUEL-DSL-L", "DEFRA-2024-FUEL-PET-L"]

    def test_limit(self, factor_store):
        assert len(factor_store.lookup("IPCC", limit=2)) == 2

    def test_no_match_is_empty(self, factor_store):
        assert factor_store.lookup("DEFRA", 2030) == []

    def test_require_lookup_raises(self, factor_store):
        with pytest.raises(FactorNotFound) as exc_info:
            factor_store.require_lookup("DEFRA", 2030, category="unobtainium")

        assert exc_info.value.context["year"] == 2030

    def test_require_unknown_id(self, factor_store):
        with pytest.raises(FactorNotFound):
            factor_store.require("NOPE")
        assert factor_store.get("NOPE") is None


class TestFindByName:

    def test_exact_name(self, factor_store):
        factor = factor_store.find_by_name("natural gas", standard="DEFRA")

        assert factor.id == "DEFRA-2024-FUEL-NG-KWH"

    def test_partial_name(self, factor_store):
        factor = factor_store.find_by_name("Coal Combustion", standard=Standard.IPCC)

        assert factor.id == "IPCC-2006-1A1-COAL-T1"

    def test_tier_preference(self, factor_store):
        factor = factor_store.find_by_name(
            "Coal Combustion - Power Generation (country-specific)", tier=Tier.TIER_2,
        )

        assert factor.tier is Tier.TIER_2

    def test_no_match(self, factor_store):
        assert factor_store.find_by_name("") is None
        assert factor_store.find_by_name("antimatter") is None

    def test_years(self, factor_store):
        assert factor_store.years("DEFRA") == [2023, 2024]
