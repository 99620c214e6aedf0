"""Tests for GWP tables and the IPCC category catalogue."""

from decimal import Decimal

import pytest

from ghg_engine.categories import (
    IPCC_CATEGORIES,
    default_gas_for,
    factor_keywords_for,
    get_category,
    is_energy_sector,
    sector_for,
)
from ghg_engine.exceptions import UnknownGasType, ValidationError
from ghg_engine.gwp import GWPTable
from ghg_engine.models import Sector


class TestGWPTable:

    def test_co2_is_one(self, ar5_table, iso_table):
        assert ar5_table.gwp_for("CO2") == Decimal("1")
        assert iso_table.gwp_for("CO2") == Decimal("1")

    def test_ar5_values(self, ar5_table):
        assert ar5_table.gwp_for("CH4") == Decimal("28")
        assert ar5_table.gwp_for("N2O") == Decimal("265")
        assert ar5_table.gwp_for("SF6") == Decimal("23500")

    def test_iso_variant(self, iso_table):
        assert iso_table.gwp_for("HFCs") == Decimal("1240")
        assert iso_table.gwp_for("PFCs") == Decimal("7390")
        assert iso_table.gwp_for("SF6") == Decimal("22800")
        assert iso_table.gwp_for("CH4") == Decimal("28")

    def test_case_insensitive(self, ar5_table):
        assert ar5_table.gwp_for("ch4") == Decimal("28")
        assert ar5_table.canonical_gas("hfcs") == "HFCs"
        assert "n2o" in ar5_table

    def test_unknown_gas(self, ar5_table):
        with pytest.raises(UnknownGasType) as exc_info:
            ar5_table.gwp_for("XYZ")

        assert exc_info.value.context["assessment_report"] == "AR5"
        assert ar5_table.get("XYZ") is None
        assert "XYZ" not in ar5_table

    def test_for_source(self):
        assert GWPTable.for_source("ar5").assessment_report == "AR5"
        assert GWPTable.for_source("ISO_14064").gwp_for("HFCs") == Decimal("1240")
        assert GWPTable.for_source("ghg_protocol").assessment_report == "AR5-GHGP"
        with pytest.raises(ValueError):
            GWPTable.for_source("AR6")

    def test_ghg_protocol_variant(self):
        table = GWPTable.ghg_protocol()

        assert table.assessment_report == "AR5-GHGP"
        assert table.gwp_for("hfcs") == Decimal("1240")
        assert table.gwp_for("SF6") == Decimal("22800")
        assert table.gwp_for("N2O") == Decimal("265")

    def test_custom_table_is_read_only(self):
        source = {"CO2": 1, "CH4": "25"}
        table = GWPTable(source, "TEST")
        source["CH4"] = 999

        assert table.gwp_for("CH4") == Decimal("25")
        assert len(table) == 2
        assert [v.gas_type for v in table.values()] == ["CO2", "CH4"]

    def test_empty_table_rejected(self):
        with pytest.raises(ValueError):
            GWPTable({})


class TestCategories:

    @pytest.mark.parametrize("code,gas", [
        ("1.A.1", "CO2"),
        ("1.B.2", "CO2"),
        ("3.A.1", "CH4"),
        ("3.C.4", "N2O"),
        ("3.C.5", "N2O"),
        ("4.A", "CH4"),
        ("4.B", "CH4"),
        ("4.D.1", "N2O"),
        ("3.B.2", "CO2"),
        ("9.Z", "CO2"),
    ])
    def test_default_gas(self, code, gas):
        assert default_gas_for(code) == gas

    def test_explicit_gas_wins(self):
        assert default_gas_for("3.A.1", "N2O") == "N2O"
        assert default_gas_for("2.A.1", "CO2") == "CO2"

    def test_industrial_process_needs_gas(self):
        with pytest.raises(ValidationError) as exc_info:
            default_gas_for("2.A.1")

        assert "gas_type" in exc_info.value.invalid_fields

    def test_sector_lookup(self):
        assert sector_for("1.A.3.b.i") is Sector.ENERGY
        assert sector_for("2.C.1") is Sector.IPPU
        assert sector_for("4.X") is Sector.WASTE
        assert sector_for("") is Sector.OTHER
        assert is_energy_sector("1.A.1")
        assert not is_energy_sector("3.A.1")

    def test_catalogue(self):
        assert get_category("1.A.1").name == "Energy Industries"
        assert get_category("nope") is None
        assert all(code == c.code for code, c in IPCC_CATEGORIES.items())

    def test_factor_keywords_use_most_specific_prefix(self):
        assert "Gasoline" in factor_keywords_for("1.A.3.b.ii")
        assert "Cement" in factor_keywords_for("2.A.1")
        assert factor_keywords_for("5.B") == ()
