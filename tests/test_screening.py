"""Tests for the ISCC screening calculator."""

from decimal import Decimal

import pytest

from ghg_engine.exceptions import ValidationError
from ghg_engine.lca.screening import (
    ISCCScreeningCalculator,
    ScreeningCultivation,
    ScreeningInput,
    ScreeningProcessing,
    ScreeningProject,
    TransportLeg,
    grams_per_mj,
)


@pytest.fixture
def screening_input():
    return ScreeningInput(
        project=ScreeningProject(production_volume_t=Decimal("1000"), lhv_mj_per_kg=Decimal("25")),
        cultivation=ScreeningCultivation(
            land_area_ha=Decimal("100"),
            nitrogen_fertilizer_kg_per_ha=Decimal("150"),
            diesel_l_per_ha=Decimal("80"),
        ),
        processing=ScreeningProcessing(
            electricity_kwh=Decimal("100000"),
            natural_gas_m3=Decimal("50000"),
        ),
        transport=[
            TransportLeg(name="Field to plant", distance_km=Decimal("100"), weight_t=Decimal("1000")),
        ],
    )


class TestISCCScreeningCalculator:

    def test_stage_totals(self, screening_input):
        result = ISCCScreeningCalculator().calculate(screening_input)

        assert result.eec_kg == Decimal("117140")
        assert result.ep_kg == Decimal("150000")
        assert result.etd_kg == Decimal("10000")
        assert result.total_kg == Decimal("277140")

    def test_intensities(self, screening_input):
        result = ISCCScreeningCalculator().calculate(screening_input)

        assert result.eec == Decimal("4.6856")
        assert result.ep == Decimal("6")
        assert result.etd == Decimal("0.4")
        assert result.total == Decimal("11.0856")

    def test_breakdown(self, screening_input):
        result = ISCCScreeningCalculator().calculate(screening_input)

        assert [c.name for c in result.breakdown["eec"]] == ["Nitrogen fertilizer", "Diesel", "Electricity"]
        assert result.breakdown["etd"][0].name == "Field to plant (truck)"
        assert result.breakdown["etd"][0].quantity == Decimal("100000")

    def test_factor_override(self, screening_input):
        calculator = ISCCScreeningCalculator(factors={"electricity": Decimal("0")})

        assert calculator.calculate(screening_input).ep_kg == Decimal("100000")

    def test_savings_against_baseline(self, screening_input):
        data = screening_input.model_copy(update={
            "project": ScreeningProject(
                production_volume_t=Decimal("1000"),
                lhv_mj_per_kg=Decimal("25"),
                fossil_baseline=Decimal("94"),
            ),
        })

        result = ISCCScreeningCalculator().calculate(data)

        assert result.ghg_savings_percent == (Decimal("94") - Decimal("11.0856")) / Decimal("94") * 100

    def test_production_from_yield(self):
        data = ScreeningInput(
            project=ScreeningProject(lhv_mj_per_kg=Decimal("25")),
            cultivation=ScreeningCultivation(land_area_ha=Decimal("100"), yield_t_per_ha=Decimal("10")),
        )

        assert ISCCScreeningCalculator().production_kg(data) == Decimal("1000000")

    def test_missing_lhv(self, screening_input):
        data = screening_input.model_copy(update={
            "project": ScreeningProject(production_volume_t=Decimal("1000"), lhv_mj_per_kg=Decimal("0")),
        })

        with pytest.raises(ValidationError, match="LHV"):
            ISCCScreeningCalculator().calculate(data)

    def test_missing_production(self):
        data = ScreeningInput(project=ScreeningProject(lhv_mj_per_kg=Decimal("25")))

        with pytest.raises(ValidationError) as exc_info:
            ISCCScreeningCalculator().calculate(data)

        assert "production_volume_t" in exc_info.value.invalid_fields

    def test_unknown_transport_mode(self, screening_input):
        data = screening_input.model_copy(update={
            "transport": [TransportLeg(name="Air", distance_km=Decimal("1"), weight_t=Decimal("1"), mode="plane")],
        })

        with pytest.raises(ValidationError):
            ISCCScreeningCalculator().calculate(data)

    def test_grams_per_mj(self):
        assert grams_per_mj(Decimal("25"), Decimal("1000"), Decimal("25")) == Decimal("1")
        assert grams_per_mj(Decimal("25"), Decimal("0"), Decimal("25")) == Decimal("0")
