"""Tests for parallel project calculation."""

from decimal import Decimal

import pytest

from ghg_engine.batch import ProjectCalculator
from ghg_engine.exceptions import ValidationError
from ghg_engine.models import ActivityMeasurement, CalculationRequest
from ghg_engine.standards import DefraCalculator


NG_FACTOR = "DEFRA-2024-FUEL-NG-KWH"
NG_CO2E_PER_KWH = Decimal("0.18253") + Decimal("0.0000096") * 28 + Decimal("0.0000003") * 265


def _request(quantity, name=None, pinned=NG_FACTOR):
    return CalculationRequest(
        activity=ActivityMeasurement(
            quantity=Decimal(quantity), unit="kWh", activity_name=name,
            category="Natural gas", standard_year=2024,
        ),
        pinned_factor=pinned,
    )


class TestProjectCalculator:

    def test_results_in_input_order(self):
        project = ProjectCalculator(DefraCalculator(), max_workers=3)

        result = project.calculate_all([_request("1"), _request("2"), _request("3")])

        assert [o.index for o in result.outcomes] == [0, 1, 2]
        assert [o.result.co2_equivalent for o in result.outcomes] == [
            NG_CO2E_PER_KWH, NG_CO2E_PER_KWH * 2, NG_CO2E_PER_KWH * 3,
        ]
        assert result.total_co2_equivalent == NG_CO2E_PER_KWH * 6
        assert result.failed_count == 0
        assert result.failures == []

    def test_progress_callback(self):
        seen = []
        project = ProjectCalculator(DefraCalculator(), max_workers=2)

        project.calculate_all(
            [_request("1"), _request("2"), _request("3")],
            progress_callback=lambda done, total: seen.append((done, total)),
        )

        assert seen[-1] == (3, 3)
        assert [done for done, _ in seen] == [1, 2, 3]

    def test_oracle_failure_is_isolated(self, fake_oracle, make_reply):
        def reply(prompt):
            return "" if "Activity name: broken" in prompt else make_reply()

        calc = DefraCalculator(oracle_client=fake_oracle(reply=reply))
        project = ProjectCalculator(calc, max_workers=3)

        result = project.calculate_all([
            _request("100", "boiler", pinned=None),
            _request("100", "broken", pinned=None),
            _request("100", "kitchen", pinned=None),
        ])

        assert result.failed_count == 1
        failure = result.outcomes[1].failure
        assert failure.index == 1
        assert failure.error_code.endswith("EMPTY_RESPONSE")
        assert not result.outcomes[1].succeeded
        assert result.outcomes[0].succeeded and result.outcomes[2].succeeded
        assert result.total_co2_equivalent == Decimal("18.28783") * 2

    def test_validation_error_propagates(self):
        project = ProjectCalculator(DefraCalculator(), max_workers=2)

        with pytest.raises(ValidationError):
            project.calculate_all([_request("1"), _request("0")])

    def test_empty_project(self):
        result = ProjectCalculator(DefraCalculator()).calculate_all([])

        assert result.outcomes == []
        assert result.total_co2_equivalent == Decimal("0")
