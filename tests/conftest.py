# -*- coding: utf-8 -*-
"""Pytest configuration and shared fixtures."""

import json
import time
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from ghg_engine.config import GHGEngineConfig, reset_config, set_config
from ghg_engine.factor_store import EmissionFactorStore
from ghg_engine.gwp import GWPTable
from ghg_engine.models import ActivityMeasurement, EmissionFactor, Standard
from ghg_engine.provenance import ProvenanceTracker


# ==================== CONFIG ====================

@pytest.fixture(autouse=True)
def engine_config():
    """Install a known configuration for every test and reset afterwards."""
    config = GHGEngineConfig(enable_metrics=False)
    set_config(config)
    yield config
    reset_config()


# ==================== REFERENCE DATA ====================

@pytest.fixture(scope="session")
def factor_store():
    """Store built from the packaged factor file."""
    return EmissionFactorStore.default()


@pytest.fixture
def ar5_table():
    return GWPTable.ar5()


@pytest.fixture
def iso_table():
    return GWPTable.iso_14064()


@pytest.fixture
def two_gas_factor():
    """CO2 2.0 and CH4 0.01 kg per kg of fuel."""
    return EmissionFactor(
        id="TEST-FUEL-KG",
        name="Test fuel",
        standard=Standard.DEFRA,
        year=2024,
        gas_type="CO2",
        unit="kg",
        per_gas_factors={"CO2": Decimal("2.0"), "CH4": Decimal("0.01")},
    )


@pytest.fixture
def coal_factor(factor_store):
    return factor_store.require("IPCC-2006-1A1-COAL-T1")


@pytest.fixture
def activity_100kg():
    return ActivityMeasurement(quantity=Decimal("100"), unit="kg", activity_name="Test fuel")


@pytest.fixture
def tracker():
    return ProvenanceTracker()


# ==================== ORACLE ====================

def oracle_reply(**overrides: Any) -> str:
    """Build an oracle JSON reply, wrapped in prose like a real model."""
    payload: Dict[str, Any] = {
        "chosenFactorIdentifier": "DEFRA-2024-FUEL-NG-KWH",
        "chosenFactorName": "Natural gas",
        "gasType": "CO2",
        "emissionValue": 18.253,
        "co2Equivalent": 18.28783,
        "unit": "kWh",
        "calculationFormula": "100 x 0.18290 = 18.29",
        "explanation": "Natural gas burned in a boiler",
        "reasoning": "Unit and fuel match",
    }
    payload.update(overrides)
    return "Here is the selection:\n```json\n" + json.dumps(payload) + "\n```"


class FakeOracleClient:
    """OracleClient test double.

    ``reply`` may be a string or a callable receiving the prompt.
    """

    def __init__(
        self,
        reply: Union[str, Callable[[str], str], None] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.prompts: List[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if callable(self.reply):
            return self.reply(prompt)
        return self.reply

    @property
    def calls(self) -> int:
        return len(self.prompts)


@pytest.fixture
def fake_oracle():
    """Factory for FakeOracleClient instances."""
    return FakeOracleClient


@pytest.fixture
def make_reply():
    """Factory for oracle JSON replies."""
    return oracle_reply
