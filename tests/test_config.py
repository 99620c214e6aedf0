"""Tests for GHGEngineConfig and the singleton accessors."""

import logging

import pytest

from ghg_engine.config import (
    DEFAULT_FOSSIL_BASELINE,
    GHGEngineConfig,
    configure_logging,
    get_config,
    reset_config,
    set_config,
)


class TestDefaults:

    def test_default_values(self):
        cfg = GHGEngineConfig()

        assert cfg.gwp_source == "AR5"
        assert cfg.discrepancy_tolerance == 0.01
        assert cfg.default_fossil_baseline == DEFAULT_FOSSIL_BASELINE == 83.8
        assert cfg.ipcc_number_format == "european"
        assert cfg.defra_number_format == "european"
        assert cfg.iso14064_number_format == "us"
        assert cfg.ghg_protocol_number_format == "us"
        assert cfg.iscc_number_format == "spreadsheet"
        assert cfg.luc_literal_precedence is False

    def test_values_are_normalised(self):
        cfg = GHGEngineConfig(log_level="debug", gwp_source="iso_14064", ipcc_number_format="US")

        assert cfg.log_level == "DEBUG"
        assert cfg.gwp_source == "ISO_14064"
        assert cfg.ipcc_number_format == "us"

    def test_ghg_protocol_gwp_source(self):
        cfg = GHGEngineConfig(gwp_source="ghg_protocol", ghg_protocol_number_format="EUROPEAN")

        assert cfg.gwp_source == "GHG_PROTOCOL"
        assert cfg.ghg_protocol_number_format == "european"

    def test_to_dict_round_trips_fields(self):
        data = GHGEngineConfig(max_workers=8).to_dict()

        assert data["max_workers"] == 8
        assert GHGEngineConfig(**data).to_dict() == data


class TestValidation:

    @pytest.mark.parametrize("kwargs", [
        {"log_level": "LOUD"},
        {"gwp_source": "AR6"},
        {"discrepancy_tolerance": -0.1},
        {"oracle_timeout_seconds": 0},
        {"oracle_max_candidates": 0},
        {"iscc_number_format": "swiss"},
        {"ghg_protocol_number_format": "metric"},
        {"default_fossil_baseline": 0},
        {"max_workers": 0},
        {"genesis_hash": ""},
    ])
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError, match="validation failed"):
            GHGEngineConfig(**kwargs)

    def test_all_errors_reported_together(self):
        with pytest.raises(ValueError) as exc_info:
            GHGEngineConfig(max_workers=0, oracle_max_tokens=0)

        assert "max_workers" in str(exc_info.value)
        assert "oracle_max_tokens" in str(exc_info.value)


class TestFromEnv:

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("GHG_ENGINE_ORACLE_TIMEOUT_SECONDS", "5")
        monkeypatch.setenv("GHG_ENGINE_LUC_LITERAL_PRECEDENCE", "yes")
        monkeypatch.setenv("GHG_ENGINE_MAX_WORKERS", "2")

        cfg = GHGEngineConfig.from_env()

        assert cfg.oracle_timeout_seconds == 5.0
        assert cfg.luc_literal_precedence is True
        assert cfg.max_workers == 2

    def test_malformed_number_falls_back(self, monkeypatch):
        monkeypatch.setenv("GHG_ENGINE_MAX_WORKERS", "many")

        assert GHGEngineConfig.from_env().max_workers == 4


class TestSingleton:

    def test_set_and_get(self):
        custom = GHGEngineConfig(discrepancy_tolerance=0.5, enable_metrics=False)
        set_config(custom)

        assert get_config() is custom

    def test_reset_reloads(self, monkeypatch):
        monkeypatch.setenv("GHG_ENGINE_GWP_SOURCE", "ISO_14064")
        reset_config()

        assert get_config().gwp_source == "ISO_14064"
        assert get_config() is get_config()


class TestConfigureLogging:

    def test_level_applied_to_package_logger(self):
        logger = logging.getLogger("ghg_engine")
        previous = logger.level
        try:
            configure_logging(GHGEngineConfig(log_level="debug", enable_metrics=False))

            assert logger.level == logging.DEBUG
        finally:
            logger.setLevel(previous)
