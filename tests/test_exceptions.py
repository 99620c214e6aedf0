"""Tests for the GHG engine exception hierarchy.

Covers error codes, rich context, serialization and the retry helper.
"""

import json

import pytest

from ghg_engine.exceptions import (
    CalculationError,
    FactorNotFound,
    GHGEngineError,
    GraphDefinitionError,
    OracleEmptyResponse,
    OracleError,
    OracleFactorNotFound,
    OracleParseError,
    OracleTimeout,
    UnknownGasType,
    ValidationError,
    format_exception_chain,
    is_retryable,
)


class TestGHGEngineError:
    """Tests for the base exception."""

    def test_basic_exception(self):
        exc = GHGEngineError("Something went wrong")

        assert exc.message == "Something went wrong"
        assert exc.error_code.startswith("GHG_")
        assert exc.context == {}
        assert exc.retryable is False

    def test_explicit_error_code(self):
        exc = GHGEngineError("boom", error_code="GHG_TEST_001", context={"k": 1})

        assert exc.error_code == "GHG_TEST_001"
        assert str(exc) == "[GHG_TEST_001] - boom"
        assert "GHGEngineError" in repr(exc)

    def test_to_dict_and_json(self):
        exc = ValidationError("Unit is required", invalid_fields={"unit": "missing"})

        data = exc.to_dict()
        assert data["error_type"] == "ValidationError"
        assert data["error_code"] == "GHG_CALC_VALIDATION_ERROR"
        assert data["context"]["invalid_fields"] == {"unit": "missing"}
        assert json.loads(exc.to_json())["message"] == "Unit is required"


class TestCalculationErrors:

    def test_hierarchy(self):
        assert issubclass(ValidationError, CalculationError)
        assert issubclass(FactorNotFound, CalculationError)
        assert issubclass(UnknownGasType, CalculationError)
        assert issubclass(CalculationError, GHGEngineError)

    def test_factor_not_found_context(self):
        exc = FactorNotFound("none", standard="DEFRA", year=2024, unit="kWh")

        assert exc.context == {"standard": "DEFRA", "year": 2024, "unit": "kWh"}

    def test_unknown_gas_type(self):
        exc = UnknownGasType("XYZ", known_gases=["CO2", "CH4"], assessment_report="AR5")

        assert exc.gas_type == "XYZ"
        assert "XYZ" in exc.message
        assert exc.context["known_gases"] == ["CH4", "CO2"]


class TestOracleErrors:

    def test_only_timeout_is_retryable(self):
        assert is_retryable(OracleTimeout("slow", timeout_seconds=5.0))
        assert not is_retryable(OracleParseError("bad"))
        assert not is_retryable(OracleEmptyResponse("empty"))
        assert not is_retryable(OracleFactorNotFound("gone"))
        assert not is_retryable(ValueError("plain"))

    def test_timeout_context(self):
        exc = OracleTimeout("slow", timeout_seconds=2.5)

        assert exc.context["timeout_seconds"] == 2.5
        assert exc.error_code == "GHG_ORACLE_ORACLE_TIMEOUT"
        assert isinstance(exc, OracleError)

    def test_parse_error_truncates_reply(self):
        exc = OracleParseError("bad", raw_reply="x" * 1000)

        assert len(exc.context["raw_reply"]) == 500

    def test_factor_not_found_context(self):
        exc = OracleFactorNotFound("gone", identifier="ID-1", name="Diesel")

        assert exc.context == {"identifier": "ID-1", "name": "Diesel"}


class TestGraphDefinitionError:

    def test_cycles_and_missing(self):
        exc = GraphDefinitionError("bad graph", cycles=[["a", "b", "a"]], missing=["c"])

        assert exc.context["cycles"] == [["a", "b", "a"]]
        assert exc.context["missing"] == ["c"]
        assert exc.error_code.startswith("GHG_GRAPH_")


class TestFormatExceptionChain:

    def test_chain_includes_cause(self):
        try:
            try:
                raise KeyError("factor")
            except KeyError as inner:
                raise FactorNotFound("lookup failed", factor_id="X") from inner
        except FactorNotFound as exc:
            text = format_exception_chain(exc)

        assert "lookup failed" in text
        assert "KeyError" in text

    def test_raise_and_catch_by_base(self):
        with pytest.raises(CalculationError):
            raise ValidationError("Quantity must be greater than zero")
