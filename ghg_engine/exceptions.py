# -*- coding: utf-8 -*-
"""GHG Engine Exception Hierarchy.

Exceptions raised by the emission calculation and reconciliation engine.
Every exception carries rich context so the (excluded) API layer can
serialise it without inspecting the traceback.

Exception Hierarchy:
    GHGEngineError (base)
    ├── CalculationError
    │   ├── ValidationError
    │   ├── FactorNotFound
    │   └── UnknownGasType
    ├── OracleError
    │   ├── OracleEmptyResponse
    │   ├── OracleParseError
    │   ├── OracleFactorNotFound
    │   └── OracleTimeout (retryable)
    └── GraphDefinitionError

Example:
    >>> from ghg_engine.exceptions import ValidationError
    >>> raise ValidationError(
    ...     message="Quantity must be greater than zero",
    ...     context={"quantity": "-5"},
    ...     invalid_fields={"quantity": "must be > 0"},
    ... )

Author: GreenLang Platform Team
Date: March 2026
Status: Production Ready
"""

import json
import re
import traceback as tb
from datetime import datetime
from typing import Any, Dict, List, Optional


# ==============================================================================
# Base Exception
# ==============================================================================

class GHGEngineError(Exception):
    """Base exception for all engine errors.

    Attributes:
        message: Human-readable error message
        error_code: Unique error identifier (e.g. "GHG_CALC_VALIDATION_ERROR")
        context: Dictionary with error-specific details
        timestamp: When the error occurred
        traceback_str: Stack at the point of construction
    """

    ERROR_PREFIX = "GHG"
    retryable = False

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._generate_error_code()
        self.context = context or {}
        self.timestamp = datetime.now()
        self.traceback_str = "".join(tb.format_stack()[:-1])

    def _generate_error_code(self) -> str:
        """Derive the error code from the class name.

        Returns:
            Error code like "GHG_ORACLE_ORACLE_TIMEOUT"
        """
        error_type = re.sub(r"(?<!^)(?=[A-Z])", "_", self.__class__.__name__)
        return f"{self.ERROR_PREFIX}_{error_type.upper()}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "retryable": self.retryable,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_json(self) -> str:
        """Convert exception to JSON string."""
        return json.dumps(self.to_dict(), indent=2, default=str)

    def __str__(self) -> str:
        return f"[{self.error_code}] - {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}')"
        )


# ==============================================================================
# Calculation Exceptions
# ==============================================================================

class CalculationError(GHGEngineError):
    """Base exception for deterministic calculation errors.

    Raised immediately and surfaced to the caller, never defaulted.
    """
    ERROR_PREFIX = "GHG_CALC"


class ValidationError(CalculationError):
    """Input validation failed (negative/non-finite quantity, missing unit).

    Example:
        >>> raise ValidationError(
        ...     message="Unit is required",
        ...     invalid_fields={"unit": "missing"},
        ... )
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        invalid_fields: Optional[Dict[str, str]] = None,
    ):
        if invalid_fields:
            context = context or {}
            context["invalid_fields"] = invalid_fields
        super().__init__(message, context=context)
        self.invalid_fields = invalid_fields or {}


class FactorNotFound(CalculationError):
    """No emission factor matches the lookup."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        standard: Optional[str] = None,
        year: Optional[int] = None,
        category: Optional[str] = None,
        unit: Optional[str] = None,
        factor_id: Optional[str] = None,
    ):
        context = context or {}
        for key, value in (
            ("standard", standard),
            ("year", year),
            ("category", category),
            ("unit", unit),
            ("factor_id", factor_id),
        ):
            if value is not None:
                context[key] = value
        super().__init__(message, context=context)


class UnknownGasType(CalculationError):
    """GWP table has no entry for the requested gas."""

    def __init__(
        self,
        gas_type: str,
        known_gases: Optional[List[str]] = None,
        assessment_report: Optional[str] = None,
    ):
        context: Dict[str, Any] = {"gas_type": gas_type}
        if known_gases:
            context["known_gases"] = sorted(known_gases)
        if assessment_report:
            context["assessment_report"] = assessment_report
        super().__init__(f"No GWP value for gas type '{gas_type}'", context=context)
        self.gas_type = gas_type


# ==============================================================================
# Oracle Exceptions
# ==============================================================================

class OracleError(GHGEngineError):
    """Base exception for factor-selection oracle failures.

    Terminal for the affected activity, but never for sibling activities.
    """
    ERROR_PREFIX = "GHG_ORACLE"


class OracleEmptyResponse(OracleError):
    """Oracle returned no text."""
    pass


class OracleParseError(OracleError):
    """Oracle reply is not the required structured object.

    Not retryable: the problem is the shape of the reply, not transport.
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        raw_reply: Optional[str] = None,
    ):
        context = context or {}
        if raw_reply is not None:
            context["raw_reply"] = raw_reply[:500]
        super().__init__(message, context=context)


class OracleFactorNotFound(OracleError):
    """Chosen factor matched no candidate by identifier or by name."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        identifier: Optional[str] = None,
        name: Optional[str] = None,
    ):
        context = context or {}
        if identifier is not None:
            context["identifier"] = identifier
        if name is not None:
            context["name"] = name
        super().__init__(message, context=context)


class OracleTimeout(OracleError):
    """Oracle call exceeded the caller-supplied timeout. Retryable."""

    retryable = True

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        timeout_seconds: Optional[float] = None,
    ):
        context = context or {}
        if timeout_seconds is not None:
            context["timeout_seconds"] = timeout_seconds
        super().__init__(message, context=context)


# ==============================================================================
# Graph Exceptions
# ==============================================================================

class GraphDefinitionError(GHGEngineError):
    """LCA formula graph is malformed (cycle, missing dependency, duplicate).

    Example:
        >>> raise GraphDefinitionError(
        ...     message="Cycle detected in formula graph",
        ...     cycles=[["a", "b", "a"]],
        ... )
    """
    ERROR_PREFIX = "GHG_GRAPH"

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        cycles: Optional[List[List[str]]] = None,
        missing: Optional[List[str]] = None,
    ):
        context = context or {}
        if cycles:
            context["cycles"] = cycles
        if missing:
            context["missing"] = missing
        super().__init__(message, context=context)


# ==============================================================================
# Exception Utilities
# ==============================================================================

def is_retryable(exc: Exception) -> bool:
    """Check whether the caller may retry the failed operation with backoff.

    Args:
        exc: Exception to check

    Returns:
        True only for engine errors flagged retryable (OracleTimeout)
    """
    return isinstance(exc, GHGEngineError) and exc.retryable


def format_exception_chain(exc: Exception) -> str:
    """Format exception chain for logging/display."""
    lines = []
    current: Optional[BaseException] = exc

    while current is not None:
        if isinstance(current, GHGEngineError):
            lines.append(str(current))
            lines.append(f"  Context: {current.context}")
        else:
            lines.append(f"{type(current).__name__}: {current}")
        current = current.__cause__

    return "\n".join(lines)


__all__ = [
    "GHGEngineError",
    "CalculationError",
    "ValidationError",
    "FactorNotFound",
    "UnknownGasType",
    "OracleError",
    "OracleEmptyResponse",
    "OracleParseError",
    "OracleFactorNotFound",
    "OracleTimeout",
    "GraphDefinitionError",
    "is_retryable",
    "format_exception_chain",
]
