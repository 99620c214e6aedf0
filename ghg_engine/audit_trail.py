# -*- coding: utf-8 -*-
"""
Calculation Step Audit Trail

Records every arithmetic step of a calculation (lookup, multiply,
convert, sum) with its inputs and output so an auditor can replay the
result by hand.

Steps carry no timestamp: they end up inside result objects, and a result
must be identical when the same request is calculated twice.

Example:
    >>> from decimal import Decimal
    >>> from ghg_engine.audit_trail import StepRecorder
    >>> rec = StepRecorder()
    >>> rec.add("Activity x factor (CO2)", "multiply",
    ...         {"quantity": Decimal("100"), "factor": Decimal("2.0")},
    ...         Decimal("200.0"))
    >>> rec.to_list()[0]["output"]
    '200.0'

Author: GreenLang Platform Team
Date: March 2026
Status: Production Ready
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class CalculationStep:
    """
    Individual step in a calculation audit trail.

    Attributes:
        step_number: Sequential step number (1-based)
        description: Human-readable step description
        operation: Operation type (lookup, multiply, convert, sum, ...)
        inputs: Input values for this step
        output: Output value from this step
    """
    step_number: int
    description: str
    operation: str
    inputs: Dict[str, Any]
    output: Any

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (numbers as exact strings)"""
        return {
            "step_number": self.step_number,
            "description": self.description,
            "operation": self.operation,
            "inputs": {k: _as_text(v) for k, v in self.inputs.items()},
            "output": _as_text(self.output),
        }


def _as_text(value: Any) -> Any:
    if value is None or isinstance(value, (bool, str)):
        return value
    return str(value)


@dataclass
class StepRecorder:
    """Collects CalculationSteps in order for one calculation."""

    steps: List[CalculationStep] = field(default_factory=list)

    def add(
        self,
        description: str,
        operation: str,
        inputs: Dict[str, Any],
        output: Any,
    ) -> Any:
        """Append a step and return its output for inline use."""
        self.steps.append(
            CalculationStep(
                step_number=len(self.steps) + 1,
                description=description,
                operation=operation,
                inputs=dict(inputs),
                output=output,
            )
        )
        return output

    def to_list(self) -> List[Dict[str, Any]]:
        return [step.to_dict() for step in self.steps]

    def to_markdown(self) -> str:
        """Render the steps as a markdown table for audit reports."""
        md = "| # | Step | Operation | Output |\n"
        md += "|---|------|-----------|--------|\n"
        for step in self.steps:
            md += (
                f"| {step.step_number} | {step.description} | "
                f"{step.operation} | {_as_text(step.output)} |\n"
            )
        return md

    def __len__(self) -> int:
        return len(self.steps)


__all__ = ["CalculationStep", "StepRecorder"]
