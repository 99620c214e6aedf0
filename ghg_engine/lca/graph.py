# -*- coding: utf-8 -*-
"""
LCA Formula Graph

Explicit DAG of named quantities. Each LCANode is a pure formula over
other nodes and declared leaf inputs. The graph is validated when it is
built (duplicate names, missing dependencies, cycles) and evaluated in
topological order computed with Kahn's algorithm. Ties are broken
alphabetically, so the order is deterministic.

Division inside a formula goes through ``safe_div``: a zero denominator
yields 0 and a DEBUG log entry, never an exception.

Example:
    >>> from decimal import Decimal
    >>> graph = FormulaGraph(
    ...     [LCANode("double", ("x",), lambda v: v["x"] * 2)],
    ...     inputs=("x",),
    ... )
    >>> graph.evaluate({"x": Decimal("3")})["double"]
    Decimal('6')

Author: GreenLang Platform Team
Date: March 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from ghg_engine.exceptions import GraphDefinitionError, ValidationError

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")

#: A node formula receives the values computed so far (read-only).
Formula = Callable[[Mapping[str, Decimal]], Decimal]


def safe_div(numerator: Decimal, denominator: Decimal, label: str = "") -> Decimal:
    """Divide, returning 0 when the denominator is 0."""
    if denominator == 0:
        logger.debug("Zero denominator in %s; value set to 0", label or "division")
        return _ZERO
    return numerator / denominator


@dataclass(frozen=True)
class LCANode:
    """A named quantity with a pure formula over its dependencies.

    Attributes:
        name: Unique node name.
        deps: Names of nodes or inputs the formula reads.
        formula: Callable computing the value from the values mapping.
        unit: Unit of the value, for documentation and reports.
        stage: Pathway stage the node belongs to.
    """

    name: str
    deps: Tuple[str, ...]
    formula: Formula = field(compare=False, repr=False)
    unit: str = ""
    stage: str = ""


@dataclass(frozen=True)
class GraphEvaluation:
    """Values of every input and node after one evaluation."""

    values: Mapping[str, Decimal]
    order: Tuple[str, ...]

    def __getitem__(self, name: str) -> Decimal:
        return self.values[name]

    def __contains__(self, name: object) -> bool:
        return name in self.values

    def get(self, name: str, default: Optional[Decimal] = None) -> Optional[Decimal]:
        return self.values.get(name, default)

    def node_values(self) -> Dict[str, Decimal]:
        """Computed node values only, in evaluation order."""
        return {name: self.values[name] for name in self.order}


class FormulaGraph:
    """Validated, topologically ordered formula graph.

    Raises:
        GraphDefinitionError: On duplicate names, dependencies that are
            neither nodes nor inputs, or cycles.
    """

    def __init__(self, nodes: Iterable[LCANode], inputs: Iterable[str] = ()) -> None:
        self._inputs = frozenset(inputs)
        by_name: Dict[str, LCANode] = {}
        duplicates: List[str] = []
        for node in nodes:
            if node.name in by_name or node.name in self._inputs:
                duplicates.append(node.name)
            by_name[node.name] = node
        if duplicates:
            raise GraphDefinitionError(
                message=f"Duplicate node names: {sorted(set(duplicates))}",
                context={"duplicates": sorted(set(duplicates))},
            )
        self._nodes = MappingProxyType(by_name)

        missing = sorted({
            dep
            for node in by_name.values()
            for dep in node.deps
            if dep not in by_name and dep not in self._inputs
        })
        if missing:
            raise GraphDefinitionError(
                message=f"Undefined dependencies: {missing}",
                missing=missing,
            )

        graph = {name: [d for d in node.deps if d in by_name] for name, node in by_name.items()}
        cycles = self._detect_cycles(graph)
        if cycles:
            raise GraphDefinitionError(
                message=f"Cycle detected in formula graph: {cycles[0]}",
                cycles=cycles,
            )
        self._order = tuple(self._topological_sort(graph))
        logger.debug(
            "FormulaGraph built: %d nodes, %d inputs", len(by_name), len(self._inputs),
        )

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> Mapping[str, LCANode]:
        return self._nodes

    @property
    def inputs(self) -> frozenset:
        return self._inputs

    @property
    def order(self) -> Tuple[str, ...]:
        """Node names in evaluation order."""
        return self._order

    def dependencies(self, name: str) -> Tuple[str, ...]:
        return self._nodes[name].deps

    def dependents(self, name: str) -> List[str]:
        """Nodes that read ``name`` directly, sorted."""
        return sorted(n for n, node in self._nodes.items() if name in node.deps)

    def stage(self, stage: str) -> List[str]:
        """Node names of one stage, in evaluation order."""
        return [n for n in self._order if self._nodes[n].stage == stage]

    def stages(self) -> List[str]:
        seen: List[str] = []
        for name in self._order:
            stage = self._nodes[name].stage
            if stage not in seen:
                seen.append(stage)
        return seen

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(self, inputs: Mapping[str, Decimal]) -> GraphEvaluation:
        """Evaluate every node in topological order.

        Inputs that are not supplied count as 0, like an empty
        spreadsheet cell.

        Raises:
            ValidationError: Unknown input names, or a formula that
                produced a non-finite value.
        """
        unknown = sorted(set(inputs) - self._inputs)
        if unknown:
            raise ValidationError(
                message=f"Unknown LCA inputs: {unknown}",
                invalid_fields={name: "not an input of this graph" for name in unknown},
            )

        values: Dict[str, Decimal] = {name: _ZERO for name in self._inputs}
        for name, raw in inputs.items():
            values[name] = raw if isinstance(raw, Decimal) else Decimal(str(raw))
        view = MappingProxyType(values)
        for name in self._order:
            value = self._nodes[name].formula(view)
            if not isinstance(value, Decimal):
                value = Decimal(str(value))
            if not value.is_finite():
                raise ValidationError(
                    message=f"Node '{name}' evaluated to a non-finite value",
                    invalid_fields={name: str(value)},
                )
            values[name] = value
        return GraphEvaluation(values=MappingProxyType(dict(values)), order=self._order)

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    @staticmethod
    def _detect_cycles(graph: Dict[str, List[str]]) -> List[List[str]]:
        """DFS cycle detection over node -> dependencies."""
        cycles: List[List[str]] = []
        visited: Set[str] = set()
        rec_stack: Set[str] = set()
        path: List[str] = []

        def dfs(node: str) -> None:
            visited.add(node)
            rec_stack.add(node)
            path.append(node)
            for neighbor in graph.get(node, []):
                if neighbor not in visited:
                    dfs(neighbor)
                elif neighbor in rec_stack:
                    start = path.index(neighbor)
                    cycles.append(path[start:] + [neighbor])
            path.pop()
            rec_stack.discard(node)

        for node in sorted(graph):
            if node not in visited:
                dfs(node)
        return cycles

    @staticmethod
    def _topological_sort(graph: Dict[str, List[str]]) -> List[str]:
        """Kahn's algorithm; ready nodes leave the queue alphabetically."""
        in_degree = {node: len(set(deps)) for node, deps in graph.items()}
        dependents: Dict[str, List[str]] = {node: [] for node in graph}
        for node, deps in graph.items():
            for dep in set(deps):
                dependents[dep].append(node)

        queue = sorted(n for n, degree in in_degree.items() if degree == 0)
        result: List[str] = []
        while queue:
            node = queue.pop(0)
            result.append(node)
            for other in dependents[node]:
                in_degree[other] -= 1
                if in_degree[other] == 0:
                    queue.append(other)
            queue.sort()
        return result

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __repr__(self) -> str:
        return f"FormulaGraph(nodes={len(self._nodes)}, inputs={len(self._inputs)})"


__all__ = [
    "Formula",
    "LCANode",
    "GraphEvaluation",
    "FormulaGraph",
    "safe_div",
]
