# -*- coding: utf-8 -*-
"""
ISCC Life-Cycle Pathways

FormulaGraph-based pathways evaluated in topological order:

- corn_ethanol: ISCC PLUS GHG 205 corn-to-ethanol spreadsheet
- ghg_audit: multi-batch plant verification sheet
- screening: default-factor first-pass estimate
"""

from ghg_engine.lca.corn_ethanol import (
    CornEthanolPathway,
    allocate_and_total,
    build_corn_ethanol_graph,
    corn_ethanol_graph,
    energy_allocation_factor,
)
from ghg_engine.lca.ghg_audit import GHGAuditPathway, build_ghg_audit_graph
from ghg_engine.lca.graph import FormulaGraph, GraphEvaluation, LCANode, safe_div
from ghg_engine.lca.screening import (
    ISCCScreeningCalculator,
    ScreeningCultivation,
    ScreeningInput,
    ScreeningProcessing,
    ScreeningProject,
    TransportLeg,
)

__all__ = [
    "FormulaGraph",
    "GraphEvaluation",
    "LCANode",
    "safe_div",
    "CornEthanolPathway",
    "allocate_and_total",
    "build_corn_ethanol_graph",
    "corn_ethanol_graph",
    "energy_allocation_factor",
    "GHGAuditPathway",
    "build_ghg_audit_graph",
    "ISCCScreeningCalculator",
    "ScreeningInput",
    "ScreeningProject",
    "ScreeningCultivation",
    "ScreeningProcessing",
    "TransportLeg",
]
