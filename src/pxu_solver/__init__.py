"""
PXU Solver - kinematics and analytic continuation on the p, x+, x-, u planes

Computes the four coupled coordinates of excitations of the
mixed-flux AdS3 string worldsheet theory, generates the branch cuts of
every plane for given coupling constants (h, k), and continues points
and bound states through those cuts while tracking the sheet they end
up on.

Main Interface:
    from pxu_solver import PxuEngine, CouplingConstants, Component

    engine = PxuEngine()
    state = engine.canonical_state(CouplingConstants(h=2.0, k=5, m=3))
    state = engine.drag(state, 0, Component.XP, 1.5 + 0.8j)
    print(state.bound_state_defect())

Components:
- CouplingConstants: coupling h, level k, bound-state number m
- Point / SheetData: one excitation on all planes and its sheet labels
- Contours: every cut of every plane for one (h, k)
- ContinuationSolver: moves points along paths, applying cut crossings
- ExcitationState: ordered excitations, locked into a bound state or not
- PxuEngine: queries (evaluate, cuts) and state commands
"""

from pxu_solver.core import (
    PxuError,
    DomainError,
    ConvergenceError,
    ContinuationError,
    InconsistentSheetError,
    PreconditionError,
    CouplingConstants,
    Component,
    CutKind,
    SheetData,
    UBranch,
    SolverSettings,
)
from pxu_solver.core.point import Point
from pxu_solver.geometry import Contours, Cut, CutStyle, Crossing
from pxu_solver.continuation import ContinuationPath, ContinuationSolver
from pxu_solver.multiparticle import Excitation, ExcitationKind, ExcitationState
from pxu_solver.core.engine import PxuEngine
from pxu_solver.reporting import summarize_state, format_state_table, format_cut_table

__version__ = "0.1.0"

__all__ = [
    # Errors
    "PxuError",
    "DomainError",
    "ConvergenceError",
    "ContinuationError",
    "InconsistentSheetError",
    "PreconditionError",
    # Parameters and sheets
    "CouplingConstants",
    "Component",
    "CutKind",
    "SheetData",
    "UBranch",
    "SolverSettings",
    "Point",
    # Geometry
    "Contours",
    "Cut",
    "CutStyle",
    "Crossing",
    # Continuation
    "ContinuationPath",
    "ContinuationSolver",
    # States
    "Excitation",
    "ExcitationKind",
    "ExcitationState",
    # Engine
    "PxuEngine",
    # Reporting
    "summarize_state",
    "format_state_table",
    "format_cut_table",
]
