"""
Core module for the PXU solver.

Contains the numerical constants, coupling constants, sheet labels and
the plane relations between p, x+, x- and u.

Points (pxu_solver.core.point) and the engine (pxu_solver.core.engine)
build on the geometry and continuation packages and are imported from
their modules directly.
"""

from pxu_solver.core.constants import (
    NEWTON_TOL,
    RESIDUAL_TOL,
    MAX_CONTINUATION_STEPS,
    X_INFINITY,
    U_INFINITY,
    load_constants_from_json,
)
from pxu_solver.core.errors import (
    PxuError,
    DomainError,
    ConvergenceError,
    ContinuationError,
    InconsistentSheetError,
    PreconditionError,
)
from pxu_solver.core.parameters import CouplingConstants
from pxu_solver.core.sheets import Component, CutKind, SheetData, UBranch
from pxu_solver.core.settings import SolverSettings
from pxu_solver.core import kinematics

__all__ = [
    # Constants
    "NEWTON_TOL",
    "RESIDUAL_TOL",
    "MAX_CONTINUATION_STEPS",
    "X_INFINITY",
    "U_INFINITY",
    "load_constants_from_json",
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
    "kinematics",
]
