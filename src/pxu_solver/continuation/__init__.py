"""
Analytic continuation of points along paths in one plane.
"""

from pxu_solver.continuation.path import ContinuationPath
from pxu_solver.continuation.solver import ContinuationSolver

__all__ = [
    "ContinuationPath",
    "ContinuationSolver",
]
