"""
Cut geometry of the p, x+, x- and u planes.
"""

from pxu_solver.geometry.cut import Crossing, Cut, CutStyle
from pxu_solver.geometry.curves import SheetRegions
from pxu_solver.geometry.contours import Contours

__all__ = [
    "Crossing",
    "Cut",
    "CutStyle",
    "SheetRegions",
    "Contours",
]
