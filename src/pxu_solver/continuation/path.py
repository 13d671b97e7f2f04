"""
Record of a continuation path.
"""

from dataclasses import dataclass, field
from typing import List

import numpy as np
from numpy.typing import NDArray

from pxu_solver.core.point import Point
from pxu_solver.core.sheets import Component
from pxu_solver.geometry.cut import Crossing


@dataclass
class ContinuationPath:
    """
    Every accepted step of a continuation.

    Attributes:
        plane: Plane the path was driven in.
        points: Start point followed by the point after each step.
        crossings: Cut crossings in the order they were applied, each
            paired with the index into `points` of the step's end point.
    """

    plane: Component
    points: List[Point] = field(default_factory=list)
    crossings: List[tuple] = field(default_factory=list)

    def record(self, point: Point, crossings: List[Crossing]) -> None:
        self.points.append(point)
        index = len(self.points) - 1
        self.crossings.extend((index, crossing) for crossing in crossings)

    @property
    def final(self) -> Point:
        return self.points[-1]

    @property
    def num_steps(self) -> int:
        return max(len(self.points) - 1, 0)

    def values(self, component: Component) -> NDArray[np.complex128]:
        """Coordinates of all points of the path on one plane."""
        return np.array([point.get(component) for point in self.points], dtype=complex)

    def sheets(self) -> list:
        return [point.sheet for point in self.points]

    def max_jump(self, component: Component) -> float:
        """Largest distance between consecutive points on one plane."""
        values = self.values(component)
        if len(values) < 2:
            return 0.0
        return float(np.max(np.abs(np.diff(values))))
