"""
Cuts: polylines in one plane tagged with kind, role and style.

A cut is SOLID when the plane relation is discontinuous across it and
DASHED when it is the image of a cut that lives in another plane. The
visibility conditions decide which points see a dashed image; they are
predicates on the point and never change the geometry.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from pxu_solver.core.sheets import Component, CutKind, UBranch


class CutStyle(Enum):
    """SOLID for true branch cuts, DASHED for images."""

    SOLID = "solid"
    DASHED = "dashed"


def _cross(a, b):
    """z-component of the cross product of complex numbers seen as 2D vectors."""
    return a.real * b.imag - a.imag * b.real


# =============================================================================
# Visibility conditions
# =============================================================================

@dataclass(frozen=True)
class EBranchIs:
    e_branch: int

    def check(self, point, long_cuts: bool = False) -> bool:
        return point.sheet.e_branch == self.e_branch

    def conj(self) -> "EBranchIs":
        return self


@dataclass(frozen=True)
class LogBranchIs:
    role: Component
    value: int

    def check(self, point, long_cuts: bool = False) -> bool:
        if self.role is Component.XP:
            return point.sheet.log_branch_p == self.value
        return point.sheet.log_branch_m == self.value

    def conj(self) -> "LogBranchIs":
        return LogBranchIs(self.role.conj(), self.value)


@dataclass(frozen=True)
class ImSignIs:
    """Sign of Im x+ (role XP) or Im x- (role XM)."""

    role: Component
    sign: int

    def check(self, point, long_cuts: bool = False) -> bool:
        value = point.xp if self.role is Component.XP else point.xm
        return np.sign(value.imag) == self.sign

    def conj(self) -> "ImSignIs":
        return ImSignIs(self.role.conj(), -self.sign)


@dataclass(frozen=True)
class RegionIn:
    """Region label of x+ (role XP) or x- (role XM) is one of `regions`."""

    role: Component
    regions: FrozenSet[UBranch]

    def check(self, point, long_cuts: bool = False) -> bool:
        index = 0 if self.role is Component.XP else 1
        return point.sheet.u_branch[index] in self.regions

    def conj(self) -> "RegionIn":
        return RegionIn(self.role.conj(), self.regions)


@dataclass(frozen=True)
class LayoutIs:
    """
    Which of the two u-cut layouts shows the cut.

    The short layout draws the x+ and x- cuts of u as the scallion and
    kidney; the long layout draws them along the real x axis, which puts
    the u-plane cuts on [us, +∞) and (-∞, -us].
    """

    long_cuts: bool

    def check(self, point, long_cuts: bool = False) -> bool:
        return long_cuts == self.long_cuts

    def conj(self) -> "LayoutIs":
        return self


# =============================================================================
# Cut
# =============================================================================

@dataclass(frozen=True)
class Crossing:
    """
    A crossing of a cut along a straight step z1 -> z2.

    Attributes:
        kind: Kind of the crossed cut.
        role: Role of the crossed cut (None for E cuts).
        t: Position along the step, 0 at z1 and 1 at z2.
        value: Crossing point in the plane of the cut.
        from_left: True when z1 lies to the left of the cut direction.
        cut: The crossed cut, when known.
    """

    kind: CutKind
    role: Optional[Component]
    t: float
    value: complex
    from_left: bool
    cut: Optional["Cut"] = None


@dataclass(frozen=True, eq=False)
class Cut:
    """
    A cut in one plane.

    Attributes:
        plane: Plane the polyline lives in.
        kind: Dispersion (E), scallion, kidney, log or real axis.
        role: XP or XM for cuts that come from x+ or x-, None for E cuts.
        style: SOLID or DASHED.
        path: Ordered complex samples.
        branch_point: Finite end point of the cut, if any.
        visibility: Conditions a point must meet to see the cut.
    """

    plane: Component
    kind: CutKind
    role: Optional[Component]
    style: CutStyle
    path: NDArray[np.complex128]
    branch_point: Optional[complex] = None
    visibility: Tuple = field(default_factory=tuple)

    def __post_init__(self):
        path = np.array(self.path, dtype=complex)
        if path.ndim != 1 or len(path) < 2:
            raise ValueError("a cut needs at least two samples")
        path.setflags(write=False)
        object.__setattr__(self, "path", path)
        object.__setattr__(self, "visibility", tuple(self.visibility))

    def __repr__(self) -> str:
        role = self.role.name if self.role is not None else "-"
        return (f"Cut({self.plane.name}, {self.kind.name}, role={role}, "
                f"{self.style.name}, {len(self.path)} samples)")

    def conj(self) -> "Cut":
        """Mirror image: conjugated, reversed path with x+ and x- exchanged."""
        return Cut(
            plane=self.plane.conj(),
            kind=self.kind,
            role=self.role.conj() if self.role is not None else None,
            style=self.style,
            path=np.conj(self.path[::-1]),
            branch_point=None if self.branch_point is None else complex(np.conj(self.branch_point)),
            visibility=tuple(c.conj() for c in self.visibility),
        )

    def shift(self, dz: complex) -> "Cut":
        """The same cut translated by dz."""
        return Cut(
            plane=self.plane,
            kind=self.kind,
            role=self.role,
            style=self.style,
            path=self.path + dz,
            branch_point=None if self.branch_point is None else self.branch_point + dz,
            visibility=self.visibility,
        )

    def is_visible(self, point, long_cuts: bool = False) -> bool:
        """True when every visibility condition holds for the point in the given layout."""
        return all(condition.check(point, long_cuts) for condition in self.visibility)

    def intersections(self, z1: complex, z2: complex) -> List[Crossing]:
        """
        All crossings of the step z1 -> z2 with the polyline, ordered by t.

        A step that only touches the polyline at its start point (t = 0) is
        not counted, so a point sitting on a cut can leave it without
        crossing it again.
        """
        r = z2 - z1
        if r == 0:
            return []
        q = self.path[:-1]
        s = self.path[1:] - q
        denom = _cross(r, s)
        with np.errstate(divide="ignore", invalid="ignore"):
            t = _cross(q - z1, s) / denom
            v = _cross(q - z1, r) / denom
        hit = (denom != 0) & (t > 0) & (t <= 1) & (v >= 0) & (v < 1)
        # The last segment of an open polyline owns its end point
        if self.path[0] != self.path[-1]:
            hit[-1] = hit[-1] or bool(denom[-1] != 0 and 0 < t[-1] <= 1 and v[-1] == 1)
        crossings = []
        for i in np.flatnonzero(hit):
            crossings.append(Crossing(
                kind=self.kind,
                role=self.role,
                t=float(t[i]),
                value=complex(z1 + t[i] * r),
                from_left=bool(_cross(s[i], z1 - q[i]) > 0),
                cut=self,
            ))
        crossings.sort(key=lambda c: c.t)
        return crossings

    def distance(self, z: complex) -> float:
        """Euclidean distance from z to the polyline."""
        q = self.path[:-1]
        s = self.path[1:] - q
        length2 = np.abs(s) ** 2
        with np.errstate(divide="ignore", invalid="ignore"):
            t = np.where(length2 > 0, ((z - q) * np.conj(s)).real / length2, 0.0)
        t = np.clip(t, 0.0, 1.0)
        return float(np.min(np.abs(q + t * s - z)))
