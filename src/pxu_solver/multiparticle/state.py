"""
Excitation states.

An ExcitationState is an ordered tuple of excitations together with the
coupling constants, the active index and the lock flag. States are frozen;
every command of the engine returns a new one.

A locked state is a bound state of M = len(excitations) constituents.
Consecutive constituents are chained, x-_j = x+_{j+1}, which makes the
sums of energies and momenta obey the dispersion relation of mass M:

    (Σ E_j)² = (M + k P)² + 4h² sin²(π P),    P = Σ p_j
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

import numpy as np

from pxu_solver.core import kinematics
from pxu_solver.core.errors import ConvergenceError
from pxu_solver.core.parameters import CouplingConstants
from pxu_solver.core.point import Point
from pxu_solver.core.roots import bracketed_root
from pxu_solver.core.sheets import Component
from pxu_solver.continuation.solver import ContinuationSolver


class ExcitationKind(Enum):
    """Role of an excitation in a state."""
    SINGLE = "single"
    CONSTITUENT = "constituent"


@dataclass(frozen=True)
class Excitation:
    """A point together with its role."""

    point: Point
    kind: ExcitationKind = ExcitationKind.SINGLE

    def moved(self, point: Point) -> "Excitation":
        return replace(self, point=point)


@dataclass(frozen=True)
class ExcitationState:
    """
    Ordered excitations sharing one set of coupling constants.

    Attributes:
        consts: Coupling constants; consts.m equals the number of excitations.
        excitations: The excitations in chain order.
        active: Index of the active excitation.
        locked: Whether the excitations form a chained bound state.
    """

    consts: CouplingConstants
    excitations: Tuple[Excitation, ...]
    active: int = 0
    locked: bool = True

    def __post_init__(self):
        object.__setattr__(self, "excitations", tuple(self.excitations))
        self._validate()

    def _validate(self):
        """Validate state invariants."""
        if not self.excitations:
            raise ValueError("a state needs at least one excitation")
        if self.consts.m != len(self.excitations):
            raise ValueError(
                f"bound state number m={self.consts.m} does not match "
                f"{len(self.excitations)} excitations"
            )
        if not 0 <= self.active < len(self.excitations):
            raise ValueError(f"active index {self.active} out of range")

    def __len__(self) -> int:
        return len(self.excitations)

    @property
    def points(self) -> Tuple[Point, ...]:
        return tuple(excitation.point for excitation in self.excitations)

    @property
    def active_point(self) -> Point:
        return self.excitations[self.active].point

    def momentum(self) -> complex:
        """Total momentum P = Σ p_j."""
        return complex(sum(point.p for point in self.points))

    def energy(self) -> complex:
        """Total energy Σ E_j, with E_j read back from x±."""
        return complex(sum(point.en(self.consts) for point in self.points))

    def bound_state_defect(self) -> float:
        """
        Violation of the bound-state dispersion relation.

        |(Σ E_j)² - (M + kP)² - 4h² sin²(πP)|, zero for an exactly
        chained state.
        """
        expected = complex(kinematics.bound_state_en2(self.momentum(), len(self), self.consts))
        return float(abs(self.energy() ** 2 - expected))

    def with_points(self, points, active: Optional[int] = None) -> "ExcitationState":
        """Same state with every excitation moved to the given points."""
        excitations = tuple(e.moved(pt) for e, pt in zip(self.excitations, points))
        return replace(self, excitations=excitations,
                       active=self.active if active is None else active)


# =============================================================================
# Canonical configuration
# =============================================================================

def canonical_momentum(consts: CouplingConstants, offset: float) -> float:
    """
    Real momentum p0 in (0, 1) of the physical point with u(p0) = us + offset.

    Raises:
        ConvergenceError: If no such momentum is bracketed.
    """
    target = consts.us + offset

    def residual(p):
        with np.errstate(all="ignore"):
            return float(np.real(kinematics.u(p, consts))) - target

    p0 = bracketed_root(residual, 1e-6, 1 - 1e-6)
    if p0 is None:
        raise ConvergenceError(f"no real momentum with u = {target:.6f} for {consts}")
    return p0


def canonical_excitations(consts: CouplingConstants, solver: ContinuationSolver,
                          num: Optional[int] = None) -> Tuple[Excitation, ...]:
    """
    Chained constituents of the canonical bound state.

    The first constituent is continued in the u plane from the real point
    p0 to u = u(p0) + i(M - 1)/h; each following constituent starts as a
    copy of its predecessor and is continued in the x+ plane to the
    predecessor's x-. This places the constituents at
    u_j = u(p0) + i(M + 1 - 2j)/h with x-_j = x+_{j+1}.

    Args:
        consts: Coupling constants of the contours the solver works with.
        solver: Continuation solver.
        num: Number of constituents (defaults to consts.m).
    """
    num = consts.m if num is None else num
    settings = solver.settings
    p0 = canonical_momentum(consts, settings.canonical_u_offset)
    start = Point.from_p(p0, consts, regions=solver.contours.regions)

    kind = ExcitationKind.SINGLE if num == 1 else ExcitationKind.CONSTITUENT
    first = start
    if num > 1:
        first = solver.continue_to(start, Component.U, start.u + 1j * (num - 1) / consts.h)
    points = [first]
    for _ in range(1, num):
        previous = points[-1]
        points.append(solver.continue_to(previous, Component.XP, previous.xm))
    return tuple(Excitation(point, kind) for point in points)


def canonical_single(consts: CouplingConstants, solver: ContinuationSolver) -> Excitation:
    """The canonical single excitation at u(p0) = us + canonical_u_offset."""
    p0 = canonical_momentum(consts, solver.settings.canonical_u_offset)
    return Excitation(Point.from_p(p0, consts, regions=solver.contours.regions))
