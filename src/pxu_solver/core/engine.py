"""
PXU engine: the query and command surface of the package.

Queries (evaluate, cuts, contours, active_related_set) are pure. Commands
take an ExcitationState and return a new one; a failing command raises
before any new state exists, so the caller keeps its previous state.

Module-level functions with the same names delegate to a default engine:

    from pxu_solver.core import engine
    state = engine.canonical_state(CouplingConstants(h=2.0, k=5, m=3))
    state = engine.drag(state, 0, Component.XP, 1.5 + 0.8j)
"""

from dataclasses import replace
from typing import Dict, Optional, Set, Tuple
import math
import warnings

import numpy as np

from pxu_solver.core import kinematics
from pxu_solver.core.errors import DomainError, PreconditionError, PxuError
from pxu_solver.core.parameters import CouplingConstants
from pxu_solver.core.point import Point
from pxu_solver.core.roots import newton_root
from pxu_solver.core.settings import SolverSettings
from pxu_solver.core.sheets import Component, SheetData
from pxu_solver.geometry.contours import Contours
from pxu_solver.geometry.curves import SheetRegions
from pxu_solver.geometry.cut import Cut
from pxu_solver.continuation.solver import ContinuationSolver
from pxu_solver.multiparticle.state import (
    ExcitationState,
    canonical_excitations,
    canonical_single,
)


# Starting momenta for inverting x+, x- and u without a guess
_RE_STARTS = np.arange(-2.0, 2.0 + 1e-9, 0.25)
_IM_STARTS = (0.1, -0.1, 0.5, -0.5)


class PxuEngine:
    """
    Evaluation, cut geometry and state commands for the PXU planes.

    Contours are cached per (h, k); everything else is recomputed on
    every call.

    Usage:
        engine = PxuEngine()
        state = engine.canonical_state(CouplingConstants(h=1.0, k=0, m=2))
        state = engine.set_parameters(state, state.consts.with_changes(h=1.2))
        print(state.bound_state_defect())
    """

    def __init__(self, settings: Optional[SolverSettings] = None, verbose: bool = False):
        """
        Initialize the engine.

        Args:
            settings: Numerical settings shared by contours and solvers.
            verbose: Print progress of continuations and fallbacks.
        """
        self.settings = settings or SolverSettings()
        self.verbose = verbose
        self._contours: Dict[Tuple[float, int], Contours] = {}

    # =========================================================================
    # Queries
    # =========================================================================

    def contours(self, consts: CouplingConstants) -> Contours:
        """Cut geometry for the given constants (cached per (h, k))."""
        key = consts.geometry_key()
        if key not in self._contours:
            self._contours[key] = Contours(consts, self.settings, verbose=self.verbose)
        return self._contours[key]

    def cuts(self, consts: CouplingConstants, plane: Component) -> Tuple[Cut, ...]:
        """All cuts of one plane."""
        return self.contours(consts).cuts(plane)

    def evaluate(self, consts: CouplingConstants, plane: Component, value: complex,
                 sheet: Optional[SheetData] = None, guess: Optional[complex] = None) -> Point:
        """
        The point with the given coordinate on the given sheet.

        From p the coordinates follow in closed form. From x+, x- or u the
        relation is inverted by Newton iteration, started at the guess
        (a momentum) and then on a fixed grid of momenta; only roots whose
        full sheet equals the requested one are accepted.

        Raises:
            DomainError: For values outside the domain of the relation or
                without a preimage on the requested sheet.
        """
        sheet = sheet or SheetData()
        value = complex(value)
        if not (np.isfinite(value.real) and np.isfinite(value.imag)):
            raise DomainError(f"{plane.name} value must be finite, got {value}")
        regions = self.contours(consts).regions

        if plane is Component.P:
            point = Point.from_p(value, consts, e_branch=sheet.e_branch,
                                 log_branch_p=sheet.log_branch_p, regions=regions)
            if point.sheet != sheet:
                raise DomainError(
                    f"p={value:.6f} lies on {point.sheet.describe()}, not {sheet.describe()}"
                )
            return point

        if plane in (Component.XP, Component.XM) and value == 0:
            raise DomainError("x+ and x- cannot vanish")

        starts = [] if guess is None else [complex(guess)]
        starts.extend(complex(re, im) for im in _IM_STARTS for re in _RE_STARTS)

        def residual(p):
            with np.errstate(all="ignore"):
                return _plane_value(p, plane, sheet, consts) - value

        def slope(p):
            with np.errstate(all="ignore"):
                return _plane_derivative(p, plane, sheet, consts)

        tolerance = self.settings.residual_tol * (1 + abs(value))
        for start in starts:
            root = newton_root(residual, slope, start, tol=self.settings.newton_tol,
                               maxiter=self.settings.newton_maxiter)
            if root is None or abs(residual(root)) > tolerance:
                continue
            try:
                point = Point.from_p(root, consts, e_branch=sheet.e_branch,
                                     log_branch_p=sheet.log_branch_p, regions=regions)
            except DomainError:
                continue
            if point.sheet == sheet:
                return point

        raise DomainError(f"no preimage of {plane.name}={value:.6f} on {sheet.describe()}")

    def active_related_set(self, state: ExcitationState,
                           plane: Optional[Component] = None) -> Set[int]:
        """Indices of the excitations on the active excitation's sheet."""
        active = state.active_point
        return {
            index for index, point in enumerate(state.points)
            if active.same_sheet(point, plane)
        }

    # =========================================================================
    # Commands
    # =========================================================================

    def canonical_state(self, consts: CouplingConstants,
                        contours: Optional[Contours] = None) -> ExcitationState:
        """Locked canonical bound state of consts.m constituents."""
        solver = self._solver(consts, contours)
        excitations = canonical_excitations(consts, solver)
        return ExcitationState(consts, excitations, active=0, locked=True)

    def drag(self, state: ExcitationState, index: int, plane: Component, target: complex,
             contours: Optional[Contours] = None) -> ExcitationState:
        """
        Continue one excitation to a target value.

        When the state is locked the chain is re-imposed afterwards: the
        following excitations are continued in the x+ plane to their
        predecessor's x-, the preceding ones in the x- plane to their
        successor's x+. The dragged excitation becomes active.

        Raises:
            IndexError: For an index outside the state.
            ConvergenceError, InconsistentSheetError: From the continuation.
        """
        if not 0 <= index < len(state):
            raise IndexError(f"excitation index {index} out of range")
        consts = state.consts
        if plane is Component.U and consts.h < self.settings.low_h_threshold:
            warnings.warn(
                f"u-plane continuation is unreliable for h={consts.h} "
                f"< {self.settings.low_h_threshold}"
            )
        solver = self._solver(consts, contours)
        points = list(state.points)
        points[index] = solver.continue_to(points[index], plane, target)
        if state.locked:
            points = self._rechain(solver, points, index)
        return state.with_points(points, active=index)

    def set_parameters(self, state: ExcitationState, consts: CouplingConstants,
                       contours: Optional[Contours] = None) -> ExcitationState:
        """
        Move a state to new coupling constants.

        Changing k or the bound-state number snaps to the canonical state.
        Changing h continues every excitation at fixed momentum; if that
        fails the canonical state for the new constants is returned.

        Raises:
            ConvergenceError: If the canonical state for the new constants
                cannot be built either (no real momentum with the canonical
                rapidity, or its constituents cannot be chained).
            InconsistentSheetError: If chaining the canonical constituents
                crosses coincident cuts.
        """
        if consts == state.consts:
            return state
        if consts.k != state.consts.k or consts.m != state.consts.m:
            return self.canonical_state(consts, contours)

        try:
            return self._continue_in_h(state, consts, contours)
        except PxuError as exc:
            if self.verbose:
                print(f"  h continuation failed ({exc}); using canonical state")
            return self.canonical_state(consts, contours)

    def add_excitation(self, state: ExcitationState) -> ExcitationState:
        """
        Append the canonical single excitation and make it active.

        Raises:
            PreconditionError: If the state is locked.
        """
        if state.locked:
            raise PreconditionError("cannot add an excitation to a locked state")
        solver = self._solver(state.consts)
        excitation = canonical_single(state.consts, solver)
        return ExcitationState(
            state.consts.with_changes(m=len(state) + 1),
            state.excitations + (excitation,),
            active=len(state),
            locked=False,
        )

    def remove_excitation(self, state: ExcitationState, index: int) -> ExcitationState:
        """
        Remove one excitation.

        Removing the active excitation activates the previous one (the next
        one at index 0); otherwise the active excitation stays active.

        Raises:
            PreconditionError: If the state is locked or has one excitation.
            IndexError: For an index outside the state.
        """
        if state.locked:
            raise PreconditionError("cannot remove an excitation from a locked state")
        if len(state) == 1:
            raise PreconditionError("cannot remove the last excitation")
        if not 0 <= index < len(state):
            raise IndexError(f"excitation index {index} out of range")

        excitations = state.excitations[:index] + state.excitations[index + 1:]
        if index == state.active:
            active = max(index - 1, 0)
        elif index < state.active:
            active = state.active - 1
        else:
            active = state.active
        return ExcitationState(
            state.consts.with_changes(m=len(excitations)), excitations,
            active=active, locked=False,
        )

    def reorder(self, state: ExcitationState, direction: int) -> ExcitationState:
        """
        Swap the active excitation with its neighbour (direction -1 or +1).

        Raises:
            ValueError: For any other direction.
            PreconditionError: If the state is locked or there is no neighbour.
        """
        if direction not in (-1, 1):
            raise ValueError(f"direction must be -1 or +1, got {direction}")
        if state.locked:
            raise PreconditionError("cannot reorder a locked state")
        target = state.active + direction
        if not 0 <= target < len(state):
            raise PreconditionError(f"no neighbour in direction {direction}")
        excitations = list(state.excitations)
        excitations[state.active], excitations[target] = excitations[target], excitations[state.active]
        return replace(state, excitations=tuple(excitations), active=target)

    def toggle_lock(self, state: ExcitationState) -> ExcitationState:
        """Unlock keeping every point, or lock into the canonical bound state."""
        if state.locked:
            return replace(state, locked=False)
        return self.canonical_state(state.consts)

    def set_active(self, state: ExcitationState, index: int) -> ExcitationState:
        if not 0 <= index < len(state):
            raise IndexError(f"excitation index {index} out of range")
        return replace(state, active=index)

    def reset(self, state: ExcitationState) -> ExcitationState:
        """Canonical configuration for the state's constants."""
        return self.canonical_state(state.consts)

    # =========================================================================
    # Internals
    # =========================================================================

    def _solver(self, consts: CouplingConstants,
                contours: Optional[Contours] = None) -> ContinuationSolver:
        contours = contours or self.contours(consts)
        if not contours.matches(consts):
            raise ValueError(f"contours for {contours.consts} do not match {consts}")
        return ContinuationSolver(contours, self.settings, verbose=self.verbose)

    @staticmethod
    def _rechain(solver: ContinuationSolver, points, anchor: int):
        """Re-impose x-_j = x+_{j+1} outward from the anchor excitation."""
        points = list(points)
        for j in range(anchor + 1, len(points)):
            points[j] = solver.continue_to(points[j], Component.XP, points[j - 1].xm)
        for j in range(anchor - 1, -1, -1):
            points[j] = solver.continue_to(points[j], Component.XM, points[j + 1].xp)
        return points

    def _continue_in_h(self, state: ExcitationState, consts: CouplingConstants,
                       contours: Optional[Contours]) -> ExcitationState:
        solver = self._solver(consts, contours)
        h0, h1 = state.consts.h, consts.h
        num_steps = max(1, math.ceil(abs(h1 - h0) / self.settings.h_step))
        if self.verbose:
            print(f"Continuing {len(state)} excitations from h={h0} to h={h1} "
                  f"in {num_steps} steps")

        points = list(state.points)
        previous = state.consts
        for i in range(1, num_steps + 1):
            if i == num_steps:
                current, regions = consts, solver.contours.regions
            else:
                current = consts.with_changes(h=h0 + (h1 - h0) * i / num_steps)
                regions = SheetRegions(current, self.settings)
            points = [
                solver.continue_in_coupling(point, previous, current, regions)
                for point in points
            ]
            previous = current

        if state.locked:
            points = self._rechain(solver, points, state.active)
        moved = state.with_points(points)
        return replace(moved, consts=consts)


def _plane_value(p: complex, plane: Component, sheet: SheetData,
                 consts: CouplingConstants) -> complex:
    """Coordinate of momentum p on a plane, on fixed sheet labels."""
    if plane is Component.XP:
        return complex(kinematics.xp(p, 1, consts, sheet.e_branch))
    if plane is Component.XM:
        return complex(kinematics.xm(p, 1, consts, sheet.e_branch))
    return complex(kinematics.u(p, consts, sheet.e_branch, sheet.log_branch_p))


def _plane_derivative(p: complex, plane: Component, sheet: SheetData,
                      consts: CouplingConstants) -> complex:
    if plane is Component.XP:
        return complex(kinematics.dxp_dp(p, 1, consts, sheet.e_branch))
    if plane is Component.XM:
        return complex(kinematics.dxm_dp(p, 1, consts, sheet.e_branch))
    return complex(kinematics.du_dp(p, consts, sheet.e_branch))


# =============================================================================
# Module-level interface
# =============================================================================

_default_engine = PxuEngine()


def evaluate(consts: CouplingConstants, plane: Component, value: complex,
             sheet: Optional[SheetData] = None, guess: Optional[complex] = None) -> Point:
    return _default_engine.evaluate(consts, plane, value, sheet, guess)


def cuts(consts: CouplingConstants, plane: Component) -> Tuple[Cut, ...]:
    return _default_engine.cuts(consts, plane)


def contours(consts: CouplingConstants) -> Contours:
    return _default_engine.contours(consts)


def canonical_state(consts: CouplingConstants) -> ExcitationState:
    return _default_engine.canonical_state(consts)


def drag(state: ExcitationState, index: int, plane: Component, target: complex,
         contours: Optional[Contours] = None) -> ExcitationState:
    return _default_engine.drag(state, index, plane, target, contours)


def set_parameters(state: ExcitationState, consts: CouplingConstants,
                   contours: Optional[Contours] = None) -> ExcitationState:
    return _default_engine.set_parameters(state, consts, contours)


def add_excitation(state: ExcitationState) -> ExcitationState:
    return _default_engine.add_excitation(state)


def remove_excitation(state: ExcitationState, index: int) -> ExcitationState:
    return _default_engine.remove_excitation(state, index)


def reorder(state: ExcitationState, direction: int) -> ExcitationState:
    return _default_engine.reorder(state, direction)


def toggle_lock(state: ExcitationState) -> ExcitationState:
    return _default_engine.toggle_lock(state)


def set_active(state: ExcitationState, index: int) -> ExcitationState:
    return _default_engine.set_active(state, index)


def reset(state: ExcitationState) -> ExcitationState:
    return _default_engine.reset(state)


def active_related_set(state: ExcitationState, plane: Optional[Component] = None) -> Set[int]:
    return _default_engine.active_related_set(state, plane)
