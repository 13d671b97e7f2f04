"""
Continuation solver.

Moves a point along a straight path in one plane while keeping track of
its sheet. The momentum p is the master variable: at every step the plane
relation is solved for p by Newton iteration started from the previous p,
with E and the logarithms of x± evaluated on the branches continued from
the previous step. Continuity of the starting point is what keeps the
solution on the right sheet.

Sheet labels change through crossings:

    E cut        the continued E changes sign relative to the principal root
    log cut      the continued log of x+ (x-) changes winding
    scallion,    the chord of the x+ (x-) step intersects the region
    kidney       boundaries of the x+ (x-) plane

The crossings of a step are ordered along the step and applied through
SheetData.cross. A step whose Newton solve fails or jumps is halved; two
region-boundary crossings at the same place cannot be ordered and are
reported as InconsistentSheetError.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from pxu_solver.core import kinematics
from pxu_solver.core.errors import ConvergenceError, InconsistentSheetError, PxuError
from pxu_solver.core.point import Point
from pxu_solver.core.roots import newton_root
from pxu_solver.core.settings import SolverSettings
from pxu_solver.core.sheets import Component, CutKind
from pxu_solver.geometry.contours import Contours
from pxu_solver.geometry.cut import Crossing
from pxu_solver.continuation.path import ContinuationPath


GUESS_OFFSETS = (0.0, -0.01, 0.01, -0.05, 0.05, -0.1, 0.1)


class _StepRejected(Exception):
    """No acceptable root for a step."""


class _CoincidentCrossings(Exception):
    """Two region-boundary crossings of a step cannot be ordered."""


@dataclass(frozen=True)
class _Candidate:
    """Values of a trial momentum on the branches continued from the previous step."""

    p: complex
    energy: complex
    xp: complex
    xm: complex
    log_xp: complex
    log_xm: complex
    u: complex

    def get(self, plane: Component) -> complex:
        if plane is Component.P:
            return self.p
        if plane is Component.XP:
            return self.xp
        if plane is Component.XM:
            return self.xm
        return self.u


def _chord_zero(a: float, b: float) -> float:
    """Where the linear interpolation between a and b vanishes, clipped to [0, 1]."""
    if a == b:
        return 0.5
    return float(np.clip(a / (a - b), 0.0, 1.0))


class ContinuationSolver:
    """
    Analytic continuation of points along straight paths.

    Usage:
        contours = Contours(CouplingConstants(h=2.0, k=5))
        solver = ContinuationSolver(contours)
        moved = solver.continue_to(point, Component.XP, 1.5 + 0.5j)
    """

    def __init__(self, contours: Contours, settings: Optional[SolverSettings] = None,
                 verbose: bool = False):
        """
        Initialize the solver.

        Args:
            contours: Cut geometry of the coupling constants to work with.
            settings: Numerical settings. Defaults to the contours' settings.
            verbose: Print every step.
        """
        self.contours = contours
        self.consts = contours.consts
        self.settings = settings or contours.settings
        self.verbose = verbose

    # -------------------------------------------------------------------------
    # Branch-continued evaluation
    # -------------------------------------------------------------------------

    def _candidate(self, p: complex, ref_energy: complex, ref_log_xp: complex,
                   ref_log_xm: complex, consts=None) -> _Candidate:
        consts = consts or self.consts
        with np.errstate(all="ignore"):
            energy = kinematics.continued_sqrt(complex(kinematics.en2(p, 1, consts)), ref_energy)
            x_val = complex(kinematics.x_from_energy(p, energy, 1, consts))
            xp = x_val * complex(np.exp(1j * np.pi * p))
            xm = x_val * complex(np.exp(-1j * np.pi * p))
            log_xp = kinematics.continued_log(xp, ref_log_xp)
            log_xm = kinematics.continued_log(xm, ref_log_xm)
            u = complex(kinematics.u_from_log(xp, log_xp, consts)) - 1j / consts.h
        return _Candidate(p, energy, xp, xm, log_xp, log_xm, u)

    def _derivative(self, candidate: _Candidate, plane: Component) -> complex:
        consts = self.consts
        p = candidate.p
        with np.errstate(all="ignore"):
            x_val = candidate.xp * complex(np.exp(-1j * np.pi * p))
            dx = complex(kinematics.dx_dp_from_energy(p, candidate.energy, 1, consts))
            if plane is Component.XM:
                return (dx - 1j * np.pi * x_val) * complex(np.exp(-1j * np.pi * p))
            dxp = (dx + 1j * np.pi * x_val) * complex(np.exp(1j * np.pi * p))
            if plane is Component.XP:
                return dxp
            return complex(kinematics.du_dx(candidate.xp, consts)) * dxp

    def _acceptable(self, candidate: _Candidate, point: Point, plane: Component,
                    target: complex) -> bool:
        settings = self.settings
        dp = candidate.p - point.p
        if abs(dp.real) > settings.max_p_jump_re or abs(dp.imag) > settings.max_p_jump_im:
            return False
        if abs(candidate.p - round(candidate.p.real)) < settings.integer_p_tol:
            return False
        if abs(candidate.energy) < settings.branch_point_tol:
            return False
        values = (candidate.xp, candidate.xm, candidate.u)
        if not all(np.isfinite(v.real) and np.isfinite(v.imag) for v in values):
            return False
        residual = abs(candidate.get(plane) - target)
        return residual <= settings.residual_tol * (1 + abs(target))

    def _solve(self, point: Point, plane: Component, target: complex) -> _Candidate:
        """Best acceptable candidate for the target value, or _StepRejected."""
        consts = self.consts
        ref = (point.energy_branch_value(consts), point.log_xp, point.log_xm)

        if plane is Component.P:
            candidate = self._candidate(complex(target), *ref)
            if not self._acceptable(candidate, point, plane, target):
                raise _StepRejected(f"p={target:.6f} is too close to a singular point")
            return candidate

        start = self._candidate(point.p, *ref)
        derivative = self._derivative(start, plane)
        guesses = [point.p + offset for offset in GUESS_OFFSETS]
        if derivative != 0 and np.isfinite(abs(derivative)):
            guesses.insert(0, point.p + (target - start.get(plane)) / derivative)

        def residual(p):
            return self._candidate(complex(p), *ref).get(plane) - target

        def slope(p):
            return self._derivative(self._candidate(complex(p), *ref), plane)

        candidates: List[_Candidate] = []
        for guess in guesses:
            root = newton_root(residual, slope, guess, tol=self.settings.newton_tol,
                               maxiter=self.settings.newton_maxiter)
            if root is None:
                continue
            candidate = self._candidate(root, *ref)
            if self._acceptable(candidate, point, plane, target):
                candidates.append(candidate)

        if not candidates:
            raise _StepRejected(f"no root for {plane.name}={target:.6f}")
        return min(
            candidates,
            key=lambda c: abs(c.xp - point.xp) ** 2 + abs(c.xm - point.xm) ** 2,
        )

    # -------------------------------------------------------------------------
    # Single step
    # -------------------------------------------------------------------------

    def _crossings(self, point: Point, candidate: _Candidate) -> List[Crossing]:
        """All cut crossings between a point and an accepted candidate, ordered along the step."""
        consts = self.consts
        crossings: List[Crossing] = []

        e_new = kinematics.e_branch_of(candidate.energy, candidate.p, 1, consts)
        if e_new != point.sheet.e_branch:
            crossings.append(self._e_crossing(point, candidate))

        ell_p = kinematics.log_branch_of(candidate.log_xp, candidate.xp)
        ell_m = -kinematics.log_branch_of(candidate.log_xm, candidate.xm)
        for role, old, new, start, end in (
            (Component.XP, point.sheet.log_branch_p, ell_p, point.xp, candidate.xp),
            (Component.XM, point.sheet.log_branch_m, ell_m, point.xm, candidate.xm),
        ):
            if new == old:
                continue
            if abs(new - old) != 1:
                raise _StepRejected("log cut crossed more than once in one step")
            t = _chord_zero(start.imag, end.imag)
            crossings.append(Crossing(
                kind=CutKind.LOG, role=role, t=t, value=start + t * (end - start),
                from_left=new > old,
            ))

        labels: List[Crossing] = []
        for plane, start, end in (
            (Component.XP, point.xp, candidate.xp),
            (Component.XM, point.xm, candidate.xm),
        ):
            for cut in self.contours.tracking_cuts(plane):
                labels.extend(cut.intersections(start, end))
        labels.sort(key=lambda c: c.t)
        for first, second in zip(labels, labels[1:]):
            if second.t - first.t < self.settings.coincidence_tol:
                raise _CoincidentCrossings(
                    f"{first.kind.value}/{first.role.name} and "
                    f"{second.kind.value}/{second.role.name} crossed together"
                )

        crossings.extend(labels)
        crossings.sort(key=lambda c: c.t)
        return crossings

    def _e_crossing(self, point: Point, candidate: _Candidate) -> Crossing:
        """The E cut crossed by the p step, located on the traced cuts when possible."""
        for cut in self.contours.cuts(Component.P):
            if cut.kind is CutKind.E and cut.role is None:
                found = cut.intersections(point.p, candidate.p)
                if found:
                    return found[0]
        consts = self.consts
        t = _chord_zero(complex(kinematics.en2(point.p, 1, consts)).imag,
                        complex(kinematics.en2(candidate.p, 1, consts)).imag)
        return Crossing(kind=CutKind.E, role=None, t=t,
                        value=point.p + t * (candidate.p - point.p), from_left=True)

    def step(self, point: Point, plane: Component, target: complex) -> Tuple[Point, List[Crossing]]:
        """
        One continuation step from a point to a nearby target value.

        Returns:
            The new point and the crossings applied to its sheet.

        Raises:
            _StepRejected: No acceptable root; the caller shrinks the step.
            _CoincidentCrossings: Region boundaries crossed at one place.
            InconsistentSheetError: A crossing has no counterpart in the
                crossing rule.
        """
        candidate = self._solve(point, plane, complex(target))
        crossings = self._crossings(point, candidate)

        sheet = point.sheet
        for crossing in crossings:
            sheet = sheet.cross(crossing.kind, crossing.role, crossing.from_left,
                                collapsed=self.consts.is_collapsed)
            if self.verbose:
                role = crossing.role.name if crossing.role is not None else "-"
                print(f"    crossed {crossing.kind.value}/{role} at t={crossing.t:.3f}: "
                      f"{sheet.describe()}")

        new_point = Point.on_sheet(candidate.p, sheet, self.consts)
        new_point.check_consistency(self.consts, self.contours.regions)
        return new_point, crossings

    # -------------------------------------------------------------------------
    # Paths
    # -------------------------------------------------------------------------

    def step_length(self, point: Point, plane: Component, z: complex) -> float:
        """Adaptive step: a fraction of the distance to the nearest visible cut."""
        settings = self.settings
        distance = self.contours.nearest_cut_distance(plane, z, point, settings.long_cuts)
        length = settings.step_safety * distance
        return float(np.clip(length, settings.min_step, settings.max_step(plane)))

    def _advance(self, point: Point, plane: Component, z: complex, z_next: complex,
                 path: Optional[ContinuationPath]) -> Tuple[Point, complex]:
        subdivisions = 0
        while True:
            try:
                new_point, crossings = self.step(point, plane, z_next)
            except _StepRejected as exc:
                if abs(z_next - z) / 2 < self.settings.min_step:
                    raise ConvergenceError(
                        f"continuation in {plane.name} stalled at {z:.6f}: {exc}"
                    ) from exc
                if self.verbose:
                    print(f"    step rejected ({exc}), halving")
            except _CoincidentCrossings as exc:
                subdivisions += 1
                if subdivisions > self.settings.max_subdivisions:
                    raise InconsistentSheetError(
                        f"cannot order cut crossings near {plane.name}={z:.6f}: {exc}"
                    ) from exc
            else:
                if path is not None:
                    path.record(new_point, crossings)
                return new_point, z_next
            z_next = z + (z_next - z) / 2

    def continue_to(self, point: Point, plane: Component, target: complex,
                    path: Optional[ContinuationPath] = None) -> Point:
        """
        Continue a point along the straight path to a target value.

        Args:
            point: Start point; never modified.
            plane: Plane the path lives in.
            target: Final value of the point's coordinate on that plane.
            path: Optional record that receives every step.

        Returns:
            The point at the target, on the sheet reached by the path.

        Raises:
            ConvergenceError: Root finding failed or the step budget ran out.
            InconsistentSheetError: The path crossed coincident or
                unsupported cuts.
        """
        target = complex(target)
        if not (np.isfinite(target.real) and np.isfinite(target.imag)):
            raise ConvergenceError(f"target must be finite, got {target}")
        current = point
        z = point.get(plane)
        steps = 0
        if self.verbose:
            print(f"Continuing in {plane.name} from {z:.6f} to {target:.6f}")

        while z != target:
            steps += 1
            if steps > self.settings.max_continuation_steps:
                raise ConvergenceError(
                    f"continuation in {plane.name} exceeded "
                    f"{self.settings.max_continuation_steps} steps"
                )
            remaining = target - z
            length = self.step_length(current, plane, z)
            if abs(remaining) <= length:
                z_next = target
            else:
                z_next = z + remaining / abs(remaining) * length
            current, z = self._advance(current, plane, z, z_next, path)
            if self.verbose:
                print(f"  step {steps}: {plane.name}={z:.6f} p={current.p:.6f} "
                      f"{current.sheet.describe()}")

        return current

    def trace(self, point: Point, plane: Component,
              waypoints: Sequence[complex]) -> ContinuationPath:
        """
        Continue a point through a sequence of waypoints, recording every step.

        Returns:
            The recorded path; its final point sits at the last waypoint.
        """
        path = ContinuationPath(plane=plane)
        path.record(point, [])
        current = point
        for waypoint in waypoints:
            current = self.continue_to(current, plane, waypoint, path)
        return path

    def continue_in_coupling(self, point: Point, consts_from, consts_to,
                             regions_to) -> Point:
        """
        Follow a point at fixed p while the coupling changes.

        E and the logarithms are continued from their values before the
        change; the region labels are re-derived for the new coupling.

        Raises:
            ConvergenceError: If E approaches a branch point or x± diverge.
        """
        ref_energy = point.energy_branch_value(consts_from)
        ref_log_xp, ref_log_xm = point.log_xp, point.log_xm
        candidate = self._candidate(point.p, ref_energy, ref_log_xp, ref_log_xm, consts_to)
        if abs(candidate.energy) < self.settings.branch_point_tol:
            raise ConvergenceError(f"E vanishes at p={point.p:.6f} for {consts_to}")
        e_branch = kinematics.e_branch_of(candidate.energy, candidate.p, 1, consts_to)
        ell_p = kinematics.log_branch_of(candidate.log_xp, candidate.xp)
        try:
            return Point.from_p(point.p, consts_to, e_branch=e_branch,
                                log_branch_p=ell_p, regions=regions_to)
        except PxuError as exc:
            raise ConvergenceError(f"cannot follow p={point.p:.6f} to {consts_to}") from exc
