"""
Analytic curve families in the p, x± and u planes.

Scallion and kidney
-------------------
Along the real-momentum curves X+(q, m), q ∈ (0, 1), u(X+) - i m/h is real.
The scallion is the curve m = 0 together with its mirror image; it starts
at x = s on the real axis and runs off to Re x = -∞ with Im x -> ±k/h
(it is the unit circle at k = 0). The kidney is the closed curve m = -k
through 0 and -1/s. On the scallion u(x) lies on the u-plane cut running
to -∞, on the kidney on the cut running to +∞; the two curves split the x
plane into the OUTSIDE / BETWEEN / INSIDE regions that label the branches
of x(u).

E cuts
------
The p-plane cuts of E = sqrt(E²) are the curves where E² is real and
negative. They start at the zeros of E² and are traced by continuation in
τ along E²(p) = -τ.
"""

from typing import List, Optional, Tuple
import warnings

import numpy as np
from numpy.typing import NDArray

from pxu_solver.core import kinematics
from pxu_solver.core.parameters import CouplingConstants
from pxu_solver.core.roots import newton_root
from pxu_solver.core.settings import SolverSettings
from pxu_solver.core.sheets import UBranch


def sample_q(n: int) -> NDArray:
    """n points in the open interval (0, 1), clustered towards both ends."""
    t = np.linspace(0.0, 1.0, n + 2)[1:-1]
    return (1 - np.cos(np.pi * t)) / 2


def _truncate(values: NDArray, radius: float) -> NDArray:
    """Leading run of values with |value| <= radius."""
    outside = np.abs(values) > radius
    if np.any(outside):
        return values[:np.argmax(outside)]
    return values


def split_runs(values: NDArray, max_jump: Optional[float] = None) -> List[NDArray]:
    """
    Split a sampled curve at non-finite samples and at jumps.

    Returns:
        The pieces with at least two samples.
    """
    values = np.asarray(values, dtype=complex)
    finite = np.isfinite(values.real) & np.isfinite(values.imag)
    pieces = []
    current = []
    previous = None
    for value, ok in zip(values, finite):
        if not ok:
            if len(current) >= 2:
                pieces.append(np.array(current))
            current, previous = [], None
            continue
        if previous is not None and max_jump is not None:
            if abs(value - previous) > max(max_jump, 0.5 * abs(previous)):
                if len(current) >= 2:
                    pieces.append(np.array(current))
                current = []
        current.append(value)
        previous = value
    if len(current) >= 2:
        pieces.append(np.array(current))
    return pieces


# =============================================================================
# Scallion and kidney
# =============================================================================

def scallion_path(consts: CouplingConstants, settings: SolverSettings) -> NDArray:
    """
    Closed polygon of the scallion, counter-clockwise.

    For k > 0 the two arms are truncated at |x| = x_infinity and joined by
    a segment far to the left. That closing segment is not a cut: a path
    through it flips the region label although the region is the same on
    both sides. Crossing back restores the label, and SheetRegions.is_reliable
    excludes that far region from the consistency check.
    """
    upper = kinematics.real_momentum_xp(sample_q(settings.curve_samples), 0, consts)
    if consts.k == 0:
        upper = np.concatenate([[1.0 + 0j], upper, [-1.0 + 0j]])
        return np.concatenate([upper, np.conj(upper[-2:0:-1]), [upper[0]]])
    upper = np.concatenate([[consts.s + 0j], _truncate(upper, settings.x_infinity)])
    lower = np.conj(upper[::-1])
    return np.concatenate([lower, upper[1:], [lower[0]]])


def kidney_path(consts: CouplingConstants, settings: SolverSettings) -> Optional[NDArray]:
    """Closed polygon of the kidney, or None at k = 0."""
    if consts.k == 0:
        return None
    upper = kinematics.real_momentum_xp(sample_q(settings.curve_samples), -consts.k, consts)
    upper = np.concatenate([[0j], upper, [-1 / consts.s + 0j]])
    return np.concatenate([upper, np.conj(upper[-2:0:-1]), [upper[0]]])


def point_in_polygon(z: complex, polygon: NDArray) -> bool:
    """Even-odd ray casting towards Re = +∞."""
    a = polygon[:-1]
    b = polygon[1:]
    straddles = (a.imag > z.imag) != (b.imag > z.imag)
    with np.errstate(divide="ignore", invalid="ignore"):
        x_cross = a.real + (z.imag - a.imag) * (b.real - a.real) / (b.imag - a.imag)
    return bool(np.count_nonzero(straddles & (x_cross > z.real)) % 2)


class SheetRegions:
    """
    Region classifier for values of x+ and x-.

    The polygons are the same polylines the continuation solver intersects
    with, so the region of a point and the labels tracked through crossings
    always agree.
    """

    def __init__(self, consts: CouplingConstants, settings: Optional[SolverSettings] = None):
        self.consts = consts
        self.settings = settings or SolverSettings()
        self.scallion = scallion_path(consts, self.settings)
        self.kidney = kidney_path(consts, self.settings)

    def region(self, x: complex) -> UBranch:
        """OUTSIDE, BETWEEN or INSIDE for a value of x+ or x-."""
        x = complex(x)
        if self.kidney is not None and point_in_polygon(x, self.kidney):
            return UBranch.INSIDE
        if point_in_polygon(x, self.scallion):
            return UBranch.INSIDE if self.kidney is None else UBranch.BETWEEN
        return UBranch.OUTSIDE

    def is_reliable(self, x: complex) -> bool:
        """False far out where the truncated polygons no longer apply."""
        return abs(x) < 0.5 * self.settings.x_infinity


# =============================================================================
# Inverse of U(q, m)
# =============================================================================

def real_momentum_x_at(u_values: NDArray, m: float, consts: CouplingConstants,
                       settings: SolverSettings, sign: int = 1) -> NDArray:
    """
    Points of X+(q, m) (sign=+1) or X-(q, m) (sign=-1) where U(q, m) takes
    the given values.

    U is inverted by interpolation on a dense, monotone sample of the curve
    and the curve is then evaluated exactly at the interpolated q, so every
    returned point lies on the curve. Values outside the range of U give NaN.
    """
    u_values = np.asarray(u_values, dtype=float)
    q = sample_q(4 * settings.curve_samples)
    with np.errstate(all="ignore"):
        u_grid = kinematics.real_momentum_u(q, m, consts)
    ok = np.isfinite(u_grid)
    q, u_grid = q[ok], u_grid[ok]
    if len(q) < 2:
        return np.full(u_values.shape, np.nan + 0j)
    order = np.argsort(u_grid)
    q_at = np.interp(u_values, u_grid[order], q[order], left=np.nan, right=np.nan)
    with np.errstate(all="ignore"):
        if sign > 0:
            return kinematics.real_momentum_xp(q_at, m, consts)
        return kinematics.real_momentum_xm(q_at, m, consts)


# =============================================================================
# E cuts
# =============================================================================

def e_branch_points(consts: CouplingConstants, settings: SolverSettings) -> List[complex]:
    """
    Simple zeros of E²(p) (m = 1) in the configured momentum strips.

    At k = 0 they sit at n ± i asinh(1/2h)/π; these points seed the Newton
    refinement for k > 0. Double zeros (p = -1 at k = 1) are not branch
    points and are dropped.
    """
    offset = np.arcsinh(1 / (2 * consts.h)) / np.pi
    found: List[complex] = []
    for n in range(settings.p_range_min, settings.p_range_max + 2):
        for sign in (1, -1):
            root = newton_root(
                lambda p: kinematics.en2(p, 1, consts),
                lambda p: kinematics.den2_dp(p, 1, consts),
                n + sign * 1j * offset,
                tol=settings.newton_tol,
                maxiter=settings.newton_maxiter,
            )
            if root is None or abs(kinematics.en2(root, 1, consts)) > settings.residual_tol:
                continue
            if abs(kinematics.den2_dp(root, 1, consts)) < 1e-8:
                continue
            if not settings.p_range_min - 0.5 <= root.real <= settings.p_range_max + 1.5:
                continue
            if any(abs(root - other) < 1e-8 for other in found):
                continue
            found.append(root)
    found.sort(key=lambda z: (z.real, z.imag))
    return found


def trace_e_cut(branch_point: complex, consts: CouplingConstants,
                settings: SolverSettings) -> Tuple[NDArray, NDArray]:
    """
    Trace the cut E²(p) ∈ (-∞, 0] starting at a branch point.

    Returns:
        (p, tau) arrays with E²(p) = -tau, ending where |Im p| exceeds
        e_cut_im_max.
    """
    points = [complex(branch_point)]
    taus = [0.0]
    max_dp = 0.02
    slope = complex(kinematics.den2_dp(branch_point, 1, consts))
    tau = 1e-4 * abs(slope)
    p = branch_point - tau / slope
    while len(points) < settings.e_cut_max_points:
        root = newton_root(
            lambda z, t=tau: kinematics.en2(z, 1, consts) + t,
            lambda z: kinematics.den2_dp(z, 1, consts),
            p,
            tol=settings.newton_tol,
            maxiter=settings.newton_maxiter,
        )
        if root is None or abs(root - points[-1]) > 10 * max_dp:
            warnings.warn(f"E cut from {branch_point:.4f} truncated after {len(points)} points")
            break
        points.append(root)
        taus.append(tau)
        if abs(root.imag) > settings.e_cut_im_max:
            break
        slope = complex(kinematics.den2_dp(root, 1, consts))
        dtau = min(max_dp * abs(slope), tau)
        tau += dtau
        # Predictor along dp/dτ = -1/E²'(p)
        p = root - dtau / slope
    return np.array(points), np.array(taus)
