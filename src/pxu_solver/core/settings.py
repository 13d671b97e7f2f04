"""
Solver settings.

A frozen bundle of the numerical knobs used by contour generation and
continuation. Defaults come from constants.json; override single fields
with dataclasses.replace(settings, max_continuation_steps=100).
"""

from dataclasses import dataclass

from pxu_solver.core.sheets import Component
from pxu_solver.core.constants import (
    NEWTON_TOL,
    NEWTON_MAXITER,
    RESIDUAL_TOL,
    MAX_CONTINUATION_STEPS,
    MAX_STEP_P,
    MAX_STEP_X,
    MAX_STEP_U,
    MIN_STEP,
    STEP_SAFETY,
    MAX_P_JUMP_RE,
    MAX_P_JUMP_IM,
    INTEGER_P_TOL,
    BRANCH_POINT_TOL,
    COINCIDENCE_TOL,
    MAX_SUBDIVISIONS,
    X_INFINITY,
    U_INFINITY,
    CURVE_SAMPLES,
    IMAGE_SAMPLES,
    P_RANGE_MIN,
    P_RANGE_MAX,
    LOG_BRANCH_MIN,
    LOG_BRANCH_MAX,
    E_CUT_IM_MAX,
    E_CUT_MAX_POINTS,
    GRID_MASS_MAX,
    GRID_U_MAX,
    CANONICAL_U_OFFSET,
    H_STEP,
    LOW_H_THRESHOLD,
    LONG_CUTS,
)


@dataclass(frozen=True)
class SolverSettings:
    """
    Numerical settings shared by the contour generator and the solvers.

    Attributes:
        newton_tol: Step tolerance of each Newton solve.
        newton_maxiter: Iteration cap of each Newton solve.
        residual_tol: Largest accepted residual, relative to the target.
        max_continuation_steps: Step budget of one continuation.
        max_step_p, max_step_x, max_step_u: Largest step per plane.
        min_step: Smallest step before a continuation gives up.
        step_safety: Fraction of the distance to the nearest cut used
            as step length.
        max_p_jump_re, max_p_jump_im: Largest accepted change of p per step.
        integer_p_tol: Closest approach of p to an integer.
        branch_point_tol: Closest approach of E to zero.
        coincidence_tol: Label crossings closer than this along a step
            are coincident.
        max_subdivisions: Halvings tried to separate coincident crossings.
        x_infinity, u_infinity: Truncation of unbounded curves.
        curve_samples: Samples of the scallion / kidney curves.
        image_samples: Samples of the cut images.
        p_range_min, p_range_max: Momentum strips covered by the E cuts.
        log_branch_min, log_branch_max: Log branches covered by u-plane cuts.
        e_cut_im_max: |Im p| where E cut tracing stops.
        e_cut_max_points: Cap on the points of one traced E cut.
        grid_mass_max, grid_u_max: Extent of the grid lines.
        canonical_u_offset: Re u of canonical states, measured from us.
        h_step: Largest coupling increment when continuing in h.
        low_h_threshold: Coupling below which u-plane drags are flagged.
        long_cuts: Show the long u-cut layout instead of the short one.
    """

    newton_tol: float = NEWTON_TOL
    newton_maxiter: int = NEWTON_MAXITER
    residual_tol: float = RESIDUAL_TOL
    max_continuation_steps: int = MAX_CONTINUATION_STEPS
    max_step_p: float = MAX_STEP_P
    max_step_x: float = MAX_STEP_X
    max_step_u: float = MAX_STEP_U
    min_step: float = MIN_STEP
    step_safety: float = STEP_SAFETY
    max_p_jump_re: float = MAX_P_JUMP_RE
    max_p_jump_im: float = MAX_P_JUMP_IM
    integer_p_tol: float = INTEGER_P_TOL
    branch_point_tol: float = BRANCH_POINT_TOL
    coincidence_tol: float = COINCIDENCE_TOL
    max_subdivisions: int = MAX_SUBDIVISIONS
    x_infinity: float = X_INFINITY
    u_infinity: float = U_INFINITY
    curve_samples: int = CURVE_SAMPLES
    image_samples: int = IMAGE_SAMPLES
    p_range_min: int = P_RANGE_MIN
    p_range_max: int = P_RANGE_MAX
    log_branch_min: int = LOG_BRANCH_MIN
    log_branch_max: int = LOG_BRANCH_MAX
    e_cut_im_max: float = E_CUT_IM_MAX
    e_cut_max_points: int = E_CUT_MAX_POINTS
    grid_mass_max: int = GRID_MASS_MAX
    grid_u_max: int = GRID_U_MAX
    canonical_u_offset: float = CANONICAL_U_OFFSET
    h_step: float = H_STEP
    low_h_threshold: float = LOW_H_THRESHOLD
    long_cuts: bool = LONG_CUTS

    def __post_init__(self):
        self._validate()

    def _validate(self):
        """Validate setting values."""
        if self.min_step <= 0:
            raise ValueError(f"min_step must be positive, got {self.min_step}")
        for name in ("max_step_p", "max_step_x", "max_step_u"):
            value = getattr(self, name)
            if value < self.min_step:
                raise ValueError(f"{name} ({value}) must be >= min_step ({self.min_step})")
        if not 0 < self.step_safety <= 1:
            raise ValueError(f"step_safety must lie in (0, 1], got {self.step_safety}")
        if self.max_continuation_steps < 1:
            raise ValueError(
                f"max_continuation_steps must be positive, got {self.max_continuation_steps}"
            )
        if self.curve_samples < 8 or self.image_samples < 8:
            raise ValueError("curve_samples and image_samples must be at least 8")
        if self.p_range_min > self.p_range_max:
            raise ValueError("p_range_min must not exceed p_range_max")
        if self.log_branch_min > self.log_branch_max:
            raise ValueError("log_branch_min must not exceed log_branch_max")

    def max_step(self, plane) -> float:
        """Largest continuation step in the given plane."""
        if plane is Component.P:
            return self.max_step_p
        if plane is Component.U:
            return self.max_step_u
        return self.max_step_x
