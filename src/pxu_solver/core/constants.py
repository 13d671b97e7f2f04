"""
Numerical constants for the PXU solver.

Tolerances, step sizes and sampling densities used by the plane relations,
the contour generator and the continuation solver are loaded from
constants.json if available, otherwise default values are used.
"""

import json
from pathlib import Path
from typing import Dict, Any

# Shipped alongside this module as package data
_CONSTANTS_JSON_PATH = Path(__file__).parent / "constants.json"

# Fallbacks for any key the JSON file does not provide
_DEFAULT_CONSTANTS: Dict[str, Any] = {
    "newton_tol": 1e-12,  # absolute step tolerance of the Newton iteration
    "newton_maxiter": 50,
    "residual_tol": 1e-9,  # accepted |f(p)| relative to the target scale
    "max_continuation_steps": 4000,
    "max_step_p": 0.02,  # largest continuation step in the p plane
    "max_step_x": 0.1,  # largest continuation step in the x+ / x- planes
    "max_step_u": 0.1,  # largest continuation step in the u plane
    "min_step": 1e-4,
    "step_safety": 0.5,  # fraction of the distance to the nearest cut
    "max_p_jump_re": 0.125,
    "max_p_jump_im": 0.25,
    "integer_p_tol": 0.005,  # x+/x- diverge at integer p
    "branch_point_tol": 1e-6,  # |E| below this is treated as a branch point
    "coincidence_tol": 1e-9,
    "max_subdivisions": 8,
    "x_infinity": 100.0,  # truncation radius of curves in the x planes
    "u_infinity": 100.0,  # truncation of half-lines in the u plane
    "curve_samples": 401,
    "image_samples": 121,
    "p_range_min": -1,
    "p_range_max": 1,
    "log_branch_min": -1,
    "log_branch_max": 1,
    "e_cut_im_max": 2.5,
    "e_cut_max_points": 400,
    "grid_mass_max": 10,
    "grid_u_max": 10,
    "canonical_u_offset": 3.0,  # canonical states sit at Re u = us + offset
    "h_step": 0.05,  # largest coupling increment when continuing in h
    "low_h_threshold": 0.8,
    "long_cuts": False,  # short layout: scallion and kidney
}


def load_constants_from_json() -> Dict[str, Any]:
    """
    Read constants.json and overlay it on the built-in defaults.

    A missing or unreadable file leaves the defaults in place.
    """
    constants = dict(_DEFAULT_CONSTANTS)
    if not _CONSTANTS_JSON_PATH.exists():
        return constants
    try:
        with open(_CONSTANTS_JSON_PATH, "r", encoding="utf-8") as f:
            constants.update(json.load(f))
    except (json.JSONDecodeError, OSError) as exc:
        print(f"Warning: could not read {_CONSTANTS_JSON_PATH.name} ({exc}), using defaults.")
        return dict(_DEFAULT_CONSTANTS)
    return constants


def get_constants_json_path() -> Path:
    """Return the path to the constants.json file."""
    return _CONSTANTS_JSON_PATH


_LOADED_CONSTANTS = load_constants_from_json()

# =============================================================================
# Root finding
# =============================================================================
NEWTON_TOL: float = float(_LOADED_CONSTANTS["newton_tol"])
NEWTON_MAXITER: int = int(_LOADED_CONSTANTS["newton_maxiter"])
RESIDUAL_TOL: float = float(_LOADED_CONSTANTS["residual_tol"])

# =============================================================================
# Continuation
# =============================================================================
MAX_CONTINUATION_STEPS: int = int(_LOADED_CONSTANTS["max_continuation_steps"])
MAX_STEP_P: float = float(_LOADED_CONSTANTS["max_step_p"])
MAX_STEP_X: float = float(_LOADED_CONSTANTS["max_step_x"])
MAX_STEP_U: float = float(_LOADED_CONSTANTS["max_step_u"])
MIN_STEP: float = float(_LOADED_CONSTANTS["min_step"])
STEP_SAFETY: float = float(_LOADED_CONSTANTS["step_safety"])
MAX_P_JUMP_RE: float = float(_LOADED_CONSTANTS["max_p_jump_re"])
MAX_P_JUMP_IM: float = float(_LOADED_CONSTANTS["max_p_jump_im"])
INTEGER_P_TOL: float = float(_LOADED_CONSTANTS["integer_p_tol"])
BRANCH_POINT_TOL: float = float(_LOADED_CONSTANTS["branch_point_tol"])
COINCIDENCE_TOL: float = float(_LOADED_CONSTANTS["coincidence_tol"])
MAX_SUBDIVISIONS: int = int(_LOADED_CONSTANTS["max_subdivisions"])

# =============================================================================
# Contour generation
# =============================================================================
# Curves running off to infinity are cut at these radii. Points beyond
# them are never assigned a region from the truncated polygons.
X_INFINITY: float = float(_LOADED_CONSTANTS["x_infinity"])
U_INFINITY: float = float(_LOADED_CONSTANTS["u_infinity"])
CURVE_SAMPLES: int = int(_LOADED_CONSTANTS["curve_samples"])
IMAGE_SAMPLES: int = int(_LOADED_CONSTANTS["image_samples"])
P_RANGE_MIN: int = int(_LOADED_CONSTANTS["p_range_min"])
P_RANGE_MAX: int = int(_LOADED_CONSTANTS["p_range_max"])
LOG_BRANCH_MIN: int = int(_LOADED_CONSTANTS["log_branch_min"])
LOG_BRANCH_MAX: int = int(_LOADED_CONSTANTS["log_branch_max"])
E_CUT_IM_MAX: float = float(_LOADED_CONSTANTS["e_cut_im_max"])
E_CUT_MAX_POINTS: int = int(_LOADED_CONSTANTS["e_cut_max_points"])
GRID_MASS_MAX: int = int(_LOADED_CONSTANTS["grid_mass_max"])
GRID_U_MAX: int = int(_LOADED_CONSTANTS["grid_u_max"])

# =============================================================================
# States
# =============================================================================
CANONICAL_U_OFFSET: float = float(_LOADED_CONSTANTS["canonical_u_offset"])
H_STEP: float = float(_LOADED_CONSTANTS["h_step"])

# u-plane continuation is numerically unreliable below this coupling
LOW_H_THRESHOLD: float = float(_LOADED_CONSTANTS["low_h_threshold"])

# u-cut layout shown by default
LONG_CUTS: bool = bool(_LOADED_CONSTANTS["long_cuts"])
