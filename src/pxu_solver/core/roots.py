"""
Root finding helpers.

Thin wrappers around scipy.optimize that turn non-convergence and
floating point trouble into a None result, so callers can try another
starting point or reject a continuation step.
"""

from typing import Callable, Optional
import warnings

import numpy as np
from scipy.optimize import brentq, newton

from pxu_solver.core.constants import NEWTON_TOL, NEWTON_MAXITER


def newton_root(
    func: Callable[[complex], complex],
    fprime: Callable[[complex], complex],
    x0: complex,
    tol: float = NEWTON_TOL,
    maxiter: int = NEWTON_MAXITER,
) -> Optional[complex]:
    """
    Complex Newton iteration started at x0.

    Returns:
        The root, or None if the iteration failed or left the finite plane.
        The caller is responsible for checking the residual.
    """
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        with np.errstate(all="ignore"):
            try:
                root = newton(
                    lambda z: complex(func(z)),
                    complex(x0),
                    fprime=lambda z: complex(fprime(z)),
                    tol=tol,
                    maxiter=maxiter,
                )
            except (RuntimeError, ArithmeticError, ValueError):
                return None
    root = complex(root)
    if not (np.isfinite(root.real) and np.isfinite(root.imag)):
        return None
    return root


def bracketed_root(func: Callable[[float], float], a: float, b: float,
                   xtol: float = 1e-14) -> Optional[float]:
    """
    Real root of func in [a, b] by Brent's method.

    Returns None when func does not change sign on the bracket.
    """
    fa, fb = func(a), func(b)
    if not (np.isfinite(fa) and np.isfinite(fb)) or fa * fb > 0:
        return None
    return float(brentq(func, a, b, xtol=xtol, maxiter=200))
