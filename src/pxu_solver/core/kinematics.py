"""
Plane relations between p, x+, x- and u.

For a constituent of mass label m with momentum p the dispersion relation
reads

    E² = (m + k p)² + 4 h² sin²(π p)

and the Zhukovsky-type variables are

    x(p)  = (m + k p + E) / (2 h sin π p)
    x±(p) = x(p) exp(±iπ p)

so that x+/x- = exp(2πi p) and

    x+ + 1/x+ - x- - 1/x- = 2i (m + k p) / h.

The rapidity u is

    u(x) = x + 1/x - (2 k/2π / h) (Log x + 2πi ℓ)
    u(p) = u(x+(p); ℓ+) - i/h

with ℓ the winding of the continuous logarithm. The sign of E relative to
the principal square root is the dispersion branch e = ±1; e = -1 yields
the crossed value x -> -1/x.

All functions broadcast over numpy arrays of complex momenta.
"""

from typing import Union

import numpy as np
from numpy.typing import NDArray

from pxu_solver.core.parameters import CouplingConstants

ComplexLike = Union[complex, NDArray[np.complex128]]


def en2(p: ComplexLike, m: float, consts: CouplingConstants) -> ComplexLike:
    """Squared energy (m + k p)² + 4h² sin²(πp)."""
    p = np.asarray(p, dtype=complex)
    sin = np.sin(np.pi * p)
    m_eff = m + consts.k * p
    return m_eff ** 2 + 4 * consts.h ** 2 * sin ** 2


def den2_dp(p: ComplexLike, m: float, consts: CouplingConstants) -> ComplexLike:
    """Derivative of en2 with respect to p."""
    p = np.asarray(p, dtype=complex)
    m_eff = m + consts.k * p
    return 2 * consts.k * m_eff + 4 * np.pi * consts.h ** 2 * np.sin(2 * np.pi * p)


def en(p: ComplexLike, m: float, consts: CouplingConstants, e_branch: int = 1) -> ComplexLike:
    """Energy on the dispersion branch e_branch (principal root for +1)."""
    return e_branch * np.sqrt(en2(p, m, consts))


def x_from_energy(p: ComplexLike, energy: ComplexLike, m: float,
                  consts: CouplingConstants) -> ComplexLike:
    """x(p) for a given value of E."""
    p = np.asarray(p, dtype=complex)
    m_eff = m + consts.k * p
    return (m_eff + energy) / (2 * consts.h * np.sin(np.pi * p))


def x(p: ComplexLike, m: float, consts: CouplingConstants, e_branch: int = 1) -> ComplexLike:
    """x(p) = (m + kp + E) / (2h sin πp)."""
    return x_from_energy(p, en(p, m, consts, e_branch), m, consts)


def xp(p: ComplexLike, m: float, consts: CouplingConstants, e_branch: int = 1) -> ComplexLike:
    """x+(p) = x(p) exp(iπp)."""
    p = np.asarray(p, dtype=complex)
    return x(p, m, consts, e_branch) * np.exp(1j * np.pi * p)


def xm(p: ComplexLike, m: float, consts: CouplingConstants, e_branch: int = 1) -> ComplexLike:
    """x-(p) = x(p) exp(-iπp)."""
    p = np.asarray(p, dtype=complex)
    return x(p, m, consts, e_branch) * np.exp(-1j * np.pi * p)


def dx_dp_from_energy(p: ComplexLike, energy: ComplexLike, m: float,
                      consts: CouplingConstants) -> ComplexLike:
    """Derivative of x(p) for a given value of E."""
    p = np.asarray(p, dtype=complex)
    sin = np.sin(np.pi * p)
    cos = np.cos(np.pi * p)
    x_val = x_from_energy(p, energy, m, consts)
    den_dp = den2_dp(p, m, consts) / (2 * energy)
    return (consts.k + den_dp) / (2 * consts.h * sin) - x_val * np.pi * cos / sin


def dxp_dp(p: ComplexLike, m: float, consts: CouplingConstants, e_branch: int = 1) -> ComplexLike:
    """Derivative of x+(p)."""
    p = np.asarray(p, dtype=complex)
    energy = en(p, m, consts, e_branch)
    x_val = x_from_energy(p, energy, m, consts)
    dx = dx_dp_from_energy(p, energy, m, consts)
    return (dx + 1j * np.pi * x_val) * np.exp(1j * np.pi * p)


def dxm_dp(p: ComplexLike, m: float, consts: CouplingConstants, e_branch: int = 1) -> ComplexLike:
    """Derivative of x-(p)."""
    p = np.asarray(p, dtype=complex)
    energy = en(p, m, consts, e_branch)
    x_val = x_from_energy(p, energy, m, consts)
    dx = dx_dp_from_energy(p, energy, m, consts)
    return (dx - 1j * np.pi * x_val) * np.exp(-1j * np.pi * p)


def u_from_log(x_val: ComplexLike, log_x: ComplexLike, consts: CouplingConstants) -> ComplexLike:
    """u(x) for a given (continuous) value of log x."""
    return x_val + 1 / x_val - (2 * consts.kslash / consts.h) * log_x


def u_of_x(x_val: ComplexLike, consts: CouplingConstants, log_branch: int = 0) -> ComplexLike:
    """u(x) = x + 1/x - (2k/2π/h)(Log x + 2πi log_branch)."""
    x_val = np.asarray(x_val, dtype=complex)
    return u_from_log(x_val, np.log(x_val) + 2j * np.pi * log_branch, consts)


def du_dx(x_val: ComplexLike, consts: CouplingConstants) -> ComplexLike:
    """Derivative of u(x); independent of the log branch."""
    return 1 - 1 / x_val ** 2 - (2 * consts.kslash / consts.h) / x_val


def u(p: ComplexLike, consts: CouplingConstants, e_branch: int = 1,
      log_branch_p: int = 0) -> ComplexLike:
    """Rapidity u(p) = u(x+(p); ℓ+) - i/h of a single constituent."""
    return u_of_x(xp(p, 1, consts, e_branch), consts, log_branch_p) - 1j / consts.h


def du_dp(p: ComplexLike, consts: CouplingConstants, e_branch: int = 1) -> ComplexLike:
    """Derivative of u(p)."""
    return du_dx(xp(p, 1, consts, e_branch), consts) * dxp_dp(p, 1, consts, e_branch)


def en_from_x(xp_val: ComplexLike, xm_val: ComplexLike, consts: CouplingConstants) -> ComplexLike:
    """Energy read back from x±: E = -ih/2 (x+ - 1/x+ - x- + 1/x-)."""
    return -0.5j * consts.h * (xp_val - 1 / xp_val - xm_val + 1 / xm_val)


def momentum_from_x(xp_val: ComplexLike, xm_val: ComplexLike) -> ComplexLike:
    """Principal momentum p = (Log x+ - Log x-) / 2πi."""
    return (np.log(xp_val) - np.log(xm_val)) / (2j * np.pi)


def bound_state_en2(p_total: ComplexLike, m: float, consts: CouplingConstants) -> ComplexLike:
    """Dispersion relation of a bound state of m constituents with total momentum p_total."""
    return en2(p_total, m, consts)


# =============================================================================
# Continued branches
# =============================================================================

def continued_sqrt(w: complex, reference: complex) -> complex:
    """The square root of w closest to reference."""
    root = complex(np.sqrt(complex(w)))
    if abs(root - reference) <= abs(root + reference):
        return root
    return -root


def continued_log(z: complex, reference: complex) -> complex:
    """The logarithm of z whose imaginary part is closest to that of reference."""
    log = complex(np.log(complex(z)))
    turns = np.round((reference.imag - log.imag) / (2 * np.pi))
    return log + 2j * np.pi * turns


def e_branch_of(energy: complex, p: complex, m: float, consts: CouplingConstants) -> int:
    """Dispersion branch of a given value of E at p."""
    principal = complex(np.sqrt(en2(p, m, consts)))
    return 1 if abs(energy - principal) <= abs(energy + principal) else -1


def log_branch_of(log_x: complex, x_val: complex) -> int:
    """Winding ℓ of a continuous logarithm, log x = Log x + 2πi ℓ."""
    return int(np.round((log_x - complex(np.log(complex(x_val)))).imag / (2 * np.pi)))


# =============================================================================
# Real-momentum curves
# =============================================================================

def real_momentum_xp(q: NDArray, m: float, consts: CouplingConstants) -> NDArray:
    """X+(q, m) for real q in (0, 1); a curve in the x+ plane."""
    return xp(np.asarray(q, dtype=float), m, consts)


def real_momentum_xm(q: NDArray, m: float, consts: CouplingConstants) -> NDArray:
    """X-(q, m) = conj X+(q, m)."""
    return xm(np.asarray(q, dtype=float), m, consts)


def real_momentum_u(q: NDArray, m: float, consts: CouplingConstants) -> NDArray:
    """
    U(q, m) = Re u(X+(q, m)).

    u(X+(q, m)) - i m/h is real along the curve, so this is the position
    of the curve's image on the horizontal line Im u = m/h.
    """
    return np.real(u_of_x(real_momentum_xp(q, m, consts), consts))
