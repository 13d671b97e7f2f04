"""
Coupling constants dataclass.

The constants define the mixed-flux worldsheet model whose kinematics the
solver explores: the coupling h, the WZW level k and the bound-state
number m.
"""

from dataclasses import dataclass, replace
import numbers

import numpy as np


@dataclass(frozen=True)
class CouplingConstants:
    """
    Parameters of the p / x+ / x- / u relations.

    The value is frozen and hashable so it can key a cache of contours.

    Attributes:
        h: Coupling constant. Must be positive and finite.
        k: WZW level (integer RR/NSNS flux ratio). Non-negative.
            k = 0 is the pure RR case where the relations collapse to
            the Zhukovsky map.
        m: Bound-state number M. Positive integer. Cut geometry does not
            depend on it; the canonical state does.
    """

    h: float = 1.0
    k: int = 0
    m: int = 1

    def __post_init__(self):
        """Normalize integer fields and validate."""
        self._validate()
        object.__setattr__(self, "h", float(self.h))
        object.__setattr__(self, "k", int(self.k))
        object.__setattr__(self, "m", int(self.m))

    def _validate(self):
        """Validate parameter values."""
        if not isinstance(self.h, numbers.Real) or not np.isfinite(self.h):
            raise ValueError(f"h must be a finite real number, got {self.h}")
        if self.h <= 0:
            raise ValueError(f"h must be positive, got {self.h}")
        if not isinstance(self.k, numbers.Real) or self.k != int(self.k):
            raise ValueError(f"k must be an integer, got {self.k}")
        if self.k < 0:
            raise ValueError(f"k must be non-negative, got {self.k}")
        if not isinstance(self.m, numbers.Real) or self.m != int(self.m):
            raise ValueError(f"m must be an integer, got {self.m}")
        if self.m < 1:
            raise ValueError(f"m must be at least 1, got {self.m}")

    @property
    def kslash(self) -> float:
        """k / 2π, the coefficient of the logarithm in u(x)."""
        return self.k / (2 * np.pi)

    @property
    def s(self) -> float:
        """
        Position of the scallion on the positive real x axis.

        s = (k/2π + sqrt((k/2π)² + h²)) / h, so that s - 1/s = k / (π h).
        Equals 1 at k = 0.
        """
        kslash = self.kslash
        return (kslash + np.sqrt(kslash ** 2 + self.h ** 2)) / self.h

    @property
    def us(self) -> float:
        """
        Branch point of x(u) on the real u axis.

        us = s + 1/s - (s - 1/s) ln s, equal to 2 at k = 0.
        """
        s = self.s
        return s + 1 / s - (s - 1 / s) * np.log(s)

    @property
    def is_collapsed(self) -> bool:
        """True at k = 0, where the kidney coincides with the scallion."""
        return self.k == 0

    @property
    def has_coincident_cuts(self) -> bool:
        """True at k = 1, 2, where distinct cuts lie on top of each other."""
        return self.k in (1, 2)

    def geometry_key(self):
        """The part of the constants that cut geometry depends on."""
        return (self.h, self.k)

    def with_changes(self, **changes) -> "CouplingConstants":
        """Return a validated copy with some fields replaced."""
        return replace(self, **changes)

    def __repr__(self) -> str:
        return f"CouplingConstants(h={self.h:g}, k={self.k}, m={self.m})"
