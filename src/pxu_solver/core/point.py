"""
Point: one excitation seen on all four planes.

A point is stored as its momentum p, the three images x+, x-, u and the
sheet labels that select the branches of those images. The images are
always recomputed from p and the labels, so they are consistent by
construction; check_consistency() verifies the labels themselves.
"""

from dataclasses import dataclass, field, replace
from typing import Optional

import numpy as np

from pxu_solver.core import kinematics
from pxu_solver.core.errors import DomainError, InconsistentSheetError
from pxu_solver.core.parameters import CouplingConstants
from pxu_solver.core.sheets import Component, SheetData
from pxu_solver.geometry.curves import SheetRegions


def _coordinates(p: complex, e_branch: int, log_branch_p: int, consts: CouplingConstants):
    """x+, x-, u of a single constituent on the given branches."""
    if not (np.isfinite(p.real) and np.isfinite(p.imag)):
        raise DomainError(f"momentum must be finite, got {p}")
    if abs(p - round(p.real)) < 1e-12:
        raise DomainError(f"x+ and x- diverge at integer momentum p={p}")
    with np.errstate(all="ignore"):
        xp = complex(kinematics.xp(p, 1, consts, e_branch))
        xm = complex(kinematics.xm(p, 1, consts, e_branch))
    for value in (xp, xm):
        if value == 0 or not (np.isfinite(value.real) and np.isfinite(value.imag)):
            raise DomainError(f"x+ or x- is singular at p={p}")
    u = complex(kinematics.u_of_x(xp, consts, log_branch_p)) - 1j / consts.h
    return xp, xm, u


def _log_branch_m(p: complex, xp: complex, xm: complex, log_branch_p: int) -> int:
    """ℓ- implied by p and ℓ+ through ln x+ - ln x- = 2πi p."""
    implied = p - log_branch_p - (np.log(xp) - np.log(xm)) / (2j * np.pi)
    return int(np.round(implied.real))


@dataclass(frozen=True)
class Point:
    """
    An excitation with consistent coordinates on all planes.

    Attributes:
        p: Momentum.
        xp: x+ on the dispersion branch of the sheet.
        xm: x- on the dispersion branch of the sheet.
        u: Rapidity on the log branch ℓ+ of the sheet.
        sheet: Sheet labels.
    """

    p: complex
    xp: complex
    xm: complex
    u: complex
    sheet: SheetData = field(default_factory=SheetData)

    @classmethod
    def from_p(cls, p: complex, consts: CouplingConstants, e_branch: int = 1,
               log_branch_p: int = 0, regions=None) -> "Point":
        """
        Create a point from its momentum.

        ℓ- follows from p and ℓ+; the region labels follow from the
        position of x± relative to the scallion and kidney.

        Args:
            p: Momentum (not an integer).
            consts: Coupling constants.
            e_branch: Dispersion branch, +1 or -1.
            log_branch_p: Winding ℓ+ of the logarithm of x+.
            regions: SheetRegions for consts; built on demand when omitted.

        Raises:
            DomainError: At integer p or where x± vanish.
        """
        p = complex(p)
        xp, xm, u = _coordinates(p, e_branch, log_branch_p, consts)
        if regions is None:
            regions = SheetRegions(consts)
        sheet = SheetData(
            log_branch_p=log_branch_p,
            log_branch_m=_log_branch_m(p, xp, xm, log_branch_p),
            e_branch=e_branch,
            u_branch=(regions.region(xp), regions.region(xm)),
        )
        return cls(p, xp, xm, u, sheet)

    @classmethod
    def on_sheet(cls, p: complex, sheet: SheetData, consts: CouplingConstants) -> "Point":
        """Create a point from its momentum and a complete set of sheet labels."""
        p = complex(p)
        xp, xm, u = _coordinates(p, sheet.e_branch, sheet.log_branch_p, consts)
        return cls(p, xp, xm, u, sheet)

    def get(self, component: Component) -> complex:
        """Coordinate on one plane."""
        if component is Component.P:
            return self.p
        if component is Component.XP:
            return self.xp
        if component is Component.XM:
            return self.xm
        return self.u

    def en(self, consts: CouplingConstants) -> complex:
        """Energy E = -ih/2 (x+ - 1/x+ - x- + 1/x-)."""
        return complex(kinematics.en_from_x(self.xp, self.xm, consts))

    def energy_branch_value(self, consts: CouplingConstants) -> complex:
        """E on the dispersion branch of the sheet, from p."""
        return complex(kinematics.en(self.p, 1, consts, self.sheet.e_branch))

    @property
    def log_xp(self) -> complex:
        """Continuous logarithm of x+ on the sheet."""
        return complex(np.log(self.xp)) + 2j * np.pi * self.sheet.log_branch_p

    @property
    def log_xm(self) -> complex:
        """Continuous logarithm of x- on the sheet."""
        return complex(np.log(self.xm)) - 2j * np.pi * self.sheet.log_branch_m

    def same_sheet(self, other: "Point", plane: Optional[Component] = None) -> bool:
        """Whether the other point is on the same sheet (of one plane, or fully)."""
        if plane is None:
            return self.sheet == other.sheet
        return self.sheet.is_same(other.sheet, plane)

    def with_sheet(self, sheet: SheetData) -> "Point":
        return replace(self, sheet=sheet)

    def check_consistency(self, consts: CouplingConstants, regions=None) -> None:
        """
        Verify the sheet labels.

        Checks that ℓ+ and ℓ- satisfy ln x+ - ln x- = 2πi p and, when
        regions are given and x± are not too far out, that the region
        labels match the geometry.

        Raises:
            InconsistentSheetError: On any mismatch.
        """
        mismatch = (self.log_xp - self.log_xm) / (2j * np.pi) - self.p
        if abs(mismatch) > 1e-6:
            raise InconsistentSheetError(
                f"log branches {self.sheet.log_branch_p}, {self.sheet.log_branch_m} "
                f"do not match p={self.p:.6f}"
            )
        if regions is None:
            return
        for index, value in enumerate((self.xp, self.xm)):
            if not regions.is_reliable(value):
                continue
            if regions.region(value) is not self.sheet.u_branch[index]:
                raise InconsistentSheetError(
                    f"region label {self.sheet.u_branch[index].value} does not match "
                    f"x={value:.6f}"
                )
