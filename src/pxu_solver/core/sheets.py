"""
Sheet model.

A point's sheet is described by four discrete labels:

    e_branch      sign of E relative to the principal square root
    log_branch_p  winding ℓ+ of ln x+ = Log x+ + 2πi ℓ+
    log_branch_m  winding ℓ- of ln x- = Log x- - 2πi ℓ-
    u_branch      region of (x+, x-) relative to the scallion and kidney

The crossing rule maps a sheet and a directed crossing of one kind of cut
to the sheet on the other side. It never moves a point.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

from pxu_solver.core.errors import InconsistentSheetError


class Component(Enum):
    """The four planes."""

    P = "p"
    XP = "xp"
    XM = "xm"
    U = "u"

    def conj(self) -> "Component":
        """Mirror partner under complex conjugation (x+ <-> x-)."""
        if self is Component.XP:
            return Component.XM
        if self is Component.XM:
            return Component.XP
        return self


class UBranch(Enum):
    """Region of an x value: outside the scallion, between scallion and kidney, inside the kidney."""

    OUTSIDE = "outside"
    BETWEEN = "between"
    INSIDE = "inside"

    def cross_scallion(self, collapsed: bool = False) -> "UBranch":
        """
        Region on the other side of the scallion.

        With collapsed=True (k = 0) the kidney lies on the scallion and
        the crossing goes straight between OUTSIDE and INSIDE.
        """
        if collapsed:
            if self is UBranch.BETWEEN:
                raise InconsistentSheetError("no region between scallion and kidney at k = 0")
            return UBranch.INSIDE if self is UBranch.OUTSIDE else UBranch.OUTSIDE
        if self is UBranch.OUTSIDE:
            return UBranch.BETWEEN
        if self is UBranch.BETWEEN:
            return UBranch.OUTSIDE
        raise InconsistentSheetError("scallion crossed from inside the kidney")

    def cross_kidney(self) -> "UBranch":
        """Region on the other side of the kidney."""
        if self is UBranch.BETWEEN:
            return UBranch.INSIDE
        if self is UBranch.INSIDE:
            return UBranch.BETWEEN
        raise InconsistentSheetError("kidney crossed from outside the scallion")


class CutKind(Enum):
    """Kinds of cuts."""

    E = "dispersion"
    SCALLION = "scallion"
    KIDNEY = "kidney"
    LOG = "log"
    # x on the real axis away from the log cut; long u-cut layout only
    AXIS = "axis"


@dataclass(frozen=True)
class SheetData:
    """
    Sheet labels of a point.

    Attributes:
        log_branch_p: Winding ℓ+ of the logarithm of x+.
        log_branch_m: Winding ℓ- of the logarithm of x-.
        e_branch: +1 on the principal branch of E, -1 on the crossed one.
        u_branch: Regions of x+ and x- (OUTSIDE, BETWEEN or INSIDE).
    """

    log_branch_p: int = 0
    log_branch_m: int = 0
    e_branch: int = 1
    u_branch: Tuple[UBranch, UBranch] = (UBranch.OUTSIDE, UBranch.OUTSIDE)

    def __post_init__(self):
        if self.e_branch not in (1, -1):
            raise ValueError(f"e_branch must be +1 or -1, got {self.e_branch}")

    @property
    def log_branch_sum(self) -> int:
        return self.log_branch_p + self.log_branch_m

    @property
    def log_branch_diff(self) -> int:
        return self.log_branch_p - self.log_branch_m

    def cross(self, kind: CutKind, role: Optional[Component], from_left: bool,
              collapsed: bool = False) -> "SheetData":
        """
        Sheet on the other side of a cut.

        Args:
            kind: Kind of the crossed cut.
            role: Which x variable the cut belongs to (XP or XM); ignored
                for E cuts.
            from_left: True when the path enters from the left of the cut's
                polyline direction. For the XP log cut, directed from -∞
                to 0, this is "from above"; for the XM log cut, directed from
                0 to -∞, it is "from below".
            collapsed: True at k = 0.

        Returns:
            The new SheetData.

        Raises:
            InconsistentSheetError: If the crossing is not possible from
                this sheet.
        """
        if kind is CutKind.E:
            return replace(self, e_branch=-self.e_branch)
        if kind is CutKind.AXIS:
            # Flips the sign of Im x, which is read off the point
            return self

        if role not in (Component.XP, Component.XM):
            raise InconsistentSheetError(f"{kind.value} cut without an x+/x- role")

        if kind is CutKind.LOG:
            step = 1 if from_left else -1
            if role is Component.XP:
                return replace(self, log_branch_p=self.log_branch_p + step)
            return replace(self, log_branch_m=self.log_branch_m + step)

        index = 0 if role is Component.XP else 1
        branches = list(self.u_branch)
        if kind is CutKind.SCALLION:
            branches[index] = branches[index].cross_scallion(collapsed)
        elif kind is CutKind.KIDNEY:
            if collapsed:
                raise InconsistentSheetError("there is no kidney at k = 0")
            branches[index] = branches[index].cross_kidney()
        else:
            raise InconsistentSheetError(f"unhandled cut kind {kind!r}")
        return replace(self, u_branch=(branches[0], branches[1]))

    def is_same(self, other: "SheetData", plane: Component) -> bool:
        """
        Whether two sheets coincide as seen from one plane.

        The p plane only sees the dispersion branch. The x+ plane sees the
        region of x- (its cuts come from x-) and the x- plane the region of
        x+. The u plane sees both regions; points between scallion and
        kidney are drawn together with their neighbours.
        """
        between = UBranch.BETWEEN
        if plane is Component.P:
            return self.e_branch == other.e_branch

        if plane is Component.U:
            if self.u_branch == other.u_branch and between in self.u_branch:
                return True
            if (self.log_branch_sum != other.log_branch_sum
                    or self.log_branch_diff != other.log_branch_diff):
                return False
            return self.u_branch == other.u_branch

        if plane is Component.XP:
            mine, theirs = self.u_branch[1], other.u_branch[1]
            if mine is between and theirs is between:
                return True
            if mine == theirs and between in (self.u_branch[0], other.u_branch[0]):
                return self.log_branch_p == other.log_branch_p
            if self.log_branch_sum != other.log_branch_sum:
                return False
            return mine == theirs

        mine, theirs = self.u_branch[0], other.u_branch[0]
        if mine is between and theirs is between:
            return True
        if mine == theirs and between in (self.u_branch[1], other.u_branch[1]):
            return self.log_branch_m == other.log_branch_m
        if self.log_branch_sum != other.log_branch_sum:
            return False
        return mine == theirs

    def describe(self) -> str:
        """Short label such as 'e+ ℓ(0,0) out/out'."""
        sign = "+" if self.e_branch > 0 else "-"
        regions = "/".join(b.value[:3] for b in self.u_branch)
        return f"e{sign} ℓ({self.log_branch_p},{self.log_branch_m}) {regions}"
