"""
Contours: every cut of every plane for one set of coupling constants.

The x+ role cuts are generated explicitly and the x- role cuts are their
mirror images. For a point whose x+ lies on one of its curves (scallion,
kidney or log cut) the partner x- follows from the shortening condition

    u(x-) = u(x+) - 2i/h,

which puts x- on the real-momentum curve X-(q, 2 - c) when
Im u(x+) = c/h. Mapping the samples through this relation gives the
images of the cut in the x- plane and, through p = (Log x+ - Log x-)/2πi,
in the p plane.

The x± cuts of u come in two layouts. The short one draws them as the
scallion and kidney, the long one along the real x axis (u on [us, +∞)
and (-∞, -us]). Both are generated and tagged with LayoutIs; the layout
only decides which cuts are visible and bound the continuation step.
Sheet labels are always tracked with the scallion and kidney regions.
"""

from typing import Dict, List, Optional, Tuple
import warnings

import numpy as np
from numpy.typing import NDArray

from pxu_solver.core import kinematics
from pxu_solver.core.parameters import CouplingConstants
from pxu_solver.core.settings import SolverSettings
from pxu_solver.core.sheets import Component, CutKind, UBranch
from pxu_solver.geometry.cut import (
    Cut,
    CutStyle,
    EBranchIs,
    ImSignIs,
    LayoutIs,
    LogBranchIs,
    RegionIn,
)
from pxu_solver.geometry.curves import (
    SheetRegions,
    e_branch_points,
    real_momentum_x_at,
    sample_q,
    split_runs,
    trace_e_cut,
)


class Contours:
    """
    Cut geometry of all four planes for one set of coupling constants.

    Contours depend only on (h, k); the bound-state number does not enter.
    Instances are immutable and meant to be cached by the caller.

    Usage:
        contours = Contours(CouplingConstants(h=2.0, k=5))
        for cut in contours.cuts(Component.U):
            draw(cut.path, dashed=cut.style is CutStyle.DASHED)
    """

    def __init__(self, consts: CouplingConstants, settings: Optional[SolverSettings] = None,
                 verbose: bool = False):
        """
        Generate all cuts.

        Args:
            consts: Coupling constants.
            settings: Numerical settings. Defaults to constants.json values.
            verbose: Print a summary of the generated cuts.
        """
        self.consts = consts
        self.settings = settings or SolverSettings()
        self.verbose = verbose

        if consts.has_coincident_cuts:
            warnings.warn(
                f"cuts coincide at k={consts.k}; continuation through coincident "
                "cuts is reported as InconsistentSheetError"
            )

        self.regions = SheetRegions(consts, self.settings)
        self.branch_points: Tuple[complex, ...] = tuple(e_branch_points(consts, self.settings))

        cuts: List[Cut] = []
        cuts.extend(self._e_cuts())
        xp_role = self._xp_role_cuts()
        cuts.extend(xp_role)
        cuts.extend(cut.conj() for cut in xp_role)

        self._by_plane: Dict[Component, Tuple[Cut, ...]] = {
            plane: tuple(cut for cut in cuts if cut.plane is plane) for plane in Component
        }
        self._tracking: Dict[Component, Tuple[Cut, ...]] = {
            Component.XP: self._tracking_for(Component.XP),
            Component.XM: self._tracking_for(Component.XM),
        }

        if self.verbose:
            print(f"Contours for {consts}:")
            for plane in Component:
                print(f"  {plane.name}: {len(self._by_plane[plane])} cuts")
            print(f"  E branch points: {len(self.branch_points)}")

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def matches(self, consts: CouplingConstants) -> bool:
        """True if these contours belong to the given constants."""
        return self.consts.geometry_key() == consts.geometry_key()

    def cuts(self, plane: Component) -> Tuple[Cut, ...]:
        """All cuts of a plane, in a deterministic order."""
        return self._by_plane[plane]

    def visible_cuts(self, plane: Component, point,
                     long_cuts: Optional[bool] = None) -> Tuple[Cut, ...]:
        """
        Cuts of a plane seen from the sheet of the given point.

        long_cuts selects the u-cut layout; None uses settings.long_cuts.
        """
        if long_cuts is None:
            long_cuts = self.settings.long_cuts
        return tuple(
            cut for cut in self._by_plane[plane] if cut.is_visible(point, long_cuts)
        )

    def tracking_cuts(self, plane: Component) -> Tuple[Cut, ...]:
        """Scallion and kidney curves whose crossing by x+ (x-) changes the region label."""
        return self._tracking.get(plane, ())

    def region(self, x: complex) -> UBranch:
        """Region label of a value of x+ or x-."""
        return self.regions.region(x)

    def nearest_cut_distance(self, plane: Component, z: complex, point=None,
                             long_cuts: Optional[bool] = None) -> float:
        """
        Distance from z to the nearest visible cut or singular point of a plane.

        Singular points are the integers in the p plane (x± diverge) and
        the origin of the x planes (the log and 1/x terms). Without a point
        every cut of both layouts counts.
        """
        if point is None:
            cuts = self._by_plane[plane]
        else:
            cuts = self.visible_cuts(plane, point, long_cuts)
        distances = [cut.distance(z) for cut in cuts]
        if plane is Component.P:
            distances.append(abs(z - round(z.real)))
            distances.extend(abs(z - bp) for bp in self.branch_points)
        elif plane in (Component.XP, Component.XM):
            distances.append(abs(z))
        return min(distances) if distances else np.inf

    def grid_lines(self, plane: Component) -> List[NDArray]:
        """
        Grid polylines of a plane.

        x planes: the bound-state curves X±(q, m) for m = 1..grid_mass_max.
        u plane: the lines Im u = n/h. p plane: the real axis.
        """
        settings = self.settings
        if plane is Component.P:
            return [np.array([settings.p_range_min, settings.p_range_max + 1], dtype=complex)]
        if plane is Component.U:
            reach = settings.u_infinity
            return [
                np.array([-reach + 1j * n / self.consts.h, reach + 1j * n / self.consts.h])
                for n in range(-settings.grid_u_max, settings.grid_u_max + 1)
            ]
        q = sample_q(settings.curve_samples)
        lines = []
        for m in range(1, settings.grid_mass_max + 1):
            upper = kinematics.real_momentum_xp(q, m, self.consts)
            for piece in split_runs(self._clip_x(upper), max_jump=1.0):
                lines.append(piece)
                lines.append(np.conj(piece))
        return lines

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    def _clip_x(self, values: NDArray) -> NDArray:
        values = np.array(values, dtype=complex)
        values[np.abs(values) > self.settings.x_infinity] = np.nan
        return values

    def _tracking_for(self, plane: Component) -> Tuple[Cut, ...]:
        return tuple(
            cut for cut in self._by_plane[plane]
            if cut.role is plane and cut.kind in (CutKind.SCALLION, CutKind.KIDNEY)
        )

    def _e_cuts(self) -> List[Cut]:
        """Solid E cuts in the p plane and their images in the other planes."""
        consts = self.consts
        cuts = []
        for bp in self.branch_points:
            p_path, tau = trace_e_cut(bp, consts, self.settings)
            if len(p_path) < 2:
                continue
            cuts.append(Cut(Component.P, CutKind.E, None, CutStyle.SOLID, p_path, branch_point=bp))
            for sign in (1, -1):
                energy = sign * 1j * np.sqrt(tau)
                with np.errstate(all="ignore"):
                    x_val = kinematics.x_from_energy(p_path, energy, 1, consts)
                    xp_val = x_val * np.exp(1j * np.pi * p_path)
                    xm_val = x_val * np.exp(-1j * np.pi * p_path)
                    u_val = kinematics.u_of_x(xp_val, consts) - 1j / consts.h
                images = (
                    (Component.XP, self._clip_x(xp_val)),
                    (Component.XM, self._clip_x(xm_val)),
                    (Component.U, u_val),
                )
                for plane, values in images:
                    for piece in split_runs(values, max_jump=1.0):
                        cuts.append(Cut(plane, CutKind.E, None, CutStyle.DASHED, piece))
        return cuts

    def _xp_arms(self) -> List[Tuple[CutKind, int, NDArray]]:
        """
        Sampled x+ curves of the x+ role cuts.

        Returns:
            (kind, c, x+ samples) with Im u(x+) = c/h along the samples.
        """
        consts = self.consts
        settings = self.settings
        q = sample_q(settings.image_samples)
        t = np.geomspace(1 / settings.x_infinity, settings.x_infinity, settings.image_samples)
        arms = []
        scallion = kinematics.real_momentum_xp(q, 0, consts)
        arms.append((CutKind.SCALLION, 0, scallion))
        arms.append((CutKind.SCALLION, 0, np.conj(scallion)))
        arms.append((CutKind.AXIS, 0, t + 0j))
        if consts.k == 0:
            arms.append((CutKind.AXIS, 0, -t + 0j))
            return arms
        kidney = kinematics.real_momentum_xp(q, -consts.k, consts)
        arms.append((CutKind.KIDNEY, -consts.k, kidney))
        arms.append((CutKind.KIDNEY, consts.k, np.conj(kidney)))
        # The negative real axis seen from above (c = -k) and below (c = +k)
        arms.append((CutKind.LOG, -consts.k, -t + 0j))
        arms.append((CutKind.LOG, consts.k, -t + 0j))
        return arms

    def _xp_role_cuts(self) -> List[Cut]:
        consts = self.consts
        settings = self.settings
        reach = settings.x_infinity
        short, long_ = LayoutIs(False), LayoutIs(True)
        cuts: List[Cut] = []

        # x+ plane: the log cut, the region boundaries and the real axis
        cuts.append(Cut(
            Component.XP, CutKind.LOG, Component.XP, CutStyle.SOLID,
            np.array([-reach, 0], dtype=complex), branch_point=0j,
        ))
        cuts.append(Cut(
            Component.XP, CutKind.SCALLION, Component.XP, CutStyle.DASHED,
            self.regions.scallion, branch_point=consts.s + 0j, visibility=(short,),
        ))
        if self.regions.kidney is not None:
            cuts.append(Cut(
                Component.XP, CutKind.KIDNEY, Component.XP, CutStyle.DASHED,
                self.regions.kidney, branch_point=-1 / consts.s + 0j, visibility=(short,),
            ))
        cuts.append(Cut(
            Component.XP, CutKind.AXIS, Component.XP, CutStyle.DASHED,
            np.array([0, reach], dtype=complex), branch_point=consts.s + 0j, visibility=(long_,),
        ))
        if consts.k == 0:
            cuts.append(Cut(
                Component.XP, CutKind.AXIS, Component.XP, CutStyle.DASHED,
                np.array([-reach, 0], dtype=complex), branch_point=-1 / consts.s + 0j,
                visibility=(long_,),
            ))

        cuts.extend(self._u_lines())

        # Images in the x- and p planes
        seen_xm = set()
        for kind, c, xp_arm in self._xp_arms():
            with np.errstate(all="ignore"):
                if kind is CutKind.LOG:
                    # Limit from above (c < 0) or below (c > 0) the negative axis
                    log_x = np.log(-xp_arm.real) + 1j * np.pi * (1 if c < 0 else -1)
                else:
                    log_x = np.log(xp_arm)
                u_xp = kinematics.u_from_log(xp_arm, log_x, consts)
                xm_arm = real_momentum_x_at(u_xp.real, 2 - c, consts, settings, sign=-1)
                p_arm = (log_x - np.log(xm_arm)) / (2j * np.pi)

            layout = self._layout_visibility(kind)
            # Arms with the same u values share their x- image
            key = (kind, c, float(np.sign(xp_arm[0].real)))
            if key not in seen_xm:
                seen_xm.add(key)
                style = CutStyle.DASHED if kind is CutKind.LOG else CutStyle.SOLID
                visibility = self._x_image_visibility(kind) + layout
                for piece in split_runs(self._clip_x(xm_arm), max_jump=1.0):
                    cuts.append(Cut(Component.XM, kind, Component.XP, style, piece,
                                    visibility=visibility))

            for piece in split_runs(p_arm, max_jump=0.25):
                cuts.append(Cut(Component.P, kind, Component.XP, CutStyle.DASHED, piece,
                                visibility=(EBranchIs(1),) + layout))
        return cuts

    @staticmethod
    def _layout_visibility(kind: CutKind) -> Tuple:
        if kind in (CutKind.SCALLION, CutKind.KIDNEY):
            return (LayoutIs(False),)
        if kind is CutKind.AXIS:
            return (LayoutIs(True),)
        return ()

    @staticmethod
    def _x_image_visibility(kind: CutKind) -> Tuple:
        if kind is CutKind.SCALLION:
            return (RegionIn(Component.XP, frozenset({UBranch.OUTSIDE, UBranch.BETWEEN})),)
        if kind is CutKind.KIDNEY:
            return (RegionIn(Component.XP, frozenset({UBranch.BETWEEN, UBranch.INSIDE})),)
        return ()

    def _u_lines(self) -> List[Cut]:
        """
        u-plane cuts of the x+ role.

        Short layout: the scallion line at Im u = -(1 + 2kℓ)/h runs from
        -∞ to us (between -us and us at k = 0) and the kidney lines at
        Im u = -(1 ± k + 2kℓ)/h from -us to +∞.

        Long layout: x+ on the positive real axis gives the line from us
        to +∞ at Im u = -(1 + 2kℓ)/h. The negative axis is the log cut,
        whose images from -∞ to -us are shared by both layouts; at k = 0
        it is a line at Im u = -1/h of its own.
        """
        consts = self.consts
        settings = self.settings
        h, k, us = consts.h, consts.k, consts.us
        reach = settings.u_infinity
        short, long_ = LayoutIs(False), LayoutIs(True)
        cuts: List[Cut] = []

        if k == 0:
            y = -1 / h
            cuts.append(Cut(
                Component.U, CutKind.SCALLION, Component.XP, CutStyle.SOLID,
                np.array([-us + 1j * y, us + 1j * y]), branch_point=us + 1j * y,
                visibility=(short,),
            ))
            cuts.append(Cut(
                Component.U, CutKind.AXIS, Component.XP, CutStyle.SOLID,
                np.array([reach + 1j * y, us + 1j * y]), branch_point=us + 1j * y,
                visibility=(long_,),
            ))
            cuts.append(Cut(
                Component.U, CutKind.AXIS, Component.XP, CutStyle.SOLID,
                np.array([-reach + 1j * y, -us + 1j * y]), branch_point=-us + 1j * y,
                visibility=(long_,),
            ))
            return cuts

        for ell in range(settings.log_branch_min, settings.log_branch_max + 1):
            shift = -2 * k * ell / h
            log_visible = LogBranchIs(Component.XP, ell)
            y = -1 / h + shift
            cuts.append(Cut(
                Component.U, CutKind.SCALLION, Component.XP, CutStyle.SOLID,
                np.array([-reach + 1j * y, us + 1j * y]), branch_point=us + 1j * y,
                visibility=(log_visible, short),
            ))
            cuts.append(Cut(
                Component.U, CutKind.AXIS, Component.XP, CutStyle.SOLID,
                np.array([reach + 1j * y, us + 1j * y]), branch_point=us + 1j * y,
                visibility=(log_visible, long_),
            ))
            for sign in (1, -1):
                # sign = +1: upper arm of the kidney, Im x+ > 0
                y = -(1 + sign * k) / h + shift
                cuts.append(Cut(
                    Component.U, CutKind.KIDNEY, Component.XP, CutStyle.SOLID,
                    np.array([-us + 1j * y, reach + 1j * y]), branch_point=-us + 1j * y,
                    visibility=(log_visible, ImSignIs(Component.XP, sign), short),
                ))
                cuts.append(Cut(
                    Component.U, CutKind.LOG, Component.XP, CutStyle.DASHED,
                    np.array([-reach + 1j * y, -us + 1j * y]), branch_point=-us + 1j * y,
                    visibility=(log_visible, ImSignIs(Component.XP, sign)),
                ))
        return cuts
