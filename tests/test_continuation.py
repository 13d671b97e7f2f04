"""
Tests for points, evaluation and the continuation solver.
"""

import dataclasses

import numpy as np
import pytest
from numpy.testing import assert_allclose

from pxu_solver.core import kinematics
from pxu_solver.core.engine import PxuEngine
from pxu_solver.core.errors import ConvergenceError, DomainError, InconsistentSheetError
from pxu_solver.core.parameters import CouplingConstants
from pxu_solver.core.point import Point
from pxu_solver.core.settings import SolverSettings
from pxu_solver.core.sheets import Component, SheetData, UBranch
from pxu_solver.continuation.solver import ContinuationSolver
from pxu_solver.geometry.contours import Contours
from pxu_solver.multiparticle.state import canonical_momentum


@pytest.fixture(scope="module")
def half_contours():
    """Contours at h = 0.5, k = 0."""
    return Contours(CouplingConstants(h=0.5, k=0))


@pytest.mark.unit
class TestPoint:
    """Test Point construction and consistency."""

    def test_physical_point(self, mixed_consts):
        point = Point.from_p(0.3, mixed_consts)
        assert point.sheet == SheetData()
        assert_allclose(point.u.imag, 0.0, atol=1e-10)

    def test_coordinates_are_images(self, mixed_consts):
        p = 0.3 + 0.1j
        point = Point.from_p(p, mixed_consts)
        assert_allclose(point.xp / point.xm, np.exp(2j * np.pi * p))
        assert_allclose(point.en(mixed_consts), point.energy_branch_value(mixed_consts))
        point.check_consistency(mixed_consts)

    def test_integer_momentum_raises(self, mixed_consts):
        with pytest.raises(DomainError):
            Point.from_p(1.0, mixed_consts)
        with pytest.raises(DomainError):
            Point.from_p(np.nan, mixed_consts)

    def test_wrong_log_label_detected(self, mixed_consts):
        point = Point.from_p(0.3 + 0.1j, mixed_consts)
        bad = point.with_sheet(dataclasses.replace(point.sheet, log_branch_m=1))
        with pytest.raises(InconsistentSheetError):
            bad.check_consistency(mixed_consts)

    def test_get(self, mixed_consts):
        point = Point.from_p(0.3 + 0.1j, mixed_consts)
        assert point.get(Component.P) == point.p
        assert point.get(Component.XP) == point.xp
        assert point.get(Component.XM) == point.xm
        assert point.get(Component.U) == point.u


@pytest.mark.integration
class TestEvaluate:
    """Test evaluate round trips between planes."""

    def test_p_plane_closed_form(self, engine, mixed_consts):
        point = Point.from_p(0.3 + 0.1j, mixed_consts)
        evaluated = engine.evaluate(mixed_consts, Component.P, point.p, point.sheet)
        assert_allclose(evaluated.xp, point.xp)
        assert_allclose(evaluated.u, point.u)

    @pytest.mark.parametrize("plane", [Component.XP, Component.XM, Component.U])
    def test_round_trip(self, engine, mixed_consts, plane):
        point = Point.from_p(0.3 + 0.1j, mixed_consts)
        back = engine.evaluate(mixed_consts, plane, point.get(plane), point.sheet,
                               guess=point.p + 0.01)
        assert_allclose(back.p, point.p, atol=1e-9)
        assert back.sheet == point.sheet

    def test_round_trip_crossed_sheet(self, engine, mixed_consts):
        point = Point.from_p(0.3 + 0.1j, mixed_consts, e_branch=-1)
        back = engine.evaluate(mixed_consts, Component.XM, point.xm, point.sheet,
                               guess=point.p + 0.01)
        assert_allclose(back.p, point.p, atol=1e-9)
        assert back.sheet.e_branch == -1

    def test_p_plane_sheet_mismatch(self, engine, mixed_consts):
        with pytest.raises(DomainError):
            engine.evaluate(mixed_consts, Component.P, 0.3, SheetData(log_branch_m=2))

    def test_domain_errors(self, engine, mixed_consts):
        with pytest.raises(DomainError):
            engine.evaluate(mixed_consts, Component.P, 1.0)
        with pytest.raises(DomainError):
            engine.evaluate(mixed_consts, Component.XP, 0.0)
        with pytest.raises(DomainError):
            engine.evaluate(mixed_consts, Component.U, complex(np.inf, 0))


@pytest.mark.integration
class TestContinuation:
    """Test the continuation solver."""

    def test_scenario_a(self, half_contours):
        """A short p drag away from all cuts matches direct evaluation."""
        consts = half_contours.consts
        engine = PxuEngine()
        p0 = canonical_momentum(consts, SolverSettings().canonical_u_offset)
        start = Point.from_p(p0, consts, regions=half_contours.regions)
        solver = ContinuationSolver(half_contours)
        target = p0 + 0.02 + 0.01j
        end = solver.continue_to(start, Component.P, target)

        assert_allclose(end.p, target)
        assert end.sheet == start.sheet
        direct = engine.evaluate(consts, Component.P, target, start.sheet)
        assert_allclose(end.xp, direct.xp)
        assert_allclose(end.xm, direct.xm)
        assert_allclose(end.u, direct.u)

    def test_continuity_without_crossings(self, half_contours):
        consts = half_contours.consts
        p0 = canonical_momentum(consts, 3.0)
        start = Point.from_p(p0, consts, regions=half_contours.regions)
        solver = ContinuationSolver(half_contours)
        path = solver.trace(start, Component.P, [p0 + 0.05j, p0 + 0.03 + 0.05j])

        assert_allclose(path.final.p, p0 + 0.03 + 0.05j)
        assert path.num_steps >= 2
        assert path.crossings == []
        assert path.max_jump(Component.P) <= solver.settings.max_step_p + 1e-12
        assert all(sheet == start.sheet for sheet in path.sheets())

    def test_e_cut_flips_dispersion_branch(self, half_contours):
        """Crossing the E cut on Re p = 0 flips e; crossing back restores it."""
        consts = half_contours.consts
        solver = ContinuationSolver(half_contours)
        start = Point.from_p(0.1 + 0.5j, consts, regions=half_contours.regions)

        crossed = solver.continue_to(start, Component.P, -0.1 + 0.5j)
        assert crossed.sheet.e_branch == -start.sheet.e_branch
        assert crossed.sheet.u_branch == start.sheet.u_branch
        crossed.check_consistency(consts, half_contours.regions)

        back = solver.continue_to(crossed, Component.P, 0.1 + 0.5j)
        assert back.sheet == start.sheet
        assert_allclose(back.xp, start.xp)

    def test_xp_drag_through_unit_circle(self, rr_contours):
        """At k = 0 dragging x+ through the scallion moves it INSIDE."""
        consts = rr_contours.consts
        solver = ContinuationSolver(rr_contours)
        p0 = canonical_momentum(consts, 3.0)
        start = Point.from_p(p0, consts, regions=rr_contours.regions)
        assert start.sheet.u_branch == (UBranch.OUTSIDE, UBranch.OUTSIDE)

        end = solver.continue_to(start, Component.XP, 0.5 + 0.1j)
        assert_allclose(end.xp, 0.5 + 0.1j, atol=1e-8)
        assert end.sheet.u_branch == (UBranch.INSIDE, UBranch.OUTSIDE)
        assert abs(end.xm) > 1

    def test_step_budget_exhausted(self, rr_contours):
        settings = SolverSettings(max_continuation_steps=1)
        solver = ContinuationSolver(rr_contours, settings)
        start = Point.from_p(0.2, rr_contours.consts, regions=rr_contours.regions)
        with pytest.raises(ConvergenceError):
            solver.continue_to(start, Component.P, 0.3)
        assert start.p == 0.2

    def test_non_finite_target(self, rr_contours):
        solver = ContinuationSolver(rr_contours)
        start = Point.from_p(0.2, rr_contours.consts, regions=rr_contours.regions)
        with pytest.raises(ConvergenceError):
            solver.continue_to(start, Component.U, complex(np.nan, 0))

    def test_step_length_bounds(self, rr_contours):
        solver = ContinuationSolver(rr_contours)
        start = Point.from_p(0.2, rr_contours.consts, regions=rr_contours.regions)
        for plane in Component:
            length = solver.step_length(start, plane, start.get(plane))
            assert solver.settings.min_step <= length <= solver.settings.max_step(plane)

    def test_continue_in_coupling(self, rr_contours):
        consts = rr_contours.consts
        solver = ContinuationSolver(rr_contours)
        start = Point.from_p(0.2 + 0.05j, consts, regions=rr_contours.regions)
        target = consts.with_changes(h=1.05)
        moved = solver.continue_in_coupling(start, consts, target, Contours(target).regions)
        assert moved.p == start.p
        assert moved.sheet == start.sheet


@pytest.fixture(scope="module")
def mixed_start(mixed_contours):
    """Canonical physical point at h = 2, k = 5; x+ lies far outside the scallion."""
    consts = mixed_contours.consts
    p0 = canonical_momentum(consts, 3.0)
    return Point.from_p(p0, consts, regions=mixed_contours.regions)


def assert_on_sheet(point, contours):
    consts = contours.consts
    assert_allclose(point.u, kinematics.u_of_x(point.xp, consts, point.sheet.log_branch_p)
                    - 1j / consts.h)
    point.check_consistency(consts, contours.regions)


@pytest.mark.integration
class TestMixedFluxContinuation:
    """
    x+ drags across the scallion, the kidney and the log cut at h = 2, k = 5.

    The scallion passes through s on the real axis and arches over the
    origin at Im x ~ 1.8; the kidney joins the origin to -1/s and stays
    below Im x ~ 0.6.
    """

    def test_scallion_then_kidney(self, mixed_contours, mixed_start):
        solver = ContinuationSolver(mixed_contours)
        regions = mixed_contours.regions
        assert mixed_start.sheet.u_branch[0] is UBranch.OUTSIDE

        between = solver.continue_to(mixed_start, Component.XP, 0.3 + 1.0j)
        assert_allclose(between.xp, 0.3 + 1.0j, atol=1e-8)
        assert between.sheet.u_branch[0] is UBranch.BETWEEN
        assert regions.region(between.xp) is UBranch.BETWEEN
        assert between.sheet.log_branch_p == mixed_start.sheet.log_branch_p
        assert_on_sheet(between, mixed_contours)

        inside = solver.continue_to(between, Component.XP, -0.1 + 0.3j)
        assert_allclose(inside.xp, -0.1 + 0.3j, atol=1e-8)
        assert inside.sheet.u_branch[0] is UBranch.INSIDE
        assert regions.region(inside.xp) is UBranch.INSIDE
        assert_on_sheet(inside, mixed_contours)

    def test_kidney_and_back(self, mixed_contours, mixed_start):
        solver = ContinuationSolver(mixed_contours)
        between = solver.continue_to(mixed_start, Component.XP, 0.3 + 1.0j)
        inside = solver.continue_to(between, Component.XP, -0.1 + 0.3j)
        back = solver.continue_to(inside, Component.XP, 0.3 + 1.0j)
        assert back.sheet == between.sheet
        assert_allclose(back.p, between.p, atol=1e-8)

    def test_log_cut_raises_winding(self, mixed_contours, mixed_start):
        """Crossing the negative real axis from above raises ℓ+ by one."""
        solver = ContinuationSolver(mixed_contours)
        above = solver.trace(mixed_start, Component.XP, [0.3 + 1.0j, -1.5 + 1.0j]).final
        assert above.sheet.u_branch[0] is UBranch.BETWEEN

        below = solver.continue_to(above, Component.XP, -1.5 - 0.5j)
        assert_allclose(below.xp, -1.5 - 0.5j, atol=1e-8)
        assert below.sheet.log_branch_p == above.sheet.log_branch_p + 1
        assert below.sheet.u_branch[0] is UBranch.BETWEEN
        assert_on_sheet(below, mixed_contours)

        # One winding shifts u by -2ik/h from the principal branch
        consts = mixed_contours.consts
        assert below.sheet.log_branch_p == 1
        principal = kinematics.u_of_x(below.xp, consts) - 1j / consts.h
        assert_allclose(below.u - principal, -2j * consts.k / consts.h, atol=1e-8)

    def test_result_independent_of_layout(self, mixed_contours, mixed_start):
        consts = mixed_contours.consts
        long_contours = Contours(consts, SolverSettings(long_cuts=True))
        short_end = ContinuationSolver(mixed_contours).trace(
            mixed_start, Component.XP, [0.3 + 1.0j, -0.1 + 0.3j]).final
        long_end = ContinuationSolver(long_contours).trace(
            mixed_start, Component.XP, [0.3 + 1.0j, -0.1 + 0.3j]).final
        assert long_end.sheet == short_end.sheet
        assert_allclose(long_end.p, short_end.p, atol=1e-8)


@pytest.fixture(scope="module")
def level_two_contours():
    """Contours at h = 1, k = 2, where cuts coincide."""
    with pytest.warns(UserWarning, match="coincide"):
        return Contours(CouplingConstants(h=1.0, k=2))


@pytest.mark.integration
class TestScallionDragAtLevelTwo:
    """x+ dragged across the scallion next to its branch point s at h = 1, k = 2."""

    def test_cross_and_back(self, level_two_contours):
        contours = level_two_contours
        consts = contours.consts
        solver = ContinuationSolver(contours)
        start = Point.from_p(canonical_momentum(consts, 3.0), consts, regions=contours.regions)

        outside = solver.continue_to(start, Component.XP, consts.s + 0.3 + 0.05j)
        assert outside.sheet.u_branch == (UBranch.OUTSIDE, UBranch.OUTSIDE)

        between = solver.continue_to(outside, Component.XP, consts.s - 0.2 + 0.05j)
        assert_allclose(between.xp, consts.s - 0.2 + 0.05j, atol=1e-8)
        assert between.sheet.u_branch == (UBranch.BETWEEN, UBranch.OUTSIDE)
        assert contours.region(between.xp) is UBranch.BETWEEN
        assert_on_sheet(between, contours)

        back = solver.continue_to(between, Component.XP, consts.s + 0.3 + 0.05j)
        assert back.sheet == outside.sheet
        assert_allclose(back.p, outside.p, atol=1e-8)

class DoubledTracking(Contours):
    """Contours whose region boundaries are all listed twice."""

    def tracking_cuts(self, plane):
        cuts = super().tracking_cuts(plane)
        return cuts + cuts


@pytest.mark.integration
class TestCoincidentCrossings:
    """Region boundaries crossed at one place cannot be ordered."""

    def test_coincident_crossings_raise(self):
        consts = CouplingConstants(h=1.0, k=0)
        contours = DoubledTracking(consts)
        solver = ContinuationSolver(contours)
        start = Point.from_p(canonical_momentum(consts, 3.0), consts, regions=contours.regions)
        with pytest.raises(InconsistentSheetError, match="cannot order"):
            solver.continue_to(start, Component.XP, 0.5 + 0.1j)

    def test_no_subdivisions(self):
        consts = CouplingConstants(h=1.0, k=0)
        contours = DoubledTracking(consts, SolverSettings(max_subdivisions=0))
        solver = ContinuationSolver(contours)
        start = Point.from_p(canonical_momentum(consts, 3.0), consts, regions=contours.regions)
        with pytest.raises(InconsistentSheetError, match="crossed together"):
            solver.continue_to(start, Component.XP, 0.5 + 0.1j)
        assert start.sheet.u_branch == (UBranch.OUTSIDE, UBranch.OUTSIDE)

    def test_single_tracking_passes(self, rr_contours):
        consts = rr_contours.consts
        solver = ContinuationSolver(rr_contours)
        start = Point.from_p(canonical_momentum(consts, 3.0), consts, regions=rr_contours.regions)
        end = solver.continue_to(start, Component.XP, 0.5 + 0.1j)
        assert end.sheet.u_branch[0] is UBranch.INSIDE
