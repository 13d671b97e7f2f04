"""
Tests for the plane relations between p, x+, x- and u.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from pxu_solver.core import kinematics
from pxu_solver.core.parameters import CouplingConstants


MOMENTA = np.array([0.3 + 0.1j, 0.15 - 0.2j, -0.4 + 0.05j, 1.3 + 0.3j])


@pytest.mark.unit
class TestDispersion:
    """Test E, x and x± as functions of p."""

    @pytest.mark.parametrize("e_branch", [1, -1])
    def test_ratio_is_exp_2pi_i_p(self, mixed_consts, e_branch):
        xp = kinematics.xp(MOMENTA, 1, mixed_consts, e_branch)
        xm = kinematics.xm(MOMENTA, 1, mixed_consts, e_branch)
        assert_allclose(xp / xm, np.exp(2j * np.pi * MOMENTA), rtol=1e-12)

    @pytest.mark.parametrize("e_branch", [1, -1])
    def test_shortening_condition(self, mixed_consts, e_branch):
        """x+ + 1/x+ - x- - 1/x- = 2i (1 + k p) / h."""
        xp = kinematics.xp(MOMENTA, 1, mixed_consts, e_branch)
        xm = kinematics.xm(MOMENTA, 1, mixed_consts, e_branch)
        lhs = xp + 1 / xp - xm - 1 / xm
        rhs = 2j * (1 + mixed_consts.k * MOMENTA) / mixed_consts.h
        assert_allclose(lhs, rhs, rtol=1e-10)

    @pytest.mark.parametrize("e_branch", [1, -1])
    def test_energy_read_back(self, mixed_consts, e_branch):
        xp = kinematics.xp(MOMENTA, 1, mixed_consts, e_branch)
        xm = kinematics.xm(MOMENTA, 1, mixed_consts, e_branch)
        assert_allclose(
            kinematics.en_from_x(xp, xm, mixed_consts),
            kinematics.en(MOMENTA, 1, mixed_consts, e_branch),
            rtol=1e-10,
        )

    def test_crossed_branch_inverts_x(self, mixed_consts):
        """e = -1 maps x to -1/x."""
        x_plus = kinematics.x(MOMENTA, 1, mixed_consts, 1)
        x_minus = kinematics.x(MOMENTA, 1, mixed_consts, -1)
        assert_allclose(x_minus, -1 / x_plus, rtol=1e-10)

    def test_momentum_read_back(self, mixed_consts):
        p = np.array([0.3 + 0.1j, 0.2 - 0.1j])
        xp = kinematics.xp(p, 1, mixed_consts)
        xm = kinematics.xm(p, 1, mixed_consts)
        assert_allclose(kinematics.momentum_from_x(xp, xm), p, rtol=1e-12)

    def test_broadcasts(self, mixed_consts):
        p = np.linspace(0.1, 0.9, 7) + 0.1j
        assert kinematics.xp(p, 1, mixed_consts).shape == (7,)
        assert kinematics.u(p, mixed_consts).shape == (7,)


@pytest.mark.unit
class TestDerivatives:
    """Test analytic derivatives against central differences."""

    EPS = 1e-6

    def _central(self, func, p):
        return (func(p + self.EPS) - func(p - self.EPS)) / (2 * self.EPS)

    @pytest.mark.parametrize("p", [0.3 + 0.1j, 0.6 - 0.15j])
    def test_den2(self, mixed_consts, p):
        numeric = self._central(lambda z: kinematics.en2(z, 1, mixed_consts), p)
        assert_allclose(kinematics.den2_dp(p, 1, mixed_consts), numeric, rtol=1e-6)

    @pytest.mark.parametrize("p", [0.3 + 0.1j, 0.6 - 0.15j])
    def test_dxp_dxm(self, mixed_consts, p):
        numeric_p = self._central(lambda z: kinematics.xp(z, 1, mixed_consts), p)
        numeric_m = self._central(lambda z: kinematics.xm(z, 1, mixed_consts), p)
        assert_allclose(kinematics.dxp_dp(p, 1, mixed_consts), numeric_p, rtol=1e-6)
        assert_allclose(kinematics.dxm_dp(p, 1, mixed_consts), numeric_m, rtol=1e-6)

    def test_du_dp(self, mixed_consts):
        p = 0.3 + 0.1j
        numeric = self._central(lambda z: kinematics.u(z, mixed_consts), p)
        assert_allclose(kinematics.du_dp(p, mixed_consts), numeric, rtol=1e-6)


@pytest.mark.unit
class TestRapidity:
    """Test u(x) and u(p)."""

    @pytest.mark.parametrize("q", [0.1, 0.3, 0.5, 0.7])
    def test_u_real_for_real_momentum(self, mixed_consts, q):
        assert_allclose(kinematics.u(q, mixed_consts).imag, 0.0, atol=1e-10)

    def test_u_shifts_with_log_branch(self, mixed_consts):
        x_val = 1.5 + 0.5j
        shift = kinematics.u_of_x(x_val, mixed_consts, 1) - kinematics.u_of_x(x_val, mixed_consts, 0)
        assert_allclose(shift, -2j * mixed_consts.k / mixed_consts.h)

    def test_rr_zhukovsky(self, rr_consts):
        x_val = np.array([2.0 + 0.5j, 0.3 - 0.2j])
        assert_allclose(kinematics.u_of_x(x_val, rr_consts), x_val + 1 / x_val)

    def test_u_difference_of_x_pair(self, mixed_consts):
        """u(x-) = u(x+) - 2i/h on continued logarithms."""
        p = 0.3 + 0.1j
        xp = complex(kinematics.xp(p, 1, mixed_consts))
        xm = complex(kinematics.xm(p, 1, mixed_consts))
        log_xm = np.log(xp) - 2j * np.pi * p
        u_xp = kinematics.u_from_log(xp, np.log(xp), mixed_consts)
        u_xm = kinematics.u_from_log(xm, log_xm, mixed_consts)
        assert_allclose(u_xm, u_xp - 2j / mixed_consts.h, rtol=1e-10)

    def test_scallion_curve_rr(self, rr_consts):
        """At k = 0, U(q, 0) = 2 cos(π q) along the unit circle."""
        q = np.linspace(0.05, 0.95, 10)
        assert_allclose(np.abs(kinematics.real_momentum_xp(q, 0, rr_consts)), 1.0)
        assert_allclose(kinematics.real_momentum_u(q, 0, rr_consts), 2 * np.cos(np.pi * q),
                        atol=1e-12)

    def test_real_momentum_imaginary_part(self, mixed_consts):
        """Im u(X+(q, m)) = m/h."""
        q = np.linspace(0.1, 0.6, 6)
        for m in (1, 2, 3):
            xp = kinematics.real_momentum_xp(q, m, mixed_consts)
            assert_allclose(kinematics.u_of_x(xp, mixed_consts).imag, m / mixed_consts.h,
                            atol=1e-10)


@pytest.mark.unit
class TestContinuedBranches:
    """Test branch continuation helpers."""

    def test_continued_sqrt_follows_reference(self):
        assert_allclose(kinematics.continued_sqrt(-1 + 1e-3j, 1j), np.sqrt(-1 + 1e-3j))
        assert_allclose(kinematics.continued_sqrt(-1 - 1e-3j, 1j), -np.sqrt(-1 - 1e-3j))

    def test_continued_log_follows_reference(self):
        z = -1 - 1e-3j
        continued = kinematics.continued_log(z, 3.1j)
        assert_allclose(continued, np.log(z) + 2j * np.pi)
        assert kinematics.log_branch_of(continued, z) == 1

    def test_e_branch_of(self, mixed_consts):
        p = 0.3 + 0.1j
        energy = complex(kinematics.en(p, 1, mixed_consts))
        assert kinematics.e_branch_of(energy, p, 1, mixed_consts) == 1
        assert kinematics.e_branch_of(-energy, p, 1, mixed_consts) == -1

    def test_bound_state_dispersion(self):
        consts = CouplingConstants(h=1.5, k=3)
        p = 0.4 + 0.2j
        expected = (2 + 3 * p) ** 2 + 4 * 1.5 ** 2 * np.sin(np.pi * p) ** 2
        assert_allclose(kinematics.bound_state_en2(p, 2, consts), expected)
