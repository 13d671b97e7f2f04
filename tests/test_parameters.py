"""
Tests for coupling constants, settings and the constants loader.
"""

import dataclasses

import numpy as np
import pytest
from numpy.testing import assert_allclose

from pxu_solver.core.constants import (
    MAX_CONTINUATION_STEPS,
    get_constants_json_path,
    load_constants_from_json,
)
from pxu_solver.core.parameters import CouplingConstants
from pxu_solver.core.settings import SolverSettings
from pxu_solver.core.sheets import Component


@pytest.mark.unit
class TestCouplingConstants:
    """Test CouplingConstants validation and derived quantities."""

    def test_defaults(self):
        consts = CouplingConstants()
        assert consts.h == 1.0
        assert consts.k == 0
        assert consts.m == 1

    def test_integer_fields_normalized(self):
        consts = CouplingConstants(h=2, k=5.0, m=3.0)
        assert isinstance(consts.h, float)
        assert isinstance(consts.k, int)
        assert isinstance(consts.m, int)

    @pytest.mark.parametrize("h", [0.0, -1.0, np.nan, np.inf])
    def test_invalid_h_raises(self, h):
        with pytest.raises(ValueError):
            CouplingConstants(h=h)

    @pytest.mark.parametrize("k", [-1, 2.5])
    def test_invalid_k_raises(self, k):
        with pytest.raises(ValueError):
            CouplingConstants(k=k)

    def test_invalid_m_raises(self):
        with pytest.raises(ValueError):
            CouplingConstants(m=0)

    def test_with_changes_validates(self):
        consts = CouplingConstants(h=2.0, k=5)
        assert consts.with_changes(h=3.0).h == 3.0
        with pytest.raises(ValueError):
            consts.with_changes(h=-3.0)

    def test_rr_values(self):
        """At k = 0 the scallion passes through 1 and us = 2."""
        consts = CouplingConstants(h=0.7, k=0)
        assert_allclose(consts.s, 1.0)
        assert_allclose(consts.us, 2.0)
        assert consts.is_collapsed

    @pytest.mark.parametrize("h,k", [(1.0, 2), (2.0, 5), (0.5, 3)])
    def test_s_relation(self, h, k):
        """s - 1/s = k / (π h)."""
        consts = CouplingConstants(h=h, k=k)
        assert_allclose(consts.s - 1 / consts.s, k / (np.pi * h))
        assert consts.s > 1

    def test_coincident_levels(self):
        assert CouplingConstants(k=1).has_coincident_cuts
        assert CouplingConstants(k=2).has_coincident_cuts
        assert not CouplingConstants(k=3).has_coincident_cuts

    def test_geometry_key_ignores_m(self):
        a = CouplingConstants(h=2.0, k=5, m=1)
        b = CouplingConstants(h=2.0, k=5, m=4)
        assert a.geometry_key() == b.geometry_key()
        assert a != b

    def test_hashable(self):
        cache = {CouplingConstants(h=2.0, k=5): "cached"}
        assert cache[CouplingConstants(h=2.0, k=5)] == "cached"


@pytest.mark.unit
class TestSettings:
    """Test SolverSettings and the JSON constants."""

    def test_defaults_from_json(self):
        settings = SolverSettings()
        assert settings.max_continuation_steps == MAX_CONTINUATION_STEPS
        assert settings.max_continuation_steps == load_constants_from_json()["max_continuation_steps"]

    def test_json_file_exists(self):
        assert get_constants_json_path().exists()

    def test_replace_validates(self):
        settings = SolverSettings()
        with pytest.raises(ValueError):
            dataclasses.replace(settings, min_step=0.0)
        with pytest.raises(ValueError):
            dataclasses.replace(settings, step_safety=1.5)
        with pytest.raises(ValueError):
            dataclasses.replace(settings, max_continuation_steps=0)

    def test_max_step_per_plane(self):
        settings = SolverSettings(max_step_p=0.01, max_step_x=0.2, max_step_u=0.3)
        assert settings.max_step(Component.P) == 0.01
        assert settings.max_step(Component.XP) == 0.2
        assert settings.max_step(Component.XM) == 0.2
        assert settings.max_step(Component.U) == 0.3
