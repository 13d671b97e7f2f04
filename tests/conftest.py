"""
Pytest configuration for PXU Solver test suite.
"""

import pytest
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from pxu_solver.core.parameters import CouplingConstants
from pxu_solver.core.engine import PxuEngine
from pxu_solver.geometry.contours import Contours


def pytest_configure(config):
    """Called after command line options have been parsed."""
    # Add markers for test organization
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


@pytest.fixture
def rr_consts():
    """Pure RR coupling (k = 0), where x(u) is the Zhukovsky map."""
    return CouplingConstants(h=1.0, k=0, m=1)


@pytest.fixture
def mixed_consts():
    """Generic mixed-flux coupling."""
    return CouplingConstants(h=2.0, k=5, m=1)


@pytest.fixture(scope="module")
def rr_contours():
    """Contours at h = 1, k = 0 (shared within a module)."""
    return Contours(CouplingConstants(h=1.0, k=0))


@pytest.fixture(scope="module")
def mixed_contours():
    """Contours at h = 2, k = 5 (shared within a module)."""
    return Contours(CouplingConstants(h=2.0, k=5))


@pytest.fixture(scope="session")
def engine():
    """Engine with default settings; caches contours across tests."""
    return PxuEngine()
