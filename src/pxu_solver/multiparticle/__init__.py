"""
Multi-excitation states and bound states.
"""

from pxu_solver.multiparticle.state import (
    Excitation,
    ExcitationKind,
    ExcitationState,
    canonical_excitations,
    canonical_momentum,
    canonical_single,
)

__all__ = [
    "Excitation",
    "ExcitationKind",
    "ExcitationState",
    "canonical_excitations",
    "canonical_momentum",
    "canonical_single",
]
