"""
Exception hierarchy of the PXU solver.

Every failure of a query or command is raised as a subclass of PxuError.
States are immutable, so a raised error always leaves the caller holding
its previous, fully valid state.
"""


class PxuError(Exception):
    """Base class for all solver errors."""


class DomainError(PxuError, ValueError):
    """The requested value is outside the domain of a plane relation."""


class ConvergenceError(PxuError, RuntimeError):
    """Root finding during continuation failed within its budget."""


# Drags report failures under this name
ContinuationError = ConvergenceError


class InconsistentSheetError(PxuError, RuntimeError):
    """
    A cut crossing lands in an unsupported sheet configuration.

    Raised for transitions that have no counterpart in the crossing rule
    and for crossings of coincident cuts (k = 1, 2), which cannot be
    ordered reliably.
    """


class PreconditionError(PxuError):
    """A structural operation was attempted in a state that forbids it."""
