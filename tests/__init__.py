"""
PXU Solver Test Suite.

Unit and integration tests for the kinematics, cut geometry, sheet
model, continuation solver and excitation-state commands.
"""
