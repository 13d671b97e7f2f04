"""
Tabular summaries of states and cuts.
"""

from pxu_solver.reporting.state_summary import (
    StateSummary,
    summarize_state,
    format_state_table,
    format_cut_table,
)

__all__ = [
    "StateSummary",
    "summarize_state",
    "format_state_table",
    "format_cut_table",
]
