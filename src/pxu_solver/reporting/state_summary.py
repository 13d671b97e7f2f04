"""
Human-readable summaries of states and cuts.
"""

from dataclasses import dataclass
from typing import List, Optional

from tabulate import tabulate

from pxu_solver.core.sheets import Component
from pxu_solver.geometry.contours import Contours
from pxu_solver.geometry.cut import Cut, LayoutIs
from pxu_solver.multiparticle.state import ExcitationState


def _fmt(z: complex, digits: int = 4) -> str:
    return f"{z.real:.{digits}f}{z.imag:+.{digits}f}i"


def _layout(cut: Cut) -> str:
    for condition in cut.visibility:
        if isinstance(condition, LayoutIs):
            return "long" if condition.long_cuts else "short"
    return "both"


@dataclass(frozen=True)
class StateSummary:
    """Totals of an excitation state."""

    num_excitations: int
    locked: bool
    active: int
    momentum: complex
    energy: complex
    bound_state_defect: float
    related: frozenset


def summarize_state(state: ExcitationState) -> StateSummary:
    active = state.active_point
    related = frozenset(
        index for index, point in enumerate(state.points) if active.same_sheet(point)
    )
    return StateSummary(
        num_excitations=len(state),
        locked=state.locked,
        active=state.active,
        momentum=state.momentum(),
        energy=state.energy(),
        bound_state_defect=state.bound_state_defect(),
        related=related,
    )


def format_state_table(state: ExcitationState, tablefmt: str = "grid") -> str:
    """
    One row per excitation: coordinates on all planes and sheet labels.

    The active excitation is marked with '*', excitations on its sheet
    with '+'.
    """
    summary = summarize_state(state)
    table_data = []
    for index, excitation in enumerate(state.excitations):
        point = excitation.point
        if index == state.active:
            mark = "*"
        elif index in summary.related:
            mark = "+"
        else:
            mark = ""
        table_data.append([
            f"{index}{mark}",
            excitation.kind.value,
            _fmt(point.p),
            _fmt(point.xp),
            _fmt(point.xm),
            _fmt(point.u),
            point.sheet.describe(),
        ])

    headers = ['#', 'Kind', 'p', 'x+', 'x-', 'u', 'Sheet']
    lines = [str(state.consts), tabulate(table_data, headers=headers, tablefmt=tablefmt)]
    lock = "locked" if summary.locked else "unlocked"
    lines.append(
        f"P = {_fmt(summary.momentum)}  E = {_fmt(summary.energy)}  "
        f"defect = {summary.bound_state_defect:.2e}  ({lock})"
    )
    return "\n".join(lines)


def format_cut_table(contours: Contours, plane: Optional[Component] = None,
                     tablefmt: str = "grid") -> str:
    """One row per cut: plane, kind, role, style, layout, samples and branch point."""
    planes: List[Component] = list(Component) if plane is None else [plane]
    table_data = []
    for current in planes:
        for cut in contours.cuts(current):
            table_data.append([
                current.name,
                cut.kind.name,
                cut.role.name if cut.role is not None else "-",
                cut.style.name,
                _layout(cut),
                len(cut.path),
                _fmt(cut.branch_point) if cut.branch_point is not None else "-",
                len(cut.visibility),
            ])

    headers = ['Plane', 'Kind', 'Role', 'Style', 'Layout', 'Samples', 'Branch point', 'Conditions']
    return tabulate(table_data, headers=headers, tablefmt=tablefmt)
