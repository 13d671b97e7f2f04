"""
Print the canonical bound state and the cut inventory for a coupling.

Builds the canonical M-particle state, optionally drags the first
constituent in a chosen plane, and reports constituents, totals and
cuts as tables.

Usage:
    python scripts/show_bound_state.py --h 2.0 --k 5 --m 3
    python scripts/show_bound_state.py --m 2 --drag-plane U --drag-by 0.3
"""

import argparse
import time

from pxu_solver.core.engine import PxuEngine
from pxu_solver.core.errors import PxuError
from pxu_solver.core.parameters import CouplingConstants
from pxu_solver.core.sheets import Component
from pxu_solver.reporting.state_summary import format_cut_table, format_state_table


def main():
    parser = argparse.ArgumentParser(
        description="Show the canonical PXU bound state for a coupling",
    )
    parser.add_argument("--h", type=float, default=2.0, help="Coupling h")
    parser.add_argument("--k", type=int, default=5, help="WZW level k")
    parser.add_argument("--m", type=int, default=1, help="Number of constituents")
    parser.add_argument("--drag-plane", type=str, choices=[c.name for c in Component],
                        default=None, help="Plane to drag the first constituent in")
    parser.add_argument("--drag-by", type=complex, default=0.1,
                        help="Offset added to the first constituent's coordinate")
    parser.add_argument("--cuts", action="store_true", help="Also print the cut table")
    parser.add_argument("--quiet", action="store_true", help="Reduce output verbosity")
    args = parser.parse_args()

    consts = CouplingConstants(h=args.h, k=args.k, m=args.m)
    engine = PxuEngine(verbose=not args.quiet)

    print("=" * 80)
    print(f"PXU BOUND STATE  {consts!r}")
    print("=" * 80)

    start_time = time.time()
    state = engine.canonical_state(consts)
    print(f"\nCanonical state built in {time.time() - start_time:.3f} s\n")
    print(format_state_table(state))

    if args.drag_plane is not None:
        plane = Component[args.drag_plane]
        target = state.points[0].get(plane) + args.drag_by
        print("\n" + "-" * 80)
        print(f"DRAG constituent 0 in {plane.name} to {target:.4f}")
        print("-" * 80)
        try:
            state = engine.drag(state, 0, plane, target)
        except PxuError as exc:
            print(f"  Drag rejected: {exc}")
        else:
            print(format_state_table(state))

    if args.cuts:
        print("\n" + "-" * 80)
        print("CUTS")
        print("-" * 80)
        print(format_cut_table(engine.contours(consts)))


if __name__ == '__main__':
    main()
