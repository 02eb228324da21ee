import argparse
import logging
import sys
from pathlib import Path

import matplotlib.pyplot as plt

from .export import default_export_path, load_reference_polar, write_multi_polar_csv, write_polar_csv
from .params import FlowSettings, NacaParams
from .panel_solver import build_system, solve_panel
from .plotting import plot_cp, plot_polar
from .polar import compute_multi_polar_sweeps, default_polar_sweep, sweep


def parse_float_list(text):
    try:
        values = [float(v) for v in text.split(",") if v.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected comma-separated numbers, got {text!r}")
    if not values:
        raise argparse.ArgumentTypeError("expected at least one value")
    return values


def build_parser():
    a0, a1, da = default_polar_sweep()
    parser = argparse.ArgumentParser(
        prog="foilpolar",
        description="Panel + Thwaites polar sweep for NACA 4-digit sections, exported as CSV.",
    )
    parser.add_argument("naca", nargs="?", default="2412", help="4-digit NACA code (default 2412)")
    parser.add_argument("--re", type=parse_float_list, default=[1_000_000.0],
                        help="Reynolds number(s), comma-separated")
    parser.add_argument("--mach", type=parse_float_list, default=[0.10], help="Mach number(s), comma-separated")
    parser.add_argument("--inviscid", action="store_true", help="skip the boundary-layer estimate")
    parser.add_argument("--forced-transition", action="store_true", help="trip the boundary layer at 5%% chord")
    parser.add_argument("--alpha-min", type=float, default=a0)
    parser.add_argument("--alpha-max", type=float, default=a1)
    parser.add_argument("--alpha-step", type=float, default=da)
    parser.add_argument("--threads", type=int, default=1)
    parser.add_argument("--num-points", type=int, default=160, help="surface points per side")
    parser.add_argument("--out", type=Path, default=None, help="output CSV path")
    parser.add_argument("--plot", type=Path, default=None, metavar="DIR", help="save polar and Cp plots to DIR")
    parser.add_argument("--reference", type=Path, default=None, help="reference 'alpha cl cd' table for plots")
    parser.add_argument("--verbose", action="store_true", help="print every polar row")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.debug:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    params = NacaParams.from_naca4(args.naca, num_points=args.num_points)
    if params is None:
        parser.error(f"invalid NACA 4-digit code: {args.naca!r}")

    flows = [
        FlowSettings(
            alpha_deg=0.0,
            reynolds=re,
            mach=mach,
            viscous=not args.inviscid,
            free_transition=not args.forced_transition,
        )
        for re in args.re
        for mach in args.mach
    ]

    print(f"\n{'='*60}")
    print(f"NACA {params.code()}: alpha {args.alpha_min:g}..{args.alpha_max:g} step {args.alpha_step:g}, "
          f"{len(flows)} flow condition(s)")
    print(f"{'='*60}")

    try:
        if len(flows) == 1:
            flow = flows[0]
            rows = sweep(params, flow, args.alpha_min, args.alpha_max, args.alpha_step, threads=args.threads)
            path = args.out if args.out is not None else default_export_path(params, flow)
            write_polar_csv(path, rows, flow)
            sweeps = [(flow, rows)]
        else:
            sweeps = compute_multi_polar_sweeps(
                params, flows, args.alpha_min, args.alpha_max, args.alpha_step, threads=args.threads
            )
            path = args.out if args.out is not None else Path("exports") / "multi_polars.csv"
            write_multi_polar_csv(path, sweeps)
    except OSError as e:
        print(f"failed to write output: {e}", file=sys.stderr)
        return 1

    if args.verbose:
        for flow, rows in sweeps:
            print(f"  Re = {flow.reynolds:.0f}, M = {flow.mach:.2f}")
            for r in rows:
                cd = "--" if r.cd_profile is None else f"{r.cd_profile:.5f}"
                flag = " (stall)" if r.probable_stall else ""
                print(f"  AoA = {r.alpha_deg:+.1f}°: Cl = {r.cl:.4f}, Cm = {r.cm_c4:.4f}, Cd = {cd}{flag}")

    total_rows = sum(len(rows) for _, rows in sweeps)
    print(f"saved {total_rows} rows to {path}")

    if args.plot is not None:
        reference = load_reference_polar(args.reference) if args.reference else None
        flow, rows = sweeps[0]
        figs = plot_polar(rows, reference, naca_code=params.code(), Re=int(flow.reynolds), output_dir=args.plot)
        system = build_system(params)
        for alpha in (args.alpha_min, 0.0, args.alpha_max):
            solution = solve_panel(params, alpha, system=system)
            if not solution.is_fallback:
                figs.append(plot_cp(solution, naca_code=params.code(), output_dir=args.plot))
        for fig in figs:
            plt.close(fig)
        print(f"Saved plots to {args.plot.resolve()}")

    return 0
