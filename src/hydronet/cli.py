import argparse
import logging
import shlex
import sys

from hydronet.core.errors import HydroNetError
from hydronet.core.parameters import default_options, validate_and_store

EXAMPLE = (
    "hydronet run my_output.xml --t9-0 10 --rho-0 1e8 --rho-1 9e7 "
    "--tau 0.1 --delta 0.1 --tend 10 --steps 20 --mass-fraction he4=1"
)

# Command-line flag -> run parameter
_RUN_OPTIONS = {
    "t9_0": ("--t9-0", float, "Initial T (in 10^9 K)"),
    "rho_0": ("--rho-0", float, "Initial density (g/cm^3)"),
    "rho_1": ("--rho-1", float, "Exponentially decaying density component (g/cm^3), < rho_0"),
    "tau": ("--tau", float, "Expansion timescale (s)"),
    "delta": ("--delta", float, "Cutoff time (s)"),
    "root_factor": ("--root-factor", float, "Root bracket expansion factor"),
    "time": ("--time", float, "Initial time (s)"),
    "dtime": ("--dtime", float, "Initial timestep (s)"),
    "tend": ("--tend", float, "End time (s)"),
    "steps": ("--steps", int, "Dump every this many steps"),
}


class ResponseFileParser(argparse.ArgumentParser):
    """Parser whose @file lines are split like a shell command line."""

    def convert_arg_line_to_args(self, arg_line):
        return shlex.split(arg_line)


def build_parser() -> argparse.ArgumentParser:
    parser = ResponseFileParser(
        prog="hydronet",
        description="Network calculation along an expansion trajectory with entropy generation",
        fromfile_prefix_chars="@",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Subcommand: run
    parser_run = subparsers.add_parser(
        "run", help="Integrate a trajectory and write zone snapshots"
    )
    parser_run.add_argument("output_xml", help="Output zone-data XML file")
    for dest, (flag, kind, text) in _RUN_OPTIONS.items():
        parser_run.add_argument(flag, dest=dest, type=kind, default=None, help=text)
    parser_run.add_argument("--t9-guess", dest="t9_guess", choices=("yes", "no"), default=None,
                            help="Extrapolate T9 for the root-find guess (default: yes)")
    parser_run.add_argument("--observe", choices=("yes", "no"), default=None,
                            help="Print every right-hand-side evaluation (default: no)")

    composition = parser_run.add_mutually_exclusive_group()
    composition.add_argument("--mass-fraction", dest="mass_fractions", action="append",
                             metavar="NAME=X", help="Initial mass fraction (repeatable)")
    composition.add_argument("--zone-xml", metavar="FILE",
                             help="Take the initial composition from the last zone of FILE")

    parser_run.add_argument("--sdot-nuclides", nargs="+", metavar="NAME", default=None,
                            help="Nuclides for entropy generation (default: evolution network)")
    parser_run.add_argument("--sdot-reactions", nargs="+", metavar="REACTION", default=None,
                            help="Reactions for entropy generation, e.g. 'c12 + he4 -> o16'")
    parser_run.add_argument("--history-csv", metavar="FILE", help="Write the step history to FILE")
    parser_run.add_argument("--plot", metavar="FILE", help="Save a trajectory figure to FILE")
    parser_run.add_argument("--output-every-dump", action="store_true",
                            help="Rewrite the output file at every dump")
    parser_run.add_argument("--quiet", action="store_true", help="Suppress progress output")
    parser_run.add_argument("--debug", action="store_true", help="Enable debug logging")

    # Subcommand: example
    subparsers.add_parser("example", help="Print an example command line")

    # Subcommand: options
    subparsers.add_parser("options", help="Print the default run parameters")

    return parser


def raw_options(args: argparse.Namespace) -> dict:
    """Run-parameter options given on the command line."""
    options = {dest: getattr(args, dest) for dest in _RUN_OPTIONS}
    options["t9_guess"] = args.t9_guess
    options["observe"] = args.observe
    options["sdot_nuclides"] = args.sdot_nuclides
    options["sdot_reactions"] = args.sdot_reactions
    if args.output_every_dump:
        options["output_every_dump"] = True

    if args.zone_xml:
        from hydronet.io.snapshots import initial_mass_fractions
        options["mass_fractions"] = initial_mass_fractions(args.zone_xml)
    else:
        options["mass_fractions"] = args.mass_fractions

    return {name: value for name, value in options.items() if value is not None}


def run_command(args: argparse.Namespace) -> int:
    params = validate_and_store(raw_options(args))

    if args.debug:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    from hydronet.hydro.driver import HydroNetworkDriver
    driver = HydroNetworkDriver(params, output_path=args.output_xml, verbose=not args.quiet)
    result = driver.run()

    if args.history_csv:
        result.history.to_csv(args.history_csv, index=False)
    if args.plot:
        import matplotlib
        matplotlib.use("Agg")
        from hydronet.visuals.trajectory_plots import plot_trajectory
        plot_trajectory(result.history, save_path=args.plot, title=args.output_xml)
    if not args.quiet:
        print(f"[SAVED] {args.output_xml}")
    return 0


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "run":
            return run_command(args)

        elif args.command == "example":
            print(EXAMPLE)
            return 0

        elif args.command == "options":
            print("Run parameters (defaults):")
            for name, value in default_options().items():
                if name == "mass_fractions":
                    value = " ".join(f"{k}={v:g}" for k, v in value.items())
                print(f"  {name:<20s} {value}")
            return 0

        else:
            parser.print_help()
            return 0

    except HydroNetError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
