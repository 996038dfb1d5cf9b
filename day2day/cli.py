"""
day2day Command Line Interface

Usage:
    python -m day2day <command> [args]

Commands:
    runmean     Rolling mean of a column, per signal
    summarize   Write a summary of the data files in a folder
    simulate    Simulate a dataset from parameter formulas

Examples:
    python -m day2day runmean -i observations.parquet --width 7 --group-by signal_id -o smoothed.parquet
    python -m day2day summarize -p data/ -o data/summary.txt
    python -m day2day simulate --formula "mean=1 + 2 * x1" --formula "sd=1" -n 500 --seed 1

SafeCLI:
    Standardized argument handling with safety checks:
    1. Named arguments (no positional ambiguity)
    2. Input path validation (must exist)
    3. Output file protection (can't overwrite inputs)
    4. Overwrite confirmation for non-default outputs
    5. Clear help text with INPUT/OUTPUT labels
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Set

from day2day import __version__

logger = logging.getLogger(__name__)


# ============================================================
# SAFE CLI
# ============================================================

class SafeCLI:
    """
    Safe command-line interface with input/output validation.

    Prevents accidental data destruction by:
    - Validating input paths exist
    - Preventing output from overwriting inputs
    - Confirming overwrites of existing files
    """

    def __init__(
        self,
        description: str,
        allow_overwrite: bool = False,
        parser: Optional[argparse.ArgumentParser] = None,
    ):
        """
        Initialize CLI parser.

        Args:
            description: Program description for --help
            allow_overwrite: If True, skip overwrite confirmation (for scripts)
            parser: Existing (sub)parser to decorate instead of a new one
        """
        self.parser = parser or argparse.ArgumentParser(
            description=description,
            formatter_class=argparse.RawDescriptionHelpFormatter
        )
        self.inputs: List[str] = []
        self.outputs: List[str] = []
        self.defaults: Dict[str, str] = {}
        self.allow_overwrite = allow_overwrite

        self.parser.add_argument(
            '-y', '--yes',
            action='store_true',
            help='Skip confirmation prompts (for automated scripts)'
        )
        self.parser.add_argument(
            '-q', '--quiet',
            action='store_true',
            help='Only log warnings and errors'
        )
        self.parser.add_argument(
            '--config',
            metavar='FILE',
            default=None,
            help='Config file (default: $DAY2DAY_CONFIG, ./config/day2day.yaml, packaged)'
        )
        self.parser.add_argument(
            '--profile',
            default=None,
            help='Config profile to apply'
        )

    def add_input(
        self,
        name: str,
        flag: Optional[str] = None,
        help: str = '',
        required: bool = True,
        metavar: str = 'FILE',
    ):
        """
        Add an input path argument.

        Args:
            name: Argument name (e.g., 'input')
            flag: Optional short flag (e.g., '-i')
            help: Help text
            required: Whether argument is required
            metavar: Placeholder shown in --help
        """
        self.inputs.append(name)

        flag_name = f"--{name.replace('_', '-')}"
        flags = [flag, flag_name] if flag else [flag_name]

        self.parser.add_argument(
            *flags,
            dest=name,
            required=required,
            metavar=metavar,
            help=f'[INPUT] {help}'
        )

    def add_output(
        self,
        name: str = 'output',
        default: Optional[str] = None,
        help: str = ''
    ):
        """
        Add an output file argument.

        Args:
            name: Argument name
            default: Default output filename (None = resolved by the command)
            help: Help text (auto-generated if empty)
        """
        self.outputs.append(name)
        self.defaults[name] = default

        if not help:
            help = f'Output path (default: {default})'

        flags = ['-o', '--output'] if name == 'output' else [f"--{name.replace('_', '-')}"]
        self.parser.add_argument(
            *flags,
            dest=name,
            default=default,
            metavar='FILE',
            help=f'[OUTPUT] {help}'
        )

    def add_flag(self, name: str, help: str = '', short: Optional[str] = None):
        """Add a boolean flag."""
        flags = [f'--{name.replace("_", "-")}']
        if short:
            flags.insert(0, short)
        self.parser.add_argument(*flags, dest=name, action='store_true', help=help)

    def add_option(
        self,
        name: str,
        default=None,
        type=str,
        help: str = '',
        choices: Optional[List] = None,
        short: Optional[str] = None,
        **kwargs,
    ):
        """Add an option with a value."""
        flags = [f'--{name.replace("_", "-")}']
        if short:
            flags.insert(0, short)
        self.parser.add_argument(
            *flags,
            dest=name,
            default=default,
            type=type,
            choices=choices,
            help=help,
            **kwargs,
        )

    def parse(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        """Parse arguments and run the safety validation."""
        return self.validate(self.parser.parse_args(args))

    def validate(self, parsed: argparse.Namespace) -> argparse.Namespace:
        """
        Validate parsed arguments.

        Raises:
            SystemExit: On validation failure
        """
        input_paths: Set[str] = set()
        for input_name in self.inputs:
            path = getattr(parsed, input_name, None)
            if path:
                input_paths.add(str(Path(path).resolve()))
                if not Path(path).exists():
                    self._error(f"Input not found: {path}")

        for output_name in self.outputs:
            path = getattr(parsed, output_name, None)
            if path:
                abs_path = str(Path(path).resolve())

                if abs_path in input_paths:
                    self._error(
                        f"Output '{path}' matches an input file!\n"
                        f"       This would destroy your input data.\n"
                        f"       Use -o/--output to specify a different output path."
                    )

                default = self.defaults.get(output_name)
                if (
                    Path(path).exists()
                    and path != default
                    and not self.allow_overwrite
                    and not parsed.yes
                ):
                    self._confirm_overwrite(path)

        return parsed

    def _error(self, message: str):
        """Print error and exit."""
        print(f"\nERROR: {message}", file=sys.stderr)
        sys.exit(1)

    def _confirm_overwrite(self, path: str):
        """Ask user to confirm overwrite."""
        print(f"\nWARNING: Output file '{path}' already exists.")
        try:
            response = input("   Overwrite? [y/N]: ")
            if response.lower() != 'y':
                print("   Aborted.")
                sys.exit(0)
        except EOFError:
            self._error(
                f"Output file '{path}' exists and running non-interactively.\n"
                f"       Use -y/--yes to overwrite, or choose a different output path."
            )


# ============================================================
# COMMANDS
# ============================================================

def _load_config(args):
    from day2day.config import load_config
    return load_config(path=args.config, profile=args.profile)


def parse_assignment(text: str):
    """Split 'name=expression' into its parts."""
    if '=' not in text:
        raise argparse.ArgumentTypeError(f"expected NAME=EXPR, got {text!r}")
    name, expr = text.split('=', 1)
    return name.strip(), expr.strip()


def cmd_runmean(args) -> int:
    """Rolling mean of a column."""
    from day2day.db import read_table, write_parquet_atomic
    from day2day.engines.frame import rolling_mean_frame

    config = _load_config(args)
    kwargs = config.runmean.as_kwargs()
    if args.align:
        kwargs['align'] = args.align
    if args.boundary:
        kwargs['boundary'] = args.boundary
    if args.skipna:
        kwargs['skipna'] = True

    df = read_table(args.input)
    logger.info(f"Loaded {len(df):,} rows from {args.input}")

    result = rolling_mean_frame(
        df,
        width=args.width,
        value_col=args.column,
        group_cols=args.group_by,
        order_col=args.order_by,
        output_col=args.output_column,
        **kwargs,
    )

    rows = write_parquet_atomic(result, args.output)
    logger.info(f"Wrote {rows:,} rows to {args.output}")
    return 0


def cmd_summarize(args) -> int:
    """Summarize the data files in a folder."""
    from day2day.db import db_summarize

    config = _load_config(args)
    output = args.output or config.summary.filename
    patterns = args.pattern or config.summary.patterns

    db_summarize(args.path, filename=output, patterns=patterns)
    return 0


def cmd_simulate(args) -> int:
    """Simulate a dataset."""
    from day2day.db import write_parquet_atomic
    from day2day.simulation import msim_model, sim_model

    config = _load_config(args)
    formula = dict(args.formula) if args.formula else None
    simulate = msim_model if args.multivariate else sim_model
    if args.multivariate and formula is None:
        logger.error("--multivariate needs at least one --formula")
        return 1

    data = simulate(
        formula,
        generator=args.generator if args.generator is not None else config.simulation.generator,
        n=args.n if args.n is not None else config.simulation.n,
        seed=args.seed,
        extent=args.extent if args.extent is not None else config.simulation.extent,
    )

    rows = write_parquet_atomic(data, args.output)
    logger.info(f"Wrote {rows:,} simulated rows to {args.output}")
    return 0


# ============================================================
# MAIN CLI
# ============================================================

def build_parser() -> argparse.ArgumentParser:
    """Build the top-level parser with one SafeCLI per command."""
    from day2day.engines.validation import ALIGNMENTS, BOUNDARIES
    from day2day.simulation.generators import GENERATORS

    parser = argparse.ArgumentParser(
        prog='day2day',
        description='day2day running mean, data summaries and simulation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m day2day runmean -i observations.parquet --width 7 -o smoothed.parquet
    python -m day2day summarize -p data/
    python -m day2day simulate --formula "mean=1 + 2 * x1" --formula "sd=1" -n 500
        """,
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # runmean command
    cli = SafeCLI('Rolling mean', parser=subparsers.add_parser(
        'runmean', help='Rolling mean of a column, per signal'))
    cli.add_input('input', '-i', help='Table to smooth (.parquet or .csv)')
    cli.add_output('output', default='rolling_mean.parquet')
    cli.add_option('width', type=int, required=True, short='-w', help='Window width (>= 1)')
    cli.add_option('column', default='value', help='Value column (default: value)')
    cli.add_option('group_by', nargs='+', default=None, help='Columns identifying one signal')
    cli.add_option('order_by', default=None, help='Column giving sample order')
    cli.add_option('output_column', default='rolling_mean', help='Name of the new column')
    cli.add_option('align', choices=list(ALIGNMENTS), help='Window placement (default from config)')
    cli.add_option('boundary', choices=list(BOUNDARIES), help='Boundary policy (default from config)')
    cli.add_flag('skipna', help='Ignore NaN inside each window')
    cli.parser.set_defaults(handler=cmd_runmean, safe_cli=cli)

    # summarize command
    cli = SafeCLI('Data folder summary', parser=subparsers.add_parser(
        'summarize', help='Write a summary of the data files in a folder'))
    cli.add_input('path', '-p', help='Folder with data files', metavar='DIR')
    cli.add_output('output', default=None, help='Summary text file (default from config)')
    cli.add_option('pattern', action='append', help='Glob pattern for data files (repeatable)')
    cli.parser.set_defaults(handler=cmd_summarize, safe_cli=cli)

    # simulate command
    cli = SafeCLI('Dataset simulation', parser=subparsers.add_parser(
        'simulate', help='Simulate a dataset from parameter formulas'))
    cli.add_output('output', default='simulation.parquet')
    cli.add_option('formula', type=parse_assignment, action='append',
                   help='Parameter formula NAME=EXPR (repeatable)')
    cli.add_option('n', type=int, short='-n', help='Number of observations (default from config)')
    cli.add_option('seed', type=int, help='Random seed')
    cli.add_option('generator', choices=sorted(GENERATORS), help='Response generator (default from config)')
    cli.add_option('extent', type=float, help='Spatial extent (default from config)')
    cli.add_flag('multivariate', help='Use the multivariate simulator')
    cli.parser.set_defaults(handler=cmd_simulate, safe_cli=cli)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """day2day CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    args.safe_cli.validate(args)

    from day2day.engines.validation import InvalidArgument

    try:
        return args.handler(args)
    except (InvalidArgument, FileNotFoundError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
