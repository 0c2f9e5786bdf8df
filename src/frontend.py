"""
Frontend module for the STM abort sweep harness.

This module handles command-line argument parsing and recipe YAML loading,
builds the SweepParameters and drives the sweep:

    [STEP 1] run every (conflict, threads) cell through the workload
    [STEP 2] extract summary_matrix.tsv and summary_rates.tsv
    [STEP 3] write report.md

Exit status is 0 on success and 1 if any cell fails; the error message names
the failing cell so it can be re-run on its own.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from builders.command_builders import format_command, parse_workload
from config import (
    DEFAULT_CONFLICTS,
    DEFAULT_NICENESS,
    DEFAULT_OPS,
    DEFAULT_OUT_ROOT,
    DEFAULT_SEED,
    DEFAULT_THREADS,
    DEFAULT_WORKLOAD,
    SweepRecipe,
    load_recipe,
)
from core.aggregator import aggregate_sweep
from core.errors import SweepError
from core.manager import SweepController
from models.sweep import SweepParameters
from reporting.artifacts import cell_ops_from_manifest, read_sweep_json
from reporting.reporter import format_rate_table, generate_sweep_report


def parse_int_list(value: str) -> List[int]:
    """Parse "1,2,4,8" into [1, 2, 4, 8]."""
    try:
        return [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected comma separated integers, got '{value}'")


def parse_str_list(value: str) -> List[str]:
    """Parse "low,med,high" into ["low", "med", "high"]."""
    return [part.strip() for part in value.split(",") if part.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sweep the STM abort workload over conflict levels and thread counts"
    )
    parser.add_argument("--recipe", help="Recipe YAML file with sweep settings")
    parser.add_argument("--threads", type=parse_int_list, help=f"Thread counts (default: {DEFAULT_THREADS})")
    parser.add_argument("--conflicts", type=parse_str_list, help=f"Conflict labels (default: {DEFAULT_CONFLICTS})")
    parser.add_argument("--ops", type=int, help=f"Operations per run (default: {DEFAULT_OPS})")
    parser.add_argument("--seed", type=int, help=f"Random seed (default: {DEFAULT_SEED})")
    parser.add_argument("--out", help=f"Output root (default: {DEFAULT_OUT_ROOT})")
    parser.add_argument("--workload", help=f"Workload command (default: {DEFAULT_WORKLOAD})")
    parser.add_argument("--niceness", type=int, help=f"nice value for the workload (default: {DEFAULT_NICENESS})")
    parser.add_argument(
        "--no-isolation", dest="isolate", action="store_false", default=None,
        help="Run the workload without nice/taskset",
    )
    parser.add_argument("--output-dir-flag", help="Flag used to pass the cell working directory to the workload")
    parser.add_argument("--work-root", help="Parent directory for per-cell temporary working directories")
    parser.add_argument("--shared-work-dir", help="Run every cell in this fixed directory instead")
    parser.add_argument("--timeout", type=float, help="Per-run timeout in seconds (default: none)")
    parser.add_argument("--aggregate-only", action="store_true", help="Only rebuild the tables of an existing output root")
    parser.add_argument("--dry-run", action="store_true", help="Print the planned cells and commands without running")
    parser.add_argument("--no-report", action="store_true", help="Do not write report.md")
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug output")
    return parser


def _pick(cli_value, recipe_value, default):
    if cli_value is not None:
        return cli_value
    if recipe_value is not None:
        return recipe_value
    return default


def build_params(args: argparse.Namespace, recipe: Optional[SweepRecipe] = None) -> SweepParameters:
    """
    Merge defaults, recipe and command line into SweepParameters.

    Command line flags win over the recipe, which wins over the defaults.
    """
    recipe = recipe or SweepRecipe()
    work_root = _pick(args.work_root, recipe.work_root, None)
    shared = _pick(args.shared_work_dir, recipe.shared_work_dir, None)
    return SweepParameters(
        threads=list(_pick(args.threads, recipe.threads, DEFAULT_THREADS)),
        conflicts=list(_pick(args.conflicts, recipe.conflicts, DEFAULT_CONFLICTS)),
        ops=_pick(args.ops, recipe.ops, DEFAULT_OPS),
        seed=_pick(args.seed, recipe.seed, DEFAULT_SEED),
        out_root=Path(_pick(args.out, recipe.out, DEFAULT_OUT_ROOT)),
        workload=parse_workload(_pick(args.workload, recipe.workload, DEFAULT_WORKLOAD)),
        niceness=_pick(args.niceness, recipe.niceness, DEFAULT_NICENESS),
        isolate=_pick(args.isolate, recipe.isolate, True),
        output_dir_flag=_pick(args.output_dir_flag, recipe.output_dir_flag, None),
        work_root=Path(work_root) if work_root else None,
        shared_work_dir=Path(shared) if shared else None,
        timeout_s=_pick(args.timeout, recipe.timeout, None),
    )


def cmd_dry_run(params: SweepParameters) -> int:
    """Print the sweep plan."""
    controller = SweepController(params)
    plan = controller.plan()
    print(f"[DRY RUN] {len(plan)} cell(s), output root {params.out_root}")
    for cell, cmd in plan:
        print(f"  {cell.dest_dir(params.out_root)}")
        print(f"    {format_command(cmd)}")
    return 0


def cmd_aggregate(params: SweepParameters, write_report: bool = True) -> int:
    """Build the summary and rate tables (and report) for params.out_root."""
    out_root = params.out_root
    if not out_root.is_dir():
        print(f"[ERROR] Output root not found: {out_root}", file=sys.stderr)
        return 1

    manifest = read_sweep_json(out_root)
    ops = params.ops
    if manifest and manifest.get("params", {}).get("ops"):
        ops = int(manifest["params"]["ops"])

    cell_ops = cell_ops_from_manifest(manifest)
    tables = aggregate_sweep(out_root, ops, cell_ops)
    unrecorded = [r.cell.label for r in tables["rate_rows"] if r.cell not in cell_ops]
    if unrecorded:
        print(f"[WARNING] No ops recorded in sweep.json for {len(unrecorded)} cell(s), assuming ops={ops}:")
        for label in unrecorded:
            print(f"    {label}")
    print(f"  ✓ {tables['matrix_table']} ({len(tables['matrix_rows'])} rows)")
    print(f"  ✓ {tables['rate_table']} ({len(tables['rate_rows'])} rows)")
    print()
    print(format_rate_table(tables["rate_rows"]))

    if write_report:
        report = generate_sweep_report(out_root, tables["rate_rows"], manifest)
        print(f"\n  ✓ {report}")
    return 0


def cmd_run(params: SweepParameters, write_report: bool = True, debug: bool = False) -> int:
    """Run the sweep, then aggregate it."""
    cells = params.cells()
    print(f"\n[STEP 1] Running {len(cells)} cell(s) into {params.out_root}")
    controller = SweepController(params, debug=debug)
    result = controller.run()
    print(f"[OK] {len(result.cells)} cell(s) completed")

    print("\n[STEP 2] Aggregating summaries...")
    return cmd_aggregate(params, write_report=write_report)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        recipe = load_recipe(args.recipe) if args.recipe else None
        params = build_params(args, recipe)
        params.validate()
    except (FileNotFoundError, ValueError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 2

    if args.debug:
        print(f"[DEBUG] Parameters: {params.to_dict()}")

    try:
        if args.dry_run:
            return cmd_dry_run(params)
        if args.aggregate_only:
            return cmd_aggregate(params, write_report=not args.no_report)
        return cmd_run(params, write_report=not args.no_report, debug=args.debug)
    except SweepError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\n[STOPPED] Sweep interrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
