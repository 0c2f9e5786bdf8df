"""
Aggregator module for turning relocated summary files into tables.

Two passes over out_root:
- extract_summary_matrix: every summary.txt -> (path, events, aborts),
  written to summary_matrix.tsv
- aggregate_rates: summary.txt files inside <conflict>/t<threads>/ cells ->
  abort rate per cell, sorted and written to summary_rates.tsv
"""

import re
from pathlib import Path
from typing import Dict, List, Optional

from models.sweep import MatrixRow, RateRow, SweepCell
from reporting.artifacts import SUMMARY, read_summary_file


MATRIX_TABLE = "summary_matrix.tsv"
RATE_TABLE = "summary_rates.tsv"

MATRIX_HEADER = ["path", "events", "aborts"]
RATE_HEADER = ["conflict", "threads", "events", "aborts", "rate"]

CELL_DIR_PATTERN = re.compile(r"t(\d+)", re.ASCII)


def find_summary_files(out_root) -> List[Path]:
    """Find every relocated summary file below out_root, in sorted order."""
    out_root = Path(out_root)
    if not out_root.exists():
        return []
    return sorted(p for p in out_root.rglob(SUMMARY.dest) if p.is_file())


def cell_from_path(summary_path: Path) -> Optional[SweepCell]:
    """
    Derive the cell from .../<conflict>/t<threads>/summary.txt.

    Returns:
        SweepCell, or None if the leaf directory is not a t<digits> cell
    """
    leaf = summary_path.parent
    match = CELL_DIR_PATTERN.fullmatch(leaf.name)
    if not match:
        return None
    return SweepCell(conflict=leaf.parent.name, threads=int(match.group(1)))


# =============================================================================
# Summary matrix
# =============================================================================


def extract_summary_matrix(out_root) -> List[MatrixRow]:
    """
    Parse every summary file under out_root.

    Args:
        out_root: Output root of a sweep

    Returns:
        One MatrixRow per summary file

    Raises:
        SummaryParseError: if a summary lacks events_total or aborts
    """
    rows = []
    for path in find_summary_files(out_root):
        record = read_summary_file(path, cell_from_path(path))
        rows.append(MatrixRow(path=str(path), events=record.events_total, aborts=record.aborts))
    return rows


def write_summary_matrix(out_root, rows: List[MatrixRow]) -> Path:
    """Write summary_matrix.tsv and return its path."""
    table = Path(out_root) / MATRIX_TABLE
    with open(table, "w") as f:
        f.write("\t".join(MATRIX_HEADER) + "\n")
        for row in rows:
            f.write(f"{row.path}\t{row.events}\t{row.aborts}\n")
    return table


def read_summary_matrix(table_path) -> List[MatrixRow]:
    """Read summary_matrix.tsv back into MatrixRows."""
    rows = []
    with open(table_path) as f:
        next(f, None)  # header
        for line in f:
            line = line.rstrip("\n")
            if not line:
                continue
            path, events, aborts = line.rsplit("\t", 2)
            rows.append(MatrixRow(path=path, events=int(events), aborts=int(aborts)))
    return rows


# =============================================================================
# Abort rates
# =============================================================================


def aggregate_rates(
    out_root, ops: int, cell_ops: Optional[Dict[SweepCell, int]] = None
) -> List[RateRow]:
    """
    Compute the abort rate of every cell under out_root.

    Summary files whose directory is not named t<digits> are skipped. The
    conflict label is the name of the directory above the cell directory.

    Args:
        out_root: Output root of a sweep
        ops: Operation count each cell ran with
        cell_ops: Per-cell operation counts overriding ops (from sweep.json)

    Returns:
        RateRows sorted by (conflict label, thread count)

    Raises:
        SummaryParseError: if a summary lacks events_total or aborts
    """
    cell_ops = cell_ops or {}
    rows = []
    for path in find_summary_files(out_root):
        cell = cell_from_path(path)
        if cell is None:
            continue
        record = read_summary_file(path, cell)
        rows.append(
            RateRow(
                conflict=cell.conflict,
                threads=cell.threads,
                events=record.events_total,
                aborts=record.aborts,
                ops=cell_ops.get(cell, ops),
            )
        )
    rows.sort(key=lambda r: (r.conflict, r.threads))
    return rows


def format_rate_row(row: RateRow) -> str:
    return f"{row.conflict}\t{row.threads}\t{row.events}\t{row.aborts}\t{row.rate:.6f}"


def write_rate_table(out_root, rows: List[RateRow]) -> Path:
    """Write summary_rates.tsv and return its path."""
    table = Path(out_root) / RATE_TABLE
    with open(table, "w") as f:
        f.write("\t".join(RATE_HEADER) + "\n")
        for row in rows:
            f.write(format_rate_row(row) + "\n")
    return table


def aggregate_sweep(
    out_root, ops: int, cell_ops: Optional[Dict[SweepCell, int]] = None
) -> Dict[str, object]:
    """
    Run both aggregation passes and write both tables.

    Returns:
        Dictionary with the rows and table paths of both passes
    """
    matrix_rows = extract_summary_matrix(out_root)
    matrix_path = write_summary_matrix(out_root, matrix_rows)

    rate_rows = aggregate_rates(out_root, ops, cell_ops)
    rate_path = write_rate_table(out_root, rate_rows)

    return {
        "matrix_rows": matrix_rows,
        "matrix_table": matrix_path,
        "rate_rows": rate_rows,
        "rate_table": rate_path,
    }
