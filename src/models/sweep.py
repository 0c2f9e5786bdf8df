#!/usr/bin/env python3
"""
Sweep data model for the STM abort sweep harness.

This module defines the parameters of a sweep, the cells of its matrix and
the records produced while running and aggregating it. The classes are plain
data containers; the SweepController (core.manager) creates and fills them.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class SweepCell:
    """
    One (conflict label, thread count) combination of the sweep matrix.

    The pair is the cell's identity: it determines both the workload
    arguments and the destination directory ``out_root/conflict/t{threads}``.
    """

    conflict: str
    threads: int

    @property
    def label(self) -> str:
        return f"conflict={self.conflict} threads={self.threads}"

    @property
    def leaf_name(self) -> str:
        return f"t{self.threads}"

    def dest_dir(self, out_root) -> Path:
        """Return the destination directory of this cell under out_root."""
        return Path(out_root) / self.conflict / self.leaf_name


@dataclass
class SweepParameters:
    """
    Parameters of one sweep.

    Thread counts and conflict labels are iterated in the order given here
    (conflict outer, threads inner). Conflict labels are opaque strings.
    """

    threads: List[int]
    conflicts: List[str]
    ops: int
    seed: int
    out_root: Path
    workload: List[str] = field(default_factory=list)  # argv prefix of the workload

    # Process isolation
    niceness: int = -10  # Negative values raise the scheduling priority
    isolate: bool = True  # False launches without nice/taskset

    # Working directory handling
    output_dir_flag: Optional[str] = None  # e.g. "--out-dir" if the workload supports it
    work_root: Optional[Path] = None  # Parent for per-cell temporary directories
    shared_work_dir: Optional[Path] = None  # Legacy fixed working directory

    timeout_s: Optional[float] = None  # None waits forever

    def __post_init__(self):
        self.out_root = Path(self.out_root)
        if self.work_root is not None:
            self.work_root = Path(self.work_root)
        if self.shared_work_dir is not None:
            self.shared_work_dir = Path(self.shared_work_dir)

    def validate(self) -> None:
        """
        Check the parameters before a sweep starts.

        Raises:
            ValueError: if any parameter is out of range
        """
        if not self.threads:
            raise ValueError("At least one thread count is required")
        for t in self.threads:
            if isinstance(t, bool) or not isinstance(t, int) or t < 1:
                raise ValueError(f"Thread counts must be positive integers, got {t!r}")
        if not self.conflicts:
            raise ValueError("At least one conflict label is required")
        for label in self.conflicts:
            if not isinstance(label, str) or not label.strip():
                raise ValueError(f"Conflict labels must be non-empty strings, got {label!r}")
            if os.sep in label or "/" in label or label in (".", ".."):
                raise ValueError(f"Conflict label {label!r} cannot be used as a directory name")
        if len(set(self.conflicts)) != len(self.conflicts):
            raise ValueError(f"Duplicate conflict labels in {self.conflicts}")
        if len(set(self.threads)) != len(self.threads):
            raise ValueError(f"Duplicate thread counts in {self.threads}")
        for name in ("ops", "seed", "niceness"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
        if self.ops < 1:
            raise ValueError(f"Operation count must be >= 1, got {self.ops}")
        if not self.workload:
            raise ValueError("No workload command configured")
        if self.timeout_s is not None and (
            isinstance(self.timeout_s, bool) or not isinstance(self.timeout_s, (int, float))
        ):
            raise ValueError(f"Timeout must be a number, got {self.timeout_s!r}")
        if self.timeout_s is not None and self.timeout_s <= 0:
            raise ValueError(f"Timeout must be positive, got {self.timeout_s}")

    def cells(self) -> List[SweepCell]:
        """Enumerate the matrix, conflict labels outer and thread counts inner."""
        return [
            SweepCell(conflict=conflict, threads=threads)
            for conflict in self.conflicts
            for threads in self.threads
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "threads": list(self.threads),
            "conflicts": list(self.conflicts),
            "ops": self.ops,
            "seed": self.seed,
            "out_root": str(self.out_root),
            "workload": list(self.workload),
            "niceness": self.niceness,
            "isolate": self.isolate,
            "output_dir_flag": self.output_dir_flag,
            "work_root": str(self.work_root) if self.work_root else None,
            "shared_work_dir": str(self.shared_work_dir) if self.shared_work_dir else None,
            "timeout_s": self.timeout_s,
        }


@dataclass
class SummaryRecord:
    """Counters parsed from one summary file."""

    events_total: int
    aborts: int
    idle_total_us: Optional[int] = None
    bytes_h2d: Optional[int] = None
    bytes_d2h: Optional[int] = None


@dataclass
class MatrixRow:
    """A row of summary_matrix.tsv."""

    path: str
    events: int
    aborts: int


@dataclass
class RateRow:
    """A row of summary_rates.tsv."""

    conflict: str
    threads: int
    events: int
    aborts: int
    ops: int

    @property
    def rate(self) -> float:
        return self.aborts / self.ops

    @property
    def cell(self) -> SweepCell:
        return SweepCell(conflict=self.conflict, threads=self.threads)


@dataclass
class RunResult:
    """Outcome of a single workload invocation."""

    cell: SweepCell
    command: List[str]
    returncode: int
    duration_s: float
    work_dir: Path


@dataclass
class CellRecord:
    """What the sweep recorded for one completed cell."""

    cell: SweepCell
    dest_dir: Path
    affinity_mask: str
    ops: int
    seed: int
    duration_s: float
    event_log: bool  # True if the optional raw event log was produced

    def to_dict(self) -> Dict[str, Any]:
        return {
            "conflict": self.cell.conflict,
            "threads": self.cell.threads,
            "dest_dir": str(self.dest_dir),
            "affinity_mask": self.affinity_mask,
            "ops": self.ops,
            "seed": self.seed,
            "duration_s": round(self.duration_s, 6),
            "event_log": self.event_log,
        }


@dataclass
class SweepResult:
    """All cells of a completed sweep, in execution order."""

    params: SweepParameters
    cells: List[CellRecord] = field(default_factory=list)

    def cell_ops(self) -> Dict[SweepCell, int]:
        return {record.cell: record.ops for record in self.cells}
