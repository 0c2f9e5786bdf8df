#!/usr/bin/env python3
"""
Manager module for the STM abort sweep harness.

The SweepController is responsible for:
- Enumerating the (conflict x threads) matrix in a fixed order
- Preparing an isolated working directory for every cell
- Running the workload through the RunInvoker
- Relocating the artifacts through the collector
- Writing the sweep manifest (sweep.json)

Cells run strictly one after another and the first failure ends the sweep.
"""

import tempfile
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from builders.command_builders import build_affinity_mask, format_cpu_range
from core.collector import check_no_stale_artifacts, collect_cell_artifacts
from core.errors import SweepError
from core.runner import RunInvoker
from models.sweep import CellRecord, SweepCell, SweepParameters, SweepResult
from reporting.artifacts import read_sweep_json, write_sweep_json


class SweepController:
    """
    Runs every cell of a sweep matrix.

    Conflict labels form the outer loop and thread counts the inner loop,
    both in the order given by the parameters. Exactly one workload process
    is active at any time.
    """

    def __init__(
        self,
        params: SweepParameters,
        invoker: Optional[RunInvoker] = None,
        debug: bool = False,
    ):
        """
        Initialize the controller.

        Args:
            params: Sweep parameters (validated here)
            invoker: RunInvoker to launch the workload (default: built from params)
            debug: Print commands and file moves
        """
        params.validate()
        self.params = params
        self.debug = debug
        self.invoker = invoker or RunInvoker(params, debug=debug)

    @contextmanager
    def _cell_work_dir(self, cell: SweepCell) -> Iterator[Path]:
        """
        Yield the working directory for one invocation.

        By default this is a fresh temporary directory that is removed
        afterwards. In shared mode the fixed directory is reused and checked
        for leftovers first.
        """
        if self.params.shared_work_dir is not None:
            work_dir = self.params.shared_work_dir
            work_dir.mkdir(parents=True, exist_ok=True)
            check_no_stale_artifacts(work_dir, cell)
            yield work_dir
            return

        if self.params.work_root is not None:
            self.params.work_root.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(
            prefix=f"{cell.conflict}_{cell.leaf_name}_",
            dir=str(self.params.work_root) if self.params.work_root else None,
        ) as tmp:
            yield Path(tmp)

    def plan(self) -> List[Tuple[SweepCell, List[str]]]:
        """Return every cell with the command that would be executed for it."""
        placeholder = self.params.shared_work_dir or Path("<cell-work-dir>")
        return [
            (cell, self.invoker.build_command(cell, placeholder))
            for cell in self.params.cells()
        ]

    def run_cell(self, cell: SweepCell) -> CellRecord:
        """
        Run one cell: create its destination, run the workload, move artifacts.

        Raises:
            SweepError: on any launch failure or missing artifact
        """
        dest_dir = cell.dest_dir(self.params.out_root)
        dest_dir.mkdir(parents=True, exist_ok=True)
        mask = build_affinity_mask(cell.threads)

        with self._cell_work_dir(cell) as work_dir:
            result = self.invoker.run(cell, work_dir)
            collected = collect_cell_artifacts(cell, work_dir, dest_dir, debug=self.debug)

        return CellRecord(
            cell=cell,
            dest_dir=dest_dir,
            affinity_mask=mask,
            ops=self.params.ops,
            seed=self.params.seed,
            duration_s=result.duration_s,
            event_log=collected.event_log,
        )

    def run(self) -> SweepResult:
        """
        Run the whole matrix, keeping sweep.json current after every cell.

        Cell records already in out_root/sweep.json are kept for cells this
        sweep does not run and replaced for cells it does.

        Returns:
            SweepResult with one record per cell in execution order

        Raises:
            SweepError: from the first failing cell; later cells are not run
        """
        self.invoker.check_isolation_tools()
        self.params.out_root.mkdir(parents=True, exist_ok=True)

        started_at = datetime.now(timezone.utc)
        previous = read_sweep_json(self.params.out_root)
        result = SweepResult(params=self.params)
        cells = self.params.cells()

        try:
            for i, cell in enumerate(cells, 1):
                print(
                    f"[RUN {i}/{len(cells)}] {cell.label} "
                    f"(cpus {format_cpu_range(cell.threads)}, mask {build_affinity_mask(cell.threads)})"
                )
                record = self.run_cell(cell)
                result.cells.append(record)
                write_sweep_json(result, started_at=started_at, status="running", previous=previous)
                extra = " +events" if record.event_log else ""
                print(f"  ✓ {record.dest_dir} ({record.duration_s:.2f}s{extra})")
        except (SweepError, KeyboardInterrupt):
            if result.cells:
                write_sweep_json(result, started_at=started_at, status="failed", previous=previous)
            raise

        sweep_file = write_sweep_json(result, started_at=started_at, previous=previous)
        if self.debug:
            print(f"[DEBUG] Manifest written to {sweep_file}")

        return result
