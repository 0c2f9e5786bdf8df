"""
Runner module for invoking the workload of a single sweep cell.

The RunInvoker starts the workload with its isolation prefix (priority and
CPU affinity) in the cell's working directory and blocks until it exits.
It does not look at the artifacts the workload writes.
"""

import os
import shutil
import subprocess
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from builders.command_builders import ISOLATION_TOOLS, build_cell_command, format_command
from core.errors import LaunchError
from models.sweep import RunResult, SweepCell, SweepParameters


def resolve_workload(workload: List[str], base_dir: Optional[Path] = None) -> List[str]:
    """
    Make a relative workload path absolute.

    The workload runs inside the cell's working directory, so a path such as
    "target/release/examples/stm_abort" has to be anchored to the directory
    the harness was started from. Bare command names are looked up on PATH
    by the OS and are returned unchanged.
    """
    if not workload:
        return workload
    executable = workload[0]
    if os.sep in executable and not os.path.isabs(executable):
        base = Path(base_dir) if base_dir else Path.cwd()
        executable = str((base / executable).resolve())
    return [executable] + list(workload[1:])


def has_priority_privilege() -> bool:
    """Return True if this process may run workloads with a negative nice value."""
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


class RunInvoker:
    """
    Launches the workload for one cell at a time.

    Any failure to start, a timeout or a non-zero exit status raises
    LaunchError; a sweep never continues past a failed cell.
    """

    def __init__(self, params: SweepParameters, debug: bool = False):
        self.params = params
        self.debug = debug
        self.workload = resolve_workload(params.workload)

    def check_isolation_tools(self) -> None:
        """Fail early if nice/taskset are missing; warn if the priority cannot be raised."""
        if not self.params.isolate:
            return
        missing = [tool for tool in ISOLATION_TOOLS if shutil.which(tool) is None]
        if missing:
            raise LaunchError(
                f"Isolation tool(s) not found on PATH: {', '.join(missing)} "
                "(use --no-isolation to run without priority/affinity control)"
            )
        # Unprivileged nice prints a warning and runs the workload at normal priority
        if self.params.niceness < 0 and not has_priority_privilege():
            print(
                f"[WARNING] niceness {self.params.niceness} needs root; "
                "workloads will run at normal priority (use --niceness 0 to silence)",
                file=sys.stderr,
            )

    def build_command(self, cell: SweepCell, work_dir: Path) -> List[str]:
        return build_cell_command(cell, replace(self.params, workload=self.workload), work_dir)

    def run(self, cell: SweepCell, work_dir: Path) -> RunResult:
        """
        Run the workload for a cell and wait for it to finish.

        Args:
            cell: Sweep cell to run
            work_dir: Working directory the workload writes its artifacts to

        Returns:
            RunResult of the successful invocation

        Raises:
            LaunchError: if the process cannot start, times out or exits non-zero
        """
        cmd = self.build_command(cell, work_dir)
        if self.debug:
            print(f"[DEBUG] cwd={work_dir}")
            print(f"[DEBUG] cmd={format_command(cmd)}")

        start = time.time()
        try:
            proc = subprocess.run(cmd, cwd=str(work_dir), timeout=self.params.timeout_s)
        except FileNotFoundError as e:
            raise LaunchError(f"Workload could not be started: {e}", cell) from e
        except subprocess.TimeoutExpired as e:
            raise LaunchError(
                f"Workload did not finish within {self.params.timeout_s}s", cell
            ) from e
        except OSError as e:
            raise LaunchError(f"Workload could not be started: {e}", cell) from e
        duration = time.time() - start

        if proc.returncode != 0:
            raise LaunchError(
                f"Workload exited with status {proc.returncode}: {format_command(cmd)}",
                cell,
                returncode=proc.returncode,
            )

        return RunResult(
            cell=cell,
            command=cmd,
            returncode=proc.returncode,
            duration_s=duration,
            work_dir=Path(work_dir),
        )
