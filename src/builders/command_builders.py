"""
Command builders for the workload invocations of a sweep.

This module turns a sweep cell and the sweep parameters into the actual
argv that is executed: the isolation prefix (scheduling priority and CPU
affinity) followed by the workload command and its arguments.
"""

import shlex
from pathlib import Path
from typing import List, Optional, Sequence, Union

from models.sweep import SweepCell, SweepParameters


# Tools used to isolate the workload process
NICE = "nice"
TASKSET = "taskset"
ISOLATION_TOOLS = (NICE, TASKSET)


# =============================================================================
# AFFINITY MASKS
# =============================================================================


def build_affinity_mask(threads: int) -> str:
    """
    Build the CPU affinity mask that selects the first `threads` logical CPUs.

    Bits 0..threads-1 are set. NUMA topology and hyperthread siblings are
    not taken into account.

    Args:
        threads: Positive thread count of the cell

    Returns:
        Hexadecimal mask as accepted by taskset (e.g. 4 -> "0xf")
    """
    return hex((1 << threads) - 1)


def mask_to_cpus(mask: str) -> List[int]:
    """Return the CPU indices selected by a hexadecimal affinity mask."""
    value = int(mask, 16)
    return [bit for bit in range(value.bit_length()) if value >> bit & 1]


def format_cpu_range(threads: int) -> str:
    """Human readable CPU set of a cell, e.g. "0-3"."""
    return "0" if threads == 1 else f"0-{threads - 1}"


# =============================================================================
# WORKLOAD COMMANDS
# =============================================================================


def parse_workload(workload: Union[str, Sequence[str]]) -> List[str]:
    """
    Normalize a workload setting to an argv prefix.

    A string is split like a shell would ("cargo run --release --example
    stm_abort --"), a sequence is taken as-is.
    """
    if isinstance(workload, str):
        return shlex.split(workload)
    return [str(part) for part in workload]


def build_workload_command(
    workload: Sequence[str],
    cell: SweepCell,
    ops: int,
    seed: int,
    output_dir_flag: Optional[str] = None,
    output_dir: Optional[Path] = None,
) -> List[str]:
    """
    Build the workload argv for one cell.

    Args:
        workload: argv prefix of the workload executable
        cell: Sweep cell (conflict label and thread count)
        ops: Operation count passed through to the workload
        seed: Random seed passed through to the workload
        output_dir_flag: Optional flag telling the workload where to write
        output_dir: Directory passed with output_dir_flag

    Returns:
        List of command arguments
    """
    cmd = list(workload) + [
        "--threads", str(cell.threads),
        "--conflict", cell.conflict,
        "--ops", str(ops),
        "--seed", str(seed),
    ]
    if output_dir_flag and output_dir is not None:
        cmd += [output_dir_flag, str(output_dir)]
    return cmd


def build_isolation_prefix(mask: str, niceness: int) -> List[str]:
    """Build the nice/taskset prefix that applies priority and CPU affinity."""
    return [NICE, "-n", str(niceness), TASKSET, mask]


def build_cell_command(
    cell: SweepCell, params: SweepParameters, work_dir: Optional[Path] = None
) -> List[str]:
    """
    Build the complete argv for one cell, isolation prefix included.

    Args:
        cell: Sweep cell to run
        params: Sweep parameters
        work_dir: Working directory of the cell (passed to the workload only
            when params.output_dir_flag is set)

    Returns:
        List of command arguments
    """
    cmd = build_workload_command(
        params.workload,
        cell,
        params.ops,
        params.seed,
        output_dir_flag=params.output_dir_flag,
        output_dir=work_dir,
    )
    if params.isolate:
        cmd = build_isolation_prefix(build_affinity_mask(cell.threads), params.niceness) + cmd
    return cmd


def format_command(cmd: Sequence[str]) -> str:
    """Render an argv for display."""
    return shlex.join(cmd)
