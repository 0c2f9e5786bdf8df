"""
Command builders for the sweep harness.

Contains:
- command_builders: affinity masks and workload command lines
"""

from .command_builders import (
    build_affinity_mask,
    build_cell_command,
    build_isolation_prefix,
    build_workload_command,
    format_command,
    format_cpu_range,
    mask_to_cpus,
    parse_workload,
    ISOLATION_TOOLS,
)
