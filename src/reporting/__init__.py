"""
Reporting and artifact handling for the sweep harness.

Contains:
- artifacts: workload file names, summary parsing, sweep.json
- reporter: console table and Markdown report
"""

from .artifacts import (
    ARTIFACTS,
    MANDATORY_ARTIFACTS,
    parse_summary,
    read_summary_file,
    read_sweep_json,
    write_sweep_json,
)
from .reporter import format_rate_table, generate_sweep_report
