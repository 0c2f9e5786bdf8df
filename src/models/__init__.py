"""
Data models for the sweep harness.

Contains:
- sweep: sweep parameters, matrix cells and result records
"""

from .sweep import (
    CellRecord,
    MatrixRow,
    RateRow,
    RunResult,
    SummaryRecord,
    SweepCell,
    SweepParameters,
    SweepResult,
)
