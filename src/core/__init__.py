"""
Core logic of the sweep harness.

Contains:
- runner: workload invocation (RunInvoker)
- collector: artifact relocation after each cell
- manager: matrix enumeration and sweep orchestration (SweepController)
- aggregator: summary matrix and abort rate tables
- errors: fatal sweep conditions

Submodules are imported directly (e.g. ``from core.manager import
SweepController``); only the error types are re-exported here.
"""

from .errors import (
    LaunchError,
    MissingArtifactError,
    StaleArtifactError,
    SummaryParseError,
    SweepError,
)
