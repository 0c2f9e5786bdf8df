"""
Error types for the sweep harness.

Every fatal condition of a sweep is a SweepError. The CLI catches these,
prints the message (which names the failing cell) and exits non-zero.
Rate aggregation skips unrelated directories silently, so there is no
error type for that case.
"""

from typing import Iterable, Optional


class SweepError(RuntimeError):
    """Base class for fatal sweep conditions."""

    def __init__(self, message: str, cell=None):
        self.cell = cell
        if cell is not None:
            message = f"[{cell.label}] {message}"
        super().__init__(message)


class LaunchError(SweepError):
    """The workload could not be started, timed out or exited non-zero."""

    def __init__(self, message: str, cell=None, returncode: Optional[int] = None):
        self.returncode = returncode
        super().__init__(message, cell)


class MissingArtifactError(SweepError):
    """A mandatory artifact was not produced by the workload."""

    def __init__(self, missing: Iterable[str], work_dir, cell=None):
        self.missing = list(missing)
        self.work_dir = work_dir
        super().__init__(
            f"Missing mandatory artifact(s) {', '.join(self.missing)} in {work_dir}",
            cell,
        )


class StaleArtifactError(SweepError):
    """Artifacts from an earlier run were found before the workload started."""

    def __init__(self, stale: Iterable[str], work_dir, cell=None):
        self.stale = list(stale)
        self.work_dir = work_dir
        super().__init__(
            f"Stale artifact(s) {', '.join(self.stale)} already present in {work_dir}",
            cell,
        )


class SummaryParseError(SweepError, ValueError):
    """A summary file does not contain a required field."""

    def __init__(self, field: str, source, cell=None):
        self.field = field
        self.source = source
        super().__init__(f"Required field '{field}' not found in {source}", cell)
