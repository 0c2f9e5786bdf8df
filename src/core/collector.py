"""
Collector module for relocating workload artifacts after each cell.

The workload writes its files into the cell's working directory. This
module verifies that the mandatory ones exist and moves them (never copies)
into the cell's destination directory, so nothing from one cell can be
picked up by the next.
"""

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from core.errors import MissingArtifactError, StaleArtifactError
from models.sweep import SweepCell
from reporting.artifacts import ARTIFACTS, MANDATORY_ARTIFACTS, EVENT_LOG


@dataclass
class CollectedArtifacts:
    """Files moved into a cell directory."""

    cell: SweepCell
    dest_dir: Path
    moved: Dict[str, Path] = field(default_factory=dict)  # source name -> destination path

    @property
    def event_log(self) -> bool:
        return EVENT_LOG.source in self.moved


def find_missing_artifacts(work_dir: Path) -> List[str]:
    """Return the names of mandatory artifacts not present in work_dir."""
    work_dir = Path(work_dir)
    return [a.source for a in MANDATORY_ARTIFACTS if not (work_dir / a.source).is_file()]


def check_no_stale_artifacts(work_dir: Path, cell: Optional[SweepCell] = None) -> None:
    """
    Make sure a shared working directory holds no artifacts before a run.

    Raises:
        StaleArtifactError: if any workload output file is already present
    """
    work_dir = Path(work_dir)
    stale = [a.source for a in ARTIFACTS if (work_dir / a.source).exists()]
    if stale:
        raise StaleArtifactError(stale, work_dir, cell)


def collect_cell_artifacts(
    cell: SweepCell, work_dir: Path, dest_dir: Path, debug: bool = False
) -> CollectedArtifacts:
    """
    Move the artifacts of one invocation into the cell's destination.

    Mandatory artifacts are checked before anything is moved. The optional
    event log is moved when present; otherwise an events file left in the
    destination by an earlier sweep is removed.

    Args:
        cell: Cell the artifacts belong to
        work_dir: Directory the workload wrote into
        dest_dir: Destination directory of the cell
        debug: Print each move

    Returns:
        CollectedArtifacts describing the moved files

    Raises:
        MissingArtifactError: if a mandatory artifact is absent
    """
    work_dir = Path(work_dir)
    dest_dir = Path(dest_dir)

    missing = find_missing_artifacts(work_dir)
    if missing:
        raise MissingArtifactError(missing, work_dir, cell)

    dest_dir.mkdir(parents=True, exist_ok=True)
    collected = CollectedArtifacts(cell=cell, dest_dir=dest_dir)

    for artifact in ARTIFACTS:
        source = work_dir / artifact.source
        target = dest_dir / artifact.dest

        if not source.is_file():
            # Only optional artifacts get here
            if target.exists():
                target.unlink()
                if debug:
                    print(f"    [DEBUG] removed stale {target}")
            continue

        shutil.move(str(source), str(target))
        collected.moved[artifact.source] = target
        if debug:
            print(f"    ✓ {artifact.source} -> {target}")

    return collected
