"""
Artifact management module for the STM abort sweep harness.

This module defines the files exchanged with the workload and the files the
harness writes itself:
- memtrace_abort.csv / memtrace_summary.txt / memtrace.csv: written by the
  workload, relocated into each cell directory under fixed names
- summary.txt parsing into SummaryRecord
- sweep.json: metadata about the sweep run
"""

import json
import hashlib
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import git

from core.errors import SummaryParseError
from models.sweep import SummaryRecord, SweepCell, SweepResult


@dataclass(frozen=True)
class ArtifactSpec:
    """A workload output file and where it ends up in the cell directory."""

    source: str  # Name written by the workload
    dest: str  # Name inside out_root/<conflict>/t<threads>/
    required: bool


ABORT_TABLE = ArtifactSpec("memtrace_abort.csv", "abort_table.csv", required=True)
SUMMARY = ArtifactSpec("memtrace_summary.txt", "summary.txt", required=True)
EVENT_LOG = ArtifactSpec("memtrace.csv", "events.csv", required=False)

ARTIFACTS = (ABORT_TABLE, SUMMARY, EVENT_LOG)
MANDATORY_ARTIFACTS = tuple(a for a in ARTIFACTS if a.required)

SWEEP_JSON = "sweep.json"


# =============================================================================
# Summary parsing
# =============================================================================

# Field name -> required
SUMMARY_FIELDS = {
    "events_total": True,
    "idle_total_us": False,
    "bytes_h2d": False,
    "bytes_d2h": False,
    "aborts": True,
}

_FIELD_PATTERNS = {
    name: re.compile(rf"\b{re.escape(name)}\s*:\s*(\d+)", re.ASCII) for name in SUMMARY_FIELDS
}


def parse_summary(text: str, source: Any = "<summary>", cell: Optional[SweepCell] = None) -> SummaryRecord:
    """
    Parse the key: value block written by the workload.

    The first occurrence of each label is used. Missing optional fields are
    left as None.

    Args:
        text: Content of a summary file
        source: Name used in error messages (usually the file path)
        cell: Cell the summary belongs to, if known

    Returns:
        SummaryRecord with the parsed counters

    Raises:
        SummaryParseError: if a required field is absent
    """
    values: Dict[str, Optional[int]] = {}
    for name, required in SUMMARY_FIELDS.items():
        match = _FIELD_PATTERNS[name].search(text)
        if match is None:
            if required:
                raise SummaryParseError(name, source, cell)
            values[name] = None
        else:
            values[name] = int(match.group(1))
    return SummaryRecord(**values)


def read_summary_file(path: Path, cell: Optional[SweepCell] = None) -> SummaryRecord:
    """Read and parse a relocated summary file."""
    path = Path(path)
    return parse_summary(path.read_text(encoding="utf-8", errors="replace"), path, cell)


# =============================================================================
# Sweep manifest
# =============================================================================


def get_git_commit() -> Optional[str]:
    """Get the current git commit hash."""
    try:
        repo = git.Repo(search_parent_directories=True)
        return repo.head.commit.hexsha
    except (git.GitError, ValueError):
        return None


def calculate_params_hash(params: Dict[str, Any]) -> str:
    """Calculate SHA256 hash of the sweep parameters."""
    params_str = json.dumps(params, sort_keys=True)
    return hashlib.sha256(params_str.encode()).hexdigest()


def merge_cell_records(
    previous: Optional[Dict[str, Any]], records: List[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """
    Merge the cell records of an earlier manifest with the current ones.

    Cells the current sweep did not run keep their earlier record; cells it
    ran replace it. Earlier cells keep their position, new cells follow.
    """
    merged: Dict[Tuple[str, int], Dict[str, Any]] = {}
    for record in (previous or {}).get("cells", []):
        merged[(record["conflict"], int(record["threads"]))] = record
    for record in records:
        merged[(record["conflict"], int(record["threads"]))] = record
    return list(merged.values())


def write_sweep_json(
    result: SweepResult,
    started_at: Optional[datetime] = None,
    status: str = "completed",
    previous: Optional[Dict[str, Any]] = None,
) -> Path:
    """
    Write sweep.json with the parameters and per-cell records of a sweep.

    The manifest is rewritten after every completed cell, so the recorded
    ops always match the artifacts on disk, even when a sweep stops early
    or the output root already holds cells from an earlier sweep.

    Args:
        result: Sweep so far (completed cells only)
        started_at: When the sweep started (defaults to now)
        status: "running", "completed" or "failed"
        previous: Manifest found in out_root before the sweep started

    Returns:
        Path to the written sweep.json file
    """
    out_root = result.params.out_root
    out_root.mkdir(parents=True, exist_ok=True)

    params_dict = result.params.to_dict()
    now = datetime.now(timezone.utc)
    sweep_data = {
        "created_at": (started_at or now).isoformat(),
        "ended_at": now.isoformat(),
        "status": status,
        "git_commit": get_git_commit(),
        "params_hash": calculate_params_hash(params_dict),
        "params": params_dict,
        "cells": merge_cell_records(previous, [record.to_dict() for record in result.cells]),
    }

    sweep_file = out_root / SWEEP_JSON
    tmp_file = sweep_file.with_suffix(".json.tmp")
    with open(tmp_file, "w") as f:
        json.dump(sweep_data, f, indent=2)
    tmp_file.replace(sweep_file)

    return sweep_file


def read_sweep_json(out_root) -> Optional[Dict[str, Any]]:
    """
    Read sweep.json from an output root.

    Returns:
        Dictionary with sweep data, or None if not found
    """
    sweep_file = Path(out_root) / SWEEP_JSON
    if not sweep_file.exists():
        return None

    with open(sweep_file) as f:
        return json.load(f)


def cell_ops_from_manifest(manifest: Optional[Dict[str, Any]]) -> Dict[SweepCell, int]:
    """Map each recorded cell to the operation count it was run with."""
    if not manifest:
        return {}
    return {
        SweepCell(conflict=c["conflict"], threads=int(c["threads"])): int(c["ops"])
        for c in manifest.get("cells", [])
    }
