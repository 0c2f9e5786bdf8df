"""
Unit tests for artifact relocation.
"""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from core.collector import check_no_stale_artifacts, collect_cell_artifacts, find_missing_artifacts
from core.errors import MissingArtifactError, StaleArtifactError
from models.sweep import SweepCell


CELL = SweepCell(conflict="med", threads=4)


def write_artifacts(work_dir: Path, abort_table=True, summary=True, event_log=False):
    if abort_table:
        (work_dir / "memtrace_abort.csv").write_text("abort_token,cause,count\nstm,conflict,3\n")
    if summary:
        (work_dir / "memtrace_summary.txt").write_text("events_total: 10\naborts: 3\n")
    if event_log:
        (work_dir / "memtrace.csv").write_text("t_start_us,t_end_us\n0,1\n")


@pytest.fixture
def dirs(tmp_path):
    work_dir = tmp_path / "work"
    work_dir.mkdir()
    dest_dir = tmp_path / "out" / "med" / "t4"
    return work_dir, dest_dir


def test_moves_mandatory_artifacts(dirs):
    work_dir, dest_dir = dirs
    write_artifacts(work_dir)

    collected = collect_cell_artifacts(CELL, work_dir, dest_dir)

    assert sorted(p.name for p in dest_dir.iterdir()) == ["abort_table.csv", "summary.txt"]
    assert (dest_dir / "summary.txt").read_text() == "events_total: 10\naborts: 3\n"
    assert not collected.event_log
    assert list(work_dir.iterdir()) == []


def test_moves_optional_event_log_when_present(dirs):
    work_dir, dest_dir = dirs
    write_artifacts(work_dir, event_log=True)

    collected = collect_cell_artifacts(CELL, work_dir, dest_dir)

    assert collected.event_log
    assert (dest_dir / "events.csv").is_file()
    assert list(work_dir.iterdir()) == []


def test_unrelated_files_stay_in_work_dir(dirs):
    work_dir, dest_dir = dirs
    write_artifacts(work_dir)
    (work_dir / "notes.txt").write_text("keep me")

    collect_cell_artifacts(CELL, work_dir, dest_dir)

    assert [p.name for p in work_dir.iterdir()] == ["notes.txt"]


@pytest.mark.parametrize("abort_table,summary,missing", [
    (False, True, ["memtrace_abort.csv"]),
    (True, False, ["memtrace_summary.txt"]),
    (False, False, ["memtrace_abort.csv", "memtrace_summary.txt"]),
])
def test_missing_mandatory_artifact_is_fatal(dirs, abort_table, summary, missing):
    work_dir, dest_dir = dirs
    write_artifacts(work_dir, abort_table=abort_table, summary=summary)

    with pytest.raises(MissingArtifactError) as exc_info:
        collect_cell_artifacts(CELL, work_dir, dest_dir)

    assert exc_info.value.missing == missing
    assert exc_info.value.cell == CELL
    assert "conflict=med threads=4" in str(exc_info.value)
    # Nothing was moved
    assert not dest_dir.exists() or list(dest_dir.iterdir()) == []


def test_stale_event_log_is_removed_from_destination(dirs):
    work_dir, dest_dir = dirs
    dest_dir.mkdir(parents=True)
    (dest_dir / "events.csv").write_text("from an earlier sweep\n")
    write_artifacts(work_dir, event_log=False)

    collect_cell_artifacts(CELL, work_dir, dest_dir)

    assert sorted(p.name for p in dest_dir.iterdir()) == ["abort_table.csv", "summary.txt"]


def test_existing_destination_files_are_replaced(dirs):
    work_dir, dest_dir = dirs
    dest_dir.mkdir(parents=True)
    (dest_dir / "summary.txt").write_text("events_total: 1\naborts: 1\n")
    write_artifacts(work_dir)

    collect_cell_artifacts(CELL, work_dir, dest_dir)

    assert (dest_dir / "summary.txt").read_text() == "events_total: 10\naborts: 3\n"


def test_find_missing_artifacts(dirs):
    work_dir, _ = dirs
    assert find_missing_artifacts(work_dir) == ["memtrace_abort.csv", "memtrace_summary.txt"]
    write_artifacts(work_dir)
    assert find_missing_artifacts(work_dir) == []


def test_stale_check(dirs):
    work_dir, _ = dirs
    check_no_stale_artifacts(work_dir, CELL)

    write_artifacts(work_dir, abort_table=False, summary=True)
    with pytest.raises(StaleArtifactError) as exc_info:
        check_no_stale_artifacts(work_dir, CELL)
    assert exc_info.value.stale == ["memtrace_summary.txt"]
