"""
Unit tests for summary parsing and the sweep manifest.
"""

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from core.errors import SummaryParseError, SweepError
from models.sweep import CellRecord, SweepCell, SweepParameters, SweepResult
from reporting.artifacts import (
    calculate_params_hash,
    cell_ops_from_manifest,
    merge_cell_records,
    parse_summary,
    read_summary_file,
    read_sweep_json,
    write_sweep_json,
)


FULL_SUMMARY = """events_total: 1250
idle_total_us: 40
bytes_h2d: 4096
bytes_d2h: 2048
aborts: 250
"""


class TestParseSummary:

    def test_all_fields(self):
        record = parse_summary(FULL_SUMMARY)
        assert record.events_total == 1250
        assert record.aborts == 250
        assert record.idle_total_us == 40
        assert record.bytes_h2d == 4096
        assert record.bytes_d2h == 2048

    def test_optional_fields_may_be_missing(self):
        record = parse_summary("events_total: 5\naborts: 2\n")
        assert (record.events_total, record.aborts) == (5, 2)
        assert record.idle_total_us is None
        assert record.bytes_h2d is None

    def test_first_occurrence_wins(self):
        record = parse_summary("events_total: 1\naborts: 2\nevents_total: 99\naborts: 98\n")
        assert (record.events_total, record.aborts) == (1, 2)

    def test_similar_labels_do_not_match(self):
        # "aborts_total" is what the workload prints on stdout, not the summary label
        text = "aborts_total: 7\nevents_total: 10\naborts: 3\n"
        assert parse_summary(text).aborts == 3

    def test_whitespace_tolerant(self):
        record = parse_summary("  events_total :   10\r\naborts:3\r\n")
        assert (record.events_total, record.aborts) == (10, 3)

    @pytest.mark.parametrize("missing", ["events_total", "aborts"])
    def test_missing_required_field_is_fatal(self, missing):
        text = "\n".join(line for line in FULL_SUMMARY.splitlines() if not line.startswith(missing + ":"))
        with pytest.raises(SummaryParseError) as exc_info:
            parse_summary(text, source="x/summary.txt")
        assert exc_info.value.field == missing
        assert "x/summary.txt" in str(exc_info.value)
        assert isinstance(exc_info.value, SweepError)
        assert isinstance(exc_info.value, ValueError)

    def test_only_ascii_digits_count(self):
        with pytest.raises(SummaryParseError) as exc_info:
            parse_summary("events_total: \u0664\u0660\naborts: 1\n")
        assert exc_info.value.field == "events_total"

    def test_error_names_cell(self):
        with pytest.raises(SummaryParseError) as exc_info:
            parse_summary("", cell=SweepCell("high", 8))
        assert "conflict=high threads=8" in str(exc_info.value)


def test_read_summary_file(tmp_path):
    path = tmp_path / "summary.txt"
    path.write_text(FULL_SUMMARY)
    assert read_summary_file(path).aborts == 250


def test_sweep_json_round_trip(tmp_path):
    params = SweepParameters(
        threads=[2, 4], conflicts=["low"], ops=500, seed=3,
        out_root=tmp_path / "out", workload=["wl"],
    )
    result = SweepResult(params=params)
    for t in params.threads:
        cell = SweepCell("low", t)
        result.cells.append(CellRecord(
            cell=cell, dest_dir=cell.dest_dir(params.out_root), affinity_mask="0x3",
            ops=500, seed=3, duration_s=0.5, event_log=False,
        ))

    path = write_sweep_json(result)
    assert path == tmp_path / "out" / "sweep.json"

    manifest = read_sweep_json(tmp_path / "out")
    assert manifest["params"]["ops"] == 500
    assert manifest["params_hash"] == calculate_params_hash(params.to_dict())
    assert [c["threads"] for c in manifest["cells"]] == [2, 4]
    assert "git_commit" in manifest
    json.dumps(manifest)

    assert cell_ops_from_manifest(manifest) == {SweepCell("low", 2): 500, SweepCell("low", 4): 500}


def test_read_sweep_json_missing(tmp_path):
    assert read_sweep_json(tmp_path) is None
    assert cell_ops_from_manifest(None) == {}


def test_params_hash_is_order_independent():
    assert calculate_params_hash({"a": 1, "b": 2}) == calculate_params_hash({"b": 2, "a": 1})


def test_merge_cell_records():
    previous = {"cells": [
        {"conflict": "med", "threads": 2, "ops": 1000},
        {"conflict": "low", "threads": 2, "ops": 1000},
    ]}
    current = [
        {"conflict": "low", "threads": 2, "ops": 50},
        {"conflict": "low", "threads": 4, "ops": 50},
    ]
    merged = merge_cell_records(previous, current)
    assert [(c["conflict"], c["threads"], c["ops"]) for c in merged] == [
        ("med", 2, 1000), ("low", 2, 50), ("low", 4, 50),
    ]
    assert merge_cell_records(None, current) == current


def test_sweep_json_merges_previous_manifest(tmp_path):
    params = SweepParameters(threads=[2], conflicts=["low"], ops=500, seed=3, out_root=tmp_path, workload=["wl"])
    result = SweepResult(params=params)
    cell = SweepCell("low", 2)
    result.cells.append(CellRecord(cell=cell, dest_dir=cell.dest_dir(tmp_path), affinity_mask="0x3",
                                   ops=500, seed=3, duration_s=0.1, event_log=False))
    previous = {"cells": [{"conflict": "high", "threads": 8, "ops": 7}]}

    write_sweep_json(result, status="running", previous=previous)

    manifest = read_sweep_json(tmp_path)
    assert manifest["status"] == "running"
    assert cell_ops_from_manifest(manifest) == {SweepCell("high", 8): 7, SweepCell("low", 2): 500}
    assert not (tmp_path / "sweep.json.tmp").exists()


def test_import_leaves_environment_alone(tmp_path):
    """Workload processes inherit the harness environment unchanged."""
    env = {k: v for k, v in os.environ.items() if k != "GIT_PYTHON_REFRESH"}
    src = str(Path(__file__).parent.parent / "src")
    code = (
        "import os, sys; sys.path.insert(0, sys.argv[1]); import reporting.artifacts; "
        "print(os.environ.get('GIT_PYTHON_REFRESH'))"
    )
    proc = subprocess.run([sys.executable, "-c", code, src], env=env, capture_output=True, text=True, cwd=tmp_path)
    assert proc.returncode == 0, proc.stderr
    assert proc.stdout.strip() == "None"
