"""
Report generator module for sweep results.

This module renders the abort rate table for the console and writes a
Markdown report (report.md) next to the tables, including per-conflict
statistics across thread counts.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np

from models.sweep import RateRow


REPORT_MD = "report.md"


def compute_conflict_stats(rows: List[RateRow]) -> Dict[str, Dict[str, Any]]:
    """
    Summarize the rate rows of each conflict label.

    Args:
        rows: Rate rows (any order)

    Returns:
        Dictionary keyed by conflict label with mean/min/max rate, the thread
        range and the abort growth factor from the smallest to the largest
        thread count (None when the smallest count had no aborts)
    """
    by_conflict: Dict[str, List[RateRow]] = {}
    for row in rows:
        by_conflict.setdefault(row.conflict, []).append(row)

    stats = {}
    for conflict in sorted(by_conflict):
        group = sorted(by_conflict[conflict], key=lambda r: r.threads)
        rates = np.array([r.rate for r in group], dtype=float)
        first, last = group[0], group[-1]
        growth = None
        if first.aborts > 0:
            growth = float(last.aborts / first.aborts)
        stats[conflict] = {
            "cells": len(group),
            "threads_min": first.threads,
            "threads_max": last.threads,
            "rate_mean": float(np.mean(rates)),
            "rate_min": float(np.min(rates)),
            "rate_max": float(np.max(rates)),
            "abort_growth": growth,
        }
    return stats


def format_rate_table(rows: List[RateRow]) -> str:
    """
    Format rate rows as an ASCII table.

    Returns:
        Formatted table string
    """
    if not rows:
        return "No cells found."

    lines = [
        f"{'Conflict':<12} {'Threads':>8} {'Events':>12} {'Aborts':>10} {'Rate':>10}",
        "-" * 56,
    ]
    for r in rows:
        lines.append(
            f"{r.conflict[:12]:<12} {r.threads:>8} {r.events:>12} {r.aborts:>10} {r.rate:>10.6f}"
        )
    return "\n".join(lines)


def generate_markdown_report(rows: List[RateRow], manifest: Optional[Dict[str, Any]] = None) -> str:
    """
    Generate the Markdown report of a sweep.

    Args:
        rows: Sorted rate rows
        manifest: Content of sweep.json, if available

    Returns:
        Markdown report as string
    """
    manifest = manifest or {}
    params = manifest.get("params", {})

    lines = [
        "# STM Abort Sweep Report",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M')}  ",
    ]
    if manifest.get("git_commit"):
        lines.append(f"**Commit:** `{manifest['git_commit'][:12]}`  ")
    if params:
        lines += [
            f"**Threads:** {', '.join(str(t) for t in params.get('threads', []))}  ",
            f"**Conflicts:** {', '.join(params.get('conflicts', []))}  ",
            f"**Ops per run:** {params.get('ops')}  ",
            f"**Seed:** {params.get('seed')}",
        ]

    lines += [
        "",
        "## Abort Rates",
        "",
        "| Conflict | Threads | Events | Aborts | Rate |",
        "|---|---:|---:|---:|---:|",
    ]
    for r in rows:
        lines.append(f"| {r.conflict} | {r.threads} | {r.events} | {r.aborts} | {r.rate:.6f} |")

    lines += [
        "",
        "## Per Conflict Level",
        "",
        "| Conflict | Threads | Mean rate | Min rate | Max rate | Abort growth |",
        "|---|---|---:|---:|---:|---:|",
    ]
    for conflict, s in compute_conflict_stats(rows).items():
        growth = f"{s['abort_growth']:.2f}x" if s["abort_growth"] is not None else "n/a"
        lines.append(
            f"| {conflict} | {s['threads_min']}-{s['threads_max']} | {s['rate_mean']:.6f} "
            f"| {s['rate_min']:.6f} | {s['rate_max']:.6f} | {growth} |"
        )

    lines += [
        "",
        "---",
        "",
        "CPU affinity pins cells to logical CPUs 0..threads-1 without regard to "
        "NUMA nodes or hyperthread siblings.",
        "",
    ]
    return "\n".join(lines)


def generate_sweep_report(
    out_root, rows: List[RateRow], manifest: Optional[Dict[str, Any]] = None
) -> Path:
    """Write report.md into out_root and return its path."""
    report_path = Path(out_root) / REPORT_MD
    report_path.write_text(generate_markdown_report(rows, manifest))
    return report_path
