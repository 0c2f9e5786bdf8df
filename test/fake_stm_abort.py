#!/usr/bin/env python3
"""
Stand-in for the stm_abort workload used by the sweep tests.

Writes memtrace_abort.csv and memtrace_summary.txt (and memtrace.csv when
FAKE_STM_EVENT_LOG=1) into the current directory, or into the directory
given with --out-dir.

Environment:
    FAKE_STM_EVENTS     events_total to report (default 1000000)
    FAKE_STM_ABORTS     aborts to report (default 250)
    FAKE_STM_SCALE      if "1", aborts are multiplied by the thread count
    FAKE_STM_SKIP       comma list of conflict:threads cells that write no summary
    FAKE_STM_FAIL       comma list of conflict:threads cells that exit with status 3
    FAKE_STM_EVENT_LOG  if "1", also write memtrace.csv
    FAKE_STM_CALLS      file to append "conflict threads ops seed cwd" lines to
"""

import argparse
import os
import sys
from pathlib import Path


def cells_from_env(name):
    return {c.strip() for c in os.environ.get(name, "").split(",") if c.strip()}


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--threads", type=int, required=True)
    parser.add_argument("--conflict", required=True)
    parser.add_argument("--ops", type=int, required=True)
    parser.add_argument("--seed", type=int, required=True)
    parser.add_argument("--out-dir")
    args = parser.parse_args()

    key = f"{args.conflict}:{args.threads}"
    out_dir = Path(args.out_dir) if args.out_dir else Path.cwd()

    calls = os.environ.get("FAKE_STM_CALLS")
    if calls:
        with open(calls, "a") as f:
            f.write(f"{args.conflict} {args.threads} {args.ops} {args.seed} {Path.cwd()}\n")

    if key in cells_from_env("FAKE_STM_FAIL"):
        print(f"fake stm_abort: failing {key}", file=sys.stderr)
        return 3

    events = int(os.environ.get("FAKE_STM_EVENTS", "1000000"))
    aborts = int(os.environ.get("FAKE_STM_ABORTS", "250"))
    if os.environ.get("FAKE_STM_SCALE") == "1":
        aborts *= args.threads

    with open(out_dir / "memtrace_abort.csv", "w") as f:
        f.write("abort_token,cause,count,retries_avg,conflict_avg,conflict_min,conflict_max,first_us,last_us\n")
        f.write(f"stm,conflict,{aborts},1.000,1.000,1,1,100,200\n")

    if key not in cells_from_env("FAKE_STM_SKIP"):
        with open(out_dir / "memtrace_summary.txt", "w") as f:
            f.write(f"events_total: {events}\n")
            f.write("idle_total_us: 0\n")
            f.write("bytes_h2d: 0\n")
            f.write("bytes_d2h: 0\n")
            f.write(f"aborts: {aborts}\n")

    if os.environ.get("FAKE_STM_EVENT_LOG") == "1":
        with open(out_dir / "memtrace.csv", "w") as f:
            f.write("t_start_us,t_end_us,bytes,dir,idle_us,abort_token,phase\n")
            f.write("0,10,4096,H2D,0,,Transfer\n")

    print(f"STM run finished.\naborts_total: {aborts}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
