"""
STM Abort Sweep Harness

Runs the stm_abort workload over a matrix of conflict levels and thread
counts, collects its memtrace artifacts per cell and aggregates them into
abort rate tables.

Package structure:
- frontend.py: Command line interface
- config.py: Defaults, environment overrides and recipe loading
- core/: Sweep logic (runner, collector, manager, aggregator, errors)
- models/: Data models (sweep parameters, cells, result rows)
- builders/: Affinity masks and workload command lines
- reporting/: Artifact definitions, sweep.json, Markdown report
"""

__version__ = "1.0.0"
