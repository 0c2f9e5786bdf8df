#!/usr/bin/env python3
"""
Shared configuration for the STM abort sweep harness.

Defaults can be overridden via environment variables, then by a YAML recipe,
then by command line flags (see frontend.py).
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

# =============================================================================
# Configuration (can be overridden via environment variables)
# =============================================================================

DEFAULT_THREADS = [1, 2, 4, 8]
DEFAULT_CONFLICTS = ["low", "med", "high"]
DEFAULT_OPS = 1_000_000
DEFAULT_SEED = 1

DEFAULT_WORKLOAD = os.environ.get("STM_SWEEP_WORKLOAD", "target/release/examples/stm_abort")
DEFAULT_OUT_ROOT = os.environ.get("STM_SWEEP_OUT", "results/stm_sweep")
DEFAULT_NICENESS = int(os.environ.get("STM_SWEEP_NICENESS", "-10"))


# =============================================================================
# Recipes
# =============================================================================


@dataclass
class SweepRecipe:
    """
    Sweep settings loaded from a recipe YAML file.

    Every field is optional; unset fields fall back to the defaults above.

    Example recipe::

        threads: [1, 2, 4, 8]
        conflicts: [low, med, high]
        ops: 1000000
        seed: 1
        out: results/stm_sweep
        workload: cargo run --release --features memtrace --example stm_abort --
    """

    threads: Optional[List[int]] = None
    conflicts: Optional[List[str]] = None
    ops: Optional[int] = None
    seed: Optional[int] = None
    out: Optional[str] = None
    workload: Optional[Any] = None  # String or list of argv parts
    niceness: Optional[int] = None
    isolate: Optional[bool] = None
    output_dir_flag: Optional[str] = None
    work_root: Optional[str] = None
    shared_work_dir: Optional[str] = None
    timeout: Optional[float] = None
    raw_data: Dict[str, Any] = field(default_factory=dict)  # Original parsed YAML data

    @classmethod
    def from_yaml(cls, yaml_data: Dict[str, Any]) -> "SweepRecipe":
        """
        Create a SweepRecipe from parsed YAML data.

        Args:
            yaml_data: Dictionary containing the parsed YAML content

        Returns:
            SweepRecipe with all settings loaded

        Raises:
            ValueError: if the recipe contains unknown keys or wrong types
        """
        if yaml_data is None:
            yaml_data = {}
        if not isinstance(yaml_data, dict):
            raise ValueError("Recipe must be a mapping of settings")

        known = {f.name for f in fields(cls)} - {"raw_data"}
        unknown = sorted(str(key) for key in set(yaml_data) - known)
        if unknown:
            raise ValueError(f"Unknown recipe key(s): {', '.join(unknown)}")

        recipe = cls(raw_data=yaml_data, **yaml_data)

        if recipe.threads is not None:
            recipe.threads = [
                _as_int(int(t) if isinstance(t, str) and t.isascii() and t.isdigit() else t, "threads")
                for t in _as_list(recipe.threads, "threads")
            ]
        if recipe.conflicts is not None:
            recipe.conflicts = _as_list(recipe.conflicts, "conflicts")
            for label in recipe.conflicts:
                if not isinstance(label, str):
                    raise ValueError(
                        f"Recipe key 'conflicts' must contain strings, got {label!r} "
                        "(quote labels such as 'on', 'no' or numbers)"
                    )
        for key in ("ops", "seed", "niceness"):
            if getattr(recipe, key) is not None:
                setattr(recipe, key, _as_int(getattr(recipe, key), key))
        if recipe.timeout is not None:
            if isinstance(recipe.timeout, bool) or not isinstance(recipe.timeout, (int, float)):
                raise ValueError(f"Recipe key 'timeout' must be a number, got {recipe.timeout!r}")
            recipe.timeout = float(recipe.timeout)
        if recipe.isolate is not None and not isinstance(recipe.isolate, bool):
            raise ValueError(f"Recipe key 'isolate' must be true or false, got {recipe.isolate!r}")
        if recipe.workload is not None and not isinstance(recipe.workload, (str, list)):
            raise ValueError(f"Recipe key 'workload' must be a string or a list, got {recipe.workload!r}")
        for key in ("out", "output_dir_flag", "work_root", "shared_work_dir"):
            if getattr(recipe, key) is not None and not isinstance(getattr(recipe, key), str):
                raise ValueError(f"Recipe key '{key}' must be a string, got {getattr(recipe, key)!r}")
        return recipe


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Recipe key '{key}' must be an integer, got {value!r}")
    return value


def _as_list(value: Any, key: str) -> List[Any]:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple)):
        return list(value)
    raise ValueError(f"Recipe key '{key}' must be a list or a comma separated string")


def load_recipe(path) -> SweepRecipe:
    """
    Load a recipe YAML file.

    Raises:
        FileNotFoundError: if the file does not exist
        ValueError: if the path is not a file or the content is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Recipe file not found: {path}")
    if not path.is_file():
        raise ValueError(f"Recipe path is not a file: {path}")

    with open(path, "r") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid recipe YAML in {path}: {e}") from e
    return SweepRecipe.from_yaml(data)
