"""Environment-driven defaults for the assembly search."""

# purpose: resolve search thresholds from environment variables once per process
# status: experimental
# depends_on: assembly_engine.schemas.assembly

from __future__ import annotations

import os
from functools import lru_cache

from .schemas.assembly import AssemblySearchConfig

EXHAUSTIVE_PART_LIMIT = int(os.getenv("ASSEMBLY_EXHAUSTIVE_PART_LIMIT", "4"))
EARLY_EXIT_PERMUTATIONS = int(os.getenv("ASSEMBLY_EARLY_EXIT_PERMUTATIONS", "24"))
MAX_WOBBLE_EXPANSIONS = int(os.getenv("ASSEMBLY_MAX_WOBBLE_EXPANSIONS", "4096"))


def _optional_int(name: str) -> int | None:
    value = os.getenv(name)
    return int(value) if value else None


def _optional_float(name: str) -> float | None:
    value = os.getenv(name)
    return float(value) if value else None


def _flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


@lru_cache(maxsize=1)
def get_search_config() -> AssemblySearchConfig:
    """Return the process-wide search configuration."""

    # purpose: let deployments tune factorial search bounds without code changes
    return AssemblySearchConfig(
        exhaustive_part_limit=EXHAUSTIVE_PART_LIMIT,
        early_exit_permutations=EARLY_EXIT_PERMUTATIONS,
        max_permutations=_optional_int("ASSEMBLY_MAX_PERMUTATIONS"),
        time_budget_seconds=_optional_float("ASSEMBLY_TIME_BUDGET_SECONDS"),
        allow_blunt_ligation=_flag("ASSEMBLY_ALLOW_BLUNT_LIGATION"),
        max_wobble_expansions=MAX_WOBBLE_EXPANSIONS,
    )
