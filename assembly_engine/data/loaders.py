"""Cached data loaders for restriction enzyme and assembly standard catalogs."""

# purpose: expose cached loaders for static reference data shipped with the package
# status: experimental
# depends_on: json, pathlib

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

_BASE_DIR = Path(__file__).resolve().parent


def _load_json(path: Path) -> Any:
    """Return parsed JSON payload from disk."""

    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


@lru_cache(maxsize=None)
def get_enzyme_catalog() -> tuple[dict[str, Any], ...]:
    """Return cached restriction enzyme records in REBASE site notation."""

    payload = _load_json(_BASE_DIR / "enzymes.json")
    return tuple(payload)


@lru_cache(maxsize=None)
def get_assembly_standard_catalog() -> tuple[dict[str, Any], ...]:
    """Return cached Type IIs assembly standard definitions."""

    payload = _load_json(_BASE_DIR / "assembly_standards.json")
    return tuple(payload)
