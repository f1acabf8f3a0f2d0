"""Restriction enzyme catalog parsing and lookup."""

# purpose: turn REBASE-style site notation into immutable enzyme records loaded once per process
# status: experimental
# depends_on: assembly_engine.data.loaders, assembly_engine.schemas.assembly

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Any, Mapping

from ..data.loaders import get_enzyme_catalog as load_enzyme_catalog
from ..errors import InputError, UnknownEnzymeError
from ..schemas.assembly import EnzymeClass, RestrictionEnzyme
from ..sequence import normalize_sequence

_logger = logging.getLogger(__name__)

ENZYME_CLASSES: tuple[EnzymeClass, ...] = ("TypeII", "TypeIIs")
_OFFSET_SITE = re.compile(r"^(?P<site>[A-Za-z]+)\((?P<top>-?\d+)/(?P<bottom>-?\d+)\)$")


def parse_rebase_site(site: str) -> tuple[str, int, int, int, EnzymeClass]:
    """Split REBASE notation into (recognition, top cut, bottom cut, end length, class).

    ``GCTCTTC(1/4)`` describes cuts outside the site, counted from its 3' end;
    an offset beyond the site on either strand makes the enzyme TypeIIs.
    ``G^AATTC`` marks the top-strand cut inside a palindromic site; the
    offsets are then negative distances back into the motif.
    """

    # purpose: single parser for catalog entries and user supplied enzyme definitions
    raw = (site or "").strip()
    match = _OFFSET_SITE.match(raw)
    if match:
        recognition = normalize_sequence(match.group("site"))
        top = int(match.group("top"))
        bottom = int(match.group("bottom"))
        end_length = abs(bottom - top)
        if top > 0 or bottom > 0 or max(abs(top), abs(bottom)) > len(recognition):
            enzyme_class: EnzymeClass = "TypeIIs"
        else:
            enzyme_class = "TypeII"
        return recognition, top, bottom, end_length, enzyme_class
    if raw.count("^") == 1:
        before, after = raw.split("^")
        recognition = normalize_sequence(before + after)
        top = -len(after)
        bottom = -len(before)
        return recognition, top, bottom, abs(bottom - top), "TypeII"
    raise InputError(f"cannot parse cut positions from recognition site {site!r}")


def enzyme_from_record(record: Mapping[str, Any]) -> RestrictionEnzyme:
    """Build an enzyme record from a catalog entry."""

    recognition, top, bottom, end_length, enzyme_class = parse_rebase_site(record["site"])
    return RestrictionEnzyme(
        name=record["name"],
        recognition_sequence=recognition,
        end_length=end_length,
        top_strand_cut=top,
        bottom_strand_cut=bottom,
        enzyme_class=enzyme_class,
        rebase_site=record["site"],
        prototype=record.get("prototype"),
        isoschizomers=tuple(record.get("isoschizomers") or ()),
        methylation_site=record.get("methylation_site"),
        commercial_source=tuple(record.get("commercial_source") or ()),
    )


@lru_cache(maxsize=1)
def get_enzyme_index() -> dict[str, RestrictionEnzyme]:
    """Return the read-only enzyme lookup keyed by lowercase name."""

    index: dict[str, RestrictionEnzyme] = {}
    for record in load_enzyme_catalog():
        enzyme = enzyme_from_record(record)
        index[enzyme.name.lower()] = enzyme
    _logger.debug("Loaded %d restriction enzymes", len(index))
    return index


def list_enzymes(enzyme_class: EnzymeClass | None = None) -> list[RestrictionEnzyme]:
    """Return catalog enzymes sorted by name, optionally filtered by class."""

    enzymes = sorted(get_enzyme_index().values(), key=lambda enzyme: enzyme.name.lower())
    if enzyme_class is None:
        return enzymes
    if enzyme_class not in ENZYME_CLASSES:
        raise InputError(
            f"unknown enzyme class {enzyme_class}; valid classes: {', '.join(ENZYME_CLASSES)}"
        )
    return [enzyme for enzyme in enzymes if enzyme.enzyme_class == enzyme_class]


def lookup_enzyme(name: str) -> RestrictionEnzyme:
    """Return the catalog enzyme with this name or raise UnknownEnzymeError."""

    enzyme = get_enzyme_index().get((name or "").strip().lower())
    if enzyme is None:
        raise UnknownEnzymeError(name, ENZYME_CLASSES)
    return enzyme


def lookup_enzymes(names: list[str] | tuple[str, ...]) -> list[RestrictionEnzyme]:
    return [lookup_enzyme(name) for name in names]


def lookup_type_iis(name: str) -> RestrictionEnzyme:
    """Return a TypeIIs enzyme, rejecting TypeII enzymes for Golden Gate use."""

    enzyme = lookup_enzyme(name)
    if not enzyme.is_type_iis:
        raise InputError(
            f"enzyme {enzyme.name} is {enzyme.enzyme_class}; a TypeIIs enzyme is required for assembly"
        )
    return enzyme
