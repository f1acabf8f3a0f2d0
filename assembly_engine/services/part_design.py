"""Type IIs part design: scar-free custom ends and assembly-standard overhangs."""

# purpose: add recognition site, spacer and sticky end flanks so parts assemble in a chosen order
# status: experimental
# depends_on: assembly_engine.services.digestion, assembly_engine.data.loaders

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Sequence
from functools import lru_cache
from typing import Any, Literal, Mapping

from ..data.loaders import get_assembly_standard_catalog
from ..errors import PartDesignError
from ..schemas.assembly import (
    AssemblyLevel,
    AssemblyStandard,
    DNASequence,
    RestrictionEnzyme,
    StandardOverhangs,
)
from ..sequence import normalize_sequence, reverse_complement, suffix
from .digestion import (
    DigestedFragment,
    EnzymeLike,
    digest_to_fragments,
    find_restriction_sites,
    resolve_enzymes,
    typeiis_digest,
)
from .enzymes import lookup_type_iis

_logger = logging.getLogger(__name__)

End = Literal["5prime", "3prime"]
NUCLEOTIDES = ("A", "T", "C", "G")


def _overhangs(value: Any) -> StandardOverhangs:
    if isinstance(value, Mapping):
        return StandardOverhangs(**value)
    upstream, downstream = value
    return StandardOverhangs(upstream=upstream, downstream=downstream)


def standard_from_record(record: Mapping[str, Any]) -> AssemblyStandard:
    """Build an assembly standard from a catalog entry."""

    levels = {
        name: AssemblyLevel(
            name=name,
            enzyme_name=level["enzyme_name"],
            part_overhangs={
                part_class: _overhangs(ends)
                for part_class, ends in (level.get("part_overhangs") or {}).items()
            },
            entry_vector_ends=_overhangs(level.get("entry_vector_ends") or ("", "")),
        )
        for name, level in (record.get("levels") or {}).items()
    }
    return AssemblyStandard(name=record["name"], description=record.get("description"), levels=levels)


@lru_cache(maxsize=1)
def get_assembly_standards() -> dict[str, AssemblyStandard]:
    """Return the read-only assembly standards keyed by name."""

    return {record["name"]: standard_from_record(record) for record in get_assembly_standard_catalog()}


def list_assembly_standards() -> list[AssemblyStandard]:
    return sorted(get_assembly_standards().values(), key=lambda standard: standard.name)


def lookup_assembly_standard(name: str) -> AssemblyStandard:
    """Return the named standard or raise PartDesignError listing valid names."""

    standards = get_assembly_standards()
    standard = standards.get(name)
    if standard is None:
        raise PartDesignError(
            f"assembly standard {name} not found; available standards: {', '.join(sorted(standards))}"
        )
    return standard


def standard_level(standard: AssemblyStandard, level: str) -> AssemblyLevel:
    assembly_level = standard.levels.get(level)
    if assembly_level is None:
        raise PartDesignError(
            f"level {level} not found in {standard.name}; available levels: {', '.join(sorted(standard.levels))}"
        )
    return assembly_level


def level_enzyme(standard: AssemblyStandard, level: str) -> RestrictionEnzyme:
    return lookup_type_iis(standard_level(standard, level).enzyme_name)


def part_overhangs(standard: AssemblyStandard, level: str, part_class: str) -> StandardOverhangs:
    """Return the upstream and downstream overhangs for a part class."""

    assembly_level = standard_level(standard, level)
    ends = assembly_level.part_overhangs.get(part_class)
    if ends is None:
        raise PartDesignError(
            f"part class {part_class} not found in {standard.name} {level}; "
            f"available classes: {', '.join(sorted(assembly_level.part_overhangs))}"
        )
    if not ends.upstream or not ends.downstream:
        raise PartDesignError(f"part class {part_class} of {standard.name} {level} has empty overhangs")
    return ends


def add_overhang(seq: str, bases: str, end: End) -> str:
    """Attach bases to the 5' or 3' end of a sequence string."""

    if end == "5prime":
        return bases + seq
    if end == "3prime":
        return seq + bases
    raise PartDesignError(f"unknown end {end!r}; use 5prime or 3prime")


def all_spacer_options(length: int) -> list[str]:
    """Return every spacer of the given length."""

    return ["".join(bases) for bases in itertools.product(NUCLEOTIDES, repeat=length)]


def choose_spacer(length: int, sequence: str = "", avoid: Sequence[str] = ()) -> str:
    """Return the first spacer that creates none of the avoided motifs next to sequence.

    Both sides of ``sequence`` and both strands are checked.
    """

    options = all_spacer_options(length)
    motifs = [normalize_sequence(motif) for motif in avoid if motif]
    if not motifs:
        return options[0]
    sequence = normalize_sequence(sequence)
    for option in options:
        joined = [option + sequence, sequence + option]
        joined += [reverse_complement(text) for text in joined]
        if not any(motif in text for text in joined for motif in motifs):
            return option
    raise PartDesignError(f"no {length} bp spacer avoids {', '.join(motifs)}")


def make_overhang(enzyme: EnzymeLike, end: End, sticky_end: str, spacer: str) -> str:
    """Return recognition site, spacer and sticky end ordered for the chosen end.

    A 5' flank reads site, spacer, sticky end; a 3' flank reads sticky end,
    spacer, reverse-complemented site. The spacer must bridge the distance
    from the site to the top-strand cut.
    """

    (resolved,) = resolve_enzymes(enzyme)
    if resolved.top_strand_cut < 0:
        raise PartDesignError(
            f"{resolved.name} cuts inside its site; flanks can only be built for enzymes cutting outside it"
        )
    if len(spacer) != resolved.top_strand_cut:
        raise PartDesignError(
            f"spacer {spacer!r} would misplace the {resolved.name} cut; "
            f"it must be {resolved.top_strand_cut} bp long"
        )
    sticky_end = normalize_sequence(sticky_end)
    spacer = normalize_sequence(spacer)
    if end == "5prime":
        return resolved.recognition_sequence + spacer + sticky_end
    if end == "3prime":
        return sticky_end + spacer + reverse_complement(resolved.recognition_sequence)
    raise PartDesignError(f"unknown end {end!r}; use 5prime or 3prime")


def minimum_five_prime_addition(desired: str, seq: str) -> str:
    """Return the leading bases of desired that seq does not already start with."""

    desired, seq = normalize_sequence(desired), normalize_sequence(seq)
    present = ""
    for start in range(len(desired), -1, -1):
        if seq.startswith(desired[start:]):
            present = desired[start:]
    return desired[: len(desired) - len(present)]


def minimum_three_prime_addition(desired: str, seq: str) -> str:
    """Return the trailing bases of desired that seq does not already end with."""

    desired, seq = normalize_sequence(desired), normalize_sequence(seq)
    present = ""
    for stop in range(len(desired) + 1):
        if seq.endswith(desired[:stop]):
            present = desired[:stop]
    return desired[len(present) :]


def _largest_sticky_fragment(fragments: Sequence[DigestedFragment]) -> DigestedFragment | None:
    sticky = [fragment for fragment in fragments if fragment.sticky_both_ends]
    return max(sticky, key=len) if sticky else None


def vector_ends(
    vector: DNASequence,
    enzyme: EnzymeLike,
    *,
    select: Callable[[Sequence[DigestedFragment]], DigestedFragment | None] = _largest_sticky_fragment,
) -> tuple[str, str]:
    """Return (desired 5' end of the first part, 3' end of the last part) for a vector.

    The backbone is the fragment chosen by ``select``, by default the largest
    fragment with sticky ends on both sides. Its 3' underhang is what the first
    part must present at its 5' end; its 5' overhang is what the last part must
    present at its 3' end. Uncut vectors give two empty ends.
    """

    backbone = select(digest_to_fragments(vector, enzyme))
    if backbone is None:
        _logger.debug("No backbone fragment found on %s", vector.name)
        return "", ""
    desired_5prime = reverse_complement(backbone.five_prime_bottom_overhang)
    vector_3prime = backbone.five_prime_top_overhang
    return desired_5prime, vector_3prime


def existing_type_iis_ends(part: DNASequence, enzyme: EnzymeLike) -> tuple[int, list[str], list[str]]:
    """Return (site count, 5' overhangs, 3' underhangs) a part already carries."""

    (resolved,) = resolve_enzymes(enzyme)
    (sites,) = find_restriction_sites(part, resolved)
    digest = typeiis_digest(part, resolved)
    return sites.number_of_sites, digest.five_prime_overhangs, digest.three_prime_underhangs


def _with_sequence(part: DNASequence, sequence: str) -> DNASequence:
    return part.model_copy(update={"sequence": sequence, "features": [], "overhang_5prime": None, "overhang_3prime": None})


def add_custom_ends(
    part: DNASequence, enzyme: EnzymeLike, desired_5prime: str, desired_3prime: str
) -> DNASequence:
    """Flank a part so digestion leaves the desired ends.

    Bases the part already starts or ends with are reused, so only the
    missing part of each sticky end is added.
    """

    (resolved,) = resolve_enzymes(enzyme)
    spacer = choose_spacer(resolved.top_strand_cut)
    five = make_overhang(resolved, "5prime", minimum_five_prime_addition(desired_5prime, part.sequence), spacer)
    three = make_overhang(resolved, "3prime", minimum_three_prime_addition(desired_3prime, part.sequence), spacer)
    sequence = add_overhang(add_overhang(part.sequence, five, "5prime"), three, "3prime")
    return _with_sequence(part, sequence)


def make_scarfree_parts(
    parts: Sequence[DNASequence], vector: DNASequence, enzyme: EnzymeLike
) -> list[DNASequence]:
    """Add ends so parts assemble into the vector in order with no scar between them.

    Each part after the first is given, as its 5' sticky end, the last bases
    of the part before it. Parts already carrying two sites are kept when
    their ends match and pass their own 3' underhang on to the next part;
    any other site count raises PartDesignError.
    """

    # purpose: scar-free custom Type IIs design used by the design endpoint
    # inputs: ordered parts, destination vector and a TypeIIs enzyme
    # outputs: parts with site, spacer and sticky end flanks
    (resolved,) = resolve_enzymes(enzyme)
    if not resolved.is_type_iis:
        raise PartDesignError(f"enzyme {resolved.name} is {resolved.enzyme_class}; scar-free design needs TypeIIs")
    if not parts:
        raise PartDesignError("no parts supplied for design")
    desired_5prime, vector_3prime = vector_ends(vector, resolved)
    designed: list[DNASequence] = []
    for index, part in enumerate(parts):
        desired_3prime = vector_3prime if index == len(parts) - 1 else ""
        sites, sticky5s, sticky3s = existing_type_iis_ends(part, resolved)
        if sites == 0:
            designed.append(add_custom_ends(part, resolved, desired_5prime, desired_3prime))
        elif sites == 2 and desired_5prime in sticky5s and (not desired_3prime or desired_3prime in sticky3s):
            _logger.debug("Keeping existing %s ends on %s", resolved.name, part.name)
            designed.append(part.model_copy(deep=True))
            insert = _largest_sticky_fragment(digest_to_fragments(part, resolved))
            if insert is not None:
                desired_5prime = reverse_complement(insert.five_prime_bottom_overhang)
                continue
        else:
            raise PartDesignError(
                f"cutting part {part.name} with {resolved.name} gives {sites} site(s) with 5' overhangs "
                f"{sticky5s} and 3' underhangs {sticky3s}; wanted 5' {desired_5prime or '-'} "
                f"and 3' {desired_3prime or '-'}"
            )
        desired_5prime = suffix(part.sequence, resolved.end_length)
    return designed


def add_standard_sticky_ends(
    part: DNASequence, standard: AssemblyStandard | str, level: str, part_class: str
) -> DNASequence:
    """Add the full standard overhangs of a part class to both ends of a part."""

    if isinstance(standard, str):
        standard = lookup_assembly_standard(standard)
    enzyme = level_enzyme(standard, level)
    ends = part_overhangs(standard, level, part_class)
    spacer = choose_spacer(enzyme.top_strand_cut)
    sequence = add_overhang(part.sequence, make_overhang(enzyme, "5prime", ends.upstream, spacer), "5prime")
    sequence = add_overhang(sequence, make_overhang(enzyme, "3prime", ends.downstream, spacer), "3prime")
    return _with_sequence(part, sequence)


def add_level1_adaptor(
    part: DNASequence,
    standard: AssemblyStandard | str,
    level: str,
    part_class: str,
    *,
    end: End,
    reverse_orientation: bool = False,
) -> DNASequence:
    """Add one adaptor turning a level 0 part into a level 1 part of a class.

    With ``reverse_orientation`` the opposite overhang is reverse-complemented
    so the part binds the other way round.
    """

    if isinstance(standard, str):
        standard = lookup_assembly_standard(standard)
    enzyme = level_enzyme(standard, level)
    ends = part_overhangs(standard, level, part_class)
    if end == "5prime":
        sticky = reverse_complement(ends.downstream) if reverse_orientation else ends.upstream
    else:
        sticky = reverse_complement(ends.upstream) if reverse_orientation else ends.downstream
    flank = make_overhang(enzyme, end, sticky, choose_spacer(enzyme.top_strand_cut))
    return _with_sequence(part, add_overhang(part.sequence, flank, end))


def make_standard_parts(
    parts: Sequence[DNASequence],
    standard: AssemblyStandard | str,
    level: str,
    classes: Sequence[str],
) -> list[DNASequence]:
    """Add standard sticky ends to each part according to its class."""

    if len(parts) != len(classes):
        raise PartDesignError(
            f"number of parts {len(parts)} ({', '.join(part.name for part in parts)}) does not match "
            f"number of classes {len(classes)} ({', '.join(classes)})"
        )
    return [
        add_standard_sticky_ends(part, standard, level, part_class)
        for part, part_class in zip(parts, classes)
    ]
