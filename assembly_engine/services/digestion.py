"""Restriction site search, cut geometry and fragment construction."""

# purpose: locate recognition sites, place strand cuts and slice sequences into fragments with sticky ends
# status: experimental
# depends_on: assembly_engine.positions, assembly_engine.sequence, assembly_engine.services.enzymes

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, fields
from typing import Literal, NamedTuple

from ..config import get_search_config
from ..errors import (
    CutOutOfRangeError,
    DoubleWrapError,
    FragmentInvariantError,
    InputError,
    InternalInvariantError,
)
from ..positions import PositionPair, find_positions, sort_positions
from ..schemas.assembly import (
    DNASequence,
    Overhang,
    RestrictionEnzyme,
    RestrictionSiteSummary,
)
from ..sequence import expand_wobble, normalize_sequence, reverse_complement, validate_bases
from .enzymes import lookup_enzyme

_logger = logging.getLogger(__name__)

EnzymeLike = RestrictionEnzyme | str


def resolve_enzymes(enzymes: EnzymeLike | Sequence[EnzymeLike]) -> list[RestrictionEnzyme]:
    if isinstance(enzymes, (RestrictionEnzyme, str)):
        enzymes = [enzymes]
    return [
        enzyme if isinstance(enzyme, RestrictionEnzyme) else lookup_enzyme(enzyme)
        for enzyme in enzymes
    ]


@dataclass(slots=True)
class RestrictionSites:
    """Recognition sites of one enzyme on one sequence."""

    # purpose: expose site counts and strand-specific positions for digestion and diagnostics
    enzyme: RestrictionEnzyme
    positions: list[PositionPair] = field(default_factory=list)

    @property
    def number_of_sites(self) -> int:
        return len(self.positions)

    @property
    def site_found(self) -> bool:
        return bool(self.positions)

    def forward_positions(self) -> list[PositionPair]:
        return [pair for pair in self.positions if not pair.reverse]

    def reverse_positions(self) -> list[PositionPair]:
        return [pair for pair in self.positions if pair.reverse]

    def all_positions(self) -> list[PositionPair]:
        return list(self.positions)

    def positions_for(self, direction: Literal["FWD", "REV", "ALL"] = "ALL") -> list[PositionPair]:
        """Return positions for ``FWD``, ``REV`` or ``ALL`` strands."""

        key = (direction or "ALL").upper()
        if key == "FWD":
            return self.forward_positions()
        if key == "REV":
            return self.reverse_positions()
        if key == "ALL":
            return self.all_positions()
        raise ValueError(f"unknown strand selector {direction!r}; use FWD, REV or ALL")

    def position_summary(self) -> str:
        """Return a comma separated list of directionless 1-based site starts."""

        starts = sorted(pair.human_friendly(ignore_direction=True)[0] for pair in self.positions)
        return ", ".join(str(start) for start in starts)

    def to_summary(self, sequence_name: str) -> RestrictionSiteSummary:
        return RestrictionSiteSummary(
            sequence_name=sequence_name,
            enzyme=self.enzyme.name,
            recognition_sequence=self.enzyme.recognition_sequence,
            number_of_sites=self.number_of_sites,
            forward_positions=[pair.human_friendly() for pair in self.forward_positions()],
            reverse_positions=[pair.human_friendly() for pair in self.reverse_positions()],
        )


def find_restriction_sites(
    sequence: DNASequence,
    enzymes: EnzymeLike | Sequence[EnzymeLike],
    *,
    max_wobble_expansions: int | None = None,
) -> list[RestrictionSites]:
    """Find every recognition site of each enzyme on both strands of a sequence."""

    # purpose: restriction site finder shared by digestion, vector rotation and assembly diagnostics
    # inputs: DNASequence plus enzyme records or catalog names
    # outputs: one RestrictionSites record per enzyme, in request order
    bases = validate_bases(sequence.sequence, name=sequence.name)
    limit = max_wobble_expansions or get_search_config().max_wobble_expansions
    results: list[RestrictionSites] = []
    for enzyme in resolve_enzymes(enzymes):
        patterns = expand_wobble(enzyme.recognition_sequence, limit=limit)
        positions = find_positions(bases, patterns, circular=sequence.circular)
        results.append(RestrictionSites(enzyme=enzyme, positions=positions))
    return results


def _wrap_once(position: int, length: int, *, context: str) -> int:
    wrapped = position
    if wrapped < 0:
        wrapped += length
    elif wrapped >= length:
        wrapped -= length
    if not 0 <= wrapped < length:
        raise DoubleWrapError(
            f"{context}: position {position} needs more than one wrap on a {length} bp circle"
        )
    return wrapped


def seq_between_positions(
    seq: str, start: int, end: int, *, circular: bool, name: str = "sequence"
) -> str:
    """Return bases in [start, end) using 0-based boundaries.

    On a circular sequence both boundaries may lie one length outside the
    sequence and are wrapped once; ``start >= end`` after wrapping reads
    across the origin, so equal boundaries return the whole circle opened at
    ``start``. Linear sequences must satisfy ``0 <= start <= end <= len``.
    """

    length = len(seq)
    if circular and length:
        start = _wrap_once(start, length, context=name)
        end = _wrap_once(end, length, context=name)
        if start < end:
            return seq[start:end]
        return seq[start:] + seq[:end]
    if start < 0 or end > length or start > end:
        raise CutOutOfRangeError(
            f"{name}: slice {start}..{end} lies outside linear sequence of length {length}"
        )
    return seq[start:end]


@dataclass(frozen=True, slots=True)
class CutSite:
    """Strand cut boundaries produced by one recognition site.

    ``top`` is the 0-based boundary where the top strand is cut. ``span`` is
    the signed distance to the bottom-strand cut: positive for a 5' overhang,
    negative for a 3' overhang and zero for a blunt cut.
    """

    enzyme: RestrictionEnzyme
    site: PositionPair
    top: int
    span: int

    @property
    def bottom(self) -> int:
        return self.top + self.span

    def window(self, seq: str, *, circular: bool, name: str = "sequence") -> str:
        """Return the top-strand bases between the two strand cuts."""

        if self.span == 0:
            return ""
        start, end = sorted((self.top, self.top + self.span))
        return seq_between_positions(seq, start, end, circular=circular, name=name)


def cut_positions(
    site: PositionPair,
    enzyme: RestrictionEnzyme,
    sequence_length: int,
    *,
    circular: bool,
    name: str = "sequence",
) -> CutSite:
    """Compute top- and bottom-strand cuts for one recognition site."""

    # purpose: the only place where enzyme class and site strand turn into cut coordinates
    # inputs: 1-based directional site, enzyme geometry, sequence length and topology
    # outputs: CutSite with the top cut placed on the sequence and the signed overhang span
    code_end = site.end - 1
    if enzyme.is_type_iis:
        if site.reverse:
            top = code_end - enzyme.bottom_strand_cut
            bottom = code_end - enzyme.top_strand_cut
        else:
            top = code_end + 1 + enzyme.top_strand_cut
            bottom = code_end + 1 + enzyme.bottom_strand_cut
    else:
        site_start = (site.end if site.reverse else site.start) - 1
        top = site_start - enzyme.bottom_strand_cut
        bottom = top + (enzyme.bottom_strand_cut - enzyme.top_strand_cut)

    context = f"{name} cut by {enzyme.name} at site {site}"
    if circular:
        placed = _wrap_once(top, sequence_length, context=context)
        _wrap_once(bottom, sequence_length, context=context)
        return CutSite(enzyme=enzyme, site=site, top=placed, span=bottom - top)
    for position in (top, bottom):
        if not 0 <= position <= sequence_length:
            raise CutOutOfRangeError(
                f"{context}: cut at {position} outside linear sequence of length {sequence_length}"
            )
    return CutSite(enzyme=enzyme, site=site, top=top, span=bottom - top)


@dataclass(frozen=True, slots=True)
class DigestedFragment:
    """Double-stranded fragment with the single-stranded ends left by cutting.

    ``top_strand`` runs 5'->3' left to right and ``bottom_strand`` 5'->3'
    right to left. Overhangs are stored on the strand that protrudes:
    ``five_prime_top_overhang`` at the left end of the top strand,
    ``five_prime_bottom_overhang`` at the right end of the bottom strand,
    ``three_prime_top_overhang`` at the right end of the top strand and
    ``three_prime_bottom_overhang`` at the left end of the bottom strand.
    """

    top_strand: str
    bottom_strand: str
    five_prime_top_overhang: str = ""
    five_prime_bottom_overhang: str = ""
    three_prime_top_overhang: str = ""
    three_prime_bottom_overhang: str = ""

    def __post_init__(self) -> None:
        for item in fields(self):
            object.__setattr__(self, item.name, normalize_sequence(getattr(self, item.name)))
        if self.five_prime_top_overhang and self.three_prime_bottom_overhang:
            raise FragmentInvariantError(
                "fragment 5' end carries both a top-strand overhang "
                f"{self.five_prime_top_overhang} and a bottom-strand overhang {self.three_prime_bottom_overhang}"
            )
        if self.three_prime_top_overhang and self.five_prime_bottom_overhang:
            raise FragmentInvariantError(
                "fragment 3' end carries both a top-strand overhang "
                f"{self.three_prime_top_overhang} and a bottom-strand overhang {self.five_prime_bottom_overhang}"
            )

    def __len__(self) -> int:
        return len(self.top_strand)

    @property
    def has_sticky_five_prime(self) -> bool:
        return bool(self.five_prime_top_overhang or self.three_prime_bottom_overhang)

    @property
    def has_sticky_three_prime(self) -> bool:
        return bool(self.three_prime_top_overhang or self.five_prime_bottom_overhang)

    @property
    def sticky_both_ends(self) -> bool:
        return self.has_sticky_five_prime and self.has_sticky_three_prime

    def flipped(self) -> "DigestedFragment":
        """Return the same molecule read from the bottom strand."""

        return DigestedFragment(
            top_strand=self.bottom_strand,
            bottom_strand=self.top_strand,
            five_prime_top_overhang=self.five_prime_bottom_overhang,
            five_prime_bottom_overhang=self.five_prime_top_overhang,
            three_prime_top_overhang=self.three_prime_bottom_overhang,
            three_prime_bottom_overhang=self.three_prime_top_overhang,
        )

    def five_prime_end(self) -> Overhang:
        if self.five_prime_top_overhang:
            return Overhang(end=5, kind="overhang", sequence=self.five_prime_top_overhang)
        if self.three_prime_bottom_overhang:
            return Overhang(end=5, kind="underhang", sequence=self.three_prime_bottom_overhang)
        return Overhang(end=5)

    def three_prime_end(self) -> Overhang:
        if self.three_prime_top_overhang:
            return Overhang(end=3, kind="overhang", sequence=self.three_prime_top_overhang)
        if self.five_prime_bottom_overhang:
            return Overhang(end=3, kind="underhang", sequence=self.five_prime_bottom_overhang)
        return Overhang(end=3)

    def ends(self) -> str:
        five, three = self.five_prime_end(), self.three_prime_end()
        return f"5' {five.kind} {five.sequence or '-'}, 3' {three.kind} {three.sequence or '-'}"

    def to_dna_sequence(self, name: str) -> DNASequence:
        return DNASequence(
            name=name,
            sequence=self.top_strand,
            circular=False,
            overhang_5prime=self.five_prime_end(),
            overhang_3prime=self.three_prime_end(),
        )

    @classmethod
    def from_dna_sequence(cls, sequence: DNASequence) -> "DigestedFragment":
        """Rebuild a fragment from a sequence carrying end descriptors."""

        five = sequence.overhang_5prime or Overhang(end=5)
        three = sequence.overhang_3prime or Overhang(end=3)
        top = sequence.sequence
        left = len(five.sequence) if five.kind == "overhang" else 0
        right = len(three.sequence) if three.kind == "overhang" else 0
        core = top[left : len(top) - right]
        five_prime_bottom = three.sequence if three.kind == "underhang" else ""
        three_prime_bottom = five.sequence if five.kind == "underhang" else ""
        return cls(
            top_strand=top,
            bottom_strand=five_prime_bottom + reverse_complement(core) + three_prime_bottom,
            five_prime_top_overhang=five.sequence if five.kind == "overhang" else "",
            five_prime_bottom_overhang=five_prime_bottom,
            three_prime_top_overhang=three.sequence if three.kind == "overhang" else "",
            three_prime_bottom_overhang=three_prime_bottom,
        )


def _fragment_between(
    sequence: DNASequence,
    upstream: CutSite | None,
    downstream: CutSite | None,
) -> DigestedFragment:
    seq = sequence.sequence
    circular = sequence.circular
    length = len(seq)
    top_start = upstream.top if upstream else 0
    top_end = downstream.top if downstream else length
    bottom_start = upstream.bottom if upstream else 0
    bottom_end = downstream.bottom if downstream else length
    top_strand = seq_between_positions(seq, top_start, top_end, circular=circular, name=sequence.name)
    bottom_strand = reverse_complement(
        seq_between_positions(seq, bottom_start, bottom_end, circular=circular, name=sequence.name)
    )

    five_prime_top = three_prime_bottom = ""
    if upstream is not None:
        window = upstream.window(seq, circular=circular, name=sequence.name)
        if upstream.span > 0:
            five_prime_top = window
        elif upstream.span < 0:
            three_prime_bottom = reverse_complement(window)
    five_prime_bottom = three_prime_top = ""
    if downstream is not None:
        window = downstream.window(seq, circular=circular, name=sequence.name)
        if downstream.span > 0:
            five_prime_bottom = reverse_complement(window)
        elif downstream.span < 0:
            three_prime_top = window
    return DigestedFragment(
        top_strand=top_strand,
        bottom_strand=bottom_strand,
        five_prime_top_overhang=five_prime_top,
        five_prime_bottom_overhang=five_prime_bottom,
        three_prime_top_overhang=three_prime_top,
        three_prime_bottom_overhang=three_prime_bottom,
    )


def make_fragments(sequence: DNASequence, cuts: Sequence[CutSite]) -> list[DigestedFragment]:
    """Slice a sequence at the supplied cuts.

    Without cuts the original sequence is returned as one blunt fragment. A
    circular sequence yields one fragment per distinct cut, the last wrapping
    from the final cut back to the first; a linear one yields one more, with
    blunt outer ends on the first and last fragments.
    """

    # purpose: fragment and overhang builder shared by every digest entry point
    seq = sequence.sequence
    if not cuts:
        return [DigestedFragment(top_strand=seq, bottom_strand=reverse_complement(seq))]

    ordered: list[CutSite] = []
    seen: set[int] = set()
    for cut in sorted(cuts, key=lambda item: (item.top, item.site.sort_key())):
        if cut.top in seen:
            _logger.debug(
                "Skipping %s cut at %d on %s; boundary already cut", cut.enzyme.name, cut.top, sequence.name
            )
            continue
        seen.add(cut.top)
        ordered.append(cut)

    fragments: list[DigestedFragment] = []
    if sequence.circular:
        for index, cut in enumerate(ordered):
            fragments.append(_fragment_between(sequence, cut, ordered[(index + 1) % len(ordered)]))
    else:
        fragments.append(_fragment_between(sequence, None, ordered[0]))
        for upstream, downstream in zip(ordered, ordered[1:]):
            fragments.append(_fragment_between(sequence, upstream, downstream))
        fragments.append(_fragment_between(sequence, ordered[-1], None))

    total = sum(len(fragment) for fragment in fragments)
    if total != len(seq):
        raise InternalInvariantError(
            f"{sequence.name}: {len(fragments)} fragments cover {total} bp of a {len(seq)} bp sequence"
        )
    return fragments


def digest_cuts(
    sequence: DNASequence, enzymes: EnzymeLike | Sequence[EnzymeLike]
) -> list[CutSite]:
    """Return the cuts every enzyme makes on a sequence."""

    length = len(sequence.sequence)
    cuts: list[CutSite] = []
    for record in find_restriction_sites(sequence, enzymes):
        for site in sort_positions(record.positions):
            cuts.append(
                cut_positions(site, record.enzyme, length, circular=sequence.circular, name=sequence.name)
            )
    return cuts


def digest_to_fragments(
    sequence: DNASequence, enzymes: EnzymeLike | Sequence[EnzymeLike]
) -> list[DigestedFragment]:
    """Digest a sequence into fragments carrying their sticky ends."""

    cuts = digest_cuts(sequence, enzymes)
    if not cuts:
        _logger.debug("No sites found on %s; returning uncut sequence", sequence.name)
    return make_fragments(sequence, cuts)


def digest(
    sequence: DNASequence, enzymes: EnzymeLike | Sequence[EnzymeLike]
) -> list[DNASequence]:
    """Digest a sequence and return fragments as named sequences.

    A sequence without sites comes back unchanged, which callers assembling
    parts should treat as a failure for that enzyme.
    """

    cuts = digest_cuts(sequence, enzymes)
    if not cuts:
        return [sequence.model_copy(deep=True)]
    return [
        fragment.to_dna_sequence(f"fragment{index}")
        for index, fragment in enumerate(make_fragments(sequence, cuts), start=1)
    ]


class TypeIIsDigest(NamedTuple):
    fragments: list[str]
    five_prime_overhangs: list[str]
    three_prime_underhangs: list[str]


def typeiis_digest(sequence: DNASequence, enzyme: EnzymeLike) -> TypeIIsDigest:
    """Return raw fragment strings with their 5' overhangs and 3' underhangs.

    The underhang is reported as the top-strand bases a downstream 5'
    overhang has to match, so both lists compare directly.
    """

    (resolved,) = resolve_enzymes(enzyme)
    if not resolved.is_type_iis:
        raise InputError(f"enzyme {resolved.name} is {resolved.enzyme_class}, not TypeIIs")
    fragments = digest_to_fragments(sequence, resolved)
    return TypeIIsDigest(
        fragments=[fragment.top_strand for fragment in fragments],
        five_prime_overhangs=[fragment.five_prime_top_overhang for fragment in fragments],
        three_prime_underhangs=[
            reverse_complement(fragment.five_prime_bottom_overhang) for fragment in fragments
        ],
    )


def restriction_mapper(sequence: DNASequence, enzyme: EnzymeLike) -> list[int]:
    """Return sorted fragment lengths expected from digesting with one enzyme."""

    return sorted(len(fragment) for fragment in digest_to_fragments(sequence, enzyme))


def end_report(enzyme: EnzymeLike, vector: DNASequence, parts: Sequence[DNASequence]) -> str:
    """Summarise the ends produced on a vector and parts to troubleshoot assemblies."""

    lines: list[str] = []
    for item in [vector, *parts]:
        result = typeiis_digest(item, enzyme)
        lines.append(
            f"{item.name} 5 Prime ends: {result.five_prime_overhangs} "
            f"3 Prime ends: {result.three_prime_underhangs}"
        )
    return "\n".join(lines)
