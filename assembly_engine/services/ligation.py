"""Sticky-end matching, ligation and vector re-orientation."""

# purpose: join digested fragments on compatible ends and normalise vector orientation before assembly
# status: experimental
# depends_on: assembly_engine.services.digestion

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from ..errors import IncompatibleEndsError, VectorRotationError
from ..schemas.assembly import DNASequence, RestrictionEnzyme
from ..sequence import reverse_complement
from .digestion import DigestedFragment, EnzymeLike, find_restriction_sites, resolve_enzymes

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LigationResult:
    """Products of ligating two fragment sets."""

    partials: list[DigestedFragment] = field(default_factory=list)
    plasmids: list[DNASequence] = field(default_factory=list)


def ends_compatible(
    upstream: DigestedFragment, downstream: DigestedFragment, *, allow_blunt: bool = False
) -> bool:
    """Return True when the 3' end of upstream anneals to the 5' end of downstream."""

    # purpose: canonical sticky-end comparison; fragments are uppercase from construction
    up_five, down_five = upstream.five_prime_bottom_overhang, downstream.five_prime_top_overhang
    if up_five or down_five:
        return bool(up_five and down_five) and reverse_complement(up_five) == down_five
    up_three, down_three = upstream.three_prime_top_overhang, downstream.three_prime_bottom_overhang
    if up_three or down_three:
        return bool(up_three and down_three) and reverse_complement(up_three) == down_three
    return allow_blunt


def _joined(upstream: DigestedFragment, downstream: DigestedFragment) -> DigestedFragment:
    return DigestedFragment(
        top_strand=upstream.top_strand + downstream.top_strand,
        bottom_strand=downstream.bottom_strand + upstream.bottom_strand,
        five_prime_top_overhang=upstream.five_prime_top_overhang,
        three_prime_bottom_overhang=upstream.three_prime_bottom_overhang,
        five_prime_bottom_overhang=downstream.five_prime_bottom_overhang,
        three_prime_top_overhang=downstream.three_prime_top_overhang,
    )


def join_two_parts(
    upstream: Sequence[DigestedFragment],
    downstream: Sequence[DigestedFragment],
    *,
    allow_blunt: bool = False,
    upstream_name: str = "upstream",
    downstream_name: str = "downstream",
    plasmid_name: str = "plasmid",
) -> LigationResult:
    """Ligate every upstream fragment to every downstream fragment.

    Each downstream fragment is tried as given and flipped onto its bottom
    strand. A pair whose ends match at both junctions closes into a circular
    product; a pair matching only at the upstream 3' end becomes a longer
    linear fragment keeping the outer ends of both.
    """

    # purpose: ligation matcher for part-to-part and insert-to-vector joins
    # inputs: two digested fragment sets plus names used in error messages
    # outputs: LigationResult with partial fragments and closed circles
    result = LigationResult()
    for up in upstream:
        for down in downstream:
            for candidate in (down, down.flipped()):
                if not ends_compatible(up, candidate, allow_blunt=allow_blunt):
                    continue
                if ends_compatible(candidate, up, allow_blunt=allow_blunt):
                    result.plasmids.append(
                        DNASequence(
                            name=plasmid_name,
                            sequence=up.top_strand + candidate.top_strand,
                            circular=True,
                        )
                    )
                else:
                    result.partials.append(_joined(up, candidate))
    if not result.partials and not result.plasmids:
        raise IncompatibleEndsError(
            f"{upstream_name} and {downstream_name}: incompatible ends, no sticky end of "
            f"{len(upstream)} upstream fragment(s) matches {len(downstream)} downstream fragment(s)"
        )
    _logger.debug(
        "Joined %s and %s into %d partial(s) and %d circle(s)",
        upstream_name,
        downstream_name,
        len(result.partials),
        len(result.plasmids),
    )
    return result


def rotate_vector(
    vector: DNASequence, enzyme: EnzymeLike, *, reverse: bool = False
) -> DNASequence:
    """Rotate a circular vector so its recognition site starts at position 0.

    The forward site is used unless ``reverse`` is set, in which case the
    leftmost base of the reverse-strand site becomes position 0. Vectors with
    more than one site on either strand are rejected as ambiguous.
    """

    (resolved,) = resolve_enzymes(enzyme)
    if not vector.circular:
        raise VectorRotationError(f"{vector.name} is linear; only circular vectors can be rotated")
    (sites,) = find_restriction_sites(vector, resolved)
    forward = sites.forward_positions()
    backward = sites.reverse_positions()
    if len(forward) > 1 or len(backward) > 1:
        raise VectorRotationError(
            f"{vector.name}: {resolved.name} has {len(forward)} forward and {len(backward)} "
            "reverse sites; expected at most one on each strand"
        )
    chosen = backward if reverse else forward
    if not chosen:
        strand = "reverse" if reverse else "forward"
        raise VectorRotationError(f"{vector.name}: no {strand} {resolved.name} site to rotate to")
    site = chosen[0]
    offset = (site.end if site.reverse else site.start) - 1
    return vector.rotated(offset)


def rotate_vector_with_any(
    vector: DNASequence, enzymes: Sequence[EnzymeLike], *, reverse: bool = False
) -> tuple[DNASequence, RestrictionEnzyme]:
    """Rotate on the first enzyme that works, collecting every failure."""

    errors: list[str] = []
    for enzyme in resolve_enzymes(enzymes):
        try:
            return rotate_vector(vector, enzyme, reverse=reverse), enzyme
        except VectorRotationError as exc:
            errors.append(str(exc))
    raise VectorRotationError("; ".join(errors) or f"{vector.name}: no enzymes supplied for rotation")
