"""Nucleotide string helpers shared by the digestion and ligation services."""

# purpose: canonicalise DNA strings, validate IUPAC symbols and expand degenerate sites
# status: experimental
# depends_on: Bio.Seq, Bio.Data.IUPACData

from __future__ import annotations

import math
from itertools import product

from Bio.Data.IUPACData import ambiguous_dna_letters, ambiguous_dna_values
from Bio.Seq import reverse_complement as _bio_reverse_complement

from .errors import InvalidSequenceError, WobbleExpansionError

_ALLOWED_BASES = frozenset(ambiguous_dna_letters)


def normalize_sequence(seq: str | None) -> str:
    """Return uppercase DNA sequence without whitespace, replacing U with T."""

    # purpose: create canonical uppercase DNA strings once, at construction time
    return "".join((seq or "").split()).upper().replace("U", "T")


def reverse_complement(seq: str) -> str:
    """Return reverse complement of a DNA sequence, honouring IUPAC codes."""

    if not seq:
        return ""
    return _bio_reverse_complement(normalize_sequence(seq))


def validate_bases(seq: str, *, name: str = "sequence") -> str:
    """Return the normalised sequence or raise if it holds non-IUPAC symbols."""

    # purpose: reject malformed sequences before any site search runs
    normalized = normalize_sequence(seq)
    invalid = sorted(set(normalized) - _ALLOWED_BASES)
    if invalid:
        raise InvalidSequenceError(
            f"{name} contains unrecognised nucleotide symbols: {''.join(invalid)}"
        )
    return normalized


def wobble_count(site: str) -> int:
    """Return how many concrete strings a degenerate site expands to."""

    normalized = validate_bases(site, name="recognition site")
    return math.prod(len(ambiguous_dna_values[base]) for base in normalized)


def expand_wobble(site: str, *, limit: int | None = None) -> list[str]:
    """Expand IUPAC wobble positions into every concrete nucleotide string."""

    # purpose: turn degenerate recognition sites such as GCCNNNNNGGC into searchable strings
    # inputs: recognition site plus optional cap on the number of expansions
    # outputs: list of concrete sequences in deterministic order
    normalized = validate_bases(site, name="recognition site")
    total = wobble_count(normalized)
    if limit is not None and total > limit:
        raise WobbleExpansionError(
            f"recognition site {normalized} expands to {total} sequences, above limit {limit}"
        )
    options = [ambiguous_dna_values[base] for base in normalized]
    return ["".join(combo) for combo in product(*options)]


def is_palindromic(site: str) -> bool:
    """Return True when a site reads the same on both strands."""

    normalized = normalize_sequence(site)
    return normalized == reverse_complement(normalized)


def suffix(seq: str, length: int) -> str:
    if length <= 0:
        return ""
    return seq[-length:]


def prefix(seq: str, length: int) -> str:
    if length <= 0:
        return ""
    return seq[:length]
