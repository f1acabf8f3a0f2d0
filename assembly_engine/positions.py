"""Directional match positions and strand-aware pattern search."""

# purpose: model recognition-site hits in 1-based coordinates on linear and circular sequences
# status: experimental
# depends_on: assembly_engine.sequence

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal

from .sequence import normalize_sequence, reverse_complement

CoordinateMode = Literal["HUMAN", "CODE"]
HUMAN: CoordinateMode = "HUMAN"
CODE: CoordinateMode = "CODE"


@dataclass(frozen=True, slots=True)
class PositionPair:
    """Location of a match, 1-based, with ``start > end`` for reverse-strand hits."""

    # purpose: carry strand direction alongside coordinates so cut geometry can be derived
    # status: experimental
    start: int
    end: int
    reverse: bool = False

    def coordinates(
        self, mode: CoordinateMode = HUMAN, *, ignore_direction: bool = False
    ) -> tuple[int, int]:
        """Return (start, end) in human (1-based) or code (0-based) form."""

        start, end = self.start, self.end
        if ignore_direction and start > end:
            start, end = end, start
        if mode == CODE:
            return start - 1, end - 1
        if mode == HUMAN:
            return start, end
        raise ValueError(f"unknown coordinate mode {mode!r}")

    def human_friendly(self, ignore_direction: bool = False) -> tuple[int, int]:
        return self.coordinates(HUMAN, ignore_direction=ignore_direction)

    def code_friendly(self, ignore_direction: bool = False) -> tuple[int, int]:
        return self.coordinates(CODE, ignore_direction=ignore_direction)

    def sort_key(self) -> tuple[int, int]:
        return self.coordinates(HUMAN, ignore_direction=True)

    def __str__(self) -> str:
        strand = "reverse" if self.reverse else "forward"
        return f"{self.start}..{self.end} ({strand})"


def sort_positions(positions: Iterable[PositionPair]) -> list[PositionPair]:
    """Order pairs by directionless start, tie-broken by end."""

    return sorted(positions, key=PositionPair.sort_key)


def _offsets(haystack: str, needle: str) -> list[int]:
    """Return every (overlapping) offset of needle in haystack."""

    found: list[int] = []
    index = haystack.find(needle)
    while index != -1:
        found.append(index)
        index = haystack.find(needle, index + 1)
    return found


def find_positions(
    sequence: str, patterns: Iterable[str], *, circular: bool = False
) -> list[PositionPair]:
    """Locate concrete patterns on both strands of a sequence.

    Circular sequences are searched over two concatenated copies so matches
    spanning the origin are found; hits starting inside the second copy
    duplicate ones already seen and are dropped. Reverse-strand hits covering
    exactly the same bases as a forward hit (palindromic sites) are reported
    once, as forward hits.
    """

    # purpose: single search primitive behind site finding and vector rotation
    # inputs: normalised sequence, concrete (non-degenerate) patterns, topology flag
    # outputs: sorted PositionPair list in 1-based coordinates
    seq = normalize_sequence(sequence)
    length = len(seq)
    concrete = sorted({normalize_sequence(pattern) for pattern in patterns if pattern})
    if not length or not concrete:
        return []
    search_space = seq + seq if circular else seq

    forward: dict[int, PositionPair] = {}
    reverse: dict[int, PositionPair] = {}
    for pattern in concrete:
        size = len(pattern)
        if size > length:
            continue
        for offset in _offsets(search_space, pattern):
            if offset >= length:
                continue
            end = offset + size
            if circular and end > length:
                end -= length
            forward[offset] = PositionPair(offset + 1, end)
        for offset in _offsets(search_space, reverse_complement(pattern)):
            if offset >= length:
                continue
            start = offset + size
            if circular and start > length:
                start -= length
            reverse[offset] = PositionPair(start, offset + 1, reverse=True)

    pairs = list(forward.values())
    pairs.extend(pair for offset, pair in reverse.items() if offset not in forward)
    return sort_positions(pairs)


def find_seq(sequence: str, pattern: str, *, circular: bool = False) -> list[PositionPair]:
    """Return all forward and reverse occurrences of a single concrete pattern."""

    return find_positions(sequence, [pattern], circular=circular)
