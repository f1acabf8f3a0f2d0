"""Position model and strand-aware search regression tests."""

# purpose: pin 1-based coordinates, reverse-strand direction and origin-spanning matches
# status: active

import pytest

from ..positions import CODE, PositionPair, find_positions, find_seq, sort_positions


def test_reverse_hit_is_directional():
    """Reverse-strand matches report start greater than end."""

    (pair,) = find_seq("AAGAAGAGCAA", "GCTCTTC")
    assert pair == PositionPair(9, 3, reverse=True)
    assert pair.human_friendly(ignore_direction=True) == (3, 9)
    assert pair.code_friendly() == (8, 2)


def test_palindromic_site_reported_once():
    """A palindrome matches both strands at one location but yields one pair."""

    pairs = find_seq("AAGAATTCAA", "GAATTC")
    assert pairs == [PositionPair(3, 8)]


def test_circular_search_finds_origin_spanning_match():
    """Matches across the origin wrap their end back into range."""

    assert find_seq("CCCAAAAAAAGG", "GGCCC") == []
    (pair,) = find_seq("CCCAAAAAAAGG", "GGCCC", circular=True)
    assert pair == PositionPair(11, 3)


def test_circular_search_does_not_duplicate_inner_matches():
    """Hits inside the first copy are not reported again from the second."""

    assert len(find_seq("GAATTCAAAA", "GAATTC", circular=True)) == 1


def test_find_positions_collects_several_patterns():
    pairs = find_positions("GAATTCGGATCC", ["GGATCC", "GAATTC"])
    assert [pair.start for pair in pairs] == [1, 7]


def test_sort_positions_ignores_direction():
    """Sorting uses the lower coordinate regardless of strand."""

    pairs = [PositionPair(20, 14, reverse=True), PositionPair(3, 9)]
    assert sort_positions(pairs) == [PositionPair(3, 9), PositionPair(20, 14, reverse=True)]


def test_unknown_coordinate_mode_rejected():
    with pytest.raises(ValueError):
        PositionPair(1, 2).coordinates("PIXEL")
    assert PositionPair(1, 2).coordinates(CODE) == (0, 1)
