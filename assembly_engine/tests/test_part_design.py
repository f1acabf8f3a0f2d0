"""Part design helper tests."""

# purpose: check spacer choice, flank construction, scar-free design and standard overhangs
# status: active

import pytest

from ..errors import PartDesignError
from ..schemas import AssemblyParameters, DNASequence
from ..services import part_design
from ..services.assembly import assembly_simulate, same_circle
from .conftest import BACKBONE, BODIES

RAW_FIRST = "ATGAAACCCGGG"
RAW_SECOND = "TTTGGGCCCAAA"


def test_make_overhang_orders_flank_for_each_end():
    assert part_design.make_overhang("SapI", "5prime", "GAA", "A") == "GCTCTTCAGAA"
    assert part_design.make_overhang("SapI", "3prime", "GAA", "A") == "GAA" + "A" + "GAAGAGC"


def test_make_overhang_rejects_misplaced_spacer():
    with pytest.raises(PartDesignError, match="1 bp long"):
        part_design.make_overhang("SapI", "5prime", "GAA", "AA")


def test_spacer_options():
    assert len(part_design.all_spacer_options(2)) == 16
    assert part_design.all_spacer_options(0) == [""]


def test_choose_spacer_avoids_motifs():
    assert part_design.choose_spacer(1) == "A"
    assert part_design.choose_spacer(1, "GCTCTT", ["GCTCTTA"]) == "T"


def test_choose_spacer_raises_when_every_option_is_blocked():
    with pytest.raises(PartDesignError, match="no 1 bp spacer"):
        part_design.choose_spacer(1, "", ["A", "T", "C"])


def test_minimum_additions_reuse_existing_bases():
    assert part_design.minimum_five_prime_addition("AATG", "ATGCCC") == "A"
    assert part_design.minimum_five_prime_addition("GGG", "TTT") == "GGG"
    assert part_design.minimum_three_prime_addition("GCTT", "CCCGC") == "TT"
    assert part_design.minimum_three_prime_addition("", "CCCGC") == ""


def test_add_overhang_rejects_unknown_end():
    with pytest.raises(PartDesignError):
        part_design.add_overhang("AAA", "GG", "middle")


def test_vector_ends(vector):
    assert part_design.vector_ends(vector, "SapI") == ("GAA", "GGC")


def test_uncut_vector_has_no_ends():
    uncut = DNASequence(name="plain", sequence="ACGT" * 10, circular=True)
    assert part_design.vector_ends(uncut, "SapI") == ("", "")


def test_existing_type_iis_ends(three_parts):
    sites, five_prime, three_prime = part_design.existing_type_iis_ends(three_parts[0], "SapI")
    assert sites == 2
    assert "GAA" in five_prime
    assert "ACT" in three_prime


def test_scarfree_design_assembles_without_scars(vector):
    parts = [
        DNASequence(name="first", sequence=RAW_FIRST),
        DNASequence(name="second", sequence=RAW_SECOND),
    ]
    designed = part_design.make_scarfree_parts(parts, vector, "SapI")

    assert designed[0].sequence == "GCTCTTCA" + "GA" + RAW_FIRST + "A" + "GAAGAGC"
    assert designed[1].sequence == "GCTCTTCA" + "GGG" + RAW_SECOND + "GGC" + "A" + "GAAGAGC"
    result = assembly_simulate(
        AssemblyParameters(
            construct_name="pScarfree", enzyme_name="SapI", vector=vector, parts_in_order=designed
        )
    )
    assert result.status == "success"
    (product,) = result.products
    expected = DNASequence(name="x", sequence="GGC" + BACKBONE + "GA" + RAW_FIRST + RAW_SECOND, circular=True)
    assert same_circle(product, expected)


def test_scarfree_design_keeps_ready_parts(vector, three_parts):
    designed = part_design.make_scarfree_parts(three_parts, vector, "SapI")
    assert [part.sequence for part in designed] == [part.sequence for part in three_parts]


def test_scarfree_design_rejects_single_site_parts(vector):
    half = DNASequence(name="half", sequence="GCTCTTCA" + "GAA" + BODIES[0])
    with pytest.raises(PartDesignError, match="half"):
        part_design.make_scarfree_parts([half], vector, "SapI")


def test_scarfree_design_needs_type_iis(vector):
    with pytest.raises(PartDesignError, match="TypeIIs"):
        part_design.make_scarfree_parts([DNASequence(name="a", sequence=RAW_FIRST)], vector, "EcoRI")


def test_standard_sticky_ends():
    part = DNASequence(name="cds", sequence=BODIES[0])
    flanked = part_design.add_standard_sticky_ends(part, "MoClo", "Level0", "CDS1")
    assert flanked.sequence == "GGTCTCA" + "AATG" + BODIES[0] + "GCTT" + "A" + "GAGACC"
    assert flanked.name == "cds"


def test_level1_adaptor_in_reverse_orientation():
    part = DNASequence(name="pro", sequence=BODIES[1])
    adapted = part_design.add_level1_adaptor(
        part, "MoClo", "Level0", "Pro", end="5prime", reverse_orientation=True
    )
    assert adapted.sequence == "GGTCTCA" + "AGTA" + BODIES[1]


def test_make_standard_parts_checks_class_count():
    parts = [DNASequence(name="a", sequence=BODIES[0]), DNASequence(name="b", sequence=BODIES[1])]
    with pytest.raises(PartDesignError, match="does not match"):
        part_design.make_standard_parts(parts, "MoClo", "Level0", ["CDS1"])


def test_make_standard_parts_flanks_each_class():
    parts = [DNASequence(name="a", sequence=BODIES[0]), DNASequence(name="b", sequence=BODIES[1])]
    flanked = part_design.make_standard_parts(parts, "MoClo", "Level0", ["Pro", "Ter"])
    assert flanked[0].sequence.startswith("GGTCTCA" + "GGAG")
    assert flanked[1].sequence.endswith("CGCT" + "A" + "GAGACC")


def test_unknown_standard_and_class():
    with pytest.raises(PartDesignError, match="MoClo"):
        part_design.lookup_assembly_standard("Nope")
    standard = part_design.lookup_assembly_standard("MoClo")
    with pytest.raises(PartDesignError, match="CDS9"):
        part_design.part_overhangs(standard, "Level0", "CDS9")


def test_standard_catalog_lists_levels():
    names = [standard.name for standard in part_design.list_assembly_standards()]
    assert "MoClo" in names
    level = part_design.standard_level(part_design.lookup_assembly_standard("MoClo"), "Level0")
    assert level.enzyme_name == "BsaI"
