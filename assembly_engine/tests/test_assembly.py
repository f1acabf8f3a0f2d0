"""Assembly driver regression tests for exact-order joins and permutation search."""

# purpose: pin Golden Gate outcomes, search bounds and result classification
# status: active

import pytest

from ..errors import (
    AssemblyFailedError,
    EmptyPartError,
    IncompatibleEndsError,
    InputError,
    NoCircularProductError,
    UnknownEnzymeError,
)
from ..positions import find_seq
from ..schemas import AssemblyParameters, AssemblySearchConfig, DNASequence
from ..services import assembly
from ..services.plasmid import PlasmidFeatureOracle
from .conftest import BODIES, MARKER, ORIGIN, make_part


@pytest.fixture
def oracle():
    return PlasmidFeatureOracle(origins={"ori": ORIGIN}, markers={"marker": MARKER})


def _params(vector, parts, name="pTest", enzyme="SapI"):
    return AssemblyParameters(construct_name=name, enzyme_name=enzyme, vector=vector, parts_in_order=parts)


def test_iter_permutations_is_lazy_and_complete():
    """Heap's generator yields every ordering exactly once, identity first."""

    orderings = assembly.iter_permutations("ABCD")
    assert next(orderings) == ("A", "B", "C", "D")
    rest = list(orderings)
    assert len(rest) == 23
    assert len({("A", "B", "C", "D"), *rest}) == 24
    assert list(assembly.iter_permutations([])) == [()]


def test_same_circle_accepts_rotation_and_reverse_complement():
    first = DNASequence(name="a", sequence="AACCGGTT", circular=True)
    assert assembly.same_circle(first, DNASequence(name="b", sequence="CGGTTAAC", circular=True))
    assert assembly.same_circle(first, DNASequence(name="c", sequence="AACCGGTT"[::-1].translate(str.maketrans("ACGT", "TGCA")), circular=True))
    assert not assembly.same_circle(first, DNASequence(name="d", sequence="AAAAGGTT", circular=True))


def test_join_parts_exact_order(vector, three_parts, expected_three_part_plasmid):
    """Three SapI parts assemble into one plasmid free of SapI sites."""

    result = assembly.join_parts(vector, three_parts, "SapI")
    (plasmid,) = result.plasmids
    assert plasmid.name == "pVector_part1_part2_part3"
    assert plasmid.circular
    assert plasmid.sequence == expected_three_part_plasmid
    assert find_seq(plasmid.sequence, "GCTCTTC", circular=True) == []
    (insert,) = result.inserts
    assert insert.top_strand == "GAA" + BODIES[0] + "ACT" + BODIES[1] + "CTG" + BODIES[2]


def test_join_parts_falls_back_to_the_next_enzyme(vector, expected_three_part_plasmid):
    """A later enzyme is used alone when the first has no site on the vector."""

    bsai_body = "TTGGTCTCATCA"
    parts = [
        make_part("part1", "GAA", BODIES[0], "ACT"),
        make_part("part2", "ACT", bsai_body, "CTG"),
        make_part("part3", "CTG", BODIES[2], "GGC"),
    ]
    result = assembly.join_parts(vector, parts, ["BsaI", "SapI"])
    assert result.enzyme.name == "SapI"
    (plasmid,) = result.plasmids
    assert plasmid.sequence == expected_three_part_plasmid.replace(BODIES[1], bsai_body)


def test_join_parts_linear_vector_uses_first_cutting_enzyme(vector, three_parts, expected_three_part_plasmid):
    linear = vector.model_copy(update={"circular": False})
    result = assembly.join_parts(linear, three_parts, ["BsaI", "SapI"])
    assert result.enzyme.name == "SapI"
    (plasmid,) = result.plasmids
    expected = DNASequence(name="expected", sequence=expected_three_part_plasmid, circular=True)
    assert assembly.same_circle(plasmid, expected)


def test_join_parts_wrong_order_names_the_pair(vector, three_parts):
    """An incompatible adjacent pair is reported by name."""

    with pytest.raises(IncompatibleEndsError, match="part2 and part1"):
        assembly.join_parts(vector, [three_parts[1], three_parts[0], three_parts[2]], "SapI")


def test_join_parts_unclosed_insert_raises_with_partials(vector, three_parts):
    """An insert that never meets the vector's other end leaves partial fragments."""

    with pytest.raises(NoCircularProductError, match="part2 and pVector") as excinfo:
        assembly.join_parts(vector, three_parts[:2], "SapI")
    assert excinfo.value.partial_fragments


def test_join_parts_rejects_empty_parts(vector, three_parts):
    with pytest.raises(EmptyPartError):
        assembly.join_parts(vector, [], "SapI")
    with pytest.raises(EmptyPartError, match="blank"):
        assembly.join_parts(vector, [three_parts[0], DNASequence(name="blank", sequence="")], "SapI")


def test_exhaustive_search_finds_single_product(vector, three_parts, expected_three_part_plasmid):
    """Shuffled parts still give exactly one de-duplicated plasmid."""

    shuffled = [three_parts[2], three_parts[0], three_parts[1]]
    products = assembly.find_all_assembly_products(vector, shuffled, "SapI")
    (plasmid,) = products.plasmids
    assert plasmid.sequence == expected_three_part_plasmid
    assert products.permutations_tried == 6
    assert len(products.errors) == 5
    assert not products.stopped_early


def test_five_part_search_terminates_without_duplicates(vector, five_parts):
    """All 120 orderings are tried and one plasmid is kept."""

    products = assembly.find_all_assembly_products(vector, five_parts, "SapI")
    assert products.permutations_tried == 120
    assert len(products.plasmids) == 1
    assert not products.stopped_early


def test_five_part_search_exits_early_on_plausible_plasmid(vector, five_parts, oracle):
    products = assembly.find_all_assembly_products(vector, five_parts, "SapI", oracle=oracle)
    assert products.stopped_early
    assert products.stop_reason == "plausible plasmid found"
    assert products.permutations_tried < 120


def test_search_respects_permutation_budget(vector, five_parts):
    config = AssemblySearchConfig(max_permutations=3)
    products = assembly.find_all_assembly_products(vector, five_parts, "SapI", config=config)
    assert products.permutations_tried == 3
    assert products.stopped_early
    assert len(products.plasmids) == 1


def test_search_cancellation(vector, five_parts):
    """Cancelling before any ordering is tried fails with the reason."""

    with pytest.raises(AssemblyFailedError, match="cancelled") as excinfo:
        assembly.find_all_assembly_products(vector, five_parts, "SapI", should_cancel=lambda: True)
    assert excinfo.value.stopped_early
    assert excinfo.value.stop_reason == "cancelled"
    assert excinfo.value.permutations_tried == 0


def test_search_failure_aggregates_errors(vector):
    parts = [make_part("lonely", "CTG", BODIES[0], "TGC")]
    with pytest.raises(AssemblyFailedError) as excinfo:
        assembly.find_all_assembly_products(vector, parts, "SapI")
    assert len(excinfo.value.errors) == 1


def test_simulate_success(three_part_params, expected_three_part_plasmid):
    result = assembly.assembly_simulate(three_part_params)
    assert result.status == "success"
    assert result.strategy == "exhaustive"
    assert result.plasmid_validity == "unconfirmed"
    (product,) = result.products
    assert product.name == "pConstruct"
    assert product.sequence == expected_three_part_plasmid
    sapi = [summary for summary in result.sites_found if summary.enzyme == "SapI"]
    assert sapi and all(summary.number_of_sites == 0 for summary in sapi)
    assert {summary.enzyme for summary in result.sites_found} == {"SapI", "BsaI"}


def test_simulate_confirms_with_oracle(three_part_params, oracle):
    """Products carrying an origin and marker are confirmed and annotated."""

    result = assembly.assembly_simulate(three_part_params, oracle=oracle)
    assert result.status == "success"
    assert result.plasmid_validity == "confirmed"
    assert {feature.name for feature in result.products[0].features} == {"ori", "marker"}


def test_simulate_rejects_products_without_features(three_part_params):
    oracle = PlasmidFeatureOracle(origins={"ori": "CCCCCCCCCC"}, markers={"marker": MARKER})
    result = assembly.assembly_simulate(three_part_params, oracle=oracle)
    assert result.status == "failed"
    assert result.success_count == 0
    assert any("not a valid plasmid" in error for error in result.errors)


def test_simulate_exact_order_above_part_limit(three_part_params):
    config = AssemblySearchConfig(exhaustive_part_limit=2)
    result = assembly.assembly_simulate(three_part_params, config=config)
    assert result.status == "success"
    assert result.strategy == "exact_order"
    assert result.permutations_tried == 1


def test_simulate_ambiguous(vector):
    """Interchangeable middle parts give two products, reported as ambiguous."""

    parts = [
        make_part("p1", "GAA", BODIES[0], "ACT"),
        make_part("p2", "ACT", BODIES[1], "ACT"),
        make_part("p3", "ACT", BODIES[2], "ACT"),
        make_part("p4", "ACT", BODIES[3], "GGC"),
    ]
    result = assembly.assembly_simulate(_params(vector, parts))
    assert result.status == "ambiguous"
    assert result.success_count == 2
    assert result.summary == "ambiguous assembly, 2 possible products"
    assert [product.name for product in result.products] == ["pTest_1", "pTest_2"]


def test_simulate_partial(vector):
    """Parts that join each other but not the vector end as partial."""

    parts = [make_part("p1", "GAA", BODIES[0], "ACT"), make_part("p2", "ACT", BODIES[1], "TTT")]
    result = assembly.assembly_simulate(_params(vector, parts))
    assert result.status == "partial"
    assert "last compatible pair p1 and p2" in result.summary
    assert "p2 and pVector did not close" in result.summary
    assert result.partial_fragments
    assert result.products == []


def test_simulate_failed(vector):
    parts = [make_part("lonely", "CTG", BODIES[0], "TGC")]
    result = assembly.assembly_simulate(_params(vector, parts))
    assert result.status == "failed"
    assert result.summary.startswith("no assembly possible")
    assert result.partial_fragments == []


def test_simulate_reports_search_stopped_by_budget(vector):
    """A search cut short by its budget is not reported as a finished one."""

    parts = [make_part("a", "CTG", BODIES[0], "TGC"), make_part("b", "AGG", BODIES[1], "GGC")]
    config = AssemblySearchConfig(max_permutations=1)
    result = assembly.assembly_simulate(_params(vector, parts), config=config)
    assert result.status == "failed"
    assert result.stopped_early
    assert result.stop_reason == "permutation budget of 1 reached"
    assert result.permutations_tried == 1
    assert result.summary.endswith("(search stopped early: permutation budget of 1 reached)")


def test_simulate_input_errors_propagate(vector, three_parts):
    with pytest.raises(InputError):
        assembly.assembly_simulate(_params(vector, three_parts, enzyme="EcoRI"))
    with pytest.raises(UnknownEnzymeError):
        assembly.assembly_simulate(_params(vector, three_parts, enzyme="Unknown"))
    with pytest.raises(EmptyPartError):
        assembly.assembly_simulate(_params(vector, [DNASequence(name="blank", sequence="")]))


def test_assembly_insert_returns_largest_insert(three_part_params):
    insert = assembly.assembly_insert(three_part_params)
    assert insert.name == "pConstruct_Insert"
    assert insert.sequence == "GAA" + BODIES[0] + "ACT" + BODIES[1] + "CTG" + BODIES[2]
    assert insert.overhang_5prime.sequence == "GAA"


def test_multiple_assemblies_reports_diagnostics(vector, three_part_params):
    broken = _params(vector, [make_part("lonely", "CTG", BODIES[0], "TGC")], name="pBroken")
    single_site = DNASequence(name="half", sequence="GCTCTTCAGAA" + BODIES[0])
    unusable = _params(vector, [single_site], name="pHalf")
    report = assembly.multiple_assemblies([three_part_params, broken, unusable])
    assert report.summary == "1/3 assemblies successful"
    assert report.success_count == 1
    assert [sequence.name for sequence in report.sequences] == ["pConstruct"]
    assert report.errors["pBroken"].startswith("no assembly possible")
    assert "sticky ends on both sides" in report.errors["pHalf"]
    assert "half has 1 SapI site(s) at positions: 1" in report.errors["pHalf"]
