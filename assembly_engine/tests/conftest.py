import pytest
from fastapi.testclient import TestClient

from ..main import app
from ..schemas import AssemblyParameters, DNASequence

SAPI_SITE = "GCTCTTC"
SAPI_SITE_RC = "GAAGAGC"
BACKBONE = "TTAGCCGATACGTACGGATCCATAGCGA"
ORIGIN = "TTAGCCGATACG"
MARKER = "GGATCCATAG"
BODIES = (
    "ATGCCATTACGG",
    "TTGACCGATCCA",
    "GCATTGCAGTAA",
    "AACCTTGGAATT",
    "TCCGATTGCAAC",
)
OVERHANGS = ("GAA", "ACT", "CTG", "TGC", "AGG", "GGC")


def make_vector(name: str = "pVector") -> DNASequence:
    """Circular SapI destination vector leaving 5' GGC and underhang GAA on its backbone."""

    sequence = SAPI_SITE + "A" + "GGC" + BACKBONE + "GAA" + "A" + SAPI_SITE_RC + "CCGGTT"
    return DNASequence(name=name, sequence=sequence, circular=True)


def make_part(name: str, upstream: str, body: str, downstream: str) -> DNASequence:
    """Linear part flanked by outward SapI sites releasing upstream and downstream overhangs."""

    sequence = SAPI_SITE + "A" + upstream + body + downstream + "A" + SAPI_SITE_RC
    return DNASequence(name=name, sequence=sequence, circular=False)


def chain_parts(count: int) -> list[DNASequence]:
    """Parts whose overhangs chain GAA through GGC, closing on the vector after the last one."""

    overhangs = OVERHANGS[: count + 1]
    if count < len(OVERHANGS) - 1:
        overhangs = (*overhangs[:-1], OVERHANGS[-1])
    return [
        make_part(f"part{index + 1}", overhangs[index], BODIES[index], overhangs[index + 1])
        for index in range(count)
    ]


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def vector() -> DNASequence:
    return make_vector()


@pytest.fixture
def three_parts() -> list[DNASequence]:
    return chain_parts(3)


@pytest.fixture
def five_parts() -> list[DNASequence]:
    return chain_parts(5)


@pytest.fixture
def expected_three_part_plasmid() -> str:
    return "GGC" + BACKBONE + "GAA" + BODIES[0] + "ACT" + BODIES[1] + "CTG" + BODIES[2]


@pytest.fixture
def three_part_params(vector, three_parts) -> AssemblyParameters:
    return AssemblyParameters(
        construct_name="pConstruct",
        enzyme_name="SapI",
        vector=vector,
        parts_in_order=three_parts,
    )
