"""Schemas describing sequences, enzymes and assembly simulation contracts."""

# purpose: capture assembly inputs, search configuration and result payloads shared by services and API
# status: experimental

from __future__ import annotations

from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..sequence import normalize_sequence

EnzymeClass = Literal["TypeII", "TypeIIs"]
SimulationStatus = Literal["success", "ambiguous", "partial", "failed"]


class Feature(BaseModel):
    """Annotated region of a sequence in 1-based inclusive coordinates."""

    name: str
    feature_class: str = "misc_feature"
    start: int = Field(ge=1)
    end: int = Field(ge=1)
    reverse: bool = False


class Overhang(BaseModel):
    """Single-stranded end left on a digested fragment."""

    # purpose: describe blunt ends, protruding top strands (overhang) and protruding bottom strands (underhang)
    end: Literal[5, 3]
    kind: Literal["blunt", "overhang", "underhang"] = "blunt"
    sequence: str = ""

    @field_validator("sequence", mode="before")
    @classmethod
    def _normalize(cls, value: str | None) -> str:
        return normalize_sequence(value)


class DNASequence(BaseModel):
    """Named nucleotide sequence with topology and optional end descriptors."""

    # purpose: unit of exchange between parsers, digestion output and assembly products
    # status: experimental
    name: str
    sequence: str
    circular: bool = False
    features: List[Feature] = Field(default_factory=list)
    overhang_5prime: Optional[Overhang] = None
    overhang_3prime: Optional[Overhang] = None

    @field_validator("sequence", mode="before")
    @classmethod
    def _normalize(cls, value: str | None) -> str:
        return normalize_sequence(value)

    def __len__(self) -> int:
        return len(self.sequence)

    def rotated(self, offset: int) -> "DNASequence":
        """Return a copy shifted left by ``offset`` with features re-anchored."""

        # purpose: rotate circular sequences without leaving stale feature coordinates
        length = len(self.sequence)
        if not length:
            return self.model_copy(deep=True)
        offset %= length
        if offset == 0:
            return self.model_copy(deep=True)
        features = [
            feature.model_copy(
                update={
                    "start": (feature.start - 1 - offset) % length + 1,
                    "end": (feature.end - 1 - offset) % length + 1,
                }
            )
            for feature in self.features
        ]
        return self.model_copy(
            update={
                "sequence": self.sequence[offset:] + self.sequence[:offset],
                "features": features,
            }
        )


class RestrictionEnzyme(BaseModel):
    """Immutable restriction enzyme geometry record."""

    # purpose: encode recognition motif, cut offsets and class for cut-position arithmetic
    model_config = ConfigDict(frozen=True)

    name: str
    recognition_sequence: str
    end_length: int = Field(ge=0)
    top_strand_cut: int
    bottom_strand_cut: int
    enzyme_class: EnzymeClass
    rebase_site: Optional[str] = None
    prototype: Optional[str] = None
    isoschizomers: Tuple[str, ...] = ()
    methylation_site: Optional[str] = None
    commercial_source: Tuple[str, ...] = ()

    @field_validator("recognition_sequence", mode="before")
    @classmethod
    def _normalize(cls, value: str | None) -> str:
        return normalize_sequence(value)

    @property
    def is_type_iis(self) -> bool:
        return self.enzyme_class == "TypeIIs"


class AssemblySearchConfig(BaseModel):
    """Tunable bounds for the permutation search over part orderings."""

    # purpose: expose combinatorial thresholds and budgets instead of hidden constants
    exhaustive_part_limit: int = Field(default=4, ge=0)
    early_exit_permutations: int = Field(default=24, ge=0)
    max_permutations: Optional[int] = Field(default=None, ge=1)
    time_budget_seconds: Optional[float] = Field(default=None, gt=0.0)
    allow_blunt_ligation: bool = False
    max_wobble_expansions: int = Field(default=4096, ge=1)


class AssemblyParameters(BaseModel):
    """Design to simulate: a vector, ordered parts and the assembly enzyme."""

    construct_name: str
    enzyme_name: str
    vector: DNASequence
    parts_in_order: List[DNASequence] = Field(default_factory=list)


class RestrictionSiteSummary(BaseModel):
    """Serializable view of the sites an enzyme has on one sequence."""

    sequence_name: str
    enzyme: str
    recognition_sequence: str
    number_of_sites: int
    forward_positions: List[Tuple[int, int]] = Field(default_factory=list)
    reverse_positions: List[Tuple[int, int]] = Field(default_factory=list)


class AssemblySimulationResult(BaseModel):
    """Outcome of simulating one assembly design."""

    # purpose: report classification, products and diagnostics for a single construct
    construct_name: str
    enzyme: str
    status: SimulationStatus
    summary: str
    success_count: int = 0
    strategy: Literal["exhaustive", "exact_order"] = "exact_order"
    plasmid_validity: Literal["confirmed", "unconfirmed"] = "unconfirmed"
    products: List[DNASequence] = Field(default_factory=list)
    partial_fragments: List[DNASequence] = Field(default_factory=list)
    sites_found: List[RestrictionSiteSummary] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    permutations_tried: int = 0
    stopped_early: bool = False
    stop_reason: Optional[str] = None


class MultipleAssemblyReport(BaseModel):
    """Aggregate of several assembly simulations."""

    summary: str
    success_count: int
    results: List[AssemblySimulationResult] = Field(default_factory=list)
    errors: Dict[str, str] = Field(default_factory=dict)
    sequences: List[DNASequence] = Field(default_factory=list)


class StandardOverhangs(BaseModel):
    """Upstream and downstream overhangs expected for a part class."""

    upstream: str
    downstream: str

    @field_validator("upstream", "downstream", mode="before")
    @classmethod
    def _normalize(cls, value: str | None) -> str:
        return normalize_sequence(value)


class AssemblyLevel(BaseModel):
    """One level of a Type IIs assembly standard."""

    name: str
    enzyme_name: str
    part_overhangs: Dict[str, StandardOverhangs] = Field(default_factory=dict)
    entry_vector_ends: StandardOverhangs


class AssemblyStandard(BaseModel):
    """Named collection of assembly levels."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: Optional[str] = None
    levels: Dict[str, AssemblyLevel] = Field(default_factory=dict)


class RestrictionSitesRequest(BaseModel):
    sequence: DNASequence
    enzymes: List[str] = Field(min_length=1)


class RestrictionSitesResponse(BaseModel):
    sites: List[RestrictionSiteSummary]


class DigestRequest(BaseModel):
    sequence: DNASequence
    enzymes: List[str] = Field(min_length=1)


class DigestResponse(BaseModel):
    fragments: List[DNASequence]
    count: int


class FeatureOracleInput(BaseModel):
    """Reference origins and markers used to judge plasmid plausibility."""

    origins: Dict[str, str] = Field(default_factory=dict)
    markers: Dict[str, str] = Field(default_factory=dict)


class AssemblySimulationRequest(AssemblyParameters):
    config: Optional[AssemblySearchConfig] = None
    features: Optional[FeatureOracleInput] = None


class ScarfreeDesignRequest(BaseModel):
    enzyme_name: str
    vector: DNASequence
    parts: List[DNASequence] = Field(min_length=1)


class ScarfreeDesignResponse(BaseModel):
    parts: List[DNASequence]
    desired_5prime_end: str
    vector_3prime_end: str


class EnzymeCatalogResponse(BaseModel):
    enzymes: List[RestrictionEnzyme]
    count: int


class AssemblyStandardCatalogResponse(BaseModel):
    standards: List[AssemblyStandard]
    count: int
