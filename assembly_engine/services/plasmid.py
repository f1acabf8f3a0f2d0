"""Plasmid plausibility checks against known origins and markers."""

# purpose: judge whether circular assembly products look like real plasmids rather than ligation artifacts
# status: experimental
# depends_on: assembly_engine.positions

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from ..positions import find_seq
from ..schemas.assembly import DNASequence, Feature
from ..sequence import normalize_sequence


@dataclass(slots=True)
class PlasmidCheck:
    """Origin and marker hits found on one sequence."""

    is_plasmid: bool
    origins: dict[str, int] = field(default_factory=dict)
    markers: dict[str, int] = field(default_factory=dict)

    @property
    def duplicated(self) -> list[str]:
        counts = {**self.origins, **self.markers}
        return sorted(name for name, count in counts.items() if count > 1)

    @property
    def confirmed(self) -> bool:
        """Circular with at least one origin and one marker."""

        return self.is_plasmid and bool(self.origins) and bool(self.markers)

    @property
    def plausible(self) -> bool:
        """Confirmed and carrying each detected origin and marker exactly once."""

        return self.confirmed and not self.duplicated


@dataclass(slots=True)
class PlasmidFeatureOracle:
    """Reference table of origin and marker sequences."""

    # purpose: stand-in for a common features table; supplied by callers or loaded from FASTA
    origins: dict[str, str] = field(default_factory=dict)
    markers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.origins = {name: normalize_sequence(seq) for name, seq in self.origins.items() if seq}
        self.markers = {name: normalize_sequence(seq) for name, seq in self.markers.items() if seq}

    @classmethod
    def from_mappings(
        cls, origins: Mapping[str, str] | None = None, markers: Mapping[str, str] | None = None
    ) -> "PlasmidFeatureOracle":
        return cls(origins=dict(origins or {}), markers=dict(markers or {}))

    def _hits(self, sequence: DNASequence, table: Mapping[str, str]) -> dict[str, int]:
        hits: dict[str, int] = {}
        for name, reference in table.items():
            count = len(find_seq(sequence.sequence, reference, circular=sequence.circular))
            if count:
                hits[name] = count
        return hits

    def check(self, sequence: DNASequence) -> PlasmidCheck:
        return PlasmidCheck(
            is_plasmid=sequence.circular,
            origins=self._hits(sequence, self.origins),
            markers=self._hits(sequence, self.markers),
        )

    def annotate(self, sequence: DNASequence) -> DNASequence:
        """Return a copy of the sequence with origin and marker features added."""

        features = list(sequence.features)
        for feature_class, table in (("origin", self.origins), ("marker", self.markers)):
            for name, reference in table.items():
                for pair in find_seq(sequence.sequence, reference, circular=sequence.circular):
                    start, end = pair.human_friendly(ignore_direction=True)
                    features.append(
                        Feature(
                            name=name,
                            feature_class=feature_class,
                            start=start,
                            end=end,
                            reverse=pair.reverse,
                        )
                    )
        return sequence.model_copy(update={"features": features})


def valid_plasmid(
    sequence: DNASequence, oracle: PlasmidFeatureOracle | None
) -> tuple[bool, dict[str, int], dict[str, int], list[str]]:
    """Return (is_plasmid, origins, markers, duplicated) for a sequence.

    Without an oracle only topology is reported and no features are found.
    """

    if oracle is None:
        return sequence.circular, {}, {}, []
    check = oracle.check(sequence)
    return check.is_plasmid, check.origins, check.markers, check.duplicated
