"""FASTA and GenBank ingestion into assembly sequences."""

# purpose: convert uploaded sequence files into DNASequence payloads and write products back out
# status: experimental
# depends_on: Bio.SeqIO, assembly_engine.schemas.assembly

from __future__ import annotations

import io
from typing import Any, Iterable

from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqFeature import SeqFeature
from Bio.SeqRecord import SeqRecord

from ..errors import InputError
from ..schemas.assembly import DNASequence, Feature
from .plasmid import PlasmidFeatureOracle

SUPPORTED_FORMATS = {"fasta": "fasta", "fa": "fasta", "genbank": "genbank", "gb": "genbank"}


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _coerce_feature(feature: SeqFeature) -> Feature:
    """Convert a Biopython feature into a 1-based feature annotation."""

    location = feature.location
    label = (
        _first(feature.qualifiers.get("label"))
        or _first(feature.qualifiers.get("gene"))
        or _first(feature.qualifiers.get("product"))
    )
    return Feature(
        name=label or feature.type or "feature",
        feature_class=feature.type or "misc_feature",
        start=int(location.start) + 1,
        end=max(int(location.end), int(location.start) + 1),
        reverse=location.strand == -1,
    )


def _to_sequence(record: SeqRecord, fmt: str, circular: bool | None) -> DNASequence:
    topology = (record.annotations or {}).get("topology", "linear")
    features = []
    if fmt == "genbank":
        features = [_coerce_feature(feature) for feature in record.features if feature.type != "source"]
    return DNASequence(
        name=record.name if fmt == "genbank" and record.name else record.id,
        sequence=str(record.seq),
        circular=topology == "circular" if circular is None else circular,
        features=features,
    )


def parse_sequence_file(
    content: bytes | str, fmt: str = "fasta", *, circular: bool | None = None
) -> list[DNASequence]:
    """Parse every record in a FASTA or GenBank payload.

    Topology is read from the GenBank ``topology`` annotation unless
    ``circular`` is given; FASTA records are linear by default.
    """

    # inputs: raw file content, format name and optional topology override
    # outputs: DNASequence list in file order
    key = SUPPORTED_FORMATS.get((fmt or "").lower())
    if key is None:
        raise InputError(f"unsupported sequence format {fmt}; use one of {', '.join(sorted(SUPPORTED_FORMATS))}")
    text = content.decode("utf-8") if isinstance(content, bytes) else content
    with io.StringIO(text) as handle:
        records = list(SeqIO.parse(handle, key))
    if not records:
        raise InputError(f"no {key} records found")
    return [_to_sequence(record, key, circular) for record in records]


def load_feature_oracle(origins: bytes | str, markers: bytes | str) -> PlasmidFeatureOracle:
    """Build a feature oracle from FASTA files of origins and markers."""

    return PlasmidFeatureOracle(
        origins={item.name: item.sequence for item in parse_sequence_file(origins, "fasta")},
        markers={item.name: item.sequence for item in parse_sequence_file(markers, "fasta")},
    )


def write_fasta(sequences: Iterable[DNASequence]) -> str:
    """Serialise sequences as FASTA text."""

    records = [
        SeqRecord(
            Seq(item.sequence),
            id=item.name,
            description="circular" if item.circular else "linear",
        )
        for item in sequences
    ]
    with io.StringIO() as handle:
        SeqIO.write(records, handle, "fasta")
        return handle.getvalue()
