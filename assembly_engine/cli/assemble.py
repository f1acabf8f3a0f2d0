"""CLI utilities for restriction site lookup and assembly simulation."""

# purpose: run digestion and Golden Gate simulations from sequence files on disk
# status: experimental
# depends_on: assembly_engine.services.assembly, assembly_engine.services.importers

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from ..errors import AssemblyError
from ..schemas import AssemblyParameters, DNASequence
from ..services import assembly, digestion, enzymes
from ..services.importers import load_feature_oracle, parse_sequence_file, write_fasta

app = typer.Typer(help="Restriction digestion and Golden Gate assembly commands")

_logger = logging.getLogger(__name__)


def _read(path: Path, fmt: str, *, circular: bool | None = None) -> list[DNASequence]:
    return parse_sequence_file(path.read_bytes(), fmt, circular=circular)


def _vector_topology(fmt: str, linear_vector: bool) -> bool | None:
    """FASTA vectors are circular unless flagged linear; GenBank keeps its own topology."""

    if linear_vector:
        return False
    return True if fmt.lower() in {"fasta", "fa"} else None


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)


@app.command("simulate")
def simulate_command(
    vector: Path = typer.Argument(..., exists=True, help="Vector sequence file"),
    parts: List[Path] = typer.Argument(..., exists=True, help="Part sequence files in assembly order"),
    enzyme: str = typer.Option("SapI", "--enzyme", "-e", help="TypeIIs enzyme"),
    name: str = typer.Option("construct", "--name", "-n", help="Construct name"),
    fmt: str = typer.Option("genbank", "--format", "-f", help="Input format: genbank or fasta"),
    linear_vector: bool = typer.Option(False, "--linear-vector", help="Treat the vector as linear"),
    origins: Optional[Path] = typer.Option(None, exists=True, help="FASTA of origin sequences"),
    markers: Optional[Path] = typer.Option(None, exists=True, help="FASTA of marker sequences"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write products as FASTA"),
    workers: int = typer.Option(1, help="Worker processes when simulating several vectors"),
) -> None:
    """Simulate assembling PARTS into each record of VECTOR."""

    circular = _vector_topology(fmt, linear_vector)
    try:
        vectors = _read(vector, fmt, circular=circular)
        part_records = [record for path in parts for record in _read(path, fmt, circular=False)]
        oracle = None
        if origins is not None and markers is not None:
            oracle = load_feature_oracle(origins.read_bytes(), markers.read_bytes())
        params_list = [
            AssemblyParameters(
                construct_name=name if len(vectors) == 1 else f"{name}_{record.name}",
                enzyme_name=enzyme,
                vector=record,
                parts_in_order=part_records,
            )
            for record in vectors
        ]
        report = assembly.multiple_assemblies(params_list, oracle=oracle, max_workers=workers)
    except AssemblyError as exc:
        raise typer.BadParameter(str(exc)) from exc

    for result in report.results:
        typer.echo(f"{result.construct_name}: {result.status} - {result.summary}")
    for construct, error in report.errors.items():
        typer.echo(f"{construct}: {error}", err=True)
    typer.echo(report.summary)
    if output is not None:
        products = [product for result in report.results for product in result.products]
        output.write_text(write_fasta(products), encoding="utf-8")
        _logger.info("Wrote %d product(s) to %s", len(products), output)
    if report.success_count == 0:
        raise typer.Exit(code=1)


@app.command("sites")
def sites_command(
    sequence: Path = typer.Argument(..., exists=True, help="Sequence file"),
    enzyme: List[str] = typer.Option(..., "--enzyme", "-e", help="Enzyme name, repeatable"),
    fmt: str = typer.Option("fasta", "--format", "-f", help="Input format: genbank or fasta"),
    circular: bool = typer.Option(False, "--circular", help="Treat FASTA records as circular"),
) -> None:
    """Print restriction sites for each record as JSON lines."""

    try:
        records = _read(sequence, fmt, circular=True if circular else None)
        for record in records:
            for sites in digestion.find_restriction_sites(record, enzyme):
                typer.echo(sites.to_summary(record.name).model_dump_json())
    except AssemblyError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command("enzymes")
def enzymes_command(
    enzyme_class: Optional[str] = typer.Option(None, "--class", help="TypeII or TypeIIs"),
) -> None:
    """List catalog enzymes with their REBASE sites."""

    try:
        items = enzymes.list_enzymes(enzyme_class)
    except AssemblyError as exc:
        raise typer.BadParameter(str(exc)) from exc
    for item in items:
        typer.echo(f"{item.name}\t{item.enzyme_class}\t{item.rebase_site}")


@app.command("end-report")
def end_report_command(
    vector: Path = typer.Argument(..., exists=True, help="Vector sequence file"),
    parts: List[Path] = typer.Argument(..., exists=True, help="Part sequence files"),
    enzyme: str = typer.Option("SapI", "--enzyme", "-e", help="TypeIIs enzyme"),
    fmt: str = typer.Option("genbank", "--format", "-f", help="Input format: genbank or fasta"),
) -> None:
    """Print the sticky ends the enzyme leaves on the vector and each part."""

    try:
        (vector_record, *_) = _read(vector, fmt, circular=_vector_topology(fmt, False))
        part_records = [record for path in parts for record in _read(path, fmt, circular=False)]
        typer.echo(digestion.end_report(enzyme, vector_record, part_records))
    except AssemblyError as exc:
        raise typer.BadParameter(str(exc)) from exc


if __name__ == "__main__":  # pragma: no cover
    app()
