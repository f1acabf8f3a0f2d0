"""Assembly engine API surface for digestion, simulation and part design."""

# purpose: expose enzyme catalogs, digestion and Golden Gate simulation over HTTP
# status: experimental
# depends_on: assembly_engine.services, assembly_engine.schemas

from __future__ import annotations

from typing import NoReturn

from fastapi import APIRouter, HTTPException

from .. import schemas
from ..errors import AssemblyError, UnknownEnzymeError
from ..services import assembly, digestion, enzymes, part_design
from ..services.plasmid import PlasmidFeatureOracle

router = APIRouter(prefix="/api/assembly", tags=["assembly"])


def _raise_http(exc: AssemblyError) -> NoReturn:
    if isinstance(exc, UnknownEnzymeError):
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/enzymes", response_model=schemas.EnzymeCatalogResponse)
def list_enzymes(enzyme_class: schemas.EnzymeClass | None = None):
    """Return catalog enzymes, optionally limited to one class."""

    items = enzymes.list_enzymes(enzyme_class)
    return schemas.EnzymeCatalogResponse(enzymes=items, count=len(items))


@router.get("/enzymes/{name}", response_model=schemas.RestrictionEnzyme)
def get_enzyme(name: str):
    try:
        return enzymes.lookup_enzyme(name)
    except AssemblyError as exc:
        _raise_http(exc)


@router.get("/standards", response_model=schemas.AssemblyStandardCatalogResponse)
def list_standards():
    items = part_design.list_assembly_standards()
    return schemas.AssemblyStandardCatalogResponse(standards=items, count=len(items))


@router.post("/sites", response_model=schemas.RestrictionSitesResponse)
def restriction_sites(payload: schemas.RestrictionSitesRequest):
    try:
        records = digestion.find_restriction_sites(payload.sequence, payload.enzymes)
    except AssemblyError as exc:
        _raise_http(exc)
    return schemas.RestrictionSitesResponse(
        sites=[record.to_summary(payload.sequence.name) for record in records]
    )


@router.post("/digest", response_model=schemas.DigestResponse)
def digest(payload: schemas.DigestRequest):
    """Digest a sequence and return fragments with their end descriptors."""

    try:
        fragments = digestion.digest(payload.sequence, payload.enzymes)
    except AssemblyError as exc:
        _raise_http(exc)
    return schemas.DigestResponse(fragments=fragments, count=len(fragments))


@router.post("/simulate", response_model=schemas.AssemblySimulationResult)
def simulate(payload: schemas.AssemblySimulationRequest):
    """Simulate a Type IIs assembly of the supplied vector and parts."""

    # purpose: run assembly_simulate with request-scoped search bounds and feature table
    oracle = None
    if payload.features is not None:
        oracle = PlasmidFeatureOracle.from_mappings(payload.features.origins, payload.features.markers)
    params = schemas.AssemblyParameters.model_validate(
        payload.model_dump(include={"construct_name", "enzyme_name", "vector", "parts_in_order"})
    )
    try:
        return assembly.assembly_simulate(params, config=payload.config, oracle=oracle)
    except AssemblyError as exc:
        _raise_http(exc)


@router.post("/design/scarfree", response_model=schemas.ScarfreeDesignResponse)
def design_scarfree(payload: schemas.ScarfreeDesignRequest):
    try:
        enzyme = enzymes.lookup_type_iis(payload.enzyme_name)
        desired_5prime, vector_3prime = part_design.vector_ends(payload.vector, enzyme)
        parts = part_design.make_scarfree_parts(payload.parts, payload.vector, enzyme)
    except AssemblyError as exc:
        _raise_http(exc)
    return schemas.ScarfreeDesignResponse(
        parts=parts, desired_5prime_end=desired_5prime, vector_3prime_end=vector_3prime
    )
