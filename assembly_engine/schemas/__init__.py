"""Pydantic schemas consolidating assembly engine contracts."""

# purpose: aggregate request, response and domain schemas for services and FastAPI surfaces
# status: experimental

from .assembly import (
    AssemblyLevel,
    AssemblyParameters,
    AssemblySearchConfig,
    AssemblySimulationRequest,
    AssemblySimulationResult,
    AssemblyStandard,
    AssemblyStandardCatalogResponse,
    DigestRequest,
    DigestResponse,
    DNASequence,
    EnzymeCatalogResponse,
    EnzymeClass,
    Feature,
    FeatureOracleInput,
    MultipleAssemblyReport,
    Overhang,
    RestrictionEnzyme,
    RestrictionSiteSummary,
    RestrictionSitesRequest,
    RestrictionSitesResponse,
    ScarfreeDesignRequest,
    ScarfreeDesignResponse,
    SimulationStatus,
    StandardOverhangs,
)

__all__ = [
    "AssemblyLevel",
    "AssemblyParameters",
    "AssemblySearchConfig",
    "AssemblySimulationRequest",
    "AssemblySimulationResult",
    "AssemblyStandard",
    "AssemblyStandardCatalogResponse",
    "DigestRequest",
    "DigestResponse",
    "DNASequence",
    "EnzymeCatalogResponse",
    "EnzymeClass",
    "Feature",
    "FeatureOracleInput",
    "MultipleAssemblyReport",
    "Overhang",
    "RestrictionEnzyme",
    "RestrictionSiteSummary",
    "RestrictionSitesRequest",
    "RestrictionSitesResponse",
    "ScarfreeDesignRequest",
    "ScarfreeDesignResponse",
    "SimulationStatus",
    "StandardOverhangs",
]
