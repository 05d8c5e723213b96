"""Core data model: genes, gene sets, ranked lists, results and errors."""

from enrichcore.core.exceptions import (
    EnrichmentError,
    InvalidInputError,
    InvalidParametersError,
    InsufficientPermutationsError,
    ComputationFailureError,
)
from enrichcore.core.universe import (
    GeneSet,
    GeneSetCollection,
    RankedGeneList,
    make_gene_list,
    merge_collections,
)
from enrichcore.core.results import (
    ORAResult,
    GSEAResult,
    EnrichmentResult,
    MetaAnalysisResult,
    NTAResult,
    results_to_frame,
)

__all__ = [
    "EnrichmentError",
    "InvalidInputError",
    "InvalidParametersError",
    "InsufficientPermutationsError",
    "ComputationFailureError",
    "GeneSet",
    "GeneSetCollection",
    "RankedGeneList",
    "make_gene_list",
    "merge_collections",
    "ORAResult",
    "GSEAResult",
    "EnrichmentResult",
    "MetaAnalysisResult",
    "NTAResult",
    "results_to_frame",
]
