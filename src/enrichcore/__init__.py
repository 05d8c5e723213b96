"""
enrichcore: gene set enrichment engine.

Over-representation analysis (hypergeometric tail) and gene set enrichment
analysis (weighted running sum with a gene-label permutation null), with
Benjamini-Hochberg FDR across every tested gene set. Network topology
analysis ranks interaction-network nodes by random walk with restart from
seed genes.

Modules:
    core: Gene sets, ranked lists, result records, error taxonomy
    stats: Hypergeometric/running-sum kernel, permutation scheduler,
        multiple-testing correction, multi-list combination
    methods: ORA and GSEA engines, multi-list meta-analysis, network
        topology analysis
    engine: Dispatch on the configured method
    config: EnrichmentConfig and YAML/JSON config loading
"""

__version__ = "0.1.0"

from enrichcore.core import (
    EnrichmentError,
    InvalidInputError,
    InvalidParametersError,
    InsufficientPermutationsError,
    ComputationFailureError,
    GeneSet,
    GeneSetCollection,
    RankedGeneList,
    make_gene_list,
    merge_collections,
    ORAResult,
    GSEAResult,
    EnrichmentResult,
    MetaAnalysisResult,
    NTAResult,
    results_to_frame,
)
from enrichcore.config import (
    EnrichmentMethod,
    EnrichmentConfig,
    load_config,
    read_config_mapping,
)
from enrichcore.stats import AdjustmentMethod, DEFAULT_SEED, MetaAnalysisMethod
from enrichcore.methods import NTAConfig, NTAMethod, run_gsea, run_meta_analysis, run_nta, run_ora
from enrichcore.engine import run_enrichment

__all__ = [
    "__version__",
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
    "EnrichmentMethod",
    "EnrichmentConfig",
    "load_config",
    "read_config_mapping",
    "AdjustmentMethod",
    "DEFAULT_SEED",
    "run_ora",
    "run_gsea",
    "run_enrichment",
    "MetaAnalysisMethod",
    "run_meta_analysis",
    "NTAConfig",
    "NTAMethod",
    "run_nta",
]
