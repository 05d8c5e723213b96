"""
Enrichment methods.

- ora: over-representation analysis (hypergeometric tail per gene set)
- gsea: gene set enrichment analysis (running sum + permutation null)
- meta: per-list ORA/GSEA merged by p-value meta-analysis
- nta: network topology analysis (random walk with restart from seed genes)
"""

from .ora import run_ora, score_gene_set, validate_ora_inputs
from .gsea import run_gsea, leading_edge, normalized_enrichment_score, permutation_pvalue
from .meta import run_meta_analysis
from .nta import NTAConfig, NTAMethod, build_network, random_walk_probability, run_nta

__all__ = [
    "run_ora",
    "score_gene_set",
    "validate_ora_inputs",
    "run_gsea",
    "leading_edge",
    "normalized_enrichment_score",
    "permutation_pvalue",
    "run_meta_analysis",
    "NTAConfig",
    "NTAMethod",
    "build_network",
    "random_walk_probability",
    "run_nta",
]
