"""
Statistical building blocks for enrichment analysis.

Exports core functions for:
- Hypergeometric / Fisher tail probabilities (ORA)
- Running-sum enrichment scores and permutation nulls (GSEA)
- Multiple testing correction (FDR)
- Rank-score normalization and multi-list combination
"""

from .kernel import (
    RunningSumResult,
    RankNormalization,
    hypergeometric_tail_probability,
    fisher_exact_pvalue,
    rank_weights,
    running_sum_steps,
    running_sum_statistic,
    permuted_enrichment_scores,
    normalize_scores,
)
from .correction import (
    AdjustmentMethod,
    adjust_pvalues,
    benjamini_hochberg,
)
from .permutation import (
    DEFAULT_SEED,
    PermutationScheduler,
    generate_null_scores,
)
from .multilist import (
    ListCombination,
    MetaAnalysisMethod,
    combine_ranked_lists,
    combine_pvalues,
)

__all__ = [
    "RunningSumResult",
    "RankNormalization",
    "hypergeometric_tail_probability",
    "fisher_exact_pvalue",
    "rank_weights",
    "running_sum_steps",
    "running_sum_statistic",
    "permuted_enrichment_scores",
    "normalize_scores",
    "AdjustmentMethod",
    "adjust_pvalues",
    "benjamini_hochberg",
    "DEFAULT_SEED",
    "PermutationScheduler",
    "generate_null_scores",
    "ListCombination",
    "MetaAnalysisMethod",
    "combine_ranked_lists",
    "combine_pvalues",
]
