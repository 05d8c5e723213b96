"""
Combining evidence from several experiments before or after enrichment.

Two complementary strategies:

    Combine lists, then test once:
        Normalize each ranked list to a common scale, merge per gene, and
        run a single GSEA on the combined ranking.

    Test each list, then combine p-values:
        Run the engine per list and merge each gene set's p-values with a
        meta-analysis method (Stouffer's Z or Fisher's chi-square).

Examples:
    >>> from enrichcore.core.universe import RankedGeneList
    >>> rna = RankedGeneList.from_mapping({"A": 4.0, "B": 1.0, "C": -2.0})
    >>> protein = RankedGeneList.from_mapping({"A": 0.5, "D": -3.0})
    >>> combined = combine_ranked_lists(
    ...     [rna, protein],
    ...     combination=ListCombination.MAX,
    ...     normalization=RankNormalization.MEAN_VALUE,
    ... )
    >>> combined.gene_ids
    ('A', 'B', 'C', 'D')
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Sequence

import numpy as np
from scipy import stats as scipy_stats

from enrichcore.core.exceptions import InvalidInputError
from enrichcore.core.universe import RankedGeneList
from enrichcore.stats.kernel import RankNormalization, normalize_scores

logger = logging.getLogger(__name__)

__all__ = [
    'ListCombination',
    'MetaAnalysisMethod',
    'combine_ranked_lists',
    'combine_pvalues',
]


class ListCombination(Enum):
    """How per-gene scores from several lists are merged."""

    MAX = "max"    # score with the largest magnitude
    MEAN = "mean"  # mean over the lists containing the gene


class MetaAnalysisMethod(Enum):
    """p-value combination methods."""

    STOUFFER = "stouffer"
    FISHER = "fisher"


def combine_ranked_lists(
    lists: Sequence[RankedGeneList],
    combination: ListCombination | str = ListCombination.MEAN,
    normalization: RankNormalization | str = RankNormalization.NONE,
) -> RankedGeneList:
    """
    Merge several ranked lists into one.

    Each list is normalized independently, then every gene present in at
    least one list receives a combined score.

    Args:
        lists: Ranked lists to merge (at least one).
        combination: MAX keeps the normalized score with the largest
            magnitude (earlier lists win exact ties); MEAN averages over the
            lists that contain the gene.
        normalization: Applied to each list before merging.

    Returns:
        New RankedGeneList. Genes are first ordered by first appearance, then
        ranked by combined score (stable, so ties keep that order).
    """
    combination = ListCombination(combination)
    normalization = RankNormalization(normalization)
    if not lists:
        raise InvalidInputError("No ranked lists to combine")

    per_gene: dict[str, list[float]] = {}
    for ranked in lists:
        normalized = normalize_scores(ranked.scores, normalization)
        for gene, value in zip(ranked.gene_ids, normalized):
            per_gene.setdefault(gene, []).append(float(value))

    combined: dict[str, float] = {}
    for gene, values in per_gene.items():
        if combination is ListCombination.MAX:
            combined[gene] = values[int(np.argmax(np.abs(values)))]
        else:
            combined[gene] = float(np.mean(values))

    logger.debug(
        f"Combined {len(lists)} ranked lists into {len(combined)} genes "
        f"({combination.value}, normalization={normalization.value})"
    )
    return RankedGeneList.from_mapping(combined)


def combine_pvalues(
    p_values: Sequence[float],
    method: MetaAnalysisMethod | str = MetaAnalysisMethod.STOUFFER,
    weights: Sequence[float] | None = None,
) -> float:
    """
    Meta-analysis p-value for one gene set tested in several lists.

    Args:
        p_values: Per-list p-values for the same gene set.
        method: STOUFFER (optionally weighted) or FISHER.
        weights: Stouffer weights, e.g. sqrt of sample sizes.

    Returns:
        Combined p-value in [0, 1].
    """
    method = MetaAnalysisMethod(method)
    values = np.asarray(p_values, dtype=np.float64)
    if values.size == 0:
        raise InvalidInputError("No p-values to combine")
    if np.any(~np.isfinite(values)) or np.any(values < 0) or np.any(values > 1):
        raise InvalidInputError("p-values must be finite and in [0, 1]")
    if weights is not None and method is not MetaAnalysisMethod.STOUFFER:
        raise InvalidInputError("weights are only supported for Stouffer's method")

    # Keep the normal quantile finite at the extremes
    values = np.clip(values, np.finfo(np.float64).tiny, 1.0 - np.finfo(np.float64).eps)

    _, combined = scipy_stats.combine_pvalues(values, method=method.value, weights=weights)
    return float(min(max(combined, 0.0), 1.0))
