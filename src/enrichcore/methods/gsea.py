"""
Gene Set Enrichment Analysis (GSEA) with a gene-label permutation null.

Per gene set:
    1. Observed enrichment score from the running-sum walk over the ranked list.
    2. Leading edge: members at or before the peak (positive ES) or at or
       after the peak (negative ES), in rank order.
    3. Null distribution: ``permutations`` enrichment scores with membership
       shuffled over ranked positions. Every gene set is scored against the
       same permutation orders.
    4. NES = ES / mean(|null|) over nulls with the same sign as ES.
    5. p = (#{same-sign null: |null| >= |ES|} + 1) / (#{same-sign null} + 1).

Sign convention: ES >= 0 is matched with nulls >= 0, ES < 0 with nulls < 0.

Parallelism:
    One level only. With at least as many gene sets as workers, gene sets
    are distributed across workers and each set generates its null inline.
    Otherwise sets run one at a time and permutations are distributed.
    Either way results are identical for a given seed.

Examples:
    >>> import numpy as np
    >>> from enrichcore import EnrichmentConfig, GeneSetCollection, RankedGeneList
    >>> from enrichcore.methods.gsea import run_gsea
    >>> genes = [f"G{i}" for i in range(20)]
    >>> ranked = RankedGeneList(genes, np.linspace(2.0, -2.0, 20))
    >>> collection = GeneSetCollection.from_dict({"TOP5": genes[:5]})
    >>> config = EnrichmentConfig(method="gsea", min_size=1, permutations=1000, seed=42)
    >>> [result] = run_gsea(collection, ranked, config)
    >>> result.enrichment_score > 0.99, result.leading_edge == tuple(genes[:5])
    (True, True)
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from enrichcore.config import EnrichmentConfig, EnrichmentMethod
from enrichcore.core.exceptions import ComputationFailureError, EnrichmentError
from enrichcore.core.results import GSEAResult
from enrichcore.core.universe import GeneSet, GeneSetCollection, RankedGeneList
from enrichcore.stats.correction import adjust_pvalues
from enrichcore.stats.kernel import running_sum_statistic
from enrichcore.stats.permutation import PermutationScheduler
from enrichcore.utils.parallel import map_in_order

logger = logging.getLogger(__name__)

__all__ = [
    'leading_edge',
    'normalized_enrichment_score',
    'permutation_pvalue',
    'run_gsea',
]


def _same_sign(null_scores: NDArray[np.float64], enrichment_score: float) -> NDArray[np.bool_]:
    if enrichment_score >= 0:
        return null_scores >= 0
    return null_scores < 0


def leading_edge(
    gene_ids: Sequence[str],
    membership: ArrayLike,
    enrichment_score: float,
    peak_index: int,
) -> tuple[str, ...]:
    """
    Members contributing to the running-sum peak, in rank order.

    Positive ES: members in positions [0, peak_index].
    Negative ES: members in positions [peak_index, n).
    """
    membership = np.asarray(membership, dtype=bool)
    if enrichment_score >= 0:
        positions = np.flatnonzero(membership[: peak_index + 1])
    else:
        positions = np.flatnonzero(membership[peak_index:]) + peak_index
    return tuple(gene_ids[i] for i in positions)


def normalized_enrichment_score(
    enrichment_score: float,
    null_scores: ArrayLike,
) -> float:
    """
    ES divided by the mean magnitude of same-signed null scores.

    When no null score shares the sign of ES (or their mean magnitude is 0),
    the divisor falls back to the standard deviation of the whole null.

    Raises:
        ComputationFailureError: If the fallback divisor is zero or not finite.
    """
    null_scores = np.asarray(null_scores, dtype=np.float64)
    same = null_scores[_same_sign(null_scores, enrichment_score)]
    if same.size > 0:
        divisor = float(np.mean(np.abs(same)))
        if divisor > 0:
            return enrichment_score / divisor

    divisor = float(np.std(null_scores))
    if not np.isfinite(divisor) or divisor <= 0:
        raise ComputationFailureError(
            f"Cannot normalize ES={enrichment_score}: no same-sign null scores "
            f"and null standard deviation is {divisor}"
        )
    return enrichment_score / divisor


def permutation_pvalue(enrichment_score: float, null_scores: ArrayLike) -> float:
    """
    Smoothed one-sided permutation p-value against same-signed nulls.

    Examples:
        >>> permutation_pvalue(0.9, [0.1, 0.2, 0.95, -0.5])
        0.5
    """
    null_scores = np.asarray(null_scores, dtype=np.float64)
    same = null_scores[_same_sign(null_scores, enrichment_score)]
    extreme = int(np.count_nonzero(np.abs(same) >= abs(enrichment_score)))
    return (extreme + 1) / (same.size + 1)


def _score_gene_set(
    gene_set: GeneSet,
    membership: NDArray[np.bool_],
    ranked_list: RankedGeneList,
    scheduler: PermutationScheduler,
    orders: NDArray[np.integer],
    config: EnrichmentConfig,
) -> GSEAResult:
    """Uncorrected GSEA statistics for one gene set (fdr filled in later)."""
    try:
        observed = running_sum_statistic(
            ranked_list.scores, membership, config.weight_exponent
        )
        null_scores = scheduler.generate(
            ranked_list, membership, config.weight_exponent, orders=orders
        )
        nes = normalized_enrichment_score(observed.enrichment_score, null_scores)
    except EnrichmentError as e:
        if e.gene_set_id is not None:
            raise
        raise type(e)(e.message, gene_set_id=gene_set.id, parameter=e.parameter) from e

    return GSEAResult(
        gene_set_id=gene_set.id,
        gene_set_name=gene_set.name,
        set_size=int(membership.sum()),
        enrichment_score=observed.enrichment_score,
        normalized_enrichment_score=nes,
        p_value=permutation_pvalue(observed.enrichment_score, null_scores),
        fdr=1.0,
        leading_edge=leading_edge(
            ranked_list.gene_ids, membership, observed.enrichment_score, observed.peak_index
        ),
        peak_index=observed.peak_index,
        running_sum=(
            tuple(float(x) for x in observed.running_sum) if config.keep_running_sum else None
        ),
    )


def run_gsea(
    collection: GeneSetCollection,
    ranked_list: RankedGeneList,
    config: EnrichmentConfig | None = None,
) -> list[GSEAResult]:
    """
    Gene set enrichment analysis of every gene set in ``collection``.

    Args:
        collection: Gene sets to test, in canonical order.
        ranked_list: Every measured gene with its signed score.
        config: Size bounds, permutations, weight exponent, seed, adjustment
            and worker count. Defaults to ``EnrichmentConfig(method=GSEA)``.

    Returns:
        GSEAResult per tested set, sorted by (p_value, gene_set_id).

    Raises:
        InvalidParametersError: Invalid config (including
            InsufficientPermutationsError for permutations < 1).
        ComputationFailureError: Numerical failure for some gene set.
    """
    if config is None:
        config = EnrichmentConfig(method=EnrichmentMethod.GSEA)
    if config.method is not EnrichmentMethod.GSEA:
        config = replace(config, method=EnrichmentMethod.GSEA)
    config.validate()

    n_genes = len(ranked_list)
    logger.info(
        f"GSEA: {len(collection)} gene sets, {n_genes} ranked genes, "
        f"{config.permutations} permutations, weight_exponent={config.weight_exponent}"
    )

    tasks = []
    for gene_set in collection.gene_sets:
        membership = ranked_list.membership(gene_set.members)
        set_size = int(membership.sum())
        if set_size < config.min_size or set_size > config.max_size:
            continue
        if set_size == 0 or set_size == n_genes:
            logger.debug(
                f"Skipping gene set {gene_set.id}: {set_size} of {n_genes} ranked genes"
            )
            continue
        tasks.append((gene_set, membership))

    logger.debug(
        f"GSEA: {len(tasks)} of {len(collection)} gene sets within size range "
        f"[{config.min_size}, {config.max_size}]"
    )
    if not tasks:
        return []

    across_sets = len(tasks) >= config.n_jobs
    scheduler = PermutationScheduler(
        config.permutations,
        seed=config.seed,
        n_jobs=1 if across_sets else config.n_jobs,
    )
    orders = scheduler.permutation_orders(n_genes)

    raw = map_in_order(
        lambda task: _score_gene_set(task[0], task[1], ranked_list, scheduler, orders, config),
        tasks,
        config.n_jobs if across_sets else 1,
    )

    fdr = adjust_pvalues([r.p_value for r in raw], config.adjustment)
    results = [replace(r, fdr=float(q)) for r, q in zip(raw, fdr)]
    results.sort(key=lambda r: (r.p_value, r.gene_set_id))

    n_significant = sum(1 for r in results if r.fdr < 0.05)
    logger.info(f"GSEA: tested {len(results)} gene sets, {n_significant} with FDR < 0.05")
    return results
