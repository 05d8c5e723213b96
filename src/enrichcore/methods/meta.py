"""
Meta-analysis across several gene lists.

Runs the configured method (ORA or GSEA) once per list, then merges each gene
set's per-list p-values into one combined p-value with Stouffer's Z or
Fisher's method. Multiple-testing correction is applied to the combined
p-values over every gene set tested in at least one list.

This is the "test each list, then combine" strategy; for "combine lists,
then test once" see ``enrichcore.stats.multilist.combine_ranked_lists``.

Examples:
    >>> from enrichcore import EnrichmentConfig, GeneSetCollection, RankedGeneList
    >>> from enrichcore.methods.meta import run_meta_analysis
    >>> rna = RankedGeneList.from_mapping({f"G{i}": 20.0 - i for i in range(40)})
    >>> protein = RankedGeneList.from_mapping({f"G{i}": 10.0 - i for i in range(30)})
    >>> collection = GeneSetCollection.from_dict({"TOP": [f"G{i}" for i in range(5)]})
    >>> [result] = run_meta_analysis(
    ...     collection,
    ...     EnrichmentConfig(method="gsea", permutations=200),
    ...     ranked_lists=[rna, protein],
    ... )
    >>> result.n_tested
    2
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from enrichcore.config import EnrichmentConfig, EnrichmentMethod
from enrichcore.core.exceptions import InvalidInputError, InvalidParametersError
from enrichcore.core.results import EnrichmentResult, MetaAnalysisResult
from enrichcore.core.universe import GeneSetCollection, RankedGeneList
from enrichcore.methods.gsea import run_gsea
from enrichcore.methods.ora import run_ora
from enrichcore.stats.correction import adjust_pvalues
from enrichcore.stats.multilist import MetaAnalysisMethod, combine_pvalues

logger = logging.getLogger(__name__)

__all__ = ['run_meta_analysis']


def _per_list_results(
    collection: GeneSetCollection,
    config: EnrichmentConfig,
    ranked_lists: Sequence[RankedGeneList] | None,
    interesting_lists: Sequence[Iterable[str]] | None,
    reference: Iterable[str] | None,
) -> list[list[EnrichmentResult]]:
    if config.method is EnrichmentMethod.GSEA:
        if not ranked_lists:
            raise InvalidInputError("GSEA meta-analysis requires at least one ranked list")
        return [run_gsea(collection, ranked, config) for ranked in ranked_lists]

    if not interesting_lists or reference is None:
        raise InvalidInputError(
            "ORA meta-analysis requires interesting lists and a reference list"
        )
    reference = list(reference)
    return [run_ora(collection, interesting, reference, config) for interesting in interesting_lists]


def run_meta_analysis(
    collection: GeneSetCollection,
    config: EnrichmentConfig,
    *,
    ranked_lists: Sequence[RankedGeneList] | None = None,
    interesting_lists: Sequence[Iterable[str]] | None = None,
    reference: Iterable[str] | None = None,
    meta_method: MetaAnalysisMethod | str = MetaAnalysisMethod.STOUFFER,
) -> list[MetaAnalysisResult]:
    """
    One combined p-value per gene set from several independent lists.

    Args:
        collection: Gene sets to test.
        config: Method and parameters, shared by every per-list run.
        ranked_lists: One ranked list per experiment (GSEA).
        interesting_lists: One interesting list per experiment (ORA).
        reference: Background shared by every interesting list (ORA).
        meta_method: STOUFFER or FISHER.

    Returns:
        MetaAnalysisResult per gene set tested in at least one list, sorted
        by (p_value, gene_set_id).

    Raises:
        InvalidParametersError: Invalid config or meta method.
        InvalidInputError: The lists required by the method are missing.
    """
    config.validate()
    try:
        meta_method = MetaAnalysisMethod(meta_method)
    except ValueError:
        raise InvalidParametersError(
            f"Unknown meta-analysis method {meta_method!r}; expected 'stouffer' or 'fisher'",
            parameter="meta_method",
        )
    per_list = _per_list_results(collection, config, ranked_lists, interesting_lists, reference)
    n_lists = len(per_list)

    list_p_values: dict[str, list[float | None]] = {}
    for i, results in enumerate(per_list):
        for result in results:
            list_p_values.setdefault(result.gene_set_id, [None] * n_lists)[i] = result.p_value

    # Canonical collection order for the correction population
    tested = [gene_set for gene_set in collection.gene_sets if gene_set.id in list_p_values]
    combined = [
        combine_pvalues([p for p in list_p_values[gs.id] if p is not None], meta_method)
        for gs in tested
    ]
    fdr = adjust_pvalues(combined, config.adjustment)

    results = [
        MetaAnalysisResult(
            gene_set_id=gs.id,
            gene_set_name=gs.name,
            p_value=p,
            fdr=float(q),
            list_p_values=tuple(list_p_values[gs.id]),
        )
        for gs, p, q in zip(tested, combined, fdr)
    ]
    results.sort(key=lambda r: (r.p_value, r.gene_set_id))

    logger.info(
        f"Meta-analysis ({config.method.value}, {meta_method.value}): "
        f"{len(results)} gene sets across {n_lists} lists"
    )
    return results
