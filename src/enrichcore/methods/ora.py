"""
Over-Representation Analysis (ORA).

Tests every gene set in a collection against an interesting list drawn from
a reference list:

    set_size  = |S ∩ reference|
    overlap   = |S ∩ interesting|
    expected  = |interesting| * set_size / |reference|
    p_value   = P(X >= overlap),  X ~ Hypergeometric(|reference|, |interesting|, set_size)

Sets whose set_size falls outside [min_size, max_size] are not tested and do
not appear in the output. Sets with zero overlap are tested (p = 1) and count
towards the multiple-testing population.

Examples:
    >>> from enrichcore import GeneSetCollection, EnrichmentConfig
    >>> from enrichcore.methods.ora import run_ora
    >>> reference = {f"G{i}" for i in range(100)}
    >>> interesting = {f"G{i}" for i in range(10)}
    >>> collection = GeneSetCollection.from_dict({"TOP": [f"G{i}" for i in range(20)]})
    >>> [result] = run_ora(collection, interesting, reference)
    >>> result.overlap_size, result.expected_size, result.enrichment_ratio
    (10, 2.0, 5.0)
"""

from __future__ import annotations

import logging
from typing import Iterable, NamedTuple

from enrichcore.config import EnrichmentConfig, EnrichmentMethod
from enrichcore.core.exceptions import ComputationFailureError, InvalidInputError
from enrichcore.core.results import ORAResult
from enrichcore.core.universe import GeneSet, GeneSetCollection, make_gene_list
from enrichcore.stats.correction import adjust_pvalues
from enrichcore.stats.kernel import hypergeometric_tail_probability
from enrichcore.utils.parallel import map_in_order

logger = logging.getLogger(__name__)

__all__ = [
    'ORAStatistics',
    'validate_ora_inputs',
    'score_gene_set',
    'run_ora',
]


class ORAStatistics(NamedTuple):
    """Uncorrected statistics for one tested gene set."""

    gene_set: GeneSet
    set_size: int
    overlap_genes: frozenset[str]
    expected_size: float
    enrichment_ratio: float
    p_value: float


def validate_ora_inputs(
    interesting: Iterable[str],
    reference: Iterable[str],
) -> tuple[frozenset[str], frozenset[str]]:
    """
    Normalize and check the interesting/reference pair.

    Returns:
        (interesting, reference) as frozensets of interned identifiers.

    Raises:
        InvalidInputError: Empty reference, empty interesting list, or an
            interesting list that is not a subset of the reference.
    """
    interesting = make_gene_list(interesting)
    reference = make_gene_list(reference)

    if not reference:
        raise InvalidInputError("Reference list is empty")
    if not interesting:
        raise InvalidInputError("Interesting list is empty")

    outside = interesting - reference
    if outside:
        raise InvalidInputError(
            f"{len(outside)} interesting genes are missing from the reference list "
            f"(e.g. {sorted(outside)[:5]})"
        )
    return interesting, reference


def score_gene_set(
    gene_set: GeneSet,
    interesting: frozenset[str],
    reference: frozenset[str],
    min_size: int = 0,
    max_size: int | None = None,
) -> ORAStatistics | None:
    """
    Raw ORA statistics for one gene set, or None if it is outside the size range.

    ``interesting`` must already be a subset of ``reference``.
    """
    set_size = len(gene_set.members & reference)
    if set_size < min_size or (max_size is not None and set_size > max_size):
        return None

    overlap_genes = gene_set.members & interesting
    overlap = len(overlap_genes)
    expected = len(interesting) * set_size / len(reference)
    ratio = overlap / expected if expected > 0 else 0.0

    try:
        p_value = hypergeometric_tail_probability(
            overlap, set_size, len(interesting), len(reference)
        )
    except ComputationFailureError as e:
        raise ComputationFailureError(e.message, gene_set_id=gene_set.id) from e

    return ORAStatistics(gene_set, set_size, overlap_genes, expected, ratio, p_value)


def run_ora(
    collection: GeneSetCollection,
    interesting: Iterable[str],
    reference: Iterable[str],
    config: EnrichmentConfig | None = None,
) -> list[ORAResult]:
    """
    Over-representation analysis of every gene set in ``collection``.

    Args:
        collection: Gene sets to test, in canonical order.
        interesting: Foreground genes (must be a subset of ``reference``).
        reference: Background universe.
        config: Size bounds, adjustment method and worker count. Defaults to
            ``EnrichmentConfig(method=ORA)``.

    Returns:
        ORAResult per tested set, sorted by (p_value, gene_set_id).

    Raises:
        InvalidParametersError: Invalid config.
        InvalidInputError: Invalid interesting/reference lists.
        ComputationFailureError: Numerical failure for some gene set.
    """
    if config is None:
        config = EnrichmentConfig(method=EnrichmentMethod.ORA)
    config.validate()
    interesting, reference = validate_ora_inputs(interesting, reference)

    logger.info(
        f"ORA: {len(collection)} gene sets, {len(interesting)} interesting genes, "
        f"{len(reference)} reference genes"
    )

    scored = map_in_order(
        lambda gene_set: score_gene_set(
            gene_set, interesting, reference, config.min_size, config.max_size
        ),
        collection.gene_sets,
        config.n_jobs,
    )
    tested = [s for s in scored if s is not None]
    logger.debug(
        f"ORA: {len(collection) - len(tested)} gene sets outside size range "
        f"[{config.min_size}, {config.max_size}]"
    )

    fdr = adjust_pvalues([s.p_value for s in tested], config.adjustment)

    results = [
        ORAResult(
            gene_set_id=s.gene_set.id,
            gene_set_name=s.gene_set.name,
            set_size=s.set_size,
            overlap_size=len(s.overlap_genes),
            expected_size=s.expected_size,
            enrichment_ratio=s.enrichment_ratio,
            p_value=s.p_value,
            fdr=float(q),
            overlap_genes=s.overlap_genes,
        )
        for s, q in zip(tested, fdr)
    ]
    results.sort(key=lambda r: (r.p_value, r.gene_set_id))

    n_significant = sum(1 for r in results if r.fdr < 0.05)
    logger.info(f"ORA: tested {len(results)} gene sets, {n_significant} with FDR < 0.05")
    return results
