"""
Single entry point dispatching on the configured enrichment method.

The two methods share only the statistics kernel and the correction module,
so dispatch happens once, here, on the EnrichmentMethod tag.

Examples:
    >>> from enrichcore import EnrichmentConfig, GeneSetCollection, run_enrichment
    >>> collection = GeneSetCollection.from_dict({"TOP": [f"G{i}" for i in range(20)]})
    >>> config = EnrichmentConfig(method="ora")
    >>> results = run_enrichment(
    ...     collection, config,
    ...     interesting={f"G{i}" for i in range(10)},
    ...     reference={f"G{i}" for i in range(100)},
    ... )
    >>> results[0].overlap_size
    10
"""

from __future__ import annotations

from typing import Iterable

from enrichcore.config import EnrichmentConfig, EnrichmentMethod
from enrichcore.core.exceptions import InvalidInputError
from enrichcore.core.results import EnrichmentResult
from enrichcore.core.universe import GeneSetCollection, RankedGeneList
from enrichcore.methods.gsea import run_gsea
from enrichcore.methods.ora import run_ora

__all__ = ['run_enrichment']


def run_enrichment(
    collection: GeneSetCollection,
    config: EnrichmentConfig,
    *,
    interesting: Iterable[str] | None = None,
    reference: Iterable[str] | None = None,
    ranked_list: RankedGeneList | None = None,
) -> list[EnrichmentResult]:
    """
    Run ORA or GSEA over ``collection`` as selected by ``config.method``.

    Args:
        collection: Gene sets to test.
        config: Validated before any work starts.
        interesting: Foreground genes (ORA).
        reference: Background universe (ORA).
        ranked_list: Scored, ranked genes (GSEA).

    Returns:
        Result records sorted by (p_value, gene_set_id).

    Raises:
        InvalidInputError: The inputs required by the selected method are
            missing.
    """
    config.validate()

    if config.method is EnrichmentMethod.ORA:
        if interesting is None or reference is None:
            raise InvalidInputError("ORA requires both an interesting and a reference list")
        return run_ora(collection, interesting, reference, config)

    if config.method is EnrichmentMethod.GSEA:
        if ranked_list is None:
            raise InvalidInputError("GSEA requires a ranked gene list")
        return run_gsea(collection, ranked_list, config)

    raise InvalidInputError(f"Unsupported enrichment method: {config.method!r}")
