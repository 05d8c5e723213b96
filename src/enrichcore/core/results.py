"""
Result records returned by the ORA, GSEA, meta-analysis and NTA engines.

Records are frozen dataclasses, created once per tested gene set after
multiple-testing correction and owned by the caller from then on. The engines
keep no reference to them.

Interpretation:
    ORA:
        - enrichment_ratio > 1: more overlap than expected by chance
        - p_value: one-sided hypergeometric tail P(X >= overlap)
    GSEA:
        - enrichment_score > 0: set concentrated at the top of the ranking
        - enrichment_score < 0: set concentrated at the bottom
        - normalized_enrichment_score: comparable across set sizes
    Both:
        - fdr: adjusted p-value over every tested set (BH by default)

Examples:
    >>> results = run_ora(collection, interesting, reference)
    >>> significant = [r for r in results if r.fdr < 0.05]
    >>> df = results_to_frame(results)
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Sequence, Union

import pandas as pd

__all__ = [
    'ORAResult',
    'GSEAResult',
    'EnrichmentResult',
    'NTAResult',
    'MetaAnalysisResult',
    'results_to_frame',
]


@dataclass(frozen=True)
class ORAResult:
    """
    Over-representation statistics for one gene set.

    Attributes:
        gene_set_id: Identifier of the tested set.
        gene_set_name: Display name of the tested set.
        set_size: Members also present in the reference list.
        overlap_size: Members also present in the interesting list.
        expected_size: |interesting| * set_size / |reference|.
        enrichment_ratio: overlap_size / expected_size (0.0 when expected is 0).
        p_value: Hypergeometric upper-tail probability.
        fdr: Multiple-testing adjusted p-value.
        overlap_genes: The overlapping identifiers.
    """

    gene_set_id: str
    gene_set_name: str
    set_size: int
    overlap_size: int
    expected_size: float
    enrichment_ratio: float
    p_value: float
    fdr: float
    overlap_genes: frozenset[str]

    def to_dict(self) -> dict:
        d = asdict(self)
        d['overlap_genes'] = sorted(self.overlap_genes)
        return d


@dataclass(frozen=True)
class GSEAResult:
    """
    Running-sum enrichment statistics for one gene set.

    Attributes:
        gene_set_id: Identifier of the tested set.
        gene_set_name: Display name of the tested set.
        set_size: Members present in the ranked list.
        enrichment_score: Signed maximum deviation of the running sum.
        normalized_enrichment_score: ES scaled by the same-sign null mean.
        p_value: Smoothed permutation p-value.
        fdr: Multiple-testing adjusted p-value.
        leading_edge: Members contributing to the peak, in rank order.
        peak_index: Ranked-list position where the peak occurs.
        running_sum: Running-sum profile (only when requested).
    """

    gene_set_id: str
    gene_set_name: str
    set_size: int
    enrichment_score: float
    normalized_enrichment_score: float
    p_value: float
    fdr: float
    leading_edge: tuple[str, ...]
    peak_index: int
    running_sum: tuple[float, ...] | None = None

    def to_dict(self) -> dict:
        d = asdict(self)
        d['leading_edge'] = list(self.leading_edge)
        d['running_sum'] = list(self.running_sum) if self.running_sum is not None else None
        return d


EnrichmentResult = Union[ORAResult, GSEAResult]


def results_to_frame(results: Sequence[EnrichmentResult]) -> pd.DataFrame:
    """
    Tabulate result records, one row per gene set, in the given order.

    Gene collections (overlap genes, leading edge) are kept as lists; the
    running-sum profile is dropped to keep the table compact.
    """
    rows = []
    for result in results:
        row = result.to_dict()
        row.pop('running_sum', None)
        rows.append(row)
    return pd.DataFrame(rows)


@dataclass(frozen=True)
class NTAResult:
    """
    Network topology analysis output.

    Attributes:
        neighborhood: Selected nodes, highest walk probability first.
        scores: Random-walk probability of each neighborhood node.
        candidates: Seeds ranked inside the requested size (prioritize
            only; empty for expand).
    """

    neighborhood: tuple[str, ...]
    scores: tuple[float, ...]
    candidates: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            'neighborhood': list(self.neighborhood),
            'scores': list(self.scores),
            'candidates': list(self.candidates),
        }

    def to_series(self) -> pd.Series:
        """Walk probabilities indexed by node, in neighborhood order."""
        return pd.Series(self.scores, index=list(self.neighborhood), name='probability', dtype=float)


@dataclass(frozen=True)
class MetaAnalysisResult:
    """
    Combined evidence for one gene set tested against several lists.

    Attributes:
        gene_set_id: Identifier of the tested set.
        gene_set_name: Display name of the tested set.
        p_value: Meta-analysis p-value over the lists that tested the set.
        fdr: Multiple-testing adjusted combined p-value.
        list_p_values: Per-list p-value in input order; None where the set
            was not tested (filtered by size or skipped).
    """

    gene_set_id: str
    gene_set_name: str
    p_value: float
    fdr: float
    list_p_values: tuple[float | None, ...]

    @property
    def n_tested(self) -> int:
        return sum(p is not None for p in self.list_p_values)

    def to_dict(self) -> dict:
        d = asdict(self)
        d['list_p_values'] = list(self.list_p_values)
        return d
