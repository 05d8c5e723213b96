"""
Gene-label permutation null for the GSEA running-sum statistic.

Each permutation shuffles which ranked positions carry gene-set membership
while the ranked sequence of scores stays fixed. Scoring the shuffled
membership with the running-sum statistic yields one null enrichment score;
repeating this ``n_permutations`` times gives the null distribution used for
normalization and the permutation p-value.

Reproducibility:
    No process-wide RNG is touched. The caller's seed feeds a
    ``numpy.random.SeedSequence`` which is spawned into one child sequence
    per permutation index. Permutation i always draws from child i, so the
    null scores depend only on (seed, i): the same seed gives the same
    scores in the same order for any worker count or completion order.

Parallelism:
    Permutation indices are split into contiguous blocks, one per worker.
    Workers return private arrays; the caller concatenates them in block
    order (never completion order). The only synchronization point is the
    join at the end of the pool.

Examples:
    >>> from enrichcore.core.universe import RankedGeneList
    >>> from enrichcore.stats.permutation import PermutationScheduler
    >>> ranked = RankedGeneList.from_mapping({f"G{i}": 10.0 - i for i in range(20)})
    >>> members = ranked.membership({"G0", "G1", "G2"})
    >>> scheduler = PermutationScheduler(n_permutations=100, seed=7, n_jobs=4)
    >>> null = scheduler.generate(ranked, members)
    >>> null.shape
    (100,)
"""

from __future__ import annotations

import logging

import numpy as np
from numpy.random import SeedSequence
from numpy.typing import ArrayLike, NDArray

from enrichcore.core.exceptions import (
    InsufficientPermutationsError,
    InvalidInputError,
    InvalidParametersError,
)
from enrichcore.core.universe import RankedGeneList
from enrichcore.stats.kernel import (
    DEFAULT_BATCH_SIZE,
    permuted_enrichment_scores,
    rank_weights,
)
from enrichcore.utils.parallel import map_in_order

logger = logging.getLogger(__name__)

__all__ = [
    'DEFAULT_SEED',
    'PermutationScheduler',
    'generate_null_scores',
]

DEFAULT_SEED = 42


def _contiguous_blocks(n_items: int, n_blocks: int) -> list[tuple[int, int]]:
    """Split range(n_items) into at most n_blocks contiguous (start, stop) blocks."""
    n_blocks = max(1, min(n_blocks, n_items))
    edges = np.linspace(0, n_items, n_blocks + 1).round().astype(int)
    return [(int(a), int(b)) for a, b in zip(edges[:-1], edges[1:]) if b > a]


def _is_integer(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


class PermutationScheduler:
    """
    Deterministically seeded, parallel generator of permutation nulls.

    Attributes:
        n_permutations: Number of permutations per gene set.
        seed: Root seed for the SeedSequence (None draws fresh entropy and
            gives up reproducibility).
        n_jobs: Worker threads; 1 runs inline.
        batch_size: Permutation rows scored per vectorized block.
    """

    def __init__(
        self,
        n_permutations: int,
        seed: int | None = DEFAULT_SEED,
        n_jobs: int = 1,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        if not _is_integer(n_permutations):
            raise InvalidParametersError(
                f"permutations must be an integer, got {n_permutations!r}",
                parameter="permutations",
            )
        if n_permutations < 1:
            raise InsufficientPermutationsError(
                f"At least one permutation is required, got {n_permutations}",
                parameter="permutations",
            )
        if not _is_integer(n_jobs) or n_jobs < 1:
            raise InvalidParametersError(f"n_jobs must be an integer >= 1, got {n_jobs!r}", parameter="n_jobs")
        if not _is_integer(batch_size) or batch_size < 1:
            raise InvalidParametersError(
                f"batch_size must be an integer >= 1, got {batch_size!r}", parameter="batch_size"
            )
        if seed is not None and (not _is_integer(seed) or seed < 0):
            raise InvalidParametersError(
                f"seed must be None or a non-negative integer, got {seed!r}", parameter="seed"
            )

        self.n_permutations = int(n_permutations)
        self.seed = seed
        self.n_jobs = int(n_jobs)
        self.batch_size = int(batch_size)
        # Spawned once; read-only afterwards
        self._child_seeds = tuple(SeedSequence(seed).spawn(self.n_permutations))

    def __repr__(self) -> str:
        return (
            f"PermutationScheduler(n_permutations={self.n_permutations}, "
            f"seed={self.seed}, n_jobs={self.n_jobs})"
        )

    def permutation_order(self, index: int, n_genes: int) -> NDArray[np.intp]:
        """Shuffled position indices for permutation ``index``."""
        rng = np.random.default_rng(self._child_seeds[index])
        return rng.permutation(n_genes)

    def _orders_for(self, start: int, stop: int, n_genes: int) -> NDArray[np.intp]:
        return np.stack([self.permutation_order(i, n_genes) for i in range(start, stop)])

    def permutation_orders(self, n_genes: int) -> NDArray[np.intp]:
        """
        Full permutation index matrix (n_permutations, n_genes).

        Built once per run and shared read-only across gene sets, so every
        set is tested against the same shuffles.
        """
        if n_genes < 1:
            raise InvalidInputError("Cannot permute an empty ranked list")
        blocks = _contiguous_blocks(self.n_permutations, self.n_jobs)
        logger.debug(
            f"Building {self.n_permutations} permutation orders over {n_genes} genes "
            f"in {len(blocks)} blocks"
        )
        parts = map_in_order(
            lambda block: self._orders_for(block[0], block[1], n_genes),
            blocks,
            self.n_jobs,
        )
        return np.concatenate(parts, axis=0)

    def generate(
        self,
        ranked_list: RankedGeneList,
        membership: ArrayLike,
        weight_exponent: float = 1.0,
        orders: NDArray[np.integer] | None = None,
    ) -> NDArray[np.float64]:
        """
        Null enrichment scores for one gene set, in permutation-index order.

        Args:
            ranked_list: The observed ranking (scores are kept in place).
            membership: Observed membership mask aligned to ``ranked_list``.
            weight_exponent: Running-sum weight exponent.
            orders: Optional precomputed ``permutation_orders(len(ranked_list))``.
                When omitted, orders are drawn block by block from the same
                child seeds, giving identical scores.

        Returns:
            Array of n_permutations null enrichment scores.
        """
        n_genes = len(ranked_list)
        membership = np.asarray(membership, dtype=bool)
        if membership.shape != (n_genes,):
            raise InvalidInputError(
                f"membership has shape {membership.shape}, expected ({n_genes},)"
            )
        if orders is not None and orders.shape != (self.n_permutations, n_genes):
            raise InvalidInputError(
                f"orders has shape {orders.shape}, expected "
                f"({self.n_permutations}, {n_genes})"
            )

        weights = rank_weights(ranked_list.scores, weight_exponent)

        def score_block(block: tuple[int, int]) -> NDArray[np.float64]:
            start, stop = block
            if orders is not None:
                return permuted_enrichment_scores(
                    weights, membership, orders[start:stop], self.batch_size
                )
            # Draw orders lazily to bound memory
            partial = []
            for batch_start in range(start, stop, self.batch_size):
                batch_stop = min(batch_start + self.batch_size, stop)
                partial.append(permuted_enrichment_scores(
                    weights,
                    membership,
                    self._orders_for(batch_start, batch_stop, n_genes),
                    self.batch_size,
                ))
            return np.concatenate(partial)

        blocks = _contiguous_blocks(self.n_permutations, self.n_jobs)
        return np.concatenate(map_in_order(score_block, blocks, self.n_jobs))


def generate_null_scores(
    ranked_list: RankedGeneList,
    membership: ArrayLike,
    count: int,
    weight_exponent: float = 1.0,
    seed: int | None = DEFAULT_SEED,
    n_jobs: int = 1,
) -> NDArray[np.float64]:
    """
    Convenience wrapper: ``count`` null enrichment scores for one gene set.

    Raises:
        InsufficientPermutationsError: If ``count < 1``.
    """
    scheduler = PermutationScheduler(count, seed=seed, n_jobs=n_jobs)
    return scheduler.generate(ranked_list, membership, weight_exponent)
