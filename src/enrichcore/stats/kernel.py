"""
Statistical primitives shared by the ORA and GSEA engines.

Hypergeometric Tail (ORA):
    Tests: "Given N genes in the universe, n of them interesting, a set of
    M genes, k of which are interesting: how surprising is k?"

        P(X >= k),  X ~ Hypergeometric(N, n, M)

    Computed in log space from log-gamma terms so universes in the tens of
    thousands neither overflow nor underflow to an exact 0 prematurely.
    The upper tail is accumulated from the largest k downward, which makes
    the result exactly non-increasing in k.

    Fisher's one-sided exact test on the 2x2 table is the same quantity,
    exposed separately for callers thinking in contingency tables.

Running-Sum Statistic (GSEA):
    Walk the ranked list once. A member gene raises the running sum by
    |score|^p / N_R, where N_R = sum over members of |score|^p; a non-member
    lowers it by 1 / (N - N_H). Both sides sum to one, so the walk ends at
    zero. The enrichment score is the signed maximum deviation from zero.

        p = 0: classic Kolmogorov-Smirnov statistic (unweighted)
        p = 1: weighted GSEA statistic (default)

Rank-Score Normalization:
    Puts ranked lists from different experiments on a common scale before
    they are combined (see stats.multilist).

References:
    - Subramanian et al. (2005) "Gene set enrichment analysis", PNAS 102(43)
    - Rivals et al. (2007) "Enrichment or depletion of a GO category within
      a class of genes: which test?", Bioinformatics 23(4)
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.special import gammaln
from scipy.stats import rankdata

from enrichcore.core.exceptions import (
    ComputationFailureError,
    InvalidInputError,
    InvalidParametersError,
)

__all__ = [
    'RunningSumResult',
    'RankNormalization',
    'hypergeometric_tail_probability',
    'fisher_exact_pvalue',
    'rank_weights',
    'running_sum_steps',
    'running_sum_statistic',
    'permuted_enrichment_scores',
    'normalize_scores',
    'check_weight_exponent',
]

# Rows of permutation orders scored per vectorized block
DEFAULT_BATCH_SIZE = 64


class RunningSumResult(NamedTuple):
    """Observed running-sum statistic for one gene set."""

    enrichment_score: float
    running_sum: NDArray[np.float64]
    peak_index: int


class RankNormalization(Enum):
    """Rank-score normalization methods."""

    NONE = "none"
    MEDIAN_RANK = "median_rank"
    MEDIAN_VALUE = "median_value"
    MEAN_VALUE = "mean_value"


# =============================================================================
# Hypergeometric / Fisher
# =============================================================================

def _as_count(value: object, name: str) -> int:
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise InvalidParametersError(f"{name} must be an integer, got {value!r}", parameter=name)
    if count != value:
        raise InvalidParametersError(f"{name} must be an integer, got {value!r}", parameter=name)
    if count < 0:
        raise InvalidParametersError(f"{name} must be non-negative, got {count}", parameter=name)
    return count


def _log_binomial(n: float, k: NDArray[np.float64] | float) -> NDArray[np.float64]:
    return gammaln(n + 1) - gammaln(k + 1) - gammaln(n - k + 1)


def hypergeometric_tail_probability(
    overlap: int,
    set_size: int,
    list_size: int,
    universe_size: int,
) -> float:
    """
    Upper-tail hypergeometric probability P(X >= overlap).

    Draw ``set_size`` genes without replacement from ``universe_size`` genes,
    ``list_size`` of which are "successes" (the interesting list).

    Args:
        overlap: Observed successes (k).
        set_size: Number of draws (M, the gene set size within the universe).
        list_size: Successes in the universe (n, the interesting list size).
        universe_size: Universe size (N, the reference list size).

    Returns:
        Probability in [0, 1].

    Raises:
        InvalidParametersError: Negative or non-integer counts, draws or
            successes exceeding the universe, or overlap > min(set_size,
            list_size).
        ComputationFailureError: If the log-space sum is not finite.

    Examples:
        >>> # 100 genes, 10 interesting, a 20-gene set holding all 10
        >>> p = hypergeometric_tail_probability(10, 20, 10, 100)
        >>> p < 1e-4
        True
        >>> hypergeometric_tail_probability(0, 20, 10, 100)
        1.0
    """
    overlap = _as_count(overlap, "overlap")
    set_size = _as_count(set_size, "set_size")
    list_size = _as_count(list_size, "list_size")
    universe_size = _as_count(universe_size, "universe_size")

    if set_size > universe_size:
        raise InvalidParametersError(
            f"set_size ({set_size}) exceeds universe_size ({universe_size})",
            parameter="set_size",
        )
    if list_size > universe_size:
        raise InvalidParametersError(
            f"list_size ({list_size}) exceeds universe_size ({universe_size})",
            parameter="list_size",
        )
    upper = min(set_size, list_size)
    if overlap > upper:
        raise InvalidParametersError(
            f"overlap ({overlap}) exceeds min(set_size, list_size) ({upper})",
            parameter="overlap",
        )

    # Everything at or below the support minimum is certain
    lower = max(0, set_size + list_size - universe_size)
    if overlap <= lower:
        return 1.0

    k = np.arange(overlap, upper + 1, dtype=np.float64)
    log_terms = (
        _log_binomial(list_size, k)
        + _log_binomial(universe_size - list_size, set_size - k)
        - _log_binomial(universe_size, set_size)
    )
    # Accumulate from the far tail inward
    log_tail = np.logaddexp.accumulate(log_terms[::-1])[-1]
    p_value = float(np.exp(log_tail))

    if not np.isfinite(p_value):
        raise ComputationFailureError(
            f"Non-finite hypergeometric tail for k={overlap}, M={set_size}, "
            f"n={list_size}, N={universe_size}"
        )
    return min(max(p_value, 0.0), 1.0)


def fisher_exact_pvalue(a: int, b: int, c: int, d: int) -> float:
    """
    One-sided (enrichment) Fisher exact test on a 2x2 table.

    Contingency table:
                        | In Set | Not in Set |
        Interesting     |   a    |     b      |
        Not interesting |   c    |     d      |

    Equivalent to ``hypergeometric_tail_probability(a, a + c, a + b,
    a + b + c + d)``.
    """
    a = _as_count(a, "a")
    b = _as_count(b, "b")
    c = _as_count(c, "c")
    d = _as_count(d, "d")
    return hypergeometric_tail_probability(a, a + c, a + b, a + b + c + d)


# =============================================================================
# Running sum
# =============================================================================

def check_weight_exponent(weight_exponent: float) -> float:
    """Validate a running-sum weight exponent (finite, >= 0)."""
    try:
        value = float(weight_exponent)
    except (TypeError, ValueError):
        raise InvalidParametersError(
            f"weight_exponent must be a number, got {weight_exponent!r}",
            parameter="weight_exponent",
        )
    if not np.isfinite(value) or value < 0:
        raise InvalidParametersError(
            f"weight_exponent must be finite and >= 0, got {value}",
            parameter="weight_exponent",
        )
    return value


def rank_weights(scores: ArrayLike, weight_exponent: float = 1.0) -> NDArray[np.float64]:
    """|score| ** weight_exponent, with exponent 0 giving exact ones."""
    weight_exponent = check_weight_exponent(weight_exponent)
    abs_scores = np.abs(np.asarray(scores, dtype=np.float64))
    if weight_exponent == 0.0:
        return np.ones_like(abs_scores)
    if weight_exponent == 1.0:
        return abs_scores
    return abs_scores ** weight_exponent


def _coerce_walk_inputs(
    scores: ArrayLike,
    membership: ArrayLike,
) -> tuple[NDArray[np.float64], NDArray[np.bool_]]:
    scores = np.asarray(scores, dtype=np.float64)
    membership = np.asarray(membership, dtype=bool)
    if scores.ndim != 1 or scores.shape != membership.shape:
        raise InvalidInputError(
            f"scores {scores.shape} and membership {membership.shape} must be "
            f"1-D arrays of equal length"
        )
    return scores, membership


def running_sum_steps(
    scores: ArrayLike,
    membership: ArrayLike,
    weight_exponent: float = 1.0,
) -> NDArray[np.float64]:
    """
    Per-position increments (members) and decrements (non-members).

    Increments sum to +1 and decrements to -1, so the steps sum to zero.
    When every member scores zero the increments are equal (1/N_H), the
    same fallback the permuted null uses.

    Raises:
        ComputationFailureError: No members in the list, every gene a member
            (miss penalty undefined), or a hit normalizer that overflows.
    """
    scores, membership = _coerce_walk_inputs(scores, membership)
    n_genes = scores.size
    n_hits = int(membership.sum())

    if n_hits == 0:
        raise ComputationFailureError("Gene set has no members in the ranked list")
    if n_hits == n_genes:
        raise ComputationFailureError(
            "Gene set covers the entire ranked list; miss penalty is undefined"
        )

    weights = rank_weights(scores, weight_exponent)
    hit_normalizer = float(weights[membership].sum())
    if not np.isfinite(hit_normalizer):
        raise ComputationFailureError(
            f"Hit normalizer is {hit_normalizer}; member scores overflow "
            f"under weight_exponent={weight_exponent}"
        )
    if hit_normalizer <= 0.0:
        weights = membership.astype(np.float64)
        hit_normalizer = float(n_hits)

    miss_penalty = 1.0 / (n_genes - n_hits)
    return np.where(membership, weights / hit_normalizer, -miss_penalty)


def running_sum_statistic(
    scores: ArrayLike,
    membership: ArrayLike,
    weight_exponent: float = 1.0,
) -> RunningSumResult:
    """
    Enrichment score of one gene set against a ranked list. O(n).

    Args:
        scores: Ranked-list scores, sorted descending (n_genes,).
        membership: True where the ranked gene belongs to the set (n_genes,).
        weight_exponent: Power applied to |score| for member increments.

    Returns:
        RunningSumResult(enrichment_score, running_sum, peak_index). The
        peak is the first position of maximal |running sum|; the score keeps
        its sign (positive = enrichment at the top of the list).

    Examples:
        >>> scores = [3.0, 2.0, 1.0, -1.0, -2.0]
        >>> result = running_sum_statistic(scores, [True, True, False, False, False])
        >>> round(result.enrichment_score, 6), result.peak_index
        (1.0, 1)
    """
    steps = running_sum_steps(scores, membership, weight_exponent)
    running = np.cumsum(steps)
    peak = int(np.argmax(np.abs(running)))
    return RunningSumResult(float(running[peak]), running, peak)


def permuted_enrichment_scores(
    weights: NDArray[np.float64],
    membership: NDArray[np.bool_],
    orders: NDArray[np.integer],
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> NDArray[np.float64]:
    """
    Enrichment scores under gene-label permutation, one per row of ``orders``.

    For permutation row ``order``, the gene at ranked position i is treated
    as a member iff ``membership[order[i]]``. Weights stay in place, so the
    ranked sequence of scores is preserved and only labels move. The hit
    normalizer is recomputed for each permutation.

    A permutation that lands every member on a zero-weight position falls
    back to equal member increments for that row.

    Args:
        weights: Precomputed |score|^p in rank order (n_genes,).
        membership: Observed membership mask (n_genes,).
        orders: Permutation index matrix (n_permutations, n_genes).
        batch_size: Rows scored per vectorized block (bounds memory).

    Returns:
        Array of signed enrichment scores (n_permutations,).
    """
    weights = np.asarray(weights, dtype=np.float64)
    membership = np.asarray(membership, dtype=bool)
    orders = np.atleast_2d(np.asarray(orders))

    n_genes = weights.size
    n_hits = int(membership.sum())
    if orders.shape[1] != n_genes or membership.size != n_genes:
        raise InvalidInputError(
            f"orders {orders.shape} incompatible with {n_genes} ranked genes"
        )
    if n_hits == 0 or n_hits == n_genes:
        raise ComputationFailureError(
            f"Cannot permute a set with {n_hits} of {n_genes} genes as members"
        )
    if not np.all(np.isfinite(weights)):
        raise ComputationFailureError("Rank weights overflow; permuted hit normalizers are undefined")

    miss_penalty = 1.0 / (n_genes - n_hits)
    scores = np.empty(orders.shape[0], dtype=np.float64)

    for start in range(0, orders.shape[0], batch_size):
        stop = min(start + batch_size, orders.shape[0])
        masks = membership[orders[start:stop]]
        hit_weights = np.where(masks, weights, 0.0)
        normalizer = hit_weights.sum(axis=1, keepdims=True)

        degenerate = normalizer[:, 0] <= 0.0
        if np.any(degenerate):
            hit_weights[degenerate] = masks[degenerate].astype(np.float64)
            normalizer[degenerate] = float(n_hits)

        steps = np.where(masks, hit_weights / normalizer, -miss_penalty)
        running = np.cumsum(steps, axis=1)
        peaks = np.argmax(np.abs(running), axis=1)
        scores[start:stop] = running[np.arange(stop - start), peaks]

    return scores


# =============================================================================
# Rank-score normalization
# =============================================================================

def normalize_scores(
    scores: ArrayLike,
    method: RankNormalization | str = RankNormalization.NONE,
) -> NDArray[np.float64]:
    """
    Rescale ranked-list scores so lists from different sources are comparable.

    Methods:
        NONE: unchanged copy.
        MEDIAN_RANK: descending ranks r (1 = highest score, ties averaged)
            mapped to (m - r) / m with m the median rank; the top gene lands
            near +1, the bottom near -1 and the middle at 0.
        MEDIAN_VALUE: score / median(|score|).
        MEAN_VALUE: score / mean(|score|).

    Raises:
        ComputationFailureError: If the MEDIAN_VALUE / MEAN_VALUE divisor
            is zero.
    """
    method = RankNormalization(method)
    values = np.asarray(scores, dtype=np.float64)

    if method is RankNormalization.NONE:
        return values.copy()

    if method is RankNormalization.MEDIAN_RANK:
        ranks = rankdata(-values, method='average')
        median_rank = float(np.median(ranks))
        return (median_rank - ranks) / median_rank

    if method is RankNormalization.MEDIAN_VALUE:
        divisor = float(np.median(np.abs(values)))
    else:
        divisor = float(np.mean(np.abs(values)))
    if divisor <= 0.0 or not np.isfinite(divisor):
        raise ComputationFailureError(
            f"Cannot normalize by {method.value}: divisor is {divisor}"
        )
    return values / divisor
