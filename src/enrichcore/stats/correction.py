"""
Multiple-testing correction applied to both engines' raw p-values.

Problem:
    Testing 10,000 gene sets at p < 0.05 yields ~500 false positives by
    chance alone. Every tested set is corrected together, including sets
    with zero overlap (p = 1), since they count toward n.

Benjamini-Hochberg step-up (default):
    1. Sort p-values ascending, rank i = 1..n
    2. q[i] = p[i] * n / i
    3. Running minimum from the largest rank downward (monotonicity)
    4. Clip to [0, 1], restore input order

    Guarantees q[i] >= p[i] and len(q) == len(p).

Other procedures (Benjamini-Yekutieli, Bonferroni, Holm) and NONE (raw
p-values passed through) are available for callers that need them; all are
delegated to statsmodels.

Examples:
    >>> from enrichcore.stats.correction import benjamini_hochberg
    >>> import numpy as np
    >>> np.round(benjamini_hochberg([0.001, 0.01, 0.02, 0.5]), 4).tolist()
    [0.004, 0.02, 0.0267, 0.5]
"""

from __future__ import annotations

from enum import Enum
from typing import Sequence

import numpy as np
from numpy.typing import NDArray
from statsmodels.stats.multitest import multipletests

from enrichcore.core.exceptions import InvalidInputError, InvalidParametersError

__all__ = [
    'AdjustmentMethod',
    'adjust_pvalues',
    'benjamini_hochberg',
]


class AdjustmentMethod(Enum):
    """Multiple-testing adjustment procedures."""

    BH = "fdr_bh"
    BY = "fdr_by"
    BONFERRONI = "bonferroni"
    HOLM = "holm"
    NONE = "none"

    @classmethod
    def parse(cls, value: AdjustmentMethod | str) -> AdjustmentMethod:
        """Accept an enum member, its value ("fdr_bh") or its name ("BH")."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        try:
            return cls(text.lower())
        except ValueError:
            pass
        try:
            return cls[text.upper()]
        except KeyError:
            raise InvalidParametersError(
                f"Unknown adjustment method {value!r}; expected one of "
                f"{[m.name for m in cls]}",
                parameter="adjustment",
            )


def _validated(p_values: Sequence[float]) -> NDArray[np.float64]:
    values = np.asarray(p_values, dtype=np.float64)
    if values.ndim != 1:
        raise InvalidInputError(f"p-values must be 1-D, got shape {values.shape}")
    if np.any(~np.isfinite(values)):
        raise InvalidInputError("p-values contain NaN or Inf")
    if np.any(values < 0) or np.any(values > 1):
        raise InvalidInputError("p-values must be in [0, 1]")
    return values


def adjust_pvalues(
    p_values: Sequence[float],
    method: AdjustmentMethod | str = AdjustmentMethod.BH,
) -> NDArray[np.float64]:
    """
    Adjust p-values for multiple testing, preserving order and length.

    Args:
        p_values: Raw p-values in any order.
        method: AdjustmentMethod (or its value/name).

    Returns:
        Adjusted values aligned with the input, clipped to [0, 1].

    Raises:
        InvalidInputError: NaN/Inf or out-of-range p-values.
        InvalidParametersError: Unknown method.
    """
    method = AdjustmentMethod.parse(method)
    values = _validated(p_values)

    if values.size == 0:
        return np.array([], dtype=np.float64)
    if method is AdjustmentMethod.NONE:
        return values.copy()

    _, adjusted, _, _ = multipletests(
        values,
        method=method.value,
        is_sorted=False,
        returnsorted=False,
    )
    return np.clip(adjusted, 0.0, 1.0)


def benjamini_hochberg(p_values: Sequence[float]) -> NDArray[np.float64]:
    """Benjamini-Hochberg FDR values, same order as the input."""
    return adjust_pvalues(p_values, AdjustmentMethod.BH)
