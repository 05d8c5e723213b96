"""
Error taxonomy for the enrichment engine.

Every failure the engine can report is one of four kinds:

    InvalidInputError:
        The data handed to the engine is unusable (empty universe, empty or
        duplicated ranked list, interesting list not contained in the
        reference, ...).

    InvalidParametersError:
        A configuration value is out of range (size bounds, permutation
        count, weight exponent, hypergeometric counts).

    InsufficientPermutationsError:
        Special case of InvalidParametersError for permutation counts < 1.

    ComputationFailureError:
        A numerical failure inside the statistics kernel. Fatal for the whole
        run; it points at a data problem, so nothing is retried.

Errors carry the gene-set id and/or parameter name that triggered them so a
caller can diagnose a failed batch without the engine logging anything.

Examples:
    >>> from enrichcore.core.exceptions import InvalidParametersError
    >>> try:
    ...     raise InvalidParametersError("must be >= 1", parameter="permutations")
    ... except ValueError as e:
    ...     print(e)
    must be >= 1 [parameter=permutations]
"""

from __future__ import annotations

__all__ = [
    'EnrichmentError',
    'InvalidInputError',
    'InvalidParametersError',
    'InsufficientPermutationsError',
    'ComputationFailureError',
]


class EnrichmentError(Exception):
    """Base class for all errors raised by the enrichment engine."""

    def __init__(
        self,
        message: str,
        *,
        gene_set_id: str | None = None,
        parameter: str | None = None,
    ):
        self.message = message
        self.gene_set_id = gene_set_id
        self.parameter = parameter
        super().__init__(self._format())

    def _format(self) -> str:
        context = []
        if self.gene_set_id is not None:
            context.append(f"gene_set_id={self.gene_set_id}")
        if self.parameter is not None:
            context.append(f"parameter={self.parameter}")
        if not context:
            return self.message
        return f"{self.message} [{', '.join(context)}]"


class InvalidInputError(EnrichmentError, ValueError):
    """Raised when gene sets, gene lists or ranked lists are malformed."""
    pass


class InvalidParametersError(EnrichmentError, ValueError):
    """Raised when a configuration or function parameter is out of range."""
    pass


class InsufficientPermutationsError(InvalidParametersError):
    """Raised when fewer than one permutation is requested."""
    pass


class ComputationFailureError(EnrichmentError, ArithmeticError):
    """Raised on numerical failure inside the statistics kernel."""
    pass
