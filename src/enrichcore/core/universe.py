"""
Canonical in-memory representation of genes, gene sets and gene lists.

Everything the engines consume is built here, already parsed: gene-set files,
rank files and identifier mapping are the caller's business.

Biological Context:
    Enrichment analysis asks whether a named group of genes (a pathway, a GO
    term, a TF target set) is special with respect to an experiment:

    - ORA: the experiment yields an *interesting list* (e.g. DE genes) drawn
      from a *reference list* (every gene that could have been detected).
    - GSEA: the experiment yields a *ranked list* of every measured gene with
      a signed score (e.g. log2FC * -log10 p), sorted most-up to most-down.

Engineering Design:
    - Immutable: GeneSet is a frozen dataclass with frozenset members,
      GeneSetCollection is a read-only Mapping, RankedGeneList exposes a
      read-only NumPy score array. Instances can be shared across worker
      threads without locks.
    - Interned identifiers: gene ids are plain strings passed through
      sys.intern, so repeated ids across thousands of sets share storage and
      hash lookups compare by pointer first.
    - Validated at construction: nothing downstream re-checks duplicates,
      empty identifiers or non-finite scores.

Examples:
    >>> from enrichcore.core.universe import GeneSet, GeneSetCollection, RankedGeneList
    >>> apoptosis = GeneSet("GO:0006915", "apoptotic process", {"TP53", "BAX", "CASP3"})
    >>> collection = GeneSetCollection([apoptosis])
    >>> ranked = RankedGeneList.from_mapping({"TP53": 2.1, "BAX": -0.4, "GAPDH": 0.1})
    >>> ranked.gene_ids
    ('TP53', 'GAPDH', 'BAX')
    >>> ranked.membership(apoptosis.members)
    array([ True, False,  True])
"""

from __future__ import annotations

import sys
from collections import Counter
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from enrichcore.core.exceptions import InvalidInputError

__all__ = [
    'GeneSet',
    'GeneSetCollection',
    'RankedGeneList',
    'make_gene_list',
    'merge_collections',
]


def _intern_gene(gene: object) -> str:
    """Intern one identifier as given; blank identifiers are rejected."""
    text = gene if isinstance(gene, str) else str(gene)
    if not text.strip():
        raise InvalidInputError(f"Gene identifiers must be non-blank strings, got {text!r}")
    return sys.intern(text)


def make_gene_list(genes: Iterable[object]) -> frozenset[str]:
    """
    Build an InterestingList or ReferenceList from any iterable of ids.

    Duplicates collapse (lists are sets); blank identifiers are rejected.
    Identifiers are compared exactly, so "A" and " A" are different genes.

    Args:
        genes: Gene identifiers (strings or anything with a sensible str()).

    Returns:
        frozenset of interned identifiers.

    Raises:
        InvalidInputError: If ``genes`` is a single string, or any
            identifier is empty or whitespace only.
    """
    if isinstance(genes, str):
        raise InvalidInputError(
            f"Expected a collection of gene identifiers, got the string {genes!r}"
        )
    return frozenset(_intern_gene(g) for g in genes)


@dataclass(frozen=True)
class GeneSet:
    """
    A named annotation category.

    Attributes:
        id: Unique identifier within a collection (e.g. "hsa04110").
        name: Human-readable label (e.g. "Cell cycle").
        members: Gene identifiers belonging to the set.
        description: Free-text description or source URL.
    """

    id: str
    name: str
    members: frozenset[str]
    description: str = ""

    def __post_init__(self):
        set_id = str(self.id).strip()
        if not set_id:
            raise InvalidInputError("Gene set id must be non-empty")
        # frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, 'id', set_id)
        object.__setattr__(self, 'name', str(self.name) if self.name else set_id)
        try:
            members = make_gene_list(self.members)
        except InvalidInputError as e:
            raise InvalidInputError(e.message, gene_set_id=set_id) from e
        object.__setattr__(self, 'members', members)

    @property
    def size(self) -> int:
        return len(self.members)

    def __len__(self) -> int:
        return len(self.members)

    def __contains__(self, gene: object) -> bool:
        return gene in self.members


class GeneSetCollection(Mapping):
    """
    Ordered, read-only mapping of gene-set id -> GeneSet.

    Iteration order is the order sets were supplied in. That order is the
    canonical order the engines use when assembling results, so output is
    deterministic regardless of worker completion order.

    Examples:
        >>> collection = GeneSetCollection.from_dict({
        ...     "SET_A": ["G1", "G2", "G3"],
        ...     "SET_B": ["G2", "G4"],
        ... })
        >>> list(collection)
        ['SET_A', 'SET_B']
        >>> sorted(collection.all_genes())
        ['G1', 'G2', 'G3', 'G4']
    """

    def __init__(self, gene_sets: Iterable[GeneSet] = ()):
        sets: dict[str, GeneSet] = {}
        for gene_set in gene_sets:
            if not isinstance(gene_set, GeneSet):
                raise InvalidInputError(
                    f"Expected GeneSet, got {type(gene_set).__name__}"
                )
            if gene_set.id in sets:
                raise InvalidInputError(
                    "Duplicate gene set id in collection",
                    gene_set_id=gene_set.id,
                )
            sets[gene_set.id] = gene_set
        self._sets = sets

    @classmethod
    def from_dict(
        cls,
        members_by_id: Mapping[str, Iterable[str]],
        names: Mapping[str, str] | None = None,
    ) -> GeneSetCollection:
        """
        Build a collection from ``{set_id: members}``.

        Args:
            members_by_id: Gene members keyed by set id, in canonical order.
            names: Optional display names keyed by set id (defaults to the id).
        """
        names = names or {}
        return cls(
            GeneSet(set_id, names.get(set_id, set_id), frozenset(members))
            for set_id, members in members_by_id.items()
        )

    def __getitem__(self, set_id: str) -> GeneSet:
        return self._sets[set_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._sets)

    def __len__(self) -> int:
        return len(self._sets)

    def __repr__(self) -> str:
        return f"GeneSetCollection(n_sets={len(self._sets)})"

    @property
    def gene_sets(self) -> tuple[GeneSet, ...]:
        """Gene sets in canonical order."""
        return tuple(self._sets.values())

    def all_genes(self) -> frozenset[str]:
        """Union of members across every set."""
        genes: set[str] = set()
        for gene_set in self._sets.values():
            genes.update(gene_set.members)
        return frozenset(genes)


def merge_collections(*collections: GeneSetCollection) -> GeneSetCollection:
    """
    Merge several collections into one.

    Sets sharing an id are combined: members are unioned, the name and
    description of the first occurrence win. Order is first appearance.

    Examples:
        >>> kegg = GeneSetCollection.from_dict({"P1": ["A", "B"]})
        >>> extra = GeneSetCollection.from_dict({"P1": ["C"], "P2": ["D"]})
        >>> merged = merge_collections(kegg, extra)
        >>> sorted(merged["P1"].members), list(merged)
        (['A', 'B', 'C'], ['P1', 'P2'])
    """
    merged: dict[str, GeneSet] = {}
    for collection in collections:
        for gene_set in collection.gene_sets:
            existing = merged.get(gene_set.id)
            if existing is None:
                merged[gene_set.id] = gene_set
            else:
                merged[gene_set.id] = GeneSet(
                    existing.id,
                    existing.name,
                    existing.members | gene_set.members,
                    existing.description,
                )
    return GeneSetCollection(merged.values())


@dataclass(frozen=True, init=False)
class RankedGeneList:
    """
    Genes ordered by a signed score, most positive first.

    Shape Invariants:
        - len(gene_ids) == len(scores) > 0
        - gene_ids are unique
        - scores are finite and non-increasing

    Ties keep the order they were supplied in (stable sort), so callers who
    care about tie order can pre-sort.

    Attributes:
        gene_ids: Identifiers in rank order.
        scores: Read-only float64 array of scores in rank order.
    """

    gene_ids: tuple[str, ...]
    scores: NDArray[np.float64] = field(repr=False)

    def __init__(self, gene_ids: Iterable[object], scores: Iterable[float]):
        if isinstance(gene_ids, str):
            raise InvalidInputError(
                f"Expected a sequence of gene identifiers, got the string {gene_ids!r}"
            )
        ids = [_intern_gene(g) for g in gene_ids]
        values = np.asarray(list(scores), dtype=np.float64)

        if len(ids) == 0:
            raise InvalidInputError("Ranked gene list is empty")
        if values.ndim != 1 or len(ids) != len(values):
            raise InvalidInputError(
                f"Ranked list has {len(ids)} genes but {values.size} scores"
            )
        if len(set(ids)) != len(ids):
            duplicates = sorted(g for g, n in Counter(ids).items() if n > 1)
            raise InvalidInputError(
                f"Duplicate identifiers in ranked list: {duplicates[:5]}"
            )
        if not np.all(np.isfinite(values)):
            raise InvalidInputError("Ranked list scores must be finite")

        order = np.argsort(-values, kind='stable')
        sorted_scores = values[order]
        sorted_scores.setflags(write=False)

        object.__setattr__(self, 'gene_ids', tuple(ids[i] for i in order))
        object.__setattr__(self, 'scores', sorted_scores)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[object, float]]) -> RankedGeneList:
        """Build from ``(gene_id, score)`` pairs."""
        pairs = list(pairs)
        return cls([g for g, _ in pairs], [s for _, s in pairs])

    @classmethod
    def from_mapping(cls, scores: Mapping[str, float]) -> RankedGeneList:
        """Build from a ``{gene_id: score}`` mapping."""
        return cls(list(scores.keys()), list(scores.values()))

    @classmethod
    def from_series(cls, series: pd.Series) -> RankedGeneList:
        """Build from a pandas Series indexed by gene id."""
        return cls(series.index.astype(str).tolist(), series.to_numpy(dtype=np.float64))

    def __len__(self) -> int:
        return len(self.gene_ids)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RankedGeneList):
            return NotImplemented
        return self.gene_ids == other.gene_ids and np.array_equal(self.scores, other.scores)

    def __hash__(self) -> int:
        return hash((self.gene_ids, self.scores.tobytes()))

    def membership(self, members: Iterable[str]) -> NDArray[np.bool_]:
        """
        Boolean mask over ranked positions: True where the gene is a member.

        Args:
            members: Gene identifiers of a set (any iterable; a frozenset is
                used as-is).
        """
        member_set = members if isinstance(members, (set, frozenset)) else set(members)
        return np.fromiter(
            (g in member_set for g in self.gene_ids),
            dtype=bool,
            count=len(self.gene_ids),
        )

    def to_series(self) -> pd.Series:
        """Scores as a pandas Series indexed by gene id (rank order)."""
        return pd.Series(np.array(self.scores), index=list(self.gene_ids), name="score")
