"""
Network Topology Analysis (NTA).

Ranks the nodes of an undirected interaction network by their proximity to a
set of seed genes, using a random walk with restart:

    p(t+1) = (1 - r) * W p(t) + r * p0

where W is the column-normalized adjacency matrix (each column sums to 1),
p0 spreads unit mass evenly over the seeds and r is the restart
probability. Iteration stops once sum |p(t+1) - p(t)| <= tolerance; the
stationary vector is each node's visiting probability.

Two ways to read the ranking:
    - EXPAND: the ``size`` highest-probability non-seed nodes, i.e. the
      network neighborhood the seeds point to.
    - PRIORITIZE: the ``size`` highest-probability seeds, i.e. which seeds
      sit most centrally among the others.

Engineering Design:
    - The graph is built with networkx, so duplicate and reversed edges
      collapse to a single undirected edge; self-loops are kept.
    - Nodes are indexed in sorted order and the transition matrix is a
      scipy sparse array; a dense matrix would be quadratic in the number
      of genes in the network.
    - Every node comes from an edge, so no column of W is empty.

Examples:
    >>> from enrichcore.methods.nta import NTAConfig, run_nta
    >>> edges = [("TP53", "MDM2"), ("TP53", "BAX"), ("MDM2", "CDKN1A"), ("BAX", "BCL2")]
    >>> result = run_nta(edges, ["TP53"], NTAConfig(method="expand", size=2))
    >>> result.neighborhood
    ('BAX', 'MDM2')
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

import networkx as nx
import numpy as np
import scipy.sparse as sp
from numpy.typing import NDArray

from enrichcore.core.exceptions import (
    ComputationFailureError,
    InvalidInputError,
    InvalidParametersError,
)
from enrichcore.core.results import NTAResult
from enrichcore.core.universe import _intern_gene

logger = logging.getLogger(__name__)

__all__ = [
    'NTAMethod',
    'NTAConfig',
    'build_network',
    'random_walk_probability',
    'rank_network_nodes',
    'run_nta',
]


class NTAMethod(Enum):
    """How the random-walk ranking is turned into a neighborhood."""

    PRIORITIZE = "prioritize"
    EXPAND = "expand"


@dataclass
class NTAConfig:
    """
    Parameters for network topology analysis.

    Attributes:
        method: PRIORITIZE (rank the seeds) or EXPAND (rank the non-seeds).
        size: Number of nodes to report.
        reset_probability: Restart probability r of the walk, in (0, 1].
        tolerance: L1 change between iterations at which the walk stops.
        max_iterations: Iteration cap; reaching it is a computation failure.
    """

    method: NTAMethod = NTAMethod.EXPAND
    size: int = 10
    reset_probability: float = 0.5
    tolerance: float = 1e-6
    max_iterations: int = 10_000

    def __post_init__(self):
        if not isinstance(self.method, NTAMethod):
            try:
                self.method = NTAMethod(str(self.method).strip().lower())
            except ValueError:
                raise InvalidParametersError(
                    f"Unknown NTA method {self.method!r}; expected 'prioritize' or 'expand'",
                    parameter="method",
                )

    def validate(self) -> NTAConfig:
        """Check every parameter; return self so calls can be chained."""
        for name in ("size", "max_iterations"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise InvalidParametersError(
                    f"{name} must be an integer >= 1, got {value!r}", parameter=name
                )
        r = self.reset_probability
        if isinstance(r, bool) or not isinstance(r, (int, float)) or not 0.0 < r <= 1.0:
            raise InvalidParametersError(
                f"reset_probability must lie in (0, 1], got {r!r}",
                parameter="reset_probability",
            )
        tol = self.tolerance
        if isinstance(tol, bool) or not isinstance(tol, (int, float)) or not math.isfinite(tol) or tol <= 0:
            raise InvalidParametersError(
                f"tolerance must be finite and > 0, got {tol!r}", parameter="tolerance"
            )
        return self


def build_network(edges: Iterable[Sequence[object]]) -> nx.Graph:
    """
    Undirected interaction graph from an edge list of (gene, gene) pairs.

    Raises:
        InvalidInputError: If the edge list is empty, or an edge is not a
            pair of non-blank identifiers.
    """
    G = nx.Graph()
    for edge in edges:
        try:
            if isinstance(edge, str):
                raise ValueError(edge)
            source, target = edge
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"Edges must be (source, target) pairs, got {edge!r}") from e
        G.add_edge(_intern_gene(source), _intern_gene(target))

    if G.number_of_edges() == 0:
        raise InvalidInputError("Network edge list is empty")
    return G


def random_walk_probability(
    adjacency: sp.sparray | NDArray[np.float64],
    seed_indices: Sequence[int],
    reset_probability: float = 0.5,
    tolerance: float = 1e-6,
    max_iterations: int = 10_000,
) -> NDArray[np.float64]:
    """
    Stationary visiting probabilities of a random walk with restart.

    Args:
        adjacency: Symmetric (n, n) adjacency matrix without empty columns.
        seed_indices: Node indices the walk restarts from, equally weighted.
        reset_probability: Restart probability r in (0, 1].
        tolerance: Stop once the L1 change between iterations is <= this.
        max_iterations: Iteration cap.

    Returns:
        Probability vector (n,) summing to 1.

    Raises:
        ComputationFailureError: On an empty column or no convergence.
    """
    adjacency = sp.csr_array(adjacency, dtype=np.float64)
    n_nodes = adjacency.shape[0]
    degree = np.asarray(adjacency.sum(axis=0)).ravel()
    if np.any(degree <= 0):
        raise ComputationFailureError("Adjacency matrix has nodes without edges")
    transition = adjacency @ sp.diags_array(1.0 / degree)

    p0 = np.zeros(n_nodes, dtype=np.float64)
    p0[list(seed_indices)] = 1.0 / len(seed_indices)

    p = p0
    for iteration in range(1, max_iterations + 1):
        p_next = (1.0 - reset_probability) * (transition @ p) + reset_probability * p0
        delta = float(np.abs(p_next - p).sum())
        p = p_next
        if delta <= tolerance:
            logger.debug(f"Random walk converged after {iteration} iterations (delta={delta:.2e})")
            return p

    raise ComputationFailureError(
        f"Random walk did not converge within {max_iterations} iterations "
        f"(tolerance={tolerance})"
    )


def rank_network_nodes(
    graph: nx.Graph,
    seeds: Sequence[str],
    config: NTAConfig,
) -> list[tuple[str, float]]:
    """Every node with its walk probability, highest first (ties by node id)."""
    nodes = sorted(graph.nodes)
    index = {node: i for i, node in enumerate(nodes)}
    adjacency = nx.to_scipy_sparse_array(graph, nodelist=nodes, weight=None, format='csr')

    probability = random_walk_probability(
        adjacency,
        [index[s] for s in seeds],
        config.reset_probability,
        config.tolerance,
        config.max_iterations,
    )
    order = sorted(range(len(nodes)), key=lambda i: (-probability[i], nodes[i]))
    return [(nodes[i], float(probability[i])) for i in order]


def run_nta(
    edges: Iterable[Sequence[object]],
    seeds: Iterable[object],
    config: NTAConfig | None = None,
) -> NTAResult:
    """
    Network topology analysis of seed genes on an interaction network.

    Args:
        edges: Undirected (gene, gene) pairs.
        seeds: Genes of interest; duplicates collapse. Seeds absent from the
            network are dropped with a warning.
        config: NTAConfig (default: EXPAND to 10 nodes, r = 0.5).

    Returns:
        NTAResult. For EXPAND the neighborhood holds the top ``size``
        non-seed nodes and ``candidates`` is empty. For PRIORITIZE it holds
        the top ``size`` seeds, and ``candidates`` those ranked strictly
        above position ``size``.

    Raises:
        InvalidParametersError: Invalid config.
        InvalidInputError: Empty network, malformed edges, or no seed in the
            network.
    """
    config = (config or NTAConfig()).validate()
    if isinstance(seeds, str):
        raise InvalidInputError(f"Expected a collection of seed genes, got the string {seeds!r}")

    graph = build_network(edges)
    seed_list = list(dict.fromkeys(_intern_gene(s) for s in seeds))
    if not seed_list:
        raise InvalidInputError("At least one seed gene is required")

    present = [s for s in seed_list if s in graph]
    missing = len(seed_list) - len(present)
    if missing:
        logger.warning(f"{missing} of {len(seed_list)} seeds are not in the network and are ignored")
    if not present:
        raise InvalidInputError("None of the seed genes are in the network")

    logger.info(
        f"NTA ({config.method.value}): {graph.number_of_nodes()} nodes, "
        f"{graph.number_of_edges()} edges, {len(present)} seeds"
    )
    ranking = rank_network_nodes(graph, present, config)

    seed_set = frozenset(present)
    if config.method is NTAMethod.PRIORITIZE:
        selected = [(node, p) for node, p in ranking if node in seed_set][:config.size]
        neighborhood = tuple(node for node, _ in selected)
        candidates = neighborhood[:config.size - 1]
    else:
        selected = [(node, p) for node, p in ranking if node not in seed_set][:config.size]
        neighborhood = tuple(node for node, _ in selected)
        candidates = ()

    return NTAResult(
        neighborhood=neighborhood,
        scores=tuple(p for _, p in selected),
        candidates=candidates,
    )
