"""Tests for network topology analysis (random walk with restart)."""

import logging

import networkx as nx
import numpy as np
import pandas as pd
import pytest

from enrichcore.core.exceptions import ComputationFailureError, InvalidInputError, InvalidParametersError
from enrichcore.core.results import NTAResult
from enrichcore.methods.nta import (
    NTAConfig,
    NTAMethod,
    build_network,
    random_walk_probability,
    rank_network_nodes,
    run_nta,
)


TRIANGLE_WITH_TAIL = [("A", "B"), ("B", "C"), ("C", "A"), ("C", "D"), ("D", "E")]


def hub_network():
    """HUB linked to five leaves; a chain FAR-MID-L1 hangs off one leaf."""
    edges = [("HUB", f"L{i}") for i in range(1, 6)]
    edges += [("L1", "MID"), ("MID", "FAR")]
    return edges


class TestBuildNetwork:
    """Tests for build_network()."""

    def test_duplicate_and_reversed_edges_collapse(self):
        """Repeated or reversed pairs give one undirected edge."""
        G = build_network([("A", "B"), ("B", "A"), ("A", "B"), ("B", "C")])
        assert isinstance(G, nx.Graph)
        assert G.number_of_nodes() == 3
        assert G.number_of_edges() == 2

    def test_empty_rejected(self):
        """An empty edge list raises InvalidInputError."""
        with pytest.raises(InvalidInputError):
            build_network([])

    @pytest.mark.parametrize("edge", ["AB", ("A",), ("A", "B", "C"), 7])
    def test_malformed_edge_rejected(self, edge):
        """Anything other than a pair raises InvalidInputError."""
        with pytest.raises(InvalidInputError):
            build_network([("X", "Y"), edge])

    def test_blank_node_rejected(self):
        """Blank node identifiers raise InvalidInputError."""
        with pytest.raises(InvalidInputError):
            build_network([("A", " ")])


class TestRandomWalkProbability:
    """Tests for random_walk_probability()."""

    def test_matches_closed_form(self):
        """Converged walk equals r (I - (1 - r) W)^-1 p0."""
        G = build_network(TRIANGLE_WITH_TAIL)
        nodes = sorted(G.nodes)
        adjacency = nx.to_numpy_array(G, nodelist=nodes, weight=None)
        W = adjacency / adjacency.sum(axis=0)
        p0 = np.array([1.0, 0.0, 0.0, 0.0, 0.0])
        r = 0.3
        expected = r * np.linalg.solve(np.eye(5) - (1 - r) * W, p0)

        observed = random_walk_probability(adjacency, [0], reset_probability=r, tolerance=1e-13)

        np.testing.assert_allclose(observed, expected, atol=1e-10)
        assert observed.sum() == pytest.approx(1.0)

    def test_full_restart_returns_seed_vector(self):
        """r = 1 never leaves the seeds."""
        adjacency = nx.to_numpy_array(nx.path_graph(4), weight=None)
        observed = random_walk_probability(adjacency, [0, 3], reset_probability=1.0)
        np.testing.assert_allclose(observed, [0.5, 0.0, 0.0, 0.5])

    def test_non_convergence_fails(self):
        """Hitting the iteration cap raises ComputationFailureError."""
        adjacency = nx.to_numpy_array(nx.path_graph(3), weight=None)
        with pytest.raises(ComputationFailureError):
            random_walk_probability(adjacency, [0], tolerance=1e-12, max_iterations=1)

    def test_isolated_node_fails(self):
        """A node without edges has no transition column."""
        adjacency = np.array([[0.0, 1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 0.0]])
        with pytest.raises(ComputationFailureError):
            random_walk_probability(adjacency, [0])


class TestRankNetworkNodes:
    """Tests for rank_network_nodes()."""

    def test_descending_with_id_tiebreak(self):
        """Nodes come back by probability, ties broken by identifier."""
        G = build_network([("S", "X"), ("S", "Y"), ("S", "Z")])
        ranking = rank_network_nodes(G, ["S"], NTAConfig())
        assert [node for node, _ in ranking] == ["S", "X", "Y", "Z"]
        assert ranking[1][1] == pytest.approx(ranking[3][1])


class TestRunNTA:
    """Tests for run_nta()."""

    def test_expand_docstring_example(self):
        """EXPAND on a small p53 network picks the seed's direct partners."""
        edges = [("TP53", "MDM2"), ("TP53", "BAX"), ("MDM2", "CDKN1A"), ("BAX", "BCL2")]
        result = run_nta(edges, ["TP53"], NTAConfig(method="expand", size=2))
        assert isinstance(result, NTAResult)
        assert result.neighborhood == ("BAX", "MDM2")
        assert result.candidates == ()

    def test_expand_excludes_seeds(self):
        """EXPAND reports only non-seeds, highest probability first."""
        result = run_nta(hub_network(), ["HUB", "L1"], NTAConfig(method=NTAMethod.EXPAND, size=4))
        assert len(result.neighborhood) == 4
        assert not {"HUB", "L1"} & set(result.neighborhood)
        assert list(result.scores) == sorted(result.scores, reverse=True)
        # MID touches seed L1 and is reached before the far end of the chain
        assert result.neighborhood.index("MID") < 4
        assert "FAR" not in result.neighborhood

    def test_expand_shorter_than_size(self):
        """Asking for more nodes than exist returns every non-seed."""
        result = run_nta([("A", "B"), ("B", "C")], ["A"], NTAConfig(size=10))
        assert set(result.neighborhood) == {"B", "C"}

    def test_prioritize_ranks_seeds(self):
        """PRIORITIZE keeps seeds only; the hub seed ranks first."""
        seeds = ["HUB", "L3", "FAR"]
        result = run_nta(hub_network(), seeds, NTAConfig(method="prioritize", size=2))
        assert result.neighborhood[0] == "HUB"
        assert len(result.neighborhood) == 2
        assert set(result.neighborhood) <= set(seeds)
        assert result.candidates == result.neighborhood[:1]

    def test_prioritize_candidates_when_size_not_reached(self):
        """With fewer seeds than size, every prioritized seed is a candidate."""
        result = run_nta(hub_network(), ["HUB", "FAR"], NTAConfig(method="prioritize", size=5))
        assert set(result.neighborhood) == {"HUB", "FAR"}
        assert result.candidates == result.neighborhood

    def test_deterministic(self):
        """Edge order does not change the result."""
        edges = hub_network()
        a = run_nta(edges, ["HUB", "L1"])
        b = run_nta(list(reversed(edges)), ["L1", "HUB", "L1"])
        assert a == b

    def test_missing_seeds_dropped_with_warning(self, caplog):
        """Seeds outside the network are ignored and logged."""
        with caplog.at_level(logging.WARNING, logger="enrichcore.methods.nta"):
            result = run_nta(hub_network(), ["HUB", "NOT_IN_NETWORK"], NTAConfig(size=3))
        assert "not in the network" in caplog.text
        assert result == run_nta(hub_network(), ["HUB"], NTAConfig(size=3))

    def test_no_seed_in_network_rejected(self):
        """Seeds that are all absent raise InvalidInputError."""
        with pytest.raises(InvalidInputError):
            run_nta(hub_network(), ["NOPE"])

    @pytest.mark.parametrize("seeds", [[], "HUB"])
    def test_bad_seed_collection_rejected(self, seeds):
        """No seeds, or a bare string, raises InvalidInputError."""
        with pytest.raises(InvalidInputError):
            run_nta(hub_network(), seeds)

    def test_to_series(self):
        """Results tabulate as a probability Series indexed by node."""
        result = run_nta(hub_network(), ["HUB"], NTAConfig(size=3))
        series = result.to_series()
        assert isinstance(series, pd.Series)
        assert list(series.index) == list(result.neighborhood)
        assert result.to_dict()['candidates'] == []


class TestNTAConfig:
    """Tests for NTAConfig."""

    def test_defaults(self):
        """Defaults: EXPAND to 10 nodes, r = 0.5, tolerance 1e-6."""
        config = NTAConfig()
        assert config.method is NTAMethod.EXPAND
        assert (config.size, config.reset_probability, config.tolerance) == (10, 0.5, 1e-6)
        assert config.validate() is config

    def test_unknown_method_rejected(self):
        """Unknown method strings raise InvalidParametersError."""
        with pytest.raises(InvalidParametersError) as exc_info:
            NTAConfig(method="shrink")
        assert exc_info.value.parameter == "method"

    @pytest.mark.parametrize("kwargs,parameter", [
        ({"size": 0}, "size"),
        ({"size": 2.5}, "size"),
        ({"reset_probability": 0.0}, "reset_probability"),
        ({"reset_probability": 1.5}, "reset_probability"),
        ({"tolerance": 0.0}, "tolerance"),
        ({"tolerance": float("nan")}, "tolerance"),
        ({"max_iterations": 0}, "max_iterations"),
    ])
    def test_invalid_parameters(self, kwargs, parameter):
        """validate() names the offending parameter."""
        with pytest.raises(InvalidParametersError) as exc_info:
            run_nta(hub_network(), ["HUB"], NTAConfig(**kwargs))
        assert exc_info.value.parameter == parameter
