"""
Pytest configuration and shared fixtures.

Provides small synthetic gene universes, collections and ranked lists used
across the ORA, GSEA and kernel test suites.
"""

import numpy as np
import pytest

from enrichcore import EnrichmentConfig, GeneSetCollection, RankedGeneList


def make_genes(n: int, prefix: str = "G") -> list[str]:
    """Gene identifiers G0..G{n-1}."""
    return [f"{prefix}{i}" for i in range(n)]


def generate_ranked_list(n_genes: int, seed: int = 42) -> RankedGeneList:
    """
    Random ranked list with standard-normal scores.

    Args:
        n_genes: Number of ranked genes.
        seed: Random seed for reproducibility.
    """
    rng = np.random.default_rng(seed)
    return RankedGeneList(make_genes(n_genes), rng.normal(0, 1, size=n_genes))


@pytest.fixture
def universe_100():
    """Reference of 100 genes, the first 10 interesting."""
    genes = make_genes(100)
    return {
        'reference': set(genes),
        'interesting': set(genes[:10]),
        'genes': genes,
    }


@pytest.fixture
def linear_ranked_list():
    """20 genes with scores strictly decreasing from 2.0 to -2.0."""
    return RankedGeneList(make_genes(20), np.linspace(2.0, -2.0, 20))


@pytest.fixture
def random_ranked_list():
    """200 genes with random normal scores (seed 42)."""
    return generate_ranked_list(200, seed=42)


@pytest.fixture
def random_collection():
    """Twelve overlapping gene sets of assorted sizes over G0..G199."""
    rng = np.random.default_rng(7)
    genes = make_genes(200)
    members = {
        f"SET_{i:02d}": rng.choice(genes, size=size, replace=False).tolist()
        for i, size in enumerate([5, 8, 10, 12, 15, 20, 25, 30, 6, 9, 40, 18])
    }
    return GeneSetCollection.from_dict(members)


@pytest.fixture
def gsea_config():
    """GSEA config small enough for fast tests."""
    return EnrichmentConfig(method="gsea", min_size=1, permutations=200, seed=42)
