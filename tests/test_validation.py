"""Tests for the NetworkX cross-check."""

import math
import os

import pytest

from conftest import SOCIAL_LABELS, SOCIAL_TYPES, SOCIAL_WEIGHTS, make_config, make_graph
from weighted_pagerank.config import SEQUENTIAL_DENSE, SPARSE_MAP
from weighted_pagerank.engine import compute_pagerank
from weighted_pagerank.validation import (
    compare_strategies, reference_digraph, reference_ranks, verify_with_networkx,
)


class TestReference:
    """Tests for the NetworkX reference graph."""

    def test_parallel_relationships_sum_weights(self, social_graph):
        config = make_config(labels=SOCIAL_LABELS, relationship_types=SOCIAL_TYPES,
                             weights=SOCIAL_WEIGHTS)
        with social_graph.snapshot() as view:
            G = reference_digraph(view, config)
        assert G[1][3]["weight"] == 4.0
        assert G[2][4]["weight"] == 0.5
        assert not G.has_node(7)
        assert not G.has_edge(2, 3)

    def test_scaled_reference_matches_engine(self, cycle_graph):
        """Without dangling nodes the engine ranks are N times the NetworkX ranks."""
        config = make_config(iterations=200)
        result = compute_pagerank(cycle_graph, config)
        with cycle_graph.snapshot() as view:
            expected = reference_ranks(view, config)
        for node, score in expected.items():
            assert result.get_result(node) == pytest.approx(4 * score, rel=1e-4)

    def test_empty_selection(self, cycle_graph):
        with cycle_graph.snapshot() as view:
            assert reference_ranks(view, make_config(labels=["Nobody"])) == {}


class TestVerifyWithNetworkx:
    """Tests for verify_with_networkx."""

    def test_metrics(self, cycle_graph, tmp_path):
        config = make_config(iterations=200)
        result = compute_pagerank(cycle_graph, config)
        metrics = verify_with_networkx(cycle_graph, config, result, top=1, plot_dir=str(tmp_path))
        assert metrics["mae"] < 1e-4
        assert metrics["spearman"] > 0.9
        assert metrics["top_k_overlap"] == 1
        assert metrics["top_k_positional"] == 1
        assert os.path.exists(tmp_path / "validation_rank_correlation.png")

    def test_too_small_to_compare(self):
        graph = make_graph({"solo": ["Profile"]}, [])
        config = make_config()
        result = compute_pagerank(graph, config)
        assert verify_with_networkx(graph, config, result) == {}


class TestCompareStrategies:
    """Tests for compare_strategies."""

    def test_same_ranks(self, social_graph):
        config = make_config(labels=SOCIAL_LABELS, relationship_types=SOCIAL_TYPES,
                             weights=SOCIAL_WEIGHTS, iterations=20)
        dense = compute_pagerank(social_graph, config.with_overrides(strategy=SEQUENTIAL_DENSE))
        sparse = compute_pagerank(social_graph, config.with_overrides(strategy=SPARSE_MAP))
        assert compare_strategies(dense, sparse) < 1e-12

    def test_different_nodes(self, social_graph):
        a = compute_pagerank(social_graph, make_config(labels=["Profile"]))
        b = compute_pagerank(social_graph, make_config(labels=["Project"]))
        assert math.isinf(compare_strategies(a, b))
