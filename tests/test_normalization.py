"""Tests for the normalization table strategies."""

import pytest

from conftest import SOCIAL_LABELS, SOCIAL_TYPES, SOCIAL_WEIGHTS, make_graph
from weighted_pagerank.errors import StaleReferenceError
from weighted_pagerank.normalization import (
    DANGLING, aggregate_by_degree, aggregate_direct, is_dangling,
)
from weighted_pagerank.weights import resolve_weights
from weighted_pagerank.workers import make_pool

SOCIAL_NORM = {1: 6.0, 2: 2.5, 3: 3.0, 4: 2.5, 5: 3.5, 6: DANGLING}


def _inputs(view):
    nodes = view.nodes_with_labels(SOCIAL_LABELS)
    types = view.relationship_types_named(SOCIAL_TYPES)
    return nodes, types, resolve_weights(types, SOCIAL_WEIGHTS)


class TestDirect:
    """Tests for aggregate_direct."""

    def test_weighted_out_sum(self, social_graph):
        """Parallel relationships and relationships leaving the set all count."""
        with social_graph.snapshot() as view:
            table = aggregate_direct(view, *_inputs(view))
        assert table == pytest.approx(SOCIAL_NORM)

    def test_every_node_has_an_entry(self, social_graph):
        with social_graph.snapshot() as view:
            nodes, types, weights = _inputs(view)
            table = aggregate_direct(view, nodes, types, weights)
        assert set(table) == set(nodes)

    def test_dangling_node(self, social_graph):
        """A node without relevant outgoing relationships is dangling."""
        with social_graph.snapshot() as view:
            table = aggregate_direct(view, *_inputs(view))
        assert is_dangling(table[6])

    def test_unlisted_types_are_ignored(self):
        graph = make_graph({"a": ["L"], "b": ["L"]}, [("a", "b", "OTHER")])
        with graph.snapshot() as view:
            table = aggregate_direct(view, ["a", "b"], {"FOLLOWS"}, {"FOLLOWS": 1.0})
        assert table == {"a": DANGLING, "b": DANGLING}

    def test_missing_node_is_fatal(self, social_graph):
        with social_graph.snapshot() as view:
            nodes, types, weights = _inputs(view)
            with pytest.raises(StaleReferenceError) as excinfo:
                aggregate_direct(view, nodes + [99], types, weights)
        assert excinfo.value.entity == 99


class TestByDegree:
    """Tests for aggregate_by_degree."""

    def test_matches_direct(self, social_graph):
        """Both strategies produce the same table."""
        with social_graph.snapshot() as view:
            direct = aggregate_direct(view, *_inputs(view))
            by_degree = aggregate_by_degree(view, *_inputs(view))
        assert by_degree == pytest.approx(direct)

    def test_on_worker_pool(self, social_graph):
        with social_graph.snapshot() as view, make_pool(3) as pool:
            table = aggregate_by_degree(view, *_inputs(view), pool=pool)
        assert table == pytest.approx(SOCIAL_NORM)

    def test_missing_node_fails_on_pool(self, social_graph):
        """A failing unit fails the whole table."""
        with social_graph.snapshot() as view, make_pool(3) as pool:
            nodes, types, weights = _inputs(view)
            with pytest.raises(StaleReferenceError):
                aggregate_by_degree(view, nodes + [99], types, weights, pool=pool)

    def test_degree_fallback(self):
        """With the fallback, zero out-degree per type counts the in-degree instead."""
        graph = make_graph(
            {"A": ["P"], "B": ["P"], "C": ["P"]},
            [("A", "B", "FOLLOWS"), ("C", "A", "LIKES")],
        )
        types = {"FOLLOWS", "LIKES"}
        weights = {"FOLLOWS": 1.0, "LIKES": 1.0}
        with graph.snapshot() as view:
            strict = aggregate_by_degree(view, ["A", "B", "C"], types, weights)
            legacy = aggregate_by_degree(view, ["A", "B", "C"], types, weights, degree_fallback=True)
        assert strict == {"A": 1.0, "B": DANGLING, "C": 1.0}
        assert legacy == {"A": 2.0, "B": 1.0, "C": 1.0}

    def test_degree_fallback_matches_direct(self):
        """Both table strategies apply the fallback the same way."""
        graph = make_graph(
            {"A": ["P"], "B": ["P"], "C": ["P"]},
            [("A", "B", "FOLLOWS"), ("C", "A", "LIKES"), ("C", "B", "LIKES")],
        )
        types = {"FOLLOWS", "LIKES"}
        weights = {"FOLLOWS": 2.0, "LIKES": 0.5}
        with graph.snapshot() as view:
            direct = aggregate_direct(view, ["A", "B", "C"], types, weights, degree_fallback=True)
            by_degree = aggregate_by_degree(view, ["A", "B", "C"], types, weights,
                                            degree_fallback=True)
        assert direct == by_degree == {"A": 2.5, "B": 2.5, "C": 1.0}
