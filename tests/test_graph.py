"""Tests for the property graph and its snapshots."""

import networkx as nx
import pytest

from conftest import make_graph
from weighted_pagerank.errors import SnapshotClosedError, StaleReferenceError
from weighted_pagerank.graph import DEFAULT_RELATIONSHIP_TYPE, GraphSnapshot, PropertyGraph


class TestSnapshotQueries:
    """Tests for the GraphView queries."""

    def test_nodes_with_labels_deduplicates(self, social_graph):
        """A node carrying several requested labels is listed once."""
        with social_graph.snapshot() as view:
            nodes = view.nodes_with_labels(["Profile", "Project"])
        assert sorted(nodes) == [1, 2, 3, 4, 5, 6]

    def test_unknown_label(self, social_graph):
        with social_graph.snapshot() as view:
            assert view.nodes_with_labels(["Nope"]) == []

    def test_relationship_types_named(self, social_graph):
        """Only names that exist in the graph are returned."""
        with social_graph.snapshot() as view:
            types = view.relationship_types_named(["FOLLOWS", "LICENSED", "MISSING"])
        assert types == {"FOLLOWS", "LICENSED"}

    def test_outgoing_relationships_filtered_by_type(self, social_graph):
        with social_graph.snapshot() as view:
            rels = view.outgoing_relationships(2, {"FOLLOWS", "COMMENTED_ON"})
        assert sorted(rels) == [(1, "FOLLOWS"), (4, "COMMENTED_ON")]

    def test_degrees(self, social_graph):
        with social_graph.snapshot() as view:
            assert view.out_degree(1, "FOLLOWS") == 3
            assert view.in_degree(3, "FOLLOWS") == 2
            assert view.out_degree(6, "FOLLOWS") == 0

    def test_unknown_node_is_stale(self, social_graph):
        with social_graph.snapshot() as view:
            with pytest.raises(StaleReferenceError):
                view.out_degree(42, "FOLLOWS")
            with pytest.raises(StaleReferenceError):
                view.outgoing_relationships(42, {"FOLLOWS"})


class TestSnapshotLifecycle:
    """Tests for snapshot acquisition and release."""

    def test_released_on_exit(self, two_node_graph):
        with two_node_graph.snapshot() as view:
            assert not view.closed
        assert view.closed
        with pytest.raises(SnapshotClosedError):
            view.all_relationships()

    def test_released_on_error(self, two_node_graph):
        with pytest.raises(RuntimeError):
            with two_node_graph.snapshot() as view:
                raise RuntimeError("boom")
        assert view.closed

    def test_writes_do_not_reach_open_snapshot(self, two_node_graph):
        with two_node_graph.snapshot() as view:
            two_node_graph.add_node("C", ["Profile"])
            two_node_graph.add_relationship("B", "C", "FOLLOWS")
            assert not view.has_node("C")
            assert len(view.all_relationships()) == 1
        with two_node_graph.snapshot() as view:
            assert view.has_node("C")

    def test_standalone_snapshot_is_its_own_view(self):
        view = GraphSnapshot({"a": ["L"]}, [])
        with view.snapshot() as inner:
            assert inner is view
        assert not view.closed


class TestPropertyGraph:
    """Tests for building property graphs."""

    def test_relationship_needs_endpoints(self):
        graph = PropertyGraph()
        graph.add_node("a", "L")
        with pytest.raises(StaleReferenceError):
            graph.add_relationship("a", "b", "T")

    def test_add_node_merges_labels(self):
        graph = PropertyGraph()
        graph.add_node("a", ["L1"])
        graph.add_node("a", ["L2"])
        with graph.snapshot() as view:
            assert view.labels_of("a") == {"L1", "L2"}
        assert graph.node_count() == 1

    def test_remove_node_detaches(self, social_graph):
        social_graph.remove_node(1)
        with social_graph.snapshot() as view:
            assert not view.has_node(1)
            assert all(1 not in (s, t) for s, t, _ in view.all_relationships())

    def test_parallel_relationships_kept(self, social_graph):
        with social_graph.snapshot() as view:
            assert view.outgoing_relationships(1, {"FOLLOWS"}).count((3, "FOLLOWS")) == 2

    def test_from_document(self):
        graph = PropertyGraph.from_document({
            "nodes": [{"id": 1, "labels": ["Profile"]}, {"id": 2}],
            "relationships": [{"source": 1, "target": 2, "type": "FOLLOWS"},
                              {"source": 2, "target": 1}],
        })
        assert graph.node_count() == 2
        with graph.snapshot() as view:
            assert view.relationship_types_named(["FOLLOWS", DEFAULT_RELATIONSHIP_TYPE]) == {
                "FOLLOWS", DEFAULT_RELATIONSHIP_TYPE}

    def test_from_document_missing_field(self):
        with pytest.raises(ValueError, match=r"document 0: relationships\[0\] has no 'source'"):
            PropertyGraph.from_document({"nodes": [{"id": 1}], "relationships": [{"target": 1}]})

    def test_merge_documents_across_shards(self):
        """A relationship may point at a node defined in a later shard."""
        graph = PropertyGraph()
        graph.merge_documents([
            {"nodes": [{"id": "a", "labels": ["L"]}],
             "relationships": [{"source": "a", "target": "b", "type": "T"}]},
            {"nodes": [{"id": "b", "labels": ["L"]}]},
        ])
        assert graph.relationship_count() == 1

    def test_to_document(self, two_node_graph):
        doc = two_node_graph.to_document()
        assert PropertyGraph.from_document(doc).relationship_count() == 1

    def test_from_networkx_multidigraph(self):
        G = nx.MultiDiGraph()
        G.add_node("a", labels=["Profile"])
        G.add_node("b", label="Project")
        G.add_edge("a", "b", key="FOLLOWS")
        G.add_edge("a", "b", type="LICENSED")
        graph = PropertyGraph.from_networkx(G)
        with graph.snapshot() as view:
            assert view.nodes_with_labels(["Project"]) == ["b"]
            assert sorted(view.outgoing_relationships("a", {"FOLLOWS", "LICENSED"})) == [
                ("b", "FOLLOWS"), ("b", "LICENSED")]

    def test_from_networkx_undirected(self):
        G = nx.Graph()
        G.add_edge(0, 1)
        graph = PropertyGraph.from_networkx(G)
        assert graph.relationship_count() == 2
