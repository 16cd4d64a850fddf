# graph.py
#
# Project: Weighted PageRank
#
# Description:
#   Read-only graph views consumed by the rank engines, and an in-memory
#   labeled property graph that hands them out.
#
#   GraphView      — the query surface the engines use: nodes by label,
#                    relationship types by name, outgoing relationships,
#                    per-type degrees, and bulk relationship iteration.
#   GraphSnapshot  — an immutable GraphView frozen from a PropertyGraph.
#                    Queries fail with SnapshotClosedError once released.
#   PropertyGraph  — a mutable, directed, multi-relationship-typed graph
#                    with labeled nodes.  snapshot() is a context manager:
#                    the snapshot is acquired on entry and released on every
#                    exit path, so writers never affect a running computation.
#
#   Relationships are plain (source, target, type) tuples; parallel
#   relationships of the same type are kept (multigraph).

import threading
from collections import defaultdict
from contextlib import contextmanager

from weighted_pagerank.errors import SnapshotClosedError, StaleReferenceError

DEFAULT_RELATIONSHIP_TYPE = "RELATED_TO"


class GraphView:
    """Query surface of a single consistent graph snapshot."""

    def nodes_with_labels(self, labels):
        """Node ids carrying any of `labels`, each listed once."""
        raise NotImplementedError

    def relationship_types_named(self, names):
        """The subset of `names` that exist as relationship types."""
        raise NotImplementedError

    def outgoing_relationships(self, node, types):
        """List of (target, type) for relationships leaving `node` with a type in `types`."""
        raise NotImplementedError

    def out_degree(self, node, rel_type):
        raise NotImplementedError

    def in_degree(self, node, rel_type):
        raise NotImplementedError

    def all_relationships(self):
        """Every relationship as a (source, target, type) tuple."""
        raise NotImplementedError

    def has_node(self, node):
        raise NotImplementedError

    @contextmanager
    def snapshot(self):
        # A view is already a snapshot; whoever built it owns its lifetime.
        yield self


class GraphSnapshot(GraphView):
    """
    Immutable GraphView.

    Args:
        nodes (dict): node id -> iterable of labels
        relationships (iterable): (source, target, type) tuples

    Relationship endpoints are not checked here; an endpoint that does not
    resolve is reported by the query that touches it.
    """

    def __init__(self, nodes, relationships):
        self._labels = {node: frozenset(labels) for node, labels in nodes.items()}
        self._relationships = tuple((s, t, r) for s, t, r in relationships)
        self._closed = False

        label_index = defaultdict(list)
        for node, labels in self._labels.items():
            for label in labels:
                label_index[label].append(node)
        self._by_label = dict(label_index)

        outgoing = defaultdict(list)
        out_deg = defaultdict(int)
        in_deg = defaultdict(int)
        for source, target, rel_type in self._relationships:
            outgoing[source].append((target, rel_type))
            out_deg[(source, rel_type)] += 1
            in_deg[(target, rel_type)] += 1
        self._outgoing = {node: tuple(rels) for node, rels in outgoing.items()}
        self._out_deg = dict(out_deg)
        self._in_deg = dict(in_deg)
        self._types = frozenset(rel_type for _, _, rel_type in self._relationships)

    def close(self):
        self._closed = True

    @property
    def closed(self):
        return self._closed

    def _check_open(self):
        if self._closed:
            raise SnapshotClosedError("graph snapshot has been released")

    def _check_node(self, node):
        if node not in self._labels:
            raise StaleReferenceError(node, f"Node {node!r} does not exist in the snapshot")

    def nodes_with_labels(self, labels):
        self._check_open()
        seen = set()
        nodes = []
        for label in labels:
            for node in self._by_label.get(label, ()):
                if node not in seen:
                    seen.add(node)
                    nodes.append(node)
        return nodes

    def relationship_types_named(self, names):
        self._check_open()
        return frozenset(name for name in names if name in self._types)

    def outgoing_relationships(self, node, types):
        self._check_open()
        self._check_node(node)
        return [(target, rel_type) for target, rel_type in self._outgoing.get(node, ())
                if rel_type in types]

    def out_degree(self, node, rel_type):
        self._check_open()
        self._check_node(node)
        return self._out_deg.get((node, rel_type), 0)

    def in_degree(self, node, rel_type):
        self._check_open()
        self._check_node(node)
        return self._in_deg.get((node, rel_type), 0)

    def all_relationships(self):
        self._check_open()
        return self._relationships

    def has_node(self, node):
        self._check_open()
        return node in self._labels

    def labels_of(self, node):
        self._check_open()
        self._check_node(node)
        return self._labels[node]

    def node_count(self):
        return len(self._labels)

    def relationship_count(self):
        return len(self._relationships)


def _entries(doc, key, required, name):
    """Entries of doc[key], each checked for the required fields."""
    if not isinstance(doc, dict):
        raise ValueError(f"{name}: expected a JSON object with nodes / relationships")
    entries = doc.get(key, ())
    if not isinstance(entries, list):
        raise ValueError(f"{name}: '{key}' must be a list")
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ValueError(f"{name}: {key}[{i}] is not an object")
        missing = [field for field in required if field not in entry]
        if missing:
            raise ValueError(f"{name}: {key}[{i}] has no {', '.join(map(repr, missing))}")
    return entries

class PropertyGraph:
    """
    In-memory directed multigraph with labeled nodes and typed relationships.

    Node ids may be any hashable value.  Writes and snapshot creation are
    serialized by a lock, so every snapshot reflects a consistent state.
    """

    def __init__(self):
        self._labels = {}
        self._relationships = []
        self._lock = threading.Lock()

    def add_node(self, node, labels=()):
        """Add `node`, or extend its labels if it already exists."""
        if isinstance(labels, str):
            labels = [labels]
        with self._lock:
            self._labels.setdefault(node, set()).update(labels)

    def add_relationship(self, source, target, rel_type):
        with self._lock:
            for endpoint in (source, target):
                if endpoint not in self._labels:
                    raise StaleReferenceError(endpoint, f"Node {endpoint!r} does not exist")
            self._relationships.append((source, target, rel_type))

    def remove_node(self, node):
        """Delete `node` together with every relationship touching it."""
        with self._lock:
            if node not in self._labels:
                raise StaleReferenceError(node, f"Node {node!r} does not exist")
            del self._labels[node]
            self._relationships = [rel for rel in self._relationships
                                   if rel[0] != node and rel[1] != node]

    def node_count(self):
        return len(self._labels)

    def relationship_count(self):
        return len(self._relationships)

    @contextmanager
    def snapshot(self):
        """Acquire an immutable view for the duration of the `with` block."""
        with self._lock:
            view = GraphSnapshot(self._labels, list(self._relationships))
        try:
            yield view
        finally:
            view.close()

    @classmethod
    def from_document(cls, doc):
        """
        Build a graph from a document of the form

            {"nodes": [{"id": 0, "labels": ["Profile"]}, ...],
             "relationships": [{"source": 0, "target": 1, "type": "FOLLOWS"}, ...]}
        """
        graph = cls()
        graph.merge_document(doc)
        return graph

    def merge_document(self, doc):
        """Add the nodes and relationships of one document (shard) to this graph."""
        self.merge_documents([doc])

    def merge_documents(self, docs, names=None):
        """
        Add several documents, all nodes before any relationship.

        Args:
            docs (iterable): graph documents
            names (list|None): shard names, used in error messages

        Raises:
            ValueError: a document or one of its entries is malformed
        """
        # Nodes of every shard first: relationships may point into later shards.
        docs = list(docs)
        names = list(names) if names is not None else [f"document {i}" for i in range(len(docs))]
        for doc, name in zip(docs, names):
            for entry in _entries(doc, "nodes", ("id",), name):
                self.add_node(entry["id"], entry.get("labels", ()))
        for doc, name in zip(docs, names):
            for entry in _entries(doc, "relationships", ("source", "target"), name):
                self.add_relationship(entry["source"], entry["target"],
                                      entry.get("type", DEFAULT_RELATIONSHIP_TYPE))

    def to_document(self):
        with self._lock:
            return {
                "nodes": [{"id": node, "labels": sorted(labels)}
                          for node, labels in self._labels.items()],
                "relationships": [{"source": s, "target": t, "type": r}
                                  for s, t, r in self._relationships],
            }

    @classmethod
    def from_networkx(cls, G, default_type=DEFAULT_RELATIONSHIP_TYPE):
        """
        Build a graph from a networkx graph.

        Node attribute `labels` (list or str) or `label` gives node labels.
        Edge attribute `type` gives the relationship type; for MultiDiGraphs a
        string edge key is used when `type` is absent.  Undirected graphs are
        converted with G.to_directed() (one relationship each way).
        """
        if not G.is_directed():
            G = G.to_directed()

        graph = cls()
        for node, data in G.nodes(data=True):
            labels = data.get("labels", data.get("label", ()))
            graph.add_node(node, labels)

        if G.is_multigraph():
            edges = ((u, v, data.get("type", key if isinstance(key, str) else default_type))
                     for u, v, key, data in G.edges(keys=True, data=True))
        else:
            edges = ((u, v, data.get("type", default_type)) for u, v, data in G.edges(data=True))
        for source, target, rel_type in edges:
            graph.add_relationship(source, target, rel_type)
        return graph

