# normalization.py
#
# Project: Weighted PageRank
#
# Description:
#   Per-node normalization table: the total weight of a node's relevant
#   outgoing relationships, used as the denominator when its rank is split
#   across those relationships.
#
#   A node whose relevant outgoing weight is zero is dangling.  It is stored
#   with the DANGLING sentinel and never distributes rank, but still receives
#   it.
#
#   Two strategies, same result:
#     aggregate_direct     — walk each node's outgoing relationships, filter
#                            by type, sum weights (sequential-dense and
#                            sparse-map engines).
#     aggregate_by_degree  — Σ_type weight[type] * outDegree(node, type)
#                            (parallel engine).  Per-node units run on the
#                            worker pool.
#
#   degree_fallback=True reproduces an older approximation: when a node's
#   out-degree for a type is zero, its in-degree for that type is counted
#   instead.  Both strategies honour it, so every engine sees the same table.
#   It is off by default.
#
#   A node that disappears from the snapshot mid-query raises
#   StaleReferenceError and no table is returned.

from weighted_pagerank.utils import print_step
from weighted_pagerank.workers import run_batch

DANGLING = -1.0


def is_dangling(value):
    return value <= 0


def _finish(total):
    return total if total > 0 else DANGLING


def _direct_weight(view, node, types, weights, degree_fallback):
    total = 0.0
    present = set()
    for _, rel_type in view.outgoing_relationships(node, types):
        total += weights[rel_type]
        present.add(rel_type)
    if degree_fallback:
        for rel_type in sorted(types - present):
            total += weights[rel_type] * view.in_degree(node, rel_type)
    return _finish(total)


def aggregate_direct(view, nodes, types, weights, degree_fallback=False):
    """
    Build the normalization table by walking outgoing relationships.

    Args:
        view (GraphView): graph snapshot
        nodes (list): filtered node ids
        types (set): relevant relationship types
        weights (dict): type -> resolved weight
        degree_fallback (bool): count in-degree for types without outgoing
            relationships

    Returns:
        dict: node id -> total outgoing weight, or DANGLING
    """
    types = frozenset(types)
    return {node: _direct_weight(view, node, types, weights, degree_fallback) for node in nodes}


def _degree_weight(view, node, types, weights, degree_fallback):
    total = 0.0
    for rel_type in types:
        degree = view.out_degree(node, rel_type)
        if degree <= 0 and degree_fallback:
            degree = view.in_degree(node, rel_type)
        total += weights[rel_type] * degree
    return _finish(total)


def aggregate_by_degree(view, nodes, types, weights, pool=None, degree_fallback=False):
    """
    Build the normalization table from per-type degree queries.

    Args:
        view (GraphView): graph snapshot
        nodes (list): filtered node ids
        types (set): relevant relationship types
        weights (dict): type -> resolved weight
        pool (ThreadPoolExecutor|None): run one unit per node on this pool;
            any failing unit fails the whole table
        degree_fallback (bool): count in-degree where out-degree is zero

    Returns:
        dict: node id -> weighted out-degree, or DANGLING
    """
    types = sorted(types)

    def unit(node):
        return node, _degree_weight(view, node, types, weights, degree_fallback)

    if pool is None:
        return dict(unit(node) for node in nodes)

    print_step(f"Normalizing {len(nodes)} nodes on the worker pool...")
    return dict(run_batch(pool, unit, nodes))
