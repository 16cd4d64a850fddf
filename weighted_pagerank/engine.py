# engine.py
#
# Project: Weighted PageRank
#
# Description:
#   Weighted PageRank by power iteration over the label / relationship-type
#   filtered part of a graph snapshot, with three interchangeable execution
#   strategies behind one RankEngine contract:
#
#     SequentialDenseEngine     : float64 arrays indexed 0..n-1, one thread.
#     ParallelFixedPointEngine  : int64 fixed-point arrays, relationship
#                                 chunks applied on a worker pool.
#     SparseMapEngine           : dicts keyed by arbitrary node ids, one thread.
#
#   Every strategy runs the same update.  Per iteration:
#     1. contribution[n] = damping * rank[n]            for every node
#     2. rank[n] = 1 - damping                           for every node
#     3. rank[v] += contribution[u] * w / norm[u]        for every relevant u -> v
#   with a full barrier between the phases.  Ranks start at 1 - damping.
#   The iteration count is fixed; there is no convergence test.
#
#   A relevant relationship has a type in the configured set and a source in
#   the filtered node set.  Dangling sources (norm[u] == DANGLING) send
#   nothing.  Mass sent to a node outside the filtered set is dropped; an
#   endpoint missing from the snapshot raises StaleReferenceError.  Dangling
#   mass is dropped, not redistributed.
#
# References:
#   [1] Page, L., Brin, S., Motwani, R., & Winograd, T. (1999).
#       "The PageRank Citation Ranking: Bringing Order to the Web."
#       http://ilpubs.stanford.edu:8090/422/1/1999-66.pdf
#
#   [2] Xing, W. & Ghorbani, A. (2004).
#       "Weighted PageRank Algorithm."  CNSR 2004.
#
# Key ideas:
#   1. The dense strategy keeps the relevant relationships as index arrays in
#      enumeration order and runs phase 3 as one unbuffered np.add.at.  Per
#      relationship it evaluates the same expression as the map strategy, in
#      the same order, so the two strategies agree bit for bit.
#   2. Floating-point addition from several threads is neither atomic nor
#      order-independent.  The parallel strategy therefore encodes ranks as
#      integers scaled by SCALE; integer addition is exact and associative, so
#      any partitioning and scheduling gives bit-identical results.  Each
#      worker accumulates its chunk into a private array and adds it to the
#      shared vector under a lock (the atomic read-modify-write).

import threading

import numpy as np
from tqdm import tqdm

from weighted_pagerank.config import (
    DEFAULT_SCALE, PARALLEL_FIXED_POINT, SEQUENTIAL_DENSE, SPARSE_MAP,
)
from weighted_pagerank.errors import ComputationCancelled, InvalidConfigError, StaleReferenceError
from weighted_pagerank.normalization import aggregate_by_degree, aggregate_direct, is_dangling
from weighted_pagerank.results import MISSING, RankResult
from weighted_pagerank.utils import (
    Timer, is_verbose, print_stage, print_step, print_success, print_warning,
)
from weighted_pagerank.weights import resolve_weights
from weighted_pagerank.workers import make_pool, run_batch

SCALE = DEFAULT_SCALE


def to_int(x, scale=SCALE):
    """Fixed-point encode: round(x * scale) as int64."""
    return np.rint(np.asarray(x, dtype=np.float64) * scale).astype(np.int64)


def to_float(y, scale=SCALE):
    """Fixed-point decode: y / scale as float64."""
    return np.asarray(y, dtype=np.float64) / scale


class RankEngine:
    """
    Common contract of the execution strategies.

    Args:
        graph: anything with a snapshot() context manager yielding a GraphView
            (a PropertyGraph, or a GraphView used as its own snapshot)

    The snapshot is acquired at the start of compute() and released on every
    exit path.  A failed or cancelled compute() leaves no result behind.
    """
    strategy = None

    def __init__(self, graph):
        self.graph = graph
        self._result = None

    def compute(self, config, cancel=None):
        """
        Run config.iterations power iterations.

        Args:
            config (PageRankConfig): labels, types, weights, iterations, damping
            cancel (threading.Event|None): checked between iterations

        Returns:
            RankResult
        """
        self._result = None
        print_stage("PageRank", f"Computing weighted PageRank [{self.strategy}]")

        with Timer("PageRank computation"):
            with self.graph.snapshot() as view:
                nodes = view.nodes_with_labels(config.labels)
                types = view.relationship_types_named(config.relationship_types)
                weights = resolve_weights(types, config.weights)
                print_step(f"{len(nodes)} nodes, {len(types)} relationship types, "
                           f"{config.iterations} iterations")

                if config.is_noop() or not nodes or not types:
                    print_warning("Nothing to propagate; every node keeps the base rank")
                    values = np.full(len(nodes), config.base_rank)
                    iterations = 0
                else:
                    values = self._run(view, config, nodes, types, weights, cancel)
                    iterations = config.iterations

        result = RankResult(nodes, values, iterations=iterations, strategy=self.strategy)
        self._result = result
        return result

    def _run(self, view, config, nodes, types, weights, cancel):
        raise NotImplementedError

    def _iterations(self, config, cancel):
        """Iteration indices with a progress bar and a cancellation check at each boundary."""
        bar = tqdm(
            range(config.iterations),
            desc="  Iterating",
            unit="iter",
            bar_format="  {l_bar}{bar:30}{r_bar}",
            ncols=90,
            disable=not (config.show_progress and is_verbose()),
        )
        with bar:
            for iteration in bar:
                if cancel is not None and cancel.is_set():
                    raise ComputationCancelled(iteration)
                yield iteration

    @property
    def result(self):
        return self._result

    def get_result(self, node):
        """Rank of `node`, or -1 if it was not computed."""
        if self._result is None:
            return MISSING
        return self._result.get_result(node)

    def number_of_nodes(self):
        return 0 if self._result is None else self._result.number_of_nodes()


class _DenseEngine(RankEngine):
    """Shared setup of the array-backed strategies."""

    def _edge_arrays(self, view, nodes, types, weights, norm):
        """
        Index the relevant, non-dangling relationships.

        Returns:
            (src, dst, weight, total) arrays in relationship order: src / dst
            are node positions, weight is the type weight and total is
            norm[source] of each relationship.
        """
        index = {node: i for i, node in enumerate(nodes)}
        src, dst, weight, totals = [], [], [], []
        dropped = 0
        for source, target, rel_type in view.all_relationships():
            if rel_type not in types:
                continue
            i = index.get(source)
            if i is None:
                if not view.has_node(source):
                    raise StaleReferenceError(source, f"Relationship source {source!r} does not resolve")
                continue
            j = index.get(target)
            if j is None:
                if not view.has_node(target):
                    raise StaleReferenceError(target, f"Relationship target {target!r} does not resolve")
                dropped += 1
                continue
            total = norm[source]
            if is_dangling(total):
                continue
            src.append(i)
            dst.append(j)
            weight.append(weights[rel_type])
            totals.append(total)

        if dropped:
            print_step(f"{dropped} relationships leave the filtered node set; their rank is dropped")
        return (np.array(src, dtype=np.int64),
                np.array(dst, dtype=np.int64),
                np.array(weight, dtype=np.float64),
                np.array(totals, dtype=np.float64))


class SequentialDenseEngine(_DenseEngine):
    """
    Single-threaded float64 power iteration over relationship index arrays.

    Each relationship adds contribution[u] * w / norm[u] to its target, in
    relationship order, so the ranks are bit-identical to SparseMapEngine.
    """
    strategy = SEQUENTIAL_DENSE

    def _run(self, view, config, nodes, types, weights, cancel):
        n = len(nodes)
        norm = aggregate_direct(view, nodes, types, weights,
                                degree_fallback=config.degree_fallback)
        src, dst, weight, total = self._edge_arrays(view, nodes, types, weights, norm)
        print_success(f"Relationship arrays: {n} nodes, {len(src)} relationships")

        damping = config.damping
        base = config.base_rank
        rank = np.full(n, base, dtype=np.float64)
        for _ in self._iterations(config, cancel):
            contribution = damping * rank
            rank = np.full(n, base, dtype=np.float64)
            # Unbuffered: repeated targets accumulate in index order.
            np.add.at(rank, dst, contribution[src] * weight / total)
        return rank


class ParallelFixedPointEngine(_DenseEngine):
    """
    Fixed-point power iteration with relationship-level parallelism.

    Args:
        graph: graph with a snapshot() context manager
        pool (ThreadPoolExecutor|None): worker pool to use; when None a pool of
            config.workers threads is created for each compute() call

    The quantization error is at most 0.5 / config.scale per accumulated
    relationship (plus 0.5 / scale for the base rank), damped by the damping
    factor across iterations.
    """
    strategy = PARALLEL_FIXED_POINT

    def __init__(self, graph, pool=None):
        super().__init__(graph)
        self.pool = pool

    def _run(self, view, config, nodes, types, weights, cancel):
        limit = np.iinfo(np.int64).max / config.scale
        if len(nodes) >= limit:
            raise InvalidConfigError(f"scale {config.scale} is too large for {len(nodes)} nodes")

        if self.pool is not None:
            return self._run_on(self.pool, view, config, nodes, types, weights, cancel)
        with make_pool(config.workers) as pool:
            return self._run_on(pool, view, config, nodes, types, weights, cancel)

    def _run_on(self, pool, view, config, nodes, types, weights, cancel):
        n = len(nodes)
        scale = config.scale
        norm = aggregate_by_degree(view, nodes, types, weights, pool=pool,
                                   degree_fallback=config.degree_fallback)
        src, dst, weight, total = self._edge_arrays(view, nodes, types, weights, norm)

        chunks = [c for c in np.array_split(np.arange(len(src)), config.workers) if len(c)]
        print_success(f"{len(src)} relationships in {len(chunks)} chunks, "
                      f"{config.workers} workers, scale {scale}")

        damping = config.damping
        base_int = int(to_int(config.base_rank, scale))
        rank = np.full(n, base_int, dtype=np.int64)
        contribution = np.zeros(n, dtype=np.float64)
        lock = threading.Lock()

        def apply(chunk):
            s = src[chunk]
            amounts = to_int(contribution[s] * weight[chunk] / total[chunk], scale)
            partial = np.zeros(n, dtype=np.int64)
            np.add.at(partial, dst[chunk], amounts)
            with lock:
                np.add(rank, partial, out=rank)

        for _ in self._iterations(config, cancel):
            contribution[:] = damping * to_float(rank, scale)
            rank.fill(base_int)
            run_batch(pool, apply, chunks)

        return to_float(rank, scale)


class SparseMapEngine(RankEngine):
    """Dict-backed power iteration; node ids need not be contiguous integers."""
    strategy = SPARSE_MAP

    def _run(self, view, config, nodes, types, weights, cancel):
        norm = aggregate_direct(view, nodes, types, weights,
                                degree_fallback=config.degree_fallback)
        dangling = sum(1 for value in norm.values() if is_dangling(value))
        print_success(f"Normalization table: {len(norm)} nodes, {dangling} dangling")

        damping = config.damping
        base = config.base_rank
        rank = {node: base for node in nodes}
        contribution = {}

        for _ in self._iterations(config, cancel):
            for node in nodes:
                contribution[node] = damping * rank[node]
                rank[node] = base

            for source, target, rel_type in view.all_relationships():
                if rel_type not in types:
                    continue
                if source not in rank:
                    if not view.has_node(source):
                        raise StaleReferenceError(source, f"Relationship source {source!r} does not resolve")
                    continue
                total = norm[source]
                if is_dangling(total):
                    continue
                if target not in rank:
                    if not view.has_node(target):
                        raise StaleReferenceError(target, f"Relationship target {target!r} does not resolve")
                    continue
                rank[target] += contribution[source] * weights[rel_type] / total

        return [rank[node] for node in nodes]


ENGINES = {
    SEQUENTIAL_DENSE: SequentialDenseEngine,
    PARALLEL_FIXED_POINT: ParallelFixedPointEngine,
    SPARSE_MAP: SparseMapEngine,
}


def create_engine(graph, strategy=SPARSE_MAP, **kwargs):
    """
    Build the engine for `strategy`.

    Args:
        graph: graph with a snapshot() context manager
        strategy (str): one of config.STRATEGIES
        **kwargs: passed to the engine (e.g. pool= for the parallel strategy)
    """
    try:
        engine_cls = ENGINES[strategy]
    except KeyError:
        raise InvalidConfigError(f"unknown strategy {strategy!r}") from None
    return engine_cls(graph, **kwargs)


def compute_pagerank(graph, config, cancel=None):
    """Run `config` on `graph` with the engine named by config.strategy."""
    return create_engine(graph, config.strategy).compute(config, cancel=cancel)
