# validation.py
#
# Project: Weighted PageRank
#
# Description:
#   Validate engine results against NetworkX's PageRank on the same filtered,
#   weighted subgraph, and compare two engine results with each other.
#
#   NetworkX normalizes ranks to sum 1 and redistributes dangling mass; the
#   engines keep the (1 - d) base per node and drop dangling mass.  Scores
#   are therefore compared after scaling the reference to the engine's total
#   mass, and ranking agreement is the primary signal.  On a graph without
#   dangling nodes, and with no relationship leaving the filtered set, both
#   converge to the same ranks up to that scale factor.
#
# References:
#   [1] Spearman, C. (1904).
#       "The Proof and Measurement of Association between Two Things."
#       American Journal of Psychology, 15(1), 72-101.
#
#   [2] Kendall, M. (1938).
#       "A New Measure of Rank Correlation."
#       Biometrika, 30(1/2), 81-93.
#
#   This module invokes nx.DiGraph() and nx.pagerank() at runtime as a
#   reference implementation (NetworkX, 3-clause BSD).
#
# Metrics used:
#   Score-level:  Mean Absolute Error (MAE) of per-node ranks.
#   Rank-level:   Spearman's rho and Kendall's tau over all N nodes.
#   Top-K level:  Precision@K (set overlap) and positional rank match.

import os

import matplotlib
matplotlib.use('Agg')  # non-interactive backend for saving to file
import matplotlib.pyplot as plt
import networkx as nx
import numpy as np
from scipy.stats import kendalltau, rankdata, spearmanr

from weighted_pagerank.utils import (
    Timer, print_side_by_side_boxes, print_stage, print_step, print_success, print_summary_box,
)
from weighted_pagerank.weights import resolve_weights


def reference_digraph(view, config):
    """
    NetworkX DiGraph of the filtered subgraph.

    Parallel relationships between the same pair are merged by summing their
    weights into the `weight` edge attribute.
    """
    nodes = view.nodes_with_labels(config.labels)
    members = set(nodes)
    types = view.relationship_types_named(config.relationship_types)
    weights = resolve_weights(types, config.weights)

    G = nx.DiGraph()
    G.add_nodes_from(nodes)
    for source, target, rel_type in view.all_relationships():
        if rel_type in types and source in members and target in members:
            if G.has_edge(source, target):
                G[source][target]['weight'] += weights[rel_type]
            else:
                G.add_edge(source, target, weight=weights[rel_type])
    return G


def reference_ranks(view, config, max_iter=1000):
    """NetworkX PageRank of the filtered subgraph (sums to 1)."""
    G = reference_digraph(view, config)
    if G.number_of_nodes() == 0:
        return {}
    return nx.pagerank(G, alpha=config.damping, weight='weight', max_iter=max_iter)


def compare_strategies(a, b):
    """
    Largest absolute rank difference between two RankResults.

    Returns inf when the two results do not cover the same nodes.
    """
    if set(a.nodes) != set(b.nodes):
        return float('inf')
    if not a.nodes:
        return 0.0
    left = np.array([a.get_result(node) for node in a.nodes])
    right = np.array([b.get_result(node) for node in a.nodes])
    return float(np.abs(left - right).max())


def _plot_validation(engine_scores, nx_scores, rho, tau, out_dir):
    """Rank-vs-rank and score-vs-score scatter plots, saved as PNG."""
    engine_ranks = rankdata(-engine_scores, method='ordinal')
    nx_ranks = rankdata(-nx_scores, method='ordinal')

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(14, 6))

    ax1.scatter(nx_ranks, engine_ranks, s=4, alpha=0.5, c='steelblue')
    rank_max = max(engine_ranks.max(), nx_ranks.max())
    ax1.plot([1, rank_max], [1, rank_max], 'r--', linewidth=1, label='Perfect agreement')
    ax1.set_xlabel('NetworkX Rank')
    ax1.set_ylabel('Engine Rank')
    ax1.set_title(f'Rank vs Rank  (Spearman ρ = {rho:.6f})')
    ax1.legend(loc='upper left')

    ax2.scatter(nx_scores, engine_scores, s=4, alpha=0.5, c='darkorange')
    score_min = min(nx_scores.min(), engine_scores.min())
    score_max = max(nx_scores.max(), engine_scores.max())
    ax2.plot([score_min, score_max], [score_min, score_max], 'r--', linewidth=1, label='y = x')
    ax2.set_xlabel('NetworkX PageRank (scaled)')
    ax2.set_ylabel('Engine PageRank')
    ax2.set_title(f'Score vs Score  (Kendall τ = {tau:.6f})')
    ax2.legend(loc='upper left')

    fig.suptitle('Weighted PageRank vs NetworkX PageRank', fontsize=14, fontweight='bold')
    fig.tight_layout()

    os.makedirs(out_dir, exist_ok=True)
    path = os.path.join(out_dir, 'validation_rank_correlation.png')
    fig.savefig(path, dpi=150, bbox_inches='tight')
    plt.close(fig)
    return path


def verify_with_networkx(graph, config, result, top=5, plot_dir=None):
    """
    Compare an engine result with NetworkX's PageRank.

    Args:
        graph: graph with a snapshot() context manager
        config (PageRankConfig): the config that produced `result`
        result (RankResult): engine output
        top (int): size of the top-k comparison
        plot_dir (str|None): write scatter plots here when given

    Returns:
        dict: mae, max_error, spearman, kendall, top_k_overlap, top_k_positional
    """
    print_stage("Verify", "Comparing with NetworkX PageRank")

    with Timer("NetworkX verification"):
        with graph.snapshot() as view:
            print_step("Computing NetworkX PageRank...")
            nx_pr = reference_ranks(view, config)

        nodes = list(result.nodes)
        if len(nodes) < 2:
            print_step("Fewer than two nodes; nothing to compare")
            return {}

        engine_scores = np.array([result.get_result(node) for node in nodes])
        nx_scores = np.array([nx_pr.get(node, 0.0) for node in nodes]) * engine_scores.sum()

        abs_errors = np.abs(engine_scores - nx_scores)
        rho, _ = spearmanr(engine_scores, nx_scores)
        tau, _ = kendalltau(engine_scores, nx_scores)

        engine_top = result.top(top)
        nx_top = sorted(zip(nodes, nx_scores), key=lambda item: -item[1])[:top]
        engine_top_nodes = [node for node, _ in engine_top]
        nx_top_nodes = [node for node, _ in nx_top]
        overlap = len(set(engine_top_nodes) & set(nx_top_nodes))
        positional = sum(1 for a, b in zip(engine_top_nodes, nx_top_nodes) if a == b)

        metrics = {
            "mae": float(abs_errors.mean()),
            "max_error": float(abs_errors.max()),
            "spearman": float(rho),
            "kendall": float(tau),
            "top_k_overlap": overlap,
            "top_k_positional": positional,
        }

        print_summary_box("Validation Metrics", {
            "MAE (scaled score)": f"{metrics['mae']:.2e}",
            "Max error": f"{metrics['max_error']:.2e}",
            "Spearman rho [1]": f"{metrics['spearman']:.6f}",
            "Kendall tau  [2]": f"{metrics['kendall']:.6f}",
            f"Precision@{top}": f"{overlap}/{min(top, len(nodes))}",
        })
        print_side_by_side_boxes(
            f"Engine Top {top}", {f"#{i + 1} {n}": f"{s:.8f}" for i, (n, s) in enumerate(engine_top)},
            f"NetworkX Top {top}", {f"#{i + 1} {n}": f"{s:.8f}" for i, (n, s) in enumerate(nx_top)},
        )

        if plot_dir:
            path = _plot_validation(engine_scores, nx_scores, rho, tau, plot_dir)
            print_success(f"Scatter plots saved to {path}")

    return metrics
