# main.py
#
# Project: Weighted PageRank
#
# Description:
#   Entry point.  Loads a labeled property graph from local JSON documents or
#   a GCS bucket, runs weighted PageRank over the label / relationship-type
#   filtered subgraph with the chosen execution strategy, prints the top
#   ranked nodes and optionally validates the ranking against NetworkX.
#
# Usage:
#   python main.py --source graph.json --labels Profile Project \
#       --types FOLLOWS COMMENTED_ON --weight FOLLOWS=2.0 --iterations 20
#   python main.py --config pagerank.json --strategy parallel-fixed-point --validate
#
# References:
#   [1] Page, L., Brin, S., Motwani, R., & Winograd, T. (1999).
#       "The PageRank Citation Ranking: Bringing Order to the Web."
#       http://ilpubs.stanford.edu:8090/422/1/1999-66.pdf

import argparse
import sys

from weighted_pagerank.config import STRATEGIES, PageRankConfig, load_config
from weighted_pagerank.engine import compute_pagerank
from weighted_pagerank.errors import PageRankError
from weighted_pagerank.loader import METHODS, read_graph
from weighted_pagerank.utils import print_error, print_project_banner, print_rank_preview, set_verbose
from weighted_pagerank.validation import verify_with_networkx


def parse_weight(text):
    """Parse a TYPE=WEIGHT command line value."""
    rel_type, sep, value = text.partition('=')
    if not sep or not rel_type:
        raise argparse.ArgumentTypeError(f"expected TYPE=WEIGHT, got {text!r}")
    try:
        return rel_type, float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"weight for {rel_type!r} is not a number: {value!r}")


def build_parser():
    parser = argparse.ArgumentParser(description="Weighted PageRank over a labeled property graph")
    parser.add_argument('--source', required=True,
                        help="Graph JSON file, directory of JSON shards, or GCS bucket name")
    parser.add_argument('--prefix', default='', help="GCS object prefix")
    parser.add_argument('--method', default='thread_pool', choices=METHODS,
                        help="GCS download strategy (default: thread_pool)")
    parser.add_argument('--limit', type=int, default=None, help="Limit number of shards to read")
    parser.add_argument('--anonymous', action='store_true', help="Anonymous GCS client (public buckets)")
    parser.add_argument('--config', default=None, help="JSON config file; flags below override it")
    parser.add_argument('--labels', nargs='+', default=None, help="Node labels to include")
    parser.add_argument('--types', nargs='+', default=None, help="Relationship types to include")
    parser.add_argument('--weight', type=parse_weight, action='append', default=None,
                        metavar='TYPE=WEIGHT', help="Relationship type weight (repeatable, default 1.0)")
    parser.add_argument('--iterations', type=int, default=None, help="Fixed iteration budget (default 200)")
    parser.add_argument('--damping', type=float, default=None, help="Damping factor (default 0.85)")
    parser.add_argument('--strategy', default=None, choices=STRATEGIES, help="Execution strategy")
    parser.add_argument('--workers', type=int, default=None, help="Worker threads (parallel strategy)")
    parser.add_argument('--scale', type=int, default=None, help="Fixed-point scale (parallel strategy)")
    parser.add_argument('--degree-fallback', action='store_true',
                        help="Count in-degree where out-degree is zero (dense strategies)")
    parser.add_argument('--top', type=int, default=10, help="Number of top nodes to print")
    parser.add_argument('--validate', action='store_true', help="Compare with NetworkX PageRank")
    parser.add_argument('--plot-dir', default=None, help="Save validation plots to this directory")
    parser.add_argument('--quiet', action='store_true', help="Print only the final ranking")
    return parser


def config_from_args(args):
    config = load_config(args.config) if args.config else PageRankConfig()
    weights = dict(config.weights)
    if args.weight:
        weights.update(args.weight)
    return config.with_overrides(
        labels=args.labels,
        relationship_types=args.types,
        weights=weights,
        iterations=args.iterations,
        damping=args.damping,
        strategy=args.strategy,
        workers=args.workers,
        scale=args.scale,
        degree_fallback=True if args.degree_fallback else None,
        show_progress=False if args.quiet else None,
    )


def main(argv=None):
    args = build_parser().parse_args(argv)

    if args.quiet:
        set_verbose(False)
    print_project_banner()

    try:
        config = config_from_args(args)
        graph = read_graph(args.source, prefix=args.prefix, method=args.method,
                           limit=args.limit, anonymous=args.anonymous)
        result = compute_pagerank(graph, config)
    except (PageRankError, OSError, ValueError) as e:
        print_error(str(e))
        return 1

    if args.quiet:
        for node, score in result.top(args.top):
            print(f"{node}\t{score:.10f}")
    else:
        print_rank_preview(result.to_dict(), title=f"Top {args.top} Nodes by PageRank", top=args.top)

    if args.validate:
        verify_with_networkx(graph, config, result, top=min(args.top, 5), plot_dir=args.plot_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
