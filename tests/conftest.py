"""Shared fixtures: small labeled graphs and silenced terminal output."""

import pytest

from weighted_pagerank.config import PageRankConfig
from weighted_pagerank.graph import PropertyGraph
from weighted_pagerank.utils import set_verbose

DAMPING = 0.85
BASE = 1.0 - DAMPING


@pytest.fixture(autouse=True)
def quiet_output():
    """Keep stage banners and progress bars out of the test output."""
    previous = set_verbose(False)
    yield
    set_verbose(previous)


def make_graph(nodes, relationships):
    """nodes: {id: labels}; relationships: [(source, target, type)]."""
    graph = PropertyGraph()
    for node, labels in nodes.items():
        graph.add_node(node, labels)
    for source, target, rel_type in relationships:
        graph.add_relationship(source, target, rel_type)
    return graph


def make_config(**kwargs):
    settings = dict(labels=["Profile"], relationship_types=["FOLLOWS"], iterations=1,
                    show_progress=False, workers=2)
    settings.update(kwargs)
    return PageRankConfig(**settings)


@pytest.fixture
def two_node_graph():
    """A -FOLLOWS-> B."""
    return make_graph({"A": ["Profile"], "B": ["Profile"]}, [("A", "B", "FOLLOWS")])


@pytest.fixture
def cycle_graph():
    """Four Profile nodes, every node has an outgoing FOLLOWS relationship."""
    return make_graph(
        {"A": ["Profile"], "B": ["Profile"], "C": ["Profile"], "D": ["Profile"]},
        [("A", "B", "FOLLOWS"), ("A", "C", "FOLLOWS"), ("B", "C", "FOLLOWS"),
         ("C", "A", "FOLLOWS"), ("D", "C", "FOLLOWS"), ("C", "D", "FOLLOWS")],
    )


@pytest.fixture
def social_graph():
    """
    Mixed labels and relationship types, with a dangling node, a parallel
    relationship, an unlisted type, and a node outside the filtered labels.
    """
    return make_graph(
        {
            1: ["Profile"],
            2: ["Profile"],
            3: ["Profile", "Project"],
            4: ["Project"],
            5: ["Project"],
            6: ["Profile"],      # dangling: receives only
            7: ["Organization"],  # not part of the filtered set
        },
        [
            (1, 2, "FOLLOWS"), (1, 3, "FOLLOWS"), (1, 3, "FOLLOWS"),
            (2, 1, "FOLLOWS"), (2, 4, "COMMENTED_ON"),
            (3, 5, "LICENSED"), (3, 1, "FOLLOWS"),
            (4, 3, "COMMENTED_ON"), (4, 6, "FOLLOWS"),
            (5, 1, "LICENSED"), (5, 2, "COMMENTED_ON"), (5, 7, "FOLLOWS"),
            (2, 3, "MEMBER_OF"),  # type not configured
            (7, 1, "FOLLOWS"),   # source outside the filtered set
        ],
    )


SOCIAL_LABELS = ["Profile", "Project"]
SOCIAL_TYPES = ["FOLLOWS", "COMMENTED_ON", "LICENSED"]
SOCIAL_WEIGHTS = {"FOLLOWS": 2.0, "COMMENTED_ON": 0.5}
