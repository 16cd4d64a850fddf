# results.py
#
# Project: Weighted PageRank
#
# Description:
#   Final rank vector of one computation, queryable by node id.
#   Nodes outside the computed set report the MISSING sentinel (-1).

import numpy as np

MISSING = -1.0


class RankResult:
    """
    Settled ranks of one computation.  Read-only.

    Args:
        nodes (list): node ids, in index order
        values (array-like): rank of nodes[i] at position i
        iterations (int): number of iterations that produced the ranks
        strategy (str): engine strategy name
    """

    def __init__(self, nodes, values, iterations=0, strategy=None):
        self._nodes = tuple(nodes)
        self._values = np.array(values, dtype=np.float64)
        self._values.setflags(write=False)
        self._index = {node: i for i, node in enumerate(self._nodes)}
        self.iterations = iterations
        self.strategy = strategy

    def get_result(self, node):
        i = self._index.get(node)
        return MISSING if i is None else float(self._values[i])

    def __contains__(self, node):
        return node in self._index

    def __len__(self):
        return len(self._nodes)

    def number_of_nodes(self):
        return len(self._nodes)

    @property
    def nodes(self):
        return self._nodes

    @property
    def values(self):
        return self._values

    def total(self):
        """Sum of all ranks."""
        return float(self._values.sum())

    def items(self):
        return [(node, float(value)) for node, value in zip(self._nodes, self._values)]

    def to_dict(self):
        return dict(self.items())

    def top(self, k=10):
        """The k highest ranked (node, rank) pairs, ties broken by node order."""
        order = np.argsort(-self._values, kind="stable")[:k]
        return [(self._nodes[i], float(self._values[i])) for i in order]
