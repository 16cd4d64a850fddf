# errors.py
#
# Project: Weighted PageRank
#
# Description:
#   Exception types raised by the graph snapshot, the configuration layer
#   and the rank engines.
#
#   Missing relationship weights and dangling nodes are normal conditions and
#   have no exception type: the first resolves to the default weight, the
#   second marks a node as a rank sink.


class PageRankError(Exception):
    """Base class for every error raised by this package."""


class StaleReferenceError(PageRankError):
    """A node or relationship endpoint no longer resolves in the snapshot."""

    def __init__(self, entity, message=None):
        self.entity = entity
        super().__init__(message or f"Stale reference to {entity!r}")


class InvalidConfigError(PageRankError, ValueError):
    """Configuration value outside its allowed range."""


class SnapshotClosedError(PageRankError):
    """A graph snapshot was queried after it had been released."""


class ComputationCancelled(PageRankError):
    """The caller asked for cancellation between two iterations."""

    def __init__(self, completed_iterations):
        self.completed_iterations = completed_iterations
        super().__init__(f"Cancelled after {completed_iterations} iterations")
