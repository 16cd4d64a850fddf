# workers.py
#
# Project: Weighted PageRank
#
# Description:
#   Data-parallel batches on a fixed-size thread pool.
#
#   run_batch() submits one future per unit and returns only after every
#   future has finished, so each call is a full barrier: no phase of the
#   engine can start before the previous phase is complete for all units.
#   Failures are collected across the whole batch and the first one (in
#   submission order) is re-raised; a batch never partially succeeds.

from concurrent.futures import ThreadPoolExecutor, wait

from weighted_pagerank.errors import PageRankError


class BatchError(PageRankError):
    """A unit of a parallel batch failed; `errors` holds every failure."""

    def __init__(self, errors):
        self.errors = errors
        super().__init__(f"{len(errors)} of the batch units failed; first: {errors[0]!r}")


def make_pool(workers):
    return ThreadPoolExecutor(max_workers=workers, thread_name_prefix="pagerank")


def run_batch(pool, fn, units):
    """
    Run fn(unit) for every unit on `pool` and wait for all of them.

    Args:
        pool (ThreadPoolExecutor): worker pool
        fn (callable): work for one unit
        units (iterable): independent units of work

    Returns:
        list: results in the order of `units`

    Raises:
        The first failing unit's exception, with a BatchError listing every
        failure as its context when more than one unit failed.
    """
    futures = [pool.submit(fn, unit) for unit in units]
    wait(futures)

    errors = [f.exception() for f in futures if f.exception() is not None]
    if errors:
        if len(errors) == 1:
            raise errors[0]
        raise errors[0] from BatchError(errors)
    return [f.result() for f in futures]
