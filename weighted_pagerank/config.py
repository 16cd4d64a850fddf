# config.py
#
# Project: Weighted PageRank
#
# Description:
#   Computation settings: which node labels and relationship types take part,
#   per-type weights, the fixed iteration budget, the damping factor, and the
#   execution strategy of the rank engine.
#
#   A config is immutable once built.  JSON files and plain dicts are both
#   accepted; keys may use the camelCase names of the REST surface
#   (relationshipTypes) or snake_case.

import json
import math
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType

from weighted_pagerank.errors import InvalidConfigError
from weighted_pagerank.utils import default_workers

DEFAULT_DAMPING = 0.85
DEFAULT_ITERATIONS = 200

# Fixed-point scale for the parallel strategy.  Larger values reduce the
# quantization error (about 0.5 / SCALE per accumulated edge) but shrink the
# largest rank an int64 can hold before overflow (about 9.2e18 / SCALE).
DEFAULT_SCALE = 1_000_000

SEQUENTIAL_DENSE = "sequential-dense"
PARALLEL_FIXED_POINT = "parallel-fixed-point"
SPARSE_MAP = "sparse-map"
STRATEGIES = (SEQUENTIAL_DENSE, PARALLEL_FIXED_POINT, SPARSE_MAP)

_KEY_ALIASES = {
    "labels": "labels",
    "relationshipTypes": "relationship_types",
    "relationship_types": "relationship_types",
    "relationships": "relationship_types",
    "types": "relationship_types",
    "weights": "weights",
    "iterations": "iterations",
    "damping": "damping",
    "alpha": "damping",
    "strategy": "strategy",
    "workers": "workers",
    "scale": "scale",
    "degreeFallback": "degree_fallback",
    "degree_fallback": "degree_fallback",
    "showProgress": "show_progress",
    "show_progress": "show_progress",
}


def _unique(names):
    if isinstance(names, str):
        names = [names]
    elif names is not None and not isinstance(names, (list, tuple, set, frozenset)):
        raise InvalidConfigError(f"expected a list of names, got {names!r}")
    seen = []
    for name in names or ():
        name = str(name)
        if name not in seen:
            seen.append(name)
    return tuple(seen)



def _is_number(value, kinds):
    return isinstance(value, kinds) and not isinstance(value, bool)

@dataclass(frozen=True)
class PageRankConfig:
    """
    Settings for one PageRank computation.

    Attributes:
        labels: node labels to include (a node matching several counts once)
        relationship_types: relationship types to include
        weights: relationship type -> weight; missing types use 1.0
        iterations: fixed number of power iterations (no convergence test)
        damping: damping factor alpha; every node is re-seeded with 1 - alpha
        strategy: one of STRATEGIES
        workers: thread pool size for the parallel strategy
        scale: fixed-point scale for the parallel strategy
        degree_fallback: use in-degree when a node's out-degree for a type is
            zero (degree-based normalization only; legacy approximation)
        show_progress: show a tqdm bar over iterations
    """
    labels: tuple = ()
    relationship_types: tuple = ()
    weights: dict = field(default_factory=dict)
    iterations: int = DEFAULT_ITERATIONS
    damping: float = DEFAULT_DAMPING
    strategy: str = SPARSE_MAP
    workers: int = field(default_factory=default_workers)
    scale: int = DEFAULT_SCALE
    degree_fallback: bool = False
    show_progress: bool = True

    def __post_init__(self):
        object.__setattr__(self, "labels", _unique(self.labels))
        object.__setattr__(self, "relationship_types", _unique(self.relationship_types))
        if self.weights is not None and not isinstance(self.weights, Mapping):
            raise InvalidConfigError(f"weights must be a mapping, got {self.weights!r}")
        object.__setattr__(self, "weights", MappingProxyType(dict(self.weights or {})))
        self._validate()

    def _validate(self):
        for name in ("iterations", "workers", "scale"):
            value = getattr(self, name)
            if not _is_number(value, int):
                raise InvalidConfigError(f"{name} must be an integer, got {value!r}")
        if not _is_number(self.damping, (int, float)):
            raise InvalidConfigError(f"damping must be a number, got {self.damping!r}")
        if not (0.0 <= self.damping <= 1.0):
            raise InvalidConfigError(f"damping must be in [0, 1], got {self.damping}")
        for rel_type, weight in self.weights.items():
            if not _is_number(weight, (int, float)):
                raise InvalidConfigError(f"weight for {rel_type!r} must be a number, got {weight!r}")
            if not math.isfinite(weight) or weight <= 0:
                raise InvalidConfigError(f"weight for {rel_type!r} must be positive, got {weight}")
        if self.strategy not in STRATEGIES:
            raise InvalidConfigError(
                f"unknown strategy {self.strategy!r}, expected one of {', '.join(STRATEGIES)}")
        if self.workers < 1:
            raise InvalidConfigError(f"workers must be >= 1, got {self.workers}")
        if self.scale < 1:
            raise InvalidConfigError(f"scale must be >= 1, got {self.scale}")

    @property
    def base_rank(self):
        """Rank every node is re-seeded with at each iteration."""
        return 1.0 - self.damping

    def is_noop(self):
        """True when nothing can propagate: no labels, no types or no iterations."""
        return not self.labels or not self.relationship_types or self.iterations <= 0

    def with_overrides(self, **changes):
        changes = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **changes)

    def to_dict(self):
        return {
            "labels": list(self.labels),
            "relationshipTypes": list(self.relationship_types),
            "weights": dict(self.weights),
            "iterations": self.iterations,
            "damping": self.damping,
            "strategy": self.strategy,
            "workers": self.workers,
            "scale": self.scale,
            "degreeFallback": self.degree_fallback,
        }


def config_from_dict(data):
    """
    Build a PageRankConfig from a plain mapping.

    Args:
        data (dict): settings; unknown keys raise InvalidConfigError

    Returns:
        PageRankConfig
    """
    kwargs = {}
    for key, value in data.items():
        if key not in _KEY_ALIASES:
            raise InvalidConfigError(f"unknown config key {key!r}")
        kwargs[_KEY_ALIASES[key]] = value
    return PageRankConfig(**kwargs)


def load_config(path):
    """Read a PageRankConfig from a JSON file."""
    with open(path, 'r') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidConfigError(f"{path}: not valid JSON ({e})") from e
    if not isinstance(data, dict):
        raise InvalidConfigError(f"{path}: expected a JSON object")
    return config_from_dict(data)
