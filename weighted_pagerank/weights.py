# weights.py
#
# Project: Weighted PageRank
#
# Description:
#   Relationship type -> weight resolution.  A type without a configured
#   weight is not an error; it falls back to DEFAULT_WEIGHT.

DEFAULT_WEIGHT = 1.0


def resolve_weights(types, weights, default=DEFAULT_WEIGHT):
    """
    Resolve the weight of every relevant relationship type.

    Args:
        types (iterable): relationship type names
        weights (dict): configured type -> weight overrides
        default (float): weight for types missing from `weights`

    Returns:
        dict: type -> float weight, one entry per type in `types`
    """
    return {rel_type: float(weights.get(rel_type, default)) for rel_type in types}
