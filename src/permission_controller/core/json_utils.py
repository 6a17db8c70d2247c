"""
JSON value helpers shared by caveat validation and caveat functions.

Values handled here are plain JSON data: dict, list, str, int, float,
bool and None. Comparison follows JSON semantics rather than Python's:
True is not equal to 1, but 1 is equal to 1.0.
"""

import json
from typing import Any


def deep_equal(a: Any, b: Any) -> bool:
    """Structural equality of two JSON values"""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b

    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return a == b

    if isinstance(a, dict) and isinstance(b, dict):
        if a.keys() != b.keys():
            return False
        return all(deep_equal(a[key], b[key]) for key in a)

    if isinstance(a, list) and isinstance(b, list):
        if len(a) != len(b):
            return False
        return all(deep_equal(x, y) for x, y in zip(a, b))

    return type(a) is type(b) and a == b


def is_valid_json(value: Any) -> bool:
    """
    Check that a value survives a JSON encode/decode cycle unchanged.

    Anything that cannot be serialized (sets, objects, NaN, cycles) or
    that changes shape on the way through (tuples, non-string keys) is
    rejected.
    """
    try:
        decoded = json.loads(json.dumps(value, allow_nan=False))
    except (TypeError, ValueError, RecursionError):
        return False
    return deep_equal(value, decoded)


def is_subset(superset: Any, subset: Any) -> bool:
    """
    Check whether `subset` is contained in `superset`.

    Objects are compared by key, so member order does not matter. Arrays
    are compared by index, so [1] is a subset of [1, 2] but not of [2, 1].
    Anything that is not an object or array is never a subset.
    """
    if isinstance(superset, dict) and isinstance(subset, dict):
        for key, sub_item in subset.items():
            if key not in superset:
                return False
            if not _contains(superset[key], sub_item):
                return False
        return True

    if isinstance(superset, list) and isinstance(subset, list):
        if len(subset) > len(superset):
            return False
        return all(_contains(sup_item, sub_item) for sup_item, sub_item in zip(superset, subset))

    return False


def _contains(sup_item: Any, sub_item: Any) -> bool:
    if isinstance(sub_item, (dict, list)):
        return is_subset(sup_item, sub_item)
    return deep_equal(sup_item, sub_item)
