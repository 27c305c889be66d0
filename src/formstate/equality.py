"""Value equality used for change detection.

Plain ``==`` is not quite right for form values: ``nan != nan`` would
make a field permanently dirty, and ``1 == True`` would swallow a switch
from a number to a flag.
"""

from collections.abc import Mapping
from typing import Any


def same_value(a: Any, b: Any) -> bool:
    """True if ``a`` and ``b`` count as the same field value.

    Booleans never equal numbers; NaN equals NaN. Lists, tuples and
    mappings are compared item by item with the same rules.
    """
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        return same_values(a, b)
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return (
            type(a) is type(b)
            and len(a) == len(b)
            and all(same_value(x, y) for x, y in zip(a, b))
        )
    if a is b:
        return True
    try:
        if a == b:
            return True
        # NaN is the only value that differs from itself
        return a != a and b != b
    except (TypeError, ValueError):
        return False


def same_values(a: Mapping[str, Any], b: Mapping[str, Any]) -> bool:
    """Key-wise ``same_value`` over two mappings."""
    if a.keys() != b.keys():
        return False
    return all(same_value(a[key], b[key]) for key in a)
