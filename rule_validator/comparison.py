"""
Equality strategies used by the eq/same and enum_eq/enum_same constraints.

identical_equals is an exact type-and-value match. structural_equals coerces
only between numbers and numeric strings:

    structural_equals("1", 1)      -> True
    structural_equals("1.0", 1)    -> True
    structural_equals("abc", 0)    -> False
    structural_equals(True, 1)     -> True
    identical_equals(1, "1")       -> False
    identical_equals(1, 1.0)       -> False
"""

import re
from typing import Any, Iterable, Optional

_NUMERIC_STRING = re.compile(
    r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?\s*$"
)


def as_number(value: Any) -> Optional[float]:
    """Return value as a float when it is a number or a numeric string, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and _NUMERIC_STRING.match(value):
        return float(value)
    return None


def identical_equals(left: Any, right: Any) -> bool:
    return type(left) is type(right) and left == right


def structural_equals(left: Any, right: Any) -> bool:
    if identical_equals(left, right):
        return True

    left_is_str = isinstance(left, str)
    right_is_str = isinstance(right, str)

    if left_is_str or right_is_str:
        left_num = as_number(left)
        right_num = as_number(right)
        if left_num is not None and right_num is not None:
            return left_num == right_num
        if left_is_str and right_is_str:
            return False
        # Number against a non-numeric string compares as text
        other = right if left_is_str else left
        if isinstance(other, (int, float)) and not isinstance(other, bool):
            return str(other) == (left if left_is_str else right)
        return False

    return left == right


def contains_identical(value: Any, candidates: Iterable[Any]) -> bool:
    return any(identical_equals(value, candidate) for candidate in candidates)


def contains_structural(value: Any, candidates: Iterable[Any]) -> bool:
    return any(structural_equals(value, candidate) for candidate in candidates)
