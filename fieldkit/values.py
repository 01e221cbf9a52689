"""Deep copy and comparison over the value shapes a field can hold.

Supported shapes:
    * immutable atoms: None, bool, int, float, complex, str, bytes,
      Decimal, Fraction, date/time/datetime/timedelta, UUID, Enum members
    * containers copied recursively: list, tuple, dict, set, frozenset and
      subclasses of list and dict (OrderedDict, defaultdict, ...)
    * live models: never copied, compared by identity (their own dirty
      state is checked separately)
    * other objects with value equality (a class defining ``__eq__``, such
      as bytearray or a dataclass): copied with ``copy.deepcopy``
    * objects with identity equality: shared by reference

Cyclic structures are not supported.
"""

from __future__ import annotations

import copy
import datetime
import uuid
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from typing import Any

__all__ = [
    "ATOM_TYPES",
    "clone_value",
    "values_equal",
    "is_empty",
    "is_live_model",
    "has_value_equality",
]

ATOM_TYPES = (
    type(None),
    bool,
    int,
    float,
    complex,
    str,
    bytes,
    Decimal,
    Fraction,
    datetime.date,
    datetime.time,
    datetime.timedelta,
    uuid.UUID,
    Enum,
)


def is_live_model(value: Any) -> bool:
    """Check if value is a model instance (not a blueprint class)."""
    return not isinstance(value, type) and getattr(value, "__fieldkit_model__", False) is True


def has_value_equality(value: Any) -> bool:
    """Check if ``value``'s class compares by content rather than identity."""
    return type(value).__eq__ is not object.__eq__


def clone_value(value: Any) -> Any:
    """Return a structurally independent copy of ``value``."""
    if isinstance(value, ATOM_TYPES) or is_live_model(value):
        return value
    kind = type(value)
    if kind is list:
        return [clone_value(item) for item in value]
    if kind is tuple:
        return tuple(clone_value(item) for item in value)
    if kind is dict:
        return {key: clone_value(item) for key, item in value.items()}
    if kind is set:
        return {clone_value(item) for item in value}
    if kind is frozenset:
        return frozenset(clone_value(item) for item in value)
    if isinstance(value, dict):
        # Shallow copy keeps the subclass state (default_factory, order)
        cloned = copy.copy(value)
        for key, item in value.items():
            cloned[key] = clone_value(item)
        return cloned
    if isinstance(value, list):
        cloned = copy.copy(value)
        cloned[:] = [clone_value(item) for item in value]
        return cloned
    if has_value_equality(value):
        return copy.deepcopy(value)
    return value


def values_equal(left: Any, right: Any) -> bool:
    """Deep structural equality used for dirty checking.

    Containers must match in type as well as content, so ``[1]`` and ``(1,)``
    are different values. Mapping key order is ignored.
    """
    if left is right:
        return True
    if is_live_model(left) or is_live_model(right):
        return False
    kind = type(left)
    if kind is not type(right):
        # 1 == 1.0 and True == 1 are not the same value for a field
        return False
    if isinstance(left, (list, tuple)):
        return len(left) == len(right) and all(
            values_equal(a, b) for a, b in zip(left, right)
        )
    if isinstance(left, dict):
        if left.keys() != right.keys():
            return False
        return all(values_equal(left[key], right[key]) for key in left)
    if kind is float and left != left and right != right:
        # NaN never equals itself, but an untouched NaN is not a change
        return True
    return bool(left == right)


def is_empty(value: Any) -> bool:
    """Check if ``value`` counts as empty for skip-empty validation.

    Empty means None, the empty string, or a list/tuple with no items.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False
