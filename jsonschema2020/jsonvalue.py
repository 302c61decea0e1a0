"""JSON value model for validation.

Maps Python host values onto the JSON kinds used by JSON Schema
(null, boolean, integer, number, string, array, object) and implements
equality and hashing with mathematical number semantics.

Objects are either mappings with string keys or dataclass instances. A
dataclass field is a property named after the field, or after the 'json'
entry of its metadata. Fields starting with an underscore, or whose 'json'
name is '-', are not properties.
"""

import dataclasses
import enum
import math
from collections.abc import Mapping
from decimal import Decimal
from fractions import Fraction
from typing import Any, Dict, Iterator, Optional, Set, Tuple

# Marker returned by property_value for a property that does not exist.
MISSING = object()


def step(value: Any) -> Any:
    """Steps through host indirections (enum members) to the underlying value."""
    while isinstance(value, enum.Enum):
        value = value.value
    return value


def is_struct(value: Any) -> bool:
    """Reports whether value is a dataclass instance, the host analog of a record with named slots."""
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def is_object(value: Any) -> bool:
    return isinstance(value, Mapping) or is_struct(value)


def is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def json_number(value: Any) -> Optional[Fraction]:
    """Converts a numeric value to an exact Fraction.

    Floats are converted through their shortest decimal representation, so
    0.1 becomes 1/10 rather than the binary approximation.
    Returns None for non-numbers, booleans and non-finite floats.
    """
    value = step(value)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return Fraction(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return Fraction(repr(value))
    if isinstance(value, Decimal):
        if not value.is_finite():
            return None
        return Fraction(value)
    if isinstance(value, Fraction):
        return value
    return None


def json_type(value: Any) -> Optional[str]:
    """Returns the JSON Schema type name of value, or None if it is not a JSON value.

    A number with a zero fractional part is an 'integer'.
    """
    value = step(value)
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float, Decimal, Fraction)):
        n = json_number(value)
        if n is None:
            return None
        return "integer" if n.denominator == 1 else "number"
    if isinstance(value, str):
        return "string"
    if is_array(value):
        return "array"
    if is_object(value):
        return "object"
    return None


def _struct_fields(value: Any) -> Iterator[Tuple[str, dataclasses.Field]]:
    for f in dataclasses.fields(value):
        name = f.metadata.get("json", f.name)
        if f.name.startswith("_") or name == "-":
            continue
        yield name, f


def struct_property_names(value: Any) -> Set[str]:
    return {name for name, _ in _struct_fields(value)}


def struct_attribute(value: Any, name: str) -> Optional[str]:
    """Returns the attribute of the dataclass instance that holds property name, or None."""
    for pname, f in _struct_fields(value):
        if pname == name:
            return f.name
    return None


def is_zero(value: Any) -> bool:
    """Reports whether value is the zero value of its type (None, 0, '', False, empty container)."""
    value = step(value)
    if value is None:
        return True
    if isinstance(value, (bool, int, float, Decimal, Fraction)):
        return value == 0
    if isinstance(value, (str, list, tuple, Mapping, set, frozenset)):
        return len(value) == 0
    if is_struct(value):
        return all(is_zero(getattr(value, f.name)) for f in dataclasses.fields(value))
    return False


def property_value(obj: Any, name: str) -> Any:
    """Returns the value of property name in obj, or MISSING if obj has no such property."""
    if isinstance(obj, Mapping):
        return obj[name] if name in obj else MISSING
    attr = struct_attribute(obj, name)
    return MISSING if attr is None else getattr(obj, attr)


def properties(obj: Any) -> Iterator[Tuple[str, Any]]:
    """Yields the (name, value) pairs of obj.

    For dataclasses, zero-valued fields whose metadata sets 'omitempty'
    are skipped.
    """
    if isinstance(obj, Mapping):
        yield from obj.items()
        return
    for name, f in _struct_fields(obj):
        val = getattr(obj, f.name)
        if f.metadata.get("omitempty") and is_zero(val):
            continue
        yield name, val


def property_bounds(obj: Any, is_required: Set[str]) -> Tuple[int, int]:
    """Returns lower and upper bounds on the number of properties of obj.

    For a mapping both bounds are its size. For a dataclass, a zero-valued
    slot might be a missing optional property or a present one, so the lower
    bound counts only non-zero or required slots.
    """
    if isinstance(obj, Mapping):
        return len(obj), len(obj)
    low = 0
    high = 0
    for name, f in _struct_fields(obj):
        high += 1
        if name in is_required or not is_zero(getattr(obj, f.name)):
            low += 1
    return low, high


def _as_object(value: Any) -> Dict[str, Any]:
    return dict(properties(value))


def equal(x: Any, y: Any) -> bool:
    """Reports whether two JSON values are equal in the sense of JSON Schema.

    Numbers compare by mathematical value, so 5, 5.0 and Decimal('5.00')
    are equal. Arrays compare item by item; objects by key set and values.
    """
    x = step(x)
    y = step(y)
    nx = json_number(x)
    ny = json_number(y)
    if nx is not None or ny is not None:
        return nx is not None and ny is not None and nx == ny
    if x is None or y is None:
        return x is None and y is None
    if isinstance(x, bool) or isinstance(y, bool):
        return isinstance(x, bool) and isinstance(y, bool) and x == y
    if isinstance(x, str) or isinstance(y, str):
        return isinstance(x, str) and isinstance(y, str) and x == y
    if is_array(x) and is_array(y):
        return len(x) == len(y) and all(equal(a, b) for a, b in zip(x, y))
    if is_object(x) and is_object(y):
        ox = _as_object(x)
        oy = _as_object(y)
        if ox.keys() != oy.keys():
            return False
        return all(equal(v, oy[k]) for k, v in ox.items())
    return False


def hash_value(value: Any, seed: int = 0) -> int:
    """Hashes a JSON value consistently with equal.

    Equal numbers hash the same because Python hashes a Fraction and an
    equal int identically. Object entries are combined with XOR so key
    order does not matter.
    """
    value = step(value)
    n = json_number(value)
    if n is not None:
        return hash((seed, 1, n))
    if value is None:
        return hash((seed, 0))
    if isinstance(value, bool):
        return hash((seed, 2, value))
    if isinstance(value, str):
        return hash((seed, 3, value))
    if is_array(value):
        h = hash((seed, 4, len(value)))
        for item in value:
            h = hash((h, hash_value(item, seed)))
        return h
    if is_object(value):
        obj = _as_object(value)
        h = hash((seed, 5, len(obj)))
        for k, v in obj.items():
            h ^= hash((seed, k, hash_value(v, seed)))
        return h
    raise TypeError(f"cannot hash {type(value).__name__}: not a JSON value")
