"""JSON Pointers (RFC 6901) applied to schema trees.

A JSON Pointer is a path that refers to one JSON value within another.
If the path is empty, it refers to the root value. Otherwise it is a
sequence of slash-prefixed segments, like "/$defs/point/properties/x",
selecting successive members of objects or items of arrays.

Here pointers are applied to Schemas, not to raw JSON: a segment names a
keyword of the Schema (by its JSON name), an index into a list of
subschemas, or a key of a map of subschemas. The pointer must end on a
Schema.
"""

import re
from collections.abc import Mapping
from typing import Any

from jsonpointer import JsonPointer, JsonPointerException, escape

from jsonschema2020.errors import JSONPointerError
from jsonschema2020.schema import FIELDS_BY_JSON_NAME, Schema

_INDEX_REGEX = re.compile(r'^[0-9]+$')


def escape_segment(segment: str) -> str:
    """Escapes '~' and '/' so that segment can be used inside a JSON Pointer."""
    return escape(segment)


def parse_json_pointer(pointer: str) -> list:
    """Splits a JSON Pointer into unescaped segments.

    Segments are not converted to numbers: whether a segment is an index
    depends on the value it is applied to.
    """
    try:
        return JsonPointer(pointer).parts
    except JsonPointerException as e:
        raise JSONPointerError(pointer, str(e)) from e


def _lookup_schema_field(schema: Schema, name: str, pointer: str) -> Any:
    if name == 'type':
        # "type" is held in either type or types; at most one is set.
        if schema.type:
            return schema.type
        return schema.types
    f = FIELDS_BY_JSON_NAME.get(name)
    if f is None:
        raise JSONPointerError(pointer, f"no schema field {name!r}")
    return getattr(schema, f.name)


def _index(value: list, segment: str, pointer: str) -> Any:
    if segment == '-':
        raise JSONPointerError(pointer, "the JSON Pointer array segment '-' is not supported")
    if len(segment) > 1 and segment[0] == '0':
        raise JSONPointerError(pointer, f"segment {segment!r} has leading zeroes")
    if not _INDEX_REGEX.match(segment):
        raise JSONPointerError(pointer, f"invalid int: {segment!r}")
    n = int(segment)
    if n >= len(value):
        raise JSONPointerError(pointer, f"index {n} is out of bounds for array of length {len(value)}")
    return value[n]


def dereference_json_pointer(schema: Schema, pointer: str) -> Schema:
    """Returns the Schema that pointer refers to within schema.

    Raises:
        JSONPointerError: If the pointer is malformed, a segment does not
            exist, or the pointer does not end on a Schema.
    """
    value: Any = schema
    for segment in parse_json_pointer(pointer):
        if value is None:
            raise JSONPointerError(pointer, "navigated to nil reference")
        if isinstance(value, Schema):
            value = _lookup_schema_field(value, segment, pointer)
        elif isinstance(value, list):
            value = _index(value, segment, pointer)
        elif isinstance(value, Mapping):
            if segment not in value:
                raise JSONPointerError(pointer, f"no key {segment!r} in map")
            value = value[segment]
        else:
            raise JSONPointerError(
                pointer, f"value {value!r} ({type(value).__name__}) is not a schema, list or mapping")
    if isinstance(value, Schema):
        return value
    if value is None:
        raise JSONPointerError(pointer, "navigated to nil reference")
    raise JSONPointerError(pointer, f"does not refer to a schema, but to a {type(value).__name__}")
