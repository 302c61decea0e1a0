"""JSON Schema data model for the 2020-12 draft.

A Schema is a dataclass with one field per keyword. The JSON name and the
kind of each keyword field live in the field metadata; the tables built at
the bottom of this module from that metadata drive (de)serialization, the
iteration over subschemas and JSON Pointer lookups.

A Schema may set more than one keyword: all of them are used for
validation. The exception is "type", which is held either in `type` (a
single name) or in `types` (a list of names), never both.

Since this is a model of a JSON value, absent and empty are different:
`Schema(enum=None)` validates everything, while `Schema(enum=[])` rejects
every instance. `const` and `default` use NOT_SET for "absent" because
None is the JSON null.
"""

# pylint: disable=too-many-instance-attributes, too-many-return-statements, too-many-branches

import copy
import dataclasses
import json
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Union

from jsonschema2020.errors import ParseError, StructuralError

# The value of the "$schema" keyword for the version that we can validate.
DRAFT_2020_12 = "https://json-schema.org/draft/2020-12/schema"

# Integer keywords are limited to the signed 32-bit range.
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1

# Keyword kinds
SCHEMA = 'schema'
SCHEMA_LIST = 'schema_list'
SCHEMA_MAP = 'schema_map'
INTEGER = 'integer'
NUMBER = 'number'
STRING = 'string'
BOOLEAN = 'boolean'
VALUE = 'value'
VALUE_LIST = 'value_list'
STRING_LIST = 'string_list'
STRING_LIST_MAP = 'string_list_map'
BOOLEAN_MAP = 'boolean_map'
TYPE = 'type'
TYPES = 'types'

Number = Union[int, float, Decimal]


class _NotSet:
    """Type of the NOT_SET sentinel."""

    def __repr__(self) -> str:
        return "NOT_SET"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> '_NotSet':
        return self

    def __deepcopy__(self, memo) -> '_NotSet':
        return self


NOT_SET = _NotSet()


def _kw(json_name: str, kind: str, default: Any = None) -> Any:
    return field(default=default, metadata={'json': json_name, 'kind': kind})


def _computed(default: Any = None) -> Any:
    return field(default=default, init=False, repr=False, compare=False)


class AnchorInfo(NamedTuple):
    """The subschema an anchor names, and whether it came from $dynamicAnchor."""
    schema: 'Schema'
    dynamic: bool


@dataclass
class Schema:
    """A JSON schema object, as described in https://json-schema.org/draft/2020-12."""

    # core
    id: str = _kw('$id', STRING, '')
    schema: str = _kw('$schema', STRING, '')
    ref: str = _kw('$ref', STRING, '')
    comment: str = _kw('$comment', STRING, '')
    defs: Optional[Dict[str, 'Schema']] = _kw('$defs', SCHEMA_MAP)
    # definitions is deprecated but still allowed. It is a synonym for $defs.
    definitions: Optional[Dict[str, 'Schema']] = _kw('definitions', SCHEMA_MAP)
    anchor: str = _kw('$anchor', STRING, '')
    dynamic_anchor: str = _kw('$dynamicAnchor', STRING, '')
    dynamic_ref: str = _kw('$dynamicRef', STRING, '')
    vocabulary: Optional[Dict[str, bool]] = _kw('$vocabulary', BOOLEAN_MAP)

    # metadata
    title: str = _kw('title', STRING, '')
    description: str = _kw('description', STRING, '')
    default: Any = _kw('default', VALUE, NOT_SET)
    deprecated: bool = _kw('deprecated', BOOLEAN, False)
    read_only: bool = _kw('readOnly', BOOLEAN, False)
    write_only: bool = _kw('writeOnly', BOOLEAN, False)
    examples: Optional[List[Any]] = _kw('examples', VALUE_LIST)

    # validation
    type: str = _kw('type', TYPE, '')
    types: Optional[List[str]] = _kw('type', TYPES)
    enum: Optional[List[Any]] = _kw('enum', VALUE_LIST)
    const: Any = _kw('const', VALUE, NOT_SET)
    multiple_of: Optional[Number] = _kw('multipleOf', NUMBER)
    minimum: Optional[Number] = _kw('minimum', NUMBER)
    maximum: Optional[Number] = _kw('maximum', NUMBER)
    exclusive_minimum: Optional[Number] = _kw('exclusiveMinimum', NUMBER)
    exclusive_maximum: Optional[Number] = _kw('exclusiveMaximum', NUMBER)
    min_length: Optional[int] = _kw('minLength', INTEGER)
    max_length: Optional[int] = _kw('maxLength', INTEGER)
    pattern: str = _kw('pattern', STRING, '')

    # arrays
    prefix_items: Optional[List['Schema']] = _kw('prefixItems', SCHEMA_LIST)
    items: Optional['Schema'] = _kw('items', SCHEMA)
    min_items: Optional[int] = _kw('minItems', INTEGER)
    max_items: Optional[int] = _kw('maxItems', INTEGER)
    additional_items: Optional['Schema'] = _kw('additionalItems', SCHEMA)
    unique_items: bool = _kw('uniqueItems', BOOLEAN, False)
    contains: Optional['Schema'] = _kw('contains', SCHEMA)
    min_contains: Optional[int] = _kw('minContains', INTEGER)  # default is 1, not 0
    max_contains: Optional[int] = _kw('maxContains', INTEGER)
    unevaluated_items: Optional['Schema'] = _kw('unevaluatedItems', SCHEMA)

    # objects
    min_properties: Optional[int] = _kw('minProperties', INTEGER)
    max_properties: Optional[int] = _kw('maxProperties', INTEGER)
    required: Optional[List[str]] = _kw('required', STRING_LIST)
    dependent_required: Optional[Dict[str, List[str]]] = _kw('dependentRequired', STRING_LIST_MAP)
    properties: Optional[Dict[str, 'Schema']] = _kw('properties', SCHEMA_MAP)
    pattern_properties: Optional[Dict[str, 'Schema']] = _kw('patternProperties', SCHEMA_MAP)
    additional_properties: Optional['Schema'] = _kw('additionalProperties', SCHEMA)
    property_names: Optional['Schema'] = _kw('propertyNames', SCHEMA)
    unevaluated_properties: Optional['Schema'] = _kw('unevaluatedProperties', SCHEMA)

    # logic
    all_of: Optional[List['Schema']] = _kw('allOf', SCHEMA_LIST)
    any_of: Optional[List['Schema']] = _kw('anyOf', SCHEMA_LIST)
    one_of: Optional[List['Schema']] = _kw('oneOf', SCHEMA_LIST)
    not_: Optional['Schema'] = _kw('not', SCHEMA)

    # conditional
    if_: Optional['Schema'] = _kw('if', SCHEMA)
    then: Optional['Schema'] = _kw('then', SCHEMA)
    else_: Optional['Schema'] = _kw('else', SCHEMA)
    dependent_schemas: Optional[Dict[str, 'Schema']] = _kw('dependentSchemas', SCHEMA_MAP)

    # content, recorded but not interpreted
    content_encoding: str = _kw('contentEncoding', STRING, '')
    content_media_type: str = _kw('contentMediaType', STRING, '')
    content_schema: Optional['Schema'] = _kw('contentSchema', SCHEMA)

    # recorded but not enforced
    format: str = _kw('format', STRING, '')

    # computed fields, set by resolve

    # JSON Pointer from the root, or "root". Non-empty once resolution started.
    path: str = _computed('')
    # The innermost enclosing schema that is the root or has an $id.
    # Invariants after resolution: base.uri is not None, and
    # base is self <=> uri is not None.
    base: Optional['Schema'] = _computed()
    uri: Optional[str] = _computed()
    resolved_ref: Optional['Schema'] = _computed()
    # Exactly one of the next two is set for a schema with $dynamicRef.
    resolved_dynamic_ref: Optional['Schema'] = _computed()
    dynamic_ref_anchor: str = _computed('')
    anchors: Dict[str, AnchorInfo] = field(default_factory=dict, init=False, repr=False, compare=False)
    compiled_pattern: Optional[re.Pattern] = _computed()
    compiled_pattern_properties: Optional[Dict[re.Pattern, 'Schema']] = _computed()
    is_required: frozenset = _computed(frozenset())

    def __str__(self) -> str:
        if self.uri:
            return self.uri
        a = self.anchor or self.dynamic_anchor
        if a and self.base is not None:
            return f'"{self.base.uri}", anchor {a}'
        if self.path:
            return self.path
        return "<anonymous schema>"

    def children(self) -> Iterator[Optional['Schema']]:
        """Yields the immediate subschemas of this schema.

        Absent single-schema keywords are skipped. None entries of schema
        lists and maps are yielded so that resolution can reject them.
        """
        for f in _SINGLE_SCHEMA_FIELDS:
            child = getattr(self, f.name)
            if child is not None:
                yield child
        for f in _SCHEMA_LIST_FIELDS:
            yield from getattr(self, f.name) or ()
        for f in _SCHEMA_MAP_FIELDS:
            yield from (getattr(self, f.name) or {}).values()

    def walk(self) -> Iterator['Schema']:
        """Yields this schema and all of its subschemas, preorder."""
        yield self
        for child in self.children():
            if child is not None:
                yield from child.walk()

    def basic_checks(self) -> None:
        if self.type and self.types is not None:
            raise StructuralError("both type and types are set; at most one should be", str(self))
        if self.defs is not None and self.definitions is not None:
            raise StructuralError("both $defs and definitions are set; at most one should be", str(self))

    def resolve(self, options=None):
        """Resolves this schema for validation. See jsonschema2020.resolver.resolve."""
        from jsonschema2020.resolver import resolve  # pylint: disable=import-outside-toplevel
        return resolve(self, options)

    def to_json(self) -> Dict[str, Any]:
        """Returns the schema as a JSON object (a dict)."""
        self.basic_checks()
        out: Dict[str, Any] = {}
        if self.type:
            out['type'] = self.type
        elif self.types is not None:
            out['type'] = list(self.types)
        for f in SCHEMA_FIELDS:
            kind = f.metadata['kind']
            if kind in (TYPE, TYPES):
                continue
            value = getattr(self, f.name)
            if _is_absent(kind, value):
                continue
            out[f.metadata['json']] = _encode(kind, value)
        return out

    def dumps(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_json(), indent=indent)

    @classmethod
    def from_json(cls, value: Any) -> 'Schema':
        """Builds a Schema from a decoded JSON value.

        Args:
            value: A dict, or a boolean: true is the empty schema and false
                is {"not": {}}.

        Raises:
            ParseError: If a keyword has a value of the wrong shape.
        """
        if value is True:
            return cls()
        if value is False:
            return false_schema()
        if not isinstance(value, Mapping):
            raise ParseError(f"cannot read a {type(value).__name__} as a schema")
        kwargs: Dict[str, Any] = {}
        for name, member in value.items():
            if name == 'type':
                if member is None:
                    continue
                if isinstance(member, str):
                    kwargs['type'] = member
                elif isinstance(member, list) and all(isinstance(t, str) for t in member):
                    kwargs['types'] = list(member)
                else:
                    raise ParseError(f'invalid value for "type": {member!r}')
                continue
            f = FIELDS_BY_JSON_NAME.get(name)
            if f is None:
                # unknown members are dropped
                continue
            kind = f.metadata['kind']
            if member is None and kind != VALUE:
                continue
            kwargs[f.name] = _decode(name, kind, member)
        return cls(**kwargs)

    @classmethod
    def loads(cls, text: str) -> 'Schema':
        return cls.from_json(json.loads(text))


def false_schema() -> Schema:
    """Returns a new schema that fails to validate any value."""
    return Schema(not_=Schema())


def _is_absent(kind: str, value: Any) -> bool:
    if kind == STRING:
        return value == ''
    if kind == BOOLEAN:
        return not value
    if kind == VALUE:
        return value is NOT_SET
    return value is None


def _encode(kind: str, value: Any) -> Any:
    if kind == SCHEMA:
        return value.to_json()
    if kind == SCHEMA_LIST:
        return [None if s is None else s.to_json() for s in value]
    if kind == SCHEMA_MAP:
        return {k: None if s is None else s.to_json() for k, s in value.items()}
    if kind == BOOLEAN_MAP:
        return {k: value[k] for k in sorted(value)}
    if kind in (VALUE, VALUE_LIST):
        return copy.deepcopy(value)
    if kind == STRING_LIST:
        return list(value)
    if kind == STRING_LIST_MAP:
        return {k: list(v) for k, v in value.items()}
    return value


def _decode_integer(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise ParseError("cannot be read as an int", name)
    if isinstance(value, int):
        i = value
    else:
        if isinstance(value, float) and not math.isfinite(value):
            raise ParseError("not a number", name)
        if isinstance(value, Decimal) and not value.is_finite():
            raise ParseError("not a number", name)
        if value != int(value):
            raise ParseError("not an integer value", name)
        i = int(value)
    if i < INT32_MIN or i > INT32_MAX:
        raise ParseError("integer is out of range", name)
    return i


def _expect(name: str, value: Any, types: Any, what: str) -> None:
    if not isinstance(value, types) or (isinstance(value, bool) and types is not bool):
        raise ParseError(f"want {what}, got {type(value).__name__}", name)


def _decode_subschema(value: Any) -> Optional[Schema]:
    return None if value is None else Schema.from_json(value)


def _decode(name: str, kind: str, value: Any) -> Any:
    if kind == SCHEMA:
        return Schema.from_json(value)
    if kind == SCHEMA_LIST:
        _expect(name, value, list, "an array of schemas")
        return [_decode_subschema(v) for v in value]
    if kind == SCHEMA_MAP:
        _expect(name, value, Mapping, "an object of schemas")
        return {k: _decode_subschema(v) for k, v in value.items()}
    if kind == INTEGER:
        return _decode_integer(name, value)
    if kind == NUMBER:
        _expect(name, value, (int, float, Decimal), "a number")
        if isinstance(value, float) and not math.isfinite(value):
            raise ParseError("not a number", name)
        if isinstance(value, Decimal) and not value.is_finite():
            raise ParseError("not a number", name)
        return value
    if kind == STRING:
        _expect(name, value, str, "a string")
        return value
    if kind == BOOLEAN:
        _expect(name, value, bool, "a boolean")
        return value
    if kind == VALUE:
        return copy.deepcopy(value)
    if kind == VALUE_LIST:
        _expect(name, value, list, "an array")
        return copy.deepcopy(value)
    if kind == STRING_LIST:
        _expect(name, value, list, "an array of strings")
        for v in value:
            _expect(name, v, str, "an array of strings")
        return list(value)
    if kind == STRING_LIST_MAP:
        _expect(name, value, Mapping, "an object of string arrays")
        return {k: _decode(name, STRING_LIST, v) for k, v in value.items()}
    if kind == BOOLEAN_MAP:
        _expect(name, value, Mapping, "an object of booleans")
        for v in value.values():
            _expect(name, v, bool, "an object of booleans")
        return dict(value)
    raise ValueError(f"unknown keyword kind {kind}")


# Static tables over the keyword fields, built once.
SCHEMA_FIELDS: List[dataclasses.Field] = [
    f for f in dataclasses.fields(Schema) if 'kind' in f.metadata]
FIELDS_BY_JSON_NAME: Dict[str, dataclasses.Field] = {
    f.metadata['json']: f for f in SCHEMA_FIELDS if f.metadata['kind'] not in (TYPE, TYPES)}
_SINGLE_SCHEMA_FIELDS = [f for f in SCHEMA_FIELDS if f.metadata['kind'] == SCHEMA]
_SCHEMA_LIST_FIELDS = [f for f in SCHEMA_FIELDS if f.metadata['kind'] == SCHEMA_LIST]
_SCHEMA_MAP_FIELDS = [f for f in SCHEMA_FIELDS if f.metadata['kind'] == SCHEMA_MAP]
SCHEMA_VALUED_FIELDS = _SINGLE_SCHEMA_FIELDS + _SCHEMA_LIST_FIELDS + _SCHEMA_MAP_FIELDS
NUMBER_FIELDS = [f for f in SCHEMA_FIELDS if f.metadata['kind'] == NUMBER]
