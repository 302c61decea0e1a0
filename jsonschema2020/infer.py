"""Infers schemas from Python types.

for_type describes the JSON values that a Python type maps to, using the
same conventions as validation: dataclasses and TypedDicts are objects,
lists, tuples and sets are arrays, enums stand for their values.
"""

# pylint: disable=too-many-return-statements, too-many-branches

import collections.abc
import dataclasses
import enum
import types
import typing
from decimal import Decimal
from typing import Any, Dict, List, Set

from jsonschema2020.errors import InferenceError
from jsonschema2020.schema import Schema, false_schema

_SCALARS = {
    bool: 'boolean',
    int: 'integer',
    float: 'number',
    Decimal: 'number',
    str: 'string',
    type(None): 'null',
}

_SEQUENCE_ORIGINS = (list, collections.abc.Sequence, collections.abc.MutableSequence)
_SET_ORIGINS = (set, frozenset, collections.abc.Set, collections.abc.MutableSet)
_MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


def for_type(tp: Any) -> Schema:
    """Returns a schema that describes the values of the type tp.

    Args:
        tp: A Python type or typing construct, such as int, list[str],
            Optional[Point] or a dataclass.

    Returns:
        Schema: An unresolved schema.

    Raises:
        InferenceError: If tp, or a type it contains, cannot be described:
            mappings with non-string keys, recursive types and types with
            no JSON counterpart.
    """
    return _Inferrer().infer(tp)


def _is_typed_dict(tp: Any) -> bool:
    return isinstance(tp, type) and issubclass(tp, dict) and hasattr(tp, '__required_keys__')


def _add_null(s: Schema) -> Schema:
    if s.type:
        if s.type != 'null':
            s.types = [s.type, 'null']
            s.type = ''
        return s
    if s.types is not None:
        if 'null' not in s.types:
            s.types.append('null')
        return s
    if s.enum is not None:
        if None not in s.enum:
            s.enum.append(None)
        return s
    if s.any_of is not None:
        s.any_of.append(Schema(type='null'))
        return s
    if s == Schema():
        # already accepts null
        return s
    return Schema(any_of=[s, Schema(type='null')])


class _Inferrer:

    def __init__(self) -> None:
        # dataclasses and TypedDicts being described
        self.seen: Set[Any] = set()

    def infer(self, tp: Any) -> Schema:
        if tp is None:
            tp = type(None)
        if tp is Any or tp is object:
            return Schema()
        if tp in _SCALARS:
            return Schema(type=_SCALARS[tp])
        origin = typing.get_origin(tp)
        args = typing.get_args(tp)
        # Generic aliases like list[int] pass for classes on some versions.
        if origin is None and isinstance(tp, type):
            if issubclass(tp, enum.Enum):
                return Schema(enum=[m.value for m in tp])
            if dataclasses.is_dataclass(tp):
                return self._infer_object(tp, self._dataclass_fields)
            if _is_typed_dict(tp):
                return self._infer_object(tp, self._typed_dict_fields)

        if origin is typing.Union or origin is types.UnionType:
            return self._infer_union(args)
        if origin is typing.Literal:
            return Schema(enum=[a.value if isinstance(a, enum.Enum) else a for a in args])
        if origin is typing.Annotated:
            return self.infer(args[0])

        # bare containers describe their items as anything
        if origin is None and tp in (list, tuple, set, frozenset, dict):
            origin = tp
        if origin in _SET_ORIGINS:
            return Schema(type='array', items=self.infer(args[0]) if args else Schema(), unique_items=True)
        if origin is tuple:
            return self._infer_tuple(args)
        if origin in _SEQUENCE_ORIGINS:
            return Schema(type='array', items=self.infer(args[0]) if args else Schema())
        if origin in _MAPPING_ORIGINS:
            if args:
                if args[0] is not str:
                    raise InferenceError(f"unsupported map key type {args[0]!r}: keys must be str", repr(tp))
                return Schema(type='object', additional_properties=self.infer(args[1]))
            return Schema(type='object')
        raise InferenceError(f"type {tp!r} has no JSON Schema counterpart")

    def _infer_union(self, args: tuple) -> Schema:
        nullable = type(None) in args
        members = [a for a in args if a is not type(None)]
        if len(members) == 1:
            s = self.infer(members[0])
        else:
            s = Schema(any_of=[self.infer(a) for a in members])
        return _add_null(s) if nullable else s

    def _infer_tuple(self, args: tuple) -> Schema:
        if not args:
            return Schema(type='array')
        if len(args) == 2 and args[1] is Ellipsis:
            return Schema(type='array', items=self.infer(args[0]))
        if args == ((),):
            # tuple[()]
            return Schema(type='array', max_items=0)
        return Schema(type='array', prefix_items=[self.infer(a) for a in args], items=false_schema(),
                      min_items=len(args), max_items=len(args))

    def _infer_object(self, tp: Any, fields) -> Schema:
        if tp in self.seen:
            raise InferenceError(f"cycle detected for type {tp.__name__}")
        self.seen.add(tp)
        try:
            props: Dict[str, Schema] = {}
            required: List[str] = []
            for name, ftype, is_required, description in fields(tp):
                s = self.infer(ftype)
                if description:
                    s.description = description
                props[name] = s
                if is_required:
                    required.append(name)
        except InferenceError as e:
            raise InferenceError(f"{tp.__name__}: {e.message}", e.context) from e
        finally:
            self.seen.discard(tp)
        return Schema(type='object', properties=props, required=required or None,
                      additional_properties=false_schema())

    @staticmethod
    def _dataclass_fields(tp: Any):
        hints = typing.get_type_hints(tp)
        for f in dataclasses.fields(tp):
            name = f.metadata.get('json', f.name)
            if f.name.startswith('_') or name == '-':
                continue
            has_default = f.default is not dataclasses.MISSING or f.default_factory is not dataclasses.MISSING
            yield name, hints.get(f.name, f.type), not has_default, f.metadata.get('description', '')

    @staticmethod
    def _typed_dict_fields(tp: Any):
        hints = typing.get_type_hints(tp)
        for name, ftype in hints.items():
            yield name, ftype, name in tp.__required_keys__, ''
