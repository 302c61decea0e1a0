"""Validates JSON instances against resolved 2020-12 schemas.

This module interprets the keywords of the 2020-12 vocabulary:
- type, enum, const
- numeric and string constraints
- $ref and $dynamicRef
- allOf, anyOf, oneOf, not, if/then/else
- array keywords, including unevaluatedItems
- object keywords, including unevaluatedProperties

Validation stops at the first failing keyword and raises a ValidationError.
Keywords that need results of other keywords (unevaluatedItems,
unevaluatedProperties) read them from an Annotations record that is merged
upward from every subschema that validated successfully.
"""

# pylint: disable=too-many-branches, too-many-statements, too-many-locals

import copy
import json
import logging
import random
from collections.abc import Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Set

from jsonschema2020 import jsonvalue
from jsonschema2020.errors import RecursionLimitError, ResolutionError, StructuralError, ValidationError
from jsonschema2020.schema import DRAFT_2020_12, NOT_SET, Schema

logger = logging.getLogger(__name__)

# Maximum number of nested schemas on the dynamic scope stack
MAX_VALIDATION_DEPTH = 100


@dataclass
class Annotations:
    """Items and properties evaluated by a schema and its successful subschemas."""
    all_items: bool = False
    end_index: int = 0  # items before this index were evaluated by prefixItems
    evaluated_indexes: Set[int] = field(default_factory=set)
    all_properties: bool = False
    evaluated_properties: Set[str] = field(default_factory=set)

    def note_index(self, i: int) -> None:
        self.evaluated_indexes.add(i)

    def note_end_index(self, i: int) -> None:
        if i > self.end_index:
            self.end_index = i

    def note_properties(self, props: Set[str]) -> None:
        self.evaluated_properties.update(props)

    def merge(self, other: 'Annotations') -> None:
        self.all_items = self.all_items or other.all_items
        self.note_end_index(other.end_index)
        self.evaluated_indexes |= other.evaluated_indexes
        self.all_properties = self.all_properties or other.all_properties
        self.evaluated_properties |= other.evaluated_properties


def _show(value: Any) -> str:
    try:
        return json.dumps(value, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return repr(value)


def check_version(root: Schema) -> None:
    """Rejects schemas written for a draft other than 2020-12."""
    if root.schema and root.schema != DRAFT_2020_12:
        raise StructuralError(f"cannot validate version {root.schema}, only {DRAFT_2020_12}")


class ValidationState:
    """The state of a single validation call.

    Attributes:
        stack: Schemas of the enclosing validate calls, outermost first.
            These are the dynamic scopes used to resolve $dynamicRef.
        instance_path: Segments like '[0]' or '.name' leading to the
            instance currently being validated.
    """

    def __init__(self) -> None:
        self.stack: List[Schema] = []
        self.instance_path: List[str] = []

    @contextmanager
    def _at(self, segment: str) -> Iterator[None]:
        self.instance_path.append(segment)
        try:
            yield
        finally:
            self.instance_path.pop()

    def _fail(self, schema: Schema, keyword: str, message: str) -> ValidationError:
        return ValidationError(keyword, message, ''.join(self.instance_path), str(schema))

    def valid(self, instance: Any, schema: Schema, anns: Optional[Annotations]) -> bool:
        """Reports whether instance validates against schema.

        Only mismatches count as invalid; a RecursionLimitError propagates.
        """
        try:
            self.validate(instance, schema, anns)
        except ValidationError:
            return False
        return True

    def validate(self, instance: Any, schema: Schema, caller_anns: Optional[Annotations] = None) -> None:
        """Validates instance against schema.

        Args:
            instance: The JSON value to validate
            schema: A resolved schema
            caller_anns: If given, receives the annotations of this call on success

        Raises:
            ValidationError: If the instance does not match the schema
            RecursionLimitError: If schemas nest deeper than MAX_VALIDATION_DEPTH
        """
        if len(self.stack) >= MAX_VALIDATION_DEPTH:
            logger.warning("Maximum validation depth exceeded at schema %s", schema)
            raise RecursionLimitError(MAX_VALIDATION_DEPTH, str(schema))
        self.stack.append(schema)
        try:
            self._validate(jsonvalue.step(instance), schema, caller_anns)
        finally:
            self.stack.pop()

    def _validate(self, instance: Any, schema: Schema, caller_anns: Optional[Annotations]) -> None:
        if jsonvalue.json_type(instance) is None:
            raise self._fail(schema, 'type',
                             f"{instance!r} of type {type(instance).__name__} is not a valid JSON value")
        self._validate_type(instance, schema)
        self._validate_enum_const(instance, schema)
        self._validate_number(instance, schema)
        self._validate_string(instance, schema)

        anns = Annotations()  # all the annotations for this call and child calls
        self._validate_refs(instance, schema, anns)
        # The logic keywords run before the array and object keywords: items and
        # properties they evaluate are exempt from unevaluatedItems/Properties.
        self._validate_logic(instance, schema, anns)
        if jsonvalue.is_array(instance):
            self._validate_array(instance, schema, anns)
        elif jsonvalue.is_object(instance):
            self._validate_object(instance, schema, anns)

        if caller_anns is not None:
            caller_anns.merge(anns)

    def _validate_type(self, instance: Any, schema: Schema) -> None:
        if not schema.type and schema.types is None:
            return
        got = jsonvalue.json_type(instance)
        if schema.type:
            # "number" subsumes integers
            if not (got == schema.type or (got == 'integer' and schema.type == 'number')):
                raise self._fail(schema, 'type', f'{_show(instance)} has type "{got}", want "{schema.type}"')
        elif not (got in schema.types or (got == 'integer' and 'number' in schema.types)):
            raise self._fail(schema, 'type',
                             f'{_show(instance)} has type "{got}", want one of "{", ".join(schema.types)}"')

    def _validate_enum_const(self, instance: Any, schema: Schema) -> None:
        if schema.enum is not None:
            if not any(jsonvalue.equal(e, instance) for e in schema.enum):
                raise self._fail(schema, 'enum', f"{_show(instance)} does not equal any of: {_show(schema.enum)}")
        if schema.const is not NOT_SET:
            if not jsonvalue.equal(schema.const, instance):
                raise self._fail(schema, 'const', f"{_show(instance)} does not equal {_show(schema.const)}")

    def _validate_number(self, instance: Any, schema: Schema) -> None:
        n = jsonvalue.json_number(instance)
        if n is None:
            # these keywords don't apply to non-numbers
            return
        if schema.multiple_of is not None:
            m = jsonvalue.json_number(schema.multiple_of)
            if (n / m).denominator != 1:
                raise self._fail(schema, 'multipleOf', f"{_show(instance)} is not a multiple of {schema.multiple_of}")
        if schema.minimum is not None and n < jsonvalue.json_number(schema.minimum):
            raise self._fail(schema, 'minimum', f"{_show(instance)} is less than {schema.minimum}")
        if schema.maximum is not None and n > jsonvalue.json_number(schema.maximum):
            raise self._fail(schema, 'maximum', f"{_show(instance)} is greater than {schema.maximum}")
        if schema.exclusive_minimum is not None and n <= jsonvalue.json_number(schema.exclusive_minimum):
            raise self._fail(schema, 'exclusiveMinimum',
                             f"{_show(instance)} is less than or equal to {schema.exclusive_minimum}")
        if schema.exclusive_maximum is not None and n >= jsonvalue.json_number(schema.exclusive_maximum):
            raise self._fail(schema, 'exclusiveMaximum',
                             f"{_show(instance)} is greater than or equal to {schema.exclusive_maximum}")

    def _validate_string(self, instance: Any, schema: Schema) -> None:
        if not isinstance(instance, str):
            return
        # len counts Unicode code points
        n = len(instance)
        if schema.min_length is not None and n < schema.min_length:
            raise self._fail(schema, 'minLength',
                             f"{_show(instance)} contains {n} Unicode code points, fewer than {schema.min_length}")
        if schema.max_length is not None and n > schema.max_length:
            raise self._fail(schema, 'maxLength',
                             f"{_show(instance)} contains {n} Unicode code points, more than {schema.max_length}")
        if schema.pattern and not schema.compiled_pattern.search(instance):
            raise self._fail(schema, 'pattern',
                             f"{_show(instance)} does not match regular expression {_show(schema.pattern)}")

    def resolve_dynamic_ref(self, schema: Schema) -> Schema:
        """Returns the schema that the $dynamicRef of schema refers to.

        A dynamic ref whose target is not a dynamic anchor behaves like $ref.
        Otherwise the target is found among the bases of the schemas on the
        stack, starting from the outermost one: the base is the scope of an
        anchor, so the target need not be on the stack itself.
        """
        assert (schema.resolved_dynamic_ref is None) != (schema.dynamic_ref_anchor == ''), \
            "$dynamicRef not resolved properly"
        if schema.resolved_dynamic_ref is not None:
            return schema.resolved_dynamic_ref
        for s in self.stack:
            info = s.base.anchors.get(schema.dynamic_ref_anchor)
            if info is not None and info.dynamic:
                return info.schema
        raise self._fail(schema, '$dynamicRef', f'missing dynamic anchor "{schema.dynamic_ref_anchor}"')

    def _validate_refs(self, instance: Any, schema: Schema, anns: Annotations) -> None:
        if schema.ref:
            self.validate(instance, schema.resolved_ref, anns)
        if schema.dynamic_ref:
            self.validate(instance, self.resolve_dynamic_ref(schema), anns)

    def _validate_logic(self, instance: Any, schema: Schema, anns: Annotations) -> None:
        # If any of these fail, validation fails, even if there is an
        # unevaluatedItems or unevaluatedProperties keyword in the schema.
        if schema.all_of is not None:
            for ss in schema.all_of:
                self.validate(instance, ss, anns)
        if schema.any_of is not None:
            # Visit every branch to collect annotations.
            ok = False
            for ss in schema.any_of:
                if self.valid(instance, ss, anns):
                    ok = True
            if not ok:
                raise self._fail(schema, 'anyOf',
                                 f"{_show(instance)} did not validate against any of "
                                 f"{', '.join(str(s) for s in schema.any_of)}")
        if schema.one_of is not None:
            ok_schema = None
            for ss in schema.one_of:
                if self.valid(instance, ss, anns):
                    if ok_schema is not None:
                        raise self._fail(schema, 'oneOf',
                                         f"{_show(instance)} validated against both {ok_schema} and {ss}")
                    ok_schema = ss
            if ok_schema is None:
                raise self._fail(schema, 'oneOf',
                                 f"{_show(instance)} did not validate against any of "
                                 f"{', '.join(str(s) for s in schema.one_of)}")
        if schema.not_ is not None:
            # annotations from "not" are dropped
            if self.valid(instance, schema.not_, None):
                raise self._fail(schema, 'not', f"{_show(instance)} validated against {schema.not_}")
        if schema.if_ is not None:
            ss = schema.then if self.valid(instance, schema.if_, anns) else schema.else_
            if ss is not None:
                self.validate(instance, ss, anns)

    def _validate_array(self, instance: Any, schema: Schema, anns: Annotations) -> None:
        n = len(instance)
        # Items are instances in their own right; their annotations are not collected.
        prefix = schema.prefix_items or []
        for i, ischema in enumerate(prefix[:n]):
            with self._at(f"[{i}]"):
                self.validate(instance[i], ischema, None)
        anns.note_end_index(min(len(prefix), n))

        if schema.items is not None:
            for i in range(len(prefix), n):
                with self._at(f"[{i}]"):
                    self.validate(instance[i], schema.items, None)
            anns.all_items = True

        if schema.contains is not None:
            n_contains = 0
            for i, item in enumerate(instance):
                with self._at(f"[{i}]"):
                    if self.valid(item, schema.contains, None):
                        n_contains += 1
                        anns.note_index(i)
            if n_contains == 0 and (schema.min_contains is None or schema.min_contains > 0):
                raise self._fail(schema, 'contains',
                                 f"{_show(instance)} does not have an item matching {schema.contains}")
            if schema.min_contains is not None and n_contains < schema.min_contains:
                raise self._fail(schema, 'minContains',
                                 f"contains validated {n_contains} items, less than {schema.min_contains}")
            if schema.max_contains is not None and n_contains > schema.max_contains:
                raise self._fail(schema, 'maxContains',
                                 f"contains validated {n_contains} items, greater than {schema.max_contains}")

        if schema.min_items is not None and n < schema.min_items:
            raise self._fail(schema, 'minItems', f"array length {n} is less than {schema.min_items}")
        if schema.max_items is not None and n > schema.max_items:
            raise self._fail(schema, 'maxItems', f"array length {n} is greater than {schema.max_items}")

        if schema.unique_items and n > 1:
            # Hash each item and compare only the items whose hashes collide.
            seed = random.getrandbits(64)
            hashes: Dict[int, List[int]] = {}
            for i, item in enumerate(instance):
                try:
                    hv = jsonvalue.hash_value(item, seed)
                except TypeError as e:
                    raise self._fail(schema, 'uniqueItems', f"item {i}: {e}") from e
                for j in hashes.get(hv, ()):
                    if jsonvalue.equal(item, instance[j]):
                        raise self._fail(schema, 'uniqueItems', f"array items {j} and {i} are equal")
                hashes.setdefault(hv, []).append(i)

        if schema.unevaluated_items is not None and not anns.all_items:
            # Apply to the items no keyword of this schema or its successful
            # in-place subschemas (allOf and friends) has evaluated.
            for i in range(anns.end_index, n):
                if i not in anns.evaluated_indexes:
                    with self._at(f"[{i}]"):
                        self.validate(instance[i], schema.unevaluated_items, None)
            anns.all_items = True

    def _validate_object(self, instance: Any, schema: Schema, anns: Annotations) -> None:
        if isinstance(instance, Mapping):
            for key in instance:
                if not isinstance(key, str):
                    raise self._fail(schema, 'type', f"object key {key!r} is not a string: not a valid JSON value")
        is_struct = jsonvalue.is_struct(instance)

        # Properties evaluated by this schema alone, for additionalProperties.
        # Properties from allOf and friends must not be visible to it.
        eval_props: Set[str] = set()
        for prop, subschema in (schema.properties or {}).items():
            val = jsonvalue.property_value(instance, prop)
            if val is jsonvalue.MISSING:
                continue
            # A zero-valued optional slot of a dataclass counts as missing.
            if is_struct and jsonvalue.is_zero(val) and prop not in schema.is_required:
                continue
            with self._at(f".{prop}"):
                self.validate(val, subschema, None)
            eval_props.add(prop)
        if schema.pattern_properties:
            for prop, val in jsonvalue.properties(instance):
                # every matching pattern applies
                for regex, subschema in schema.compiled_pattern_properties.items():
                    if regex.search(prop):
                        with self._at(f".{prop}"):
                            self.validate(val, subschema, None)
                        eval_props.add(prop)
        if schema.additional_properties is not None:
            for prop, val in jsonvalue.properties(instance):
                if prop not in eval_props:
                    with self._at(f".{prop}"):
                        self.validate(val, schema.additional_properties, None)
                    eval_props.add(prop)
        anns.note_properties(eval_props)

        if schema.property_names is not None:
            for prop, _ in jsonvalue.properties(instance):
                with self._at(f".{prop}"):
                    self.validate(prop, schema.property_names, None)

        if schema.min_properties is not None or schema.max_properties is not None:
            low, high = jsonvalue.property_bounds(instance, schema.is_required)
            if schema.min_properties is not None and high < schema.min_properties:
                raise self._fail(schema, 'minProperties',
                                 f"object has {high} properties, less than {schema.min_properties}")
            if schema.max_properties is not None and low > schema.max_properties:
                raise self._fail(schema, 'maxProperties',
                                 f"object has {low} properties, greater than {schema.max_properties}")

        def missing_properties(props: List[str]) -> List[str]:
            return [p for p in props if jsonvalue.property_value(instance, p) is jsonvalue.MISSING]

        if schema.required is not None:
            missing = missing_properties(schema.required)
            if missing:
                raise self._fail(schema, 'required', f"missing properties: {_show(missing)}")
        for dprop, reqs in (schema.dependent_required or {}).items():
            if jsonvalue.property_value(instance, dprop) is not jsonvalue.MISSING:
                missing = missing_properties(reqs)
                if missing:
                    raise self._fail(schema, 'dependentRequired',
                                     f"{_show(dprop)} requires missing properties {_show(missing)}")
        for dprop, subschema in (schema.dependent_schemas or {}).items():
            if jsonvalue.property_value(instance, dprop) is not jsonvalue.MISSING:
                self.validate(instance, subschema, anns)

        if schema.unevaluated_properties is not None and not anns.all_properties:
            # Like additionalProperties, but sees the properties evaluated by
            # in-place subschemas too.
            for prop, val in jsonvalue.properties(instance):
                if prop not in anns.evaluated_properties:
                    with self._at(f".{prop}"):
                        self.validate(val, schema.unevaluated_properties, None)
            # all properties are now evaluated
            anns.all_properties = True


def validate_instance(root: Schema, instance: Any) -> None:
    """Validates instance against the resolved schema root.

    Raises:
        StructuralError: If root declares a $schema other than 2020-12
        ValidationError: If the instance does not match
        RecursionLimitError: If validation nests too deeply
    """
    check_version(root)
    ValidationState().validate(instance, root)


def validate_defaults(root: Schema) -> None:
    """Validates every "default" value in root against the schema that holds it.

    Each schema with a default is treated as its own root, so dynamic
    references cannot be followed and are rejected.
    """
    check_version(root)
    st = ValidationState()
    for s in root.walk():
        if s.dynamic_ref:
            raise ResolutionError("validating defaults does not support dynamic refs", str(s))
        if s.default is not NOT_SET:
            logger.debug("Validating default value of schema %s", s)
            st.validate(copy.deepcopy(s.default), s)


def apply_defaults(root: Schema, instance: Any) -> None:
    """Modifies instance by applying the defaults of the root schema's properties.

    Only properties are considered, and only those that are not required.
    If the instance is a mapping and the property is missing, the property
    is added with a copy of the default. If the instance is a dataclass,
    the slot for the property exists and its value is zero, the slot is set
    to the default. Null defaults are not applied; $ref is not followed.
    """
    instance = jsonvalue.step(instance)
    if not jsonvalue.is_object(instance):
        return
    for prop, subschema in (root.properties or {}).items():
        # A required property shouldn't have a default.
        if prop in root.is_required:
            continue
        if subschema is None or subschema.default is NOT_SET or subschema.default is None:
            continue
        if isinstance(instance, Mapping):
            if prop not in instance:
                instance[prop] = copy.deepcopy(subschema.default)
        else:
            attr = jsonvalue.struct_attribute(instance, prop)
            if attr is not None and jsonvalue.is_zero(getattr(instance, attr)):
                setattr(instance, attr, copy.deepcopy(subschema.default))
