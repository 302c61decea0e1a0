"""Tests for the schema data model and its JSON form."""

import json
import os
import sys
import unittest
from decimal import Decimal

current_script_path = os.path.abspath(__file__)
project_root = os.path.dirname(os.path.dirname(current_script_path))
sys.path.append(project_root)

from jsoncomparison import NO_DIFF, Compare

from jsonschema2020.errors import ParseError, StructuralError
from jsonschema2020.schema import NOT_SET, Schema, false_schema

ROUND_TRIP_DOCS = [
    {"type": "string", "minLength": 1, "maxLength": 10, "pattern": "^a"},
    {"type": ["string", "null"], "enum": ["a", None], "title": "t", "description": "d"},
    {"$id": "https://example.com/s", "$defs": {"a": {"type": "integer"}}, "$ref": "#/$defs/a"},
    {"properties": {"x": {"type": "number", "minimum": 0, "exclusiveMaximum": 1.5}},
     "required": ["x"], "additionalProperties": {"not": {}}},
    {"prefixItems": [{"const": None}, {}], "items": {"not": {}}, "uniqueItems": True,
     "contains": {"type": "integer"}, "minContains": 0, "maxContains": 3},
    {"anyOf": [{"type": "string"}, {"not": {"type": "null"}}],
     "if": {"minimum": 3}, "then": {"multipleOf": 0.5}, "else": {}},
    {"dependentRequired": {"a": ["b", "c"]}, "dependentSchemas": {"a": {"minProperties": 2}},
     "patternProperties": {"^x-": {}}, "propertyNames": {"maxLength": 8}},
    {"default": {"k": [1, 2]}, "examples": [1, "two"], "deprecated": True, "readOnly": True},
    {"$schema": "https://json-schema.org/draft/2020-12/schema",
     "$vocabulary": {"https://json-schema.org/draft/2020-12/vocab/core": True}},
    {"$dynamicAnchor": "node", "$anchor": "a", "$comment": "c", "format": "email",
     "contentEncoding": "base64", "contentMediaType": "application/json", "contentSchema": {}},
]


class TestRoundTrip(unittest.TestCase):
    """A schema read from JSON writes back the same JSON."""

    def test_round_trip(self):
        for doc in ROUND_TRIP_DOCS:
            s = Schema.from_json(doc)
            diff = Compare().check(doc, s.to_json())
            self.assertEqual(diff, NO_DIFF, f"Differences found for {doc}")
            # and through text
            again = Schema.loads(s.dumps())
            self.assertEqual(again, s)

    def test_type_comes_first(self):
        s = Schema(minimum=1, type="integer")
        self.assertEqual(list(s.to_json())[0], "type")

    def test_unknown_members_are_dropped(self):
        s = Schema.from_json({"type": "string", "x-extension": 1})
        self.assertEqual(s.to_json(), {"type": "string"})

    def test_null_const(self):
        s = Schema.from_json({"const": None})
        self.assertIsNone(s.const)
        self.assertEqual(s.to_json(), {"const": None})
        self.assertIs(Schema().const, NOT_SET)
        self.assertEqual(Schema().to_json(), {})

    def test_empty_enum_is_not_absent(self):
        self.assertEqual(Schema(enum=[]).to_json(), {"enum": []})


class TestBooleanSchemas(unittest.TestCase):

    def test_true(self):
        self.assertEqual(Schema.from_json(True), Schema())

    def test_false(self):
        s = Schema.from_json(False)
        self.assertEqual(s, false_schema())
        self.assertEqual(s.to_json(), {"not": {}})

    def test_nested(self):
        s = Schema.from_json({"items": False, "properties": {"a": True}})
        self.assertEqual(s.items, false_schema())
        self.assertEqual(s.properties["a"], Schema())


class TestIntegerFields(unittest.TestCase):
    """Integer keywords accept integral numbers in the 32-bit range only."""

    def test_integral_float(self):
        self.assertEqual(Schema.from_json({"minLength": 1.0}).min_length, 1)

    def test_errors(self):
        cases = [
            (1.5, "not an integer value"),
            (2**31, "integer is out of range"),
            (-(2**31) - 1, "integer is out of range"),
            ("3", "cannot be read as an int"),
            (True, "cannot be read as an int"),
            (float("inf"), "not a number"),
        ]
        for value, want in cases:
            with self.assertRaises(ParseError) as cm:
                Schema.from_json({"maxItems": value})
            self.assertIn(want, str(cm.exception), value)
            self.assertIn("maxItems", str(cm.exception))

    def test_bounds(self):
        self.assertEqual(Schema.from_json({"minItems": 2**31 - 1}).min_items, 2**31 - 1)
        self.assertEqual(Schema.from_json({"minItems": -(2**31)}).min_items, -(2**31))


class TestParseErrors(unittest.TestCase):

    def test_wrong_shapes(self):
        for doc in ({"type": 3}, {"required": "a"}, {"required": [1]}, {"minimum": "1"},
                    {"uniqueItems": 1}, {"properties": []}, {"allOf": {}}, {"items": 3}):
            with self.assertRaises(ParseError, msg=json.dumps(doc)):
                Schema.from_json(doc)

    def test_non_finite_numbers(self):
        for doc in ('{"minimum": NaN}', '{"maximum": Infinity}', '{"multipleOf": -Infinity}'):
            with self.assertRaises(ParseError, msg=doc) as cm:
                Schema.loads(doc)
            self.assertIn("not a number", str(cm.exception))
        with self.assertRaises(ParseError):
            Schema.from_json({"exclusiveMaximum": Decimal("NaN")})

    def test_not_an_object(self):
        with self.assertRaises(ParseError):
            Schema.from_json([1])


class TestStructure(unittest.TestCase):

    def test_type_and_types(self):
        with self.assertRaises(StructuralError):
            Schema(type="string", types=["null"]).to_json()

    def test_defs_and_definitions(self):
        with self.assertRaises(StructuralError):
            Schema(defs={}, definitions={}).basic_checks()

    def test_walk_is_preorder(self):
        s = Schema.from_json({"allOf": [{"not": {"title": "a"}}, {"title": "b"}]})
        titles = [x.title for x in s.walk()]
        self.assertEqual(titles, ["", "", "a", "b"])

    def test_str(self):
        self.assertEqual(str(Schema()), "<anonymous schema>")


if __name__ == '__main__':
    unittest.main()
