"""Tests for the JSON value model."""

import enum
import os
import sys
import unittest
from dataclasses import dataclass, field
from decimal import Decimal
from fractions import Fraction
from typing import Optional

current_script_path = os.path.abspath(__file__)
project_root = os.path.dirname(os.path.dirname(current_script_path))
sys.path.append(project_root)

from jsonschema2020 import jsonvalue


class Color(enum.Enum):
    RED = "red"
    BLUE = "blue"


@dataclass
class Slots:
    i: int = 0
    b: str = field(default="", metadata={"json": "b"})
    renamed: int = field(default=0, metadata={"json": "r"})
    p: Optional[int] = None
    skipped: int = field(default=0, metadata={"json": "-"})
    _u: int = 0
    o: str = field(default="", metadata={"omitempty": True})


class TestJsonType(unittest.TestCase):
    """JSON type names of host values."""

    def test_scalars(self):
        self.assertEqual(jsonvalue.json_type(None), "null")
        self.assertEqual(jsonvalue.json_type(True), "boolean")
        self.assertEqual(jsonvalue.json_type(3), "integer")
        self.assertEqual(jsonvalue.json_type(3.0), "integer")
        self.assertEqual(jsonvalue.json_type(3.5), "number")
        self.assertEqual(jsonvalue.json_type(Decimal("2.00")), "integer")
        self.assertEqual(jsonvalue.json_type("x"), "string")

    def test_containers(self):
        self.assertEqual(jsonvalue.json_type([1]), "array")
        self.assertEqual(jsonvalue.json_type((1, 2)), "array")
        self.assertEqual(jsonvalue.json_type({"a": 1}), "object")
        self.assertEqual(jsonvalue.json_type(Slots()), "object")

    def test_enum_is_stepped_through(self):
        self.assertEqual(jsonvalue.json_type(Color.RED), "string")

    def test_invalid_values(self):
        self.assertIsNone(jsonvalue.json_type(float("nan")))
        self.assertIsNone(jsonvalue.json_type(float("inf")))
        self.assertIsNone(jsonvalue.json_type(lambda: None))
        self.assertIsNone(jsonvalue.json_type(object()))
        # a dataclass type is not an instance
        self.assertIsNone(jsonvalue.json_type(Slots))


class TestNumbers(unittest.TestCase):

    def test_exact_conversion(self):
        self.assertEqual(jsonvalue.json_number(0.1), Fraction(1, 10))
        self.assertEqual(jsonvalue.json_number(Decimal("0.25")), Fraction(1, 4))
        self.assertIsNone(jsonvalue.json_number(True))
        self.assertIsNone(jsonvalue.json_number("1"))


class TestEqual(unittest.TestCase):
    """Structural equality with numeric equivalence."""

    def test_numbers(self):
        self.assertTrue(jsonvalue.equal(5, 5.0))
        self.assertTrue(jsonvalue.equal(5, Decimal("5.00")))
        self.assertFalse(jsonvalue.equal(5, 5.5))
        self.assertFalse(jsonvalue.equal(1, True))
        self.assertFalse(jsonvalue.equal(0, False))
        self.assertFalse(jsonvalue.equal(1, "1"))

    def test_null(self):
        self.assertTrue(jsonvalue.equal(None, None))
        self.assertFalse(jsonvalue.equal(None, 0))
        self.assertFalse(jsonvalue.equal(None, ""))

    def test_arrays(self):
        self.assertTrue(jsonvalue.equal([1, [2.0]], (1.0, [2])))
        self.assertFalse(jsonvalue.equal([1, 2], [2, 1]))
        self.assertFalse(jsonvalue.equal([1], [1, 1]))

    def test_objects(self):
        self.assertTrue(jsonvalue.equal({"a": 1, "b": [2]}, {"b": [2.0], "a": 1.0}))
        self.assertFalse(jsonvalue.equal({"a": 1}, {"a": 1, "b": 2}))
        self.assertFalse(jsonvalue.equal({"a": 1}, [1]))

    def test_dataclass_and_mapping(self):
        s = Slots(i=1, b="x")
        self.assertTrue(jsonvalue.equal(s, {"i": 1, "b": "x", "r": 0, "p": None}))

    def test_enum(self):
        self.assertTrue(jsonvalue.equal(Color.BLUE, "blue"))


class TestHash(unittest.TestCase):

    def test_equal_values_hash_equal(self):
        pairs = [
            (1, 1.0),
            (2, Decimal("2.0")),
            ([1, {"a": 2}], [1.0, {"a": 2.0}]),
            ({"a": 1, "b": 2}, {"b": 2, "a": 1}),
        ]
        for seed in (0, 12345):
            for x, y in pairs:
                self.assertEqual(jsonvalue.hash_value(x, seed), jsonvalue.hash_value(y, seed), (x, y))

    def test_non_json_value(self):
        with self.assertRaises(TypeError):
            jsonvalue.hash_value(object())


class TestStructs(unittest.TestCase):
    """Dataclass instances as objects."""

    def test_property_names(self):
        self.assertEqual(jsonvalue.struct_property_names(Slots()), {"i", "b", "r", "p", "o"})

    def test_property_value(self):
        s = Slots(i=3, renamed=4)
        self.assertEqual(jsonvalue.property_value(s, "i"), 3)
        self.assertEqual(jsonvalue.property_value(s, "r"), 4)
        self.assertIs(jsonvalue.property_value(s, "renamed"), jsonvalue.MISSING)
        self.assertIs(jsonvalue.property_value(s, "_u"), jsonvalue.MISSING)
        self.assertIs(jsonvalue.property_value(s, "skipped"), jsonvalue.MISSING)
        self.assertIs(jsonvalue.property_value({"a": 1}, "b"), jsonvalue.MISSING)
        self.assertIsNone(jsonvalue.property_value({"a": None}, "a"))

    def test_properties_skip_zero_omitempty(self):
        names = [name for name, _ in jsonvalue.properties(Slots())]
        self.assertEqual(names, ["i", "b", "r", "p"])
        names = [name for name, _ in jsonvalue.properties(Slots(o="x"))]
        self.assertIn("o", names)

    def test_property_bounds(self):
        self.assertEqual(jsonvalue.property_bounds({"a": 1, "b": 2}, frozenset()), (2, 2))
        low, high = jsonvalue.property_bounds(Slots(i=1), frozenset({"b"}))
        self.assertEqual((low, high), (2, 5))

    def test_is_zero(self):
        for v in (None, 0, 0.0, "", [], {}, False, Slots()):
            self.assertTrue(jsonvalue.is_zero(v), v)
        for v in (1, "a", [0], {"a": 0}, True, Slots(i=1)):
            self.assertFalse(jsonvalue.is_zero(v), v)


if __name__ == '__main__':
    unittest.main()
