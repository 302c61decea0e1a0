"""Tests for the package level API."""

import os
import sys
import unittest

current_script_path = os.path.abspath(__file__)
project_root = os.path.dirname(os.path.dirname(current_script_path))
sys.path.append(project_root)

import jsonschema2020
from jsonschema2020 import errors, schema


class TestLazyApi(unittest.TestCase):

    def test_names_resolve_to_module_attributes(self):
        self.assertIs(jsonschema2020.Schema, schema.Schema)
        self.assertIs(jsonschema2020.ValidationError, errors.ValidationError)
        self.assertTrue(callable(jsonschema2020.for_type))

    def test_end_to_end(self):
        s = jsonschema2020.Schema.loads('{"type": "array", "items": {"type": "integer"}}')
        rs = jsonschema2020.resolve(s)
        self.assertTrue(rs.is_valid([1, 2]))
        with self.assertRaises(jsonschema2020.ValidationError):
            rs.validate([1, "2"])

    def test_unknown_name(self):
        with self.assertRaises(ModuleNotFoundError):
            getattr(jsonschema2020, "no_such_thing")
        with self.assertRaises(AttributeError):
            getattr(jsonschema2020, "__no_such_dunder__")


if __name__ == '__main__':
    unittest.main()
