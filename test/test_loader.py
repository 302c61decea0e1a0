"""Tests for the remote schema loaders."""

import json
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

current_script_path = os.path.abspath(__file__)
project_root = os.path.dirname(os.path.dirname(current_script_path))
sys.path.append(project_root)

import requests

from jsonschema2020.errors import ResolutionError
from jsonschema2020.loader import UriLoader, load_schema_file, no_loader
from jsonschema2020.resolver import ResolveOptions, resolve
from jsonschema2020.schema import Schema


class TestLoaders(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = self.tmp.name
        os.makedirs(os.path.join(self.dir, "defs"))
        with open(os.path.join(self.dir, "defs", "positive.json"), "w", encoding="utf-8") as f:
            json.dump({"type": "integer", "exclusiveMinimum": 0}, f)

    def tearDown(self):
        self.tmp.cleanup()

    def test_no_loader(self):
        with self.assertRaises(ResolutionError):
            no_loader("https://example.com/s")

    def test_load_schema_file(self):
        s = load_schema_file(os.path.join(self.dir, "defs", "positive.json"))
        self.assertEqual(s, Schema(type="integer", exclusive_minimum=0))

    def test_uri_map(self):
        loader = UriLoader({"https://example.com/schemas/": self.dir})
        root = Schema.from_json({"$id": "https://example.com/schemas/root.json",
                                 "items": {"$ref": "defs/positive.json"}})
        rs = resolve(root, ResolveOptions(loader=loader))
        self.assertTrue(rs.is_valid([1, 2]))
        self.assertFalse(rs.is_valid([0]))

    def test_file_uri(self):
        uri = Path(self.dir, "defs", "positive.json").as_uri()
        s = UriLoader()(uri)
        self.assertEqual(s.type, "integer")

    def test_cache(self):
        loader = UriLoader({"urn:test:": self.dir})
        first = loader.fetch_content("urn:test:defs/positive.json")
        os.remove(os.path.join(self.dir, "defs", "positive.json"))
        self.assertEqual(loader.fetch_content("urn:test:defs/positive.json"), first)

    def test_unsupported_scheme(self):
        with self.assertRaises(ResolutionError):
            UriLoader()("ftp://example.com/s.json")

    def test_http(self):
        response = mock.Mock()
        response.text = '{"type": "string"}'
        response.raise_for_status.return_value = None
        with mock.patch("jsonschema2020.loader.requests.get", return_value=response) as get:
            loader = UriLoader(timeout=5)
            self.assertEqual(loader("https://example.com/s.json").type, "string")
            loader("https://example.com/s.json")
        get.assert_called_once_with("https://example.com/s.json", timeout=5)

    def test_http_error_is_wrapped_by_resolve(self):
        response = mock.Mock()
        response.raise_for_status.side_effect = requests.HTTPError("404 Client Error")
        with mock.patch("jsonschema2020.loader.requests.get", return_value=response):
            with self.assertRaises(ResolutionError) as cm:
                resolve(Schema(ref="https://example.com/missing.json"), ResolveOptions(loader=UriLoader()))
        self.assertIsInstance(cm.exception.__cause__, requests.HTTPError)
        self.assertIn("404", str(cm.exception))


if __name__ == '__main__':
    unittest.main()
