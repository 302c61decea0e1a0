"""Loaders for schemas that references point to outside the root schema.

A loader is any callable that takes an absolute URI without a fragment and
returns a Schema. It is passed to resolve in ResolveOptions.loader.
"""

import json
import logging
import os
from typing import Dict, Optional
from urllib.parse import unquote, urlparse

import requests

from jsonschema2020.errors import ResolutionError
from jsonschema2020.schema import Schema

logger = logging.getLogger(__name__)


def no_loader(uri: str) -> Schema:
    """The loader used when none is given: every remote reference is an error."""
    raise ResolutionError("cannot resolve remote schemas: no loader passed to Schema.resolve")


def load_schema_file(path: str) -> Schema:
    """Reads and parses the schema in the JSON file at path."""
    with open(path, 'r', encoding='utf-8') as file:
        return Schema.from_json(json.load(file))


class UriLoader:
    """
    Loads schemas from local directories, file: URIs and over HTTP.

    Args:
        uri_map: Maps URI prefixes to local directories. A URI starting with
            one of the prefixes is read from the directory, with the rest of
            the URI as the relative file path. These are checked first.
        timeout: Timeout in seconds for HTTP requests.
    """

    def __init__(self, uri_map: Optional[Dict[str, str]] = None, timeout: float = 30) -> None:
        self.uri_map = dict(uri_map or {})
        self.timeout = timeout
        self.content_cache: Dict[str, str] = {}

    def __call__(self, uri: str) -> Schema:
        return Schema.loads(self.fetch_content(uri))

    def fetch_content(self, uri: str) -> str:
        """
        Fetches the text of the document at uri.

        Raises:
            requests.RequestException: If the HTTP request fails or returns an error status.
            OSError: If a local file cannot be read.
            ResolutionError: If the URI scheme is not supported.
        """
        if uri in self.content_cache:
            logger.debug("Content cache hit for %s", uri)
            return self.content_cache[uri]

        # longest prefix wins
        for prefix in sorted(self.uri_map, key=len, reverse=True):
            if uri.startswith(prefix):
                rest = unquote(uri[len(prefix):]).lstrip('/')
                text = self._read_file(os.path.join(self.uri_map[prefix], *rest.split('/')))
                break
        else:
            parsed = urlparse(uri)
            if parsed.scheme in ['http', 'https']:
                logger.debug("Fetching %s", uri)
                response = requests.get(uri, timeout=self.timeout)
                # Raises an HTTPError if the response status code is 4XX/5XX
                response.raise_for_status()
                text = response.text
            elif parsed.scheme == 'file':
                file_path = unquote(parsed.path) or parsed.netloc
                # On Windows, a file URL might start with a '/' but it's not part of the actual path
                if os.name == 'nt' and file_path.startswith('/'):
                    file_path = file_path[1:]
                text = self._read_file(file_path)
            else:
                raise ResolutionError(f"unsupported URI scheme {parsed.scheme!r} in {uri}")
        self.content_cache[uri] = text
        return text

    @staticmethod
    def _read_file(path: str) -> str:
        logger.debug("Reading schema file %s", path)
        with open(path, 'r', encoding='utf-8') as file:
            return file.read()
