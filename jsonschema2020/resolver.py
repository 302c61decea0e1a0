"""Prepares schemas for validation.

Resolution checks a schema, computes the base URI of every subschema,
registers anchors and binds each $ref and $dynamicRef to the schema it
refers to, loading remote schemas on demand. The result is a Resolved,
which is what the validator works on.

The base URIs follow https://json-schema.org/draft/2020-12/json-schema-core#section-8.2.
For a schema loaded from http://a.com/root.json like

    {"allOf": [{"$id": "sub1.json"}, {"$id": "http://b.com"}, {"not": {}}]}

the bases are:

    root           http://a.com/root.json
    allOf/0        http://a.com/sub1.json
    allOf/1        http://b.com
    allOf/2        http://a.com/root.json (inherited from parent)
    allOf/2/not    http://a.com/root.json
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple
from urllib.parse import unquote, urldefrag, urljoin, urlparse, uses_relative

from jsonschema2020 import jsonvalue, validator
from jsonschema2020.errors import ParseError, ResolutionError, StructuralError, ValidationError
from jsonschema2020.loader import no_loader
from jsonschema2020.schema import (DRAFT_2020_12, NUMBER_FIELDS, SCHEMA, SCHEMA_LIST, SCHEMA_MAP, SCHEMA_VALUED_FIELDS,
                                   AnchorInfo, Schema)
from jsonschema2020.schemapointer import dereference_json_pointer, escape_segment

logger = logging.getLogger(__name__)

Loader = Callable[[str], Schema]


@dataclass
class ResolveOptions:
    """Options for resolve.

    Attributes:
        base_uri: The URI relative to which the root schema is resolved. If
            non-empty it must be absolute and have no fragment. It is
            resolved against the root's $id.
        loader: Loads schemas that a $ref refers to but that are not under
            the root. Without one, remote references are errors.
        validate_defaults: Whether to validate the values of "default"
            keywords against their schemas.
    """
    base_uri: str = ""
    loader: Optional[Loader] = None
    validate_defaults: bool = False


class Resolved:
    """A schema whose references have all been resolved, ready for validation.

    The schema must not be modified after resolution. A Resolved can be
    shared between threads: each validation has its own state.
    """

    def __init__(self, root: Schema, resolved_uris: Dict[str, Schema]) -> None:
        self.root = root
        # canonical URIs of the root and every subschema with an $id
        self.resolved_uris = resolved_uris

    @property
    def schema(self) -> Schema:
        """The schema that was resolved."""
        return self.root

    def validate(self, instance: Any) -> None:
        """Validates instance, raising ValidationError if it does not match."""
        validator.validate_instance(self.root, instance)

    def is_valid(self, instance: Any) -> bool:
        try:
            self.validate(instance)
        except ValidationError:
            return False
        return True

    def apply_defaults(self, instance: Any) -> None:
        """Sets missing properties of instance to the defaults of the root schema."""
        validator.apply_defaults(self.root, instance)

    def __repr__(self) -> str:
        return f"Resolved({self.root})"


def resolve(root: Schema, options: Optional[ResolveOptions] = None) -> Resolved:
    """Resolves all references within root and prepares it for validation.

    Args:
        root: The schema to resolve. It must form a tree and must not have
            been resolved before.
        options: Resolution options; defaults are used if omitted.

    Returns:
        Resolved: The resolved schema.

    Raises:
        StructuralError: If the schema is not a tree or has conflicting keywords
        ParseError: If a regular expression, URI or JSON Pointer is malformed
        ResolutionError: If a reference or anchor cannot be resolved
        ValidationError: If validate_defaults is set and a default is invalid
    """
    if root.path:
        raise ResolutionError(f"{root} already resolved")
    opts = options or ResolveOptions()
    if opts.base_uri:
        if not _is_absolute(opts.base_uri):
            raise ResolutionError(f"base URI {opts.base_uri} must be absolute")
    r = _Resolver(opts)
    resolved = r.resolve(root, opts.base_uri)
    if opts.validate_defaults:
        validator.validate_defaults(resolved.root)
    return resolved


def _parse_uri(uri: str):
    try:
        return urlparse(uri)
    except ValueError as e:
        raise ParseError(f"invalid URI {uri!r}: {e}") from e


def _is_absolute(uri: str) -> bool:
    return bool(_parse_uri(uri).scheme)


def _join_uri(base: str, ref: str) -> str:
    """Resolves ref against base in the sense of RFC 3986.

    urljoin ignores bases with opaque schemes such as urn:, so fragment-only
    references are joined by hand for those.
    """
    parsed = _parse_uri(ref)
    if parsed.scheme:
        return ref
    base_scheme = _parse_uri(base).scheme
    if not base_scheme or base_scheme in uses_relative:
        return urljoin(base, ref)
    if ref == '':
        return base
    if ref.startswith('#'):
        return urldefrag(base).url + ref
    raise ResolutionError(f"cannot resolve relative reference {ref!r} against {base}")


class _Resolver:
    """The state of one call to resolve."""

    def __init__(self, options: ResolveOptions) -> None:
        self.options = options
        self.loader: Loader = options.loader or no_loader
        # Loaded and partly resolved schemas, by URI. The loader is called at
        # most once per URI, and reference cycles terminate here.
        self.loaded: Dict[str, Resolved] = {}

    def resolve(self, s: Schema, base_uri: str) -> Resolved:
        if _parse_uri(base_uri).fragment:
            raise ResolutionError(f"base URI {base_uri} must not have a fragment")
        # An empty fragment ("...#") is dropped, as for $id.
        base_uri = urldefrag(base_uri).url
        check(s)
        uris = resolve_uris(s, base_uri)
        rs = Resolved(s, uris)
        # Register under the URI it was loaded from and under its canonical
        # URI before resolving refs, which may lead back to it.
        self.loaded[base_uri] = rs
        self.loaded[s.uri] = rs
        self.resolve_refs(rs)
        return rs

    def resolve_refs(self, rs: Resolved) -> None:
        for s in rs.root.walk():
            if s.ref:
                # $ref treats its target lexically even if the anchor is dynamic.
                s.resolved_ref, _ = self.resolve_ref(rs, s, s.ref)
            if s.dynamic_ref:
                target, frag = self.resolve_ref(rs, s, s.dynamic_ref)
                if frag:
                    # The target is a dynamic anchor, found at validation time.
                    s.dynamic_ref_anchor = frag
                else:
                    s.resolved_dynamic_ref = target

    def resolve_ref(self, rs: Resolved, s: Schema, ref: str) -> Tuple[Schema, str]:
        """Resolves ref, which is s.ref or s.dynamic_ref.

        Returns:
            The schema referred to, and the fragment if it names a dynamic anchor.
        """
        ref_uri = _join_uri(s.base.uri, ref)
        fragless, frag = urldefrag(ref_uri)
        frag = unquote(frag)
        referenced = rs.resolved_uris.get(fragless)
        if referenced is None:
            # The non-fragment part is taken to name a whole remote document.
            cached = self.loaded.get(fragless)
            if cached is not None:
                logger.debug("Using cached schema for %s", fragless)
                referenced = cached.root
            else:
                referenced = self.load(fragless).root

        # An anchor is non-empty and has no slash; anything else is a JSON Pointer.
        if frag and not frag.startswith('/'):
            info = referenced.anchors.get(frag)
            if info is None:
                raise ResolutionError(f"no anchor {frag!r} in {referenced}", str(s))
            return info.schema, (frag if info.dynamic else '')
        return dereference_json_pointer(referenced, frag), ''

    def load(self, uri: str) -> Resolved:
        logger.debug("Loading remote schema %s", uri)
        try:
            loaded = self.loader(uri)
        except Exception as e:  # pylint: disable=broad-except
            raise ResolutionError(f"loading {uri}: {e}") from e
        if not isinstance(loaded, Schema):
            raise ResolutionError(f"loading {uri}: loader returned {type(loaded).__name__}, not a Schema")
        return self.resolve(loaded, uri)


def check(root: Schema) -> None:
    """Checks root and its subschemas, independently of what they refer to.

    Raises the first error found.
    """
    # Structure comes first: other checks assume a tree.
    check_structure(root)
    for s in root.walk():
        check_local(s)


def check_structure(root: Schema) -> None:
    """Verifies that root and its subschemas form a tree and gives each a path.

    The root's path is "root"; other paths are JSON Pointers from the root.
    A schema that is reached twice (through sharing or a cycle) is an error,
    since each schema stores a single base.
    """

    def visit(s: Optional[Schema], path: str) -> None:
        p = path or "root"
        if s is None:
            raise StructuralError(f"schema at {p} is nil")
        if s.path:
            raise StructuralError(
                f"schemas at {root} do not form a tree; {s.path} appears more than once (also at {p})")
        s.path = p
        for f in SCHEMA_VALUED_FIELDS:
            kind = f.metadata['kind']
            name = escape_segment(f.metadata['json'])
            value = getattr(s, f.name)
            if kind == SCHEMA:
                # absent is fine
                if value is not None:
                    visit(value, f"{path}/{name}")
            elif kind == SCHEMA_LIST:
                for i, child in enumerate(value or ()):
                    visit(child, f"{path}/{name}/{i}")
            elif kind == SCHEMA_MAP:
                for key, child in (value or {}).items():
                    visit(child, f"{path}/{name}/{escape_segment(key)}")

    visit(root, "")


def _compile(s: Schema, where: str, regex: str) -> re.Pattern:
    try:
        return re.compile(regex)
    except re.error as e:
        raise ParseError(f"{where}: {e}", str(s)) from e


def check_local(s: Schema) -> None:
    """Checks s on its own and precomputes its regexes and required set."""
    s.basic_checks()
    # $vocabulary is kept for round trips; only the meta-schema may use it.
    if s.vocabulary is not None and s.schema != DRAFT_2020_12:
        raise StructuralError("cannot validate a schema with $vocabulary", str(s))
    # Schemas built in code skip the checks of from_json.
    for f in NUMBER_FIELDS:
        value = getattr(s, f.name)
        if value is not None and jsonvalue.json_number(value) is None:
            raise ParseError(f"{f.metadata['json']}: not a number", str(s))
    if s.multiple_of is not None and not s.multiple_of > 0:
        raise ParseError(f"multipleOf must be greater than 0, got {s.multiple_of}", str(s))
    if s.pattern:
        s.compiled_pattern = _compile(s, "pattern", s.pattern)
    if s.pattern_properties:
        s.compiled_pattern_properties = {
            _compile(s, f"patternProperties[{regex!r}]", regex): sub
            for regex, sub in s.pattern_properties.items()}
    if s.required:
        s.is_required = frozenset(s.required)


def resolve_uris(root: Schema, base_uri: str) -> Dict[str, Schema]:
    """Computes base URIs and anchors for root and its subschemas.

    Returns:
        A map from the URI of each schema with an $id, and from base_uri
        itself, to the schema.
    """
    resolved_uris: Dict[str, Schema] = {}

    def visit(s: Schema, base: Schema) -> None:
        if s.id:
            # An $id establishes a new base, resolved against the parent's.
            if _parse_uri(s.id).fragment:
                raise ResolutionError(f"$id {s.id} must not have a fragment", str(s))
            # the canonical URI has no empty trailing "#"
            s.uri = urldefrag(_join_uri(base.uri, s.id)).url
            if not _is_absolute(s.uri):
                raise ResolutionError(
                    f"$id {s.id} does not resolve to an absolute URI (base is {base.uri!r})", str(s))
            resolved_uris[s.uri] = s
            base = s
        s.base = base

        # Anchors are fragments scoped to their base.
        for anchor, dynamic in ((s.anchor, False), (s.dynamic_anchor, True)):
            if not anchor:
                continue
            if anchor in base.anchors:
                raise ResolutionError(f"duplicate anchor {anchor!r} in {base.uri}", str(s))
            base.anchors[anchor] = AnchorInfo(s, dynamic)

        for child in s.children():
            visit(child, base)

    # The root's URI is the base until its $id, if any, changes it. The
    # given base still refers to the root.
    root.uri = base_uri
    resolved_uris[base_uri] = root
    visit(root, root)
    return resolved_uris
