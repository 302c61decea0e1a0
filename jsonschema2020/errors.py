"""Exceptions raised while reading, resolving and validating JSON schemas."""

from typing import Optional


class SchemaError(Exception):
    """
    Base class for all errors raised by jsonschema2020.

    Attributes:
        message: Human-readable error description
        context: Optional context about where the error occurred
    """

    def __init__(self, message: str, context: Optional[str] = None) -> None:
        self.message = message
        self.context = context
        full_message = message
        if context:
            full_message = f"{context}: {message}"
        super().__init__(full_message)


class StructuralError(SchemaError):
    """The schema is not a tree, holds a nil subschema, or sets keywords that exclude each other."""


class ParseError(SchemaError):
    """A keyword value, regular expression or JSON Pointer could not be parsed."""


class JSONPointerError(ParseError):
    """A JSON Pointer is malformed or does not lead to a schema."""

    def __init__(self, pointer: str, message: str) -> None:
        self.pointer = pointer
        super().__init__(message, f"JSON Pointer {pointer!r}")


class ResolutionError(SchemaError):
    """A reference, anchor or remote schema could not be resolved."""


class InferenceError(SchemaError):
    """A Python type cannot be described by a schema."""


class RecursionLimitError(SchemaError):
    """Validation nested deeper than the allowed number of schemas."""

    def __init__(self, depth: int, schema_path: str = "") -> None:
        self.depth = depth
        self.schema_path = schema_path
        super().__init__(f"exceeded maximum validation depth of {depth}",
                         f"validating {schema_path}" if schema_path else None)


class ValidationError(SchemaError):
    """
    Exception raised when a JSON instance does not match a schema.

    Attributes:
        keyword: The keyword that rejected the instance (e.g. 'minimum')
        instance_path: Location of the offending value, like '.items[2]'
        schema_path: The schema that failed, as returned by str(schema)
    """

    def __init__(self, keyword: str, message: str, instance_path: str = "",
                 schema_path: str = "") -> None:
        self.keyword = keyword
        self.instance_path = instance_path
        self.schema_path = schema_path
        text = f"{keyword}: {message}"
        if instance_path:
            text = f"{instance_path}: {text}"
        super().__init__(text, f"validating {schema_path}" if schema_path else None)
        self.message = message
