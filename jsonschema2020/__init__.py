"""A JSON Schema 2020-12 engine: schema model, resolution, validation, defaults and inference."""

import importlib

mod = "jsonschema2020"


class LazyLoader:
    """
    Lazy loader for the jsonschema2020 API, so that importing the package
    does not import the validator, the loaders or requests.
    """
    def __init__(self, mappings):
        self._modules = {}
        self._mappings = mappings

    def _load_module(self, module_name):
        if module_name not in self._modules:
            self._modules[module_name] = importlib.import_module(module_name)
        return self._modules[module_name]

    def __getattr__(self, item):
        if item.startswith('__'):
            raise AttributeError(item)
        if item in self._mappings:
            module_name, attr_name = self._mappings[item]
            module = self._load_module(module_name)
            return getattr(module, attr_name)
        return self._load_module(f"{mod}.{item}")


# Public names and the modules that define them
_mappings = {
    "Schema": (f"{mod}.schema", "Schema"),
    "NOT_SET": (f"{mod}.schema", "NOT_SET"),
    "DRAFT_2020_12": (f"{mod}.schema", "DRAFT_2020_12"),
    "false_schema": (f"{mod}.schema", "false_schema"),
    "resolve": (f"{mod}.resolver", "resolve"),
    "ResolveOptions": (f"{mod}.resolver", "ResolveOptions"),
    "Resolved": (f"{mod}.resolver", "Resolved"),
    "dereference_json_pointer": (f"{mod}.schemapointer", "dereference_json_pointer"),
    "validate_instance": (f"{mod}.validator", "validate_instance"),
    "validate_defaults": (f"{mod}.validator", "validate_defaults"),
    "apply_defaults": (f"{mod}.validator", "apply_defaults"),
    "MAX_VALIDATION_DEPTH": (f"{mod}.validator", "MAX_VALIDATION_DEPTH"),
    "equal": (f"{mod}.jsonvalue", "equal"),
    "for_type": (f"{mod}.infer", "for_type"),
    "no_loader": (f"{mod}.loader", "no_loader"),
    "load_schema_file": (f"{mod}.loader", "load_schema_file"),
    "UriLoader": (f"{mod}.loader", "UriLoader"),
    "SchemaError": (f"{mod}.errors", "SchemaError"),
    "StructuralError": (f"{mod}.errors", "StructuralError"),
    "ParseError": (f"{mod}.errors", "ParseError"),
    "JSONPointerError": (f"{mod}.errors", "JSONPointerError"),
    "ResolutionError": (f"{mod}.errors", "ResolutionError"),
    "InferenceError": (f"{mod}.errors", "InferenceError"),
    "RecursionLimitError": (f"{mod}.errors", "RecursionLimitError"),
    "ValidationError": (f"{mod}.errors", "ValidationError"),
}

_lazy_loader = LazyLoader(_mappings)


def __getattr__(name):
    return getattr(_lazy_loader, name)
