"""Public API: parse functions and integration adapters."""

from .adapters import (
    AdapterMetadata,
    ConversionResult,
    ElementTreeAdapter,
    IntegrationAdapter,
    LxmlAdapter,
    get_adapter,
    list_available_adapters,
    register_adapter,
)
from .parser import parse, parse_bytes, parse_file, parse_string, to_string, write_file

__all__ = [
    "AdapterMetadata",
    "ConversionResult",
    "ElementTreeAdapter",
    "IntegrationAdapter",
    "LxmlAdapter",
    "get_adapter",
    "list_available_adapters",
    "register_adapter",
    "parse",
    "parse_bytes",
    "parse_file",
    "parse_string",
    "to_string",
    "write_file",
]
