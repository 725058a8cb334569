"""Shared utilities for flatxml.

Configuration objects, the exception hierarchy and correlation-aware logging
used across all layers.
"""

from .config import (
    ConfigError,
    ConfigValidationError,
    DocumentConfig,
    ParsingConfig,
    SerializationConfig,
)
from .exceptions import (
    FlatXMLError,
    MalformedInputError,
    QuerySyntaxError,
    StructuralCorruptionError,
)
from .logging import (
    CorrelationLogger,
    configure_logging,
    get_logger,
)

__all__ = [
    "ConfigError",
    "ConfigValidationError",
    "DocumentConfig",
    "ParsingConfig",
    "SerializationConfig",
    "FlatXMLError",
    "MalformedInputError",
    "QuerySyntaxError",
    "StructuralCorruptionError",
    "CorrelationLogger",
    "configure_logging",
    "get_logger",
]
