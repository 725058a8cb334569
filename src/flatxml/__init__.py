"""flatxml: an editable XML document held as a flat, path-labelled node sequence.

Every element, comment, CDATA section, processing instruction and doctype is
one entry in a pre-order sequence. Each entry carries a path label naming its
ancestors, so structure is recovered by comparing labels rather than by
following pointers. Documents round-trip byte for byte, edits preserve the
surrounding indentation, and a small path language finds nodes.

Progressive API Disclosure:
- Level 1: Simple functions - parse(), parse_string(), parse_file(), to_string()
- Level 2: DocumentTree navigation, editing and find*/rfind* queries
- Level 3: Configured builders and serializers - DocumentConfig presets
- Level 4: Interop adapters for lxml and xml.etree
"""

__version__ = "0.1.0"
__author__ = "flatxml Team"

# Progressive API disclosure - Level 1: Simple functions
from .api import parse, parse_bytes, parse_file, parse_string, to_string, write_file

# Level 2 and 3: tree objects and configuration
from .query import PathQuery
from .shared.config import DocumentConfig, ParsingConfig, SerializationConfig
from .shared.exceptions import (
    FlatXMLError,
    MalformedInputError,
    QuerySyntaxError,
    StructuralCorruptionError,
)
from .tree import DocumentTree, DocumentTreeBuilder, NodeRecord, XMLSerializer

__all__ = [
    # Version and metadata
    "__author__",
    "__version__",

    # Level 1: Simple functions
    "parse",
    "parse_bytes",
    "parse_file",
    "parse_string",
    "to_string",
    "write_file",

    # Tree objects
    "DocumentTree",
    "DocumentTreeBuilder",
    "NodeRecord",
    "PathQuery",
    "XMLSerializer",

    # Configuration
    "DocumentConfig",
    "ParsingConfig",
    "SerializationConfig",

    # Errors
    "FlatXMLError",
    "MalformedInputError",
    "QuerySyntaxError",
    "StructuralCorruptionError",
]
