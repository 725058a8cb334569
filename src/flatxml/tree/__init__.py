"""Tree layer: the flat DocumentTree, its records, builder and serializer.

Key Components:
    NodeRecord: One element, comment, CDATA section, PI or doctype entry
    DocumentTree: Pre-order node sequence with label-derived navigation and editing
    DocumentTreeBuilder: Builds trees from text or bytes
    XMLSerializer: Writes trees back to XML text
"""

from .builder import DocumentTreeBuilder
from .document import DocumentTree
from .node import (
    CDATA_NAME,
    COMMENT_NAME,
    DOCTYPE_NAME,
    PI_NAME,
    NodeRecord,
)
from .serializer import XMLSerializer

__all__ = [
    "CDATA_NAME",
    "COMMENT_NAME",
    "DOCTYPE_NAME",
    "PI_NAME",
    "DocumentTree",
    "DocumentTreeBuilder",
    "NodeRecord",
    "XMLSerializer",
]
