"""Exception hierarchy for flatxml.

Navigation and mutation calls never raise on bad positions; they report
"not found" with ``None`` or an empty list. The exceptions here cover the
fatal cases: unparsable input, an address that does not follow the query
grammar, and a tree whose path labels no longer describe a tree.
"""

from typing import Optional


class FlatXMLError(Exception):
    """Base class for every error raised by flatxml."""


class MalformedInputError(FlatXMLError):
    """Raised when the input document is not well-formed XML.

    The parse is aborted and no partial tree is returned.
    """

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> None:
        self.reason = message
        self.line = line
        self.column = column
        self.offset = offset
        if line is not None and column is not None:
            message = f"{message} (line {line}, column {column})"
        super().__init__(message)


class QuerySyntaxError(FlatXMLError, ValueError):
    """Raised when an address string does not match the query grammar."""

    def __init__(self, message: str, address: str = "", offset: Optional[int] = None) -> None:
        self.reason = message
        self.address = address
        self.offset = offset
        if address:
            where = f" at offset {offset}" if offset is not None else ""
            message = f"{message}{where} in address {address!r}"
        super().__init__(message)


class StructuralCorruptionError(FlatXMLError):
    """Raised by the serializer when two consecutive labels cannot be related.

    This signals a broken tree invariant, not a user error.
    """

    def __init__(self, previous_label: str, current_label: str) -> None:
        self.previous_label = previous_label
        self.current_label = current_label
        super().__init__(
            f"Cannot relate path label {current_label!r} to preceding label "
            f"{previous_label!r}"
        )
