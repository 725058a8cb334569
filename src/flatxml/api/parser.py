"""Progressive parsing API for flatxml.

Level 1 is a set of module functions (``parse``, ``parse_string``,
``parse_bytes``, ``parse_file``); level 2 is :class:`DocumentTree` itself
with a :class:`DocumentConfig`. Unlike navigation calls, parsing is strict:
malformed input raises :class:`MalformedInputError`.
"""

import time
from pathlib import Path
from typing import BinaryIO, Optional, TextIO, Union

from ..shared.config import DocumentConfig
from ..shared.exceptions import MalformedInputError
from ..shared.logging import get_logger
from ..tree.builder import DocumentTreeBuilder
from ..tree.document import DocumentTree

# Type definitions for input data
InputType = Union[str, bytes, BinaryIO, TextIO, Path]

# Constants for API operations
PREVIEW_LENGTH = 100  # Max length for content preview in logs
MS_PER_SECOND = 1000


def _resolve_config(
    config: Optional[DocumentConfig], correlation_id: Optional[str]
) -> DocumentConfig:
    config = config or DocumentConfig()
    if correlation_id is not None:
        config = config.override(correlation_id=correlation_id)
    return config


def parse(
    input_data: InputType,
    config: Optional[DocumentConfig] = None,
    correlation_id: Optional[str] = None,
) -> DocumentTree:
    """Parse XML from a string, bytes, path or open file.

    Args:
        input_data: XML content as string, bytes, file-like object, or Path
        config: Optional configuration
        correlation_id: Optional correlation ID for request tracking

    Returns:
        The parsed DocumentTree

    Examples:
        >>> tree = parse('<root><item>value</item></root>')
        >>> tree.node(tree.find('//item')).text
        'value'
    """
    if isinstance(input_data, Path):
        return parse_file(input_data, config, correlation_id)
    if isinstance(input_data, bytes):
        return parse_bytes(input_data, config, correlation_id)
    if isinstance(input_data, str):
        return parse_string(input_data, config, correlation_id)
    if hasattr(input_data, "read"):
        content = input_data.read()
        if isinstance(content, bytes):
            return parse_bytes(content, config, correlation_id)
        return parse_string(content, config, correlation_id)
    raise TypeError(f"Unsupported input type: {type(input_data).__name__}")


def parse_string(
    xml_string: str,
    config: Optional[DocumentConfig] = None,
    correlation_id: Optional[str] = None,
) -> DocumentTree:
    """Parse XML from a string.

    Raises:
        MalformedInputError: If the document is not well-formed
    """
    config = _resolve_config(config, correlation_id)
    logger = get_logger(__name__, config.correlation_id, "parse_string")
    logger.debug(
        "Starting string parse operation",
        extra={
            "content_length": len(xml_string),
            "preview": (
                xml_string[:PREVIEW_LENGTH] + "..."
                if len(xml_string) > PREVIEW_LENGTH else xml_string
            ),
        },
    )
    return DocumentTreeBuilder(config).build(xml_string)


def parse_bytes(
    data: bytes,
    config: Optional[DocumentConfig] = None,
    correlation_id: Optional[str] = None,
) -> DocumentTree:
    """Parse XML from raw bytes, detecting the encoding."""
    config = _resolve_config(config, correlation_id)
    return DocumentTreeBuilder(config).build_bytes(data)


def parse_file(
    file_path: Union[str, Path],
    config: Optional[DocumentConfig] = None,
    correlation_id: Optional[str] = None,
) -> DocumentTree:
    """Parse an XML file with encoding detection.

    Raises:
        FileNotFoundError: If the file does not exist
        MalformedInputError: If the document is not well-formed
    """
    config = _resolve_config(config, correlation_id)
    logger = get_logger(__name__, config.correlation_id, "parse_file")
    path_obj = Path(file_path)
    start_time = time.time()

    logger.info("Starting file parse operation", extra={"file_path": str(path_obj)})
    data = path_obj.read_bytes()
    try:
        tree = DocumentTreeBuilder(config).build_bytes(data)
    except MalformedInputError:
        logger.error("File parse operation failed", extra={"file_path": str(path_obj)})
        raise

    logger.info(
        "File parse operation completed",
        extra={
            "file_path": str(path_obj),
            "processing_time_ms": (time.time() - start_time) * MS_PER_SECOND,
        },
    )
    return tree


def to_string(tree: DocumentTree) -> str:
    return tree.to_string()


def write_file(tree: DocumentTree, file_path: Union[str, Path]) -> None:
    """Serialize ``tree`` to ``file_path`` in its declared encoding."""
    logger = get_logger(__name__, tree.config.correlation_id, "write_file")
    tree.write_file(file_path)
    logger.info("Wrote document", extra={"file_path": str(file_path), "nodes": len(tree)})
