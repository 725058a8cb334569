"""Encoding detection and decoding of byte input.

Detection runs in a fixed order: byte order mark, then the ``encoding``
pseudo-attribute of the XML declaration, then a configurable fallback.
Undecodable input is malformed input; nothing is replaced or guessed.
"""

import codecs
import re
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Dict, Optional, Tuple

from ..shared.exceptions import MalformedInputError

DECLARATION_SCAN_LIMIT = 1024


class DetectionMethod(Enum):
    """Enumeration of encoding detection methods."""
    BOM = "bom"
    XML_DECLARATION = "xml_declaration"
    SIGNATURE = "signature"
    FALLBACK = "fallback"


@dataclass
class EncodingResult:
    """Outcome of encoding detection.

    Attributes:
        encoding: Codec name used to decode the document
        method: Detection method that decided the encoding
        bom_length: Number of leading bytes belonging to a byte order mark
    """
    encoding: str
    method: DetectionMethod
    bom_length: int = 0

    def __post_init__(self) -> None:
        if self.bom_length < 0:
            raise ValueError(f"bom_length must be >= 0, got {self.bom_length}")


class BOMDetector:
    """Byte Order Mark (BOM) detection for the encodings XML allows."""

    BOM_PATTERNS: ClassVar[Dict[bytes, str]] = {
        b"\xef\xbb\xbf": "utf-8",
        b"\xff\xfe": "utf-16-le",
        b"\xfe\xff": "utf-16-be",
        b"\xff\xfe\x00\x00": "utf-32-le",
        b"\x00\x00\xfe\xff": "utf-32-be",
    }

    # BOM-less UTF-16/32 documents still start with "<"
    SIGNATURES: ClassVar[Dict[bytes, str]] = {
        b"\x3c\x00\x00\x00": "utf-32-le",
        b"\x00\x00\x00\x3c": "utf-32-be",
        b"\x3c\x00\x3f\x00": "utf-16-le",
        b"\x00\x3c\x00\x3f": "utf-16-be",
    }

    def detect(self, data: bytes) -> Optional[EncodingResult]:
        """Detect encoding from a BOM or a UTF-16/32 signature.

        Args:
            data: Byte data to analyze

        Returns:
            EncodingResult if a BOM or signature is found, None otherwise
        """
        if not data:
            return None

        # Longer patterns first so UTF-32-LE is not mistaken for UTF-16-LE
        for bom_bytes, encoding in sorted(
            self.BOM_PATTERNS.items(), key=lambda x: len(x[0]), reverse=True
        ):
            if data.startswith(bom_bytes):
                return EncodingResult(encoding, DetectionMethod.BOM, len(bom_bytes))

        encoding = self.SIGNATURES.get(data[:4])
        if encoding is not None:
            return EncodingResult(encoding, DetectionMethod.SIGNATURE)
        return None


class XMLDeclarationParser:
    """Reads the ``encoding`` pseudo-attribute of an ASCII-compatible declaration."""

    XML_DECLARATION_PATTERN = re.compile(
        rb'^<\?xml\s[^>]*?encoding\s*=\s*["\']([A-Za-z][A-Za-z0-9._\-]*)["\'][^>]*?\?>'
    )

    def parse_declaration(self, data: bytes) -> Optional[EncodingResult]:
        """Parse encoding from the XML declaration.

        Raises:
            MalformedInputError: If the declared encoding is unknown
        """
        match = self.XML_DECLARATION_PATTERN.match(data[:DECLARATION_SCAN_LIMIT])
        if not match:
            return None

        declared = match.group(1).decode("ascii").lower()
        try:
            codec = codecs.lookup(declared)
        except LookupError as e:
            raise MalformedInputError(f"Unsupported declared encoding: {declared}") from e
        # A UTF-16 declaration without a BOM cannot have matched an ASCII pattern
        return EncodingResult(codec.name, DetectionMethod.XML_DECLARATION)


def detect_encoding(data: bytes, fallback: str = "utf-8") -> EncodingResult:
    """Decide which codec decodes ``data``."""
    result = BOMDetector().detect(data)
    if result is not None:
        return result
    result = XMLDeclarationParser().parse_declaration(data)
    if result is not None:
        return result
    return EncodingResult(fallback, DetectionMethod.FALLBACK)


def decode_document(data: bytes, fallback: str = "utf-8") -> Tuple[str, EncodingResult]:
    """Decode raw document bytes to text, dropping any byte order mark.

    Args:
        data: Raw document bytes
        fallback: Codec used when neither BOM nor declaration decide

    Returns:
        Tuple of decoded text and the detection result

    Raises:
        MalformedInputError: If the bytes are not valid in the chosen encoding
    """
    result = detect_encoding(data, fallback)
    try:
        text = data[result.bom_length:].decode(result.encoding)
    except UnicodeDecodeError as e:
        raise MalformedInputError(
            f"Input is not valid {result.encoding}: {e.reason}",
            offset=result.bom_length + e.start,
        ) from e
    return text, result
