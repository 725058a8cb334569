"""Character layer: byte input detection and decoding."""

from .encoding import (
    BOMDetector,
    DetectionMethod,
    EncodingResult,
    XMLDeclarationParser,
    decode_document,
    detect_encoding,
)

__all__ = [
    "BOMDetector",
    "DetectionMethod",
    "EncodingResult",
    "XMLDeclarationParser",
    "decode_document",
    "detect_encoding",
]
