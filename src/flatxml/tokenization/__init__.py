"""Tokenization layer: text to structural XML events."""

from .tokenizer import EventPosition, EventType, XMLEvent, XMLTokenizer, tokenize

__all__ = [
    "EventPosition",
    "EventType",
    "XMLEvent",
    "XMLTokenizer",
    "tokenize",
]
