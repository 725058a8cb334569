"""Strict scanning tokenizer producing structural XML events.

The tokenizer walks the text with ``str.find`` jumps between markup
delimiters and emits one :class:`XMLEvent` per construct. It checks
well-formedness as it goes (tag nesting, attribute syntax and uniqueness,
entity references, namespace bindings) and raises
:class:`~flatxml.shared.exceptions.MalformedInputError` on the first
violation. Text and attribute values are delivered entity-unescaped.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Iterator, List, NoReturn, Optional, Tuple

from ..shared.exceptions import MalformedInputError

XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"
XMLNS_NAMESPACE = "http://www.w3.org/2000/xmlns/"

WHITESPACE = " \t\r\n"
UNICODE_START_OFFSET = 0x80
MAX_CODEPOINT = 0x10FFFF

PREDEFINED_ENTITIES = {
    "lt": "<",
    "gt": ">",
    "amp": "&",
    "quot": '"',
    "apos": "'",
}

ENTITY_PATTERN = re.compile(r"&(#x[0-9A-Fa-f]+|#[0-9]+|[A-Za-z_:][\w.\-:]*);")

DECLARATION_PATTERN = re.compile(
    r"xml\s+version\s*=\s*([\"'])([^\"']+)\1"
    r"(?:\s+encoding\s*=\s*([\"'])([A-Za-z][A-Za-z0-9._\-]*)\3)?"
    r"(?:\s+standalone\s*=\s*([\"'])(yes|no)\5)?\s*"
)

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Structural events reported by the tokenizer."""

    DECLARATION = auto()  # <?xml version="1.0"?>
    START = auto()        # <name attr="v">
    END = auto()          # </name>
    EMPTY = auto()        # <name attr="v"/>
    TEXT = auto()         # character data between markup
    COMMENT = auto()      # <!-- ... -->
    CDATA = auto()        # <![CDATA[ ... ]]>
    PI = auto()           # <?target data?>
    DOCTYPE = auto()      # <!DOCTYPE ...>


@dataclass
class EventPosition:
    """Position of the first character of an event."""

    line: int
    column: int
    offset: int

    def __post_init__(self) -> None:
        """Validate position values."""
        if self.line < 1:
            raise ValueError("Line number must be >= 1")
        if self.column < 1:
            raise ValueError("Column number must be >= 1")
        if self.offset < 0:
            raise ValueError("Offset must be >= 0")


@dataclass
class XMLEvent:
    """A single structural event.

    ``name`` is the qualified name as written; ``namespace`` is the URI bound
    to its prefix (or the default namespace) at that point of the document.
    For DECLARATION events ``attributes`` holds the pseudo-attributes.
    """

    type: EventType
    position: EventPosition
    name: str = ""
    local_name: str = ""
    prefix: str = ""
    namespace: str = ""
    attributes: List[Tuple[str, str]] = field(default_factory=list)
    text: str = ""


class XMLTokenizer:
    """Single-use tokenizer over one complete document string."""

    def __init__(self, content: str, correlation_id: Optional[str] = None) -> None:
        self.content = content
        self.correlation_id = correlation_id
        self._line = 1
        self._line_start = 0
        self._cursor = 0
        self._open: List[str] = []
        self._scopes: List[Dict[str, str]] = [{"xml": XML_NAMESPACE}]

    def tokenize(self) -> Iterator[XMLEvent]:
        """Yield events in document order.

        Raises:
            MalformedInputError: On the first well-formedness violation
        """
        content = self.content
        length = len(content)
        begin = 1 if content.startswith("\ufeff") else 0
        i = begin

        logger.debug(
            "Starting tokenization",
            extra={
                "component": "xml_tokenizer",
                "correlation_id": self.correlation_id,
                "content_length": length,
            },
        )

        while i < length:
            if content[i] != "<":
                end = content.find("<", i)
                if end == -1:
                    end = length
                raw = content[i:end]
                cdata_close = raw.find("]]>")
                if cdata_close != -1:
                    self._fail("']]>' is not allowed in character data", i + cdata_close)
                yield XMLEvent(EventType.TEXT, self._position(i), text=self._unescape(raw, i))
                i = end
            elif content.startswith("<!--", i):
                end = self._require(content.find("-->", i + 4), "Unterminated comment", i)
                body = content[i + 4:end]
                if "--" in body or body.endswith("-"):
                    self._fail("'--' is not allowed inside a comment", i)
                yield XMLEvent(EventType.COMMENT, self._position(i), text=body)
                i = end + 3
            elif content.startswith("<![CDATA[", i):
                end = self._require(content.find("]]>", i + 9), "Unterminated CDATA section", i)
                yield XMLEvent(EventType.CDATA, self._position(i), text=content[i + 9:end])
                i = end + 3
            elif content.startswith("<!DOCTYPE", i):
                end = self._scan_doctype(i)
                yield XMLEvent(
                    EventType.DOCTYPE, self._position(i), text=content[i + 9:end].lstrip()
                )
                i = end + 1
            elif content.startswith("<?", i):
                end = self._require(
                    content.find("?>", i + 2), "Unterminated processing instruction", i
                )
                yield self._processing_instruction(i, end, at_start=(i == begin))
                i = end + 2
            elif content.startswith("</", i):
                end = self._require(content.find(">", i + 2), "Unterminated end tag", i)
                yield self._end_tag(i, end)
                i = end + 1
            elif content.startswith("<!", i):
                self._fail("Unsupported markup declaration", i)
            else:
                event, i = self._start_tag(i)
                yield event

        if self._open:
            self._fail(f"Unclosed element <{self._open[-1]}>", length)

        logger.debug(
            "Tokenization completed",
            extra={"component": "xml_tokenizer", "correlation_id": self.correlation_id},
        )

    # -- markup scanners -------------------------------------------------

    def _start_tag(self, start: int) -> Tuple[XMLEvent, int]:
        content = self.content
        length = len(content)
        name_end = self._scan_name(start + 1)
        name = content[start + 1:name_end]
        attributes: List[Tuple[str, str]] = []
        seen = set()

        k = name_end
        while True:
            ws_start = k
            while k < length and content[k] in WHITESPACE:
                k += 1
            if k >= length:
                self._fail(f"Unterminated start tag <{name}>", start)
            if content.startswith("/>", k):
                self_closing = True
                k += 2
                break
            if content[k] == ">":
                self_closing = False
                k += 1
                break
            if k == ws_start:
                self._fail(f"Expected whitespace or '>' in start tag <{name}>", k)

            attr_end = self._scan_name(k)
            attr_name = content[k:attr_end]
            k = attr_end
            while k < length and content[k] in WHITESPACE:
                k += 1
            if k >= length or content[k] != "=":
                self._fail(f"Expected '=' after attribute {attr_name}", k)
            k += 1
            while k < length and content[k] in WHITESPACE:
                k += 1
            if k >= length or content[k] not in "\"'":
                self._fail(f"Expected quoted value for attribute {attr_name}", k)
            quote = content[k]
            value_end = self._require(
                content.find(quote, k + 1), f"Unterminated value for attribute {attr_name}", k
            )
            raw = content[k + 1:value_end]
            if "<" in raw:
                self._fail(f"'<' is not allowed in attribute {attr_name}", k + 1 + raw.index("<"))
            if attr_name in seen:
                self._fail(f"Duplicate attribute {attr_name} in <{name}>", k)
            seen.add(attr_name)
            attributes.append((attr_name, self._unescape(raw, k + 1)))
            k = value_end + 1

        scope = self._declare_namespaces(attributes, start)
        prefix, local_name = self._split_name(name)
        namespace = self._resolve(prefix, scope, start)
        for attr_name, _ in attributes:
            attr_prefix, _ = self._split_name(attr_name)
            if attr_prefix and attr_prefix != "xmlns":
                self._resolve(attr_prefix, scope, start)

        event_type = EventType.EMPTY if self_closing else EventType.START
        if not self_closing:
            self._open.append(name)
            self._scopes.append(scope)
        event = XMLEvent(
            event_type,
            self._position(start),
            name=name,
            local_name=local_name,
            prefix=prefix,
            namespace=namespace,
            attributes=attributes,
        )
        return event, k

    def _end_tag(self, start: int, end: int) -> XMLEvent:
        name_end = self._scan_name(start + 2)
        name = self.content[start + 2:name_end]
        if self.content[name_end:end].strip(WHITESPACE):
            self._fail(f"Unexpected content in end tag </{name}>", name_end)
        if not self._open:
            self._fail(f"End tag </{name}> without matching start tag", start)
        if self._open[-1] != name:
            self._fail(f"Mismatched end tag </{name}>, expected </{self._open[-1]}>", start)
        prefix, local_name = self._split_name(name)
        namespace = self._resolve(prefix, self._scopes[-1], start)
        self._open.pop()
        self._scopes.pop()
        return XMLEvent(
            EventType.END,
            self._position(start),
            name=name,
            local_name=local_name,
            prefix=prefix,
            namespace=namespace,
        )

    def _processing_instruction(self, start: int, end: int, at_start: bool) -> XMLEvent:
        body = self.content[start + 2:end]
        parts = body.split(None, 1)
        target = parts[0] if parts else ""
        if target == "xml":
            if not at_start:
                self._fail("XML declaration is only allowed at the start of the document", start)
            match = DECLARATION_PATTERN.fullmatch(body)
            if match is None:
                self._fail("Malformed XML declaration", start)
            pseudo = [("version", match.group(2))]
            if match.group(4) is not None:
                pseudo.append(("encoding", match.group(4)))
            if match.group(6) is not None:
                pseudo.append(("standalone", match.group(6)))
            return XMLEvent(EventType.DECLARATION, self._position(start), attributes=pseudo)
        if not target or target.lower() == "xml" or not self._is_valid_name(target):
            self._fail(f"Invalid processing instruction target {target!r}", start)
        return XMLEvent(EventType.PI, self._position(start), name=target, text=body)

    def _scan_doctype(self, start: int) -> int:
        """Return the offset of the '>' closing a DOCTYPE, skipping quoted and [...] parts."""
        content = self.content
        k = start + 9
        if k >= len(content) or content[k] not in WHITESPACE:
            self._fail("Expected whitespace after <!DOCTYPE", k)
        depth = 0
        quote = ""
        while k < len(content):
            char = content[k]
            if quote:
                if char == quote:
                    quote = ""
            elif char in "\"'":
                quote = char
            elif char == "[":
                depth += 1
            elif char == "]":
                depth -= 1
            elif char == ">" and depth == 0:
                return k
            k += 1
        self._fail("Unterminated DOCTYPE declaration", start)

    # -- names and namespaces --------------------------------------------

    def _is_name_start_char(self, char: str) -> bool:
        """Check if character can start an XML name."""
        return (char.isalpha() or
                char == "_" or
                char == ":" or
                ord(char) >= UNICODE_START_OFFSET)

    def _is_name_char(self, char: str) -> bool:
        """Check if character can be part of an XML name."""
        return (self._is_name_start_char(char) or
                char.isdigit() or
                char in ".-")

    def _is_valid_name(self, name: str) -> bool:
        return (bool(name) and self._is_name_start_char(name[0])
                and all(self._is_name_char(char) for char in name))

    def _scan_name(self, start: int) -> int:
        content = self.content
        if start >= len(content) or not self._is_name_start_char(content[start]):
            self._fail("Expected a name", start)
        k = start + 1
        while k < len(content) and self._is_name_char(content[k]):
            k += 1
        return k

    def _split_name(self, name: str) -> Tuple[str, str]:
        prefix, sep, local_name = name.partition(":")
        if not sep:
            return "", name
        return prefix, local_name

    def _declare_namespaces(self, attributes: List[Tuple[str, str]], offset: int) -> Dict[str, str]:
        scope = self._scopes[-1]
        declared = [(name, value) for name, value in attributes
                    if name == "xmlns" or name.startswith("xmlns:")]
        if not declared:
            return scope
        scope = dict(scope)
        for name, value in declared:
            prefix = "" if name == "xmlns" else name[6:]
            if prefix == "xmlns" or (prefix == "xml" and value != XML_NAMESPACE):
                self._fail(f"Reserved namespace prefix {prefix!r} cannot be rebound", offset)
            if prefix and not value:
                self._fail(f"Namespace prefix {prefix!r} cannot be bound to an empty URI", offset)
            scope[prefix] = value
        return scope

    def _resolve(self, prefix: str, scope: Dict[str, str], offset: int) -> str:
        if prefix == "xmlns":
            return XMLNS_NAMESPACE
        if not prefix:
            return scope.get("", "")
        if prefix not in scope:
            self._fail(f"Unbound namespace prefix {prefix!r}", offset)
        return scope[prefix]

    # -- text ------------------------------------------------------------

    def _unescape(self, raw: str, offset: int) -> str:
        if "&" not in raw:
            return raw
        parts = []
        pos = 0
        while True:
            amp = raw.find("&", pos)
            if amp == -1:
                parts.append(raw[pos:])
                return "".join(parts)
            parts.append(raw[pos:amp])
            match = ENTITY_PATTERN.match(raw, amp)
            if match is None:
                self._fail("Unescaped '&' or malformed entity reference", offset + amp)
            parts.append(self._resolve_entity(match.group(1), offset + amp))
            pos = match.end()

    def _resolve_entity(self, reference: str, offset: int) -> str:
        if reference.startswith("#"):
            codepoint = (int(reference[2:], 16) if reference.startswith("#x")
                         else int(reference[1:]))
            if codepoint == 0 or codepoint > MAX_CODEPOINT or 0xD800 <= codepoint <= 0xDFFF:
                self._fail(f"Invalid character reference &{reference};", offset)
            return chr(codepoint)
        if reference not in PREDEFINED_ENTITIES:
            self._fail(f"Undefined entity &{reference};", offset)
        return PREDEFINED_ENTITIES[reference]

    # -- positions and errors --------------------------------------------

    def _position(self, offset: int) -> EventPosition:
        # Offsets are requested in increasing order, so count incrementally
        content = self.content
        newline = content.rfind("\n", self._cursor, offset)
        if newline != -1:
            self._line += content.count("\n", self._cursor, offset)
            self._line_start = newline + 1
        self._cursor = offset
        return EventPosition(self._line, offset - self._line_start + 1, offset)

    def _require(self, found: int, message: str, offset: int) -> int:
        if found == -1:
            self._fail(message, offset)
        return found

    def _fail(self, message: str, offset: int) -> NoReturn:
        line = self.content.count("\n", 0, offset) + 1
        column = offset - (self.content.rfind("\n", 0, offset) + 1) + 1
        logger.debug(
            "Malformed input",
            extra={
                "component": "xml_tokenizer",
                "correlation_id": self.correlation_id,
                "reason": message,
                "offset": offset,
            },
        )
        raise MalformedInputError(message, line=line, column=column, offset=offset)


def tokenize(content: str, correlation_id: Optional[str] = None) -> Iterator[XMLEvent]:
    """Convenience wrapper yielding the events of ``content``."""
    return XMLTokenizer(content, correlation_id).tokenize()
