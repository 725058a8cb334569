"""DocumentTreeBuilder: turns tokenizer events into a DocumentTree.

The builder keeps the current path label (extended by ``identity#`` on each
start tag, shortened on each end tag) and a mode telling where the next
text event goes: into the text of the element just opened, or into the
tail of whatever was just closed. Comments, CDATA sections, processing
instructions and the doctype become leaf entries with a synthetic name.
"""

from enum import Enum, auto
from typing import List, NoReturn, Optional

from ..character.encoding import decode_document
from ..shared.config import DocumentConfig
from ..shared.exceptions import MalformedInputError
from ..shared.logging import get_logger
from ..tokenization.tokenizer import EventType, XMLEvent, XMLTokenizer
from .document import ROOT_LABEL, DocumentTree, parent_label
from .node import CDATA_NAME, COMMENT_NAME, DOCTYPE_NAME, PI_NAME, NodeRecord

SYNTHETIC_EVENTS = {
    EventType.COMMENT: COMMENT_NAME,
    EventType.CDATA: CDATA_NAME,
    EventType.PI: PI_NAME,
    EventType.DOCTYPE: DOCTYPE_NAME,
}


class ParseMode(Enum):
    """Where the next text event is routed."""

    PROLOG = auto()   # nothing seen yet; whitespace is dropped
    OPENED = auto()   # text of the element just opened
    CLOSED = auto()   # tail of the construct just closed


class DocumentTreeBuilder:
    """Builds DocumentTrees from text or bytes.

    A builder can be reused; each ``build`` call starts from a clean state.
    """

    def __init__(self, config: Optional[DocumentConfig] = None) -> None:
        """Initialize tree builder.

        Args:
            config: Parsing and logging configuration
        """
        self.config = config or DocumentConfig()
        self.correlation_id = self.config.correlation_id
        self.logger = get_logger(__name__, self.correlation_id, "document_tree_builder")

    def build_bytes(self, data: bytes) -> DocumentTree:
        """Decode ``data`` (BOM, declaration, fallback) and build the tree.

        Raises:
            MalformedInputError: If decoding or parsing fails
        """
        text, detected = decode_document(data, self.config.parsing.fallback_encoding)
        self.logger.debug(
            "Decoded input",
            extra={"encoding": detected.encoding, "method": detected.method.value},
        )
        return self.build(text)

    def build(self, content: str) -> DocumentTree:
        """Build a DocumentTree from a complete document string.

        Args:
            content: Well-formed XML text

        Returns:
            The parsed tree with newline and indent detected

        Raises:
            MalformedInputError: If the document is not well-formed
        """
        self.logger.info("Starting tree building", extra={"content_length": len(content)})
        try:
            tree = self._build_tree(content)
        except MalformedInputError as e:
            self.logger.error(
                "Tree building failed",
                extra={"reason": e.reason, "line": e.line, "column": e.column},
            )
            raise

        tree.newline = "\r\n" if "\r\n" in content else "\n"
        if self.config.parsing.detect_indent:
            tree.detect_indent()

        self.logger.info(
            "Tree building completed",
            extra={"node_count": len(tree), "indent": tree.indent},
        )
        return tree

    def _build_tree(self, content: str) -> DocumentTree:
        tree = DocumentTree(self.config)
        max_depth = self.config.parsing.max_depth
        label = ROOT_LABEL
        mode = ParseMode.PROLOG
        last_opened = last_closed = -1
        open_stack: List[int] = []
        seen_root = seen_doctype = False

        for event in XMLTokenizer(content, self.correlation_id).tokenize():
            if event.type is EventType.DECLARATION:
                declared = dict(event.attributes)
                tree.version = declared["version"]
                tree.encoding = declared.get("encoding")
                tree.standalone = declared.get("standalone")
                continue

            if event.type is EventType.TEXT:
                if not open_stack and event.text.strip():
                    self._fail("Text outside the document element", event)
                if mode is ParseMode.OPENED:
                    tree.node(last_opened).text += event.text
                elif mode is ParseMode.CLOSED:
                    tree.node(last_closed).tail += event.text
                continue

            if event.type is EventType.END:
                last_closed = open_stack.pop()
                label = parent_label(label)
                mode = ParseMode.CLOSED
                continue

            if event.type in SYNTHETIC_EVENTS:
                if event.type is EventType.CDATA and not open_stack:
                    self._fail("CDATA section outside the document element", event)
                if event.type is EventType.DOCTYPE:
                    if seen_doctype or seen_root:
                        self._fail("DOCTYPE must precede the document element", event)
                    seen_doctype = True
                record = NodeRecord(SYNTHETIC_EVENTS[event.type], text=event.text)
            else:
                if not open_stack:
                    if seen_root:
                        self._fail("Only one document element is allowed", event)
                    seen_root = True
                if max_depth is not None and len(open_stack) >= max_depth:
                    self._fail(f"Element nesting exceeds max_depth={max_depth}", event)
                record = NodeRecord(
                    event.local_name,
                    namespace=event.namespace,
                    prefix=event.prefix,
                    attributes=event.attributes,
                    text="" if event.type is EventType.START else None,
                )

            record.identity = tree.count
            record.label = label
            pos = tree._push(record)
            tree.count += 1

            if event.type is EventType.START:
                label = f"{label}{record.identity}#"
                open_stack.append(pos)
                last_opened = pos
                mode = ParseMode.OPENED
            else:
                last_closed = pos
                mode = ParseMode.CLOSED

        if not seen_root:
            raise MalformedInputError("No document element found", offset=len(content))
        return tree

    def _fail(self, message: str, event: XMLEvent) -> NoReturn:
        position = event.position
        raise MalformedInputError(
            message, line=position.line, column=position.column, offset=position.offset
        )
