"""XMLSerializer: replays a DocumentTree's flat sequence as XML text.

Nesting is recovered by comparing each entry's label with the previous one:

- equal labels: siblings, so the previous node is closed;
- the current label is the previous node's child label: descend;
- the previous label extends the current one: close the previous node and
  then its ancestors until the current node's sibling group is reached.

Any other relationship means the labels no longer describe a tree and
raises :class:`~flatxml.shared.exceptions.StructuralCorruptionError`.
"""

from typing import TYPE_CHECKING, List, Optional, Tuple
from xml.sax.saxutils import escape

from ..shared.config import DocumentConfig
from ..shared.exceptions import StructuralCorruptionError
from ..shared.logging import get_logger
from .node import CDATA_NAME, COMMENT_NAME, DOCTYPE_NAME, PI_NAME, NodeRecord

# Whitespace a reader would otherwise normalize, kept as character references
ATTRIBUTE_WHITESPACE_ENTITIES = {"\t": "&#9;", "\n": "&#10;", "\r": "&#13;"}

if TYPE_CHECKING:
    from .document import DocumentTree


def _child_label(node: NodeRecord) -> str:
    return f"{node.label}{node.identity}#"


class XMLSerializer:
    """Writes trees using the serialization section of a DocumentConfig."""

    def __init__(self, config: Optional[DocumentConfig] = None) -> None:
        self.config = config or DocumentConfig()
        self.quote = self.config.serialization.attribute_quote
        self.attribute_entities = dict(ATTRIBUTE_WHITESPACE_ENTITIES)
        self.attribute_entities[self.quote] = "&quot;" if self.quote == '"' else "&apos;"
        self.logger = get_logger(__name__, self.config.correlation_id, "xml_serializer")

    def serialize(self, tree: "DocumentTree") -> str:
        """Serialize ``tree`` to a string.

        Raises:
            StructuralCorruptionError: If two consecutive labels cannot be related
        """
        parts: List[str] = []
        settings = self.config.serialization
        if settings.write_declaration and tree.version is not None:
            parts.append(self._declaration(tree))
            parts.append(settings.declaration_newline or tree.newline or "\n")

        nodes = list(tree)
        # Open elements whose children are being written, with their opened flag
        stack: List[Tuple[NodeRecord, bool]] = []
        previous: Optional[NodeRecord] = None
        previous_opened = False

        for i, node in enumerate(nodes):
            if previous is not None:
                if node.label == previous.label:
                    self._close(parts, previous, previous_opened)
                elif node.label == _child_label(previous):
                    stack.append((previous, previous_opened))
                elif previous.label.startswith(node.label):
                    self._close(parts, previous, previous_opened)
                    while stack:
                        parent, opened = stack[-1]
                        if _child_label(parent) == node.label:
                            break
                        if not parent.label.startswith(node.label):
                            raise StructuralCorruptionError(previous.label, node.label)
                        stack.pop()
                        self._close(parts, parent, opened)
                        if parent.label == node.label:
                            break
                else:
                    self.logger.error(
                        "Unrelated consecutive labels",
                        extra={"previous_label": previous.label, "label": node.label},
                    )
                    raise StructuralCorruptionError(previous.label, node.label)

            has_children = i + 1 < len(nodes) and nodes[i + 1].label == _child_label(node)
            previous_opened = self._open(parts, node, has_children)
            previous = node

        if previous is not None:
            self._close(parts, previous, previous_opened)
        while stack:
            parent, opened = stack.pop()
            self._close(parts, parent, opened)
        return "".join(parts)

    def _declaration(self, tree: "DocumentTree") -> str:
        q = self.quote
        declaration = f"<?xml version={q}{tree.version}{q}"
        if tree.encoding is not None:
            declaration += f" encoding={q}{tree.encoding}{q}"
        if tree.standalone is not None:
            declaration += f" standalone={q}{tree.standalone}{q}"
        return declaration + "?>"

    def _open(self, parts: List[str], node: NodeRecord, has_children: bool) -> bool:
        """Write the start of ``node``; returns whether an end tag is owed."""
        text = node.text or ""
        if node.local_name == COMMENT_NAME:
            parts.append(f"<!--{text}-->")
            return False
        if node.local_name == CDATA_NAME:
            parts.append(f"<![CDATA[{text}]]>")
            return False
        if node.local_name == PI_NAME:
            parts.append(f"<?{text}?>")
            return False
        if node.local_name == DOCTYPE_NAME:
            parts.append(f"<!DOCTYPE {text}>")
            return False

        q = self.quote
        attributes = "".join(
            f" {name}={q}{escape(value, self.attribute_entities)}{q}"
            for name, value in node.attributes
        )
        if node.text is None and not has_children:
            parts.append(f"<{node.name}{attributes}/>")
            return False
        parts.append(f"<{node.name}{attributes}>")
        parts.append(escape(text))
        return True

    def _close(self, parts: List[str], node: NodeRecord, opened: bool) -> None:
        if opened:
            parts.append(f"</{node.name}>")
        parts.append(escape(node.tail))
