"""DocumentTree: an editable XML document stored as a flat pre-order sequence.

There are no parent or child pointers. Every entry carries a path label
(``#`` followed by the identities of its ancestors, each closed by ``#``),
and all relationships are derived from labels:

- siblings share the same label;
- the children of a node carry ``node.label + str(node.identity) + "#"``;
- descendants carry that string as a prefix, and because labels are laid
  out in traversal order a forward scan can stop at the first entry that
  lacks it.

Insertion is two-phase. A *cell* (slot, label, tail and the whitespace
fix-ups the neighbours need) is prepared first, then committed in one step.
Positions are sequence indexes and may shift after any mutation; identities
never change while a node stays in its tree. Invalid positions yield
``None`` or an empty list, never an exception.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

from ..query.evaluator import DOCUMENT, PathQuery
from ..shared.config import DocumentConfig
from ..shared.logging import get_logger
from .node import CDATA_NAME, DOCTYPE_NAME, NodeRecord

ROOT_LABEL = "#"


def parent_label(label: str) -> Optional[str]:
    """Label of the parent's sibling group, or None for top-level labels."""
    if label == ROOT_LABEL:
        return None
    return label[:label.rindex("#", 0, len(label) - 1) + 1]


def last_segment(label: str) -> Optional[int]:
    """Identity of the parent encoded as the last label segment."""
    if label == ROOT_LABEL:
        return None
    return int(label[label.rindex("#", 0, len(label) - 1) + 1:-1])


def child_label(node: NodeRecord) -> str:
    return f"{node.label}{node.identity}#"


def _top_level(tree: "DocumentTree") -> List[NodeRecord]:
    return [node for node in tree if node.label == ROOT_LABEL]


def trailing_whitespace(value: Optional[str]) -> str:
    if not value:
        return ""
    return value[len(value.rstrip()):]


@dataclass
class _Cell:
    """Prepared insertion point."""

    slot: int
    label: str
    tail: str
    updates: List[Tuple[NodeRecord, str, str]] = field(default_factory=list)

    def apply(self) -> None:
        for record, attribute, value in self.updates:
            setattr(record, attribute, value)


class DocumentTree:
    """Ordered pre-order sequence of NodeRecords plus document metadata.

    Not thread-safe. Take a :meth:`copy` before sharing a tree with another
    thread.
    """

    def __init__(self, config: Optional[DocumentConfig] = None) -> None:
        self.config = config or DocumentConfig()
        self.count = 0
        self.indent = ""
        self.newline = ""
        self._nodes: List[NodeRecord] = []
        self._version: Optional[str] = None
        self._encoding: Optional[str] = None
        self._standalone: Optional[str] = None
        self._index: Optional[Dict[int, int]] = None
        self.logger = get_logger(__name__, self.config.correlation_id, "document_tree")
        if self.config.parsing.enable_index:
            self.enable_index = True

    # -- construction ----------------------------------------------------

    @classmethod
    def from_node(cls, node: NodeRecord, config: Optional[DocumentConfig] = None) -> "DocumentTree":
        """Create a tree whose only entry is ``node`` as the root."""
        tree = cls(config)
        record = node.copy()
        record.identity = 0
        record.label = ROOT_LABEL
        tree._push(record)
        tree.count = 1
        tree.version = "1.0"
        return tree

    @classmethod
    def parse_str(cls, content: str, config: Optional[DocumentConfig] = None) -> "DocumentTree":
        from .builder import DocumentTreeBuilder

        return DocumentTreeBuilder(config).build(content)

    @classmethod
    def parse_bytes(cls, data: bytes, config: Optional[DocumentConfig] = None) -> "DocumentTree":
        from .builder import DocumentTreeBuilder

        return DocumentTreeBuilder(config).build_bytes(data)

    @classmethod
    def parse_file(
        cls, path: Union[str, Path], config: Optional[DocumentConfig] = None
    ) -> "DocumentTree":
        return cls.parse_bytes(Path(path).read_bytes(), config)

    def _push(self, record: NodeRecord) -> int:
        """Append a fully labelled record at the end of the sequence."""
        self._nodes.append(record)
        pos = len(self._nodes) - 1
        if self._index is not None:
            self._index[record.identity] = pos
        return pos

    def copy(self) -> "DocumentTree":
        """Deep, independent snapshot of this tree."""
        tree = DocumentTree(self.config)
        tree._nodes = [node.copy() for node in self._nodes]
        tree.count = self.count
        tree.indent = self.indent
        tree.newline = self.newline
        tree._version = self._version
        tree._encoding = self._encoding
        tree._standalone = self._standalone
        tree.enable_index = self.enable_index
        return tree

    # -- declaration and index -------------------------------------------

    @property
    def version(self) -> Optional[str]:
        return self._version

    @version.setter
    def version(self, value: Optional[str]) -> None:
        self._version = value

    @property
    def encoding(self) -> Optional[str]:
        return self._encoding

    @encoding.setter
    def encoding(self, value: Optional[str]) -> None:
        self._encoding = value

    @property
    def standalone(self) -> Optional[str]:
        return self._standalone

    @standalone.setter
    def standalone(self, value: Optional[str]) -> None:
        if value not in (None, "yes", "no"):
            raise ValueError("standalone must be 'yes', 'no' or None")
        self._standalone = value

    @property
    def enable_index(self) -> bool:
        return self._index is not None

    @enable_index.setter
    def enable_index(self, enabled: bool) -> None:
        if enabled:
            self._index = {}
            self._reindex_positions(0)
        else:
            self._index = None

    def _reindex_positions(self, start: int) -> None:
        if self._index is None:
            return
        for pos in range(start, len(self._nodes)):
            self._index[self._nodes[pos].identity] = pos

    # -- navigation ------------------------------------------------------

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[NodeRecord]:
        return iter(self._nodes)

    def _valid(self, pos: Optional[int]) -> bool:
        return isinstance(pos, int) and 0 <= pos < len(self._nodes)

    def node(self, pos: Optional[int]) -> Optional[NodeRecord]:
        if not self._valid(pos):
            return None
        return self._nodes[pos]

    def root(self) -> Optional[int]:
        """Position of the document element: the first non-synthetic entry."""
        for pos, node in enumerate(self._nodes):
            if not node.is_synthetic:
                return pos
        return None

    def top_level(self) -> List[int]:
        """Positions of the entries labelled ``#``, the document element included."""
        return [pos for pos, node in enumerate(self._nodes) if node.label == ROOT_LABEL]

    def pos(self, identity: int) -> Optional[int]:
        """Current position of the node with ``identity``."""
        if self._index is not None:
            return self._index.get(identity)
        for pos, node in enumerate(self._nodes):
            if node.identity == identity:
                return pos
        return None

    def parent(self, pos: int) -> Optional[int]:
        if not self._valid(pos):
            return None
        label = self._nodes[pos].label
        target = parent_label(label)
        if target is None:
            return None
        if self._index is not None:
            return self._index.get(last_segment(label))
        for i in range(pos - 1, -1, -1):
            if self._nodes[i].label == target:
                return i
        return None

    def children(self, pos: int) -> List[int]:
        if not self._valid(pos):
            return []
        prefix = child_label(self._nodes[pos])
        result = []
        for i in range(pos + 1, len(self._nodes)):
            label = self._nodes[i].label
            if label == prefix:
                result.append(i)
            elif not label.startswith(prefix):
                break
        return result

    def children_by_name(self, pos: int, name: str) -> List[int]:
        return [i for i in self.children(pos) if self._nodes[i].name == name]

    def descendant(self, pos: int) -> List[int]:
        if not self._valid(pos):
            return []
        return list(range(pos + 1, self._block_end(pos)))

    def previous(self, pos: int) -> Optional[int]:
        if not self._valid(pos):
            return None
        label = self._nodes[pos].label
        for i in range(pos - 1, -1, -1):
            current = self._nodes[i].label
            if current == label:
                return i
            if not current.startswith(label):
                break
        return None

    def next(self, pos: int) -> Optional[int]:
        if not self._valid(pos):
            return None
        label = self._nodes[pos].label
        for i in range(pos + 1, len(self._nodes)):
            current = self._nodes[i].label
            if current == label:
                return i
            if not current.startswith(label):
                break
        return None

    def _block_end(self, pos: int) -> int:
        """Index one past the last descendant of ``pos``."""
        prefix = child_label(self._nodes[pos])
        end = pos + 1
        while end < len(self._nodes) and self._nodes[end].label.startswith(prefix):
            end += 1
        return end

    # -- insertion -------------------------------------------------------

    def _leading_whitespace(self, pos: int) -> Optional[str]:
        """Whitespace currently separating ``pos`` from what precedes it."""
        # Only trailing whitespace moves; text content stays with its owner
        prev = self.previous(pos)
        if prev is not None:
            return trailing_whitespace(self._nodes[prev].tail)
        parent = self.parent(pos)
        if parent is not None:
            return trailing_whitespace(self._nodes[parent].text)
        return None

    def _next_cell(self, pos: int) -> _Cell:
        current = self._nodes[pos]
        cell = _Cell(self._block_end(pos), current.label, current.tail)
        supplied = self._leading_whitespace(pos)
        if supplied is not None:
            cell.updates.append((current, "tail", supplied))
        return cell

    def _first_cell(self, pos: int) -> _Cell:
        """Cell placing a new node right before ``pos``, which has no previous sibling."""
        supplied = self._leading_whitespace(pos)
        return _Cell(pos, self._nodes[pos].label, self.newline if supplied is None else supplied)

    def _child_cell(self, pos: int) -> _Cell:
        current = self._nodes[pos]
        children = self.children(pos)
        if children:
            last = children[-1]
            cell = _Cell(self._block_end(last), child_label(current), self._nodes[last].tail)
            supplied = self._leading_whitespace(last)
            if supplied is not None:
                cell.updates.append((self._nodes[last], "tail", supplied))
            return cell

        supplied = self._leading_whitespace(pos)
        tail = self.newline if supplied is None else supplied
        cell = _Cell(pos + 1, child_label(current), tail)
        if current.text is None or not current.text.strip():
            cell.updates.append((current, "text", tail + self.indent))
        return cell

    def _previous_cell(self, pos: int) -> _Cell:
        prev = self.previous(pos)
        if prev is not None:
            return self._next_cell(prev)
        return self._first_cell(pos)

    def _commit_node(self, cell: _Cell, node: NodeRecord) -> int:
        cell.apply()
        record = node.copy()
        record.identity = self.count
        record.label = cell.label
        record.tail = cell.tail
        self.count += 1
        self._nodes.insert(cell.slot, record)
        self._reindex_positions(cell.slot)
        self.logger.debug(
            "Inserted node",
            extra={"identity": record.identity, "position": cell.slot, "label": cell.label},
        )
        return cell.slot

    def _breaks_prolog(self, pos: int, incoming: List[NodeRecord], after: bool) -> bool:
        """Whether placing top-level ``incoming`` beside ``pos`` makes the document unparsable.

        Outside the document element only comments, processing instructions
        and a single doctype ahead of the document element may appear.
        """
        if self._nodes[pos].label != ROOT_LABEL:
            return False
        root = self.root()
        elements = sum(1 for node in incoming if node.is_element)
        if any(node.local_name == CDATA_NAME for node in incoming):
            return True
        if elements and (root is not None or elements > 1):
            return True
        if any(node.local_name == DOCTYPE_NAME for node in incoming):
            if any(node.local_name == DOCTYPE_NAME for node in self._nodes):
                return True
            if root is not None and (pos > root or (after and pos == root)):
                return True
        return False

    def _refuse(self, pos: int, operation: str) -> None:
        self.logger.warning(
            "Refused insertion outside the document element",
            extra={"position": pos, "operation": operation},
        )

    def append_next_node(self, pos: int, node: NodeRecord) -> Optional[int]:
        """Insert ``node`` as the next sibling of ``pos`` and return its position.

        Returns None for an invalid ``pos`` and for top-level insertions that
        would add a second document element or misplace CDATA or a doctype.
        """
        if not self._valid(pos):
            return None
        if self._breaks_prolog(pos, [node], after=True):
            self._refuse(pos, "append_next_node")
            return None
        return self._commit_node(self._next_cell(pos), node)

    def append_previous_node(self, pos: int, node: NodeRecord) -> Optional[int]:
        """Insert ``node`` as the previous sibling of ``pos`` and return its position."""
        if not self._valid(pos):
            return None
        if self._breaks_prolog(pos, [node], after=False):
            self._refuse(pos, "append_previous_node")
            return None
        return self._commit_node(self._previous_cell(pos), node)

    def append_child_node(self, pos: int, node: NodeRecord) -> Optional[int]:
        """Insert ``node`` as the last child of ``pos`` and return its position."""
        if not self._valid(pos) or self._nodes[pos].is_synthetic:
            return None
        return self._commit_node(self._child_cell(pos), node)

    # -- subtrees --------------------------------------------------------

    def subtree(self, pos: int) -> Optional["DocumentTree"]:
        """Clone ``pos`` and its descendants into a new tree rooted at label ``#``."""
        if not self._valid(pos):
            return None
        tree = DocumentTree(self.config)
        cut = len(self._nodes[pos].label) - 1
        for node in self._nodes[pos:self._block_end(pos)]:
            record = node.copy()
            record.label = record.label[cut:]
            tree._push(record)
        tree.count = self.count
        tree.indent = self.indent
        tree.newline = self.newline
        tree._version = self._version
        tree._encoding = self._encoding
        tree._standalone = self._standalone
        return tree

    def subtree_reindex(self, start: int) -> Tuple[int, int]:
        """Renumber identities to ``start .. start+len-1`` in document order.

        Labels are rewritten alongside. When the target range overlaps the
        identities currently in use the tree is first moved to a disjoint
        high range, so that no intermediate state holds two equal identities.

        Returns:
            The (start, end) identity range now in use; ``end`` is the next
            free identity.
        """
        end = start + len(self._nodes)
        current = [node.identity for node in self._nodes]
        if current and any(start <= identity < end for identity in current):
            high = max(max(current), end) + 1
            self._renumber(high)
        self._renumber(start)
        self.count = max(self.count, end)
        return start, end

    def _renumber(self, start: int) -> None:
        mapping = {node.identity: start + i for i, node in enumerate(self._nodes)}
        for node in self._nodes:
            node.identity = mapping[node.identity]
            segments = node.label.strip("#")
            if segments:
                node.label = "#" + "".join(
                    f"{mapping[int(segment)]}#" for segment in segments.split("#")
                )
        if self._index is not None:
            self._index = {}
            self._reindex_positions(0)

    def _commit_tree(self, cell: _Cell, tree: "DocumentTree") -> Optional[int]:
        if not len(tree):
            return None
        incoming = tree.copy()
        _, end = incoming.subtree_reindex(self.count)
        incoming._nodes[incoming.top_level()[-1]].tail = cell.tail

        cell.apply()
        for record in incoming._nodes:
            record.label = cell.label + record.label[1:]
        self._nodes[cell.slot:cell.slot] = incoming._nodes
        self.count = end
        self._reindex_positions(cell.slot)
        self.logger.debug(
            "Grafted subtree",
            extra={"nodes": len(incoming), "position": cell.slot, "label": cell.label},
        )
        return cell.slot

    def append_next_tree(self, pos: int, tree: "DocumentTree") -> Optional[int]:
        """Graft a copy of ``tree`` after ``pos``; returns the position of its first entry."""
        if not self._valid(pos):
            return None
        if self._breaks_prolog(pos, _top_level(tree), after=True):
            self._refuse(pos, "append_next_tree")
            return None
        return self._commit_tree(self._next_cell(pos), tree)

    def append_previous_tree(self, pos: int, tree: "DocumentTree") -> Optional[int]:
        if not self._valid(pos):
            return None
        if self._breaks_prolog(pos, _top_level(tree), after=False):
            self._refuse(pos, "append_previous_tree")
            return None
        return self._commit_tree(self._previous_cell(pos), tree)

    def append_child_tree(self, pos: int, tree: "DocumentTree") -> Optional[int]:
        if not self._valid(pos) or self._nodes[pos].is_synthetic:
            return None
        return self._commit_tree(self._child_cell(pos), tree)

    # -- removal ---------------------------------------------------------

    def remove(self, pos: int) -> Optional[NodeRecord]:
        """Remove ``pos`` with all its descendants and return the removed record."""
        if not self._valid(pos):
            return None
        current = self._nodes[pos]
        prev = self.previous(pos)
        if prev is not None:
            self._nodes[prev].tail = current.tail
        elif self.next(pos) is None:
            parent = self.parent(pos)
            if parent is not None:
                owner = self._nodes[parent]
                if self.indent and owner.text and owner.text.endswith(self.indent):
                    owner.text = owner.text[:-len(self.indent)]

        end = self._block_end(pos)
        removed = self._nodes[pos:end]
        del self._nodes[pos:end]
        if self._index is not None:
            for record in removed:
                self._index.pop(record.identity, None)
            self._reindex_positions(pos)
        self.logger.debug(
            "Removed node",
            extra={"identity": current.identity, "position": pos, "nodes": len(removed)},
        )
        return current

    # -- indentation -----------------------------------------------------

    def noindent(self) -> str:
        """Strip indentation from every text and tail.

        Returns:
            The previous newline + indent unit, suitable for :meth:`pretty`
        """
        previous = self.newline + self.indent
        for node in self._nodes:
            node.tail = node.tail.strip()
            if node.text is not None and not node.is_synthetic:
                node.text = node.text.strip()
        self.newline = ""
        self.indent = ""
        return previous

    def _set_indent(self, indent: str) -> None:
        if "\r\n" in indent:
            self.newline = "\r\n"
        elif "\n" in indent:
            self.newline = "\n"
        elif "\r" in indent:
            self.newline = "\r"
        elif not self.newline:
            self.newline = "\n"
        self.indent = indent[max(indent.rfind("\n"), indent.rfind("\r")) + 1:]

    def pretty(self, indent: str) -> None:
        """Re-indent the whole document.

        Args:
            indent: Indent unit, optionally preceded by the newline to use
                (``"  "``, ``"\\n\\t"``, ``"\\r\\n    "``)
        """
        self._set_indent(indent)
        newline, unit = self.newline, self.indent
        for pos in self.top_level():
            self._nodes[pos].tail = newline

        root = self.root()
        if root is None:
            return
        end = self._block_end(root)
        base = self._nodes[root].label.count("#")

        # A node is the last child of its parent when no later entry shares its label
        has_next = [False] * (end - root)
        seen = set()
        for i in range(end - 1, root, -1):
            label = self._nodes[i].label
            has_next[i - root] = label in seen
            seen.add(label)

        for i in range(root, end):
            node = self._nodes[i]
            level = node.label.count("#") - base
            if i > root:
                depth = level if has_next[i - root] else level - 1
                node.tail = node.tail.strip() + newline + unit * depth
            if i + 1 < end and self._nodes[i + 1].label == child_label(node):
                node.text = (node.text or "").strip() + newline + unit * (level + 1)
            elif node.text is not None and not node.is_synthetic:
                node.text = node.text.strip()

    def detect_indent(self) -> str:
        """Infer the indent unit from the last element's surroundings."""
        self.indent = ""
        candidate = None
        for pos in range(len(self._nodes) - 1, -1, -1):
            if not self._nodes[pos].is_synthetic:
                candidate = pos
                break
        if candidate is None:
            return self.indent

        tail = self._nodes[candidate].tail
        prev = self.previous(candidate)
        if prev is not None:
            supplier: Optional[str] = self._nodes[prev].tail
        else:
            parent = self.parent(candidate)
            supplier = self._nodes[parent].text if parent is not None else None
        if supplier is None:
            return self.indent

        if supplier.startswith(tail):
            unit = supplier[len(tail):]
        elif tail.startswith(supplier):
            unit = tail[len(supplier):]
        else:
            unit = ""
        if unit.strip(" \t"):
            unit = ""
        self.indent = unit
        return unit

    # -- queries ---------------------------------------------------------

    def find_at_iter(self, pos: int, address: str) -> PathQuery:
        """Lazily yield positions matching ``address`` relative to ``pos``, in document order."""
        return PathQuery(self, address, pos, forward=True)

    def rfind_at_iter(self, pos: int, address: str) -> PathQuery:
        """Like :meth:`find_at_iter` but in reverse document order."""
        return PathQuery(self, address, pos, forward=False)

    def find_iter(self, address: str) -> PathQuery:
        """Evaluate ``address`` from the document node, so ``/a`` and ``//a`` can select the root."""
        return PathQuery(self, address, DOCUMENT, forward=True)

    def rfind_iter(self, address: str) -> PathQuery:
        return PathQuery(self, address, DOCUMENT, forward=False)

    def find_at(self, pos: int, address: str) -> Optional[int]:
        return next(self.find_at_iter(pos, address), None)

    def rfind_at(self, pos: int, address: str) -> Optional[int]:
        return next(self.rfind_at_iter(pos, address), None)

    def find(self, address: str) -> Optional[int]:
        return next(self.find_iter(address), None)

    def rfind(self, address: str) -> Optional[int]:
        return next(self.rfind_iter(address), None)

    def findall(self, address: str, pos: Optional[int] = None) -> List[int]:
        if pos is None:
            return list(self.find_iter(address))
        return list(self.find_at_iter(pos, address))

    # -- output ----------------------------------------------------------

    def to_string(self) -> str:
        from .serializer import XMLSerializer

        return XMLSerializer(self.config).serialize(self)

    def to_bytes(self) -> bytes:
        """Serialize and encode with the declared encoding (UTF-8 by default)."""
        return self.to_string().encode(self._encoding or "utf-8")

    def write_file(self, path: Union[str, Path]) -> None:
        Path(path).write_bytes(self.to_bytes())

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        root = self.root()
        name = self._nodes[root].name if root is not None else None
        return f"<DocumentTree root={name!r} nodes={len(self._nodes)}>"
