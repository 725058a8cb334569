"""NodeRecord: one XML construct inside a flat DocumentTree sequence."""

from dataclasses import dataclass, field, replace
from typing import Iterator, List, Optional, Tuple

# Sentinel local names for constructs that are not elements
COMMENT_NAME = "<Comment>"
CDATA_NAME = "<CData>"
PI_NAME = "<PI>"
DOCTYPE_NAME = "<DocType>"

SYNTHETIC_NAMES = (COMMENT_NAME, CDATA_NAME, PI_NAME, DOCTYPE_NAME)


@dataclass
class NodeRecord:
    """A single entry of a DocumentTree.

    ``text`` distinguishes absence from emptiness: ``None`` serializes as a
    self-closing tag, ``""`` as an open/close pair with an empty body.
    ``identity`` and ``label`` are assigned by the owning tree; a record
    built by a caller for insertion only needs a name (and optionally
    attributes and text).

    Attributes:
        local_name: Element name without prefix, or a synthetic sentinel
        namespace: Namespace URI the name resolved to at parse time
        prefix: Namespace prefix as written
        attributes: Ordered (qualified name, value) pairs with unique names
        text: Content between the start tag and the first child
        tail: Content after the node's end, up to the next sibling or parent end
        identity: Tree-unique integer, stable across mutations
        label: Path label shared with siblings, e.g. ``#0#3#``
    """

    local_name: str
    namespace: str = ""
    prefix: str = ""
    attributes: List[Tuple[str, str]] = field(default_factory=list)
    text: Optional[str] = None
    tail: str = ""
    identity: int = 0
    label: str = ""

    def __post_init__(self) -> None:
        """Validate node values."""
        if not self.local_name:
            raise ValueError("local_name must not be empty")
        if self.identity < 0:
            raise ValueError("identity must be >= 0")
        names = [name for name, _ in self.attributes]
        if len(names) != len(set(names)):
            raise ValueError("attribute names must be unique")

    @classmethod
    def element(
        cls,
        name: str,
        attributes: Optional[List[Tuple[str, str]]] = None,
        text: Optional[str] = None,
        namespace: str = "",
    ) -> "NodeRecord":
        """Build an element from a possibly prefixed name (``p:local``)."""
        prefix, sep, local_name = name.partition(":")
        if not sep:
            prefix, local_name = "", name
        return cls(
            local_name,
            namespace=namespace,
            prefix=prefix,
            attributes=list(attributes or []),
            text=text,
        )

    @classmethod
    def comment(cls, text: str) -> "NodeRecord":
        return cls(COMMENT_NAME, text=text)

    @classmethod
    def cdata(cls, text: str) -> "NodeRecord":
        return cls(CDATA_NAME, text=text)

    @classmethod
    def processing_instruction(cls, text: str) -> "NodeRecord":
        """Build a PI; ``text`` is everything between ``<?`` and ``?>``."""
        return cls(PI_NAME, text=text)

    @classmethod
    def doctype(cls, text: str) -> "NodeRecord":
        return cls(DOCTYPE_NAME, text=text)

    @property
    def name(self) -> str:
        """Qualified name as written in the document."""
        if self.prefix:
            return f"{self.prefix}:{self.local_name}"
        return self.local_name

    @property
    def tag(self) -> str:
        """Name in Clark notation, ``{uri}local`` when namespaced."""
        if self.namespace:
            return f"{{{self.namespace}}}{self.local_name}"
        return self.local_name

    @property
    def is_synthetic(self) -> bool:
        return self.local_name.startswith("<") and self.local_name.endswith(">")

    @property
    def is_element(self) -> bool:
        return not self.is_synthetic

    def get_attr(self, name: str) -> Optional[str]:
        for key, value in self.attributes:
            if key == name:
                return value
        return None

    def set_attr(self, name: str, value: str) -> None:
        """Replace an attribute value in place, or append a new attribute."""
        for i, (key, _) in enumerate(self.attributes):
            if key == name:
                self.attributes[i] = (name, value)
                return
        self.attributes.append((name, value))

    def remove_attr(self, name: str) -> Optional[str]:
        """Remove an attribute and return its former value."""
        for i, (key, value) in enumerate(self.attributes):
            if key == name:
                del self.attributes[i]
                return value
        return None

    def attr_count(self) -> int:
        return len(self.attributes)

    def iter_attrs(self) -> Iterator[Tuple[str, str]]:
        return iter(self.attributes)

    def copy(self) -> "NodeRecord":
        """Independent copy; the attribute list is not shared."""
        return replace(self, attributes=list(self.attributes))
