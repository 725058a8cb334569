"""Address grammar: splitting, step parsing and the typed predicate tree.

An address is a sequence of steps separated by ``/`` (children) or ``//``
(descendants)::

    address   := step (('/' | '//') step)*
    step      := ('.' | '..' | '@' name | '@*' | name | '*') ['[' predicate ']']
    predicate := index | or_expr
    index     := integer | 'last()' ['-' integer]
    or_expr   := and_expr ('or' and_expr)*
    and_expr  := primary ('and' primary)*
    primary   := '(' or_expr ')' | condition
    condition := operand [op value]
    operand   := '@' name | '@*' | 'text()' | 'position()' | name
    value     := string | ['-'] number | 'last()' ['-' integer]
    op        := '=' | '!=' | '<' | '>' | '<=' | '>='

A leading bare step with no separator means ``//step``; a leading ``.`` is
dropped unless it is the whole address, and a leading ``..`` selects the
parent. Anything else raises
:class:`~flatxml.shared.exceptions.QuerySyntaxError`.
"""

import re
from dataclasses import dataclass
from enum import Enum, auto
from functools import lru_cache
from typing import List, Optional, Tuple, Union

from ..shared.exceptions import QuerySyntaxError

NAME = r"[^\W\d][\w.\-]*(?::[^\W\d][\w.\-]*)?"
STEP_PATTERN = re.compile(rf"(?P<attr>@)?(?P<test>{NAME}|\*)")
KEYWORDS = ("and", "or")

TOKEN_PATTERN = re.compile(
    r"""
    (?P<space>\s+)
  | (?P<string>'(?:\\.|[^'\\])*'|"(?:\\.|[^"\\])*")
  | (?P<number>\d+(?:\.\d+)?)
  | (?P<func>(?:text|position|last)\s*\(\s*\))
  | (?P<op>!=|<=|>=|=|<|>)
  | (?P<lparen>\()
  | (?P<rparen>\))
  | (?P<minus>-)
  | (?P<attr>@(?:\*|""" + NAME + r"""))
  | (?P<name>""" + NAME + r""")
    """,
    re.VERBOSE,
)


class Axis(Enum):
    """Where a step looks for candidates relative to its input node."""

    CHILD = auto()       # /name
    DESCENDANT = auto()  # //name
    SELF = auto()        # .
    PARENT = auto()      # ..


class OperandKind(Enum):
    ATTRIBUTE = auto()      # @name
    ANY_ATTRIBUTE = auto()  # @*
    TEXT = auto()           # text()
    POSITION = auto()       # position()
    CHILD = auto()          # bare child tag name


@dataclass(frozen=True)
class Literal:
    """A comparison value. ``quoted`` is False for bare numbers."""

    value: str
    quoted: bool = True


@dataclass(frozen=True)
class LastValue:
    """``last()`` or ``last() - offset`` used as a comparison value."""

    offset: int = 0


Value = Union[Literal, LastValue]


@dataclass(frozen=True)
class Condition:
    """One comparison, or an existence test when ``operator`` is None.

    Child-tag operands carry a ``slot``: every occurrence of a child name is
    bound independently, so ``c='1' and c='2'`` may pick two different children.
    """

    kind: OperandKind
    name: str = ""
    operator: Optional[str] = None
    value: Optional[Value] = None
    slot: Optional[int] = None


@dataclass(frozen=True)
class And:
    left: "Predicate"
    right: "Predicate"


@dataclass(frozen=True)
class Or:
    left: "Predicate"
    right: "Predicate"


@dataclass(frozen=True)
class PositionIndex:
    """Bracket holding a bare integer: ``[2]`` means ``position()=2``."""

    index: int


@dataclass(frozen=True)
class LastIndex:
    """Bracket holding ``last()`` or ``last()-N``."""

    offset: int = 0


Predicate = Union[And, Or, Condition, PositionIndex, LastIndex]


@dataclass(frozen=True)
class Step:
    """One compiled selection step.

    Attributes:
        axis: Candidate source relative to the input node
        test: Qualified name, ``*`` for any element, ``""`` for ``.``/``..``
        attribute: Attribute name (or ``*``) for ``@`` steps
        predicate: Optional filter applied after the name test
    """

    axis: Axis
    test: str = ""
    attribute: Optional[str] = None
    predicate: Optional[Predicate] = None


def split_address(address: str) -> List[str]:
    """Split at ``/`` outside quotes and brackets; ``//`` stays one separator.

    Every piece but possibly the first starts with ``/`` or ``//``.
    """
    stack: List[str] = []
    splits: List[int] = []
    i = 0
    while i < len(address):
        char = address[i]
        if stack and stack[-1] in "'\"":
            if char == "\\":
                i += 2
                continue
            if char == stack[-1]:
                stack.pop()
        elif char in "'\"[":
            stack.append(char)
        elif char == "]":
            if not stack:
                raise QuerySyntaxError("Unbalanced ']'", address, i)
            stack.pop()
        elif char == "/" and not stack:
            if not splits or splits[-1] + 1 < i:
                splits.append(i)
        i += 1
    if stack:
        missing = "]" if stack[-1] == "[" else stack[-1]
        raise QuerySyntaxError(f"Missing closing {missing!r}", address, len(address))

    bounds = [0] + splits + [len(address)]
    pieces = [address[start:end] for start, end in zip(bounds, bounds[1:])]
    return pieces if pieces[0] else pieces[1:]


@lru_cache(maxsize=256)
def compile_address(address: str) -> Tuple[Step, ...]:
    """Compile an address into steps.

    Raises:
        QuerySyntaxError: If the address does not follow the grammar
    """
    if not address.strip():
        raise QuerySyntaxError("Empty address", address, 0)

    steps = []
    offset = 0
    pieces = split_address(address)
    for index, piece in enumerate(pieces):
        slashes = len(piece) - len(piece.lstrip("/"))
        body = piece[slashes:].strip()
        if slashes == 0:
            if index != 0:
                raise QuerySyntaxError("Missing '/' between steps", address, offset)
            if body == "." and len(pieces) > 1:
                offset += len(piece)
                continue
            axis = Axis.CHILD if body == ".." else Axis.DESCENDANT
        elif slashes == 1:
            axis = Axis.CHILD
        elif slashes == 2:
            axis = Axis.DESCENDANT
        else:
            raise QuerySyntaxError("Too many '/' in separator", address, offset)
        steps.append(_parse_step(axis, body, address, offset + slashes))
        offset += len(piece)

    return tuple(steps)


def _parse_step(axis: Axis, body: str, address: str, offset: int) -> Step:
    if not body:
        raise QuerySyntaxError("Empty step", address, offset)

    bracket = body.find("[")
    head = body if bracket == -1 else body[:bracket].rstrip()
    predicate = None
    if bracket != -1:
        if not body.endswith("]"):
            raise QuerySyntaxError("Unexpected text after predicate", address, offset)
        predicate = parse_predicate(body[bracket + 1:-1], address, offset + bracket + 1)

    if head == ".":
        return Step(Axis.SELF, predicate=predicate)
    if head == "..":
        return Step(Axis.PARENT, predicate=predicate)

    match = STEP_PATTERN.fullmatch(head)
    if match is None:
        raise QuerySyntaxError(f"Invalid step {head!r}", address, offset)
    if match.group("attr"):
        return Step(axis, "*", attribute=match.group("test"), predicate=predicate)
    return Step(axis, match.group("test"), predicate=predicate)


def _tokenize(text: str, address: str, offset: int) -> List[Tuple[str, str, int]]:
    tokens = []
    pos = 0
    while pos < len(text):
        match = TOKEN_PATTERN.match(text, pos)
        if match is None:
            raise QuerySyntaxError(f"Unexpected character {text[pos]!r}", address, offset + pos)
        kind = match.lastgroup
        value = match.group()
        if kind == "func":
            value = value[:value.index("(")].rstrip() + "()"
        elif kind == "name" and value in KEYWORDS:
            kind = value
        if kind != "space":
            tokens.append((kind, value, offset + pos))
        pos = match.end()
    return tokens


def _unquote(token: str) -> str:
    return re.sub(r"\\(.)", r"\1", token[1:-1])


class _PredicateParser:
    """Recursive-descent parser over predicate tokens."""

    def __init__(self, text: str, address: str, offset: int) -> None:
        self.address = address
        self.end_offset = offset + len(text)
        self.tokens = _tokenize(text, address, offset)
        self.index = 0
        self.slots = 0

    def peek(self, ahead: int = 0) -> Optional[Tuple[str, str, int]]:
        position = self.index + ahead
        return self.tokens[position] if position < len(self.tokens) else None

    def kind(self, ahead: int = 0) -> Optional[str]:
        token = self.peek(ahead)
        return token[0] if token else None

    def advance(self) -> Tuple[str, str, int]:
        token = self.peek()
        if token is None:
            raise QuerySyntaxError("Unexpected end of predicate", self.address, self.end_offset)
        self.index += 1
        return token

    def expect(self, kind: str) -> Tuple[str, str, int]:
        token = self.advance()
        if token[0] != kind:
            raise QuerySyntaxError(f"Expected {kind}, found {token[1]!r}", self.address, token[2])
        return token

    def parse(self) -> Predicate:
        if not self.tokens:
            raise QuerySyntaxError("Empty predicate", self.address, self.end_offset)
        index = self.parse_index()
        if index is not None:
            return index
        predicate = self.parse_or()
        token = self.peek()
        if token is not None:
            raise QuerySyntaxError(f"Unexpected {token[1]!r}", self.address, token[2])
        return predicate

    def parse_index(self) -> Optional[Predicate]:
        kinds = [token[0] for token in self.tokens]
        if kinds == ["number"]:
            return PositionIndex(self._integer(self.tokens[0]))
        if kinds == ["func"] and self.tokens[0][1] == "last()":
            return LastIndex()
        if kinds == ["func", "minus", "number"] and self.tokens[0][1] == "last()":
            return LastIndex(self._integer(self.tokens[2]))
        return None

    def parse_or(self) -> Predicate:
        left = self.parse_and()
        while self.kind() == "or":
            self.advance()
            left = Or(left, self.parse_and())
        return left

    def parse_and(self) -> Predicate:
        left = self.parse_primary()
        while self.kind() == "and":
            self.advance()
            left = And(left, self.parse_primary())
        return left

    def parse_primary(self) -> Predicate:
        if self.kind() == "lparen":
            self.advance()
            inner = self.parse_or()
            self.expect("rparen")
            return inner
        return self.parse_condition()

    def parse_condition(self) -> Condition:
        kind, value, offset = self.advance()
        slot = None
        if kind == "attr":
            name = value[1:]
            operand = OperandKind.ANY_ATTRIBUTE if name == "*" else OperandKind.ATTRIBUTE
        elif kind == "func" and value == "text()":
            operand, name = OperandKind.TEXT, ""
        elif kind == "func" and value == "position()":
            operand, name = OperandKind.POSITION, ""
        elif kind == "name":
            operand, name = OperandKind.CHILD, value
            slot, self.slots = self.slots, self.slots + 1
        else:
            raise QuerySyntaxError(f"Unexpected {value!r}", self.address, offset)

        if self.kind() != "op":
            if operand in (OperandKind.TEXT, OperandKind.POSITION):
                raise QuerySyntaxError(f"{value} needs a comparison", self.address, offset)
            return Condition(operand, name, slot=slot)

        operator = self.advance()[1]
        return Condition(operand, name, operator, self.parse_value(operand), slot)

    def parse_value(self, operand: OperandKind) -> Value:
        kind, value, offset = self.advance()
        if kind == "minus":
            kind, value, _ = self.expect("number")
            value = "-" + value
        if kind == "func" and value == "last()":
            if operand is not OperandKind.POSITION:
                raise QuerySyntaxError("last() only compares with position()", self.address, offset)
            if self.kind() == "minus":
                self.advance()
                return LastValue(self._integer(self.expect("number")))
            return LastValue()
        if kind == "number":
            if operand is OperandKind.POSITION:
                self._integer((kind, value, offset))
            return Literal(value, quoted=False)
        if kind == "string" and operand is not OperandKind.POSITION:
            return Literal(_unquote(value))
        raise QuerySyntaxError(f"Unexpected value {value!r}", self.address, offset)

    def _integer(self, token: Tuple[str, str, int]) -> int:
        if "." in token[1]:
            raise QuerySyntaxError("Expected an integer", self.address, token[2])
        return int(token[1])


def parse_predicate(text: str, address: str = "", offset: int = 0) -> Predicate:
    """Parse the text between ``[`` and ``]`` into a predicate tree."""
    return _PredicateParser(text, address or text, offset).parse()


def child_names(predicate: Optional[Predicate]) -> List[str]:
    """Child tag name of every slot in a predicate, indexed by slot."""
    found: List[Condition] = []
    pending = [predicate] if predicate is not None else []
    while pending:
        current = pending.pop()
        if isinstance(current, (And, Or)):
            pending.extend((current.right, current.left))
        elif isinstance(current, Condition) and current.kind is OperandKind.CHILD:
            found.append(current)
    return [condition.name for condition in sorted(found, key=lambda c: c.slot)]
