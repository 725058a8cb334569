"""Predicate evaluation and the lazy PathQuery iterator.

Comparison policy:

- ``=`` and ``!=`` against a quoted literal compare strings exactly;
- ``<``, ``>``, ``<=``, ``>=`` against a quoted literal compare numbers when
  both sides parse as numbers, strings otherwise;
- a bare numeric literal always compares numerically and fails when the
  other side is not a number;
- a missing attribute makes its condition false.

Predicates naming child tags are evaluated over the Cartesian product of
the matching children of every child reference, each reference bound on
its own, and accept on the first combination that holds. A candidate
lacking any referenced child does not match. The cost grows with the
product of the group sizes.
"""

import heapq
import itertools
import re
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional, Tuple

from ..shared.logging import get_logger
from .grammar import (
    And,
    Axis,
    Condition,
    LastIndex,
    LastValue,
    Literal,
    OperandKind,
    Or,
    PositionIndex,
    Predicate,
    Step,
    child_names,
    compile_address,
)

if TYPE_CHECKING:
    from ..tree.document import DocumentTree

# Virtual position of the document node, parent of all top-level entries
DOCUMENT = -1

# Axes whose results never precede their input node
FORWARD_AXES = (Axis.CHILD, Axis.DESCENDANT, Axis.SELF)

NUMBER_PATTERN = re.compile(r"\s*[-+]?(?:\d+(?:\.\d*)?|\.\d+)\s*")


def _as_number(value: str) -> Optional[float]:
    if NUMBER_PATTERN.fullmatch(value) is None:
        return None
    return float(value)


def _apply(left, operator: str, right) -> bool:
    if operator == "=":
        return left == right
    if operator == "!=":
        return left != right
    if operator == "<":
        return left < right
    if operator == ">":
        return left > right
    if operator == "<=":
        return left <= right
    return left >= right


def compare(actual: str, operator: str, literal: Literal) -> bool:
    """Compare a node-side string with a literal under the policy above."""
    if not literal.quoted:
        number = _as_number(actual)
        return number is not None and _apply(number, operator, float(literal.value))
    if operator in ("=", "!="):
        return _apply(actual, operator, literal.value)
    left, right = _as_number(actual), _as_number(literal.value)
    if left is not None and right is not None:
        return _apply(left, operator, right)
    return _apply(actual, operator, literal.value)


class PredicateEvaluator:
    """Evaluate a predicate tree for one candidate node."""

    def __init__(self, tree: "DocumentTree", predicate: Predicate) -> None:
        self.tree = tree
        self.predicate = predicate
        self.names = child_names(predicate)

    def matches(self, pos: int, position: int, last: int) -> bool:
        if not self.names:
            return self._eval(self.predicate, pos, position, last, {})

        groups = [self.tree.children_by_name(pos, name) for name in self.names]
        if not all(groups):
            return False
        for combination in itertools.product(*groups):
            bindings = dict(enumerate(combination))
            if self._eval(self.predicate, pos, position, last, bindings):
                return True
        return False

    def _eval(
        self,
        predicate: Predicate,
        pos: int,
        position: int,
        last: int,
        bindings: Dict[int, int],
    ) -> bool:
        if isinstance(predicate, And):
            return (self._eval(predicate.left, pos, position, last, bindings)
                    and self._eval(predicate.right, pos, position, last, bindings))
        if isinstance(predicate, Or):
            return (self._eval(predicate.left, pos, position, last, bindings)
                    or self._eval(predicate.right, pos, position, last, bindings))
        if isinstance(predicate, PositionIndex):
            return position == predicate.index
        if isinstance(predicate, LastIndex):
            return position == last - predicate.offset
        return self._condition(predicate, pos, position, last, bindings)

    def _condition(
        self,
        condition: Condition,
        pos: int,
        position: int,
        last: int,
        bindings: Dict[int, int],
    ) -> bool:
        node = self.tree.node(pos)
        operator, value = condition.operator, condition.value

        if condition.kind is OperandKind.POSITION:
            if isinstance(value, LastValue):
                return _apply(position, operator, last - value.offset)
            return _apply(position, operator, int(value.value))

        if condition.kind is OperandKind.ANY_ATTRIBUTE:
            if operator is None:
                return node.attr_count() > 0
            return any(compare(attr, operator, value) for _, attr in node.iter_attrs())

        if condition.kind is OperandKind.ATTRIBUTE:
            actual = node.get_attr(condition.name)
        elif condition.kind is OperandKind.TEXT:
            actual = node.text or ""
        else:
            actual = self.tree.node(bindings[condition.slot]).text or ""

        if actual is None:
            return False
        if operator is None:
            return True
        return compare(actual, operator, value)


class PathQuery:
    """Single-pass iterator over positions matching an address.

    Pending (position, step) pairs sit in a heap ordered by position. When
    every step moves forward in the document (``/``, ``//`` and ``.``) a
    finished entry popped from the heap precedes anything still pending,
    so forward queries yield in document order and stop as soon as the
    caller does. Reverse queries, and addresses using ``..``, collect every
    match first and then yield them in order. Compilation happens eagerly,
    so a malformed address raises
    :class:`~flatxml.shared.exceptions.QuerySyntaxError` on construction.
    """

    def __init__(self, tree: "DocumentTree", address: str, start: int, forward: bool = True) -> None:
        self.tree = tree
        self.address = address
        self.forward = forward
        self.steps = compile_address(address)
        self._heap: List[Tuple[int, int]] = [(start, 0)]
        self._queued = {(start, 0)}
        self._seen = set()
        self._buffer: Optional[List[int]] = None
        self._lazy = forward and all(step.axis in FORWARD_AXES for step in self.steps)
        self.logger = get_logger(__name__, tree.config.correlation_id, "path_query")
        if start != DOCUMENT and tree.node(start) is None:
            self._heap = []
        self.logger.debug(
            "Compiled address",
            extra={"address": address, "steps": len(self.steps), "start": start},
        )

    def __iter__(self) -> Iterator[int]:
        return self

    def __next__(self) -> int:
        if self._lazy:
            pos = self._next_match()
            if pos is None:
                raise StopIteration
            return pos
        if self._buffer is None:
            # Popped from the end
            self._buffer = sorted(iter(self._next_match, None), reverse=self.forward)
        if not self._buffer:
            raise StopIteration
        return self._buffer.pop()

    def _next_match(self) -> Optional[int]:
        while self._heap:
            pos, step_index = heapq.heappop(self._heap)
            if step_index >= len(self.steps):
                if pos == DOCUMENT or pos in self._seen:
                    continue
                self._seen.add(pos)
                return pos
            for found in self._select(self.steps[step_index], pos):
                item = (found, step_index + 1)
                if item not in self._queued:
                    self._queued.add(item)
                    heapq.heappush(self._heap, item)
        return None

    def _candidates(self, step: Step, pos: int) -> List[int]:
        tree = self.tree
        if step.axis is Axis.SELF:
            return [pos]
        if step.axis is Axis.PARENT:
            if pos == DOCUMENT:
                return []
            parent = tree.parent(pos)
            return [DOCUMENT if parent is None else parent]
        if pos == DOCUMENT:
            if step.axis is Axis.CHILD:
                return tree.top_level()
            return list(range(len(tree)))
        if step.axis is Axis.CHILD:
            return tree.children(pos)
        return tree.descendant(pos)

    def _select(self, step: Step, pos: int) -> List[int]:
        candidates = self._candidates(step, pos)
        tree = self.tree

        if step.attribute is not None:
            if step.attribute == "*":
                candidates = [c for c in candidates if c != DOCUMENT and tree.node(c).attr_count()]
            else:
                candidates = [c for c in candidates
                              if c != DOCUMENT and tree.node(c).get_attr(step.attribute) is not None]
        elif step.test == "*":
            candidates = [c for c in candidates if c != DOCUMENT and tree.node(c).is_element]
        elif step.test:
            candidates = [c for c in candidates if c != DOCUMENT and tree.node(c).name == step.test]

        if step.predicate is None:
            return candidates
        evaluator = PredicateEvaluator(tree, step.predicate)
        last = len(candidates)
        return [c for i, c in enumerate(candidates)
                if c != DOCUMENT and evaluator.matches(c, i + 1, last)]
