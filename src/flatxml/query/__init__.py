"""Path-query engine: address grammar and lazy evaluation over a DocumentTree."""

from .evaluator import DOCUMENT, PathQuery, PredicateEvaluator, compare
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
    Step,
    compile_address,
    parse_predicate,
    split_address,
)

__all__ = [
    "DOCUMENT",
    "PathQuery",
    "PredicateEvaluator",
    "compare",
    "And",
    "Axis",
    "Condition",
    "LastIndex",
    "LastValue",
    "Literal",
    "OperandKind",
    "Or",
    "PositionIndex",
    "Step",
    "compile_address",
    "parse_predicate",
    "split_address",
]
