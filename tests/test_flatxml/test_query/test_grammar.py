"""Tests for address splitting, step compilation and predicate parsing."""

import pytest

from flatxml.query import (
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
from flatxml.query.grammar import child_names
from flatxml.shared.exceptions import QuerySyntaxError


class TestSplitAddress:
    """Test splitting an address into separator-prefixed pieces."""

    @pytest.mark.parametrize(
        "address, pieces",
        [
            ("a", ["a"]),
            ("/a/b", ["/a", "/b"]),
            ("a//b", ["a", "//b"]),
            ("//a/b[@x='1/2']", ["//a", "/b[@x='1/2']"]),
            ('//a[c="]"]/d', ['//a[c="]"]', "/d"]),
            ("//a[(b/c)]", ["//a[(b/c)]"]),
        ],
    )
    def test_split(self, address: str, pieces) -> None:
        assert split_address(address) == pieces

    @pytest.mark.parametrize("address", ["a[b", "a]", "a[@x='1]", 'a[@x="1'])
    def test_unbalanced(self, address: str) -> None:
        with pytest.raises(QuerySyntaxError):
            split_address(address)


class TestCompileAddress:
    """Test address compilation into steps."""

    def test_bare_step_means_descendant(self) -> None:
        assert compile_address("a") == (Step(Axis.DESCENDANT, "a"),)

    def test_absolute_path(self) -> None:
        assert compile_address("/a/b") == (Step(Axis.CHILD, "a"), Step(Axis.CHILD, "b"))

    def test_descendant_separator(self) -> None:
        assert compile_address("//a//b") == (
            Step(Axis.DESCENDANT, "a"),
            Step(Axis.DESCENDANT, "b"),
        )

    def test_self_and_parent(self) -> None:
        assert compile_address("./b") == (Step(Axis.CHILD, "b"),)
        assert compile_address("..") == (Step(Axis.PARENT),)
        assert compile_address(".") == (Step(Axis.SELF),)
        assert compile_address("//b/..") == (Step(Axis.DESCENDANT, "b"), Step(Axis.PARENT))

    def test_wildcard_and_attribute_steps(self) -> None:
        assert compile_address("//*") == (Step(Axis.DESCENDANT, "*"),)
        assert compile_address("//@id") == (Step(Axis.DESCENDANT, "*", attribute="id"),)
        assert compile_address("/a/@*") == (
            Step(Axis.CHILD, "a"),
            Step(Axis.CHILD, "*", attribute="*"),
        )

    def test_prefixed_names(self) -> None:
        assert compile_address("//p:item") == (Step(Axis.DESCENDANT, "p:item"),)

    def test_step_with_predicate(self) -> None:
        (step,) = compile_address("//b[@x='2']")

        assert step.test == "b"
        assert step.predicate == Condition(OperandKind.ATTRIBUTE, "x", "=", Literal("2"))

    @pytest.mark.parametrize(
        "address",
        ["", "   ", "a//", "///a", "a b", "//b[@x=]", "//b[1]x", "/1a", "//b[]"],
    )
    def test_syntax_errors(self, address: str) -> None:
        with pytest.raises(QuerySyntaxError):
            compile_address(address)

    def test_error_carries_address(self) -> None:
        with pytest.raises(QuerySyntaxError) as exc_info:
            compile_address("//b[@x=]")

        assert exc_info.value.address == "//b[@x=]"
        assert isinstance(exc_info.value, ValueError)


class TestParsePredicate:
    """Test the typed predicate tree."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("2", PositionIndex(2)),
            ("last()", LastIndex()),
            ("last()-1", LastIndex(1)),
            ("last( ) - 2", LastIndex(2)),
        ],
    )
    def test_index_forms(self, text: str, expected) -> None:
        assert parse_predicate(text) == expected

    def test_position_comparisons(self) -> None:
        assert parse_predicate("position()=last()") == Condition(
            OperandKind.POSITION, "", "=", LastValue()
        )
        assert parse_predicate("position() < last()-1") == Condition(
            OperandKind.POSITION, "", "<", LastValue(1)
        )
        assert parse_predicate("position()>=2") == Condition(
            OperandKind.POSITION, "", ">=", Literal("2", quoted=False)
        )

    def test_operands(self) -> None:
        assert parse_predicate("@id") == Condition(OperandKind.ATTRIBUTE, "id")
        assert parse_predicate("@*") == Condition(OperandKind.ANY_ATTRIBUTE, "*")
        assert parse_predicate("text()!='x'") == Condition(
            OperandKind.TEXT, "", "!=", Literal("x")
        )
        assert parse_predicate("price > 9.5") == Condition(
            OperandKind.CHILD, "price", ">", Literal("9.5", quoted=False), slot=0
        )

    def test_precedence_and_grouping(self) -> None:
        """Test that 'and' binds tighter than 'or' and parentheses override it."""
        a = Condition(OperandKind.ATTRIBUTE, "a", "=", Literal("1"))
        b = Condition(OperandKind.ATTRIBUTE, "b", "=", Literal("2"))
        c = Condition(OperandKind.CHILD, "c", slot=0)

        assert parse_predicate("@a='1' or @b='2' and c") == Or(a, And(b, c))
        assert parse_predicate("(@a='1' or @b='2') and c") == And(Or(a, b), c)

    def test_each_child_reference_gets_a_slot(self) -> None:
        predicate = parse_predicate("c='1' and c='2' or d")

        assert child_names(predicate) == ["c", "c", "d"]
        assert predicate.left.right.slot == 1

    def test_quoted_values(self) -> None:
        assert parse_predicate("@x='it\\'s'") == Condition(
            OperandKind.ATTRIBUTE, "x", "=", Literal("it's")
        )
        assert parse_predicate('@x="a and b"') == Condition(
            OperandKind.ATTRIBUTE, "x", "=", Literal("a and b")
        )

    def test_negative_numbers(self) -> None:
        assert parse_predicate("@x > -5") == Condition(
            OperandKind.ATTRIBUTE, "x", ">", Literal("-5", quoted=False)
        )
        assert parse_predicate("text()>=-0.5") == Condition(
            OperandKind.TEXT, "", ">=", Literal("-0.5", quoted=False)
        )

    @pytest.mark.parametrize(
        "text",
        [
            "@x > -'5'",
            "@x > -",
            "text()",
            "position()",
            "@x=last()",
            "position()='1'",
            "position()=1.5",
            "1.5",
            "@x='1' and",
            "(@x='1'",
            "@x='1')",
            "@x ~ 1",
            "= 1",
        ],
    )
    def test_rejects(self, text: str) -> None:
        with pytest.raises(QuerySyntaxError):
            parse_predicate(text)
