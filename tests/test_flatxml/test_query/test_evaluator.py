"""Tests for predicate evaluation and PathQuery traversal."""

import pytest

from flatxml.query import DOCUMENT, Literal, PathQuery, compare
from flatxml.shared.exceptions import QuerySyntaxError
from flatxml.tree import DocumentTree, NodeRecord

TWO_B = '<a><b x="1"/><b x="2"/></a>'
TWO_C = "<a><c>1</c><c>2</c></a>"
PRICES = '<r><p v="10"/><p v="9"/><p v="abc"/></r>'
NESTED = (
    "<lib>"
    "<shelf id='s1'><book lang='en'><t>A</t></book><book lang='fr'><t>B</t></book></shelf>"
    "<shelf id='s2'><book lang='en'><t>C</t></book></shelf>"
    "</lib>"
)


def find_names(tree: DocumentTree, address: str):
    return [tree.node(pos).name for pos in tree.findall(address)]


class TestCompare:
    """Test the comparison policy."""

    @pytest.mark.parametrize(
        "actual, operator, literal, expected",
        [
            ("abc", "=", Literal("abc"), True),
            ("10", "=", Literal("10.0"), False),
            ("10", "=", Literal("10.0", quoted=False), True),
            (" 5 ", "=", Literal("5", quoted=False), True),
            ("abc", "=", Literal("1", quoted=False), False),
            ("abc", "!=", Literal("1", quoted=False), False),
            ("10", ">", Literal("9"), True),
            ("10", ">", Literal("9", quoted=False), True),
            ("b", ">", Literal("a"), True),
            ("abc", ">", Literal("9"), True),
            ("2", "<=", Literal("2", quoted=False), True),
            ("x", "!=", Literal("y"), True),
        ],
    )
    def test_compare(self, actual: str, operator: str, literal: Literal, expected: bool) -> None:
        assert compare(actual, operator, literal) is expected


class TestQueryBasics:
    """Test the example queries and basic axes."""

    def test_attribute_equality(self) -> None:
        """Test that //b[@x='2'] returns exactly the second b."""
        tree = DocumentTree.parse_str(TWO_B)

        assert tree.findall("//b[@x='2']") == [2]

    def test_last_equals_index(self) -> None:
        """Test that //b[position()=last()] and //b[2] select the same node."""
        tree = DocumentTree.parse_str(TWO_B)

        assert tree.findall("//b[position()=last()]") == [2]
        assert tree.findall("//b[2]") == [2]
        assert tree.findall("//b[last()]") == [2]

    def test_combinatorial_child_match(self) -> None:
        """Test that //a[c='1' and c='2'] matches across two same-named children."""
        tree = DocumentTree.parse_str(TWO_C)

        assert tree.findall("//a[c='1' and c='2']") == [0]
        assert tree.findall("//a[c='1' and c='3']") == []
        assert tree.findall("//a[c]") == [0]
        assert tree.findall("//a[d or c='1']") == []

    def test_root_is_reachable(self) -> None:
        tree = DocumentTree.parse_str(TWO_B)

        assert tree.find("/a") == 0
        assert tree.find("//a") == 0
        assert tree.find("a") == 0
        assert tree.find("/b") is None

    def test_child_and_descendant_axes(self) -> None:
        tree = DocumentTree.parse_str(NESTED)

        assert find_names(tree, "/lib/shelf") == ["shelf", "shelf"]
        assert find_names(tree, "/lib/book") == []
        assert find_names(tree, "/lib//t") == ["t", "t", "t"]
        assert [tree.node(p).text for p in tree.findall("//shelf/book/t")] == ["A", "B", "C"]

    def test_wildcards(self) -> None:
        tree = DocumentTree.parse_str("<a><!-- c --><b/><c/></a>")

        assert tree.findall("//*") == [0, 2, 3]
        assert tree.findall("/a/*") == [2, 3]

    def test_attribute_steps_select_owning_elements(self) -> None:
        tree = DocumentTree.parse_str(NESTED)

        assert find_names(tree, "//@id") == ["shelf", "shelf"]
        assert len(tree.findall("//book/@*")) == 0
        assert len(tree.findall("//@*")) == 5

    def test_parent_step_deduplicates(self) -> None:
        tree = DocumentTree.parse_str(TWO_B)

        assert tree.findall("//b/..") == [0]

    def test_prefixed_names(self) -> None:
        tree = DocumentTree.parse_str('<r xmlns:p="urn:p"><p:x/><x/></r>')

        assert tree.findall("//p:x") == [1]
        assert tree.findall("//x") == [2]

    def test_malformed_address_raises(self) -> None:
        tree = DocumentTree.parse_str(TWO_B)

        with pytest.raises(QuerySyntaxError):
            tree.find("//b[@x='2'")
        with pytest.raises(QuerySyntaxError):
            tree.findall("//b[text()]")


class TestPredicates:
    """Test predicate semantics over candidate sets."""

    def test_numeric_and_string_comparison(self) -> None:
        tree = DocumentTree.parse_str(PRICES)

        assert tree.findall("//p[@v>9]") == [1]
        assert tree.findall("//p[@v>'9']") == [1, 3]
        assert tree.findall("//p[@v='10']") == [1]
        assert tree.findall("//p[@v!='10']") == [2, 3]

    def test_missing_attribute_is_false(self) -> None:
        tree = DocumentTree.parse_str(PRICES)

        assert tree.findall("//p[@missing='1']") == []
        assert tree.findall("//p[@missing='1' or @v='9']") == [2]
        assert tree.findall("//p[@v]") == [1, 2, 3]
        assert tree.findall("//r[@*]") == []

    def test_any_attribute_comparison(self) -> None:
        tree = DocumentTree.parse_str('<a><b x="1" y="2"/><b x="3"/></a>')

        assert tree.findall("//b[@*='2']") == [1]

    def test_positions(self) -> None:
        tree = DocumentTree.parse_str(PRICES)

        assert tree.findall("//p[1]") == [1]
        assert tree.findall("//p[last()-1]") == [2]
        assert tree.findall("//p[position()<3]") == [1, 2]
        assert tree.findall("//p[position()>=last()-1]") == [2, 3]
        assert tree.findall("//p[4]") == []

    def test_positions_are_per_input_node(self) -> None:
        """Test that position() counts candidates of each step input separately."""
        tree = DocumentTree.parse_str(NESTED)

        firsts = tree.findall("//shelf/book[1]")
        assert [tree.node(p).get_attr("lang") for p in firsts] == ["en", "en"]
        assert len(tree.findall("//book[1]")) == 1

    def test_negative_literal(self) -> None:
        tree = DocumentTree.parse_str('<r><p v="-10"/><p v="3"/></r>')

        assert tree.findall("//p[@v > -5]") == [2]
        assert tree.findall("//p[@v<-5]") == [1]

    def test_text_predicate(self) -> None:
        tree = DocumentTree.parse_str(TWO_C)

        assert tree.findall("//c[text()='2']") == [2]
        assert tree.findall("//c[text()>1]") == [2]

    def test_child_predicate_with_attribute(self) -> None:
        tree = DocumentTree.parse_str(NESTED)

        matches = tree.findall("//book[@lang='en' and t='C']")
        assert [tree.node(tree.children(p)[0]).text for p in matches] == ["C"]

    def test_grouped_predicate(self) -> None:
        tree = DocumentTree.parse_str(NESTED)

        matches = tree.findall("//book[(@lang='fr' or t='C') and t]")
        assert [tree.node(tree.children(p)[0]).text for p in matches] == ["B", "C"]


class TestPathQuery:
    """Test the lazy iterator and relative evaluation."""

    def test_is_lazy_iterator(self) -> None:
        tree = DocumentTree.parse_str(PRICES)

        query = PathQuery(tree, "//p", DOCUMENT)

        assert iter(query) is query
        assert next(query) == 1
        assert list(query) == [2, 3]

    def test_reverse_order(self) -> None:
        tree = DocumentTree.parse_str(PRICES)

        assert list(tree.rfind_iter("//p")) == [3, 2, 1]
        assert tree.rfind("//p") == 3

    def test_nested_matches_follow_document_order(self) -> None:
        """Test ordering when matches hang off nested same-name ancestors."""
        tree = DocumentTree.parse_str("<r><a><a><b/></a><b/></a></r>")

        assert list(tree.find_iter("//a/b")) == [3, 4]
        assert list(tree.rfind_iter("//a/b")) == [4, 3]
        assert tree.find("//a/b") == 3
        assert tree.rfind("//a/b") == 4
        assert tree.findall("//a//b") == [3, 4]

    def test_parent_steps_are_ordered(self) -> None:
        tree = DocumentTree.parse_str("<r><a><a><b/></a><b/></a></r>")

        assert tree.findall("//b/..") == [1, 2]
        assert list(tree.rfind_iter("//b/..")) == [2, 1]

    def test_relative_queries(self) -> None:
        tree = DocumentTree.parse_str(NESTED)
        second_shelf = tree.findall("/lib/shelf")[1]

        assert find_names(tree, "//lib") == ["lib"]
        assert [tree.node(p).text for p in tree.findall("t", pos=second_shelf)] == ["C"]
        assert tree.find_at(second_shelf, "..") == 0
        assert tree.find_at(second_shelf, ".") == second_shelf
        assert tree.find_at(second_shelf, "./book") == second_shelf + 1
        assert tree.find_at(second_shelf, "lib") is None

    def test_relative_reverse(self) -> None:
        tree = DocumentTree.parse_str(NESTED)
        first_shelf = tree.find("//shelf")

        texts = [tree.node(p).text for p in tree.rfind_at_iter(first_shelf, "//t")]
        assert texts == ["B", "A"]
        assert tree.node(tree.rfind_at(first_shelf, "book")).get_attr("lang") == "fr"

    def test_invalid_start_yields_nothing(self) -> None:
        tree = DocumentTree.parse_str(TWO_B)

        assert tree.findall("//b", pos=99) == []
        assert tree.find_at(99, "//b") is None

    def test_query_after_mutation(self) -> None:
        tree = DocumentTree.parse_str(TWO_B)
        tree.append_next_node(2, NodeRecord.element("b", [("x", "3")]))

        assert tree.findall("//b[last()]") == [3]
        tree.remove(1)
        assert tree.findall("//b[@x='1']") == []
        assert tree.findall("//b[1]") == [1]
