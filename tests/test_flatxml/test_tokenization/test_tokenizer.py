"""Tests for the strict XML tokenizer."""

from typing import List

import pytest

from flatxml.shared.exceptions import MalformedInputError
from flatxml.tokenization import EventPosition, EventType, XMLEvent, XMLTokenizer, tokenize


def events(content: str) -> List[XMLEvent]:
    return list(tokenize(content))


class TestEventPosition:
    """Test EventPosition validation."""

    def test_valid_position(self) -> None:
        position = EventPosition(line=1, column=1, offset=0)

        assert position.line == 1

    @pytest.mark.parametrize("line, column, offset", [(0, 1, 0), (1, 0, 0), (1, 1, -1)])
    def test_invalid_position(self, line: int, column: int, offset: int) -> None:
        with pytest.raises(ValueError):
            EventPosition(line=line, column=column, offset=offset)


class TestXMLTokenizer:
    """Test event production for well-formed input."""

    def test_event_sequence(self) -> None:
        """Test the basic construct types in order."""
        result = events('<?xml version="1.0"?><a x="1">t<b/></a>')

        assert [e.type for e in result] == [
            EventType.DECLARATION,
            EventType.START,
            EventType.TEXT,
            EventType.EMPTY,
            EventType.END,
        ]
        assert result[0].attributes == [("version", "1.0")]
        assert result[1].attributes == [("x", "1")]
        assert result[2].text == "t"

    def test_declaration_pseudo_attributes(self) -> None:
        result = events("<?xml version='1.1' encoding='UTF-8' standalone='no'?><a/>")

        assert result[0].attributes == [
            ("version", "1.1"),
            ("encoding", "UTF-8"),
            ("standalone", "no"),
        ]

    def test_positions_track_lines(self) -> None:
        """Test that line and column point at the start of each construct."""
        result = events("<a>\n  <b/>\n</a>")

        empty = next(e for e in result if e.type is EventType.EMPTY)
        assert (empty.position.line, empty.position.column) == (2, 3)
        assert empty.position.offset == 6

    def test_entities_are_unescaped(self) -> None:
        result = events('<a t="&quot;x&quot;">&lt;&amp;&gt; &#65;&#x42;</a>')

        assert result[0].attributes == [("t", '"x"')]
        assert result[1].text == "<&> AB"

    def test_synthetic_constructs(self) -> None:
        """Test comment, CDATA, PI and doctype bodies."""
        result = events(
            "<!DOCTYPE a [<!ELEMENT a ANY>]><a><!-- note --><![CDATA[x<y]]><?pi data?></a>"
        )

        assert [e.type for e in result] == [
            EventType.DOCTYPE,
            EventType.START,
            EventType.COMMENT,
            EventType.CDATA,
            EventType.PI,
            EventType.END,
        ]
        assert result[0].text == "a [<!ELEMENT a ANY>]"
        assert result[2].text == " note "
        assert result[3].text == "x<y"
        assert result[4].name == "pi"
        assert result[4].text == "pi data"

    def test_namespaces_resolve(self) -> None:
        result = events('<r xmlns="urn:d" xmlns:p="urn:p"><p:x/><y/></r>')

        assert result[0].namespace == "urn:d"
        assert (result[1].prefix, result[1].local_name, result[1].namespace) == ("p", "x", "urn:p")
        assert result[2].namespace == "urn:d"

    def test_leading_bom_character_is_skipped(self) -> None:
        result = events("\ufeff<a/>")

        assert [e.type for e in result] == [EventType.EMPTY]

    def test_single_use_instance(self) -> None:
        tokenizer = XMLTokenizer("<a/>", correlation_id="tok-1")

        assert len(list(tokenizer.tokenize())) == 1
        assert tokenizer.correlation_id == "tok-1"


class TestMalformedInput:
    """Test that well-formedness violations raise MalformedInputError."""

    @pytest.mark.parametrize(
        "content, reason",
        [
            ("<a></b>", "Mismatched end tag"),
            ("<a>", "Unclosed element"),
            ("</a>", "without matching start tag"),
            ('<a x="1" x="2"/>', "Duplicate attribute"),
            ("<a x=1/>", "Expected quoted value"),
            ('<a x="<"/>', "'<' is not allowed"),
            ("<a>&bogus;</a>", "Undefined entity"),
            ("<a>a & b</a>", "Unescaped '&'"),
            ("<a>&#0;</a>", "Invalid character reference"),
            ("<a>]]></a>", "']]>' is not allowed"),
            ("<a><!-- x -- y --></a>", "'--' is not allowed"),
            ("<a><!-- x </a>", "Unterminated comment"),
            ("<a/><?xml version='1.0'?>", "only allowed at the start"),
            ("<a><?xml-stylesheet?><?XML x?></a>", "Invalid processing instruction target"),
            ("<p:a/>", "Unbound namespace prefix"),
            ('<a xmlns:xmlns="urn:x"/>', "Reserved namespace prefix"),
            ("<a><!ENTITY x 'y'></a>", "Unsupported markup declaration"),
            ("<a b/>", "Expected '='"),
        ],
    )
    def test_rejects(self, content: str, reason: str) -> None:
        with pytest.raises(MalformedInputError, match=reason):
            events(content)

    def test_error_location(self) -> None:
        """Test that errors report line and column of the offending markup."""
        with pytest.raises(MalformedInputError) as exc_info:
            events("<a>\n<b></a>")

        error = exc_info.value
        assert (error.line, error.column, error.offset) == (2, 4, 7)
        assert "line 2, column 4" in str(error)
