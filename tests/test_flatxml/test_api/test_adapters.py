"""Tests for integration adapters."""

import xml.etree.ElementTree as ET

import pytest

from flatxml.api.adapters import (
    AdapterMetadata,
    ElementTreeAdapter,
    IntegrationAdapter,
    LxmlAdapter,
    get_adapter,
    list_available_adapters,
    register_adapter,
)
from flatxml.tree import DocumentTree


class TestElementTreeAdapter:
    """Test conversions with xml.etree.ElementTree."""

    def test_metadata(self) -> None:
        metadata = ElementTreeAdapter().metadata

        assert metadata.name == "elementtree"
        assert metadata.target_library == "xml.etree.ElementTree"

    def test_to_target(self) -> None:
        tree = DocumentTree.parse_str('<a x="1"><b>text</b></a>')

        result = ElementTreeAdapter().to_target(tree)

        assert result.success
        assert result.converted_data.tag == "a"
        assert result.converted_data.get("x") == "1"
        assert result.converted_data.find("b").text == "text"
        assert result.metadata["node_count"] == 2

    def test_from_target_element(self) -> None:
        element = ET.fromstring("<a><b>1</b><b>2</b></a>")

        result = ElementTreeAdapter().from_target(element)

        assert result.success
        tree = result.converted_data
        assert [tree.node(p).text for p in tree.findall("//b")] == ["1", "2"]
        assert result.metadata["original_tag"] == "a"

    def test_from_target_element_tree(self) -> None:
        document = ET.ElementTree(ET.fromstring("<a/>"))

        result = ElementTreeAdapter().from_target(document)

        assert result.success
        assert result.converted_data.node(0).name == "a"

    def test_attribute_whitespace_round_trip(self) -> None:
        """Test that newlines and tabs in attribute values reach ElementTree and come back."""
        tree = DocumentTree.parse_str('<r a="x&#10;y" b="&#9;t"/>')
        adapter = ElementTreeAdapter()

        element = adapter.to_target(tree).converted_data

        assert element.get("a") == "x\ny"
        assert element.get("b") == "\tt"
        back = adapter.from_target(element).converted_data
        assert back.node(0).get_attr("a") == "x\ny"

    def test_from_target_rejects_non_elements(self) -> None:
        result = ElementTreeAdapter().from_target("not an element")

        assert not result.success
        assert result.converted_data is None
        assert "not a valid elementtree element" in result.errors[0]


class TestLxmlAdapter:
    """Test conversions with lxml."""

    def test_round_trip(self) -> None:
        pytest.importorskip("lxml")
        adapter = get_adapter("lxml")
        tree = DocumentTree.parse_str('<a xmlns:p="urn:p"><p:b k="v"/></a>')

        to_result = adapter.to_target(tree)
        from_result = adapter.from_target(to_result.converted_data)

        assert isinstance(adapter, LxmlAdapter)
        assert to_result.converted_data[0].tag == "{urn:p}b"
        assert from_result.success
        converted = from_result.converted_data
        assert converted.node(1).tag == "{urn:p}b"
        assert converted.node(1).get_attr("k") == "v"


class TestRegistry:
    """Test the global adapter registry."""

    def test_get_adapter(self) -> None:
        adapter = get_adapter("elementtree", correlation_id="conv-1")

        assert isinstance(adapter, ElementTreeAdapter)
        assert adapter.correlation_id == "conv-1"

    def test_unknown_adapter(self) -> None:
        assert get_adapter("no-such-library") is None

    def test_list_available(self) -> None:
        names = [metadata.name for metadata in list_available_adapters()]

        assert "elementtree" in names

    def test_register_custom_adapter(self) -> None:
        class UnavailableAdapter(IntegrationAdapter):
            @property
            def metadata(self) -> AdapterMetadata:
                return AdapterMetadata("unavailable", "0.0.1", "nothing", "Never available")

            def is_available(self) -> bool:
                return False

            def _to_target(self, data: bytes):
                return data

            def _from_target(self, target_data) -> bytes:
                return target_data

        register_adapter(UnavailableAdapter)

        assert get_adapter("unavailable") is None
        assert "unavailable" not in [m.name for m in list_available_adapters()]
