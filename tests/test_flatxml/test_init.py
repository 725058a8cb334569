"""Test module for flatxml package initialization."""


def test_package_import() -> None:
    """Test that the package can be imported successfully."""
    # Arrange & Act
    import flatxml

    # Assert
    assert flatxml is not None


def test_package_has_version() -> None:
    """Test that the package has a version attribute."""
    # Arrange & Act
    import flatxml

    # Assert
    assert isinstance(flatxml.__version__, str)
    assert flatxml.__version__ == "0.1.0"


def test_package_has_author() -> None:
    """Test that the package has an author attribute."""
    # Arrange & Act
    import flatxml

    # Assert
    assert flatxml.__author__ == "flatxml Team"


def test_package_all_exports() -> None:
    """Test that every name in __all__ is importable from the package."""
    # Arrange & Act
    import flatxml

    # Assert
    for name in flatxml.__all__:
        assert hasattr(flatxml, name), name
    assert "DocumentTree" in flatxml.__all__
    assert "parse" in flatxml.__all__


def test_level_one_parse_round_trip() -> None:
    """Test the simplest entry point parses and serializes unchanged."""
    # Arrange
    import flatxml

    content = "<root>\n  <item>value</item>\n</root>\n"

    # Act
    tree = flatxml.parse(content)

    # Assert
    assert flatxml.to_string(tree) == content
