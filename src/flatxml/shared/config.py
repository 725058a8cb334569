"""Configuration classes for flatxml.

Configuration is split per layer (parsing, serialization) and assembled into
an immutable :class:`DocumentConfig`. Every dataclass validates itself in
``__post_init__`` and the top-level object turns those ``ValueError``s into
:class:`ConfigValidationError`.
"""

import codecs
import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
VALID_QUOTES = ('"', "'")
VALID_NEWLINES = ("\n", "\r\n", "\r")


@dataclass
class ParsingConfig:
    """Configuration for turning input into a DocumentTree."""

    fallback_encoding: str = "utf-8"
    detect_indent: bool = True
    enable_index: bool = False
    max_depth: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate parsing configuration."""
        try:
            codecs.lookup(self.fallback_encoding)
        except LookupError as e:
            raise ValueError(f"Unknown fallback_encoding: {self.fallback_encoding}") from e
        if self.max_depth is not None and self.max_depth <= 0:
            raise ValueError("max_depth must be > 0 or None")


@dataclass
class SerializationConfig:
    """Configuration for writing a DocumentTree back to text."""

    write_declaration: bool = True
    declaration_newline: Optional[str] = None  # None: use the tree's newline
    attribute_quote: str = '"'

    def __post_init__(self) -> None:
        """Validate serialization configuration."""
        if self.attribute_quote not in VALID_QUOTES:
            raise ValueError("attribute_quote must be '\"' or \"'\"")
        if (
            self.declaration_newline is not None
            and self.declaration_newline not in VALID_NEWLINES
        ):
            raise ValueError("declaration_newline must be one of \\n, \\r\\n, \\r or None")


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field_name = field_name
        self.suggestions = suggestions or []


_SECTIONS = ("parsing", "serialization")


@dataclass(frozen=True)
class DocumentConfig:
    """Immutable configuration shared by the parser, tree and serializer.

    Thread-safe due to frozen dataclass implementation.
    """

    parsing: ParsingConfig = field(default_factory=ParsingConfig)
    serialization: SerializationConfig = field(default_factory=SerializationConfig)
    correlation_id: Optional[str] = None
    logging_level: str = "WARNING"

    def __post_init__(self) -> None:
        """Validate the complete configuration."""
        try:
            self.parsing.__post_init__()
            self.serialization.__post_init__()
        except ValueError as e:
            raise ConfigValidationError(str(e)) from e
        if self.logging_level not in VALID_LOG_LEVELS:
            raise ConfigValidationError(
                f"Invalid logging_level: {self.logging_level}",
                field_name="logging_level",
                suggestions=list(VALID_LOG_LEVELS),
            )

    def override(self, **kwargs: Any) -> "DocumentConfig":
        """Create a new configuration with specific overrides.

        Args:
            **kwargs: Field overrides; nested fields use ``section__field``

        Returns:
            New DocumentConfig instance with overrides applied

        Example:
            >>> config = DocumentConfig().override(parsing__enable_index=True)
        """
        nested: Dict[str, Dict[str, Any]] = {}
        top_level: Dict[str, Any] = {}
        for key, value in kwargs.items():
            if "__" in key:
                section, field_name = key.split("__", 1)
                if section not in _SECTIONS:
                    raise ConfigValidationError(
                        f"Unknown configuration section: {section}",
                        field_name=key,
                        suggestions=list(_SECTIONS),
                    )
                nested.setdefault(section, {})[field_name] = value
            else:
                top_level[key] = value

        try:
            for section, values in nested.items():
                top_level[section] = replace(getattr(self, section), **values)
        except (TypeError, ValueError) as e:
            raise ConfigValidationError(str(e)) from e
        return replace(self, **top_level)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format."""
        result: Dict[str, Any] = {}
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            if hasattr(value, "__dataclass_fields__"):
                value = {key: getattr(value, key) for key in value.__dataclass_fields__}
            result[name] = value
        return result

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DocumentConfig":
        """Create configuration from dictionary.

        Unknown keys are rejected rather than ignored.
        """
        section_types = {"parsing": ParsingConfig, "serialization": SerializationConfig}
        values: Dict[str, Any] = {}
        try:
            for key, value in data.items():
                if key in section_types:
                    values[key] = section_types[key](**value)
                elif key in cls.__dataclass_fields__:
                    values[key] = value
                else:
                    raise ConfigValidationError(f"Unknown configuration key: {key}", field_name=key)
        except (TypeError, ValueError) as e:
            raise ConfigValidationError(str(e)) from e
        return cls(**values)

    @classmethod
    def from_json(cls, json_str: str) -> "DocumentConfig":
        """Create configuration from JSON string."""
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid configuration JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError("Configuration JSON must be an object")
        return cls.from_dict(data)

    # Preset factory methods
    @classmethod
    def indexed(cls) -> "DocumentConfig":
        """Preset keeping the identity index, for edit-heavy sessions."""
        return cls(parsing=ParsingConfig(enable_index=True))

    @classmethod
    def compact(cls) -> "DocumentConfig":
        """Preset for minimal output: no declaration, no indent detection."""
        return cls(
            parsing=ParsingConfig(detect_indent=False),
            serialization=SerializationConfig(write_declaration=False),
        )
