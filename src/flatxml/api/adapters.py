"""Integration adapters for exchanging documents with other XML libraries.

Conversion always goes through serialized text, so the other library sees
exactly what :meth:`DocumentTree.to_bytes` produces and flatxml sees exactly
what the other library writes back.
"""

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Type

from ..shared.exceptions import FlatXMLError
from ..shared.logging import get_logger
from ..tree.document import DocumentTree

MS_PER_SECOND = 1000


@dataclass
class AdapterMetadata:
    """Metadata about an integration adapter."""

    name: str
    version: str
    target_library: str
    description: str
    supported_versions: List[str] = field(default_factory=list)


@dataclass
class ConversionResult:
    """Result of a conversion operation."""

    success: bool
    converted_data: Any
    original_data: Any
    conversion_time_ms: float
    errors: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)


class IntegrationAdapter(ABC):
    """Base class for bidirectional DocumentTree conversions."""

    def __init__(self, correlation_id: Optional[str] = None) -> None:
        self.correlation_id = correlation_id
        self._logger = get_logger(__name__, correlation_id, self.__class__.__name__)

    @property
    @abstractmethod
    def metadata(self) -> AdapterMetadata:
        """Get adapter metadata."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the target library can be imported."""

    @abstractmethod
    def _to_target(self, data: bytes) -> Any:
        """Build the target object from serialized document bytes."""

    @abstractmethod
    def _from_target(self, target_data: Any) -> bytes:
        """Serialize the target object to document bytes."""

    def to_target(self, tree: DocumentTree) -> ConversionResult:
        """Convert a DocumentTree into the target library's root element."""
        start_time = time.time()
        try:
            converted = self._to_target(tree.to_bytes())
        except (FlatXMLError, SyntaxError, ValueError) as e:
            return self._create_error_result(f"Failed to convert to {self.metadata.name}: {e}",
                                             tree, start_time)
        return ConversionResult(
            success=True,
            converted_data=converted,
            original_data=tree,
            conversion_time_ms=(time.time() - start_time) * MS_PER_SECOND,
            metadata={"node_count": len(tree)},
        )

    def from_target(self, target_data: Any) -> ConversionResult:
        """Convert a target element (or element tree) into a DocumentTree."""
        start_time = time.time()
        if hasattr(target_data, "getroot"):
            target_data = target_data.getroot()
        if not hasattr(target_data, "tag"):
            return self._create_error_result(
                f"Target data is not a valid {self.metadata.name} element", target_data, start_time
            )
        try:
            data = self._from_target(target_data)
            tree = DocumentTree.parse_bytes(data)
        except (FlatXMLError, SyntaxError, ValueError) as e:
            return self._create_error_result(f"Failed to convert from {self.metadata.name}: {e}",
                                             target_data, start_time)
        return ConversionResult(
            success=True,
            converted_data=tree,
            original_data=target_data,
            conversion_time_ms=(time.time() - start_time) * MS_PER_SECOND,
            metadata={"original_tag": target_data.tag, "xml_length": len(data)},
        )

    def _create_error_result(
        self, error_message: str, original_data: Any, start_time: float
    ) -> ConversionResult:
        self._logger.error(error_message)
        return ConversionResult(
            success=False,
            converted_data=None,
            original_data=original_data,
            conversion_time_ms=(time.time() - start_time) * MS_PER_SECOND,
            errors=[error_message],
        )


class AdapterRegistry:
    """Registry for managing integration adapters."""

    def __init__(self) -> None:
        self._adapters: Dict[str, Type[IntegrationAdapter]] = {}
        self._lock = threading.RLock()

    def register(self, adapter_class: Type[IntegrationAdapter]) -> None:
        with self._lock:
            self._adapters[adapter_class().metadata.name] = adapter_class

    def get_adapter(
        self, adapter_name: str, correlation_id: Optional[str] = None
    ) -> Optional[IntegrationAdapter]:
        """Get an adapter instance by name, or None if unknown or unavailable."""
        with self._lock:
            adapter_class = self._adapters.get(adapter_name)
        if adapter_class is None:
            return None
        instance = adapter_class(correlation_id)
        return instance if instance.is_available() else None

    def list_available_adapters(self) -> List[AdapterMetadata]:
        with self._lock:
            classes = list(self._adapters.values())
        return [adapter.metadata for adapter in (cls() for cls in classes) if adapter.is_available()]


class LxmlAdapter(IntegrationAdapter):
    """Adapter for bidirectional conversion with lxml.etree."""

    @property
    def metadata(self) -> AdapterMetadata:
        return AdapterMetadata(
            name="lxml",
            version="1.0.0",
            target_library="lxml",
            supported_versions=["4.0+"],
            description="Bidirectional conversion between DocumentTree and lxml.etree",
        )

    def is_available(self) -> bool:
        try:
            import lxml.etree  # noqa: F401
        except ImportError:
            return False
        return True

    def _to_target(self, data: bytes) -> Any:
        import lxml.etree as ET

        return ET.fromstring(data)

    def _from_target(self, target_data: Any) -> bytes:
        import lxml.etree as ET

        return ET.tostring(target_data.getroottree(), encoding="utf-8", xml_declaration=True)


class ElementTreeAdapter(IntegrationAdapter):
    """Adapter for bidirectional conversion with xml.etree.ElementTree."""

    @property
    def metadata(self) -> AdapterMetadata:
        return AdapterMetadata(
            name="elementtree",
            version="1.0.0",
            target_library="xml.etree.ElementTree",
            supported_versions=["3.8+"],
            description="Bidirectional conversion between DocumentTree and ElementTree",
        )

    def is_available(self) -> bool:
        return True

    def _to_target(self, data: bytes) -> Any:
        import xml.etree.ElementTree as ET

        return ET.fromstring(data)

    def _from_target(self, target_data: Any) -> bytes:
        import xml.etree.ElementTree as ET

        return ET.tostring(target_data, encoding="utf-8", xml_declaration=True)


# Global adapter registry instance
_adapter_registry = AdapterRegistry()
_adapter_registry.register(LxmlAdapter)
_adapter_registry.register(ElementTreeAdapter)


def register_adapter(adapter_class: Type[IntegrationAdapter]) -> None:
    """Register an integration adapter globally."""
    _adapter_registry.register(adapter_class)


def get_adapter(
    adapter_name: str, correlation_id: Optional[str] = None
) -> Optional[IntegrationAdapter]:
    """Get a registered adapter instance, or None if unavailable."""
    return _adapter_registry.get_adapter(adapter_name, correlation_id)


def list_available_adapters() -> List[AdapterMetadata]:
    return _adapter_registry.list_available_adapters()
