"""Correlation-aware logging for flatxml.

Every layer logs through :class:`CorrelationLogger`, which stamps each record
with the emitting component and an optional correlation id so that a parse,
an edit session and the queries run against it can be followed in the logs.
"""

import logging
from typing import Any, Dict, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(component)s] %(message)s"


class CorrelationLogger:
    """Logger that automatically includes correlation ID and component information."""

    def __init__(
        self,
        name: str,
        correlation_id: Optional[str] = None,
        component: Optional[str] = None
    ) -> None:
        """Initialize correlation logger.

        Args:
            name: Logger name (typically __name__)
            correlation_id: Optional correlation ID for request tracking
            component: Component name for structured logging
        """
        self.logger = logging.getLogger(name)
        self.correlation_id = correlation_id
        self.component = component or name.split(".")[-1]

    def bind(self, correlation_id: Optional[str]) -> "CorrelationLogger":
        """Return a logger for the same component tagged with another id."""
        return CorrelationLogger(self.logger.name, correlation_id, self.component)

    def is_enabled_for(self, level: int) -> bool:
        return self.logger.isEnabledFor(level)

    def _get_extra(self, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        combined_extra = {
            "component": self.component,
            "correlation_id": self.correlation_id,
        }
        if extra:
            combined_extra.update(extra)
        return combined_extra

    def debug(self, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        """Log debug message with correlation info."""
        self.logger.debug(message, extra=self._get_extra(extra))

    def info(self, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        """Log info message with correlation info."""
        self.logger.info(message, extra=self._get_extra(extra))

    def warning(self, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        """Log warning message with correlation info."""
        self.logger.warning(message, extra=self._get_extra(extra))

    def error(
        self,
        message: str,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: bool = False
    ) -> None:
        """Log error message with correlation info."""
        self.logger.error(message, extra=self._get_extra(extra), exc_info=exc_info)

    def exception(self, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        """Log exception message with correlation info and traceback."""
        self.logger.exception(message, extra=self._get_extra(extra))


class _ComponentDefaults(logging.Filter):
    """Fill in ``component`` for records emitted by plain stdlib loggers."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "component"):
            record.component = record.name.split(".")[-1]
        return True


def get_logger(
    name: str,
    correlation_id: Optional[str] = None,
    component: Optional[str] = None
) -> CorrelationLogger:
    """Get a correlation-aware logger instance.

    Args:
        name: Logger name (typically __name__)
        correlation_id: Optional correlation ID for request tracking
        component: Component name for structured logging

    Returns:
        CorrelationLogger instance
    """
    return CorrelationLogger(name, correlation_id, component)


def configure_logging(level: str = "WARNING") -> None:
    """Attach a stderr handler to the ``flatxml`` logger hierarchy.

    Used by the command-line tool; library users configure logging themselves.
    """
    package_logger = logging.getLogger("flatxml")
    package_logger.setLevel(getattr(logging, level.upper()))
    for handler in package_logger.handlers:
        if getattr(handler, "_flatxml_handler", False):
            return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(_ComponentDefaults())
    handler._flatxml_handler = True  # type: ignore[attr-defined]
    package_logger.addHandler(handler)
