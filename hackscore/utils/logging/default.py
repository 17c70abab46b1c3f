import logging
from typing import Any, Dict, Optional

from hackscore.utils.logging.otel_logger import get_logger


class Logger:
    """
    Logger that stamps a fixed request context onto every record.

    Wraps a project logger from ``get_logger`` so the stream and OpenTelemetry
    handlers both receive the context as ``extra`` fields.

    Args:
        name (str): The name of the logger instance
        request_context (dict, optional): Context merged into every log entry
    """

    def __init__(self, name: str, request_context: Optional[Dict[str, Any]] = None):
        self.base_logger: logging.Logger = get_logger(name)
        self.request_context = request_context

    def __add_request_context_to_extra(self, extra: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if not extra:
            return self.request_context

        if not self.request_context:
            return extra

        extra = extra.copy()
        extra.update(self.request_context)
        return extra

    def bind(self, **context: Any) -> "Logger":
        """Return a logger whose request context also carries ``context``."""
        merged = dict(self.request_context or {})
        merged.update(context)
        bound = Logger.__new__(Logger)
        bound.base_logger = self.base_logger
        bound.request_context = merged
        return bound

    def debug(self, message, extra=None):
        self.base_logger.debug(message, extra=self.__add_request_context_to_extra(extra))

    def info(self, message, extra=None):
        self.base_logger.info(message, extra=self.__add_request_context_to_extra(extra))

    def warning(self, message, extra=None):
        self.base_logger.warning(message, extra=self.__add_request_context_to_extra(extra))

    def error(self, message, extra=None):
        self.base_logger.error(message, extra=self.__add_request_context_to_extra(extra))

    def critical(self, message, extra=None):
        self.base_logger.critical(message, extra=self.__add_request_context_to_extra(extra))
