"""
Project logging setup.

Every module logger lives under the ``hackscore`` hierarchy. Records go to
stdout and, when ``OTEL_LOGS_ENABLED`` is set, to an OpenTelemetry
``LoggerProvider`` so that ``extra`` fields travel as log attributes.
"""

import logging
import sys
import threading

from opentelemetry._logs import set_logger_provider
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor, ConsoleLogExporter
from opentelemetry.sdk.resources import Resource

from hackscore.core.config import settings

ROOT_LOGGER_NAME = "hackscore"

_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime"}

_setup_lock = threading.Lock()
_configured = False


class ContextFormatter(logging.Formatter):
    """Plain text formatter that appends the record's ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if not context:
            return line
        rendered = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
        return f"{line} | {rendered}"


def _build_otel_handler(level: int) -> logging.Handler:
    provider = LoggerProvider(
        resource=Resource.create({"service.name": settings.OTEL_SERVICE_NAME})
    )
    provider.add_log_record_processor(BatchLogRecordProcessor(ConsoleLogExporter()))
    set_logger_provider(provider)
    return LoggingHandler(level=level, logger_provider=provider)


def setup_logging() -> None:
    """Attach handlers to the project root logger. Safe to call repeatedly."""
    global _configured
    with _setup_lock:
        if _configured:
            return

        level = getattr(logging, (settings.LOG_LEVEL or "INFO").upper(), logging.INFO)
        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.setLevel(level)
        root.propagate = False

        stream_handler = logging.StreamHandler(sys.stdout)
        stream_handler.setLevel(level)
        stream_handler.setFormatter(
            ContextFormatter(
                fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root.addHandler(stream_handler)

        if settings.OTEL_LOGS_ENABLED:
            root.addHandler(_build_otel_handler(level))

        _configured = True


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    setup_logging()
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


logger = get_logger()
