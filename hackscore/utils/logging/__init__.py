__all__ = [
    "Logger",
    "get_logger",
    "logger",
    "setup_logging",
]

from hackscore.utils.logging.default import Logger
from hackscore.utils.logging.otel_logger import get_logger, logger, setup_logging
