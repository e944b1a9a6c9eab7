"""Logging setup for the detection service.

Modules ask for a component logger at import time with ``get_logger``.
Nothing is written anywhere until ``setup_logging`` attaches the console
and rotating file handlers to the package logger, so importing the package
from tests or a REPL leaves the file system alone.

Three files are kept in the log directory:

* ``match_event_detection.log``: everything at DEBUG and above
* ``errors.log``: ERROR and CRITICAL only
* ``performance.log``: per-stage latency lines from ``log_performance``
"""

import logging
import logging.handlers
import sys
from typing import Any, Dict, List, Optional
from pathlib import Path

PACKAGE_LOGGER = "match_event_detection"
PERFORMANCE_LOGGER = f"{PACKAGE_LOGGER}.performance"

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(component)-20s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
PERFORMANCE_FORMAT = "%(asctime)s | %(message)s"


class DetectionLogFormatter(logging.Formatter):
    """Appends ``extra={'context': {...}}`` key/value pairs to the message."""

    def __init__(self, fmt: str, include_context: bool = True):
        super().__init__(fmt)
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "component"):
            record.component = record.name.rsplit(".", 1)[-1]
        line = super().format(record)
        context = getattr(record, "context", None)
        if self.include_context and context:
            line += " | " + " ".join(f"{k}={v}" for k, v in context.items())
        return line


class ComponentFilter(logging.Filter):
    """Tags records with the short component name used in console output."""

    def __init__(self, component_name: str):
        super().__init__()
        self.component_name = component_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.component = self.component_name
        return True


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


class LoggingManager:
    """Owns the package logger's handlers and the component logger registry."""

    def __init__(self, log_dir: str = "logs"):
        self.log_dir = Path(log_dir)
        self.log_level = logging.INFO
        self.configured = False
        self._components: Dict[str, logging.Logger] = {}
        self._handlers: List[logging.Handler] = []

    @property
    def log_files(self) -> Dict[str, Path]:
        return {
            "main": self.log_dir / "match_event_detection.log",
            "errors": self.log_dir / "errors.log",
            "performance": self.log_dir / "performance.log",
        }

    def component(self, name: str) -> logging.Logger:
        if name not in self._components:
            logger = logging.getLogger(f"{PACKAGE_LOGGER}.{name}")
            logger.addFilter(ComponentFilter(name))
            self._components[name] = logger
        return self._components[name]

    def close(self) -> None:
        """Detach and close every handler installed by ``configure``."""
        for handler in self._handlers:
            for name in (PACKAGE_LOGGER, PERFORMANCE_LOGGER):
                logging.getLogger(name).removeHandler(handler)
            handler.close()
        self._handlers = []
        self.configured = False

    def configure(self, log_dir: str, level: int, console: bool = True) -> None:
        """Replace any previous handlers with console and rotating file output."""
        self.close()
        self.log_dir = Path(log_dir)
        self.log_level = level
        self.log_dir.mkdir(parents=True, exist_ok=True)
        files = self.log_files

        package_logger = logging.getLogger(PACKAGE_LOGGER)
        package_logger.setLevel(level)

        if console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(level)
            console_handler.setFormatter(DetectionLogFormatter(CONSOLE_FORMAT, include_context=False))
            self._attach(package_logger, console_handler)

        file_formatter = DetectionLogFormatter(FILE_FORMAT)
        self._attach(package_logger, _rotating_handler(files["main"], logging.DEBUG, file_formatter))
        self._attach(package_logger, _rotating_handler(files["errors"], logging.ERROR, file_formatter))

        # Latency lines also reach the main log through propagation
        self._attach(logging.getLogger(PERFORMANCE_LOGGER),
                     _rotating_handler(files["performance"], logging.INFO,
                                       logging.Formatter(PERFORMANCE_FORMAT)))

        self.configured = True
        package_logger.info(f"Logging to {self.log_dir} at {logging.getLevelName(level)}")

    def _attach(self, logger: logging.Logger, handler: logging.Handler) -> None:
        logger.addHandler(handler)
        self._handlers.append(handler)


logging_manager = LoggingManager()


def get_logger(component_name: str) -> logging.Logger:
    """Logger for one component, e.g. ``get_logger("frame_capture")``."""
    return logging_manager.component(component_name)


def log_performance(message: str, metrics: Optional[Dict[str, Any]] = None) -> None:
    if metrics:
        message = f"{message} | " + " | ".join(f"{k}={v}" for k, v in metrics.items())
    logging.getLogger(PERFORMANCE_LOGGER).info(message)


def setup_logging(log_level: str = "INFO", log_dir: str = "logs",
                  console: bool = True) -> LoggingManager:
    """Install handlers for the whole package. Safe to call more than once."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging_manager.configure(log_dir, level, console=console)
    return logging_manager
