"""
Agent Server Logging Framework

Centralized logging configuration for the relay server and client.
Provides consistent formatting, file rotation, and keyword context.

Usage:
    from backend.utils.logger import get_logger
    logger = get_logger(__name__)

    logger.info("Connection accepted", remote="127.0.0.1")
    logger.error("Write failed", exc_info=True, path="a.txt")
"""

import logging
import logging.handlers
import sys
import os
import io
from typing import Optional, Any, Dict


LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

ROOT_LOGGER_NAME = "agent_server"
LOG_FILE_NAME = "agent_server.log"


# =============================================================================
# Formatter
# =============================================================================

class AgentServerFormatter(logging.Formatter):
    """
    Formatter that appends structured context and, on consoles,
    colors the level name.
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
        "RESET": "\033[0m",
    }

    def __init__(self, fmt: str, datefmt: str = None, use_colors: bool = False):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if not getattr(record, "location", None):
            filename = os.path.basename(record.pathname) if record.pathname else "unknown"
            record.location = f"{filename}:{record.funcName}:{record.lineno}"

        context = getattr(record, "context", None) or {}
        context_parts = [f"{key}={value}" for key, value in context.items()]
        record.context_str = " | " + " ".join(context_parts) if context_parts else ""

        if self.use_colors and record.levelname in self.COLORS:
            record.levelname_colored = (
                f"{self.COLORS[record.levelname]}{record.levelname:8}{self.COLORS['RESET']}"
            )
        else:
            record.levelname_colored = f"{record.levelname:8}"

        return super().format(record)


# =============================================================================
# Context-Aware Logger
# =============================================================================

class AgentServerLogger(logging.LoggerAdapter):
    """
    Logger adapter that turns extra keyword arguments into context fields.

    Example:
        logger.info("Turn queued", pending=3)
        # 2025-01-04 12:00:00 | INFO | message_handler.py:handle_message:42 | Turn queued | pending=3
    """

    STANDARD_KEYS = {"exc_info", "stack_info", "stacklevel", "extra"}

    def __init__(self, logger: logging.Logger, extra: Dict[str, Any] = None):
        super().__init__(logger, extra or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        context = {}
        extra = kwargs.get("extra", {})

        for key in list(kwargs.keys()):
            if key not in self.STANDARD_KEYS:
                context[key] = kwargs.pop(key)

        context.update(self.extra)
        extra["context"] = context
        kwargs["extra"] = extra

        return msg, kwargs

    def bind(self, **context: Any) -> "AgentServerLogger":
        """Return a logger that adds ``context`` to every record."""
        merged = dict(self.extra)
        merged.update(context)
        return AgentServerLogger(self.logger, merged)


# =============================================================================
# Logger Factory
# =============================================================================

_initialized = False
_log_dir: Optional[str] = None


def _console_stream():
    if hasattr(sys.stderr, "reconfigure"):
        try:
            sys.stderr.reconfigure(errors="replace")
        except (AttributeError, ValueError):
            pass
        return sys.stderr
    try:
        encoding = getattr(sys.stderr, "encoding", None) or "utf-8"
        return io.TextIOWrapper(sys.stderr.buffer, encoding=encoding, errors="replace")
    except AttributeError:
        return sys.stderr


def configure_logging(
    log_level: str = "INFO",
    log_dir: Optional[str] = None,
    log_to_console: bool = True,
    log_to_file: bool = False,
    use_colors: bool = True,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 7,
    force: bool = False,
) -> None:
    """
    Configure the logging system. Called once at startup; later calls are
    ignored unless ``force`` is set.

    Args:
        log_level: Minimum console level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for the rotating log file. Defaults to ./logs
        log_to_console: Whether to output logs to stderr
        log_to_file: Whether to write logs to a rotating file
        use_colors: Whether to color the console level name
        max_bytes: Maximum size of each log file before rotation
        backup_count: Number of rotated files to keep
        force: Reconfigure even if already initialized
    """
    global _initialized, _log_dir

    if _initialized and not force:
        return

    level = LOG_LEVELS.get(log_level.upper(), logging.INFO)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console_format = "%(asctime)s | %(levelname_colored)s | %(location)s | %(message)s%(context_str)s"
    file_format = "%(asctime)s | %(levelname)-8s | %(name)s | %(location)s | %(message)s%(context_str)s"

    if log_to_console:
        console_handler = logging.StreamHandler(_console_stream())
        console_handler.setLevel(level)
        console_handler.setFormatter(
            AgentServerFormatter(console_format, datefmt="%Y-%m-%d %H:%M:%S", use_colors=use_colors)
        )
        root_logger.addHandler(console_handler)

    if log_to_file:
        _log_dir = log_dir or os.path.join(os.getcwd(), "logs")
        os.makedirs(_log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(_log_dir, LOG_FILE_NAME),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        # File captures everything
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            AgentServerFormatter(file_format, datefmt="%Y-%m-%d %H:%M:%S", use_colors=False)
        )
        root_logger.addHandler(file_handler)

    for module_name in ["aiohttp", "claude_agent_sdk", "e2b", "httpx"]:
        logging.getLogger(module_name).setLevel(logging.WARNING)

    _initialized = True


def get_logger(name: str = None) -> AgentServerLogger:
    """
    Get a logger for the given module.

    Args:
        name: Module name (usually __name__). If None, returns the root logger.

    Returns:
        AgentServerLogger with keyword context support
    """
    if not _initialized:
        configure_logging()

    if name:
        # "backend.agent_server.api.server" -> "agent_server.api.server"
        if name.startswith("backend."):
            name = name[len("backend."):]
        logger_name = name if name.startswith(ROOT_LOGGER_NAME) else f"{ROOT_LOGGER_NAME}.{name}"
    else:
        logger_name = ROOT_LOGGER_NAME

    return AgentServerLogger(logging.getLogger(logger_name))


def get_log_dir() -> Optional[str]:
    """Directory of the rotating log file, if file logging is enabled."""
    return _log_dir


__all__ = [
    "configure_logging",
    "get_logger",
    "get_log_dir",
    "AgentServerLogger",
    "AgentServerFormatter",
    "LOG_LEVELS",
]
