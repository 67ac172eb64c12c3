"""
Logger Utility
==============

Context-aware, color-coded logging used by every module in the bot.

Each module creates one logger named after its component:

    from advisor_bot.utils.logger import Logger

    logger = Logger("ThreadMapper")
    logger.info("Created session", {"advisor_id": "north"})

    # Nested context for a sub-operation
    poll_logger = logger.child("Poll")
    poll_logger.debug("Run still queued")   # [ThreadMapper:Poll] ...

Operator-facing detail (exception type and message) goes through
logger.error(); user-facing replies never include it.
"""

import json
import os
import sys
from datetime import datetime
from enum import IntEnum
from typing import Any


class LogLevel(IntEnum):
    """Log levels with numeric values for comparison."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40


class Colors:
    """ANSI escape codes for colored terminal output."""
    RESET = "\033[0m"
    DEBUG = "\033[36m"    # Cyan
    INFO = "\033[32m"     # Green
    WARNING = "\033[33m"  # Yellow
    ERROR = "\033[31m"    # Red
    DIM = "\033[2m"


_LEVELS = {
    "DEBUG": LogLevel.DEBUG,
    "INFO": LogLevel.INFO,
    "WARNING": LogLevel.WARNING,
    "WARN": LogLevel.WARNING,
    "ERROR": LogLevel.ERROR,
}


def _get_log_level_from_env() -> LogLevel:
    """Parse LOG_LEVEL, defaulting to INFO."""
    return _LEVELS.get(os.getenv("LOG_LEVEL", "INFO").upper(), LogLevel.INFO)


def _use_color(stream) -> bool:
    # Colors only make sense on a terminal; NO_COLOR disables them everywhere
    return not os.getenv("NO_COLOR") and hasattr(stream, "isatty") and stream.isatty()


class Logger:
    """
    A context-aware logger with colored output.

    Supports debug/info/warning/error levels, a context prefix, optional
    structured data printed as JSON, and child loggers for nested contexts.
    """

    def __init__(self, context: str = ""):
        """
        Args:
            context: Prefix for all messages (e.g., "Agent", "KnowledgeBase")
        """
        self.context = context
        self._min_level = _get_log_level_from_env()

    def child(self, child_context: str) -> "Logger":
        """Create a logger whose context is `<parent>:<child_context>`."""
        new_context = f"{self.context}:{child_context}" if self.context else child_context
        return Logger(new_context)

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level >= self._min_level

    def _format_message(self, level: str, message: str, color: str, colored: bool) -> str:
        """
        Format as [TIMESTAMP] [LEVEL] [context] message.

        Example: [2024-01-31T10:30:00] [INFO] [Agent] Processing request...
        """
        timestamp = datetime.now().isoformat(timespec="seconds")
        context_str = f"[{self.context}] " if self.context else ""

        if not colored:
            return f"[{timestamp}] [{level}] {context_str}{message}"

        return (
            f"{Colors.DIM}[{timestamp}]{Colors.RESET} "
            f"{color}[{level}]{Colors.RESET} "
            f"{context_str}{message}"
        )

    def _log(
        self,
        level: LogLevel,
        level_name: str,
        color: str,
        message: str,
        data: dict[str, Any] | None = None
    ) -> None:
        if level < self._min_level:
            return

        stream = sys.stderr if level >= LogLevel.ERROR else sys.stdout
        colored = _use_color(stream)
        print(self._format_message(level_name, message, color, colored), file=stream)

        if data:
            data_str = json.dumps(data, indent=2, default=str)
            if colored:
                data_str = f"{Colors.DIM}{data_str}{Colors.RESET}"
            print(data_str, file=stream)

    def debug(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Detailed information, shown only when LOG_LEVEL=DEBUG."""
        self._log(LogLevel.DEBUG, "DEBUG", Colors.DEBUG, message, data)

    def info(self, message: str, data: dict[str, Any] | None = None) -> None:
        """General operational information."""
        self._log(LogLevel.INFO, "INFO", Colors.INFO, message, data)

    def warning(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Something unexpected that does not stop the current operation."""
        self._log(LogLevel.WARNING, "WARN", Colors.WARNING, message, data)

    def error(
        self,
        message: str,
        error: BaseException | None = None,
        data: dict[str, Any] | None = None
    ) -> None:
        """
        Log an error, always shown regardless of level.

        Args:
            message: What was being attempted
            error: Optional exception; its type, message and cause are included
            data: Optional extra structured context
        """
        payload = dict(data) if data else {}
        if error is not None:
            payload["error_type"] = type(error).__name__
            payload["error_message"] = str(error)
            cause = error.__cause__
            if cause is not None:
                payload["caused_by"] = f"{type(cause).__name__}: {cause}"
        self._log(LogLevel.ERROR, "ERROR", Colors.ERROR, message, payload or None)


# Default logger for code without a more specific component
logger = Logger("AdvisorBot")
