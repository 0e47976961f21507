"""Trace sink: records leveled diagnostic events and mirrors them to `logging`."""

from __future__ import annotations

import logging
from typing import Any

from .models import LogEntry, LogLevel

LEVEL_PRIORITY: dict[str, int] = {
    "debug": 0,
    "info": 1,
    "warn": 2,
    "error": 3,
}

_STDLIB_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class TraceLogger:
    """
    Append-only log of LogEntry records shared by every loop component.

    Entries below the configured level (or all entries, when disabled) are
    neither recorded nor forwarded. Accepted entries are also emitted on the
    standard `agent_loop.<component>` logger so hosts can route them.
    """

    def __init__(self, enabled: bool = True, level: LogLevel = "info") -> None:
        if level not in LEVEL_PRIORITY:
            raise ValueError(f"Unknown log level: {level}")
        self.enabled = enabled
        self.level = level
        self._logs: list[LogEntry] = []

    def debug(self, component: str, message: str, data: dict[str, Any] | None = None) -> None:
        self.log("debug", component, message, data)

    def info(self, component: str, message: str, data: dict[str, Any] | None = None) -> None:
        self.log("info", component, message, data)

    def warn(self, component: str, message: str, data: dict[str, Any] | None = None) -> None:
        self.log("warn", component, message, data)

    def error(self, component: str, message: str, data: dict[str, Any] | None = None) -> None:
        self.log("error", component, message, data)

    def get_logs(self) -> list[LogEntry]:
        """Return a copy of every recorded entry."""
        return list(self._logs)

    def clear_logs(self) -> None:
        self._logs = []

    def log(
        self,
        level: LogLevel,
        component: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> None:
        if not self.enabled or LEVEL_PRIORITY[level] < LEVEL_PRIORITY[self.level]:
            return
        entry = LogEntry(level=level, component=component, message=message, data=data)
        self._logs.append(entry)

        logger = logging.getLogger(f"agent_loop.{component}")
        if data:
            logger.log(_STDLIB_LEVELS[level], "%s | %s", message, data, extra={"trace_data": data})
        else:
            logger.log(_STDLIB_LEVELS[level], "%s", message)


__all__ = ["TraceLogger", "LEVEL_PRIORITY"]
