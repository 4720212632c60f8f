"""Message sink boundary for user-facing warnings and errors."""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger("targetconfig.messages")


class MessageSink(Protocol):
    """Receives user-facing messages from the engine."""

    def warning(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...


class LoggingMessageSink:
    """Default sink that forwards messages to the ``targetconfig.messages`` logger."""

    def __init__(self, log: logging.Logger = logger) -> None:
        self._log = log

    def warning(self, message: str) -> None:
        self._log.warning("%s", message)

    def error(self, message: str) -> None:
        self._log.error("%s", message)

    def info(self, message: str) -> None:
        self._log.info("%s", message)


__all__ = ["MessageSink", "LoggingMessageSink"]
