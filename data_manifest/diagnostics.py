"""Structured diagnostics for capture cycles.

The orchestrator never prints: every notable step is emitted as a
:class:`DiagnosticEvent` to an injected observer. :class:`LoggingObserver`
forwards events to the project logger, :class:`ActivityLog` keeps the most
recent ones in memory (what the extension popup used to show).
"""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, List, Optional, Protocol

from data_manifest.errors import ErrorKind
from data_manifest.logger import get_logger

__all__ = [
    "DiagnosticEvent",
    "DiagnosticObserver",
    "LoggingObserver",
    "ActivityLog",
]


@dataclass(frozen=True, slots=True)
class DiagnosticEvent:
    """One diagnostic record; ``kind`` is set for failures only."""

    level: int
    message: str
    kind: Optional[ErrorKind] = None
    sheet_title: Optional[str] = None
    tab_id: Optional[int] = None
    detail: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def is_error(self) -> bool:
        return self.level >= logging.ERROR


class DiagnosticObserver(Protocol):
    def emit(self, event: DiagnosticEvent) -> None: ...


class LoggingObserver:
    """Пишет события в логгер проекта."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or get_logger("cycle")

    def emit(self, event: DiagnosticEvent) -> None:
        if event.detail:
            self.logger.log(event.level, "%s: %s", event.message, event.detail)
        else:
            self.logger.log(event.level, "%s", event.message)


class ActivityLog:
    """Bounded in-memory log, newest entry first."""

    def __init__(self, maxlen: Optional[int] = 10) -> None:
        self._entries: Deque[DiagnosticEvent] = deque(maxlen=maxlen)

    def emit(self, event: DiagnosticEvent) -> None:
        self._entries.appendleft(event)

    @property
    def entries(self) -> List[DiagnosticEvent]:
        return list(self._entries)

    def errors(self) -> List[DiagnosticEvent]:
        return [e for e in self._entries if e.is_error]

    def kinds(self) -> List[ErrorKind]:
        """Failure kinds in emission order."""
        return [e.kind for e in reversed(self._entries) if e.kind is not None]

    def __len__(self) -> int:
        return len(self._entries)
