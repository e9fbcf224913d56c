"""
Transient notifications: the client's toast channel.

Controllers push short success/error messages here instead of raising.
Subscribers (the CLI printer, tests) receive each notice as it happens;
pending notices are kept in a bounded queue until drained.
"""
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List

logger = logging.getLogger(__name__)

SUCCESS = "success"
INFO = "info"
WARNING = "warning"
ERROR = "error"


@dataclass
class Notice:
    level: str
    message: str
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class Notifier:
    """Routes notices to subscribers and keeps the last few for display."""

    def __init__(self, maxlen: int = 50):
        self.pending: deque = deque(maxlen=maxlen)
        self.subscribers: List[Callable[[Notice], None]] = []

    def subscribe(self, callback: Callable[[Notice], None]) -> None:
        """Register a callback for every notice."""
        self.subscribers.append(callback)

    def _emit(self, level: str, message: str) -> Notice:
        notice = Notice(level=level, message=message)
        self.pending.append(notice)
        logger.info(f"[{level}] {message}")
        for callback in self.subscribers:
            try:
                callback(notice)
            except Exception as e:
                logger.error(f"Notice subscriber failed: {e}")
        return notice

    def success(self, message: str) -> Notice:
        return self._emit(SUCCESS, message)

    def info(self, message: str) -> Notice:
        return self._emit(INFO, message)

    def warning(self, message: str) -> Notice:
        return self._emit(WARNING, message)

    def error(self, message: str) -> Notice:
        return self._emit(ERROR, message)

    def drain(self) -> List[Notice]:
        """Return and clear every pending notice."""
        notices = list(self.pending)
        self.pending.clear()
        return notices
