"""User-facing success / error notices raised by stores (the UI shows them as toasts)."""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    level: str  # "success" | "error" | "info"
    message: str
    created_at: datetime = field(default_factory=datetime.utcnow)


class Notifier:
    """Keeps a bounded history of notices and fans them out to listeners."""

    def __init__(self, history_size: int = 50):
        self.history_size = history_size
        self.history: List[Notification] = []
        self._listeners: List[Callable[[Notification], None]] = []

    def add_listener(self, listener: Callable[[Notification], None]) -> None:
        self._listeners.append(listener)

    def _emit(self, level: str, message: str) -> Notification:
        notice = Notification(level=level, message=message)
        self.history.append(notice)
        del self.history[:-self.history_size]
        for listener in list(self._listeners):
            try:
                listener(notice)
            except Exception:
                logger.exception("Notification listener failed")
        return notice

    def success(self, message: str) -> Notification:
        return self._emit("success", message)

    def error(self, message: str) -> Notification:
        return self._emit("error", message)

    def info(self, message: str) -> Notification:
        return self._emit("info", message)

    @property
    def errors(self) -> List[Notification]:
        return [n for n in self.history if n.level == "error"]
