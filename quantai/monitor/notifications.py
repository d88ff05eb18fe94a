from __future__ import annotations

import threading
from typing import List, Optional, Protocol

from loguru import logger as log

from quantai.core.types import Notification, Severity
from quantai.core.utils import new_id


class NotificationSink(Protocol):
    def notify(self, title: str, message: str, severity: Severity = "info") -> None:
        ...


def safe_notify(sink: Optional[NotificationSink], title: str, message: str, severity: Severity = "info") -> None:
    """Fire-and-forget delivery; a failing sink never interrupts the caller."""
    if sink is None:
        return
    try:
        sink.notify(title, message, severity)
    except Exception as e:
        log.warning(f"Notification sink failed for '{title}': {e}")


class NotificationCenter:
    """In-memory notification history (newest first) with unread tracking.

    Toasts are the transient subset shown while `toasts_enabled` is on; the
    history always records.
    """

    def __init__(self, toasts_enabled: bool = True, max_items: int = 500) -> None:
        self._lock = threading.Lock()
        self._items: List[Notification] = []
        self._toasts: List[Notification] = []
        self.toasts_enabled = toasts_enabled
        self.max_items = max_items

    def notify(self, title: str, message: str, severity: Severity = "info") -> None:
        item = Notification(id=new_id(), title=title, message=message, time="Just now", severity=severity)
        with self._lock:
            self._items.insert(0, item)
            if len(self._items) > self.max_items:
                del self._items[self.max_items:]
            if self.toasts_enabled:
                self._toasts.append(item)
        log.info(f"[{severity}] {title}: {message}")

    def history(self) -> List[Notification]:
        with self._lock:
            return list(self._items)

    @property
    def unread_count(self) -> int:
        with self._lock:
            return sum(1 for n in self._items if not n.read)

    def mark_all_read(self) -> None:
        with self._lock:
            for n in self._items:
                n.read = True

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
            self._toasts.clear()

    def drain_toasts(self) -> List[Notification]:
        with self._lock:
            out, self._toasts = self._toasts, []
        return out
