"""
Change Feed - Row-change notifications for observers.

Writers publish an event after every committed change; observers register
a callback per table. This is the in-process form of the backend's
realtime channel: the engines never see it.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable
import logging
import threading
import time

logger = logging.getLogger(__name__)


class ChangeType(Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass
class ChangeEvent:
    """A committed change to one row."""
    table: str
    change_type: ChangeType
    record_id: str
    record: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


Listener = Callable[[ChangeEvent], None]


class ChangeFeed:
    """
    Observer registry keyed by table name.

    Usage:
        feed = ChangeFeed()
        unsubscribe = feed.subscribe("games", on_game_change)
        feed.publish(ChangeEvent("games", ChangeType.UPDATE, game_id, record))
        unsubscribe()

    A failing listener is logged and skipped; the writer never sees it.
    """

    def __init__(self):
        self._listeners: dict[str, list[Listener]] = {}
        self._lock = threading.Lock()

    def subscribe(self, table: str, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.setdefault(table, []).append(listener)

        def unsubscribe():
            with self._lock:
                listeners = self._listeners.get(table, [])
                if listener in listeners:
                    listeners.remove(listener)

        return unsubscribe

    def publish(self, event: ChangeEvent):
        with self._lock:
            listeners = list(self._listeners.get(event.table, []))

        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "Listener failed for %s %s %s",
                    event.table, event.change_type.value, event.record_id,
                )

    def listener_count(self, table: str) -> int:
        with self._lock:
            return len(self._listeners.get(table, []))
