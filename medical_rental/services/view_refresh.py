from __future__ import annotations

import logging
import threading
from typing import Any, Callable

VIEW_LOGGER = logging.getLogger("medical_rental.views")

RefreshListener = Callable[[str, dict[str, Any]], None]


class ViewRefreshHub:
    """Tells subscribed views (dashboards, maps) that a record changed."""

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners: list[RefreshListener] = []

    def subscribe(self, listener: RefreshListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: RefreshListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def publish(self, topic: str, payload: dict[str, Any]) -> int:
        with self._lock:
            listeners = list(self._listeners)
        delivered = 0
        for listener in listeners:
            try:
                listener(topic, payload)
                delivered += 1
            except Exception:
                # A broken view must not undo a committed change.
                VIEW_LOGGER.exception("View refresh listener failed for %s", topic)
        return delivered
