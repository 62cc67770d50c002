"""Broadcast channel.

Keeps a registry of observers (display screens, admin consoles, the MQTT
updates topic) and pushes a fresh status envelope to all of them after every
queue mutation:

    {"kind": "QUEUE_UPDATE", "payload": <status snapshot>}

Delivery is best effort. Closed observers are skipped and an observer that
raises is logged and left registered; the next update (or the display's own
polling) corrects anything missed.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable, Protocol

log = logging.getLogger(__name__)

QUEUE_UPDATE = "QUEUE_UPDATE"

StatusSource = Callable[[], dict[str, Any]]


class Observer(Protocol):
    @property
    def is_open(self) -> bool: ...

    def send(self, text: str) -> None: ...


def encode_update(status: dict[str, Any]) -> str:
    return json.dumps({"kind": QUEUE_UPDATE, "payload": status}, separators=(",", ":"))


class Broadcaster:
    """Observer registry with subscribe/unsubscribe/publish."""

    def __init__(self, source: StatusSource, *, order_lock: threading.RLock | None = None) -> None:
        self._source = source
        # Held while a snapshot is built and delivered, so every observer sees
        # snapshots in the order they were taken. Share it with the writer.
        self._order_lock = order_lock if order_lock is not None else threading.RLock()
        self._lock = threading.Lock()
        self._observers: list[Observer] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._observers)

    def subscribe(self, observer: Observer) -> None:
        """Register `observer` and send it the current status right away."""
        with self._order_lock:
            with self._lock:
                if observer not in self._observers:
                    self._observers.append(observer)
                count = len(self._observers)
            self._deliver(observer, encode_update(self._source()))
        log.info("observer subscribed, %d connected", count)

    def unsubscribe(self, observer: Observer) -> None:
        with self._lock:
            try:
                self._observers.remove(observer)
            except ValueError:
                return
            count = len(self._observers)
        log.info("observer unsubscribed, %d remaining", count)

    def publish(self) -> int:
        """Recompute the status once and send it to every open observer.

        Returns the number of observers the update was handed to.
        """
        with self._order_lock:
            text = encode_update(self._source())
            with self._lock:
                observers = list(self._observers)
            log.debug("broadcasting queue update to %d observers", len(observers))
            delivered = 0
            for obs in observers:
                if self._deliver(obs, text):
                    delivered += 1
        return delivered

    @staticmethod
    def _deliver(observer: Observer, text: str) -> bool:
        if not observer.is_open:
            return False
        try:
            observer.send(text)
        except Exception:
            log.exception("failed to deliver queue update to %r", observer)
            return False
        return True
