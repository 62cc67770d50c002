from __future__ import annotations

# The queue service is the *authoritative brain* of the system.
#
# Every operation runs under one lock (single writer), mutates the store, and
# then pushes one fresh status snapshot through the broadcaster. Failed
# operations raise a `QueueError` and broadcast nothing.

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Iterator

from .broadcast import Broadcaster
from .errors import InvalidInput, NoWaitingNumbers, NotFound
from .models import MAX_TICKET_NUMBER, QueueItem, TicketStatus
from .projection import build_status
from .store import QueueStore

log = logging.getLogger(__name__)


def _check_number(number: Any) -> int:
    if isinstance(number, bool) or not isinstance(number, int) or not 0 < number <= MAX_TICKET_NUMBER:
        raise InvalidInput(f"Invalid ticket number: {number!r}")
    return number


def _check_flag(enabled: Any) -> bool:
    if not isinstance(enabled, bool):
        raise InvalidInput(f"Invalid enabled value: {enabled!r}")
    return enabled


class QueueService:
    """Queue operations (testable without MQTT)."""

    def __init__(self, store: QueueStore, *, clock: Callable[[], datetime] = datetime.now) -> None:
        self.store = store
        self._clock = clock
        # Re-entrant: publishing inside a mutation reads the status again.
        self._lock = threading.RLock()
        self.broadcaster = Broadcaster(self.status, order_lock=self._lock)

    @contextmanager
    def _mutation(self) -> Iterator[None]:
        with self._lock:
            yield
            self.broadcaster.publish()

    # -------------------- queries --------------------

    def status(self) -> dict[str, Any]:
        with self._lock:
            return build_status(self.store)

    # -------------------- visitor --------------------

    def issue_ticket(self) -> QueueItem:
        """Hand out the next sequential ticket, in the waiting state."""
        with self._mutation():
            settings = self.store.read_settings()
            number = settings.last_number + 1
            self.store.write_settings(last_number=number)
            item = self.store.insert(number, TicketStatus.waiting)
        log.info("issued ticket %d", item.number)
        return item

    # -------------------- staff --------------------

    def call_next(self) -> int:
        """Call the lowest waiting number.

        The previously served ticket keeps its status; staff complete it
        explicitly.
        """
        with self._mutation():
            waiting = self.store.list_by_status(TicketStatus.waiting)
            if not waiting:
                raise NoWaitingNumbers()
            number = waiting[0].number
            self._serve(number)
        log.info("called next number %d", number)
        return number

    def call_number(self, number: int) -> int:
        """Call a specific ticket, whatever its current status."""
        number = _check_number(number)
        with self._mutation():
            if self.store.get(number) is None:
                raise NotFound(number)
            self._serve(number)
        log.info("called number %d", number)
        return number

    def _serve(self, number: int) -> None:
        self.store.set_status(number, TicketStatus.serving)
        self.store.write_settings(current_number=number, last_called_at=self._clock())

    def complete_number(self, number: int) -> None:
        number = _check_number(number)
        with self._mutation():
            self.store.set_status(number, TicketStatus.completed)
        log.info("completed number %d", number)

    def remove_number(self, number: int) -> None:
        """Delete a ticket; if it was being served, nobody is served now."""
        number = _check_number(number)
        with self._mutation():
            self.store.delete(number)
            if self.store.read_settings().current_number == number:
                self.store.write_settings(current_number=0)
        log.info("removed number %d", number)

    def reset_queue(self) -> None:
        """Drop every ticket and start a new epoch at ticket 1."""
        with self._mutation():
            self.store.clear_all()
            self.store.write_settings(
                current_number=0,
                last_number=0,
                last_called_at=None,
                reset_at=self._clock(),
            )
        log.info("queue reset")

    # -------------------- display settings --------------------

    def set_sound_enabled(self, enabled: bool) -> None:
        enabled = _check_flag(enabled)
        with self._mutation():
            self.store.write_settings(sound_enabled=enabled)

    def set_visual_alerts_enabled(self, enabled: bool) -> None:
        enabled = _check_flag(enabled)
        with self._mutation():
            self.store.write_settings(visual_alerts_enabled=enabled)
