"""Queue storage.

`QueueStore` is the contract the queue service relies on. Two backends
implement it:

- `MemoryQueueStore`: dict-backed, used by tests and throwaway runs.
- `SqliteQueueStore`: one `tickets` table keyed by ticket number plus a
  single-row `settings` table, using the built-in `sqlite3` module.

Stores do plain CRUD. Queue rules (what happens on call/complete/reset) live
in `ticket_queue.service`.
"""

from __future__ import annotations

import abc
import logging
import sqlite3
import threading
from dataclasses import replace
from datetime import datetime
from typing import Any

from .errors import DuplicateNumber, NotFound
from .models import SETTINGS_FIELDS, QueueItem, QueueSettings, TicketStatus

log = logging.getLogger(__name__)


def _check_settings_fields(fields: dict[str, Any]) -> None:
    unknown = set(fields) - SETTINGS_FIELDS
    if unknown:
        raise TypeError(f"unknown settings fields: {sorted(unknown)}")


class QueueStore(abc.ABC):
    """CRUD over queue items and the settings singleton."""

    @abc.abstractmethod
    def get(self, number: int) -> QueueItem | None: ...

    @abc.abstractmethod
    def list_by_status(self, status: TicketStatus) -> list[QueueItem]: ...

    @abc.abstractmethod
    def list_all(self) -> list[QueueItem]: ...

    @abc.abstractmethod
    def insert(self, number: int, status: TicketStatus = TicketStatus.waiting) -> QueueItem:
        """Create a ticket. Raises `DuplicateNumber` if `number` exists."""

    @abc.abstractmethod
    def set_status(self, number: int, status: TicketStatus) -> QueueItem:
        """Update a ticket's status. Raises `NotFound` if absent."""

    @abc.abstractmethod
    def delete(self, number: int) -> None:
        """Remove a ticket. Raises `NotFound` if absent."""

    @abc.abstractmethod
    def read_settings(self) -> QueueSettings: ...

    @abc.abstractmethod
    def write_settings(self, **fields: Any) -> QueueSettings:
        """Update some settings fields and return the full record."""

    @abc.abstractmethod
    def clear_all(self) -> None:
        """Delete every ticket. Settings are left alone."""

    def close(self) -> None:
        """Release backend resources; backends holding none need not override this."""


class MemoryQueueStore(QueueStore):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: dict[int, QueueItem] = {}
        self._settings = QueueSettings()

    def get(self, number: int) -> QueueItem | None:
        with self._lock:
            return self._items.get(number)

    def list_by_status(self, status: TicketStatus) -> list[QueueItem]:
        with self._lock:
            items = [it for it in self._items.values() if it.status == status]
        return sorted(items, key=lambda it: it.number)

    def list_all(self) -> list[QueueItem]:
        with self._lock:
            items = list(self._items.values())
        return sorted(items, key=lambda it: it.number)

    def insert(self, number: int, status: TicketStatus = TicketStatus.waiting) -> QueueItem:
        with self._lock:
            if number in self._items:
                raise DuplicateNumber(number)
            item = QueueItem(number=number, status=status, issued_at=datetime.now())
            self._items[number] = item
            return item

    def set_status(self, number: int, status: TicketStatus) -> QueueItem:
        with self._lock:
            item = self._items.get(number)
            if item is None:
                raise NotFound(number)
            item = item.with_status(status)
            self._items[number] = item
            return item

    def delete(self, number: int) -> None:
        with self._lock:
            if self._items.pop(number, None) is None:
                raise NotFound(number)

    def read_settings(self) -> QueueSettings:
        with self._lock:
            return replace(self._settings)

    def write_settings(self, **fields: Any) -> QueueSettings:
        _check_settings_fields(fields)
        with self._lock:
            self._settings = replace(self._settings, **fields)
            return replace(self._settings)

    def clear_all(self) -> None:
        with self._lock:
            self._items.clear()


_SCHEMA = """
CREATE TABLE IF NOT EXISTS tickets (
    number INTEGER PRIMARY KEY CHECK (number > 0),
    status TEXT NOT NULL DEFAULT 'waiting',
    issued_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS tickets_status ON tickets (status, number);

CREATE TABLE IF NOT EXISTS settings (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    current_number INTEGER NOT NULL DEFAULT 0,
    last_number INTEGER NOT NULL DEFAULT 0,
    last_called_at TEXT,
    reset_at TEXT NOT NULL,
    sound_enabled INTEGER NOT NULL DEFAULT 1,
    visual_alerts_enabled INTEGER NOT NULL DEFAULT 1
);
"""


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class SqliteQueueStore(QueueStore):
    """Persistent store on top of sqlite3.

    `path` may be a filename or ``":memory:"``. One connection is shared by
    all callers and guarded by a lock, so the store can be used from the MQTT
    network thread as well as the main thread.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()
        log.debug("opened sqlite queue store at %s", path)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # -------------------- tickets --------------------

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> QueueItem:
        return QueueItem(
            number=int(row["number"]),
            status=TicketStatus(row["status"]),
            issued_at=datetime.fromisoformat(row["issued_at"]),
        )

    def get(self, number: int) -> QueueItem | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT number, status, issued_at FROM tickets WHERE number = ?", (number,)
            ).fetchone()
        return self._row_to_item(row) if row else None

    def list_by_status(self, status: TicketStatus) -> list[QueueItem]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT number, status, issued_at FROM tickets WHERE status = ? ORDER BY number",
                (status.value,),
            ).fetchall()
        return [self._row_to_item(r) for r in rows]

    def list_all(self) -> list[QueueItem]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT number, status, issued_at FROM tickets ORDER BY number"
            ).fetchall()
        return [self._row_to_item(r) for r in rows]

    def insert(self, number: int, status: TicketStatus = TicketStatus.waiting) -> QueueItem:
        item = QueueItem(number=number, status=status, issued_at=datetime.now())
        with self._lock:
            try:
                with self._conn:
                    self._conn.execute(
                        "INSERT INTO tickets (number, status, issued_at) VALUES (?, ?, ?)",
                        (item.number, item.status.value, item.issued_at.isoformat()),
                    )
            except sqlite3.IntegrityError as e:
                raise DuplicateNumber(number) from e
        return item

    def set_status(self, number: int, status: TicketStatus) -> QueueItem:
        with self._lock:
            with self._conn:
                cur = self._conn.execute(
                    "UPDATE tickets SET status = ? WHERE number = ?", (status.value, number)
                )
            if cur.rowcount == 0:
                raise NotFound(number)
            row = self._conn.execute(
                "SELECT number, status, issued_at FROM tickets WHERE number = ?", (number,)
            ).fetchone()
        return self._row_to_item(row)

    def delete(self, number: int) -> None:
        with self._lock:
            with self._conn:
                cur = self._conn.execute("DELETE FROM tickets WHERE number = ?", (number,))
        if cur.rowcount == 0:
            raise NotFound(number)

    def clear_all(self) -> None:
        with self._lock:
            with self._conn:
                self._conn.execute("DELETE FROM tickets")

    # -------------------- settings --------------------

    def _ensure_settings(self) -> sqlite3.Row:
        # Caller holds the lock.
        row = self._conn.execute("SELECT * FROM settings WHERE id = 1").fetchone()
        if row is None:
            with self._conn:
                self._conn.execute(
                    "INSERT INTO settings (id, reset_at) VALUES (1, ?)",
                    (datetime.now().isoformat(),),
                )
            row = self._conn.execute("SELECT * FROM settings WHERE id = 1").fetchone()
        return row

    @staticmethod
    def _row_to_settings(row: sqlite3.Row) -> QueueSettings:
        return QueueSettings(
            current_number=int(row["current_number"]),
            last_number=int(row["last_number"]),
            last_called_at=_parse_ts(row["last_called_at"]),
            reset_at=datetime.fromisoformat(row["reset_at"]),
            sound_enabled=bool(row["sound_enabled"]),
            visual_alerts_enabled=bool(row["visual_alerts_enabled"]),
        )

    def read_settings(self) -> QueueSettings:
        with self._lock:
            return self._row_to_settings(self._ensure_settings())

    def write_settings(self, **fields: Any) -> QueueSettings:
        _check_settings_fields(fields)
        with self._lock:
            self._ensure_settings()
            if fields:
                values: list[Any] = []
                for value in fields.values():
                    if isinstance(value, datetime):
                        value = value.isoformat()
                    elif isinstance(value, bool):
                        value = int(value)
                    values.append(value)
                assignments = ", ".join(f"{name} = ?" for name in fields)
                with self._conn:
                    self._conn.execute(f"UPDATE settings SET {assignments} WHERE id = 1", values)
            return self._row_to_settings(self._ensure_settings())
