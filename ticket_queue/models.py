from __future__ import annotations

# Queue records.
#
# Two kinds of state live in the store:
# - one `QueueItem` per issued ticket
# - a single `QueueSettings` row for the whole queue (counters + display toggles)

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum


# Ticket numbers are stored as sqlite INTEGER (signed 64-bit).
MAX_TICKET_NUMBER = 2**63 - 1


class TicketStatus(str, Enum):
    """Lifecycle of a ticket: waiting -> serving -> completed."""

    waiting = "waiting"
    serving = "serving"
    completed = "completed"


@dataclass(frozen=True)
class QueueItem:
    number: int
    status: TicketStatus
    issued_at: datetime

    def with_status(self, status: TicketStatus) -> QueueItem:
        return replace(self, status=status)

    def to_dict(self) -> dict[str, object]:
        return {
            "number": self.number,
            "status": self.status.value,
            "issuedAt": self.issued_at.isoformat(),
        }


@dataclass
class QueueSettings:
    """Queue-wide singleton.

    `current_number == 0` means nobody is being served. `last_number` is the
    highest ticket issued since `reset_at` and is the source of the next
    ticket number.
    """

    current_number: int = 0
    last_number: int = 0
    last_called_at: datetime | None = None
    reset_at: datetime = field(default_factory=datetime.now)
    sound_enabled: bool = True
    visual_alerts_enabled: bool = True


# Fields callers may pass to `QueueStore.write_settings`.
SETTINGS_FIELDS = frozenset(
    (
        "current_number",
        "last_number",
        "last_called_at",
        "reset_at",
        "sound_enabled",
        "visual_alerts_enabled",
    )
)
