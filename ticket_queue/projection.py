from __future__ import annotations

# Status projection.
#
# A read-only snapshot of the queue, shaped for displays and API callers:
#   currentNumber, nextNumbers, waitingCount, queueItems, lastCalledAt
# plus the display toggles so a screen knows whether to chime/flash.
#
# Keys are camelCase because this dict goes on the wire unchanged.

from datetime import datetime
from typing import Any

from .models import TicketStatus
from .store import QueueStore


def format_clock(ts: datetime) -> str:
    """Render a timestamp as a short 12-hour clock string, e.g. ``9:05 AM``."""
    hour = ts.hour % 12 or 12
    suffix = "AM" if ts.hour < 12 else "PM"
    return f"{hour}:{ts.minute:02d} {suffix}"


def build_status(store: QueueStore) -> dict[str, Any]:
    """Derive the current status snapshot from the store. No side effects."""
    settings = store.read_settings()
    waiting = store.list_by_status(TicketStatus.waiting)
    next_numbers = [it.number for it in waiting]

    status: dict[str, Any] = {
        "currentNumber": settings.current_number,
        "lastNumber": settings.last_number,
        "nextNumbers": next_numbers,
        "waitingCount": len(next_numbers),
        "queueItems": [
            {
                "number": it.number,
                "status": it.status.value,
                "issuedAt": format_clock(it.issued_at),
            }
            for it in store.list_all()
        ],
        "soundEnabled": settings.sound_enabled,
        "visualAlertsEnabled": settings.visual_alerts_enabled,
    }
    if settings.last_called_at is not None:
        status["lastCalledAt"] = format_clock(settings.last_called_at)
    return status
