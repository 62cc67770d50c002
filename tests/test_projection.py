from datetime import datetime

from ticket_queue.projection import build_status, format_clock
from ticket_queue.store import MemoryQueueStore


def test_format_clock():
    assert format_clock(datetime(2024, 1, 1, 0, 5)) == "12:05 AM"
    assert format_clock(datetime(2024, 1, 1, 9, 30)) == "9:30 AM"
    assert format_clock(datetime(2024, 1, 1, 12, 0)) == "12:00 PM"
    assert format_clock(datetime(2024, 1, 1, 23, 59)) == "11:59 PM"


def test_build_status_on_empty_store():
    status = build_status(MemoryQueueStore())
    assert status == {
        "currentNumber": 0,
        "lastNumber": 0,
        "nextNumbers": [],
        "waitingCount": 0,
        "queueItems": [],
        "soundEnabled": True,
        "visualAlertsEnabled": True,
    }


def test_build_status_renders_items():
    store = MemoryQueueStore()
    store.insert(1)
    store.write_settings(last_number=1, last_called_at=datetime(2024, 1, 1, 15, 4))

    status = build_status(store)
    item = status["queueItems"][0]
    assert item["number"] == 1
    assert item["status"] == "waiting"
    assert item["issuedAt"].endswith(("AM", "PM"))
    assert status["lastCalledAt"] == "3:04 PM"
