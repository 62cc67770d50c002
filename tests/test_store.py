import pytest

from ticket_queue.errors import DuplicateNumber, NotFound
from ticket_queue.models import TicketStatus
from ticket_queue.store import MemoryQueueStore, SqliteQueueStore


@pytest.fixture(params=["memory", "sqlite"])
def store(request):
    s = MemoryQueueStore() if request.param == "memory" else SqliteQueueStore(":memory:")
    yield s
    s.close()


def test_insert_get_and_list_sorted(store):
    for n in (3, 1, 2):
        store.insert(n)
    store.set_status(2, TicketStatus.serving)

    assert store.get(2).status == TicketStatus.serving
    assert store.get(9) is None
    assert [it.number for it in store.list_all()] == [1, 2, 3]
    assert [it.number for it in store.list_by_status(TicketStatus.waiting)] == [1, 3]


def test_insert_duplicate_fails(store):
    store.insert(1)
    with pytest.raises(DuplicateNumber):
        store.insert(1)


def test_missing_ticket_fails(store):
    with pytest.raises(NotFound):
        store.set_status(4, TicketStatus.completed)
    with pytest.raises(NotFound):
        store.delete(4)


def test_delete_and_clear(store):
    for n in (1, 2, 3):
        store.insert(n)
    store.delete(2)
    assert [it.number for it in store.list_all()] == [1, 3]
    store.clear_all()
    assert store.list_all() == []


def test_settings_defaults_and_partial_update(store):
    settings = store.read_settings()
    assert settings.current_number == 0
    assert settings.last_number == 0
    assert settings.last_called_at is None
    assert settings.sound_enabled is True
    assert settings.visual_alerts_enabled is True

    updated = store.write_settings(last_number=4, sound_enabled=False)
    assert updated.last_number == 4
    assert updated.sound_enabled is False
    assert updated.visual_alerts_enabled is True
    assert store.read_settings() == updated


def test_write_settings_rejects_unknown_field(store):
    with pytest.raises(TypeError):
        store.write_settings(colour="red")


def test_sqlite_state_survives_reopen(tmp_path):
    path = str(tmp_path / "queue.db")
    s = SqliteQueueStore(path)
    s.insert(1)
    s.write_settings(last_number=1, current_number=1)
    s.close()

    s = SqliteQueueStore(path)
    try:
        assert [it.number for it in s.list_all()] == [1]
        assert s.read_settings().last_number == 1
    finally:
        s.close()
