import json
import threading

from ticket_queue.broadcast import Broadcaster, encode_update
from ticket_queue.service import QueueService
from ticket_queue.store import MemoryQueueStore


class FakeObserver:
    def __init__(self, is_open=True, fail=False):
        self.is_open = is_open
        self.fail = fail
        self.messages = []

    def send(self, text):
        if self.fail:
            raise ConnectionError("gone")
        self.messages.append(json.loads(text))


def test_late_subscriber_gets_current_status():
    svc = QueueService(MemoryQueueStore())
    svc.issue_ticket()
    svc.issue_ticket()
    svc.call_next()

    obs = FakeObserver()
    svc.broadcaster.subscribe(obs)
    assert obs.messages == [{"kind": "QUEUE_UPDATE", "payload": svc.status()}]


def test_publish_skips_closed_and_failing_observers():
    calls = []

    def source():
        calls.append(1)
        return {"currentNumber": 3}

    b = Broadcaster(source)
    good, closed, broken = FakeObserver(), FakeObserver(is_open=False), FakeObserver(fail=True)
    for obs in (broken, closed, good):
        b.subscribe(obs)
    calls.clear()

    assert b.publish() == 1
    assert calls == [1]
    assert good.messages[-1]["payload"] == {"currentNumber": 3}
    assert closed.messages == []
    assert len(b) == 3


def test_unsubscribe_is_idempotent():
    b = Broadcaster(lambda: {})
    obs = FakeObserver()
    b.subscribe(obs)
    b.unsubscribe(obs)
    b.unsubscribe(obs)
    assert len(b) == 0
    assert b.publish() == 0


def test_encode_update_envelope():
    assert json.loads(encode_update({"waitingCount": 0})) == {
        "kind": "QUEUE_UPDATE",
        "payload": {"waitingCount": 0},
    }


class RacingObserver:
    """Issues a ticket from another thread while its first snapshot is in flight."""

    def __init__(self, svc):
        self.svc = svc
        self.worker = None
        self.last_numbers = []

    @property
    def is_open(self):
        if self.worker is None:
            self.worker = threading.Thread(target=self.svc.issue_ticket)
            self.worker.start()
            self.worker.join(timeout=0.2)
        return True

    def send(self, text):
        self.last_numbers.append(json.loads(text)["payload"]["lastNumber"])


def test_first_snapshot_is_not_overtaken_by_a_concurrent_update():
    svc = QueueService(MemoryQueueStore())
    obs = RacingObserver(svc)
    svc.broadcaster.subscribe(obs)
    obs.worker.join(timeout=5)

    assert obs.last_numbers == [0, 1]
