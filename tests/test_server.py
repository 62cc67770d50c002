import json

import pytest

from ticket_queue.errors import InvalidInput
from ticket_queue.server import MqttQueueServer, parse_enabled, parse_number
from ticket_queue.service import QueueService
from ticket_queue.store import MemoryQueueStore

NS = "test/v1"
REQUESTS = f"{NS}/queue/requests"
UPDATES = f"{NS}/queue/updates"


class FakeMqtt:
    def __init__(self):
        self.is_connected = True
        self.subscribed = []
        self.handlers = []
        self.published = []

    def subscribe(self, topic, *, qos=0):
        self.subscribed.append(topic)

    def add_handler(self, handler):
        self.handlers.append(handler)

    def publish(self, topic, message, *, retain=False):
        self.published.append((topic, message, retain))

    def publish_raw(self, topic, payload, *, retain=False):
        self.published.append((topic, json.loads(payload), retain))

    def replies(self):
        return [m for t, m, _ in self.published if t == "reply"]

    def updates(self):
        return [m for t, m, retain in self.published if t == UPDATES and retain]


@pytest.fixture
def server():
    mqtt = FakeMqtt()
    srv = MqttQueueServer(mqtt=mqtt, service=QueueService(MemoryQueueStore()), namespace=NS)
    srv.start()
    return srv


def send(srv, **msg):
    msg.setdefault("reply_to", "reply")
    msg.setdefault("corr_id", "c1")
    srv.handle_message(REQUESTS, msg)
    return srv.mqtt.replies()[-1]


def test_start_subscribes_and_publishes_retained_status(server):
    assert REQUESTS in server.mqtt.subscribed
    assert server.mqtt.updates() == [{"kind": "QUEUE_UPDATE", "payload": server.service.status()}]


def test_issue_and_call_flow(server):
    resp = send(server, type="issue_ticket")
    assert resp["type"] == "ticket_issued"
    assert resp["ticket"]["number"] == 1
    assert resp["corr_id"] == "c1"

    assert send(server, type="call_next") == {"type": "number_called", "currentNumber": 1, "corr_id": "c1"}
    assert send(server, type="call_number", number="1")["currentNumber"] == 1
    assert send(server, type="complete_number", number=1)["type"] == "ok"

    status = send(server, type="get_status")["status"]
    assert status["currentNumber"] == 1
    assert status["queueItems"][0]["status"] == "completed"
    assert server.mqtt.updates()[-1]["payload"] == status


def test_errors_are_reported_with_codes(server):
    assert send(server, type="call_next")["code"] == "no_waiting_numbers"
    assert send(server, type="call_number", number=5)["code"] == "not_found"
    assert send(server, type="remove_number", number="abc")["code"] == "invalid_input"
    assert send(server, type="set_sound", enabled="yes")["code"] == "invalid_input"
    assert send(server, type="fly")["code"] == "bad_request"


def test_failed_command_does_not_broadcast(server):
    before = len(server.mqtt.updates())
    send(server, type="complete_number", number=3)
    assert len(server.mqtt.updates()) == before


def test_settings_and_reset(server):
    send(server, type="issue_ticket")
    assert send(server, type="set_visual_alerts", enabled=False)["type"] == "ok"
    assert send(server, type="reset_queue")["type"] == "ok"

    status = server.mqtt.updates()[-1]["payload"]
    assert status["visualAlertsEnabled"] is False
    assert status["queueItems"] == []


def test_requests_without_reply_to_still_run(server):
    server.handle_message(REQUESTS, {"type": "issue_ticket"})
    assert server.mqtt.replies() == []
    assert server.service.status()["nextNumbers"] == [1]


def test_ignores_other_topics(server):
    server.handle_message("elsewhere", {"type": "issue_ticket", "reply_to": "reply"})
    assert server.service.status()["lastNumber"] == 0


def test_stop_unsubscribes_observer(server):
    server.stop()
    before = len(server.mqtt.updates())
    server.service.issue_ticket()
    assert len(server.mqtt.updates()) == before


def test_parse_helpers():
    assert parse_number({"number": 4}) == 4
    assert parse_number({"number": " 12 "}) == 12
    for bad in (None, 0, -2, True, "1.5", 2.0, "\u00b2", "\u0664", "9" * 5000, 2**70, str(2**63)):
        with pytest.raises(InvalidInput):
            parse_number({"number": bad})
    assert parse_enabled({"enabled": False}) is False
    with pytest.raises(InvalidInput):
        parse_enabled({"enabled": 1})


def test_open_store_picks_backend(tmp_path):
    from ticket_queue.server import open_store
    from ticket_queue.store import SqliteQueueStore

    assert isinstance(open_store(""), MemoryQueueStore)
    s = open_store(str(tmp_path / "q.db"))
    try:
        assert isinstance(s, SqliteQueueStore)
    finally:
        s.close()


def test_out_of_range_numbers_are_invalid_on_sqlite_backend():
    from ticket_queue.store import SqliteQueueStore

    store = SqliteQueueStore(":memory:")
    srv = MqttQueueServer(mqtt=FakeMqtt(), service=QueueService(store), namespace=NS)
    srv.start()
    try:
        for number in (2**70, "\u00b2", "9" * 5000):
            assert send(srv, type="call_number", number=number)["code"] == "invalid_input"
        assert send(srv, type="call_number", number=2**63 - 1)["code"] == "not_found"
    finally:
        store.close()
