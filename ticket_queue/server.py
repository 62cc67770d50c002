from __future__ import annotations

# Queue server.
#
# This file contains two layers:
# 1) `MqttQueueServer`: maps request messages onto `QueueService` calls and
#    mirrors every status broadcast onto the retained updates topic
# 2) `main()`: wires a store, the service and an MQTT connection together
#
# The service itself (ticket_queue.service) never touches MQTT.

import argparse
import logging
import time
from typing import Any, Callable, TYPE_CHECKING

from .config import QueueConfig, add_mqtt_args, configure_logging
from .errors import ErrorResponse, InvalidInput, QueueError
from .models import MAX_TICKET_NUMBER
from .mqtt_topics import queue_requests, queue_updates
from .service import QueueService
from .store import MemoryQueueStore, QueueStore, SqliteQueueStore

if TYPE_CHECKING:
    from .mqtt_client import MqttClient

log = logging.getLogger(__name__)


class MqttUpdatesObserver:
    """Broadcast observer that republishes envelopes on the updates topic."""

    def __init__(self, mqtt: MqttClient, topic: str) -> None:
        self.mqtt = mqtt
        self.topic = topic

    def __repr__(self) -> str:
        return f"MqttUpdatesObserver({self.topic!r})"

    @property
    def is_open(self) -> bool:
        return self.mqtt.is_connected

    def send(self, text: str) -> None:
        self.mqtt.publish_raw(self.topic, text, retain=True)


def parse_number(msg: dict[str, Any]) -> int:
    """Read a positive ticket number from a request (ints or digit strings)."""
    raw = msg.get("number")
    if isinstance(raw, bool):
        raise InvalidInput("Invalid number format")
    if isinstance(raw, str):
        text = raw.strip()
        # ASCII digits only, and short enough to fit the integer range.
        if not (text.isascii() and text.isdigit()) or len(text) > 19:
            raise InvalidInput("Invalid number format")
        raw = int(text)
    if not isinstance(raw, int) or not 0 < raw <= MAX_TICKET_NUMBER:
        raise InvalidInput("Invalid number format")
    return raw


def parse_enabled(msg: dict[str, Any]) -> bool:
    enabled = msg.get("enabled")
    if not isinstance(enabled, bool):
        raise InvalidInput("Invalid enabled value")
    return enabled


class MqttQueueServer:
    """MQTT adapter around the QueueService."""

    def __init__(self, *, mqtt: MqttClient, service: QueueService, namespace: str) -> None:
        self.mqtt = mqtt
        self.service = service
        self.namespace = namespace
        self.requests_topic = queue_requests(namespace)
        self.observer = MqttUpdatesObserver(mqtt, queue_updates(namespace))

        self._commands: dict[str, Callable[[dict[str, Any]], dict[str, Any]]] = {
            "issue_ticket": self._issue_ticket,
            "call_next": self._call_next,
            "call_number": self._call_number,
            "complete_number": self._complete_number,
            "remove_number": self._remove_number,
            "reset_queue": self._reset_queue,
            "set_sound": self._set_sound,
            "set_visual_alerts": self._set_visual_alerts,
            "get_status": self._get_status,
        }

    def start(self) -> None:
        self.mqtt.subscribe(self.requests_topic)
        self.mqtt.add_handler(self.handle_message)
        # Publishes the current state right away (retained).
        self.service.broadcaster.subscribe(self.observer)

    def stop(self) -> None:
        self.service.broadcaster.unsubscribe(self.observer)

    def _reply(self, reply_to: str, corr_id: str | None, message: dict[str, Any]) -> None:
        msg = dict(message)
        if corr_id is not None:
            msg["corr_id"] = corr_id
        self.mqtt.publish(reply_to, msg)

    def handle_message(self, topic: str, msg: dict[str, Any]) -> None:
        if topic != self.requests_topic:
            return

        mtype = msg.get("type")
        corr_id = msg.get("corr_id") if isinstance(msg.get("corr_id"), str) else None
        reply_to = msg.get("reply_to") if isinstance(msg.get("reply_to"), str) else None

        # Fire-and-forget commands are still executed; there is just no reply.
        command = self._commands.get(mtype) if isinstance(mtype, str) else None
        if command is None:
            if reply_to:
                err = ErrorResponse("bad_request", f"Unknown request type: {mtype!r}")
                self._reply(reply_to, corr_id, err.to_message())
            return

        try:
            response = command(msg)
        except QueueError as e:
            log.info("%s rejected: %s", mtype, e)
            response = e.to_response().to_message()
        except Exception:
            log.exception("%s failed", mtype)
            response = ErrorResponse("internal_error", f"Failed to handle {mtype}").to_message()

        if reply_to:
            self._reply(reply_to, corr_id, response)

    # -------------------- commands --------------------

    def _issue_ticket(self, msg: dict[str, Any]) -> dict[str, Any]:
        item = self.service.issue_ticket()
        return {"type": "ticket_issued", "ticket": item.to_dict()}

    def _call_next(self, msg: dict[str, Any]) -> dict[str, Any]:
        return {"type": "number_called", "currentNumber": self.service.call_next()}

    def _call_number(self, msg: dict[str, Any]) -> dict[str, Any]:
        number = self.service.call_number(parse_number(msg))
        return {"type": "number_called", "currentNumber": number}

    def _complete_number(self, msg: dict[str, Any]) -> dict[str, Any]:
        self.service.complete_number(parse_number(msg))
        return {"type": "ok"}

    def _remove_number(self, msg: dict[str, Any]) -> dict[str, Any]:
        self.service.remove_number(parse_number(msg))
        return {"type": "ok"}

    def _reset_queue(self, msg: dict[str, Any]) -> dict[str, Any]:
        self.service.reset_queue()
        return {"type": "ok"}

    def _set_sound(self, msg: dict[str, Any]) -> dict[str, Any]:
        self.service.set_sound_enabled(parse_enabled(msg))
        return {"type": "ok"}

    def _set_visual_alerts(self, msg: dict[str, Any]) -> dict[str, Any]:
        self.service.set_visual_alerts_enabled(parse_enabled(msg))
        return {"type": "ok"}

    def _get_status(self, msg: dict[str, Any]) -> dict[str, Any]:
        return {"type": "status", "status": self.service.status()}


def open_store(db_path: str) -> QueueStore:
    """Sqlite store when a path is given, in-memory otherwise."""
    if db_path:
        return SqliteQueueStore(db_path)
    return MemoryQueueStore()


def main() -> None:
    # Import MQTT dependencies only when running the real service.
    from .mqtt_client import MqttClient

    config = QueueConfig.from_env()
    parser = argparse.ArgumentParser(description="Queue server (MQTT)")
    add_mqtt_args(parser, config)
    parser.add_argument(
        "--db",
        default=config.db_path,
        help="sqlite file for queue state (default: keep state in memory)",
    )
    args = parser.parse_args()
    configure_logging(args.log_level)

    store = open_store(args.db)
    service = QueueService(store)

    mqtt_client = MqttClient(client_id="queue-server", host=args.mqtt_host, port=args.mqtt_port)
    mqtt_client.start()
    if not mqtt_client.wait_connected(timeout=5.0):
        log.warning("broker did not acknowledge the connection yet, updates wait for reconnect")

    server = MqttQueueServer(mqtt=mqtt_client, service=service, namespace=args.namespace)
    server.start()

    where = args.db or "memory"
    print(f"[server] connected to MQTT {args.mqtt_host}:{args.mqtt_port}, namespace={args.namespace}, store={where}")

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        server.stop()
        mqtt_client.stop()
        store.close()


if __name__ == "__main__":
    main()
