"""JSON-over-MQTT helper built on top of paho-mqtt.

paho-mqtt is callback-based. The queue needs two patterns on top of it:

- request/response: a command is published with a `corr_id` and a
  `reply_to` topic, and `request()` blocks until the correlated reply
  arrives (visitor and staff clients).
- fan-out: plain JSON messages delivered to registered handlers (server
  request loop, display).

QoS 0 everywhere except the retained status topic, which uses QoS 1 so the
broker keeps the latest snapshot for late subscribers.
"""

from __future__ import annotations

import json
import logging
import queue
import threading
import uuid
from dataclasses import dataclass
from typing import Any, Callable

import paho.mqtt.client as mqtt

log = logging.getLogger(__name__)

MessageHandler = Callable[[str, dict[str, Any]], None]


@dataclass(frozen=True)
class PendingResponse:
    corr_id: str
    q: "queue.Queue[dict[str, Any]]"


class MqttClient:
    """Thin wrapper around paho-mqtt with JSON convenience APIs."""

    def __init__(
        self,
        *,
        client_id: str,
        host: str,
        port: int,
        keepalive: int = 30,
    ) -> None:
        self.client_id = client_id
        self.host = host
        self.port = port
        self.keepalive = keepalive

        self._client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2, client_id=client_id, clean_session=True
        )
        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_message = self._on_message

        self._handlers: list[MessageHandler] = []
        # Re-subscribed after every (re)connect.
        self._subscriptions: dict[str, int] = {}

        # corr_id -> queue used by request()
        self._pending: dict[str, PendingResponse] = {}
        self._lock = threading.Lock()

        self._started = False
        self._connected = threading.Event()

    @property
    def is_connected(self) -> bool:
        return self._started and self._connected.is_set()

    def start(self) -> None:
        """Connect and start the background network loop."""
        if self._started:
            return
        self._client.connect(self.host, self.port, keepalive=self.keepalive)
        self._client.loop_start()
        self._started = True
        log.debug("mqtt client %s connecting to %s:%d", self.client_id, self.host, self.port)

    def wait_connected(self, timeout: float = 5.0) -> bool:
        """Block until the broker acknowledged the connection."""
        return self._connected.wait(timeout)

    def stop(self) -> None:
        if not self._started:
            return
        self._client.loop_stop()
        self._client.disconnect()
        self._connected.clear()
        self._started = False

    def add_handler(self, handler: MessageHandler) -> None:
        self._handlers.append(handler)

    def subscribe(self, topic: str, *, qos: int = 0) -> None:
        with self._lock:
            self._subscriptions[topic] = qos
        self._client.subscribe(topic, qos=qos)

    def publish(self, topic: str, message: dict[str, Any], *, retain: bool = False) -> None:
        payload = json.dumps(message, separators=(",", ":"))
        self.publish_raw(topic, payload, retain=retain)

    def publish_raw(self, topic: str, payload: str, *, retain: bool = False) -> None:
        self._client.publish(topic, payload=payload.encode("utf-8"), qos=1 if retain else 0, retain=retain)

    def request(
        self,
        *,
        request_topic: str,
        response_topic: str,
        message: dict[str, Any],
        timeout: float = 5.0,
    ) -> dict[str, Any]:
        """Publish a message and wait for a correlated response.

        The caller must ensure we are subscribed to `response_topic`.
        """
        corr_id = str(uuid.uuid4())
        msg = dict(message)
        msg["corr_id"] = corr_id
        msg["reply_to"] = response_topic

        q: "queue.Queue[dict[str, Any]]" = queue.Queue(maxsize=1)
        with self._lock:
            self._pending[corr_id] = PendingResponse(corr_id=corr_id, q=q)

        self.publish(request_topic, msg)

        try:
            return q.get(timeout=timeout)
        except queue.Empty as e:
            raise TimeoutError(f"No response for corr_id={corr_id}") from e
        finally:
            with self._lock:
                self._pending.pop(corr_id, None)

    # -------------------- internal callbacks --------------------

    def _on_connect(self, client: mqtt.Client, userdata: Any, flags: Any, reason_code: Any, properties: Any = None) -> None:
        with self._lock:
            subs = list(self._subscriptions.items())
        for topic, qos in subs:
            client.subscribe(topic, qos=qos)
        log.debug("mqtt client %s connected (%s), %d subscriptions", self.client_id, reason_code, len(subs))
        self._connected.set()

    def _on_disconnect(self, client: mqtt.Client, userdata: Any, flags: Any, reason_code: Any, properties: Any = None) -> None:
        self._connected.clear()
        log.info("mqtt client %s disconnected (%s)", self.client_id, reason_code)

    def _on_message(self, client: mqtt.Client, userdata: Any, msg: mqtt.MQTTMessage) -> None:
        try:
            raw = msg.payload
            payload = raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)
            data = json.loads(payload)
        except (UnicodeDecodeError, ValueError):
            log.warning("dropping malformed message on %s", msg.topic)
            return
        if not isinstance(data, dict):
            return

        # Replies to our own requests never reach the handlers.
        corr_id = data.get("corr_id")
        if isinstance(corr_id, str):
            with self._lock:
                pending = self._pending.get(corr_id)
            if pending is not None:
                try:
                    pending.q.put_nowait(data)
                except queue.Full:
                    pass
                return

        for h in list(self._handlers):
            try:
                h(msg.topic, data)
            except Exception:
                # Keep the network loop alive.
                log.exception("handler %r failed on %s", h, msg.topic)
