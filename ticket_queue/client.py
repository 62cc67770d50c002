from __future__ import annotations

# Request/response client for the queue server.
#
# Used by the visitor and staff command lines:
# - connect to broker with a unique client id
# - listen on a dedicated response topic
# - send one request per call and wait for the correlated reply

import time
from typing import Any

from .errors import ErrorResponse
from .mqtt_client import MqttClient
from .mqtt_topics import queue_requests, queue_responses


class QueueRequestError(Exception):
    """The server answered with an error envelope."""

    def __init__(self, response: ErrorResponse) -> None:
        super().__init__(f"{response.code}: {response.message}")
        self.response = response


class QueueClient:
    def __init__(self, *, mqtt_host: str, mqtt_port: int, namespace: str, name: str = "client") -> None:
        self.client_id = f"{name}-{int(time.time() * 1000)}"
        self.namespace = namespace
        self._reply_topic = queue_responses(self.client_id, namespace)
        self._mqtt = MqttClient(client_id=self.client_id, host=mqtt_host, port=mqtt_port)

    def __enter__(self) -> QueueClient:
        self._mqtt.start()
        self._mqtt.subscribe(self._reply_topic)
        self._mqtt.wait_connected(timeout=5.0)
        return self

    def __exit__(self, *exc: object) -> None:
        self._mqtt.stop()

    def request(self, mtype: str, *, timeout: float = 5.0, **fields: Any) -> dict[str, Any]:
        """Send `mtype` with `fields`; raise `QueueRequestError` on an error reply."""
        resp = self._mqtt.request(
            request_topic=queue_requests(self.namespace),
            response_topic=self._reply_topic,
            message={"type": mtype, **fields},
            timeout=timeout,
        )
        if resp.get("type") == "error":
            raise QueueRequestError(
                ErrorResponse(str(resp.get("code", "error")), str(resp.get("message", "")))
            )
        return resp
