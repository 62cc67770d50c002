"""MQTT topic helpers.

We keep topic construction in one place so all components agree on naming.

Topic layout under a configurable namespace (default: `ticket-queue/v1`):

Request/response:
- `<ns>/queue/requests`
    Commands and queries from visitors, staff consoles and displays.
- `<ns>/queue/responses/<client_id>`
    Correlated replies, one topic per client.

Broadcast:
- `<ns>/queue/updates`
    `QUEUE_UPDATE` envelopes after every change. Published retained, so a
    display that subscribes late gets the current state straight away.
"""

from __future__ import annotations

from .config import DEFAULT_NAMESPACE


def queue_requests(namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/queue/requests"


def queue_responses(client_id: str, namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/queue/responses/{client_id}"


def queue_updates(namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/queue/updates"
