from __future__ import annotations

# Console display.
#
# Subscribes to the updates topic and prints a line per QUEUE_UPDATE:
#   Now serving 4 | next: 5, 6 (2 waiting)
# The updates topic is retained, so the current state shows up right after
# connecting.

import argparse
import time
from typing import Any

from .broadcast import QUEUE_UPDATE
from .config import QueueConfig, add_mqtt_args, configure_logging


def render_update(envelope: dict[str, Any]) -> str | None:
    """Format an update envelope for the console; ``None`` for other messages."""
    if envelope.get("kind") != QUEUE_UPDATE:
        return None
    status = envelope.get("payload")
    if not isinstance(status, dict):
        return None

    current = status.get("currentNumber") or 0
    head = f"Now serving {current}" if current else "Now serving -"
    next_numbers = status.get("nextNumbers") or []
    shown = ", ".join(str(n) for n in next_numbers[:5])
    if len(next_numbers) > 5:
        shown += ", ..."
    waiting = status.get("waitingCount", len(next_numbers))
    line = f"{head} | next: {shown or '-'} ({waiting} waiting)"
    if status.get("lastCalledAt"):
        line += f" | called at {status['lastCalledAt']}"
    return line


def main() -> None:
    from .mqtt_client import MqttClient
    from .mqtt_topics import queue_updates

    config = QueueConfig.from_env()
    parser = argparse.ArgumentParser(description="Console queue display (MQTT)")
    add_mqtt_args(parser, config)
    args = parser.parse_args()
    configure_logging(args.log_level)

    mqtt = MqttClient(client_id=f"display-{int(time.time())}", host=args.mqtt_host, port=args.mqtt_port)

    def on_message(topic: str, msg: dict[str, Any]) -> None:
        line = render_update(msg)
        if line:
            print(line, flush=True)

    mqtt.add_handler(on_message)
    mqtt.start()
    mqtt.subscribe(queue_updates(args.namespace), qos=1)
    print(f"[display] connected to MQTT {args.mqtt_host}:{args.mqtt_port}, namespace={args.namespace}")

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        mqtt.stop()


if __name__ == "__main__":
    main()
