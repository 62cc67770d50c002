from __future__ import annotations

# Visitor client.
#
# What the QR code link does for a walk-up visitor: ask the server for the
# next ticket number and show it.

import argparse

from .client import QueueClient, QueueRequestError
from .config import QueueConfig, add_mqtt_args, configure_logging


def take_ticket(*, mqtt_host: str, mqtt_port: int, namespace: str) -> dict:
    """Request a new ticket and return it (`number`, `status`, `issuedAt`)."""
    with QueueClient(mqtt_host=mqtt_host, mqtt_port=mqtt_port, namespace=namespace, name="visitor") as client:
        return client.request("issue_ticket")["ticket"]


def main() -> None:
    config = QueueConfig.from_env()
    parser = argparse.ArgumentParser(description="Take a queue ticket (MQTT)")
    add_mqtt_args(parser, config)
    args = parser.parse_args()
    configure_logging(args.log_level)

    try:
        ticket = take_ticket(mqtt_host=args.mqtt_host, mqtt_port=args.mqtt_port, namespace=args.namespace)
    except (QueueRequestError, TimeoutError) as e:
        raise SystemExit(f"[visitor] error: {e}") from e
    print(f"[visitor] your number is {ticket['number']}")


if __name__ == "__main__":
    main()
