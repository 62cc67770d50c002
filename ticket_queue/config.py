"""Runtime configuration.

Values come from environment variables and serve as defaults for the
command-line flags of every entry point (flags win):

- ``TICKET_QUEUE_MQTT_HOST`` / ``TICKET_QUEUE_MQTT_PORT``: broker address
- ``TICKET_QUEUE_NAMESPACE``: topic prefix, lets several queues share a broker
- ``TICKET_QUEUE_DB``: sqlite file for the server; empty keeps state in memory
- ``TICKET_QUEUE_LOG_LEVEL``: logging level name
- ``TICKET_QUEUE_PUBLIC_URL``: base URL the visitor QR code points at
"""

from __future__ import annotations

import argparse
import logging
import os
from dataclasses import dataclass
from typing import Mapping

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_NAMESPACE = "ticket-queue/v1"


@dataclass(frozen=True)
class QueueConfig:
    mqtt_host: str = "127.0.0.1"
    mqtt_port: int = 1883
    namespace: str = DEFAULT_NAMESPACE
    db_path: str = ""
    log_level: str = "INFO"
    public_url: str = "http://localhost:5000"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> QueueConfig:
        env = os.environ if environ is None else environ
        defaults = cls()
        port = env.get("TICKET_QUEUE_MQTT_PORT")
        try:
            mqtt_port = int(port) if port else defaults.mqtt_port
        except ValueError as e:
            raise ValueError(f"TICKET_QUEUE_MQTT_PORT must be an integer, got {port!r}") from e
        return cls(
            mqtt_host=env.get("TICKET_QUEUE_MQTT_HOST", defaults.mqtt_host),
            mqtt_port=mqtt_port,
            namespace=env.get("TICKET_QUEUE_NAMESPACE", defaults.namespace),
            db_path=env.get("TICKET_QUEUE_DB", defaults.db_path),
            log_level=env.get("TICKET_QUEUE_LOG_LEVEL", defaults.log_level).upper(),
            public_url=env.get("TICKET_QUEUE_PUBLIC_URL", defaults.public_url),
        )


def add_mqtt_args(parser: argparse.ArgumentParser, config: QueueConfig) -> None:
    parser.add_argument("--mqtt-host", default=config.mqtt_host)
    parser.add_argument("--mqtt-port", type=int, default=config.mqtt_port)
    parser.add_argument("--namespace", default=config.namespace)
    parser.add_argument("--log-level", default=config.log_level, help="DEBUG, INFO, WARNING, ...")


def configure_logging(level: str = "INFO") -> None:
    """Set up root logging once for a CLI process, rendered by Rich on stderr."""
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
    )
    handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt="[%Y-%m-%d %H:%M:%S]"))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%Y-%m-%d %H:%M:%S]",
        handlers=[handler],
        force=True,
    )
