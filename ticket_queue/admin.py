from __future__ import annotations

# Staff console.
#
# One command per invocation, sent to the queue server over MQTT:
#   status | next | call N | complete N | remove N | reset
#   sound on|off | visual-alerts on|off
#
# Calling a number never completes the previous one; staff run `complete`
# when they are done with a visitor.

import argparse
import json
from typing import Any

from .client import QueueClient, QueueRequestError
from .config import QueueConfig, add_mqtt_args, configure_logging


def _on_off(value: str) -> bool:
    v = value.lower()
    if v in ("on", "true", "yes", "1"):
        return True
    if v in ("off", "false", "no", "0"):
        return False
    raise argparse.ArgumentTypeError(f"expected on/off, got {value!r}")


def add_admin_commands(parser: argparse.ArgumentParser) -> None:
    sub = parser.add_subparsers(dest="admin_cmd", required=True)
    sub.add_parser("status", help="print the current queue status")
    sub.add_parser("next", help="call the lowest waiting number")
    for name, help_text in (
        ("call", "call a specific number (also recalls completed tickets)"),
        ("complete", "mark a number as completed"),
        ("remove", "delete a number from the queue"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("number", type=int)
    sub.add_parser("reset", help="delete all tickets and restart numbering at 1")
    p_sound = sub.add_parser("sound", help="turn the display chime on/off")
    p_sound.add_argument("enabled", type=_on_off)
    p_visual = sub.add_parser("visual-alerts", help="turn the display flash on/off")
    p_visual.add_argument("enabled", type=_on_off)


def build_request(args: argparse.Namespace) -> tuple[str, dict[str, Any]]:
    """Translate parsed admin arguments into a (request type, fields) pair."""
    cmd = args.admin_cmd
    if cmd == "status":
        return "get_status", {}
    if cmd == "next":
        return "call_next", {}
    if cmd == "call":
        return "call_number", {"number": args.number}
    if cmd == "complete":
        return "complete_number", {"number": args.number}
    if cmd == "remove":
        return "remove_number", {"number": args.number}
    if cmd == "reset":
        return "reset_queue", {}
    if cmd == "sound":
        return "set_sound", {"enabled": args.enabled}
    if cmd == "visual-alerts":
        return "set_visual_alerts", {"enabled": args.enabled}
    raise ValueError(f"unknown admin command: {cmd}")


def run_admin(args: argparse.Namespace) -> None:
    mtype, fields = build_request(args)
    with QueueClient(
        mqtt_host=args.mqtt_host, mqtt_port=args.mqtt_port, namespace=args.namespace, name="admin"
    ) as client:
        try:
            resp = client.request(mtype, **fields)
        except (QueueRequestError, TimeoutError) as e:
            raise SystemExit(f"[admin] error: {e}") from e

    if resp.get("type") == "status":
        print(json.dumps(resp["status"], indent=2))
    elif resp.get("type") == "number_called":
        print(f"[admin] now serving {resp['currentNumber']}")
    else:
        print("[admin] ok")


def main() -> None:
    config = QueueConfig.from_env()
    parser = argparse.ArgumentParser(description="Queue staff console (MQTT)")
    add_mqtt_args(parser, config)
    add_admin_commands(parser)
    args = parser.parse_args()
    configure_logging(args.log_level)
    run_admin(args)


if __name__ == "__main__":
    main()
