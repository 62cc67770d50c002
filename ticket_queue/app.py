from __future__ import annotations

# Single entrypoint.
#
#   python -m ticket_queue.app serve [--db queue.db]
#   python -m ticket_queue.app take
#   python -m ticket_queue.app admin next
#   python -m ticket_queue.app display
#   python -m ticket_queue.app ticket-url [--output qr.png]
#
# Each subcommand forwards to the module's own `main()`, so the modules also
# run standalone (`python -m ticket_queue.server`, ...).

import argparse
import sys

from .config import QueueConfig, add_mqtt_args, configure_logging


def main() -> None:
    config = QueueConfig.from_env()
    parser = argparse.ArgumentParser(description="Walk-up queue ticketing (MQTT) - main entrypoint")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_serve = sub.add_parser("serve", help="run the queue server")
    add_mqtt_args(p_serve, config)
    p_serve.add_argument("--db", default=config.db_path, help="sqlite file (default: in memory)")

    p_take = sub.add_parser("take", help="take a ticket, as the QR link does")
    add_mqtt_args(p_take, config)

    p_admin = sub.add_parser("admin", help="staff commands: status, next, call, complete, ...")
    add_mqtt_args(p_admin, config)
    from .admin import add_admin_commands

    add_admin_commands(p_admin)

    p_display = sub.add_parser("display", help="print the served number on every update")
    add_mqtt_args(p_display, config)

    p_url = sub.add_parser("ticket-url", help="print the visitor link and its QR code")
    p_url.add_argument("--public-url", default=config.public_url)
    p_url.add_argument("--output", default=None, help="also save the QR code as a PNG file")

    args = parser.parse_args()

    if args.cmd == "ticket-url":
        from .qr import qr_ascii, save_qr_png, ticket_url

        url = ticket_url(args.public_url)
        print(url)
        print(qr_ascii(url))
        if args.output:
            save_qr_png(url, args.output)
            print(f"[qr] saved {args.output}")
        return

    if args.cmd == "admin":
        from .admin import run_admin

        configure_logging(args.log_level)
        run_admin(args)
        return

    common = [
        "--mqtt-host",
        args.mqtt_host,
        "--mqtt-port",
        str(args.mqtt_port),
        "--namespace",
        args.namespace,
        "--log-level",
        args.log_level,
    ]

    if args.cmd == "serve":
        from .server import main as run

        run_args = common + (["--db", args.db] if args.db else [])
        _dispatch_to_module_main(run, run_args)
        return

    if args.cmd == "take":
        from .visitor import main as run

        _dispatch_to_module_main(run, common)
        return

    if args.cmd == "display":
        from .display import main as run

        _dispatch_to_module_main(run, common)
        return


def _dispatch_to_module_main(module_main, argv: list[str]) -> None:
    old_argv = sys.argv[:]
    try:
        sys.argv = [old_argv[0], *argv]
        module_main()
    finally:
        sys.argv = old_argv


if __name__ == "__main__":
    main()
