"""Visitor QR link.

The code printed at the entrance encodes ``<public_url>/scan``; opening it
takes a ticket.
"""

from __future__ import annotations

import io

import qrcode


def ticket_url(public_url: str) -> str:
    return public_url.rstrip("/") + "/scan"


def qr_ascii(data: str) -> str:
    qr = qrcode.QRCode(border=2)
    qr.add_data(data)
    qr.make(fit=True)
    out = io.StringIO()
    qr.print_ascii(out=out)
    return out.getvalue()


def save_qr_png(data: str, path: str) -> None:
    qrcode.make(data).save(path)
