"""Queue errors and the shared error envelope.

Every failure the queue service reports is a `QueueError` subclass with a
stable `code`. Transports turn it into an `ErrorResponse` so that the server,
the admin console and the visitor client all see the same message shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ErrorResponse:
    code: str
    message: str

    def to_message(self, *, corr_id: str | None = None) -> dict[str, Any]:
        msg: dict[str, Any] = {"type": "error", "code": self.code, "message": self.message}
        if corr_id is not None:
            msg["corr_id"] = corr_id
        return msg


class QueueError(Exception):
    """Base class for recoverable queue failures."""

    code = "queue_error"

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(self.code, str(self))


class NotFound(QueueError):
    """An operation referenced a ticket number that does not exist."""

    code = "not_found"

    def __init__(self, number: int) -> None:
        super().__init__(f"Ticket {number} not found")
        self.number = number


class DuplicateNumber(QueueError):
    code = "duplicate_number"

    def __init__(self, number: int) -> None:
        super().__init__(f"Ticket {number} already exists")
        self.number = number


class NoWaitingNumbers(QueueError):
    code = "no_waiting_numbers"

    def __init__(self) -> None:
        super().__init__("No more numbers in queue")


class InvalidInput(QueueError):
    """Malformed ticket number or setting value."""

    code = "invalid_input"
