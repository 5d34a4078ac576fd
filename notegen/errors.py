"""Error type shared by the collaborators, the orchestrator and the web layer."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    UPSTREAM = "upstream"
    UNREACHABLE = "unreachable"
    EMPTY = "empty"


DEFAULT_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UPSTREAM: 500,
    ErrorKind.UNREACHABLE: 502,
    ErrorKind.EMPTY: 422,
}


class NoteError(Exception):
    """A terminal failure of one request.

    ``kind`` tells apart input problems caught before any network call,
    vendor failures, an unreachable vendor and a vendor that answered with
    nothing usable. ``status`` is the HTTP status surfaced to the caller.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        status: Optional[int] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status = status or DEFAULT_STATUS[kind]
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "kind": self.kind.value,
            "status": self.status,
            "details": self.details,
        }


def validation_error(message: str, status: Optional[int] = None) -> NoteError:
    return NoteError(ErrorKind.VALIDATION, message, status=status)


def empty_error(message: str) -> NoteError:
    return NoteError(ErrorKind.EMPTY, message)
