"""Error type shared by the SEP-6 client and the callback receiver.

Every failure is a ``Sep6Error`` tagged with an ``ErrorKind``:

- ``VALIDATION``: bad caller input or an inbound callback that failed
  authentication (malformed header, stale timestamp, signature mismatch).
- ``FETCH``: network failure, non-200/429 response, JSON/TOML decode failure.

Callers branch on ``err.kind`` (and ``err.reason`` for rejected callbacks)
instead of on exception subclasses.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    FETCH = "fetch"


class RejectReason(str, Enum):
    MALFORMED_HEADER = "malformed_header"
    STALE_SIGNATURE = "stale_signature"
    SIGNATURE_MISMATCH = "signature_mismatch"


class Sep6Error(Exception):
    def __init__(
        self,
        kind: ErrorKind,
        field: str,
        message: str,
        reason: Optional[RejectReason] = None,
    ):
        super().__init__(f"{kind.value} error: {field} - {message}")
        self.kind = kind
        self.field = field
        self.message = message
        self.reason = reason

    @classmethod
    def validation(
        cls, field: str, message: str, reason: Optional[RejectReason] = None
    ) -> "Sep6Error":
        return cls(ErrorKind.VALIDATION, field, message, reason)

    @classmethod
    def fetch(cls, field: str, message: str) -> "Sep6Error":
        return cls(ErrorKind.FETCH, field, message)

    @property
    def is_validation(self) -> bool:
        return self.kind is ErrorKind.VALIDATION

    @property
    def is_fetch(self) -> bool:
        return self.kind is ErrorKind.FETCH

    def __repr__(self) -> str:
        extra = f", reason={self.reason.value}" if self.reason else ""
        return f"Sep6Error(kind={self.kind.value}, field={self.field!r}{extra})"
