"""Anchor callback signatures.

An anchor signs each status callback it POSTs to the wallet. The header is

  Signature: t=<unix seconds>, s=<base64 ed25519 signature>

(older anchors send it as ``X-Stellar-Signature``) and the signed bytes are

  <t> + "." + <wallet home domain> + "." + <raw request body>

The signature is made with the key published as ``SIGNING_KEY`` in the
anchor's stellar.toml. Verification must use the body exactly as received:
re-serialized JSON will not match.
"""
from __future__ import annotations

import base64
import binascii
import math
import re
import time
from dataclasses import dataclass
from typing import Optional, Union

from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey
from stellar_sdk import Keypair, StrKey

from sep6_errors import RejectReason, Sep6Error


TIMESTAMP_PREFIX = "t="
SIGNATURE_PREFIX = " s="

_DIGITS = re.compile(r"[0-9]+")
# Timestamps are signed 64-bit seconds on the anchor side.
MAX_TIMESTAMP = 2**63 - 1
_MAX_TIMESTAMP_DIGITS = len(str(MAX_TIMESTAMP))


def validate_max_age(minutes: float, field: str = "max_age_minutes") -> float:
    """The freshness window must be a positive, finite number of minutes."""
    if not isinstance(minutes, (int, float)) or not math.isfinite(minutes) or minutes <= 0:
        raise Sep6Error.validation(field, f"must be a positive number of minutes, got {minutes!r}")
    return minutes


@dataclass(frozen=True)
class VerificationContext:
    """What a wallet needs to check its anchor's callbacks; built once per client."""

    signing_key: str
    home_domain: str
    max_age_minutes: float = 2

    def __post_init__(self):
        validate_max_age(self.max_age_minutes)


@dataclass(frozen=True)
class SignatureHeader:
    timestamp: int
    # Digits exactly as sent; the signed payload is built from these.
    timestamp_text: str
    signature: bytes


def parse_signature_header(header: Optional[str]) -> SignatureHeader:
    """Split ``t=<ts>, s=<sig>`` into its parts.

    Only the prefixes are stripped, so the header must follow the anchor's
    formatting (comma then a single space before ``s=``).
    """
    if not header:
        raise Sep6Error.validation(
            "signature_header", "no signature header provided", RejectReason.MALFORMED_HEADER
        )

    timestamp_text = ""
    signature_text = ""
    for part in header.split(","):
        if part.startswith(TIMESTAMP_PREFIX):
            timestamp_text = part[len(TIMESTAMP_PREFIX):]
        if part.startswith(SIGNATURE_PREFIX):
            signature_text = part[len(SIGNATURE_PREFIX):]

    if not timestamp_text or not signature_text:
        raise Sep6Error.validation(
            "signature_header", "signature header is malformed", RejectReason.MALFORMED_HEADER
        )

    if (
        len(timestamp_text) > _MAX_TIMESTAMP_DIGITS
        or not _DIGITS.fullmatch(timestamp_text)
        or int(timestamp_text) > MAX_TIMESTAMP
    ):
        raise Sep6Error.validation(
            "timestamp", "invalid timestamp in signature header", RejectReason.MALFORMED_HEADER
        )

    try:
        signature = base64.b64decode(signature_text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise Sep6Error.validation(
            "signature", "failed to decode base64 signature", RejectReason.MALFORMED_HEADER
        ) from e

    return SignatureHeader(
        timestamp=int(timestamp_text),
        timestamp_text=timestamp_text,
        signature=signature,
    )


def check_freshness(timestamp: int, max_age_minutes: float, now: Optional[float] = None) -> None:
    """Accept only timestamps within ``[now - max_age, now]``."""
    if now is None:
        now = time.time()
    age = now - timestamp
    if age < 0:
        raise Sep6Error.validation(
            "timestamp", "request timestamp is in the future", RejectReason.STALE_SIGNATURE
        )
    if age > max_age_minutes * 60:
        raise Sep6Error.validation(
            "timestamp", "request is not fresh", RejectReason.STALE_SIGNATURE
        )


def canonical_payload(timestamp_text: str, home_domain: str, raw_body: Union[bytes, str]) -> bytes:
    if isinstance(raw_body, str):
        raw_body = raw_body.encode("utf-8")
    return b".".join([timestamp_text.encode("ascii"), home_domain.encode("utf-8"), raw_body])


def verify_signature(payload: bytes, signature: bytes, signing_key: str) -> None:
    """Check an ed25519 signature against a Stellar account key (``G...``).

    The key is decoded on every call.
    """
    try:
        raw_key = StrKey.decode_ed25519_public_key(signing_key)
    except ValueError as e:
        raise Sep6Error.validation("signing_key", "invalid stellar public key") from e

    try:
        VerifyKey(raw_key).verify(payload, signature)
    except (BadSignatureError, ValueError) as e:
        raise Sep6Error.validation(
            "signature_verification",
            "signature verification failed",
            RejectReason.SIGNATURE_MISMATCH,
        ) from e


def verify_signature_header(
    header: Optional[str],
    body: Union[bytes, str],
    signing_key: str,
    home_domain: str,
    max_age_minutes: float,
    now: Optional[float] = None,
) -> SignatureHeader:
    parsed = parse_signature_header(header)
    check_freshness(parsed.timestamp, max_age_minutes, now=now)
    payload = canonical_payload(parsed.timestamp_text, home_domain, body)
    verify_signature(payload, parsed.signature, signing_key)
    return parsed


def sign_callback(
    secret_seed: str,
    body: Union[bytes, str],
    home_domain: str,
    timestamp: Optional[int] = None,
) -> str:
    """Build a ``Signature`` header value the way an anchor does."""
    if timestamp is None:
        timestamp = int(time.time())
    payload = canonical_payload(str(timestamp), home_domain, body)
    signature = Keypair.from_secret(secret_seed).sign(payload)
    return f"t={timestamp}, s={base64.b64encode(signature).decode('ascii')}"
