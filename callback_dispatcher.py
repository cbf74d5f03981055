"""Receive the anchor's signed status callbacks and hand them to the wallet.

Each POST goes through these steps; any failure before the body is decoded
ends the request with a 400 and an ``{"error": ...}`` body:

  1. take the ``Signature`` header, or ``X-Stellar-Signature`` if absent
  2. parse ``t=<ts>, s=<sig>``
  3. check the timestamp is within the freshness window
  4. rebuild ``<ts>.<home domain>.<raw body>``
  5. verify the anchor's ed25519 signature over it
  6. decode the body into a ``Transaction``
  7. run the wallet's handler on a worker thread and answer 200 ``{}``

A body that verifies but cannot be decoded is logged and answered with 200,
since the anchor cannot fix it by resending.
"""
from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.requests import ClientDisconnect

from client_sep6 import Sep6Client
from dispatch_pool import BoundedDispatchPool
from log_utils import log
from sep6_errors import RejectReason, Sep6Error
from sep6_models import Transaction, TransactionResponse
from signature import (
    VerificationContext,
    canonical_payload,
    check_freshness,
    parse_signature_header,
    verify_signature,
)


PRIMARY_SIGNATURE_HEADER = "Signature"
FALLBACK_SIGNATURE_HEADER = "X-Stellar-Signature"

TransactionHandler = Callable[[Transaction], Any]


class CallbackState(str, Enum):
    RECEIVED = "received"
    HEADER_EXTRACTED = "header_extracted"
    PARSED = "parsed"
    FRESHNESS_OK = "freshness_ok"
    SIGNATURE_OK = "signature_ok"
    BODY_DECODED = "body_decoded"
    DISPATCHED = "dispatched"
    REJECTED = "rejected"
    DECODE_FAILED = "decode_failed"
    DROPPED = "dropped"


@dataclass
class CallbackOutcome:
    state: CallbackState
    status_code: int = 200
    response_body: Dict[str, Any] = field(default_factory=dict)
    reason: Optional[RejectReason] = None
    transaction: Optional[Transaction] = None
    # States passed through, ending with the terminal one.
    trail: List[CallbackState] = field(default_factory=list)


def _get_header(headers: Mapping[str, str], name: str) -> str:
    value = headers.get(name)
    if value is None:
        wanted = name.lower()
        for key, candidate in headers.items():
            if key.lower() == wanted:
                value = candidate
                break
    return value or ""


def select_signature_header(headers: Mapping[str, str]) -> str:
    return _get_header(headers, PRIMARY_SIGNATURE_HEADER) or _get_header(
        headers, FALLBACK_SIGNATURE_HEADER
    )


def decode_transaction_update(body: bytes) -> Transaction:
    """Decode ``{"transaction": {...}}``; a bare transaction object is accepted too."""
    data = json.loads(body)
    if isinstance(data, dict) and "transaction" in data:
        return TransactionResponse.model_validate(data).transaction
    return Transaction.model_validate(data)


class CallbackDispatcher:
    """Checks and dispatches anchor callbacks.

    Without a ``pool`` the dispatcher makes its own and ``close()`` shuts it
    down. A pool passed in stays the caller's to shut down.
    """

    def __init__(
        self,
        context: VerificationContext,
        handler: TransactionHandler,
        pool: Optional[BoundedDispatchPool] = None,
    ):
        self.context = context
        self.handler = handler
        self._owns_pool = pool is None
        self.pool = pool if pool is not None else BoundedDispatchPool()
        self._lock = threading.Lock()
        self.counters = {"accepted": 0, "rejected": 0, "decode_failed": 0, "dropped": 0}

    def _count(self, name: str) -> None:
        with self._lock:
            self.counters[name] += 1

    def _reject(self, trail: List[CallbackState], err: Sep6Error) -> CallbackOutcome:
        self._count("rejected")
        reason = err.reason or RejectReason.SIGNATURE_MISMATCH
        log(f"callback rejected ({reason.value}): {err}", level="warning")
        return CallbackOutcome(
            state=CallbackState.REJECTED,
            status_code=400,
            response_body={"error": str(err)},
            reason=reason,
            trail=trail + [CallbackState.REJECTED],
        )

    def close(self, wait: bool = True) -> None:
        if self._owns_pool:
            self.pool.shutdown(wait=wait)

    def handle(
        self, headers: Mapping[str, str], body: bytes, now: Optional[float] = None
    ) -> CallbackOutcome:
        trail = [CallbackState.RECEIVED]

        header = select_signature_header(headers)
        if not header:
            return self._reject(
                trail,
                Sep6Error.validation(
                    "signature_header",
                    "no signature header provided",
                    RejectReason.MALFORMED_HEADER,
                ),
            )
        trail.append(CallbackState.HEADER_EXTRACTED)

        try:
            parsed = parse_signature_header(header)
            trail.append(CallbackState.PARSED)
            check_freshness(parsed.timestamp, self.context.max_age_minutes, now=now)
            trail.append(CallbackState.FRESHNESS_OK)
            payload = canonical_payload(parsed.timestamp_text, self.context.home_domain, body)
            verify_signature(payload, parsed.signature, self.context.signing_key)
            trail.append(CallbackState.SIGNATURE_OK)
        except Sep6Error as e:
            return self._reject(trail, e)

        try:
            transaction = decode_transaction_update(body)
        except (ValueError, ValidationError) as e:
            self._count("decode_failed")
            log(f"callback body decode failed after valid signature: {e}", level="warning")
            trail.append(CallbackState.DECODE_FAILED)
            return CallbackOutcome(state=CallbackState.DECODE_FAILED, trail=trail)
        trail.append(CallbackState.BODY_DECODED)

        if not self.pool.submit(self.handler, transaction):
            self._count("dropped")
            log(
                f"callback for transaction {transaction.id} dropped: dispatch pool is full",
                level="warning",
            )
            trail.append(CallbackState.DROPPED)
            return CallbackOutcome(state=CallbackState.DROPPED, transaction=transaction, trail=trail)

        self._count("accepted")
        log(f"callback accepted: transaction {transaction.id} status={transaction.status}")
        trail.append(CallbackState.DISPATCHED)
        return CallbackOutcome(state=CallbackState.DISPATCHED, transaction=transaction, trail=trail)


def register_callback_route(
    app: Optional[FastAPI],
    client: Sep6Client,
    path: str,
    handler: TransactionHandler,
    pool: Optional[BoundedDispatchPool] = None,
) -> CallbackDispatcher:
    """Add ``POST /<path>`` to ``app``, delivering verified updates to ``handler``."""
    if app is None:
        raise Sep6Error.validation("server", "no server was provided")

    dispatcher = CallbackDispatcher(client.verification_context, handler, pool=pool)
    route_path = "/" + path.lstrip("/")

    async def sep6_callback(request: Request) -> JSONResponse:
        try:
            body = await request.body()
        except ClientDisconnect as e:
            return JSONResponse(status_code=400, content={"error": f"reading body failed: {e!r}"})
        outcome = await run_in_threadpool(dispatcher.handle, request.headers, body)
        return JSONResponse(status_code=outcome.status_code, content=outcome.response_body)

    app.add_api_route(route_path, sep6_callback, methods=["POST"])
    return dispatcher
