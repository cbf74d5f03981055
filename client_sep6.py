from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar
from urllib.parse import urlencode, urlparse

import requests
from pydantic import BaseModel, ValidationError
from stellar_sdk import Keypair

from log_utils import log, start_timer
from sep6_errors import Sep6Error
from sep6_models import (
    DepositResponse,
    InfoResponse,
    Transaction,
    TransactionResponse,
    TransactionsResponse,
)
from signature import VerificationContext, validate_max_age
from stellar_toml import fetch_signing_key


M = TypeVar("M", bound=BaseModel)

DEFAULT_TRANSACTIONS_LIMIT = 10
_ORDERS = {"asc", "desc"}


def remove_trailing_slash(url: str) -> str:
    if url.endswith("/"):
        return url[:-1]
    return url


def build_url(base_url: str, path: str, query_params: Optional[Mapping[str, str]] = None) -> str:
    """``<base>/<path>[?query]`` with query keys in sorted order."""
    url = f"{base_url}/{path}"
    if query_params:
        url += "?" + urlencode(sorted(query_params.items()))
    return url


def validate_not_empty(fields: Mapping[str, str]) -> None:
    for field_name, value in fields.items():
        if not value:
            raise Sep6Error.validation(field_name, "cannot be empty")


def validate_amount(amount: float) -> None:
    if amount <= 0:
        raise Sep6Error.validation("amount", "must be positive")


def _validate_http_url(field: str, url: str) -> str:
    parsed = urlparse(url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise Sep6Error.validation(field, f"invalid URL: {url!r}")
    return remove_trailing_slash(url)


def _error_message(resp: requests.Response) -> str:
    body = resp.text or ""
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("error"):
        return f"Received non-200 response ({resp.status_code}): {data['error']}"
    # Avoid exploding logs; keep it reasonably small.
    return f"Received non-200 response ({resp.status_code}): {body[:4000]}"


def send_request(url: str, model: Type[M], timeout_s: float = 30.0) -> M:
    """GET ``url`` and decode the JSON body into ``model``.

    429 is reported separately from other non-200 statuses so callers can
    decide whether to try again later.
    """
    t0 = start_timer()
    try:
        resp = requests.get(url, headers={"Accept": "application/json"}, timeout=timeout_s)
    except requests.RequestException as e:
        raise Sep6Error.fetch("network", f"Sending request failed: {e}") from e
    log(f"GET {url} -> HTTP {resp.status_code}", since=t0)

    if resp.status_code == 429:
        raise Sep6Error.fetch("rate_limit", "service has rate limited you, try again later")
    if resp.status_code != 200:
        raise Sep6Error.fetch("http_response", _error_message(resp))

    try:
        return model.model_validate(resp.json())
    except (ValueError, ValidationError) as e:
        raise Sep6Error.fetch("json_decode", f"Decoding response failed: {e}") from e


class Sep6Client:
    """Wallet-side client for one SEP-6 anchor.

    The anchor's signing key is read from its stellar.toml when the client is
    created; it is then fixed for the life of the client and used to check
    every status callback the anchor sends (see ``callback_dispatcher``).
    """

    def __init__(
        self,
        secret_key: str,
        anchor_url: str,
        horizon_url: str,
        home_domain: str,
        *,
        max_signature_age_minutes: float = 2,
        timeout_s: float = 30.0,
        signing_key: Optional[str] = None,
    ):
        try:
            keypair = Keypair.from_secret(secret_key)
        except ValueError as e:
            raise Sep6Error.validation("secret_key", str(e)) from e

        self.horizon_url = _validate_http_url("horizon_url", horizon_url)
        self.anchor_url = _validate_http_url("anchor_url", anchor_url)
        validate_not_empty({"home_domain": home_domain})
        validate_max_age(max_signature_age_minutes, "max_signature_age_minutes")

        self.secret_key = secret_key
        self.address = keypair.public_key
        self.home_domain = home_domain
        self.timeout_s = timeout_s

        if signing_key is None:
            try:
                signing_key = fetch_signing_key(self.anchor_url, timeout_s=timeout_s)
            except Sep6Error as e:
                raise Sep6Error.fetch(
                    "anchor_url", f"couldn't fetch signing key from stellar.toml: {e.message}"
                ) from e
        self._context = VerificationContext(
            signing_key=signing_key,
            home_domain=home_domain,
            max_age_minutes=max_signature_age_minutes,
        )

    @property
    def verification_context(self) -> VerificationContext:
        return self._context

    @property
    def signing_key(self) -> str:
        return self._context.signing_key

    def _get(self, path: str, model: Type[M], params: Optional[Dict[str, str]] = None) -> M:
        return send_request(build_url(self.anchor_url, path, params), model, timeout_s=self.timeout_s)

    def get_info(self) -> InfoResponse:
        return self._get("info", InfoResponse)

    def get_transactions(
        self,
        account: str,
        asset_code: str,
        memo: Optional[int] = None,
        limit: Optional[int] = None,
        order: Optional[str] = None,
    ) -> List[Transaction]:
        """List this account's transactions for one asset.

        With ``memo`` the account filter becomes ``<account>:<memo>``, which
        is how anchors tell apart deposits for a shared (custodial) account.
        """
        validate_not_empty({"account": account, "asset_code": asset_code})

        params = {
            "account": account if memo is None else f"{account}:{memo}",
            "asset_code": asset_code,
            "limit": str(limit if limit is not None else DEFAULT_TRANSACTIONS_LIMIT),
        }
        if order in _ORDERS:
            params["order"] = order

        return self._get("transactions", TransactionsResponse, params).transactions

    def get_transaction(self, transaction_id: str) -> Transaction:
        validate_not_empty({"transaction_id": transaction_id})
        return self._get("transaction", TransactionResponse, {"id": transaction_id}).transaction

    def create_deposit(
        self,
        asset_code: str,
        amount: float,
        memo: int,
        account: str,
        on_change_callback: Optional[str] = None,
    ) -> DepositResponse:
        """Start a deposit; the anchor answers with instructions for paying in.

        If ``on_change_callback`` is set the anchor POSTs signed status
        updates for this deposit to that URL.
        """
        validate_not_empty({"asset_code": asset_code, "account": account})
        validate_amount(amount)

        params: Dict[str, Any] = {
            "asset_code": asset_code,
            "amount": f"{amount:f}",
            "memo": str(memo),
            "memo_type": "id",
            "account": account,
        }
        if on_change_callback:
            params["on_change_callback"] = on_change_callback

        return self._get("deposit", DepositResponse, params)
