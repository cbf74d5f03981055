#!/usr/bin/env python3
"""Wallet demo: talk to a SEP-6 anchor and receive its signed callbacks.

Usage:
  export SEP6_SECRET_KEY=S...
  export SEP6_ANCHOR_URL=https://anchor.example.com
  export SEP6_HOME_DOMAIN=wallet.example.com   # public host of this server

  python run_wallet_demo.py --asset-code USDC --amount 10 --memo 1234 \
      --callback-url https://wallet.example.com/webhook

The deposit's status updates arrive at POST /<SEP6_WEBHOOK_PATH> and are
printed once their signature has been checked.
"""
from __future__ import annotations

import argparse
import json
import sys

import uvicorn
from fastapi import FastAPI

from callback_dispatcher import register_callback_route
from client_sep6 import Sep6Client
from dispatch_pool import BoundedDispatchPool, OVERFLOW_POLICIES
from log_utils import log, start_timer
from sep6_errors import Sep6Error
from sep6_models import Transaction
from settings import load_settings


def print_update(update: Transaction) -> None:
    log(f"transaction {update.id}: status={update.status} amount_in={update.amount_in}")


def build_app(client: Sep6Client, path: str, pool: BoundedDispatchPool) -> FastAPI:
    app = FastAPI(title="SEP-6 Wallet Callback Receiver")
    register_callback_route(app, client, path, print_update, pool=pool)
    return app


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="SEP-6 wallet demo (deposit + callback receiver).")
    parser.add_argument('--info', action='store_true', help='Print the anchor /info response')
    parser.add_argument('--asset-code', default=None, help='Asset for the deposit / transaction listing')
    parser.add_argument('--amount', type=float, default=None, help='Deposit amount (requires --asset-code)')
    parser.add_argument('--memo', type=int, default=0, help='Memo id attached to the deposit')
    parser.add_argument('--account', default=None, help='Receiving account (defaults to the wallet address)')
    parser.add_argument('--callback-url', default=None, help='on_change_callback URL sent with the deposit')
    parser.add_argument('--list-limit', type=int, default=None, help='List this many transactions for --asset-code')
    parser.add_argument('--port', type=int, default=None, help='Webhook server port (defaults to PORT or 8000)')
    parser.add_argument('--overflow', choices=OVERFLOW_POLICIES, default=None)
    parser.add_argument('--no-serve', action='store_true', help='Exit instead of serving the webhook')
    args = parser.parse_args(argv)

    run_start = start_timer()
    try:
        settings = load_settings()
        client = Sep6Client(
            settings.secret_key,
            settings.anchor_url,
            settings.horizon_url,
            settings.home_domain,
            max_signature_age_minutes=settings.max_signature_age_minutes,
            timeout_s=settings.http_timeout_s,
        )
        log(f"Wallet {client.address} using anchor {client.anchor_url}", since=run_start)

        if args.info:
            info = client.get_info()
            print(json.dumps(info.model_dump(by_alias=True), indent=2))

        account = args.account or client.address
        if args.amount is not None:
            if not args.asset_code:
                parser.error('--amount requires --asset-code')
            deposit = client.create_deposit(
                args.asset_code, args.amount, args.memo, account, args.callback_url
            )
            log(f"Deposit {deposit.id} created: {deposit.how}", since=run_start)

        if args.list_limit is not None and args.asset_code:
            txs = client.get_transactions(account, args.asset_code, limit=args.list_limit)
            log(f"{len(txs)} transactions for {account}/{args.asset_code}", since=run_start)
    except Sep6Error as e:
        log(f"{e}", since=run_start, level="error")
        return 1

    if args.no_serve:
        return 0

    pool = BoundedDispatchPool(
        max_workers=settings.dispatch_workers,
        max_queue=settings.dispatch_queue,
        overflow=args.overflow or settings.dispatch_overflow,
    )
    app = build_app(client, settings.webhook_path, pool)
    port = args.port or settings.port
    log(f"Serving callbacks on :{port}/{settings.webhook_path.lstrip('/')}", since=run_start)
    try:
        uvicorn.run(app, host="0.0.0.0", port=port)
    finally:
        pool.shutdown(wait=True)
    return 0


if __name__ == '__main__':
    sys.exit(main())
