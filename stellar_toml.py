from __future__ import annotations

import tomllib

import requests

from sep6_errors import Sep6Error


STELLAR_TOML_PATH = "/.well-known/stellar.toml"


def stellar_toml_url(anchor_url: str) -> str:
    return anchor_url.rstrip("/") + STELLAR_TOML_PATH


def fetch_stellar_toml(anchor_url: str, timeout_s: float = 30.0) -> dict:
    """Download and parse the anchor's stellar.toml.

    Some anchors serve the file as ``application/octet-stream`` or without a
    charset, so the body is always decoded from raw bytes as UTF-8.
    """
    url = stellar_toml_url(anchor_url)
    try:
        resp = requests.get(url, timeout=timeout_s)
    except requests.RequestException as e:
        raise Sep6Error.fetch("url", f"Failed to fetch stellar.toml - {e}") from e

    if resp.status_code != 200:
        raise Sep6Error.fetch(
            "status_code", f"Failed to fetch stellar.toml - StatusCode: {resp.status_code}"
        )

    try:
        return tomllib.loads(resp.content.decode("utf-8"))
    except (UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        raise Sep6Error.fetch("toml_decode", f"Failed to decode stellar.toml - {e}") from e


def fetch_signing_key(anchor_url: str, timeout_s: float = 30.0) -> str:
    """Return ``SIGNING_KEY`` from the anchor's stellar.toml."""
    config = fetch_stellar_toml(anchor_url, timeout_s=timeout_s)
    signing_key = config.get("SIGNING_KEY")
    if not isinstance(signing_key, str) or not signing_key:
        raise Sep6Error.fetch("signing_key", "stellar.toml has no SIGNING_KEY")
    return signing_key
