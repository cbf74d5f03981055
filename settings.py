from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dispatch_pool import OVERFLOW_POLICIES, OVERFLOW_REJECT
from sep6_errors import Sep6Error
from signature import validate_max_age


DEFAULT_HORIZON_URL = "https://horizon.stellar.org"


@dataclass(frozen=True)
class Settings:
    secret_key: str
    anchor_url: str
    home_domain: str
    horizon_url: str = DEFAULT_HORIZON_URL
    max_signature_age_minutes: float = 2
    webhook_path: str = "webhook"
    dispatch_workers: int = 4
    dispatch_queue: int = 64
    dispatch_overflow: str = OVERFLOW_REJECT
    http_timeout_s: float = 30.0
    port: int = 8000


def _number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise Sep6Error.validation(name, f"not a valid {cast.__name__}: {raw!r}") from e


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Read ``SEP6_*`` variables (and ``PORT``) from the environment."""
    env = os.environ if env is None else env

    required = {
        "SEP6_SECRET_KEY": env.get("SEP6_SECRET_KEY", ""),
        "SEP6_ANCHOR_URL": env.get("SEP6_ANCHOR_URL", ""),
        "SEP6_HOME_DOMAIN": env.get("SEP6_HOME_DOMAIN", ""),
    }
    for name, value in required.items():
        if not value:
            raise Sep6Error.validation(name, "must be set")

    overflow = env.get("SEP6_DISPATCH_OVERFLOW") or OVERFLOW_REJECT
    if overflow not in OVERFLOW_POLICIES:
        raise Sep6Error.validation(
            "SEP6_DISPATCH_OVERFLOW", f"must be one of {', '.join(OVERFLOW_POLICIES)}"
        )

    return Settings(
        secret_key=required["SEP6_SECRET_KEY"],
        anchor_url=required["SEP6_ANCHOR_URL"],
        home_domain=required["SEP6_HOME_DOMAIN"],
        horizon_url=env.get("SEP6_HORIZON_URL") or DEFAULT_HORIZON_URL,
        max_signature_age_minutes=validate_max_age(
            _number(env, "SEP6_MAX_SIGNATURE_AGE_MINUTES", 2, float),
            "SEP6_MAX_SIGNATURE_AGE_MINUTES",
        ),
        webhook_path=env.get("SEP6_WEBHOOK_PATH") or "webhook",
        dispatch_workers=_number(env, "SEP6_DISPATCH_WORKERS", 4, int),
        dispatch_queue=_number(env, "SEP6_DISPATCH_QUEUE", 64, int),
        dispatch_overflow=overflow,
        http_timeout_s=_number(env, "SEP6_HTTP_TIMEOUT", 30.0, float),
        port=_number(env, "PORT", 8000, int),
    )
