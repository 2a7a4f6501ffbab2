"""
Telegram Mini App initData Verification.

The Mini App sends the signed `initData` query string Telegram gave it.
The backend recomputes the HMAC over the sorted key=value lines and
compares it with the `hash` field.

Two secret-key derivations are supported (security.yaml, telegram_auth.hmac_variant):
    webapp - HMAC_SHA256(key="WebAppData", msg=bot_token), Telegram's documented scheme
    sha256 - SHA256(bot_token), accepted for older Mini App builds

Usage:
    from modules.backend.core.telegram_auth import verify_init_data

    data = verify_init_data(init_data, bot_token, max_age_seconds=86400)
    telegram_user = data.user
"""

import hashlib
import hmac
import json
import time
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qsl

from modules.backend.core.exceptions import AuthenticationError

JSON_FIELDS = frozenset({"user", "receiver", "chat"})
REQUIRED_FIELDS = ("user", "auth_date", "hash")
WEBAPP_KEY = b"WebAppData"


@dataclass
class TelegramInitData:
    """Verified initData contents."""

    user: dict[str, Any]
    auth_date: int
    hash: str
    query_id: str | None = None
    start_param: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def telegram_id(self) -> int:
        return int(self.user["id"])


def parse_init_data(init_data: str) -> tuple[dict[str, str], dict[str, Any]]:
    """
    Split initData into raw string pairs and decoded values.

    Returns:
        (raw, decoded): raw keeps the received strings for signing,
        decoded has the JSON fields (user, receiver, chat) parsed.

    Raises:
        AuthenticationError: If a JSON field cannot be parsed
    """
    raw = dict(parse_qsl(init_data, keep_blank_values=True))

    decoded: dict[str, Any] = {}
    for key, value in raw.items():
        if key in JSON_FIELDS:
            try:
                decoded[key] = json.loads(value)
            except json.JSONDecodeError as e:
                raise AuthenticationError("Invalid Telegram data") from e
        else:
            decoded[key] = value
    return raw, decoded


def build_data_check_string(raw: dict[str, str]) -> str:
    """Sorted key=value lines for every field except hash, joined by newlines."""
    return "\n".join(
        f"{key}={raw[key]}" for key in sorted(raw) if key != "hash"
    )


def derive_secret_key(bot_token: str, variant: str = "webapp") -> bytes:
    if variant == "webapp":
        return hmac.new(WEBAPP_KEY, bot_token.encode(), hashlib.sha256).digest()
    if variant == "sha256":
        return hashlib.sha256(bot_token.encode()).digest()
    raise ValueError(f"Unknown initData HMAC variant: {variant}")


def sign_data_check_string(data_check_string: str, secret_key: bytes) -> str:
    return hmac.new(secret_key, data_check_string.encode(), hashlib.sha256).hexdigest()


def verify_init_data(
    init_data: str,
    bot_token: str,
    max_age_seconds: int = 86400,
    variant: str = "webapp",
    now: float | None = None,
) -> TelegramInitData:
    """
    Verify an initData string and return its contents.

    Raises:
        AuthenticationError: "Invalid Telegram data" when required fields are
            missing or malformed, "Telegram data expired" past max age,
            "Invalid Telegram signature" on hash mismatch
    """
    raw, decoded = parse_init_data(init_data)

    if any(not raw.get(key) for key in REQUIRED_FIELDS):
        raise AuthenticationError("Invalid Telegram data")

    try:
        auth_date = int(raw["auth_date"])
    except ValueError as e:
        raise AuthenticationError("Invalid Telegram data") from e

    current = time.time() if now is None else now
    if current - auth_date > max_age_seconds:
        raise AuthenticationError("Telegram data expired")

    secret_key = derive_secret_key(bot_token, variant)
    expected = sign_data_check_string(build_data_check_string(raw), secret_key)
    if not hmac.compare_digest(expected.encode(), raw["hash"].encode()):
        raise AuthenticationError("Invalid Telegram signature")

    user = decoded["user"]
    if not isinstance(user, dict) or "id" not in user:
        raise AuthenticationError("Invalid Telegram data")

    known = {"user", "auth_date", "hash", "query_id", "start_param"}
    return TelegramInitData(
        user=user,
        auth_date=auth_date,
        hash=raw["hash"],
        query_id=raw.get("query_id"),
        start_param=raw.get("start_param"),
        extra={k: v for k, v in decoded.items() if k not in known},
    )
