"""
Share Links.

Builds short share URLs for the Mini App's share sheet.
"""

import base64
import time
from typing import Any
from urllib.parse import quote

from modules.backend.core.config import get_app_config
from modules.backend.core.exceptions import ValidationError

SLUG_LENGTH = 16
# encodeURIComponent leaves these unescaped
URI_COMPONENT_SAFE = "-_.!~*'()"


def make_slug(share_type: str | None, now_ms: int | None = None) -> str:
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    base = f"{share_type or 'general'}-{now_ms}"
    return base64.b64encode(base.encode()).decode().replace("=", "")[:SLUG_LENGTH]


def build_share_link(
    payload: dict[str, Any],
    host: str,
    proto: str | None = None,
    now_ms: int | None = None,
) -> dict[str, Any]:
    """
    Build a share link for a badge, mission or free-form message.

    Raises:
        ValidationError: Neither title nor text given
    """
    if not payload.get("title") and not payload.get("text"):
        raise ValidationError("title or text is required")

    proto = proto or get_app_config().application.share.default_protocol
    slug = make_slug(payload.get("type"), now_ms)
    target = payload.get("url") or f"{proto}://{host}"

    return {
        "slug": slug,
        "share_url": f"{proto}://{host}/s/{slug}?to={quote(target, safe=URI_COMPONENT_SAFE)}",
        "title": payload.get("title"),
        "text": payload.get("text"),
        "type": payload.get("type"),
        "meta": payload.get("meta"),
    }
