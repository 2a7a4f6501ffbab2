"""
Unit Tests for share link building.
"""

import base64

import pytest

from modules.backend.core.exceptions import ValidationError
from modules.backend.services.share import build_share_link, make_slug

NOW_MS = 1767225600000


class TestMakeSlug:
    def test_encodes_type_and_time(self):
        slug = make_slug("badge", NOW_MS)
        expected = base64.b64encode(f"badge-{NOW_MS}".encode()).decode().replace("=", "")[:16]
        assert slug == expected
        assert len(slug) == 16

    def test_general_when_untyped(self):
        assert make_slug(None, NOW_MS) == make_slug("general", NOW_MS)


class TestBuildShareLink:
    def test_badge_link(self):
        link = build_share_link(
            {"title": "Gold badge", "type": "badge", "url": "https://t.me/eco_bot/app?startapp=b1"},
            host="eco.example",
            proto="https",
            now_ms=NOW_MS,
        )

        assert link["slug"] == make_slug("badge", NOW_MS)
        assert link["share_url"] == (
            f"https://eco.example/s/{link['slug']}"
            "?to=https%3A%2F%2Ft.me%2Feco_bot%2Fapp%3Fstartapp%3Db1"
        )
        assert link["title"] == "Gold badge"
        assert link["text"] is None

    def test_defaults_target_to_host(self):
        link = build_share_link({"text": "I planted a tree"}, host="eco.example", proto="http", now_ms=NOW_MS)
        assert link["share_url"].endswith("?to=http%3A%2F%2Feco.example")

    def test_default_protocol_from_config(self):
        link = build_share_link({"text": "hi"}, host="eco.example", now_ms=NOW_MS)
        assert link["share_url"].startswith("https://eco.example/s/")

    def test_requires_title_or_text(self):
        with pytest.raises(ValidationError, match="title or text is required"):
            build_share_link({"type": "badge"}, host="eco.example")
