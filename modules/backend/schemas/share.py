"""
Share Link Schemas.
"""

from typing import Any

from pydantic import BaseModel, Field


class ShareRequest(BaseModel):
    type: str | None = Field(default=None, max_length=50, examples=["badge"])
    title: str | None = Field(default=None, max_length=255)
    text: str | None = Field(default=None, max_length=1000)
    url: str | None = Field(default=None, max_length=2048)
    meta: dict[str, Any] | None = None


class ShareResponse(BaseModel):
    slug: str
    share_url: str
    title: str | None
    text: str | None
    type: str | None
    meta: dict[str, Any] | None
