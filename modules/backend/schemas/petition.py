"""
Petition Schemas.
"""

from typing import Any

from pydantic import BaseModel, Field


class PetitionCategory(BaseModel):
    id: str
    name: str
    description: str
    color: str


class PetitionRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=10000)
    target_signatures: int = Field(..., gt=0)
    category: str = Field(..., examples=["environment"])
    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] | None = None


class SignatureRequest(BaseModel):
    user_name: str | None = Field(default=None, max_length=255)
    user_email: str | None = Field(default=None, max_length=255)
    anonymous: bool = False
    comment: str | None = Field(default=None, max_length=1000)


class SignatureResult(BaseModel):
    success: bool
    signature_id: str
    message: str
