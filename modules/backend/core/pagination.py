"""
Pagination Utilities.

Offset pagination for the mission and receipt lists. Page sizes come
from application.yaml (pagination.default_limit / max_limit).
"""

from dataclasses import dataclass
from typing import Any

from fastapi import Query
from pydantic import BaseModel

from modules.backend.core.config import get_app_config
from modules.backend.schemas.base import PaginatedResponse, PaginationInfo, ResponseMetadata


@dataclass(frozen=True)
class PaginationParams:
    """Resolved limit/offset pair for a list query."""

    limit: int
    offset: int


def get_pagination_params(
    limit: int | None = Query(
        default=None,
        ge=1,
        description="Page size; defaults to the configured default and is capped at the configured maximum",
    ),
    offset: int = Query(default=0, ge=0, description="Number of items to skip"),
) -> PaginationParams:
    """FastAPI dependency resolving page size against the configured bounds."""
    bounds = get_app_config().application.pagination
    if limit is None:
        limit = bounds.default_limit
    return PaginationParams(limit=min(limit, bounds.max_limit), offset=offset)


def create_paginated_response(
    items: list[Any],
    item_schema: type[BaseModel],
    total: int,
    limit: int,
    offset: int = 0,
    request_id: str | None = None,
) -> dict[str, Any]:
    """
    Build the paginated envelope for a list endpoint.

    Items may be ORM rows or dicts; each is validated through
    ``item_schema`` so the payload matches the documented model.
    """
    data = [item_schema.model_validate(item).model_dump(mode="json") for item in items]
    response = PaginatedResponse(
        data=data,
        pagination=PaginationInfo(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + len(items) < total,
        ),
        metadata=ResponseMetadata(request_id=request_id),
    )
    return response.model_dump(mode="json")
