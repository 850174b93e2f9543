"""
Response envelope and pagination helpers
"""

from datetime import datetime, timezone
from math import ceil
from typing import Any, Dict, Optional, Sequence

from fastapi import Query
from sqlmodel import SQLModel


class Pagination(SQLModel):
    page: int
    limit: int
    total: int
    pages: int


class PageParams(SQLModel):
    page: int = 1
    limit: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_params(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> PageParams:
    """Dependency for list endpoints"""
    return PageParams(page=page, limit=limit)


def success(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


def paginated(items: Sequence[Any], params: PageParams, total: int) -> Dict[str, Any]:
    return {
        "success": True,
        "data": list(items),
        "pagination": Pagination(
            page=params.page,
            limit=params.limit,
            total=total,
            pages=ceil(total / params.limit) if total else 0,
        ),
    }


def naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored timestamps are naive UTC; convert offset-aware input to match"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
