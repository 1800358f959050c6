from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Success envelope: {"success", "message", "statusCode", "data"}."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str = ""
    status_code: int = Field(default=200, serialization_alias="statusCode")
    data: Optional[T] = None


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class Page(BaseModel, Generic[T]):
    items: list[T]
    pagination: Pagination


def ok(data: Any = None, message: str = "", status_code: int = 200) -> dict[str, Any]:
    return {"success": True, "message": message, "status_code": status_code, "data": data}


def paginate(items: list[Any], total: int, page: int, limit: int) -> dict[str, Any]:
    pages = (total + limit - 1) // limit if limit else 0
    return {"items": items, "pagination": {"total": total, "page": page, "limit": limit, "pages": pages}}
