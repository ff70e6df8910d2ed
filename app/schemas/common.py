import math
from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Snake-case fields rendered as camelCase JSON"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


class PaginationMeta(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


def create_pagination_meta(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }


class DashboardResponse(ApiResponse[T], Generic[T]):
    """Dashboard envelope: data plus a ``_meta`` block"""

    model_config = ConfigDict(populate_by_name=True)

    meta: Dict[str, Any] = Field(default_factory=dict, alias="_meta")
    pagination: Optional[PaginationMeta] = None
    cursor: Optional[Dict[str, Any]] = None
    has_more: Optional[bool] = Field(default=None, alias="hasMore")
