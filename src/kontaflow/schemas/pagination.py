"""Generic response envelopes shared by all endpoints.

PaginatedResponse[T]: Pydantic model for paginated HTTP responses (serializable).
Paginated[T]: plain dataclass for repository/service returns (not serializable).
DataResponse[T] / MessageResponse[T]: single-payload envelopes.
"""

import math
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for API models: snake_case in Python, camelCase on the wire.

    ``from_attributes`` lets models read straight from ORM instances;
    ``populate_by_name`` keeps Python-side construction by field name working.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class PaginatedResponse[T](CamelModel):
    """Pydantic model for paginated HTTP responses.

    ``[T]`` is a Python 3.12 type parameter; reuse this class for any entity::

        GroupListResponse = PaginatedResponse[GroupListItem]

    Use this in **routers** (the HTTP boundary). Repositories and services
    return the ``Paginated`` dataclass instead.
    """

    data: list[T]
    pagination: Pagination


class DataResponse[T](CamelModel):
    """``{"data": ...}`` envelope for reads."""

    data: T


class MessageResponse[T](CamelModel):
    """``{"data": ..., "message": ...}`` envelope for writes."""

    data: T
    message: str


class DeleteResponse(CamelModel):
    success: bool
    message: str


@dataclass
class Paginated[T]:
    """Plain dataclass for paginated results inside the repository and service layers.

    A dataclass instead of a Pydantic model because those layers shouldn't
    know about serialization; they just pass data up to the router::

        result = await service.list_groups(filters, user.id)
        return GroupListResponse(data=result.items, pagination=result.pagination())
    """

    items: list[T]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def pagination(self) -> Pagination:
        return Pagination(
            page=self.page, limit=self.limit, total=self.total, total_pages=self.total_pages
        )
