"""Shared pydantic base for request/response bodies.

The public API speaks camelCase JSON; Python code stays snake_case.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_more: bool


def paginate(page: int, limit: int, total: int) -> Pagination:
    total_pages = (total + limit - 1) // limit if limit else 0
    return Pagination(page=page, limit=limit, total=total, total_pages=total_pages, has_more=page < total_pages)


class ActionResponse(CamelModel):
    success: bool = True
    message: str | None = None
