from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from ..core.errors import ValidationFailedError

ModelT = TypeVar("ModelT", bound=BaseModel)
ItemT = TypeVar("ItemT")


def parse_input(schema: type[ModelT], data: ModelT | dict[str, Any]) -> ModelT:
    """
    Coerce service input into ``schema``.

    Routers already hand us validated models; direct callers (tasks, tests,
    the AI drafter) may pass plain dicts, which are validated here so the
    services never see unchecked payloads.
    """
    if isinstance(data, schema):
        return data
    try:
        if isinstance(data, BaseModel):
            return schema.model_validate(data.model_dump())
        return schema.model_validate(data)
    except ValidationError as exc:
        raise ValidationFailedError.from_pydantic(exc) from exc


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class Page(BaseModel, Generic[ItemT]):
    items: list[ItemT]
    pagination: Pagination
