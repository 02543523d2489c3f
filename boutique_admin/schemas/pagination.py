"""
Постраничная выдача списков админки.
"""

from math import ceil
from typing import Generic, List, TypeVar

from pydantic import BaseModel, Field

ItemT = TypeVar("ItemT")


class PageMeta(BaseModel):
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=1, description="Всегда не меньше 1, даже для пустого списка")

    @classmethod
    def for_total(cls, page: int, page_size: int, total: int) -> "PageMeta":
        return cls(
            page=page,
            page_size=page_size,
            total=total,
            total_pages=max(1, ceil(total / page_size)),
        )


class Page(BaseModel, Generic[ItemT]):
    """Страница списка: элементы и метаданные пагинации."""

    items: List[ItemT]
    meta: PageMeta
