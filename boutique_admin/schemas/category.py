"""
Схемы категорий.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CategoryIn(BaseModel):
    """Данные для создания и обновления категории."""

    name: str = Field(..., max_length=255)
    slug: str = Field(..., max_length=255)
    parent_id: Optional[int] = None


class CategorySummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    name: str
    slug: str


class CategoryOut(BaseModel):
    """Категория в плоском списке админки."""

    model_config = ConfigDict(from_attributes=True)
    id: int
    name: str
    slug: str
    parent_id: Optional[int] = None
    parent: Optional[CategorySummary] = None
    children_count: int = 0
    products_count: int = 0


class CategoryNode(BaseModel):
    """Корневая категория с непосредственными подкатегориями."""

    model_config = ConfigDict(from_attributes=True)
    id: int
    name: str
    slug: str
    children: List[CategorySummary] = []
