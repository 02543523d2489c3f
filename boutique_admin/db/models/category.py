"""
Модель категории товаров.
"""

from typing import List, Optional

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class Category(Base):
    """
    Модель категории товаров с одним уровнем вложенности.

    Attributes:
        id: Уникальный идентификатор категории
        name: Отображаемое название
        slug: URL-friendly название категории (уникально)
        parent_id: ID родительской категории (None для корневых)
        parent: Родительская категория
        children: Дочерние категории
        products: Товары в этой категории
    """

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=True, index=True
    )

    parent: Mapped[Optional["Category"]] = relationship(
        back_populates="children", remote_side=[id]
    )
    children: Mapped[List["Category"]] = relationship(
        back_populates="parent", order_by="Category.name"
    )
    # Удаление категории с товарами запрещено на уровне сервиса
    products: Mapped[List["Product"]] = relationship(back_populates="category")

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, slug='{self.slug}', parent_id={self.parent_id})>"
