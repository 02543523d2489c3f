"""
Справочники цветов и размеров.
"""

from typing import Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Color(Base):
    """
    Цвет товара.

    Attributes:
        id: Уникальный идентификатор
        name: Название (уникально без учета регистра, проверяется сервисом)
        hex: Код цвета в формате #RRGGBB
    """

    __tablename__ = "colors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True)
    hex: Mapped[Optional[str]] = mapped_column(String(7), nullable=True)

    def __repr__(self) -> str:
        return f"<Color(id={self.id}, name='{self.name}')>"


class Size(Base):
    """Размер товара (XS, S, M, ...)."""

    __tablename__ = "sizes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    label: Mapped[str] = mapped_column(String(32), unique=True)

    def __repr__(self) -> str:
        return f"<Size(id={self.id}, label='{self.label}')>"
