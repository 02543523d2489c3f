"""
Модели товара, цветового варианта и складского остатка по размеру.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, utcnow


class Product(Base):
    """
    Модель товара.

    Attributes:
        id: Уникальный идентификатор товара
        name: Название товара
        description: Описание товара
        category_id: ID категории товара
        discount_percentage: Скидка в процентах (0-100)
        is_featured: Флаг "топ-товар"
        variants: Цветовые варианты товара
    """

    __tablename__ = "products"

    __table_args__ = (
        CheckConstraint(
            "discount_percentage IS NULL OR (discount_percentage >= 0 AND discount_percentage <= 100)",
            name="ck_products_discount_percentage",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(Text)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("categories.id", ondelete="RESTRICT"), index=True
    )
    discount_percentage: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False)

    # Временные метки
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    # Связи с другими моделями
    category: Mapped["Category"] = relationship(back_populates="products")
    variants: Mapped[List["ProductColor"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductColor.id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name='{self.name}')>"


class ProductColor(Base):
    """
    Цветовой вариант товара (Product x Color).

    Владеет своими изображениями и остатками по размерам.
    """

    __tablename__ = "product_colors"

    __table_args__ = (
        UniqueConstraint("product_id", "color_id", name="uq_product_color"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), index=True
    )
    color_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("colors.id", ondelete="RESTRICT")
    )

    product: Mapped[Product] = relationship(back_populates="variants")
    color: Mapped["Color"] = relationship(lazy="joined", innerjoin=True)
    images: Mapped[List["ProductImage"]] = relationship(
        back_populates="variant",
        cascade="all, delete-orphan",
        order_by="ProductImage.sort_order",
        lazy="selectin",
    )
    size_stocks: Mapped[List["SizeStock"]] = relationship(
        back_populates="variant",
        cascade="all, delete-orphan",
        order_by="SizeStock.id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<ProductColor(id={self.id}, product_id={self.product_id}, color_id={self.color_id})>"


class SizeStock(Base):
    """
    Складской остаток варианта в конкретном размере.

    Attributes:
        stock: Фактический остаток на складе
        reserved_stock: Количество, зарезервированное неподтвержденными заказами
        price_cents: Цена в центах
    """

    __tablename__ = "size_stocks"

    __table_args__ = (
        UniqueConstraint("product_color_id", "size_id", name="uq_size_stock_variant_size"),
        CheckConstraint("stock >= 0", name="ck_size_stocks_stock"),
        CheckConstraint("reserved_stock >= 0", name="ck_size_stocks_reserved_stock"),
        CheckConstraint("price_cents >= 0", name="ck_size_stocks_price"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    product_color_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("product_colors.id", ondelete="CASCADE"), index=True
    )
    size_id: Mapped[int] = mapped_column(Integer, ForeignKey("sizes.id", ondelete="RESTRICT"))
    stock: Mapped[int] = mapped_column(Integer, default=0)
    reserved_stock: Mapped[int] = mapped_column(Integer, default=0)
    price_cents: Mapped[int] = mapped_column(Integer, default=0)

    variant: Mapped[ProductColor] = relationship(back_populates="size_stocks")
    size: Mapped["Size"] = relationship(lazy="joined", innerjoin=True)

    @property
    def available_stock(self) -> int:
        """Остаток, доступный для продажи (никогда не отрицательный)."""
        return max(0, (self.stock or 0) - (self.reserved_stock or 0))

    def __repr__(self) -> str:
        return (
            f"<SizeStock(id={self.id}, stock={self.stock}, "
            f"reserved_stock={self.reserved_stock})>"
        )
