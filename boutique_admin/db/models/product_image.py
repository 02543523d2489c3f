"""
Модель изображения цветового варианта товара.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, utcnow


class ProductImage(Base):
    """
    Изображение варианта товара.

    Хранится только URL из объектного хранилища, сами файлы в БД не попадают.

    Attributes:
        id: Уникальный идентификатор изображения
        product_color_id: ID цветового варианта
        url: URL изображения
        sort_order: Порядок сортировки
        is_primary: Флаг главного изображения
        uploaded_at: Дата загрузки
    """

    __tablename__ = "product_images"

    __table_args__ = (
        Index("ix_product_images_product_color_id", "product_color_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    product_color_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("product_colors.id", ondelete="CASCADE")
    )
    url: Mapped[str] = mapped_column(Text)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    variant: Mapped["ProductColor"] = relationship(back_populates="images")
