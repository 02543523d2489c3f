"""
Модели заказа и позиций заказа.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, utcnow

ORDER_STATUSES = ("pending", "confirmed", "shipped", "delivered", "cancelled")


class Order(Base):
    """
    Модель заказа.

    Attributes:
        id: UUID заказа
        ref_id: Человекочитаемый номер заказа (ORD-XXXXXXXX)
        guest_session_id: Идентификатор гостевой сессии покупателя
        status: Статус заказа (pending/confirmed/shipped/delivered/cancelled)
        customer_name: Имя клиента
        customer_phone: Телефон клиента
        customer_city: Город доставки
        shipping_cost_cents: Стоимость доставки в центах
        shipping_option: Способ доставки
        stock_reserved: Остаток зарезервирован под заказ
        stock_reduced: Остаток списан (после подтверждения)
        created_at: Дата создания
        confirmed_at: Дата подтверждения
        items: Позиции заказа
    """

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True)
    ref_id: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    guest_session_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    status: Mapped[str] = mapped_column(String(32), default="pending", index=True)

    # Данные клиента
    customer_name: Mapped[str] = mapped_column(Text)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    customer_city: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Доставка
    shipping_cost_cents: Mapped[int] = mapped_column(Integer, default=0)
    shipping_option: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Состояние резерва
    stock_reserved: Mapped[bool] = mapped_column(Boolean, default=False)
    stock_reduced: Mapped[bool] = mapped_column(Boolean, default=False)

    # Временные метки
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Связь с позициями заказа
    items: Mapped[List["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(
            "status in ('pending','confirmed','shipped','delivered','cancelled')",
            name="ck_orders_status",
        ),
    )

    @property
    def subtotal_cents(self) -> int:
        return sum(item.line_total_cents for item in self.items)

    @property
    def total_cents(self) -> int:
        return self.subtotal_cents + (self.shipping_cost_cents or 0)

    def __repr__(self) -> str:
        return f"<Order(id='{self.id}', ref_id='{self.ref_id}', status='{self.status}')>"


class OrderItem(Base):
    """
    Модель позиции заказа.

    Attributes:
        id: Уникальный идентификатор позиции
        order_id: ID заказа
        size_stock_id: ID складского остатка (вариант + размер)
        quantity: Количество
        price_at_purchase_cents: Цена на момент покупки (снимок, не меняется)
    """

    __tablename__ = "order_items"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("orders.id", ondelete="CASCADE"), index=True
    )
    size_stock_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("size_stocks.id", ondelete="RESTRICT"), index=True
    )
    quantity: Mapped[int] = mapped_column(Integer)
    price_at_purchase_cents: Mapped[int] = mapped_column(Integer)

    # Связи
    order: Mapped[Order] = relationship(back_populates="items")
    size_stock: Mapped["SizeStock"] = relationship(lazy="joined", innerjoin=True)

    @property
    def line_total_cents(self) -> int:
        return self.price_at_purchase_cents * self.quantity
