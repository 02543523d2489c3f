"""
Сервис заказов: резервирование остатков и жизненный цикл заказа.

Создание заказа резервирует остаток, подтверждение превращает резерв в
списание, отмена и удаление возвращают резерв или списанный остаток.
Проверка доступности и изменение остатков выполняются в одной транзакции
под блокировкой строк (SELECT ... FOR UPDATE).
"""

import logging
import secrets
import uuid
from typing import Dict, Optional
from uuid import UUID

from sqlalchemy import desc, func, or_, select
from sqlalchemy.orm import Session

from boutique_admin.core.errors import (
    InsufficientStock,
    InvariantViolation,
    NotFoundError,
    ValidationError,
    atomic,
)
from boutique_admin.db.models import Order, OrderItem, SizeStock
from boutique_admin.db.models.base import utcnow
from boutique_admin.schemas.order import OrderCreate, OrderItemView, OrderView
from boutique_admin.schemas.pagination import Page, PageMeta
from boutique_admin.services.catalog_service import (
    describe_size_stock,
    discounted_price,
    ordered_images,
)

logger = logging.getLogger(__name__)

# Разрешенные переходы статусов через update_order_status.
# pending -> confirmed выполняется только подтверждением (approve_order).
ALLOWED_TRANSITIONS: Dict[str, set] = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"shipped", "cancelled"},
    "shipped": {"delivered"},
    "delivered": set(),
    "cancelled": set(),
}

REF_ID_ATTEMPTS = 5


def normalize_order_id(value: str) -> str:
    """
    Нормализация и валидация UUID заказа.

    Убирает фигурные скобки у {uuid} и проверяет корректность формата.

    Raises:
        NotFoundError: Строка не является UUID (такого заказа быть не может)
    """
    value = (value or "").strip()
    if value.startswith("{") and value.endswith("}"):
        value = value[1:-1]
    try:
        return str(UUID(value))
    except ValueError:
        raise NotFoundError("Order not found")


def build_order_view(order: Order) -> OrderView:
    """Read-модель заказа с позициями и итоговыми суммами."""
    items = []
    for item in order.items:
        size_stock = item.size_stock
        variant = size_stock.variant
        images = ordered_images(variant.images)
        items.append(
            OrderItemView(
                id=item.id,
                size_stock_id=item.size_stock_id,
                product_id=variant.product.id,
                product_name=variant.product.name,
                color_name=variant.color.name,
                color_hex=variant.color.hex,
                size_label=size_stock.size.label,
                image_url=images[0].url if images else None,
                quantity=item.quantity,
                price_at_purchase_cents=item.price_at_purchase_cents,
                line_total_cents=item.line_total_cents,
            )
        )

    return OrderView(
        id=order.id,
        ref_id=order.ref_id,
        guest_session_id=order.guest_session_id,
        status=order.status,
        customer_name=order.customer_name,
        customer_phone=order.customer_phone,
        customer_city=order.customer_city,
        shipping_option=order.shipping_option,
        shipping_cost_cents=order.shipping_cost_cents,
        stock_reserved=order.stock_reserved,
        stock_reduced=order.stock_reduced,
        subtotal_cents=order.subtotal_cents,
        total_cents=order.total_cents,
        created_at=order.created_at,
        confirmed_at=order.confirmed_at,
        items=items,
    )


class OrderService:
    """
    Операции над заказами.

    Args:
        db: Сессия базы данных
    """

    def __init__(self, db: Session):
        self.db = db

    # ==================== ВСПОМОГАТЕЛЬНОЕ ====================

    def _lock_order(self, order_id: str) -> Order:
        order = self.db.scalar(
            select(Order)
            .where(Order.id == normalize_order_id(order_id))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        if order is None:
            raise NotFoundError("Order not found")
        return order

    def _lock_size_stocks(self, size_stock_ids) -> Dict[int, SizeStock]:
        """Блокирует строки остатков в порядке id, чтобы параллельные заказы не взаимоблокировались."""
        rows = self.db.scalars(
            select(SizeStock)
            .where(SizeStock.id.in_(sorted(set(size_stock_ids))))
            .order_by(SizeStock.id)
            .with_for_update(of=SizeStock)
            .execution_options(populate_existing=True)
        ).all()
        return {row.id: row for row in rows}

    def _new_ref_id(self) -> str:
        for _ in range(REF_ID_ATTEMPTS):
            ref_id = f"ORD-{secrets.token_hex(4).upper()}"
            if self.db.scalar(select(Order.id).where(Order.ref_id == ref_id)) is None:
                return ref_id
        raise InvariantViolation("Could not allocate a unique order reference")

    def _release_reservation(self, order: Order) -> None:
        stocks = self._lock_size_stocks(item.size_stock_id for item in order.items)
        for item in order.items:
            size_stock = stocks[item.size_stock_id]
            size_stock.reserved_stock = max(0, size_stock.reserved_stock - item.quantity)
        order.stock_reserved = False

    def _restock(self, order: Order) -> None:
        stocks = self._lock_size_stocks(item.size_stock_id for item in order.items)
        for item in order.items:
            stocks[item.size_stock_id].stock += item.quantity
        order.stock_reduced = False

    def _return_stock(self, order: Order) -> None:
        """Вернуть на склад все, что удерживает заказ: резерв или списанный остаток."""
        if order.stock_reserved:
            self._release_reservation(order)
        if order.stock_reduced and order.status in ("pending", "confirmed"):
            self._restock(order)

    # ==================== ОПЕРАЦИИ ====================

    def create_order(self, data: OrderCreate) -> Order:
        """
        Создать заказ и зарезервировать остатки.

        Позиции с одинаковым size_stock_id объединяются. Проверка доступного
        остатка и увеличение резерва выполняются под блокировкой строк в одной
        транзакции: либо создаются заказ, все позиции и все резервы, либо ничего.

        Raises:
            ValidationError: Заказ без позиций или без имени клиента
            NotFoundError: Остаток не найден
            InsufficientStock: Доступный остаток меньше запрошенного
        """
        if not data.items:
            raise ValidationError("Order must contain at least one item")
        customer_name = data.customer.name.strip()
        if not customer_name:
            raise ValidationError("Customer name is required")

        quantities: Dict[int, int] = {}
        for item in data.items:
            quantities[item.size_stock_id] = quantities.get(item.size_stock_id, 0) + item.quantity

        with atomic(self.db, "Failed to create order"):
            stocks = self._lock_size_stocks(quantities)
            missing = [str(ss_id) for ss_id in quantities if ss_id not in stocks]
            if missing:
                raise NotFoundError(f"Unknown size stock ID(s): {', '.join(missing)}")

            for size_stock_id, quantity in quantities.items():
                size_stock = stocks[size_stock_id]
                if size_stock.available_stock < quantity:
                    raise InsufficientStock(
                        describe_size_stock(size_stock), quantity, size_stock.available_stock
                    )

            order = Order(
                id=str(uuid.uuid4()),
                ref_id=self._new_ref_id(),
                guest_session_id=data.customer.guest_session_id,
                status="pending",
                customer_name=customer_name,
                customer_phone=data.customer.phone,
                customer_city=data.customer.city,
                shipping_cost_cents=data.shipping_cost_cents,
                shipping_option=data.shipping_option,
                stock_reserved=True,
                stock_reduced=False,
            )
            for size_stock_id, quantity in quantities.items():
                size_stock = stocks[size_stock_id]
                order.items.append(
                    OrderItem(
                        size_stock=size_stock,
                        quantity=quantity,
                        price_at_purchase_cents=discounted_price(
                            size_stock.price_cents,
                            size_stock.variant.product.discount_percentage,
                        ),
                    )
                )
                size_stock.reserved_stock += quantity

            self.db.add(order)
            self.db.flush()

        logger.info(f"Order {order.ref_id} created with {len(order.items)} item(s)")
        return order

    def approve_order(self, order_id: str) -> Order:
        """
        Подтвердить заказ: pending -> confirmed.

        Резерв превращается в списание: для каждой позиции stock и
        reserved_stock уменьшаются на количество.

        Raises:
            NotFoundError: Заказ не найден
            InvariantViolation: Заказ не в статусе pending
            InsufficientStock: Фактический остаток меньше количества в заказе
        """
        with atomic(self.db, "Failed to approve order"):
            order = self._lock_order(order_id)
            if order.status != "pending":
                raise InvariantViolation(
                    f"Only pending orders can be approved (order is {order.status})"
                )

            stocks = self._lock_size_stocks(item.size_stock_id for item in order.items)
            for item in order.items:
                size_stock = stocks[item.size_stock_id]
                if size_stock.stock < item.quantity:
                    raise InsufficientStock(
                        describe_size_stock(size_stock), item.quantity, size_stock.stock
                    )
                size_stock.stock -= item.quantity
                if order.stock_reserved:
                    size_stock.reserved_stock = max(0, size_stock.reserved_stock - item.quantity)

            order.status = "confirmed"
            order.stock_reserved = False
            order.stock_reduced = True
            order.confirmed_at = utcnow()

        logger.info(f"Order {order.ref_id} approved, stock reduced")
        return order

    def update_order_status(self, order_id: str, new_status: str) -> Order:
        """
        Изменить статус заказа.

        Допустимые переходы: pending -> cancelled, confirmed -> shipped/cancelled,
        shipped -> delivered. Перевод pending -> confirmed выполняется через
        подтверждение. Отмена возвращает резерв или списанный остаток.

        Raises:
            NotFoundError: Заказ не найден
            InvariantViolation: Недопустимый переход
        """
        if new_status not in ALLOWED_TRANSITIONS:
            raise ValidationError(f"Invalid status: {new_status}")

        with atomic(self.db, "Failed to update order status"):
            order = self._lock_order(order_id)
            current = order.status
            if current == new_status:
                return order
            if current == "pending" and new_status == "confirmed":
                approve = True
            else:
                approve = False
                if new_status not in ALLOWED_TRANSITIONS[current]:
                    raise InvariantViolation(
                        f"Cannot change order status from {current} to {new_status}"
                    )
                if new_status == "cancelled":
                    self._return_stock(order)
                order.status = new_status

        if approve:
            return self.approve_order(order_id)

        logger.info(f"Order {order.ref_id} status changed: {current} -> {new_status}")
        return order

    def delete_order(self, order_id: str) -> None:
        """
        Удалить заказ вместе с позициями.

        Перед удалением возвращается удерживаемый остаток: резерв ожидающего
        заказа или списание подтвержденного, но не отправленного заказа.
        """
        with atomic(self.db, "Failed to delete order"):
            order = self._lock_order(order_id)
            ref_id = order.ref_id
            self._return_stock(order)
            self.db.delete(order)

        logger.info(f"Order {ref_id} deleted")

    def get_order(self, order_id: str) -> OrderView:
        order = self.db.get(Order, normalize_order_id(order_id))
        if order is None:
            raise NotFoundError("Order not found")
        return build_order_view(order)

    def list_orders(
        self,
        status: Optional[str] = None,
        q: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[OrderView]:
        """
        Список заказов с фильтрацией и пагинацией, новые первыми.

        Args:
            status: Фильтр по статусу
            q: Поиск по номеру заказа, имени или телефону клиента
        """
        conditions = []
        if status:
            conditions.append(Order.status == status)
        if q:
            pattern = f"%{q}%"
            conditions.append(
                or_(
                    Order.ref_id.ilike(pattern),
                    Order.customer_name.ilike(pattern),
                    Order.customer_phone.ilike(pattern),
                )
            )

        total = self.db.scalar(select(func.count()).select_from(Order).where(*conditions)) or 0
        orders = self.db.scalars(
            select(Order)
            .where(*conditions)
            .order_by(desc(Order.created_at))
            .offset((page - 1) * page_size)
            .limit(page_size)
        ).all()

        return Page[OrderView](
            items=[build_order_view(order) for order in orders],
            meta=PageMeta.for_total(page=page, page_size=page_size, total=total),
        )
