"""
Статистика для дашборда админки.

Только чтение: счетчики, выручка, остатки и лента последних событий.
"""

from datetime import date, datetime, timedelta
from typing import Dict, List

from sqlalchemy import distinct, func, select
from sqlalchemy.orm import Session, joinedload

from boutique_admin.core.config import settings
from boutique_admin.db.models import Order, OrderItem, Product, ProductColor, SizeStock
from boutique_admin.db.models.base import utcnow
from boutique_admin.schemas.dashboard import ActivityEntry, DashboardStats, SalesPoint

RECENT_ORDERS = 5
RECENT_PRODUCTS = 3
LOW_STOCK_ALERTS = 2
ACTIVITY_LIMIT = 6


class DashboardService:
    """
    Агрегаты для дашборда.

    Args:
        db: Сессия базы данных
    """

    def __init__(self, db: Session):
        self.db = db

    def _revenue_query(self):
        return (
            select(func.coalesce(func.sum(OrderItem.price_at_purchase_cents * OrderItem.quantity), 0))
            .join(Order, Order.id == OrderItem.order_id)
            .where(Order.status == "delivered")
        )

    def stats(self) -> DashboardStats:
        """
        Основные показатели магазина.

        Выручка считается только по доставленным заказам.
        Покупатели считаются по гостевой сессии, а без нее по телефону.
        """
        total_products = self.db.scalar(select(func.count(Product.id))) or 0
        total_orders = self.db.scalar(select(func.count(Order.id))) or 0
        total_customers = self.db.scalar(
            select(func.count(distinct(func.coalesce(Order.guest_session_id, Order.customer_phone))))
        ) or 0
        revenue_cents = self.db.scalar(self._revenue_query()) or 0
        low_stock_items = self.db.scalar(
            select(func.count(SizeStock.id)).where(
                SizeStock.stock < settings.DASHBOARD_LOW_STOCK_THRESHOLD
            )
        ) or 0
        pending_orders = self.db.scalar(
            select(func.count(Order.id)).where(Order.status == "pending")
        ) or 0

        return DashboardStats(
            total_products=total_products,
            total_orders=total_orders,
            total_customers=total_customers,
            revenue_cents=int(revenue_cents),
            low_stock_items=low_stock_items,
            pending_orders=pending_orders,
        )

    def recent_activity(self) -> List[ActivityEntry]:
        """
        Лента последних событий.

        Объединяет 5 последних заказов, 3 недавно измененных товара и
        2 позиции с критически малым остатком, сортирует по времени
        (новые первыми) и оставляет 6 записей.
        """
        now = utcnow()
        activities: List[ActivityEntry] = []

        orders = self.db.scalars(
            select(Order).order_by(Order.created_at.desc()).limit(RECENT_ORDERS)
        ).all()
        for order in orders:
            activities.append(
                ActivityEntry(
                    type="order",
                    title="New order received",
                    description=f"Order #{order.ref_id} from {order.customer_name}",
                    time=order.created_at,
                )
            )

        products = self.db.scalars(
            select(Product)
            .where(Product.updated_at <= now)
            .order_by(Product.updated_at.desc())
            .limit(RECENT_PRODUCTS)
        ).all()
        for product in products:
            activities.append(
                ActivityEntry(
                    type="product",
                    title="Product updated",
                    description=product.name,
                    time=product.updated_at,
                )
            )

        alerts = self.db.scalars(
            select(SizeStock)
            .where(SizeStock.stock < settings.ACTIVITY_LOW_STOCK_THRESHOLD)
            .options(joinedload(SizeStock.variant).joinedload(ProductColor.product))
            .order_by(SizeStock.stock, SizeStock.id)
            .limit(LOW_STOCK_ALERTS)
        ).unique().all()
        for size_stock in alerts:
            activities.append(
                ActivityEntry(
                    type="alert",
                    title="Low stock alert",
                    description=(
                        f"{size_stock.variant.product.name} - Size {size_stock.size.label} "
                        f"running low ({size_stock.stock} left)"
                    ),
                    time=now,
                )
            )

        activities.sort(key=lambda entry: entry.time, reverse=True)
        return activities[:ACTIVITY_LIMIT]

    def sales_by_day(self, days: int = 30) -> List[SalesPoint]:
        """
        Выручка доставленных заказов по дням за последние days дней.

        Дни без продаж присутствуют в ряду с нулями.
        """
        today = utcnow().date()
        start = today - timedelta(days=days - 1)
        orders = self.db.scalars(
            select(Order).where(
                Order.status == "delivered",
                Order.created_at >= datetime.combine(start, datetime.min.time()),
            )
        ).all()

        revenue: Dict[date, int] = {start + timedelta(days=i): 0 for i in range(days)}
        counts: Dict[date, int] = dict.fromkeys(revenue, 0)
        for order in orders:
            day = order.created_at.date()
            if day not in revenue:
                continue
            revenue[day] += order.subtotal_cents
            counts[day] += 1

        return [
            SalesPoint(day=day, revenue_cents=revenue[day], orders=counts[day])
            for day in sorted(revenue)
        ]
