"""
Схемы дашборда.
"""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel


class DashboardStats(BaseModel):
    total_products: int
    total_orders: int
    total_customers: int
    revenue_cents: int
    low_stock_items: int
    pending_orders: int


class ActivityEntry(BaseModel):
    type: Literal["order", "product", "alert"]
    title: str
    description: str
    time: datetime


class SalesPoint(BaseModel):
    day: date
    revenue_cents: int
    orders: int
