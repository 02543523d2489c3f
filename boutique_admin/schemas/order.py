"""
Схемы заказов.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

OrderStatus = Literal["pending", "confirmed", "shipped", "delivered", "cancelled"]


class CustomerIn(BaseModel):
    name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    city: Optional[str] = None
    guest_session_id: Optional[str] = None


class OrderItemIn(BaseModel):
    size_stock_id: int
    quantity: int = Field(ge=1)


class OrderCreate(BaseModel):
    customer: CustomerIn
    items: List[OrderItemIn]
    shipping_cost_cents: int = Field(0, ge=0)
    shipping_option: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderItemView(BaseModel):
    id: int
    size_stock_id: int
    product_id: int
    product_name: str
    color_name: str
    color_hex: Optional[str] = None
    size_label: str
    image_url: Optional[str] = None
    quantity: int
    price_at_purchase_cents: int
    line_total_cents: int


class OrderView(BaseModel):
    id: str
    ref_id: str
    guest_session_id: Optional[str] = None
    status: OrderStatus
    customer_name: str
    customer_phone: Optional[str] = None
    customer_city: Optional[str] = None
    shipping_option: Optional[str] = None
    shipping_cost_cents: int
    stock_reserved: bool
    stock_reduced: bool
    subtotal_cents: int
    total_cents: int
    created_at: datetime
    confirmed_at: Optional[datetime] = None
    items: List[OrderItemView]
