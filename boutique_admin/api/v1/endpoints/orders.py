"""
API endpoints для работы с заказами.

Публичный роутер принимает заказы с витрины (создание с резервированием
остатков), административный управляет жизненным циклом заказа.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from boutique_admin.api.deps import get_order_service
from boutique_admin.schemas.order import OrderCreate, OrderStatus, OrderStatusUpdate, OrderView
from boutique_admin.schemas.pagination import Page
from boutique_admin.services.order_service import OrderService, build_order_view

router = APIRouter()
admin_router = APIRouter()


@router.post("", status_code=201)
def create_order(payload: OrderCreate, service: OrderService = Depends(get_order_service)):
    """
    Создать новый заказ.

    Ожидает JSON:
    {
      "customer": {"name": "...", "phone": "...", "city": "...", "guest_session_id": "..."},
      "items": [{"size_stock_id": 12, "quantity": 2}, ...],
      "shipping_cost_cents": 3000,
      "shipping_option": "standard"
    }

    Остатки резервируются атомарно; при нехватке товара возвращается
    {"success": false, "code": "insufficient_stock", ...}.
    """
    order = service.create_order(payload)
    return {"success": True, "order": build_order_view(order).model_dump()}


@admin_router.get("", response_model=Page[OrderView])
def admin_list_orders(
    status: Optional[OrderStatus] = Query(None, description="Фильтр по статусу"),
    q: Optional[str] = Query(None, description="Поиск по номеру, имени или телефону"),
    page: int = Query(1, ge=1, description="Номер страницы"),
    page_size: int = Query(20, ge=1, le=100, description="Размер страницы"),
    service: OrderService = Depends(get_order_service),
):
    """Получить список заказов с позициями, новые первыми."""
    return service.list_orders(status=status, q=q, page=page, page_size=page_size)


@admin_router.get("/{order_id}", response_model=OrderView)
def admin_get_order(order_id: str, service: OrderService = Depends(get_order_service)):
    return service.get_order(order_id)


@admin_router.post("/{order_id}/approve")
def admin_approve_order(order_id: str, service: OrderService = Depends(get_order_service)):
    """
    Подтвердить заказ: резерв превращается в списание остатка.
    """
    order = service.approve_order(order_id)
    return {"success": True, "order": build_order_view(order).model_dump()}


@admin_router.put("/{order_id}/status")
def admin_update_order_status(
    order_id: str,
    status_data: OrderStatusUpdate,
    service: OrderService = Depends(get_order_service),
):
    """
    Обновить статус заказа.

    Отмена возвращает зарезервированный или списанный остаток.
    """
    order = service.update_order_status(order_id, status_data.status)
    return {"success": True, "order": build_order_view(order).model_dump()}


@admin_router.delete("/{order_id}")
def admin_delete_order(order_id: str, service: OrderService = Depends(get_order_service)):
    service.delete_order(order_id)
    return {"success": True}
