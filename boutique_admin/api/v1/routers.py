"""
Основной роутер API v1.

Подключает все endpoint'ы приложения. Административные роутеры
требуют активной сессии администратора.
"""

from fastapi import APIRouter, Depends

from boutique_admin.api.v1.endpoints import (
    attributes,
    auth,
    categories,
    dashboard,
    inventory,
    orders,
    products,
)
from boutique_admin.core.auth import get_current_session

# Создание основного роутера API v1
api_router = APIRouter()

# Публичные роутеры
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])

# Роутеры админки
admin_dependencies = [Depends(get_current_session)]
api_router.include_router(
    categories.admin_router, prefix="/admin/categories", tags=["admin"], dependencies=admin_dependencies
)
api_router.include_router(
    attributes.router, prefix="/admin", tags=["admin"], dependencies=admin_dependencies
)
api_router.include_router(
    products.router, prefix="/admin/products", tags=["admin"], dependencies=admin_dependencies
)
api_router.include_router(
    inventory.router, prefix="/admin/inventory", tags=["admin"], dependencies=admin_dependencies
)
api_router.include_router(
    orders.admin_router, prefix="/admin/orders", tags=["admin"], dependencies=admin_dependencies
)
api_router.include_router(
    dashboard.router, prefix="/admin/dashboard", tags=["admin"], dependencies=admin_dependencies
)
