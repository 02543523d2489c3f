"""
Зависимости API: сервисы, привязанные к сессии запроса.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from boutique_admin.db.database import get_db
from boutique_admin.services.catalog_service import CatalogService
from boutique_admin.services.category_service import CategoryService
from boutique_admin.services.dashboard_service import DashboardService
from boutique_admin.services.order_service import OrderService


def get_category_service(db: Session = Depends(get_db)) -> CategoryService:
    return CategoryService(db)


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


def get_order_service(db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db)


def get_dashboard_service(db: Session = Depends(get_db)) -> DashboardService:
    return DashboardService(db)
