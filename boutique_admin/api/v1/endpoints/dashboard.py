"""
API endpoints дашборда.
"""

from typing import List

from fastapi import APIRouter, Depends, Query

from boutique_admin.api.deps import get_dashboard_service
from boutique_admin.schemas.dashboard import ActivityEntry, DashboardStats, SalesPoint
from boutique_admin.services.dashboard_service import DashboardService

router = APIRouter()


@router.get("/stats", response_model=DashboardStats)
def get_dashboard_stats(service: DashboardService = Depends(get_dashboard_service)):
    """
    Получить статистику для дашборда.

    Returns:
        Количество товаров, заказов, покупателей, выручка по доставленным
        заказам, число позиций с малым остатком и ожидающих заказов
    """
    return service.stats()


@router.get("/activity", response_model=List[ActivityEntry])
def get_recent_activity(service: DashboardService = Depends(get_dashboard_service)):
    return service.recent_activity()


@router.get("/sales", response_model=List[SalesPoint])
def get_sales(
    days: int = Query(30, ge=1, le=365, description="Количество дней"),
    service: DashboardService = Depends(get_dashboard_service),
):
    return service.sales_by_day(days)
