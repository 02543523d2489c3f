"""
API endpoints складского учета.
"""

from typing import List

from fastapi import APIRouter, Depends, Query

from boutique_admin.api.deps import get_catalog_service
from boutique_admin.schemas.catalog import InventoryRow, StockUpdate
from boutique_admin.services.catalog_service import CatalogService, build_size_stock_view

router = APIRouter()


@router.get("", response_model=List[InventoryRow])
def list_inventory(
    low_only: bool = Query(False, description="Только позиции с малым остатком"),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.list_inventory(low_only=low_only)


@router.put("/{size_stock_id}")
def update_stock(
    size_stock_id: int,
    stock_data: StockUpdate,
    service: CatalogService = Depends(get_catalog_service),
):
    """Установить фактический остаток. Значение не может быть меньше резерва."""
    size_stock = service.update_stock(size_stock_id, stock_data.stock)
    return {"success": True, "size_stock": build_size_stock_view(size_stock).model_dump()}
