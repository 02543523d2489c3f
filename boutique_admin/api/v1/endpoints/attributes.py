"""
API endpoints справочников цветов и размеров.
"""

from typing import List

from fastapi import APIRouter, Depends

from boutique_admin.api.deps import get_catalog_service
from boutique_admin.schemas.catalog import ColorIn, ColorOut, SizeIn, SizeOut
from boutique_admin.services.catalog_service import CatalogService

router = APIRouter()


@router.get("/colors", response_model=List[ColorOut])
def list_colors(service: CatalogService = Depends(get_catalog_service)):
    return service.list_colors()


@router.post("/colors", status_code=201)
def create_color(color_data: ColorIn, service: CatalogService = Depends(get_catalog_service)):
    """Создать цвет. Название уникально без учета регистра."""
    color = service.create_color(color_data.name, color_data.hex)
    return {"success": True, "color": ColorOut.model_validate(color).model_dump()}


@router.get("/sizes", response_model=List[SizeOut])
def list_sizes(service: CatalogService = Depends(get_catalog_service)):
    return service.list_sizes()


@router.post("/sizes", status_code=201)
def create_size(size_data: SizeIn, service: CatalogService = Depends(get_catalog_service)):
    size = service.create_size(size_data.label)
    return {"success": True, "size": SizeOut.model_validate(size).model_dump()}
