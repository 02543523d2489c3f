"""
API endpoints управления товарами.

Содержит CRUD операции над товарами с цветовыми вариантами и остатками
по размерам, а также управление изображениями вариантов.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile

from boutique_admin.api.deps import get_catalog_service
from boutique_admin.core.config import settings
from boutique_admin.core.errors import ServiceError, ValidationError
from boutique_admin.schemas.catalog import (
    ImageReorder,
    ImageUrlIn,
    ProductIn,
    ProductView,
    StockStatus,
)
from boutique_admin.services.catalog_service import CatalogService
from boutique_admin.services.storage_service import (
    StorageProvider,
    get_storage,
    store_variant_image,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[ProductView])
def list_products(
    q: Optional[str] = Query(None, description="Поиск по названию"),
    category_id: Optional[int] = Query(None, description="Фильтр по категории (с подкатегориями)"),
    status: Optional[StockStatus] = Query(None, description="in_stock/low_stock/out_of_stock"),
    featured: Optional[bool] = Query(None, description="Только топ-товары"),
    service: CatalogService = Depends(get_catalog_service),
):
    """
    Получить список товаров с вариантами, остатками и вычисленным статусом.
    """
    return service.list_products(q=q, category_id=category_id, status=status, featured=featured)


@router.get("/{product_id}", response_model=ProductView)
def get_product(product_id: int, service: CatalogService = Depends(get_catalog_service)):
    return service.get_product(product_id)


@router.post("", status_code=201)
def create_product(product_data: ProductIn, service: CatalogService = Depends(get_catalog_service)):
    """
    Создать товар с цветовыми вариантами и остатками по размерам.

    Новые цвета и размеры можно передать прямо в форме (new_color, size_label),
    они будут созданы в той же транзакции.
    """
    product = service.create_product(product_data)
    return {"success": True, "product": service.get_product(product.id).model_dump()}


@router.put("/{product_id}")
def update_product(
    product_id: int,
    product_data: ProductIn,
    service: CatalogService = Depends(get_catalog_service),
):
    product = service.update_product(product_id, product_data)
    return {"success": True, "product": service.get_product(product.id).model_dump()}


@router.delete("/{product_id}")
def delete_product(product_id: int, service: CatalogService = Depends(get_catalog_service)):
    service.delete_product(product_id)
    return {"success": True}


# ==================== ИЗОБРАЖЕНИЯ ====================


@router.post("/{product_id}/variants/{variant_id}/images", status_code=201)
def add_variant_image(
    product_id: int,
    variant_id: int,
    image_data: ImageUrlIn,
    service: CatalogService = Depends(get_catalog_service),
):
    """Привязать к варианту изображение по готовому URL."""
    image = service.add_variant_image(product_id, variant_id, image_data.url)
    return {"success": True, "image_id": image.id, "url": image.url}


@router.post("/{product_id}/variants/{variant_id}/images/upload", status_code=201)
def upload_variant_image(
    product_id: int,
    variant_id: int,
    file: UploadFile = File(...),
    service: CatalogService = Depends(get_catalog_service),
    storage: StorageProvider = Depends(get_storage),
):
    """
    Загрузить изображение варианта в хранилище и добавить его в конец списка.
    """
    # Проверяем вариант до записи файла в хранилище
    service.get_variant(product_id, variant_id)

    if file.size is not None and file.size > settings.MAX_IMAGE_SIZE:
        raise ValidationError(f"File too large: {file.size} bytes (max {settings.MAX_IMAGE_SIZE})")
    # Читаем не больше лимита + 1 байт, превышение отловит validate_image
    data = file.file.read(settings.MAX_IMAGE_SIZE + 1)

    url = store_variant_image(
        storage, product_id, variant_id, file.filename, data, file.content_type
    )
    try:
        image = service.add_variant_image(product_id, variant_id, url)
    except ServiceError:
        file_path = storage.path_from_url(url)
        if file_path and not storage.delete_file(file_path):
            logger.warning(f"Uploaded file {file_path} left in storage after failed save")
        raise
    return {"success": True, "image_id": image.id, "url": image.url}


@router.put("/{product_id}/images/{image_id}/primary")
def set_primary_image(
    product_id: int, image_id: int, service: CatalogService = Depends(get_catalog_service)
):
    service.set_primary_image(product_id, image_id)
    return {"success": True}


@router.put("/{product_id}/variants/{variant_id}/images/order")
def reorder_images(
    product_id: int,
    variant_id: int,
    order_data: ImageReorder,
    service: CatalogService = Depends(get_catalog_service),
):
    """Задать порядок изображений варианта; первое становится главным."""
    service.reorder_images(product_id, variant_id, order_data.image_ids)
    return {"success": True}


@router.delete("/{product_id}/images/{image_id}")
def delete_image(
    product_id: int,
    image_id: int,
    service: CatalogService = Depends(get_catalog_service),
    storage: StorageProvider = Depends(get_storage),
):
    url = service.delete_image(product_id, image_id)

    file_path = storage.path_from_url(url)
    if file_path and not storage.delete_file(file_path):
        logger.warning(f"Image {image_id} removed from catalog but file {file_path} was not deleted")
    return {"success": True}
