"""
API endpoints для работы с категориями товаров.

Публичный роутер отдает дерево категорий для витрины,
административный содержит CRUD операции.
"""

from typing import List

from fastapi import APIRouter, Depends

from boutique_admin.api.deps import get_category_service
from boutique_admin.schemas.category import CategoryIn, CategoryNode, CategoryOut, CategorySummary
from boutique_admin.services.category_service import CategoryService

router = APIRouter()
admin_router = APIRouter()


def _category_payload(category) -> dict:
    return {
        **CategorySummary.model_validate(category).model_dump(),
        "parent_id": category.parent_id,
    }


@router.get("", response_model=List[CategoryNode])
def list_categories(service: CategoryService = Depends(get_category_service)):
    """
    Получить дерево категорий: корневые категории с подкатегориями.

    Example:
        [
            {"id": 1, "name": "LINGERIE", "slug": "lingerie",
             "children": [{"id": 2, "name": "NIGHTIE", "slug": "lingerie-nightie"}]}
        ]
    """
    return service.list_hierarchy()


@admin_router.get("", response_model=List[CategoryOut])
def admin_list_categories(service: CategoryService = Depends(get_category_service)):
    """Плоский список категорий с родителем и количеством товаров."""
    return service.list_flat()


@admin_router.get("/hierarchy", response_model=List[CategoryNode])
def admin_categories_hierarchy(service: CategoryService = Depends(get_category_service)):
    return service.list_hierarchy()


@admin_router.post("", status_code=201)
def admin_create_category(
    category_data: CategoryIn, service: CategoryService = Depends(get_category_service)
):
    """
    Создать новую категорию.

    Ошибки (занятый slug, несуществующий родитель) возвращаются в виде
    {"success": false, "error": "..."}.
    """
    category = service.create(category_data.name, category_data.slug, category_data.parent_id)
    return {"success": True, "category": _category_payload(category)}


@admin_router.put("/{category_id}")
def admin_update_category(
    category_id: int,
    category_data: CategoryIn,
    service: CategoryService = Depends(get_category_service),
):
    """Обновить категорию (название, slug, родитель)."""
    category = service.update(
        category_id, category_data.name, category_data.slug, category_data.parent_id
    )
    return {"success": True, "category": _category_payload(category)}


@admin_router.delete("/{category_id}")
def admin_delete_category(
    category_id: int, service: CategoryService = Depends(get_category_service)
):
    """Удалить категорию без подкатегорий и товаров."""
    service.delete(category_id)
    return {"success": True}
