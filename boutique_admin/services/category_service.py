"""
Сервис дерева категорий.

Категории образуют дерево через ссылку на родителя. Проверки циклов и
глубины выполняются по индексу смежности, собранному из всех строк таблицы.
"""

import logging
import re
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from boutique_admin.core.config import settings
from boutique_admin.core.errors import (
    ConflictError,
    InvariantViolation,
    NotFoundError,
    ValidationError,
    atomic,
)
from boutique_admin.db.models import Category, Product
from boutique_admin.schemas.category import CategoryNode, CategoryOut, CategorySummary

logger = logging.getLogger(__name__)

SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def slugify(value: str) -> str:
    """Строит slug из названия: нижний регистр, пробелы и знаки заменяются дефисами."""
    value = re.sub(r"[^a-z0-9]+", "-", value.strip().lower())
    return value.strip("-")


class CategoryTree:
    """
    Индекс дерева категорий: id -> parent_id и parent_id -> [child ids].

    Args:
        pairs: Пары (id, parent_id) всех категорий
    """

    def __init__(self, pairs: Iterable[tuple]):
        self.parent_of: Dict[int, Optional[int]] = {}
        self.children_of: Dict[Optional[int], List[int]] = defaultdict(list)
        for node_id, parent_id in pairs:
            self.parent_of[node_id] = parent_id
            self.children_of[parent_id].append(node_id)

    def __contains__(self, node_id: int) -> bool:
        return node_id in self.parent_of

    def ancestors(self, node_id: int) -> List[int]:
        """Цепочка предков от родителя до корня (обход останавливается на уже встреченном узле)."""
        chain: List[int] = []
        seen = {node_id}
        current = self.parent_of.get(node_id)
        while current is not None and current not in seen:
            chain.append(current)
            seen.add(current)
            current = self.parent_of.get(current)
        return chain

    def depth(self, node_id: int) -> int:
        """Глубина узла: корень имеет глубину 1."""
        return len(self.ancestors(node_id)) + 1

    def height(self, node_id: int) -> int:
        """Высота поддерева: лист имеет высоту 1."""
        children = self.children_of.get(node_id, [])
        if not children:
            return 1
        return 1 + max(self.height(child) for child in children)

    def would_create_cycle(self, node_id: int, new_parent_id: int) -> bool:
        """Станет ли узел своим собственным предком при переносе под new_parent_id."""
        return new_parent_id == node_id or node_id in self.ancestors(new_parent_id)


class CategoryService:
    """
    CRUD над деревом категорий.

    Args:
        db: Сессия базы данных
    """

    def __init__(self, db: Session):
        self.db = db

    def _tree(self) -> CategoryTree:
        return CategoryTree(self.db.execute(select(Category.id, Category.parent_id)).all())

    def _validate(self, name: str, slug: str) -> tuple:
        name = (name or "").strip()
        slug = (slug or "").strip()
        if not name:
            raise ValidationError("Category name is required")
        if not SLUG_RE.match(slug):
            raise ValidationError(
                "Slug must contain only lowercase letters, digits and single hyphens"
            )
        return name, slug

    def _ensure_slug_free(self, slug: str, exclude_id: Optional[int] = None) -> None:
        stmt = select(Category.id).where(Category.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(Category.id != exclude_id)
        if self.db.scalar(stmt) is not None:
            raise ConflictError("Slug already exists")

    def _check_depth(self, tree: CategoryTree, parent_id: int, subtree_height: int) -> None:
        max_depth = settings.CATEGORY_MAX_DEPTH
        if tree.depth(parent_id) + subtree_height > max_depth:
            raise InvariantViolation(
                f"Category nesting is limited to {max_depth} levels"
            )

    def get(self, category_id: int) -> Category:
        category = self.db.get(Category, category_id)
        if category is None:
            raise NotFoundError("Category not found")
        return category

    def create(self, name: str, slug: str, parent_id: Optional[int] = None) -> Category:
        """
        Создать категорию.

        Raises:
            ValidationError: Пустое название или некорректный slug
            ConflictError: Slug уже занят
            NotFoundError: Родительская категория не найдена
            InvariantViolation: Превышена допустимая глубина вложенности
        """
        name, slug = self._validate(name, slug)

        with atomic(self.db, "Failed to create category"):
            self._ensure_slug_free(slug)

            if parent_id is not None:
                tree = self._tree()
                if parent_id not in tree:
                    raise NotFoundError("Parent category not found")
                self._check_depth(tree, parent_id, 1)

            category = Category(name=name, slug=slug, parent_id=parent_id)
            self.db.add(category)
            self.db.flush()

        logger.info(f"Category created: {category.slug} (id={category.id})")
        return category

    def update(
        self, category_id: int, name: str, slug: str, parent_id: Optional[int] = None
    ) -> Category:
        """
        Обновить категорию, в том числе перенести ее под другого родителя.

        Проверка циклов проходит по всей цепочке предков нового родителя,
        поэтому ловит и непосредственных детей, и более глубоких потомков.

        Raises:
            NotFoundError: Категория или родитель не найдены
            ConflictError: Slug занят другой категорией
            InvariantViolation: Категория стала бы своим родителем или предком
        """
        name, slug = self._validate(name, slug)

        with atomic(self.db, "Failed to update category"):
            category = self.get(category_id)
            self._ensure_slug_free(slug, exclude_id=category_id)

            if parent_id is not None:
                if parent_id == category_id:
                    raise InvariantViolation("Category cannot be its own parent")

                tree = self._tree()
                if parent_id not in tree:
                    raise NotFoundError("Parent category not found")
                if tree.would_create_cycle(category_id, parent_id):
                    raise InvariantViolation("Cannot create circular reference")
                self._check_depth(tree, parent_id, tree.height(category_id))

            category.name = name
            category.slug = slug
            category.parent_id = parent_id

        logger.info(f"Category updated: {category.slug} (id={category.id})")
        return category

    def delete(self, category_id: int) -> None:
        """
        Удалить категорию.

        Raises:
            NotFoundError: Категория не найдена
            InvariantViolation: У категории есть подкатегории или товары
        """
        with atomic(self.db, "Failed to delete category"):
            category = self.get(category_id)

            children_count = self.db.scalar(
                select(func.count(Category.id)).where(Category.parent_id == category_id)
            ) or 0
            if children_count > 0:
                raise InvariantViolation(
                    "Cannot delete category with subcategories. Delete subcategories first."
                )

            products_count = self.db.scalar(
                select(func.count(Product.id)).where(Product.category_id == category_id)
            ) or 0
            if products_count > 0:
                raise InvariantViolation("Cannot delete category that is used by products")

            self.db.delete(category)

        logger.info(f"Category deleted: id={category_id}")

    def list_flat(self) -> List[CategoryOut]:
        """Все категории, упорядоченные по (parent_id, name), корневые первыми."""
        products_count = (
            select(Product.category_id, func.count(Product.id).label("cnt"))
            .group_by(Product.category_id)
            .subquery()
        )
        rows = self.db.execute(
            select(Category, func.coalesce(products_count.c.cnt, 0))
            .outerjoin(products_count, products_count.c.category_id == Category.id)
            .options(selectinload(Category.parent), selectinload(Category.children))
            .order_by(Category.parent_id.asc().nullsfirst(), Category.name)
            .execution_options(populate_existing=True)
        ).all()

        return [
            CategoryOut(
                id=category.id,
                name=category.name,
                slug=category.slug,
                parent_id=category.parent_id,
                parent=CategorySummary.model_validate(category.parent) if category.parent else None,
                children_count=len(category.children),
                products_count=int(count or 0),
            )
            for category, count in rows
        ]

    def list_hierarchy(self) -> List[CategoryNode]:
        """Только корневые категории с непосредственными детьми, без рекурсии."""
        roots = self.db.scalars(
            select(Category)
            .where(Category.parent_id.is_(None))
            .options(selectinload(Category.children))
            .order_by(Category.name)
            .execution_options(populate_existing=True)
        ).all()

        return [
            CategoryNode(
                id=root.id,
                name=root.name,
                slug=root.slug,
                children=[CategorySummary.model_validate(child) for child in root.children],
            )
            for root in roots
        ]
