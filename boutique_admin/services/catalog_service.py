"""
Сервис каталога.

Справочники цветов и размеров, запись товаров с вариантами и остатками,
управление изображениями вариантов и сборка read-моделей товара.
"""

import logging
import re
from typing import Iterable, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload, selectinload

from boutique_admin.core.config import settings
from boutique_admin.core.errors import (
    ConflictError,
    InvariantViolation,
    NotFoundError,
    ValidationError,
    atomic,
)
from boutique_admin.db.models import (
    Category,
    Color,
    OrderItem,
    Product,
    ProductColor,
    ProductImage,
    Size,
    SizeStock,
)
from boutique_admin.db.models.base import utcnow
from boutique_admin.schemas.catalog import (
    ColorOut,
    ImageView,
    InventoryRow,
    ProductCategoryView,
    ProductIn,
    ProductView,
    SizeOut,
    SizeStockIn,
    SizeStockView,
    VariantIn,
    VariantView,
)

logger = logging.getLogger(__name__)

HEX_RE = re.compile(r"^#[0-9a-fA-F]{6}$")


# ==================== READ-МОДЕЛИ ====================


def stock_status(total_stock: int) -> str:
    """
    Статус наличия товара по суммарному остатку.

    0 -> out_of_stock, меньше LOW_STOCK_THRESHOLD -> low_stock, иначе in_stock.
    """
    if total_stock <= 0:
        return "out_of_stock"
    if total_stock < settings.LOW_STOCK_THRESHOLD:
        return "low_stock"
    return "in_stock"


def discounted_price(price_cents: int, discount_percentage: Optional[int]) -> int:
    """Цена с учетом скидки товара, округление в пользу покупателя."""
    if not discount_percentage:
        return price_cents
    return price_cents - (price_cents * discount_percentage + 99) // 100


def ordered_images(images: Iterable[ProductImage]) -> List[ProductImage]:
    """Главное изображение первым, затем по sort_order и id."""
    return sorted(images, key=lambda image: (not image.is_primary, image.sort_order, image.id or 0))


def _category_view(category: Category) -> ProductCategoryView:
    return ProductCategoryView(
        id=category.id,
        name=category.name,
        slug=category.slug,
        parent=_category_view(category.parent) if category.parent is not None else None,
    )


def build_size_stock_view(size_stock: SizeStock) -> SizeStockView:
    return SizeStockView(
        id=size_stock.id,
        size=SizeOut.model_validate(size_stock.size),
        stock=size_stock.stock,
        reserved_stock=size_stock.reserved_stock,
        available_stock=size_stock.available_stock,
        price_cents=size_stock.price_cents,
    )


def build_variant_view(variant: ProductColor) -> VariantView:
    images = [
        ImageView(
            id=image.id,
            url=image.url,
            sort_order=image.sort_order,
            is_primary=image.is_primary,
        )
        for image in ordered_images(variant.images)
    ]
    size_stocks = [build_size_stock_view(ss) for ss in variant.size_stocks]
    return VariantView(
        id=variant.id,
        color=ColorOut.model_validate(variant.color),
        images=images,
        primary_image_url=images[0].url if images else None,
        size_stocks=size_stocks,
        total_stock=sum(ss.stock for ss in size_stocks),
    )


def build_product_view(product: Product) -> ProductView:
    """
    Собирает read-модель товара из нормализованных строк.

    Суммарный остаток и статус вычисляются при каждом чтении и нигде не хранятся.
    """
    variants = [build_variant_view(variant) for variant in product.variants]
    total_stock = sum(variant.total_stock for variant in variants)
    total_available = sum(
        ss.available_stock for variant in variants for ss in variant.size_stocks
    )
    return ProductView(
        id=product.id,
        name=product.name,
        description=product.description,
        category=_category_view(product.category),
        discount_percentage=product.discount_percentage,
        is_featured=product.is_featured,
        variants=variants,
        total_stock=total_stock,
        total_available=total_available,
        status=stock_status(total_stock),
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


def describe_size_stock(size_stock: SizeStock) -> str:
    """Человекочитаемое описание позиции: товар / цвет / размер."""
    variant = size_stock.variant
    return f"{variant.product.name} ({variant.color.name}, {size_stock.size.label})"


class CatalogService:
    """
    Операции каталога.

    Args:
        db: Сессия базы данных
    """

    def __init__(self, db: Session):
        self.db = db

    # ==================== ЦВЕТА И РАЗМЕРЫ ====================

    def _find_color(self, name: str) -> Optional[Color]:
        return self.db.scalar(select(Color).where(func.lower(Color.name) == name.lower()))

    def _find_size(self, label: str) -> Optional[Size]:
        return self.db.scalar(select(Size).where(func.lower(Size.label) == label.lower()))

    @staticmethod
    def _clean_color(name: str, hex_value: Optional[str]) -> tuple:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Color name is required")
        hex_value = (hex_value or "").strip() or None
        if hex_value is not None and not HEX_RE.match(hex_value):
            raise ValidationError("Color hex must look like #RRGGBB")
        return name, hex_value.upper() if hex_value else None

    def list_colors(self) -> List[Color]:
        return list(self.db.scalars(select(Color).order_by(Color.name)).all())

    def create_color(self, name: str, hex_value: Optional[str] = None) -> Color:
        """
        Создать цвет.

        Raises:
            ValidationError: Пустое название или неверный hex
            ConflictError: Цвет с таким названием уже есть (без учета регистра)
        """
        name, hex_value = self._clean_color(name, hex_value)
        with atomic(self.db, "Failed to create color"):
            if self._find_color(name) is not None:
                raise ConflictError(f"Color '{name}' already exists")
            color = Color(name=name, hex=hex_value)
            self.db.add(color)
            self.db.flush()
        return color

    def list_sizes(self) -> List[Size]:
        return list(self.db.scalars(select(Size).order_by(Size.id)).all())

    def create_size(self, label: str) -> Size:
        label = (label or "").strip()
        if not label:
            raise ValidationError("Size label is required")
        with atomic(self.db, "Failed to create size"):
            if self._find_size(label) is not None:
                raise ConflictError(f"Size '{label}' already exists")
            size = Size(label=label)
            self.db.add(size)
            self.db.flush()
        return size

    def _resolve_color(self, variant_in: VariantIn) -> Color:
        if variant_in.color_id is not None:
            color = self.db.get(Color, variant_in.color_id)
            if color is None:
                raise NotFoundError(f"Color {variant_in.color_id} not found")
            return color

        if variant_in.new_color is not None:
            name, hex_value = self._clean_color(variant_in.new_color.name, variant_in.new_color.hex)
            color = self._find_color(name)
            if color is None:
                color = Color(name=name, hex=hex_value)
                self.db.add(color)
                self.db.flush()
            return color

        raise ValidationError("Each color variant needs color_id or new_color")

    def _resolve_size(self, size_in: SizeStockIn) -> Size:
        if size_in.size_id is not None:
            size = self.db.get(Size, size_in.size_id)
            if size is None:
                raise NotFoundError(f"Size {size_in.size_id} not found")
            return size

        label = (size_in.size_label or "").strip()
        if not label:
            raise ValidationError("Each size needs size_id or size_label")
        size = self._find_size(label)
        if size is None:
            size = Size(label=label)
            self.db.add(size)
            self.db.flush()
        return size

    # ==================== ТОВАРЫ: ЗАПИСЬ ====================

    def _load_product(self, product_id: int, for_update: bool = False) -> Product:
        stmt = select(Product).where(Product.id == product_id)
        if for_update:
            stmt = stmt.with_for_update()
        product = self.db.scalar(stmt)
        if product is None:
            raise NotFoundError("Product not found")
        return product

    def _ensure_removable(self, size_stocks: Iterable[SizeStock]) -> None:
        """Строки остатков с резервом или заказами удалять нельзя."""
        size_stocks = [ss for ss in size_stocks if ss.id is not None]
        if not size_stocks:
            return

        if any(ss.reserved_stock > 0 for ss in size_stocks):
            raise InvariantViolation("Cannot remove a size with reserved stock")

        ordered = self.db.scalar(
            select(func.count(OrderItem.id)).where(
                OrderItem.size_stock_id.in_([ss.id for ss in size_stocks])
            )
        ) or 0
        if ordered > 0:
            raise InvariantViolation("Cannot remove a size that is referenced by orders")

    @staticmethod
    def _renumber(images: List[ProductImage]) -> List[ProductImage]:
        for position, image in enumerate(images):
            image.sort_order = position
            image.is_primary = position == 0
        return images

    def _apply_images(self, variant: ProductColor, urls: List[str]) -> None:
        by_url = {image.url: image for image in variant.images}
        images = []
        for url in dict.fromkeys(url.strip() for url in urls if url and url.strip()):
            images.append(by_url.pop(url, None) or ProductImage(url=url))
        variant.images = self._renumber(images)

    def _apply_sizes(self, variant: ProductColor, sizes_in: List[SizeStockIn], color_name: str) -> None:
        if not sizes_in:
            raise ValidationError(f"Color '{color_name}' must have at least one size")

        existing = {ss.size_id: ss for ss in variant.size_stocks}
        seen = set()
        for size_in in sizes_in:
            size = self._resolve_size(size_in)
            if size.id in seen:
                raise ValidationError(f"Size '{size.label}' is listed twice for color '{color_name}'")
            seen.add(size.id)

            size_stock = existing.get(size.id)
            if size_stock is None:
                variant.size_stocks.append(
                    SizeStock(
                        size=size,
                        stock=size_in.stock,
                        reserved_stock=0,
                        price_cents=size_in.price_cents,
                    )
                )
                continue

            if size_in.stock < size_stock.reserved_stock:
                raise InvariantViolation(
                    f"Stock for '{color_name}' / '{size.label}' cannot be lower than "
                    f"reserved quantity ({size_stock.reserved_stock})"
                )
            size_stock.stock = size_in.stock
            size_stock.price_cents = size_in.price_cents

        removed = [ss for size_id, ss in existing.items() if size_id not in seen]
        self._ensure_removable(removed)
        for size_stock in removed:
            variant.size_stocks.remove(size_stock)

    def _apply_variants(self, product: Product, colors_in: List[VariantIn]) -> None:
        """
        Сверяет варианты товара с данными формы.

        Существующие варианты и остатки обновляются на месте (резерв
        сохраняется), новые создаются, отсутствующие в форме удаляются.
        """
        if not colors_in:
            raise ValidationError("Product must have at least one color")

        existing = {variant.color_id: variant for variant in product.variants}
        seen = set()
        for variant_in in colors_in:
            color = self._resolve_color(variant_in)
            if color.id in seen:
                raise ValidationError(f"Color '{color.name}' is listed more than once")
            seen.add(color.id)

            variant = existing.get(color.id)
            if variant is None:
                variant = ProductColor(color=color)
                product.variants.append(variant)

            self._apply_images(variant, variant_in.images)
            self._apply_sizes(variant, variant_in.sizes, color.name)

        removed = [variant for color_id, variant in existing.items() if color_id not in seen]
        for variant in removed:
            self._ensure_removable(variant.size_stocks)
            product.variants.remove(variant)

    def _apply_fields(self, product: Product, data: ProductIn) -> None:
        name = (data.name or "").strip()
        if not name:
            raise ValidationError("Product name is required")
        if self.db.get(Category, data.category_id) is None:
            raise NotFoundError("Category not found")

        product.name = name
        product.description = data.description
        product.category_id = data.category_id
        product.discount_percentage = data.discount_percentage
        product.is_featured = data.is_featured

    def create_product(self, data: ProductIn) -> Product:
        """
        Создать товар с вариантами и остатками одной транзакцией.

        Raises:
            ValidationError: Нет цветов или размеров, дубли в форме
            NotFoundError: Категория, цвет или размер не найдены
        """
        with atomic(self.db, "Failed to create product"):
            product = Product()
            self._apply_fields(product, data)
            self.db.add(product)
            self._apply_variants(product, data.colors)
            self.db.flush()

        logger.info(f"Product created: {product.name} (id={product.id})")
        return product

    def update_product(self, product_id: int, data: ProductIn) -> Product:
        with atomic(self.db, "Failed to update product"):
            product = self._load_product(product_id, for_update=True)
            self._apply_fields(product, data)
            self._apply_variants(product, data.colors)
            product.updated_at = utcnow()
            self.db.flush()

        logger.info(f"Product updated: {product.name} (id={product.id})")
        return product

    def delete_product(self, product_id: int) -> None:
        """
        Удалить товар вместе с вариантами, изображениями и остатками.

        Raises:
            NotFoundError: Товар не найден
            InvariantViolation: На остатки товара ссылаются заказы
        """
        with atomic(self.db, "Failed to delete product"):
            product = self._load_product(product_id, for_update=True)
            ordered = self.db.scalar(
                select(func.count(OrderItem.id))
                .join(SizeStock, SizeStock.id == OrderItem.size_stock_id)
                .join(ProductColor, ProductColor.id == SizeStock.product_color_id)
                .where(ProductColor.product_id == product_id)
            ) or 0
            if ordered > 0:
                raise InvariantViolation("Cannot delete product that is referenced by orders")
            self.db.delete(product)

        logger.info(f"Product deleted: id={product_id}")

    # ==================== ИЗОБРАЖЕНИЯ ====================

    def get_variant(self, product_id: int, variant_id: int) -> ProductColor:
        variant = self.db.get(ProductColor, variant_id)
        if variant is None or variant.product_id != product_id:
            raise NotFoundError("Product variant not found")
        return variant

    def _get_image(self, product_id: int, image_id: int) -> ProductImage:
        image = self.db.get(ProductImage, image_id)
        if image is None or image.variant.product_id != product_id:
            raise NotFoundError("Image not found")
        return image

    def add_variant_image(self, product_id: int, variant_id: int, url: str) -> ProductImage:
        """Добавить изображение в конец списка; первое изображение становится главным."""
        url = (url or "").strip()
        if not url:
            raise ValidationError("Image URL is required")
        with atomic(self.db, "Failed to add image"):
            variant = self.get_variant(product_id, variant_id)
            images = ordered_images(variant.images)
            image = ProductImage(url=url)
            variant.images = self._renumber(images + [image])
            variant.product.updated_at = utcnow()
            self.db.flush()
        return image

    def set_primary_image(self, product_id: int, image_id: int) -> ProductImage:
        with atomic(self.db, "Failed to set primary image"):
            image = self._get_image(product_id, image_id)
            others = [i for i in ordered_images(image.variant.images) if i.id != image.id]
            self._renumber([image] + others)
        return image

    def reorder_images(self, product_id: int, variant_id: int, image_ids: List[int]) -> ProductColor:
        """
        Задать порядок изображений варианта. Первое становится главным.

        Raises:
            ValidationError: Список не совпадает с изображениями варианта
        """
        with atomic(self.db, "Failed to reorder images"):
            variant = self.get_variant(product_id, variant_id)
            by_id = {image.id: image for image in variant.images}
            if sorted(image_ids) != sorted(by_id):
                raise ValidationError("Image list must contain every image of the variant exactly once")
            self._renumber([by_id[image_id] for image_id in image_ids])
        return variant

    def delete_image(self, product_id: int, image_id: int) -> str:
        """
        Удалить изображение; следующее по порядку становится главным.

        Returns:
            str: URL удаленного изображения (для очистки хранилища)
        """
        with atomic(self.db, "Failed to delete image"):
            image = self._get_image(product_id, image_id)
            variant = image.variant
            url = image.url
            remaining = [i for i in ordered_images(variant.images) if i.id != image.id]
            variant.images = self._renumber(remaining)
        return url

    # ==================== ТОВАРЫ: ЧТЕНИЕ ====================

    def _product_query(self):
        return select(Product).options(
            joinedload(Product.category).joinedload(Category.parent),
            selectinload(Product.variants).selectinload(ProductColor.images),
            selectinload(Product.variants).selectinload(ProductColor.size_stocks),
        )

    def get_product(self, product_id: int) -> ProductView:
        product = self.db.scalar(self._product_query().where(Product.id == product_id))
        if product is None:
            raise NotFoundError("Product not found")
        return build_product_view(product)

    def list_products(
        self,
        q: Optional[str] = None,
        category_id: Optional[int] = None,
        status: Optional[str] = None,
        featured: Optional[bool] = None,
    ) -> List[ProductView]:
        """
        Список товаров в виде read-моделей.

        Фильтр по категории включает товары ее подкатегорий.
        Фильтр по статусу применяется к вычисленному статусу.
        """
        stmt = self._product_query().order_by(Product.created_at.desc(), Product.id.desc())
        if q:
            stmt = stmt.where(Product.name.ilike(f"%{q}%"))
        if category_id is not None:
            child_ids = select(Category.id).where(Category.parent_id == category_id)
            stmt = stmt.where(
                or_(Product.category_id == category_id, Product.category_id.in_(child_ids))
            )
        if featured is not None:
            stmt = stmt.where(Product.is_featured.is_(featured))

        views = [build_product_view(product) for product in self.db.scalars(stmt).unique().all()]
        if status:
            views = [view for view in views if view.status == status]
        return views

    # ==================== СКЛАД ====================

    def list_inventory(self, low_only: bool = False) -> List[InventoryRow]:
        """Плоский список остатков по всем вариантам и размерам."""
        stmt = (
            select(SizeStock)
            .join(ProductColor, ProductColor.id == SizeStock.product_color_id)
            .join(Product, Product.id == ProductColor.product_id)
            .options(joinedload(SizeStock.variant).joinedload(ProductColor.product))
            .order_by(Product.name, ProductColor.id, SizeStock.id)
        )
        if low_only:
            stmt = stmt.where(SizeStock.stock < settings.DASHBOARD_LOW_STOCK_THRESHOLD)

        return [
            InventoryRow(
                size_stock_id=ss.id,
                product_id=ss.variant.product.id,
                product_name=ss.variant.product.name,
                color=ColorOut.model_validate(ss.variant.color),
                size=SizeOut.model_validate(ss.size),
                stock=ss.stock,
                reserved_stock=ss.reserved_stock,
                available_stock=ss.available_stock,
                price_cents=ss.price_cents,
            )
            for ss in self.db.scalars(stmt).unique().all()
        ]

    def update_stock(self, size_stock_id: int, new_stock: int) -> SizeStock:
        """
        Установить фактический остаток.

        Raises:
            NotFoundError: Строка остатка не найдена
            InvariantViolation: Остаток отрицательный или меньше резерва
        """
        with atomic(self.db, "Failed to update stock"):
            size_stock = self.db.scalar(
                select(SizeStock).where(SizeStock.id == size_stock_id).with_for_update(of=SizeStock)
            )
            if size_stock is None:
                raise NotFoundError("Size stock not found")
            if new_stock < 0:
                raise InvariantViolation("Stock cannot be negative")
            if new_stock < size_stock.reserved_stock:
                raise InvariantViolation(
                    f"Stock cannot be lower than reserved quantity ({size_stock.reserved_stock})"
                )
            size_stock.stock = new_stock
            size_stock.variant.product.updated_at = utcnow()

        logger.info(f"Stock updated: size_stock={size_stock_id} stock={new_stock}")
        return size_stock
