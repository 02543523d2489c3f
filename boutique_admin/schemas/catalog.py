"""
Схемы каталога: цвета, размеры, товары и их read-модели.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

StockStatus = Literal["in_stock", "low_stock", "out_of_stock"]


# ==================== СПРАВОЧНИКИ ====================


class ColorIn(BaseModel):
    name: str = Field(..., max_length=100)
    hex: Optional[str] = Field(None, description="Код цвета #RRGGBB")


class ColorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    name: str
    hex: Optional[str] = None


class SizeIn(BaseModel):
    label: str = Field(..., max_length=32)


class SizeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    label: str


# ==================== ЗАПИСЬ ТОВАРА ====================


class SizeStockIn(BaseModel):
    """Остаток в размере: существующий size_id или новый size_label."""

    size_id: Optional[int] = None
    size_label: Optional[str] = None
    stock: int = Field(0, ge=0)
    price_cents: int = Field(..., ge=0)


class VariantIn(BaseModel):
    """Цветовой вариант: существующий color_id или новый цвет new_color."""

    color_id: Optional[int] = None
    new_color: Optional[ColorIn] = None
    images: List[str] = Field(default_factory=list, description="URL изображений, первое - главное")
    sizes: List[SizeStockIn] = Field(default_factory=list)


class ProductIn(BaseModel):
    """Данные формы создания/редактирования товара."""

    name: str = Field(..., max_length=255)
    description: Optional[str] = None
    category_id: int
    discount_percentage: Optional[int] = Field(None, ge=0, le=100)
    is_featured: bool = False
    colors: List[VariantIn] = Field(default_factory=list)


class ImageReorder(BaseModel):
    image_ids: List[int]


class ImageUrlIn(BaseModel):
    url: str = Field(..., min_length=1)


class StockUpdate(BaseModel):
    stock: int


# ==================== READ-МОДЕЛИ ====================


class ImageView(BaseModel):
    id: int
    url: str
    sort_order: int
    is_primary: bool


class SizeStockView(BaseModel):
    id: int
    size: SizeOut
    stock: int
    reserved_stock: int
    available_stock: int
    price_cents: int


class VariantView(BaseModel):
    id: int
    color: ColorOut
    images: List[ImageView]
    primary_image_url: Optional[str] = None
    size_stocks: List[SizeStockView]
    total_stock: int


class ProductCategoryView(BaseModel):
    id: int
    name: str
    slug: str
    parent: Optional["ProductCategoryView"] = None


class ProductView(BaseModel):
    """Собранная read-модель товара: товар -> варианты -> остатки по размерам."""

    id: int
    name: str
    description: Optional[str] = None
    category: ProductCategoryView
    discount_percentage: Optional[int] = None
    is_featured: bool
    variants: List[VariantView]
    total_stock: int
    total_available: int
    status: StockStatus
    created_at: datetime
    updated_at: datetime


class InventoryRow(BaseModel):
    """Строка складского учета (вариант + размер)."""

    size_stock_id: int
    product_id: int
    product_name: str
    color: ColorOut
    size: SizeOut
    stock: int
    reserved_stock: int
    available_stock: int
    price_cents: int
