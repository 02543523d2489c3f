#!/usr/bin/env python3
"""
Заполнение справочников: размеры и дерево категорий магазина.

Скрипт идемпотентен: существующие размеры и категории пропускаются.
"""

import sys
from pathlib import Path

# Добавляем путь к пакету boutique_admin
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select
from sqlalchemy.orm import Session

from boutique_admin.core.config import settings
from boutique_admin.db.database import Database
from boutique_admin.db.models import Category, Size
from boutique_admin.services.category_service import CategoryService, slugify

SIZES = ["XS", "S", "M", "L", "XL", "XXL"]

SHOP_CATEGORIES = {
    "ROBES": [],
    "LINGERIE": ["NUISETTE ET PEIGNOIR SATIN", "NIGHTIE", "SOUS VETEMENTS", "SPORTSWEAR"],
    "PYJAMAS": [
        "Haut + Pantalon",
        "Pyjama Short",
        "3 PIECES",
        "Pyjama Long",
        "Pyjamas Satin",
        "Body & Colon",
    ],
    "SANDALES": [],
    "SERVIETTES": [],
    "BURKINI": [],
    "HOMME": [],
    "KIDS": [],
    "ACCESSOIRES": [],
    "SOLDES": [],
}


def seed_sizes(db: Session) -> None:
    for label in SIZES:
        if db.scalar(select(Size).where(Size.label == label)):
            print(f"⚠️ Size already exists: {label}")
            continue
        db.add(Size(label=label))
        print(f"✅ Created size: {label}")
    db.commit()


def seed_categories(db: Session) -> None:
    service = CategoryService(db)
    for name, subcategories in SHOP_CATEGORIES.items():
        slug = slugify(name)
        parent = db.scalar(select(Category).where(Category.slug == slug))
        if parent is None:
            parent = service.create(name, slug)
            print(f"✅ Created category: {name}")
        else:
            print(f"⚠️ Category already exists: {name}")

        for sub in subcategories:
            sub_slug = f"{slug}-{slugify(sub)}"
            if db.scalar(select(Category.id).where(Category.slug == sub_slug)):
                print(f"  ↳ Subcategory already exists: {sub}")
                continue
            service.create(sub, sub_slug, parent.id)
            print(f"  ↳ Subcategory created: {sub}")


def main() -> None:
    database = Database(settings.DATABASE_URL)
    database.connect()
    db = database.session()
    try:
        seed_sizes(db)
        seed_categories(db)
    finally:
        db.close()
        database.dispose()


if __name__ == "__main__":
    main()
