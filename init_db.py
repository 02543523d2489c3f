#!/usr/bin/env python3
"""
Скрипт для инициализации базы данных
"""

import sys
from pathlib import Path

# Добавляем путь к пакету boutique_admin
sys.path.insert(0, str(Path(__file__).parent))

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from boutique_admin.core.config import settings
from boutique_admin.db.database import Database


def init_database() -> bool:
    """Создает все таблицы в базе данных."""
    print("🗄️ Инициализация базы данных...")

    database = Database(settings.DATABASE_URL)
    try:
        database.create_all()
        print("✅ Все таблицы созданы успешно!")

        tables = inspect(database.engine).get_table_names()
        print(f"📋 Таблиц в базе: {len(tables)}")
        for table in tables:
            print(f"  - {table}")
        return True

    except SQLAlchemyError as e:
        print(f"❌ Ошибка создания таблиц: {e}")
        return False
    finally:
        database.dispose()


if __name__ == "__main__":
    if not init_database():
        sys.exit(1)
