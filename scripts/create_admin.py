#!/usr/bin/env python3
"""
Скрипт для создания администратора в базе данных.

Использование:
    python scripts/create_admin.py admin@example.com "Store Admin" password123
"""

import sys
from pathlib import Path

# Добавляем путь к пакету boutique_admin
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from boutique_admin.core.auth import AuthService
from boutique_admin.core.config import settings
from boutique_admin.db.database import Database
from boutique_admin.db.models.user import User


def create_admin(email: str, name: str, password: str) -> bool:
    """Создает администратора или сбрасывает пароль существующего."""
    if not 8 <= len(password) <= 32:
        print("❌ Пароль должен содержать от 8 до 32 символов")
        return False

    database = Database(settings.DATABASE_URL)
    database.connect()
    db = database.session()
    try:
        user = db.scalar(select(User).where(User.email == email.lower()))
        if user:
            user.hashed_password = AuthService.get_password_hash(password)
            user.is_active = True
            print(f"✅ Администратор {user.email} уже существует, пароль обновлен")
        else:
            user = User(
                email=email.lower(),
                name=name,
                hashed_password=AuthService.get_password_hash(password),
                is_active=True,
            )
            db.add(user)
            print(f"✅ Администратор {email} создан")
        db.commit()
        return True

    except SQLAlchemyError as e:
        db.rollback()
        print(f"❌ Ошибка при создании администратора: {e}")
        return False
    finally:
        db.close()
        database.dispose()


if __name__ == "__main__":
    if len(sys.argv) != 4:
        print(__doc__)
        sys.exit(2)
    if not create_admin(*sys.argv[1:]):
        sys.exit(1)
