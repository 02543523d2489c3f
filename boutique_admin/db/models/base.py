"""
Базовый класс для всех моделей SQLAlchemy.

Использует новый Declarative API SQLAlchemy 2.0.
"""

from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    """Текущее время UTC без tzinfo (так хранятся все временные метки)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """
    Базовый класс для всех моделей.
    
    Наследуется от DeclarativeBase для использования нового API SQLAlchemy 2.0.
    """
    pass
