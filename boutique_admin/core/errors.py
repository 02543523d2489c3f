"""
Ошибки сервисного слоя.

Все операции, изменяющие данные, сообщают о неудаче через подклассы
ServiceError. На границе API они превращаются в структурированный ответ
{"success": false, "error": ..., "code": ...}.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Базовая ошибка бизнес-операции."""

    code = "error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"success": False, "error": self.message, "code": self.code}


class ValidationError(ServiceError):
    """Отсутствует обязательное поле или значение имеет неверный формат."""

    code = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class ConflictError(ServiceError):
    """Нарушение уникальности (slug, название цвета/размера)."""

    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class NotFoundError(ServiceError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class InvariantViolation(ServiceError):
    """Операция нарушила бы инвариант модели (цикл категорий, недопустимый переход статуса и т.п.)."""

    code = "invariant_violation"
    status_code = status.HTTP_400_BAD_REQUEST


class InsufficientStock(ServiceError):
    """Запрошенное количество превышает доступный остаток."""

    code = "insufficient_stock"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, item: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for {item}: requested {requested}, available {available}"
        )
        self.item = item
        self.requested = requested
        self.available = available


class PersistenceError(ServiceError):
    """Ошибка базы данных. Детали пишутся в лог, клиенту уходит общее сообщение."""

    code = "persistence_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


@contextmanager
def atomic(db: Session, failure_message: str) -> Iterator[Session]:
    """
    Единица работы: фиксирует транзакцию при успехе и откатывает при любой ошибке.

    Ошибки SQLAlchemy логируются и заменяются на PersistenceError с
    сообщением failure_message. Повторных попыток нет.

    Args:
        db: Сессия базы данных
        failure_message: Сообщение для клиента при сбое базы данных
    """
    try:
        yield db
        db.commit()
    except ServiceError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(failure_message)
        raise PersistenceError(failure_message) from exc
    except Exception:
        db.rollback()
        raise
