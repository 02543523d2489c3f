"""
Модуль аутентификации.

Содержит функции для работы с JWT токенами, хеширования паролей
и получения текущей сессии администратора.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from boutique_admin.core.config import settings
from boutique_admin.db.database import get_db
from boutique_admin.db.models.base import utcnow
from boutique_admin.db.models.user import User
from boutique_admin.schemas.auth import SessionUser

logger = logging.getLogger(__name__)

# Настройка хеширования паролей
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = "HS256"

# HTTP Bearer схема (ошибку 401 формируем сами)
security = HTTPBearer(auto_error=False)


class AuthService:
    """Сервис для работы с аутентификацией."""

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Проверка пароля."""
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def get_password_hash(password: str) -> str:
        """Хеширование пароля."""
        return pwd_context.hash(password)

    @staticmethod
    def create_access_token(
        data: dict, expires_delta: Optional[timedelta] = None
    ) -> str:
        """Создание JWT токена."""
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + (
            expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        )
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)

    @staticmethod
    def verify_token(token: str) -> Optional[dict]:
        """Проверка JWT токена."""
        try:
            return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
        except jwt.PyJWTError:
            return None

    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> Optional[User]:
        """
        Проверка учетных данных.

        Returns:
            User: Активный пользователь при успешной проверке, иначе None
        """
        user = db.scalar(select(User).where(func.lower(User.email) == email.strip().lower()))
        if not user or not AuthService.verify_password(password, user.hashed_password):
            logger.info(f"Failed login attempt for {email}")
            return None
        if not user.is_active:
            logger.info(f"Login attempt for disabled account {email}")
            return None

        user.last_login = utcnow()
        db.commit()
        return user


def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> SessionUser:
    """
    Получение текущей сессии администратора из токена.

    Все изменяющие операции админки требуют непустую сессию.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    payload = AuthService.verify_token(credentials.credentials)
    if payload is None or payload.get("sub") is None:
        raise credentials_exception

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise credentials_exception

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise credentials_exception

    return SessionUser(user_id=user.id, name=user.name, email=user.email)


# Экспорт сервиса
auth_service = AuthService()
