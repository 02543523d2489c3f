"""
API endpoints аутентификации администратора.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from boutique_admin.core.auth import auth_service, get_current_session
from boutique_admin.core.config import settings
from boutique_admin.core.ratelimit import limiter
from boutique_admin.db.database import get_db
from boutique_admin.schemas.auth import LoginRequest, LoginResponse, SessionUser

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
def login(request: Request, login_data: LoginRequest, db: Session = Depends(get_db)):
    """
    Вход в административную панель.

    Не более LOGIN_RATE_LIMIT попыток с одного IP, дальше 429.

    Args:
        request: Запрос (IP клиента для лимита попыток)
        login_data: Email и пароль
        db: Сессия базы данных

    Returns:
        JWT токен и данные сессии

    Raises:
        HTTPException: При неверных учетных данных или отключенной учетной записи
    """
    user = auth_service.authenticate(db, login_data.email, login_data.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    access_token = auth_service.create_access_token(data={"sub": str(user.id)})
    return LoginResponse(
        access_token=access_token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=SessionUser(user_id=user.id, name=user.name, email=user.email),
    )


@router.get("/session", response_model=SessionUser)
def current_session(session: SessionUser = Depends(get_current_session)):
    """Текущая сессия администратора."""
    return session
