"""
Схемы аутентификации.
"""

from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    """Схема для входа в систему."""

    email: EmailStr = Field(..., description="Email администратора")
    password: str = Field(..., min_length=8, max_length=32, description="Пароль")


class SessionUser(BaseModel):
    """Текущая сессия администратора."""

    user_id: int
    name: str
    email: str


class LoginResponse(BaseModel):
    """Схема ответа при входе в систему."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: SessionUser
