# agenda/core/auth/schemas.py

from __future__ import annotations

from pydantic import BaseModel, Field


class Token(BaseModel):
    """Схема для возврата JWT токена клиенту."""
    access_token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    """
    Данные внутри JWT токена.
    Идентификатор пользователя выдаёт внешний провайдер личности, мы его не интерпретируем.
    """
    user_id: str = Field(..., min_length=1, description="Opaque user id from the identity provider")


class TestLoginRequest(BaseModel):
    """Схема для временного тестового эндпоинта логина."""
    user_id: str = Field(..., min_length=1, description="User ID to login as (for testing)")
