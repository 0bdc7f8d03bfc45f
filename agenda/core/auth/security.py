# agenda/core/auth/security.py

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from pydantic import ValidationError

from agenda.config import settings

from .schemas import TokenData

log = logging.getLogger(__name__)

# 'tokenUrl' здесь формальность: реальные токены выдаёт внешний провайдер личности
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/v1/auth/login/test")


def create_access_token(user_id: str, expires_delta: timedelta | None = None) -> str:
    """
    Создает JWT токен доступа.

    Args:
        user_id (str): Идентификатор пользователя, попадёт в 'sub'.
        expires_delta (timedelta | None, optional): Время жизни токена.
            Если None, используется значение из настроек.

    Returns:
        str: Сгенерированный JWT токен.
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode: dict[str, Any] = {"sub": str(user_id), "exp": expire}
    encoded_jwt = jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    log.debug("Created JWT token for sub: %s", user_id)
    return encoded_jwt


def verify_token(token: str, credentials_exception: HTTPException) -> TokenData:
    """
    Верифицирует JWT токен и возвращает данные из него.

    Raises:
        HTTPException: Если токен невалиден или истек.
    """
    try:
        # Срок действия (exp) проверяет сам jwt.decode
        payload: dict[str, Any] = jwt.decode(
            token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
        user_id: str | None = payload.get("sub")
        if user_id is None:
            log.warning("Token verification failed: 'sub' (user_id) claim missing.")
            raise credentials_exception
        token_data = TokenData(user_id=user_id)
    except JWTError as e:
        log.warning("Token verification failed: JWTError - %s", e)
        raise credentials_exception from e
    except ValidationError as e:
        log.warning("Token verification failed: ValidationError - %s", e)
        raise credentials_exception from e

    log.debug("Token verified successfully for user_id: %s", token_data.user_id)
    return token_data


async def get_current_user_id(token: str = Depends(oauth2_scheme)) -> str:
    """
    FastAPI зависимость: ID текущего пользователя из bearer-токена.

    Raises:
        HTTPException: status_code 401, если аутентификация не удалась.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    return verify_token(token, credentials_exception).user_id


__all__ = ["oauth2_scheme", "create_access_token", "verify_token", "get_current_user_id"]
