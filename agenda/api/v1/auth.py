# agenda/api/v1/auth.py

from __future__ import annotations

import logging

from fastapi import APIRouter, Body, HTTPException, status

from agenda.config import settings
from agenda.core.auth.schemas import Token, TestLoginRequest
from agenda.core.auth.security import create_access_token

router = APIRouter(prefix="/v1/auth", tags=["Authentication & Testing"])
log = logging.getLogger(__name__)


@router.post(
    "/login/test",
    response_model=Token,
    summary="[Development Only] Get JWT for a user ID",
    description=(
        "**WARNING:** Use only for development/testing. "
        "Returns a JWT token for the given opaque `user_id`."
        "\n\n**Disabled when ENVIRONMENT=prod.**"
    ),
)
async def test_login_for_access_token(login_data: TestLoginRequest = Body(...)) -> Token:
    if settings.ENVIRONMENT == "prod":
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    log.warning("Executing TEST login for user_id: %s. Ensure this is NOT production!", login_data.user_id)
    access_token = create_access_token(login_data.user_id)
    return Token(access_token=access_token, token_type="bearer")
