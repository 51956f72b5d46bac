"""
Credential check against the single shop account.

The account comes from settings (AUTH_USER_ID / AUTH_PASSWORD); the password
is hashed once with bcrypt and only the hash is compared afterwards.
"""
from fastapi import HTTPException, status
from functools import lru_cache
import hmac
import logging

from app.core.config import settings
from app.modules.auth.schemas import LoginRequest, LoginResponse
from app.modules.auth.utils import hash_password, verify_password, create_access_token

logger = logging.getLogger(__name__)


@lru_cache(maxsize=4)
def account_password_hash(password: str) -> str:
    return hash_password(password)


def authenticate(user_id: str, password: str) -> bool:
    """True when the credentials match the configured account."""
    if not hmac.compare_digest(user_id.encode(), settings.AUTH_USER_ID.encode()):
        return False
    return verify_password(password, account_password_hash(settings.AUTH_PASSWORD))


def login_user(data: LoginRequest) -> LoginResponse:
    if not authenticate(data.userId, data.password):
        logger.warning(f"Failed login attempt for user '{data.userId}'")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

    logger.info(f"User '{data.userId}' signed in")
    return LoginResponse(
        access_token=create_access_token({"sub": data.userId}),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
