"""Хэширование паролей и JWT токены доступа"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from dashboard.config import settings

logger = logging.getLogger(__name__)

# bcrypt учитывает только первые 72 байта
_BCRYPT_MAX_BYTES = 72


class InvalidTokenError(Exception):
    """Токен отсутствует, просрочен или подделан"""
    pass


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=10)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        # Некорректный хэш в базе
        logger.warning("Stored password hash has invalid format")
        return False


def create_access_token(user_id: str, expires_days: Optional[int] = None,
                        secret_key: Optional[str] = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "iat": now,
        "exp": now + timedelta(days=expires_days or settings.TOKEN_EXPIRE_DAYS),
    }
    return jwt.encode(payload, secret_key or settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str, secret_key: Optional[str] = None) -> str:
    """Проверить токен и вернуть идентификатор пользователя"""
    try:
        payload = jwt.decode(token, secret_key or settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        raise InvalidTokenError(str(e))

    user_id = payload.get("userId")
    if not user_id:
        raise InvalidTokenError("Token has no user id")
    return str(user_id)
