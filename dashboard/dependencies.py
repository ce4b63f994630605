#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ProtocolWall - Dashboard Dependencies
Провайдеры зависимостей для FastAPI приложения

Версия: 2.0.0
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from core.database import ProtocolDatabase
from core.models import UserRecord, UserRole
from core.progress import ProgressAggregator
from dashboard.config import settings
from dashboard.core.security import decode_access_token, InvalidTokenError
from utils.datetime_utils import now_in_timezone

logger = logging.getLogger(__name__)

# ===== ГЛОБАЛЬНЫЕ ПЕРЕМЕННЫЕ =====

# База данных (синглтон)
_database: Optional[ProtocolDatabase] = None

# Агрегатор прогресса (синглтон)
_aggregator: Optional[ProgressAggregator] = None

bearer_scheme = HTTPBearer(auto_error=False)

# ===== ИНИЦИАЛИЗАЦИЯ КОМПОНЕНТОВ =====

def init_database() -> ProtocolDatabase:
    """Инициализация базы данных"""
    global _database

    if _database is None:
        logger.info("🔄 Инициализация ProtocolDatabase...")
        _database = ProtocolDatabase(
            settings.database_path,
            backup_dir=settings.backup_path,
            max_backups=settings.MAX_BACKUPS,
            timezone=settings.TIMEZONE,
        )
        logger.info("✅ ProtocolDatabase инициализирована")

    return _database

def shutdown_database() -> None:
    global _database

    if _database is not None:
        _database.shutdown()
        _database = None

# ===== ПРОВАЙДЕРЫ ЗАВИСИМОСТЕЙ =====

def get_database() -> ProtocolDatabase:
    """Получить экземпляр ProtocolDatabase"""
    if _database is None:
        return init_database()
    return _database

def get_aggregator() -> ProgressAggregator:
    """Получить экземпляр ProgressAggregator"""
    global _aggregator

    if _aggregator is None:
        _aggregator = ProgressAggregator(timezone=settings.TIMEZONE, ranking_limit=settings.RANKING_LIMIT)
    return _aggregator

def get_now() -> datetime:
    """Момент времени запроса в настроенном часовом поясе"""
    return now_in_timezone(settings.TIMEZONE)

# ===== АВТОРИЗАЦИЯ =====

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    database: ProtocolDatabase = Depends(get_database)
) -> UserRecord:
    """Пользователь из Bearer токена"""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token, authorization denied"
        )

    try:
        user_id = decode_access_token(credentials.credentials)
    except InvalidTokenError as e:
        logger.debug(f"Rejected token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token is not valid"
        )

    user = database.get_user(user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token is not valid"
        )

    return user

def get_current_admin(user: UserRecord = Depends(get_current_user)) -> UserRecord:
    """Текущий пользователь с ролью администратора"""
    if user.role != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin only."
        )
    return user
