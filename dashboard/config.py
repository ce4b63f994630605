#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ProtocolWall - Dashboard Configuration
Конфигурация API с настройками для разных сред

Версия: 2.0.0
"""

import secrets
from pathlib import Path
from typing import Annotated, List, Optional, Any

import pytz
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, NoDecode

class DashboardSettings(BaseSettings):
    """Настройки API ProtocolWall"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===== ОСНОВНЫЕ НАСТРОЙКИ =====

    APP_NAME: str = Field(
        default="ProtocolWall API",
        description="Название приложения"
    )

    VERSION: str = Field(
        default="2.0.0",
        description="Версия API"
    )

    ENVIRONMENT: str = Field(
        default="development",
        description="Среда выполнения (development/production/testing/staging)"
    )

    DEBUG: bool = Field(
        default=True,
        description="Режим отладки"
    )

    SECRET_KEY: str = Field(
        default_factory=lambda: secrets.token_urlsafe(32),
        description="Секретный ключ для подписи JWT"
    )

    # ===== СЕТЕВЫЕ НАСТРОЙКИ =====

    DASHBOARD_HOST: str = Field(
        default="0.0.0.0",
        description="Хост для запуска API"
    )

    DASHBOARD_PORT: int = Field(
        default=5000,
        description="Порт для запуска API"
    )

    ALLOWED_ORIGINS: Annotated[List[str], NoDecode] = Field(
        default=["*"],
        description="Разрешенные источники для CORS"
    )

    # ===== ПУТИ И ФАЙЛЫ =====

    DATA_DIR: Path = Field(
        default=Path("data"),
        description="Директория с данными"
    )

    DB_FILE_NAME: str = Field(
        default="db.json",
        description="Имя JSON файла базы данных"
    )

    BACKUP_DIR: Optional[Path] = Field(
        default=None,
        description="Директория резервных копий (по умолчанию DATA_DIR/backups)"
    )

    MAX_BACKUPS: int = Field(
        default=10,
        description="Максимальное количество резервных копий"
    )

    # ===== ЛОГИРОВАНИЕ =====

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Уровень логирования (DEBUG/INFO/WARNING/ERROR/CRITICAL)"
    )

    LOG_FILE: Optional[str] = Field(
        default="logs/protocolwall.log",
        description="Файл логов (пусто - только консоль)"
    )

    # ===== ВРЕМЯ =====

    TIMEZONE: str = Field(
        default="UTC",
        description="Часовой пояс, в котором определяются календарные дни"
    )

    # ===== БЕЗОПАСНОСТЬ =====

    JWT_ALGORITHM: str = Field(
        default="HS256",
        description="Алгоритм подписи токенов"
    )

    TOKEN_EXPIRE_DAYS: int = Field(
        default=7,
        description="Срок действия токена в днях"
    )

    MIN_PASSWORD_LENGTH: int = Field(
        default=6,
        description="Минимальная длина пароля"
    )

    ADMIN_EMAILS: Annotated[List[str], NoDecode] = Field(
        default=[],
        description="Email адреса, которые получают роль администратора при регистрации"
    )

    # ===== СТАТИСТИКА =====

    RANKING_LIMIT: int = Field(
        default=3,
        description="Размер списков лучших протоколов и протоколов без отметок"
    )

    # ===== ВАЛИДАТОРЫ =====

    @field_validator('ENVIRONMENT')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Валидация среды выполнения"""
        allowed_envs = ['development', 'production', 'testing', 'staging']
        if v.lower() not in allowed_envs:
            raise ValueError(f"ENVIRONMENT must be one of {allowed_envs}")
        return v.lower()

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Валидация уровня логирования"""
        allowed_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in allowed_levels:
            raise ValueError(f"LOG_LEVEL must be one of {allowed_levels}")
        return v.upper()

    @field_validator('DASHBOARD_PORT')
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 1 <= v <= 65535:
            raise ValueError("DASHBOARD_PORT must be between 1 and 65535")
        return v

    @field_validator('TIMEZONE')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            pytz.timezone(v)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown TIMEZONE: {v}")
        return v

    @field_validator('ALLOWED_ORIGINS', mode='before')
    @classmethod
    def validate_origins(cls, v: Any) -> Any:
        """Строка из окружения разделяется по запятой"""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',') if origin.strip()]
        return v

    @field_validator('ADMIN_EMAILS', mode='before')
    @classmethod
    def validate_admin_emails(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.split(',')
        return [email.strip().lower() for email in v if email and email.strip()]

    @field_validator('TOKEN_EXPIRE_DAYS', 'MIN_PASSWORD_LENGTH', 'RANKING_LIMIT', 'MAX_BACKUPS')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("value must be a positive integer")
        return v

    @model_validator(mode='after')
    def validate_production_settings(self) -> "DashboardSettings":
        """В продакшене отладка выключается"""
        if self.ENVIRONMENT == 'production':
            self.DEBUG = False
        return self

    # ===== ВЫЧИСЛЯЕМЫЕ ПУТИ =====

    @property
    def database_path(self) -> Path:
        return self.DATA_DIR / self.DB_FILE_NAME

    @property
    def backup_path(self) -> Path:
        return self.BACKUP_DIR or self.DATA_DIR / "backups"

settings = DashboardSettings()
