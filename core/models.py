#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ProtocolWall - Core Data Models
Модели отслеживаемых протоколов, отметок выполнения и пользователей

Версия: 2.0.0
"""

import copy
import uuid
from datetime import datetime, date, timezone
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field, asdict
from enum import Enum
import logging

from utils.datetime_utils import to_day, day_key

logger = logging.getLogger(__name__)

# ===== ENUMS =====

class UserRole(Enum):
    """Роли пользователей"""
    USER = "user"
    ADMIN = "admin"

class UserTheme(Enum):
    """Темы оформления"""
    LIGHT = "light"
    DARK = "dark"

# ===== VALIDATION HELPERS =====

class ValidationError(Exception):
    """Ошибка валидации данных"""
    pass

def validate_text(text: str, min_length: int = 1, max_length: int = 1000, field_name: str = "text") -> str:
    """Валидация текстовых полей"""
    if not isinstance(text, str):
        raise ValidationError(f"{field_name} must be a string")

    text = text.strip()
    if len(text) < min_length:
        raise ValidationError(f"{field_name} must contain at least {min_length} characters")

    if len(text) > max_length:
        raise ValidationError(f"{field_name} must contain at most {max_length} characters")

    return text

def validate_enum_value(value: str, enum_class: type, field_name: str = "value") -> str:
    """Валидация значений enum"""
    try:
        enum_class(value)
        return value
    except ValueError:
        valid_values = [e.value for e in enum_class]
        raise ValidationError(f"{field_name} must be one of: {valid_values}")

def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

# ===== CORE MODELS =====

@dataclass
class CompletionEntry:
    """Отметка о выполнении протокола за один календарный день"""
    date: Any  # YYYY-MM-DD или ISO timestamp; старые записи могут быть некорректны
    notes: str = ""
    recorded_at: Optional[str] = None

    def day(self, tz=None) -> Optional[date]:
        """Календарный день записи или None, если дату не удалось разобрать"""
        return to_day(self.date, tz)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompletionEntry":
        return cls(
            date=data.get("date"),
            notes=data.get("notes") or "",
            recorded_at=data.get("recorded_at"),
        )

    @classmethod
    def for_day(cls, day: date, notes: Optional[str] = None) -> "CompletionEntry":
        return cls(
            date=day_key(day),
            notes=validate_text(notes or "", min_length=0, max_length=500, field_name="notes"),
            recorded_at=utc_now_iso(),
        )

@dataclass
class TrackedProtocol:
    """Протокол на стене пользователя вместе с историей выполнения"""
    protocol_id: str
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    difficulty: Optional[str] = None
    time_required: Optional[str] = None
    frequency: Optional[str] = None
    author: Optional[str] = None
    benefits: List[str] = field(default_factory=list)
    instructions: List[str] = field(default_factory=list)
    added_date: str = field(default_factory=utc_now_iso)
    completion_history: List[CompletionEntry] = field(default_factory=list)

    def __post_init__(self):
        """Валидация после создания объекта"""
        self.protocol_id = validate_text(str(self.protocol_id), min_length=1, max_length=100, field_name="protocol_id")
        self.title = validate_text(self.title, min_length=1, max_length=200, field_name="title")

    # ===== COMPLETIONS =====

    def find_entry(self, day: date, tz=None) -> Optional[CompletionEntry]:
        """Запись за указанный день"""
        for entry in self.completion_history:
            if entry.day(tz) == day:
                return entry
        return None

    def is_completed_on(self, day: date, tz=None) -> bool:
        return self.find_entry(day, tz) is not None

    def toggle_completion(self, day: date, notes: Optional[str] = None, tz=None) -> bool:
        """
        Переключить отметку за день.

        Если запись за день есть, она удаляется, иначе добавляется новая.
        Возвращает True, если после вызова день отмечен.
        """
        entry = self.find_entry(day, tz)
        if entry is not None:
            self.completion_history.remove(entry)
            return False

        self.completion_history.append(CompletionEntry.for_day(day, notes))
        return True

    def set_completion_notes(self, day: date, notes: Optional[str], tz=None) -> CompletionEntry:
        """Обновить заметку за день, создав запись при её отсутствии"""
        entry = self.find_entry(day, tz)
        if entry is None:
            entry = CompletionEntry.for_day(day, notes)
            self.completion_history.append(entry)
        elif notes:
            entry.notes = validate_text(notes, min_length=0, max_length=500, field_name="notes")
        return entry

    # ===== SERIALIZATION =====

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["completion_history"] = [entry.to_dict() for entry in self.completion_history]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrackedProtocol":
        data = dict(data)
        history = [
            CompletionEntry.from_dict(entry)
            for entry in data.pop("completion_history", None) or []
            if isinstance(entry, dict)
        ]
        known = {f for f in cls.__dataclass_fields__}
        kwargs = {k: v for k, v in data.items() if k in known}
        return cls(completion_history=history, **kwargs)

    @classmethod
    def from_catalog(cls, item: Dict[str, Any]) -> "TrackedProtocol":
        """Создание протокола стены из элемента библиотеки"""
        return cls(
            protocol_id=item["id"],
            title=item["title"],
            description=item.get("description"),
            category=item.get("category"),
            difficulty=item.get("difficulty"),
            time_required=item.get("time_required"),
            frequency=item.get("frequency"),
            author=item.get("author"),
            benefits=list(item.get("benefits", [])),
            instructions=list(item.get("instructions", [])),
        )

    def snapshot(self) -> "TrackedProtocol":
        return copy.deepcopy(self)

@dataclass
class UserPreferences:
    """Настройки пользователя"""
    notifications: bool = True
    theme: str = UserTheme.LIGHT.value

    def __post_init__(self):
        self.theme = validate_enum_value(self.theme, UserTheme, "theme")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserPreferences":
        return cls(
            notifications=bool(data.get("notifications", True)),
            theme=data.get("theme", UserTheme.LIGHT.value),
        )

@dataclass
class UserRecord:
    """Учётная запись пользователя с его стеной"""
    user_id: str
    name: str
    email: str
    password_hash: str
    role: str = UserRole.USER.value
    protocols: List[TrackedProtocol] = field(default_factory=list)
    preferences: UserPreferences = field(default_factory=UserPreferences)
    created_at: str = field(default_factory=utc_now_iso)
    last_login: Optional[str] = None

    def __post_init__(self):
        self.name = validate_text(self.name, min_length=1, max_length=100, field_name="name")
        self.email = validate_text(self.email, min_length=3, max_length=254, field_name="email").lower()
        self.role = validate_enum_value(self.role, UserRole, "role")

    def find_protocol(self, protocol_id: str) -> Optional[TrackedProtocol]:
        for protocol in self.protocols:
            if protocol.protocol_id == protocol_id:
                return protocol
        return None

    def update_login(self) -> None:
        self.last_login = utc_now_iso()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "password_hash": self.password_hash,
            "role": self.role,
            "protocols": [p.to_dict() for p in self.protocols],
            "preferences": self.preferences.to_dict(),
            "created_at": self.created_at,
            "last_login": self.last_login,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserRecord":
        protocols = []
        for item in data.get("protocols", []):
            try:
                protocols.append(TrackedProtocol.from_dict(item))
            except (ValidationError, TypeError, KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed protocol for user {data.get('user_id')}: {e}")

        return cls(
            user_id=str(data["user_id"]),
            name=data["name"],
            email=data["email"],
            password_hash=data["password_hash"],
            role=data.get("role", UserRole.USER.value),
            protocols=protocols,
            preferences=UserPreferences.from_dict(data.get("preferences") or {}),
            created_at=data.get("created_at") or utc_now_iso(),
            last_login=data.get("last_login"),
        )

    @classmethod
    def create(cls, name: str, email: str, password_hash: str,
               role: str = UserRole.USER.value) -> "UserRecord":
        """Создание нового пользователя"""
        user = cls(
            user_id=uuid.uuid4().hex,
            name=name,
            email=email,
            password_hash=password_hash,
            role=role,
        )
        user.update_login()
        return user
