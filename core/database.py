#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ProtocolWall - Completion Store
Хранилище пользователей и их стен в одном JSON файле

Каждое изменение выполняется как чтение-изменение-запись всего документа
под одной блокировкой и сохраняется атомарно до возврата из метода.

Версия: 2.0.0
"""

import copy
import json
import gzip
import shutil
import threading
import time
from datetime import datetime, date
from pathlib import Path
from typing import Dict, List, Optional, Any, Callable, Tuple
from dataclasses import dataclass
import logging

from core.models import (
    UserRecord, UserRole, UserPreferences, TrackedProtocol, ValidationError, validate_enum_value
)
from utils.datetime_utils import get_timezone, to_day, DEFAULT_TZ_NAME

logger = logging.getLogger(__name__)

# ===== EXCEPTIONS =====

class DatabaseError(Exception):
    """Базовое исключение для ошибок базы данных"""
    pass

class UserNotFoundError(DatabaseError):
    pass

class UserAlreadyExistsError(DatabaseError):
    pass

class ProtocolNotFoundError(DatabaseError):
    pass

class ProtocolAlreadyExistsError(DatabaseError):
    pass

# ===== HELPER CLASSES =====

@dataclass
class DatabaseStats:
    """Статистика базы данных"""
    total_users: int = 0
    total_protocols: int = 0
    total_completions: int = 0
    database_size_mb: float = 0.0
    last_backup: Optional[str] = None
    last_save: Optional[str] = None
    save_count: int = 0
    load_count: int = 0
    error_count: int = 0
    uptime_seconds: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_users': self.total_users,
            'total_protocols': self.total_protocols,
            'total_completions': self.total_completions,
            'database_size_mb': round(self.database_size_mb, 2),
            'last_backup': self.last_backup,
            'last_save': self.last_save,
            'save_count': self.save_count,
            'load_count': self.load_count,
            'error_count': self.error_count,
            'uptime_hours': round(self.uptime_seconds / 3600, 2)
        }

class BackupManager:
    """Менеджер резервных копий"""

    def __init__(self, backup_dir: Path, max_backups: int = 10):
        self.backup_dir = Path(backup_dir)
        self.max_backups = max_backups
        self.backup_dir.mkdir(parents=True, exist_ok=True)

    def create_backup(self, source_file: Path) -> Optional[Path]:
        """Создать сжатую резервную копию"""
        if not source_file.exists():
            logger.warning(f"Source file {source_file} does not exist for backup")
            return None

        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S_%f')
        backup_path = self.backup_dir / f"backup_{timestamp}.json.gz"

        try:
            with open(source_file, 'rb') as f_in:
                with gzip.open(backup_path, 'wb') as f_out:
                    shutil.copyfileobj(f_in, f_out)
        except OSError as e:
            logger.error(f"Failed to create backup: {e}")
            return None

        logger.info(f"Backup created: {backup_path}")
        self._cleanup_old_backups()
        return backup_path

    def restore_backup(self, backup_path: Path, target_file: Path) -> bool:
        """Восстановить из резервной копии"""
        if not backup_path.exists():
            logger.error(f"Backup file {backup_path} does not exist")
            return False

        try:
            with gzip.open(backup_path, 'rb') as f_in:
                data = f_in.read()
            document = json.loads(data.decode('utf-8'))
        except (OSError, ValueError) as e:
            logger.warning(f"Backup {backup_path.name} is unreadable: {e}")
            return False

        if not isinstance(document, dict):
            logger.warning(f"Backup {backup_path.name} does not contain a database document")
            return False

        target_file.write_bytes(data)
        logger.info(f"Backup restored from {backup_path} to {target_file}")
        return True

    def list_backups(self) -> List[Path]:
        """Резервные копии, новые первыми"""
        return sorted(self.backup_dir.glob("backup_*.json.gz"), key=lambda p: p.name, reverse=True)

    def _cleanup_old_backups(self) -> None:
        for backup in self.list_backups()[self.max_backups:]:
            try:
                backup.unlink()
                logger.info(f"Removed old backup: {backup}")
            except OSError as e:
                logger.error(f"Failed to remove old backup {backup}: {e}")

class DatabaseMigration:
    """Миграции формата JSON документа"""

    VERSION_KEY = "__version__"
    CURRENT_VERSION = "2.0.0"

    LEGACY_USER_KEYS = {
        "id": "user_id",
        "password": "password_hash",
        "createdAt": "created_at",
        "lastLogin": "last_login",
    }

    LEGACY_PROTOCOL_KEYS = {
        "protocolId": "protocol_id",
        "timeRequired": "time_required",
        "addedDate": "added_date",
        "progressHistory": "completion_history",
        "completionHistory": "completion_history",
    }

    @classmethod
    def get_version(cls, data: Dict[str, Any]) -> str:
        return data.get(cls.VERSION_KEY, "1.0.0")

    @classmethod
    def needs_migration(cls, data: Dict[str, Any]) -> bool:
        return cls.get_version(data) != cls.CURRENT_VERSION

    @classmethod
    def migrate(cls, data: Dict[str, Any], tz=None) -> Dict[str, Any]:
        """Выполнить миграцию данных"""
        current_version = cls.get_version(data)
        logger.info(f"Migrating database from version {current_version} to {cls.CURRENT_VERSION}")

        if current_version == "1.0.0":
            data = cls._migrate_from_1_0_0(data, tz)
        else:
            raise DatabaseError(f"Unknown database version: {current_version}")

        data[cls.VERSION_KEY] = cls.CURRENT_VERSION
        logger.info("Database migration completed successfully")
        return data

    @classmethod
    def _rename(cls, item: Dict[str, Any], mapping: Dict[str, str]) -> Dict[str, Any]:
        return {mapping.get(key, key): value for key, value in item.items()}

    @classmethod
    def _migrate_protocol(cls, protocol: Dict[str, Any], tz) -> Dict[str, Any]:
        protocol = cls._rename(protocol, cls.LEGACY_PROTOCOL_KEYS)

        # Скалярный прогресс 0-100 больше не используется
        protocol.pop("progress", None)

        history = []
        seen_days = set()
        for entry in protocol.get("completion_history") or []:
            if not isinstance(entry, dict):
                continue
            day = to_day(entry.get("date"), tz)
            if day is not None:
                if day in seen_days:
                    continue
                seen_days.add(day)
            history.append(entry)

        protocol["completion_history"] = history
        return protocol

    @classmethod
    def _migrate_from_1_0_0(cls, data: Dict[str, Any], tz) -> Dict[str, Any]:
        """Документ исходного сервера: {"users": [...]} с camelCase ключами"""
        users = data.get("users") or []
        if isinstance(users, dict):
            users = list(users.values())
        if not isinstance(users, list):
            raise DatabaseError("Legacy users section is not a list")

        migrated = {}
        for user_data in users:
            if not isinstance(user_data, dict):
                logger.warning("Skipping malformed legacy user")
                continue
            user_data = cls._rename(user_data, cls.LEGACY_USER_KEYS)
            if "user_id" not in user_data:
                logger.warning("Skipping legacy user without id")
                continue

            protocols = user_data.get("protocols")
            user_data["user_id"] = str(user_data["user_id"])
            user_data["protocols"] = [
                cls._migrate_protocol(protocol, tz)
                for protocol in (protocols if isinstance(protocols, list) else [])
                if isinstance(protocol, dict)
            ]
            migrated[user_data["user_id"]] = user_data

        return {"users": migrated}

# ===== DATABASE =====

class ProtocolDatabase:
    """Хранилище стен пользователей в JSON файле"""

    def __init__(self, data_file: Path, backup_dir: Optional[Path] = None,
                 max_backups: int = 10, timezone: str = DEFAULT_TZ_NAME):
        self.data_file = Path(data_file)
        self.backup_manager = BackupManager(backup_dir or self.data_file.parent / "backups", max_backups)
        self.tz = get_timezone(timezone)

        self.file_lock = threading.RLock()
        self.stats = DatabaseStats()
        self.start_time = time.time()

        self._users: Dict[str, UserRecord] = {}
        self.is_initialized = False

        self._initialize()

    def _initialize(self) -> None:
        logger.info("Initializing protocol database...")
        self.data_file.parent.mkdir(parents=True, exist_ok=True)
        self._load_sync()
        self.is_initialized = True
        logger.info(f"Protocol database initialized with {len(self._users)} users")

    # ----- load / save -----

    def _load_sync(self) -> None:
        """Синхронная загрузка документа"""
        with self.file_lock:
            if not self.data_file.exists():
                logger.info("Database file does not exist, starting with empty database")
                self._users = {}
                self.stats.load_count += 1
                return

            try:
                data, migrated = self._read_document()
            except DatabaseError as e:
                logger.error(f"Database file is corrupted: {e}")
                self._handle_corruption()
                return

            self._apply_document(data, migrated)

    def _read_document(self) -> Tuple[Dict[str, Any], bool]:
        """Прочитать документ и мигрировать его при необходимости"""
        try:
            with open(self.data_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except ValueError as e:
            # UnicodeDecodeError и JSONDecodeError наследуют ValueError
            raise DatabaseError(f"Unreadable database file: {e}")

        if not isinstance(data, dict):
            raise DatabaseError("Database root is not an object")

        if DatabaseMigration.needs_migration(data):
            logger.info("Database migration required")
            migrated = DatabaseMigration.migrate(data, self.tz)
            # Файл на диске ещё в старом формате
            self.backup_manager.create_backup(self.data_file)
            return migrated, True

        if not isinstance(data.get("users", {}), dict):
            raise DatabaseError("Database users section is not an object")
        return data, False

    def _apply_document(self, data: Dict[str, Any], migrated: bool) -> None:
        self._users = self._parse_users(data)
        if migrated:
            self._save_sync(self._users)

        self.stats.load_count += 1
        self._update_stats()
        logger.info(f"Loaded {len(self._users)} users from database")

    def _parse_users(self, data: Dict[str, Any]) -> Dict[str, UserRecord]:
        users = {}
        for user_id, user_data in (data.get("users") or {}).items():
            if not isinstance(user_data, dict):
                logger.warning(f"Skipping malformed user {user_id}")
                self.stats.error_count += 1
                continue
            try:
                user = UserRecord.from_dict(user_data)
            except (ValidationError, KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Failed to load user {user_id}: {e}")
                self.stats.error_count += 1
                continue
            users[user.user_id] = user
        return users

    def _handle_corruption(self) -> None:
        """Обработка повреждения базы данных"""
        logger.warning("Attempting to recover from database corruption...")

        corrupt_copy = self.data_file.with_suffix('.corrupt')
        shutil.copy2(self.data_file, corrupt_copy)
        logger.warning(f"Corrupted file preserved as {corrupt_copy}")

        for backup in self.backup_manager.list_backups():
            if not self.backup_manager.restore_backup(backup, self.data_file):
                continue
            try:
                data, migrated = self._read_document()
            except DatabaseError as e:
                logger.warning(f"Backup {backup.name} is not usable: {e}")
                continue
            self._apply_document(data, migrated)
            logger.info(f"Successfully restored from backup: {backup.name}")
            return

        logger.warning("Could not restore from any backup, starting with empty database")
        self._users = {}
        self.stats.error_count += 1
        self._save_sync(self._users)

    def _save_sync(self, users: Dict[str, UserRecord]) -> None:
        """Атомарное сохранение через временный файл"""
        data = {
            DatabaseMigration.VERSION_KEY: DatabaseMigration.CURRENT_VERSION,
            "users": {user_id: user.to_dict() for user_id, user in users.items()},
        }

        with self.file_lock:
            temp_file = self.data_file.with_suffix('.tmp')
            try:
                with open(temp_file, 'w', encoding='utf-8') as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)
                temp_file.replace(self.data_file)
            except (OSError, TypeError, ValueError) as e:
                if temp_file.exists():
                    temp_file.unlink()
                self.stats.error_count += 1
                logger.error(f"Failed to save database: {e}")
                raise DatabaseError(f"Failed to save database: {e}")

            self.stats.save_count += 1
            self.stats.last_save = datetime.now().isoformat()

    def _update_stats(self) -> None:
        self.stats.total_users = len(self._users)
        self.stats.total_protocols = sum(len(u.protocols) for u in self._users.values())
        self.stats.total_completions = sum(
            len(p.completion_history) for u in self._users.values() for p in u.protocols
        )
        self.stats.uptime_seconds = int(time.time() - self.start_time)
        if self.data_file.exists():
            self.stats.database_size_mb = self.data_file.stat().st_size / (1024 * 1024)

    def _mutate_user(self, user_id: str, mutation: Callable[[UserRecord], Any]) -> Any:
        """
        Изменить копию пользователя и сохранить документ.

        Состояние в памяти обновляется только после успешной записи на диск.
        """
        with self.file_lock:
            current = self._users.get(user_id)
            if current is None:
                raise UserNotFoundError(f"User {user_id} not found")

            user = copy.deepcopy(current)
            result = mutation(user)

            users = dict(self._users)
            users[user_id] = user
            self._save_sync(users)
            self._users = users
            self._update_stats()
            return result

    # ===== USERS =====

    def create_user(self, name: str, email: str, password_hash: str,
                    role: str = UserRole.USER.value) -> UserRecord:
        """Зарегистрировать пользователя"""
        with self.file_lock:
            if self.get_user_by_email(email) is not None:
                raise UserAlreadyExistsError("User already exists with this email")

            user = UserRecord.create(name=name, email=email, password_hash=password_hash, role=role)
            users = dict(self._users)
            users[user.user_id] = user
            self._save_sync(users)
            self._users = users
            self._update_stats()

        logger.info(f"Created new user: {user.email} (ID: {user.user_id})")
        return copy.deepcopy(user)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self.file_lock:
            user = self._users.get(str(user_id))
            return copy.deepcopy(user) if user else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        email = (email or "").strip().lower()
        with self.file_lock:
            for user in self._users.values():
                if user.email == email:
                    return copy.deepcopy(user)
        return None

    def record_login(self, user_id: str) -> UserRecord:
        def mutation(user: UserRecord) -> UserRecord:
            user.update_login()
            return copy.deepcopy(user)

        return self._mutate_user(user_id, mutation)

    def get_users_count(self) -> int:
        return len(self._users)

    def list_users(self) -> List[UserRecord]:
        with self.file_lock:
            return [copy.deepcopy(user) for user in self._users.values()]

    def delete_user(self, user_id: str) -> None:
        """Удалить учётную запись вместе со стеной"""
        with self.file_lock:
            if user_id not in self._users:
                raise UserNotFoundError(f"User {user_id} not found")

            users = dict(self._users)
            del users[user_id]
            self._save_sync(users)
            self._users = users
            self._update_stats()

        logger.info(f"Deleted user {user_id}")

    def set_user_role(self, user_id: str, role: str) -> UserRecord:
        def mutation(user: UserRecord) -> UserRecord:
            user.role = validate_enum_value(role, UserRole, "role")
            return copy.deepcopy(user)

        result = self._mutate_user(user_id, mutation)
        logger.info(f"User {user_id} role set to {role}")
        return result

    def update_preferences(self, user_id: str, notifications: Optional[bool] = None,
                           theme: Optional[str] = None) -> UserPreferences:
        """Обновить только переданные настройки"""
        def mutation(user: UserRecord) -> UserPreferences:
            preferences = user.preferences.to_dict()
            if notifications is not None:
                preferences["notifications"] = notifications
            if theme is not None:
                preferences["theme"] = theme
            user.preferences = UserPreferences(**preferences)
            return copy.deepcopy(user.preferences)

        return self._mutate_user(user_id, mutation)

    # ===== PROTOCOLS =====

    def get_protocols(self, user_id: str) -> List[TrackedProtocol]:
        """Снимок стены пользователя"""
        with self.file_lock:
            user = self._users.get(user_id)
            if user is None:
                raise UserNotFoundError(f"User {user_id} not found")
            return [p.snapshot() for p in user.protocols]

    def get_protocol(self, user_id: str, protocol_id: str) -> TrackedProtocol:
        for protocol in self.get_protocols(user_id):
            if protocol.protocol_id == protocol_id:
                return protocol
        raise ProtocolNotFoundError(f"Protocol {protocol_id} not found")

    def add_protocol(self, user_id: str, protocol: TrackedProtocol) -> TrackedProtocol:
        def mutation(user: UserRecord) -> TrackedProtocol:
            if user.find_protocol(protocol.protocol_id) is not None:
                raise ProtocolAlreadyExistsError("Protocol already added to your wall")
            added = protocol.snapshot()
            added.completion_history = []
            user.protocols.append(added)
            return added.snapshot()

        result = self._mutate_user(user_id, mutation)
        logger.info(f"User {user_id} added protocol {protocol.protocol_id}")
        return result

    def remove_protocol(self, user_id: str, protocol_id: str) -> None:
        def mutation(user: UserRecord) -> None:
            protocol = user.find_protocol(protocol_id)
            if protocol is None:
                raise ProtocolNotFoundError(f"Protocol {protocol_id} not found")
            user.protocols.remove(protocol)

        self._mutate_user(user_id, mutation)
        logger.info(f"User {user_id} removed protocol {protocol_id}")

    def toggle_completion(self, user_id: str, protocol_id: str, day: date,
                          notes: Optional[str] = None) -> Tuple[TrackedProtocol, bool]:
        """Переключить отметку за день, возвращает протокол и новое состояние"""
        def mutation(user: UserRecord) -> Tuple[TrackedProtocol, bool]:
            protocol = user.find_protocol(protocol_id)
            if protocol is None:
                raise ProtocolNotFoundError(f"Protocol {protocol_id} not found")
            completed = protocol.toggle_completion(day, notes, self.tz)
            return protocol.snapshot(), completed

        return self._mutate_user(user_id, mutation)

    def set_completion_notes(self, user_id: str, protocol_id: str, day: date,
                             notes: Optional[str]) -> TrackedProtocol:
        def mutation(user: UserRecord) -> TrackedProtocol:
            protocol = user.find_protocol(protocol_id)
            if protocol is None:
                raise ProtocolNotFoundError(f"Protocol {protocol_id} not found")
            protocol.set_completion_notes(day, notes, self.tz)
            return protocol.snapshot()

        return self._mutate_user(user_id, mutation)

    def clear_user_data(self, user_id: str) -> UserRecord:
        """Удалить все протоколы пользователя, сохранив учётную запись"""
        def mutation(user: UserRecord) -> UserRecord:
            user.protocols = []
            return copy.deepcopy(user)

        result = self._mutate_user(user_id, mutation)
        logger.info(f"Cleared tracked data for user {user_id}")
        return result

    # ===== MAINTENANCE =====

    def create_backup(self) -> Optional[Path]:
        with self.file_lock:
            backup = self.backup_manager.create_backup(self.data_file)
        if backup:
            self.stats.last_backup = datetime.now().isoformat()
        return backup

    def get_stats(self) -> Dict[str, Any]:
        with self.file_lock:
            self._update_stats()
            return self.stats.to_dict()

    def get_health_status(self) -> Dict[str, Any]:
        return {
            "status": "healthy" if self.is_initialized else "initializing",
            "data_file": str(self.data_file),
            "data_file_exists": self.data_file.exists(),
            "stats": self.get_stats(),
        }

    def shutdown(self) -> None:
        """Финальная резервная копия при остановке"""
        logger.info("Shutting down protocol database...")
        self.create_backup()
        logger.info("Protocol database shutdown completed")

# ===== EXPORT =====

__all__ = [
    'DatabaseError',
    'UserNotFoundError',
    'UserAlreadyExistsError',
    'ProtocolNotFoundError',
    'ProtocolAlreadyExistsError',
    'DatabaseStats',
    'BackupManager',
    'DatabaseMigration',
    'ProtocolDatabase',
]
