from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional, Dict, Any

from core.models import TrackedProtocol, UserRecord
from core.progress import ProgressSummary


class ApiModel(BaseModel):
    """Базовая модель API: camelCase в JSON, snake_case в Python"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Служебные модели
class HealthCheck(ApiModel):
    status: str
    service: str
    version: str
    timestamp: float
    database: Dict[str, Any] = {}


class MessageResponse(ApiModel):
    message: str


# Протоколы стены
class CompletionEntrySchema(ApiModel):
    date: Any = None
    notes: str = ""
    recorded_at: Optional[str] = None


class TrackedProtocolSchema(ApiModel):
    protocol_id: str
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    difficulty: Optional[str] = None
    time_required: Optional[str] = None
    frequency: Optional[str] = None
    author: Optional[str] = None
    benefits: List[str] = []
    instructions: List[str] = []
    added_date: str
    completion_history: List[CompletionEntrySchema] = []

    @classmethod
    def from_protocol(cls, protocol: TrackedProtocol) -> "TrackedProtocolSchema":
        return cls.model_validate(protocol.to_dict())


class AddProtocolRequest(ApiModel):
    protocol_id: str = Field(..., min_length=1, max_length=100)
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    difficulty: Optional[str] = None
    time_required: Optional[str] = None
    frequency: Optional[str] = None
    benefits: List[str] = []
    instructions: List[str] = []


class ProtocolResponse(ApiModel):
    message: str
    protocol: TrackedProtocolSchema


class CompletionRequest(ApiModel):
    date: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)


class ToggleCompletionResponse(ProtocolResponse):
    completed: bool


class ProtocolListResponse(ApiModel):
    protocols: List[TrackedProtocolSchema]


# Пользователи и авторизация
class RegisterRequest(ApiModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(ApiModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UserPreferencesSchema(ApiModel):
    notifications: bool = True
    theme: str = "light"


class UserSchema(ApiModel):
    id: str
    name: str
    email: str
    role: str = "user"
    protocols: List[TrackedProtocolSchema] = []
    preferences: UserPreferencesSchema = UserPreferencesSchema()
    created_at: Optional[str] = None
    last_login: Optional[str] = None

    @classmethod
    def from_user(cls, user: UserRecord) -> "UserSchema":
        return cls(
            id=user.user_id,
            name=user.name,
            email=user.email,
            role=user.role,
            protocols=[TrackedProtocolSchema.from_protocol(p) for p in user.protocols],
            preferences=UserPreferencesSchema(**user.preferences.to_dict()),
            created_at=user.created_at,
            last_login=user.last_login,
        )


class AuthResponse(ApiModel):
    message: str
    token: str
    user: UserSchema


class UserResponse(ApiModel):
    user: UserSchema


class PreferencesUpdateRequest(ApiModel):
    notifications: Optional[bool] = None
    theme: Optional[str] = None


class PreferencesResponse(ApiModel):
    message: str
    preferences: UserPreferencesSchema


# Администрирование
class UserListResponse(ApiModel):
    users: List[UserSchema]
    total: int


class RoleUpdateRequest(ApiModel):
    role: Optional[str] = None


class RoleUpdateResponse(ApiModel):
    message: str
    user_id: str
    new_role: str


# Статистика
class RankedProtocolSchema(ApiModel):
    title: str
    completion_count: int


class ProgressSummarySchema(ApiModel):
    timeframe: str
    window_start: str
    window_end: str
    total_protocols: int
    daily_compliance: int = Field(..., ge=0, le=100)
    overall_progress: int = Field(..., ge=0, le=100)
    current_streak: int = Field(..., ge=0)
    longest_streak: int = Field(..., ge=0)
    days_applied: int
    days_all_satisfied: int
    top_performing: List[RankedProtocolSchema] = []
    needs_attention: List[RankedProtocolSchema] = []

    @classmethod
    def from_summary(cls, summary: ProgressSummary) -> "ProgressSummarySchema":
        return cls.model_validate(summary.to_dict())


class ComplianceDaySchema(ApiModel):
    date: str
    completed: bool


class ProtocolHistoryResponse(ApiModel):
    protocol_id: str
    title: str
    history: List[ComplianceDaySchema]
    success_rate: int


# Библиотека протоколов
class CategorySchema(ApiModel):
    id: str
    name: str
    icon: str
    color: str
    count: int = 0


class AuthorSchema(ApiModel):
    name: str
    icon: str
    count: int


class LibraryProtocolSchema(ApiModel):
    id: str
    title: str
    category: str
    author: str
    author_icon: str
    description: str
    benefits: List[str] = []
    instructions: List[str] = []
    difficulty: str
    time_required: str
    frequency: str


class LibraryResponse(ApiModel):
    protocols: List[LibraryProtocolSchema]
    total: int
