from fastapi import APIRouter, HTTPException, Depends
from datetime import date, datetime
from typing import Optional
import logging

from core.catalog import get_protocol_by_id
from core.database import (
    ProtocolDatabase, DatabaseError, ProtocolNotFoundError, ProtocolAlreadyExistsError
)
from core.models import TrackedProtocol, UserRecord, ValidationError
from core.progress import ProgressAggregator
from shared.models import (
    AddProtocolRequest, CompletionRequest, ProtocolResponse, ToggleCompletionResponse,
    ProtocolListResponse, TrackedProtocolSchema, ProtocolHistoryResponse,
    MessageResponse, UserResponse, UserSchema, PreferencesUpdateRequest, PreferencesResponse,
    UserPreferencesSchema
)
from utils.datetime_utils import to_day
from ..dependencies import get_database, get_aggregator, get_current_user, get_now

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["wall"])

def _resolve_day(value: Optional[str], now: datetime, aggregator: ProgressAggregator) -> date:
    """День из запроса, по умолчанию сегодня"""
    day = to_day(value if value else now, aggregator.tz)
    if day is None:
        raise HTTPException(status_code=400, detail=f"Invalid date: {value}")
    return day

def _build_protocol(payload: AddProtocolRequest) -> TrackedProtocol:
    item = get_protocol_by_id(payload.protocol_id)
    if item is not None:
        return TrackedProtocol.from_catalog(item)

    # Пользовательский протокол вне библиотеки
    if not payload.title:
        raise HTTPException(status_code=400, detail="Title is required for custom protocols")

    return TrackedProtocol(
        protocol_id=payload.protocol_id,
        title=payload.title,
        description=payload.description,
        category=payload.category,
        difficulty=payload.difficulty,
        time_required=payload.time_required,
        frequency=payload.frequency,
        benefits=payload.benefits,
        instructions=payload.instructions,
    )

@router.get("/protocols", response_model=ProtocolListResponse)
def list_protocols(user: UserRecord = Depends(get_current_user)):
    """
    Протоколы на стене пользователя
    """
    return ProtocolListResponse(
        protocols=[TrackedProtocolSchema.from_protocol(p) for p in user.protocols]
    )

@router.post("/protocols", response_model=ProtocolResponse, status_code=201)
def add_protocol(
    payload: AddProtocolRequest,
    user: UserRecord = Depends(get_current_user),
    database: ProtocolDatabase = Depends(get_database)
):
    """
    Добавить протокол на стену
    """
    try:
        protocol = database.add_protocol(user.user_id, _build_protocol(payload))
    except ProtocolAlreadyExistsError:
        raise HTTPException(status_code=400, detail="Protocol already added to your wall")
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DatabaseError as e:
        logger.error(f"❌ Add protocol error: {e}")
        raise HTTPException(status_code=500, detail="Server error")

    return ProtocolResponse(
        message="Protocol added successfully",
        protocol=TrackedProtocolSchema.from_protocol(protocol)
    )

@router.delete("/protocols/{protocol_id}", response_model=MessageResponse)
def remove_protocol(
    protocol_id: str,
    user: UserRecord = Depends(get_current_user),
    database: ProtocolDatabase = Depends(get_database)
):
    """
    Удалить протокол со стены вместе с историей
    """
    try:
        database.remove_protocol(user.user_id, protocol_id)
    except ProtocolNotFoundError:
        raise HTTPException(status_code=404, detail="Protocol not found")
    except DatabaseError as e:
        logger.error(f"❌ Remove protocol error: {e}")
        raise HTTPException(status_code=500, detail="Server error")

    return MessageResponse(message="Protocol removed successfully")

@router.post("/protocols/{protocol_id}/completion", response_model=ToggleCompletionResponse)
def toggle_completion(
    protocol_id: str,
    payload: Optional[CompletionRequest] = None,
    user: UserRecord = Depends(get_current_user),
    database: ProtocolDatabase = Depends(get_database),
    aggregator: ProgressAggregator = Depends(get_aggregator),
    now: datetime = Depends(get_now)
):
    """
    Переключить отметку выполнения за день
    """
    payload = payload or CompletionRequest()
    day = _resolve_day(payload.date, now, aggregator)

    try:
        protocol, completed = database.toggle_completion(user.user_id, protocol_id, day, payload.notes)
    except ProtocolNotFoundError:
        raise HTTPException(status_code=404, detail="Protocol not found")
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DatabaseError as e:
        logger.error(f"❌ Toggle completion error: {e}")
        raise HTTPException(status_code=500, detail="Server error")

    return ToggleCompletionResponse(
        message="Protocol completion toggled successfully",
        completed=completed,
        protocol=TrackedProtocolSchema.from_protocol(protocol)
    )

@router.put("/protocols/{protocol_id}/completion", response_model=ProtocolResponse)
def update_completion_notes(
    protocol_id: str,
    payload: Optional[CompletionRequest] = None,
    user: UserRecord = Depends(get_current_user),
    database: ProtocolDatabase = Depends(get_database),
    aggregator: ProgressAggregator = Depends(get_aggregator),
    now: datetime = Depends(get_now)
):
    """
    Сохранить заметку за день, отметив день выполненным
    """
    payload = payload or CompletionRequest()
    day = _resolve_day(payload.date, now, aggregator)

    try:
        protocol = database.set_completion_notes(user.user_id, protocol_id, day, payload.notes)
    except ProtocolNotFoundError:
        raise HTTPException(status_code=404, detail="Protocol not found")
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DatabaseError as e:
        logger.error(f"❌ Update notes error: {e}")
        raise HTTPException(status_code=500, detail="Server error")

    return ProtocolResponse(
        message="Completion notes saved successfully",
        protocol=TrackedProtocolSchema.from_protocol(protocol)
    )

@router.get("/protocols/{protocol_id}/history", response_model=ProtocolHistoryResponse)
def get_protocol_history(
    protocol_id: str,
    user: UserRecord = Depends(get_current_user),
    aggregator: ProgressAggregator = Depends(get_aggregator),
    now: datetime = Depends(get_now)
):
    """
    Отметки за последние 7 дней и процент успешности
    """
    protocol = user.find_protocol(protocol_id)
    if protocol is None:
        raise HTTPException(status_code=404, detail="Protocol not found")

    return ProtocolHistoryResponse(
        protocol_id=protocol.protocol_id,
        title=protocol.title,
        history=aggregator.compliance_history(protocol, now),
        success_rate=aggregator.success_rate(protocol, now)
    )

@router.delete("/data", response_model=UserResponse)
def delete_user_data(
    user: UserRecord = Depends(get_current_user),
    database: ProtocolDatabase = Depends(get_database)
):
    """
    Удалить все протоколы и историю, сохранив учётную запись
    """
    try:
        user = database.clear_user_data(user.user_id)
    except DatabaseError as e:
        logger.error(f"❌ Delete user data error: {e}")
        raise HTTPException(status_code=500, detail="Server error")

    return UserResponse(user=UserSchema.from_user(user))

@router.put("/preferences", response_model=PreferencesResponse)
def update_preferences(
    payload: PreferencesUpdateRequest,
    user: UserRecord = Depends(get_current_user),
    database: ProtocolDatabase = Depends(get_database)
):
    """
    Обновить настройки уведомлений и темы, не переданные поля не меняются
    """
    try:
        preferences = database.update_preferences(
            user.user_id, notifications=payload.notifications, theme=payload.theme
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DatabaseError as e:
        logger.error(f"❌ Update preferences error: {e}")
        raise HTTPException(status_code=500, detail="Server error")

    return PreferencesResponse(
        message="Preferences updated successfully",
        preferences=UserPreferencesSchema(**preferences.to_dict())
    )
