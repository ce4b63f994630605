from fastapi import APIRouter, HTTPException, Depends
import logging

from core.database import ProtocolDatabase, DatabaseError, UserNotFoundError
from core.models import UserRecord, UserRole, ValidationError
from shared.models import (
    UserListResponse, UserSchema, RoleUpdateRequest, RoleUpdateResponse, MessageResponse
)
from ..dependencies import get_database, get_current_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

@router.get("/users", response_model=UserListResponse)
def list_users(
    admin: UserRecord = Depends(get_current_admin),
    database: ProtocolDatabase = Depends(get_database)
):
    """
    Все пользователи без хэшей паролей
    """
    users = [UserSchema.from_user(user) for user in database.list_users()]
    return UserListResponse(users=users, total=len(users))

@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: str,
    admin: UserRecord = Depends(get_current_admin),
    database: ProtocolDatabase = Depends(get_database)
):
    """
    Удалить пользователя вместе со стеной
    """
    if user_id == admin.user_id:
        raise HTTPException(status_code=400, detail="Cannot delete your own admin account")

    try:
        database.delete_user(user_id)
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    except DatabaseError as e:
        logger.error(f"❌ Delete user error: {e}")
        raise HTTPException(status_code=500, detail="Server error")

    logger.info(f"🗑 Администратор {admin.user_id} удалил пользователя {user_id}")
    return MessageResponse(message="User removed successfully")

@router.patch("/users/{user_id}/role", response_model=RoleUpdateResponse)
def update_user_role(
    user_id: str,
    payload: RoleUpdateRequest,
    admin: UserRecord = Depends(get_current_admin),
    database: ProtocolDatabase = Depends(get_database)
):
    """
    Назначить роль user или admin
    """
    if payload.role not in [role.value for role in UserRole]:
        raise HTTPException(status_code=400, detail="Invalid role")

    if user_id == admin.user_id and payload.role != UserRole.ADMIN.value:
        raise HTTPException(status_code=400, detail="Cannot demote your own admin account")

    try:
        user = database.set_user_role(user_id, payload.role)
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DatabaseError as e:
        logger.error(f"❌ Update role error: {e}")
        raise HTTPException(status_code=500, detail="Server error")

    return RoleUpdateResponse(
        message="User role updated successfully",
        user_id=user.user_id,
        new_role=user.role
    )
