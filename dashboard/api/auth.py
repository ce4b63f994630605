from fastapi import APIRouter, HTTPException, Depends, status
import logging

from core.database import ProtocolDatabase, DatabaseError, UserAlreadyExistsError
from core.models import UserRecord, UserRole, ValidationError
from shared.models import RegisterRequest, LoginRequest, AuthResponse, UserResponse, UserSchema
from ..config import settings
from ..core.security import hash_password, verify_password, create_access_token
from ..dependencies import get_database, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    database: ProtocolDatabase = Depends(get_database)
):
    """
    Регистрация нового пользователя
    """
    name = (payload.name or "").strip()
    email = (payload.email or "").strip()
    password = payload.password or ""

    if not name or not email or not password:
        raise HTTPException(status_code=400, detail="Please provide all required fields")

    if len(password) < settings.MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters"
        )

    role = UserRole.ADMIN.value if email.lower() in settings.ADMIN_EMAILS else UserRole.USER.value

    try:
        user = database.create_user(
            name=name, email=email, password_hash=hash_password(password), role=role
        )
    except UserAlreadyExistsError:
        raise HTTPException(status_code=400, detail="User already exists with this email")
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DatabaseError as e:
        logger.error(f"❌ Registration error: {e}")
        raise HTTPException(status_code=500, detail="Server error during registration")

    return AuthResponse(
        message="User created successfully",
        token=create_access_token(user.user_id),
        user=UserSchema.from_user(user)
    )

@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    database: ProtocolDatabase = Depends(get_database)
):
    """
    Вход по email и паролю
    """
    if not payload.email or not payload.password:
        raise HTTPException(status_code=400, detail="Please provide email and password")

    user = database.get_user_by_email(payload.email)
    if user is None or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=400, detail="Invalid credentials")

    try:
        user = database.record_login(user.user_id)
    except DatabaseError as e:
        logger.error(f"❌ Login error: {e}")
        raise HTTPException(status_code=500, detail="Server error during login")

    return AuthResponse(
        message="Login successful",
        token=create_access_token(user.user_id),
        user=UserSchema.from_user(user)
    )

@router.get("/me", response_model=UserResponse)
def get_me(user: UserRecord = Depends(get_current_user)):
    """
    Текущий пользователь со стеной и настройками
    """
    return UserResponse(user=UserSchema.from_user(user))
