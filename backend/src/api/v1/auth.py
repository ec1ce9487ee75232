"""
Authentication API
Login, mevcut kullanıcı bilgisi
"""
from fastapi import APIRouter, Depends, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel
from typing import List
from datetime import datetime, timezone, timedelta
import jwt
import logging
from passlib.context import CryptContext

from db.mongo import Collections
from core.config import settings
from api.v1.deps import get_db, get_current_user
from models.rbac import ModuleOut, MyPermissions, UserOut, UserStatus
from services.rbac_service import RBACService


router = APIRouter(prefix="/auth", tags=["Auth"])
logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# Models
class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut


# Helper functions
def hash_password(password: str) -> str:
    """Şifreyi hashle"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Şifreyi doğrula"""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: str) -> tuple[str, int]:
    """
    Access token oluştur
    Returns: (token, expires_in_seconds)
    """
    expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    now = datetime.now(timezone.utc)

    payload = {
        "sub": user_id,
        "type": "access",
        "exp": now + expires_delta,
        "iat": now
    }

    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60


def build_user_out(user: dict, roles: List[dict]) -> UserOut:
    """
    Kullanıcı dict'inden UserOut modeli oluştur
    """
    return UserOut(
        id=user["id"],
        username=user["username"],
        first_name=user["first_name"],
        last_name=user["last_name"],
        roles=user.get("roles", []),
        role_names=[role["name"] for role in roles],
        department_ids=user.get("department_ids", []),
        status=user.get("status", UserStatus.ACTIVE.value),
        selected_machines=user.get("selected_machines", []),
        created_at=user["created_at"],
    )


# Endpoints
@router.post("/login", response_model=LoginResponse)
async def login(
    login_data: LoginRequest,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Kullanıcı girişi
    """
    user = await db[Collections.USERS].find_one({"username": login_data.username})

    if not user or not verify_password(login_data.password, user["password"]):
        logger.info("❌ Başarısız giriş denemesi: %s", login_data.username)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Geçersiz kullanıcı adı veya şifre"
        )

    if user.get("status") != UserStatus.ACTIVE.value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Hesabınız pasif durumda"
        )

    access_token, expires_in = create_access_token(user["id"])
    roles = await RBACService(db).load_roles(user.get("roles", []))

    await db[Collections.USERS].update_one(
        {"id": user["id"]},
        {"$set": {"last_login": datetime.now(timezone.utc)}}
    )

    return LoginResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=expires_in,
        user=build_user_out(user, roles)
    )


@router.get("/me", response_model=MyPermissions)
async def get_current_user_info(
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Mevcut kullanıcı bilgileri ve erişebildiği modüller
    """
    roles = current_user["role_docs"]
    modules = await RBACService(db).accessible_modules(roles)

    return MyPermissions(
        user=build_user_out(current_user, roles),
        modules=[ModuleOut(**module) for module in modules]
    )
