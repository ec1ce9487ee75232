"""
FastAPI Dependencies
JWT doğrulama, kullanıcı ve rol bilgisi çekme, yetki kapıları
"""
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import List, Sequence, Union
import jwt
import logging

from db.mongo import Collections, get_database
from core.config import settings
from models.hr import HR_ACCESS_DENIED_MESSAGE, HRCapabilities, RoleResolution
from models.rbac import ModulePermissionLevel, UserStatus
from services.hr_access import HRAccessService
from services.rbac_service import RBACService, is_admin

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=True)


async def get_db() -> AsyncIOMotorDatabase:
    """
    Veritabanı dependency
    """
    return await get_database()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncIOMotorDatabase = Depends(get_db)
) -> dict:
    """
    JWT token'dan mevcut kullanıcıyı al.
    Roller her istekte veritabanından taze okunur ve kullanıcıdaki
    sırasıyla "role_docs" alanına eklenir.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Kimlik doğrulama başarısız",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM]
        )

        user_id: str = payload.get("sub")
        token_type: str = payload.get("type")

        if user_id is None or token_type != "access":
            raise credentials_exception

    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token süresi dolmuş",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError:
        raise credentials_exception

    user = await db[Collections.USERS].find_one({"id": user_id})
    if user is None:
        raise credentials_exception

    if user.get("status") != UserStatus.ACTIVE.value:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Hesap pasif durumda"
        )

    user["role_docs"] = await RBACService(db).load_roles(user.get("roles", []))
    return user


def require_admin():
    """
    'Admin' rolü gerektiren dependency

    Kullanım:
    @router.post("/modules")
    async def create_module(current_user: dict = Depends(require_admin())):
        ...
    """
    async def admin_checker(current_user: dict = Depends(get_current_user)):
        if not is_admin(current_user["role_docs"]):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Admin yetkisi gerekli"
            )
        return current_user

    return admin_checker


def require_module_permission(
    module_names: Union[str, Sequence[str]],
    permission: ModulePermissionLevel = ModulePermissionLevel.VIEW
):
    """
    Modül erişim kapısı. Ad listesi verilirse herhangi birine erişim yeterlidir.

    Kullanım:
    @router.get("/roles")
    async def list_roles(
        current_user: dict = Depends(require_module_permission("Rol Yönetimi"))
    ):
        ...
    """
    names: List[str] = [module_names] if isinstance(module_names, str) else list(module_names)

    async def permission_checker(
        current_user: dict = Depends(get_current_user),
        db: AsyncIOMotorDatabase = Depends(get_db)
    ):
        rbac = RBACService(db)
        allowed = await rbac.has_module_permission(current_user["role_docs"], names, permission)

        if not allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{' veya '.join(names)} modülü için {permission.value} yetkisi bulunmuyor"
            )

        return current_user

    return permission_checker


def is_manual_entry_listing(request: Request) -> bool:
    """Buddy seçimi akışı: kullanıcı listesine forManualEntry=true ile gelen GET"""
    return (
        request.method == "GET"
        and request.url.path.rstrip("/") == f"{settings.API_PREFIX}/hr/users"
        and request.query_params.get("forManualEntry") == "true"
    )


async def require_hr_access(
    request: Request,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
) -> HRCapabilities:
    """
    İK modülü kapısı. Çözümlenen yetki kaydı request.state.hr_capabilities
    alanına da yazılır.
    """
    service = HRAccessService(db, RoleResolution(settings.HR_ROLE_RESOLUTION))
    capabilities = await service.resolve_for_user(
        current_user,
        current_user["role_docs"],
        manual_entry_listing=is_manual_entry_listing(request),
    )

    if capabilities is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=HR_ACCESS_DENIED_MESSAGE
        )

    request.state.hr_capabilities = capabilities
    return capabilities
