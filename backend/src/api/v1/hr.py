"""
İnsan Kaynakları API
Personel listesi/açma/silme, İK ayarları, mesai ve devamsızlık puanları
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from typing import List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from datetime import datetime, timezone
import logging
import uuid

from db.mongo import Collections
from core.config import validate_password
from models.hr import (
    HRCapabilities, HRReportRow, HRScoreOut, HRSettings, HRSettingsUpdate,
    ManualScoreEntry, ModuleAccessToggle, RolePermissionsUpdate
)
from models.rbac import UserCreate, UserOut, UserStatus
from services.hr_access import HRSettingsService
from services.hr_score_service import HRScoreService, ScoreEntryError, recent_periods
from api.v1.auth import build_user_out, hash_password
from api.v1.deps import get_db, get_current_user, is_manual_entry_listing, require_admin, require_hr_access


router = APIRouter(prefix="/hr", tags=["İnsan Kaynakları"])
logger = logging.getLogger(__name__)


async def _users_out(db: AsyncIOMotorDatabase, users: List[dict]) -> List[UserOut]:
    role_ids = {role_id for user in users for role_id in user.get("roles", [])}
    roles = await db[Collections.ROLES].find(
        {"id": {"$in": list(role_ids)}}
    ).to_list(length=None)
    by_id = {role["id"]: role for role in roles}

    return [
        build_user_out(user, [by_id[role_id] for role_id in user.get("roles", []) if role_id in by_id])
        for user in users
    ]


# ============================================================================
# PERSONEL
# ============================================================================

@router.get("/users", response_model=List[UserOut])
async def list_hr_users(
    request: Request,
    db: AsyncIOMotorDatabase = Depends(get_db),
    capabilities: HRCapabilities = Depends(require_hr_access)
):
    """
    İK personel listesi

    - forManualEntry=true: tüm aktif kullanıcılar (buddy seçimi)
    - Diğer durumda: açma/silme yetkisi olan rollerdeki aktif kullanıcılar
    """
    query = {"status": UserStatus.ACTIVE.value}

    if not is_manual_entry_listing(request):
        if not capabilities.can_create_user and not capabilities.can_delete_user:
            return []

        allowed = set(capabilities.allowed_roles_to_create) | set(capabilities.allowed_roles_to_delete)
        if allowed:
            query["roles"] = {"$in": sorted(allowed)}

    users = await db[Collections.USERS].find(query).sort("username", 1).to_list(length=None)
    return await _users_out(db, users)


@router.post("/users", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def create_hr_user(
    user_data: UserCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    capabilities: HRCapabilities = Depends(require_hr_access)
):
    """
    İK üzerinden personel aç
    """
    if not capabilities.can_create_user:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Kullanıcı oluşturma yetkiniz yok"
        )

    if not set(user_data.roles) <= set(capabilities.allowed_roles_to_create):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Bu rollerde kullanıcı açma yetkiniz yok"
        )

    is_valid, error_message = validate_password(user_data.password)
    if not is_valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error_message
        )

    existing = await db[Collections.USERS].find_one({"username": user_data.username})
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Bu kullanıcı adı zaten kullanılıyor"
        )

    now = datetime.now(timezone.utc)
    user_doc = {
        "id": str(uuid.uuid4()),
        **user_data.model_dump(exclude={"password"}),
        "password": hash_password(user_data.password),
        "status": UserStatus.ACTIVE.value,
        "selected_machines": [],
        "created_by": current_user["id"],
        "created_at": now,
        "updated_at": now
    }

    await db[Collections.USERS].insert_one(user_doc)
    logger.info("✅ İK kullanıcı oluşturuldu: %s (%s tarafından)", user_doc["username"], current_user["username"])

    return (await _users_out(db, [user_doc]))[0]


@router.delete("/users/{user_id}")
async def delete_hr_user(
    user_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    capabilities: HRCapabilities = Depends(require_hr_access)
):
    """
    İK üzerinden personel sil
    """
    if not capabilities.can_delete_user:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Kullanıcı silme yetkiniz yok"
        )

    user = await db[Collections.USERS].find_one({"id": user_id})
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Kullanıcı bulunamadı"
        )

    if not set(user.get("roles", [])) & set(capabilities.allowed_roles_to_delete):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Bu roldeki kullanıcıyı silme yetkiniz yok"
        )

    await db[Collections.USERS].delete_one({"id": user_id})
    logger.info("🗑️ İK kullanıcı silindi: %s (%s tarafından)", user["username"], current_user["username"])

    return {"message": "Kullanıcı başarıyla silindi"}


# ============================================================================
# YETKİLER
# ============================================================================

@router.get("/permissions", response_model=HRCapabilities)
async def get_hr_permissions(
    current_user: dict = Depends(get_current_user),
    capabilities: HRCapabilities = Depends(require_hr_access)
):
    """
    Kullanıcının çözümlenmiş İK yetkileri
    """
    logger.info(
        "🔍 İK yetki sorgusu: kullanici=%s roller=%s",
        current_user["id"], [role.get("name") for role in current_user["role_docs"]],
    )
    return capabilities


# ============================================================================
# İK AYARLARI
# ============================================================================

@router.get("/settings", response_model=HRSettings)
async def get_hr_settings(
    db: AsyncIOMotorDatabase = Depends(get_db),
    capabilities: HRCapabilities = Depends(require_hr_access)
):
    """
    İK ayarlarını getir (yoksa varsayılanlarla oluşturulur)
    """
    return HRSettings(**await HRSettingsService(db).get_settings())


@router.put("/settings", response_model=HRSettings)
async def update_hr_settings(
    settings_update: HRSettingsUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    current_user: dict = Depends(require_admin())
):
    """
    İK ayarlarını güncelle (sadece Admin)
    """
    updated = await HRSettingsService(db).update_settings(settings_update, current_user["id"])
    return HRSettings(**updated)


@router.post("/settings/role-permissions", response_model=HRSettings)
async def update_role_permissions(
    payload: RolePermissionsUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    current_user: dict = Depends(require_admin())
):
    """
    Bir rolün İK yetkilerini güncelle (sadece Admin)
    """
    role = await db[Collections.ROLES].find_one({"id": payload.role_id})
    if not role:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Rol bulunamadı"
        )

    updated = await HRSettingsService(db).set_role_permissions(
        payload.role_id, payload.permissions, current_user["id"]
    )
    return HRSettings(**updated)


@router.post("/settings/module-access", response_model=HRSettings)
async def toggle_module_access(
    payload: ModuleAccessToggle,
    db: AsyncIOMotorDatabase = Depends(get_db),
    current_user: dict = Depends(require_admin())
):
    """
    Kullanıcı veya rol için İK modül erişimini aç/kapa (sadece Admin)
    """
    updated = await HRSettingsService(db).toggle_module_access(
        payload.item_id, payload.item_type, current_user["id"]
    )
    return HRSettings(**updated)


# ============================================================================
# PUANLAR
# ============================================================================

@router.get("/my-scores", response_model=List[HRScoreOut])
async def get_my_scores(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: AsyncIOMotorDatabase = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Kullanıcının kendi puanları (İK yetkisi gerekmez).
    Yıl ve ay verilmezse son 6 ay döner.
    """
    periods = [(year, month)] if year and month else recent_periods(6)
    return await HRScoreService(db).get_scores_for_periods(current_user["id"], periods)


@router.post("/scores/manual-entry", response_model=HRScoreOut)
async def add_manual_score(
    entry: ManualScoreEntry,
    db: AsyncIOMotorDatabase = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    capabilities: HRCapabilities = Depends(require_hr_access)
):
    """
    Manuel mesai/devamsızlık girişi
    """
    if not capabilities.can_score:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Puanlama yetkiniz yok"
        )

    user = await db[Collections.USERS].find_one({"id": entry.user_id})
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Kullanıcı bulunamadı"
        )

    settings = await HRSettingsService(db).get_settings()
    try:
        return await HRScoreService(db).add_manual_entry(entry, settings, current_user["id"])
    except ScoreEntryError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.get("/scores/{user_id}", response_model=HRScoreOut)
async def get_user_scores(
    user_id: str,
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: AsyncIOMotorDatabase = Depends(get_db),
    capabilities: HRCapabilities = Depends(require_hr_access)
):
    """
    Kullanıcının dönem puanları (varsayılan: içinde bulunulan ay)
    """
    now = datetime.now(timezone.utc)
    return await HRScoreService(db).get_score(user_id, year or now.year, month or now.month)


@router.get("/reports", response_model=List[HRReportRow])
async def get_period_report(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    db: AsyncIOMotorDatabase = Depends(get_db),
    capabilities: HRCapabilities = Depends(require_hr_access)
):
    """
    Dönem puan raporu
    """
    if not capabilities.can_view_reports:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Rapor görüntüleme yetkiniz yok"
        )

    return await HRScoreService(db).period_report(year, month)
