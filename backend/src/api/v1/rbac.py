"""
RBAC API Endpoints
Rol, modül ve checklist yetki yönetimi
"""
from fastapi import APIRouter, Depends, HTTPException, status
from typing import List
from motor.motor_asyncio import AsyncIOMotorDatabase
from datetime import datetime, timezone
import logging
import uuid

from db.mongo import Collections
from models.rbac import (
    ChecklistAccess, ModuleCreate, ModuleOut, ModulePermissionLevel,
    ModuleUpdate, RoleCreate, RoleOut, RoleUpdate
)
from services.rbac_service import (
    RBACService, checklist_access, controllable_role_ids, fold_module_permissions
)
from api.v1.deps import get_db, get_current_user, require_admin, require_module_permission


router = APIRouter(tags=["RBAC"])
logger = logging.getLogger(__name__)

ROLE_MODULE = "Rol Yönetimi"


async def _role_out(db: AsyncIOMotorDatabase, role: dict) -> RoleOut:
    user_count = await db[Collections.USERS].count_documents({"roles": role["id"]})
    return RoleOut(**role, user_count=user_count)


async def _check_checklist_targets(db: AsyncIOMotorDatabase, grants: list) -> None:
    """checklist_yetkileri içindeki hedef rollerin var olduğunu doğrula"""
    target_ids = {grant.target_role_id for grant in grants}
    if not target_ids:
        return

    existing = await db[Collections.ROLES].find(
        {"id": {"$in": list(target_ids)}}, {"id": 1}
    ).to_list(length=None)
    missing = target_ids - {role["id"] for role in existing}
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Geçersiz hedef rol: {', '.join(sorted(missing))}"
        )


async def _fold_grants(db: AsyncIOMotorDatabase, moduller: list, module_permissions: list) -> list:
    """
    Gönderilen iki yetki listesini tek moduller listesine çevir.
    Rol kaydında module_permissions boş tutulur.
    """
    if not module_permissions:
        return list(moduller)

    names = [permission["module_name"] for permission in module_permissions]
    modules = await RBACService(db).find_modules_by_name(names)
    folded, unknown = fold_module_permissions(
        moduller, module_permissions, {module["name"]: module for module in modules}
    )
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Geçersiz modül: {', '.join(sorted(unknown))}"
        )
    return folded


# ============================================================================
# ROL YÖNETİMİ
# ============================================================================

@router.get("/roles", response_model=List[RoleOut])
async def list_roles(
    db: AsyncIOMotorDatabase = Depends(get_db),
    current_user: dict = Depends(require_module_permission(ROLE_MODULE))
):
    """
    Rolleri listele
    """
    roles = await db[Collections.ROLES].find().sort("name", 1).to_list(length=None)
    return [await _role_out(db, role) for role in roles]


@router.get("/roles/my-permissions", response_model=List[RoleOut])
async def my_permissions(
    db: AsyncIOMotorDatabase = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Kullanıcının kendi rolleri (her kullanıcı görebilir)
    """
    return [await _role_out(db, role) for role in current_user["role_docs"]]


@router.get("/roles/{role_id}", response_model=RoleOut)
async def get_role(
    role_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    current_user: dict = Depends(require_module_permission(ROLE_MODULE))
):
    """
    Rol detaylarını getir
    """
    role = await db[Collections.ROLES].find_one({"id": role_id})
    if not role:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Rol bulunamadı"
        )

    return await _role_out(db, role)


@router.post("/roles", response_model=RoleOut, status_code=status.HTTP_201_CREATED)
async def create_role(
    role_data: RoleCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    current_user: dict = Depends(require_module_permission(ROLE_MODULE, ModulePermissionLevel.EDIT))
):
    """
    Yeni rol oluştur
    """
    existing = await db[Collections.ROLES].find_one({"name": role_data.name})
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Bu rol adı zaten kullanılıyor"
        )

    await _check_checklist_targets(db, role_data.checklist_yetkileri)

    role_fields = role_data.model_dump()
    role_fields["moduller"] = await _fold_grants(
        db, role_fields["moduller"], role_fields["module_permissions"]
    )
    role_fields["module_permissions"] = []

    now = datetime.now(timezone.utc)
    role_doc = {
        "id": str(uuid.uuid4()),
        **role_fields,
        "created_at": now,
        "updated_at": now
    }

    await db[Collections.ROLES].insert_one(role_doc)
    logger.info("➕ Rol oluşturuldu: %s (%s)", role_doc["name"], current_user["username"])

    return RoleOut(**role_doc, user_count=0)


@router.put("/roles/{role_id}", response_model=RoleOut)
async def update_role(
    role_id: str,
    role_update: RoleUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    current_user: dict = Depends(require_module_permission(ROLE_MODULE, ModulePermissionLevel.EDIT))
):
    """
    Rol güncelle. Gönderilen listeler tamamen değiştirilir; moduller veya
    module_permissions gönderilirse rolün modül yetkileri yalnızca
    gönderilen kayıtlardan oluşur.
    """
    role = await db[Collections.ROLES].find_one({"id": role_id})
    if not role:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Rol bulunamadı"
        )

    if role_update.name is not None:
        existing = await db[Collections.ROLES].find_one(
            {"name": role_update.name, "id": {"$ne": role_id}}
        )
        if existing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Bu rol adı zaten kullanılıyor"
            )

    if role_update.checklist_yetkileri is not None:
        await _check_checklist_targets(db, role_update.checklist_yetkileri)

    update_data = role_update.model_dump(exclude_unset=True)
    if "moduller" in update_data or "module_permissions" in update_data:
        update_data["moduller"] = await _fold_grants(
            db, update_data.get("moduller") or [], update_data.get("module_permissions") or []
        )
        update_data["module_permissions"] = []
    update_data["updated_at"] = datetime.now(timezone.utc)

    await db[Collections.ROLES].update_one(
        {"id": role_id},
        {"$set": update_data}
    )
    logger.info("📝 Rol güncellendi: %s alanlar=%s", role["name"], sorted(update_data))

    updated_role = await db[Collections.ROLES].find_one({"id": role_id})
    return await _role_out(db, updated_role)


@router.delete("/roles/{role_id}")
async def delete_role(
    role_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    current_user: dict = Depends(require_module_permission(ROLE_MODULE, ModulePermissionLevel.EDIT))
):
    """
    Rol sil. Diğer rollerin bu role verdiği checklist yetkileri silinmez.
    """
    user_count = await db[Collections.USERS].count_documents({"roles": role_id})
    if user_count > 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Bu rol {user_count} kullanıcı tarafından kullanılıyor. Önce kullanıcıların rollerini değiştirin."
        )

    role = await db[Collections.ROLES].find_one({"id": role_id})
    if not role:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Rol bulunamadı"
        )

    await db[Collections.ROLES].delete_one({"id": role_id})

    dangling = await db[Collections.ROLES].count_documents(
        {"checklist_yetkileri.target_role_id": role_id}
    )
    if dangling:
        logger.warning(
            "⚠️ Silinen rol %s, %d rolün checklist yetkilerinde hâlâ hedef olarak geçiyor",
            role["name"], dangling,
        )

    return {"message": "Rol başarıyla silindi"}


# ============================================================================
# MODÜL YÖNETİMİ
# ============================================================================

@router.get("/modules", response_model=List[ModuleOut])
async def list_modules(
    db: AsyncIOMotorDatabase = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Tüm modülleri listele
    """
    modules = await db[Collections.MODULES].find().sort("name", 1).to_list(length=None)
    return [ModuleOut(**module) for module in modules]


@router.get("/modules/accessible", response_model=List[ModuleOut])
async def list_accessible_modules(
    db: AsyncIOMotorDatabase = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Kullanıcının rollerine göre erişebildiği aktif modüller
    """
    modules = await RBACService(db).accessible_modules(current_user["role_docs"])
    return [ModuleOut(**module) for module in modules]


@router.post("/modules", response_model=ModuleOut, status_code=status.HTTP_201_CREATED)
async def create_module(
    module_data: ModuleCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    current_user: dict = Depends(require_admin())
):
    """
    Yeni modül oluştur
    """
    existing = await db[Collections.MODULES].find_one({"name": module_data.name})
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Bu modül adı zaten kullanılıyor"
        )

    now = datetime.now(timezone.utc)
    module_doc = {
        "id": str(uuid.uuid4()),
        **module_data.model_dump(),
        "created_at": now,
        "updated_at": now
    }
    await db[Collections.MODULES].insert_one(module_doc)
    logger.info("✅ Modül oluşturuldu: %s", module_doc["name"])

    return ModuleOut(**module_doc)


@router.patch("/modules/{module_id}", response_model=ModuleOut)
async def update_module(
    module_id: str,
    module_update: ModuleUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    current_user: dict = Depends(require_admin())
):
    """
    Modül güncelle. Ad değişirse rollerin ad bazlı yetkileri de yeni ada taşınır.
    """
    module = await db[Collections.MODULES].find_one({"id": module_id})
    if not module:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Modül bulunamadı"
        )

    update_data = module_update.model_dump(exclude_unset=True)
    new_name = update_data.get("name")
    old_name = module["name"]

    if new_name and new_name != old_name:
        existing = await db[Collections.MODULES].find_one({"name": new_name})
        if existing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Bu modül adı zaten kullanılıyor"
            )

        roles = await db[Collections.ROLES].find(
            {"module_permissions.module_name": old_name}
        ).to_list(length=None)
        for role in roles:
            permissions = role.get("module_permissions") or []
            for permission in permissions:
                if permission.get("module_name") == old_name:
                    permission["module_name"] = new_name
            await db[Collections.ROLES].update_one(
                {"id": role["id"]},
                {"$set": {"module_permissions": permissions, "updated_at": datetime.now(timezone.utc)}}
            )
        logger.info("🔁 Modül yeniden adlandırıldı: %s -> %s (%d rol güncellendi)", old_name, new_name, len(roles))

    update_data["updated_at"] = datetime.now(timezone.utc)
    await db[Collections.MODULES].update_one({"id": module_id}, {"$set": update_data})

    updated = await db[Collections.MODULES].find_one({"id": module_id})
    return ModuleOut(**updated)


@router.post("/modules/{module_id}/toggle", response_model=ModuleOut)
async def toggle_module(
    module_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    current_user: dict = Depends(require_admin())
):
    """
    Modülü aktif/pasif yap
    """
    module = await db[Collections.MODULES].find_one({"id": module_id})
    if not module:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Modül bulunamadı"
        )

    await db[Collections.MODULES].update_one(
        {"id": module_id},
        {"$set": {"active": not module.get("active", True), "updated_at": datetime.now(timezone.utc)}}
    )
    updated = await db[Collections.MODULES].find_one({"id": module_id})
    return ModuleOut(**updated)


# ============================================================================
# CHECKLIST YETKİLERİ
# ============================================================================

@router.get("/checklists/access/{author_user_id}", response_model=ChecklistAccess)
async def get_checklist_access(
    author_user_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Mevcut kullanıcının, verilen kullanıcının doldurduğu checklistler
    üzerindeki görme/puanlama/onaylama yetkisi
    """
    author_roles = await RBACService(db).get_user_roles(author_user_id)
    if author_roles is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Kullanıcı bulunamadı"
        )

    if not author_roles:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Görev sahibinin rolü bulunamadı"
        )

    return checklist_access(current_user["role_docs"], [role["id"] for role in author_roles])


@router.get("/checklists/controllable-roles")
async def get_controllable_roles(
    db: AsyncIOMotorDatabase = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Kullanıcının checklistlerini kontrol edebildiği roller
    """
    role_ids = controllable_role_ids(current_user["role_docs"])
    roles = await RBACService(db).load_roles(role_ids)
    return [{"id": role["id"], "name": role["name"]} for role in roles]
