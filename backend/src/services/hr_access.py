"""
HR Access Service - İK modülü erişim çözümleme
İK ayarları tekil kaydı ve kullanıcının İK yetki kaydının hesaplanması
"""
from typing import List, Optional, Sequence
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from datetime import datetime, timezone
import logging

from db.mongo import Collections
from models.hr import (
    HR_SETTINGS_KEY, AccessItemType, AccessStatus, HRCapabilities,
    HRSettings, HRSettingsUpdate, RoleResolution
)
from services.rbac_service import RBACService, is_admin

logger = logging.getLogger(__name__)


def manual_entry_capabilities() -> HRCapabilities:
    """Manuel giriş (buddy seçimi) için salt-okunur minimum yetki"""
    return HRCapabilities()


def full_capabilities(all_role_ids: Sequence[str]) -> HRCapabilities:
    """Admin için tam yetki"""
    return HRCapabilities(
        can_create_user=True,
        can_delete_user=True,
        can_score=True,
        can_import_excel=True,
        can_view_reports=True,
        allowed_roles_to_create=list(all_role_ids),
        allowed_roles_to_delete=list(all_role_ids),
    )


def _role_entry(settings: Optional[dict], role_id: str) -> Optional[HRCapabilities]:
    if not settings:
        return None
    for entry in settings.get("rol_yetkileri") or []:
        if entry.get("role_id") == role_id:
            return HRCapabilities(**(entry.get("permissions") or {}))
    return None


def _has_user_override(settings: Optional[dict], user_id: str) -> bool:
    if not settings:
        return False
    return any(
        entry.get("user_id") == user_id
        and entry.get("access_status") == AccessStatus.ACTIVE.value
        for entry in settings.get("modul_erisim_yetkileri") or []
    )


def _merge(records: Sequence[HRCapabilities]) -> HRCapabilities:
    merged = HRCapabilities()
    for record in records:
        merged.can_create_user = merged.can_create_user or record.can_create_user
        merged.can_delete_user = merged.can_delete_user or record.can_delete_user
        merged.can_score = merged.can_score or record.can_score
        merged.can_import_excel = merged.can_import_excel or record.can_import_excel
        merged.can_view_reports = merged.can_view_reports or record.can_view_reports
        for role_id in record.allowed_roles_to_create:
            if role_id not in merged.allowed_roles_to_create:
                merged.allowed_roles_to_create.append(role_id)
        for role_id in record.allowed_roles_to_delete:
            if role_id not in merged.allowed_roles_to_delete:
                merged.allowed_roles_to_delete.append(role_id)
    return merged


def resolve_hr_access(
    roles: Sequence[dict],
    settings: Optional[dict],
    user_id: str,
    *,
    all_role_ids: Sequence[str] = (),
    manual_entry_listing: bool = False,
    resolution: RoleResolution = RoleResolution.FIRST_MATCH
) -> Optional[HRCapabilities]:
    """
    Kullanıcının İK yetki kaydını hesapla. Erişim yoksa None döner.

    Sıra:
      1. Kullanıcı listesine forManualEntry ile gelen istek: minimum yetki
      2. 'Admin' rolü: tam yetki, izinli roller = mevcut tüm roller
      3. modul_erisim_yetkileri içinde kullanıcıya ait aktif kayıt varsa
         kullanıcının İLK rolünün rol_yetkileri kaydı (varsa) aynen verilir
      4. Roller sırayla taranır; can_score veya can_view_reports açık olan
         ilk rolün kaydı verilir

    Adım 3 her zaman roles[0]'ı kullanırken adım 4 ilk uygun rolü arar;
    ikisi farklı roller seçebilir. Rollerin birleşimi alınmaz, ancak
    resolution=UNION verilirse adım 3 ve 4 tüm rollerin kayıtlarını birleştirir.
    İK ayarları yoksa hiçbir rol kaydı yok sayılır.
    """
    if manual_entry_listing:
        return manual_entry_capabilities()

    if is_admin(roles):
        return full_capabilities(all_role_ids)

    role_records = [
        (role, record)
        for role in roles
        for record in [_role_entry(settings, role.get("id"))]
        if record is not None
    ]

    if resolution == RoleResolution.UNION:
        if not role_records:
            return None
        merged = _merge([record for _, record in role_records])
        if _has_user_override(settings, user_id):
            return merged
        if merged.can_score or merged.can_view_reports:
            return merged
        return None

    if _has_user_override(settings, user_id) and roles:
        record = _role_entry(settings, roles[0].get("id"))
        if record is not None:
            return record

    for role, record in role_records:
        if record.can_score or record.can_view_reports:
            logger.info(
                "✅ İK erişim onaylandı (rol bazlı): rol=%s can_score=%s can_view_reports=%s",
                role.get("name"), record.can_score, record.can_view_reports,
            )
            return record

    return None


class HRSettingsService:
    """İK ayarları tekil kaydı"""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = self.db[Collections.HR_SETTINGS]

    async def get_settings(self) -> dict:
        """
        Ayar kaydını getir, yoksa varsayılanlarla oluştur.
        Upsert sabit anahtar üzerinde yapıldığı için eşzamanlı ilk erişimde
        de tek kayıt oluşur.
        """
        defaults = HRSettings(updated_at=datetime.now(timezone.utc)).model_dump(mode="python")
        return await self.collection.find_one_and_update(
            {"key": HR_SETTINGS_KEY},
            {"$setOnInsert": {"key": HR_SETTINGS_KEY, **defaults}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
            projection={"_id": False},
        )

    async def _save(self, fields: dict, updated_by: Optional[str]) -> dict:
        fields["updated_by"] = updated_by
        fields["updated_at"] = datetime.now(timezone.utc)
        await self.get_settings()
        return await self.collection.find_one_and_update(
            {"key": HR_SETTINGS_KEY},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
            projection={"_id": False},
        )

    async def update_settings(self, update: HRSettingsUpdate, updated_by: Optional[str] = None) -> dict:
        """Gönderilen alanları olduğu gibi yaz"""
        fields = update.model_dump(mode="python", exclude_unset=True, exclude_none=True)
        logger.info("İK ayarları güncelleniyor: %s", sorted(fields))
        return await self._save(fields, updated_by)

    async def set_role_permissions(
        self,
        role_id: str,
        permissions: HRCapabilities,
        updated_by: Optional[str] = None
    ) -> dict:
        """Rolün İK yetki kaydını değiştir, yoksa ekle"""
        settings = await self.get_settings()
        entries: List[dict] = list(settings.get("rol_yetkileri") or [])
        new_permissions = permissions.model_dump(mode="python")

        for entry in entries:
            if entry.get("role_id") == role_id:
                logger.info("📝 Mevcut rol yetkisi güncelleniyor: %s", role_id)
                entry["permissions"] = new_permissions
                break
        else:
            logger.info("➕ Yeni rol yetkisi ekleniyor: %s", role_id)
            entries.append({"role_id": role_id, "permissions": new_permissions})

        return await self._save({"rol_yetkileri": entries}, updated_by)

    async def toggle_module_access(
        self,
        item_id: str,
        item_type: AccessItemType,
        updated_by: Optional[str] = None
    ) -> dict:
        """Kullanıcı/rol İK erişimini aktif-pasif arasında değiştir"""
        settings = await self.get_settings()
        entries: List[dict] = list(settings.get("modul_erisim_yetkileri") or [])
        key = "user_id" if item_type == AccessItemType.USER else "role_id"

        for entry in entries:
            if entry.get(key) == item_id:
                current = entry.get("access_status")
                entry["access_status"] = (
                    AccessStatus.PASSIVE.value
                    if current == AccessStatus.ACTIVE.value
                    else AccessStatus.ACTIVE.value
                )
                break
        else:
            entries.append({
                key: item_id,
                "access_status": AccessStatus.ACTIVE.value,
                "granted_at": datetime.now(timezone.utc),
            })

        return await self._save({"modul_erisim_yetkileri": entries}, updated_by)


class HRAccessService:
    """İstek sahibinin İK yetki kaydını veritabanından çözümler"""

    def __init__(self, db: AsyncIOMotorDatabase, resolution: RoleResolution = RoleResolution.FIRST_MATCH):
        self.db = db
        self.resolution = resolution
        self.settings_service = HRSettingsService(db)
        self.rbac = RBACService(db)

    async def resolve_for_user(
        self,
        user: dict,
        roles: Sequence[dict],
        manual_entry_listing: bool = False
    ) -> Optional[HRCapabilities]:
        if manual_entry_listing:
            logger.info(
                "🔓 İK erişim bypass (manuel giriş): kullanici=%s roller=%s",
                user["id"], [role.get("name") for role in roles],
            )
            return manual_entry_capabilities()

        all_role_ids: List[str] = []
        settings: Optional[dict] = None
        if is_admin(roles):
            all_role_ids = await self.rbac.all_role_ids()
        else:
            settings = await self.settings_service.get_settings()

        capabilities = resolve_hr_access(
            roles,
            settings,
            user["id"],
            all_role_ids=all_role_ids,
            resolution=self.resolution,
        )

        if capabilities is None:
            logger.warning(
                "❌ İK erişim reddedildi: kullanici=%s roller=%s",
                user["id"], [role.get("name") for role in roles],
            )
        return capabilities
