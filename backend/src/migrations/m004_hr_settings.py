"""
004 - İK ayarları ve İK rolü
"""
from motor.motor_asyncio import AsyncIOMotorDatabase
from datetime import datetime, timezone
import logging

from db.mongo import Collections
from models.hr import HR_SETTINGS_KEY, HRCapabilities
from models.rbac import ADMIN_ROLE_NAME
from services.hr_access import HRSettingsService
from migrations.base import Migration, full_grants, upsert_by_name

logger = logging.getLogger(__name__)


HR_ROLE_NAME = "İK"


class HRSettingsSetup(Migration):
    version = 4
    name = "hr_settings"

    async def up(self, db: AsyncIOMotorDatabase) -> None:
        await upsert_by_name(
            db,
            Collections.ROLES,
            {
                "name": HR_ROLE_NAME,
                "description": "İnsan kaynakları",
                "moduller": [],
                "module_permissions": full_grants(["Dashboard", "İnsan Kaynakları", "Personel Takip"]),
                "checklist_yetkileri": [],
            },
            self.version,
        )
        hr_role = await db[Collections.ROLES].find_one({"name": HR_ROLE_NAME})

        service = HRSettingsService(db)
        settings = await service.get_settings()
        if any(entry.get("role_id") == hr_role["id"] for entry in settings.get("rol_yetkileri") or []):
            logger.info("  ℹ️ İK rolünün yetki kaydı zaten var")
            return

        roles = await db[Collections.ROLES].find(
            {"name": {"$ne": ADMIN_ROLE_NAME}}, {"id": 1}
        ).to_list(length=None)
        role_ids = [role["id"] for role in roles]

        await service.set_role_permissions(
            hr_role["id"],
            HRCapabilities(
                can_create_user=True,
                can_delete_user=True,
                can_score=True,
                can_import_excel=True,
                can_view_reports=True,
                allowed_roles_to_create=role_ids,
                allowed_roles_to_delete=role_ids,
            ),
            updated_by="migration",
        )
        logger.info("  ✅ İK rolüne tam İK yetkisi verildi")

    async def down(self, db: AsyncIOMotorDatabase) -> None:
        hr_role = await db[Collections.ROLES].find_one({"name": HR_ROLE_NAME})
        if not hr_role:
            return

        await db[Collections.HR_SETTINGS].update_one(
            {"key": HR_SETTINGS_KEY},
            {
                "$pull": {"rol_yetkileri": {"role_id": hr_role["id"]}},
                "$set": {"updated_at": datetime.now(timezone.utc)},
            }
        )

        if hr_role.get("created_by_migration") != self.version:
            return
        if await db[Collections.USERS].count_documents({"roles": hr_role["id"]}):
            logger.warning("  ⚠️ İK rolü kullanımda, silinmedi")
            return
        await db[Collections.ROLES].delete_one({"id": hr_role["id"]})
