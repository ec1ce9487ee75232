"""
003 - Checklist çapraz rol yetkileri
"""
from motor.motor_asyncio import AsyncIOMotorDatabase
from datetime import datetime, timezone
import logging

from db.mongo import Collections
from models.rbac import ADMIN_ROLE_NAME
from migrations.base import Migration, role_ids_by_name

logger = logging.getLogger(__name__)


FULL = {"can_view": True, "can_score": True, "can_approve": True}
VIEW_APPROVE = {"can_view": True, "can_score": False, "can_approve": True}

# (yetkili rol, hedef roller, yetkiler)
CHECKLIST_GRANTS = [
    ("Usta", ["Ortacı", "Paketlemeci"], FULL),
    ("Ortacı", ["Paketlemeci"], FULL),
    ("VARDİYA AMİRİ", ["Ortacı", "Paketlemeci", "Usta"], FULL),
    (ADMIN_ROLE_NAME, ["Ortacı", "Paketlemeci", "Usta", "VARDİYA AMİRİ"], FULL),
    ("Kalite Kontrol", ["Ortacı", "Usta", "Paketlemeci"], VIEW_APPROVE),
]


class ChecklistPermissions(Migration):
    """Rolün mevcut bir hedef için kaydı varsa o kayıt korunur"""
    version = 3
    name = "checklist_permissions"

    async def up(self, db: AsyncIOMotorDatabase) -> None:
        ids = await role_ids_by_name(db)

        for role_name, targets, flags in CHECKLIST_GRANTS:
            role = await db[Collections.ROLES].find_one({"name": role_name})
            if not role:
                logger.warning("  ⚠️ %s rolü bulunamadı, atlandı", role_name)
                continue

            grants = list(role.get("checklist_yetkileri") or [])
            existing = {grant.get("target_role_id") for grant in grants}
            added = 0
            for target in targets:
                target_id = ids.get(target)
                if target_id is None or target_id in existing:
                    continue
                grants.append({"target_role_id": target_id, **flags})
                added += 1

            if added:
                await db[Collections.ROLES].update_one(
                    {"id": role["id"]},
                    {"$set": {"checklist_yetkileri": grants, "updated_at": datetime.now(timezone.utc)}}
                )
            logger.info("  ✅ %s: %d checklist yetkisi eklendi", role_name, added)

    async def down(self, db: AsyncIOMotorDatabase) -> None:
        ids = await role_ids_by_name(db)

        for role_name, targets, _ in CHECKLIST_GRANTS:
            if role_name not in ids:
                continue
            target_ids = [ids[target] for target in targets if target in ids]
            await db[Collections.ROLES].update_one(
                {"id": ids[role_name]},
                {"$pull": {"checklist_yetkileri": {"target_role_id": {"$in": target_ids}}}}
            )
