"""
001 - Standart modüller
"""
from motor.motor_asyncio import AsyncIOMotorDatabase
import logging

from db.mongo import Collections
from migrations.base import Migration, upsert_by_name

logger = logging.getLogger(__name__)


STANDARD_MODULES = [
    {"name": "Dashboard", "icon": "Dashboard", "route": "/"},
    {"name": "Kullanıcı Yönetimi", "icon": "People", "route": "/users"},
    {"name": "Rol Yönetimi", "icon": "Security", "route": "/roles"},
    {"name": "Departman Yönetimi", "icon": "Business", "route": "/departments"},
    {"name": "Checklist Yönetimi", "icon": "PlaylistAddCheck", "route": "/checklists"},
    {"name": "Görev Yönetimi", "icon": "Assignment", "route": "/tasks"},
    {"name": "Toplantı Yönetimi", "icon": "Groups", "route": "/meetings"},
    {"name": "Yaptım", "icon": "Build", "route": "/worktasks"},
    {"name": "Envanter Yönetimi", "icon": "Inventory2", "route": "/inventory"},
    {"name": "Kalite Kontrol", "icon": "FactCheck", "route": "/quality-control"},
    {"name": "Kalite Kontrol Yönetimi", "icon": "AdminPanelSettings", "route": "/quality-control-management"},
    {"name": "İnsan Kaynakları", "icon": "People", "route": "/hr"},
    {"name": "İnsan Kaynakları Yönetimi", "icon": "AdminPanelSettings", "route": "/hr-management"},
    {"name": "Kontrol Bekleyenler", "icon": "HourglassEmpty", "route": "/control-pending"},
    {"name": "Performans", "icon": "Analytics", "route": "/performance"},
    {"name": "Kişisel Aktivite", "icon": "Timeline", "route": "/my-activity"},
    {"name": "Personel Takip", "icon": "Badge", "route": "/personnel-tracking"},
]

STANDARD_MODULE_NAMES = [module["name"] for module in STANDARD_MODULES]


class StandardModules(Migration):
    version = 1
    name = "standard_modules"

    async def up(self, db: AsyncIOMotorDatabase) -> None:
        for module in STANDARD_MODULES:
            await upsert_by_name(
                db,
                Collections.MODULES,
                {**module, "description": None, "active": True},
                self.version,
            )
        logger.info("  ✅ %d standart modül hazır", len(STANDARD_MODULES))

    async def down(self, db: AsyncIOMotorDatabase) -> None:
        result = await db[Collections.MODULES].delete_many({"created_by_migration": self.version})
        logger.info("  🗑️ %d modül silindi", result.deleted_count)
