"""
002 - Varsayılan roller (ad bazlı modül yetkileriyle)
"""
from motor.motor_asyncio import AsyncIOMotorDatabase
import logging

from db.mongo import Collections
from models.rbac import ADMIN_ROLE_NAME
from migrations.base import Migration, full_grants, upsert_by_name
from migrations.m001_standard_modules import STANDARD_MODULE_NAMES

logger = logging.getLogger(__name__)


def _view(*names: str) -> list:
    return [{"module_name": name, "can_view": True, "can_edit": False} for name in names]


def _edit(*names: str) -> list:
    return [{"module_name": name, "can_view": True, "can_edit": True} for name in names]


FLOOR_MODULES = ("Dashboard", "Görev Yönetimi", "Yaptım", "Kontrol Bekleyenler", "Performans", "Kişisel Aktivite")

DEFAULT_ROLES = [
    {
        "name": ADMIN_ROLE_NAME,
        "description": "Sistem yöneticisi",
        "module_permissions": full_grants(STANDARD_MODULE_NAMES),
    },
    {
        "name": "Ortacı",
        "description": "Üretim hattı ortacısı",
        "module_permissions": _view(*FLOOR_MODULES, "Toplantı Yönetimi"),
    },
    {
        "name": "Usta",
        "description": "Makine ustası",
        "module_permissions": _view(*FLOOR_MODULES, "Envanter Yönetimi") + _edit("Toplantı Yönetimi"),
    },
    {
        "name": "Paketlemeci",
        "description": "Paketleme operatörü",
        "module_permissions": _view(*FLOOR_MODULES, "Toplantı Yönetimi"),
    },
    {
        "name": "Kalite Kontrol",
        "description": "Kalite kontrol sorumlusu",
        "module_permissions": (
            _view("Dashboard", "Kontrol Bekleyenler", "Performans", "Kişisel Aktivite")
            + _edit("Kalite Kontrol", "Kalite Kontrol Yönetimi", "Toplantı Yönetimi")
        ),
    },
    {
        "name": "VARDİYA AMİRİ",
        "description": "Vardiya amiri",
        "module_permissions": (
            _view(*FLOOR_MODULES, "Personel Takip")
            + _edit("Toplantı Yönetimi", "Envanter Yönetimi")
        ),
    },
]


class DefaultRoles(Migration):
    version = 2
    name = "default_roles"

    async def up(self, db: AsyncIOMotorDatabase) -> None:
        for role in DEFAULT_ROLES:
            await upsert_by_name(
                db,
                Collections.ROLES,
                {**role, "moduller": [], "checklist_yetkileri": []},
                self.version,
            )
        logger.info("  ✅ %d varsayılan rol hazır", len(DEFAULT_ROLES))

    async def down(self, db: AsyncIOMotorDatabase) -> None:
        seeded = await db[Collections.ROLES].find(
            {"created_by_migration": self.version}, {"id": 1, "name": 1}
        ).to_list(length=None)

        for role in seeded:
            if await db[Collections.USERS].count_documents({"roles": role["id"]}):
                logger.warning("  ⚠️ %s rolü kullanımda, silinmedi", role["name"])
                continue
            await db[Collections.ROLES].delete_one({"id": role["id"]})
            logger.info("  🗑️ %s rolü silindi", role["name"])
