"""
Migration temel sınıfı ve ortak yardımcılar
"""
from motor.motor_asyncio import AsyncIOMotorDatabase
from datetime import datetime, timezone
from typing import Dict, List
import uuid

from db.mongo import Collections


class MigrationError(RuntimeError):
    """Migration uygulanamadı veya geri alınamadı"""


class Migration:
    """
    Sürümlü veri migration'ı.

    Alt sınıflar version (artan, tekil), name ve up/down tanımlar.
    Migration'ın oluşturduğu kayıtlar "created_by_migration" alanı ile
    işaretlenir, böylece down yalnızca kendi eklediklerini siler.
    """
    version: int = 0
    name: str = ""

    async def up(self, db: AsyncIOMotorDatabase) -> None:
        raise NotImplementedError

    async def down(self, db: AsyncIOMotorDatabase) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<Migration {self.version:03d} {self.name}>"


async def upsert_by_name(db: AsyncIOMotorDatabase, collection: str, doc: dict, version: int) -> None:
    """Ada göre kayıt yoksa oluştur; varsa dokunma"""
    now = datetime.now(timezone.utc)
    await db[collection].update_one(
        {"name": doc["name"]},
        {
            "$setOnInsert": {
                "id": str(uuid.uuid4()),
                **doc,
                "created_by_migration": version,
                "created_at": now,
                "updated_at": now,
            }
        },
        upsert=True,
    )


async def role_ids_by_name(db: AsyncIOMotorDatabase) -> Dict[str, str]:
    roles = await db[Collections.ROLES].find({}, {"id": 1, "name": 1}).to_list(length=None)
    return {role["name"]: role["id"] for role in roles}


def full_grants(module_names: List[str]) -> List[dict]:
    return [
        {"module_name": name, "can_view": True, "can_edit": True}
        for name in module_names
    ]
