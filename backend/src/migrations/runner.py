"""
Migration Runner
schema_migrations defterine göre bekleyen migration'ları uygular / geri alır
"""
from motor.motor_asyncio import AsyncIOMotorDatabase
from datetime import datetime, timezone
from typing import List, Optional, Sequence
import logging

from db.mongo import Collections
from migrations.base import Migration, MigrationError

logger = logging.getLogger(__name__)


class MigrationRunner:
    """Sürüm sırasıyla migration çalıştırıcı"""

    def __init__(self, db: AsyncIOMotorDatabase, migrations: Optional[Sequence[Migration]] = None):
        if migrations is None:
            from migrations import ALL_MIGRATIONS
            migrations = ALL_MIGRATIONS

        versions = [migration.version for migration in migrations]
        if len(set(versions)) != len(versions):
            raise MigrationError(f"Tekrarlanan migration sürümü: {versions}")

        self.db = db
        self.ledger = db[Collections.SCHEMA_MIGRATIONS]
        self.migrations = sorted(migrations, key=lambda migration: migration.version)

    async def applied_versions(self) -> List[int]:
        records = await self.ledger.find({}, {"version": 1}).sort("version", 1).to_list(length=None)
        return [record["version"] for record in records]

    async def pending(self) -> List[Migration]:
        applied = set(await self.applied_versions())
        return [migration for migration in self.migrations if migration.version not in applied]

    async def apply_pending(self) -> List[int]:
        """
        Bekleyen migration'ları sırayla uygula.
        Hata olursa durur; başarılı olanlar defterde kalır.
        """
        applied: List[int] = []
        for migration in await self.pending():
            logger.info("⬆️ Migration uygulanıyor: %03d %s", migration.version, migration.name)
            try:
                await migration.up(self.db)
            except Exception as e:
                logger.error("❌ Migration başarısız: %03d %s: %s", migration.version, migration.name, e)
                raise MigrationError(f"{migration.version:03d} {migration.name} uygulanamadı: {e}") from e

            await self.ledger.insert_one({
                "version": migration.version,
                "name": migration.name,
                "applied_at": datetime.now(timezone.utc),
            })
            applied.append(migration.version)

        if applied:
            logger.info("✅ %d migration uygulandı", len(applied))
        else:
            logger.info("Bekleyen migration yok")
        return applied

    async def rollback(self, steps: int = 1) -> List[int]:
        """Son uygulanan 'steps' adet migration'ı ters sırayla geri al"""
        if steps < 1:
            raise MigrationError("Geri alınacak adım sayısı en az 1 olmalıdır")

        by_version = {migration.version: migration for migration in self.migrations}
        rolled_back: List[int] = []

        for version in reversed(await self.applied_versions()):
            if len(rolled_back) >= steps:
                break

            migration = by_version.get(version)
            if migration is None:
                raise MigrationError(f"Defterdeki {version:03d} sürümü için migration tanımı yok")

            logger.info("⬇️ Migration geri alınıyor: %03d %s", migration.version, migration.name)
            try:
                await migration.down(self.db)
            except Exception as e:
                logger.error("❌ Geri alma başarısız: %03d %s: %s", migration.version, migration.name, e)
                raise MigrationError(f"{migration.version:03d} {migration.name} geri alınamadı: {e}") from e

            await self.ledger.delete_one({"version": version})
            rolled_back.append(version)

        return rolled_back

    async def status(self) -> List[dict]:
        records = await self.ledger.find().to_list(length=None)
        applied_at = {record["version"]: record.get("applied_at") for record in records}

        return [
            {
                "version": migration.version,
                "name": migration.name,
                "applied": migration.version in applied_at,
                "applied_at": applied_at.get(migration.version),
            }
            for migration in self.migrations
        ]
