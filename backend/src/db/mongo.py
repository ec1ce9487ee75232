"""
MongoDB Connection Management
"""
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from typing import Optional
from core.config import settings
import logging

logger = logging.getLogger(__name__)

# Global MongoDB client ve database
_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None


async def get_database() -> AsyncIOMotorDatabase:
    """
    MongoDB database instance'ını döndür
    Singleton pattern kullanarak tek bir bağlantı sağlar
    """
    global _client, _database

    if _database is None:
        logger.info(f"MongoDB bağlantısı kuruluyor: {settings.MONGO_URL}")

        try:
            _client = AsyncIOMotorClient(
                settings.MONGO_URL,
                serverSelectionTimeoutMS=5000,
                connectTimeoutMS=10000,
            )

            # Bağlantıyı test et
            await _client.admin.command('ping')

            _database = _client[settings.DB_NAME]
            logger.info(f"✅ MongoDB bağlantısı başarılı: {settings.DB_NAME}")

        except Exception as e:
            logger.error(f"❌ MongoDB bağlantı hatası: {e}")
            raise

    return _database


async def close_database_connection():
    """
    MongoDB bağlantısını kapat
    """
    global _client, _database

    if _client is not None:
        logger.info("MongoDB bağlantısı kapatılıyor...")
        _client.close()
        _client = None
        _database = None
        logger.info("✅ MongoDB bağlantısı kapatıldı")


# Collection isimleri (constants)
class Collections:
    """MongoDB koleksiyon isimleri"""

    # Kullanıcı ve yetkilendirme
    USERS = "users"
    ROLES = "roles"
    MODULES = "modules"

    # İnsan kaynakları
    HR_SETTINGS = "hr_settings"
    HR_SCORES = "hr_scores"

    # Sistem
    SCHEMA_MIGRATIONS = "schema_migrations"
    MODULE_GRANT_DIVERGENCES = "module_grant_divergences"


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """
    Benzersizlik kısıtlarını veritabanı seviyesinde garanti et
    """
    await db[Collections.USERS].create_index("id", unique=True, name="uniq_user_id")
    await db[Collections.USERS].create_index("username", unique=True, name="uniq_user_username")
    await db[Collections.ROLES].create_index("id", unique=True, name="uniq_role_id")
    await db[Collections.ROLES].create_index("name", unique=True, name="uniq_role_name")
    await db[Collections.MODULES].create_index("id", unique=True, name="uniq_module_id")
    await db[Collections.MODULES].create_index("name", unique=True, name="uniq_module_name")
    # İK ayarları tekil kayıttır; sabit anahtar üzerinde unique index
    await db[Collections.HR_SETTINGS].create_index("key", unique=True, name="uniq_hr_settings_key")
    await db[Collections.HR_SCORES].create_index(
        [("user_id", 1), ("year", 1), ("month", 1)],
        unique=True,
        name="uniq_hr_score_period",
    )
    await db[Collections.SCHEMA_MIGRATIONS].create_index(
        "version", unique=True, name="uniq_migration_version"
    )
    logger.info("Index'ler hazır")
