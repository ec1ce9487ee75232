"""
MMM Checklist Backend Main Application
FastAPI ile geliştirilmiş, MongoDB kullanan fabrika operasyon yetkilendirme sistemi
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from motor.motor_asyncio import AsyncIOMotorDatabase
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
import uuid

# Core imports
from core.config import settings
from db.mongo import Collections, close_database_connection, ensure_indexes, get_database
from migrations.runner import MigrationRunner
from models.rbac import ADMIN_ROLE_NAME, UserStatus

# API Routers
from api.v1 import auth, hr, rbac
from api.v1.auth import hash_password

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Kök logger'ı ayarla; LOG_FILE verilmişse dosyaya da yaz"""
    handlers = [logging.StreamHandler()]
    if settings.LOG_FILE:
        handlers.append(logging.FileHandler(settings.LOG_FILE, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )


async def ensure_initial_admin(db: AsyncIOMotorDatabase) -> None:
    """İlk admin kullanıcısı yoksa 'Admin' rolüyle oluştur"""
    admin_user = await db[Collections.USERS].find_one({"username": settings.INITIAL_ADMIN_USERNAME})
    if admin_user:
        return

    admin_role = await db[Collections.ROLES].find_one({"name": ADMIN_ROLE_NAME})
    if not admin_role:
        logger.warning("⚠️ 'Admin' rolü bulunamadı, ilk admin kullanıcısı oluşturulmadı")
        return

    logger.info("👤 İlk admin kullanıcısı oluşturuluyor...")
    now = datetime.now(timezone.utc)
    await db[Collections.USERS].insert_one({
        "id": str(uuid.uuid4()),
        "username": settings.INITIAL_ADMIN_USERNAME,
        "password": hash_password(settings.INITIAL_ADMIN_PASSWORD),  # İlk şifre - değiştirilmeli!
        "first_name": "Sistem",
        "last_name": "Yöneticisi",
        "roles": [admin_role["id"]],
        "department_ids": [],
        "selected_machines": [],
        "status": UserStatus.ACTIVE.value,
        "created_at": now,
        "updated_at": now,
        "last_login": None
    })
    logger.info("  ✅ Admin kullanıcısı oluşturuldu (username: %s)", settings.INITIAL_ADMIN_USERNAME)
    logger.warning("  ⚠️  GÜVENLİK UYARISI: İlk girişte şifrenizi değiştirin!")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Uygulama başlatma ve kapatma işlemleri
    """
    # Startup
    logger.info("🚀 %s başlatılıyor...", settings.APP_NAME)

    db = await get_database()
    await ensure_indexes(db)

    if settings.AUTO_MIGRATE:
        await MigrationRunner(db).apply_pending()

    await ensure_initial_admin(db)

    logger.info("✅ %s hazır!", settings.APP_NAME)

    yield

    # Shutdown
    logger.info("🛑 %s kapatılıyor...", settings.APP_NAME)
    await close_database_connection()


configure_logging()

# FastAPI uygulaması
app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Fabrika operasyonları rol, modül ve İK yetkilendirme API'si",
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

# CORS ayarları
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check
@app.get("/health")
async def health_check():
    """Sistem sağlık kontrolü"""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION
    }


# API Routers
app.include_router(auth.router, prefix=settings.API_PREFIX)
app.include_router(rbac.router, prefix=settings.API_PREFIX)
app.include_router(hr.router, prefix=settings.API_PREFIX)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8001,
        reload=settings.DEBUG,
        log_level="info"
    )
