"""
Backend Configuration
Ortam değişkenleri ve sistem ayarları
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Literal, Optional


class Settings(BaseSettings):
    """Uygulama ayarları"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Uygulama
    APP_NAME: str = "MMM Checklist"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    API_PREFIX: str = "/api/v1"

    # MongoDB
    MONGO_URL: str = "mongodb://localhost:27017"
    DB_NAME: str = "mmm-checklist"

    # JWT
    JWT_SECRET: str = "change-me-in-production-use-a-long-random-secret"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 24 * 60  # 24 saat

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Güvenlik
    PASSWORD_MIN_LENGTH: int = 6

    # İlk kurulum
    AUTO_MIGRATE: bool = True
    INITIAL_ADMIN_USERNAME: str = "admin"
    INITIAL_ADMIN_PASSWORD: str = "admin123"

    # İK yetki çözümleme: ilk uyan rol mü, tüm rollerin birleşimi mi
    HR_ROLE_RESOLUTION: Literal["first_match", "union"] = "first_match"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None


# Global settings instance
settings = Settings()


def validate_password(password: str) -> tuple[bool, str]:
    """
    Şifre kurallarını kontrol et
    Returns: (is_valid, error_message)
    """
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        return False, f"Şifre en az {settings.PASSWORD_MIN_LENGTH} karakter olmalıdır"

    return True, ""
