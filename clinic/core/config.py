# clinic/core/config.py
import os
from pydantic_settings import BaseSettings
from pydantic import Field
from pydantic_settings import SettingsConfigDict
from typing import Optional, List
from functools import lru_cache

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra='ignore', populate_by_name=True)

    # Application Settings
    APP_NAME: str = "Clinic Scheduler API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    DOCS_ENABLED: bool = True

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = int(os.environ.get("PORT", 8000))
    WORKERS: int = 1

    # Database Settings
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "sqlite:///./clinic.db")
    SQLITE_BUSY_TIMEOUT: int = 30
    SEED_DOCTORS: bool = True

    # Security Settings
    SECRET_KEY: str = Field(default="change-me-in-prod", alias="JWT_SECRET_KEY")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: str = ""

    # CORS Settings
    ALLOWED_ORIGINS: str = os.environ.get("ALLOWED_ORIGINS", "*")
    ALLOWED_METHODS: str = os.environ.get("ALLOWED_METHODS", "GET,POST,PUT,DELETE,OPTIONS")
    ALLOWED_HEADERS: str = os.environ.get("ALLOWED_HEADERS", "*")
    CORS_ALLOW_CREDENTIALS: bool = True

    # Request limits
    MAX_REQUEST_SIZE: int = 1 * 1024 * 1024  # 1MB

    # Scheduling
    DEFAULT_SLOT_MINUTES: int = 30
    MAX_SLOT_MINUTES: int = 240
    DEFAULT_WORK_START: str = "09:00"
    DEFAULT_WORK_END: str = "17:00"

    # Listing
    APPOINTMENT_PAGE_SIZE: int = 20
    MAX_APPOINTMENT_PAGE_SIZE: int = 200
    DOCTOR_PAGE_SIZE: int = 10
    MAX_DOCTOR_PAGE_SIZE: int = 100

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 60
    REDIS_URL: Optional[str] = os.environ.get("REDIS_URL", None)

    # Helper methods for list envs
    def _split_csv(self, value: str) -> List[str]:
        if value is None:
            return []
        value = value.strip()
        if value == "":
            return []
        return [item.strip() for item in value.split(",")]

    @property
    def allowed_origins_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_ORIGINS)

    @property
    def allowed_methods_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_METHODS)

    @property
    def allowed_headers_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_HEADERS)

@lru_cache()
def get_settings() -> Settings:
    s = Settings()
    # CORS_ORIGINS is accepted as a legacy spelling of ALLOWED_ORIGINS
    cors_env = os.environ.get("CORS_ORIGINS")
    if cors_env:
        s.ALLOWED_ORIGINS = cors_env
    return s

settings: Settings = get_settings()
