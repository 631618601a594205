from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./dabus.db"
    DB_TIMEOUT_SECONDS: int = 10
    DB_ECHO: bool = False

    # Security
    SECRET_KEY: str = "change-this-secret"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # Application
    PROJECT_NAME: str = "DaBus"
    API_PREFIX: str = "/api"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    FRONTEND_URL: str = "http://localhost:3000"

    # Payment links (Wave checkout, one per price tier)
    WAVE_LINK_2500: str = ""
    WAVE_LINK_3000: str = ""

    # Booking policy: when True a pending booking already holds its seat
    PENDING_HOLDS_SEAT: bool = False

    # Bootstrap admin
    ADMIN_EMAIL: Optional[str] = None
    ADMIN_PASSWORD: Optional[str] = None
    ADMIN_FULL_NAME: Optional[str] = None
    ADMIN_PHONE: Optional[str] = None
    ADMIN_PROMOTE_SECRET: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

settings = Settings()
