from typing import Literal, Optional

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./flynest.db"
    ADMIN_DATABASE_URL: Optional[str] = None
    DATABASE_ECHO: bool = False

    # Booking store
    BOOKING_STORE_BACKEND: Literal["sql", "http"] = "sql"
    BOOKING_API_URL: str = "https://localhost:44327/api"
    BOOKING_API_TOKEN: Optional[str] = None
    BOOKING_ADMIN_TOKEN: Optional[str] = None
    HTTP_TIMEOUT_SECONDS: float = 15.0

    # Booking policy
    CANCELLATION_MIN_DAYS: int = 2
    REFUND_PROCESSING_DAYS: str = "5-6"

    # Application
    PROJECT_NAME: str = "Flynest Booking Service"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    @property
    def admin_database_url(self) -> str:
        return self.ADMIN_DATABASE_URL or self.DATABASE_URL

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()

def get_settings() -> Settings:
    """Settings dependency (overridable in tests)"""
    return settings
