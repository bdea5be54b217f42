from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

BASE_DIR = Path(__file__).resolve().parent.parent
ENV_FILE = BASE_DIR / ".env"


class Settings(BaseSettings):
    # Application
    PROJECT_NAME: str = "HouseBudget"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = False

    # Security
    SECRET_KEY: str = ""
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_SECONDS: int = 604800  # 7 days

    # Database
    # Default to a local sqlite file for development; override via .env in production.
    DATABASE_URL: str = "sqlite:///./house_budget.db"

    # Redis (sessions + pending account deletion requests)
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_SOCKET_TIMEOUT: float = 5.0

    # Households
    HOUSEHOLD_MAX_MEMBERS: int = 2
    DELETE_REQUEST_TTL_SECONDS: int = 604800  # 7 days

    # Mail. Sending is suppressed (logged only) while SMTP_HOST is empty.
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    SMTP_TIMEOUT: float = 10.0
    MAIL_FROM: str = "noreply@housebudget.app"

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:4200",
        "http://localhost:8100",
    ]

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE), case_sensitive=True, extra="ignore"
    )


settings = Settings()
