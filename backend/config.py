# backend/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=str(env_path), extra="ignore")

    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    DATABASE_URL: str = "sqlite:///./storefront.db"

    # Email verification codes
    OTP_EXPIRE_MINUTES: int = 10

    # Shipping fee policy applied at checkout
    FREE_SHIPPING_THRESHOLD: float = 500000
    FLAT_SHIPPING_FEE: float = 30000

    # Local image storage
    UPLOAD_DIR: str = "static/uploads"
    UPLOAD_URL_PREFIX: str = "/uploads"

    LOG_LEVEL: str = "INFO"
    FRONTEND_URL: Optional[str] = None

settings = Settings()
